import logging

from accounts.models import User
from accounts.permissions import IsAdminRole
from activity.models import ActivityLog
from activity.services import record_activity
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet
from voting.models import Vote
from voting.services import get_voting_service

from .filters import ElectionFilter
from .lifecycle import ElectionStatus
from .models import Candidate, Election
from .permissions import IsAdminOrReadOnly
from .serializers import (
    CandidateSerializer,
    ElectionSerializer,
    VoterVotingStatusSerializer,
)

logger = logging.getLogger("elections")


class ElectionViewSet(ModelViewSet):
    """
    API endpoint for election CRUD.

    Any signed-in user may list and read elections; only administrators
    create, edit, end or delete them. Deleting an election removes its
    candidates and votes.
    """

    queryset = Election.objects.prefetch_related("candidates")
    serializer_class = ElectionSerializer
    permission_classes = [IsAdminOrReadOnly]

    filter_backends = [DjangoFilterBackend, OrderingFilter]
    # ?status=upcoming|active|completed
    filterset_class = ElectionFilter
    ordering_fields = ["start_time", "end_time", "created_at"]

    def perform_create(self, serializer):
        logger.debug(f"Incoming data: {self.request.data}")
        election = serializer.save(created_by=self.request.user)
        record_activity(
            ActivityLog.Action.CREATE_ELECTION,
            user=self.request.user,
            details=f'Created election "{election.title}"',
            request=self.request,
        )

    def perform_update(self, serializer):
        logger.debug(f"Incoming data: {self.request.data}")
        election = serializer.save()
        get_voting_service().invalidate_results(election.id)
        record_activity(
            ActivityLog.Action.UPDATE_ELECTION,
            user=self.request.user,
            details=f'Updated election "{election.title}"',
            request=self.request,
        )

    def perform_destroy(self, instance):
        title = instance.title
        election_id = instance.id
        instance.delete()
        get_voting_service().invalidate_results(election_id)
        logger.info(f"Election deleted by admin: {self.request.user.username} - {title}")
        record_activity(
            ActivityLog.Action.DELETE_ELECTION,
            user=self.request.user,
            details=f'Deleted election "{title}"',
            request=self.request,
        )

    @action(detail=True, methods=["post"])
    def end(self, request, pk=None):
        """
        End the election now by moving its end time to the current time.
        Only a running election can be ended.
        """
        election = self.get_object()
        if election.status != ElectionStatus.ACTIVE:
            logger.warning(
                f"Refused to end {election.status} election: {request.user.username} - {election.id}"
            )
            return Response(
                {"status": "error", "message": "Only an active election can be ended."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        election.end_now()
        get_voting_service().invalidate_results(election.id)
        logger.info(f"Election ended by admin: {request.user.username} - {election.id}")
        record_activity(
            ActivityLog.Action.END_ELECTION,
            user=request.user,
            details=f'Ended election "{election.title}"',
            request=request,
        )
        return Response(self.get_serializer(election).data)

    @action(
        detail=True,
        methods=["get"],
        url_path="voter-status",
        permission_classes=[IsAdminRole],
    )
    def voter_status(self, request, pk=None):
        """
        Every voter account with a flag telling whether it has voted here.
        """
        election = self.get_object()
        voted_ids = set(
            Vote.objects.filter(election=election).values_list("voter_id", flat=True)
        )
        voters = list(User.objects.filter(role=User.Role.VOTER).order_by("name", "username"))
        for voter in voters:
            voter.has_voted = voter.pk in voted_ids

        return Response(
            {
                "election": {"id": str(election.id), "title": election.title},
                "voted": len(voted_ids),
                "voters": VoterVotingStatusSerializer(voters, many=True).data,
            }
        )


class CandidateListByElectionView(generics.ListCreateAPIView):
    serializer_class = (
        CandidateSerializer  # serializer that handles the candidate creation
    )
    permission_classes = [IsAdminOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        election_id = self.kwargs["election_id"]
        return Candidate.objects.filter(election_id=election_id)

    def perform_create(self, serializer):
        """
        Associate the candidate with the election from the URL.
        """
        election = get_object_or_404(Election, pk=self.kwargs["election_id"])
        logger.info(f"Adding candidate to election: '{election}'")
        serializer.save(election=election)
        get_voting_service().invalidate_results(election.id)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["election_id"] = self.kwargs.get("election_id")
        return context


class CandidateDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    Read, edit or remove one candidate of an election.
    """

    serializer_class = CandidateSerializer
    permission_classes = [IsAdminOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        return Candidate.objects.filter(election_id=self.kwargs["election_id"])

    def perform_update(self, serializer):
        candidate = serializer.save()
        get_voting_service().invalidate_results(candidate.election_id)

    def perform_destroy(self, instance):
        election = instance.election
        instance.delete()
        # the candidate's votes were removed with it
        election.total_votes = election.votes.count()
        election.save(update_fields=["total_votes"])
        get_voting_service().invalidate_results(election.id)
        logger.info(f"Candidate removed by admin: {self.request.user.username} - {instance.name}")
