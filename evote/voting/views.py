import logging

from accounts.permissions import IsAdminRole
from django.shortcuts import get_object_or_404
from elections.models import Election
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Vote
from .serializers import MyVoteSerializer, VoteCreateSerializer, VoteListSerializer
from .services import (
    AuthenticationRequiredError,
    CandidateMismatchError,
    DuplicateVoteError,
    InactiveElectionError,
    VoteFailedError,
    VotingPermissionError,
    VotingServiceError,
    get_voting_service,
)

# __name__ = 'voting.views' automatically
logger = logging.getLogger(__name__)

# Business-rule rejections and the status code each maps to.
REJECTION_STATUS = {
    AuthenticationRequiredError: status.HTTP_401_UNAUTHORIZED,
    DuplicateVoteError: status.HTTP_400_BAD_REQUEST,
    VotingPermissionError: status.HTTP_403_FORBIDDEN,
    InactiveElectionError: status.HTTP_403_FORBIDDEN,
    CandidateMismatchError: status.HTTP_400_BAD_REQUEST,
}


class VoteCreateView(generics.ListCreateAPIView):
    """
    API endpoint for voting operations.

    POST: allows user to cast vote in a specific election
    GET: administrators list all votes for that election.
    """

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated()]
        return [IsAdminRole()]

    # serializer to use for validating and deserializing input, and for serializing output.
    def get_serializer_class(self):
        """
        use diffrent serializer for list and create.
        """
        if self.request.method == "POST":
            return VoteCreateSerializer
        return VoteListSerializer

    def get_serializer_context(self):
        """
        Pass the election object to the serializer context.
        """
        context = super().get_serializer_context()
        context["election"] = self.get_election()
        return context

    def get_election(self):
        if not hasattr(self, "_election"):
            self._election = get_object_or_404(Election, id=self.kwargs.get("election_id"))
        return self._election

    def get_queryset(self):
        """
        Return votes for the specific election.
        """
        election_id = self.kwargs.get("election_id")
        return Vote.objects.filter(election_id=election_id).select_related(
            "candidate", "voter", "election"
        )

    def list(self, request, *args, **kwargs):
        """
        Custom list response with election metadata.
        """
        election = self.get_election()
        queryset = self.filter_queryset(self.get_queryset())
        serializer = self.get_serializer(queryset, many=True)

        return Response(
            {
                "status": "success",
                "data": {
                    "election": {
                        "id": str(election.id),
                        "title": election.title,
                        "total_votes": election.total_votes,
                    },
                    "votes": serializer.data,
                },
            }
        )

    def create(self, request, *args, **kwargs):
        """
        Custom create response with vote receipt.
        cast a vote using service layer
        """
        # Validate with serializer
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        election = self.get_election()
        candidate = serializer.validated_data["candidate"]

        # Use service layer for business logic
        voting_service = get_voting_service()

        try:
            vote = voting_service.cast_vote(
                user=request.user, election=election, candidate=candidate
            )
        except VoteFailedError as e:
            return Response(
                {"status": "error", "message": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        except VotingServiceError as e:
            code = REJECTION_STATUS.get(type(e))
            if code is None:
                logger.error(f"Voting service error: {e}")
                return Response(
                    {
                        "status": "error",
                        "message": "An error occurred while processing your vote",
                    },
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR,
                )
            return Response({"status": "error", "message": str(e)}, status=code)

        return Response(
            {
                "status": "success",
                "message": "Your vote has been recorded successfully.",
                "data": {
                    "vote_id": str(vote.id),
                    "election": election.title,
                    "candidate": candidate.name,
                    "candidate_votes": candidate.vote_count,
                    "total_votes": election.total_votes,
                },
            },
            status=status.HTTP_201_CREATED,
        )


class MyVoteView(APIView):
    """
    API endpoint for users to view their own vote in an election
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, election_id):
        election = get_object_or_404(Election, id=election_id)
        vote = get_voting_service().get_user_vote(user=request.user, election_id=election_id)

        if vote is None:
            return Response(
                {"status": "error", "message": "You have not voted in this election"},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response(
            {
                "status": "success",
                "data": {
                    "election": {"id": str(election.id), "title": election.title},
                    "vote": MyVoteSerializer(vote).data,
                },
            }
        )


class VotingHistoryView(generics.ListAPIView):
    """
    The signed-in voter's votes, newest first.
    """

    serializer_class = MyVoteSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return Vote.objects.filter(voter=self.request.user).select_related(
            "candidate", "election"
        )


class ElectionResultsView(APIView):
    """
    API endpoint to view the result of a specific election with caching.
    Returns a list of candidates and their total votes counts for the given election.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, election_id):
        """
        Handle GET requests to retrive and return aggregated elections results.
        """
        voting_service = get_voting_service()

        try:
            # service layer handles caching automatically
            results = voting_service.get_election_results(
                election_id=election_id, use_cache=True
            )
            return Response(
                {
                    "status": "success",
                    "message": "Results retrived successfully",
                    "data": results,
                }
            )
        except Election.DoesNotExist:
            return Response(
                {"status": "error", "message": "Election not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
