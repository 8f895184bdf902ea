import logging

from activity.models import ActivityLog
from activity.services import record_activity
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from evote.exports import csv_response
from rest_framework import generics, status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.authtoken.views import ObtainAuthToken
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import User
from .permissions import IsAdminRole, IsAnonymousUser
from .serializers import (
    ProfileSerializer,
    RoleChangeSerializer,
    UserRegistrationSerializer,
    VoterSerializer,
)

logger = logging.getLogger("accounts")


class CustomAuthToken(ObtainAuthToken):
    """
    Custom authentication token view that extends DRF's default `ObtainAuthToken` class.
    This view provides a token upon sucessful login and also update `last_login` timestamp.
    """

    def post(self, request, *args, **kwargs):
        username = request.data.get("username")
        logger.info("Authentication attempt for user: %s", username)

        # Instantiate the serializer with the request data.
        serializer = self.serializer_class(
            data=request.data, context={"request": request}
        )

        try:
            # validate the credentails. if invalid , it will raise Validation Error.
            serializer.is_valid(raise_exception=True)
        except ValidationError:
            logger.warning("Authentication failed for user: %s", username)
            record_activity(
                ActivityLog.Action.LOGIN_FAILED,
                details=f"Failed login for '{username}'",
                request=request,
            )
            raise

        user = serializer.validated_data["user"]

        # Retrive an existing token or create a new one for the user.
        token, created = Token.objects.get_or_create(user=user)

        # manually update the last login field
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])

        logger.info("User authenticated sucessfully: %s", user.username)
        if created:
            logger.info("New token created for user: %s", user.username)
        else:
            logger.info("Existing token returned for user: %s", user.username)

        record_activity(
            ActivityLog.Action.LOGIN_SUCCESS, user=user, details="Logged in", request=request
        )

        # Return a custom response including the token and the profile snapshot.
        return Response(
            {
                "token": token.key,
                "user": ProfileSerializer(user, context={"request": request}).data,
            }
        )


class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for creating new user instance.
    """

    # Use the UserRegistrationSerializer to validate and create a user instance.
    serializer_class = UserRegistrationSerializer
    # Allow only anonymous visitors to register
    permission_classes = [IsAnonymousUser]

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info("User registered sucessfully -> %s", user.username)
        record_activity(
            ActivityLog.Action.ACCOUNT_CREATED,
            user=user,
            details="Account created",
            request=self.request,
        )


class ProfileView(generics.RetrieveUpdateAPIView):
    """
    The authenticated user's profile. Clients cache this snapshot and
    re-validate it on load.
    """

    serializer_class = ProfileSerializer
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_object(self):
        return self.request.user

    def perform_update(self, serializer):
        user = serializer.save()
        logger.info(f"Profile updated: {user.username}")
        record_activity(
            ActivityLog.Action.PROFILE_UPDATE,
            user=user,
            details="Profile updated",
            request=self.request,
        )


class VoterManagementViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Administrator view over all accounts.

    Supports search by name/email, filtering by role, verification and
    status, and the block/verify/role actions.
    """

    queryset = User.objects.all()
    serializer_class = VoterSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = ["role", "verified", "status"]
    search_fields = ["name", "email", "username"]
    ordering_fields = ["last_login", "date_joined", "name"]
    # most recently active first
    ordering = ["-last_login", "-date_joined"]

    def _update(self, request, voter, action_type, details, **fields):
        for name, value in fields.items():
            setattr(voter, name, value)
        voter.save(update_fields=list(fields))
        logger.info(f"{action_type} by admin: {request.user.username} - {voter.username}")
        record_activity(action_type, user=request.user, details=details, request=request)
        return Response(self.get_serializer(voter).data)

    @action(detail=True, methods=["post"])
    def block(self, request, pk=None):
        voter = self.get_object()
        if voter.pk == request.user.pk:
            return Response(
                {"status": "error", "message": "You cannot block your own account."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return self._update(
            request,
            voter,
            ActivityLog.Action.BLOCK_VOTER,
            f"Blocked {voter.display_name}",
            status=User.Status.BLOCKED,
        )

    @action(detail=True, methods=["post"])
    def unblock(self, request, pk=None):
        voter = self.get_object()
        return self._update(
            request,
            voter,
            ActivityLog.Action.UNBLOCK_VOTER,
            f"Unblocked {voter.display_name}",
            status=User.Status.ACTIVE,
        )

    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):
        voter = self.get_object()
        return self._update(
            request,
            voter,
            ActivityLog.Action.VERIFY_VOTER,
            f"Verified {voter.display_name}",
            verified=True,
        )

    @action(detail=True, methods=["post"])
    def unverify(self, request, pk=None):
        voter = self.get_object()
        return self._update(
            request,
            voter,
            ActivityLog.Action.UNVERIFY_VOTER,
            f"Unverified {voter.display_name}",
            verified=False,
        )

    @action(detail=True, methods=["post"])
    def role(self, request, pk=None):
        voter = self.get_object()
        serializer = RoleChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_role = serializer.validated_data["role"]
        return self._update(
            request,
            voter,
            ActivityLog.Action.CHANGE_ROLE,
            f"Changed role of {voter.display_name} to {User.Role(new_role).label}",
            role=new_role,
        )

    @action(detail=False, methods=["get"])
    def export(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        logger.info(f"Voter list export requested by {request.user.username}")
        return csv_response(
            "voters.csv",
            ["Name", "Email", "Registration ID", "Role", "Verified", "Status",
             "Registered", "Last Active"],
            (
                [
                    voter.display_name,
                    voter.email,
                    voter.registration_id,
                    voter.get_role_display(),
                    "Yes" if voter.verified else "No",
                    voter.get_status_display(),
                    voter.date_joined.isoformat(),
                    voter.last_login.isoformat() if voter.last_login else "",
                ]
                for voter in queryset
            ),
        )
