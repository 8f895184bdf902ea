from django.conf import settings
from django.db import models
from django.utils import timezone


class ActivityLog(models.Model):
    """
    One auditable event: a vote, a login, an administrator action.
    The user's name and email are copied so the entry stays readable
    after the account changes.
    """

    class Action(models.TextChoices):
        VOTE_CAST = "VOTE_CAST", "Vote Cast"
        ACCOUNT_CREATED = "ACCOUNT_CREATED", "Account Created"
        VERIFY_VOTER = "VERIFY_VOTER", "Verify Voter"
        UNVERIFY_VOTER = "UNVERIFY_VOTER", "Unverify Voter"
        LOGIN_SUCCESS = "LOGIN_SUCCESS", "Login Success"
        LOGIN_FAILED = "LOGIN_FAILED", "Login Failed"
        CREATE_ELECTION = "CREATE_ELECTION", "Create Election"
        UPDATE_ELECTION = "UPDATE_ELECTION", "Update Election"
        DELETE_ELECTION = "DELETE_ELECTION", "Delete Election"
        END_ELECTION = "END_ELECTION", "End Election"
        BLOCK_VOTER = "BLOCK_VOTER", "Block Voter"
        UNBLOCK_VOTER = "UNBLOCK_VOTER", "Unblock Voter"
        CHANGE_ROLE = "CHANGE_ROLE", "Change Role"
        PROFILE_UPDATE = "PROFILE_UPDATE", "Profile Update"
        SYSTEM_SETTINGS = "SYSTEM_SETTINGS", "System Settings"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity_logs",
    )
    user_name = models.CharField(max_length=255, blank=True)
    user_email = models.EmailField(blank=True)
    action = models.CharField(max_length=32, choices=Action.choices)
    details = models.TextField(blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.action} at {self.timestamp}"
