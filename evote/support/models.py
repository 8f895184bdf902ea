from uuid import uuid4

from django.conf import settings
from django.db import models
from django.utils import timezone


class SupportMessage(models.Model):
    """
    One message in the shared support inbox.

    Voter messages carry the voter as sender; administrator replies carry the
    voter as receiver. Together they form that voter's conversation thread.
    """

    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="support_messages_sent",
    )
    sender_name = models.CharField(max_length=255)
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="support_messages_received",
    )
    message = models.TextField()
    is_from_admin = models.BooleanField(default=False)
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.sender_name}: {self.message[:40]}"
