from uuid import uuid4

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinLengthValidator
from django.db import models
from django.utils import timezone

from .lifecycle import ElectionStatus, classify, status_q


class ElectionQuerySet(models.QuerySet):
    def with_status(self, status, now=None):
        return self.filter(status_q(status, now or timezone.now()))


class Election(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    title = models.CharField(max_length=255, validators=[MinLengthValidator(3)])
    description = models.TextField(blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    rules = models.JSONField(default=list, blank=True)
    # Denormalized tally, kept in step with Vote rows by the voting service.
    total_votes = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="elections_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ElectionQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def clean(self):
        super().clean()
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError(
                {"end_time": "The election's end time must be after its start time."}
            )

    @property
    def status(self):
        return self.status_at(timezone.now())

    def status_at(self, now):
        return classify(self.start_time, self.end_time, now)

    @property
    def is_active(self):
        return self.status == ElectionStatus.ACTIVE

    def end_now(self, now=None):
        """
        Close a running election by moving its end to `now`.
        """
        now = now or timezone.now()
        self.end_time = now
        self.save(update_fields=["end_time", "updated_at"])


class Candidate(models.Model):
    """
    Candidate model - represents a candidate in an election.
    """
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name='candidates')
    name = models.CharField(max_length=255)
    party = models.CharField(max_length=255, blank=True, default="")
    bio = models.TextField(blank=True, default="")
    photo = models.ImageField(upload_to='candidate_pictures/', blank=True, null=True)
    vote_count = models.PositiveIntegerField(default=0)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        if self.party:
            return f"{self.name} - {self.party}"
        return self.name
