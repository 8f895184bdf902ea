import logging

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

from .registration import generate_registration_id

logger = logging.getLogger("accounts")


class User(AbstractUser):
    """
    Portal account. Voters and administrators share this model; the `role`
    field decides which area of the portal the account may use.
    """

    class Role(models.TextChoices):
        VOTER = "voter", "Voter"
        ADMIN = "admin", "Administrator"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        BLOCKED = "blocked", "Blocked"

    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.VOTER)
    verified = models.BooleanField(default=False)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.ACTIVE
    )
    registration_id = models.CharField(
        max_length=9, unique=True, null=True, blank=True
    )
    profile_image = models.ImageField(upload_to="profile_images/", blank=True, null=True)
    language = models.CharField(
        max_length=8, choices=settings.PORTAL_LANGUAGES, default="en"
    )

    def __str__(self):
        return self.username

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN or self.is_staff

    @property
    def is_blocked(self):
        return self.status == self.Status.BLOCKED

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    def save(self, *args, **kwargs):
        if not self.registration_id and self.role == self.Role.VOTER:
            self.registration_id = self._unused_registration_id()
            if kwargs.get("update_fields") is not None:
                kwargs["update_fields"] = [*kwargs["update_fields"], "registration_id"]
        if self.pk and User.objects.filter(pk=self.pk).exists():
            logger.info(f"Updating user -> {self.username}")
        else:
            logger.info(f"Saving user: {self.username}")
        super().save(*args, **kwargs)

    @classmethod
    def _unused_registration_id(cls):
        while True:
            candidate = generate_registration_id()
            if not cls.objects.filter(registration_id=candidate).exists():
                return candidate
