import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_name", models.CharField(blank=True, max_length=255)),
                ("user_email", models.EmailField(blank=True, max_length=254)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("VOTE_CAST", "Vote Cast"),
                            ("ACCOUNT_CREATED", "Account Created"),
                            ("VERIFY_VOTER", "Verify Voter"),
                            ("UNVERIFY_VOTER", "Unverify Voter"),
                            ("LOGIN_SUCCESS", "Login Success"),
                            ("LOGIN_FAILED", "Login Failed"),
                            ("CREATE_ELECTION", "Create Election"),
                            ("UPDATE_ELECTION", "Update Election"),
                            ("DELETE_ELECTION", "Delete Election"),
                            ("END_ELECTION", "End Election"),
                            ("BLOCK_VOTER", "Block Voter"),
                            ("UNBLOCK_VOTER", "Unblock Voter"),
                            ("CHANGE_ROLE", "Change Role"),
                            ("PROFILE_UPDATE", "Profile Update"),
                            ("SYSTEM_SETTINGS", "System Settings"),
                        ],
                        max_length=32,
                    ),
                ),
                ("details", models.TextField(blank=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
            },
        ),
    ]
