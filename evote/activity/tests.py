from datetime import datetime, timezone as dt_timezone
from unittest.mock import patch

from accounts.models import User
from django.db import OperationalError
from django.test import RequestFactory, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import ActivityLog
from .services import client_ip, record_activity


class RecordActivityTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="jsmith", password="pw-voter-123", name="John Smith", email="john@example.com"
        )

    def test_copies_user_details(self):
        request = RequestFactory().get("/", REMOTE_ADDR="10.0.0.5")

        entry = record_activity(
            ActivityLog.Action.PROFILE_UPDATE, user=self.user, details="Profile updated", request=request
        )

        self.assertEqual(entry.user_name, "John Smith")
        self.assertEqual(entry.user_email, "john@example.com")
        self.assertEqual(entry.ip_address, "10.0.0.5")

    def test_entry_survives_account_deletion(self):
        entry = record_activity(ActivityLog.Action.LOGIN_SUCCESS, user=self.user)
        self.user.delete()

        entry.refresh_from_db()
        self.assertIsNone(entry.user)
        self.assertEqual(entry.user_name, "John Smith")

    def test_store_error_is_not_raised(self):
        with patch.object(
            ActivityLog.objects, "create", side_effect=OperationalError("locked")
        ):
            entry = record_activity(ActivityLog.Action.LOGIN_SUCCESS, user=self.user)

        self.assertIsNone(entry)
        self.assertEqual(ActivityLog.objects.count(), 0)

    def test_client_ip_prefers_forwarded_header(self):
        request = RequestFactory().get(
            "/", HTTP_X_FORWARDED_FOR="203.0.113.7, 10.0.0.1", REMOTE_ADDR="10.0.0.1"
        )
        self.assertEqual(client_ip(request), "203.0.113.7")
        self.assertIsNone(client_ip(None))


class ActivityLogAPITest(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN, name="Admin User"
        )
        self.voter = User.objects.create_user(
            username="jsmith", password="pw-voter-123", name="John Smith"
        )
        self.old = ActivityLog.objects.create(
            user=self.voter,
            user_name="John Smith",
            action=ActivityLog.Action.LOGIN_SUCCESS,
            details="Logged in",
            timestamp=datetime(2025, 1, 1, 9, 0, tzinfo=dt_timezone.utc),
        )
        self.new = ActivityLog.objects.create(
            user=self.admin,
            user_name="Admin User",
            action=ActivityLog.Action.CREATE_ELECTION,
            details="Created election 'City Council Election'",
            timestamp=datetime(2025, 1, 3, 9, 0, tzinfo=dt_timezone.utc),
        )
        self.client.force_authenticate(self.admin)

    def test_logs_are_admin_only(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("activity:log-list"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_newest_first(self):
        resp = self.client.get(reverse("activity:log-list"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in resp.data], [self.new.id, self.old.id])
        self.assertEqual(resp.data[0]["action_label"], "Create Election")

    def test_filter_by_action_and_search(self):
        resp = self.client.get(reverse("activity:log-list"), {"action": "LOGIN_SUCCESS"})
        self.assertEqual([row["id"] for row in resp.data], [self.old.id])

        resp = self.client.get(reverse("activity:log-list"), {"search": "council"})
        self.assertEqual([row["id"] for row in resp.data], [self.new.id])

    def test_filter_by_date_range(self):
        resp = self.client.get(
            reverse("activity:log-list"),
            {"date_from": "2025-01-02T00:00:00Z", "date_to": "2025-01-04T00:00:00Z"},
        )
        self.assertEqual([row["id"] for row in resp.data], [self.new.id])

    def test_invalid_filter_rejected_by_list_and_export(self):
        params = {"date_from": "not-a-date"}

        resp = self.client.get(reverse("activity:log-list"), params)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.get(reverse("activity:log-export"), params)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("date_from", resp.data)

    def test_export_is_admin_only(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("activity:log-export"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_export_follows_filters(self):
        resp = self.client.get(reverse("activity:log-export"), {"action": "CREATE_ELECTION"})

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn('filename="activity_logs.csv"', resp["Content-Disposition"])
        lines = resp.content.decode().strip().splitlines()
        self.assertEqual(lines[0], "Timestamp,User,Email,Action,Details,IP Address")
        self.assertEqual(len(lines), 2)
        self.assertIn("Admin User", lines[1])
        self.assertIn("Create Election", lines[1])
