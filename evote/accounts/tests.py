from activity.models import ActivityLog
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from .models import User
from .registration import (
    format_registration_id,
    generate_registration_id,
    validate_registration_id,
)


class RegistrationIdTest(SimpleTestCase):
    def test_generated_ids_are_well_formed(self):
        for _ in range(50):
            self.assertTrue(validate_registration_id(generate_registration_id()))

    def test_validation(self):
        self.assertTrue(validate_registration_id("07KQRT512"))
        self.assertFalse(validate_registration_id("7KQRT512"))
        self.assertFalse(validate_registration_id("07kqrt512"))
        self.assertFalse(validate_registration_id(""))
        self.assertFalse(validate_registration_id(None))

    def test_display_format(self):
        self.assertEqual(format_registration_id("07KQRT512"), "07 KQRT 512")
        self.assertEqual(format_registration_id("ABC"), "ABC")


class UserModelTest(TestCase):
    def test_voter_gets_registration_id(self):
        user = User.objects.create_user(username="jsmith", password="pw-voter-123")

        self.assertTrue(validate_registration_id(user.registration_id))
        self.assertEqual(user.role, User.Role.VOTER)
        self.assertFalse(user.is_admin)

    def test_admin_has_no_registration_id(self):
        admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN
        )

        self.assertIsNone(admin.registration_id)
        self.assertTrue(admin.is_admin)

    def test_staff_counts_as_admin(self):
        staff = User.objects.create_user(
            username="staff", password="pw-admin-123", is_staff=True
        )
        self.assertTrue(staff.is_admin)

    def test_display_name_fallback(self):
        user = User(username="jsmith")
        self.assertEqual(user.display_name, "jsmith")
        user.name = "John Smith"
        self.assertEqual(user.display_name, "John Smith")


class AuthAPITest(APITestCase):
    def test_register_creates_voter(self):
        resp = self.client.post(
            reverse("accounts:register"),
            {
                "username": "newvoter",
                "password": "Str0ng-Passw0rd!",
                "email": "new@example.com",
                "name": "New Voter",
                "role": "admin",
            },
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        user = User.objects.get(username="newvoter")
        self.assertEqual(user.role, User.Role.VOTER)
        self.assertTrue(validate_registration_id(resp.data["registration_id"]))
        self.assertTrue(
            ActivityLog.objects.filter(
                action=ActivityLog.Action.ACCOUNT_CREATED, user=user
            ).exists()
        )

    def test_register_rejects_duplicate_email(self):
        User.objects.create_user(
            username="first", password="pw-voter-123", email="taken@example.com"
        )

        resp = self.client.post(
            reverse("accounts:register"),
            {"username": "second", "password": "Str0ng-Passw0rd!", "email": "TAKEN@example.com"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", resp.data)

    def test_login_returns_token_and_profile(self):
        user = User.objects.create_user(
            username="jsmith", password="Str0ng-Passw0rd!", name="John Smith"
        )

        resp = self.client.post(
            reverse("accounts:api_token_auth"),
            {"username": "jsmith", "password": "Str0ng-Passw0rd!"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["token"], Token.objects.get(user=user).key)
        self.assertEqual(resp.data["user"]["name"], "John Smith")
        user.refresh_from_db()
        self.assertIsNotNone(user.last_login)
        self.assertTrue(
            ActivityLog.objects.filter(action=ActivityLog.Action.LOGIN_SUCCESS).exists()
        )

    def test_failed_login_is_logged(self):
        User.objects.create_user(username="jsmith", password="Str0ng-Passw0rd!")

        resp = self.client.post(
            reverse("accounts:api_token_auth"),
            {"username": "jsmith", "password": "wrong"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        log = ActivityLog.objects.get(action=ActivityLog.Action.LOGIN_FAILED)
        self.assertIsNone(log.user)
        self.assertIn("jsmith", log.details)

    def test_profile_update(self):
        user = User.objects.create_user(username="jsmith", password="pw-voter-123")
        self.client.force_authenticate(user)

        resp = self.client.patch(
            reverse("accounts:profile"), {"name": "John Smith", "language": "fr"}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        user.refresh_from_db()
        self.assertEqual(user.name, "John Smith")
        self.assertEqual(user.language, "fr")
        self.assertEqual(
            resp.data["registration_id_display"],
            format_registration_id(user.registration_id),
        )

    def test_profile_role_is_read_only(self):
        user = User.objects.create_user(username="jsmith", password="pw-voter-123")
        self.client.force_authenticate(user)

        self.client.patch(reverse("accounts:profile"), {"role": "admin"}, format="json")

        user.refresh_from_db()
        self.assertEqual(user.role, User.Role.VOTER)


class VoterManagementAPITest(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN, name="Admin User"
        )
        self.voter = User.objects.create_user(
            username="jsmith", password="pw-voter-123", name="John Smith", email="john@example.com"
        )
        self.other = User.objects.create_user(
            username="mgarcia", password="pw-voter-123", name="Maria Garcia", verified=True
        )
        self.client.force_authenticate(self.admin)

    def test_voters_are_admin_only(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("accounts:voter-list"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_search_and_filter(self):
        resp = self.client.get(reverse("accounts:voter-list"), {"search": "garcia"})
        self.assertEqual([row["username"] for row in resp.data], ["mgarcia"])

        resp = self.client.get(
            reverse("accounts:voter-list"), {"role": "voter", "verified": "false"}
        )
        self.assertEqual([row["username"] for row in resp.data], ["jsmith"])

    def test_block_and_unblock(self):
        resp = self.client.post(reverse("accounts:voter-block", args=[self.voter.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.voter.refresh_from_db()
        self.assertTrue(self.voter.is_blocked)

        self.client.post(reverse("accounts:voter-unblock", args=[self.voter.pk]))
        self.voter.refresh_from_db()
        self.assertFalse(self.voter.is_blocked)

        actions = set(ActivityLog.objects.values_list("action", flat=True))
        self.assertIn(ActivityLog.Action.BLOCK_VOTER, actions)
        self.assertIn(ActivityLog.Action.UNBLOCK_VOTER, actions)

    def test_admin_cannot_block_self(self):
        resp = self.client.post(reverse("accounts:voter-block", args=[self.admin.pk]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.admin.refresh_from_db()
        self.assertFalse(self.admin.is_blocked)

    def test_verify(self):
        resp = self.client.post(reverse("accounts:voter-verify", args=[self.voter.pk]))
        self.assertTrue(resp.data["verified"])

        resp = self.client.post(reverse("accounts:voter-unverify", args=[self.voter.pk]))
        self.assertFalse(resp.data["verified"])

    def test_unverify(self):
        resp = self.client.post(reverse("accounts:voter-unverify", args=[self.other.pk]))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.other.refresh_from_db()
        self.assertFalse(self.other.verified)
        log = ActivityLog.objects.get(action=ActivityLog.Action.UNVERIFY_VOTER)
        self.assertEqual(log.user, self.admin)
        self.assertIn("Maria Garcia", log.details)

    def test_unverify_is_admin_only(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.post(reverse("accounts:voter-unverify", args=[self.other.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.other.refresh_from_db()
        self.assertTrue(self.other.verified)

    def test_change_role(self):
        resp = self.client.post(
            reverse("accounts:voter-role", args=[self.voter.pk]), {"role": "admin"}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.voter.refresh_from_db()
        self.assertTrue(self.voter.is_admin)
        log = ActivityLog.objects.get(action=ActivityLog.Action.CHANGE_ROLE)
        self.assertEqual(log.user, self.admin)
        self.assertIn("Administrator", log.details)

    def test_invalid_role_rejected(self):
        resp = self.client.post(
            reverse("accounts:voter-role", args=[self.voter.pk]), {"role": "root"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_export_csv(self):
        resp = self.client.get(reverse("accounts:voter-export"), {"search": "john"})

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp["Content-Type"], "text/csv")
        self.assertIn('filename="voters.csv"', resp["Content-Disposition"])
        lines = resp.content.decode().strip().splitlines()
        self.assertTrue(lines[0].startswith("Name,Email,Registration ID"))
        self.assertEqual(len(lines), 2)
        self.assertIn("john@example.com", lines[1])
        self.assertIn(self.voter.registration_id, lines[1])
