from datetime import datetime, timedelta, timezone as dt_timezone
from types import SimpleNamespace

from accounts.models import User
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import SupportMessage
from .services import (
    InvalidMessageError,
    NoAdministratorError,
    NotLoggedInError,
    SupportPermissionError,
    SupportService,
)
from .threads import (
    annotate_for_viewer,
    build_threads,
    conversation_key,
    thread_display_name,
    total_unread,
)

BASE = datetime(2025, 1, 1, tzinfo=dt_timezone.utc)


def msg(sender_id, receiver_id=None, is_from_admin=False, read=False, minutes=0, text="hi"):
    return SimpleNamespace(
        sender_id=sender_id,
        receiver_id=receiver_id,
        is_from_admin=is_from_admin,
        read=read,
        created_at=BASE + timedelta(minutes=minutes),
        message=text,
    )


class ThreadReconstructionTest(SimpleTestCase):
    def test_voter_message_keyed_by_sender(self):
        self.assertEqual(conversation_key(msg("v1", "a1")), "v1")

    def test_admin_message_keyed_by_receiver(self):
        self.assertEqual(conversation_key(msg("a1", "v1", is_from_admin=True)), "v1")

    def test_admin_message_without_receiver_has_no_key(self):
        self.assertIsNone(conversation_key(msg("a1", None, is_from_admin=True)))

    def test_single_thread_with_admin_reply_last(self):
        question = msg("v1", "a1", read=False, minutes=0, text="help")
        reply = msg("a1", "v1", is_from_admin=True, read=True, minutes=5, text="sure")

        threads = build_threads([reply, question], {"v1": "Voter One"})

        self.assertEqual(len(threads), 1)
        thread = threads[0]
        self.assertEqual(thread.user_id, "v1")
        self.assertEqual(thread.user_name, "Voter One")
        self.assertEqual(thread.unread_count, 1)
        self.assertIs(thread.last_message, reply)
        self.assertEqual(thread.last_message_text, "sure")
        self.assertEqual(thread.messages, [question, reply])

    def test_threads_partition_messages_by_key(self):
        messages = [
            msg("v1", "a1", minutes=1),
            msg("v2", "a1", minutes=2),
            msg("a1", "v1", is_from_admin=True, minutes=3),
            msg("a2", "v3", is_from_admin=True, minutes=4),
            msg("v2", "a1", minutes=5),
        ]

        threads = build_threads(messages)

        self.assertEqual({t.user_id for t in threads}, {"v1", "v2", "v3"})
        grouped = [m for t in threads for m in t.messages]
        self.assertEqual(len(grouped), len(messages))
        self.assertEqual({id(m) for m in grouped}, {id(m) for m in messages})

    def test_threads_sorted_most_recent_first(self):
        messages = [
            msg("v1", "a1", minutes=10),
            msg("v2", "a1", minutes=20),
            msg("v3", "a1", minutes=5),
        ]

        threads = build_threads(messages)

        self.assertEqual([t.user_id for t in threads], ["v2", "v1", "v3"])

    def test_unkeyed_messages_are_dropped(self):
        messages = [msg("v1", "a1"), msg("a1", None, is_from_admin=True, minutes=1)]

        threads = build_threads(messages)

        self.assertEqual(len(threads), 1)
        self.assertEqual(len(threads[0].messages), 1)

    def test_admin_messages_never_count_as_unread(self):
        messages = [
            msg("v1", "a1", read=False),
            msg("v1", "a1", read=True, minutes=1),
            msg("a1", "v1", is_from_admin=True, read=False, minutes=2),
        ]

        threads = build_threads(messages)

        self.assertEqual(threads[0].unread_count, 1)
        self.assertEqual(total_unread(threads), 1)

    def test_unknown_profile_name(self):
        threads = build_threads([msg("v9", "a1")])
        self.assertEqual(threads[0].user_name, "Unknown User")

    def test_display_name_with_registration_id(self):
        self.assertEqual(thread_display_name("Jane", "07KQRT512"), "Jane (07KQRT512)")
        self.assertEqual(thread_display_name("Jane", None), "Jane")
        self.assertEqual(thread_display_name(None), "Unknown User")

    def test_viewer_indicators(self):
        mine = msg("v1", "a1", read=True, minutes=0)
        theirs = msg("a1", "v1", is_from_admin=True, read=False, minutes=1)

        annotated = annotate_for_viewer([theirs, mine], "v1")

        self.assertEqual([a.message for a in annotated], [mine, theirs])
        self.assertTrue(annotated[0].is_own)
        self.assertTrue(annotated[0].delivered)
        self.assertTrue(annotated[0].seen)
        self.assertFalse(annotated[1].is_own)
        self.assertFalse(annotated[1].seen)


class SupportServiceTest(TestCase):
    def setUp(self):
        self.service = SupportService()
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN, name="Admin User"
        )
        self.voter = User.objects.create_user(
            username="voter", password="pw-voter-123", name="John Smith"
        )

    def test_voter_message_goes_to_default_admin(self):
        message = self.service.send_message(self.voter, "I cannot vote", receiver_id=999)

        self.assertEqual(message.receiver, self.admin)
        self.assertFalse(message.is_from_admin)
        self.assertFalse(message.read)
        self.assertEqual(message.sender_name, "John Smith")

    def test_configured_default_admin(self):
        second = User.objects.create_user(
            username="admin2", password="pw-admin-123", role=User.Role.ADMIN
        )
        with override_settings(SUPPORT_DEFAULT_ADMIN_ID=second.pk):
            message = self.service.send_message(self.voter, "Hello")

        self.assertEqual(message.receiver, second)

    def test_no_admin_available(self):
        self.admin.delete()
        with self.assertRaises(NoAdministratorError):
            self.service.send_message(self.voter, "Anyone there?")

    def test_admin_reply_needs_receiver(self):
        with self.assertRaises(InvalidMessageError):
            self.service.send_message(self.admin, "Hello")

    def test_empty_message_rejected(self):
        with self.assertRaises(InvalidMessageError):
            self.service.send_message(self.voter, "   ")

    def test_anonymous_rejected(self):
        with self.assertRaises(NotLoggedInError):
            self.service.send_message(None, "Hello")

    def test_voter_cannot_list_threads(self):
        with self.assertRaises(SupportPermissionError):
            self.service.admin_threads(self.voter)

    def test_thread_name_and_unread_count(self):
        self.service.send_message(self.voter, "Question one")
        self.service.send_message(self.admin, "Answer", receiver_id=self.voter.pk)

        threads = self.service.admin_threads(self.admin)

        self.assertEqual(len(threads), 1)
        self.assertEqual(threads[0].user_id, self.voter.pk)
        self.assertEqual(
            threads[0].user_name, f"John Smith ({self.voter.registration_id})"
        )
        self.assertEqual(threads[0].unread_count, 1)
        self.assertEqual(threads[0].last_message_text, "Answer")

    def test_mark_thread_as_read_is_idempotent(self):
        self.service.send_message(self.voter, "One")
        self.service.send_message(self.voter, "Two")

        self.assertEqual(self.service.mark_thread_as_read(self.admin, self.voter.pk), 2)
        self.assertEqual(self.service.admin_threads(self.admin)[0].unread_count, 0)
        self.assertEqual(self.service.mark_thread_as_read(self.admin, self.voter.pk), 0)
        self.assertEqual(self.service.admin_threads(self.admin)[0].unread_count, 0)

        self.service.send_message(self.voter, "Three")
        self.assertEqual(self.service.admin_threads(self.admin)[0].unread_count, 1)

    def test_mark_messages_as_read_for_voter(self):
        self.service.send_message(self.admin, "Ping", receiver_id=self.voter.pk)
        self.assertEqual(self.service.unread_count(self.voter), 1)

        self.assertEqual(self.service.mark_messages_as_read(self.voter), 1)
        self.assertEqual(self.service.unread_count(self.voter), 0)
        self.assertEqual(self.service.mark_messages_as_read(self.voter), 0)

    def test_admin_message_without_receiver_is_not_threaded(self):
        SupportMessage.objects.create(
            sender=self.admin, sender_name="Admin User", message="Broadcast", is_from_admin=True
        )
        self.service.send_message(self.voter, "Question")

        threads = self.service.admin_threads(self.admin)

        self.assertEqual(len(threads), 1)
        self.assertEqual([m.message for m in threads[0].messages], ["Question"])


class SupportAPITest(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN
        )
        self.voter = User.objects.create_user(
            username="voter", password="pw-voter-123", name="John Smith"
        )

    def test_voter_conversation_flow(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.post(
            reverse("support:messages"), {"message": "Help me vote"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)

        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse("support:thread-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["unread_count"], 1)
        self.assertEqual(resp.data["data"]["threads"][0]["user_id"], self.voter.pk)

        resp = self.client.post(
            reverse("support:thread-detail", args=[self.voter.pk]),
            {"message": "Sure, which election?"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

        resp = self.client.post(reverse("support:thread-read", args=[self.voter.pk]))
        self.assertEqual(resp.data["data"]["updated"], 1)

        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("support:messages"))
        messages = resp.data["data"]["messages"]
        self.assertEqual([m["message"] for m in messages], ["Help me vote", "Sure, which election?"])
        self.assertTrue(messages[0]["is_own"])
        self.assertTrue(messages[0]["seen"])
        self.assertFalse(messages[1]["is_own"])
        self.assertEqual(resp.data["data"]["unread_count"], 1)

        resp = self.client.post(reverse("support:messages-read"))
        self.assertEqual(resp.data["data"]["updated"], 1)

    def test_unread_count_for_each_side(self):
        url = reverse("support:unread-count")

        self.client.force_authenticate(self.voter)
        self.client.post(reverse("support:messages"), {"message": "First"}, format="json")
        self.client.post(reverse("support:messages"), {"message": "Second"}, format="json")
        resp = self.client.get(url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["unread_count"], 0)

        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(url).data["data"]["unread_count"], 2)
        self.client.post(
            reverse("support:thread-detail", args=[self.voter.pk]),
            {"message": "Reply"},
            format="json",
        )
        self.client.post(reverse("support:thread-read", args=[self.voter.pk]))
        self.assertEqual(self.client.get(url).data["data"]["unread_count"], 0)

        self.client.force_authenticate(self.voter)
        self.assertEqual(self.client.get(url).data["data"]["unread_count"], 1)

    def test_unread_count_requires_login(self):
        resp = self.client.get(reverse("support:unread-count"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_threads_are_admin_only(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("support:thread-list"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_thread_detail_not_found(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse("support:thread-detail", args=[self.voter.pk]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
