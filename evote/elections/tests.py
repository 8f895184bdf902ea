from datetime import datetime, timedelta, timezone as dt_timezone

from accounts.models import User
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from voting.models import Vote
from voting.services import VotingService

from .lifecycle import ElectionStatus, classify
from .models import Candidate, Election
from .serializers import ElectionSerializer


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class ClassifyTest(SimpleTestCase):
    start = utc(2025, 1, 1)
    end = utc(2025, 1, 10)

    def test_inside_window_is_active(self):
        self.assertEqual(classify(self.start, self.end, utc(2025, 1, 5)), ElectionStatus.ACTIVE)

    def test_after_end_is_completed(self):
        self.assertEqual(classify(self.start, self.end, utc(2025, 1, 11)), ElectionStatus.COMPLETED)

    def test_before_start_is_upcoming(self):
        self.assertEqual(classify(self.start, self.end, utc(2024, 12, 31)), ElectionStatus.UPCOMING)

    def test_bounds_count_as_active(self):
        self.assertEqual(classify(self.start, self.end, self.start), ElectionStatus.ACTIVE)
        self.assertEqual(classify(self.start, self.end, self.end), ElectionStatus.ACTIVE)

    def test_same_inputs_same_result(self):
        now = utc(2025, 1, 3, 12)
        self.assertEqual(
            classify(self.start, self.end, now), classify(self.start, self.end, now)
        )

    def test_every_instant_has_exactly_one_status(self):
        now = utc(2024, 12, 30)
        while now < utc(2025, 1, 12):
            result = classify(self.start, self.end, now)
            self.assertIn(result, list(ElectionStatus))
            if self.start <= now <= self.end:
                self.assertEqual(result, ElectionStatus.ACTIVE)
            now += timedelta(hours=7)


class ElectionModelTest(TestCase):
    def test_status_follows_clock(self):
        now = timezone.now()
        election = Election.objects.create(
            title="Library Board",
            start_time=now - timedelta(days=1),
            end_time=now + timedelta(days=1),
        )
        self.assertEqual(election.status, ElectionStatus.ACTIVE)
        self.assertEqual(election.status_at(now + timedelta(days=2)), ElectionStatus.COMPLETED)

    def test_end_now_completes_election(self):
        now = timezone.now()
        election = Election.objects.create(
            title="Library Board",
            start_time=now - timedelta(days=1),
            end_time=now + timedelta(days=5),
        )
        election.end_now(now)
        election.refresh_from_db()
        self.assertEqual(election.end_time, now)
        self.assertEqual(election.status_at(now + timedelta(seconds=1)), ElectionStatus.COMPLETED)

    def test_clean_rejects_inverted_window(self):
        now = timezone.now()
        election = Election(title="Backwards Board", start_time=now, end_time=now - timedelta(hours=1))
        with self.assertRaises(ValidationError) as ctx:
            election.full_clean()
        self.assertIn("end_time", ctx.exception.message_dict)

        election.end_time = now
        with self.assertRaises(ValidationError):
            election.full_clean()

        election.end_time = now + timedelta(hours=1)
        election.full_clean()

    def test_with_status_matches_classify(self):
        now = timezone.now()
        upcoming = Election.objects.create(
            title="Upcoming", start_time=now + timedelta(days=1), end_time=now + timedelta(days=2)
        )
        active = Election.objects.create(
            title="Active", start_time=now - timedelta(days=1), end_time=now + timedelta(days=1)
        )
        completed = Election.objects.create(
            title="Completed", start_time=now - timedelta(days=3), end_time=now - timedelta(days=2)
        )
        for election, expected in [
            (upcoming, ElectionStatus.UPCOMING),
            (active, ElectionStatus.ACTIVE),
            (completed, ElectionStatus.COMPLETED),
        ]:
            self.assertEqual(
                list(Election.objects.with_status(expected, now)), [election]
            )
            self.assertEqual(election.status_at(now), expected)


class ElectionSerializerTest(TestCase):
    # method that test the serializer with valid election data
    def test_valid_election_data(self):
        data = {
            "title": "Student Council Election",
            "start_time": timezone.now(),
            "end_time": timezone.now() + timedelta(days=1),
        }

        serializer = ElectionSerializer(data=data)

        self.assertTrue(serializer.is_valid(), serializer.errors)

    # method to test .save() work or not and confirm the DB interaction
    def test_serializer_creates_election_with_candidates(self):
        data = {
            "title": "Class Representative Election",
            "description": "Pick a class rep.",
            "start_time": timezone.now(),
            "end_time": timezone.now() + timedelta(days=2),
            "rules": ["One vote per student."],
            "candidates": [{"name": "Ada"}, {"name": "Grace", "party": "Compilers"}],
        }

        serializer = ElectionSerializer(data=data)
        serializer.is_valid(raise_exception=True)

        election = serializer.save()

        self.assertEqual(Election.objects.count(), 1)
        self.assertEqual(election.title, data["title"])
        self.assertEqual(election.candidates.count(), 2)
        self.assertEqual(election.total_votes, 0)

    # method  to test if title is not provided or too less
    def test_invalid_title_too_short(self):
        data = {
            "title": "Hi",
            "start_time": timezone.now(),
            "end_time": timezone.now() + timedelta(days=1),
        }

        serializer = ElectionSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn("title", serializer.errors)

    # method to test the datetime fields
    def test_end_time_before_start_time(self):
        data = {
            "title": "Invalid Election",
            "start_time": timezone.now(),
            "end_time": timezone.now() - timedelta(hours=1),
        }

        serializer = ElectionSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn("non_field_errors", serializer.errors)

    def test_missing_dates_rejected(self):
        serializer = ElectionSerializer(data={"title": "No Dates Election"})

        self.assertFalse(serializer.is_valid())
        self.assertIn("start_time", serializer.errors)
        self.assertIn("end_time", serializer.errors)

    def test_one_letter_candidate_rejected(self):
        data = {
            "title": "Tiny Names Election",
            "start_time": timezone.now(),
            "end_time": timezone.now() + timedelta(days=1),
            "candidates": [{"name": "X"}],
        }

        serializer = ElectionSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn("candidates", serializer.errors)

    def test_duplicate_candidate_names_rejected(self):
        data = {
            "title": "Twin Names Election",
            "start_time": timezone.now(),
            "end_time": timezone.now() + timedelta(days=1),
            "candidates": [{"name": "Ada"}, {"name": "ada"}],
        }

        serializer = ElectionSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn("candidates", serializer.errors)


class ElectionAPITest(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN
        )
        self.voter = User.objects.create_user(
            username="voter", password="pw-voter-123", name="Voter One"
        )
        now = timezone.now()
        self.active = Election.objects.create(
            title="City Council Election",
            start_time=now - timedelta(days=1),
            end_time=now + timedelta(days=1),
        )
        self.upcoming = Election.objects.create(
            title="Presidential Election",
            start_time=now + timedelta(days=3),
            end_time=now + timedelta(days=10),
        )
        self.completed = Election.objects.create(
            title="School Board Election",
            start_time=now - timedelta(days=10),
            end_time=now - timedelta(days=3),
        )
        self.list_url = reverse("elections:election-list")

    def test_list_requires_login(self):
        resp = self.client.get(self.list_url)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_voter_lists_elections_with_status(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(self.list_url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        statuses = {item["title"]: item["status"] for item in resp.data}
        self.assertEqual(statuses["City Council Election"], "active")
        self.assertEqual(statuses["Presidential Election"], "upcoming")
        self.assertEqual(statuses["School Board Election"], "completed")

    def test_filter_by_status(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(self.list_url, {"status": "upcoming"})
        self.assertEqual([item["id"] for item in resp.data], [str(self.upcoming.id)])

    def test_voter_cannot_create(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.post(
            self.list_url,
            {
                "title": "Sneaky Election",
                "start_time": timezone.now().isoformat(),
                "end_time": (timezone.now() + timedelta(days=1)).isoformat(),
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_election_and_activity_is_logged(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.post(
            self.list_url,
            {
                "title": "Park Committee Election",
                "description": "Choose the park committee.",
                "start_time": timezone.now().isoformat(),
                "end_time": (timezone.now() + timedelta(days=1)).isoformat(),
                "candidates": [{"name": "Robert Brown"}, {"name": "Lisa Wang"}],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        election = Election.objects.get(pk=resp.data["id"])
        self.assertEqual(election.created_by, self.admin)
        self.assertEqual(election.candidates.count(), 2)
        self.assertTrue(
            self.admin.activity_logs.filter(action="CREATE_ELECTION").exists()
        )

    def test_update_replaces_candidates(self):
        Candidate.objects.create(election=self.active, name="Old Candidate")
        self.client.force_authenticate(self.admin)
        url = reverse("elections:election-detail", args=[self.active.id])
        resp = self.client.patch(
            url,
            {"title": "City Council Election 2025", "candidates": [{"name": "New Candidate"}]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        names = [c["name"] for c in resp.data["candidates"]]
        self.assertEqual(names, ["New Candidate"])

    def test_end_now(self):
        self.client.force_authenticate(self.admin)
        url = reverse("elections:election-end", args=[self.active.id])
        resp = self.client.post(url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.active.refresh_from_db()
        self.assertLessEqual(self.active.end_time, timezone.now())
        self.assertEqual(self.active.status, ElectionStatus.COMPLETED)

    def test_end_completed_election_rejected(self):
        original_end = self.completed.end_time
        self.client.force_authenticate(self.admin)

        resp = self.client.post(reverse("elections:election-end", args=[self.completed.id]))

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["status"], "error")
        self.completed.refresh_from_db()
        self.assertEqual(self.completed.end_time, original_end)
        self.assertFalse(self.admin.activity_logs.filter(action="END_ELECTION").exists())

    def test_end_upcoming_election_rejected(self):
        original_start = self.upcoming.start_time
        original_end = self.upcoming.end_time
        self.client.force_authenticate(self.admin)

        resp = self.client.post(reverse("elections:election-end", args=[self.upcoming.id]))

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.upcoming.refresh_from_db()
        self.assertEqual(self.upcoming.start_time, original_start)
        self.assertEqual(self.upcoming.end_time, original_end)

    def test_update_with_empty_candidate_list_clears_candidates(self):
        candidate = Candidate.objects.create(election=self.active, name="Old Candidate")
        Vote.objects.create(voter=self.voter, election=self.active, candidate=candidate)
        Election.objects.filter(pk=self.active.pk).update(total_votes=1)
        self.client.force_authenticate(self.admin)

        resp = self.client.patch(
            reverse("elections:election-detail", args=[self.active.id]),
            {"candidates": []},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["candidates"], [])
        self.active.refresh_from_db()
        self.assertEqual(self.active.candidates.count(), 0)
        self.assertEqual(self.active.total_votes, 0)

    def test_update_without_candidates_keeps_them(self):
        Candidate.objects.create(election=self.active, name="Robert Brown")
        self.client.force_authenticate(self.admin)

        resp = self.client.patch(
            reverse("elections:election-detail", args=[self.active.id]),
            {"description": "Updated description"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual([c["name"] for c in resp.data["candidates"]], ["Robert Brown"])

    def test_delete_cascades_to_candidates_and_votes(self):
        candidate = Candidate.objects.create(election=self.active, name="Robert Brown")
        Vote.objects.create(voter=self.voter, election=self.active, candidate=candidate)
        self.client.force_authenticate(self.admin)
        resp = self.client.delete(reverse("elections:election-detail", args=[self.active.id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Candidate.objects.filter(pk=candidate.pk).exists())
        self.assertFalse(Vote.objects.filter(election_id=self.active.id).exists())

    def test_voter_status(self):
        candidate = Candidate.objects.create(election=self.active, name="Robert Brown")
        other = User.objects.create_user(username="other", password="pw-other-123")
        Vote.objects.create(voter=self.voter, election=self.active, candidate=candidate)
        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse("elections:election-voter-status", args=[self.active.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        flags = {row["id"]: row["has_voted"] for row in resp.data["voters"]}
        self.assertEqual(flags, {self.voter.id: True, other.id: False})
        self.assertEqual(resp.data["voted"], 1)

    def test_voter_status_is_admin_only(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("elections:election-voter-status", args=[self.active.id]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class CandidateAPITest(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN
        )
        now = timezone.now()
        self.election = Election.objects.create(
            title="City Council Election",
            start_time=now,
            end_time=now + timedelta(days=1),
        )
        self.url = reverse("elections:election-candidates", args=[self.election.id])
        self.client.force_authenticate(self.admin)

    def test_add_candidate(self):
        resp = self.client.post(self.url, {"name": "Lisa Wang", "party": "Green Future"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        self.assertEqual(self.election.candidates.get().name, "Lisa Wang")

    def test_duplicate_name_in_same_election_rejected(self):
        Candidate.objects.create(election=self.election, name="Lisa Wang")
        resp = self.client.post(self.url, {"name": "Lisa Wang"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_empty_name_rejected(self):
        resp = self.client.post(self.url, {"name": ""}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.election.candidates.count(), 0)

    def test_update_candidate(self):
        candidate = Candidate.objects.create(election=self.election, name="Lisa Wang")
        url = reverse("elections:candidate-detail", args=[self.election.id, candidate.id])

        resp = self.client.patch(url, {"party": "Green Future"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        candidate.refresh_from_db()
        self.assertEqual(candidate.party, "Green Future")

    def test_rename_to_existing_name_rejected(self):
        Candidate.objects.create(election=self.election, name="Lisa Wang")
        candidate = Candidate.objects.create(election=self.election, name="Robert Brown")
        url = reverse("elections:candidate-detail", args=[self.election.id, candidate.id])

        resp = self.client.patch(url, {"name": "lisa wang"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_candidate_recomputes_total_votes(self):
        kept = Candidate.objects.create(election=self.election, name="Lisa Wang")
        removed = Candidate.objects.create(election=self.election, name="Robert Brown")
        service = VotingService()
        for i, candidate in enumerate([kept, removed, removed]):
            voter = User.objects.create_user(username=f"voter_{i}", password="pw-voter-123")
            service.cast_vote(voter, self.election, candidate)

        resp = self.client.delete(
            reverse("elections:candidate-detail", args=[self.election.id, removed.id])
        )

        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.election.refresh_from_db()
        self.assertEqual(self.election.total_votes, 1)
        self.assertEqual(Vote.objects.filter(election=self.election).count(), 1)

    def test_results_drop_deleted_candidate(self):
        removed = Candidate.objects.create(election=self.election, name="Xavier Lopez")
        Candidate.objects.create(election=self.election, name="Yolanda Park")
        voter = User.objects.create_user(username="voter_x", password="pw-voter-123")
        VotingService().cast_vote(voter, self.election, removed)
        results_url = reverse("voting:election_results", args=[self.election.id])

        resp = self.client.get(results_url)
        self.assertEqual(resp.data["data"]["total_votes"], 1)

        self.client.delete(
            reverse("elections:candidate-detail", args=[self.election.id, removed.id])
        )

        resp = self.client.get(results_url)
        self.assertEqual(resp.data["data"]["total_votes"], 0)
        names = [row["candidate"]["name"] for row in resp.data["data"]["candidates"]]
        self.assertEqual(names, ["Yolanda Park"])

    def test_results_show_added_candidate(self):
        Candidate.objects.create(election=self.election, name="Yolanda Park")
        results_url = reverse("voting:election_results", args=[self.election.id])
        self.client.get(results_url)

        self.client.post(self.url, {"name": "Zoe Miller"}, format="json")

        resp = self.client.get(results_url)
        names = [row["candidate"]["name"] for row in resp.data["data"]["candidates"]]
        self.assertEqual(names, ["Yolanda Park", "Zoe Miller"])
