from datetime import timedelta
from unittest.mock import patch

from accounts.models import User
from activity.models import ActivityLog
from django.db import OperationalError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from elections.models import Candidate, Election
from rest_framework import status
from rest_framework.test import APITestCase
from django.contrib.auth.models import AnonymousUser

from .models import Vote
from .services import (
    AuthenticationRequiredError,
    CandidateMismatchError,
    DuplicateVoteError,
    InactiveElectionError,
    VoteFailedError,
    VotingPermissionError,
    VotingService,
    find_vote,
)


class VotingServiceTest(TestCase):
    def setUp(self):
        self.service = VotingService()
        self.voter = User.objects.create_user(username="voter_a", password="pw-voter-123")
        now = timezone.now()
        self.election = Election.objects.create(
            title="City Council Election",
            start_time=now - timedelta(days=1),
            end_time=now + timedelta(days=1),
        )
        self.candidate_x = Candidate.objects.create(election=self.election, name="Robert Brown")
        self.candidate_y = Candidate.objects.create(election=self.election, name="Lisa Wang")

    def test_first_vote_updates_tallies(self):
        vote = self.service.cast_vote(self.voter, self.election, self.candidate_x)

        self.assertEqual(vote.voter, self.voter)
        self.assertEqual(self.candidate_x.vote_count, 1)
        self.assertEqual(self.election.total_votes, 1)
        self.assertEqual(Vote.objects.count(), 1)

    def test_second_vote_rejected_without_changes(self):
        self.service.cast_vote(self.voter, self.election, self.candidate_x)

        with self.assertRaises(DuplicateVoteError):
            self.service.cast_vote(self.voter, self.election, self.candidate_y)

        self.assertEqual(Vote.objects.count(), 1)
        self.candidate_x.refresh_from_db()
        self.candidate_y.refresh_from_db()
        self.election.refresh_from_db()
        self.assertEqual(self.candidate_x.vote_count, 1)
        self.assertEqual(self.candidate_y.vote_count, 0)
        self.assertEqual(self.election.total_votes, 1)

    def test_stale_snapshot_is_caught_by_unique_constraint(self):
        # a second tab whose snapshot predates the first vote
        stale_snapshot = []
        self.service.cast_vote(self.voter, self.election, self.candidate_x)

        with self.assertRaises(DuplicateVoteError):
            self.service.cast_vote(
                self.voter, self.election, self.candidate_y, known_votes=stale_snapshot
            )

        self.assertEqual(Vote.objects.count(), 1)
        self.election.refresh_from_db()
        self.assertEqual(self.election.total_votes, 1)

    def test_known_votes_short_circuit_before_write(self):
        prior = Vote(voter=self.voter, election=self.election, candidate=self.candidate_x)

        with self.assertRaises(DuplicateVoteError):
            self.service.cast_vote(
                self.voter, self.election, self.candidate_y, known_votes=[prior]
            )

        self.assertEqual(Vote.objects.count(), 0)

    def test_count_equals_number_of_distinct_voters(self):
        for i in range(5):
            voter = User.objects.create_user(username=f"voter_{i}", password="pw-voter-123")
            self.service.cast_vote(voter, self.election, self.candidate_y)

        self.candidate_y.refresh_from_db()
        self.assertEqual(self.candidate_y.vote_count, 5)
        self.assertEqual(self.election.total_votes, 5)

    def test_anonymous_rejected(self):
        with self.assertRaises(AuthenticationRequiredError):
            self.service.cast_vote(AnonymousUser(), self.election, self.candidate_x)
        with self.assertRaises(AuthenticationRequiredError):
            self.service.cast_vote(None, self.election, self.candidate_x)

    def test_blocked_voter_rejected(self):
        self.voter.status = User.Status.BLOCKED
        self.voter.save()

        with self.assertRaises(VotingPermissionError):
            self.service.cast_vote(self.voter, self.election, self.candidate_x)

    def test_upcoming_and_completed_elections_rejected(self):
        now = timezone.now()
        self.election.start_time = now + timedelta(days=1)
        self.election.end_time = now + timedelta(days=2)
        with self.assertRaises(InactiveElectionError):
            self.service.cast_vote(self.voter, self.election, self.candidate_x)

        self.election.start_time = now - timedelta(days=2)
        self.election.end_time = now - timedelta(days=1)
        with self.assertRaises(InactiveElectionError):
            self.service.cast_vote(self.voter, self.election, self.candidate_x)

    def test_candidate_from_other_election_rejected(self):
        other = Election.objects.create(
            title="Other Election",
            start_time=timezone.now() - timedelta(days=1),
            end_time=timezone.now() + timedelta(days=1),
        )
        outsider = Candidate.objects.create(election=other, name="Outsider")

        with self.assertRaises(CandidateMismatchError):
            self.service.cast_vote(self.voter, self.election, outsider)

    def test_store_failure_surfaces_as_vote_failed(self):
        with patch.object(Vote.objects, "create", side_effect=OperationalError("disk full")):
            with self.assertRaises(VoteFailedError) as ctx:
                self.service.cast_vote(self.voter, self.election, self.candidate_x)

        self.assertIn("disk full", str(ctx.exception))
        self.assertTrue(str(ctx.exception).startswith("Vote failed"))

    def test_vote_is_logged(self):
        self.service.cast_vote(self.voter, self.election, self.candidate_x)

        log = ActivityLog.objects.get(action=ActivityLog.Action.VOTE_CAST)
        self.assertEqual(log.user, self.voter)
        self.assertIn("City Council Election", log.details)

    def test_results_follow_votes(self):
        self.service.get_election_results(self.election.id)
        self.service.cast_vote(self.voter, self.election, self.candidate_x)

        results = self.service.get_election_results(self.election.id)

        self.assertEqual(results["total_votes"], 1)
        top = results["candidates"][0]
        self.assertEqual(top["candidate"]["name"], "Robert Brown")
        self.assertEqual(top["percentage"], 100.0)

    def test_find_vote(self):
        vote = Vote(voter=self.voter, election=self.election, candidate=self.candidate_x)
        self.assertIs(find_vote([vote], self.voter.pk, self.election.pk), vote)
        self.assertIsNone(find_vote([vote], self.voter.pk + 1, self.election.pk))
        self.assertIsNone(find_vote([], self.voter.pk, self.election.pk))


class VoteAPITest(APITestCase):
    def setUp(self):
        self.voter = User.objects.create_user(username="voter_a", password="pw-voter-123")
        self.admin = User.objects.create_user(
            username="admin", password="pw-admin-123", role=User.Role.ADMIN
        )
        now = timezone.now()
        self.election = Election.objects.create(
            title="City Council Election",
            start_time=now - timedelta(days=1),
            end_time=now + timedelta(days=1),
        )
        self.candidate = Candidate.objects.create(election=self.election, name="Robert Brown")
        self.url = reverse("voting:cast_vote", args=[self.election.id])

    def test_cast_vote_then_duplicate(self):
        self.client.force_authenticate(self.voter)

        resp = self.client.post(self.url, {"candidate_id": str(self.candidate.id)}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        self.assertEqual(resp.data["data"]["candidate_votes"], 1)
        self.assertEqual(resp.data["data"]["total_votes"], 1)

        resp = self.client.post(self.url, {"candidate_id": str(self.candidate.id)}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["message"], "You have already voted in this election.")
        self.assertEqual(Vote.objects.count(), 1)

    def test_anonymous_cannot_vote(self):
        resp = self.client.post(self.url, {"candidate_id": str(self.candidate.id)}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_inactive_election_forbidden(self):
        self.election.end_time = timezone.now() - timedelta(minutes=1)
        self.election.save()
        self.client.force_authenticate(self.voter)

        resp = self.client.post(self.url, {"candidate_id": str(self.candidate.id)}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_my_vote_and_history(self):
        self.client.force_authenticate(self.voter)
        resp = self.client.get(reverse("voting:my_vote", args=[self.election.id]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        self.client.post(self.url, {"candidate_id": str(self.candidate.id)}, format="json")

        resp = self.client.get(reverse("voting:my_vote", args=[self.election.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["vote"]["candidate"]["name"], "Robert Brown")

        resp = self.client.get(reverse("voting:voting_history"))
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["election_title"], "City Council Election")

    def test_vote_list_is_admin_only(self):
        self.client.force_authenticate(self.voter)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["votes"], [])

    def test_results(self):
        self.client.force_authenticate(self.voter)
        self.client.post(self.url, {"candidate_id": str(self.candidate.id)}, format="json")

        resp = self.client.get(reverse("voting:election_results", args=[self.election.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["total_votes"], 1)
