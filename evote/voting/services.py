import logging
import uuid
from typing import Any, Dict, Iterable, Optional

from activity.models import ActivityLog
from activity.services import record_activity
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, F
from elections.lifecycle import ElectionStatus
from elections.models import Candidate, Election

from .models import Vote

logger = logging.getLogger("voting")


class VotingServiceError(Exception):
    """Base Exception for voting service"""

    pass


class AuthenticationRequiredError(VotingServiceError):
    """Raised when an anonymous caller tries to vote"""

    pass


class DuplicateVoteError(VotingServiceError):
    """Raised when user tries to vote twice"""

    pass


class VotingPermissionError(VotingServiceError):
    """Raised when a blocked account tries to vote"""

    pass


class InactiveElectionError(VotingServiceError):
    """Raised when user try to vote in an election that is not running"""

    pass


class CandidateMismatchError(VotingServiceError):
    """Raised when the candidate does not stand in the election"""

    pass


class VoteFailedError(VotingServiceError):
    """Raised when the vote could not be written to the store"""

    pass


def find_vote(votes: Iterable, voter_id, election_id):
    """
    Return the vote in `votes` cast by `voter_id` in `election_id`, or None.
    `votes` is any iterable of objects with `voter_id` and `election_id`.
    """
    for vote in votes:
        if vote.voter_id == voter_id and vote.election_id == election_id:
            return vote
    return None


class VotingService:
    """
    Centralized service for all voting operations.

    At most one vote exists per (voter, election). The caller's snapshot of
    known votes is checked first; the unique constraint on Vote is the
    authoritative check when two attempts race past the snapshot.
    """

    def cast_vote(
        self,
        user,
        election: Election,
        candidate: Candidate,
        known_votes: Optional[Iterable] = None,
    ) -> Vote:
        """
        Cast a vote and bump the denormalized tallies.

        Args:
            user: The user casting the vote
            election: The election to vote in
            candidate: The candidate to vote for
            known_votes: The caller's last-synced votes. Loaded from the
                database when omitted.

        Returns:
            The new Vote. `election.total_votes` and `candidate.vote_count`
            are refreshed in place.

        Raises:
            AuthenticationRequiredError: If the caller is not logged in
            DuplicateVoteError: If user already voted
            VotingPermissionError: If the account is blocked
            InactiveElectionError: If election is not active
            CandidateMismatchError: If the candidate belongs elsewhere
            VoteFailedError: If the store rejected the write
        """
        # Using request IDs for Tracing logs
        request_id = str(uuid.uuid4())[:8]

        if user is None or not user.is_authenticated:
            logger.info(f"[{request_id}] Vote rejected: not logged in")
            raise AuthenticationRequiredError("You must be logged in to vote.")

        if known_votes is None:
            known_votes = self.get_user_votes(user)

        # Validation of vote
        self._validate_vote(user, election, candidate, known_votes)

        try:
            with transaction.atomic():
                vote = Vote.objects.create(
                    voter=user,
                    election=election,
                    candidate=candidate,
                )
                Candidate.objects.filter(pk=candidate.pk).update(
                    vote_count=F("vote_count") + 1
                )
                Election.objects.filter(pk=election.pk).update(
                    total_votes=F("total_votes") + 1
                )
        except IntegrityError:
            # another request recorded a vote after our snapshot was taken
            logger.info(f"[{request_id}] Duplicate vote rejected by the store for {user.username}")
            raise DuplicateVoteError("You have already voted in this election.")
        except DatabaseError as e:
            logger.error(f"[{request_id}] Vote write failed: {e}")
            raise VoteFailedError(f"Vote failed: {e}") from e

        candidate.refresh_from_db(fields=["vote_count"])
        election.refresh_from_db(fields=["total_votes"])

        # Clear the cached results
        self.invalidate_results(election.id)

        record_activity(
            ActivityLog.Action.VOTE_CAST,
            user=user,
            details=f'Voted in "{election.title}"',
        )

        logger.info(
            f"[{request_id}] Vote successfully cast.",
            extra={"vote_id": vote.id, "voter": user.username},
        )
        return vote

    def _validate_vote(self, user, election: Election, candidate: Candidate, known_votes) -> None:
        """Validate all voting requirements"""
        # Check duplicate vote against the caller's snapshot
        if find_vote(known_votes, user.pk, election.pk) is not None:
            logger.info(f"Duplicate vote rejected for {user.username} in {election.id}")
            raise DuplicateVoteError("You have already voted in this election.")

        if getattr(user, "is_blocked", False):
            logger.warning(f"Blocked account tried to vote: {user.username}")
            raise VotingPermissionError("Your account has been blocked from voting.")

        # Check election time window
        status = election.status
        if status == ElectionStatus.UPCOMING:
            raise InactiveElectionError("Election has not started yet")
        if status == ElectionStatus.COMPLETED:
            raise InactiveElectionError("Election has ended")

        if candidate.election_id != election.pk:
            raise CandidateMismatchError("Candidate does not belong to this election")

    def get_user_votes(self, user):
        """The voter's votes as currently stored."""
        return list(Vote.objects.filter(voter=user))

    def get_user_vote(self, user, election_id) -> Optional[Vote]:
        return (
            Vote.objects.select_related("candidate", "election")
            .filter(voter=user, election_id=election_id)
            .first()
        )

    def invalidate_results(self, election_id) -> None:
        """Clear cached election results"""
        cache_key = f"election_results:{election_id}"
        cache.delete(cache_key)
        logger.debug(f"Cache invalidated for election {election_id}")

    def get_election_results(
        self, election_id, use_cache: bool = True
    ) -> Dict[str, Any]:
        """
        Get election results with caching

        Counts come from the Vote rows, not from the denormalized tallies.

        Args:
            election_id: UUID of the election
            use_cache: whether to use cached results (default: True)

        Returns:
            Dictionary containing election results
        """
        cache_key = f"election_results:{election_id}"
        # Try cache first
        if use_cache:
            cached_results = cache.get(cache_key)
            if cached_results:
                logger.debug(f"Returning cached results for {election_id}")
                return cached_results

        election = Election.objects.get(pk=election_id)

        results = (
            Candidate.objects.filter(election=election)
            .annotate(num_votes=Count("votes"))
            .order_by("-num_votes", "name")
        )

        total_votes = sum(candidate.num_votes for candidate in results)

        formatted_results = {
            "election": {
                "id": str(election.id),
                "title": election.title,
                "status": election.status,
            },
            "total_votes": total_votes,
            "candidates": [
                {
                    "candidate": {
                        "id": str(candidate.id),
                        "name": candidate.name,
                        "party": candidate.party,
                    },
                    "vote_count": candidate.num_votes,
                    "percentage": round(
                        (candidate.num_votes / total_votes * 100) if total_votes > 0 else 0,
                        2,
                    ),
                }
                for candidate in results
            ],
        }

        cache.set(cache_key, formatted_results, timeout=settings.RESULTS_CACHE_TIMEOUT)

        return formatted_results


# Singleton instance
_voting_service: Optional[VotingService] = None


def get_voting_service() -> VotingService:
    """Get or create the voting service singleton"""
    global _voting_service
    if _voting_service is None:
        _voting_service = VotingService()
    return _voting_service
