"""
Matcher

Maps a seat's requirements to the ordered list of qualifying candidates.
Eligibility is a hard boolean filter, no partial matching or scoring:

    availability == available
    AND profile_id == seat.profile_id
    AND seniority == seat.seniority
    AND seat.languages  ⊆ candidate.languages
    AND seat.expertises ⊆ candidate.expertises

Results are ordered by candidate registration time (first registered, first
offered), ties broken by id, so repeated searches return the same list.
"""

from typing import Iterable
from typing import List
from typing import Optional
from typing import Set
from uuid import UUID

from loguru import logger

from staffing_api.booking.enums import Availability
from staffing_api.booking.exceptions import InvalidRequest
from staffing_api.booking.models import Candidate
from staffing_api.booking.models import RequestSnapshot
from staffing_api.booking.store import BookingSession


def validate_snapshot(snapshot: RequestSnapshot) -> None:
    """Raise InvalidRequest unless the seat names exactly one profile and one seniority."""
    if not snapshot.profile_id:
        raise InvalidRequest("Seat requirements must specify a profile")
    if snapshot.seniority is None:
        raise InvalidRequest("Seat requirements must specify a seniority")


def is_eligible(candidate: Candidate, snapshot: RequestSnapshot) -> bool:
    """Check one candidate against a seat's requirements."""
    return (
        candidate.availability == Availability.AVAILABLE
        and candidate.profile_id == snapshot.profile_id
        and candidate.seniority == snapshot.seniority
        and snapshot.languages <= candidate.languages
        and snapshot.expertises <= candidate.expertises
    )


def find_eligible_candidates(
    snapshot: RequestSnapshot,
    candidates: Iterable[Candidate],
    exclude: Optional[Set[UUID]] = None,
) -> List[UUID]:
    """
    Filter and order candidates for a seat.

    Args:
        snapshot: Seat requirements
        candidates: Registry snapshot to search
        exclude: Candidate ids never to return (e.g. who declined this seat before)

    Returns:
        Eligible candidate ids, oldest registration first. Empty when nobody matches.

    Raises:
        InvalidRequest: Profile or seniority unset
    """
    validate_snapshot(snapshot)
    exclude = exclude or set()

    eligible = [c for c in candidates if c.candidate_id not in exclude and is_eligible(c, snapshot)]
    eligible.sort(key=lambda c: (c.created_at, str(c.candidate_id)))
    return [c.candidate_id for c in eligible]


def missing_requirements(candidate: Candidate, snapshot: RequestSnapshot) -> dict:
    """Languages and expertises the seat requires that the candidate lacks."""
    return {
        "languages": frozenset(snapshot.languages - candidate.languages),
        "expertises": frozenset(snapshot.expertises - candidate.expertises),
    }


class Matcher:
    """Runs find_eligible_candidates against the candidate registry."""

    async def find_eligible(
        self,
        session: BookingSession,
        snapshot: RequestSnapshot,
        exclude: Optional[Set[UUID]] = None,
    ) -> List[UUID]:
        """
        Find eligible candidates for a seat.

        Args:
            session: Open booking session (registry reads join the command's transaction)
            snapshot: Seat requirements
            exclude: Candidate ids never to return

        Returns:
            Ordered list of eligible candidate ids
        """
        validate_snapshot(snapshot)
        candidates = await session.query_candidates(snapshot.profile_id, snapshot.seniority)
        eligible = find_eligible_candidates(snapshot, candidates, exclude)

        logger.debug(
            "Matcher evaluated candidates",
            profile_id=snapshot.profile_id,
            seniority=snapshot.seniority.value,
            languages=sorted(snapshot.languages),
            expertises=sorted(snapshot.expertises),
            queried=len(candidates),
            eligible=len(eligible),
        )
        return eligible
