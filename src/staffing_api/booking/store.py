"""
Booking Persistence Interface

The booking core only talks to storage through these two classes. A
BookingStore hands out BookingSessions, each bound to one transaction: every
write done through a session commits or rolls back together.

The core concurrency primitive is conditional_update, a
compare-and-swap on (assignment_id, expected_status[, expected_candidate_id]).
Implementations must execute it as a single atomic write and must be strongly
consistent.

Every command that writes assignments first locks the owning project with
get_project(for_update=True), so transactions on one project always take the
project lock before any assignment row lock.
"""

from abc import ABC
from abc import abstractmethod
from datetime import datetime
from typing import Any
from typing import AsyncContextManager
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID

from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.enums import Seniority
from staffing_api.booking.models import Assignment
from staffing_api.booking.models import Candidate
from staffing_api.booking.models import HRExpertise
from staffing_api.booking.models import HRLanguage
from staffing_api.booking.models import HRProfile
from staffing_api.booking.models import Project
from staffing_api.booking.models import ResourceRequest


class BookingSession(ABC):
    """Data access bound to a single transaction."""

    # ── Projects ────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_project(self, project_id: UUID, for_update: bool = False) -> Optional[Project]:
        """
        Get a project.

        Args:
            project_id: Project identifier
            for_update: Lock the project row until the transaction ends, so that
                commands and readiness recomputations for one project are serialised
        """

    @abstractmethod
    async def insert_project(self, project: Project) -> Project:
        """Insert a new project."""

    @abstractmethod
    async def set_project_status(self, project_id: UUID, status: ProjectStatus) -> Project:
        """Write the project status."""

    @abstractmethod
    async def destroy_project_assignments(self, project_id: UUID) -> int:
        """Delete every assignment and seat of a project. Returns the number of assignments deleted."""

    # ── Seats ───────────────────────────────────────────────────────────────

    @abstractmethod
    async def insert_request(self, request: ResourceRequest) -> ResourceRequest:
        """Insert a new seat."""

    @abstractmethod
    async def get_request(self, request_id: UUID) -> Optional[ResourceRequest]:
        """Get a seat."""

    # ── Assignments ─────────────────────────────────────────────────────────

    @abstractmethod
    async def get_assignment(self, assignment_id: UUID) -> Optional[Assignment]:
        """Get an assignment."""

    @abstractmethod
    async def insert_assignment(self, assignment: Assignment) -> Assignment:
        """
        Insert a new assignment.

        Raises:
            AlreadyClaimed: The insert would give the seat a second claimed row
                or a second successor for the same previous assignment
        """

    @abstractmethod
    async def conditional_update(
        self,
        assignment_id: UUID,
        expected_status: BookingStatus,
        fields: Dict[str, Any],
        expected_candidate_id: Optional[UUID] = None,
    ) -> Optional[Assignment]:
        """
        Compare-and-swap an assignment.

        Writes fields only if the row still has expected_status (and
        expected_candidate_id, when given). Never writes partially.

        Returns:
            The updated assignment, or None if the precondition failed
        """

    @abstractmethod
    async def list_by_project(self, project_id: UUID) -> List[Assignment]:
        """All assignments of a project, oldest first."""

    @abstractmethod
    async def list_by_request(self, request_id: UUID) -> List[Assignment]:
        """All assignments of one seat (its lineage), oldest first."""

    @abstractmethod
    async def list_pending_offers(self, offered_before: datetime) -> List[Assignment]:
        """Assignments pending acceptance whose offer is older than offered_before."""

    # ── Candidate registry ──────────────────────────────────────────────────

    @abstractmethod
    async def query_candidates(self, profile_id: str, seniority: Seniority) -> List[Candidate]:
        """Available candidates with this profile and seniority."""

    @abstractmethod
    async def get_candidate(self, candidate_id: UUID) -> Optional[Candidate]:
        """Get a candidate regardless of availability."""

    @abstractmethod
    async def upsert_candidate(self, candidate: Candidate) -> Candidate:
        """Create or replace a candidate (used by the onboarding flow)."""

    # ── Catalog ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_profiles(self) -> List[HRProfile]:
        """All catalog profiles."""

    @abstractmethod
    async def list_languages(self) -> List[HRLanguage]:
        """All catalog languages."""

    @abstractmethod
    async def list_expertises(self) -> List[HRExpertise]:
        """All catalog expertises."""

    # ── Audit trail ─────────────────────────────────────────────────────────

    @abstractmethod
    async def write_audit(
        self,
        entity_type: str,
        entity_id: UUID,
        action: str,
        performed_by: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> None:
        """Append an audit trail entry in the current transaction."""


class BookingStore(ABC):
    """Factory for transactional sessions."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[BookingSession]:
        """
        Open a transaction.

        Usage:
            async with store.transaction() as session:
                assignment = await session.get_assignment(assignment_id)
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check the backing store is reachable."""

    async def close(self) -> None:
        """Release resources held by the store."""
