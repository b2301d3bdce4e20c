"""
In-Memory Booking Store

Process-local implementation of the persistence interface, used by the test
suite and when the service runs without a domain database.

Transactions are serialised with one asyncio lock and rolled back from an undo
log, so a failed command leaves no partial writes. The uniqueness rules the
Postgres schema enforces with indexes (one claimed row per seat, one successor
per assignment) are checked here explicitly.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from uuid import UUID

from loguru import logger

from staffing_api.booking.enums import Availability
from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.enums import Seniority
from staffing_api.booking.exceptions import AlreadyClaimed
from staffing_api.booking.exceptions import NotFound
from staffing_api.booking.models import Assignment
from staffing_api.booking.models import Candidate
from staffing_api.booking.models import HRExpertise
from staffing_api.booking.models import HRLanguage
from staffing_api.booking.models import HRProfile
from staffing_api.booking.models import Project
from staffing_api.booking.models import ResourceRequest
from staffing_api.booking.store import BookingSession
from staffing_api.booking.store import BookingStore

_MISSING = object()


class InMemoryBookingSession(BookingSession):
    """Session over the dictionaries of an InMemoryBookingStore."""

    def __init__(self, store: "InMemoryBookingStore"):
        self.store = store
        self._undo: List[Tuple[Dict, Any, Any]] = []
        self._audit_len = len(store.audit_trail)

    def _put(self, table: Dict, key: Any, value: Any) -> None:
        self._undo.append((table, key, table.get(key, _MISSING)))
        table[key] = value

    def _pop(self, table: Dict, key: Any) -> None:
        if key in table:
            self._undo.append((table, key, table[key]))
            del table[key]

    def rollback(self) -> None:
        """Undo every write made through this session, newest first."""
        for table, key, previous in reversed(self._undo):
            if previous is _MISSING:
                table.pop(key, None)
            else:
                table[key] = previous
        del self.store.audit_trail[self._audit_len :]
        self._undo.clear()

    # ── Projects ────────────────────────────────────────────────────────────

    async def get_project(self, project_id: UUID, for_update: bool = False) -> Optional[Project]:
        project = self.store.projects.get(project_id)
        return project.model_copy() if project else None

    async def insert_project(self, project: Project) -> Project:
        self._put(self.store.projects, project.project_id, project.model_copy())
        return project

    async def set_project_status(self, project_id: UUID, status: ProjectStatus) -> Project:
        current = self.store.projects.get(project_id)
        if current is None:
            raise NotFound(f"Project {project_id} not found")
        updated = current.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        self._put(self.store.projects, project_id, updated)
        return updated.model_copy()

    async def destroy_project_assignments(self, project_id: UUID) -> int:
        assignment_ids = [a.assignment_id for a in self.store.assignments.values() if a.project_id == project_id]
        for assignment_id in assignment_ids:
            self._pop(self.store.assignments, assignment_id)
        request_ids = [r.request_id for r in self.store.requests.values() if r.project_id == project_id]
        for request_id in request_ids:
            self._pop(self.store.requests, request_id)
        return len(assignment_ids)

    # ── Seats ───────────────────────────────────────────────────────────────

    async def insert_request(self, request: ResourceRequest) -> ResourceRequest:
        self._put(self.store.requests, request.request_id, request.model_copy())
        return request

    async def get_request(self, request_id: UUID) -> Optional[ResourceRequest]:
        request = self.store.requests.get(request_id)
        return request.model_copy() if request else None

    # ── Assignments ─────────────────────────────────────────────────────────

    def _check_unique(self, candidate_row: Assignment) -> None:
        for row in self.store.assignments.values():
            if row.assignment_id == candidate_row.assignment_id:
                continue
            if (
                candidate_row.status.is_claimed
                and row.request_id == candidate_row.request_id
                and row.status.is_claimed
            ):
                raise AlreadyClaimed(
                    f"Seat {candidate_row.request_id} already has claimed assignment {row.assignment_id}",
                    assignment_id=candidate_row.assignment_id,
                )
            if (
                candidate_row.previous_assignment_id is not None
                and row.previous_assignment_id == candidate_row.previous_assignment_id
            ):
                raise AlreadyClaimed(
                    f"Assignment {candidate_row.previous_assignment_id} was already reopened",
                    assignment_id=candidate_row.assignment_id,
                )

    async def get_assignment(self, assignment_id: UUID) -> Optional[Assignment]:
        assignment = self.store.assignments.get(assignment_id)
        return assignment.model_copy() if assignment else None

    async def insert_assignment(self, assignment: Assignment) -> Assignment:
        self._check_unique(assignment)
        self._put(self.store.assignments, assignment.assignment_id, assignment.model_copy())
        return assignment.model_copy()

    async def conditional_update(
        self,
        assignment_id: UUID,
        expected_status: BookingStatus,
        fields: Dict[str, Any],
        expected_candidate_id: Optional[UUID] = None,
    ) -> Optional[Assignment]:
        current = self.store.assignments.get(assignment_id)
        if current is None or current.status != expected_status:
            return None
        if expected_candidate_id is not None and current.candidate_id != expected_candidate_id:
            return None

        updated = current.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
        self._check_unique(updated)
        self._put(self.store.assignments, assignment_id, updated)
        return updated.model_copy()

    async def list_by_project(self, project_id: UUID) -> List[Assignment]:
        rows = [a for a in self.store.assignments.values() if a.project_id == project_id]
        return [a.model_copy() for a in sorted(rows, key=lambda a: a.created_at)]

    async def list_by_request(self, request_id: UUID) -> List[Assignment]:
        rows = [a for a in self.store.assignments.values() if a.request_id == request_id]
        return [a.model_copy() for a in sorted(rows, key=lambda a: a.created_at)]

    async def list_pending_offers(self, offered_before: datetime) -> List[Assignment]:
        rows = [
            a
            for a in self.store.assignments.values()
            if a.status == BookingStatus.PENDING_ACCEPTANCE and a.offered_at is not None and a.offered_at < offered_before
        ]
        return [a.model_copy() for a in sorted(rows, key=lambda a: a.offered_at)]

    # ── Candidate registry ──────────────────────────────────────────────────

    async def query_candidates(self, profile_id: str, seniority: Seniority) -> List[Candidate]:
        return [
            c.model_copy()
            for c in self.store.candidates.values()
            if c.profile_id == profile_id and c.seniority == seniority and c.availability == Availability.AVAILABLE
        ]

    async def get_candidate(self, candidate_id: UUID) -> Optional[Candidate]:
        candidate = self.store.candidates.get(candidate_id)
        return candidate.model_copy() if candidate else None

    async def upsert_candidate(self, candidate: Candidate) -> Candidate:
        self._put(self.store.candidates, candidate.candidate_id, candidate.model_copy())
        return candidate.model_copy()

    # ── Catalog ─────────────────────────────────────────────────────────────

    async def list_profiles(self) -> List[HRProfile]:
        return sorted(self.store.profiles.values(), key=lambda p: p.name)

    async def list_languages(self) -> List[HRLanguage]:
        return sorted(self.store.languages.values(), key=lambda lang: lang.name)

    async def list_expertises(self) -> List[HRExpertise]:
        return sorted(self.store.expertises.values(), key=lambda e: e.name)

    # ── Audit trail ─────────────────────────────────────────────────────────

    async def write_audit(
        self,
        entity_type: str,
        entity_id: UUID,
        action: str,
        performed_by: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> None:
        self.store.audit_trail.append(
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "performed_by": performed_by,
                "old_values": old_values,
                "new_values": new_values,
                "created_at": datetime.now(timezone.utc),
            }
        )


class InMemoryBookingStore(BookingStore):
    """Booking store kept in process memory."""

    session_class = InMemoryBookingSession

    def __init__(self):
        self.projects: Dict[UUID, Project] = {}
        self.requests: Dict[UUID, ResourceRequest] = {}
        self.assignments: Dict[UUID, Assignment] = {}
        self.candidates: Dict[UUID, Candidate] = {}
        self.profiles: Dict[str, HRProfile] = {}
        self.languages: Dict[str, HRLanguage] = {}
        self.expertises: Dict[str, HRExpertise] = {}
        self.audit_trail: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryBookingSession]:
        async with self._lock:
            session = self.session_class(self)
            try:
                yield session
            except BaseException:
                logger.debug("Rolling back in-memory transaction", writes=len(session._undo))
                session.rollback()
                raise

    async def health_check(self) -> bool:
        return True

    def load_catalog(
        self,
        profiles: List[HRProfile],
        languages: Optional[List[HRLanguage]] = None,
        expertises: Optional[List[HRExpertise]] = None,
    ) -> None:
        """Seed catalog reference data."""
        self.profiles.update({p.profile_id: p for p in profiles})
        self.languages.update({lang.language_id: lang for lang in languages or []})
        self.expertises.update({e.expertise_id: e for e in expertises or []})
