"""
PostgreSQL Booking Store

BookingStore backed by the booking domain database. One session = one pooled
connection with an open transaction; conditional_update is a single
UPDATE ... WHERE status = $2 RETURNING statement, and the partial unique
indexes of schema.sql back the seat exclusivity rules.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID

import asyncpg
from loguru import logger

from staffing_api.booking.db.pool import DomainDBPool
from staffing_api.booking.db.repository_assignment import AssignmentRepository
from staffing_api.booking.db.repository_audit import AuditTrailRepository
from staffing_api.booking.db.repository_candidate import CandidateRepository
from staffing_api.booking.db.repository_candidate import CatalogRepository
from staffing_api.booking.db.repository_project import ProjectRepository
from staffing_api.booking.db.repository_project import ResourceRequestRepository
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
from staffing_api.booking.store import BookingSession
from staffing_api.booking.store import BookingStore


class PostgresBookingSession(BookingSession):
    """Booking session over one connection in an open transaction."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn
        self.projects = ProjectRepository(conn)
        self.requests = ResourceRequestRepository(conn)
        self.assignments = AssignmentRepository(conn)
        self.candidates = CandidateRepository(conn)
        self.catalog = CatalogRepository(conn)
        self.audit_trail = AuditTrailRepository(conn)

    async def get_project(self, project_id: UUID, for_update: bool = False) -> Optional[Project]:
        return await self.projects.get(project_id, for_update=for_update)

    async def insert_project(self, project: Project) -> Project:
        return await self.projects.insert(project)

    async def set_project_status(self, project_id: UUID, status: ProjectStatus) -> Project:
        return await self.projects.set_status(project_id, status)

    async def destroy_project_assignments(self, project_id: UUID) -> int:
        deleted = await self.assignments.delete_by_project(project_id)
        await self.requests.delete_by_project(project_id)
        return deleted

    async def insert_request(self, request: ResourceRequest) -> ResourceRequest:
        return await self.requests.insert(request)

    async def get_request(self, request_id: UUID) -> Optional[ResourceRequest]:
        return await self.requests.get(request_id)

    async def get_assignment(self, assignment_id: UUID) -> Optional[Assignment]:
        return await self.assignments.get(assignment_id)

    async def insert_assignment(self, assignment: Assignment) -> Assignment:
        return await self.assignments.insert(assignment)

    async def conditional_update(
        self,
        assignment_id: UUID,
        expected_status: BookingStatus,
        fields: Dict[str, Any],
        expected_candidate_id: Optional[UUID] = None,
    ) -> Optional[Assignment]:
        return await self.assignments.conditional_update(
            assignment_id, expected_status, fields, expected_candidate_id
        )

    async def list_by_project(self, project_id: UUID) -> List[Assignment]:
        return await self.assignments.list_by_project(project_id)

    async def list_by_request(self, request_id: UUID) -> List[Assignment]:
        return await self.assignments.list_by_request(request_id)

    async def list_pending_offers(self, offered_before: datetime) -> List[Assignment]:
        return await self.assignments.list_pending_offers(offered_before)

    async def query_candidates(self, profile_id: str, seniority: Seniority) -> List[Candidate]:
        return await self.candidates.query_available(profile_id, seniority)

    async def get_candidate(self, candidate_id: UUID) -> Optional[Candidate]:
        return await self.candidates.get(candidate_id)

    async def upsert_candidate(self, candidate: Candidate) -> Candidate:
        return await self.candidates.upsert(candidate)

    async def list_profiles(self) -> List[HRProfile]:
        return await self.catalog.list_profiles()

    async def list_languages(self) -> List[HRLanguage]:
        return await self.catalog.list_languages()

    async def list_expertises(self) -> List[HRExpertise]:
        return await self.catalog.list_expertises()

    async def write_audit(
        self,
        entity_type: str,
        entity_id: UUID,
        action: str,
        performed_by: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> None:
        await self.audit_trail.create(entity_type, entity_id, action, performed_by, old_values, new_values)


class PostgresBookingStore(BookingStore):
    """Booking store on the domain database pool."""

    def __init__(self, db_pool: DomainDBPool):
        self.db_pool = db_pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresBookingSession]:
        async with self.db_pool.acquire() as conn:
            # READ COMMITTED is enough: every write is a compare-and-swap or is
            # guarded by a unique index, and the project row is locked FOR UPDATE
            async with conn.transaction():
                yield PostgresBookingSession(conn)

    async def health_check(self) -> bool:
        return await self.db_pool.health_check()

    async def close(self) -> None:
        logger.info("Closing PostgreSQL booking store")
        await self.db_pool.close()
