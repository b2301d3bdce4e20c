"""
Assignment Repository

Assignment rows with the compare-and-swap update the state machine relies on.
"""

from datetime import datetime
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID

import asyncpg

from staffing_api.booking.db.repository_base import SNAPSHOT_COLUMNS
from staffing_api.booking.db.repository_base import BaseRepository
from staffing_api.booking.db.repository_base import snapshot_from_row
from staffing_api.booking.db.repository_base import snapshot_to_values
from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.exceptions import AlreadyClaimed
from staffing_api.booking.models import Assignment

# Fields conditional_update may write
_UPDATABLE = {"status", "candidate_id", "offered_at", "completed_at", "completion_reason"}


def assignment_from_row(row: asyncpg.Record) -> Assignment:
    return Assignment(
        assignment_id=row["assignment_id"],
        project_id=row["project_id"],
        request_id=row["request_id"],
        snapshot=snapshot_from_row(row),
        status=row["status"],
        candidate_id=row["candidate_id"],
        previous_assignment_id=row["previous_assignment_id"],
        offered_at=row["offered_at"],
        completed_at=row["completed_at"],
        completion_reason=row["completion_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _db_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


class AssignmentRepository(BaseRepository):
    """Assignment repository."""

    def __init__(self, conn: asyncpg.Connection):
        super().__init__(conn, "assignments", "assignment_id")

    async def get(self, assignment_id: UUID) -> Optional[Assignment]:
        row = await self.fetch_by_id(assignment_id)
        return assignment_from_row(row) if row else None

    async def insert(self, assignment: Assignment) -> Assignment:
        """
        Insert an assignment.

        Raises:
            AlreadyClaimed: Violates the one-claimed-row-per-seat or the
                one-successor-per-assignment unique index
        """
        columns = (
            "assignment_id",
            "project_id",
            "request_id",
            *SNAPSHOT_COLUMNS,
            "status",
            "candidate_id",
            "previous_assignment_id",
            "offered_at",
            "created_at",
            "updated_at",
        )
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        try:
            row = await self.conn.fetchrow(
                f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
                assignment.assignment_id,
                assignment.project_id,
                assignment.request_id,
                *snapshot_to_values(assignment.snapshot),
                assignment.status.value,
                assignment.candidate_id,
                assignment.previous_assignment_id,
                assignment.offered_at,
                assignment.created_at,
                assignment.updated_at,
            )
        except asyncpg.exceptions.UniqueViolationError as e:
            raise AlreadyClaimed(
                f"Seat {assignment.request_id} already has a claimed or newer assignment ({e.constraint_name})",
                assignment_id=assignment.assignment_id,
            ) from e
        return assignment_from_row(row)

    async def conditional_update(
        self,
        assignment_id: UUID,
        expected_status: BookingStatus,
        fields: Dict[str, Any],
        expected_candidate_id: Optional[UUID] = None,
    ) -> Optional[Assignment]:
        """
        Single-statement compare-and-swap.

        UPDATE ... WHERE assignment_id = $1 AND status = $2 [AND candidate_id = $3]
        RETURNING *; no row returned means the precondition failed.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update assignment columns: {sorted(unknown)}")

        params: List[Any] = [assignment_id, expected_status.value]
        where = "assignment_id = $1 AND status = $2"
        if expected_candidate_id is not None:
            params.append(expected_candidate_id)
            where += f" AND candidate_id = ${len(params)}"

        assignments = []
        for column, value in fields.items():
            params.append(_db_value(value))
            assignments.append(f"{column} = ${len(params)}")
        assignments.append("updated_at = NOW()")

        try:
            row = await self.conn.fetchrow(
                f"UPDATE {self.table} SET {', '.join(assignments)} WHERE {where} RETURNING *",
                *params,
            )
        except asyncpg.exceptions.UniqueViolationError as e:
            raise AlreadyClaimed(
                f"Assignment {assignment_id} conflicts with another claimed assignment ({e.constraint_name})",
                assignment_id=assignment_id,
            ) from e
        return assignment_from_row(row) if row else None

    async def list_by_project(self, project_id: UUID) -> List[Assignment]:
        rows = await self.conn.fetch(
            f"SELECT * FROM {self.table} WHERE project_id = $1 ORDER BY created_at, assignment_id",
            project_id,
        )
        return [assignment_from_row(row) for row in rows]

    async def list_by_request(self, request_id: UUID) -> List[Assignment]:
        rows = await self.conn.fetch(
            f"SELECT * FROM {self.table} WHERE request_id = $1 ORDER BY created_at, assignment_id",
            request_id,
        )
        return [assignment_from_row(row) for row in rows]

    async def list_pending_offers(self, offered_before: datetime) -> List[Assignment]:
        rows = await self.conn.fetch(
            f"""
            SELECT * FROM {self.table}
            WHERE status = 'pending_acceptance' AND offered_at < $1
            ORDER BY offered_at
            """,
            offered_before,
        )
        return [assignment_from_row(row) for row in rows]

    async def delete_by_project(self, project_id: UUID) -> int:
        return await self.delete_where("project_id", project_id)
