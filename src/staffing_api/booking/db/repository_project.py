"""
Project Repository

Projects and their seats (resource requests).
"""

from typing import Optional
from uuid import UUID

import asyncpg

from staffing_api.booking.db.repository_base import SNAPSHOT_COLUMNS
from staffing_api.booking.db.repository_base import BaseRepository
from staffing_api.booking.db.repository_base import snapshot_from_row
from staffing_api.booking.db.repository_base import snapshot_to_values
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.exceptions import NotFound
from staffing_api.booking.models import Project
from staffing_api.booking.models import ResourceRequest


class ProjectRepository(BaseRepository):
    """Project repository."""

    def __init__(self, conn: asyncpg.Connection):
        super().__init__(conn, "projects", "project_id")

    async def get(self, project_id: UUID, for_update: bool = False) -> Optional[Project]:
        row = await self.fetch_by_id(project_id, for_update=for_update)
        return Project.model_validate(dict(row)) if row else None

    async def insert(self, project: Project) -> Project:
        row = await self.conn.fetchrow(
            f"""
            INSERT INTO {self.table} (project_id, title, owner_id, status, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            project.project_id,
            project.title,
            project.owner_id,
            project.status.value,
            project.created_at,
            project.updated_at,
        )
        return Project.model_validate(dict(row))

    async def set_status(self, project_id: UUID, status: ProjectStatus) -> Project:
        row = await self.conn.fetchrow(
            f"UPDATE {self.table} SET status = $2, updated_at = NOW() WHERE project_id = $1 RETURNING *",
            project_id,
            status.value,
        )
        if row is None:
            raise NotFound(f"Project {project_id} not found")
        return Project.model_validate(dict(row))


class ResourceRequestRepository(BaseRepository):
    """Seat repository."""

    def __init__(self, conn: asyncpg.Connection):
        super().__init__(conn, "resource_requests", "request_id")

    async def get(self, request_id: UUID) -> Optional[ResourceRequest]:
        row = await self.fetch_by_id(request_id)
        if row is None:
            return None
        return ResourceRequest(
            request_id=row["request_id"],
            project_id=row["project_id"],
            snapshot=snapshot_from_row(row),
            created_at=row["created_at"],
        )

    async def insert(self, request: ResourceRequest) -> ResourceRequest:
        await self.conn.execute(
            f"""
            INSERT INTO {self.table} (request_id, project_id, {', '.join(SNAPSHOT_COLUMNS)}, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            """,
            request.request_id,
            request.project_id,
            *snapshot_to_values(request.snapshot),
            request.created_at,
        )
        return request

    async def delete_by_project(self, project_id: UUID) -> int:
        return await self.delete_where("project_id", project_id)
