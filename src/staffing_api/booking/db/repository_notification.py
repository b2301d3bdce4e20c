"""
Notification Repository

Outbox of booking events for the external delivery service (append-only table).
Written after the booking transaction committed, on its own pool connection.
"""

import json
from typing import Any
from typing import Dict
from typing import Optional
from uuid import UUID
from uuid import uuid4

import asyncpg

from staffing_api.booking.db.pool import SCHEMA_NAME
from staffing_api.booking.enums import NotificationStatus


class NotificationRepository:
    """Notification outbox repository."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create(
        self,
        notification_type: str,
        project_id: UUID,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> UUID:
        """Create a new notification (PENDING status)."""
        notification_id = uuid4()

        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                INSERT INTO {SCHEMA_NAME}.notifications
                    (notification_id, notification_type, project_id, related_entity_type,
                     related_entity_id, payload, status, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, NOW())
                """,
                notification_id,
                notification_type,
                project_id,
                related_entity_type,
                related_entity_id,
                json.dumps(payload or {}, default=str),
                NotificationStatus.PENDING.value,
            )

        return notification_id

