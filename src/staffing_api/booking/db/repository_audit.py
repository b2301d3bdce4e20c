"""
Audit Trail Repository

Repository for audit trail operations (append-only table).
"""

import json
from typing import Any
from typing import Dict
from typing import Optional
from uuid import UUID
from uuid import uuid4

import asyncpg

from staffing_api.booking.db.pool import SCHEMA_NAME


class AuditTrailRepository:
    """Audit trail repository (append-only), bound to the command's connection."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def create(
        self,
        entity_type: str,
        entity_id: UUID,
        action: str,
        performed_by: str,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> UUID:
        """Create an audit trail entry."""
        audit_id = uuid4()

        await self.conn.execute(
            f"""
            INSERT INTO {SCHEMA_NAME}.audit_trail
                (audit_id, entity_type, entity_id, action, performed_by, old_values, new_values, timestamp)
            VALUES ($1, $2, $3, $4, $5, $6, $7, NOW())
            """,
            audit_id,
            entity_type,
            entity_id,
            action,
            performed_by,
            json.dumps(old_values, default=str) if old_values else None,
            json.dumps(new_values, default=str) if new_values else None,
        )

        return audit_id
