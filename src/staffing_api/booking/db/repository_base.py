"""
Base Repository

Common plumbing for the booking repositories. Repositories are bound to one
connection, so that every statement of a booking command runs inside the
transaction the PostgresBookingStore opened on it.
"""

from typing import Any
from typing import Optional
from uuid import UUID

import asyncpg

from staffing_api.booking.db.pool import SCHEMA_NAME
from staffing_api.booking.models import RequestSnapshot

# Columns holding a seat's requirement snapshot (resource_requests and assignments)
SNAPSHOT_COLUMNS = ("profile_id", "seniority", "languages", "expertises", "calculated_price")


def snapshot_from_row(row: asyncpg.Record) -> RequestSnapshot:
    price = row["calculated_price"]
    return RequestSnapshot(
        profile_id=row["profile_id"],
        seniority=row["seniority"],
        languages=frozenset(row["languages"] or ()),
        expertises=frozenset(row["expertises"] or ()),
        calculated_price=float(price) if price is not None else None,
    )


def snapshot_to_values(snapshot: RequestSnapshot) -> tuple:
    """Values in SNAPSHOT_COLUMNS order."""
    return (
        snapshot.profile_id,
        snapshot.seniority.value if snapshot.seniority else None,
        sorted(snapshot.languages),
        sorted(snapshot.expertises),
        snapshot.calculated_price,
    )


class BaseRepository:
    """Repository bound to a single connection."""

    def __init__(self, conn: asyncpg.Connection, table_name: str, entity_id_column: str):
        """
        Args:
            conn: Connection of the running transaction
            table_name: Table name (without schema prefix)
            entity_id_column: Primary key column
        """
        self.conn = conn
        self.table = f"{SCHEMA_NAME}.{table_name}"
        self.entity_id_col = entity_id_column

    async def fetch_by_id(self, entity_id: Any, for_update: bool = False) -> Optional[asyncpg.Record]:
        lock = " FOR UPDATE" if for_update else ""
        return await self.conn.fetchrow(
            f"SELECT * FROM {self.table} WHERE {self.entity_id_col} = $1{lock}",
            entity_id,
        )

    async def delete_where(self, column: str, value: UUID) -> int:
        """Delete rows by column value. Returns the number of rows deleted."""
        status = await self.conn.execute(f"DELETE FROM {self.table} WHERE {column} = $1", value)
        # asyncpg returns the command tag, e.g. "DELETE 3"
        return int(status.split()[-1])
