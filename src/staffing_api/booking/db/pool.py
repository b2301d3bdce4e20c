"""
Booking Domain Database Connection Pool

Manages the asyncpg connection pool for the booking domain database.
Creates the schema from schema.sql on first start.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update DomainDBPool.EXPECTED_TABLES with the new table names
3. For existing deployments, migrate manually or drop/recreate the schema:
   DROP SCHEMA staffing CASCADE;
   (then restart the app to auto-create)
"""

from pathlib import Path
from typing import Optional

import asyncpg
from loguru import logger

SCHEMA_NAME = "staffing"


class DomainDBPool:
    """Booking domain database connection pool manager."""

    # Update this set when schema.sql evolves
    EXPECTED_TABLES = {
        "hr_profiles",
        "hr_languages",
        "hr_expertises",
        "candidates",
        "projects",
        "resource_requests",
        "assignments",
        "notifications",
        "audit_trail",
    }

    def __init__(self, connection_string: str, min_size: int = 2, max_size: int = 10):
        """
        Initialize domain DB pool.

        Args:
            connection_string: PostgreSQL connection string for the booking database
            min_size: Minimum pool connections
            max_size: Maximum pool connections
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """Create the pool, validate it and run migrations."""
        if self._pool_initialized and self.pool is not None:
            logger.debug("Domain DB pool already initialized")
            return

        try:
            logger.info("Initializing booking domain database pool")

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
                timeout=15,
                max_cached_statement_lifetime=0,  # Disable prepared statement caching (safer for DDL)
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            logger.info("Domain DB pool validated")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Booking domain database initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize domain DB pool: {e}", exc_info=True)
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _existing_tables(self, conn) -> set:
        rows = await conn.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            ORDER BY table_name
            """,
            SCHEMA_NAME,
        )
        return {row["table_name"] for row in rows}

    async def _run_migrations(self) -> None:
        """
        Execute schema.sql unless the schema already holds every expected table.

        Raises:
            RuntimeError: The schema exists but does not match EXPECTED_TABLES
        """
        async with self.pool.acquire() as conn:
            existing_tables = await self._existing_tables(conn)

            if existing_tables == self.EXPECTED_TABLES:
                logger.info(f"Staffing schema and all {len(existing_tables)} expected tables exist")
                return

            if existing_tables:
                missing_tables = self.EXPECTED_TABLES - existing_tables
                extra_tables = existing_tables - self.EXPECTED_TABLES
                logger.error(
                    f"Schema mismatch detected. Missing: {missing_tables or 'None'}, Extra: {extra_tables or 'None'}. "
                    f"Please review schema.sql and DomainDBPool.EXPECTED_TABLES, "
                    f"or drop the schema and restart: DROP SCHEMA {SCHEMA_NAME} CASCADE;"
                )
                raise RuntimeError(
                    f"Schema mismatch: missing {missing_tables}, extra {extra_tables}. Manual migration required."
                )

            logger.info("Staffing schema not found - running migrations")

            schema_path = Path(__file__).parent / "schema.sql"
            if not schema_path.exists():
                raise FileNotFoundError(f"schema.sql not found at {schema_path}")

            await conn.execute(schema_path.read_text())

            created = await self._existing_tables(conn)
            if created != self.EXPECTED_TABLES:
                raise RuntimeError(
                    f"Migration incomplete: missing {self.EXPECTED_TABLES - created}, "
                    f"extra {created - self.EXPECTED_TABLES}"
                )

            logger.success(f"All {len(created)} booking tables created")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing booking domain database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                result = await conn.fetchrow("SELECT * FROM ...")
        """
        if not self.pool:
            raise RuntimeError("Domain DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        try:
            if not self.pool:
                return False

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"Domain DB health check failed: {e}")
            return False
