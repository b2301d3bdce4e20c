"""
Candidate and Catalog Repositories

Read access to the candidate registry and the HR catalog. The registry is
owned by the onboarding flow; upsert exists for seeding and admin tooling.
"""

from typing import List
from typing import Optional
from uuid import UUID

import asyncpg

from staffing_api.booking.db.pool import SCHEMA_NAME
from staffing_api.booking.db.repository_base import BaseRepository
from staffing_api.booking.enums import Availability
from staffing_api.booking.enums import Seniority
from staffing_api.booking.models import Candidate
from staffing_api.booking.models import HRExpertise
from staffing_api.booking.models import HRLanguage
from staffing_api.booking.models import HRProfile


def candidate_from_row(row: asyncpg.Record) -> Candidate:
    return Candidate(
        candidate_id=row["candidate_id"],
        profile_id=row["profile_id"],
        seniority=row["seniority"],
        languages=frozenset(row["languages"] or ()),
        expertises=frozenset(row["expertises"] or ()),
        availability=row["availability"],
        created_at=row["created_at"],
    )


class CandidateRepository(BaseRepository):
    """Candidate registry repository."""

    def __init__(self, conn: asyncpg.Connection):
        super().__init__(conn, "candidates", "candidate_id")

    async def query_available(self, profile_id: str, seniority: Seniority) -> List[Candidate]:
        """Available candidates with this profile and seniority, oldest registration first."""
        rows = await self.conn.fetch(
            f"""
            SELECT * FROM {self.table}
            WHERE profile_id = $1 AND seniority = $2 AND availability = $3
            ORDER BY created_at, candidate_id
            """,
            profile_id,
            seniority.value,
            Availability.AVAILABLE.value,
        )
        return [candidate_from_row(row) for row in rows]

    async def get(self, candidate_id: UUID) -> Optional[Candidate]:
        row = await self.fetch_by_id(candidate_id)
        return candidate_from_row(row) if row else None

    async def upsert(self, candidate: Candidate) -> Candidate:
        await self.conn.execute(
            f"""
            INSERT INTO {self.table}
                (candidate_id, profile_id, seniority, languages, expertises, availability, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (candidate_id) DO UPDATE SET
                profile_id = EXCLUDED.profile_id,
                seniority = EXCLUDED.seniority,
                languages = EXCLUDED.languages,
                expertises = EXCLUDED.expertises,
                availability = EXCLUDED.availability
            """,
            candidate.candidate_id,
            candidate.profile_id,
            candidate.seniority.value,
            sorted(candidate.languages),
            sorted(candidate.expertises),
            candidate.availability.value,
            candidate.created_at,
        )
        return candidate


class CatalogRepository:
    """Read-only HR catalog."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def list_profiles(self) -> List[HRProfile]:
        rows = await self.conn.fetch(f"SELECT * FROM {SCHEMA_NAME}.hr_profiles ORDER BY name")
        return [HRProfile.model_validate(dict(row)) for row in rows]

    async def list_languages(self) -> List[HRLanguage]:
        rows = await self.conn.fetch(f"SELECT * FROM {SCHEMA_NAME}.hr_languages ORDER BY name")
        return [HRLanguage.model_validate(dict(row)) for row in rows]

    async def list_expertises(self) -> List[HRExpertise]:
        rows = await self.conn.fetch(f"SELECT * FROM {SCHEMA_NAME}.hr_expertises ORDER BY name")
        return [HRExpertise.model_validate(dict(row)) for row in rows]
