"""
Candidate Model

Registry record for a candidate. Mutated by the onboarding flow (external),
read by the matcher.
"""

from datetime import datetime
from typing import FrozenSet
from uuid import UUID

from pydantic import BaseModel
from pydantic import Field

from staffing_api.booking.enums import Availability
from staffing_api.booking.enums import Seniority


class Candidate(BaseModel):
    """Candidate registry model."""

    candidate_id: UUID
    profile_id: str
    seniority: Seniority
    languages: FrozenSet[str] = Field(default_factory=frozenset)
    expertises: FrozenSet[str] = Field(default_factory=frozenset)
    availability: Availability = Availability.IN_QUALIFICATION
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True
