"""
Requirement Change Models

Input and impact analysis for changing the requirements of a seat.
"""

from typing import FrozenSet
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import Field

from staffing_api.booking.enums import Seniority
from staffing_api.booking.models.project import RequestSnapshot


class RequirementChanges(BaseModel):
    """Fields to change on a seat; None means unchanged."""

    profile_id: Optional[str] = None
    seniority: Optional[Seniority] = None
    languages: Optional[FrozenSet[str]] = None
    expertises: Optional[FrozenSet[str]] = None
    calculated_price: Optional[float] = None

    def apply_to(self, snapshot: RequestSnapshot) -> RequestSnapshot:
        """Return a new snapshot with these changes applied."""
        return RequestSnapshot(
            profile_id=self.profile_id if self.profile_id is not None else snapshot.profile_id,
            seniority=self.seniority if self.seniority is not None else snapshot.seniority,
            languages=self.languages if self.languages is not None else snapshot.languages,
            expertises=self.expertises if self.expertises is not None else snapshot.expertises,
            calculated_price=(
                self.calculated_price if self.calculated_price is not None else snapshot.calculated_price
            ),
        )


class ChangeImpact(BaseModel):
    """What applying a requirement change would do to the current booking."""

    has_change: bool
    requires_rebooking: bool = False
    change_type: Optional[str] = None  # profile_change, seniority_change, skill_update
    current_candidate_id: Optional[UUID] = None
    missing_languages: FrozenSet[str] = Field(default_factory=frozenset)
    missing_expertises: FrozenSet[str] = Field(default_factory=frozenset)
    message: str = ""
