"""
Booking Event and Command Result Models
"""

from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import Field

from staffing_api.booking.enums import ActorRole
from staffing_api.booking.enums import EventKind
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.models.assignment import Assignment


class Actor(BaseModel):
    """Verified identity of the caller, supplied by the authentication layer."""

    actor_id: str
    role: ActorRole = ActorRole.CLIENT

    class Config:
        frozen = True


SYSTEM_ACTOR = Actor(actor_id="system", role=ActorRole.SYSTEM)


class BookingEvent(BaseModel):
    """State change handed to the notification dispatcher after commit."""

    kind: EventKind
    project_id: UUID
    assignment_id: Optional[UUID] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TransitionResult(BaseModel):
    """Ok outcome of a booking command."""

    assignment: Assignment
    project_status: Optional[ProjectStatus] = None
    changed: bool = True  # False for idempotent no-ops (e.g. cancelling a terminal row)
    reopened: Optional[Assignment] = None  # New chain head when the seat was reopened
    eligible_candidates: List[UUID] = Field(default_factory=list)
    events: List[BookingEvent] = Field(default_factory=list)
