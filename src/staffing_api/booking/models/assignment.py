"""
Assignment Model

The mutable booking record of one attempt to fill a seat. Rows are never
deleted except by project deletion; a retired row keeps completed_at and
completion_reason for history.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import CompletionReason
from staffing_api.booking.models.project import RequestSnapshot


class Assignment(BaseModel):
    """Assignment database model."""

    assignment_id: UUID
    project_id: UUID
    request_id: UUID
    snapshot: RequestSnapshot
    status: BookingStatus = BookingStatus.DRAFT
    candidate_id: Optional[UUID] = None
    previous_assignment_id: Optional[UUID] = None
    offered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completion_reason: Optional[CompletionReason] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_live(self) -> bool:
        """Live rows count towards project readiness."""
        return not self.status.is_terminal
