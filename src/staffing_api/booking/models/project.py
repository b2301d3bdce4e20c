"""
Project and Resource Request Models

A project owns its seats (resource requests); each seat owns a chain of
assignments.
"""

from datetime import datetime
from typing import FrozenSet
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import Field

from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.enums import Seniority


class Project(BaseModel):
    """Project database model."""

    project_id: UUID
    title: str = ""
    owner_id: Optional[str] = None
    status: ProjectStatus = ProjectStatus.FORMING_TEAM
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RequestSnapshot(BaseModel):
    """
    Requirements of one seat, copied onto every assignment at creation.

    Later catalog or seat edits never change an open search; a requirement
    change goes through the state machine and produces a new assignment.
    """

    profile_id: Optional[str] = None
    seniority: Optional[Seniority] = None
    languages: FrozenSet[str] = Field(default_factory=frozenset)
    expertises: FrozenSet[str] = Field(default_factory=frozenset)
    calculated_price: Optional[float] = None  # Opaque, carried through unchanged

    class Config:
        from_attributes = True
        frozen = True


class ResourceRequest(BaseModel):
    """A seat a project needs filled (quantity is always one)."""

    request_id: UUID
    project_id: UUID
    snapshot: RequestSnapshot
    created_at: datetime

    class Config:
        from_attributes = True
