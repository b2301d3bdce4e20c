"""
Booking API Schemas

Request bodies (snake_case) and response models (PascalCase fields per existing
pattern) for the project, seat and assignment endpoints.
"""

from datetime import datetime
from typing import List
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from staffing_api.booking.enums import CompletionReason
from staffing_api.booking.enums import Seniority
from staffing_api.booking.models import Assignment
from staffing_api.booking.models import ChangeImpact
from staffing_api.booking.models import Project
from staffing_api.booking.models import RequestSnapshot
from staffing_api.booking.models import RequirementChanges
from staffing_api.booking.models import TransitionResult

# ════════════════════════════════════════════════════════════════════════════
# Request Bodies
# ════════════════════════════════════════════════════════════════════════════


class CreateProjectRequest(BaseModel):
    """Request model for creating a project."""

    title: str = Field(min_length=1, max_length=200)

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Data platform migration"}})


class AddSeatRequest(BaseModel):
    """Request model for adding a seat (one resource request) to a project."""

    profile_id: str
    seniority: Seniority
    languages: List[str] = Field(default_factory=list)
    expertises: List[str] = Field(default_factory=list)
    calculated_price: Optional[float] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "profile_id": "backend-developer",
                "seniority": "senior",
                "languages": ["fr"],
                "expertises": ["python", "postgresql"],
                "calculated_price": 650.0,
            }
        }
    )

    @field_validator("profile_id")
    @classmethod
    def validate_profile_id(cls, v):
        """Validate that profile_id is not blank."""
        if not v.strip():
            raise ValueError("profile_id must not be empty")
        return v.strip()

    def to_snapshot(self) -> RequestSnapshot:
        return RequestSnapshot(
            profile_id=self.profile_id,
            seniority=self.seniority,
            languages=frozenset(self.languages),
            expertises=frozenset(self.expertises),
            calculated_price=self.calculated_price,
        )


class OfferRequest(BaseModel):
    """Request model for offering a searching assignment to a candidate."""

    candidate_id: UUID


class AcceptRequest(BaseModel):
    """Request model for accepting an offer."""

    candidate_id: UUID


class ReasonRequest(BaseModel):
    """Request model for decline, cancel and complete."""

    reason: CompletionReason = CompletionReason.OTHER
    candidate_id: Optional[UUID] = None  # Decline only: restrict to this candidate's offer


class ChangeRequirementsRequest(BaseModel):
    """Request model for changing a seat's requirements; omitted fields stay unchanged."""

    profile_id: Optional[str] = None
    seniority: Optional[Seniority] = None
    languages: Optional[List[str]] = None
    expertises: Optional[List[str]] = None
    calculated_price: Optional[float] = None

    model_config = ConfigDict(json_schema_extra={"example": {"languages": ["fr", "en"]}})

    def to_changes(self) -> RequirementChanges:
        return RequirementChanges(
            profile_id=self.profile_id,
            seniority=self.seniority,
            languages=frozenset(self.languages) if self.languages is not None else None,
            expertises=frozenset(self.expertises) if self.expertises is not None else None,
            calculated_price=self.calculated_price,
        )


# ════════════════════════════════════════════════════════════════════════════
# Responses
# ════════════════════════════════════════════════════════════════════════════


class AssignmentResponse(BaseModel):
    """Assignment details."""

    AssignmentId: UUID
    ProjectId: UUID
    RequestId: UUID
    Status: str
    CandidateId: Optional[UUID]
    PreviousAssignmentId: Optional[UUID]
    ProfileId: Optional[str]
    Seniority: Optional[str]
    Languages: List[str]
    Expertises: List[str]
    CalculatedPrice: Optional[float]
    OfferedAt: Optional[datetime]
    CompletedAt: Optional[datetime]
    CompletionReason: Optional[str]
    CreatedAt: datetime
    UpdatedAt: datetime

    @classmethod
    def from_model(cls, assignment: Assignment) -> "AssignmentResponse":
        snapshot = assignment.snapshot
        return cls(
            AssignmentId=assignment.assignment_id,
            ProjectId=assignment.project_id,
            RequestId=assignment.request_id,
            Status=assignment.status.value,
            CandidateId=assignment.candidate_id,
            PreviousAssignmentId=assignment.previous_assignment_id,
            ProfileId=snapshot.profile_id,
            Seniority=snapshot.seniority.value if snapshot.seniority else None,
            Languages=sorted(snapshot.languages),
            Expertises=sorted(snapshot.expertises),
            CalculatedPrice=snapshot.calculated_price,
            OfferedAt=assignment.offered_at,
            CompletedAt=assignment.completed_at,
            CompletionReason=assignment.completion_reason.value if assignment.completion_reason else None,
            CreatedAt=assignment.created_at,
            UpdatedAt=assignment.updated_at,
        )


class TransitionResponse(BaseModel):
    """Outcome of a booking command."""

    Message: str
    Changed: bool
    ProjectStatus: Optional[str]
    Assignment: AssignmentResponse
    ReopenedAssignment: Optional[AssignmentResponse] = None
    EligibleCandidates: List[UUID] = Field(default_factory=list)

    @classmethod
    def from_result(cls, message: str, result: TransitionResult) -> "TransitionResponse":
        return cls(
            Message=message,
            Changed=result.changed,
            ProjectStatus=result.project_status.value if result.project_status else None,
            Assignment=AssignmentResponse.from_model(result.assignment),
            ReopenedAssignment=AssignmentResponse.from_model(result.reopened) if result.reopened else None,
            EligibleCandidates=result.eligible_candidates,
        )


class AssignmentListResponse(BaseModel):
    """List of assignments."""

    Message: str
    Count: int
    Assignments: List[AssignmentResponse]


class ProjectResponse(BaseModel):
    """Project details."""

    ProjectId: UUID
    Title: str
    OwnerId: Optional[str]
    Status: str
    CreatedAt: datetime
    UpdatedAt: datetime

    @classmethod
    def from_model(cls, project: Project) -> "ProjectResponse":
        return cls(
            ProjectId=project.project_id,
            Title=project.title,
            OwnerId=project.owner_id,
            Status=project.status.value,
            CreatedAt=project.created_at,
            UpdatedAt=project.updated_at,
        )


class ProjectStatusResponse(BaseModel):
    """Project status only."""

    ProjectId: UUID
    Status: str


class SeatResponse(BaseModel):
    """One seat with its assignment chain, oldest first."""

    RequestId: UUID
    CurrentStatus: str
    History: List[AssignmentResponse]


class SeatListResponse(BaseModel):
    """Seats of a project."""

    Message: str
    Count: int
    Seats: List[SeatResponse]


class EligibleCandidatesResponse(BaseModel):
    """Candidates the seat would be offered to now."""

    Message: str
    Count: int
    CandidateIds: List[UUID]


class ChangeImpactResponse(BaseModel):
    """Impact of a requirement change on the current booking."""

    HasChange: bool
    RequiresRebooking: bool
    ChangeType: Optional[str]
    CurrentCandidateId: Optional[UUID]
    MissingLanguages: List[str]
    MissingExpertises: List[str]
    Message: str

    @classmethod
    def from_model(cls, impact: ChangeImpact) -> "ChangeImpactResponse":
        return cls(
            HasChange=impact.has_change,
            RequiresRebooking=impact.requires_rebooking,
            ChangeType=impact.change_type,
            CurrentCandidateId=impact.current_candidate_id,
            MissingLanguages=sorted(impact.missing_languages),
            MissingExpertises=sorted(impact.missing_expertises),
            Message=impact.message,
        )


class CatalogItemResponse(BaseModel):
    """Catalog entry (profile, language or expertise)."""

    Id: str
    Name: str
    Category: Optional[str] = None


class CatalogListResponse(BaseModel):
    """Catalog listing."""

    Message: str
    Count: int
    Items: List[CatalogItemResponse]
