"""
Booking Enums

All enum types used throughout the booking system.
Values must match exactly with database constraints.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Catalog and Candidate Enums
# ════════════════════════════════════════════════════════════════════════════


class Seniority(str, Enum):
    """Seniority tiers a seat can require and a candidate can hold."""

    JUNIOR = "junior"
    MEDIOR = "medior"
    SENIOR = "senior"
    EXPERT = "expert"


class Availability(str, Enum):
    """Candidate availability. Only AVAILABLE candidates are offered seats."""

    AVAILABLE = "available"
    PAUSED = "paused"
    UNAVAILABLE = "unavailable"
    IN_QUALIFICATION = "in_qualification"


# ════════════════════════════════════════════════════════════════════════════
# Assignment Enums
# ════════════════════════════════════════════════════════════════════════════


class BookingStatus(str, Enum):
    """Lifecycle state of a single assignment."""

    DRAFT = "draft"
    SEARCHING = "searching"
    PENDING_ACCEPTANCE = "pending_acceptance"
    ACCEPTED = "accepted"
    DECLINED = "declined"  # Terminal for the row, seat is reopened
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_claimed(self) -> bool:
        return self in CLAIMED_STATUSES

    @property
    def is_open(self) -> bool:
        return self in OPEN_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.DECLINED, BookingStatus.COMPLETED, BookingStatus.CANCELLED})
CLAIMED_STATUSES = frozenset({BookingStatus.PENDING_ACCEPTANCE, BookingStatus.ACCEPTED})
OPEN_STATUSES = frozenset({BookingStatus.SEARCHING, BookingStatus.PENDING_ACCEPTANCE})


class CompletionReason(str, Enum):
    """Why an assignment was retired."""

    REQUIREMENTS_CHANGED = "requirements_changed"
    PROJECT_COMPLETED = "project_completed"
    CANDIDATE_UNAVAILABLE = "candidate_unavailable"
    CLIENT_REQUEST = "client_request"
    OTHER = "other"


# ════════════════════════════════════════════════════════════════════════════
# Project Enums
# ════════════════════════════════════════════════════════════════════════════


class ProjectStatus(str, Enum):
    """Coarse project status (staffing statuses are derived, the rest owner-held)."""

    FORMING_TEAM = "forming-team"
    AWAITING_TEAM = "awaiting-team"  # Started project lost a member
    READY = "ready"
    IN_PROGRESS = "in-progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    DELETED = "deleted"


# Statuses only an explicit owner action may set or leave
OWNER_HELD_STATUSES = frozenset(
    {ProjectStatus.PAUSED, ProjectStatus.COMPLETED, ProjectStatus.ARCHIVED, ProjectStatus.DELETED}
)


# ════════════════════════════════════════════════════════════════════════════
# Actor Enums
# ════════════════════════════════════════════════════════════════════════════


class ActorRole(str, Enum):
    """Role of the authenticated caller issuing a command."""

    CLIENT = "client"
    CANDIDATE = "candidate"
    ADMIN = "admin"
    SYSTEM = "system"  # Scheduled jobs


# ════════════════════════════════════════════════════════════════════════════
# Notification Enums
# ════════════════════════════════════════════════════════════════════════════


class EventKind(str, Enum):
    """Events handed to the notification dispatcher after commit."""

    SEARCH_OPENED = "SearchOpened"
    SEAT_OFFERED = "SeatOffered"
    SEAT_ACCEPTED = "SeatAccepted"
    SEAT_DECLINED = "SeatDeclined"
    SEAT_REOPENED = "SeatReopened"
    SEAT_CANCELLED = "SeatCancelled"
    SEAT_COMPLETED = "SeatCompleted"
    PROJECT_STATUS_CHANGED = "ProjectStatusChanged"


class NotificationStatus(str, Enum):
    """Outbox delivery status."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


# ════════════════════════════════════════════════════════════════════════════
# Audit Trail Enums
# ════════════════════════════════════════════════════════════════════════════


class EntityType(str, Enum):
    """Entity types written to the audit trail."""

    PROJECT = "project"
    RESOURCE_REQUEST = "resource_request"
    ASSIGNMENT = "assignment"
