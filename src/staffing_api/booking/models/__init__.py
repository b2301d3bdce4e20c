"""
Booking Models Module

All Pydantic models for the booking system:
- Catalog reference data
- Candidate registry
- Projects, seats and assignments
- Events and command results
"""

# Catalog
from staffing_api.booking.models.catalog import HRExpertise, HRLanguage, HRProfile

# Registry and booking entities
from staffing_api.booking.models.candidate import Candidate
from staffing_api.booking.models.project import Project, RequestSnapshot, ResourceRequest
from staffing_api.booking.models.assignment import Assignment

# Commands and events
from staffing_api.booking.models.events import SYSTEM_ACTOR, Actor, BookingEvent, TransitionResult
from staffing_api.booking.models.requirements import ChangeImpact, RequirementChanges

__all__ = [
    # Catalog
    "HRProfile",
    "HRLanguage",
    "HRExpertise",
    # Entities
    "Candidate",
    "Project",
    "RequestSnapshot",
    "ResourceRequest",
    "Assignment",
    # Commands and events
    "Actor",
    "SYSTEM_ACTOR",
    "BookingEvent",
    "TransitionResult",
    "RequirementChanges",
    "ChangeImpact",
]
