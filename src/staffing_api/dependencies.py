"""FastAPI dependencies for accessing app state."""

from typing import Optional

from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from fastapi import status
from loguru import logger

from staffing_api.booking.enums import ActorRole
from staffing_api.booking.models import Actor
from staffing_api.booking.project_service import ProjectService
from staffing_api.booking.state_machine import BookingStateMachine
from staffing_api.booking.store import BookingStore
from staffing_api.settings import Settings


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_booking_store(request: Request) -> BookingStore:
    """Booking store created at application start."""
    return request.app.state.booking_store


def get_booking_machine(request: Request) -> BookingStateMachine:
    """Booking state machine shared by every request."""
    return request.app.state.booking_machine


def get_project_service(request: Request) -> ProjectService:
    """Project lifecycle service shared by every request."""
    return request.app.state.project_service


async def get_actor(
    x_actor_id: Optional[str] = Header(
        default=None,
        description="Verified caller identity, set by the authentication gateway",
        examples=["client-42"],
    ),
    x_actor_role: Optional[str] = Header(
        default=None,
        description="Caller role: client, candidate or admin",
        examples=["client"],
    ),
) -> Actor:
    """
    Build the Actor of the current request from the gateway headers.

    Raises
    ------
    HTTPException
        401 when the identity header is missing, 400 for an unknown role
    """
    if not x_actor_id:
        logger.warning("Request without actor identity header", http_status=401)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor-Id header",
        )

    role = (x_actor_role or ActorRole.CLIENT.value).strip().lower()
    if role == ActorRole.SYSTEM.value or role not in {r.value for r in ActorRole}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid X-Actor-Role: {x_actor_role}",
        )

    return Actor(actor_id=x_actor_id, role=ActorRole(role))
