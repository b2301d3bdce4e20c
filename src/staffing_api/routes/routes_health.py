"""Health check endpoints for monitoring application status."""

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from staffing_api.booking.store import BookingStore
from staffing_api.dependencies import get_booking_store
from staffing_api.dependencies import get_settings
from staffing_api.settings import Settings

ROUTER_HEALTH = APIRouter(tags=["Health"])

SERVICE_NAME = "Staffing Booking API"


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": SERVICE_NAME,
                        "version": "v1",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Lightweight: does not check the booking store. Used by load balancers and
    liveness probes.
    """
    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": "v1",
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness check endpoint",
    description="Checks that the booking store is reachable",
    responses={
        status.HTTP_503_SERVICE_UNAVAILABLE: {
            "description": "Booking store unreachable",
            "content": {"application/json": {"example": {"status": "unavailable", "store": "postgresql"}}},
        }
    },
)
async def readiness_check(
    store: BookingStore = Depends(get_booking_store),
    settings: Settings = Depends(get_settings),
):
    """Readiness probe: the booking store answers."""
    store_name = "postgresql" if settings.domain_db_connection_string else "memory"
    healthy = await store.health_check()

    if not healthy:
        logger.warning("Readiness check failed: booking store unreachable", store=store_name)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "store": store_name},
        )

    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "ready", "store": store_name})
