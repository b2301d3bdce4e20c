"""
Offer Expiry

Background task that cancels offers left pending for too long and reopens
their seats. Expiry is an ordinary Cancel command issued by the system actor,
so it races with accept exactly like any other caller: whichever transition
commits first wins, and an offer accepted in the meantime is left alone.
"""

import asyncio
from datetime import timedelta
from typing import List

from loguru import logger

from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import CompletionReason
from staffing_api.booking.exceptions import BookingError
from staffing_api.booking.models import SYSTEM_ACTOR
from staffing_api.booking.state_machine import BookingStateMachine
from staffing_api.booking.state_machine import utc_now


async def expire_stale_offers(machine: BookingStateMachine, max_age: timedelta) -> List:
    """
    Cancel every pending offer older than max_age and reopen its seat.

    Args:
        machine: Booking state machine
        max_age: Maximum time an offer may stay pending

    Returns:
        TransitionResults of the offers actually expired
    """
    cutoff = utc_now() - max_age
    async with machine.store.transaction() as session:
        stale = await session.list_pending_offers(cutoff)

    if not stale:
        logger.debug("No stale offers to expire", cutoff=cutoff.isoformat())
        return []

    logger.info(f"Expiring {len(stale)} stale offer(s)", cutoff=cutoff.isoformat())
    expired = []
    for assignment in stale:
        try:
            result = await machine.cancel(
                assignment.assignment_id,
                CompletionReason.CANDIDATE_UNAVAILABLE,
                SYSTEM_ACTOR,
                reopen=True,
                expected_status=BookingStatus.PENDING_ACCEPTANCE,
            )
        except BookingError as e:
            # Accepted or declined since the scan, or project put on hold
            logger.info(
                f"Offer {assignment.assignment_id} not expired: {e.code}",
                assignment_id=str(assignment.assignment_id),
                error=e.message,
            )
            continue

        if result.changed:
            expired.append(result)
            logger.info(
                f"Offer {assignment.assignment_id} expired",
                assignment_id=str(assignment.assignment_id),
                candidate_id=str(assignment.candidate_id),
                reopened_assignment_id=str(result.reopened.assignment_id) if result.reopened else None,
            )
    return expired


async def start_offer_expiry_worker(machine: BookingStateMachine, max_age: timedelta, interval_seconds: float):
    """
    Run expire_stale_offers forever.

    Started as an asyncio task by the web app when offer expiry is enabled;
    cancelled on shutdown.
    """
    logger.info(
        "Offer expiry worker started",
        max_age_hours=max_age.total_seconds() / 3600,
        interval_seconds=interval_seconds,
    )

    while True:
        try:
            await expire_stale_offers(machine, max_age)
        except asyncio.CancelledError:
            logger.info("Offer expiry task cancelled - shutting down")
            raise
        except Exception as e:
            logger.error(f"Offer expiry error: {e}", exc_info=True)

        await asyncio.sleep(interval_seconds)
