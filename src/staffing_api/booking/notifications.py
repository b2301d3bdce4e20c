"""
Notification Dispatcher

Fire-and-forget hand-off of booking events to notification sinks. Events are
dispatched only after the transition has committed; a sink failure is logged
and never rolls back or blocks the transition.
"""

import asyncio
from abc import ABC
from abc import abstractmethod
from typing import Iterable
from typing import List
from typing import Optional
from typing import Set

from loguru import logger

from staffing_api.booking.models import BookingEvent


class NotificationSink(ABC):
    """Destination for booking events (email service, outbox table, ...)."""

    name: str = "sink"

    @abstractmethod
    async def send(self, event: BookingEvent) -> None:
        """Deliver one event. May raise; the dispatcher logs and moves on."""


class LogNotificationSink(NotificationSink):
    """Writes every event to the application log."""

    name = "log"

    async def send(self, event: BookingEvent) -> None:
        logger.info(
            f"Booking event {event.kind.value}",
            event_kind=event.kind.value,
            project_id=str(event.project_id),
            assignment_id=str(event.assignment_id) if event.assignment_id else None,
            payload=event.payload,
        )


class OutboxNotificationSink(NotificationSink):
    """Appends events to the notifications table for the external delivery service."""

    name = "outbox"

    def __init__(self, repository):
        """
        Args:
            repository: NotificationRepository bound to the domain database pool
        """
        self.repository = repository

    async def send(self, event: BookingEvent) -> None:
        await self.repository.create(
            notification_type=event.kind.value,
            project_id=event.project_id,
            related_entity_type="assignment" if event.assignment_id else "project",
            related_entity_id=event.assignment_id or event.project_id,
            payload=event.payload,
        )


class NotificationDispatcher:
    """Schedules delivery of committed events to every registered sink."""

    def __init__(self, sinks: Optional[Iterable[NotificationSink]] = None):
        self.sinks: List[NotificationSink] = list(sinks or [])
        self._pending: Set[asyncio.Task] = set()

    def add_sink(self, sink: NotificationSink) -> None:
        self.sinks.append(sink)

    def dispatch(self, events: Iterable[BookingEvent]) -> None:
        """
        Schedule delivery of events without waiting for it.

        Must be called from a running event loop, after commit.
        """
        for event in events:
            task = asyncio.create_task(self._deliver(event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: BookingEvent) -> None:
        for sink in self.sinks:
            try:
                await sink.send(event)
            except Exception as e:  # pylint: disable=broad-except
                # Notification is best-effort: log and continue with the next sink
                logger.warning(
                    f"Notification sink '{sink.name}' failed for {event.kind.value}: {e}",
                    sink=sink.name,
                    event_kind=event.kind.value,
                    project_id=str(event.project_id),
                    assignment_id=str(event.assignment_id) if event.assignment_id else None,
                    error_type=type(e).__name__,
                )

    async def drain(self) -> None:
        """Wait for every scheduled delivery (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
