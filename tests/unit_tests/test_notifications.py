"""Tests for the notification dispatcher and sinks."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from staffing_api.booking.enums import EventKind
from staffing_api.booking.models import BookingEvent
from staffing_api.booking.notifications import LogNotificationSink
from staffing_api.booking.notifications import NotificationDispatcher
from staffing_api.booking.notifications import NotificationSink
from staffing_api.booking.notifications import OutboxNotificationSink
from staffing_api.booking.state_machine import BookingStateMachine
from tests.fixtures.booking_fixtures import RecordingSink


class FailingSink(NotificationSink):
    name = "failing"

    async def send(self, event: BookingEvent) -> None:
        raise ConnectionError("smtp down")


def _event(**kwargs) -> BookingEvent:
    return BookingEvent(kind=EventKind.SEAT_OFFERED, project_id=uuid4(), **kwargs)


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_delivers_to_every_sink(self):
        first, second = RecordingSink(), RecordingSink()
        dispatcher = NotificationDispatcher([first, second])

        dispatcher.dispatch([_event(), _event()])
        await dispatcher.drain()

        assert len(first.events) == 2
        assert len(second.events) == 2

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_block_others(self, captured_logs):
        recorder = RecordingSink()
        dispatcher = NotificationDispatcher([FailingSink(), recorder])

        dispatcher.dispatch([_event()])
        await dispatcher.drain()

        assert recorder.kinds() == ["SeatOffered"]
        warnings = [r for r in captured_logs if r["level"] == "WARNING"]
        assert warnings
        assert warnings[0]["extra"]["sink"] == "failing"
        assert warnings[0]["extra"]["error_type"] == "ConnectionError"

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_roll_back_transition(
        self, booking_store, searching_seat, registry, client_actor
    ):
        """The command commits even when every sink fails."""
        failing = NotificationDispatcher([FailingSink()])
        machine = BookingStateMachine(booking_store, dispatcher=failing)
        _, assignment, _ = await searching_seat()

        result = await machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor)
        await failing.drain()

        assert booking_store.assignments[assignment.assignment_id].status == result.assignment.status

    @pytest.mark.asyncio
    async def test_drain_without_pending(self):
        await NotificationDispatcher().drain()

    @pytest.mark.asyncio
    async def test_add_sink(self):
        dispatcher = NotificationDispatcher()
        recorder = RecordingSink()
        dispatcher.add_sink(recorder)

        dispatcher.dispatch([_event()])
        await dispatcher.drain()

        assert len(recorder.events) == 1


class TestSinks:
    """Tests for the concrete sinks."""

    @pytest.mark.asyncio
    async def test_log_sink(self, captured_logs):
        event = _event(assignment_id=uuid4(), payload={"candidate_id": "c1"})

        await LogNotificationSink().send(event)

        record = captured_logs[-1]
        assert record["message"] == "Booking event SeatOffered"
        assert record["extra"]["assignment_id"] == str(event.assignment_id)

    @pytest.mark.asyncio
    async def test_outbox_sink_assignment_event(self):
        repository = AsyncMock()
        event = _event(assignment_id=uuid4(), payload={"candidate_id": "c1"})

        await OutboxNotificationSink(repository).send(event)

        repository.create.assert_awaited_once_with(
            notification_type="SeatOffered",
            project_id=event.project_id,
            related_entity_type="assignment",
            related_entity_id=event.assignment_id,
            payload={"candidate_id": "c1"},
        )

    @pytest.mark.asyncio
    async def test_outbox_sink_project_event(self):
        repository = AsyncMock()
        event = BookingEvent(kind=EventKind.PROJECT_STATUS_CHANGED, project_id=uuid4())

        await OutboxNotificationSink(repository).send(event)

        kwargs = repository.create.await_args.kwargs
        assert kwargs["related_entity_type"] == "project"
        assert kwargs["related_entity_id"] == event.project_id
