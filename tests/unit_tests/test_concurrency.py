"""Concurrent commands on the same seat."""

import asyncio

import pytest

from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import CompletionReason
from staffing_api.booking.exceptions import AlreadyClaimed
from staffing_api.booking.exceptions import BookingError
from staffing_api.booking.exceptions import StaleOffer
from staffing_api.booking.memory_store import InMemoryBookingSession


def interleave_write(booking_store, **row_changes):
    """
    Commit another writer's change to the assignment row between the next
    command's read and its first conditional update.
    """

    class InterleavedSession(InMemoryBookingSession):
        applied = False

        async def conditional_update(self, assignment_id, expected_status, fields, expected_candidate_id=None):
            if not InterleavedSession.applied:
                InterleavedSession.applied = True
                row = self.store.assignments[assignment_id]
                self.store.assignments[assignment_id] = row.model_copy(update=row_changes)
            return await super().conditional_update(assignment_id, expected_status, fields, expected_candidate_id)

    booking_store.session_class = InterleavedSession


def record_locks(booking_store):
    """Record project reads and assignment updates made by the next transactions."""
    calls = []

    class RecordingSession(InMemoryBookingSession):
        async def get_project(self, project_id, for_update=False):
            calls.append("lock project" if for_update else "read project")
            return await super().get_project(project_id, for_update)

        async def conditional_update(self, assignment_id, expected_status, fields, expected_candidate_id=None):
            calls.append("update assignment")
            return await super().conditional_update(assignment_id, expected_status, fields, expected_candidate_id)

    booking_store.session_class = RecordingSession
    return calls


def assert_project_locked_first(calls):
    assert "update assignment" in calls
    assert "lock project" in calls
    assert calls.index("lock project") < calls.index("update assignment")


def _split(results):
    ok = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    return ok, failed


class TestConcurrentCommands:
    """Exactly one winner per race; the loser gets a typed error."""

    @pytest.mark.asyncio
    async def test_double_accept(self, machine, searching_seat, registry, client_actor, candidate_actor):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)

        results = await asyncio.gather(
            machine.accept(assignment.assignment_id, alice, candidate_actor),
            machine.accept(assignment.assignment_id, alice, candidate_actor),
            return_exceptions=True,
        )

        ok, failed = _split(results)
        assert len(ok) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], StaleOffer)
        assert ok[0].assignment.status == BookingStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_racing_offers(self, machine, searching_seat, registry, client_actor, booking_store):
        _, assignment, _ = await searching_seat()
        names = ("alice", "bob", "carol")

        results = await asyncio.gather(
            *(machine.offer(assignment.assignment_id, registry[n].candidate_id, client_actor) for n in names),
            return_exceptions=True,
        )

        ok, failed = _split(results)
        assert len(ok) == 1
        assert len(failed) == 2
        assert all(isinstance(e, AlreadyClaimed) for e in failed)
        claimed = [a for a in booking_store.assignments.values() if a.status.is_claimed]
        assert len(claimed) == 1

    @pytest.mark.asyncio
    async def test_accept_races_decline(self, machine, searching_seat, registry, client_actor, candidate_actor):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)

        results = await asyncio.gather(
            machine.accept(assignment.assignment_id, alice, candidate_actor),
            machine.decline(assignment.assignment_id, CompletionReason.OTHER, candidate_actor),
            return_exceptions=True,
        )

        ok, failed = _split(results)
        assert len(ok) == 1
        assert isinstance(failed[0], StaleOffer)

    @pytest.mark.asyncio
    async def test_exclusivity_under_mixed_load(
        self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store
    ):
        """No interleaving of commands leaves two claimed rows on one seat."""
        alice = registry["alice"].candidate_id
        bob = registry["bob"].candidate_id
        _, assignment, _ = await searching_seat()

        for _ in range(3):
            await asyncio.gather(
                machine.offer(assignment.assignment_id, alice, client_actor),
                machine.offer(assignment.assignment_id, bob, client_actor),
                machine.accept(assignment.assignment_id, alice, candidate_actor),
                machine.accept(assignment.assignment_id, bob, candidate_actor),
                return_exceptions=True,
            )
            per_seat = [
                a
                for a in booking_store.assignments.values()
                if a.request_id == assignment.request_id and a.status.is_claimed
            ]
            assert len(per_seat) <= 1

    @pytest.mark.asyncio
    async def test_errors_are_booking_errors(self, machine, searching_seat, registry, client_actor):
        _, assignment, _ = await searching_seat()

        results = await asyncio.gather(
            machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor),
            machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor),
            return_exceptions=True,
        )

        _, failed = _split(results)
        assert all(isinstance(e, BookingError) for e in failed)


class TestLostCompareAndSwap:
    """A row changed by another writer after the read makes the conditional update miss."""

    @pytest.mark.asyncio
    async def test_offer_loses_to_concurrent_offer(self, machine, searching_seat, registry, client_actor, booking_store):
        _, assignment, _ = await searching_seat()
        bob = registry["bob"].candidate_id
        interleave_write(booking_store, status=BookingStatus.PENDING_ACCEPTANCE, candidate_id=bob)

        with pytest.raises(AlreadyClaimed, match="claimed concurrently"):
            await machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor)

        row = booking_store.assignments[assignment.assignment_id]
        assert row.status == BookingStatus.PENDING_ACCEPTANCE
        assert row.candidate_id == bob

    @pytest.mark.asyncio
    async def test_accept_loses_to_concurrent_accept(
        self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store
    ):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)
        interleave_write(booking_store, status=BookingStatus.ACCEPTED)
        audit_len = len(booking_store.audit_trail)

        with pytest.raises(StaleOffer, match="changed concurrently"):
            await machine.accept(assignment.assignment_id, alice, candidate_actor)

        assert len(booking_store.audit_trail) == audit_len

    @pytest.mark.asyncio
    async def test_accept_after_offer_moved_to_other_candidate(
        self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store
    ):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)
        interleave_write(booking_store, candidate_id=registry["bob"].candidate_id)

        with pytest.raises(StaleOffer, match="changed concurrently"):
            await machine.accept(assignment.assignment_id, alice, candidate_actor)

        assert booking_store.assignments[assignment.assignment_id].status == BookingStatus.PENDING_ACCEPTANCE

    @pytest.mark.asyncio
    async def test_decline_loses_to_concurrent_accept(
        self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store
    ):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)
        interleave_write(booking_store, status=BookingStatus.ACCEPTED)

        with pytest.raises(StaleOffer, match="changed concurrently"):
            await machine.decline(assignment.assignment_id, CompletionReason.OTHER, candidate_actor)

        lineage = [a for a in booking_store.assignments.values() if a.request_id == assignment.request_id]
        assert len(lineage) == 1
        assert lineage[0].status == BookingStatus.ACCEPTED


class TestLockOrder:
    """Commands lock the project row before writing any assignment row."""

    @pytest.mark.asyncio
    async def test_offer(self, machine, searching_seat, registry, client_actor, booking_store):
        _, assignment, _ = await searching_seat()
        calls = record_locks(booking_store)

        await machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor)

        assert_project_locked_first(calls)

    @pytest.mark.asyncio
    async def test_accept(self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)
        calls = record_locks(booking_store)

        await machine.accept(assignment.assignment_id, alice, candidate_actor)

        assert_project_locked_first(calls)

    @pytest.mark.asyncio
    async def test_decline(self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store):
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor)
        calls = record_locks(booking_store)

        await machine.decline(assignment.assignment_id, CompletionReason.OTHER, candidate_actor)

        assert_project_locked_first(calls)

    @pytest.mark.asyncio
    async def test_cancel(self, machine, searching_seat, client_actor, booking_store):
        _, assignment, _ = await searching_seat()
        calls = record_locks(booking_store)

        await machine.cancel(assignment.assignment_id, CompletionReason.CLIENT_REQUEST, client_actor)

        assert_project_locked_first(calls)

    @pytest.mark.asyncio
    async def test_cancel_on_retired_row_reads_locked_project(self, machine, searching_seat, client_actor, booking_store):
        project, assignment, _ = await searching_seat()
        await machine.cancel(assignment.assignment_id, CompletionReason.CLIENT_REQUEST, client_actor)
        calls = record_locks(booking_store)

        result = await machine.cancel(assignment.assignment_id, CompletionReason.CLIENT_REQUEST, client_actor)

        assert not result.changed
        assert result.project_status == booking_store.projects[project.project_id].status
        assert calls[0] == "lock project"
        assert "read project" not in calls

    @pytest.mark.asyncio
    async def test_complete(self, machine, searching_seat, registry, client_actor, candidate_actor, booking_store):
        alice = registry["alice"].candidate_id
        _, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, alice, client_actor)
        await machine.accept(assignment.assignment_id, alice, candidate_actor)
        calls = record_locks(booking_store)

        await machine.complete(assignment.assignment_id, CompletionReason.OTHER, client_actor)

        assert_project_locked_first(calls)

    @pytest.mark.asyncio
    async def test_archive(self, machine, project_service, searching_seat, registry, client_actor, booking_store):
        project, assignment, _ = await searching_seat()
        await machine.offer(assignment.assignment_id, registry["alice"].candidate_id, client_actor)
        calls = record_locks(booking_store)

        await project_service.archive(project.project_id, client_actor)

        assert_project_locked_first(calls)
