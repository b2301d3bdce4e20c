"""Tests for the in-memory booking store."""

from datetime import datetime
from datetime import timezone
from uuid import uuid4

import pytest

from staffing_api.booking.enums import Availability
from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.enums import Seniority
from staffing_api.booking.exceptions import AlreadyClaimed
from staffing_api.booking.memory_store import InMemoryBookingStore
from staffing_api.booking.models import Assignment
from staffing_api.booking.models import Project
from staffing_api.booking.models import ResourceRequest
from tests.consts import BACKEND


def _now():
    return datetime.now(timezone.utc)


async def _seat(store, snapshot):
    now = _now()
    project = Project(project_id=uuid4(), title="p", created_at=now, updated_at=now)
    request = ResourceRequest(request_id=uuid4(), project_id=project.project_id, snapshot=snapshot, created_at=now)
    assignment = Assignment(
        assignment_id=uuid4(),
        project_id=project.project_id,
        request_id=request.request_id,
        snapshot=snapshot,
        status=BookingStatus.SEARCHING,
        created_at=now,
        updated_at=now,
    )
    async with store.transaction() as session:
        await session.insert_project(project)
        await session.insert_request(request)
        await session.insert_assignment(assignment)
    return project, request, assignment


class TestTransaction:
    """Writes are all-or-nothing."""

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, backend_senior_fr):
        store = InMemoryBookingStore()
        project, _, assignment = await _seat(store, backend_senior_fr)

        with pytest.raises(RuntimeError):
            async with store.transaction() as session:
                await session.conditional_update(
                    assignment.assignment_id, BookingStatus.SEARCHING, {"status": BookingStatus.CANCELLED}
                )
                await session.set_project_status(project.project_id, ProjectStatus.PAUSED)
                await session.write_audit("assignment", assignment.assignment_id, "CANCELLED", "x", None, None)
                raise RuntimeError("boom")

        assert store.assignments[assignment.assignment_id].status == BookingStatus.SEARCHING
        assert store.projects[project.project_id].status == ProjectStatus.FORMING_TEAM
        assert store.audit_trail == []

    @pytest.mark.asyncio
    async def test_rollback_restores_deleted_rows(self, backend_senior_fr):
        store = InMemoryBookingStore()
        project, request, assignment = await _seat(store, backend_senior_fr)

        with pytest.raises(RuntimeError):
            async with store.transaction() as session:
                assert await session.destroy_project_assignments(project.project_id) == 1
                raise RuntimeError("boom")

        assert assignment.assignment_id in store.assignments
        assert request.request_id in store.requests

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, backend_senior_fr):
        store = InMemoryBookingStore()
        _, _, assignment = await _seat(store, backend_senior_fr)

        async with store.transaction() as session:
            row = await session.get_assignment(assignment.assignment_id)
        row.status = BookingStatus.ACCEPTED

        assert store.assignments[assignment.assignment_id].status == BookingStatus.SEARCHING


class TestConditionalUpdate:
    """Compare-and-swap semantics."""

    @pytest.mark.asyncio
    async def test_swap_succeeds_on_expected_status(self, backend_senior_fr):
        store = InMemoryBookingStore()
        _, _, assignment = await _seat(store, backend_senior_fr)
        candidate_id = uuid4()

        async with store.transaction() as session:
            updated = await session.conditional_update(
                assignment.assignment_id,
                BookingStatus.SEARCHING,
                {"status": BookingStatus.PENDING_ACCEPTANCE, "candidate_id": candidate_id},
            )

        assert updated.status == BookingStatus.PENDING_ACCEPTANCE
        assert updated.candidate_id == candidate_id
        assert updated.updated_at >= assignment.updated_at

    @pytest.mark.asyncio
    async def test_swap_fails_on_other_status(self, backend_senior_fr):
        store = InMemoryBookingStore()
        _, _, assignment = await _seat(store, backend_senior_fr)

        async with store.transaction() as session:
            updated = await session.conditional_update(
                assignment.assignment_id, BookingStatus.PENDING_ACCEPTANCE, {"status": BookingStatus.ACCEPTED}
            )

        assert updated is None
        assert store.assignments[assignment.assignment_id].status == BookingStatus.SEARCHING

    @pytest.mark.asyncio
    async def test_swap_checks_candidate(self, backend_senior_fr):
        store = InMemoryBookingStore()
        _, _, assignment = await _seat(store, backend_senior_fr)
        candidate_id = uuid4()
        async with store.transaction() as session:
            await session.conditional_update(
                assignment.assignment_id,
                BookingStatus.SEARCHING,
                {"status": BookingStatus.PENDING_ACCEPTANCE, "candidate_id": candidate_id},
            )

        async with store.transaction() as session:
            updated = await session.conditional_update(
                assignment.assignment_id,
                BookingStatus.PENDING_ACCEPTANCE,
                {"status": BookingStatus.ACCEPTED},
                expected_candidate_id=uuid4(),
            )

        assert updated is None

    @pytest.mark.asyncio
    async def test_unknown_row(self):
        store = InMemoryBookingStore()

        async with store.transaction() as session:
            assert await session.conditional_update(uuid4(), BookingStatus.SEARCHING, {}) is None


class TestUniqueness:
    """One claimed row per seat, one successor per assignment."""

    @pytest.mark.asyncio
    async def test_second_claimed_row_rejected(self, backend_senior_fr):
        store = InMemoryBookingStore()
        _, _, assignment = await _seat(store, backend_senior_fr)
        async with store.transaction() as session:
            await session.conditional_update(
                assignment.assignment_id, BookingStatus.SEARCHING, {"status": BookingStatus.ACCEPTED}
            )

        now = _now()
        duplicate = assignment.model_copy(
            update={"assignment_id": uuid4(), "status": BookingStatus.PENDING_ACCEPTANCE, "created_at": now}
        )
        with pytest.raises(AlreadyClaimed):
            async with store.transaction() as session:
                await session.insert_assignment(duplicate)

        assert duplicate.assignment_id not in store.assignments

    @pytest.mark.asyncio
    async def test_second_successor_rejected(self, backend_senior_fr):
        store = InMemoryBookingStore()
        _, _, assignment = await _seat(store, backend_senior_fr)

        def successor():
            return assignment.model_copy(
                update={"assignment_id": uuid4(), "previous_assignment_id": assignment.assignment_id}
            )

        async with store.transaction() as session:
            await session.insert_assignment(successor())
        with pytest.raises(AlreadyClaimed):
            async with store.transaction() as session:
                await session.insert_assignment(successor())


class TestRegistry:
    """Candidate queries."""

    @pytest.mark.asyncio
    async def test_query_filters_profile_seniority_availability(self, booking_store, registry):
        async with booking_store.transaction() as session:
            result = await session.query_candidates(BACKEND, Seniority.SENIOR)

        names = {name for name, c in registry.items() if c in result}
        assert names == {"alice", "bob", "carol", "gina"}

    @pytest.mark.asyncio
    async def test_catalog_sorted_by_name(self, booking_store):
        async with booking_store.transaction() as session:
            languages = await session.list_languages()

        assert [lang.name for lang in languages] == ["English", "French", "German"]

    @pytest.mark.asyncio
    async def test_candidate_reads_return_copies(self, booking_store, registry):
        alice = registry["alice"]

        async with booking_store.transaction() as session:
            fetched = await session.get_candidate(alice.candidate_id)
            queried = await session.query_candidates(BACKEND, Seniority.SENIOR)
        fetched.availability = Availability.PAUSED
        for candidate in queried:
            candidate.availability = Availability.PAUSED

        assert booking_store.candidates[alice.candidate_id].availability == Availability.AVAILABLE
        assert booking_store.candidates[registry["bob"].candidate_id].availability == Availability.AVAILABLE

    @pytest.mark.asyncio
    async def test_upsert_candidate_rolls_back_despite_caller_mutation(self, booking_store, registry):
        bob = registry["bob"]
        paused = bob.model_copy(update={"availability": Availability.PAUSED})

        with pytest.raises(RuntimeError):
            async with booking_store.transaction() as session:
                stored = await session.upsert_candidate(paused)
                stored.availability = Availability.AVAILABLE
                paused.seniority = Seniority.JUNIOR
                assert booking_store.candidates[bob.candidate_id].availability == Availability.PAUSED
                assert booking_store.candidates[bob.candidate_id].seniority == Seniority.SENIOR
                raise RuntimeError("abort")

        assert booking_store.candidates[bob.candidate_id] == bob
