"""Tests for the eligibility predicate and candidate ordering."""

from uuid import uuid4

import pytest

from staffing_api.booking.enums import Availability
from staffing_api.booking.enums import Seniority
from staffing_api.booking.exceptions import InvalidRequest
from staffing_api.booking.matcher import Matcher
from staffing_api.booking.matcher import find_eligible_candidates
from staffing_api.booking.matcher import is_eligible
from staffing_api.booking.matcher import missing_requirements
from staffing_api.booking.models import RequestSnapshot
from tests.consts import BACKEND
from tests.consts import ENGLISH
from tests.consts import FRENCH
from tests.consts import GERMAN
from tests.consts import POSTGRESQL
from tests.consts import PYTHON
from tests.fixtures.booking_fixtures import make_candidate


class TestIsEligible:
    """Tests for the hard boolean filter."""

    def test_exact_match(self, registry, backend_senior_fr):
        assert is_eligible(registry["bob"], backend_senior_fr)

    def test_superset_of_languages_matches(self, registry, backend_senior_fr):
        """A candidate speaking more languages than required still qualifies."""
        assert is_eligible(registry["alice"], backend_senior_fr)

    def test_paused_candidate_never_matches(self, registry, backend_senior_fr):
        assert not is_eligible(registry["dave"], backend_senior_fr)

    def test_wrong_seniority(self, registry, backend_senior_fr):
        assert not is_eligible(registry["erin"], backend_senior_fr)

    def test_wrong_profile(self, registry, backend_senior_fr):
        assert not is_eligible(registry["frank"], backend_senior_fr)

    def test_missing_language(self, registry, backend_senior_fr):
        assert not is_eligible(registry["gina"], backend_senior_fr)

    def test_missing_expertise(self, registry):
        snapshot = RequestSnapshot(
            profile_id=BACKEND,
            seniority=Seniority.SENIOR,
            languages=frozenset({FRENCH}),
            expertises=frozenset({POSTGRESQL}),
        )
        assert is_eligible(registry["alice"], snapshot)
        assert not is_eligible(registry["bob"], snapshot)

    @pytest.mark.parametrize(
        "availability",
        [Availability.PAUSED, Availability.UNAVAILABLE, Availability.IN_QUALIFICATION],
    )
    def test_only_available_candidates(self, backend_senior_fr, availability):
        candidate = make_candidate(0, availability=availability)
        assert not is_eligible(candidate, backend_senior_fr)


class TestFindEligibleCandidates:
    """Tests for filtering and ordering."""

    def test_ordered_by_registration_time(self, registry, backend_senior_fr):
        result = find_eligible_candidates(backend_senior_fr, registry.values())

        assert result == [registry["alice"].candidate_id, registry["bob"].candidate_id, registry["carol"].candidate_id]

    def test_exclude_set(self, registry, backend_senior_fr):
        result = find_eligible_candidates(
            backend_senior_fr, registry.values(), exclude={registry["alice"].candidate_id}
        )

        assert result == [registry["bob"].candidate_id, registry["carol"].candidate_id]

    def test_no_match_returns_empty_list(self, registry):
        snapshot = RequestSnapshot(
            profile_id=BACKEND,
            seniority=Seniority.SENIOR,
            languages=frozenset({GERMAN, ENGLISH}),
        )

        assert find_eligible_candidates(snapshot, registry.values()) == []

    def test_ties_broken_by_id(self):
        first = make_candidate(0)
        second = make_candidate(0)
        snapshot = RequestSnapshot(profile_id=BACKEND, seniority=Seniority.SENIOR)

        result = find_eligible_candidates(snapshot, [second, first])

        assert result == sorted([first.candidate_id, second.candidate_id], key=str)
        # Same input in another order gives the same list
        assert find_eligible_candidates(snapshot, [first, second]) == result

    def test_missing_profile_raises(self, registry):
        with pytest.raises(InvalidRequest, match="profile"):
            find_eligible_candidates(RequestSnapshot(seniority=Seniority.SENIOR), registry.values())

    def test_missing_seniority_raises(self, registry):
        with pytest.raises(InvalidRequest, match="seniority"):
            find_eligible_candidates(RequestSnapshot(profile_id=BACKEND), registry.values())


class TestMissingRequirements:
    """Tests for missing_requirements."""

    def test_reports_missing_skills(self, registry):
        snapshot = RequestSnapshot(
            profile_id=BACKEND,
            seniority=Seniority.SENIOR,
            languages=frozenset({FRENCH, GERMAN}),
            expertises=frozenset({PYTHON, POSTGRESQL}),
        )

        missing = missing_requirements(registry["bob"], snapshot)

        assert missing == {"languages": frozenset({GERMAN}), "expertises": frozenset({POSTGRESQL})}

    def test_nothing_missing(self, registry, backend_senior_fr):
        missing = missing_requirements(registry["alice"], backend_senior_fr)

        assert missing == {"languages": frozenset(), "expertises": frozenset()}


class TestMatcher:
    """Tests for Matcher against a store session."""

    @pytest.mark.asyncio
    async def test_find_eligible_reads_registry(self, booking_store, registry, backend_senior_fr):
        async with booking_store.transaction() as session:
            result = await Matcher().find_eligible(session, backend_senior_fr)

        assert result == [registry["alice"].candidate_id, registry["bob"].candidate_id, registry["carol"].candidate_id]

    @pytest.mark.asyncio
    async def test_find_eligible_sees_new_registration(self, booking_store, backend_senior_fr):
        newcomer = make_candidate(-10)

        async with booking_store.transaction() as session:
            await session.upsert_candidate(newcomer)
            result = await Matcher().find_eligible(session, backend_senior_fr)

        assert result[0] == newcomer.candidate_id

    @pytest.mark.asyncio
    async def test_invalid_snapshot_raises_before_query(self, booking_store):
        async with booking_store.transaction() as session:
            with pytest.raises(InvalidRequest):
                await Matcher().find_eligible(session, RequestSnapshot(profile_id=BACKEND), exclude={uuid4()})
