"""Fixtures for the booking core: seeded in-memory store, state machine and services."""

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Dict
from typing import List
from uuid import uuid4

import pytest

from staffing_api.booking.enums import ActorRole
from staffing_api.booking.enums import Availability
from staffing_api.booking.enums import Seniority
from staffing_api.booking.memory_store import InMemoryBookingStore
from staffing_api.booking.models import Actor
from staffing_api.booking.models import BookingEvent
from staffing_api.booking.models import Candidate
from staffing_api.booking.models import HRExpertise
from staffing_api.booking.models import HRLanguage
from staffing_api.booking.models import HRProfile
from staffing_api.booking.models import RequestSnapshot
from staffing_api.booking.notifications import NotificationDispatcher
from staffing_api.booking.notifications import NotificationSink
from staffing_api.booking.project_service import ProjectService
from staffing_api.booking.state_machine import BookingStateMachine
from tests.consts import BACKEND
from tests.consts import DATA_ANALYST
from tests.consts import ENGLISH
from tests.consts import FRENCH
from tests.consts import GERMAN
from tests.consts import POSTGRESQL
from tests.consts import PYTHON

REGISTRATION_START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class RecordingSink(NotificationSink):
    """Sink that keeps every delivered event in memory."""

    name = "recording"

    def __init__(self):
        self.events: List[BookingEvent] = []

    async def send(self, event: BookingEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [e.kind.value for e in self.events]


def make_candidate(
    minutes: int,
    profile_id: str = BACKEND,
    seniority: Seniority = Seniority.SENIOR,
    languages=(FRENCH,),
    expertises=(PYTHON,),
    availability: Availability = Availability.AVAILABLE,
) -> Candidate:
    """Candidate registered `minutes` after REGISTRATION_START."""
    return Candidate(
        candidate_id=uuid4(),
        profile_id=profile_id,
        seniority=seniority,
        languages=frozenset(languages),
        expertises=frozenset(expertises),
        availability=availability,
        created_at=REGISTRATION_START + timedelta(minutes=minutes),
    )


@pytest.fixture
def registry() -> Dict[str, Candidate]:
    """
    Candidate registry, keyed by a readable name.

    alice, bob, carol: Backend / senior / French (registered in that order)
    dave: Backend / senior / French but paused
    erin: Backend / junior / French
    frank: Data analyst / senior / French
    gina: Backend / senior / English only
    """
    return {
        "alice": make_candidate(0, languages=(FRENCH, ENGLISH), expertises=(PYTHON, POSTGRESQL)),
        "bob": make_candidate(10, languages=(FRENCH,), expertises=(PYTHON,)),
        "carol": make_candidate(20, languages=(FRENCH, GERMAN), expertises=(PYTHON,)),
        "dave": make_candidate(5, availability=Availability.PAUSED),
        "erin": make_candidate(1, seniority=Seniority.JUNIOR),
        "frank": make_candidate(2, profile_id=DATA_ANALYST),
        "gina": make_candidate(3, languages=(ENGLISH,)),
    }


def seed_store(store: InMemoryBookingStore, registry: Dict[str, Candidate]) -> InMemoryBookingStore:
    store.load_catalog(
        profiles=[
            HRProfile(profile_id=BACKEND, name="Backend developer", category_name="Engineering"),
            HRProfile(profile_id=DATA_ANALYST, name="Data analyst", category_name="Data"),
        ],
        languages=[
            HRLanguage(language_id=FRENCH, name="French"),
            HRLanguage(language_id=ENGLISH, name="English"),
            HRLanguage(language_id=GERMAN, name="German"),
        ],
        expertises=[
            HRExpertise(expertise_id=PYTHON, name="Python"),
            HRExpertise(expertise_id=POSTGRESQL, name="PostgreSQL"),
        ],
    )
    store.candidates.update({c.candidate_id: c for c in registry.values()})
    return store


@pytest.fixture
def booking_store(registry) -> InMemoryBookingStore:
    """In-memory booking store with the catalog and registry loaded."""
    return seed_store(InMemoryBookingStore(), registry)


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def dispatcher(recording_sink) -> NotificationDispatcher:
    return NotificationDispatcher([recording_sink])


@pytest.fixture
def machine(booking_store, dispatcher) -> BookingStateMachine:
    """State machine over the seeded in-memory store."""
    return BookingStateMachine(booking_store, dispatcher=dispatcher)


@pytest.fixture
def project_service(machine) -> ProjectService:
    return ProjectService(machine)


@pytest.fixture
def client_actor() -> Actor:
    return Actor(actor_id="client-1", role=ActorRole.CLIENT)


@pytest.fixture
def candidate_actor() -> Actor:
    return Actor(actor_id="candidate-portal", role=ActorRole.CANDIDATE)


@pytest.fixture
def backend_senior_fr() -> RequestSnapshot:
    """Seat requirements: Backend, senior, French."""
    return RequestSnapshot(
        profile_id=BACKEND,
        seniority=Seniority.SENIOR,
        languages=frozenset({FRENCH}),
        calculated_price=600.0,
    )


@pytest.fixture
def seat_factory(project_service, client_actor, backend_senior_fr):
    """
    Coroutine factory creating a project with one seat per snapshot.

    Usage:
        project, assignments = await seat_factory()
        project, assignments = await seat_factory(snapshot_a, snapshot_b)
    """

    async def _create(*snapshots: RequestSnapshot):
        project = await project_service.create_project("Test project", client_actor)
        assignments = []
        for snapshot in snapshots or (backend_senior_fr,):
            result = await project_service.add_seat(project.project_id, snapshot, client_actor)
            assignments.append(result.assignment)
        return project, assignments

    return _create


@pytest.fixture
def searching_seat(machine, seat_factory, client_actor):
    """Coroutine factory: a one-seat project whose assignment is already searching."""

    async def _create(snapshot: RequestSnapshot = None):
        project, assignments = await seat_factory(*([snapshot] if snapshot else []))
        result = await machine.open_search(assignments[0].request_id, client_actor)
        return project, result.assignment, result.eligible_candidates

    return _create
