"""
Project Lifecycle

Project creation, seat creation, explicit owner actions and read queries.
Owner actions set the owner-held project statuses the readiness aggregator
never derives (paused, completed, archived, deleted) and retire the live
assignments through the state machine's retire path.
"""

from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID
from uuid import uuid4

from loguru import logger

from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import CompletionReason
from staffing_api.booking.enums import EntityType
from staffing_api.booking.enums import EventKind
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.exceptions import InvalidTransition
from staffing_api.booking.exceptions import NotFound
from staffing_api.booking.matcher import validate_snapshot
from staffing_api.booking.models import Actor
from staffing_api.booking.models import Assignment
from staffing_api.booking.models import BookingEvent
from staffing_api.booking.models import Project
from staffing_api.booking.models import RequestSnapshot
from staffing_api.booking.models import ResourceRequest
from staffing_api.booking.models import TransitionResult
from staffing_api.booking.readiness import derive_project_status
from staffing_api.booking.state_machine import BookingStateMachine
from staffing_api.booking.state_machine import chain_head
from staffing_api.booking.state_machine import chain_order
from staffing_api.booking.state_machine import declined_candidates
from staffing_api.booking.state_machine import utc_now
from staffing_api.booking.store import BookingSession

# Owner action -> statuses it may be applied from
_PAUSABLE = frozenset(
    {ProjectStatus.FORMING_TEAM, ProjectStatus.AWAITING_TEAM, ProjectStatus.READY, ProjectStatus.IN_PROGRESS}
)
_CLOSABLE = _PAUSABLE | {ProjectStatus.PAUSED}


class ProjectService:
    """Owner-facing project operations built on the booking state machine."""

    def __init__(self, machine: BookingStateMachine):
        self.machine = machine
        self.store = machine.store

    # ── Creation ────────────────────────────────────────────────────────────

    async def create_project(self, title: str, actor: Actor) -> Project:
        now = utc_now()
        project = Project(
            project_id=uuid4(),
            title=title,
            owner_id=actor.actor_id,
            status=ProjectStatus.FORMING_TEAM,
            created_at=now,
            updated_at=now,
        )
        async with self.store.transaction() as session:
            await session.insert_project(project)
            await session.write_audit(
                EntityType.PROJECT.value,
                project.project_id,
                "CREATED",
                actor.actor_id,
                None,
                {"title": title, "status": project.status.value},
            )

        logger.info(f"Project created: {project.project_id}", project_id=str(project.project_id), title=title)
        return project

    async def add_seat(self, project_id: UUID, snapshot: RequestSnapshot, actor: Actor) -> TransitionResult:
        """
        Create a seat and its first assignment in draft.

        Raises:
            InvalidRequest: Snapshot has no profile or no seniority
            NotFound: Unknown project
            InvalidTransition: Project is paused, completed, archived or deleted
        """
        validate_snapshot(snapshot)

        async def command(session: BookingSession) -> TransitionResult:
            await self.machine.load_active_project(session, project_id, "add seat")
            now = utc_now()
            request = await session.insert_request(
                ResourceRequest(request_id=uuid4(), project_id=project_id, snapshot=snapshot, created_at=now)
            )
            await session.write_audit(
                EntityType.RESOURCE_REQUEST.value,
                request.request_id,
                "CREATED",
                actor.actor_id,
                None,
                snapshot.model_dump(mode="json"),
            )
            assignment = await session.insert_assignment(
                Assignment(
                    assignment_id=uuid4(),
                    project_id=project_id,
                    request_id=request.request_id,
                    snapshot=snapshot,
                    status=BookingStatus.DRAFT,
                    created_at=now,
                    updated_at=now,
                )
            )
            events: List[BookingEvent] = []
            status = await self.machine.finish(session, None, assignment, actor, "CREATED", events)
            logger.info(
                f"Seat added to project {project_id}",
                project_id=str(project_id),
                request_id=str(request.request_id),
                assignment_id=str(assignment.assignment_id),
                profile_id=snapshot.profile_id,
                seniority=snapshot.seniority.value,
            )
            return TransitionResult(assignment=assignment, project_status=status, events=events)

        return await self.machine.run(command)

    # ── Owner actions ───────────────────────────────────────────────────────

    async def _load(self, session: BookingSession, project_id: UUID) -> Project:
        project = await session.get_project(project_id, for_update=True)
        if project is None or project.status == ProjectStatus.DELETED:
            raise NotFound(f"Project {project_id} not found")
        return project

    async def _set_status(
        self,
        session: BookingSession,
        project: Project,
        status: ProjectStatus,
        actor: Actor,
        action: str,
        events: List[BookingEvent],
    ) -> Project:
        updated = await session.set_project_status(project.project_id, status)
        await session.write_audit(
            EntityType.PROJECT.value,
            project.project_id,
            action,
            actor.actor_id,
            {"status": project.status.value},
            {"status": status.value},
        )
        if status != project.status:
            events.append(
                BookingEvent(
                    kind=EventKind.PROJECT_STATUS_CHANGED,
                    project_id=project.project_id,
                    payload={"old_status": project.status.value, "new_status": status.value, "action": action},
                )
            )
        logger.info(
            f"Project {project.project_id} {action.lower()}: {project.status.value} -> {status.value}",
            project_id=str(project.project_id),
            old_status=project.status.value,
            new_status=status.value,
            actor_id=actor.actor_id,
        )
        return updated

    async def _owner_action(self, project_id: UUID, actor: Actor, action: str, apply) -> Project:
        events: List[BookingEvent] = []
        async with self.store.transaction() as session:
            project = await self._load(session, project_id)
            updated = await apply(session, project, events)
        if events:
            self.machine.dispatcher.dispatch(events)
        return updated

    async def _retire_live(
        self,
        session: BookingSession,
        project_id: UUID,
        reason: CompletionReason,
        actor: Actor,
        events: List[BookingEvent],
        complete_accepted: bool,
    ) -> int:
        retired = 0
        for assignment in await session.list_by_project(project_id):
            if assignment.is_live:
                row = await self.machine.retire_in_session(
                    session, assignment, reason, actor, events, complete_accepted=complete_accepted
                )
                retired += row is not None
        return retired

    async def start(self, project_id: UUID, actor: Actor) -> Project:
        """ready -> in-progress."""

        async def apply(session, project, events):
            if project.status != ProjectStatus.READY:
                raise InvalidTransition(f"Cannot start project {project_id}: it is {project.status.value}")
            return await self._set_status(session, project, ProjectStatus.IN_PROGRESS, actor, "STARTED", events)

        return await self._owner_action(project_id, actor, "start", apply)

    async def pause(self, project_id: UUID, actor: Actor) -> Project:
        """Hold the project; booking commands other than cancel are refused while paused."""

        async def apply(session, project, events):
            if project.status not in _PAUSABLE:
                raise InvalidTransition(f"Cannot pause project {project_id}: it is {project.status.value}")
            return await self._set_status(session, project, ProjectStatus.PAUSED, actor, "PAUSED", events)

        return await self._owner_action(project_id, actor, "pause", apply)

    async def resume(self, project_id: UUID, actor: Actor) -> Project:
        """
        paused -> derived staffing status.

        The project resumes as forming-team or ready; a fully staffed project
        must be started again explicitly.
        """

        async def apply(session, project, events):
            if project.status != ProjectStatus.PAUSED:
                raise InvalidTransition(f"Cannot resume project {project_id}: it is {project.status.value}")
            assignments = await session.list_by_project(project_id)
            status = derive_project_status(ProjectStatus.FORMING_TEAM, (a.status for a in assignments))
            return await self._set_status(session, project, status, actor, "RESUMED", events)

        return await self._owner_action(project_id, actor, "resume", apply)

    async def complete_project(self, project_id: UUID, actor: Actor) -> Project:
        """Complete accepted seats, cancel every other live seat, mark the project completed."""

        async def apply(session, project, events):
            if project.status not in _CLOSABLE:
                raise InvalidTransition(f"Cannot complete project {project_id}: it is {project.status.value}")
            await self._retire_live(
                session, project_id, CompletionReason.PROJECT_COMPLETED, actor, events, complete_accepted=True
            )
            return await self._set_status(session, project, ProjectStatus.COMPLETED, actor, "COMPLETED", events)

        return await self._owner_action(project_id, actor, "complete", apply)

    async def archive(self, project_id: UUID, actor: Actor) -> Project:
        """Cancel every live seat and archive the project."""

        async def apply(session, project, events):
            if project.status == ProjectStatus.ARCHIVED:
                raise InvalidTransition(f"Project {project_id} is already archived")
            await self._retire_live(
                session, project_id, CompletionReason.CLIENT_REQUEST, actor, events, complete_accepted=False
            )
            return await self._set_status(session, project, ProjectStatus.ARCHIVED, actor, "ARCHIVED", events)

        return await self._owner_action(project_id, actor, "archive", apply)

    async def delete(self, project_id: UUID, actor: Actor) -> Project:
        """
        Cancel every live seat, then remove seats and assignments.

        The project row stays with status deleted so the audit trail keeps
        its reference.
        """

        async def apply(session, project, events):
            await self._retire_live(
                session, project_id, CompletionReason.CLIENT_REQUEST, actor, events, complete_accepted=False
            )
            removed = await session.destroy_project_assignments(project_id)
            logger.info(f"Removed {removed} assignments of project {project_id}", project_id=str(project_id))
            return await self._set_status(session, project, ProjectStatus.DELETED, actor, "DELETED", events)

        return await self._owner_action(project_id, actor, "delete", apply)

    # ── Queries ─────────────────────────────────────────────────────────────

    async def get_project(self, project_id: UUID) -> Project:
        async with self.store.transaction() as session:
            project = await session.get_project(project_id)
        if project is None or project.status == ProjectStatus.DELETED:
            raise NotFound(f"Project {project_id} not found")
        return project

    async def get_project_status(self, project_id: UUID) -> ProjectStatus:
        project = await self.get_project(project_id)
        return project.status

    async def get_assignment(self, assignment_id: UUID) -> Assignment:
        async with self.store.transaction() as session:
            return await self.machine.load_assignment(session, assignment_id)

    async def list_assignments(self, project_id: UUID) -> List[Assignment]:
        await self.get_project(project_id)
        async with self.store.transaction() as session:
            return await session.list_by_project(project_id)

    async def list_seats(self, project_id: UUID) -> Dict[UUID, List[Assignment]]:
        """Every seat of a project with its assignment chain, oldest first."""
        seats: Dict[UUID, List[Assignment]] = {}
        for assignment in await self.list_assignments(project_id):
            seats.setdefault(assignment.request_id, []).append(assignment)
        return {request_id: chain_order(lineage) for request_id, lineage in seats.items()}

    async def get_seat_history(self, request_id: UUID) -> List[Assignment]:
        """Assignment chain of one seat, following previous_assignment_id from the first row."""
        async with self.store.transaction() as session:
            if await session.get_request(request_id) is None:
                raise NotFound(f"Seat {request_id} not found")
            return chain_order(await session.list_by_request(request_id))

    async def preview_candidates(self, request_id: UUID) -> List[UUID]:
        """Candidates the seat's current assignment would be offered to right now."""
        async with self.store.transaction() as session:
            if await session.get_request(request_id) is None:
                raise NotFound(f"Seat {request_id} not found")
            lineage = await session.list_by_request(request_id)
            head: Optional[Assignment] = chain_head(lineage)
            if head is None:
                raise NotFound(f"Seat {request_id} has no assignment")
            return await self.machine.matcher.find_eligible(
                session, head.snapshot, exclude=declined_candidates(lineage)
            )
