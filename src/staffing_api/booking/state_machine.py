"""
Booking State Machine

Single authority over assignment status. Every transition goes through one of
the commands below; nothing else writes the status column.

    draft ──open_search──> searching ──offer──> pending_acceptance ──accept──> accepted ──complete──> completed
                                                        │
                                                        └──decline──> declined  (seat reopened: new searching row)

    any non-terminal ──cancel──> cancelled

Each command runs in one store transaction:
    1. read and validate the current row
    2. compare-and-swap (assignment_id, expected_status) -> new fields
    3. reopen the seat when the command requires it
    4. write the audit trail and recompute the project status
and, after commit, hands its events to the notification dispatcher.

Failures are raised as BookingError subclasses. Nothing is retried here; a
caller that loses a race gets AlreadyClaimed or StaleOffer and decides itself.
"""

from datetime import datetime
from datetime import timezone
from typing import Awaitable
from typing import Callable
from typing import List
from typing import Optional
from typing import Set
from typing import Tuple
from uuid import UUID
from uuid import uuid4

from loguru import logger

from staffing_api.booking.enums import OWNER_HELD_STATUSES
from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import CompletionReason
from staffing_api.booking.enums import EntityType
from staffing_api.booking.enums import EventKind
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.exceptions import AlreadyClaimed
from staffing_api.booking.exceptions import InvalidTransition
from staffing_api.booking.exceptions import NotEligible
from staffing_api.booking.exceptions import NotFound
from staffing_api.booking.exceptions import StaleOffer
from staffing_api.booking.matcher import Matcher
from staffing_api.booking.matcher import missing_requirements
from staffing_api.booking.matcher import validate_snapshot
from staffing_api.booking.models import Actor
from staffing_api.booking.models import Assignment
from staffing_api.booking.models import BookingEvent
from staffing_api.booking.models import ChangeImpact
from staffing_api.booking.models import Project
from staffing_api.booking.models import RequestSnapshot
from staffing_api.booking.models import RequirementChanges
from staffing_api.booking.models import TransitionResult
from staffing_api.booking.notifications import NotificationDispatcher
from staffing_api.booking.readiness import ReadinessAggregator
from staffing_api.booking.store import BookingSession
from staffing_api.booking.store import BookingStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def chain_order(lineage: List[Assignment]) -> List[Assignment]:
    """
    Order a seat's assignments by following previous_assignment_id from the root.

    Rows unreachable from the root (a corrupted chain) are appended at the end
    in creation order so they stay visible.
    """
    successors = {a.previous_assignment_id: a for a in lineage if a.previous_assignment_id is not None}
    roots = [a for a in lineage if a.previous_assignment_id is None]

    ordered: List[Assignment] = []
    seen: Set[UUID] = set()
    current = roots[0] if roots else None
    while current is not None and current.assignment_id not in seen:
        ordered.append(current)
        seen.add(current.assignment_id)
        current = successors.get(current.assignment_id)

    ordered.extend(a for a in lineage if a.assignment_id not in seen)
    return ordered


def chain_head(lineage: List[Assignment]) -> Optional[Assignment]:
    """The most recent assignment of a seat: the only one that may still change."""
    referenced = {a.previous_assignment_id for a in lineage if a.previous_assignment_id is not None}
    heads = [a for a in lineage if a.assignment_id not in referenced]
    if not heads:
        return None
    return max(heads, key=lambda a: a.created_at)


def declined_candidates(lineage: List[Assignment]) -> Set[UUID]:
    """Candidates who already declined this seat; reopened searches skip them."""
    return {a.candidate_id for a in lineage if a.status == BookingStatus.DECLINED and a.candidate_id is not None}


def _snapshot_requirements_differ(old: RequestSnapshot, new: RequestSnapshot) -> bool:
    return (
        old.profile_id != new.profile_id
        or old.seniority != new.seniority
        or old.languages != new.languages
        or old.expertises != new.expertises
    )


class BookingStateMachine:
    """Commands over the assignment lifecycle."""

    def __init__(
        self,
        store: BookingStore,
        matcher: Optional[Matcher] = None,
        aggregator: Optional[ReadinessAggregator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.store = store
        self.matcher = matcher or Matcher()
        self.aggregator = aggregator or ReadinessAggregator()
        self.dispatcher = dispatcher or NotificationDispatcher()

    # ════════════════════════════════════════════════════════════════════════
    # Transaction plumbing
    # ════════════════════════════════════════════════════════════════════════

    async def run(self, command: Callable[[BookingSession], Awaitable[TransitionResult]]) -> TransitionResult:
        """Run a command in one transaction and dispatch its events after commit."""
        async with self.store.transaction() as session:
            result = await command(session)
        if result.events:
            self.dispatcher.dispatch(result.events)
        return result

    async def load_assignment(self, session: BookingSession, assignment_id: UUID) -> Assignment:
        assignment = await session.get_assignment(assignment_id)
        if assignment is None:
            raise NotFound(f"Assignment {assignment_id} not found", assignment_id=assignment_id)
        return assignment

    async def load_active_project(self, session: BookingSession, project_id: UUID, command: str) -> Project:
        """
        Lock a project that still accepts booking commands.

        Commands take the project row lock before any assignment write, in the
        same order as the owner actions in ProjectService.
        """
        project = await session.get_project(project_id, for_update=True)
        if project is None:
            raise NotFound(f"Project {project_id} not found")
        if project.status in OWNER_HELD_STATUSES:
            raise InvalidTransition(f"Cannot {command}: project {project_id} is {project.status.value}")
        return project

    async def finish(
        self,
        session: BookingSession,
        before: Optional[Assignment],
        after: Assignment,
        actor: Actor,
        action: str,
        events: List[BookingEvent],
    ) -> ProjectStatus:
        """Audit the transition and recompute the project status in the same transaction."""
        await self.audit(session, before, after, actor, action)
        status, status_event = await self.aggregator.recompute(session, after.project_id)
        if status_event is not None:
            events.append(status_event)
        return status

    async def audit(
        self,
        session: BookingSession,
        before: Optional[Assignment],
        after: Assignment,
        actor: Actor,
        action: str,
    ) -> None:
        await session.write_audit(
            EntityType.ASSIGNMENT.value,
            after.assignment_id,
            action,
            actor.actor_id,
            {"status": before.status.value, "candidate_id": before.candidate_id} if before else None,
            {
                "status": after.status.value,
                "candidate_id": after.candidate_id,
                "completion_reason": after.completion_reason.value if after.completion_reason else None,
                "actor_role": actor.role.value,
            },
        )

    @staticmethod
    def _log_transition(before: Assignment, after: Assignment, actor: Actor) -> None:
        logger.info(
            f"Assignment {after.assignment_id} {before.status.value} -> {after.status.value}",
            assignment_id=str(after.assignment_id),
            project_id=str(after.project_id),
            request_id=str(after.request_id),
            from_status=before.status.value,
            to_status=after.status.value,
            candidate_id=str(after.candidate_id) if after.candidate_id else None,
            actor_id=actor.actor_id,
        )

    @staticmethod
    def _event(kind: EventKind, assignment: Assignment, **payload) -> BookingEvent:
        return BookingEvent(
            kind=kind,
            project_id=assignment.project_id,
            assignment_id=assignment.assignment_id,
            payload={k: (str(v) if isinstance(v, UUID) else v) for k, v in payload.items()},
        )

    # ════════════════════════════════════════════════════════════════════════
    # Seat reopen (shared by decline, cancel-with-reopen, reopen, requirement change)
    # ════════════════════════════════════════════════════════════════════════

    async def reopen_in_session(
        self,
        session: BookingSession,
        previous: Assignment,
        actor: Actor,
        events: List[BookingEvent],
        snapshot: Optional[RequestSnapshot] = None,
        status: BookingStatus = BookingStatus.SEARCHING,
        candidate_id: Optional[UUID] = None,
        offered_at: Optional[datetime] = None,
    ) -> Tuple[Assignment, List[UUID]]:
        """
        Chain a new assignment after a retired one.

        Args:
            session: Open booking session
            previous: Terminal chain head to link from
            actor: Who triggered the reopen
            events: Event list of the running command
            snapshot: Requirements for the new row (defaults to the previous snapshot)
            status: Initial status (searching, or draft / carried-over claim for requirement changes)
            candidate_id: Carried-over candidate for a carried-over claim
            offered_at: Carried-over offer time for a carried-over pending offer

        Returns:
            (new assignment, eligible candidate ids when a search was opened)
        """
        snapshot = snapshot or previous.snapshot
        eligible: List[UUID] = []
        if status == BookingStatus.SEARCHING:
            lineage = await session.list_by_request(previous.request_id)
            eligible = await self.matcher.find_eligible(session, snapshot, exclude=declined_candidates(lineage))

        now = utc_now()
        new_row = await session.insert_assignment(
            Assignment(
                assignment_id=uuid4(),
                project_id=previous.project_id,
                request_id=previous.request_id,
                snapshot=snapshot,
                status=status,
                candidate_id=candidate_id,
                previous_assignment_id=previous.assignment_id,
                offered_at=offered_at,
                created_at=now,
                updated_at=now,
            )
        )
        await self.audit(session, None, new_row, actor, "REOPENED")

        logger.info(
            f"Seat {previous.request_id} reopened: {previous.assignment_id} -> {new_row.assignment_id}",
            request_id=str(previous.request_id),
            project_id=str(previous.project_id),
            old_assignment_id=str(previous.assignment_id),
            new_assignment_id=str(new_row.assignment_id),
            status=status.value,
            eligible=len(eligible),
        )
        events.append(
            self._event(
                EventKind.SEAT_REOPENED,
                new_row,
                old_assignment_id=previous.assignment_id,
                new_assignment_id=new_row.assignment_id,
            )
        )
        if status == BookingStatus.SEARCHING:
            events.append(
                self._event(EventKind.SEARCH_OPENED, new_row, eligible_candidates=[str(c) for c in eligible])
            )
        return new_row, eligible

    async def retire_in_session(
        self,
        session: BookingSession,
        assignment: Assignment,
        reason: CompletionReason,
        actor: Actor,
        events: List[BookingEvent],
        complete_accepted: bool = False,
    ) -> Optional[Assignment]:
        """
        Move a live assignment to a terminal status.

        Accepted rows are completed when complete_accepted is set; every other
        live row is cancelled.

        Returns:
            The retired row, or None if the row was already terminal
        """
        if assignment.is_terminal:
            return None

        completing = complete_accepted and assignment.status == BookingStatus.ACCEPTED
        target = BookingStatus.COMPLETED if completing else BookingStatus.CANCELLED
        retired = await session.conditional_update(
            assignment.assignment_id,
            assignment.status,
            {"status": target, "completed_at": utc_now(), "completion_reason": reason},
        )
        if retired is None:
            current = await self.load_assignment(session, assignment.assignment_id)
            if current.is_terminal:
                return None
            raise InvalidTransition(
                f"Assignment {assignment.assignment_id} changed concurrently, retry",
                assignment_id=assignment.assignment_id,
            )

        self._log_transition(assignment, retired, actor)
        await self.audit(session, assignment, retired, actor, target.value.upper())
        kind = EventKind.SEAT_COMPLETED if completing else EventKind.SEAT_CANCELLED
        events.append(self._event(kind, retired, candidate_id=retired.candidate_id, reason=reason.value))
        return retired

    # ════════════════════════════════════════════════════════════════════════
    # Commands
    # ════════════════════════════════════════════════════════════════════════

    async def open_search(self, request_id: UUID, actor: Actor) -> TransitionResult:
        """
        draft -> searching for the seat's current assignment.

        An empty candidate list is not an error: the assignment stays searching.
        """

        async def command(session: BookingSession) -> TransitionResult:
            request = await session.get_request(request_id)
            if request is None:
                raise NotFound(f"Seat {request_id} not found")
            await self.load_active_project(session, request.project_id, "open search")

            lineage = await session.list_by_request(request_id)
            head = chain_head(lineage)
            if head is None:
                raise NotFound(f"Seat {request_id} has no assignment")
            if head.status != BookingStatus.DRAFT:
                raise InvalidTransition(
                    f"Cannot open search: assignment {head.assignment_id} is {head.status.value}",
                    assignment_id=head.assignment_id,
                )

            eligible = await self.matcher.find_eligible(session, head.snapshot, exclude=declined_candidates(lineage))
            updated = await session.conditional_update(
                head.assignment_id, BookingStatus.DRAFT, {"status": BookingStatus.SEARCHING}
            )
            if updated is None:
                raise InvalidTransition(
                    f"Assignment {head.assignment_id} changed concurrently, retry",
                    assignment_id=head.assignment_id,
                )

            self._log_transition(head, updated, actor)
            events = [self._event(EventKind.SEARCH_OPENED, updated, eligible_candidates=[str(c) for c in eligible])]
            status = await self.finish(session, head, updated, actor, "SEARCH_OPENED", events)
            if not eligible:
                logger.info(
                    f"No eligible candidate yet for seat {request_id}, still searching",
                    assignment_id=str(updated.assignment_id),
                )
            return TransitionResult(assignment=updated, project_status=status, eligible_candidates=eligible, events=events)

        return await self.run(command)

    async def offer(self, assignment_id: UUID, candidate_id: UUID, actor: Actor) -> TransitionResult:
        """
        searching -> pending_acceptance for one candidate.

        Eligibility is re-checked now, not taken from the search, because the
        candidate's availability may have changed since.
        """

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            await self.load_active_project(session, assignment.project_id, "offer")

            lineage = await session.list_by_request(assignment.request_id)
            claimed = [a for a in lineage if a.status.is_claimed]
            if claimed:
                raise AlreadyClaimed(
                    f"Seat {assignment.request_id} is already {claimed[0].status.value} "
                    f"(assignment {claimed[0].assignment_id})",
                    assignment_id=assignment_id,
                )
            if assignment.status != BookingStatus.SEARCHING:
                raise InvalidTransition(
                    f"Cannot offer: assignment {assignment_id} is {assignment.status.value}",
                    assignment_id=assignment_id,
                )

            eligible = await self.matcher.find_eligible(
                session, assignment.snapshot, exclude=declined_candidates(lineage)
            )
            if candidate_id not in eligible:
                raise NotEligible(
                    f"Candidate {candidate_id} is not eligible for assignment {assignment_id}",
                    assignment_id=assignment_id,
                )

            updated = await session.conditional_update(
                assignment_id,
                BookingStatus.SEARCHING,
                {"status": BookingStatus.PENDING_ACCEPTANCE, "candidate_id": candidate_id, "offered_at": utc_now()},
            )
            if updated is None:
                logger.info("Offer lost race for seat", assignment_id=str(assignment_id), candidate_id=str(candidate_id))
                raise AlreadyClaimed(f"Assignment {assignment_id} was claimed concurrently", assignment_id=assignment_id)

            self._log_transition(assignment, updated, actor)
            events = [self._event(EventKind.SEAT_OFFERED, updated, candidate_id=candidate_id)]
            status = await self.finish(session, assignment, updated, actor, "OFFERED", events)
            return TransitionResult(assignment=updated, project_status=status, events=events)

        return await self.run(command)

    async def accept(self, assignment_id: UUID, candidate_id: UUID, actor: Actor) -> TransitionResult:
        """
        pending_acceptance -> accepted, only for the offered candidate.

        Two concurrent accepts resolve to exactly one winner; the other gets StaleOffer.
        """

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            await self.load_active_project(session, assignment.project_id, "accept")

            if assignment.status in (BookingStatus.DRAFT, BookingStatus.SEARCHING):
                raise InvalidTransition(
                    f"Cannot accept: assignment {assignment_id} is {assignment.status.value}",
                    assignment_id=assignment_id,
                )
            if assignment.status != BookingStatus.PENDING_ACCEPTANCE or assignment.candidate_id != candidate_id:
                raise StaleOffer(
                    f"Offer on assignment {assignment_id} is no longer open for candidate {candidate_id}",
                    assignment_id=assignment_id,
                )

            updated = await session.conditional_update(
                assignment_id,
                BookingStatus.PENDING_ACCEPTANCE,
                {"status": BookingStatus.ACCEPTED},
                expected_candidate_id=candidate_id,
            )
            if updated is None:
                logger.info("Accept lost race", assignment_id=str(assignment_id), candidate_id=str(candidate_id))
                raise StaleOffer(f"Offer on assignment {assignment_id} changed concurrently", assignment_id=assignment_id)

            self._log_transition(assignment, updated, actor)
            events = [self._event(EventKind.SEAT_ACCEPTED, updated, candidate_id=candidate_id)]
            status = await self.finish(session, assignment, updated, actor, "ACCEPTED", events)
            return TransitionResult(assignment=updated, project_status=status, events=events)

        return await self.run(command)

    async def decline(
        self,
        assignment_id: UUID,
        reason: CompletionReason,
        actor: Actor,
        candidate_id: Optional[UUID] = None,
    ) -> TransitionResult:
        """
        pending_acceptance -> declined, then reopen the seat in the same transaction.

        Args:
            assignment_id: Assignment pending acceptance
            reason: Completion reason stored on the declined row
            actor: Caller identity
            candidate_id: When given, the decline only applies to this candidate's offer
        """

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            await self.load_active_project(session, assignment.project_id, "decline")

            if assignment.status in (BookingStatus.DRAFT, BookingStatus.SEARCHING):
                raise InvalidTransition(
                    f"Cannot decline: assignment {assignment_id} is {assignment.status.value}",
                    assignment_id=assignment_id,
                )
            if assignment.status != BookingStatus.PENDING_ACCEPTANCE or (
                candidate_id is not None and assignment.candidate_id != candidate_id
            ):
                raise StaleOffer(f"Offer on assignment {assignment_id} is no longer open", assignment_id=assignment_id)

            declined = await session.conditional_update(
                assignment_id,
                BookingStatus.PENDING_ACCEPTANCE,
                {"status": BookingStatus.DECLINED, "completed_at": utc_now(), "completion_reason": reason},
                expected_candidate_id=assignment.candidate_id,
            )
            if declined is None:
                logger.info("Decline lost race", assignment_id=str(assignment_id))
                raise StaleOffer(f"Offer on assignment {assignment_id} changed concurrently", assignment_id=assignment_id)

            self._log_transition(assignment, declined, actor)
            events = [
                self._event(
                    EventKind.SEAT_DECLINED, declined, candidate_id=declined.candidate_id, reason=reason.value
                )
            ]
            await self.audit(session, assignment, declined, actor, "DECLINED")
            reopened, eligible = await self.reopen_in_session(session, declined, actor, events)
            status, status_event = await self.aggregator.recompute(session, declined.project_id)
            if status_event is not None:
                events.append(status_event)
            return TransitionResult(
                assignment=declined,
                project_status=status,
                reopened=reopened,
                eligible_candidates=eligible,
                events=events,
            )

        return await self.run(command)

    async def cancel(
        self,
        assignment_id: UUID,
        reason: CompletionReason,
        actor: Actor,
        reopen: bool = False,
        expected_status: Optional[BookingStatus] = None,
    ) -> TransitionResult:
        """
        Any non-terminal status -> cancelled. Idempotent.

        Cancelling a terminal assignment returns Ok with changed=False.

        Args:
            assignment_id: Assignment to cancel
            reason: Completion reason
            actor: Caller identity
            reopen: Chain a fresh searching assignment after the cancelled one
                (used by offer expiry)
            expected_status: Only cancel from this status; a live row in any
                other status raises StaleOffer
        """

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            project = await session.get_project(assignment.project_id, for_update=True)
            if project is None:
                raise NotFound(f"Project {assignment.project_id} not found")
            if expected_status is not None and assignment.is_live and assignment.status != expected_status:
                raise StaleOffer(
                    f"Assignment {assignment_id} is {assignment.status.value}, not {expected_status.value}",
                    assignment_id=assignment_id,
                )

            events: List[BookingEvent] = []
            cancelled = await self.retire_in_session(session, assignment, reason, actor, events)
            if cancelled is None:
                logger.debug("Cancel on terminal assignment is a no-op", assignment_id=str(assignment_id))
                current = await self.load_assignment(session, assignment_id)
                return TransitionResult(
                    assignment=current,
                    project_status=project.status,
                    changed=False,
                )

            reopened = None
            eligible: List[UUID] = []
            if reopen:
                await self.load_active_project(session, assignment.project_id, "reopen")
                reopened, eligible = await self.reopen_in_session(session, cancelled, actor, events)

            status, status_event = await self.aggregator.recompute(session, cancelled.project_id)
            if status_event is not None:
                events.append(status_event)
            return TransitionResult(
                assignment=cancelled,
                project_status=status,
                reopened=reopened,
                eligible_candidates=eligible,
                events=events,
            )

        return await self.run(command)

    async def complete(self, assignment_id: UUID, reason: CompletionReason, actor: Actor) -> TransitionResult:
        """accepted -> completed."""

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            await self.load_active_project(session, assignment.project_id, "complete")
            if assignment.status != BookingStatus.ACCEPTED:
                raise InvalidTransition(
                    f"Cannot complete: assignment {assignment_id} is {assignment.status.value}",
                    assignment_id=assignment_id,
                )

            events: List[BookingEvent] = []
            completed = await self.retire_in_session(
                session, assignment, reason, actor, events, complete_accepted=True
            )
            if completed is None:
                raise InvalidTransition(
                    f"Assignment {assignment_id} was retired concurrently", assignment_id=assignment_id
                )

            status, status_event = await self.aggregator.recompute(session, completed.project_id)
            if status_event is not None:
                events.append(status_event)
            return TransitionResult(assignment=completed, project_status=status, events=events)

        return await self.run(command)

    async def reopen(self, assignment_id: UUID, actor: Actor) -> TransitionResult:
        """Chain a fresh searching assignment after a terminal chain head."""

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            await self.load_active_project(session, assignment.project_id, "reopen")

            lineage = await session.list_by_request(assignment.request_id)
            head = chain_head(lineage)
            if head is None or head.assignment_id != assignment_id:
                raise InvalidTransition(
                    f"Assignment {assignment_id} was already superseded", assignment_id=assignment_id
                )
            if not assignment.is_terminal:
                raise AlreadyClaimed(
                    f"Seat {assignment.request_id} still has live assignment {assignment_id}",
                    assignment_id=assignment_id,
                )

            events: List[BookingEvent] = []
            reopened, eligible = await self.reopen_in_session(session, assignment, actor, events)
            status, status_event = await self.aggregator.recompute(session, assignment.project_id)
            if status_event is not None:
                events.append(status_event)
            return TransitionResult(
                assignment=assignment,
                project_status=status,
                reopened=reopened,
                eligible_candidates=eligible,
                events=events,
            )

        return await self.run(command)

    # ════════════════════════════════════════════════════════════════════════
    # Requirement changes
    # ════════════════════════════════════════════════════════════════════════

    async def _impact(
        self,
        session: BookingSession,
        assignment: Assignment,
        changes: RequirementChanges,
    ) -> ChangeImpact:
        new_snapshot = changes.apply_to(assignment.snapshot)
        old_snapshot = assignment.snapshot

        if not _snapshot_requirements_differ(old_snapshot, new_snapshot):
            return ChangeImpact(has_change=False, message="No change needed")

        if not assignment.status.is_claimed or assignment.candidate_id is None:
            return ChangeImpact(
                has_change=True,
                message="No candidate currently assigned, requirements can be changed freely",
            )

        impact = ChangeImpact(has_change=True, current_candidate_id=assignment.candidate_id)
        if new_snapshot.profile_id != old_snapshot.profile_id:
            impact.requires_rebooking = True
            impact.change_type = "profile_change"
            impact.message = f"Profile changes from {old_snapshot.profile_id} to {new_snapshot.profile_id}"
            return impact
        if new_snapshot.seniority != old_snapshot.seniority:
            impact.requires_rebooking = True
            impact.change_type = "seniority_change"
            impact.message = (
                f"Seniority changes from {old_snapshot.seniority.value} to {new_snapshot.seniority.value}"
            )
            return impact

        candidate = await session.get_candidate(assignment.candidate_id)
        impact.change_type = "skill_update"
        if candidate is None:
            impact.requires_rebooking = True
            impact.message = f"Candidate {assignment.candidate_id} is no longer registered"
            return impact

        missing = missing_requirements(candidate, new_snapshot)
        impact.missing_languages = missing["languages"]
        impact.missing_expertises = missing["expertises"]
        if impact.missing_languages or impact.missing_expertises:
            impact.requires_rebooking = True
            impact.message = "Current candidate lacks: " + ", ".join(
                sorted(impact.missing_languages | impact.missing_expertises)
            )
        else:
            impact.message = "Current candidate has every required skill"
        return impact

    async def analyze_requirement_change(self, assignment_id: UUID, changes: RequirementChanges) -> ChangeImpact:
        """Report what change_requirements would do, without writing anything."""
        async with self.store.transaction() as session:
            assignment = await self.load_assignment(session, assignment_id)
            return await self._impact(session, assignment, changes)

    async def change_requirements(
        self,
        assignment_id: UUID,
        changes: RequirementChanges,
        actor: Actor,
    ) -> TransitionResult:
        """
        Replace a seat's requirements.

        The current assignment is retired with requirements_changed and a new
        one is chained with the new snapshot:
        - carried-over claim (same candidate, same status) when the candidate
          still qualifies,
        - draft when the seat was still a draft,
        - searching otherwise.
        """

        async def command(session: BookingSession) -> TransitionResult:
            assignment = await self.load_assignment(session, assignment_id)
            await self.load_active_project(session, assignment.project_id, "change requirements")
            new_snapshot = changes.apply_to(assignment.snapshot)
            validate_snapshot(new_snapshot)

            if assignment.is_terminal:
                raise InvalidTransition(
                    f"Cannot change requirements: assignment {assignment_id} is {assignment.status.value}",
                    assignment_id=assignment_id,
                )

            impact = await self._impact(session, assignment, changes)
            if not impact.has_change:
                return TransitionResult(assignment=assignment, changed=False)

            events: List[BookingEvent] = []
            retired = await self.retire_in_session(
                session,
                assignment,
                CompletionReason.REQUIREMENTS_CHANGED,
                actor,
                events,
                complete_accepted=True,
            )
            if retired is None:
                raise InvalidTransition(
                    f"Assignment {assignment_id} was retired concurrently", assignment_id=assignment_id
                )

            if assignment.status.is_claimed and not impact.requires_rebooking:
                new_status = assignment.status
                carried_candidate = assignment.candidate_id
                offered_at = assignment.offered_at
            elif assignment.status == BookingStatus.DRAFT:
                new_status, carried_candidate, offered_at = BookingStatus.DRAFT, None, None
            else:
                new_status, carried_candidate, offered_at = BookingStatus.SEARCHING, None, None

            reopened, eligible = await self.reopen_in_session(
                session,
                retired,
                actor,
                events,
                snapshot=new_snapshot,
                status=new_status,
                candidate_id=carried_candidate,
                offered_at=offered_at,
            )
            logger.info(
                f"Requirements changed on seat {assignment.request_id}: {impact.message}",
                assignment_id=str(assignment_id),
                change_type=impact.change_type,
                requires_rebooking=impact.requires_rebooking,
            )
            status, status_event = await self.aggregator.recompute(session, assignment.project_id)
            if status_event is not None:
                events.append(status_event)
            return TransitionResult(
                assignment=retired,
                project_status=status,
                reopened=reopened,
                eligible_candidates=eligible,
                events=events,
            )

        return await self.run(command)
