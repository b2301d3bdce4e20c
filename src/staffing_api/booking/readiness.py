"""
Project Readiness Aggregator

Derives a project's coarse status from the statuses of its live assignments.
Runs inside the transaction of every assignment transition, after the project
row is locked, so a reader never sees a project status that disagrees with the
committed assignment statuses.
"""

from typing import Iterable
from typing import Optional
from typing import Tuple
from uuid import UUID

from loguru import logger

from staffing_api.booking.enums import OWNER_HELD_STATUSES
from staffing_api.booking.enums import BookingStatus
from staffing_api.booking.enums import EventKind
from staffing_api.booking.enums import ProjectStatus
from staffing_api.booking.exceptions import NotFound
from staffing_api.booking.models import BookingEvent
from staffing_api.booking.store import BookingSession

# Statuses of a project whose team was already started
_STARTED = frozenset({ProjectStatus.IN_PROGRESS, ProjectStatus.AWAITING_TEAM})


def derive_project_status(current: ProjectStatus, statuses: Iterable[BookingStatus]) -> ProjectStatus:
    """
    Pure readiness rule.

    Args:
        current: Project status before recomputation
        statuses: Booking statuses of every assignment of the project

    Returns:
        The derived project status:
        - owner-held statuses (paused, completed, archived, deleted) are kept
        - no live seat: unchanged
        - any seat not yet accepted: forming-team (awaiting-team once started)
        - every live seat accepted: ready (in-progress once started)
    """
    if current in OWNER_HELD_STATUSES:
        return current

    live = [s for s in statuses if not s.is_terminal]
    if not live:
        return current

    if all(s == BookingStatus.ACCEPTED for s in live):
        return ProjectStatus.IN_PROGRESS if current in _STARTED else ProjectStatus.READY

    # searching / pending_acceptance / draft: the team is not complete
    return ProjectStatus.AWAITING_TEAM if current in _STARTED else ProjectStatus.FORMING_TEAM


class ReadinessAggregator:
    """Recomputes and stores the derived project status."""

    async def recompute(
        self,
        session: BookingSession,
        project_id: UUID,
    ) -> Tuple[ProjectStatus, Optional[BookingEvent]]:
        """
        Recompute a project's status in the caller's transaction.

        Args:
            session: Open booking session
            project_id: Project to recompute

        Returns:
            (new status, ProjectStatusChanged event or None when unchanged)
        """
        project = await session.get_project(project_id, for_update=True)
        if project is None:
            raise NotFound(f"Project {project_id} not found")

        assignments = await session.list_by_project(project_id)
        new_status = derive_project_status(project.status, (a.status for a in assignments))

        if new_status == project.status:
            return new_status, None

        await session.set_project_status(project_id, new_status)
        logger.info(
            f"Project {project_id} status {project.status.value} -> {new_status.value}",
            project_id=str(project_id),
            old_status=project.status.value,
            new_status=new_status.value,
        )
        event = BookingEvent(
            kind=EventKind.PROJECT_STATUS_CHANGED,
            project_id=project_id,
            payload={"old_status": project.status.value, "new_status": new_status.value},
        )
        return new_status, event
