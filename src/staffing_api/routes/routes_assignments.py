"""Seat and assignment endpoints: search, offer, accept, decline, cancel, complete, requirement changes."""

from typing import List
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from loguru import logger

from staffing_api.booking.models import Actor
from staffing_api.booking.project_service import ProjectService
from staffing_api.booking.state_machine import BookingStateMachine
from staffing_api.dependencies import get_actor
from staffing_api.dependencies import get_booking_machine
from staffing_api.dependencies import get_project_service
from staffing_api.schemas.schemas_booking import AcceptRequest
from staffing_api.schemas.schemas_booking import AssignmentListResponse
from staffing_api.schemas.schemas_booking import AssignmentResponse
from staffing_api.schemas.schemas_booking import ChangeImpactResponse
from staffing_api.schemas.schemas_booking import ChangeRequirementsRequest
from staffing_api.schemas.schemas_booking import EligibleCandidatesResponse
from staffing_api.schemas.schemas_booking import OfferRequest
from staffing_api.schemas.schemas_booking import ReasonRequest
from staffing_api.schemas.schemas_booking import TransitionResponse

ROUTER_SEATS = APIRouter(tags=["Seats"], prefix="/seats")
ROUTER_ASSIGNMENTS = APIRouter(tags=["Assignments"], prefix="/assignments")

_SEAT_TAKEN = {
    409: {
        "description": "Lost a race for the seat, or the command is not legal in the current status",
        "content": {
            "application/json": {"example": {"detail": "Someone else already took this", "error_type": "StaleOffer"}}
        },
    }
}


def _log_command(request: Request, command: str, actor: Actor, **fields) -> None:
    logger.info(
        f"Booking command {command}",
        command=command,
        actor_id=actor.actor_id,
        actor_role=actor.role.value,
        method=request.method,
        path=request.url.path,
        **{k: str(v) for k, v in fields.items()},
    )


##########################
# Seats


@ROUTER_SEATS.post("/{request_id}/search", responses=_SEAT_TAKEN)
async def open_search(
    request: Request,
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Open the search for a draft seat and list the eligible candidates."""
    _log_command(request, "open_search", actor, request_id=request_id)
    result = await machine.open_search(request_id, actor)
    message = f"Search opened, {len(result.eligible_candidates)} eligible candidate(s)"
    return TransitionResponse.from_result(message, result)


@ROUTER_SEATS.get("/{request_id}/history")
async def get_seat_history(
    request_id: UUID,
    service: ProjectService = Depends(get_project_service),
) -> AssignmentListResponse:
    """Assignment chain of the seat, oldest first."""
    history = await service.get_seat_history(request_id)
    return AssignmentListResponse(
        Message=f"Fetched {len(history)} assignments!",
        Count=len(history),
        Assignments=[AssignmentResponse.from_model(a) for a in history],
    )


@ROUTER_SEATS.get("/{request_id}/candidates")
async def preview_candidates(
    request_id: UUID,
    service: ProjectService = Depends(get_project_service),
) -> EligibleCandidatesResponse:
    """Candidates the seat would be offered to right now."""
    candidate_ids: List[UUID] = await service.preview_candidates(request_id)
    return EligibleCandidatesResponse(
        Message=f"Found {len(candidate_ids)} eligible candidates!",
        Count=len(candidate_ids),
        CandidateIds=candidate_ids,
    )


##########################
# Assignments


@ROUTER_ASSIGNMENTS.get("/{assignment_id}")
async def get_assignment(
    assignment_id: UUID,
    service: ProjectService = Depends(get_project_service),
) -> AssignmentResponse:
    """Get an assignment."""
    return AssignmentResponse.from_model(await service.get_assignment(assignment_id))


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/offer", responses=_SEAT_TAKEN)
async def offer(
    request: Request,
    assignment_id: UUID,
    body: OfferRequest,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Offer a searching seat to one eligible candidate."""
    _log_command(request, "offer", actor, assignment_id=assignment_id, candidate_id=body.candidate_id)
    result = await machine.offer(assignment_id, body.candidate_id, actor)
    return TransitionResponse.from_result("Offer sent", result)


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/accept", responses=_SEAT_TAKEN)
async def accept(
    request: Request,
    assignment_id: UUID,
    body: AcceptRequest,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Accept a pending offer as the offered candidate."""
    _log_command(request, "accept", actor, assignment_id=assignment_id, candidate_id=body.candidate_id)
    result = await machine.accept(assignment_id, body.candidate_id, actor)
    return TransitionResponse.from_result("Offer accepted", result)


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/decline", responses=_SEAT_TAKEN)
async def decline(
    request: Request,
    assignment_id: UUID,
    body: ReasonRequest,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Decline a pending offer; the seat is reopened immediately."""
    _log_command(request, "decline", actor, assignment_id=assignment_id, reason=body.reason.value)
    result = await machine.decline(assignment_id, body.reason, actor, candidate_id=body.candidate_id)
    return TransitionResponse.from_result("Offer declined, seat reopened", result)


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/cancel", responses=_SEAT_TAKEN)
async def cancel(
    request: Request,
    assignment_id: UUID,
    body: ReasonRequest,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Cancel an assignment. Cancelling an already retired assignment is a no-op."""
    _log_command(request, "cancel", actor, assignment_id=assignment_id, reason=body.reason.value)
    result = await machine.cancel(assignment_id, body.reason, actor)
    message = "Assignment cancelled" if result.changed else "Assignment already retired"
    return TransitionResponse.from_result(message, result)


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/complete", responses=_SEAT_TAKEN)
async def complete(
    request: Request,
    assignment_id: UUID,
    body: ReasonRequest,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Complete an accepted assignment."""
    _log_command(request, "complete", actor, assignment_id=assignment_id, reason=body.reason.value)
    result = await machine.complete(assignment_id, body.reason, actor)
    return TransitionResponse.from_result("Assignment completed", result)


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/reopen", responses=_SEAT_TAKEN)
async def reopen(
    request: Request,
    assignment_id: UUID,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Start a new search after a cancelled, declined or completed assignment."""
    _log_command(request, "reopen", actor, assignment_id=assignment_id)
    result = await machine.reopen(assignment_id, actor)
    return TransitionResponse.from_result("Seat reopened", result)


@ROUTER_ASSIGNMENTS.post("/{assignment_id}/requirements/analyze")
async def analyze_requirement_change(
    assignment_id: UUID,
    body: ChangeRequirementsRequest,
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> ChangeImpactResponse:
    """Report whether a requirement change would force a new search. Writes nothing."""
    impact = await machine.analyze_requirement_change(assignment_id, body.to_changes())
    return ChangeImpactResponse.from_model(impact)


@ROUTER_ASSIGNMENTS.put("/{assignment_id}/requirements", responses=_SEAT_TAKEN)
async def change_requirements(
    request: Request,
    assignment_id: UUID,
    body: ChangeRequirementsRequest,
    actor: Actor = Depends(get_actor),
    machine: BookingStateMachine = Depends(get_booking_machine),
) -> TransitionResponse:
    """Change the seat's requirements; the current assignment is retired and a new one chained."""
    _log_command(request, "change_requirements", actor, assignment_id=assignment_id)
    result = await machine.change_requirements(assignment_id, body.to_changes(), actor)
    message = "Requirements changed" if result.changed else "No change needed"
    return TransitionResponse.from_result(message, result)
