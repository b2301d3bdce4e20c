"""Project endpoints: creation, seats, owner actions and status queries."""

from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import Response
from fastapi import status
from loguru import logger

from staffing_api.booking.models import Actor
from staffing_api.booking.project_service import ProjectService
from staffing_api.dependencies import get_actor
from staffing_api.dependencies import get_project_service
from staffing_api.schemas.schemas_booking import AddSeatRequest
from staffing_api.schemas.schemas_booking import AssignmentListResponse
from staffing_api.schemas.schemas_booking import AssignmentResponse
from staffing_api.schemas.schemas_booking import CreateProjectRequest
from staffing_api.schemas.schemas_booking import ProjectResponse
from staffing_api.schemas.schemas_booking import ProjectStatusResponse
from staffing_api.schemas.schemas_booking import SeatListResponse
from staffing_api.schemas.schemas_booking import SeatResponse
from staffing_api.schemas.schemas_booking import TransitionResponse

ROUTER_PROJECTS = APIRouter(tags=["Projects"], prefix="/projects")

_NOT_FOUND = {
    status.HTTP_404_NOT_FOUND: {
        "description": "Project not found",
        "content": {"application/json": {"example": {"detail": "Project not found", "error_type": "NotFound"}}},
    }
}
_CONFLICT = {
    status.HTTP_409_CONFLICT: {
        "description": "Action not allowed in the current project status",
        "content": {
            "application/json": {"example": {"detail": "Cannot start project", "error_type": "InvalidTransition"}}
        },
    }
}


@ROUTER_PROJECTS.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: Request,
    body: CreateProjectRequest,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    """Create a project in forming-team status."""
    logger.info("Creating project", title=body.title, method=request.method, path=request.url.path)
    project = await service.create_project(body.title, actor)
    return ProjectResponse.from_model(project)


@ROUTER_PROJECTS.get("/{project_id}", responses=_NOT_FOUND)
async def get_project(project_id: UUID, service: ProjectService = Depends(get_project_service)) -> ProjectResponse:
    """Get a project."""
    return ProjectResponse.from_model(await service.get_project(project_id))


@ROUTER_PROJECTS.get("/{project_id}/status", responses=_NOT_FOUND)
async def get_project_status(
    project_id: UUID,
    service: ProjectService = Depends(get_project_service),
) -> ProjectStatusResponse:
    """Current project status (derived from its assignments unless owner-held)."""
    project_status = await service.get_project_status(project_id)
    return ProjectStatusResponse(ProjectId=project_id, Status=project_status.value)


##########################


@ROUTER_PROJECTS.post(
    "/{project_id}/seats",
    status_code=status.HTTP_201_CREATED,
    responses={
        **_NOT_FOUND,
        **_CONFLICT,
        status.HTTP_400_BAD_REQUEST: {
            "description": "Seat requirements incomplete",
            "content": {
                "application/json": {
                    "example": {"detail": "Seat requirements must specify a profile", "error_type": "InvalidRequest"}
                }
            },
        },
    },
)
async def add_seat(
    request: Request,
    project_id: UUID,
    body: AddSeatRequest,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> TransitionResponse:
    """Add a seat to the project; its first assignment starts as draft."""
    logger.info(
        "Adding seat",
        project_id=str(project_id),
        profile_id=body.profile_id,
        seniority=body.seniority.value,
        method=request.method,
        path=request.url.path,
    )
    result = await service.add_seat(project_id, body.to_snapshot(), actor)
    return TransitionResponse.from_result("Seat added", result)


@ROUTER_PROJECTS.get("/{project_id}/seats", responses=_NOT_FOUND)
async def list_seats(project_id: UUID, service: ProjectService = Depends(get_project_service)) -> SeatListResponse:
    """Seats of the project with their assignment chains."""
    seats = await service.list_seats(project_id)
    items = [
        SeatResponse(
            RequestId=request_id,
            CurrentStatus=chain[-1].status.value,
            History=[AssignmentResponse.from_model(a) for a in chain],
        )
        for request_id, chain in seats.items()
    ]
    return SeatListResponse(Message=f"Fetched {len(items)} seats!", Count=len(items), Seats=items)


@ROUTER_PROJECTS.get("/{project_id}/assignments", responses=_NOT_FOUND)
async def list_assignments(
    project_id: UUID,
    service: ProjectService = Depends(get_project_service),
) -> AssignmentListResponse:
    """Every assignment of the project, oldest first."""
    assignments = await service.list_assignments(project_id)
    return AssignmentListResponse(
        Message=f"Fetched {len(assignments)} assignments!",
        Count=len(assignments),
        Assignments=[AssignmentResponse.from_model(a) for a in assignments],
    )


##########################
# Owner actions


@ROUTER_PROJECTS.post("/{project_id}/start", responses={**_NOT_FOUND, **_CONFLICT})
async def start_project(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    """Start a ready project (ready -> in-progress)."""
    return ProjectResponse.from_model(await service.start(project_id, actor))


@ROUTER_PROJECTS.post("/{project_id}/pause", responses={**_NOT_FOUND, **_CONFLICT})
async def pause_project(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    """Put the project on hold."""
    return ProjectResponse.from_model(await service.pause(project_id, actor))


@ROUTER_PROJECTS.post("/{project_id}/resume", responses={**_NOT_FOUND, **_CONFLICT})
async def resume_project(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    """Resume a paused project."""
    return ProjectResponse.from_model(await service.resume(project_id, actor))


@ROUTER_PROJECTS.post("/{project_id}/complete", responses={**_NOT_FOUND, **_CONFLICT})
async def complete_project(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    """Complete the project: accepted seats are completed, the others cancelled."""
    return ProjectResponse.from_model(await service.complete_project(project_id, actor))


@ROUTER_PROJECTS.post("/{project_id}/archive", responses={**_NOT_FOUND, **_CONFLICT})
async def archive_project(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    """Archive the project and cancel its live seats."""
    return ProjectResponse.from_model(await service.archive(project_id, actor))


@ROUTER_PROJECTS.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def delete_project(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ProjectService = Depends(get_project_service),
):
    """Delete the project: live seats are cancelled, then seats and assignments removed."""
    await service.delete(project_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
