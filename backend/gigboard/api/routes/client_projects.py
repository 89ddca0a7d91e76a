"""Client Routes — post projects, pick a freelancer, close the engagement.

Invariants:
    - Every route requires a CLIENT actor (get_client)
    - Mutations delegate to ProjectService / ApplicationService / ProfileService;
      reads to ReadViews
    - Ownership failures surface as 404 from the services
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import (
    get_application_service, get_client, get_profile_service, get_project_service,
    get_read_views,
)
from gigboard.models import Client
from gigboard.schemas.accounts import ClientProfileUpdate
from gigboard.schemas.projects import (
    CompletionRejection, ProjectCreate,
)
from gigboard.services.application_service import ApplicationService
from gigboard.services.profiles import ProfileService
from gigboard.services.project_service import ProjectService
from gigboard.services.read_views import (
    ReadViews, application_dict, client_dict, project_dict, user_dict,
)

router = APIRouter(prefix="/api/v1/client", tags=["client"])


@router.post("/projects", status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    client: Client = Depends(get_client),
    service: ProjectService = Depends(get_project_service),
):
    """Post a project. It waits in ADMIN_VERIFICATION until an admin reviews it."""
    project = await service.create_project(client, **body.model_dump())
    return {
        "message": "Project created and submitted for admin verification",
        "project": project_dict(project),
    }


@router.get("/projects")
async def list_projects(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    client: Client = Depends(get_client),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.client_projects(client, status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/projects/{project_id}/applications")
async def list_project_applications(
    project_id: UUID,
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    client: Client = Depends(get_client),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.project_applications(client, project_id, status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/applications")
async def list_applications(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    client: Client = Depends(get_client),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.client_applications(client, status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.post("/projects/{project_id}/applications/{application_id}/approve")
async def approve_application(
    project_id: UUID,
    application_id: UUID,
    client: Client = Depends(get_client),
    service: ApplicationService = Depends(get_application_service),
):
    """Assign the project to the applicant; every other pending applicant is rejected."""
    result = await service.approve_application(client, project_id, application_id)
    return {
        "message": "Application approved and project assigned",
        "application": application_dict(result.application),
        "project": project_dict(result.project),
        "rejected_applications": result.rejected_siblings,
    }


@router.post("/projects/{project_id}/applications/{application_id}/reject")
async def reject_application(
    project_id: UUID,
    application_id: UUID,
    client: Client = Depends(get_client),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.reject_application(client, project_id, application_id)
    return {"message": "Application rejected", "application": application_dict(application)}


@router.post("/projects/{project_id}/completion/approve")
async def approve_completion(
    project_id: UUID,
    client: Client = Depends(get_client),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.approve_completion(client, project_id)
    return {"message": "Project marked as completed", "project": project_dict(project)}


@router.post("/projects/{project_id}/completion/reject")
async def reject_completion(
    project_id: UUID,
    body: CompletionRejection,
    client: Client = Depends(get_client),
    service: ProjectService = Depends(get_project_service),
):
    project, reason = await service.reject_completion(
        client, project_id, body.rejection_reason,
    )
    return {
        "message": "Completion request rejected; project is back in progress",
        "project": project_dict(project),
        "rejection_reason": reason,
    }


@router.get("/dashboard")
async def dashboard(
    client: Client = Depends(get_client),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.client_dashboard(client)
    return {"dashboard": read.data, "cached": read.cached}


@router.get("/profile")
async def profile(
    client: Client = Depends(get_client),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.client_profile(client)
    return {**read.data, "cached": read.cached}


@router.put("/profile")
async def update_profile(
    body: ClientProfileUpdate,
    client: Client = Depends(get_client),
    service: ProfileService = Depends(get_profile_service),
):
    client = await service.update_client_profile(client, **body.model_dump(exclude_unset=True))
    return {
        "message": "Profile updated",
        "user": user_dict(client.user),
        "client": client_dict(client),
    }
