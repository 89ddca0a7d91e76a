"""Freelancer Routes — the freelancer's own applications, deliveries and profile."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import (
    get_application_service, get_freelancer, get_profile_service, get_project_service,
    get_read_views,
)
from gigboard.models import Freelancer
from gigboard.schemas.accounts import AvailabilityUpdate, FreelancerProfileUpdate
from gigboard.schemas.projects import ApplicationCreate
from gigboard.services.application_service import ApplicationService
from gigboard.services.profiles import ProfileService
from gigboard.services.project_service import ProjectService
from gigboard.services.read_views import (
    ReadViews, application_dict, freelancer_dict, project_dict, user_dict,
)

router = APIRouter(prefix="/api/v1/freelancer", tags=["freelancer"])


@router.post("/projects/{project_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply(
    project_id: UUID,
    body: ApplicationCreate,
    freelancer: Freelancer = Depends(get_freelancer),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.apply(
        freelancer, project_id, body.proposal, body.cover_letter,
    )
    return {
        "message": "Application submitted successfully",
        "application": application_dict(application),
    }


@router.post("/projects/{project_id}/request-completion")
async def request_completion(
    project_id: UUID,
    freelancer: Freelancer = Depends(get_freelancer),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.request_completion(freelancer, project_id)
    return {
        "message": "Completion requested; waiting for client approval",
        "project": project_dict(project),
    }


@router.get("/projects")
async def list_projects(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    freelancer: Freelancer = Depends(get_freelancer),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.freelancer_projects(freelancer, status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/applications")
async def list_applications(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    freelancer: Freelancer = Depends(get_freelancer),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.freelancer_applications(freelancer, status_filter, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/dashboard")
async def dashboard(
    freelancer: Freelancer = Depends(get_freelancer),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.freelancer_dashboard(freelancer)
    return {"dashboard": read.data, "cached": read.cached}


@router.get("/profile")
async def profile(
    freelancer: Freelancer = Depends(get_freelancer),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.freelancer_profile(freelancer)
    return {**read.data, "cached": read.cached}


@router.get("/rating-stats")
async def rating_stats(
    freelancer: Freelancer = Depends(get_freelancer),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.freelancer_rating_stats(freelancer)
    return {"stats": read.data, "cached": read.cached}


@router.put("/profile")
async def update_profile(
    body: FreelancerProfileUpdate,
    freelancer: Freelancer = Depends(get_freelancer),
    service: ProfileService = Depends(get_profile_service),
):
    freelancer = await service.update_freelancer_profile(
        freelancer, **body.model_dump(exclude_unset=True),
    )
    return {
        "message": "Profile updated",
        "user": user_dict(freelancer.user),
        "freelancer": freelancer_dict(freelancer),
    }


@router.patch("/availability")
async def update_availability(
    body: AvailabilityUpdate,
    freelancer: Freelancer = Depends(get_freelancer),
    service: ProfileService = Depends(get_profile_service),
):
    freelancer = await service.update_availability(freelancer, body.availability)
    return {"availability": freelancer.availability}
