"""Public Routes — anonymous read views: listings, featured profiles, platform stats.

Invariants:
    - No authentication; suspended users and their data are hidden (404 / filtered)
    - Every response carries `cached` so callers can tell hits from loads
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from gigboard.api.deps import get_read_views
from gigboard.services.read_views import ReadViews

router = APIRouter(prefix="/api/v1/public", tags=["public"])


@router.get("/projects")
async def available_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.available_projects(page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/projects/recent")
async def recent_projects(views: ReadViews = Depends(get_read_views)):
    read = await views.recent_projects()
    return {"projects": read.data, "cached": read.cached}


@router.get("/projects/featured")
async def featured_projects(views: ReadViews = Depends(get_read_views)):
    read = await views.featured_projects()
    return {"projects": read.data, "cached": read.cached}


@router.get("/projects/{project_id}")
async def project_detail(project_id: UUID, views: ReadViews = Depends(get_read_views)):
    read = await views.project_detail(project_id)
    return {"project": read.data, "cached": read.cached}


@router.get("/profiles/search")
async def search_profiles(
    query: str | None = Query(None, max_length=200),
    profile_type: str = Query("all", alias="type"),
    skills: str | None = Query(None, max_length=500),
    location: str | None = Query(None, max_length=120),
    min_rating: float | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    views: ReadViews = Depends(get_read_views),
):
    """Comma-separated skills match any of a freelancer's skills, case-insensitively."""
    read = await views.search_profiles(
        query=query,
        profile_type=profile_type,
        skills=skills.split(",") if skills else None,
        location=location,
        min_rating=min_rating,
        page=page,
        limit=limit,
    )
    return {**read.data, "cached": read.cached}


@router.get("/freelancers/featured")
async def featured_freelancers(views: ReadViews = Depends(get_read_views)):
    read = await views.featured_freelancers()
    return {"freelancers": read.data, "cached": read.cached}


@router.get("/clients/featured")
async def featured_clients(views: ReadViews = Depends(get_read_views)):
    read = await views.featured_clients()
    return {"clients": read.data, "cached": read.cached}


@router.get("/freelancers/{user_id}")
async def freelancer_profile(user_id: UUID, views: ReadViews = Depends(get_read_views)):
    read = await views.public_freelancer_profile(user_id)
    return {"freelancer": read.data, "cached": read.cached}


@router.get("/clients/{user_id}")
async def client_profile(user_id: UUID, views: ReadViews = Depends(get_read_views)):
    read = await views.public_client_profile(user_id)
    return {"client": read.data, "cached": read.cached}


@router.get("/stats")
async def platform_stats(views: ReadViews = Depends(get_read_views)):
    read = await views.platform_stats()
    return {"stats": read.data, "cached": read.cached}


@router.get("/users/{user_id}/ratings")
async def user_ratings(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.user_ratings(user_id, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/users/{user_id}/rating-summary")
async def user_rating_summary(user_id: UUID, views: ReadViews = Depends(get_read_views)):
    read = await views.user_rating_summary(user_id)
    return {"summary": read.data, "cached": read.cached}
