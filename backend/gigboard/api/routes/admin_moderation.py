"""Admin Routes — project moderation, account moderation, platform statistics.

Invariants:
    - Every route requires an ADMIN actor; reads need MODERATOR or SUPPORT,
      mutations need MODERATOR (SUPER_ADMIN passes both)
    - Bulk review reports skipped ids instead of failing the batch
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from gigboard.api.deps import (
    get_admin, get_project_service, get_read_views, get_user_admin_service,
)
from gigboard.core.project_lifecycle import VIEW_PERMISSIONS, require_permission
from gigboard.models import Admin
from gigboard.schemas.projects import BulkReviewRequest, ProjectReview
from gigboard.services.project_service import ProjectService
from gigboard.services.read_views import ReadViews, project_dict, user_dict
from gigboard.services.user_admin import UserAdminService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/projects/pending")
async def pending_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: Admin = Depends(get_admin),
    views: ReadViews = Depends(get_read_views),
):
    require_permission(admin.permissions, VIEW_PERMISSIONS)
    read = await views.pending_projects(page, limit)
    return {**read.data, "cached": read.cached}


@router.post("/projects/bulk-review")
async def bulk_review(
    body: BulkReviewRequest,
    admin: Admin = Depends(get_admin),
    service: ProjectService = Depends(get_project_service),
):
    result = await service.bulk_review_projects(
        admin, body.project_ids, body.action, body.rejected_reason,
    )
    return {
        "message": f"{len(result.updated)} project(s) moved to {result.status.value}",
        "status": result.status.value,
        "updated": [project_dict(p) for p in result.updated],
        "skipped_ids": [str(pid) for pid in result.skipped_ids],
        "rejected_reason": result.rejected_reason,
    }


@router.post("/projects/{project_id}/review")
async def review_project(
    project_id: UUID,
    body: ProjectReview,
    admin: Admin = Depends(get_admin),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.review_project(
        admin, project_id, body.action, body.rejected_reason,
    )
    return {"message": f"Project {project.status.lower()}", "project": project_dict(project)}


@router.post("/projects/{project_id}/toggle-featured")
async def toggle_featured(
    project_id: UUID,
    admin: Admin = Depends(get_admin),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.toggle_featured(admin, project_id)
    return {"is_featured": project.is_featured, "project": project_dict(project)}


@router.post("/users/{user_id}/toggle-status")
async def toggle_user_status(
    user_id: UUID,
    admin: Admin = Depends(get_admin),
    service: UserAdminService = Depends(get_user_admin_service),
):
    user = await service.toggle_user_status(admin, user_id)
    return {
        "message": f"User {'activated' if user.is_active else 'suspended'} successfully",
        "user": user_dict(user),
    }


@router.post("/users/{user_id}/toggle-verified")
async def toggle_user_verified(
    user_id: UUID,
    admin: Admin = Depends(get_admin),
    service: UserAdminService = Depends(get_user_admin_service),
):
    user = await service.toggle_user_verified(admin, user_id)
    return {"is_verified": user.is_verified, "user": user_dict(user)}


@router.get("/dashboard/stats")
async def dashboard_stats(
    admin: Admin = Depends(get_admin),
    views: ReadViews = Depends(get_read_views),
):
    require_permission(admin.permissions, VIEW_PERMISSIONS)
    read = await views.admin_dashboard_stats()
    return {"stats": read.data, "cached": read.cached}


@router.get("/users")
async def list_users(
    role: str | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Admin = Depends(get_admin),
    views: ReadViews = Depends(get_read_views),
):
    require_permission(admin.permissions, VIEW_PERMISSIONS)
    read = await views.admin_users(role, is_active, search, page, limit)
    return {**read.data, "cached": read.cached}


@router.get("/projects/{project_id}/review-details")
async def project_review_details(
    project_id: UUID,
    admin: Admin = Depends(get_admin),
    views: ReadViews = Depends(get_read_views),
):
    require_permission(admin.permissions, VIEW_PERMISSIONS)
    read = await views.project_review(project_id)
    return {"project": read.data, "cached": read.cached}


@router.get("/projects/{project_id}/activity")
async def project_activity(
    project_id: UUID,
    admin: Admin = Depends(get_admin),
    views: ReadViews = Depends(get_read_views),
):
    require_permission(admin.permissions, VIEW_PERMISSIONS)
    read = await views.project_activity(project_id)
    return {**read.data, "cached": read.cached}
