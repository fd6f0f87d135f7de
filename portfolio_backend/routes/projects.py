"""
Project endpoints.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from portfolio_backend.analytics import AnalyticsRepository
from portfolio_backend.dependencies import (
    get_analytics_repository,
    get_projects_repository,
    get_upload_service,
    require_admin,
)
from portfolio_backend.errors import PortfolioError
from portfolio_backend.models import Project, new_project
from portfolio_backend.projects import ProjectsRepository
from portfolio_backend.routes.common import DEFAULT_COUNT, positive_int
from portfolio_backend.schemas import ProjectCreate, ProjectsMigration, ProjectUpdate
from portfolio_backend.uploads import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
def list_projects(
    status: Optional[str] = None,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    if not status:
        return repo.get_projects_response()
    projects = repo.get_by_status(status)
    return {
        "status": status,
        "count": len(projects),
        "projects": [p.as_dict() for p in projects],
    }


@router.get("/latest")
def latest_projects(
    count: Optional[str] = None,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    projects = repo.get_latest(positive_int(count, DEFAULT_COUNT))
    return {
        "message": "Latest projects retrieved successfully",
        "count": len(projects),
        "projects": [p.as_dict() for p in projects],
    }


@router.get("/popular")
def popular_projects(
    count: Optional[str] = None,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    projects = repo.get_popular(positive_int(count, DEFAULT_COUNT))
    return {
        "message": "Popular projects retrieved successfully",
        "count": len(projects),
        "projects": [p.as_dict() for p in projects],
    }


@router.get("/statuses")
def project_statuses(repo: ProjectsRepository = Depends(get_projects_repository)):
    statuses = repo.get_statuses()
    return {"statuses": statuses, "count": len(statuses)}


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_project(
    payload: ProjectCreate,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    project = new_project(
        payload.title,
        description=payload.description,
        link=payload.link,
        image=payload.image,
        status=payload.status,
        tools=[tool.to_tool() for tool in payload.tools],
    )
    project.featured = payload.featured
    project = repo.create(project)
    return {"message": "Project created successfully", "project": project.as_dict()}


@router.post("/migrate", status_code=201, dependencies=[Depends(require_admin)])
def migrate_projects(
    payload: ProjectsMigration,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    projects = repo.create_many(
        Project.from_dict(record.model_dump(by_alias=True, exclude_none=True))
        for record in payload.projects
    )
    return {"message": "Projects migrated successfully", "count": len(projects)}


@router.get("/{project_id}")
def get_project(
    project_id: str,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    return {"project": repo.get_by_id(project_id).as_dict()}


@router.post("/{project_id}/views")
def increment_project_views(
    project_id: str,
    repo: ProjectsRepository = Depends(get_projects_repository),
    analytics: AnalyticsRepository = Depends(get_analytics_repository),
):
    project = repo.increment_views(project_id)
    try:
        analytics.increment_project_views()
    except PortfolioError as exc:
        logger.warning("Failed to increment analytics project views: %s", exc.details)
    return {
        "message": "Project views incremented successfully",
        "view_count": project.view_count,
    }


@router.put("/{project_id}", dependencies=[Depends(require_admin)])
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    repo: ProjectsRepository = Depends(get_projects_repository),
):
    project = repo.update(project_id, payload.changes())
    return {"message": "Project updated successfully", "project": project.as_dict()}


@router.delete("/{project_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_project(
    project_id: str,
    repo: ProjectsRepository = Depends(get_projects_repository),
    uploads: UploadService = Depends(get_upload_service),
):
    project = repo.delete(project_id)
    try:
        uploads.remove_owned_files("general", project.id)
    except PortfolioError as exc:
        logger.warning("Deleted project %s but kept its image: %s", project.id, exc.message)
    return Response(status_code=204)
