"""
Unversioned read endpoints and counters kept for older frontends.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from portfolio_backend.analytics import AnalyticsRepository
from portfolio_backend.dependencies import get_analytics_repository
from portfolio_backend.models import now_iso
from portfolio_backend.routes import blog, projects, skills

router = APIRouter(tags=["legacy"])

router.add_api_route("/skills", skills.list_skills, methods=["GET"])
router.add_api_route("/projects", projects.list_projects, methods=["GET"])
router.add_api_route("/blog/posts", blog.list_posts, methods=["GET"])
router.add_api_route("/blog/posts/{slug}", blog.get_post, methods=["GET"])
router.add_api_route("/blog/tags", blog.list_tags, methods=["GET"])


@router.post("/counter")
def increment_counter(analytics: AnalyticsRepository = Depends(get_analytics_repository)):
    count = analytics.increment_site_visits()
    return {
        "message": "Site visits incremented successfully",
        "count": count,
        "timestamp": now_iso(),
    }


@router.post("/projectviews")
def increment_project_views(analytics: AnalyticsRepository = Depends(get_analytics_repository)):
    analytics.increment_project_views()
    return {"message": "Project views incremented successfully", "timestamp": now_iso()}
