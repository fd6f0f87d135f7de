"""
HTTP routes for the portfolio API.

``router`` carries the versioned API, ``legacy_router`` the handful of
unversioned endpoints older frontends still call, and ``root_router`` the
health check and uploaded-file serving.
"""

from __future__ import annotations

from fastapi import APIRouter

from portfolio_backend.routes import analytics, auth, blog, projects, skills, system, uploads
from portfolio_backend.routes.legacy import router as legacy_router
from portfolio_backend.routes.system import root_router

router = APIRouter()
router.include_router(system.router)
router.include_router(skills.router)
router.include_router(projects.router)
router.include_router(blog.router)
router.include_router(analytics.router)
router.include_router(auth.router)
router.include_router(uploads.router)

__all__ = ["router", "legacy_router", "root_router"]
