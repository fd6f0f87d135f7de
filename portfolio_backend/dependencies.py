"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from portfolio_backend.analytics import AnalyticsRepository
from portfolio_backend.auth import AuthService, TokenClaims, extract_token
from portfolio_backend.blog import BlogRepository
from portfolio_backend.config import Settings, get_settings
from portfolio_backend.projects import ProjectsRepository
from portfolio_backend.skills import SkillsRepository
from portfolio_backend.store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from portfolio_backend.uploads import UploadService

logger = logging.getLogger(__name__)

_store: KeyValueStore | None = None


def get_store(settings: Settings = Depends(get_settings)) -> KeyValueStore:
    """
    Return a singleton store client shared by every request.
    """
    global _store
    if _store:
        return _store

    if settings.use_in_memory_backends:
        logger.info("Using in-memory key-value store")
        _store = InMemoryKeyValueStore()
    else:
        _store = RedisKeyValueStore(
            url=settings.redis_url,
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
        )
    return _store


def get_skills_repository(store: KeyValueStore = Depends(get_store)) -> SkillsRepository:
    return SkillsRepository(store)


def get_projects_repository(store: KeyValueStore = Depends(get_store)) -> ProjectsRepository:
    return ProjectsRepository(store)


def get_blog_repository(store: KeyValueStore = Depends(get_store)) -> BlogRepository:
    return BlogRepository(store)


def get_analytics_repository(store: KeyValueStore = Depends(get_store)) -> AnalyticsRepository:
    return AnalyticsRepository(store)


def get_auth_service(
    settings: Settings = Depends(get_settings),
    store: KeyValueStore = Depends(get_store),
) -> AuthService:
    return AuthService(settings, store)


def get_upload_service(
    settings: Settings = Depends(get_settings),
    store: KeyValueStore = Depends(get_store),
    projects: ProjectsRepository = Depends(get_projects_repository),
    skills: SkillsRepository = Depends(get_skills_repository),
) -> UploadService:
    return UploadService(settings, store, projects, skills)


def request_token(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    return extract_token(authorization, request.cookies.get(settings.auth_cookie_name))


def require_admin(
    token: str = Depends(request_token),
    auth: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """Reject the request with 401 unless it carries a valid admin token."""
    return auth.verify(token)


def client_ip(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """Peer address, or the first X-Forwarded-For hop when the peer is a trusted proxy."""
    peer = request.client.host if request.client else "unknown"
    trusted = settings.trusted_proxy_list
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and ("*" in trusted or peer in trusted):
        return forwarded.split(",")[0].strip()
    return peer
