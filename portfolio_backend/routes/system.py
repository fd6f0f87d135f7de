"""
Health checks and uploaded-file serving.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from portfolio_backend import keys
from portfolio_backend.config import Settings, get_settings
from portfolio_backend.dependencies import get_store
from portfolio_backend.errors import NotFound, ValidationError
from portfolio_backend.models import now_iso
from portfolio_backend.repository import store_errors
from portfolio_backend.store import KeyValueStore

logger = logging.getLogger(__name__)

REDIS_TEST_VALUE = "Hello from the portfolio backend!"
REDIS_TEST_TTL = 300  # seconds

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# Mounted under the versioned prefix.
router = APIRouter(tags=["system"])

# Mounted at the application root.
root_router = APIRouter(tags=["system"])


@router.get("/test")
def api_test():
    return {"message": "API v1 is working!", "data": "Hello from Portfolio Backend"}


@router.get("/redis-test")
def redis_test(store: KeyValueStore = Depends(get_store)):
    """Round-trip a value through the store and ping it."""
    with store_errors("Failed to write to Redis"):
        store.set(keys.REDIS_TEST, REDIS_TEST_VALUE, ttl=REDIS_TEST_TTL)
    with store_errors("Failed to read from Redis"):
        retrieved = store.get(keys.REDIS_TEST)
    with store_errors("Redis ping failed"):
        store.ping()
    return {
        "message": "Redis test successful!",
        "ping": "PONG",
        "written_value": REDIS_TEST_VALUE,
        "retrieved_value": retrieved,
        "values_match": retrieved == REDIS_TEST_VALUE,
        "timestamp": now_iso(),
    }


@root_router.get("/health")
def health():
    return {
        "status": "healthy",
        "message": "Portfolio Backend API is running",
        "version": "1.0.0",
    }


def _serve(directory: str, path: str) -> FileResponse:
    # The path parameter arrives percent-decoded.
    relative = path.lstrip("/")
    root = Path(directory).resolve()
    full_path = (root / relative).resolve()
    if ".." in relative or not full_path.is_relative_to(root):
        logger.warning("Rejected file path %r", path)
        raise ValidationError("Invalid file path")
    if not full_path.is_file():
        raise NotFound("File not found", details=relative)
    return FileResponse(full_path, headers=NO_CACHE_HEADERS)


@root_router.get("/uploads/{path:path}")
def serve_upload(path: str, settings: Settings = Depends(get_settings)):
    return _serve(settings.upload_dir, path)


@root_router.get("/skills-upload/{path:path}")
def serve_skill_icon(path: str, settings: Settings = Depends(get_settings)):
    return _serve(settings.skills_upload_dir, path)


@root_router.get("/blog-upload/{path:path}")
def serve_blog_image(path: str, settings: Settings = Depends(get_settings)):
    return _serve(settings.blog_upload_dir, path)
