"""
FastAPI application entry point for the portfolio backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_backend.config import Settings, get_settings
from portfolio_backend.errors import PortfolioError
from portfolio_backend.routes import legacy_router, root_router, router

logger = logging.getLogger(__name__)


async def portfolio_error_handler(request: Request, exc: PortfolioError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.details or exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.as_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request format", "details": details},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = get_settings()
    app = FastAPI(title="Portfolio Backend (FastAPI)", version="1.0.0")
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Cache-Control", "Pragma", "Expires"],
        allow_credentials=False,
    )
    app.add_exception_handler(PortfolioError, portfolio_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(router, prefix=settings.versioned_prefix)
    app.include_router(legacy_router, prefix=settings.api_prefix)
    app.include_router(root_router)
    return app


app = create_app()
