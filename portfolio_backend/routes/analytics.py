"""
Analytics endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from portfolio_backend.analytics import AnalyticsRepository
from portfolio_backend.dependencies import client_ip, get_analytics_repository
from portfolio_backend.errors import PortfolioError
from portfolio_backend.schemas import VisitRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/stats")
def get_stats(analytics: AnalyticsRepository = Depends(get_analytics_repository)):
    return analytics.get_snapshot().as_dict()


@router.get("/all")
def get_all_stats(analytics: AnalyticsRepository = Depends(get_analytics_repository)):
    """Totals plus the last week of daily stats."""
    snapshot = analytics.get_snapshot()
    try:
        daily = [day.as_dict() for day in analytics.get_daily_stats(7)]
    except PortfolioError as exc:
        logger.warning("Failed to load daily stats: %s", exc.details)
        daily = []
    body = snapshot.as_dict()
    body["daily_stats"] = daily
    return body


@router.post("/visit", status_code=201)
def record_visit(
    payload: VisitRequest,
    request: Request,
    ip: str = Depends(client_ip),
    analytics: AnalyticsRepository = Depends(get_analytics_repository),
):
    visit = analytics.record_visit(
        page=payload.page,
        ip=ip,
        user_agent=request.headers.get("user-agent", ""),
        referrer=payload.referrer or request.headers.get("referer", ""),
        duration=payload.duration,
    )
    return {
        "message": "Visit recorded successfully",
        "visit_id": visit.id,
        "timestamp": visit.timestamp,
    }
