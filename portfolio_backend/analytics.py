"""
Analytics counters.

Global counters are plain integers; per-day counters, per-day page rankings
and per-day visitor sets expire after 30 days. Individual page visits are
kept for 24 hours. Visitor IPs are stored only as SHA-256 digests.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from portfolio_backend import keys
from portfolio_backend.models import AnalyticsSnapshot, DailyStats, PageVisit, isoformat, utcnow
from portfolio_backend.repository import store_errors
from portfolio_backend.store import KeyValueStore

logger = logging.getLogger(__name__)


def hash_ip(ip: str) -> str:
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()


def _as_int(value: Optional[str]) -> int:
    try:
        return int(float(value)) if value is not None else 0
    except ValueError:
        return 0


class AnalyticsRepository:
    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _today(self) -> str:
        return self.clock().strftime("%Y-%m-%d")

    def _increment(self, total_key: str, daily_name: str) -> int:
        daily_key = keys.daily_counter(self._today(), daily_name)
        pipe = self.store.pipeline()
        pipe.incr(total_key)
        pipe.incr(daily_key)
        pipe.expire(daily_key, keys.DAILY_TTL_SECONDS)
        pipe.set(keys.LAST_UPDATED, isoformat(self.clock()))
        with store_errors(f"failed to increment {daily_name.replace('_', ' ')}"):
            results = pipe.execute()
        return int(results[0])

    def increment_site_visits(self) -> int:
        return self._increment(keys.SITE_VISITS, "site_visits")

    def increment_project_views(self) -> int:
        return self._increment(keys.PROJECT_VIEWS, "project_views")

    def increment_blog_views(self) -> int:
        return self._increment(keys.BLOG_VIEWS, "blog_views")

    def get_site_visits(self) -> int:
        with store_errors("failed to get site visits"):
            return _as_int(self.store.get(keys.SITE_VISITS))

    def get_project_views(self) -> int:
        with store_errors("failed to get project views"):
            return _as_int(self.store.get(keys.PROJECT_VIEWS))

    def get_snapshot(self) -> AnalyticsSnapshot:
        with store_errors("failed to get analytics"):
            visits, project_views, blog_views, last_updated = self.store.mget(
                [keys.SITE_VISITS, keys.PROJECT_VIEWS, keys.BLOG_VIEWS, keys.LAST_UPDATED]
            )
            unique = self.store.scard(keys.UNIQUE_VISITORS)
        return AnalyticsSnapshot(
            visits=_as_int(visits),
            project_view=_as_int(project_views),
            blog_views=_as_int(blog_views),
            unique_visitors=unique,
            last_updated=last_updated or "",
        )

    def record_visit(
        self,
        page: str,
        ip: str,
        user_agent: str = "",
        referrer: str = "",
        duration: int = 0,
    ) -> PageVisit:
        visit = PageVisit(
            page=page,
            ip=hash_ip(ip),
            user_agent=user_agent,
            referrer=referrer,
            duration=duration,
            timestamp=isoformat(self.clock()),
        )
        today = self._today()
        pages_key = keys.daily_pages(today)
        visitors_key = keys.daily_visitors(today)

        pipe = self.store.pipeline()
        pipe.set(keys.page_visit(visit.id), json.dumps(visit.as_dict()), ttl=keys.VISIT_TTL_SECONDS)
        pipe.zincrby(pages_key, 1, page)
        pipe.expire(pages_key, keys.DAILY_TTL_SECONDS)
        pipe.sadd(visitors_key, visit.ip)
        pipe.expire(visitors_key, keys.DAILY_TTL_SECONDS)
        pipe.sadd(keys.UNIQUE_VISITORS, visit.ip)
        with store_errors("failed to record visit"):
            pipe.execute()
        return visit

    def get_daily_stats(self, days: int = 7) -> list[DailyStats]:
        """Stats for the last ``days`` days, oldest first."""
        today = self.clock()
        stats = []
        with store_errors("failed to get daily stats"):
            for offset in range(days - 1, -1, -1):
                date = (today - timedelta(days=offset)).strftime("%Y-%m-%d")
                page_hits = sum(
                    score for _, score in self.store.zrange_withscores(keys.daily_pages(date), 0, -1)
                )
                site, projects, blog = self.store.mget(
                    [
                        keys.daily_counter(date, "site_visits"),
                        keys.daily_counter(date, "project_views"),
                        keys.daily_counter(date, "blog_views"),
                    ]
                )
                stats.append(
                    DailyStats(
                        date=date,
                        site_visits=int(page_hits) + _as_int(site),
                        project_views=_as_int(projects),
                        blog_views=_as_int(blog),
                        unique_ips=self.store.scard(keys.daily_visitors(date)),
                    )
                )
        return stats

    def reset(self) -> None:
        with store_errors("failed to reset analytics"):
            self.store.delete(
                keys.SITE_VISITS,
                keys.PROJECT_VIEWS,
                keys.BLOG_VIEWS,
                keys.LAST_UPDATED,
                keys.UNIQUE_VISITORS,
            )
        logger.info("Analytics counters reset")
