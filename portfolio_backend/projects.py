"""
Projects repository: status sets plus date and view-count rankings.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Mapping

from portfolio_backend import keys
from portfolio_backend.errors import Conflict
from portfolio_backend.models import Project, now_iso, to_unix
from portfolio_backend.repository import Repository, store_errors
from portfolio_backend.store import Pipeline

logger = logging.getLogger(__name__)

STATUS_GROUPS = {"live": "Live", "github": "Github", "in_progress": "In Progress"}


class ProjectsRepository(Repository[Project]):
    entity = "project"
    record_type = Project
    key_prefix = "project:"

    def _index(self, pipe: Pipeline, project: Project) -> None:
        pipe.sadd(keys.PROJECTS_ALL, project.id)
        if project.status:
            pipe.sadd(keys.PROJECT_STATUSES, project.status)
            pipe.sadd(keys.projects_by_status(project.status), project.id)
        pipe.zadd(keys.PROJECTS_BY_DATE, {project.id: to_unix(project.created_at)})
        pipe.zadd(keys.PROJECTS_BY_VIEWS, {project.id: project.view_count})

    def _unindex(self, pipe: Pipeline, project: Project) -> None:
        pipe.srem(keys.PROJECTS_ALL, project.id)
        if project.status:
            pipe.srem(keys.projects_by_status(project.status), project.id)
        pipe.zrem(keys.PROJECTS_BY_DATE, project.id)
        pipe.zrem(keys.PROJECTS_BY_VIEWS, project.id)

    def _prune_statuses(self, statuses: Iterable[str]) -> None:
        self.prune_value_sets(
            keys.PROJECT_STATUSES, keys.projects_by_status, [s for s in statuses if s]
        )

    def create(self, project: Project) -> Project:
        project.id = self.key_for(project.id)
        if self.exists(project.id):
            raise Conflict(f"Project '{project.title}' already exists", details=project.id)
        pipe = self.store.pipeline()
        self.queue_save(pipe, project)
        self._index(pipe, project)
        self.execute(pipe, "failed to create project")
        logger.info("Created project %s", project.id)
        return project

    def create_many(self, projects: Iterable[Project]) -> list[Project]:
        """Bulk upsert in one pipeline; used by migrations."""
        projects = list(projects)
        for project in projects:
            project.id = self.key_for(project.id)
        previous = self.get_many(p.id for p in projects)
        pipe = self.store.pipeline()
        for old in previous:
            self._unindex(pipe, old)
        for project in projects:
            self.queue_save(pipe, project)
            self._index(pipe, project)
        self.execute(pipe, "failed to create projects")
        self._prune_statuses(old.status for old in previous)
        logger.info("Stored %d projects", len(projects))
        return projects

    def get_all(self) -> list[Project]:
        projects = self.get_many(self.members(keys.PROJECTS_ALL))
        return sorted(projects, key=lambda p: to_unix(p.created_at), reverse=True)

    def get_by_status(self, status: str) -> list[Project]:
        projects = self.get_many(self.members(keys.projects_by_status(status)))
        return sorted(projects, key=lambda p: to_unix(p.created_at), reverse=True)

    def get_latest(self, count: int = 10) -> list[Project]:
        return self.top(keys.PROJECTS_BY_DATE, count)

    def get_popular(self, count: int = 10) -> list[Project]:
        return self.top(keys.PROJECTS_BY_VIEWS, count)

    def get_statuses(self) -> list[str]:
        return sorted(self.members(keys.PROJECT_STATUSES))

    def get_by_status_grouped(self) -> dict:
        return {
            group: [p.as_dict() for p in self.get_by_status(status)]
            for group, status in STATUS_GROUPS.items()
        }

    def update(self, record_id: str, changes: Mapping[str, Any]) -> Project:
        existing = self.get_by_id(record_id)
        updated = dataclasses.replace(existing, **dict(changes), updated_at=now_iso())
        pipe = self.store.pipeline()
        if existing.status != updated.status and existing.status:
            pipe.srem(keys.projects_by_status(existing.status), existing.id)
        if updated.status:
            pipe.sadd(keys.PROJECT_STATUSES, updated.status)
            pipe.sadd(keys.projects_by_status(updated.status), updated.id)
        pipe.sadd(keys.PROJECTS_ALL, updated.id)
        pipe.zadd(keys.PROJECTS_BY_DATE, {updated.id: to_unix(updated.created_at)})
        pipe.zadd(keys.PROJECTS_BY_VIEWS, {updated.id: updated.view_count})
        self.queue_save(pipe, updated)
        self.execute(pipe, "failed to update project")
        if existing.status != updated.status:
            self._prune_statuses([existing.status])
        return updated

    def set_image(self, record_id: str, image: str) -> Project:
        return self.update(record_id, {"image": image})

    def increment_views(self, record_id: str) -> Project:
        project = self.get_by_id(record_id)
        project.view_count += 1
        pipe = self.store.pipeline()
        self.queue_save(pipe, project)
        pipe.zadd(keys.PROJECTS_BY_VIEWS, {project.id: project.view_count})
        self.execute(pipe, "failed to increment project views")
        return project

    def delete(self, record_id: str) -> Project:
        existing = self.get_by_id(record_id)
        pipe = self.store.pipeline()
        pipe.delete(existing.id)
        self._unindex(pipe, existing)
        self.execute(pipe, "failed to delete project")
        self._prune_statuses([existing.status])
        logger.info("Deleted project %s", existing.id)
        return existing

    def delete_all(self) -> int:
        projects = self.get_many(self.members(keys.PROJECTS_ALL))
        index_keys = {
            keys.PROJECTS_ALL,
            keys.PROJECT_STATUSES,
            keys.PROJECTS_BY_DATE,
            keys.PROJECTS_BY_VIEWS,
        }
        index_keys.update(keys.projects_by_status(p.status) for p in projects if p.status)
        with store_errors("failed to delete projects"):
            self.store.delete(*[p.id for p in projects], *sorted(index_keys))
        logger.info("Deleted all %d projects", len(projects))
        return len(projects)

    def get_projects_response(self) -> dict:
        projects = self.get_all()
        return {"count": len(projects), "projects": [p.as_dict() for p in projects]}
