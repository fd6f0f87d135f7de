"""
Skills repository.

A skill's identity is its category plus name, so the record key is
``skill:{category}:{name}``. Besides the global set the repository keeps a
per-category set, the listing of categories and a per-name set that icon
uploads use to find every skill sharing a name.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Mapping

from portfolio_backend import keys
from portfolio_backend.errors import Conflict
from portfolio_backend.models import Skill, now_iso
from portfolio_backend.repository import Repository, store_errors
from portfolio_backend.store import Pipeline

logger = logging.getLogger(__name__)


class SkillsRepository(Repository[Skill]):
    entity = "skill"
    record_type = Skill
    key_prefix = "skill:"

    def _index(self, pipe: Pipeline, skill: Skill) -> None:
        pipe.sadd(keys.SKILLS_ALL, skill.id)
        pipe.sadd(keys.SKILL_CATEGORIES, skill.category)
        pipe.sadd(keys.skills_by_category(skill.category), skill.id)
        pipe.sadd(keys.skills_by_name(skill.skill), skill.id)

    def _unindex(self, pipe: Pipeline, skill: Skill) -> None:
        pipe.srem(keys.SKILLS_ALL, skill.id)
        pipe.srem(keys.skills_by_category(skill.category), skill.id)
        pipe.srem(keys.skills_by_name(skill.skill), skill.id)

    def create(self, skill: Skill) -> Skill:
        skill.id = keys.skill(skill.category, skill.skill)
        if self.exists(skill.id):
            raise Conflict(f"Skill '{skill.skill}' already exists in '{skill.category}'", details=skill.id)
        pipe = self.store.pipeline()
        self.queue_save(pipe, skill)
        self._index(pipe, skill)
        self.execute(pipe, "failed to create skill")
        logger.info("Created skill %s", skill.id)
        return skill

    def create_many(self, skills: Iterable[Skill]) -> list[Skill]:
        """Bulk upsert in one pipeline; existing skills with the same identity are replaced."""
        skills = list(skills)
        for skill in skills:
            skill.id = keys.skill(skill.category, skill.skill)
        previous = self.get_many(s.id for s in skills)
        pipe = self.store.pipeline()
        for old in previous:
            self._unindex(pipe, old)
        for skill in skills:
            self.queue_save(pipe, skill)
            self._index(pipe, skill)
        self.execute(pipe, "failed to create skills")
        logger.info("Stored %d skills", len(skills))
        return skills

    def get_all(self) -> list[Skill]:
        skills = self.get_many(self.members(keys.SKILLS_ALL))
        return sorted(skills, key=lambda s: (s.category, s.skill))

    def get_by_category(self, category: str) -> list[Skill]:
        skills = self.get_many(self.members(keys.skills_by_category(category)))
        return sorted(skills, key=lambda s: s.skill)

    def get_by_name(self, name: str) -> list[Skill]:
        return self.get_many(self.members(keys.skills_by_name(name)))

    def get_categories(self) -> list[str]:
        return sorted(self.members(keys.SKILL_CATEGORIES))

    def update(self, record_id: str, changes: Mapping[str, Any]) -> Skill:
        """
        Apply ``changes`` and move the skill between indexes. Changing the
        category or name re-keys the record.
        """
        existing = self.get_by_id(record_id)
        updated = dataclasses.replace(existing, **dict(changes), updated_at=now_iso())
        updated.id = keys.skill(updated.category, updated.skill)
        if updated.id != existing.id and self.exists(updated.id):
            raise Conflict(
                f"Skill '{updated.skill}' already exists in '{updated.category}'",
                details=updated.id,
            )

        pipe = self.store.pipeline()
        self._unindex(pipe, existing)
        if updated.id != existing.id:
            pipe.delete(existing.id)
        self.queue_save(pipe, updated)
        self._index(pipe, updated)
        self.execute(pipe, "failed to update skill")

        if existing.category != updated.category:
            self.prune_value_sets(keys.SKILL_CATEGORIES, keys.skills_by_category, [existing.category])
        return updated

    def set_icon(self, skill: Skill, icon: str) -> Skill:
        return self.update(skill.id, {"icon": icon})

    def delete(self, record_id: str) -> Skill:
        existing = self.get_by_id(record_id)
        pipe = self.store.pipeline()
        pipe.delete(existing.id)
        self._unindex(pipe, existing)
        self.execute(pipe, "failed to delete skill")
        self.prune_value_sets(keys.SKILL_CATEGORIES, keys.skills_by_category, [existing.category])
        logger.info("Deleted skill %s", existing.id)
        return existing

    def delete_all(self) -> int:
        skills = self.get_many(self.members(keys.SKILLS_ALL))
        index_keys = {keys.SKILLS_ALL, keys.SKILL_CATEGORIES}
        for skill in skills:
            index_keys.add(keys.skills_by_category(skill.category))
            index_keys.add(keys.skills_by_name(skill.skill))
        with store_errors("failed to delete skills"):
            self.store.delete(*[s.id for s in skills], *sorted(index_keys))
        logger.info("Deleted all %d skills", len(skills))
        return len(skills)

    def get_skills_response(self) -> dict:
        return {
            "categories": self.get_categories(),
            "skills": [skill.as_dict() for skill in self.get_all()],
        }
