"""
Skill endpoints.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from portfolio_backend.dependencies import get_skills_repository, get_upload_service, require_admin
from portfolio_backend.errors import PortfolioError
from portfolio_backend.models import Skill, new_skill
from portfolio_backend.schemas import SkillCreate, SkillsMigration, SkillUpdate
from portfolio_backend.skills import SkillsRepository
from portfolio_backend.uploads import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/skills", tags=["skills"])


@router.get("")
def list_skills(
    category: Optional[str] = None,
    repo: SkillsRepository = Depends(get_skills_repository),
):
    if not category:
        return repo.get_skills_response()
    skills = repo.get_by_category(category)
    return {
        "category": category,
        "count": len(skills),
        "skills": [s.as_dict() for s in skills],
    }


@router.get("/categories")
def list_categories(repo: SkillsRepository = Depends(get_skills_repository)):
    categories = repo.get_categories()
    return {"categories": categories, "count": len(categories)}


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_skill(
    payload: SkillCreate,
    repo: SkillsRepository = Depends(get_skills_repository),
):
    skill = repo.create(new_skill(payload.category, payload.skill, payload.icon))
    return {"message": "Skill created successfully", "skill": skill.as_dict()}


@router.post("/migrate", status_code=201, dependencies=[Depends(require_admin)])
def migrate_skills(
    payload: SkillsMigration,
    repo: SkillsRepository = Depends(get_skills_repository),
):
    skills = repo.create_many(
        Skill.from_dict(record.model_dump(exclude_none=True)) for record in payload.skills
    )
    return {"message": "Skills migrated successfully", "count": len(skills)}


@router.put("/{skill_id}", dependencies=[Depends(require_admin)])
def update_skill(
    skill_id: str,
    payload: SkillUpdate,
    repo: SkillsRepository = Depends(get_skills_repository),
):
    skill = repo.update(skill_id, payload.changes())
    return {"message": "Skill updated successfully", "skill": skill.as_dict()}


@router.delete("/{skill_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_skill(
    skill_id: str,
    repo: SkillsRepository = Depends(get_skills_repository),
    uploads: UploadService = Depends(get_upload_service),
):
    skill = repo.delete(skill_id)
    try:
        if not repo.get_by_name(skill.skill):
            uploads.remove_owned_files("skill", skill.skill.lower())
    except PortfolioError as exc:
        logger.warning("Deleted skill %s but kept its icon: %s", skill.id, exc.message)
    return Response(status_code=204)
