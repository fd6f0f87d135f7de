"""
Pydantic request schemas for the portfolio API.

Update payloads translate themselves into the field changes a repository
applies: omitted or empty strings and lists keep the stored value, boolean
flags are always written, and nullable image fields are written whenever
they are present in the request (so ``""`` clears them).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from portfolio_backend.models import ProjectTool, calculate_reading_time


def _filled(**fields) -> dict:
    return {name: value for name, value in fields.items() if value}


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SkillCreate(BaseModel):
    category: str = Field(..., min_length=1)
    skill: str = Field(..., min_length=1)
    icon: str = ""


class SkillUpdate(BaseModel):
    category: Optional[str] = None
    skill: Optional[str] = None
    icon: Optional[str] = None

    def changes(self) -> dict:
        return _filled(category=self.category, skill=self.skill, icon=self.icon)


class SkillRecord(BaseModel):
    id: Optional[str] = None
    category: str = Field(..., min_length=1)
    skill: str = Field(..., min_length=1)
    icon: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SkillsMigration(BaseModel):
    skills: list[SkillRecord]


class ProjectToolPayload(BaseModel):
    skill: str
    icon: str = ""

    def to_tool(self) -> ProjectTool:
        return ProjectTool(skill=self.skill, icon=self.icon)


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    image: str = ""
    link: str = ""
    tools: list[ProjectToolPayload] = Field(default_factory=list)
    featured: bool = False


class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    link: Optional[str] = None
    tools: Optional[list[ProjectToolPayload]] = None
    status: Optional[str] = None
    featured: bool = False

    def changes(self) -> dict:
        changes = _filled(
            title=self.title,
            description=self.description,
            link=self.link,
            status=self.status,
        )
        if self.tools:
            changes["tools"] = [tool.to_tool() for tool in self.tools]
        if "image" in self.model_fields_set:
            changes["image"] = self.image or ""
        changes["featured"] = self.featured
        return changes


class ProjectRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: str = ""
    tools: list[ProjectToolPayload] = Field(default_factory=list)
    link: str = ""
    image: str = ""
    status: str = ""
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = None
    view_count: int = 0
    featured: bool = False


class ProjectsMigration(BaseModel):
    projects: list[ProjectRecord]


class BlogPostCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    author: str = ""
    tags: list[str] = Field(default_factory=list)
    featured: bool = False
    published: bool = False
    featured_image: str = ""
    meta_description: str = ""
    meta_keywords: str = ""


class BlogPostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Optional[list[str]] = None
    featured: bool = False
    published: bool = False
    featured_image: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None

    def changes(self) -> dict:
        changes = _filled(
            title=self.title,
            content=self.content,
            excerpt=self.excerpt,
            tags=self.tags,
            meta_description=self.meta_description,
            meta_keywords=self.meta_keywords,
        )
        if self.content:
            changes["reading_time"] = calculate_reading_time(self.content)
        if "featured_image" in self.model_fields_set:
            changes["featured_image"] = self.featured_image or ""
        changes["featured"] = self.featured
        changes["published"] = self.published
        return changes


class BlogPostRecord(BaseModel):
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    content: str = ""
    excerpt: str = ""
    author: str = ""
    published_at: Optional[str] = None
    updated_at: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    reading_time: Optional[str] = None
    view_count: int = 0
    featured: bool = False
    published: bool = False
    featured_image: str = ""
    meta_description: str = ""
    meta_keywords: str = ""


class BlogPostsMigration(BaseModel):
    posts: list[BlogPostRecord]


class MarkdownImport(BaseModel):
    content: str = Field(..., min_length=1)
    filename: str = ""


class MarkdownBulkImport(BaseModel):
    files: list[MarkdownImport]


class VisitRequest(BaseModel):
    page: str = Field(..., min_length=1)
    duration: int = 0
    referrer: str = ""


class RenameRequest(BaseModel):
    oldImageUrl: str = Field(..., min_length=1)
