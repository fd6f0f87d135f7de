"""
Domain records stored as JSON in the key-value store.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from portfolio_backend import keys

EXCERPT_LENGTH = 150
WORDS_PER_MINUTE = 200


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def now_iso() -> str:
    return isoformat(utcnow())


def parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def to_unix(value: str) -> float:
    """Unix seconds for an ISO timestamp; 0 when it cannot be parsed."""
    moment = parse_timestamp(value)
    return moment.timestamp() if moment else 0.0


def slugify(text: str) -> str:
    """"Modern CSS Techniques" -> "modern-css-techniques"."""
    slug = re.sub(r"[^\w\s-]", "", text.strip().lower())
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def generate_excerpt(content: str) -> str:
    if len(content) <= EXCERPT_LENGTH:
        return content
    return content[:EXCERPT_LENGTH] + "..."


def calculate_reading_time(content: str) -> str:
    minutes = max(1, len(content.split()) // WORDS_PER_MINUTE)
    return f"{minutes} min read"


@dataclass
class Skill:
    id: str
    category: str
    skill: str
    icon: str = ""
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "skill": self.skill,
            "icon": self.icon,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Skill":
        category = data.get("category") or ""
        name = data.get("skill") or ""
        return cls(
            id=data.get("id") or keys.skill(category, name),
            category=category,
            skill=name,
            icon=data.get("icon") or "",
            created_at=data.get("created_at") or now_iso(),
            updated_at=data.get("updated_at") or now_iso(),
        )


@dataclass
class ProjectTool:
    skill: str
    icon: str = ""

    def as_dict(self) -> dict:
        return {"skill": self.skill, "icon": self.icon}

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectTool":
        return cls(skill=data.get("skill") or "", icon=data.get("icon") or "")


@dataclass
class Project:
    id: str
    title: str
    description: str = ""
    tools: list[ProjectTool] = field(default_factory=list)
    link: str = ""
    image: str = ""
    status: str = ""
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    view_count: int = 0
    featured: bool = False

    def as_dict(self) -> dict:
        # createdAt keeps the camelCase name older clients read.
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "tools": [tool.as_dict() for tool in self.tools],
            "link": self.link,
            "image": self.image,
            "status": self.status,
            "createdAt": self.created_at,
            "updated_at": self.updated_at,
            "view_count": self.view_count,
            "featured": self.featured,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        title = data.get("title") or ""
        return cls(
            id=data.get("id") or keys.project(slugify(title)),
            title=title,
            description=data.get("description") or "",
            tools=[ProjectTool.from_dict(t) for t in data.get("tools") or []],
            link=data.get("link") or "",
            image=data.get("image") or "",
            status=data.get("status") or "",
            created_at=data.get("createdAt") or data.get("created_at") or now_iso(),
            updated_at=data.get("updated_at") or now_iso(),
            view_count=int(data.get("view_count") or 0),
            featured=bool(data.get("featured")),
        )


@dataclass
class BlogPost:
    id: str
    title: str
    slug: str
    content: str = ""
    excerpt: str = ""
    author: str = ""
    published_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    tags: list[str] = field(default_factory=list)
    reading_time: str = "1 min read"
    view_count: int = 0
    featured: bool = False
    published: bool = False
    featured_image: str = ""
    meta_description: str = ""
    meta_keywords: str = ""

    def summary(self) -> dict:
        """List-view shape: no content, no SEO fields."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "author": self.author,
            "published_at": self.published_at,
            "tags": list(self.tags),
            "reading_time": self.reading_time,
            "view_count": self.view_count,
            "featured": self.featured,
            "published": self.published,
            "featured_image": self.featured_image,
        }

    def as_dict(self) -> dict:
        body = self.summary()
        body.update(
            {
                "content": self.content,
                "updated_at": self.updated_at,
                "meta_description": self.meta_description,
                "meta_keywords": self.meta_keywords,
            }
        )
        return body

    @classmethod
    def from_dict(cls, data: dict) -> "BlogPost":
        title = data.get("title") or ""
        slug = data.get("slug") or slugify(title)
        return cls(
            id=data.get("id") or keys.blog_post(slug),
            title=title,
            slug=slug,
            content=data.get("content") or "",
            excerpt=data.get("excerpt") or "",
            author=data.get("author") or "",
            published_at=data.get("published_at") or now_iso(),
            updated_at=data.get("updated_at") or now_iso(),
            tags=list(data.get("tags") or []),
            reading_time=data.get("reading_time") or "1 min read",
            view_count=int(data.get("view_count") or 0),
            featured=bool(data.get("featured")),
            published=bool(data.get("published")),
            featured_image=data.get("featured_image") or "",
            meta_description=data.get("meta_description") or "",
            meta_keywords=data.get("meta_keywords") or "",
        )


@dataclass
class AnalyticsSnapshot:
    visits: int = 0
    project_view: int = 0
    blog_views: int = 0
    unique_visitors: int = 0
    last_updated: str = ""

    def as_dict(self) -> dict:
        return {
            "visits": self.visits,
            "project_view": self.project_view,
            "blog_views": self.blog_views,
            "unique_visitors": self.unique_visitors,
            "last_updated": self.last_updated,
        }


@dataclass
class DailyStats:
    date: str
    site_visits: int = 0
    project_views: int = 0
    blog_views: int = 0
    unique_ips: int = 0

    def as_dict(self) -> dict:
        return {
            "date": self.date,
            "site_visits": self.site_visits,
            "project_views": self.project_views,
            "blog_views": self.blog_views,
            "unique_ips": self.unique_ips,
        }


@dataclass
class PageVisit:
    page: str
    ip: str
    user_agent: str = ""
    referrer: str = ""
    duration: int = 0
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(default_factory=now_iso)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "page": self.page,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "referrer": self.referrer,
            "timestamp": self.timestamp,
            "duration": self.duration,
        }


def new_skill(category: str, name: str, icon: str = "") -> Skill:
    return Skill(id=keys.skill(category, name), category=category, skill=name, icon=icon)


def new_project(
    title: str,
    description: str = "",
    link: str = "",
    image: str = "",
    status: str = "",
    tools: Optional[list[ProjectTool]] = None,
) -> Project:
    return Project(
        id=keys.project(slugify(title)),
        title=title,
        description=description,
        tools=list(tools or []),
        link=link,
        image=image,
        status=status,
    )


def new_blog_post(
    title: str,
    content: str,
    author: str,
    tags: Optional[list[str]] = None,
    slug: Optional[str] = None,
) -> BlogPost:
    """Draft post with derived slug, excerpt and reading time."""
    slug = slug or slugify(title)
    excerpt = generate_excerpt(content)
    return BlogPost(
        id=keys.blog_post(slug),
        title=title,
        slug=slug,
        content=content,
        excerpt=excerpt,
        author=author,
        tags=list(tags or []),
        reading_time=calculate_reading_time(content),
        meta_description=excerpt,
    )
