"""
Key names for every record and index kept in the store.

Record keys are ``{entity}:{identity}``; indexes live under ``index:`` and
auth/analytics bookkeeping under their own prefixes so that no record key can
collide with an index key.
"""

from __future__ import annotations

import hashlib

RECORD_TTL_SECONDS = 365 * 24 * 3600
DAILY_TTL_SECONDS = 30 * 24 * 3600
VISIT_TTL_SECONDS = 24 * 3600


# Records

def skill(category: str, name: str) -> str:
    return f"skill:{category}:{name}"


def project(slug: str) -> str:
    return f"project:{slug}"


def blog_post(slug: str) -> str:
    return f"blog:{slug}"


# Skill indexes

SKILLS_ALL = "index:skills:all"
SKILL_CATEGORIES = "index:skills:categories"


def skills_by_category(category: str) -> str:
    return f"index:skills:category:{category}"


def skills_by_name(name: str) -> str:
    return f"index:skills:name:{name.lower()}"


# Project indexes

PROJECTS_ALL = "index:projects:all"
PROJECT_STATUSES = "index:projects:statuses"
PROJECTS_BY_DATE = "index:projects:by_date"
PROJECTS_BY_VIEWS = "index:projects:by_views"


def projects_by_status(status: str) -> str:
    return f"index:projects:status:{status}"


# Blog indexes

BLOG_ALL = "index:blog:all"
BLOG_PUBLISHED = "index:blog:published"
BLOG_FEATURED = "index:blog:featured"
BLOG_TAGS = "index:blog:tags"
BLOG_BY_DATE = "index:blog:by_date"
BLOG_BY_VIEWS = "index:blog:by_views"


def blog_by_tag(tag: str) -> str:
    return f"index:blog:tag:{tag}"


# Upload ownership

def uploads_owned(kind: str, owner: str) -> str:
    return f"index:uploads:{kind}:{owner}"


# Auth

def login_attempts(client_ip: str) -> str:
    return f"auth:login_attempts:{client_ip}"


def denylisted_token(token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    return f"auth:denylist:{digest}"


# Analytics

SITE_VISITS = "analytics:site_visits"
PROJECT_VIEWS = "analytics:project_views"
BLOG_VIEWS = "analytics:blog_views"
LAST_UPDATED = "analytics:last_updated"
UNIQUE_VISITORS = "analytics:visitors"


def daily_counter(date: str, counter: str) -> str:
    return f"analytics:daily:{date}:{counter}"


def daily_pages(date: str) -> str:
    return f"analytics:daily:{date}:pages"


def daily_visitors(date: str) -> str:
    return f"analytics:daily:{date}:visitors"


def page_visit(visit_id: str) -> str:
    return f"analytics:visit:{visit_id}"


REDIS_TEST = "test:redis"
