"""
Blog endpoints, including markdown import and export.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from portfolio_backend.analytics import AnalyticsRepository
from portfolio_backend.blog import BlogRepository
from portfolio_backend.config import Settings, get_settings
from portfolio_backend.dependencies import (
    get_analytics_repository,
    get_blog_repository,
    get_upload_service,
    require_admin,
)
from portfolio_backend.errors import PortfolioError
from portfolio_backend.markdown import parse_markdown, render_markdown
from portfolio_backend.models import BlogPost, calculate_reading_time, generate_excerpt, new_blog_post
from portfolio_backend.routes.common import DEFAULT_COUNT, DEFAULT_LIMIT, DEFAULT_PAGE, positive_int
from portfolio_backend.schemas import BlogPostCreate, BlogPostsMigration, BlogPostUpdate, MarkdownBulkImport, MarkdownImport
from portfolio_backend.uploads import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blog", tags=["blog"])


@router.get("/posts")
def list_posts(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    tag: Optional[str] = None,
    repo: BlogRepository = Depends(get_blog_repository),
):
    if tag:
        posts = repo.get_by_tag(tag, published_only=True)
        return {"tag": tag, "count": len(posts), "posts": [p.summary() for p in posts]}
    return repo.page(
        repo.get_published(),
        positive_int(page, DEFAULT_PAGE),
        positive_int(limit, DEFAULT_LIMIT),
    )


@router.get("/posts/latest")
def latest_posts(
    count: Optional[str] = None,
    repo: BlogRepository = Depends(get_blog_repository),
):
    posts = repo.get_latest(positive_int(count, DEFAULT_COUNT), published_only=True)
    return {
        "message": "Latest posts retrieved successfully",
        "count": len(posts),
        "posts": [p.summary() for p in posts],
    }


@router.get("/posts/popular")
def popular_posts(
    count: Optional[str] = None,
    repo: BlogRepository = Depends(get_blog_repository),
):
    posts = repo.get_popular(positive_int(count, DEFAULT_COUNT), published_only=True)
    return {
        "message": "Popular posts retrieved successfully",
        "count": len(posts),
        "posts": [p.summary() for p in posts],
    }


@router.get("/posts/{slug}")
def get_post(
    slug: str,
    repo: BlogRepository = Depends(get_blog_repository),
    analytics: AnalyticsRepository = Depends(get_analytics_repository),
):
    """Full post; reading it counts as a view."""
    post = repo.get_by_slug(slug)
    try:
        post = repo.increment_views(post.id)
        analytics.increment_blog_views()
    except PortfolioError as exc:
        logger.warning("Failed to count view for %s: %s", post.id, exc.details)
    return {"post": post.as_dict()}


@router.get("/tags")
def list_tags(repo: BlogRepository = Depends(get_blog_repository)):
    tags = repo.get_tags()
    return {"tags": tags, "count": len(tags)}


@router.post("/posts/{post_id}/views")
def increment_post_views(
    post_id: str,
    repo: BlogRepository = Depends(get_blog_repository),
    analytics: AnalyticsRepository = Depends(get_analytics_repository),
):
    post = repo.increment_views(post_id)
    try:
        analytics.increment_blog_views()
    except PortfolioError as exc:
        logger.warning("Failed to increment analytics blog views: %s", exc.details)
    return {"message": "Post views incremented successfully", "view_count": post.view_count}


# Admin


@router.get("/admin/posts", dependencies=[Depends(require_admin)])
def list_all_posts(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    repo: BlogRepository = Depends(get_blog_repository),
):
    return repo.page(
        repo.get_all(),
        positive_int(page, DEFAULT_PAGE),
        positive_int(limit, DEFAULT_LIMIT),
    )


@router.post("/posts", status_code=201, dependencies=[Depends(require_admin)])
def create_post(
    payload: BlogPostCreate,
    repo: BlogRepository = Depends(get_blog_repository),
    settings: Settings = Depends(get_settings),
):
    post = new_blog_post(
        payload.title,
        payload.content,
        payload.author or settings.default_author,
        payload.tags,
    )
    post.featured = payload.featured
    post.published = payload.published
    post.featured_image = payload.featured_image
    post.meta_description = payload.meta_description or post.excerpt
    post.meta_keywords = payload.meta_keywords
    post = repo.create(post)
    return {"message": "Blog post created successfully", "post": post.as_dict()}


@router.post("/posts/migrate", status_code=201, dependencies=[Depends(require_admin)])
def migrate_posts(
    payload: BlogPostsMigration,
    repo: BlogRepository = Depends(get_blog_repository),
):
    errors = []
    created = 0
    for record in payload.posts:
        post = BlogPost.from_dict(record.model_dump(exclude_none=True))
        post.excerpt = post.excerpt or generate_excerpt(post.content)
        post.reading_time = record.reading_time or calculate_reading_time(post.content)
        try:
            repo.create(post)
        except PortfolioError as exc:
            errors.append(f"Failed to create post {post.id}: {exc.message}")
            continue
        created += 1

    body = {
        "message": "Blog posts migration completed",
        "success_count": created,
        "total_count": len(payload.posts),
    }
    if errors:
        body["errors"] = errors
    return body


@router.put("/posts/{post_id}", dependencies=[Depends(require_admin)])
def update_post(
    post_id: str,
    payload: BlogPostUpdate,
    repo: BlogRepository = Depends(get_blog_repository),
    uploads: UploadService = Depends(get_upload_service),
):
    existing = repo.get_by_id(post_id)
    post = repo.update(existing.id, payload.changes())
    if existing.featured_image and not post.featured_image:
        try:
            uploads.remove_owned_files("blog", existing.slug)
        except PortfolioError as exc:
            logger.warning("Cleared image of %s but kept the file: %s", post.id, exc.message)
    return {"message": "Blog post updated successfully", "post": post.as_dict()}


@router.delete("/posts/{post_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_post(
    post_id: str,
    repo: BlogRepository = Depends(get_blog_repository),
    uploads: UploadService = Depends(get_upload_service),
):
    post = repo.delete(post_id)
    try:
        uploads.remove_owned_files("blog", post.slug)
    except PortfolioError as exc:
        logger.warning("Deleted %s but kept its image: %s", post.id, exc.message)
    return Response(status_code=204)


@router.post("/import-md", status_code=201, dependencies=[Depends(require_admin)])
def import_markdown(
    payload: MarkdownImport,
    repo: BlogRepository = Depends(get_blog_repository),
    settings: Settings = Depends(get_settings),
):
    post = parse_markdown(payload.content, payload.filename, settings.default_author)
    existing = repo.find_by_slug(post.slug)
    if existing is not None:
        return JSONResponse(
            status_code=409,
            content={
                "error": f"Post with slug '{post.slug}' already exists",
                "existing_id": existing.id,
            },
        )
    repo.create(post)
    return {
        "message": "MD file imported successfully",
        "post": {"id": post.id, "slug": post.slug, "title": post.title},
    }


@router.post("/import-bulk", dependencies=[Depends(require_admin)])
def import_markdown_bulk(
    payload: MarkdownBulkImport,
    repo: BlogRepository = Depends(get_blog_repository),
    settings: Settings = Depends(get_settings),
):
    results = []
    for item in payload.files:
        result = {"success": False, "filename": item.filename}
        try:
            post = parse_markdown(item.content, item.filename, settings.default_author)
            repo.create(post)
        except PortfolioError as exc:
            result["error"] = f"{exc.message}: {exc.details}" if exc.details else exc.message
        else:
            result.update(success=True, slug=post.slug, post_id=post.id)
        results.append(result)

    succeeded = sum(1 for r in results if r["success"])
    return {
        "message": "Bulk import completed",
        "total_files": len(payload.files),
        "success_count": succeeded,
        "failed_count": len(payload.files) - succeeded,
        "results": results,
    }


@router.get("/export-md/{slug}", dependencies=[Depends(require_admin)])
def export_markdown(slug: str, repo: BlogRepository = Depends(get_blog_repository)):
    post = repo.get_by_slug(slug)
    return Response(
        content=render_markdown(post),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{post.slug}.md"'},
    )
