"""
Blog repository.

Posts are keyed by slug. Indexes: all posts, published posts, featured
posts, one set per tag plus the tag listing, and sorted sets by publish date
and by view count.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Mapping, Optional

from portfolio_backend import keys
from portfolio_backend.errors import Conflict
from portfolio_backend.models import BlogPost, now_iso, to_unix
from portfolio_backend.repository import Repository, store_errors
from portfolio_backend.store import Pipeline

logger = logging.getLogger(__name__)


def newest_first(posts: Iterable[BlogPost]) -> list[BlogPost]:
    return sorted(posts, key=lambda p: to_unix(p.published_at), reverse=True)


class BlogRepository(Repository[BlogPost]):
    entity = "blog post"
    record_type = BlogPost
    key_prefix = "blog:"

    def _index(self, pipe: Pipeline, post: BlogPost) -> None:
        pipe.sadd(keys.BLOG_ALL, post.id)
        if post.published:
            pipe.sadd(keys.BLOG_PUBLISHED, post.id)
        if post.featured:
            pipe.sadd(keys.BLOG_FEATURED, post.id)
        for tag in post.tags:
            pipe.sadd(keys.BLOG_TAGS, tag)
            pipe.sadd(keys.blog_by_tag(tag), post.id)
        pipe.zadd(keys.BLOG_BY_DATE, {post.id: to_unix(post.published_at)})
        pipe.zadd(keys.BLOG_BY_VIEWS, {post.id: post.view_count})

    def _unindex(self, pipe: Pipeline, post: BlogPost) -> None:
        pipe.srem(keys.BLOG_ALL, post.id)
        pipe.srem(keys.BLOG_PUBLISHED, post.id)
        pipe.srem(keys.BLOG_FEATURED, post.id)
        for tag in post.tags:
            pipe.srem(keys.blog_by_tag(tag), post.id)
        pipe.zrem(keys.BLOG_BY_DATE, post.id)
        pipe.zrem(keys.BLOG_BY_VIEWS, post.id)

    def _prune_tags(self, tags: Iterable[str]) -> None:
        self.prune_value_sets(keys.BLOG_TAGS, keys.blog_by_tag, tags)

    def create(self, post: BlogPost) -> BlogPost:
        post.id = keys.blog_post(post.slug)
        if self.exists(post.id):
            raise Conflict(f"Post with slug '{post.slug}' already exists", details=post.id)
        pipe = self.store.pipeline()
        self.queue_save(pipe, post)
        self._index(pipe, post)
        self.execute(pipe, "failed to create blog post")
        logger.info("Created blog post %s", post.id)
        return post

    def create_many(self, posts: Iterable[BlogPost]) -> list[BlogPost]:
        posts = list(posts)
        for post in posts:
            post.id = keys.blog_post(post.slug)
        previous = self.get_many(p.id for p in posts)
        pipe = self.store.pipeline()
        for old in previous:
            self._unindex(pipe, old)
        for post in posts:
            self.queue_save(pipe, post)
            self._index(pipe, post)
        self.execute(pipe, "failed to create blog posts")
        self._prune_tags(tag for old in previous for tag in old.tags)
        return posts

    def get_by_slug(self, slug: str) -> BlogPost:
        return self.get_by_id(keys.blog_post(slug))

    def get_all(self) -> list[BlogPost]:
        return newest_first(self.get_many(self.members(keys.BLOG_ALL)))

    def get_published(self) -> list[BlogPost]:
        return newest_first(self.get_many(self.members(keys.BLOG_PUBLISHED)))

    def get_featured(self) -> list[BlogPost]:
        return newest_first(self.get_many(self.members(keys.BLOG_FEATURED)))

    def get_by_tag(self, tag: str, published_only: bool = False) -> list[BlogPost]:
        posts = self.get_many(self.members(keys.blog_by_tag(tag)))
        if published_only:
            posts = [p for p in posts if p.published]
        return newest_first(posts)

    def _ranked(self, sorted_key: str, count: int, published_only: bool) -> list[BlogPost]:
        if not published_only:
            return self.top(sorted_key, count)
        with store_errors(f"failed to read {self.entity} ranking"):
            ranked = self.store.zrevrange(sorted_key, 0, -1)
        published = self.members(keys.BLOG_PUBLISHED)
        return self.get_many([i for i in ranked if i in published][:count])

    def get_latest(self, count: int = 10, published_only: bool = False) -> list[BlogPost]:
        return self._ranked(keys.BLOG_BY_DATE, count, published_only)

    def get_popular(self, count: int = 10, published_only: bool = False) -> list[BlogPost]:
        return self._ranked(keys.BLOG_BY_VIEWS, count, published_only)

    def get_tags(self) -> list[str]:
        return sorted(self.members(keys.BLOG_TAGS))

    def update(self, record_id: str, changes: Mapping[str, Any]) -> BlogPost:
        existing = self.get_by_id(record_id)
        updated = dataclasses.replace(existing, **dict(changes), updated_at=now_iso())
        pipe = self.store.pipeline()
        self._unindex(pipe, existing)
        self._index(pipe, updated)
        self.queue_save(pipe, updated)
        self.execute(pipe, "failed to update blog post")
        self._prune_tags(set(existing.tags) - set(updated.tags))
        return updated

    def increment_views(self, record_id: str) -> BlogPost:
        post = self.get_by_id(record_id)
        post.view_count += 1
        pipe = self.store.pipeline()
        self.queue_save(pipe, post)
        pipe.zadd(keys.BLOG_BY_VIEWS, {post.id: post.view_count})
        self.execute(pipe, "failed to increment blog post views")
        return post

    def delete(self, record_id: str) -> BlogPost:
        existing = self.get_by_id(record_id)
        pipe = self.store.pipeline()
        pipe.delete(existing.id)
        self._unindex(pipe, existing)
        self.execute(pipe, "failed to delete blog post")
        self._prune_tags(existing.tags)
        logger.info("Deleted blog post %s", existing.id)
        return existing

    @staticmethod
    def page(posts: Iterable[BlogPost], page: int = 1, limit: int = 10) -> dict:
        """Newest-first page of post summaries."""
        ordered = newest_first(posts)
        start = (page - 1) * limit
        return {
            "posts": [p.summary() for p in ordered[start : start + limit]],
            "total": len(ordered),
            "page": page,
            "limit": limit,
        }

    def find_by_slug(self, slug: str) -> Optional[BlogPost]:
        return self.find(keys.blog_post(slug))
