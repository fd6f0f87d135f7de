"""
Markdown import/export for blog posts.

Files carry a YAML front matter block delimited by ``---`` lines followed by
the markdown body.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

import yaml

from portfolio_backend import keys
from portfolio_backend.errors import ValidationError
from portfolio_backend.models import BlogPost, calculate_reading_time, isoformat, now_iso, slugify, to_unix

IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
EXCERPT_LENGTH = 150
NO_EXCERPT = "No excerpt available"


def split_front_matter(content: str) -> tuple[str, str]:
    lines = content.strip().split("\n")
    if not lines or lines[0].strip() != "---":
        raise ValidationError("Failed to parse MD content", details="frontmatter must start with ---")
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            front = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1 :])
            return front.strip(), body.strip()
    raise ValidationError("Failed to parse MD content", details="frontmatter must end with ---")


def excerpt_from_body(body: str) -> str:
    """First paragraph line that is not a heading."""
    for line in body.split("\n"):
        line = line.strip()
        if len(line) > 10 and not line.startswith("#"):
            if len(line) > EXCERPT_LENGTH:
                return line[:EXCERPT_LENGTH] + "..."
            return line
    return NO_EXCERPT


def absolutize_image_paths(body: str) -> str:
    def replace(match: re.Match) -> str:
        alt, path = match.group(1), match.group(2)
        if path.startswith(("http://", "https://", "data:", "/")):
            return match.group(0)
        return f"![{alt}](/{path.removeprefix('./')})"

    return IMAGE_PATTERN.sub(replace, body)


def _published_at(value) -> str:
    if isinstance(value, datetime):
        return isoformat(value if value.tzinfo else value.replace(tzinfo=timezone.utc))
    if isinstance(value, date):
        return isoformat(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))
    if value:
        try:
            parsed = datetime.strptime(str(value).strip(), "%Y-%m-%d")
        except ValueError:
            return now_iso()
        return isoformat(parsed.replace(tzinfo=timezone.utc))
    return now_iso()


def _tags(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return [str(t) for t in value]


def parse_markdown(content: str, filename: str = "", default_author: str = "") -> BlogPost:
    """Build a published post from a markdown file with front matter."""
    front, body = split_front_matter(content)
    try:
        meta = yaml.safe_load(front) or {}
    except yaml.YAMLError as exc:
        raise ValidationError("Failed to parse MD content", details=f"frontmatter parsing failed: {exc}") from exc
    if not isinstance(meta, dict):
        raise ValidationError("Failed to parse MD content", details="frontmatter must be a mapping")

    title = str(meta.get("title") or "").strip()
    if not title:
        raise ValidationError("Failed to parse MD content", details=f"title is required ({filename or 'unnamed file'})")

    slug = slugify(str(meta.get("slug") or "")) or slugify(title)
    excerpt = str(meta.get("excerpt") or "") or excerpt_from_body(body)
    try:
        view_count = int(meta.get("viewCount") or 0)
    except (TypeError, ValueError):
        view_count = 0

    return BlogPost(
        id=keys.blog_post(slug),
        title=title,
        slug=slug,
        content=absolutize_image_paths(body),
        excerpt=excerpt,
        author=str(meta.get("author") or "") or default_author,
        published_at=_published_at(meta.get("publishedAt")),
        tags=_tags(meta.get("tags")),
        reading_time=str(meta.get("readingTime") or "") or calculate_reading_time(body),
        view_count=view_count,
        featured=bool(meta.get("featured")),
        published=True,
        featured_image=str(meta.get("featuredImage") or ""),
        meta_description=excerpt,
    )


def render_markdown(post: BlogPost) -> str:
    published = datetime.fromtimestamp(to_unix(post.published_at), tz=timezone.utc)
    front = {
        "title": post.title,
        "excerpt": post.excerpt,
        "author": post.author,
        "publishedAt": published.strftime("%Y-%m-%d"),
        "tags": list(post.tags),
        "readingTime": post.reading_time,
        "viewCount": post.view_count,
        "featured": post.featured,
        "slug": post.slug,
        "featuredImage": post.featured_image,
    }
    header = yaml.safe_dump(front, allow_unicode=True, sort_keys=False, default_flow_style=False)
    return f"---\n{header}---\n\n{post.content}"
