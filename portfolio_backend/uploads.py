"""
Image uploads stored on local disk.

Three categories each have their own directory, public URL prefix, size
ceiling and extension allow-list. Project images, skill icons and slugged
blog images get deterministic names; the files each owner holds are
tracked in the store so a re-upload replaces what was there before.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional
from urllib.parse import urlparse

import requests

from portfolio_backend import keys
from portfolio_backend.config import Settings
from portfolio_backend.errors import NotFound, PortfolioError, ValidationError, wrap
from portfolio_backend.projects import ProjectsRepository
from portfolio_backend.repository import store_errors
from portfolio_backend.skills import SkillsRepository
from portfolio_backend.store import KeyValueStore

logger = logging.getLogger(__name__)

MB = 1024 * 1024
DOWNLOAD_TIMEOUT = 30  # seconds
FIREBASE_HOST = "firebasestorage.googleapis.com"

CONTENT_TYPE_EXTENSIONS = {
    "image/svg+xml": ".svg",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

TURKISH_LETTERS = str.maketrans(
    {"ç": "c", "ğ": "g", "ı": "i", "ö": "o", "ş": "s", "ü": "u", "İ": "i"}
)


@dataclass(frozen=True)
class UploadCategory:
    name: str
    url_prefix: str
    max_bytes: int
    extensions: frozenset
    label: str


GENERAL = UploadCategory(
    "general", "/uploads/", 10 * MB,
    frozenset({".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp"}), "images",
)
SKILL_ICONS = UploadCategory(
    "skill", "/skills-upload/", 5 * MB,
    frozenset({".svg", ".png", ".jpg", ".jpeg", ".webp"}), "SVG, PNG, JPG, JPEG, WEBP",
)
BLOG_IMAGES = UploadCategory(
    "blog", "/blog-upload/", 5 * MB,
    frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"}), "JPG, JPEG, PNG, GIF, WEBP",
)


def extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


def sanitize_filename(filename: str) -> str:
    path = PurePosixPath(filename)
    name = re.sub(r"[^a-zA-Z0-9\-_.]", "_", path.stem)
    name = re.sub(r"_+", "_", name).strip("_")
    return (name or "upload") + path.suffix


def project_image_name(project_id: str, ext: str) -> str:
    safe_id = project_id.replace(":", "-").replace(" ", "-").lower()
    return f"{safe_id}-main{ext}"


def skill_icon_name(skill_name: str, ext: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9\-]", "", skill_name.replace(" ", "-").lower())
    return f"{safe}{ext}"


def sanitize_slug(slug: str) -> str:
    name = slug.lower().translate(TURKISH_LETTERS).replace(" ", "-")
    name = re.sub(r"[^a-z0-9\-]", "", name)
    name = re.sub(r"-+", "-", name).strip("-")
    return name or "image"


def filename_from_url(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    if not name or name in {".", ".."}:
        raise ValidationError("Invalid image URL", details=url)
    return name


class UploadService:
    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        projects: ProjectsRepository,
        skills: SkillsRepository,
    ):
        self.settings = settings
        self.store = store
        self.projects = projects
        self.skills = skills
        self.directories = {
            GENERAL.name: Path(settings.upload_dir),
            SKILL_ICONS.name: Path(settings.skills_upload_dir),
            BLOG_IMAGES.name: Path(settings.blog_upload_dir),
        }

    # Helpers

    def directory(self, category: UploadCategory) -> Path:
        return self.directories[category.name]

    def url_for(self, category: UploadCategory, filename: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}{category.url_prefix}{filename}"

    def validate(self, category: UploadCategory, filename: str, size: int) -> str:
        if not filename:
            raise ValidationError("No file provided")
        if size > category.max_bytes:
            raise ValidationError(
                f"File {filename} is too large. Maximum size is {category.max_bytes // MB}MB"
            )
        ext = extension(filename)
        if ext not in category.extensions:
            raise ValidationError(
                f"Invalid file type for {filename}. Allowed: {category.label}"
            )
        return ext

    def _write(self, category: UploadCategory, filename: str, data: bytes) -> dict:
        path = self.directory(category) / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise wrap("failed to save file", exc) from exc
        return {"filename": filename, "url": self.url_for(category, filename), "size": len(data)}

    def _owned(self, category: UploadCategory, owner: str) -> set[str]:
        with store_errors("failed to read upload ownership"):
            return self.store.smembers(keys.uploads_owned(category.name, owner))

    def _claim(self, category: UploadCategory, owner: str, filename: str) -> None:
        """Make ``filename`` the only file ``owner`` holds, deleting the rest."""
        for stale in self._owned(category, owner) - {filename}:
            self._unlink(category, stale)
        ownership = keys.uploads_owned(category.name, owner)
        pipe = self.store.pipeline()
        pipe.delete(ownership)
        pipe.sadd(ownership, filename)
        with store_errors("failed to record upload ownership"):
            pipe.execute()

    def _unlink(self, category: UploadCategory, filename: str) -> None:
        try:
            (self.directory(category) / filename).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove old upload %s: %s", filename, exc)

    def _save_owned(
        self, category: UploadCategory, owner: str, filename: str, data: bytes
    ) -> dict:
        saved = self._write(category, filename, data)
        self._claim(category, owner, filename)
        return saved

    # Generic uploads

    def save_file(self, filename: str, data: bytes) -> dict:
        self.validate(GENERAL, filename, len(data))
        name = f"{int(time.time())}_{sanitize_filename(filename)}"
        return self._write(GENERAL, name, data)

    def save_many(self, files: Iterable[tuple[str, bytes]]) -> tuple[list[dict], list[str]]:
        """Best effort: each file is validated and written independently."""
        uploaded, errors = [], []
        for filename, data in files:
            try:
                self.validate(GENERAL, filename, len(data))
                name = f"{time.time_ns()}_{sanitize_filename(filename)}"
                uploaded.append(self._write(GENERAL, name, data))
            except PortfolioError as exc:
                errors.append(exc.message)
        return uploaded, errors

    # Entity images

    def save_project_image(self, project_id: str, filename: str, data: bytes) -> dict:
        ext = self.validate(GENERAL, filename, len(data))
        project_key = self.projects.key_for(project_id)
        saved = self._save_owned(GENERAL, project_key, project_image_name(project_key, ext), data)
        saved["project_id"] = project_key
        saved["project_updated"] = self._update_project_image(project_key, saved["url"])
        return saved

    def _update_project_image(self, project_key: str, url: str) -> bool:
        try:
            self.projects.set_image(project_key, url)
        except PortfolioError as exc:
            logger.warning("Saved image but could not update project %s: %s", project_key, exc.message)
            return False
        return True

    def save_skill_icon(self, skill_name: str, filename: str, data: bytes) -> dict:
        ext = self.validate(SKILL_ICONS, filename, len(data))
        saved = self._save_owned(
            SKILL_ICONS, skill_name.lower(), skill_icon_name(skill_name, ext), data
        )
        saved["skill_name"] = skill_name
        saved["updated_skills"] = self._update_skill_icons(skill_name, saved["url"])
        return saved

    def _update_skill_icons(self, skill_name: str, url: str) -> int:
        updated = 0
        try:
            for skill in self.skills.get_by_name(skill_name):
                self.skills.set_icon(skill, url)
                updated += 1
        except PortfolioError as exc:
            logger.warning("Saved icon but could not update skill %s: %s", skill_name, exc.message)
        if not updated:
            logger.warning("No skill named %r to attach icon %s to", skill_name, url)
        return updated

    def save_blog_image(self, filename: str, data: bytes, slug: Optional[str] = None) -> dict:
        ext = self.validate(BLOG_IMAGES, filename, len(data))
        if slug:
            return self._save_owned(BLOG_IMAGES, slug, f"blog-{sanitize_slug(slug)}{ext}", data)
        return self._write(BLOG_IMAGES, f"blog-{int(time.time())}{ext}", data)

    def _rename(self, category: UploadCategory, owner: str, old_url: str, new_name_for) -> tuple[str, str]:
        old_name = filename_from_url(old_url)
        old_path = self.directory(category) / old_name
        if not old_path.is_file():
            raise NotFound("Image file not found", details=old_name)
        new_name = new_name_for(extension(old_name))
        for stale in self._owned(category, owner) - {old_name, new_name}:
            self._unlink(category, stale)
        try:
            old_path.replace(self.directory(category) / new_name)
        except OSError as exc:
            raise wrap("failed to rename image file", exc) from exc
        self._claim(category, owner, new_name)
        return old_name, new_name

    def rename_project_image(self, project_id: str, old_url: str) -> dict:
        """Move a timestamp-named upload onto the project's deterministic name."""
        project_key = self.projects.key_for(project_id)
        old_name, new_name = self._rename(
            GENERAL, project_key, old_url, lambda ext: project_image_name(project_key, ext)
        )
        url = self.url_for(GENERAL, new_name)
        return {
            "oldFilename": old_name,
            "newFilename": new_name,
            "newImageUrl": url,
            "projectId": project_key,
            "project_updated": self._update_project_image(project_key, url),
        }

    def rename_skill_icon(self, skill_name: str, old_url: str) -> dict:
        old_name, new_name = self._rename(
            SKILL_ICONS, skill_name.lower(), old_url, lambda ext: skill_icon_name(skill_name, ext)
        )
        url = self.url_for(SKILL_ICONS, new_name)
        return {
            "oldFilename": old_name,
            "newFilename": new_name,
            "newImageUrl": url,
            "skillName": skill_name,
            "updated_skills": self._update_skill_icons(skill_name, url),
        }

    def remove_owned_files(self, kind: str, owner: str) -> int:
        category = {c.name: c for c in (GENERAL, SKILL_ICONS, BLOG_IMAGES)}[kind]
        owned = self._owned(category, owner)
        for filename in owned:
            self._unlink(category, filename)
        with store_errors("failed to clear upload ownership"):
            self.store.delete(keys.uploads_owned(category.name, owner))
        return len(owned)

    # Listing

    def list_uploads(self) -> list[dict]:
        directory = self.directory(GENERAL)
        if not directory.exists():
            return []
        try:
            entries = sorted(p for p in directory.iterdir() if p.is_file())
            return [
                {
                    "filename": p.name,
                    "url": self.url_for(GENERAL, p.name),
                    "size": p.stat().st_size,
                    "modified": p.stat().st_mtime,
                }
                for p in entries
            ]
        except OSError as exc:
            raise wrap("failed to read uploads directory", exc) from exc

    def delete_upload(self, filename: str) -> None:
        if not filename or ".." in filename or "/" in filename or "\\" in filename:
            logger.warning("Rejected upload deletion for %r", filename)
            raise ValidationError("Invalid filename")
        path = self.directory(GENERAL) / filename
        if not path.is_file():
            raise NotFound("File not found", details=filename)
        try:
            path.unlink()
        except OSError as exc:
            raise wrap("failed to delete file", exc) from exc

    def project_image_urls(self) -> dict:
        projects = self.projects.get_all()
        with_images = [
            {
                "project_id": p.id,
                "project_title": p.title,
                "image_url": p.image,
                "status": p.status,
                "created_at": p.created_at,
            }
            for p in projects
            if p.image
        ]
        return {
            "total_projects": len(projects),
            "projects_with_images": len(with_images),
            "image_urls": with_images,
        }

    # Migration

    def download_image(self, url: str) -> tuple[bytes, str]:
        response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        ext = CONTENT_TYPE_EXTENSIONS.get(content_type)
        if ext is None:
            path = urlparse(url).path.lower()
            ext = next((e for e in (".svg", ".png", ".jpg", ".jpeg") if e in path), ".png")
            ext = ".jpg" if ext == ".jpeg" else ext
        return response.content, ext

    def migrate_skill_icons(self) -> dict:
        """Copy Firebase-hosted skill icons into the skills directory."""
        migrated, errors = [], []
        for skill in self.skills.get_all():
            if FIREBASE_HOST not in skill.icon:
                continue
            try:
                data, ext = self.download_image(skill.icon)
            except requests.RequestException as exc:
                errors.append(f"Failed to download {skill.skill}: {exc}")
                continue
            try:
                saved = self._save_owned(
                    SKILL_ICONS, skill.skill.lower(), skill_icon_name(skill.skill, ext), data
                )
                self.skills.set_icon(skill, saved["url"])
            except PortfolioError as exc:
                errors.append(f"Failed to migrate {skill.skill}: {exc.details or exc.message}")
                continue
            migrated.append(skill.skill)
            logger.info("Migrated icon for %s to %s", skill.skill, saved["url"])
        return {
            "migrated_skills": migrated,
            "migrated_count": len(migrated),
            "errors": errors,
            "error_count": len(errors),
        }
