"""
Image upload endpoints. Every route here requires an admin token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile

from portfolio_backend.dependencies import get_upload_service, require_admin
from portfolio_backend.schemas import RenameRequest
from portfolio_backend.uploads import UploadService

router = APIRouter(prefix="/upload", tags=["uploads"], dependencies=[Depends(require_admin)])


@router.post("", status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    saved = uploads.save_file(file.filename or "", await file.read())
    return {"message": "File uploaded successfully", **saved}


@router.post("/multiple", status_code=201)
async def upload_files(
    files: list[UploadFile] = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    contents = [(f.filename or "", await f.read()) for f in files]
    uploaded, errors = uploads.save_many(contents)
    body = {"message": f"Uploaded {len(uploaded)} files", "uploaded_files": uploaded}
    if errors:
        body["errors"] = errors
    return body


@router.post("/project/{project_id}", status_code=201)
async def upload_project_image(
    project_id: str,
    file: UploadFile = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    saved = uploads.save_project_image(project_id, file.filename or "", await file.read())
    return {"message": "Project image uploaded successfully", **saved}


@router.post("/skill/{skill_name}", status_code=201)
async def upload_skill_icon(
    skill_name: str,
    file: UploadFile = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    saved = uploads.save_skill_icon(skill_name, file.filename or "", await file.read())
    return {"message": "Skill icon uploaded successfully", **saved}


@router.post("/blog-image", status_code=201)
async def upload_blog_image(
    slug: Optional[str] = None,
    file: UploadFile = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    saved = uploads.save_blog_image(file.filename or "", await file.read(), slug=slug)
    return {"message": "Blog image uploaded successfully", **saved}


@router.post("/rename/{project_id}")
def rename_project_image(
    project_id: str,
    payload: RenameRequest,
    uploads: UploadService = Depends(get_upload_service),
):
    renamed = uploads.rename_project_image(project_id, payload.oldImageUrl)
    return {"message": "Project image renamed successfully", **renamed}


@router.post("/rename-skill/{skill_name}")
def rename_skill_icon(
    skill_name: str,
    payload: RenameRequest,
    uploads: UploadService = Depends(get_upload_service),
):
    renamed = uploads.rename_skill_icon(skill_name, payload.oldImageUrl)
    return {"message": "Skill icon renamed successfully", **renamed}


@router.post("/migrate-skills")
def migrate_skill_icons(uploads: UploadService = Depends(get_upload_service)):
    return {"message": "Skill migration completed", **uploads.migrate_skill_icons()}


@router.get("/uploads")
def list_uploads(uploads: UploadService = Depends(get_upload_service)):
    files = uploads.list_uploads()
    return {"message": "Files retrieved successfully", "count": len(files), "files": files}


@router.get("/project-images")
def project_images(uploads: UploadService = Depends(get_upload_service)):
    return {"message": "Project image URLs retrieved successfully", **uploads.project_image_urls()}


@router.delete("/uploads/{filename}", status_code=204)
def delete_upload(filename: str, uploads: UploadService = Depends(get_upload_service)):
    uploads.delete_upload(filename)
    return Response(status_code=204)
