from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from ..backends.base import DataBackend
from ..config import settings
from ..deps import get_session, get_user_backend
from ..errors import ValidationFailed
from ..schemas.account import Session
from ..services.images import ImageFile, ImageSet, add_image, remove_image

router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("", status_code=201)
async def api_upload(
    file: UploadFile = File(...),
    images: List[str] = Form(default=[]),
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    """Upload one image and append it to the listing's current gallery."""
    gallery = ImageSet(images)
    gallery.ensure_room()
    # never buffer more than one byte past the limit
    data = await file.read(settings.MAX_IMAGE_BYTES + 1)
    image = ImageFile(
        filename=file.filename or "",
        content_type=(file.content_type or "").lower(),
        data=data,
    )
    url = await add_image(backend, gallery, image, session.user_id)
    return {"ok": True, "url": url, "images": gallery.urls, "main": gallery.main}


@router.delete("")
async def api_remove(
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    url = (payload.get("url") or "").strip()
    if not url:
        raise ValidationFailed({"url": "Image URL is required"})
    removed = await remove_image(backend, url, session.user_id)
    return {"ok": True, "url": url, "removed_remote": removed}
