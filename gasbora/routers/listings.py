from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from ..backends.base import DataBackend
from ..deps import get_backend, get_feed, get_session, get_user_backend
from ..errors import NotFound, ValidationFailed
from ..schemas.account import Session
from ..services import listings as lifecycle
from ..services.feed import ListingFeed
from ..services.query import ListingQuery
from ..services.users import contact_links
from ..services.validation import validate_listing

router = APIRouter(prefix="/api/listings", tags=["listings"])


def _images_from(payload: dict) -> Optional[list[str]]:
    if "images" not in payload:
        return None
    images = payload.get("images") or []
    if not isinstance(images, list) or not all(isinstance(u, str) for u in images):
        raise ValidationFailed({"images": "Images must be a list of URLs"})
    return images


# ---------- browse ----------
@router.get("")
async def api_browse(
    q: Optional[str] = None,
    size: Optional[str] = None,
    listing_type: Optional[str] = Query(None, alias="type"),
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    sort: Optional[str] = None,
    feed: ListingFeed = Depends(get_feed),
):
    query = ListingQuery.parse(q, size, listing_type, min_price, max_price, sort)
    # filter this request's own fetch; the shared snapshot may belong to a newer one
    snapshot = await feed.refresh()
    items = snapshot.visible(query)
    return {
        "ok": True,
        "items": [it.to_dict() for it in items],
        "count": len(items),
        "price_range": list(snapshot.bounds),
    }


@router.get("/mine")
async def api_my_listings(
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    data = await lifecycle.list_seller_listings(backend, session)
    return {
        "ok": True,
        "items": [it.to_dict() for it in data["items"]],
        "total": data["total"],
        "active": data["active"],
    }


@router.get("/{listing_id}")
async def api_listing_detail(listing_id: str, backend: DataBackend = Depends(get_backend)):
    listing = await backend.get_listing(listing_id)
    if not listing:
        raise NotFound("Listing not found")
    seller = await backend.get_profile(listing.seller_id)
    return {
        "ok": True,
        "listing": listing.to_dict(),
        "seller": seller.model_dump(mode="json") if seller else None,
        "contact": contact_links(seller, listing),
    }


# ---------- seller CRUD ----------
@router.post("", status_code=201)
async def api_create(
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    result = validate_listing(payload)
    if not result.ok:
        raise ValidationFailed(result.errors)
    listing = await lifecycle.create_listing(backend, session, result.value, _images_from(payload) or [])
    return {"ok": True, "id": listing.id, "listing": listing.to_dict()}


@router.patch("/{listing_id}")
async def api_update(
    listing_id: str,
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    images = _images_from(payload)
    patch = {k: v for k, v in payload.items() if k != "images"}
    listing = await lifecycle.update_listing(backend, session, listing_id, patch, images)
    return {"ok": True, "listing": listing.to_dict()}


@router.delete("/{listing_id}")
async def api_delete(
    listing_id: str,
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    report = await lifecycle.delete_listing(backend, session, listing_id)
    return {"ok": True, "deleted": listing_id, "cleanup": report.to_dict()}


@router.post("/{listing_id}/toggle-status")
async def api_toggle_status(
    listing_id: str,
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_user_backend),
):
    listing = await lifecycle.toggle_status(backend, session, listing_id)
    return {"ok": True, "id": listing.id, "status": listing.status.value}
