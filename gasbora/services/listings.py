# gasbora/services/listings.py
"""
Listing lifecycle: create, edit, delete and status toggle.

Every operation takes the caller's ``Session`` explicitly. Role and ownership
checks run before any write; input and image-count problems are reported
before any network call.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Iterable, Mapping

from ..backends.base import DataBackend
from ..errors import NotFound, PermissionDenied, ValidationFailed
from ..schemas.account import Session
from ..schemas.listing import Listing, ListingInput, ListingStatus
from .images import ImageSet, remove_image
from .saga import SagaReport, SagaStep, run_saga
from .users import can_create_listings
from .validation import validate_listing

logger = logging.getLogger(__name__)


def _image_fields(images: ImageSet) -> dict:
    # legacy readers only know image_url
    return {"images": images.urls, "image_url": images.legacy_image_url}


async def _owned_listing(backend: DataBackend, session: Session, listing_id: str) -> Listing:
    listing = await backend.get_listing(listing_id)
    if not listing:
        raise NotFound("Listing not found")
    if listing.seller_id != session.user_id:
        raise PermissionDenied("You can only change your own listings")
    return listing


async def create_listing(backend: DataBackend, session: Session, listing: ListingInput,
                         images: Iterable[str] = ()) -> Listing:
    image_set = ImageSet(images)
    roles = await backend.list_roles(session.user_id)
    if not can_create_listings(roles):
        raise PermissionDenied("You need to be a registered seller or station operator to create listings.")

    fields = listing.model_dump(mode="json")
    fields.update(_image_fields(image_set))
    fields["status"] = ListingStatus.AVAILABLE.value

    created = await backend.insert_listing(session.user_id, fields)
    logger.info("listing created id=%s seller=%s", created.id, session.user_id)
    return created


async def update_listing(backend: DataBackend, session: Session, listing_id: str,
                         raw_patch: Mapping, images: Iterable[str] | None = None) -> Listing:
    """
    Apply a partial edit. The patch is merged onto the stored fields and the
    merged record is validated as a whole; only changed keys are sent.

    ``images`` replaces the whole sequence in the same write, so readers see
    either the old list or the new one.
    """
    image_set = ImageSet(images) if images is not None else None
    existing = await _owned_listing(backend, session, listing_id)

    merged = {**existing.editable_fields(), **dict(raw_patch)}
    result = validate_listing(merged)
    if not result.ok:
        raise ValidationFailed(result.errors)

    normalized = result.value.model_dump(mode="json")
    stored = existing.editable_fields()
    patch = {k: v for k, v in normalized.items() if stored.get(k) != v}

    if "status" in raw_patch:
        try:
            patch["status"] = ListingStatus(str(raw_patch["status"])).value
        except ValueError:
            raise ValidationFailed({"status": "Status must be available, reserved or sold"})

    dropped: list[str] = []
    if image_set is not None:
        patch.update(_image_fields(image_set))
        dropped = [u for u in existing.gallery if u not in image_set.urls]

    if not patch:
        return existing

    updated = await backend.update_listing(listing_id, session.user_id, patch)
    logger.info("listing updated id=%s fields=%s", listing_id, sorted(patch))

    # images taken out of the gallery are no longer referenced anywhere
    if dropped:
        await run_saga([
            SagaStep(f"delete-image:{url}", partial(_remove_or_raise, backend, url, session.user_id),
                     required=False)
            for url in dropped
        ])
    return updated


async def _remove_or_raise(backend: DataBackend, url: str, owner_id: str) -> None:
    if backend.object_path(url) is None:
        return      # not in our bucket, nothing to clean up
    if not await remove_image(backend, url, owner_id):
        raise RuntimeError("image left in storage")


async def delete_listing(backend: DataBackend, session: Session, listing_id: str) -> SagaReport:
    """
    Remove a listing, then its stored images.

    Record deletion is required; each image delete is best effort and never
    blocks the others or the record.
    """
    listing = await _owned_listing(backend, session, listing_id)

    steps = [SagaStep("delete-record", partial(backend.delete_listing, listing_id, session.user_id))]
    steps += [
        SagaStep(f"delete-image:{url}", partial(_remove_or_raise, backend, url, session.user_id),
                 required=False)
        for url in listing.gallery
    ]
    report = await run_saga(steps)
    if not report.clean:
        logger.warning("listing %s deleted with %s orphaned image(s)", listing_id, len(report.failed))
    else:
        logger.info("listing deleted id=%s", listing_id)
    return report


async def toggle_status(backend: DataBackend, session: Session, listing_id: str) -> Listing:
    """available -> sold; sold (or reserved) -> available."""
    listing = await _owned_listing(backend, session, listing_id)
    if listing.status == ListingStatus.AVAILABLE:
        new_status = ListingStatus.SOLD
    else:
        new_status = ListingStatus.AVAILABLE
    return await backend.update_listing(listing_id, session.user_id, {"status": new_status.value})


async def list_seller_listings(backend: DataBackend, session: Session) -> dict:
    items = await backend.list_seller_listings(session.user_id)
    return {
        "items": items,
        "total": len(items),
        "active": sum(1 for l in items if l.status == ListingStatus.AVAILABLE),
    }
