from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import quote

from ..backends.base import DataBackend
from ..errors import NotFound, ValidationFailed
from ..schemas.account import SELLING_ROLES, Profile, ProfileUpdate, Role, Session
from ..schemas.listing import Listing
from .validation import validate_model


def can_create_listings(roles: Iterable[Role]) -> bool:
    return any(r in SELLING_ROLES for r in roles)


async def get_roles(backend: DataBackend, user_id: str) -> set[Role]:
    return await backend.list_roles(user_id)


async def get_profile(backend: DataBackend, user_id: str) -> Profile:
    profile = await backend.get_profile(user_id)
    if not profile:
        raise NotFound("Profile not found")
    return profile


async def update_own_profile(backend: DataBackend, session: Session, raw: dict) -> Profile:
    result = validate_model(ProfileUpdate, raw, {
        "full_name": "Name must be less than 100 characters",
        "phone": "Phone must be less than 20 characters",
    })
    if not result.ok:
        raise ValidationFailed(result.errors)
    fields = result.value.model_dump(exclude_unset=True)
    return await backend.update_profile(session.user_id, fields)


# ---------- contact ----------

def whatsapp_number(phone: str) -> str:
    """Digits-only international form for Kenyan numbers (07.. -> 2547..)."""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("0"):
        digits = "254" + digits[1:]
    elif not digits.startswith("254") and len(digits) == 9:
        digits = "254" + digits
    return digits


def contact_links(profile: Profile | None, listing: Listing) -> dict | None:
    """WhatsApp and phone links for a listing's seller, None without a phone."""
    if not profile or not profile.phone:
        return None
    text = f'Hi! I\'m interested in your listing "{listing.title}" on GasBora. Is it still available?'
    return {
        "whatsapp": f"https://wa.me/{whatsapp_number(profile.phone)}?text={quote(text)}",
        "tel": f"tel:{profile.phone}",
    }
