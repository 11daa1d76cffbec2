from fastapi import APIRouter, Body, Depends

from ..backends.base import DataBackend
from ..deps import get_backend, get_session, get_user_backend
from ..schemas.account import Session
from ..services import users

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/profile/me")
async def api_my_profile(session: Session = Depends(get_session),
                         backend: DataBackend = Depends(get_user_backend)):
    profile = await users.get_profile(backend, session.user_id)
    roles = await users.get_roles(backend, session.user_id)
    return {
        "ok": True,
        "profile": profile.model_dump(mode="json"),
        "email": session.email,
        "initials": profile.initials,
        "roles": sorted(r.value for r in roles),
        "can_sell": users.can_create_listings(roles),
    }


@router.put("/profile/me")
async def api_update_profile(payload: dict = Body(...),
                             session: Session = Depends(get_session),
                             backend: DataBackend = Depends(get_user_backend)):
    profile = await users.update_own_profile(backend, session, payload)
    return {"ok": True, "profile": profile.model_dump(mode="json")}


@router.get("/profiles/{user_id}")
async def api_public_profile(user_id: str, backend: DataBackend = Depends(get_backend)):
    profile = await users.get_profile(backend, user_id)
    return {
        "ok": True,
        "profile": {"user_id": profile.user_id, "full_name": profile.full_name, "avatar_url": profile.avatar_url},
    }
