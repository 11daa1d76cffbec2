from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Response

from ..backends.base import DataBackend
from ..config import settings
from ..deps import get_backend, get_session
from ..schemas.account import Session
from ..services import auth

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_cookie(resp: Response, session: Session) -> None:
    resp.set_cookie(
        settings.COOKIE_NAME,
        session.access_token,
        max_age=settings.JWT_TTL_SEC,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def _session_body(session: Session) -> dict:
    return {
        "ok": True,
        "user": {"id": session.user_id, "email": session.email},
        "access_token": session.access_token,
    }


@router.post("/sign-in")
async def api_sign_in(response: Response, payload: dict = Body(...),
                      backend: DataBackend = Depends(get_backend)):
    session = await auth.sign_in(backend, payload)
    _set_cookie(response, session)
    return _session_body(session)


@router.post("/sign-up", status_code=201)
async def api_sign_up(response: Response, payload: dict = Body(...),
                      backend: DataBackend = Depends(get_backend)):
    session = await auth.sign_up(backend, payload)
    _set_cookie(response, session)
    return _session_body(session)


@router.post("/sign-out")
async def api_sign_out(response: Response, session: Session = Depends(get_session),
                       backend: DataBackend = Depends(get_backend)):
    await auth.sign_out(backend, session)
    response.delete_cookie(settings.COOKIE_NAME)
    return {"ok": True}
