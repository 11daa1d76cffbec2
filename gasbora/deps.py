# gasbora/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from .backends.base import DataBackend
from .config import settings
from .errors import NotAuthenticated
from .schemas.account import Session
from .services.feed import ListingFeed


def get_backend(request: Request) -> DataBackend:
    return request.app.state.backend


def get_feed(request: Request) -> ListingFeed:
    return request.app.state.feed


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


# ------------------ session ------------------

async def get_optional_session(
    request: Request,
    authorization: Optional[str] = Header(None),
    backend: DataBackend = Depends(get_backend),
) -> Optional[Session]:
    # 1) Authorization: Bearer <token>  2) session cookie
    token = _bearer(authorization) or request.cookies.get(settings.COOKIE_NAME)
    if not token:
        return None
    return await backend.get_session(token)


async def get_session(session: Optional[Session] = Depends(get_optional_session)) -> Session:
    if not session:
        raise NotAuthenticated()
    return session


def get_user_backend(
    session: Session = Depends(get_session),
    backend: DataBackend = Depends(get_backend),
) -> DataBackend:
    """Backend acting as the signed-in user (row-level security applies)."""
    return backend.with_token(session.access_token)
