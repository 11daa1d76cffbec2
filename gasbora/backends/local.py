# gasbora/backends/local.py
from __future__ import annotations

import datetime as dt
import enum
import functools
import logging
import uuid
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from ..db import create_tables, make_session_factory
from ..errors import Conflict, InvalidCredentials, NotFound, PermissionDenied
from ..models.account import AccountRow, ProfileRow, UserRoleRow
from ..models.listing import ListingRow
from ..schemas.account import Profile, Role, Session
from ..schemas.listing import Listing
from ..utils.security import create_jwt, decode_jwt, hash_password, verify_password
from .base import DataBackend

logger = logging.getLogger(__name__)

# columns the owner can never rewrite
_PROTECTED = {"id", "seller_id", "created_at", "updated_at"}


def _plain(value):
    return value.value if isinstance(value, enum.Enum) else value


def _threaded(fn):
    """Run a blocking method in the worker pool so the event loop stays free."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        return await run_in_threadpool(fn, *args, **kwargs)

    return wrapper


class LocalBackend(DataBackend):
    """
    Self-contained backend: SQLAlchemy for tables, a media directory for objects.

    Ownership rules that the hosted service enforces with row-level security
    are enforced here in code for listings. The per-owner storage namespace
    is checked by the image service before any delete reaches this class.
    Database and file work runs in the worker pool.
    """

    name = "local"

    def __init__(self, engine: Engine, media_dir: str | Path, public_base_url: str,
                 bucket: str = "listing-images"):
        self.engine = engine
        self.SessionLocal = make_session_factory(engine)
        self.media_root = Path(media_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.bucket = bucket
        create_tables(engine)

    # ---------- listings ----------

    @_threaded
    def list_listings(self, status: str = "available") -> list[Listing]:
        with self.SessionLocal() as db:
            rows = db.execute(
                select(ListingRow).where(ListingRow.status == status)
                .order_by(ListingRow.created_at.desc())
            ).scalars().all()
            return [Listing.model_validate(r.to_dict()) for r in rows]

    @_threaded
    def list_seller_listings(self, seller_id: str) -> list[Listing]:
        with self.SessionLocal() as db:
            rows = db.execute(
                select(ListingRow).where(ListingRow.seller_id == seller_id)
                .order_by(ListingRow.created_at.desc())
            ).scalars().all()
            return [Listing.model_validate(r.to_dict()) for r in rows]

    @_threaded
    def get_listing(self, listing_id: str) -> Listing | None:
        with self.SessionLocal() as db:
            row = db.get(ListingRow, listing_id)
            return Listing.model_validate(row.to_dict()) if row else None

    @_threaded
    def insert_listing(self, owner_id: str, fields: dict) -> Listing:
        values = {k: _plain(v) for k, v in fields.items() if k not in _PROTECTED}
        images = list(values.pop("images", None) or [])
        row = ListingRow(id=str(uuid.uuid4()), seller_id=owner_id, images=images, **values)
        with self.SessionLocal() as db:
            db.add(row)
            db.commit()
            db.refresh(row)
            return Listing.model_validate(row.to_dict())

    def _owned_row(self, db, listing_id: str, owner_id: str) -> ListingRow:
        row = db.get(ListingRow, listing_id)
        if not row:
            raise NotFound("Listing not found")
        if row.seller_id != owner_id:
            raise PermissionDenied("You can only change your own listings")
        return row

    @_threaded
    def update_listing(self, listing_id: str, owner_id: str, patch: dict) -> Listing:
        with self.SessionLocal() as db:
            row = self._owned_row(db, listing_id, owner_id)
            for key, value in patch.items():
                if key in _PROTECTED or not hasattr(ListingRow, key):
                    continue
                if key == "images":
                    value = list(value or [])
                setattr(row, key, _plain(value))
            db.commit()
            db.refresh(row)
            return Listing.model_validate(row.to_dict())

    @_threaded
    def delete_listing(self, listing_id: str, owner_id: str) -> None:
        with self.SessionLocal() as db:
            row = self._owned_row(db, listing_id, owner_id)
            db.delete(row)
            db.commit()

    # ---------- accounts ----------

    @_threaded
    def get_profile(self, user_id: str) -> Profile | None:
        with self.SessionLocal() as db:
            row = db.get(ProfileRow, user_id)
            return Profile.model_validate(row.to_dict()) if row else None

    @_threaded
    def update_profile(self, user_id: str, fields: dict) -> Profile:
        with self.SessionLocal() as db:
            row = db.get(ProfileRow, user_id)
            if not row:
                raise NotFound("Profile not found")
            for key in ("full_name", "phone", "avatar_url"):
                if key in fields:
                    setattr(row, key, fields[key])
            db.commit()
            db.refresh(row)
            return Profile.model_validate(row.to_dict())

    @_threaded
    def list_roles(self, user_id: str) -> set[Role]:
        with self.SessionLocal() as db:
            values = db.execute(
                select(UserRoleRow.role).where(UserRoleRow.user_id == user_id)
            ).scalars().all()
        known = {r.value for r in Role}
        return {Role(v) for v in values if v in known}

    def grant_role(self, user_id: str, role: Role | str) -> None:
        """Attach a role outside the sign-up flow (admin tooling, fixtures)."""
        value = role.value if isinstance(role, Role) else str(role)
        with self.SessionLocal() as db:
            exists = db.execute(
                select(UserRoleRow).where(UserRoleRow.user_id == user_id, UserRoleRow.role == value)
            ).scalar_one_or_none()
            if not exists:
                db.add(UserRoleRow(user_id=user_id, role=value))
                db.commit()

    # ---------- storage ----------

    def _file(self, path: str) -> Path:
        target = (self.media_root / self.bucket / path).resolve()
        root = (self.media_root / self.bucket).resolve()
        if root not in target.parents:
            raise PermissionDenied("Invalid storage path")
        return target

    @_threaded
    def upload_object(self, path: str, data: bytes, content_type: str) -> str:
        target = self._file(path)
        if target.exists():
            raise Conflict("The resource already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return self.public_url(path)

    @_threaded
    def delete_object(self, path: str) -> None:
        target = self._file(path)
        if target.exists():
            target.unlink()

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/media/{self.bucket}/{path}"

    # ---------- auth ----------

    def _session_for(self, user_id: str, email: str) -> Session:
        token = create_jwt({"sub": user_id, "email": email})
        claims = decode_jwt(token) or {}
        expires = claims.get("exp")
        return Session(
            user_id=user_id,
            email=email,
            access_token=token,
            expires_at=dt.datetime.fromtimestamp(expires, dt.timezone.utc) if expires else None,
        )

    @_threaded
    def sign_up(self, email: str, password: str, metadata: dict) -> Session:
        email = email.strip().lower()
        with self.SessionLocal() as db:
            taken = db.execute(select(AccountRow).where(AccountRow.email == email)).scalar_one_or_none()
            if taken:
                raise Conflict("User already registered")
            user_id = str(uuid.uuid4())
            db.add(AccountRow(id=user_id, email=email, password_hash=hash_password(password)))
            db.flush()
            db.add(ProfileRow(
                user_id=user_id,
                full_name=metadata.get("full_name") or None,
                phone=metadata.get("phone") or None,
            ))
            db.add(UserRoleRow(user_id=user_id, role=metadata.get("role") or Role.BUYER.value))
            db.commit()
        logger.info("account created user_id=%s", user_id)
        return self._session_for(user_id, email)

    @_threaded
    def sign_in(self, email: str, password: str) -> Session:
        email = email.strip().lower()
        with self.SessionLocal() as db:
            account = db.execute(select(AccountRow).where(AccountRow.email == email)).scalar_one_or_none()
        if not account or not verify_password(password, account.password_hash):
            raise InvalidCredentials("Invalid login credentials")
        return self._session_for(account.id, account.email)

    async def sign_out(self, session: Session) -> None:
        # tokens are stateless JWTs; dropping the cookie is the whole sign-out
        logger.debug("sign out user_id=%s", session.user_id)

    async def get_session(self, access_token: str) -> Session | None:
        claims = decode_jwt(access_token) if access_token else None
        if not claims or not claims.get("sub"):
            return None
        expires = claims.get("exp")
        return Session(
            user_id=claims["sub"],
            email=claims.get("email"),
            access_token=access_token,
            expires_at=dt.datetime.fromtimestamp(expires, dt.timezone.utc) if expires else None,
        )
