# gasbora/backends/supabase.py
from __future__ import annotations

import datetime as dt
import logging
from urllib.parse import quote

import httpx

from ..errors import (
    Conflict, GasboraError, InvalidCredentials, NotFound, PermissionDenied, TransportError,
)
from ..schemas.account import Profile, Role, Session
from ..schemas.listing import Listing
from .base import DataBackend

logger = logging.getLogger(__name__)

_PROTECTED = {"id", "seller_id", "created_at", "updated_at"}


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return resp.reason_phrase


class SupabaseBackend(DataBackend):
    """
    Hosted backend: PostgREST tables, Storage objects and GoTrue auth over HTTPS.

    Row-level security does the ownership checks; every request carries the
    caller's access token when one is bound through ``with_token``.
    """

    name = "supabase"

    def __init__(self, url: str, anon_key: str, bucket: str = "listing-images",
                 timeout: float = 10.0, access_token: str | None = None,
                 client: httpx.AsyncClient | None = None):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.bucket = bucket
        self.timeout = timeout
        self.access_token = access_token
        self._client = client or httpx.AsyncClient(base_url=self.url, timeout=timeout)

    def with_token(self, access_token: str | None) -> "SupabaseBackend":
        # share the connection pool, swap the identity
        return SupabaseBackend(
            self.url, self.anon_key, bucket=self.bucket, timeout=self.timeout,
            access_token=access_token, client=self._client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---------- transport ----------

    def _headers(self, extra: dict | None = None, token: str | None = None) -> dict:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, *, token: str | None = None,
                       headers: dict | None = None, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(
                method, path, headers=self._headers(headers, token), **kwargs
            )
        except httpx.HTTPError as e:
            logger.error("supabase %s %s failed: %s", method, path, e)
            raise TransportError() from e
        if resp.is_success:
            return resp
        raise self._classify(resp)

    @staticmethod
    def _classify(resp: httpx.Response) -> GasboraError:
        message = _error_message(resp)
        status = resp.status_code
        if status in (401, 403):
            return PermissionDenied(message)
        if status == 404:
            return NotFound(message)
        if status == 409 or "already" in message.lower():
            return Conflict(message)
        if status == 400 and "credentials" in message.lower():
            return InvalidCredentials(message)
        logger.error("supabase answered %s: %s", status, message)
        return TransportError(message)

    async def _rows(self, table: str, params: dict) -> list[dict]:
        resp = await self._request("GET", f"/rest/v1/{table}", params=params)
        return resp.json()

    # ---------- listings ----------

    async def list_listings(self, status: str = "available") -> list[Listing]:
        rows = await self._rows("listings", {
            "select": "*", "status": f"eq.{status}", "order": "created_at.desc",
        })
        return [Listing.model_validate(r) for r in rows]

    async def list_seller_listings(self, seller_id: str) -> list[Listing]:
        rows = await self._rows("listings", {
            "select": "*", "seller_id": f"eq.{seller_id}", "order": "created_at.desc",
        })
        return [Listing.model_validate(r) for r in rows]

    async def get_listing(self, listing_id: str) -> Listing | None:
        rows = await self._rows("listings", {"select": "*", "id": f"eq.{listing_id}"})
        return Listing.model_validate(rows[0]) if rows else None

    async def insert_listing(self, owner_id: str, fields: dict) -> Listing:
        body = {k: v for k, v in fields.items() if k not in _PROTECTED}
        body["seller_id"] = owner_id
        resp = await self._request(
            "POST", "/rest/v1/listings", json=body,
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        return Listing.model_validate(rows[0])

    async def update_listing(self, listing_id: str, owner_id: str, patch: dict) -> Listing:
        body = {k: v for k, v in patch.items() if k not in _PROTECTED}
        resp = await self._request(
            "PATCH", "/rest/v1/listings",
            params={"id": f"eq.{listing_id}", "seller_id": f"eq.{owner_id}"},
            json=body, headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        if not rows:
            # RLS hides foreign rows, so "not yours" and "gone" look the same
            raise NotFound("Listing not found")
        return Listing.model_validate(rows[0])

    async def delete_listing(self, listing_id: str, owner_id: str) -> None:
        resp = await self._request(
            "DELETE", "/rest/v1/listings",
            params={"id": f"eq.{listing_id}", "seller_id": f"eq.{owner_id}"},
            headers={"Prefer": "return=representation"},
        )
        if not resp.json():
            raise NotFound("Listing not found")

    # ---------- accounts ----------

    async def get_profile(self, user_id: str) -> Profile | None:
        rows = await self._rows("profiles", {"select": "*", "user_id": f"eq.{user_id}"})
        return Profile.model_validate(rows[0]) if rows else None

    async def update_profile(self, user_id: str, fields: dict) -> Profile:
        body = {k: v for k, v in fields.items() if k in ("full_name", "phone", "avatar_url")}
        body["updated_at"] = dt.datetime.now(dt.timezone.utc).isoformat()
        resp = await self._request(
            "PATCH", "/rest/v1/profiles", params={"user_id": f"eq.{user_id}"},
            json=body, headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        if not rows:
            raise NotFound("Profile not found")
        return Profile.model_validate(rows[0])

    async def list_roles(self, user_id: str) -> set[Role]:
        rows = await self._rows("user_roles", {"select": "role", "user_id": f"eq.{user_id}"})
        known = {r.value for r in Role}
        return {Role(r["role"]) for r in rows if r.get("role") in known}

    # ---------- storage ----------

    async def upload_object(self, path: str, data: bytes, content_type: str) -> str:
        await self._request(
            "POST", f"/storage/v1/object/{self.bucket}/{quote(path)}",
            content=data, headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        return self.public_url(path)

    async def delete_object(self, path: str) -> None:
        await self._request(
            "DELETE", f"/storage/v1/object/{self.bucket}", json={"prefixes": [path]},
        )

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    # ---------- auth ----------

    @staticmethod
    def _session_from(body: dict) -> Session:
        user = body.get("user") or {}
        expires_at = body.get("expires_at")
        return Session(
            user_id=user["id"],
            email=user.get("email"),
            access_token=body["access_token"],
            expires_at=dt.datetime.fromtimestamp(expires_at, dt.timezone.utc) if expires_at else None,
        )

    async def sign_in(self, email: str, password: str) -> Session:
        resp = await self._request(
            "POST", "/auth/v1/token", params={"grant_type": "password"},
            json={"email": email, "password": password}, token=self.anon_key,
        )
        return self._session_from(resp.json())

    async def sign_up(self, email: str, password: str, metadata: dict) -> Session:
        resp = await self._request(
            "POST", "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata}, token=self.anon_key,
        )
        body = resp.json()
        if not body.get("access_token"):
            # project requires e-mail confirmation before a session exists
            raise PermissionDenied("Check your e-mail to confirm the account, then sign in.")
        return self._session_from(body)

    async def sign_out(self, session: Session) -> None:
        await self._request("POST", "/auth/v1/logout", token=session.access_token)

    async def get_session(self, access_token: str) -> Session | None:
        if not access_token:
            return None
        try:
            resp = await self._request("GET", "/auth/v1/user", token=access_token)
        except PermissionDenied:
            return None
        user = resp.json()
        return Session(user_id=user["id"], email=user.get("email"), access_token=access_token)
