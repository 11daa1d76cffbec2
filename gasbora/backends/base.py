from __future__ import annotations

from ..schemas.account import Profile, Role, Session
from ..schemas.listing import Listing


class DataBackend:
    """
    Remote data access contract: listings table, profiles and roles lookups,
    object storage and authentication.

    Implementations raise ``NotFound``/``PermissionDenied``/``Conflict`` for
    answers the service gives and ``TransportError`` when the service cannot
    be reached. They never retry.
    """

    name = "unknown"
    bucket = "listing-images"

    def with_token(self, access_token: str | None) -> "DataBackend":
        """Return a view of this backend acting on behalf of ``access_token``."""
        return self

    # ---------- listings ----------

    async def list_listings(self, status: str = "available") -> list[Listing]:
        raise NotImplementedError

    async def list_seller_listings(self, seller_id: str) -> list[Listing]:
        raise NotImplementedError

    async def get_listing(self, listing_id: str) -> Listing | None:
        raise NotImplementedError

    async def insert_listing(self, owner_id: str, fields: dict) -> Listing:
        raise NotImplementedError

    async def update_listing(self, listing_id: str, owner_id: str, patch: dict) -> Listing:
        raise NotImplementedError

    async def delete_listing(self, listing_id: str, owner_id: str) -> None:
        raise NotImplementedError

    # ---------- accounts ----------

    async def get_profile(self, user_id: str) -> Profile | None:
        raise NotImplementedError

    async def update_profile(self, user_id: str, fields: dict) -> Profile:
        raise NotImplementedError

    async def list_roles(self, user_id: str) -> set[Role]:
        raise NotImplementedError

    # ---------- storage ----------

    async def upload_object(self, path: str, data: bytes, content_type: str) -> str:
        raise NotImplementedError

    async def delete_object(self, path: str) -> None:
        raise NotImplementedError

    def public_url(self, path: str) -> str:
        raise NotImplementedError

    def object_path(self, url: str) -> str | None:
        """Storage path for a public URL, or None when the URL is not ours."""
        marker = f"/{self.bucket}/"
        if not url or marker not in url:
            return None
        path = url.split(marker, 1)[1].split("?", 1)[0]
        return path or None

    # ---------- auth ----------

    async def sign_in(self, email: str, password: str) -> Session:
        raise NotImplementedError

    async def sign_up(self, email: str, password: str, metadata: dict) -> Session:
        raise NotImplementedError

    async def sign_out(self, session: Session) -> None:
        raise NotImplementedError

    async def get_session(self, access_token: str) -> Session | None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
