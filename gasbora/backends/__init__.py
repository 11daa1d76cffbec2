from __future__ import annotations

from .base import DataBackend
from .local import LocalBackend
from .supabase import SupabaseBackend


class BackendMisconfiguredError(RuntimeError):
    pass


def build_backend(settings) -> DataBackend:
    kind = (getattr(settings, "BACKEND", "local") or "local").strip().lower()

    if kind == "local":
        from ..db import make_engine

        return LocalBackend(
            make_engine(settings.DATABASE_URL),
            media_dir=settings.MEDIA_DIR,
            public_base_url=settings.PUBLIC_BASE_URL,
            bucket=settings.STORAGE_BUCKET,
        )

    if kind != "supabase":
        raise BackendMisconfiguredError(f"BACKEND_MISCONFIGURED:backend={kind}")

    url = (settings.SUPABASE_URL or "").strip()
    key = (settings.SUPABASE_ANON_KEY or "").strip()
    if not url or not key:
        raise BackendMisconfiguredError("BACKEND_MISCONFIGURED:missing SUPABASE_URL or SUPABASE_ANON_KEY")

    return SupabaseBackend(url, key, bucket=settings.STORAGE_BUCKET, timeout=settings.HTTP_TIMEOUT)


__all__ = ["DataBackend", "LocalBackend", "SupabaseBackend", "BackendMisconfiguredError", "build_backend"]
