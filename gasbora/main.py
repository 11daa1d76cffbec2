# gasbora/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .backends import LocalBackend, build_backend
from .backends.base import DataBackend
from .config import settings
from .errors import GasboraError
from .services.feed import ListingFeed

from .routers import (
    auth as auth_router,
    images as images_router,
    listings as listings_router,
    pages as pages_router,
    profile as profile_router,
)

logger = logging.getLogger("gasbora")


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _handle_gasbora_error(request: Request, exc: GasboraError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(backend: DataBackend | None = None) -> FastAPI:
    backend = backend or build_backend(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await backend.aclose()

    app = FastAPI(title="GasBora", lifespan=lifespan)
    app.state.backend = backend
    app.state.feed = ListingFeed(
        backend,
        fallback_ceiling=settings.PRICE_CEILING_FALLBACK,
        step=settings.PRICE_STEP,
    )

    # --- CORS ---
    allowed_origins = (
        [o.strip() for o in settings.ALLOWED_ORIGINS.split(",")]
        if getattr(settings, "ALLOWED_ORIGINS", None)
        else ["*"]
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GasboraError, _handle_gasbora_error)

    # --- uploaded images (local backend only; the hosted one serves its own) ---
    if isinstance(backend, LocalBackend):
        media = Path(backend.media_root)
        media.mkdir(parents=True, exist_ok=True)
        app.mount("/media", StaticFiles(directory=str(media)), name="media")

    # --- routers ---
    app.include_router(pages_router.router)
    app.include_router(auth_router.router)
    app.include_router(profile_router.router)
    app.include_router(listings_router.router)
    app.include_router(images_router.router)

    return app


configure_logging()
app = create_app()
