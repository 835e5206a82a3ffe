import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from api.core.config import Settings, get_settings
from api.domain.profile import CardStore
from api.repositories.sql_repository import SQLRepository
from api.routers import cards as cards_router
from api.routers import upload as upload_router
from api.routers import vcard as vcard_router
from api.services.photo_service import PhotoInliner
from api.services.vcard_service import VCardService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, nosniff, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class CachedStaticFiles(StaticFiles):
    def file_response(self, *args, **kwargs):
        response = super().file_response(*args, **kwargs)
        # Uploaded files are content-addressed, so they never change
        response.headers["Cache-Control"] = "public, max-age=31536000, immutable"
        return response


def _allowed_origins(settings: Settings) -> list[str]:
    allowed = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed.update(
            {
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:8000",
                "http://127.0.0.1:8000",
            }
        )
    return sorted(origin for origin in allowed if origin)


def create_app(
    settings: Settings | None = None,
    *,
    store: CardStore | None = None,
    photo_inliner: PhotoInliner | None = None,
) -> FastAPI:
    """Build the public API. Collaborators can be injected (tests, workers)."""
    settings = settings or get_settings()
    app = FastAPI(title="Digital Card API")

    allowed_cors = _allowed_origins(settings)
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_cors,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["Content-Disposition"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    os.makedirs(settings.uploads_dir, exist_ok=True)
    app.mount("/static/uploads", CachedStaticFiles(directory=settings.uploads_dir), name="uploads")

    store = store or SQLRepository()
    photo_inliner = photo_inliner or PhotoInliner.from_settings(settings)
    app.state.settings = settings
    app.state.store = store
    app.state.photo_inliner = photo_inliner
    app.state.vcard_service = VCardService.from_settings(store, photo_inliner, settings)

    app.include_router(vcard_router.router)
    app.include_router(cards_router.router)
    app.include_router(upload_router.router)
    logger.debug("app.created", extra={"app_env": settings.app_env})
    return app
