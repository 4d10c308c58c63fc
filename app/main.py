import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.api.legacy import legacy_redirects
from app.config import configure_logging, get_settings
from app.db.neo4j_connector import close_driver
from app.errors import AuthError, StoreError
from app.services import content
from app.services.cache import ResponseCache
from app.services.render_service import SiteContext, render_error

# Routers
from app.api.routers.admin import router as admin_router
from app.api.routers.feeds import router as feeds_router
from app.api.routers.pages import not_found_page, router as pages_router

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create store constraints on startup and close the Neo4j driver on shutdown."""
    try:
        content.ensure_constraints()
    except StoreError as exc:
        logger.warning("Could not ensure store constraints (continuing): %s", exc)
    try:
        yield
    finally:
        close_driver()


async def _auth_error(request: Request, exc: AuthError):
    return PlainTextResponse("Unauthorized", status_code=401)


async def _store_error(request: Request, exc: StoreError):
    logger.error("Store failure on %s: %s", request.url.path, exc)
    return HTMLResponse(render_error(SiteContext.from_settings(get_settings())), status_code=500)


async def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return not_found_page()
    return await http_exception_handler(request, exc)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.site_name, version="0.1", lifespan=lifespan)
    # One cache per application instance
    app.state.response_cache = ResponseCache()

    app.add_middleware(BaseHTTPMiddleware, dispatch=legacy_redirects)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        same_site="lax",
    )

    app.add_exception_handler(AuthError, _auth_error)
    app.add_exception_handler(StoreError, _store_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)

    # Mirrored thumbnails are served under /uploads
    try:
        os.makedirs(settings.media_root, exist_ok=True)
    except OSError as exc:
        logger.warning("Media directory %s is not available: %s", settings.media_root, exc)
    app.mount("/uploads", StaticFiles(directory=settings.media_root, check_dir=False), name="uploads")
    # Bundled placeholder posters
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    app.include_router(admin_router)
    app.include_router(feeds_router)
    app.include_router(pages_router)
    return app


app = create_app()
