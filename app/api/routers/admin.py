import logging
import secrets

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from app.api.caching import SESSION_FLAG, get_cache, is_authenticated
from app.config import get_settings
from app.errors import AuthError, BlockedError, DuplicateError, MissingTitleError, ScrapeError, StoreError
from app.models.content import ScrapeRequest
from app.services.crawl.pipeline import ingest_cosplay, ingest_video
from app.services.render_service import SiteContext, render_admin, render_login

router = APIRouter(tags=["admin"])

logger = logging.getLogger(__name__)


def require_admin(request: Request) -> None:
    if not is_authenticated(request):
        raise AuthError("Unauthorized")


async def _submitted_url(request: Request) -> str:
    """``url`` from a JSON body or a form post."""
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            value = ScrapeRequest(**(await request.json())).url
        except (ValueError, TypeError):
            return ""
    else:
        form = await request.form()
        value = form.get("url")
    return str(value or "").strip()


def _failure_message(exc: Exception) -> str:
    if isinstance(exc, DuplicateError):
        return str(exc)
    if isinstance(exc, BlockedError):
        return "Blocked by anti-bot challenge"
    if isinstance(exc, MissingTitleError):
        return "Missing title"
    return f"Error: {exc}"


@router.get("/admin/login", response_class=HTMLResponse)
def login_form():
    return HTMLResponse(render_login(SiteContext.from_settings(get_settings())))


@router.post("/admin/login")
def login(request: Request, password: str = Form("")):
    settings = get_settings()
    expected = settings.admin_password
    if expected and secrets.compare_digest(password.encode("utf-8"), expected.encode("utf-8")):
        request.session[SESSION_FLAG] = True
        logger.info("Admin login from %s", request.client.host if request.client else "unknown")
        return RedirectResponse("/admin", status_code=303)
    logger.warning("Failed admin login from %s", request.client.host if request.client else "unknown")
    return HTMLResponse(render_login(SiteContext.from_settings(settings), error="Wrong password!"), status_code=401)


@router.get("/admin/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/admin/login", status_code=303)


@router.get("/admin")
def dashboard(request: Request):
    if not is_authenticated(request):
        return RedirectResponse("/admin/login", status_code=303)
    return HTMLResponse(render_admin(SiteContext.from_settings(get_settings())))


@router.post("/api/scrape", response_class=PlainTextResponse, dependencies=[Depends(require_admin)])
async def api_scrape_video(request: Request):
    url = await _submitted_url(request)
    if not url:
        return PlainTextResponse("URL is empty!")
    try:
        record = await run_in_threadpool(ingest_video, url, cache=get_cache(request))
    except (ScrapeError, StoreError) as exc:
        logger.warning("Video scrape of %s failed: %s", url, exc)
        return PlainTextResponse(_failure_message(exc))
    except Exception as exc:
        logger.exception("Unexpected failure scraping %s", url)
        return PlainTextResponse(_failure_message(exc))
    return PlainTextResponse(f"Success: {record.title[:40]}")


@router.post("/api/scrape-cosplay", response_class=PlainTextResponse, dependencies=[Depends(require_admin)])
async def api_scrape_cosplay(request: Request):
    url = await _submitted_url(request)
    if not url:
        return PlainTextResponse("URL is empty!")
    try:
        record = await run_in_threadpool(ingest_cosplay, url, cache=get_cache(request))
    except (ScrapeError, StoreError) as exc:
        logger.warning("Cosplay scrape of %s failed: %s", url, exc)
        return PlainTextResponse(_failure_message(exc))
    except Exception as exc:
        logger.exception("Unexpected failure scraping %s", url)
        return PlainTextResponse(_failure_message(exc))
    return PlainTextResponse(f"Success: {record.title[:40]}... ({len(record.gallery)} CDN photos)")
