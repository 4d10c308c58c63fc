import logging
import urllib.parse
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import HTMLResponse

from app.api.caching import cached_page
from app.config import get_settings
from app.services import content
from app.services import render_service as render
from app.services.cache import TTL_COSPLAY_INDEX, TTL_DETAIL, TTL_HOME, TTL_SEARCH, TTL_TAXONOMY

router = APIRouter(tags=["pages"])

logger = logging.getLogger(__name__)

PER_PAGE = 24
HOME_COSPLAYS = 10
LISTING_COSPLAYS = 12
SEARCH_COSPLAYS = 12
RELATED_VIDEOS = 8
RELATED_COSPLAYS = 4


def _site() -> render.SiteContext:
    return render.SiteContext.from_settings(get_settings())


def _page_number(raw: Optional[str]) -> int:
    try:
        return max(1, int(raw or 1))
    except ValueError:
        return 1


def _title_case(words: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in words.split(" ") if w)


def _bump_views(increment, slug: str) -> None:
    # Best-effort: the visitor already has the page
    try:
        increment(slug)
    except Exception as exc:
        logger.warning("View count update failed for %s: %s", slug, exc)


def not_found_page(title: str = "Page Not Found", *, with_suggestions: bool = True) -> HTMLResponse:
    site = _site()
    videos = []
    if with_suggestions:
        try:
            videos = content.sample_videos(4)
        except Exception as exc:
            logger.warning("Could not load suggestions for 404 page: %s", exc)
    return HTMLResponse(render.render_not_found(site, videos=videos, title=title), status_code=404)


@router.get("/", response_class=HTMLResponse)
def home(request: Request, page: Optional[str] = None):
    n = _page_number(page)

    def build():
        videos = content.list_videos(skip=(n - 1) * PER_PAGE, limit=PER_PAGE)
        cosplays = content.list_cosplays(limit=HOME_COSPLAYS)
        total = content.count_videos()
        html = render.render_home(
            _site(), videos=videos, cosplays=cosplays, page=n, pages=render.total_pages(total, PER_PAGE), total=total
        )
        return HTMLResponse(html)

    return cached_page(request, TTL_HOME, build)


@router.get("/video/{slug}", response_class=HTMLResponse)
def video_detail(slug: str, request: Request, background_tasks: BackgroundTasks):
    def build():
        video = content.get_video(slug)
        if not video:
            return not_found_page("Video Not Found", with_suggestions=False)
        background_tasks.add_task(_bump_views, content.increment_video_views, slug)
        related = content.sample_videos(RELATED_VIDEOS)
        return HTMLResponse(render.render_video(_site(), video=video, related=related))

    return cached_page(request, TTL_DETAIL, build)


@router.get("/search", response_class=HTMLResponse)
def search(request: Request, q: str = ""):
    def build():
        videos = content.search_videos(q, limit=PER_PAGE)
        cosplays = content.search_cosplays(q, limit=SEARCH_COSPLAYS)
        return HTMLResponse(render.render_search(_site(), q=q, videos=videos, cosplays=cosplays))

    return cached_page(request, TTL_SEARCH, build)


def _taxonomy_page(request: Request, kind: str, field: str, slug: str, page: Optional[str]):
    n = _page_number(page)
    raw = urllib.parse.unquote(slug)
    keyword = raw.replace("-", " ")

    def build():
        videos = content.list_videos_by(field, keyword, skip=(n - 1) * PER_PAGE, limit=PER_PAGE)
        total = content.count_videos_by(field, keyword)
        cosplays = content.list_cosplays_by(field, keyword, limit=LISTING_COSPLAYS)
        html = render.render_taxonomy(
            _site(),
            kind=kind,
            slug=raw,
            display=_title_case(keyword),
            videos=videos,
            cosplays=cosplays,
            page=n,
            pages=render.total_pages(total, PER_PAGE),
            total=total,
        )
        return HTMLResponse(html)

    return cached_page(request, TTL_TAXONOMY, build)


@router.get("/tag/{tag}", response_class=HTMLResponse)
def tag_page(tag: str, request: Request, page: Optional[str] = None):
    return _taxonomy_page(request, "tag", "tags", tag, page)


@router.get("/category/{slug}", response_class=HTMLResponse)
def category_page(slug: str, request: Request, page: Optional[str] = None):
    return _taxonomy_page(request, "category", "categories", slug, page)


@router.get("/cosplay", response_class=HTMLResponse)
def cosplay_index(request: Request, page: Optional[str] = None):
    n = _page_number(page)

    def build():
        cosplays = content.list_cosplays(skip=(n - 1) * PER_PAGE, limit=PER_PAGE)
        total = content.count_cosplays()
        html = render.render_cosplay_list(
            _site(), cosplays=cosplays, page=n, pages=render.total_pages(total, PER_PAGE), total=total
        )
        return HTMLResponse(html)

    return cached_page(request, TTL_COSPLAY_INDEX, build)


@router.get("/cosplay/{slug}", response_class=HTMLResponse)
def cosplay_detail(slug: str, request: Request, background_tasks: BackgroundTasks):
    def build():
        cosplay = content.get_cosplay(slug)
        if not cosplay:
            return not_found_page("Cosplay Not Found", with_suggestions=False)
        background_tasks.add_task(_bump_views, content.increment_cosplay_views, slug)
        related = content.related_cosplays(slug, cosplay.get("categories") or [], size=RELATED_COSPLAYS)
        return HTMLResponse(render.render_cosplay(_site(), cosplay=cosplay, related=related))

    return cached_page(request, TTL_DETAIL, build)
