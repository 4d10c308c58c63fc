import urllib.parse

from fastapi import APIRouter, Request, Response

from app.api.caching import cached_page
from app.config import get_settings
from app.services import content
from app.services import feed_service
from app.services.cache import TTL_FEED
from app.services.render_service import SiteContext

router = APIRouter(tags=["feeds"])

XML = "application/xml"

RSS_VIDEOS = 30
RSS_COSPLAYS = 20
CATEGORY_RSS_VIDEOS = 20
CATEGORY_RSS_COSPLAYS = 10
VIDEO_SITEMAP_LIMIT = 1000


def _site() -> SiteContext:
    return SiteContext.from_settings(get_settings())


@router.get("/rss")
def rss(request: Request):
    def build():
        videos = content.list_videos(limit=RSS_VIDEOS)
        cosplays = content.list_cosplays(limit=RSS_COSPLAYS)
        return Response(feed_service.build_rss(_site(), videos, cosplays), media_type=XML)

    return cached_page(request, TTL_FEED, build)


@router.get("/rss/category/{slug}")
def rss_category(slug: str, request: Request):
    raw = urllib.parse.unquote(slug)
    keyword = raw.replace("-", " ")

    def build():
        videos = content.list_videos_by("categories", keyword, limit=CATEGORY_RSS_VIDEOS)
        cosplays = content.list_cosplays_by("categories", keyword, limit=CATEGORY_RSS_COSPLAYS)
        return Response(feed_service.build_category_rss(_site(), raw, videos, cosplays), media_type=XML)

    return cached_page(request, TTL_FEED, build)


@router.get("/sitemap-video.xml")
def video_sitemap(request: Request):
    def build():
        videos = content.list_videos(limit=VIDEO_SITEMAP_LIMIT)
        return Response(feed_service.build_video_sitemap(_site(), videos), media_type=XML)

    return cached_page(request, TTL_FEED, build)


@router.get("/sitemap.xml")
def sitemap(request: Request):
    def build():
        videos = content.list_videos(limit=None)
        cosplays = content.list_cosplays(limit=None)
        return Response(feed_service.build_sitemap(_site(), videos, cosplays), media_type=XML)

    return cached_page(request, TTL_FEED, build)
