from typing import Any, Dict, List, Optional

from app.db.neo4j_connector import run_cypher
from app.services.crawl.base import DOWNLOAD_PROVIDERS

# Node properties cannot hold maps, so downloads are stored as download_<provider>.
_DOWNLOAD_RETURN = ", ".join(f"c.download_{p} AS download_{p}" for p in DOWNLOAD_PROVIDERS)

COSPLAY_RETURN = (
    "c.title AS title, c.slug AS slug, c.cosplayer AS cosplayer, c.character AS character, "
    "c.game_anime AS game_anime, c.gallery AS gallery, c.description AS description, "
    "c.password_zip AS password_zip, c.video_embed AS video_embed, c.tags AS tags, "
    "c.categories AS categories, coalesce(c.views, 0) AS views, c.created_at AS created_at, "
    f"c.source_url AS source_url, {_DOWNLOAD_RETURN}"
)

_LIST_FIELDS = ("tags", "categories")


def _row_to_cosplay(row: Dict[str, Any]) -> Dict[str, Any]:
    out = {k: v for k, v in row.items() if not k.startswith("download_")}
    out["downloads"] = {p: row.get(f"download_{p}") for p in DOWNLOAD_PROVIDERS if row.get(f"download_{p}")}
    return out


def _rows(res: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    return [_row_to_cosplay(r) for r in (res or [])]


def _paging(skip: int, limit: Optional[int]) -> str:
    out = " SKIP $skip" if skip else ""
    if limit is not None:
        out += " LIMIT $limit"
    return out


def create_cosplay(record: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a new Cosplay node. The unique constraint on slug raises UniqueViolation."""
    downloads = record.get("downloads") or {}
    download_props = ", ".join(f"download_{p}: $download_{p}" for p in DOWNLOAD_PROVIDERS)
    query = (
        "CREATE (c:Cosplay {title: $title, slug: $slug, cosplayer: $cosplayer, "
        "character: $character, game_anime: $game_anime, gallery: $gallery, "
        "description: $description, password_zip: $password_zip, video_embed: $video_embed, "
        f"tags: $tags, categories: $categories, views: 0, created_at: $created_at, "
        f"source_url: $source_url, {download_props}}}) "
        f"RETURN {COSPLAY_RETURN}"
    )
    params = {
        "title": record["title"],
        "slug": record["slug"],
        "cosplayer": record.get("cosplayer") or "",
        "character": record.get("character") or "",
        "game_anime": record.get("game_anime") or "",
        "gallery": list(record.get("gallery") or []),
        "description": record.get("description") or "",
        "password_zip": record.get("password_zip") or "",
        "video_embed": record.get("video_embed") or "",
        "tags": list(record.get("tags") or []),
        "categories": list(record.get("categories") or []),
        "created_at": record["created_at"],
        "source_url": record.get("source_url"),
    }
    for p in DOWNLOAD_PROVIDERS:
        params[f"download_{p}"] = downloads.get(p)
    res = _rows(run_cypher(query, params))
    return res[0] if res else {}


def get_cosplay(slug: str) -> Dict[str, Any]:
    """Fetch a single Cosplay by slug. Returns empty dict if not found."""
    res = _rows(run_cypher(f"MATCH (c:Cosplay {{slug: $slug}}) RETURN {COSPLAY_RETURN}", {"slug": slug}))
    return res[0] if res else {}


def list_cosplays(*, skip: int = 0, limit: Optional[int] = 24) -> List[Dict[str, Any]]:
    """Newest first."""
    q = f"MATCH (c:Cosplay) RETURN {COSPLAY_RETURN} ORDER BY c.created_at DESC" + _paging(skip, limit)
    return _rows(run_cypher(q, {"skip": skip, "limit": limit}))


def count_cosplays() -> int:
    res = run_cypher("MATCH (c:Cosplay) RETURN count(c) AS cnt")
    return int((res[0].get("cnt") if res else 0) or 0)


def search_cosplays(q: str, *, limit: int = 12) -> List[Dict[str, Any]]:
    """Case-insensitive substring match over title, character, cosplayer and tags."""
    cypher = (
        "MATCH (c:Cosplay) WITH c, toLower($q) AS q "
        "WHERE toLower(c.title) CONTAINS q "
        "   OR toLower(coalesce(c.character, '')) CONTAINS q "
        "   OR toLower(coalesce(c.cosplayer, '')) CONTAINS q "
        "   OR any(t IN coalesce(c.tags, []) WHERE toLower(t) CONTAINS q) "
        f"RETURN {COSPLAY_RETURN} ORDER BY c.created_at DESC LIMIT $limit"
    )
    return _rows(run_cypher(cypher, {"q": q or "", "limit": limit}))


def list_cosplays_by(field: str, keyword: str, *, limit: int = 12) -> List[Dict[str, Any]]:
    if field not in _LIST_FIELDS:
        raise ValueError(f"Unsupported list field: {field}")
    q = (
        f"MATCH (c:Cosplay) WHERE any(x IN coalesce(c.{field}, []) WHERE toLower(x) CONTAINS toLower($keyword)) "
        f"RETURN {COSPLAY_RETURN} ORDER BY c.created_at DESC LIMIT $limit"
    )
    return _rows(run_cypher(q, {"keyword": keyword, "limit": limit}))


def related_cosplays(slug: str, categories: List[str], *, size: int = 4) -> List[Dict[str, Any]]:
    """Random cosplays sharing at least one category, excluding ``slug``."""
    if not categories:
        return []
    q = (
        "MATCH (c:Cosplay) WHERE c.slug <> $slug "
        "AND any(x IN coalesce(c.categories, []) WHERE x IN $categories) "
        f"WITH c, rand() AS r ORDER BY r LIMIT $size RETURN {COSPLAY_RETURN}"
    )
    return _rows(run_cypher(q, {"slug": slug, "categories": list(categories), "size": size}))


def increment_cosplay_views(slug: str) -> None:
    run_cypher("MATCH (c:Cosplay {slug: $slug}) SET c.views = coalesce(c.views, 0) + 1", {"slug": slug})
