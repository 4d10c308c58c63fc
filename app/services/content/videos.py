from typing import Any, Dict, List, Optional

from app.db.neo4j_connector import run_cypher

VIDEO_RETURN = (
    "v.title AS title, v.slug AS slug, v.description AS description, "
    "v.embed_url AS embed_url, v.thumbnail AS thumbnail, v.duration AS duration, "
    "v.duration_sec AS duration_sec, v.tags AS tags, v.categories AS categories, "
    "coalesce(v.views, 0) AS views, v.created_at AS created_at, v.source_url AS source_url"
)

# Only these list properties can be filtered on; property names cannot be query parameters.
_LIST_FIELDS = ("tags", "categories")


def _paging(skip: int, limit: Optional[int]) -> str:
    out = " SKIP $skip" if skip else ""
    if limit is not None:
        out += " LIMIT $limit"
    return out


def create_video(record: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a new Video node. Unique constraints on slug/title raise UniqueViolation."""
    query = (
        "CREATE (v:Video {title: $title, slug: $slug, description: $description, "
        "embed_url: $embed_url, thumbnail: $thumbnail, duration: $duration, "
        "duration_sec: $duration_sec, tags: $tags, categories: $categories, "
        "views: 0, created_at: $created_at, source_url: $source_url}) "
        f"RETURN {VIDEO_RETURN}"
    )
    params = {
        "title": record["title"],
        "slug": record["slug"],
        "description": record.get("description") or "",
        "embed_url": record.get("embed_url") or "",
        "thumbnail": record.get("thumbnail") or "",
        "duration": record.get("duration") or "PT0S",
        "duration_sec": int(record.get("duration_sec") or 0),
        "tags": list(record.get("tags") or []),
        "categories": list(record.get("categories") or []),
        "created_at": record["created_at"],
        "source_url": record.get("source_url"),
    }
    res = run_cypher(query, params)
    return res[0] if res else {}


def get_video(slug: str) -> Dict[str, Any]:
    """Fetch a single Video by slug. Returns empty dict if not found."""
    res = run_cypher(f"MATCH (v:Video {{slug: $slug}}) RETURN {VIDEO_RETURN}", {"slug": slug})
    return res[0] if res else {}


def find_video_by_title(title: str) -> Dict[str, Any]:
    res = run_cypher(f"MATCH (v:Video {{title: $title}}) RETURN {VIDEO_RETURN} LIMIT 1", {"title": title})
    return res[0] if res else {}


def list_videos(*, skip: int = 0, limit: Optional[int] = 24) -> List[Dict[str, Any]]:
    """Newest first."""
    q = f"MATCH (v:Video) RETURN {VIDEO_RETURN} ORDER BY v.created_at DESC" + _paging(skip, limit)
    return run_cypher(q, {"skip": skip, "limit": limit}) or []


def count_videos() -> int:
    res = run_cypher("MATCH (v:Video) RETURN count(v) AS cnt")
    return int((res[0].get("cnt") if res else 0) or 0)


def search_videos(q: str, *, limit: int = 24) -> List[Dict[str, Any]]:
    """Case-insensitive substring match over title and tags."""
    cypher = (
        "MATCH (v:Video) WITH v, toLower($q) AS q "
        "WHERE toLower(v.title) CONTAINS q "
        "   OR any(t IN coalesce(v.tags, []) WHERE toLower(t) CONTAINS q) "
        f"RETURN {VIDEO_RETURN} ORDER BY v.created_at DESC LIMIT $limit"
    )
    return run_cypher(cypher, {"q": q or "", "limit": limit}) or []


def _list_filter(field: str) -> str:
    if field not in _LIST_FIELDS:
        raise ValueError(f"Unsupported list field: {field}")
    return f"any(x IN coalesce(v.{field}, []) WHERE toLower(x) CONTAINS toLower($keyword))"


def list_videos_by(field: str, keyword: str, *, skip: int = 0, limit: Optional[int] = 24) -> List[Dict[str, Any]]:
    """Videos whose ``tags`` or ``categories`` contain ``keyword`` (case-insensitive substring)."""
    q = (
        f"MATCH (v:Video) WHERE {_list_filter(field)} "
        f"RETURN {VIDEO_RETURN} ORDER BY v.created_at DESC" + _paging(skip, limit)
    )
    return run_cypher(q, {"keyword": keyword, "skip": skip, "limit": limit}) or []


def count_videos_by(field: str, keyword: str) -> int:
    res = run_cypher(f"MATCH (v:Video) WHERE {_list_filter(field)} RETURN count(v) AS cnt", {"keyword": keyword})
    return int((res[0].get("cnt") if res else 0) or 0)


def sample_videos(size: int = 8) -> List[Dict[str, Any]]:
    q = f"MATCH (v:Video) WITH v, rand() AS r ORDER BY r LIMIT $size RETURN {VIDEO_RETURN}"
    return run_cypher(q, {"size": size}) or []


def increment_video_views(slug: str) -> None:
    run_cypher("MATCH (v:Video {slug: $slug}) SET v.views = coalesce(v.views, 0) + 1", {"slug": slug})
