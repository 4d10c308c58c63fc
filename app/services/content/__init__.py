"""Content store gateway.

Video and Cosplay nodes in Neo4j. Callers go through this package (for
example ``content.get_video(slug)``) so tests can swap the functions out.
"""
from .videos import (
    create_video,
    get_video,
    find_video_by_title,
    list_videos,
    count_videos,
    search_videos,
    list_videos_by,
    count_videos_by,
    sample_videos,
    increment_video_views,
)
from .cosplays import (
    create_cosplay,
    get_cosplay,
    list_cosplays,
    count_cosplays,
    search_cosplays,
    list_cosplays_by,
    related_cosplays,
    increment_cosplay_views,
)
from .admin import ensure_constraints

__all__ = [
    # videos
    'create_video','get_video','find_video_by_title','list_videos','count_videos',
    'search_videos','list_videos_by','count_videos_by','sample_videos','increment_video_views',
    # cosplays
    'create_cosplay','get_cosplay','list_cosplays','count_cosplays','search_cosplays',
    'list_cosplays_by','related_cosplays','increment_cosplay_views',
    # admin
    'ensure_constraints',
]
