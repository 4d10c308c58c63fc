from typing import List

from app.db.neo4j_connector import run_cypher

CONSTRAINTS = (
    "CREATE CONSTRAINT video_slug IF NOT EXISTS FOR (v:Video) REQUIRE v.slug IS UNIQUE",
    "CREATE CONSTRAINT video_title IF NOT EXISTS FOR (v:Video) REQUIRE v.title IS UNIQUE",
    "CREATE CONSTRAINT cosplay_slug IF NOT EXISTS FOR (c:Cosplay) REQUIRE c.slug IS UNIQUE",
    "CREATE INDEX video_created_at IF NOT EXISTS FOR (v:Video) ON (v.created_at)",
    "CREATE INDEX cosplay_created_at IF NOT EXISTS FOR (c:Cosplay) ON (c.created_at)",
)


def ensure_constraints() -> List[str]:
    """Create the unique constraints and sort indexes. Idempotent.

    Returns the statements that were executed.
    """
    for stmt in CONSTRAINTS:
        run_cypher(stmt)
    return list(CONSTRAINTS)
