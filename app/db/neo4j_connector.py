from typing import Any, Dict, List, Optional

from app.config import get_settings
from app.errors import StoreError, UniqueViolation

try:
    from neo4j import GraphDatabase
    from neo4j.exceptions import ConstraintError, DriverError, Neo4jError
except Exception as _import_exc:
    GraphDatabase = None
    _neo4j_import_exc = _import_exc

_driver = None


def _ensure_neo4j_available():
    if GraphDatabase is None:
        # Raise a clear error that tells the user how to fix it
        raise StoreError(
            "The 'neo4j' Python package is not installed.\n"
            "Install dependencies with: pip install -e .\n"
            "Or install just the driver: pip install neo4j\n"
            f"Import error: {_neo4j_import_exc!r}"
        )


def get_driver():
    """Return a Neo4j driver instance, raising StoreError if it cannot be created."""
    global _driver
    _ensure_neo4j_available()
    if _driver is None:
        uri, user, pwd = _get_neo4j_config()
        try:
            _driver = GraphDatabase.driver(uri, auth=(user, pwd))
        except Exception as exc:
            raise StoreError(
                f"Failed to create Neo4j driver for URI '{uri}'. Check that the database is running and the credentials are correct.\nError: {exc}"
            ) from exc
    return _driver


def close_driver():
    global _driver
    if _driver is not None:
        _driver.close()
        _driver = None


def run_cypher(query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Run a Cypher statement and return list of records as dicts.

    Constraint violations surface as ``UniqueViolation``; every other driver or
    server failure surfaces as ``StoreError``.
    """
    driver = get_driver()
    try:
        with driver.session() as session:
            result = session.run(query, parameters or {})
            return [record.data() for record in result]
    except ConstraintError as exc:
        raise UniqueViolation(str(exc)) from exc
    except (Neo4jError, DriverError) as exc:
        raise StoreError(f"Cypher query failed: {exc}") from exc


def _get_neo4j_config():
    """Return (uri, user, password). Raises a helpful StoreError when required values are missing."""
    settings = get_settings()
    uri, user, pwd = settings.neo4j_uri, settings.neo4j_user, settings.neo4j_password

    missing = []
    if not uri:
        missing.append("NEO4J_URI")
    if not user:
        missing.append("NEO4J_USER")
    if not pwd:
        missing.append("NEO4J_PASSWORD")

    if missing:
        hint = (
            "One or more Neo4j settings are missing: " + ", ".join(missing) +
            "\nDefine them in your environment or in a .env file at the project root.\n"
            "Example:\n"
            "export NEO4J_URI='bolt://localhost:7687' NEO4J_USER='neo4j' NEO4J_PASSWORD='your_password'"
        )
        raise StoreError(hint)

    return uri, user, pwd
