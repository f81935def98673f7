import os
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase

from app.config import load_env_from_file

_driver = None


def get_driver():
    """Return the shared Neo4j driver, creating it from the environment on first use."""
    global _driver
    if _driver is None:
        uri, user, pwd = _get_neo4j_config()
        try:
            _driver = GraphDatabase.driver(uri, auth=(user, pwd))
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create Neo4j driver for URI '{uri}'. Check that the database is running and the credentials are correct.\nError: {exc}"
            ) from exc
    return _driver


def close_driver():
    global _driver
    if _driver is not None:
        _driver.close()
        _driver = None


def run_cypher(query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Run a Cypher statement in its own write transaction and return records as dicts.

    Each call is one transaction: a statement that UNWINDs a batch either
    applies the whole batch or none of it.
    """
    driver = get_driver()
    with driver.session() as session:
        return session.execute_write(_collect, query, parameters or {})


def _collect(tx, query: str, parameters: Dict[str, Any]) -> List[Dict[str, Any]]:
    result = tx.run(query, parameters)
    return [record.data() for record in result]


def _get_neo4j_config():
    """Get Neo4j URI, user, and password, loading .env if necessary and applying defaults.

    Returns (uri, user, password). Raises a helpful RuntimeError when required values are missing.
    """
    load_env_from_file()

    uri = os.getenv("NEO4J_URI") or "bolt://localhost:7687"
    user = os.getenv("NEO4J_USER") or "neo4j"
    pwd = os.getenv("NEO4J_PASSWORD")

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
            "Example: NEO4J_URI=bolt://localhost:7687 NEO4J_USER=neo4j NEO4J_PASSWORD=your_password"
        )
        raise RuntimeError(hint)

    return uri, user, pwd
