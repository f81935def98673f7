import json
from typing import Any, Dict, List, Optional

from app.db.neo4j_connector import run_cypher
from app.models.import_run import ImportRun, ImportRunStatus, LogEntry, now_iso

_RUN_FIELDS = (
    "r.id AS id, r.source AS source, r.status AS status, r.input_json AS input_json, "
    "r.totals_json AS totals_json, r.errors AS errors, r.logs_json AS logs_json, "
    "r.created_at AS created_at, r.started_at AS started_at, r.finished_at AS finished_at, "
    "r.triggered_by AS triggered_by"
)


def ensure_import_schema() -> None:
    """Create the constraints the queue and the asset upsert rely on. Idempotent."""
    statements = [
        "CREATE CONSTRAINT import_run_id IF NOT EXISTS FOR (r:ImportRun) REQUIRE r.id IS UNIQUE",
        "CREATE CONSTRAINT counter_name IF NOT EXISTS FOR (c:Counter) REQUIRE c.name IS UNIQUE",
        "CREATE CONSTRAINT asset_module_url IF NOT EXISTS FOR (a:Asset) REQUIRE (a.module_id, a.url) IS UNIQUE",
        "CREATE INDEX import_run_status IF NOT EXISTS FOR (r:ImportRun) ON (r.status)",
    ]
    for stmt in statements:
        run_cypher(stmt)


def _loads(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def _dump_logs(logs: List[LogEntry]) -> str:
    return json.dumps([entry.model_dump(mode="json") for entry in logs], ensure_ascii=False)


def _row_to_run(row: Dict[str, Any]) -> ImportRun:
    return ImportRun(
        id=row["id"],
        source=row.get("source") or "Unknown",
        status=row.get("status") or ImportRunStatus.PENDING,
        input=_loads(row.get("input_json"), None),
        totals=_loads(row.get("totals_json"), None),
        errors=list(row.get("errors") or []),
        logs=_loads(row.get("logs_json"), []),
        created_at=row.get("created_at"),
        started_at=row.get("started_at"),
        finished_at=row.get("finished_at"),
        triggered_by=row.get("triggered_by"),
    )


def create_import_run(source: str, input: Dict[str, Any], triggered_by: Optional[str] = None) -> ImportRun:
    """Create a pending run with the next numeric id from the import_run counter."""
    query = (
        "MERGE (c:Counter {name: 'import_run'}) "
        "ON CREATE SET c.value = 0 "
        "SET c.value = c.value + 1 "
        "WITH c.value AS next_id "
        "CREATE (r:ImportRun {id: next_id, source: $source, status: 'pending', input_json: $input_json, "
        "  errors: [], logs_json: '[]', created_at: $now, triggered_by: $triggered_by}) "
        f"RETURN {_RUN_FIELDS}"
    )
    res = run_cypher(
        query,
        {
            "source": source,
            "input_json": json.dumps(input, ensure_ascii=False),
            "now": now_iso(),
            "triggered_by": triggered_by,
        },
    )
    return _row_to_run(res[0])


def get_import_run(run_id: int) -> Optional[ImportRun]:
    res = run_cypher(f"MATCH (r:ImportRun {{id: $id}}) RETURN {_RUN_FIELDS}", {"id": run_id})
    return _row_to_run(res[0]) if res else None


def list_import_runs(limit: int = 20) -> List[ImportRun]:
    """Newest first."""
    query = (
        "MATCH (r:ImportRun) "
        f"RETURN {_RUN_FIELDS} "
        "ORDER BY r.created_at DESC, r.id DESC LIMIT $limit"
    )
    return [_row_to_run(row) for row in run_cypher(query, {"limit": int(limit)})]


def find_oldest_pending_run() -> Optional[ImportRun]:
    query = (
        "MATCH (r:ImportRun {status: 'pending'}) "
        f"RETURN {_RUN_FIELDS} "
        "ORDER BY r.created_at ASC, r.id ASC LIMIT 1"
    )
    res = run_cypher(query)
    return _row_to_run(res[0]) if res else None


def claim_import_run(run_id: int, logs: List[LogEntry]) -> Optional[ImportRun]:
    """Conditional pending -> running transition.

    The first SET takes the node write lock, so the status check that follows
    sees any claim committed by a competing worker. Returns None when the run
    is no longer pending.
    """
    now = now_iso()
    query = (
        "MATCH (r:ImportRun {id: $id}) "
        "SET r.claim_attempted_at = $now "
        "WITH r WHERE r.status = 'pending' "
        "SET r.status = 'running', r.started_at = $now, r.logs_json = $logs_json "
        f"RETURN {_RUN_FIELDS}"
    )
    res = run_cypher(query, {"id": run_id, "now": now, "logs_json": _dump_logs(logs)})
    return _row_to_run(res[0]) if res else None


def update_import_run_logs(run_id: int, logs: List[LogEntry]) -> None:
    run_cypher(
        "MATCH (r:ImportRun {id: $id}) SET r.logs_json = $logs_json",
        {"id": run_id, "logs_json": _dump_logs(logs)},
    )


def finish_import_run(
    run_id: int,
    status: ImportRunStatus,
    totals: Optional[Dict[str, Any]],
    errors: List[str],
) -> Optional[ImportRun]:
    """running -> success/error. A run in any other state is left alone (None)."""
    status = ImportRunStatus(status)
    if not ImportRunStatus.RUNNING.can_transition_to(status):
        raise ValueError(f"Import run {run_id} cannot finish as {status.value}.")
    query = (
        "MATCH (r:ImportRun {id: $id}) "
        "SET r.finish_attempted_at = $now "
        "WITH r WHERE r.status = 'running' "
        "SET r.status = $status, r.finished_at = $now, r.errors = $errors, "
        "    r.totals_json = coalesce($totals_json, r.totals_json) "
        f"RETURN {_RUN_FIELDS}"
    )
    res = run_cypher(
        query,
        {
            "id": run_id,
            "now": now_iso(),
            "status": status.value,
            "errors": list(errors),
            "totals_json": json.dumps(totals, ensure_ascii=False) if totals is not None else None,
        },
    )
    return _row_to_run(res[0]) if res else None
