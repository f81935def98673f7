"""Persistence contract for the import queue and pipeline.

`ImportStore` names every read/write the queue and pipeline perform; the
Neo4j implementation delegates to the Cypher functions in
``app.services.graph``. Tests substitute an in-memory store.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from neo4j.exceptions import DriverError, Neo4jError

from app.models.content import AssetRow, ContentSourceRecord, LessonSummary, ModuleRecord
from app.models.import_run import ImportRun, ImportRunStatus, LogEntry
from app.services.graph import content as content_graph
from app.services.graph import import_runs as runs_graph

from .errors import PersistenceError

logger = logging.getLogger(__name__)


class ImportStore:
    # --- run records ---

    def create_run(self, source: str, input: Dict[str, Any], triggered_by: Optional[str] = None) -> ImportRun:
        raise NotImplementedError

    def get_run(self, run_id: int) -> Optional[ImportRun]:
        raise NotImplementedError

    def list_runs(self, limit: int = 20) -> List[ImportRun]:
        raise NotImplementedError

    def find_oldest_pending(self) -> Optional[ImportRun]:
        raise NotImplementedError

    def claim_run(self, run_id: int, logs: List[LogEntry]) -> Optional[ImportRun]:
        """Atomically move a pending run to running; None when another worker got there first."""
        raise NotImplementedError

    def update_run_logs(self, run_id: int, logs: List[LogEntry]) -> None:
        raise NotImplementedError

    def finish_run(
        self,
        run_id: int,
        status: ImportRunStatus,
        totals: Optional[Dict[str, Any]],
        errors: List[str],
    ) -> Optional[ImportRun]:
        raise NotImplementedError

    # --- content store ---

    def resolve_modules(self, slugs: Iterable[str]) -> Dict[str, ModuleRecord]:
        raise NotImplementedError

    def fetch_lessons(self, module_ids: Iterable[int]) -> Dict[int, List[LessonSummary]]:
        raise NotImplementedError

    def fetch_content_source(self, name: str) -> Optional[ContentSourceRecord]:
        raise NotImplementedError

    def upsert_assets(self, rows: List[AssetRow]) -> int:
        """Insert or update on (module_id, url). Raises PersistenceError on failure."""
        raise NotImplementedError

    def update_lesson_attribution(self, updates: Dict[int, str]) -> int:
        raise NotImplementedError


class GraphImportStore(ImportStore):
    def ensure_schema(self) -> None:
        runs_graph.ensure_import_schema()

    def create_run(self, source, input, triggered_by=None):
        return runs_graph.create_import_run(source, input, triggered_by=triggered_by)

    def get_run(self, run_id):
        return runs_graph.get_import_run(run_id)

    def list_runs(self, limit=20):
        return runs_graph.list_import_runs(limit)

    def find_oldest_pending(self):
        return runs_graph.find_oldest_pending_run()

    def claim_run(self, run_id, logs):
        return runs_graph.claim_import_run(run_id, logs)

    def update_run_logs(self, run_id, logs):
        runs_graph.update_import_run_logs(run_id, logs)

    def finish_run(self, run_id, status, totals, errors):
        return runs_graph.finish_import_run(run_id, status, totals, errors)

    def resolve_modules(self, slugs):
        return content_graph.resolve_modules(slugs)

    def fetch_lessons(self, module_ids):
        return content_graph.fetch_lessons_by_module_ids(module_ids)

    def fetch_content_source(self, name):
        return content_graph.fetch_content_source(name)

    def upsert_assets(self, rows):
        try:
            return content_graph.upsert_assets(rows)
        except (Neo4jError, DriverError) as exc:
            logger.error("Asset upsert of %d rows failed: %s", len(rows), exc)
            raise PersistenceError(str(exc) or type(exc).__name__) from exc

    def update_lesson_attribution(self, updates):
        try:
            return content_graph.update_lesson_attribution_blocks(updates)
        except (Neo4jError, DriverError) as exc:
            raise PersistenceError(str(exc) or type(exc).__name__) from exc
