import threading
from typing import Dict, List, Optional, Tuple

import pytest

from app.models.content import AssetRow, ContentSourceRecord, LessonSummary, ModuleRecord
from app.models.import_run import ImportRun, ImportRunStatus, now_iso
from app.services.importing.errors import PersistenceError
from app.services.importing.store import ImportStore


class InMemoryImportStore(ImportStore):
    """Dict-backed store with the same conditional claim/finish semantics as the graph store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 0
        self.runs: Dict[int, ImportRun] = {}
        self.modules: Dict[str, ModuleRecord] = {}
        self.lessons: Dict[int, List[LessonSummary]] = {}
        self.sources: Dict[str, ContentSourceRecord] = {}
        self.assets: Dict[Tuple[int, str], AssetRow] = {}
        self.upsert_batches: List[int] = []
        self.attribution_writes: List[Dict[int, str]] = []
        self.fail_on_batch: Optional[int] = None

    # seeding helpers
    def add_module(self, module_id: int, slug: str) -> ModuleRecord:
        record = ModuleRecord(id=module_id, slug=slug)
        self.modules[slug] = record
        return record

    def add_lesson(self, lesson_id, module_id, slug=None, title=None, attribution_block=None) -> LessonSummary:
        lesson = LessonSummary(
            id=lesson_id, module_id=module_id, slug=slug, title=title, attribution_block=attribution_block
        )
        self.lessons.setdefault(module_id, []).append(lesson)
        return lesson

    def add_source(self, source_id, name, license="CC BY 4.0", license_url=None, attribution_text=None):
        record = ContentSourceRecord(
            id=source_id, name=name, license=license, license_url=license_url, attribution_text=attribution_text
        )
        self.sources[name] = record
        return record

    def lesson(self, lesson_id: int) -> LessonSummary:
        for lessons in self.lessons.values():
            for lesson in lessons:
                if lesson.id == lesson_id:
                    return lesson
        raise KeyError(lesson_id)

    # run records
    def create_run(self, source, input, triggered_by=None):
        with self._lock:
            self._next_id += 1
            run = ImportRun(
                id=self._next_id,
                source=source,
                input=input,
                created_at=now_iso(),
                triggered_by=triggered_by,
            )
            self.runs[run.id] = run
            return run

    def get_run(self, run_id):
        return self.runs.get(run_id)

    def list_runs(self, limit=20):
        ordered = sorted(self.runs.values(), key=lambda r: (r.created_at or "", r.id), reverse=True)
        return ordered[:limit]

    def find_oldest_pending(self):
        pending = [r for r in self.runs.values() if r.status == ImportRunStatus.PENDING]
        pending.sort(key=lambda r: (r.created_at or "", r.id))
        return pending[0] if pending else None

    def claim_run(self, run_id, logs):
        with self._lock:
            run = self.runs.get(run_id)
            if run is None or not run.status.can_transition_to(ImportRunStatus.RUNNING):
                return None
            claimed = run.model_copy(
                update={"status": ImportRunStatus.RUNNING, "started_at": now_iso(), "logs": list(logs)}
            )
            self.runs[run_id] = claimed
            return claimed

    def update_run_logs(self, run_id, logs):
        with self._lock:
            self.runs[run_id] = self.runs[run_id].model_copy(update={"logs": list(logs)})

    def finish_run(self, run_id, status, totals, errors):
        status = ImportRunStatus(status)
        if not ImportRunStatus.RUNNING.can_transition_to(status):
            raise ValueError(f"Import run {run_id} cannot finish as {status.value}.")
        with self._lock:
            run = self.runs.get(run_id)
            if run is None or not run.status.can_transition_to(status):
                return None
            update = {"status": status, "finished_at": now_iso(), "errors": list(errors)}
            if totals is not None:
                update["totals"] = totals
            finished = run.model_copy(update=update)
            self.runs[run_id] = finished
            return finished

    # content store
    def resolve_modules(self, slugs):
        return {s: self.modules[s] for s in slugs if s in self.modules}

    def fetch_lessons(self, module_ids):
        return {mid: [l.model_copy() for l in self.lessons.get(mid, [])] for mid in module_ids if mid in self.lessons}

    def fetch_content_source(self, name):
        return self.sources.get(name)

    def upsert_assets(self, rows):
        batch_number = len(self.upsert_batches) + 1
        if self.fail_on_batch == batch_number:
            raise PersistenceError("simulated write failure")
        for row in rows:
            self.assets[row.upsert_key] = row
        self.upsert_batches.append(len(rows))
        return len(rows)

    def update_lesson_attribution(self, updates):
        self.attribution_writes.append(dict(updates))
        for lessons in self.lessons.values():
            for i, lesson in enumerate(lessons):
                if lesson.id in updates:
                    lessons[i] = lesson.model_copy(update={"attribution_block": updates[lesson.id]})
        return len(updates)


@pytest.fixture
def store():
    return InMemoryImportStore()


@pytest.fixture
def no_url_checks(monkeypatch):
    monkeypatch.setenv("SKIP_IMPORT_URL_CHECKS", "true")
