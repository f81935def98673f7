from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from app.config import import_worker_poll_seconds
from app.models.import_run import ImportRun, ImportRunStatus, LogEntry, LogLevel, build_log_entry
from app.models.providers import ImportProviderId

from .errors import UnknownProviderError
from .pipeline import ImportOutcome, process_import_run
from .providers import parse_provider_id
from .store import ImportStore

logger = logging.getLogger(__name__)

Pipeline = Callable[[ImportStore, ImportProviderId, ImportRun], ImportOutcome]
LogListener = Callable[[int, LogEntry], None]


class ImportQueue:
    """Polling worker over the run-record store.

    Each tick claims at most one pending run (oldest first) with a conditional
    update and executes it to completion. A non-blocking lock keeps ticks
    single-flight: a tick that fires while a run is still executing claims
    nothing. Several queues, in one process or many, may poll the same store.
    """

    def __init__(
        self,
        store: ImportStore,
        *,
        poll_interval: Optional[float] = None,
        pipeline: Pipeline = process_import_run,
        on_log: Optional[LogListener] = None,
    ):
        self.store = store
        self.poll_interval = poll_interval if poll_interval is not None else import_worker_poll_seconds()
        self._pipeline = pipeline
        self._on_log = on_log
        self._stop = threading.Event()
        self._in_flight = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    # --- lifecycle ---

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="import-queue", daemon=True)
        self._thread.start()
        logger.info("Import queue started (poll every %.1fs)", self.poll_interval)

    def stop(self) -> None:
        """Stop polling. A run already executing finishes on its own."""
        if not self._stop.is_set():
            self._stop.set()
            logger.info("Import queue stopping")

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self.poll_interval)

    # --- ticks ---

    def tick(self) -> Optional[int]:
        """Claim and execute one run; returns its id, or None when nothing ran."""
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Import run still in flight; skipping tick")
            return None
        try:
            run = self.claim_next()
            if run is None:
                return None
            self.execute_run(run)
            return run.id
        except Exception as exc:
            logger.exception("Import queue tick failed: %s", exc)
            return None
        finally:
            self._in_flight.release()

    def claim_next(self) -> Optional[ImportRun]:
        pending = self.store.find_oldest_pending()
        if pending is None:
            return None
        entry = build_log_entry("info", "Run claimed by import worker", {"source": pending.source})
        claimed = self.store.claim_run(pending.id, pending.with_log(entry))
        if claimed is None:
            logger.info("Import run %s was claimed by another worker", pending.id)
            return None
        self._emit(claimed.id, entry)
        return claimed

    # --- execution ---

    def append_log(
        self,
        run_id: int,
        level: LogLevel,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        """Read the current logs, append one entry, write them back.

        Only the claiming worker appends to a run after the claim, so the
        read-modify-write does not race.
        """
        entry = build_log_entry(level, message, context)
        current = self.store.get_run(run_id)
        logs = current.with_log(entry) if current is not None else [entry]
        self.store.update_run_logs(run_id, logs)
        self._emit(run_id, entry)
        return entry

    def execute_run(self, run: ImportRun) -> None:
        try:
            provider = parse_provider_id(run.provider_id)
        except UnknownProviderError as exc:
            self.append_log(run.id, "error", str(exc), {"provider": run.provider_id})
            self.store.finish_run(run.id, ImportRunStatus.ERROR, None, [str(exc)])
            return

        self.append_log(run.id, "info", f"Starting {provider.value} import")
        try:
            outcome = self._pipeline(self.store, provider, run)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Import run %s failed: %s", run.id, message)
            self.append_log(run.id, "error", f"Import failed: {message}", {"error": type(exc).__name__})
            self.store.finish_run(run.id, ImportRunStatus.ERROR, None, [*run.errors, message])
            return

        self.finalize(run, outcome)

    def finalize(self, run: ImportRun, outcome: ImportOutcome) -> None:
        for warning in outcome.warnings:
            self.append_log(run.id, "warn", warning)
        if outcome.errors:
            self.append_log(
                run.id,
                "error",
                "Import finished with errors",
                {"totals": outcome.totals, "errors": outcome.errors},
            )
            status = ImportRunStatus.ERROR
        else:
            self.append_log(run.id, "info", "Import completed", {"totals": outcome.totals})
            status = ImportRunStatus.SUCCESS
        self.store.finish_run(run.id, status, outcome.totals, outcome.errors)

    def _emit(self, run_id: int, entry: LogEntry) -> None:
        if self._on_log is None:
            return
        try:
            self._on_log(run_id, entry)
        except Exception:
            logger.exception("Import log listener failed")
