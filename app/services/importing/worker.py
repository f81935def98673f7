"""Import worker process.

Usage:
    python -m app.services.importing.worker [--once] [--poll-ms 5000]
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading
from typing import Optional

from app.config import load_env_from_file, log_level
from app.db.neo4j_connector import close_driver
from app.models.import_run import LogEntry

from .queue import ImportQueue
from .store import GraphImportStore

logger = logging.getLogger(__name__)

_LEVELS = {"info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


def mirror_log(run_id: int, entry: LogEntry) -> None:
    """Echo run log entries to the process log."""
    logger.log(_LEVELS.get(entry.level, logging.INFO), "[import %s] %s", run_id, entry.message)


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Poll and execute pending import runs")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument("--poll-ms", type=int, default=None, help="Override IMPORT_WORKER_POLL_MS")
    args = parser.parse_args(argv)

    load_env_from_file()
    logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    store = GraphImportStore()
    store.ensure_schema()
    poll = args.poll_ms / 1000.0 if args.poll_ms and args.poll_ms > 0 else None
    queue = ImportQueue(store, poll_interval=poll, on_log=mirror_log)

    if args.once:
        run_id = queue.tick()
        if run_id is None:
            logger.info("No pending import runs")
        else:
            logger.info("Executed import run %s", run_id)
        close_driver()
        return 0

    stopped = threading.Event()

    def _shutdown(signum, frame):
        logger.info("Received signal %s, stopping import worker", signum)
        queue.stop()
        stopped.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    queue.start()
    while not stopped.wait(1.0):
        pass
    # Let an in-flight run finish before the driver goes away
    queue.join()
    close_driver()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
