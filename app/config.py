"""Environment-driven settings shared by the worker, API and CLI.

Values come from the process environment; a `.env` file at the project root
fills in anything not already set.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

_env_loaded = False


def load_env_from_file(force: bool = False) -> None:
    """Load variables from a project-root .env file if present.

    Only sets variables that aren't already present in the process environment.
    """
    global _env_loaded
    if _env_loaded and not force:
        return
    _env_loaded = True
    root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                s = line.strip()
                if not s or s.startswith("#"):
                    continue
                if "=" not in s:
                    continue
                key, val = s.split("=", 1)
                key = key.strip()
                val = val.strip().strip('"').strip("'")
                # Allow space around '=' like KEY = value
                if key and (key not in os.environ or not os.environ[key]):
                    os.environ[key] = val
    except OSError as exc:
        # Best-effort: the process environment still applies
        logger.warning("Could not read %s: %s", env_path, exc)


def env_flag(name: str, default: bool = False) -> bool:
    """Return True when the variable is set to 'true' (case-insensitive)."""
    load_env_from_file()
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() == "true"


def env_positive_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Parse a positive integer variable, falling back to `default` when absent or invalid."""
    load_env_from_file()
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default
    return parsed if parsed > 0 else default


def import_worker_poll_seconds() -> float:
    """Queue tick interval; IMPORT_WORKER_POLL_MS overrides the 5s default."""
    return env_positive_int("IMPORT_WORKER_POLL_MS", 5_000) / 1000.0


def url_checks_disabled() -> bool:
    """SKIP_IMPORT_URL_CHECKS=true bypasses reachability checks (restricted networks)."""
    return env_flag("SKIP_IMPORT_URL_CHECKS")


def url_check_timeout_seconds() -> float:
    return env_positive_int("IMPORT_URL_CHECK_TIMEOUT_MS", 6_000) / 1000.0


def log_level() -> str:
    load_env_from_file()
    return (os.getenv("LOG_LEVEL") or "INFO").upper()
