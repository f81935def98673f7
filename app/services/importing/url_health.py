"""Asset URL reachability checks.

HEAD first; hosts that reject HEAD (401/403/405) get one GET. Checks run one
URL at a time so a run never bursts a single host.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

import httpx

from app.config import url_check_timeout_seconds, url_checks_disabled

from .errors import TransientError

logger = logging.getLogger(__name__)

RETRY_WITH_GET = {401, 403, 405}
DEFAULT_HEADERS = {"User-Agent": "ContentImport-LinkCheck/0.1"}


@dataclass
class UrlCheckResult:
    url: str
    ok: bool
    status: Optional[int] = None
    error: Optional[str] = None

    def as_warning(self) -> str:
        if self.status:
            return f"Potential dead link ({self.status}) for {self.url}"
        return f"Potential dead link for {self.url}: {self.error or 'unknown error'}"


def _request(client: httpx.Client, method: str, url: str) -> httpx.Response:
    try:
        return client.request(method, url)
    except httpx.TimeoutException as exc:
        raise TransientError(f"Timed out after {client.timeout.read}s") from exc
    except httpx.HTTPError as exc:
        raise TransientError(str(exc) or type(exc).__name__) from exc
    except (httpx.InvalidURL, ValueError) as exc:
        raise TransientError(f"Malformed URL: {exc}") from exc


def check_url_health(
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: Optional[float] = None,
) -> UrlCheckResult:
    if url_checks_disabled():
        return UrlCheckResult(url=url, ok=True, status=0)

    owns_client = client is None
    if client is None:
        client = httpx.Client(
            timeout=timeout if timeout is not None else url_check_timeout_seconds(),
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        )
    try:
        head = _request(client, "HEAD", url)
        if head.is_success:
            return UrlCheckResult(url=url, ok=True, status=head.status_code)
        if head.status_code in RETRY_WITH_GET:
            get = _request(client, "GET", url)
            return UrlCheckResult(url=url, ok=get.is_success, status=get.status_code)
        return UrlCheckResult(url=url, ok=False, status=head.status_code)
    except TransientError as exc:
        logger.debug("URL check failed for %s: %s", url, exc)
        return UrlCheckResult(url=url, ok=False, error=str(exc))
    finally:
        if owns_client:
            client.close()


def check_urls_health(
    urls: Iterable[str],
    *,
    client: Optional[httpx.Client] = None,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[UrlCheckResult]:
    """Check unique, non-blank URLs in order, one at a time."""
    unique = list(dict.fromkeys(u.strip() for u in urls if isinstance(u, str) and u.strip()))
    if not unique:
        return []
    if url_checks_disabled():
        return [UrlCheckResult(url=u, ok=True, status=0) for u in unique]

    owns_client = client is None
    if client is None:
        client = httpx.Client(
            timeout=timeout if timeout is not None else url_check_timeout_seconds(),
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        )
    results: List[UrlCheckResult] = []
    try:
        for url in unique:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("URL checks cancelled after %d of %d", len(results), len(unique))
                break
            results.append(check_url_health(url, client=client))
    finally:
        if owns_client:
            client.close()
    return results
