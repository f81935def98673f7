import threading

import httpx

from app.services.importing.url_health import check_url_health, check_urls_health


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler), timeout=1.0)


def test_head_success(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)
    seen = []

    def handler(request):
        seen.append(request.method)
        return httpx.Response(200)

    with _client(handler) as client:
        result = check_url_health("https://example.org/ok", client=client)
    assert result.ok and result.status == 200
    assert seen == ["HEAD"]


def test_retries_with_get_when_head_rejected(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)
    seen = []

    def handler(request):
        seen.append(request.method)
        return httpx.Response(405 if request.method == "HEAD" else 200)

    with _client(handler) as client:
        result = check_url_health("https://example.org/no-head", client=client)
    assert result.ok and result.status == 200
    assert seen == ["HEAD", "GET"]


def test_not_found_is_not_retried(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)
    seen = []

    def handler(request):
        seen.append(request.method)
        return httpx.Response(404)

    with _client(handler) as client:
        result = check_url_health("https://example.org/missing", client=client)
    assert not result.ok and result.status == 404
    assert seen == ["HEAD"]
    assert "404" in result.as_warning()


def test_timeout_maps_to_failed_result(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)

    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with _client(handler) as client:
        result = check_url_health("https://slow.example.org", client=client)
    assert result.ok is False
    assert result.status is None
    assert result.error


def test_bypass_flag_short_circuits(monkeypatch):
    monkeypatch.setenv("SKIP_IMPORT_URL_CHECKS", "true")

    def handler(request):
        raise AssertionError("no request expected")

    with _client(handler) as client:
        result = check_url_health("https://example.org", client=client)
    assert result.ok is True and result.status == 0


def test_check_urls_dedupes_in_order(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200)

    with _client(handler) as client:
        results = check_urls_health(
            ["https://a.org/1", "https://b.org/2", "https://a.org/1", " ", "https://c.org/3"], client=client
        )
    assert [r.url for r in results] == ["https://a.org/1", "https://b.org/2", "https://c.org/3"]
    assert seen == ["https://a.org/1", "https://b.org/2", "https://c.org/3"]


def test_check_urls_stops_when_cancelled(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)
    cancel = threading.Event()

    def handler(request):
        cancel.set()
        return httpx.Response(200)

    with _client(handler) as client:
        results = check_urls_health(["https://a.org/1", "https://a.org/2"], client=client, cancel_event=cancel)
    assert len(results) == 1


def test_malformed_url_maps_to_failed_result(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)

    def handler(request):
        raise AssertionError("no request expected")

    with _client(handler) as client:
        result = check_url_health("https://example.com:abc/", client=client)
    assert result.ok is False
    assert result.status is None
    assert result.error.startswith("Malformed URL")
    assert "https://example.com:abc/" in result.as_warning()


def test_malformed_url_does_not_stop_remaining_checks(monkeypatch):
    monkeypatch.delenv("SKIP_IMPORT_URL_CHECKS", raising=False)

    with _client(lambda request: httpx.Response(200)) as client:
        results = check_urls_health(["https://example.com:abc/", "https://ok.example/a"], client=client)
    assert [r.ok for r in results] == [False, True]
