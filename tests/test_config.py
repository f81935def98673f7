from app.config import import_worker_poll_seconds, url_check_timeout_seconds, url_checks_disabled


def test_poll_interval_override(monkeypatch):
    monkeypatch.setenv("IMPORT_WORKER_POLL_MS", "250")
    assert import_worker_poll_seconds() == 0.25
    monkeypatch.setenv("IMPORT_WORKER_POLL_MS", "soon")
    assert import_worker_poll_seconds() == 5.0
    monkeypatch.setenv("IMPORT_WORKER_POLL_MS", "-1")
    assert import_worker_poll_seconds() == 5.0


def test_url_check_settings(monkeypatch):
    monkeypatch.setenv("SKIP_IMPORT_URL_CHECKS", "TRUE")
    assert url_checks_disabled() is True
    monkeypatch.setenv("SKIP_IMPORT_URL_CHECKS", "no")
    assert url_checks_disabled() is False
    monkeypatch.delenv("IMPORT_URL_CHECK_TIMEOUT_MS", raising=False)
    assert url_check_timeout_seconds() == 6.0
