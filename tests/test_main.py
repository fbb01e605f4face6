from __future__ import annotations

import main as entrypoint


def _env(monkeypatch):
    monkeypatch.setenv("TZ", "Asia/Taipei")
    monkeypatch.setenv("PORT", "3000")
    monkeypatch.setenv("MAIL_TO", "to@example.com")


def test_once_returns_zero_on_success(monkeypatch):
    _env(monkeypatch)
    runs = []
    monkeypatch.setattr(entrypoint, "run_once", runs.append)
    assert entrypoint.main(["--once"]) == 0
    assert len(runs) == 1


def test_once_returns_one_on_failure(monkeypatch):
    _env(monkeypatch)

    def failing(settings):
        raise RuntimeError("boom")

    monkeypatch.setattr(entrypoint, "run_once", failing)
    assert entrypoint.main(["--once"]) == 1


def test_invalid_configuration_exits_with_one(monkeypatch):
    _env(monkeypatch)
    monkeypatch.setenv("PORT", "not-a-port")
    assert entrypoint.main(["--once"]) == 1
