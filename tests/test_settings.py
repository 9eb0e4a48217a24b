from __future__ import annotations

import pytest

from src.app.settings import DEFAULT_LOCAL_STORAGE_URL, AppSettings


def test_from_env_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_NAME", "APP_ENV", "LOG_LEVEL", "LOCAL_STORAGE_URL", "REVIEW_PACING_MS"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings.from_env()

    assert settings.app_env == "development"
    assert settings.log_level == "INFO"
    assert settings.local_storage_url == DEFAULT_LOCAL_STORAGE_URL
    assert settings.review_pacing_ms == 300
    assert settings.review_pacing_delay == pytest.approx(0.3)


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("LOCAL_STORAGE_URL", "sqlite+aiosqlite:////tmp/device.db")
    monkeypatch.setenv("REVIEW_PACING_MS", "0")

    settings = AppSettings.from_env()

    assert settings.app_env == "production"
    assert settings.local_storage_url == "sqlite+aiosqlite:////tmp/device.db"
    assert settings.review_pacing_delay == 0


@pytest.mark.parametrize("value", ["soon", "-1"])
def test_from_env_rejects_invalid_pacing(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("REVIEW_PACING_MS", value)

    with pytest.raises(RuntimeError):
        AppSettings.from_env()
