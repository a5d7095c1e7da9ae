from __future__ import annotations

import allure
import pytest

from pulsectl.config import ClientSettings, Settings, WatchSettings

pytestmark = [
    allure.epic("Client Runtime"),
    allure.feature("Configuration"),
]


def test_from_env_defaults(monkeypatch) -> None:
    for name in (
        "PULSECTL_URL",
        "PULSECTL_API_VERSION",
        "PULSECTL_REQUEST_TIMEOUT_SECONDS",
        "PULSECTL_CONNECT_TIMEOUT_SECONDS",
        "PULSECTL_MAX_RETRIES",
        "PULSECTL_WATCH_POLL_INTERVAL_SECONDS",
        "PULSECTL_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.client.url == "http://localhost:8181"
    assert settings.client.base_url == "http://localhost:8181/v1"
    assert settings.watch.poll_interval_seconds == 0.1
    assert settings.log_level == "WARNING"
    settings.validate()


def test_explicit_arguments_win_over_env(monkeypatch) -> None:
    monkeypatch.setenv("PULSECTL_URL", "http://env-host:9000")
    monkeypatch.setenv("PULSECTL_API_VERSION", "v2")

    settings = Settings.from_env(url="https://cli-host:8181/", api_version="v1")

    assert settings.client.base_url == "https://cli-host:8181/v1"


def test_env_numbers_are_parsed(monkeypatch) -> None:
    monkeypatch.setenv("PULSECTL_REQUEST_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("PULSECTL_MAX_RETRIES", "3")
    monkeypatch.setenv("PULSECTL_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.client.request_timeout_seconds == 2.5
    assert settings.client.max_retries == 3
    assert settings.log_level == "DEBUG"


def test_invalid_env_number_is_reported(monkeypatch) -> None:
    monkeypatch.setenv("PULSECTL_MAX_RETRIES", "many")

    with pytest.raises(ValueError, match="PULSECTL_MAX_RETRIES"):
        Settings.from_env()


def test_validate_rejects_non_http_url() -> None:
    settings = Settings(client=ClientSettings(url="ftp://pulse.example.com"))

    with pytest.raises(ValueError, match="Invalid Pulse URL"):
        settings.validate()


def test_validate_rejects_non_positive_poll_interval() -> None:
    settings = Settings(watch=WatchSettings(poll_interval_seconds=0))

    with pytest.raises(ValueError, match="POLL_INTERVAL"):
        settings.validate()


def test_validate_rejects_unknown_log_level() -> None:
    settings = Settings(log_level="CHATTY")

    with pytest.raises(ValueError, match="PULSECTL_LOG_LEVEL"):
        settings.validate()
