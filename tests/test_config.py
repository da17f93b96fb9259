"""Tests for settings and log context helpers."""

import logging

import pytest
import structlog
from pydantic import ValidationError

from conftest import make_settings
from usagewatch.core.config import Settings
from usagewatch.core.logging import setup_logging
from usagewatch.observability.tracing import current_cycle_id, cycle_context


def test_defaults(monkeypatch) -> None:
    for name in ("SCHEMATIC_API_KEY", "WEBHOOK_URL", "FEATURE_ID", "PAGE_SIZE"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.polling_interval_seconds == 300
    assert settings.page_size == 100
    assert settings.max_pages is None
    assert settings.delivery_log_size == 50
    assert settings.schematic_base_url == "https://api.schematichq.com"


def test_reads_environment_and_legacy_names(monkeypatch) -> None:
    monkeypatch.delenv("SCHEMATIC_API_KEY", raising=False)
    monkeypatch.delenv("WEBHOOK_URL", raising=False)
    monkeypatch.setenv("NEXT_PUBLIC_SCHEMATIC_API_KEY", "sch_legacy")
    monkeypatch.setenv("NEXT_PUBLIC_WEBHOOK_URL", "https://hooks.example.com/a")
    monkeypatch.setenv("POLLING_INTERVAL_SECONDS", "60")

    settings = Settings(_env_file=None)

    assert settings.schematic_api_key == "sch_legacy"
    assert settings.webhook_url == "https://hooks.example.com/a"
    assert settings.polling_interval_seconds == 60


def test_rejects_invalid_page_size() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, page_size=0)


def test_cycle_context_binds_and_restores_cycle_id() -> None:
    assert current_cycle_id() is None

    with cycle_context("outer") as outer:
        assert outer == "outer"
        with cycle_context() as inner:
            assert inner != "outer"
            assert current_cycle_id() == inner
        assert current_cycle_id() == "outer"

    assert current_cycle_id() is None
    assert "cycle_id" not in structlog.contextvars.get_contextvars()


def test_setup_logging_quiets_http_client_loggers() -> None:
    setup_logging(make_settings(log_level="DEBUG"))

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING

    setup_logging(make_settings(log_level="ERROR"))

    assert logging.getLogger("httpx").level == logging.ERROR
