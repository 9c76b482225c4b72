"""Tests for logging setup."""

import logging

import pytest

from trapper_sender.adapters.driven.logging.logging_config import configure_logs

__all__ = []


@pytest.fixture(autouse=True)
def restore_root_handlers():
    """Keep handlers added by configure_logs from leaking into other tests."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize(("debug", "level"), [(False, logging.INFO), (True, logging.DEBUG)])
def test_configure_logs_sets_application_level(debug: bool, level: int) -> None:
    """Application logger level should follow the debug flag."""
    configure_logs(debug=debug)

    assert logging.getLogger("trapper_sender").level == level
    assert logging.getLogger("asyncio").level == logging.WARNING
    assert logging.getLogger().level == logging.INFO
