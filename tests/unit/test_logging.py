"""Unit tests for the structlog setup."""

from __future__ import annotations

import logging

import pytest
import structlog

from textbook_rag.utils.logging import _select_renderer, configure_logging, get_logger


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestRendererSelection:
    def test_console_by_default(self) -> None:
        assert isinstance(_select_renderer(False, "development"), structlog.dev.ConsoleRenderer)

    def test_production_selects_json(self) -> None:
        assert isinstance(_select_renderer(False, "production"), structlog.processors.JSONRenderer)

    def test_flag_forces_json(self) -> None:
        assert isinstance(_select_renderer(True, "development"), structlog.processors.JSONRenderer)


class TestConfigureLogging:
    def test_root_logger_shares_renderer(self, restore_logging) -> None:
        configure_logging("warning", json_output=True)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_get_logger_configures_on_first_use(self, restore_logging) -> None:
        structlog.reset_defaults()
        assert not structlog.is_configured()

        get_logger("textbook_rag.tests")

        assert structlog.is_configured()
