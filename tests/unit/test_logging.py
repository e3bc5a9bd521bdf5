"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from wbscalc.core.logging import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


def _ours(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if h.get_name() == "wbscalc"]


def test_stdlib_records_rendered_as_json(tmp_path, restore_root_logger):
    log_file = tmp_path / "wbscalc.log"
    configure_logging("debug", json_logs=True, log_file=log_file)

    logging.getLogger("wbscalc.versions.manager").info("Cloned %s into %s", "v1", "v2")
    for handler in _ours(restore_root_logger):
        handler.flush()

    record = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert record["event"] == "Cloned v1 into v2"
    assert record["level"] == "info"
    assert record["logger"] == "wbscalc.versions.manager"
    assert "timestamp" in record


def test_level_from_environment(monkeypatch, restore_root_logger):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    configure_logging()
    assert restore_root_logger.level == logging.WARNING


def test_reconfigure_replaces_handlers(restore_root_logger):
    configure_logging("info")
    configure_logging("info")
    assert len(_ours(restore_root_logger)) == 1


def test_missing_log_directory_is_skipped(tmp_path, restore_root_logger):
    configure_logging("info", log_file=tmp_path / "missing" / "wbscalc.log")
    handlers = _ours(restore_root_logger)
    assert len(handlers) == 1
    assert not isinstance(handlers[0], logging.FileHandler)
