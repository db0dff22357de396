"""
Tests for docstore logging setup and formatters.
"""

import json
import logging

import pytest

from docstore.runtime.logging import (
    ROOT_LOGGER,
    ConsoleFormatter,
    JSONLFormatter,
    get_logger,
    log_with_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_root_logger():
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


def _record(message: str, level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("docstore.tx", level, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogger:
    """Tests for component loggers."""

    def test_name_and_cache(self):
        logger = get_logger("Relations")

        assert logger.name == "docstore.relations"
        assert get_logger("Relations") is logger

    def test_records_tagged_with_component(self, caplog):
        logger = get_logger("Tx")
        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER):
            logger.debug("hello")

        assert caplog.records[-1].component == "Tx"


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_console_only(self):
        root = setup_logging(level="debug")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging(level="chatty").level == logging.INFO

    def test_jsonl_file(self, tmp_path):
        setup_logging(log_dir=tmp_path / "logs", level=logging.INFO)
        log_with_context(get_logger("Store"), logging.INFO, "Connected", collections=3)

        lines = (tmp_path / "logs" / "docstore.log").read_text().splitlines()
        entry = json.loads(lines[-1])

        assert entry["level"] == "INFO"
        assert entry["component"] == "Store"
        assert entry["message"] == "Connected"
        assert entry["context"] == {"collections": 3}

    def test_repeat_setup_replaces_handlers(self, tmp_path):
        setup_logging(log_dir=tmp_path)
        root = setup_logging()
        assert len(root.handlers) == 1


class TestFormatters:
    """Tests for JSONLFormatter and ConsoleFormatter."""

    def test_jsonl_warning_has_source(self):
        entry = json.loads(JSONLFormatter().format(_record("careful", logging.WARNING, component="Tx")))

        assert entry["component"] == "Tx"
        assert entry["source"]["line"] == 10
        assert "context" not in entry

    def test_jsonl_context_merges_kwargs(self, caplog):
        logger = get_logger("Aggregate")
        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER):
            log_with_context(logger, logging.INFO, "ran", {"stages": 2}, resource="Deal")

        assert caplog.records[-1].context == {"stages": 2, "resource": "Deal"}

    def test_console_info_has_no_level_name(self):
        output = ConsoleFormatter().format(_record("Transaction committed", component="Tx"))

        assert "[Tx]" in output
        assert output.endswith("Transaction committed")
        assert "INFO" not in output

    def test_console_warning_shows_level(self):
        output = ConsoleFormatter().format(_record("falling back", logging.WARNING, component="Backend"))
        assert "WARNING" in output
