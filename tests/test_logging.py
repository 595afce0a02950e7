"""Tests for the PprintLogger and setup_logging functionality.

This module verifies:
- Structured messages (dicts, lists) are pretty-printed
- Pydantic models are logged as indented JSON
- pprint=False and plain strings pass through unchanged
- Disabled levels skip formatting entirely
- Anything else is delegated to the wrapped logger
- setup_logging names loggers after the calling module and configures the
  package logger once
"""

import logging
from io import StringIO

import pytest
from pydantic import BaseModel

from vocabsearch.logging import PprintLogger, resolve_level, setup_logging


def capture(name: str, level: int = logging.DEBUG) -> tuple[PprintLogger, StringIO]:
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
    logger.addHandler(handler)
    return PprintLogger(logger), stream


class TestPprintLogger:
    """Formatting and delegation."""

    def test_dict_message(self) -> None:
        logger, stream = capture("test.dict")
        logger.info({"message": "Rebuilding vocabulary", "vocabulary": "mondo", "generation": 2})
        output = stream.getvalue()
        assert "'message': 'Rebuilding vocabulary'" in output
        assert "'generation': 2" in output

    def test_long_dict_is_wrapped(self) -> None:
        logger, stream = capture("test.wrapped")
        logger.info({f"key{i}": "x" * 20 for i in range(10)})
        assert stream.getvalue().count("\n") > 1

    def test_pprint_false_uses_str(self) -> None:
        logger, stream = capture("test.plain")
        logger.info({"key": "value"}, pprint=False)
        assert "{'key': 'value'}" in stream.getvalue()

    def test_plain_string(self) -> None:
        logger, stream = capture("test.string")
        logger.warning("Simple message")
        assert stream.getvalue() == "WARNING - Simple message\n"

    def test_pydantic_model_as_json(self) -> None:
        class Report(BaseModel):
            vocabulary: str
            term_count: int

        logger, stream = capture("test.model")
        logger.info(Report(vocabulary="hpo", term_count=42))
        output = stream.getvalue()
        assert '"vocabulary": "hpo"' in output
        assert '"term_count": 42' in output

    def test_all_levels(self) -> None:
        logger, stream = capture("test.levels")
        for method in (logger.debug, logger.info, logger.warning, logger.error):
            method({"level": "test"})
        output = stream.getvalue()
        for name in ("DEBUG", "INFO", "WARNING", "ERROR"):
            assert name in output

    def test_exception_includes_traceback(self) -> None:
        logger, stream = capture("test.exception")
        try:
            raise ValueError("index corrupted")
        except ValueError:
            logger.exception({"message": "Search failed"})
        output = stream.getvalue()
        assert "Search failed" in output
        assert "ValueError: index corrupted" in output

    def test_disabled_level_skips_formatting(self) -> None:
        class Exploding:
            def __repr__(self) -> str:
                raise AssertionError("formatted a disabled message")

        logger, stream = capture("test.disabled", level=logging.WARNING)
        logger.debug([Exploding()])
        assert stream.getvalue() == ""

    def test_delegates_to_underlying_logger(self) -> None:
        logger, _ = capture("test.delegate")
        logger.setLevel(logging.ERROR)
        assert logging.getLogger("test.delegate").level == logging.ERROR
        assert logger.handlers == logging.getLogger("test.delegate").handlers


class TestResolveLevel:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (logging.DEBUG, logging.DEBUG),
            ("warning", logging.WARNING),
            (" Error ", logging.ERROR),
            ("nonsense", logging.INFO),
        ],
    )
    def test_values(self, value, expected) -> None:
        assert resolve_level(value) == expected

    def test_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("VOCABSEARCH_LOG_LEVEL", "debug")
        assert resolve_level() == logging.DEBUG


class TestSetupLogging:
    def test_returns_pprint_logger_named_after_module(self) -> None:
        logger = setup_logging()
        assert isinstance(logger, PprintLogger)
        assert logger.name == __name__

    def test_explicit_name_and_level(self) -> None:
        logger = setup_logging("vocabsearch.test_component", level="DEBUG")
        assert logger.name == "vocabsearch.test_component"
        assert logger.level == logging.DEBUG

    def test_package_handler_added_once(self) -> None:
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("vocabsearch").handlers) == 1
