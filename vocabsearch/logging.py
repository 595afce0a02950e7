import inspect
import logging
import os
from pprint import pformat
from typing import Any

from pydantic import BaseModel

LOG_LEVEL_ENV = "VOCABSEARCH_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"


class PprintLogger:
    """Logger wrapper that pretty-prints structured messages.

    Log calls usually pass a dict with a ``"message"`` key plus context
    (vocabulary, line numbers, counts). Dicts and lists go through pformat,
    pydantic models through model_dump_json(); plain strings are left alone.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format_message(self, msg: Any, pprint: bool = True) -> str:
        if not pprint or isinstance(msg, str):
            return str(msg)
        if isinstance(msg, BaseModel):
            return msg.model_dump_json(indent=2)
        return pformat(msg, width=120, depth=None)

    def _log(self, level: int, msg: Any, args: tuple, pprint: bool, kwargs: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, self._format_message(msg, pprint=pprint), *args, **kwargs)

    def debug(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.DEBUG, msg, args, pprint, kwargs)

    def info(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.INFO, msg, args, pprint, kwargs)

    def warning(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.WARNING, msg, args, pprint, kwargs)

    def error(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.ERROR, msg, args, pprint, kwargs)

    def exception(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, pprint, kwargs)

    def __getattr__(self, name: str) -> Any:
        """Delegate anything else (handlers, setLevel, ...) to the wrapped logger."""
        return getattr(self._logger, name)


def resolve_level(level: int | str | None = None) -> int:
    """Turn a level name, number or None (use the environment) into a logging level."""
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(name: str | None = None, level: int | str | None = None) -> PprintLogger:
    """Return a PprintLogger for ``name``, defaulting to the calling module.

    A stream handler is attached to the top-level ``vocabsearch`` logger the
    first time this runs so library users get output without configuring
    logging themselves.
    """
    if name is None:
        frame = inspect.currentframe().f_back  # type: ignore[union-attr]
        name = frame.f_globals.get("__name__", "vocabsearch")  # type: ignore[union-attr]
    root = logging.getLogger("vocabsearch")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(resolve_level(level))
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(resolve_level(level))
    return PprintLogger(logger)
