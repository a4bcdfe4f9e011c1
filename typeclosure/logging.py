"""Logging utilities for typeclosure."""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import ConfigError

_LOGGER_NAME = "typeclosure"
_DEFAULT_LEVEL = logging.WARNING


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the typeclosure hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def resolve_level(level: str | None) -> int:
    """Map a level name from ``.typeclosure.yml`` to a ``logging`` level."""
    if level is None:
        return _DEFAULT_LEVEL
    value = logging.getLevelNamesMapping().get(level.strip().upper())
    if value is None:
        raise ConfigError(f"Unknown log_level '{level}'")
    return value


class _ComponentFormatter(logging.Formatter):
    """Names the emitting component (walker, providers.reflection, cli) on console lines."""

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{_LOGGER_NAME}."
        record.component = (
            record.name[len(prefix):] if record.name.startswith(prefix) else record.name
        )
        return super().format(record)


def configure_logging(
    *, verbose: bool = False, level: str | None = None, log_file: Path | None = None
) -> logging.Logger:
    """Configure the typeclosure logger with console output and an optional file sink.

    ``verbose`` forces debug output, which is where the walker reports each
    classified failure and visited-mark rollback. Otherwise ``level`` applies.
    """
    effective = logging.DEBUG if verbose else resolve_level(level)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(effective)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations in one process do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(effective)
    stream_handler.setFormatter(
        _ComponentFormatter("[typeclosure:%(component)s] %(levelname)s %(message)s")
    )
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(effective)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger", "resolve_level"]
