from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, TextIO

from .errors import LogWriteError
from .settings import RunConfiguration


LOGGER_NAME = "imgopt"
FILE_LOGGER_NAME = "imgopt.files"


class PrefixFormatter(logging.Formatter):
    """Bare info lines; everything else tagged with its level."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno == logging.INFO:
            return message
        return f"[{record.levelname}] {message}"


def prepare_log_file(path: Path) -> None:
    """
    Make sure *path* can be appended to, creating its directory if needed.

    Raises LogWriteError with a user-facing message on failure.
    """
    path = Path(path)
    log_dir = path.parent
    if not log_dir.is_dir():
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LogWriteError(f"Could not create log directory: {log_dir}") from e

    try:
        with path.open("a", encoding="utf-8"):
            pass
    except OSError as e:
        raise LogWriteError(f"Could not write to log file: {path}") from e


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    config: RunConfiguration,
    stream: Optional[TextIO] = None,
) -> tuple[RunConfiguration, logging.Logger]:
    """
    Configure the imgopt loggers for one run.

    Leveled messages go through ``imgopt`` to stdout and, when enabled, to the
    log file (like ``tee -a``). Per-file result lines go through
    ``imgopt.files``, which only writes to the log file.

    Returns the (possibly updated) configuration and the main logger. If the
    log file can't be prepared, the problem is printed, logging to file is
    switched off in the returned configuration, and console output carries on.
    """
    stream = stream if stream is not None else sys.stdout

    logger = logging.getLogger(LOGGER_NAME)
    file_logger = logging.getLogger(FILE_LOGGER_NAME)
    _reset(logger)
    _reset(file_logger)

    logger.setLevel(config.log_level)
    logger.propagate = False
    file_logger.setLevel(logging.INFO)
    file_logger.propagate = False

    formatter = PrefixFormatter()

    console = logging.StreamHandler(stream)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if config.enable_log:
        try:
            prepare_log_file(config.log_file)
        except LogWriteError as e:
            print(str(e), file=stream)
            print("Disabling logs...", file=stream)
            config = replace(config, enable_log=False)

    if config.enable_log:
        file_handler = logging.FileHandler(config.log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        file_logger.addHandler(file_handler)
    else:
        file_logger.addHandler(logging.NullHandler())

    return config, logger


def shutdown_logging() -> None:
    """Flush and close every handler setup_logging() attached."""
    _reset(logging.getLogger(FILE_LOGGER_NAME))
    _reset(logging.getLogger(LOGGER_NAME))
