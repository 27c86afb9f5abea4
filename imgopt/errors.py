from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class ImgOptError(Exception):
    """Base class for everything imgopt raises on purpose."""


class ConfigurationError(ImgOptError):
    """Bad target directory, unwritable target, etc. Fatal."""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


class DependencyMissingError(ImgOptError):
    """One or more required external optimizers are not on PATH. Fatal."""

    def __init__(self, missing: Sequence[str], guidance: Sequence[str] = ()) -> None:
        super().__init__(f"Missing dependencies: {' '.join(missing)}")
        self.missing = list(missing)
        self.guidance = list(guidance)


class PerFileOptimizationError(ImgOptError):
    """An external optimizer failed on a single file. Recovered by the batch driver."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class LogWriteError(ImgOptError):
    """The log directory or file could not be created. Logging gets disabled."""
