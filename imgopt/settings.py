from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal


# Format tags the optimizer knows about.
ImageFormat = Literal["jpeg", "png", "gif", "webp"]

Verbosity = Literal["quiet", "normal", "verbose"]

DEFAULT_LOG_FILE = Path("./image_optimization.log")

JPEG_QUALITY_RANGE = (0, 100)
PNG_LEVEL_RANGE = (0, 7)
WEBP_QUALITY_RANGE = (0, 100)


@dataclass(frozen=True)
class RunConfiguration:
    """
    Everything one run needs to know, captured once from the command line.

    Pure data, read-only after construction. Use dataclasses.replace()
    to derive a modified snapshot (e.g. when the log file turns out to
    be unwritable).
    """

    # ----- Target -----
    directory: Path = Path(".")
    recursive: bool = True
    dry_run: bool = False

    # ----- Formats -----
    skip_jpg: bool = False
    skip_png: bool = False
    skip_gif: bool = False
    skip_webp: bool = False

    # ----- Encoder knobs -----
    jpeg_quality: int = 85  # jpegoptim --max (0-100)
    png_level: int = 3  # optipng -o (0-7), higher = smaller but slower
    webp_quality: int = 80  # cwebp -q (0-100)

    # ----- Logging -----
    verbosity: Verbosity = "normal"
    log_file: Path = DEFAULT_LOG_FILE
    enable_log: bool = True

    def is_skipped(self, fmt: ImageFormat) -> bool:
        return {
            "jpeg": self.skip_jpg,
            "png": self.skip_png,
            "gif": self.skip_gif,
            "webp": self.skip_webp,
        }.get(fmt, False)

    @property
    def log_level(self) -> int:
        if self.verbosity == "quiet":
            return logging.WARNING
        if self.verbosity == "verbose":
            return logging.DEBUG
        return logging.INFO

    @property
    def verbose(self) -> bool:
        return self.verbosity == "verbose"
