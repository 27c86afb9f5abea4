from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import PerFileOptimizationError
from .settings import ImageFormat, RunConfiguration


logger = logging.getLogger(__name__)

# Tool binary per format.
TOOLS: dict[str, str] = {
    "jpeg": "jpegoptim",
    "png": "optipng",
    "gif": "gifsicle",
    "webp": "cwebp",
}


def file_size(p: Path) -> int:
    """Byte length of *p*. Raises OSError if it can't be stat'ed."""
    return os.stat(p).st_size


class Optimizer:
    """
    Capability interface: one in-place optimize call per format.

    Implementations raise PerFileOptimizationError when a file could not
    be processed; the caller decides whether that matters.
    """

    def supports(self, fmt: ImageFormat) -> bool:
        return True

    def optimize_jpeg(self, path: Path, max_quality: int) -> None:
        raise NotImplementedError

    def optimize_png(self, path: Path, level: int) -> None:
        raise NotImplementedError

    def optimize_gif(self, path: Path) -> None:
        raise NotImplementedError

    def optimize_webp(self, path: Path, quality: int) -> None:
        raise NotImplementedError


class ToolOptimizer(Optimizer):
    """Optimizer backed by jpegoptim / optipng / gifsicle / cwebp."""

    def __init__(self, which: Optional[Callable[[str], Optional[str]]] = None) -> None:
        which = which or shutil.which
        # Resolved once; a tool missing here stays missing for the run.
        self._available = {fmt: which(tool) is not None for fmt, tool in TOOLS.items()}

    def supports(self, fmt: ImageFormat) -> bool:
        return self._available.get(fmt, False)

    def optimize_jpeg(self, path: Path, max_quality: int) -> None:
        _run_tool(["jpegoptim", "--strip-all", f"--max={int(max_quality)}", "--quiet", str(path)], path)

    def optimize_png(self, path: Path, level: int) -> None:
        _run_tool(["optipng", f"-o{int(level)}", "-quiet", str(path)], path)

    def optimize_gif(self, path: Path) -> None:
        # gifsicle failures count as "no change".
        try:
            _run_tool(["gifsicle", "-b", "-O3", str(path)], path)
        except PerFileOptimizationError as e:
            logger.debug("gifsicle gave up on %s: %s", path, e)

    def optimize_webp(self, path: Path, quality: int) -> None:
        def encode(src: Path, dst: Path) -> None:
            _run_tool(["cwebp", "-quiet", "-mt", "-q", str(int(quality)), str(src), "-o", str(dst)], src)

        replace_if_smaller(path, encode)


def _run_tool(cmd: Sequence[str], path: Path) -> None:
    try:
        subprocess.run(
            list(cmd),
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as e:
        raise PerFileOptimizationError(path, f"{cmd[0]} not found") from e
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or f"exit status {e.returncode}"
        raise PerFileOptimizationError(path, f"{cmd[0]} failed: {detail}") from e


def replace_if_smaller(path: Path, encode: Callable[[Path, Path], None]) -> bool:
    """
    Re-encode *path* into a temp file and swap it in only if strictly smaller.

    encode(src, dst) must write the new file to dst. The temp file lives
    next to the original so the final replace is a same-filesystem rename.
    Returns True if the original was replaced.
    """
    path = Path(path)
    before = file_size(path)

    fd, tmp_name = tempfile.mkstemp(prefix=".imgopt_", suffix=path.suffix, dir=str(path.parent))
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        encode(path, tmp_path)

        # mkstemp already created the file; an empty one means the encoder wrote nothing.
        tmp_bytes = file_size(tmp_path) if tmp_path.exists() else 0
        if 0 < tmp_bytes < before:
            shutil.copymode(path, tmp_path)
            tmp_path.replace(path)
            return True
        return False
    finally:
        tmp_path.unlink(missing_ok=True)


def optimize_file(path: Path, fmt: ImageFormat, config: RunConfiguration, optimizer: Optimizer) -> None:
    """
    Optimize one file in place according to *config*.

    No-op in dry-run and for disabled formats. Errors from the optimizer
    propagate as PerFileOptimizationError.
    """
    if config.dry_run or config.is_skipped(fmt):
        return

    if fmt == "jpeg":
        optimizer.optimize_jpeg(path, config.jpeg_quality)
    elif fmt == "png":
        optimizer.optimize_png(path, config.png_level)
    elif fmt == "gif":
        optimizer.optimize_gif(path)
    elif fmt == "webp":
        if optimizer.supports("webp"):
            optimizer.optimize_webp(path, config.webp_quality)
    else:
        raise ValueError(f"Unknown image format: {fmt}")
