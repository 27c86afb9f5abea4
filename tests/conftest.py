"""
Shared fixtures for the imgopt test suite.

Nothing here shells out: FakeOptimizer stands in for jpegoptim & co. and
rewrites files to whatever sizes a test asks for.
"""

import logging
from pathlib import Path

import pytest

from imgopt.engine import Optimizer
from imgopt.errors import PerFileOptimizationError
from imgopt.logs import shutdown_logging
from imgopt.settings import RunConfiguration


class FakeOptimizer(Optimizer):
    """
    Deterministic Optimizer.

    new_sizes maps a file name to the size the "tool" shrinks it to;
    names in fail raise PerFileOptimizationError; formats in unsupported
    report as unavailable.
    """

    def __init__(self, new_sizes=None, fail=(), unsupported=()):
        self.new_sizes = dict(new_sizes or {})
        self.fail = set(fail)
        self.unsupported = set(unsupported)
        self.calls = []

    def supports(self, fmt):
        return fmt not in self.unsupported

    def _apply(self, path, fmt, param):
        self.calls.append((Path(path).name, fmt, param))
        if Path(path).name in self.fail:
            raise PerFileOptimizationError(Path(path), "tool crashed")
        size = self.new_sizes.get(Path(path).name)
        if size is not None:
            Path(path).write_bytes(b"\x00" * size)

    def optimize_jpeg(self, path, max_quality):
        self._apply(path, "jpeg", max_quality)

    def optimize_png(self, path, level):
        self._apply(path, "png", level)

    def optimize_gif(self, path):
        self._apply(path, "gif", None)

    def optimize_webp(self, path, quality):
        self._apply(path, "webp", quality)


def make_file(path, size):
    """Create *path* (and parents) holding exactly *size* bytes."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\xff" * size)
    return path


@pytest.fixture(autouse=True)
def reset_imgopt_logging():
    """Undo whatever setup_logging() did so caplog sees imgopt records."""
    yield
    shutdown_logging()
    for name in ("imgopt", "imgopt.files"):
        lg = logging.getLogger(name)
        lg.propagate = True
        lg.setLevel(logging.NOTSET)


@pytest.fixture
def image_dir(tmp_path):
    d = tmp_path / "images"
    d.mkdir()
    return d


@pytest.fixture
def config(image_dir):
    """Default configuration pointed at an empty image directory, log file off."""
    return RunConfiguration(directory=image_dir, enable_log=False)


@pytest.fixture
def fake_optimizer():
    return FakeOptimizer()
