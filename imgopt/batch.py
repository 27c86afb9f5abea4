from __future__ import annotations

import fnmatch
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from .engine import Optimizer, file_size, optimize_file
from .errors import PerFileOptimizationError
from .results import FileOutcome, Outcome, RunStatistics, classify_outcome
from .settings import ImageFormat, RunConfiguration


logger = logging.getLogger(__name__)
file_log = logging.getLogger("imgopt.files")

SEPARATOR = "-" * 38


@dataclass(frozen=True)
class FormatPass:
    label: str  # what the user sees, e.g. "jpg"
    fmt: ImageFormat
    pattern: str


# .jpg and .jpeg run as separate passes with separate counts.
FORMAT_PASSES: Sequence[FormatPass] = (
    FormatPass("jpg", "jpeg", "*.jpg"),
    FormatPass("jpeg", "jpeg", "*.jpeg"),
    FormatPass("png", "png", "*.png"),
    FormatPass("gif", "gif", "*.gif"),
    FormatPass("webp", "webp", "*.webp"),
)

SKIP_NOTICES = {
    "jpeg": "Skipping processing of JPG/JPEG images",
    "png": "Skipping processing of PNG images",
    "gif": "Skipping processing of GIF images",
    "webp": "Skipping processing of WebP images",
}


def iter_images(root: Path, pattern: str, recursive: bool = True) -> Iterable[Path]:
    """
    Yield files under *root* whose name matches *pattern*, ignoring case.

    Directory order is whatever the filesystem gives; callers that need a
    stable order should sort.
    """
    root = Path(root)
    pattern = pattern.lower()
    glob = "**/*" if recursive else "*"

    for f in root.glob(glob):
        if not fnmatch.fnmatchcase(f.name.lower(), pattern):
            continue
        if not f.is_file():
            continue
        yield f


def format_progress(result: FileOutcome) -> str:
    if result.outcome is Outcome.SIMULATED:
        return f"SIMULATED (would save ~{result.saved_percent}%)"
    if result.outcome is Outcome.OPTIMIZED:
        return (
            f"OPTIMIZED! {result.original_bytes} -> {result.result_bytes} bytes "
            f"({result.saved_percent}% reduced)"
        )
    return "Already optimized"


def format_log_line(result: FileOutcome) -> str:
    if result.outcome is Outcome.SIMULATED:
        return (
            f"SIMULATED: {result.path} (current size: {result.original_bytes} bytes, "
            f"estimated new size: {result.result_bytes} bytes)"
        )
    if result.outcome is Outcome.OPTIMIZED:
        return (
            f"Optimized: {result.path} ({result.original_bytes} -> {result.result_bytes} bytes, "
            f"{result.saved_percent}% reduced)"
        )
    return f"Already optimized: {result.path}"


def process_image(
    img_path: Path,
    fp: FormatPass,
    config: RunConfiguration,
    optimizer: Optimizer,
) -> Optional[FileOutcome]:
    """
    Optimize and classify a single file. Never raises for per-file problems.

    Returns None only when the file can't even be measured (e.g. it vanished
    between scan and processing).
    """
    try:
        before = file_size(img_path)
    except OSError as e:
        print("FAILED")
        logger.error("Could not read %s: %s", img_path, e)
        return None

    print(f"Processing: {img_path} ({fp.label}, {before} bytes)... ", end="", flush=True)

    try:
        optimize_file(img_path, fp.fmt, config, optimizer)
        after = file_size(img_path)
    except (PerFileOptimizationError, OSError) as e:
        print("Already optimized")
        logger.error("Optimization failed, leaving file unchanged: %s", e)
        after = before
        return classify_outcome(img_path, fp.fmt, before, after)

    result = classify_outcome(img_path, fp.fmt, before, after, dry_run=config.dry_run)
    print(format_progress(result))
    return result


def process_format(
    fp: FormatPass,
    config: RunConfiguration,
    optimizer: Optimizer,
    stats: RunStatistics,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> int:
    """
    Run one format pass over config.directory. Returns the number of files handled.
    """
    if config.is_skipped(fp.fmt) or not optimizer.supports(fp.fmt):
        logger.debug(SKIP_NOTICES[fp.fmt])
        return 0

    logger.info("Searching for %s images...", fp.label)

    image_list = sorted(iter_images(config.directory, fp.pattern, recursive=config.recursive))
    total = len(image_list)

    if total == 0:
        logger.debug("No %s images found in %s", fp.label, config.directory)
        return 0

    logger.info("Found %d %s images to process", total, fp.label)
    print(SEPARATOR)
    print(f"PROCESSING {fp.label} IMAGES ({total} files)")
    print(SEPARATOR)

    file_count = 0
    for idx, img_path in enumerate(image_list, start=1):
        if cancel_event and cancel_event.is_set():
            break

        if progress_callback:
            progress_callback(idx, total)

        file_count += 1
        print(f"[{idx}/{total}] ", end="")

        result = process_image(img_path, fp, config, optimizer)
        if result is None:
            continue

        stats.record(result)
        file_log.info(format_log_line(result))

    print(SEPARATOR)
    print(f"Completed processing {file_count} {fp.label} images")
    print("")
    return file_count


def process_all(
    config: RunConfiguration,
    optimizer: Optimizer,
    stats: Optional[RunStatistics] = None,
    passes: Sequence[FormatPass] = FORMAT_PASSES,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RunStatistics:
    """Run every format pass in order and return the accumulated statistics."""
    if stats is None:
        stats = RunStatistics()
    stats.reset()

    for fp in passes:
        if cancel_event and cancel_event.is_set():
            break
        process_format(
            fp,
            config,
            optimizer,
            stats,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )

    return stats
