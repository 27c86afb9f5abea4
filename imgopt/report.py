from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from pathlib import Path
from typing import List, Optional

from .results import RunStatistics
from .settings import RunConfiguration


MB = 1_048_576
SEPARATOR = "=" * 54

# (threshold in MB, message); first match wins, checked top-down.
COMMENTARY = (
    (1000, "That's more than 1 GB of disk space saved!"),
    (500, "That's half a GB of disk space saved!"),
    (100, "That's a significant amount of disk space saved!"),
    (10, "Every byte counts - good optimization!"),
)


def _truncate2(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_DOWN)


def to_mb(num_bytes: int) -> Decimal:
    """Bytes -> MB, cut (not rounded) to two decimals."""
    return _truncate2(Decimal(num_bytes) / MB)


def saved_percent(stats: RunStatistics) -> Decimal:
    if stats.original_bytes == 0:
        return Decimal("0.00")
    return _truncate2(Decimal(stats.saved_bytes * 100) / stats.original_bytes)


def commentary(saved_mb: Decimal) -> Optional[str]:
    for threshold, message in COMMENTARY:
        if saved_mb > threshold:
            return message
    return None


def summary_lines(stats: RunStatistics, config: RunConfiguration, started: str) -> List[tuple[int, str]]:
    """The final report as (level, line) pairs; emit_summary() logs them."""
    info, debug = logging.INFO, logging.DEBUG

    if stats.files_processed == 0:
        return [(info, "No images found to optimize")]

    original_mb = to_mb(stats.original_bytes)
    optimized_mb = to_mb(stats.optimized_bytes)
    saved_mb = to_mb(stats.saved_bytes)
    percent = saved_percent(stats)

    if config.dry_run:
        title = f"OPTIMIZATION SIMULATION ({started})"
    else:
        title = f"OPTIMIZATION SUMMARY ({started})"

    lines = [
        (info, SEPARATOR),
        (info, title),
        (info, "-" * len(SEPARATOR)),
        (info, f"Directory: {config.directory}"),
        (info, f"Files processed: {stats.files_processed}"),
        (info, f"Original size: {original_mb} MB"),
        (info, f"Optimized size: {optimized_mb} MB"),
        (info, f"Space saved: {saved_mb} MB ({percent}%)"),
    ]

    if config.dry_run:
        lines.append((info, "NOTE: This is a simulation (--dry-run), no changes were made"))

    lines += [
        (debug, "Configuration used:"),
        (debug, f"- JPG quality: {config.jpeg_quality}"),
        (debug, f"- PNG level: {config.png_level}"),
        (debug, f"- WebP quality: {config.webp_quality}"),
        (debug, f"- Recursive: {str(config.recursive).lower()}"),
        (
            debug,
            f"Byte totals: original={stats.original_bytes} "
            f"optimized={stats.optimized_bytes} saved={stats.saved_bytes}",
        ),
    ]

    if saved_mb != 0:
        lines.append((info, ""))
        if config.dry_run:
            lines.append((info, f"Potential disk space savings: {saved_mb} MB"))
        else:
            lines.append((info, f"Disk space saved: {saved_mb} MB"))
            comment = commentary(saved_mb)
            if comment:
                lines.append((info, comment))

    lines.append((info, SEPARATOR))
    return lines


def emit_summary(logger: logging.Logger, stats: RunStatistics, config: RunConfiguration, started: str) -> None:
    for level, line in summary_lines(stats, config, started):
        logger.log(level, line)


@dataclass(frozen=True)
class RunReport:
    created_utc: str
    directory: str
    dry_run: bool
    summary: dict


def build_report(stats: RunStatistics, config: RunConfiguration) -> RunReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    summary_dict = {
        "files_processed": stats.files_processed,
        "original_bytes": stats.original_bytes,
        "optimized_bytes": stats.optimized_bytes,
        "saved_bytes": stats.saved_bytes,
        "saved_percent": float(saved_percent(stats)),
    }

    return RunReport(
        created_utc=created_utc,
        directory=str(config.directory),
        dry_run=config.dry_run,
        summary=summary_dict,
    )


def save_report_json(report: RunReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)
