from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, NoReturn, Optional

from .batch import process_all
from .dependencies import check_dependencies, detect_platform, platform_name
from .engine import Optimizer, ToolOptimizer
from .errors import ConfigurationError, DependencyMissingError
from .logs import setup_logging, shutdown_logging
from .report import build_report, emit_summary, save_report_json
from .settings import (
    DEFAULT_LOG_FILE,
    JPEG_QUALITY_RANGE,
    PNG_LEVEL_RANGE,
    WEBP_QUALITY_RANGE,
    RunConfiguration,
)


EPILOG = """\
Examples:
  imgopt -d /var/www/html/wp-content/uploads
  imgopt --dir ./photos --jpg-quality 90 --no-recursive
  imgopt --dry-run -d /var/www/uploads -l /tmp/optimization.log
"""


class _Parser(argparse.ArgumentParser):
    """argparse, but bad arguments exit 1 with a pointer to --help."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        print("Use --help to see available options", file=sys.stderr)
        self.exit(1)


def _int_range(lo: int, hi: int) -> Callable[[str], int]:
    """
    argparse type: an integer in [lo, hi].
    """
    def parse(text: str) -> int:
        try:
            v = int(text.strip())
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid integer: {text!r}")
        if not (lo <= v <= hi):
            raise argparse.ArgumentTypeError(f"must be between {lo} and {hi}")
        return v

    return parse


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="imgopt",
        description="Optimize JPG, JPEG, PNG, GIF and WebP images in place, recursively.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )

    # Target
    p.add_argument("-d", "--dir", default=".", help="Images directory (default: current directory)")
    # Last of -r / --no-recursive wins.
    p.add_argument("-r", "--recursive", dest="recursive", action="store_true", default=True, help="Process subdirectories (default)")
    p.add_argument("--no-recursive", dest="recursive", action="store_false", help="Don't process subdirectories")
    p.add_argument("--dry-run", action="store_true", help="Run without changing files (simulation)")

    # Logging
    p.add_argument(
        "-l",
        "--log",
        default=str(DEFAULT_LOG_FILE),
        help=f"Log file (default: {DEFAULT_LOG_FILE})",
    )
    p.add_argument("--no-log", action="store_true", help="Don't generate log file")
    p.add_argument("--report", default=None, help="Also write a JSON run summary to this file")

    # Encoder knobs
    p.add_argument("--jpg-quality", type=_int_range(*JPEG_QUALITY_RANGE), default=85, help="JPG/JPEG quality (0-100) (default: 85)")
    p.add_argument("--png-level", type=_int_range(*PNG_LEVEL_RANGE), default=3, help="PNG optimization level (0-7) (default: 3)")
    p.add_argument("--webp-quality", type=_int_range(*WEBP_QUALITY_RANGE), default=80, help="WebP quality (0-100) (default: 80)")

    # Formats
    p.add_argument("--skip-jpg", action="store_true", help="Skip JPG/JPEG optimization")
    p.add_argument("--skip-png", action="store_true", help="Skip PNG optimization")
    p.add_argument("--skip-gif", action="store_true", help="Skip GIF optimization")
    p.add_argument("--skip-webp", action="store_true", help="Skip WebP optimization")

    # Verbosity
    noise = p.add_mutually_exclusive_group()
    noise.add_argument("--quiet", action="store_true", help="Quiet mode (errors only)")
    noise.add_argument("--verbose", action="store_true", help="Verbose mode")

    return p


def config_from_args(args: argparse.Namespace) -> RunConfiguration:
    if args.quiet:
        verbosity = "quiet"
    elif args.verbose:
        verbosity = "verbose"
    else:
        verbosity = "normal"

    return RunConfiguration(
        directory=Path(args.dir),
        recursive=bool(args.recursive),
        dry_run=bool(args.dry_run),
        skip_jpg=bool(args.skip_jpg),
        skip_png=bool(args.skip_png),
        skip_gif=bool(args.skip_gif),
        skip_webp=bool(args.skip_webp),
        jpeg_quality=int(args.jpg_quality),
        png_level=int(args.png_level),
        webp_quality=int(args.webp_quality),
        verbosity=verbosity,
        log_file=Path(args.log),
        enable_log=not bool(args.no_log),
    )


def check_directory(config: RunConfiguration) -> None:
    if not config.directory.is_dir():
        raise ConfigurationError(f"Directory does not exist: {config.directory}")

    if not config.dry_run and not os.access(config.directory, os.W_OK):
        raise ConfigurationError(
            f"No write permission on {config.directory}",
            hint="Use --dry-run to test without writing or run with proper permissions",
        )


def _log_configuration(logger: logging.Logger, config: RunConfiguration) -> None:
    logger.debug("Directory: %s", config.directory)
    logger.debug("Recursive: %s", str(config.recursive).lower())
    logger.debug("Log file: %s", config.log_file)
    logger.debug("JPG quality: %d", config.jpeg_quality)
    logger.debug("PNG level: %d", config.png_level)
    logger.debug("WebP quality: %d", config.webp_quality)
    logger.debug("Operating System: %s", platform_name(detect_platform()))


def run(
    config: RunConfiguration,
    logger: logging.Logger,
    optimizer: Optional[Optimizer] = None,
    report_path: Optional[Path] = None,
) -> int:
    """Checks, all format passes, summary. Returns the process exit code."""
    started = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    if config.dry_run:
        logger.info("STARTING OPTIMIZATION SIMULATION (%s)", started)
        logger.info("Simulation mode: No changes will be made to files")
    else:
        logger.info("STARTING IMAGE OPTIMIZATION (%s)", started)

    try:
        # An injected optimizer brings its own tools.
        if optimizer is None:
            check_dependencies(config)
            optimizer = ToolOptimizer()
            if not config.skip_webp and not optimizer.supports("webp"):
                logger.info("Note: cwebp not found, WebP processing will be skipped")
        check_directory(config)
    except DependencyMissingError as e:
        logger.error(str(e))
        for line in e.guidance:
            logger.info(line)
        return 1
    except ConfigurationError as e:
        logger.error(str(e))
        if e.hint:
            logger.info(e.hint)
        return 1

    if config.verbose:
        _log_configuration(logger, config)

    start_time = time.monotonic()
    stats = process_all(config, optimizer)
    elapsed = int(time.monotonic() - start_time)
    mins, secs = divmod(elapsed, 60)

    emit_summary(logger, stats, config, started)

    if report_path is not None:
        try:
            save_report_json(build_report(stats, config), report_path)
            logger.info("Report written: %s", report_path)
        except OSError as e:
            logger.error("Could not write report %s: %s", report_path, e)

    if config.dry_run:
        logger.info("SIMULATION COMPLETED in %dm %ds (%s)", mins, secs, started)
    else:
        logger.info("OPTIMIZATION COMPLETED in %dm %ds (%s)", mins, secs, started)
    return 0


def main(argv: list[str] | None = None, optimizer: Optional[Optimizer] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = config_from_args(args)
    config, logger = setup_logging(config)
    try:
        report_path = Path(args.report) if args.report else None
        return run(config, logger, optimizer=optimizer, report_path=report_path)
    finally:
        shutdown_logging()
