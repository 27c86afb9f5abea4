"""
Tests for the aggregate statistics reporter and the JSON run report.
"""

import json
import logging
from dataclasses import replace
from decimal import Decimal

import pytest

from imgopt.report import build_report, commentary, save_report_json, saved_percent, summary_lines, to_mb
from imgopt.results import RunStatistics

STARTED = "2025-04-12 10:00:00"
MB = 1_048_576


def _text(stats, config, level=logging.INFO):
    return [line for lvl, line in summary_lines(stats, config, STARTED) if lvl >= level]


class TestFigures:
    def test_to_mb_truncates(self):
        # 934260 / 1048576 = 0.89098...
        assert to_mb(934260) == Decimal("0.89")
        # 1048575 / 1048576 = 0.999999...
        assert str(to_mb(1048575)) == "0.99"

    def test_to_mb_zero(self):
        assert str(to_mb(0)) == "0.00"

    def test_saved_percent(self):
        assert saved_percent(RunStatistics(1, 1000, 700, 300)) == Decimal("30.00")
        assert saved_percent(RunStatistics(1, 3, 2, 1)) == Decimal("33.33")

    def test_saved_percent_with_nothing_original(self):
        assert saved_percent(RunStatistics()) == Decimal("0.00")

    @pytest.mark.parametrize(
        "saved_mb, expected",
        [
            (Decimal("1500"), "That's more than 1 GB of disk space saved!"),
            (Decimal("1000"), "That's half a GB of disk space saved!"),
            (Decimal("500.01"), "That's half a GB of disk space saved!"),
            (Decimal("250"), "That's a significant amount of disk space saved!"),
            (Decimal("10.01"), "Every byte counts - good optimization!"),
            (Decimal("10"), None),
            (Decimal("0.5"), None),
        ],
    )
    def test_commentary_thresholds(self, saved_mb, expected):
        assert commentary(saved_mb) == expected


class TestSummaryLines:
    def test_nothing_processed(self, config):
        assert _text(RunStatistics(), config) == ["No images found to optimize"]

    def test_single_optimized_file(self, config):
        stats = RunStatistics(1, 1245678, 934260, 311418)

        lines = _text(stats, config)

        assert lines[1] == f"OPTIMIZATION SUMMARY ({STARTED})"
        assert f"Directory: {config.directory}" in lines
        assert "Files processed: 1" in lines
        assert "Original size: 1.18 MB" in lines
        assert "Optimized size: 0.89 MB" in lines
        assert "Space saved: 0.29 MB (24.99%)" in lines
        assert "Disk space saved: 0.29 MB" in lines
        assert lines[0] == lines[-1] == "=" * 54

    def test_large_savings_get_commentary(self, config):
        stats = RunStatistics(10, 400 * MB, 250 * MB, 150 * MB)

        lines = _text(stats, config)

        assert "That's a significant amount of disk space saved!" in lines

    def test_dry_run_phrasing(self, config):
        stats = RunStatistics(1, 1_000_000, 850_000, 150_000)

        lines = _text(stats, replace(config, dry_run=True))

        assert lines[1] == f"OPTIMIZATION SIMULATION ({STARTED})"
        assert "Optimized size: 0.81 MB" in lines
        assert "NOTE: This is a simulation (--dry-run), no changes were made" in lines
        assert "Potential disk space savings: 0.14 MB" in lines
        assert not any(line.startswith("Disk space saved") for line in lines)

    def test_dry_run_has_no_commentary(self, config):
        stats = RunStatistics(10, 2000 * MB, 1700 * MB, 300 * MB)

        lines = _text(stats, replace(config, dry_run=True))

        assert not any(line.startswith("That's") for line in lines)

    def test_no_savings_block_when_nothing_saved(self, config):
        stats = RunStatistics(1, 5000, 5000, 0)

        lines = _text(stats, config)

        assert "" not in lines
        assert not any("Disk space saved" in line for line in lines)

    def test_configuration_and_byte_totals_are_debug_only(self, config):
        stats = RunStatistics(1, 1_000_000, 850_000, 150_000)

        info = _text(stats, config)
        debug = _text(stats, config, level=logging.DEBUG)

        assert "Configuration used:" not in info
        assert "Configuration used:" in debug
        assert "Byte totals: original=1000000 optimized=850000 saved=150000" in debug


class TestJsonReport:
    def test_build_and_save(self, tmp_path, config):
        stats = RunStatistics(2, 2000, 1500, 500)
        path = tmp_path / "out" / "report.json"

        save_report_json(build_report(stats, config), path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["directory"] == str(config.directory)
        assert data["dry_run"] is False
        assert data["created_utc"].endswith("Z")
        assert data["summary"] == {
            "files_processed": 2,
            "original_bytes": 2000,
            "optimized_bytes": 1500,
            "saved_bytes": 500,
            "saved_percent": 25.0,
        }
