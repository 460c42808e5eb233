"""
Coverage Aggregator

Merges profiling output into one HTML report with grcov, once per
campaign and only when an instrumentation mode was selected.
"""

import subprocess
from pathlib import Path
from typing import List, Optional

from ..core.logging import logger
from ..core.models import InstrumentationMode


class CoverageAggregator:
    """Runs grcov over the whole build tree."""

    def __init__(
        self,
        project_root: Path = Path("."),
        build_root: str = "target/debug",
        report_dir: str = "target/debug/fuzz_coverage",
    ):
        self.project_root = Path(project_root)
        self.build_root = build_root
        self.report_dir = report_dir

    def grcov_command(self) -> List[str]:
        return [
            "grcov", ".",
            "-s", ".",
            "--binary-path", f"./{self.build_root.rstrip('/')}/",
            "-t", "html",
            "--branch",
            "--ignore-not-existing",
            "-o", f"./{self.report_dir.rstrip('/')}/",
        ]

    def aggregate(self, mode: InstrumentationMode) -> Optional[Path]:
        """
        Produce the HTML coverage report.

        Returns:
            Report directory, or None when skipped or grcov failed
        """
        if not mode.collects_coverage:
            logger.debug("No instrumentation mode, skipping coverage aggregation")
            return None

        cmd = self.grcov_command()
        logger.info(f"Aggregating coverage: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=str(self.project_root),
            )
        except FileNotFoundError:
            logger.error("grcov not found, coverage report not generated")
            return None

        if result.returncode != 0:
            logger.error(f"grcov failed with code {result.returncode}: {result.stderr.strip()}")
            return None

        report = self.project_root / self.report_dir
        logger.info(f"Coverage report: {report}")
        return report
