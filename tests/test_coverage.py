"""
Tests for coverage aggregation.

Run with: pytest tests/test_coverage.py -v
"""

import subprocess
from unittest.mock import patch

import pytest

from spdmfuzz.campaign.coverage import CoverageAggregator
from spdmfuzz.core.models import InstrumentationMode


GRCOV = [
    "grcov", ".",
    "-s", ".",
    "--binary-path", "./target/debug/",
    "-t", "html",
    "--branch",
    "--ignore-not-existing",
    "-o", "./target/debug/fuzz_coverage/",
]


class TestCoverageAggregator:

    def test_grcov_command(self):
        assert CoverageAggregator().grcov_command() == GRCOV

    def test_custom_paths(self):
        cmd = CoverageAggregator(build_root="target/release/", report_dir="cov").grcov_command()
        assert cmd[cmd.index("--binary-path") + 1] == "./target/release/"
        assert cmd[cmd.index("-o") + 1] == "./cov/"

    @patch("spdmfuzz.campaign.coverage.subprocess.run")
    def test_none_mode_is_noop(self, mock_run):
        assert CoverageAggregator().aggregate(InstrumentationMode.NONE) is None
        mock_run.assert_not_called()

    @pytest.mark.parametrize(
        "mode", [InstrumentationMode.SOURCE_COVERAGE, InstrumentationMode.PROFILE_COVERAGE]
    )
    @patch("spdmfuzz.campaign.coverage.subprocess.run")
    def test_coverage_modes_run_grcov_once(self, mock_run, mode, tmp_path):
        mock_run.return_value = subprocess.CompletedProcess(GRCOV, 0, stdout="", stderr="")

        report = CoverageAggregator(project_root=tmp_path).aggregate(mode)

        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == GRCOV
        assert mock_run.call_args.kwargs["cwd"] == str(tmp_path)
        assert report == tmp_path / "target/debug/fuzz_coverage"

    @patch("spdmfuzz.campaign.coverage.subprocess.run")
    def test_grcov_failure_not_fatal(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(GRCOV, 1, stdout="", stderr="no profraw")

        assert CoverageAggregator().aggregate(InstrumentationMode.SOURCE_COVERAGE) is None

    @patch("spdmfuzz.campaign.coverage.subprocess.run", side_effect=FileNotFoundError("grcov"))
    def test_grcov_missing(self, _run):
        assert CoverageAggregator().aggregate(InstrumentationMode.PROFILE_COVERAGE) is None
