"""
End-to-end campaign tests with the build, sessions and grcov mocked.

Covers the reference scenarios:
1. Two clean targets, mode none: one build, two slots, no aggregation
2. Crash in rspversion: abort before clearing or building

Run with: pytest tests/test_runner.py -v
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from spdmfuzz.campaign.builder import CampaignBuilder
from spdmfuzz.campaign.coverage import CoverageAggregator
from spdmfuzz.campaign.runner import run_campaign
from spdmfuzz.core.exceptions import (
    BuildFailure,
    ConfigError,
    CrashGateBlocked,
    SessionBackendError,
    SessionConflict,
)
from spdmfuzz.core.models import InstrumentationMode

from conftest import FakeSessionManager, make_crash


def _mocks():
    builder = MagicMock(spec=CampaignBuilder)
    aggregator = MagicMock(spec=CoverageAggregator)
    aggregator.aggregate.return_value = None
    sleeps = []
    return builder, aggregator, sleeps


class TestRunCampaign:

    def test_clean_campaign_mode_none(self, config, sessions):
        builder, aggregator, sleeps = _mocks()

        report = run_campaign(
            config,
            InstrumentationMode.NONE,
            sessions=sessions,
            builder=builder,
            aggregator=aggregator,
            sleep=sleeps.append,
        )

        builder.build.assert_called_once()
        (targets,), _ = builder.build.call_args
        assert [t.name for t in targets] == ["rspversion", "reqversion"]
        assert [e[1] for e in sessions.events if e[0] == "create"] == ["rspversion", "reqversion"]
        assert [e[1] for e in sessions.events if e[0] == "quit"] == ["rspversion", "reqversion"]
        aggregator.aggregate.assert_not_called()
        assert sum(sleeps) == 3610
        assert report.scheduled_seconds == 3610
        assert report.mode == "none"
        assert report.coverage_report is None
        assert [s.target for s in report.slots] == ["rspversion", "reqversion"]

    def test_crash_aborts_before_any_mutation(self, config, sessions, project):
        make_crash(project, "rspversion")
        queue = project / "fuzz-target" / "out" / "reqversion" / "default" / "queue" / "id:000001"
        queue.parent.mkdir(parents=True)
        queue.write_bytes(b"seed")
        builder, aggregator, sleeps = _mocks()

        with pytest.raises(CrashGateBlocked) as exc_info:
            run_campaign(
                config,
                sessions=sessions,
                builder=builder,
                aggregator=aggregator,
                sleep=sleeps.append,
            )

        assert exc_info.value.target == "rspversion"
        assert queue.exists()
        builder.build.assert_not_called()
        assert sessions.events == []
        assert sleeps == []

    def test_crash_blocks_even_with_session_reset(self, config, project):
        config.reset_sessions = True
        sessions = FakeSessionManager(alive={"rspversion"})
        make_crash(project, "reqversion")

        with pytest.raises(CrashGateBlocked):
            run_campaign(config, sessions=sessions, builder=MagicMock(), sleep=lambda s: None)

        assert sessions.alive == {"rspversion"}

    def test_output_tree_reset_after_gate(self, config, sessions, project):
        stale = project / "fuzz-target" / "out" / "rspversion" / "default" / "queue" / "id:0"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"old")
        builder, aggregator, sleeps = _mocks()

        def check_cleared(targets):
            assert not stale.exists()
            assert (project / "fuzz-target" / "out").is_dir()

        builder.build.side_effect = check_cleared

        run_campaign(config, sessions=sessions, builder=builder, aggregator=aggregator, sleep=sleeps.append)

        builder.build.assert_called_once()

    def test_build_failure_stops_before_scheduling(self, config, sessions):
        builder, aggregator, sleeps = _mocks()
        builder.build.side_effect = BuildFailure(101, ["cargo", "afl", "build"])

        with pytest.raises(BuildFailure):
            run_campaign(config, sessions=sessions, builder=builder, aggregator=aggregator, sleep=sleeps.append)

        assert sessions.events == []
        assert sleeps == []
        aggregator.aggregate.assert_not_called()

    @pytest.mark.parametrize(
        "mode", [InstrumentationMode.SOURCE_COVERAGE, InstrumentationMode.PROFILE_COVERAGE]
    )
    def test_coverage_aggregated_once_after_all_targets(self, config, sessions, mode, project):
        builder, aggregator, sleeps = _mocks()
        report_dir = project / "target" / "debug" / "fuzz_coverage"

        def aggregate(m):
            # every slot is finished by now
            assert len(sleeps) == 4
            return report_dir

        aggregator.aggregate.side_effect = aggregate

        report = run_campaign(
            config, mode, sessions=sessions, builder=builder, aggregator=aggregator, sleep=sleeps.append
        )

        aggregator.aggregate.assert_called_once_with(mode)
        assert report.coverage_report == str(report_dir)
        assert report.mode == mode.value

    def test_default_builder_uses_mode_profile(self, config, sessions):
        with patch("spdmfuzz.campaign.runner.CampaignBuilder") as mock_builder_cls:
            run_campaign(
                config,
                InstrumentationMode.SOURCE_COVERAGE,
                sessions=sessions,
                aggregator=MagicMock(spec=CoverageAggregator),
                sleep=lambda s: None,
            )

        profile = mock_builder_cls.call_args.args[0]
        assert profile.mode is InstrumentationMode.SOURCE_COVERAGE
        assert profile.env["RUSTFLAGS"] == "-Zinstrument-coverage"
        mock_builder_cls.return_value.build.assert_called_once()

    def test_reset_sessions_terminates_stale(self, config):
        config.reset_sessions = True
        sessions = FakeSessionManager(alive={"reqversion"})

        report = run_campaign(config, sessions=sessions, builder=MagicMock(), sleep=lambda s: None)

        assert sessions.events[0] == ("quit", "reqversion")
        assert not any(s.session_reused for s in report.slots)

    def test_strict_sessions_conflict(self, config):
        sessions = FakeSessionManager(alive={"reqversion"}, strict=True)

        with pytest.raises(SessionConflict):
            run_campaign(config, sessions=sessions, builder=MagicMock(), sleep=lambda s: None)

    def test_invalid_config(self, config, sessions):
        config.per_target_budget = 0
        builder, aggregator, sleeps = _mocks()

        with pytest.raises(ConfigError) as exc_info:
            run_campaign(config, sessions=sessions, builder=builder, sleep=sleeps.append)

        assert "per_target_budget" in str(exc_info.value)
        builder.build.assert_not_called()

    def test_report_written_to_log_dir(self, config, sessions, tmp_path):
        log_dir = tmp_path / "logs"
        with patch("spdmfuzz.campaign.runner.get_log_dir", return_value=log_dir):
            run_campaign(
                config,
                sessions=sessions,
                builder=MagicMock(),
                sleep=lambda s: None,
                campaign_id="6523f0a1b2c3d4e5f6a7b8c9",
            )

        data = json.loads((log_dir / "campaign.json").read_text())
        assert data["campaign_id"] == "6523f0a1b2c3d4e5f6a7b8c9"
        assert data["scheduled_seconds"] == 3610
        assert [s["target"] for s in data["slots"]] == ["rspversion", "reqversion"]
        assert data["slots"][0]["command"].startswith("cargo afl fuzz -i fuzz-target/in/rspversion")

    def test_missing_screen_stops_before_build(self, config, project):
        stale = project / "fuzz-target" / "out" / "rspversion" / "default" / "queue" / "id:0"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"old")
        builder, aggregator, sleeps = _mocks()

        with patch("spdmfuzz.campaign.session.shutil.which", return_value=None), \
                patch("spdmfuzz.campaign.session.subprocess.run", side_effect=FileNotFoundError("screen")):
            with pytest.raises(SessionBackendError) as exc_info:
                run_campaign(config, builder=builder, aggregator=aggregator, sleep=sleeps.append)

        assert exc_info.value.exit_code == 4
        builder.build.assert_not_called()
        assert stale.exists()
        assert sleeps == []
