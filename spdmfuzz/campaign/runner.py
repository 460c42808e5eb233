"""
Campaign Runner

Runs one campaign end to end:
1. Crash gate (nothing is touched if it blocks)
2. Session backend check, optional stale-session reset
3. Output tree reset
4. Batch build
5. Per-target scheduling
6. Coverage aggregation (coverage modes only)
7. Campaign report
"""

from datetime import datetime
from typing import Callable, Optional

from ..core.config import Config
from ..core.exceptions import ConfigError
from ..core.logging import get_log_dir, logger
from ..core.models import InstrumentationMode
from ..core.utils import generate_id
from .builder import CampaignBuilder, InstrumentationProfile
from .cleanup import reset_output_tree
from .coverage import CoverageAggregator
from .gate import check_no_crashes
from .report import CampaignReport, SlotReport, write_report
from .scheduler import CampaignScheduler
from .session import SessionManager, create_session_manager


def run_campaign(
    config: Config,
    mode: InstrumentationMode = InstrumentationMode.NONE,
    sessions: Optional[SessionManager] = None,
    builder: Optional[CampaignBuilder] = None,
    scheduler: Optional[CampaignScheduler] = None,
    aggregator: Optional[CoverageAggregator] = None,
    sleep: Optional[Callable[[float], None]] = None,
    campaign_id: Optional[str] = None,
) -> CampaignReport:
    """
    Run a full campaign.

    Components not passed in are built from `config`.

    Raises:
        ConfigError: configuration does not validate
        CrashGateBlocked: crash findings from a previous run exist
        BuildFailure: the batch build failed
        SessionConflict: strict sessions and a target session already runs
        SessionBackendError: the session backend's tool is not installed
    """
    errors = config.validate()
    if errors:
        raise ConfigError(errors)

    campaign_id = campaign_id or generate_id()
    targets = config.resolve_targets()
    started_at = datetime.now()

    logger.info(f"Campaign {campaign_id}: {len(targets)} targets, mode={mode.value}")

    check_no_crashes(config.output_root)

    if sessions is None:
        sessions = create_session_manager(
            config.session_backend,
            strict=config.strict_sessions,
            cwd=config.root,
        )
    # Before the build, so a missing tool does not waste a full build
    sessions.check_available()
    if config.reset_sessions:
        stale = sessions.reset(config.targets)
        if stale:
            logger.info(f"Terminated {len(stale)} stale sessions")

    reset_output_tree(config.output_root)

    if builder is None:
        builder = CampaignBuilder(InstrumentationProfile.for_mode(mode), project_root=config.root)
    builder.build(targets)

    if scheduler is None:
        scheduler = CampaignScheduler(
            sessions,
            per_target_budget=config.per_target_budget,
            settle_delay=config.settle_delay,
            sleep=sleep,
        )
    records = scheduler.run(targets)

    coverage_report = None
    if mode.collects_coverage:
        if aggregator is None:
            aggregator = CoverageAggregator(
                project_root=config.root,
                build_root=config.build_root,
                report_dir=config.report_dir,
            )
        coverage_report = aggregator.aggregate(mode)

    report = CampaignReport(
        campaign_id=campaign_id,
        mode=mode.value,
        started_at=started_at,
        finished_at=datetime.now(),
        per_target_budget=config.per_target_budget,
        settle_delay=config.settle_delay,
        scheduled_seconds=len(records) * (config.per_target_budget + config.settle_delay),
        slots=[SlotReport.from_record(r) for r in records],
        coverage_report=str(coverage_report) if coverage_report else None,
    )

    log_dir = get_log_dir()
    if log_dir:
        path = write_report(report, log_dir / "campaign.json")
        logger.info(f"Campaign report: {path}")

    return report
