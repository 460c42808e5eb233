"""
Campaign Module

Crash gate, batch build, session-based scheduling and coverage
aggregation for a fuzz campaign.

Components:
- check_no_crashes: Refuse to run over unreviewed crash findings
- CampaignBuilder: Build all targets with one instrumentation profile
- SessionManager: Named persistent sessions (screen or process group)
- CampaignScheduler: Fixed-budget round-robin over the catalog
- CoverageAggregator: grcov HTML report after the campaign
- run_campaign: All of the above, in order
"""

from .gate import check_no_crashes, find_crash_dirs, crash_dir_for
from .cleanup import reset_output_tree
from .builder import CampaignBuilder, InstrumentationProfile, INSTRUMENTATION_VARS
from .session import (
    SessionHandle,
    SessionManager,
    ScreenSessionManager,
    ProcessSessionManager,
    create_session_manager,
)
from .scheduler import CampaignScheduler, fuzz_command
from .coverage import CoverageAggregator
from .report import CampaignReport, SlotReport, write_report
from .runner import run_campaign


__all__ = [
    # Gate
    "check_no_crashes",
    "find_crash_dirs",
    "crash_dir_for",
    # Cleanup
    "reset_output_tree",
    # Build
    "CampaignBuilder",
    "InstrumentationProfile",
    "INSTRUMENTATION_VARS",
    # Sessions
    "SessionHandle",
    "SessionManager",
    "ScreenSessionManager",
    "ProcessSessionManager",
    "create_session_manager",
    # Scheduling
    "CampaignScheduler",
    "fuzz_command",
    # Coverage
    "CoverageAggregator",
    # Report
    "CampaignReport",
    "SlotReport",
    "write_report",
    # Runner
    "run_campaign",
]
