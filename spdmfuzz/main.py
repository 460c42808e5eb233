"""
spdmfuzz - Main Entry Point

Runs one fuzz campaign over the SPDM target catalog:

    spdmfuzz              # plain build, no coverage
    spdmfuzz Scoverage    # source-based coverage (-Zinstrument-coverage)
    spdmfuzz Gcoverage    # profiling-based coverage (-Zprofile)

Any other mode token is treated as no instrumentation.
"""

import argparse
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .campaign import run_campaign
from .core import (
    BuildFailure,
    CampaignError,
    Config,
    CrashGateBlocked,
    InstrumentationMode,
    create_campaign_summary,
    generate_id,
    logger,
    setup_console_only,
    setup_logging,
)


# =============================================================================
# Terminal Output
# =============================================================================

class Colors:
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    CYAN = "\033[0;36m"
    NC = "\033[0m"


def print_info(msg: str):
    print(f"{Colors.GREEN}[INFO]{Colors.NC} {msg}")


def print_warn(msg: str):
    print(f"{Colors.YELLOW}[WARN]{Colors.NC} {msg}")


def print_error(msg: str):
    print(f"{Colors.RED}[ERROR]{Colors.NC} {msg}")


def print_step(msg: str):
    print(f"{Colors.CYAN}[STEP]{Colors.NC} {msg}")


def print_crash_warning(path: Path):
    print(f"{Colors.RED} There are some crashes {Colors.NC}")
    print(f"{Colors.RED} Path in {path} {Colors.NC}")


# =============================================================================
# Signal Handling
# =============================================================================

def signal_handler(signum, frame):
    """Stop the orchestrator. Launched sessions are detached and keep running."""
    print(f"\n{Colors.YELLOW}[INTERRUPT]{Colors.NC} Campaign stopped; running fuzz sessions are left alive")
    sys.exit(130)


# =============================================================================
# Argument Parsing
# =============================================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="spdmfuzz",
        description="SPDM fuzz campaign orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Not validated: unknown tokens mean no instrumentation
    parser.add_argument("mode", nargs="?", default=None, help="Scoverage or Gcoverage")

    parser.add_argument("--config", type=str, help="JSON configuration file path")
    parser.add_argument("--project-root", type=str, help="Cargo workspace root")
    parser.add_argument("--targets", type=str, help="Comma-separated subset of the catalog, in run order")
    parser.add_argument("--budget", type=float, help="Fuzzing seconds per target (default 1800)")
    parser.add_argument("--settle", type=float, help="Seconds to wait after stopping a session (default 5)")
    parser.add_argument("--backend", type=str, choices=["screen", "process"], help="Session backend")
    parser.add_argument("--strict-sessions", action="store_true", help="Fail if a target session is already running")
    parser.add_argument("--reset-sessions", action="store_true", help="Terminate running target sessions first")
    parser.add_argument("--log-dir", type=str, help="Base directory for campaign logs")
    parser.add_argument("--list-targets", action="store_true", help="Print the catalog and exit")

    # A dash-prefixed mode token (e.g. "-Scoverage") is not an option either
    args, extras = parser.parse_known_args(argv)
    if extras:
        if args.mode is not None or len(extras) > 1:
            parser.error(f"unrecognized arguments: {' '.join(extras)}")
        args.mode = extras[0]
    return args


def create_config_from_args(args: argparse.Namespace) -> Config:
    """Create Config from environment, optional JSON file, then CLI arguments"""
    config = Config.from_env()

    if args.config:
        config.merge(Config.from_json(args.config))

    if args.project_root:
        config.project_root = args.project_root
    if args.targets:
        config.targets = [t.strip() for t in args.targets.split(",") if t.strip()]
    if args.budget is not None:
        config.per_target_budget = args.budget
    if args.settle is not None:
        config.settle_delay = args.settle
    if args.backend:
        config.session_backend = args.backend
    if args.strict_sessions:
        config.strict_sessions = True
    if args.reset_sessions:
        config.reset_sessions = True
    if args.log_dir:
        config.log_dir = args.log_dir

    return config


def _format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


# =============================================================================
# Campaign
# =============================================================================

def process_campaign(config: Config, mode: InstrumentationMode) -> int:
    """
    Run a campaign and report the outcome on the terminal.

    Returns:
        Process exit code
    """
    campaign_id = generate_id()
    log_dir = setup_logging(
        campaign_id,
        base_dir=Path(config.log_dir) if config.log_dir else None,
        metadata={
            "Mode": mode.value,
            "Project Root": str(Path(config.project_root).resolve()),
            "Targets": len(config.targets),
            "Budget": f"{config.per_target_budget}s per target",
            "Session Backend": config.session_backend,
        },
    )
    logger.debug(f"Configuration: {config.to_dict()}")
    print_info(f"Logs: {log_dir}")
    print_info(f"Mode: {mode.value}")
    print_step(f"Starting campaign over {len(config.targets)} targets...")

    start = datetime.now()
    try:
        report = run_campaign(config, mode, campaign_id=campaign_id)
    except CrashGateBlocked as e:
        print_crash_warning(e.path)
        return e.exit_code
    except BuildFailure as e:
        print_error(f"{e.message}: {' '.join(e.command)}")
        return e.exit_code
    except CampaignError as e:
        print_error(str(e))
        return e.exit_code

    elapsed_minutes = (datetime.now() - start).total_seconds() / 60
    slots = [
        {
            "target": slot.target,
            "duration_str": _format_duration(slot.duration_seconds),
            "reused": slot.session_reused,
        }
        for slot in report.slots
    ]
    print(create_campaign_summary(
        campaign_id,
        mode.value,
        slots,
        total_elapsed_minutes=elapsed_minutes,
        coverage_report=report.coverage_report,
    ))

    if report.reused_sessions:
        print_warn(f"Reused running sessions: {', '.join(report.reused_sessions)}")
    if mode.collects_coverage and not report.coverage_report:
        print_warn("Coverage report was not generated")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    config = create_config_from_args(args)
    mode = InstrumentationMode.from_token(args.mode)

    if args.list_targets:
        setup_console_only("WARNING")
        for target in config.resolve_targets():
            print(f"{target.name}\t{target.input_dir}\t{target.binary_path}")
        return 0

    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        return 3

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return process_campaign(config, mode)


if __name__ == "__main__":
    sys.exit(main())
