"""
spdmfuzz Logging Framework

Centralized logging configuration using loguru.
Each campaign run creates a dedicated log directory.
"""

import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger


# Global exception handler to ensure all errors are logged
def _global_exception_handler(exc_type, exc_value, exc_tb):
    """Handle uncaught exceptions globally."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return

    error_msg = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    logger.error(f"Uncaught exception:\n{error_msg}")


sys.excepthook = _global_exception_handler


# Remove default handler
logger.remove()

# Global log directory for current campaign
_current_log_dir: Optional[Path] = None

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def _create_campaign_header(metadata: Dict[str, Any]) -> str:
    """Create a formatted campaign metadata header"""
    present = {k: v for k, v in metadata.items() if v is not None}
    max_key_len = max(len(str(k)) for k in present)

    content_lines = []
    for key, value in present.items():
        key_padded = f"{key}:".ljust(max_key_len + 2)
        content_lines.append(f"  {key_padded} {value}")

    width = max(max(len(line) for line in content_lines) + 2, 80)

    lines = []
    lines.append("┌" + "─" * width + "┐")
    lines.append("│" + " FUZZ CAMPAIGN ".center(width) + "│")
    lines.append("├" + "─" * width + "┤")
    for content in content_lines:
        lines.append("│" + content.ljust(width) + "│")
    lines.append("└" + "─" * width + "┘")
    lines.append("")
    lines.append("=" * (width + 2))
    lines.append(" LOG START ".center(width + 2, "="))
    lines.append("=" * (width + 2))
    lines.append("")

    return "\n".join(lines)


def get_log_dir() -> Optional[Path]:
    """Get current campaign's log directory"""
    return _current_log_dir


def setup_logging(
    campaign_id: str,
    base_dir: Optional[Path] = None,
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    metadata: Optional[Dict[str, Any]] = None,
) -> Path:
    """
    Setup logging for a campaign run.

    Creates a log directory: {base_dir}/campaign_{campaign_id}_{timestamp}/

    Args:
        campaign_id: Campaign ID
        base_dir: Base directory for logs (default: ./logs)
        console_level: Log level for console output
        file_level: Log level for file output
        metadata: Optional campaign metadata to include in log header

    Returns:
        Path to the log directory
    """
    global _current_log_dir

    logger.remove()

    if base_dir is None:
        base_dir = Path("logs")

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_dir = Path(base_dir) / f"campaign_{campaign_id}_{timestamp}"
    log_dir.mkdir(parents=True, exist_ok=True)

    _current_log_dir = log_dir

    log_file = log_dir / "spdmfuzz.log"
    header = {
        "Campaign ID": campaign_id,
        "Start Time": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "Log Directory": str(log_dir),
    }
    header.update(metadata or {})
    with open(log_file, "w", encoding="utf-8") as f:
        f.write(_create_campaign_header(header))
        f.write("\n")

    # Console handler - colored, concise
    logger.add(sys.stderr, level=console_level, format=CONSOLE_FORMAT, colorize=True)

    # Main log file - append after the header
    logger.add(
        log_file,
        level=file_level,
        format=FILE_FORMAT,
        rotation="50 MB",
        retention="7 days",
        encoding="utf-8",
        mode="a",
    )

    # Error log file - only errors and above
    logger.add(
        log_dir / "error.log",
        level="ERROR",
        format=FILE_FORMAT,
        rotation="10 MB",
        encoding="utf-8",
    )

    logger.info(f"Logging initialized: {log_dir}")

    return log_dir


def setup_console_only(level: str = "INFO"):
    """
    Setup console-only logging (e.g. for --list-targets).

    Args:
        level: Log level
    """
    global _current_log_dir

    logger.remove()
    _current_log_dir = None
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)


def create_campaign_summary(
    campaign_id: str,
    mode: str,
    slots: List[Dict[str, Any]],
    total_elapsed_minutes: float = 0,
    coverage_report: Optional[str] = None,
) -> str:
    """
    Create the end-of-campaign summary box.

    Args:
        campaign_id: Campaign ID
        mode: Instrumentation mode value
        slots: One dict per slot with "target", "duration_str" and "reused"
        total_elapsed_minutes: Wall-clock minutes for the whole run
        coverage_report: HTML report directory, if one was produced

    Returns:
        Formatted summary string
    """
    col_num = 4
    col_target = 24
    col_duration = 12
    col_session = 10
    table_width = col_num + col_target + col_duration + col_session + 3

    lines = []
    lines.append("")
    lines.append("┌" + "─" * table_width + "┐")
    lines.append("│" + " CAMPAIGN SUMMARY ".center(table_width) + "│")
    lines.append("├" + "─" * table_width + "┤")
    lines.append("│" + f"  Campaign ID:  {campaign_id}".ljust(table_width) + "│")
    lines.append("│" + f"  Mode:         {mode}".ljust(table_width) + "│")
    lines.append("│" + f"  Targets:      {len(slots)}".ljust(table_width) + "│")
    lines.append("│" + f"  Total Time:   {total_elapsed_minutes:.1f} minutes".ljust(table_width) + "│")
    if coverage_report:
        lines.append("│" + f"  Coverage:     {coverage_report}".ljust(table_width) + "│")
    lines.append("├" + "─" * col_num + "┬" + "─" * col_target + "┬" + "─" * col_duration + "┬" + "─" * col_session + "┤")
    lines.append(
        "│" + " # ".center(col_num) +
        "│" + " Target".ljust(col_target) +
        "│" + " Duration".center(col_duration) +
        "│" + " Session".ljust(col_session) + "│"
    )
    lines.append("├" + "─" * col_num + "┼" + "─" * col_target + "┼" + "─" * col_duration + "┼" + "─" * col_session + "┤")

    for i, slot in enumerate(slots, 1):
        target = slot.get("target", "N/A")
        if len(target) > col_target - 2:
            target = target[:col_target - 4] + ".."
        session = "reused" if slot.get("reused") else "new"
        lines.append(
            "│" + f" {i} ".center(col_num) +
            "│" + " " + target.ljust(col_target - 1) +
            "│" + slot.get("duration_str", "N/A").center(col_duration) +
            "│" + " " + session.ljust(col_session - 1) + "│"
        )

    lines.append("└" + "─" * col_num + "┴" + "─" * col_target + "┴" + "─" * col_duration + "┴" + "─" * col_session + "┘")
    lines.append("")

    return "\n".join(lines)


__all__ = [
    "logger",
    "setup_logging",
    "setup_console_only",
    "get_log_dir",
    "create_campaign_summary",
]
