"""
Crash Gate

Refuses to start a campaign while any target still has crash findings
from a previous run. Findings are only tested for presence, never parsed.
"""

from pathlib import Path
from typing import List

from ..core.exceptions import CrashGateBlocked
from ..core.logging import logger


def crash_dir_for(target_output: Path) -> Path:
    """Crash-findings directory of one target's output directory."""
    return Path(target_output) / "default" / "crashes"


def _has_findings(crash_dir: Path) -> bool:
    if crash_dir.is_dir():
        return any(crash_dir.iterdir())
    # Anything else sitting at the crash path counts as a finding
    return crash_dir.exists() or crash_dir.is_symlink()


def find_crash_dirs(output_root: Path) -> List[Path]:
    """
    List every non-empty crash-findings directory under `output_root`.

    Args:
        output_root: The `<catalog-root>/out` directory

    Returns:
        Offending crash directories, sorted by path
    """
    output_root = Path(output_root)
    if not output_root.is_dir():
        return []

    found = []
    for entry in sorted(output_root.iterdir()):
        if not entry.is_dir():
            continue
        crash_dir = crash_dir_for(entry)
        if _has_findings(crash_dir):
            found.append(crash_dir)
    return found


def check_no_crashes(output_root: Path) -> None:
    """
    Pass silently when the output tree holds no crash findings.

    A missing output tree passes.

    Raises:
        CrashGateBlocked: for the first non-empty crash directory
    """
    output_root = Path(output_root)
    found = find_crash_dirs(output_root)
    if found:
        for crash_dir in found:
            logger.warning(f"Unreviewed crashes: {crash_dir}")
        first = found[0]
        raise CrashGateBlocked(first, target=first.parent.parent.name)

    logger.debug(f"Crash gate passed: {output_root}")
