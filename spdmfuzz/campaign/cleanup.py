"""
Output Cleanup

Resets the per-target output tree before a campaign. Only called once
the crash gate has passed.
"""

import shutil
from pathlib import Path

from ..core.logging import logger


def reset_output_tree(output_root: Path) -> int:
    """
    Remove everything under `output_root` and leave it empty.

    The directory itself is created when missing.

    Args:
        output_root: The `<catalog-root>/out` directory

    Returns:
        Number of top-level entries removed
    """
    output_root = Path(output_root)

    if not output_root.exists():
        output_root.mkdir(parents=True)
        logger.info(f"Created output directory: {output_root}")
        return 0

    removed = 0
    for entry in output_root.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1

    logger.info(f"Cleared {removed} entries from {output_root}")
    return removed
