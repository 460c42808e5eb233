"""
Campaign Scheduler

Fixed-duration round-robin over the target catalog. Each target gets
its own session, a fixed wall-clock budget, and a settle delay after
termination so the engine can flush its output to disk.

The scheduler never looks at what a run produced: a target that dies
immediately still occupies its full budget.
"""

import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..core.logging import logger
from ..core.models import FuzzTarget, SlotRecord
from .session import SessionManager


DEFAULT_BUDGET = 1800  # seconds per target
DEFAULT_SETTLE_DELAY = 5  # seconds after terminate


def fuzz_command(target: FuzzTarget) -> str:
    """Command line that fuzzes `target` with cargo-afl."""
    return (
        f"cargo afl fuzz -i {target.input_dir} -o {target.output_dir} "
        f"{target.binary_path}"
    )


class CampaignScheduler:
    """Runs each target for a fixed budget inside its own session."""

    def __init__(
        self,
        sessions: SessionManager,
        per_target_budget: float = DEFAULT_BUDGET,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize CampaignScheduler.

        Args:
            sessions: Session backend
            per_target_budget: Fuzzing wall-clock time per target
            settle_delay: Wait after terminating a session
            sleep: Blocking wait function (default: time.sleep)
        """
        self.sessions = sessions
        self.per_target_budget = per_target_budget
        self.settle_delay = settle_delay
        self._sleep = sleep or time.sleep

    @property
    def slot_seconds(self) -> float:
        return self.per_target_budget + self.settle_delay

    def planned_seconds(self, targets: Sequence[FuzzTarget]) -> float:
        """Total scheduled wait for `targets`, excluding build time."""
        return len(targets) * self.slot_seconds

    def run_slot(self, target: FuzzTarget) -> SlotRecord:
        handle = self.sessions.ensure_session(target.name)
        command = fuzz_command(target)
        record = SlotRecord(target=target.name, command=command, session_reused=handle.reused)

        self.sessions.send_command(handle, command)
        self._sleep(self.per_target_budget)
        self.sessions.terminate(handle)
        self._sleep(self.settle_delay)

        record.ended_at = datetime.now()
        return record

    def run(self, targets: Sequence[FuzzTarget]) -> List[SlotRecord]:
        """
        Fuzz every target in catalog order.

        Returns:
            One SlotRecord per target, in order
        """
        logger.info(
            f"Scheduling {len(targets)} targets, {self.per_target_budget}s each "
            f"(planned {self.planned_seconds(targets) / 60:.1f} minutes)"
        )

        records = []
        for index, target in enumerate(targets, 1):
            logger.info(f"[{target.name}] Slot {index}/{len(targets)} started")
            record = self.run_slot(target)
            records.append(record)
            logger.info(f"[{target.name}] Slot finished")

        return records
