"""
Campaign Report

JSON record of one campaign, written next to the logs.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from ..core.models import SlotRecord


class SlotReport(BaseModel):
    """One fuzzing slot."""

    target: str
    command: str
    session_reused: bool = False
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    @classmethod
    def from_record(cls, record: SlotRecord) -> "SlotReport":
        return cls(
            target=record.target,
            command=record.command,
            session_reused=record.session_reused,
            started_at=record.started_at,
            ended_at=record.ended_at,
            duration_seconds=record.get_duration_seconds(),
        )


class CampaignReport(BaseModel):
    """Whole-campaign summary."""

    campaign_id: str
    mode: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    per_target_budget: float
    settle_delay: float
    scheduled_seconds: float = 0.0
    slots: List[SlotReport] = []
    coverage_report: Optional[str] = None

    @property
    def reused_sessions(self) -> List[str]:
        return [slot.target for slot in self.slots if slot.session_reused]


def write_report(report: CampaignReport, path: Path) -> Path:
    """Serialize `report` as JSON to `path`."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return path
