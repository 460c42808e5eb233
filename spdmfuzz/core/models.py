"""
Campaign Models

Data classes and enums shared by the campaign components.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence


# Responders first, then requesters. Order is execution order.
DEFAULT_CATALOG = [
    "rspversion",
    "rspcapability",
    "rspalgorithm",
    "rspdigest",
    "rspcertificate",
    "rspchallenge",
    "rspmeasurement",
    "rspkeyexchange",
    "rsppskexchange",
    "finish_rsp",
    "psk_finish_rsp",
    "heartbeat_rsp",
    "key_update_rsp",
    "end_session_rsp",
    "reqversion",
    "reqcapability",
    "reqalgorithm",
    "reqdigest",
    "reqcertificate",
    "reqchallenge",
    "reqmeasurement",
    "key_exchange_req",
    "psk_exchange_req",
    "finish_req",
    "psk_finish_req",
    "heartbeat_req",
    "key_update_req",
    "end_session_req",
]


class InstrumentationMode(str, Enum):
    """Build instrumentation mode, selected once per invocation."""

    NONE = "none"
    SOURCE_COVERAGE = "source-coverage"  # -Zinstrument-coverage
    PROFILE_COVERAGE = "profile-coverage"  # -Zprofile (gcov style)

    @classmethod
    def from_token(cls, token: Optional[str]) -> "InstrumentationMode":
        """
        Map a command line token to a mode.

        Unknown tokens are not rejected, they select NONE.
        """
        return MODE_TOKENS.get(token or "", cls.NONE)

    @property
    def token(self) -> Optional[str]:
        for key, mode in MODE_TOKENS.items():
            if mode is self:
                return key
        return None

    @property
    def collects_coverage(self) -> bool:
        return self is not InstrumentationMode.NONE


MODE_TOKENS = {
    "Scoverage": InstrumentationMode.SOURCE_COVERAGE,
    "Gcoverage": InstrumentationMode.PROFILE_COVERAGE,
}


@dataclass(frozen=True)
class FuzzTarget:
    """
    A single fuzz target.

    Paths are relative to the project root, which is the working
    directory of the build, the sessions and the coverage tool.
    """

    name: str
    input_dir: Path
    output_dir: Path
    binary_path: Path

    @classmethod
    def from_name(cls, name: str, catalog_root: Path, build_root: Path) -> "FuzzTarget":
        catalog_root = Path(catalog_root)
        return cls(
            name=name,
            input_dir=catalog_root / "in" / name,
            output_dir=catalog_root / "out" / name,
            binary_path=Path(build_root) / name,
        )


def build_catalog(
    names: Sequence[str],
    catalog_root: Path,
    build_root: Path,
) -> List[FuzzTarget]:
    """Create targets for `names`, keeping their order."""
    return [FuzzTarget.from_name(n, catalog_root, build_root) for n in names]


@dataclass
class SlotRecord:
    """One scheduled fuzzing slot."""

    target: str
    command: str
    session_reused: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None

    def get_duration_seconds(self) -> float:
        if not self.ended_at:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()
