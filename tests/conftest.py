"""Shared fixtures for spdmfuzz tests."""

from pathlib import Path

import pytest
from loguru import logger

from spdmfuzz.core import logging as campaign_logging
from spdmfuzz.core.config import Config
from spdmfuzz.campaign.session import SessionManager


SCENARIO_TARGETS = ["rspversion", "reqversion"]


class FakeSessionManager(SessionManager):
    """In-memory session backend that records every operation."""

    def __init__(self, alive=(), strict=False):
        super().__init__(strict=strict)
        self.alive = set(alive)
        self.events = []

    def is_alive(self, name):
        return name in self.alive

    def _create(self, name):
        self.alive.add(name)
        self.events.append(("create", name))

    def _deliver(self, name, data):
        self.events.append(("deliver", name, data))

    def _quit(self, name):
        self.alive.discard(name)
        self.events.append(("quit", name))


def make_crash(project: Path, name: str, filename: str = "id:000000,sig:06") -> Path:
    """Drop a crash finding for target `name` under the project's output tree."""
    crash_dir = project / "fuzz-target" / "out" / name / "default" / "crashes"
    crash_dir.mkdir(parents=True, exist_ok=True)
    crash = crash_dir / filename
    crash.write_bytes(b"\x00\x01")
    return crash


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop loguru sinks and the current log directory after each test."""
    yield
    logger.remove()
    campaign_logging._current_log_dir = None


@pytest.fixture
def project(tmp_path):
    """Project root with seed corpora for the scenario targets."""
    for name in SCENARIO_TARGETS:
        seeds = tmp_path / "fuzz-target" / "in" / name
        seeds.mkdir(parents=True)
        (seeds / "seed0").write_bytes(b"\x10\x84\x00\x00")
    return tmp_path


@pytest.fixture
def config(project):
    """Config for the two-target reference scenario."""
    return Config(
        project_root=str(project),
        targets=list(SCENARIO_TARGETS),
        per_target_budget=1800,
        settle_delay=5,
    )


@pytest.fixture
def sessions():
    return FakeSessionManager()
