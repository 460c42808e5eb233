"""
spdmfuzz Configuration

Handles configuration from environment variables, JSON files, and CLI arguments.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .models import DEFAULT_CATALOG, FuzzTarget, build_catalog


SESSION_BACKENDS = ["screen", "process"]

# Names go unquoted into shell command lines and screen session names
TARGET_NAME_PATTERN = re.compile(r"[A-Za-z0-9_.-]+")


@dataclass
class Config:
    """Campaign configuration"""

    # Layout (relative paths are resolved against project_root)
    project_root: str = "."
    catalog_root: str = "fuzz-target"
    build_root: str = "target/debug"
    report_dir: str = "target/debug/fuzz_coverage"

    # Catalog, in execution order
    targets: List[str] = field(default_factory=lambda: list(DEFAULT_CATALOG))

    # Scheduling (seconds)
    per_target_budget: float = 1800
    settle_delay: float = 5

    # Sessions
    session_backend: str = "screen"  # screen | process
    strict_sessions: bool = False
    reset_sessions: bool = False

    # Logging
    log_dir: Optional[str] = None

    @classmethod
    def from_json(cls, json_path: str) -> "Config":
        """Load configuration from JSON file"""
        with open(json_path, "r") as f:
            data = json.load(f)

        defaults = cls()
        return cls(
            project_root=data.get("project_root", defaults.project_root),
            catalog_root=data.get("catalog_root", defaults.catalog_root),
            build_root=data.get("build_root", defaults.build_root),
            report_dir=data.get("report_dir", defaults.report_dir),
            targets=data.get("targets", defaults.targets),
            per_target_budget=data.get("per_target_budget", defaults.per_target_budget),
            settle_delay=data.get("settle_delay", defaults.settle_delay),
            session_backend=data.get("session_backend", defaults.session_backend),
            strict_sessions=data.get("strict_sessions", False),
            reset_sessions=data.get("reset_sessions", False),
            log_dir=data.get("log_dir"),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables"""
        defaults = cls()
        targets = os.environ.get("SPDMFUZZ_TARGETS")

        return cls(
            project_root=os.environ.get("SPDMFUZZ_PROJECT_ROOT", defaults.project_root),
            catalog_root=os.environ.get("SPDMFUZZ_CATALOG_ROOT", defaults.catalog_root),
            build_root=os.environ.get("SPDMFUZZ_BUILD_ROOT", defaults.build_root),
            report_dir=os.environ.get("SPDMFUZZ_REPORT_DIR", defaults.report_dir),
            targets=targets.split(",") if targets else defaults.targets,
            per_target_budget=float(os.environ.get("SPDMFUZZ_BUDGET", defaults.per_target_budget)),
            settle_delay=float(os.environ.get("SPDMFUZZ_SETTLE", defaults.settle_delay)),
            session_backend=os.environ.get("SPDMFUZZ_SESSION_BACKEND", defaults.session_backend),
            strict_sessions=os.environ.get("SPDMFUZZ_STRICT_SESSIONS", "").lower() == "true",
            reset_sessions=os.environ.get("SPDMFUZZ_RESET_SESSIONS", "").lower() == "true",
            log_dir=os.environ.get("SPDMFUZZ_LOG_DIR"),
        )

    def merge(self, other: "Config") -> "Config":
        """Merge another config into this one (other takes precedence for non-default values)"""
        defaults = Config()
        for field_name in self.__dataclass_fields__:
            other_val = getattr(other, field_name)
            if other_val is not None and other_val != getattr(defaults, field_name):
                setattr(self, field_name, other_val)
        return self

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors"""
        errors = []

        if not self.targets:
            errors.append("Target catalog is empty")

        seen = set()
        for name in self.targets:
            if not name or not name.strip():
                errors.append("Empty target name")
            elif not TARGET_NAME_PATTERN.fullmatch(name):
                errors.append(f"Invalid target name: {name!r}")
            elif name in seen:
                errors.append(f"Duplicate target: {name}")
            seen.add(name)

        if self.per_target_budget <= 0:
            errors.append(f"per_target_budget must be positive: {self.per_target_budget}")

        if self.settle_delay < 0:
            errors.append(f"settle_delay must not be negative: {self.settle_delay}")

        if self.session_backend not in SESSION_BACKENDS:
            errors.append(f"Invalid session backend: {self.session_backend}")

        return errors

    @property
    def root(self) -> Path:
        return Path(self.project_root)

    @property
    def output_root(self) -> Path:
        """Output tree on disk: `<project-root>/<catalog-root>/out`."""
        return self.root / self.catalog_root / "out"

    def resolve_targets(self) -> List[FuzzTarget]:
        """Build the target list, paths relative to project_root."""
        return build_catalog(self.targets, Path(self.catalog_root), Path(self.build_root))

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "project_root": self.project_root,
            "catalog_root": self.catalog_root,
            "build_root": self.build_root,
            "report_dir": self.report_dir,
            "targets": self.targets,
            "per_target_budget": self.per_target_budget,
            "settle_delay": self.settle_delay,
            "session_backend": self.session_backend,
            "strict_sessions": self.strict_sessions,
            "reset_sessions": self.reset_sessions,
            "log_dir": self.log_dir,
        }
