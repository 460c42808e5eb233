"""
Campaign Builder

Builds every fuzz target in one `cargo afl build` invocation. The
instrumentation mode is carried by an explicit InstrumentationProfile
that is applied to a copy of the environment; the orchestrator's own
environment is never modified.
"""

import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ..core.exceptions import BuildFailure
from ..core.logging import get_log_dir, logger
from ..core.models import FuzzTarget, InstrumentationMode


# Every variable any mode may set. All are dropped before a mode is applied,
# so switching modes never leaves flags behind.
INSTRUMENTATION_VARS = (
    "RUSTFLAGS",
    "LLVM_PROFILE_FILE",
    "CARGO_INCREMENTAL",
    "RUSTDOCFLAGS",
)

_MODE_ENV = {
    InstrumentationMode.NONE: {},
    InstrumentationMode.SOURCE_COVERAGE: {
        "RUSTFLAGS": "-Zinstrument-coverage",
        "LLVM_PROFILE_FILE": "fuzz_run%m.profraw",
    },
    InstrumentationMode.PROFILE_COVERAGE: {
        "CARGO_INCREMENTAL": "0",
        "RUSTDOCFLAGS": "-Cpanic=abort",
        "RUSTFLAGS": (
            "-Zprofile -Ccodegen-units=1 -Copt-level=0 -Clink-dead-code "
            "-Coverflow-checks=off -Zpanic_abort_tests -Cpanic=abort"
        ),
    },
}


@dataclass(frozen=True)
class InstrumentationProfile:
    """Resolved instrumentation mode and the build variables it implies."""

    mode: InstrumentationMode = InstrumentationMode.NONE
    env: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_mode(cls, mode: InstrumentationMode) -> "InstrumentationProfile":
        return cls(mode=mode, env=dict(_MODE_ENV[mode]))

    def apply(self, base_env: Mapping[str, str]) -> Dict[str, str]:
        """Return a copy of `base_env` with this profile's flags only."""
        env = {k: v for k, v in base_env.items() if k not in INSTRUMENTATION_VARS}
        env.update(self.env)
        return env


class CampaignBuilder:
    """
    Builds all fuzz targets in a single batch.

    Output is streamed to the console and to build_fuzzer.log in the
    campaign log directory.
    """

    def __init__(
        self,
        profile: InstrumentationProfile,
        project_root: Path = Path("."),
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize CampaignBuilder.

        Args:
            profile: Instrumentation profile for this invocation
            project_root: Cargo workspace root, used as working directory
            base_env: Environment to start from (default: os.environ)
        """
        self.profile = profile
        self.project_root = Path(project_root)
        self.base_env = base_env

    def build_command(self, targets: Sequence[FuzzTarget]) -> List[str]:
        cmd = ["cargo", "afl", "build", "--features", "fuzz"]
        for target in targets:
            cmd.extend(["-p", target.name])
        return cmd

    def build_env(self) -> Dict[str, str]:
        base = os.environ if self.base_env is None else self.base_env
        return self.profile.apply(base)

    def build(self, targets: Sequence[FuzzTarget]) -> None:
        """
        Build all targets.

        Raises:
            BuildFailure: if cargo exits non-zero
        """
        cmd = self.build_command(targets)
        env = self.build_env()

        logger.info(f"Building {len(targets)} fuzz targets (mode={self.profile.mode.value})")
        logger.info(f"Running build command: {' '.join(cmd)}")
        for name in INSTRUMENTATION_VARS:
            if name in env:
                logger.debug(f"  {name}={env[name]}")

        log_dir = get_log_dir()
        build_log_path = log_dir / "build_fuzzer.log" if log_dir else None
        build_log_file = open(build_log_path, "w", encoding="utf-8") if build_log_path else None

        try:
            if build_log_file:
                build_log_file.write(f"Build Command: {' '.join(cmd)}\n")
                for name, value in self.profile.env.items():
                    build_log_file.write(f"{name}={value}\n")
                build_log_file.write("=" * 80 + "\n\n")

            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    cwd=str(self.project_root),
                    env=env,
                )
            except FileNotFoundError:
                logger.error(f"Build tool not found: {cmd[0]}")
                raise BuildFailure(127, cmd)

            for line in process.stdout:
                sys.stdout.write(line)
                sys.stdout.flush()
                if build_log_file:
                    build_log_file.write(line)

            process.wait()

            if build_log_file:
                build_log_file.write("\n" + "=" * 80 + "\n")
                build_log_file.write(f"Exit code: {process.returncode}\n")

        finally:
            if build_log_file:
                build_log_file.close()

        if process.returncode != 0:
            logger.error(f"Build failed with code {process.returncode}")
            if build_log_path:
                logger.error(f"See full log: {build_log_path}")
            raise BuildFailure(process.returncode, cmd)

        logger.info("Build completed successfully")
