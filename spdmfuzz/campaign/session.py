"""
Session Manager

One named, persistent execution context per fuzz target. A session
outlives the scheduler's wait loop: the fuzz run keeps going while the
orchestrator sleeps, and is stopped only by terminate().

Backends:
- ScreenSessionManager: detached GNU screen sessions (survive the orchestrator)
- ProcessSessionManager: a detached bash in its own process group
"""

import os
import re
import shutil
import signal
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Set

from ..core.exceptions import SessionBackendError, SessionConflict
from ..core.logging import logger


LINE_TERMINATOR = "\n"


@dataclass(frozen=True)
class SessionHandle:
    """Address of a session; `reused` is True when it was already running."""

    name: str
    reused: bool = False


class SessionManager(ABC):
    """
    Base class for session backends.

    Creation is idempotent: a running session with the same name is
    reused as-is, without checking what it is executing. With
    strict=True the same situation raises SessionConflict instead.
    """

    def __init__(self, strict: bool = False, cwd: Path = Path(".")):
        self.strict = strict
        self.cwd = Path(cwd)

    def check_available(self) -> None:
        """
        Verify the backend can start sessions.

        Raises:
            SessionBackendError: if a required tool is missing
        """

    @abstractmethod
    def is_alive(self, name: str) -> bool:
        """Check if a session with this name is running."""

    @abstractmethod
    def _create(self, name: str) -> None:
        ...

    @abstractmethod
    def _deliver(self, name: str, data: str) -> None:
        ...

    @abstractmethod
    def _quit(self, name: str) -> None:
        ...

    def ensure_session(self, name: str) -> SessionHandle:
        """
        Return a handle to session `name`, creating it when absent.

        Raises:
            SessionConflict: in strict mode, if the session already runs
        """
        if self.is_alive(name):
            if self.strict:
                raise SessionConflict(name)
            logger.warning(f"[{name}] Session already running, reusing it")
            return SessionHandle(name=name, reused=True)

        self._create(name)
        logger.debug(f"[{name}] Session created")
        return SessionHandle(name=name)

    def send_command(self, handle: SessionHandle, command_line: str) -> None:
        """Type `command_line` into the session, then submit it separately."""
        self._deliver(handle.name, command_line)
        self._deliver(handle.name, LINE_TERMINATOR)
        logger.debug(f"[{handle.name}] Sent: {command_line}")

    def terminate(self, handle: SessionHandle) -> None:
        """Ask the session to end. Does not wait for it to exit."""
        self._quit(handle.name)
        logger.debug(f"[{handle.name}] Termination requested")

    def reset(self, names: Sequence[str]) -> List[str]:
        """
        Terminate any running session among `names`.

        Returns:
            Names that were running
        """
        stale = [name for name in names if self.is_alive(name)]
        for name in stale:
            logger.info(f"[{name}] Terminating stale session")
            self._quit(name)
        return stale


class ScreenSessionManager(SessionManager):
    """Sessions backed by detached GNU screen sessions."""

    # "\t12345.rspversion\t(Detached)" -> "rspversion"
    _LS_PATTERN = re.compile(r"^\s*\d+\.(\S+)\s", re.MULTILINE)

    def check_available(self) -> None:
        if shutil.which("screen") is None:
            raise SessionBackendError("screen")

    def _screen(self, args: List[str], **kwargs) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(["screen", *args], capture_output=True, text=True, **kwargs)
        except FileNotFoundError:
            raise SessionBackendError("screen")

    def list_sessions(self) -> Set[str]:
        """Names of all running screen sessions."""
        # screen -ls exits non-zero even when it lists sessions
        result = self._screen(["-ls"])
        return set(self._LS_PATTERN.findall(result.stdout))

    def is_alive(self, name: str) -> bool:
        # Exact match: "finish_req" must not match "psk_finish_req"
        return name in self.list_sessions()

    def _run(self, name: str, args: List[str]) -> None:
        result = self._screen(args, cwd=str(self.cwd))
        if result.returncode != 0:
            logger.warning(
                f"[{name}] screen {args[0]} exited with {result.returncode}: "
                f"{result.stderr.strip()}"
            )

    def _create(self, name: str) -> None:
        self._run(name, ["-dmS", name])

    def _deliver(self, name: str, data: str) -> None:
        self._run(name, ["-x", "-S", name, "-p", "0", "-X", "stuff", data])

    def _quit(self, name: str) -> None:
        self._run(name, ["-S", name, "-X", "quit"])


class ProcessSessionManager(SessionManager):
    """
    Sessions backed by an interactive bash in a new process group.

    Sessions are only addressable from the orchestrator that created them.
    """

    def __init__(self, strict: bool = False, cwd: Path = Path(".")):
        super().__init__(strict=strict, cwd=cwd)
        self._sessions: Dict[str, subprocess.Popen] = {}
        # Signalled but not yet reaped
        self._terminated: List[subprocess.Popen] = []

    def check_available(self) -> None:
        if shutil.which("bash") is None:
            raise SessionBackendError("bash")

    def _reap(self) -> None:
        self._terminated = [p for p in self._terminated if p.poll() is None]

    def is_alive(self, name: str) -> bool:
        self._reap()
        process = self._sessions.get(name)
        return process is not None and process.poll() is None

    def _create(self, name: str) -> None:
        self._reap()
        self._sessions[name] = subprocess.Popen(
            ["bash"],
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            cwd=str(self.cwd),
            text=True,
            start_new_session=True,
        )

    def _deliver(self, name: str, data: str) -> None:
        process = self._sessions.get(name)
        if process is None or process.stdin is None:
            logger.warning(f"[{name}] No such session")
            return
        try:
            process.stdin.write(data)
            process.stdin.flush()
        except BrokenPipeError:
            logger.warning(f"[{name}] Session input closed")

    def _quit(self, name: str) -> None:
        process = self._sessions.pop(name, None)
        if process is None:
            return
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass
        if process.stdin:
            try:
                process.stdin.close()
            except BrokenPipeError:
                pass
        if process.poll() is None:
            self._terminated.append(process)


_BACKENDS = {
    "screen": ScreenSessionManager,
    "process": ProcessSessionManager,
}


def create_session_manager(
    backend: str = "screen",
    strict: bool = False,
    cwd: Path = Path("."),
) -> SessionManager:
    """Create the session manager for `backend` ("screen" or "process")."""
    try:
        cls = _BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown session backend: {backend}")
    return cls(strict=strict, cwd=cwd)
