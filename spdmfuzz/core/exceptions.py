"""
Campaign Exceptions

Errors that stop a campaign.
"""

from pathlib import Path
from typing import List


class CampaignError(Exception):
    """Base exception for campaign errors"""

    exit_code = 1

    def __init__(self, message: str, target: str = None):
        self.message = message
        self.target = target
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.target:
            parts.append(f"target={self.target}")
        return " | ".join(parts)


class CrashGateBlocked(CampaignError):
    """Unreviewed crash evidence found in the output tree"""

    exit_code = 1

    def __init__(self, path: Path, target: str = None):
        self.path = Path(path)
        super().__init__(f"There are some crashes in {self.path}", target=target)


class BuildFailure(CampaignError):
    """Build tool exited with a non-zero status"""

    exit_code = 2

    def __init__(self, returncode: int, command: List[str] = None):
        self.returncode = returncode
        self.command = command or []
        super().__init__(f"Build failed (code {returncode})")


class SessionConflict(CampaignError):
    """A same-named session is already alive (strict mode only)"""

    exit_code = 3

    def __init__(self, name: str):
        super().__init__("Session already running", target=name)


class ConfigError(CampaignError):
    """Configuration did not validate"""

    exit_code = 3

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration")

    def _format_message(self) -> str:
        msg = self.message
        if self.errors:
            msg += f" | {'; '.join(self.errors)}"
        return msg


class SessionBackendError(CampaignError):
    """Session backend tool is not available"""

    exit_code = 4

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Session backend not available: {tool} not found on PATH")
