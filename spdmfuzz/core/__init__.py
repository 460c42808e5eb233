"""
spdmfuzz Core Module

Contains configuration, models, errors and logging.
"""

from .config import Config
from .exceptions import (
    CampaignError,
    CrashGateBlocked,
    BuildFailure,
    SessionConflict,
    SessionBackendError,
    ConfigError,
)
from .logging import (
    logger,
    setup_logging,
    setup_console_only,
    get_log_dir,
    create_campaign_summary,
)
from .models import (
    DEFAULT_CATALOG,
    InstrumentationMode,
    FuzzTarget,
    SlotRecord,
    build_catalog,
)
from .utils import generate_id

__all__ = [
    # Config
    "Config",
    # Errors
    "CampaignError",
    "CrashGateBlocked",
    "BuildFailure",
    "SessionConflict",
    "SessionBackendError",
    "ConfigError",
    # Logging
    "logger",
    "setup_logging",
    "setup_console_only",
    "get_log_dir",
    "create_campaign_summary",
    # Models
    "DEFAULT_CATALOG",
    "InstrumentationMode",
    "FuzzTarget",
    "SlotRecord",
    "build_catalog",
    # Utils
    "generate_id",
]
