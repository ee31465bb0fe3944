from enum import StrEnum


class ConfigOptions(StrEnum):
    """Configuration option names, also readable from PMSCRIPT_* environment variables."""

    SCRIPT_TIMEOUT = "script_timeout"
    MAX_DEPTH = "max_depth"
    KEEP_UNRESOLVED = "keep_unresolved"
    HISTORY_SIZE = "history_size"
    HISTORY_LIMIT = "history_limit"
    REPORT_RECENT = "report_recent"


ENV_PREFIX = "PMSCRIPT_"

DEFAULT_SCRIPT_TIMEOUT = 5.0
DEFAULT_MAX_DEPTH = 5
DEFAULT_HISTORY_SIZE = 100
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_REPORT_RECENT = 10

ENVIRONMENTS_RECORD = "environments"
