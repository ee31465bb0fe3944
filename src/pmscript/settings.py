from pydantic import Field, PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_MAX_DEPTH,
    DEFAULT_REPORT_RECENT,
    DEFAULT_SCRIPT_TIMEOUT,
    ENV_PREFIX,
)


class Settings(BaseSettings):
    script_timeout: PositiveFloat = Field(default=DEFAULT_SCRIPT_TIMEOUT, description="Wall-clock budget of one script run, in seconds.")
    max_depth: PositiveInt = Field(default=DEFAULT_MAX_DEPTH, description="Recursive resolution passes.")
    keep_unresolved: bool = Field(default=False, description="Leave unresolved placeholders in resolved text.")
    history_size: PositiveInt = Field(default=DEFAULT_HISTORY_SIZE, description="Test runs retained in history.")
    history_limit: PositiveInt = Field(default=DEFAULT_HISTORY_LIMIT, description="Default number of runs returned from history.")
    report_recent: PositiveInt = Field(default=DEFAULT_REPORT_RECENT, description="Runs summarised in a report.")

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)
