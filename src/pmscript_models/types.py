import re
from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated

from pydantic import AfterValidator, PlainSerializer
from pmscript_templates.expressions import PLACEHOLDER_CLOSE


class Scope(StrEnum):
    """Variable scopes, listed in resolution priority order."""

    SESSION = "session"
    GLOBAL = "global"
    ENVIRONMENT = "environment"


class VariableSource(StrEnum):
    """Where a resolved placeholder got its value from."""

    SESSION = "session"
    GLOBAL = "global"
    ENVIRONMENT = "environment"
    DYNAMIC = "dynamic"


class ScriptType(StrEnum):
    PRE_REQUEST = "pre-request"
    TEST = "test"


class ExecutionState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CRASHED = "crashed"


class ExtractionSource(StrEnum):
    HEADER = "header"
    BODY = "body"
    COOKIE = "cookie"


class ExtractionType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class LogLevel(StrEnum):
    LOG = "log"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def utcnow() -> datetime:
    return datetime.now(UTC)


def validate_variable_key(v: str) -> str:
    if not v.strip():
        raise ValueError("Variable key cannot be empty")

    if PLACEHOLDER_CLOSE in v:
        raise ValueError(f"Variable key cannot contain '{PLACEHOLDER_CLOSE}', got: {v!r}")

    return v


def validate_regex_pattern(v: str) -> str:
    """Validate that a string is a valid regular expression."""
    try:
        re.compile(v)
    except re.error as e:
        raise ValueError("Invalid regular expression") from e
    return v


VariableKey = Annotated[str, AfterValidator(validate_variable_key)]
RegexPattern = Annotated[str, AfterValidator(validate_regex_pattern)]
IsoDatetime = Annotated[datetime, PlainSerializer(lambda x: x.isoformat(), return_type=str)]
