from .entities import (
    Environment,
    EnvironmentsData,
    ExecutionContext,
    ExecutionResult,
    ExtractionError,
    ExtractionReport,
    ExtractionRule,
    LogEntry,
    ResolveOptions,
    ResolveResult,
    ResponseData,
    ScriptError,
    TestExecutionResult,
    TestReport,
    TestResult,
    TestRunSummary,
    TestStats,
    UnresolvedVariable,
    Variable,
    VariableResolution,
    VariableStats,
)
from .types import (
    ExecutionState,
    ExtractionSource,
    ExtractionType,
    LogLevel,
    Scope,
    ScriptType,
    VariableSource,
)

__all__ = [
    "Environment",
    "EnvironmentsData",
    "ExecutionContext",
    "ExecutionResult",
    "ExecutionState",
    "ExtractionError",
    "ExtractionReport",
    "ExtractionRule",
    "ExtractionSource",
    "ExtractionType",
    "LogEntry",
    "LogLevel",
    "ResolveOptions",
    "ResolveResult",
    "ResponseData",
    "Scope",
    "ScriptError",
    "ScriptType",
    "TestExecutionResult",
    "TestReport",
    "TestResult",
    "TestRunSummary",
    "TestStats",
    "UnresolvedVariable",
    "Variable",
    "VariableResolution",
    "VariableSource",
    "VariableStats",
]
