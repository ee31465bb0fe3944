from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, NonNegativeInt, PositiveInt

from pmscript_models.types import (
    ExecutionState,
    ExtractionSource,
    ExtractionType,
    IsoDatetime,
    LogLevel,
    RegexPattern,
    Scope,
    ScriptType,
    VariableKey,
    VariableSource,
    utcnow,
)


class Variable(BaseModel):
    key: VariableKey = Field(description="Variable name, case-sensitive and unique per scope.")
    value: str = Field(default="", description="Variable value.")
    enabled: bool = Field(default=True, description="Disabled variables are skipped during resolution.")
    description: str | None = Field(default=None)
    created_at: IsoDatetime | None = Field(default=None)
    updated_at: IsoDatetime | None = Field(default=None)


class Environment(BaseModel):
    """Named collection of variables; exactly one environment is current at a time."""

    name: str = Field(default="New Environment")
    description: str = Field(default="")
    variables: list[Variable] = Field(default_factory=list)
    created_at: IsoDatetime = Field(default_factory=utcnow)
    updated_at: IsoDatetime = Field(default_factory=utcnow)

    def find(self, key: str) -> Variable | None:
        for variable in self.variables:
            if variable.key == key:
                return variable
        return None

    def get(self, key: str) -> str | None:
        """Value of an enabled variable, or None."""
        variable = self.find(key)
        if variable is None or not variable.enabled:
            return None
        return variable.value

    def set(self, key: str, value: str) -> None:
        now = utcnow()
        variable = self.find(key)
        if variable is None:
            self.variables.append(Variable(key=key, value=value, created_at=now, updated_at=now))
        else:
            variable.value = value
            variable.updated_at = now
        self.updated_at = now

    def unset(self, key: str) -> bool:
        variable = self.find(key)
        if variable is None:
            return False
        self.variables.remove(variable)
        self.updated_at = utcnow()
        return True

    def enabled_values(self) -> dict[str, str]:
        return {v.key: v.value for v in self.variables if v.enabled}


class EnvironmentsData(BaseModel):
    """Environments record as exchanged with the persistence store."""

    current: str | None = Field(default=None, description="Id of the current environment.")
    environments: dict[str, Environment] = Field(default_factory=dict)


class ResponseData(BaseModel):
    """Completed HTTP exchange handed over by the HTTP client. Read-only for scripts."""

    data: Any = Field(default=None, description="Decoded body: structured JSON value or raw text.")
    headers: dict[str, str] = Field(default_factory=dict)
    status: NonNegativeInt = Field(default=0)
    response_time: NonNegativeFloat = Field(default=0.0, description="Response time in milliseconds.")
    model_config = ConfigDict(frozen=True)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class ExecutionContext(BaseModel):
    type: ScriptType = Field(default=ScriptType.PRE_REQUEST)
    response: ResponseData | None = Field(default=None)
    model_config = ConfigDict(frozen=True)


class TestResult(BaseModel):
    __test__ = False

    name: str
    passed: bool
    error: str | None = Field(default=None)
    executed_at: IsoDatetime = Field(default_factory=utcnow)
    model_config = ConfigDict(frozen=True)


class LogEntry(BaseModel):
    level: LogLevel
    message: str
    timestamp: int = Field(description="Epoch milliseconds.")
    model_config = ConfigDict(frozen=True)


class ScriptError(BaseModel):
    message: str
    stack: str | None = Field(default=None)
    line: int | None = Field(default=None)
    model_config = ConfigDict(frozen=True)


class ExecutionResult(BaseModel):
    success: bool
    state: ExecutionState = Field(default=ExecutionState.COMPLETED)
    tests: list[TestResult] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict, description="Run-local global scope after the run.")
    logs: list[LogEntry] = Field(default_factory=list)
    errors: list[ScriptError] = Field(default_factory=list)


class TestStats(BaseModel):
    __test__ = False

    total_tests: NonNegativeInt = 0
    passed_tests: NonNegativeInt = 0
    failed_tests: NonNegativeInt = 0
    pass_rate: str = "0"

    @classmethod
    def from_tests(cls, tests: list[TestResult]) -> "TestStats":
        total = len(tests)
        passed = sum(1 for test in tests if test.passed)
        return cls(
            total_tests=total,
            passed_tests=passed,
            failed_tests=total - passed,
            pass_rate=f"{passed / total * 100:.2f}" if total > 0 else "0",
        )


class TestExecutionResult(ExecutionResult, TestStats):
    __test__ = False

    executed_at: IsoDatetime = Field(default_factory=utcnow)


class TestRunSummary(BaseModel):
    __test__ = False

    executed_at: datetime
    total_tests: int
    passed_tests: int
    failed_tests: int
    pass_rate: str


class TestReport(BaseModel):
    __test__ = False

    total_runs: int = 0
    total_tests: int = 0
    total_passed: int = 0
    total_failed: int = 0
    average_pass_rate: str = "0"
    recent_results: list[TestRunSummary] = Field(default_factory=list)


class ExtractionRule(BaseModel):
    name: VariableKey = Field(description="Variable name to write.")
    source: ExtractionSource = Field(description="Where to look for the value.")
    path: str = Field(default="", description="Header name, dotted body path or cookie name.")
    regex: RegexPattern | None = Field(default=None, description="Fallback pattern for text bodies.")
    type: ExtractionType = Field(default=ExtractionType.STRING)
    target: Scope = Field(default=Scope.SESSION)
    model_config = ConfigDict(extra="forbid")


class ExtractionError(BaseModel):
    rule: ExtractionRule | dict[str, Any] = Field(description="The rule that failed, or the raw mapping when it did not validate.")
    message: str


class ExtractionReport(BaseModel):
    extracted: dict[str, str] = Field(default_factory=dict)
    errors: list[ExtractionError] = Field(default_factory=list)


class VariableResolution(BaseModel):
    name: str
    placeholder: str
    position: int
    value: str | None = Field(default=None)
    source: VariableSource | None = Field(default=None)


class UnresolvedVariable(BaseModel):
    name: str
    placeholder: str


class ResolveOptions(BaseModel):
    keep_unresolved: bool = Field(default=False, description="Leave unresolved placeholders verbatim instead of deleting them.")
    max_depth: PositiveInt = Field(default=5, description="Maximum number of recursive resolution passes.")


class ResolveResult(BaseModel):
    resolved: Any
    variables: list[VariableResolution] = Field(default_factory=list)
    unresolved: list[UnresolvedVariable] = Field(default_factory=list)


class VariableStats(BaseModel):
    total_variables: int = 0
    environment_variables: int = 0
    global_variables: int = 0
    session_variables: int = 0
