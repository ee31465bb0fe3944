"""Host side of the pm capability object.

The pm object itself lives inside the sandbox (see prelude.js). This module
decides what data it is bound to, serialises that data into the sandbox, and
applies what the script recorded back onto the VariableStore.
"""

import json
import logging
from dataclasses import dataclass, field
from functools import cache
from importlib import resources
from typing import Any, Self

from pmscript_models import ExecutionContext, LogEntry, Scope, ScriptError, TestResult

from ..exceptions import ScriptStateError
from ..store import VariableStore

logger = logging.getLogger(__name__)


@cache
def prelude_source() -> str:
    return resources.files(__package__).joinpath("prelude.js").read_text(encoding="utf-8")


@dataclass
class SandboxState:
    """Everything a script run recorded, decoded from the sandbox."""

    tests: list[TestResult] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)
    globals: dict[str, str] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)
    error: ScriptError | None = None

    @classmethod
    def decode(cls, raw: str) -> Self:
        try:
            return cls._decode(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ScriptStateError(f"Unreadable script state: {str(e)}") from e

    @classmethod
    def _decode(cls, raw: str) -> Self:
        data = json.loads(raw)
        error = data.get("error")
        return cls(
            tests=[
                TestResult(name=item["name"], passed=item["passed"], error=item.get("error"), executed_at=item["executedAt"])
                for item in data.get("tests", [])
            ],
            logs=[LogEntry.model_validate(item) for item in data.get("logs", [])],
            globals={str(k): str(v) for k, v in data.get("globals", {}).items()},
            environment={str(k): str(v) for k, v in data.get("environment", {}).items()},
            error=ScriptError(message=error["message"], stack=error.get("stack"), line=extract_line_number(error.get("stack"))) if error else None,
        )


def extract_line_number(stack: str | None) -> int | None:
    """Line of the user script a V8 stack trace points at, if any."""
    if not stack:
        return None

    # frames inside the evaluated script read "(eval at ..., <anonymous>:LINE:COL)"
    for line in stack.splitlines():
        marker = line.rfind(", <anonymous>:")
        if marker == -1:
            continue
        position = line[marker + len(", <anonymous>:") :].rstrip(")").split(":")
        if position and position[0].isdigit():
            return int(position[0])
    return None


def diff(before: dict[str, str], after: dict[str, str]) -> tuple[dict[str, str], list[str]]:
    updates = {key: value for key, value in after.items() if before.get(key) != value}
    removed = [key for key in before if key not in after]
    return updates, removed


@dataclass
class PmBinding:
    """Data one script run is bound to.

    Globals are a run-local copy: the script works on it in isolation and its
    changes reach the store only through apply(). Environment values are a
    snapshot of the enabled variables of the environment that was current
    when the run started; environment_id pins later writes to that environment.
    """

    context: ExecutionContext
    globals: dict[str, str]
    environment: dict[str, str]
    environment_id: str | None = None

    @classmethod
    def from_store(cls, store: VariableStore, context: ExecutionContext) -> Self:
        environment_id, environment = store.environment_snapshot()
        return cls(
            context=context,
            globals=store.snapshot(Scope.GLOBAL),
            environment=environment,
            environment_id=environment_id,
        )

    def payload(self) -> dict[str, Any]:
        response = self.context.response
        return {
            "type": str(self.context.type),
            "response": (
                {
                    "data": response.model_dump(mode="json")["data"],
                    "headers": dict(response.headers),
                    "status": response.status,
                    "responseTime": response.response_time,
                }
                if response is not None
                else None
            ),
            "globals": dict(self.globals),
            "environment": dict(self.environment),
        }

    def bootstrap(self) -> str:
        """JavaScript that installs the capability surface in a fresh context."""
        literal = json.dumps(json.dumps(self.payload()))
        return f"globalThis.__pmInput = JSON.parse({literal});\n{prelude_source()}"

    def apply(self, store: VariableStore, state: SandboxState, merge_globals: bool) -> None:
        """Write what the script changed back into the store.

        Environment writes behave like direct proxies and are applied whenever
        state could be read back. Global writes are merged only for runs that
        completed successfully.
        """
        env_updates, env_removed = diff(self.environment, state.environment)
        if env_updates or env_removed:
            if self.environment_id is None:
                logger.warning("No environment was current when the script started, dropping environment changes")
            elif store.merge_environment(self.environment_id, env_updates, env_removed):
                logger.info(f"Script changed environment {self.environment_id}: set {sorted(env_updates)}, unset {env_removed}")

        if not merge_globals:
            return

        global_updates, global_removed = diff(self.globals, state.globals)
        if global_updates or global_removed:
            store.merge(Scope.GLOBAL, global_updates, global_removed)
            logger.info(f"Script changed global variables: set {sorted(global_updates)}, unset {global_removed}")
