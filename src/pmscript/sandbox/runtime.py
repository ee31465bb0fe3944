import json
import logging
import threading

from pmscript_models import ExecutionResult, ExecutionState, ScriptError
from py_mini_racer import JSEvalException, JSTimeoutException, MiniRacer

from ..constants import DEFAULT_SCRIPT_TIMEOUT
from ..exceptions import SandboxError, ScriptStateError
from .pm import PmBinding, SandboxState

logger = logging.getLogger(__name__)

# the embedded V8 platform is not safe for concurrent contexts
_V8_LOCK = threading.Lock()


class ScriptSandbox:
    """Runs one untrusted script in a fresh V8 context with a hard wall-clock bound.

    A sandbox instance is single-use: Idle -> Running -> Completed, TimedOut
    or Crashed. Script failures of any kind end up in the returned
    ExecutionResult; only a broken bootstrap raises SandboxError.

    Runs from different threads are serialized around the V8 context; binding,
    decoding and merging stay concurrent.
    """

    def __init__(self, binding: PmBinding, timeout: float = DEFAULT_SCRIPT_TIMEOUT):
        self.binding = binding
        self.timeout = timeout
        self.state = ExecutionState.IDLE

    def run(self, script: str) -> tuple[ExecutionResult, SandboxState | None]:
        if self.state is not ExecutionState.IDLE:
            raise SandboxError(f"Sandbox already used, state is {self.state}")

        self.state = ExecutionState.RUNNING
        bootstrap = self.binding.bootstrap()
        timeout_ms = int(self.timeout * 1000)

        with _V8_LOCK, MiniRacer() as ctx:
            try:
                ctx.eval(bootstrap)
            except JSEvalException as e:
                self.state = ExecutionState.CRASHED
                raise SandboxError(f"Failed to install script capabilities: {str(e)}") from e

            try:
                raw = ctx.eval(f"__pmRun({json.dumps(script)})", timeout=timeout_ms)
            except JSTimeoutException:
                self.state = ExecutionState.TIMED_OUT
                logger.error(f"Script execution timed out after {self.timeout}s")
                state = self._salvage(ctx)
                error = ScriptError(message=f"Script execution timed out after {self.timeout:g} seconds")
                return self._result(state, [error]), state
            except JSEvalException as e:
                # the prelude catches every script exception, so this is an engine-level failure
                self.state = ExecutionState.CRASHED
                logger.warning(f"Script execution aborted: {str(e)}")
                state = self._salvage(ctx)
                return self._result(state, [ScriptError(message=str(e))]), state

        try:
            state = SandboxState.decode(raw)
        except ScriptStateError as e:
            self.state = ExecutionState.CRASHED
            logger.warning(f"Script left unreadable state: {str(e)}")
            return self._result(None, [ScriptError(message=f"Script produced unreadable state: {str(e)}")]), None

        if state.error is not None:
            self.state = ExecutionState.CRASHED
            logger.warning(f"Script error: {state.error.message}")
            return self._result(state, [state.error]), state

        self.state = ExecutionState.COMPLETED
        return self._result(state, []), state

    def _salvage(self, ctx: MiniRacer) -> SandboxState | None:
        """Read back whatever a terminated script recorded before it stopped."""
        try:
            return SandboxState.decode(ctx.eval("__pmSnapshot()", timeout=1000))
        except (JSEvalException, ScriptStateError) as e:
            logger.debug(f"No state could be recovered from the sandbox: {str(e)}")
            return None

    def _result(self, state: SandboxState | None, errors: list[ScriptError]) -> ExecutionResult:
        state = state or SandboxState(globals=dict(self.binding.globals), environment=dict(self.binding.environment))
        return ExecutionResult(
            success=not errors,
            state=self.state,
            tests=state.tests,
            variables=dict(state.globals),
            logs=state.logs,
            errors=errors,
        )
