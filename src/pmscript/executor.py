import logging

from pmscript_models import ExecutionContext, ExecutionResult, ResponseData, ScriptType, TestExecutionResult, TestStats

from .constants import DEFAULT_SCRIPT_TIMEOUT
from .history import TestHistory
from .sandbox import PmBinding, ScriptSandbox
from .store import VariableStore

logger = logging.getLogger(__name__)


class ScriptExecutor:
    """Runs pre-request and test scripts against the live VariableStore.

    Every invocation gets its own sandbox bound to a copy of the global
    scope, so unrelated invocations may run concurrently; their changes are
    merged into the shared store when each run finishes.
    """

    def __init__(
        self,
        store: VariableStore,
        history: TestHistory | None = None,
        timeout: float = DEFAULT_SCRIPT_TIMEOUT,
    ):
        self.store = store
        self.history = history if history is not None else TestHistory()
        self.timeout = timeout

    def execute_script(self, script: str, context: ExecutionContext) -> ExecutionResult:
        binding = PmBinding.from_store(self.store, context)
        result, state = ScriptSandbox(binding, timeout=self.timeout).run(script)

        if state is not None:
            binding.apply(self.store, state, merge_globals=result.success)

        return result

    def execute_pre_request_script(self, script: str | None, context: ExecutionContext | None = None) -> ExecutionResult:
        if not script or not script.strip():
            return ExecutionResult(success=True)

        response = context.response if context is not None else None
        result = self.execute_script(script, ExecutionContext(type=ScriptType.PRE_REQUEST, response=response))
        logger.info(f"Pre-request script finished: {result.state}, {len(result.logs)} log entries")
        return result

    def execute_test_script(
        self,
        script: str | None,
        response: ResponseData,
        context: ExecutionContext | None = None,
    ) -> TestExecutionResult:
        if not script or not script.strip():
            return TestExecutionResult(success=True)

        result = self.execute_script(script, ExecutionContext(type=ScriptType.TEST, response=response))
        stats = TestStats.from_tests(result.tests)
        test_result = TestExecutionResult(**dict(result), **stats.model_dump())

        self.history.append(test_result)
        logger.info(f"Test script finished: {stats.passed_tests}/{stats.total_tests} passed ({stats.pass_rate}%)")
        return test_result
