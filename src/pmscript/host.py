import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pmscript_models import (
    EnvironmentsData,
    ExecutionContext,
    ExecutionResult,
    ExtractionReport,
    ExtractionRule,
    ResolveOptions,
    ResolveResult,
    ResponseData,
    Scope,
    TestExecutionResult,
    TestReport,
    Variable,
    VariableStats,
)

from .constants import ENVIRONMENTS_RECORD
from .executor import ScriptExecutor
from .extractor import ResponseExtractor
from .history import TestHistory
from .persistence import PersistenceStore
from .resolver import VariableResolver
from .settings import Settings
from .store import VariableStore

logger = logging.getLogger(__name__)

REQUEST_FIELDS = ("url", "headers", "params", "body")


class ScriptingHost:
    """Entry point for the host application.

    Owns one VariableStore for its whole lifetime and hands it by reference
    to the resolver, the extractor and every script run.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: VariableStore | None = None,
        persistence: PersistenceStore | None = None,
    ):
        self.settings = settings or Settings()
        self.store = store if store is not None else VariableStore()
        self.persistence = persistence

        self.resolver = VariableResolver(
            self.store,
            ResolveOptions(keep_unresolved=self.settings.keep_unresolved, max_depth=self.settings.max_depth),
        )
        self.extractor = ResponseExtractor(self.store)
        self.history = TestHistory(size=self.settings.history_size, report_recent=self.settings.report_recent)
        self.executor = ScriptExecutor(self.store, self.history, timeout=self.settings.script_timeout)

    # resolution

    def resolve_variables(self, text: Any, options: ResolveOptions | None = None) -> ResolveResult:
        return self.resolver.resolve(text, options)

    def resolve_object_variables(self, obj: Any, options: ResolveOptions | None = None) -> Any:
        return self.resolver.resolve_object(obj, options)

    def prepare_request(self, request: Mapping[str, Any], options: ResolveOptions | None = None) -> dict[str, Any]:
        """Interpolate the url, headers, params and body of a request definition.

        Other fields are copied through untouched.
        """
        prepared = dict(request)
        for field in REQUEST_FIELDS:
            if field in prepared:
                prepared[field] = self.resolver.resolve_object(prepared[field], options)
        return prepared

    # variables

    def set_environment_variable(self, key: str, value: Any, environment_id: str | None = None) -> None:
        self.store.set(Scope.ENVIRONMENT, key, value, environment_id=environment_id)

    def get_environment_variable(self, key: str, environment_id: str | None = None) -> str | None:
        return self.store.get(Scope.ENVIRONMENT, key, environment_id=environment_id)

    def unset_environment_variable(self, key: str, environment_id: str | None = None) -> bool:
        return self.store.unset(Scope.ENVIRONMENT, key, environment_id=environment_id)

    def set_global_variable(self, key: str, value: Any) -> None:
        self.store.set(Scope.GLOBAL, key, value)

    def get_global_variable(self, key: str) -> str | None:
        return self.store.get(Scope.GLOBAL, key)

    def unset_global_variable(self, key: str) -> bool:
        return self.store.unset(Scope.GLOBAL, key)

    def set_session_variable(self, key: str, value: Any) -> None:
        self.store.set(Scope.SESSION, key, value)

    def get_session_variable(self, key: str) -> str | None:
        return self.store.get(Scope.SESSION, key)

    def clear_session_variables(self) -> None:
        self.store.clear_session()

    def get_all_variables(self) -> dict[str, list[Variable]]:
        return self.store.all_variables()

    def get_variable_stats(self) -> VariableStats:
        return self.store.stats()

    # environments

    def create_environment(self, name: str = "New Environment", description: str = "", variables: Iterable[Variable] = ()) -> str:
        return self.store.create_environment(name, description, variables)

    def switch_environment(self, environment_id: str) -> None:
        self.store.switch_environment(environment_id)

    def load_environments(self) -> bool:
        """Replace the environment registry with the persisted record, if there is one."""
        if self.persistence is None:
            return False

        record = self.persistence.read(ENVIRONMENTS_RECORD)
        if record is None:
            return False

        self.store.load(EnvironmentsData.model_validate(record))
        logger.info(f"Loaded {len(self.store.environments())} environments")
        return True

    def save_environments(self) -> bool:
        if self.persistence is None:
            return False

        self.persistence.write(ENVIRONMENTS_RECORD, self.store.dump().model_dump(mode="json"))
        return True

    # extraction and scripts

    def extract_variables_from_response(
        self,
        response: ResponseData,
        rules: Iterable[ExtractionRule | Mapping[str, Any]],
    ) -> ExtractionReport:
        return self.extractor.extract(response, rules)

    def execute_pre_request_script(self, script: str | None, context: ExecutionContext | None = None) -> ExecutionResult:
        return self.executor.execute_pre_request_script(script, context)

    def execute_test_script(
        self,
        script: str | None,
        response: ResponseData,
        context: ExecutionContext | None = None,
    ) -> TestExecutionResult:
        return self.executor.execute_test_script(script, response, context)

    # history

    def get_test_history(self, limit: int | None = None) -> list[TestExecutionResult]:
        return self.history.history(limit if limit is not None else self.settings.history_limit)

    def clear_test_history(self) -> None:
        self.history.clear()

    def get_test_report(self) -> TestReport:
        return self.history.report()
