import logging
import re
import threading
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from pmscript_models import Environment, EnvironmentsData, Scope, Variable, VariableSource, VariableStats
from pmscript_models.types import utcnow

from .dynamic import resolve_dynamic
from .exceptions import CurrentEnvironmentError, EnvironmentNotFoundError, NoEnvironmentError

logger = logging.getLogger(__name__)

VARIABLE_NAME_REGEX = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class VariableStore:
    """Session, global and environment scopes plus the environment registry.

    The store is created once by the host and passed by reference to every
    resolver, extractor and script run. All access is serialized by one
    re-entrant lock, so concurrent script runs can merge into it safely
    (last writer wins per key) and an environment switch never interleaves
    with a read or write of the environment scope.
    """

    def __init__(self, environments: EnvironmentsData | None = None):
        self._lock = threading.RLock()
        self._session: dict[str, str] = {}
        self._globals: dict[str, str] = {}
        self._environments: dict[str, Environment] = {}
        self._current_id: str | None = None

        if environments is not None:
            self.load(environments)

    # scopes

    def get(self, scope: Scope, key: str, environment_id: str | None = None) -> str | None:
        """Read one variable. environment_id picks an environment other than the current one."""
        with self._lock:
            match Scope(scope):
                case Scope.SESSION:
                    return self._session.get(key)
                case Scope.GLOBAL:
                    return self._globals.get(key)
                case Scope.ENVIRONMENT:
                    environment = self._environment(environment_id, required=False)
                    return environment.get(key) if environment is not None else None

    def set(self, scope: Scope, key: str, value: Any, environment_id: str | None = None) -> None:
        value = str(value)
        with self._lock:
            match Scope(scope):
                case Scope.SESSION:
                    self._session[key] = value
                case Scope.GLOBAL:
                    self._globals[key] = value
                case Scope.ENVIRONMENT:
                    self._environment(environment_id).set(key, value)
        logger.debug(f"Set {scope} variable {key} = {value}")

    def unset(self, scope: Scope, key: str, environment_id: str | None = None) -> bool:
        with self._lock:
            match Scope(scope):
                case Scope.SESSION:
                    return self._session.pop(key, None) is not None
                case Scope.GLOBAL:
                    return self._globals.pop(key, None) is not None
                case Scope.ENVIRONMENT:
                    return self._environment(environment_id).unset(key)
        return False

    def lookup(self, key: str) -> tuple[str, VariableSource] | None:
        """Find key in priority order session > global > environment > dynamic."""
        with self._lock:
            if key in self._session:
                return self._session[key], VariableSource.SESSION

            if key in self._globals:
                return self._globals[key], VariableSource.GLOBAL

            environment = self._current()
            if environment is not None:
                value = environment.get(key)
                if value is not None:
                    return value, VariableSource.ENVIRONMENT

        dynamic_value = resolve_dynamic(key)
        if dynamic_value is not None:
            return dynamic_value, VariableSource.DYNAMIC

        return None

    def snapshot(self, scope: Scope) -> dict[str, str]:
        """Copy of a scope's current values; environment scope lists enabled variables only."""
        with self._lock:
            match Scope(scope):
                case Scope.SESSION:
                    return dict(self._session)
                case Scope.GLOBAL:
                    return dict(self._globals)
                case Scope.ENVIRONMENT:
                    environment = self._current()
                    return environment.enabled_values() if environment is not None else {}
        return {}

    def merge(self, scope: Scope, updates: Mapping[str, Any], removed: Iterable[str] = ()) -> None:
        """Apply a batch of writes and deletions to one scope atomically."""
        removed = list(removed)
        with self._lock:
            if Scope(scope) == Scope.ENVIRONMENT and self._current() is None:
                if updates or removed:
                    logger.warning("No current environment, dropping environment changes")
                return

            for key in removed:
                self.unset(scope, key)
            for key, value in updates.items():
                self.set(scope, key, value)

    def environment_snapshot(self) -> tuple[str | None, dict[str, str]]:
        """Id of the current environment together with its enabled values, read atomically."""
        with self._lock:
            environment = self._current()
            if environment is None:
                return None, {}
            return self._current_id, environment.enabled_values()

    def merge_environment(self, environment_id: str, updates: Mapping[str, Any], removed: Iterable[str] = ()) -> bool:
        """Apply a batch of writes and deletions to one named environment.

        The target is fixed by id, so a switch made in the meantime does not
        redirect the changes. Returns False when that environment no longer exists.
        """
        removed = list(removed)
        with self._lock:
            environment = self._environments.get(environment_id)
            if environment is None:
                if updates or removed:
                    logger.warning(f"Environment {environment_id} no longer exists, dropping environment changes")
                return False

            for key in removed:
                environment.unset(key)
            for key, value in updates.items():
                environment.set(key, str(value))
        return True

    def clear_session(self) -> None:
        with self._lock:
            self._session.clear()

    def clear_globals(self) -> None:
        with self._lock:
            self._globals.clear()

    # environments

    def create_environment(
        self,
        name: str = "New Environment",
        description: str = "",
        variables: Iterable[Variable] = (),
    ) -> str:
        environment_id = f"env_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        with self._lock:
            self._environments[environment_id] = Environment(name=name, description=description, variables=list(variables))
            if self._current_id is None:
                self._current_id = environment_id
        logger.info(f"Created environment {environment_id} ({name})")
        return environment_id

    def update_environment(
        self,
        environment_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        variables: Iterable[Variable] | None = None,
    ) -> Environment:
        with self._lock:
            environment = self._get_environment(environment_id)
            changes: dict[str, Any] = {}
            if name is not None:
                changes["name"] = name
            if description is not None:
                changes["description"] = description
            if variables is not None:
                changes["variables"] = list(variables)
            updated = environment.model_copy(update=changes)
            updated.updated_at = utcnow()
            self._environments[environment_id] = updated
            return updated

    def delete_environment(self, environment_id: str) -> None:
        with self._lock:
            self._get_environment(environment_id)
            if environment_id == self._current_id:
                raise CurrentEnvironmentError(f"Environment {environment_id} is current and cannot be deleted")
            del self._environments[environment_id]
        logger.info(f"Deleted environment {environment_id}")

    def switch_environment(self, environment_id: str) -> Environment:
        """Make another environment current. Session variables belong to the old one and are dropped."""
        with self._lock:
            environment = self._get_environment(environment_id)
            previous_id = self._current_id
            self._current_id = environment_id
            self._session.clear()
        logger.info(f"Switched environment {previous_id} -> {environment_id}")
        return environment

    def environments(self) -> dict[str, Environment]:
        with self._lock:
            return dict(self._environments)

    def current_environment(self) -> tuple[str, Environment] | None:
        with self._lock:
            environment = self._current()
            if environment is None or self._current_id is None:
                return None
            return self._current_id, environment

    def load(self, data: EnvironmentsData) -> None:
        with self._lock:
            self._environments = {key: env.model_copy(deep=True) for key, env in data.environments.items()}
            self._current_id = data.current if data.current in self._environments else None

    def dump(self) -> EnvironmentsData:
        with self._lock:
            return EnvironmentsData(
                current=self._current_id,
                environments={key: env.model_copy(deep=True) for key, env in self._environments.items()},
            )

    # diagnostics

    def all_variables(self) -> dict[str, list[Variable]]:
        with self._lock:
            environment = self._current()
            return {
                "environment": [v.model_copy() for v in environment.variables] if environment is not None else [],
                "global": [Variable(key=k, value=v) for k, v in self._globals.items()],
                "session": [Variable(key=k, value=v) for k, v in self._session.items()],
            }

    def stats(self) -> VariableStats:
        variables = self.all_variables()
        return VariableStats(
            total_variables=sum(len(scope) for scope in variables.values()),
            environment_variables=len(variables["environment"]),
            global_variables=len(variables["global"]),
            session_variables=len(variables["session"]),
        )

    @staticmethod
    def is_valid_variable_name(name: str) -> bool:
        return VARIABLE_NAME_REGEX.match(name) is not None

    def _current(self) -> Environment | None:
        if self._current_id is None:
            return None
        return self._environments.get(self._current_id)

    def _require_current(self) -> Environment:
        environment = self._current()
        if environment is None:
            raise NoEnvironmentError("No current environment")
        return environment

    def _environment(self, environment_id: str | None, required: bool = True) -> Environment | None:
        if environment_id is not None:
            return self._get_environment(environment_id)
        return self._require_current() if required else self._current()

    def _get_environment(self, environment_id: str) -> Environment:
        try:
            return self._environments[environment_id]
        except KeyError:
            raise EnvironmentNotFoundError(f"Environment {environment_id} does not exist") from None
