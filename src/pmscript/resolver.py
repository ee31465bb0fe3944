import logging
from typing import Any

from pmscript_models import ResolveOptions, ResolveResult, UnresolvedVariable, VariableResolution
from pmscript_templates import find_placeholders, walk

from .store import VariableStore

logger = logging.getLogger(__name__)


class VariableResolver:
    """Interpolates {{name}} placeholders against a VariableStore.

    Every placeholder is looked up in priority order session > global >
    environment > dynamic. Unresolved placeholders are reported and, unless
    keep_unresolved is set, removed from the output. When a pass changed the
    text, the result is resolved again so that values may themselves contain
    placeholders; the number of passes is bounded by max_depth, which is what
    guarantees termination for self-referencing values.
    """

    def __init__(self, store: VariableStore, default_options: ResolveOptions | None = None):
        self.store = store
        self.default_options = default_options or ResolveOptions()

    def resolve(self, text: Any, options: ResolveOptions | None = None) -> ResolveResult:
        return self._resolve(text, options or self.default_options, depth=0)

    def resolve_object(self, obj: Any, options: ResolveOptions | None = None) -> Any:
        """Resolve every string leaf of a nested dict/list structure."""
        options = options or self.default_options
        return walk(obj, lambda text: self._resolve(text, options, depth=0).resolved)

    def _resolve(self, text: Any, options: ResolveOptions, depth: int) -> ResolveResult:
        if not isinstance(text, str) or not text or depth >= options.max_depth:
            return ResolveResult(resolved=text)

        variables: list[VariableResolution] = []
        unresolved: list[UnresolvedVariable] = []
        resolved = text

        for placeholder in find_placeholders(text):
            info = VariableResolution(name=placeholder.name, placeholder=placeholder.placeholder, position=placeholder.position)
            found = self.store.lookup(placeholder.name)

            if found is not None:
                value, source = found
                resolved = resolved.replace(placeholder.placeholder, value, 1)
                info.value = value
                info.source = source
            else:
                unresolved.append(UnresolvedVariable(name=placeholder.name, placeholder=placeholder.placeholder))
                logger.debug(f"Unresolved variable {placeholder.placeholder} at {placeholder.position}")
                if not options.keep_unresolved:
                    resolved = resolved.replace(placeholder.placeholder, "", 1)

            variables.append(info)

        if resolved != text:
            nested = self._resolve(resolved, options, depth=depth + 1)
            return ResolveResult(
                resolved=nested.resolved,
                variables=variables + nested.variables,
                unresolved=unresolved + nested.unresolved,
            )

        return ResolveResult(resolved=resolved, variables=variables, unresolved=unresolved)
