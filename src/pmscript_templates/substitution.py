"""Generic traversal of nested request definitions."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from .exceptions import TemplatesError
from .expressions import has_placeholders


def _contains_placeholder(obj: Any) -> bool:
    match obj:
        case str():
            return has_placeholders(obj)
        case dict():
            return any(_contains_placeholder(value) for value in obj.values())
        case list() | tuple():
            return any(_contains_placeholder(item) for item in obj)
        case BaseModel():
            return _contains_placeholder(obj.model_dump(mode="python"))
        case _:
            return False


def walk(obj: Any, substitute: Callable[[str], Any]) -> Any:
    """Apply substitute to every string leaf of an arbitrary nested object.

    Dict keys and non-string leaves are left untouched. Pydantic models are
    dumped, walked and validated back into the same model class.
    """
    match obj:
        case str():
            return substitute(obj)
        case dict():
            return {key: walk(value, substitute) for key, value in obj.items()}
        case list():
            return [walk(item, substitute) for item in obj]
        case tuple():
            return tuple(walk(item, substitute) for item in obj)
        case BaseModel():
            if not _contains_placeholder(obj):
                return obj

            processed = walk(obj.model_dump(mode="python"), substitute)
            try:
                return obj.__class__.model_validate(processed)
            except ValidationError as e:
                raise TemplatesError(f"Substituted {obj.__class__.__name__} is no longer valid: {e}") from None
        case _:
            return obj
