from .exceptions import TemplatesError
from .expressions import Placeholder, find_placeholders, has_placeholders, placeholder_names
from .substitution import walk

__all__ = [
    "walk",
    "find_placeholders",
    "has_placeholders",
    "placeholder_names",
    "Placeholder",
    "TemplatesError",
]
