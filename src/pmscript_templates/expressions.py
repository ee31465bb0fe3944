import re
from collections.abc import Iterator
from typing import NamedTuple

PLACEHOLDER_OPEN = "{{"
PLACEHOLDER_CLOSE = "}}"

PLACEHOLDER_PATTERN = r"(?P<open>\{\{)(?P<name>.+?)(?P<close>\}\})"
PLACEHOLDER_REGEX = re.compile(PLACEHOLDER_PATTERN, re.DOTALL)


class Placeholder(NamedTuple):
    name: str
    placeholder: str
    position: int


def find_placeholders(text: str) -> Iterator[Placeholder]:
    """Yield every placeholder in text, left to right, with its name trimmed."""
    for match in PLACEHOLDER_REGEX.finditer(text):
        yield Placeholder(
            name=match.group("name").strip(),
            placeholder=match.group(0),
            position=match.start(),
        )


def has_placeholders(text: str) -> bool:
    return PLACEHOLDER_REGEX.search(text) is not None


def placeholder_names(text: str) -> list[str]:
    """Distinct placeholder names in order of first appearance."""
    return list(dict.fromkeys(p.name for p in find_placeholders(text)))
