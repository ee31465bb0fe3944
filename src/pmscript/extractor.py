import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

import jmespath
import jmespath.exceptions
from pydantic import ValidationError
from pmscript_models import ExtractionError, ExtractionReport, ExtractionRule, ExtractionSource, ExtractionType, ResponseData

from .exceptions import ExtractionFailure, VariableStoreError
from .store import VariableStore

logger = logging.getLogger(__name__)

# a body path containing any of these is a JMESPath expression rather than a dotted path
JMESPATH_SYNTAX_REGEX = re.compile(r"[\[\]|*?()@{}`&!<>=]")
INDEX_REGEX = re.compile(r"-?\d+")
FALSY_TEXT = frozenset({"", "false", "0"})


def to_text(value: Any) -> str:
    """Render a JSON value the way scripts see it as a string."""
    match value:
        case bool():
            return "true" if value else "false"
        case float() if value.is_integer():
            return str(int(value))
        case dict() | list():
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        case None:
            return "null"
        case _:
            return str(value)


def convert(value: Any, type_: ExtractionType) -> str:
    match type_:
        case ExtractionType.STRING:
            return to_text(value)

        case ExtractionType.NUMBER:
            if isinstance(value, bool):
                return "1" if value else "0"
            if isinstance(value, int | float):
                number = float(value)
            elif isinstance(value, str) and value.strip():
                try:
                    number = float(value.strip())
                except ValueError:
                    raise ExtractionFailure(f"Cannot convert {value!r} to a number") from None
            else:
                raise ExtractionFailure(f"Cannot convert {to_text(value)!r} to a number")
            if math.isnan(number):
                raise ExtractionFailure(f"Cannot convert {value!r} to a number")
            return to_text(number)

        case ExtractionType.BOOLEAN:
            if isinstance(value, str):
                return "false" if value.strip().lower() in FALSY_TEXT else "true"
            return "true" if value else "false"

    raise ExtractionFailure(f"Unknown extraction type {type_!r}")


def walk_dotted_path(data: Any, path: str) -> Any:
    """Follow a dotted path like 'data.items.0.id' through dicts and lists.

    Returns None when any segment is missing.
    """
    if not path:
        return data

    segments = path.split(".")
    if any(not segment for segment in segments):
        raise ExtractionFailure(f"Malformed path {path!r}")

    current = data
    for segment in segments:
        match current:
            case dict() if segment in current:
                current = current[segment]
            case list() if INDEX_REGEX.fullmatch(segment):
                index = int(segment)
                if not -len(current) <= index < len(current):
                    return None
                current = current[index]
            case _:
                return None
    return current


def search_path(data: Any, path: str) -> Any:
    if JMESPATH_SYNTAX_REGEX.search(path):
        try:
            return jmespath.search(path, data)
        except jmespath.exceptions.JMESPathError as e:
            raise ExtractionFailure(f"Malformed path {path!r}: {str(e)}") from None
    return walk_dotted_path(data, path)


class ResponseExtractor:
    """Derives variables from a completed HTTP exchange and writes them into the store."""

    def __init__(self, store: VariableStore):
        self.store = store

    def extract(self, response: ResponseData, rules: Iterable[ExtractionRule | Mapping[str, Any]]) -> ExtractionReport:
        """Apply every rule in order. Failures are per rule and never stop the remaining rules."""
        report = ExtractionReport()

        for item in rules:
            try:
                rule = item if isinstance(item, ExtractionRule) else ExtractionRule.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Invalid extraction rule {dict(item).get('name')!r}: {str(e)}")
                report.errors.append(ExtractionError(rule=dict(item), message=f"Invalid extraction rule: {str(e)}"))
                continue

            try:
                found = self.locate(response, rule)
                if found is None:
                    logger.debug(f"Nothing to extract for {rule.name} from {rule.source} {rule.path!r}")
                    continue

                value = convert(found, rule.type)
                self.store.set(rule.target, rule.name, value)
            except (ExtractionFailure, VariableStoreError) as e:
                logger.warning(f"Error extracting {rule.name}: {str(e)}")
                report.errors.append(ExtractionError(rule=rule, message=str(e)))
                continue

            report.extracted[rule.name] = value
            logger.info(f"Extracted {rule.target} {rule.name} = {value}")

        return report

    @classmethod
    def locate(cls, response: ResponseData, rule: ExtractionRule) -> Any:
        match rule.source:
            case ExtractionSource.HEADER:
                if not rule.path:
                    raise ExtractionFailure("Header name is empty")
                return response.header(rule.path)
            case ExtractionSource.BODY:
                return cls._locate_in_body(response.data, rule)
            case ExtractionSource.COOKIE:
                return cls._locate_cookie(response, rule.path)
        raise ExtractionFailure(f"Unknown extraction source {rule.source!r}")

    @staticmethod
    def _locate_in_body(data: Any, rule: ExtractionRule) -> Any:
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")

        if not isinstance(data, str):
            return search_path(data, rule.path)

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            if rule.regex is None:
                raise ExtractionFailure("Response body is not valid JSON and no regex is configured") from None

            match = re.search(rule.regex, data)
            if match is None:
                return None
            return match.group(1) if match.groups() else match.group(0)

        return search_path(parsed, rule.path)

    @staticmethod
    def _locate_cookie(response: ResponseData, name: str) -> str | None:
        if not name:
            raise ExtractionFailure("Cookie name is empty")

        set_cookie = response.header("set-cookie")
        if set_cookie is None:
            return None

        match = re.search(rf"(?:^|\n|,\s*){re.escape(name)}=([^;\n]*)", set_cookie)
        return match.group(1) if match else None
