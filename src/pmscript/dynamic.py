"""Dynamic variables: computed on every read, never stored in any scope."""

import random
import re
import uuid
from datetime import UTC, datetime

RANDOM_RANGE_REGEX = re.compile(r"random\(\s*([+-]?\d+)\s*,\s*([+-]?\d+)\s*\)")

DYNAMIC_NAMES = ("timestamp", "datetime", "date", "time", "uuid", "random", "randomint")


def resolve_dynamic(name: str) -> str | None:
    """Value of a dynamic variable, or None when name is not a dynamic variable."""
    now = datetime.now(UTC)
    lowered = name.strip().lower()

    match lowered:
        case "timestamp":
            return str(int(now.timestamp() * 1000))
        case "datetime":
            return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        case "date":
            return now.date().isoformat()
        case "time":
            return now.astimezone().strftime("%H:%M:%S")
        case "uuid":
            return str(uuid.uuid4())
        case "random":
            return str(random.random())
        case "randomint":
            return str(random.randrange(1000))

    range_match = RANDOM_RANGE_REGEX.fullmatch(lowered)
    if range_match:
        low, high = sorted(int(bound) for bound in range_match.groups())
        return str(random.randint(low, high))

    return None


def is_dynamic(name: str) -> bool:
    lowered = name.strip().lower()
    return lowered in DYNAMIC_NAMES or RANDOM_RANGE_REGEX.fullmatch(lowered) is not None
