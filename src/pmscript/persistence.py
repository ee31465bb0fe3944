"""Persistence Store interface.

The host application owns storage; this core only reads and writes JSON-shaped
records by name through whatever object satisfies PersistenceStore.
"""

import copy
import threading
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PersistenceStore(Protocol):
    def read(self, name: str) -> Any | None: ...

    def write(self, name: str, data: Any) -> None: ...


class InMemoryPersistence:
    """Dict-backed PersistenceStore. Records are deep-copied in both directions."""

    def __init__(self, records: dict[str, Any] | None = None):
        self._lock = threading.Lock()
        self._records: dict[str, Any] = copy.deepcopy(records) if records else {}

    def read(self, name: str) -> Any | None:
        with self._lock:
            return copy.deepcopy(self._records.get(name))

    def write(self, name: str, data: Any) -> None:
        with self._lock:
            self._records[name] = copy.deepcopy(data)
