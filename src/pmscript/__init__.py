from .executor import ScriptExecutor
from .extractor import ResponseExtractor
from .history import TestHistory
from .host import ScriptingHost
from .http import response_data_from_httpx
from .persistence import InMemoryPersistence, PersistenceStore
from .resolver import VariableResolver
from .settings import Settings
from .store import VariableStore

__all__ = [
    "InMemoryPersistence",
    "PersistenceStore",
    "ResponseExtractor",
    "ScriptExecutor",
    "ScriptingHost",
    "Settings",
    "TestHistory",
    "VariableResolver",
    "VariableStore",
    "response_data_from_httpx",
]
