import pytest
from pmscript_models import ResponseData

from pmscript import ScriptingHost, Settings, VariableStore


@pytest.fixture
def store():
    return VariableStore()


@pytest.fixture
def host():
    return ScriptingHost(Settings(script_timeout=1.0))


@pytest.fixture
def make_response():
    """Factory for ResponseData as the HTTP client would hand it over."""

    def _make_response(data=None, status: int = 200, headers: dict | None = None, response_time: float = 12.5):
        return ResponseData(data=data, headers=headers or {}, status=status, response_time=response_time)

    return _make_response
