from .pm import PmBinding, SandboxState, extract_line_number
from .runtime import ScriptSandbox

__all__ = [
    "PmBinding",
    "SandboxState",
    "ScriptSandbox",
    "extract_line_number",
]
