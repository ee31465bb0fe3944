class PmScriptError(Exception):
    pass


class VariableStoreError(PmScriptError):
    pass


class EnvironmentNotFoundError(VariableStoreError):
    pass


class NoEnvironmentError(VariableStoreError):
    pass


class CurrentEnvironmentError(VariableStoreError):
    pass


class ExtractionFailure(PmScriptError):
    """A single extraction rule could not be applied."""


class SandboxError(PmScriptError):
    """The sandbox itself could not be set up."""


class ScriptStateError(SandboxError):
    """A script run left state that cannot be read back."""
