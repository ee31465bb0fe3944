class TemplatesError(Exception):
    """An error walking a templated structure."""
