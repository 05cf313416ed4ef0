"""
Exception types raised by the SampleScope core.

Bad inputs follow the rest of the code base and surface as ``ValueError``
subclasses, so callers that already guard with ``except ValueError`` keep
working.
"""


class ConfigError(ValueError):
    """Malformed material definition, catalog or tuning parameter."""


class InvalidImageError(ValueError):
    """Image buffer is missing, unreadable or has zero area."""


class AnalysisCancelled(RuntimeError):
    """Raised between pipeline stages when the run's token was cancelled."""
