"""
Decentrust error taxonomy.

All errors are local and recoverable. Missing keys are not errors: the
exact backend answers ``None`` and the sketch backend answers an estimate.
"""


class DecentrustError(Exception):
    """Base class for all decentrust errors."""


class ConfigurationError(DecentrustError, ValueError):
    """Raised when a sketch or tracker is built from invalid parameters."""


class NumericBoundError(DecentrustError, ValueError):
    """Raised for an invalid trust delta or an unknown update direction."""


class UnsupportedOperationError(DecentrustError):
    """Raised when a backend cannot provide the requested operation."""
