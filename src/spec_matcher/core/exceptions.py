"""
Exceptions raised by the matching core.

Both derive from ValueError so that callers which already guard their
parameter parsing with ``except ValueError`` keep working.
"""


class SpecMatcherError(ValueError):
    """Base class for all errors raised by spec_matcher."""


class ConfigurationError(SpecMatcherError):
    """Raised before any work starts when a parameter is out of range."""


class MalformedInputError(SpecMatcherError):
    """Raised when a peak or feature carries NaN / negative values."""
