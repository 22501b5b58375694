"""
PhageCompare Errors
Exception taxonomy shared by every analysis module

Version: 1.0.0
License: MIT
"""


class PhageCompareError(Exception):
    """Base class for all engine errors"""


class InvalidParameter(PhageCompareError, ValueError):
    """A caller-supplied parameter is outside its valid range (k <= 0, window <= 0, ...)"""


class IncompatibleSignatures(PhageCompareError, ValueError):
    """Two MinHash signatures come from different (k, num_hashes, canonical) families"""


class Unavailable(PhageCompareError):
    """A MinHash signature could not be produced (backend missing or sequence shorter than k)"""


class InsufficientData(PhageCompareError):
    """Not enough data for an analysis; public entry points return empty results instead"""


class Cancelled(PhageCompareError):
    """Raised at a checkpoint once the caller's CancelToken has been triggered"""


def require_positive(name, value):
    if value is None or value <= 0:
        raise InvalidParameter(f"{name} must be a positive integer, got {value!r}")
    return value


def require_fraction(name, value):
    if value is None or not 0.0 <= value <= 1.0:
        raise InvalidParameter(f"{name} must be within [0, 1], got {value!r}")
    return value
