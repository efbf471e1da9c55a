"""
Error types raised by the carving pipeline.

Caller mistakes (bad resolution, degenerate bounding box, malformed masks)
are InvalidInput. Calling an operation before its prerequisites ran is a
PreconditionViolation.
"""


class CarvingError(Exception):
    """Base class for all space carving failures."""


class InvalidInput(CarvingError, ValueError):
    """Input data is malformed or geometrically degenerate."""


class PreconditionViolation(CarvingError, RuntimeError):
    """An operation was invoked before the state it depends on exists."""
