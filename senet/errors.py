# Exception types raised by the Senet engine
class SenetError(Exception):
    """Base exception for Senet engine errors."""

    pass


class IllegalMoveError(SenetError):
    """Raised when a command references a move outside the current legal set.

    Always a caller bug or stale UI state; never corrected silently.
    """

    pass


class InvalidConfigError(SenetError):
    """Raised when ruleset values are outside their recognised range."""

    pass


class InvariantViolation(SenetError):
    """Raised when the engine detects an internal defect (non-recoverable)."""

    pass
