class RangeRoundError(Exception):
    """Base class for all rangeround errors."""


class ValidationError(RangeRoundError):
    """Input rejected before it reaches the engine."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class NoActiveProfileError(RangeRoundError):
    """A round can't start without a profile."""


class NotFoundError(RangeRoundError):
    """A round, course or profile is missing from the store."""
