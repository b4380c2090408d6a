"""Exceptions raised by the calculator."""


class CalculationError(Exception):
    """Base exception for failed computations.

    ``str(exc)`` is the descriptive failure shown to the user.
    """

    pass


class TimelineError(CalculationError):
    """The event timeline is malformed"""

    pass


class InvalidParameterError(CalculationError, ValueError):
    """A loan or event parameter is out of range"""

    pass


class TemporalInconsistencyError(CalculationError):
    """A timeline event is dated before the day being processed"""

    pass


class ScheduleExhaustedError(CalculationError):
    """The projected schedule ran out before the loan was paid off"""

    pass
