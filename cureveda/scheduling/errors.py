"""Error taxonomy shared by the schedule store adapters, the merge engine and the lifecycle manager."""


class ScheduleError(Exception):
    """Base class for every failure the scheduling core reports."""

    code = 'schedule_error'

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ValidationError(ScheduleError):
    """Malformed input caught before any store call."""

    code = 'validation_error'


class InvalidTransitionError(ValidationError):
    """Lifecycle action requested on an appointment that cannot take it."""

    code = 'invalid_transition'


class NotFoundError(ScheduleError):
    code = 'not_found'


class ConflictError(ScheduleError):
    """Store-enforced uniqueness violation."""

    code = 'conflict'


class TransportError(ScheduleError):
    """Network, timeout or unexpected store failure. Safe to retry."""

    code = 'transport_error'


class InvariantViolation(ScheduleError):
    """A write would leave an accepted or postponed appointment without a final time."""

    code = 'invariant_violation'
