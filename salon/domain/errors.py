"""Booking domain errors

Every failure a booking operation can report has its own type. Services raise
them, and the application maps each one to an HTTP status and a typed payload
(see ``salon.main``).
"""


class BookingError(Exception):
    """Base class for expected booking failures"""

    code = "booking_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Malformed input: missing service, invalid date, slot outside working hours"""

    code = "validation_error"
    status_code = 422


class NotFoundError(BookingError):
    code = "not_found"
    status_code = 404


class ConflictError(BookingError):
    """The slot was taken between reading availability and committing"""

    code = "conflict"
    status_code = 409


class InvalidStateError(BookingError):
    """Transition attempted from a status that does not permit it"""

    code = "invalid_state"
    status_code = 409


class RescheduleLimitExceeded(BookingError):
    code = "reschedule_limit_exceeded"
    status_code = 422
