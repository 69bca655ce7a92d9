"""
Booking engine errors.

Every error here is a normal, recoverable outcome of a booking attempt. The
HTTP layer maps them to responses through ``status_code`` and ``code``.
"""


class BookingError(Exception):
    """Base exception for booking flow errors."""

    code = "booking_error"
    status_code = 400
    default_message = "Booking failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class IncompleteSelection(BookingError):
    code = "incomplete_selection"
    status_code = 400
    default_message = "Please complete all booking steps before confirming"

    def __init__(self, missing: list[str] | None = None, message: str | None = None) -> None:
        self.missing = missing or []
        if message is None and self.missing:
            message = f"Missing selection: {', '.join(self.missing)}"
        super().__init__(message)


class OwnershipViolation(BookingError):
    code = "ownership_violation"
    status_code = 403
    default_message = "Unauthorized to book appointment for this pet"


class DailyLimitExceeded(BookingError):
    code = "daily_limit_exceeded"
    status_code = 409
    default_message = (
        "You have reached the daily appointment limit of 5 appointments. "
        "Please try booking for another date."
    )


class VeterinarianUnavailable(BookingError):
    code = "veterinarian_unavailable"
    status_code = 409
    default_message = "Selected veterinarian is not available"


class SlotUnavailable(BookingError):
    code = "slot_unavailable"
    status_code = 409
    default_message = "Selected time slot is not available"


class RepositoryError(BookingError):
    code = "repository_error"
    status_code = 503
    default_message = "Failed to create appointment"


class InvalidSelection(BookingError):
    """A value offered to the wizard is not acceptable for the current step."""

    code = "invalid_selection"
    status_code = 400
    default_message = "Invalid selection"


class InvalidTransition(BookingError):
    code = "invalid_transition"
    status_code = 409
    default_message = "That action is not allowed at this booking step"


class NotFound(BookingError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"
