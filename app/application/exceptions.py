from __future__ import annotations

from typing import Any


class BookingError(RuntimeError):
    """Base class for allocation/booking failures returned to the immediate caller."""

    user_message = "The appointment could not be booked."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class PastDateError(BookingError):
    """Raised when the booking target lies in the past."""

    user_message = "Appointments cannot be booked in the past."


class SlotTakenError(BookingError):
    """Raised when another caller won the atomic insert for the same slot."""

    user_message = "Sorry, that slot is no longer available. Please choose another time."


class ClosedDayError(BookingError):
    """Raised when the date is excluded by closed week-days or a closed date."""

    user_message = "We are closed on the selected date."


class OutOfRangeError(BookingError):
    """Raised when the date is beyond the booking horizon or the hour is outside business hours."""

    user_message = "The selected date or hour is outside the bookable range."


class NotFoundError(BookingError):
    """Raised when operating on an appointment that does not exist."""

    user_message = "Appointment not found."


class PartialBookingError(BookingError):
    """Raised when the second leg of a double booking fails after the first succeeded."""

    user_message = "Only the first of the two appointments could be booked."

    def __init__(self, booked: Any, failed_request: Any, cause: BookingError) -> None:
        super().__init__(
            f"First appointment {booked.id} booked for {booked.customer_name}; "
            f"second appointment failed: {cause.detail}"
        )
        self.booked = booked
        self.failed_request = failed_request
        self.cause = cause


class SendFailure(RuntimeError):
    """Raised by messaging adapters when the transport rejects or fails a send."""

    def __init__(self, recipient_id: str, reason: str) -> None:
        super().__init__(f"Send to {recipient_id} failed: {reason}")
        self.recipient_id = recipient_id
        self.reason = reason
