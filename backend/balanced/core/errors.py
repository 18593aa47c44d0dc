class BookingError(Exception):
    """Base class for errors the booking flows report back to the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    pass


class SlotUnavailable(BookingError):
    def __init__(self, message: str = "This time slot is no longer available. Please choose another time."):
        super().__init__(message)


class PaymentNotConfirmed(BookingError):
    def __init__(self, message: str = "Payment failed, please try again."):
        super().__init__(message)


class NotFound(BookingError):
    status_code = 404


class PaymentServiceError(BookingError):
    status_code = 502
