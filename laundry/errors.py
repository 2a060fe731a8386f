# laundry/errors.py


class LaundryError(Exception):
    """Base class for errors raised by the service layer."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LaundryError):
    pass


class OrderValidationError(LaundryError):
    pass


class ConflictError(LaundryError):
    pass


class PersistenceError(LaundryError):
    """A write failed; the cause is logged, never shown to the caller."""
