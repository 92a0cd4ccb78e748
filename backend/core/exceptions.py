"""Domain errors raised by core services.

Routers translate these into HTTP responses; anything that is not a
BarangayError ends up in the global 500 handler.
"""


class BarangayError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BarangayError):
    status_code = 400


class NotFoundError(BarangayError):
    status_code = 404


class ConflictError(BarangayError):
    status_code = 409


class InsufficientStockError(ValidationError):
    def __init__(self, available: int, requested: int):
        super().__init__("Insufficient quantity")
        self.available = available
        self.requested = requested


class InvalidRecipientError(ValidationError):
    pass
