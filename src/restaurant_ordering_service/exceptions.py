"""Exception hierarchy for the ordering service.

Every error carries the HTTP status it maps to and a public message that is safe
to return to clients. Internal details stay in the logs.
"""


class OrderingServiceError(Exception):
    """Base error for the ordering service."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class InvalidToken(OrderingServiceError):
    """Identity token is missing, malformed, expired or badly signed."""

    status_code = 401
    public_message = "Unauthorized access"


class Forbidden(OrderingServiceError):
    """Caller is authenticated but lacks the required role or identity."""

    status_code = 403
    public_message = "Forbidden access"


class InvalidId(OrderingServiceError):
    """A resource identifier could not be parsed."""

    status_code = 400
    public_message = "Invalid identifier"

    def __init__(self, value: str) -> None:
        super().__init__(f"Malformed identifier: {value!r}")
        self.value = value


class NotFound(OrderingServiceError):
    """A referenced document does not exist."""

    status_code = 404
    public_message = "Not found"


class InvalidStatusTransition(OrderingServiceError):
    """A payment status change would move backwards."""

    status_code = 409
    public_message = "Invalid payment status transition"


class StoreFailure(OrderingServiceError):
    """The document store rejected or failed an operation."""

    status_code = 500
    public_message = "Store failure"


class UpstreamPaymentFailure(OrderingServiceError):
    """The payment authority rejected or failed a request."""

    status_code = 502
    public_message = "Payment authority error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        # Stripe messages are meant for the end user
        self.public_message = message


class PaymentAuthorityUnavailable(OrderingServiceError):
    """No payment authority is configured."""

    status_code = 503
    public_message = "Payment authority not configured"
