"""Storefront error taxonomy.

Input problems subclass Protean's ``ValidationError`` so they surface as 400s
through the framework's own exception handlers. Everything else derives from
``StorefrontError``, which carries the HTTP status and the message that is
safe to show to a shopper.
"""

from protean.exceptions import ValidationError

GENERIC_FAILURE_MESSAGE = "Something went wrong, please try again"


# ---------------------------------------------------------------------------
# Input validation (400)
# ---------------------------------------------------------------------------
class EmptyCartError(ValidationError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__({"items": [message]})


class InvalidContactError(ValidationError):
    def __init__(self, field: str = "billing_email", message: str = "A valid email address is required"):
        super().__init__({field: [message]})


class ReconciliationError(ValidationError):
    """Embedded checkout amounts disagree with what the processor collected."""

    def __init__(self, session_id: str, details: dict):
        self.session_id = session_id
        self.details = details
        super().__init__({"amount": [f"Checkout amounts do not reconcile for session {session_id}"]})


# ---------------------------------------------------------------------------
# Everything else
# ---------------------------------------------------------------------------
class StorefrontError(Exception):
    status_code = 500
    public_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str | None = None):
        self.message = message or self.public_message
        super().__init__(self.message)


class AuthenticationError(StorefrontError):
    status_code = 401
    public_message = "Unauthorized"


class InvalidSignatureError(AuthenticationError):
    public_message = "Invalid webhook signature"


class NotFoundError(StorefrontError):
    status_code = 404
    public_message = "Not found"


class GiftCardNotFoundError(NotFoundError):
    public_message = "Gift card not found"


class SubscriptionNotFoundError(NotFoundError):
    public_message = "Subscription not found"


class ConflictError(StorefrontError):
    status_code = 409
    public_message = "Conflict"


class GiftCardInactiveError(ConflictError):
    public_message = "Gift card is no longer active"


class InsufficientBalanceError(StorefrontError):
    """Strict redemption asked for more than the card holds. Nothing was deducted."""

    status_code = 409
    public_message = "Insufficient gift card balance"

    def __init__(self, code: str, requested: float, remaining_balance: float):
        self.code = code
        self.requested = requested
        self.remaining_balance = remaining_balance
        self.deducted = 0.0
        super().__init__()


class ExternalServiceError(StorefrontError):
    """The payment processor (or another remote dependency) failed.

    The underlying detail is kept on the exception for logging only.
    """

    def __init__(self, service: str, detail: str = ""):
        self.service = service
        self.detail = detail
        super().__init__()


class ConfigurationError(StorefrontError):
    def __init__(self, setting: str):
        self.setting = setting
        super().__init__()
