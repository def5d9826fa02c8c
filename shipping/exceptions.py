from django.utils.translation import gettext_lazy as _

# Courier codes that mean "product unknown in stock" / "quantity too low"
STOCK_ERROR_CODES = (251, 252)

STOCK_ERROR_KEYWORDS = ("produit", "product", "stock", "quantité", "quantite", "quantity")

USER_MESSAGES = {
    250: _("The product format is incorrect."),
    251: _("Some products do not exist in the courier stock."),
    252: _("The available quantity is insufficient for some products."),
    401: _("Unauthorized access, check the courier credentials."),
    403: _("Missing permissions for this courier operation."),
    404: _("Courier resource not found."),
    422: _("The data sent to the courier is invalid."),
    500: _("The courier reported a server error."),
}


class ShippingError(Exception):
    """Base class for everything the shipping core raises."""


class ValidationError(ShippingError):
    """
    A field of the order cannot be sent to the courier.
    Raised before any network call and never retried.
    """

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class TransportError(ShippingError):
    """Network failure, timeout or 5xx that survived the transport retries."""


class SenditAPIError(ShippingError):
    """The courier answered but refused the request."""

    def __init__(self, message, code=None, status_code=None, data=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.data = data or {}

    @property
    def user_message(self):
        return USER_MESSAGES.get(self.code) or USER_MESSAGES.get(self.status_code)

    def is_stock_error(self) -> bool:
        # the courier is inconsistent: check both the code and the wording
        if self.code in STOCK_ERROR_CODES:
            return True
        text = (self.message or "").lower()
        return any(word in text for word in STOCK_ERROR_KEYWORDS)


class AuthenticationError(SenditAPIError):
    """Login refused or token missing from the login response."""


class StockError(SenditAPIError):
    """Stock failure at the last fallback level."""

    def __init__(self, message, code=None, status_code=None, data=None, attempts=0):
        super().__init__(message, code=code, status_code=status_code, data=data)
        self.attempts = attempts


class TerminalDeliveryError(SenditAPIError):
    """Non-stock courier failure. Never retried."""
