import logging
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

import httpx
from django.conf import settings

from shipping.domain import PaymentOutcome

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://api-m.sandbox.paypal.com"
LIVE_URL = "https://api-m.paypal.com"


class PayPalError(Exception):
    def __init__(self, message, status_code=None, data=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data or {}


@dataclass(frozen=True)
class PayPalConfig:
    client_id: str
    secret: str
    use_sandbox: bool = True
    mad_to_usd_rate: Decimal = Decimal("0.1")
    timeout: float = 15.0

    @property
    def base_url(self) -> str:
        return SANDBOX_URL if self.use_sandbox else LIVE_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.secret)


def get_paypal_config() -> PayPalConfig:
    sandbox = settings.PAYPAL_USE_SANDBOX
    return PayPalConfig(
        client_id=settings.PAYPAL_CLIENT_ID_SANDBOX if sandbox else settings.PAYPAL_CLIENT_ID_LIVE,
        secret=settings.PAYPAL_SECRET_SANDBOX if sandbox else settings.PAYPAL_SECRET_LIVE,
        use_sandbox=sandbox,
        mad_to_usd_rate=Decimal(str(settings.PAYPAL_MAD_TO_USD_RATE)),
        timeout=settings.PAYPAL_TIMEOUT,
    )


def mad_to_usd(amount, rate) -> Decimal:
    """Convert a dirham amount to dollars, rounded to the cent."""
    usd = Decimal(str(amount)) * Decimal(str(rate))
    return usd.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def funding_source(details: dict) -> str:
    source = details.get("payment_source") or {}
    if "card" in source:
        return "credit_card"
    if "paypal" in source:
        return "paypal_account"
    return "paypal"


class PayPalClient:
    def __init__(self, config: PayPalConfig = None, http: httpx.Client = None, clock=time.monotonic):
        self.config = config or get_paypal_config()
        self.http = http or httpx.Client(base_url=self.config.base_url, timeout=self.config.timeout)
        self._clock = clock
        self._token = None
        self._token_expiry = 0.0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.http.close()

    def access_token(self) -> str:
        if self._token and self._clock() < self._token_expiry:
            return self._token

        if not self.config.is_configured:
            raise PayPalError("PayPal credentials missing")

        response = self.http.post(
            "/v1/oauth2/token",
            auth=(self.config.client_id, self.config.secret),
            data={"grant_type": "client_credentials"},
        )
        if response.is_error:
            raise PayPalError(f"Auth failed: {response.status_code}", status_code=response.status_code)

        data = response.json()
        self._token = data["access_token"]
        # renew a minute early
        self._token_expiry = self._clock() + int(data.get("expires_in", 3600)) - 60
        return self._token

    def _post(self, path: str, payload: dict = None) -> dict:
        response = self.http.post(
            path,
            json=payload if payload is not None else {},
            headers={"Authorization": f"Bearer {self.access_token()}"},
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            logger.error("PayPal %s failed: %s %s", path, response.status_code, data)
            raise PayPalError(
                data.get("message") or f"PayPal request failed: {response.status_code}",
                status_code=response.status_code,
                data=data,
            )
        return data

    def create_order(self, amount_mad, item_count: int = 1, reference: str = "") -> dict:
        value = mad_to_usd(amount_mad, self.config.mad_to_usd_rate)
        if value <= 0:
            raise PayPalError(f"Invalid order amount: {amount_mad}")

        unit = {
            "amount": {"currency_code": "USD", "value": str(value)},
            "description": f"Order - {item_count} item(s)",
        }
        if reference:
            unit["reference_id"] = reference

        data = self._post(
            "/v2/checkout/orders",
            {
                "intent": "CAPTURE",
                "purchase_units": [unit],
                "application_context": {"shipping_preference": "NO_SHIPPING"},
            },
        )
        logger.info("PayPal order %s created for %s MAD (%s USD)", data.get("id"), amount_mad, value)
        return data

    def capture_order(self, order_id: str) -> PaymentOutcome:
        data = self._post(f"/v2/checkout/orders/{order_id}/capture")
        if data.get("status") != "COMPLETED":
            raise PayPalError(f"Capture not completed (status={data.get('status')})", data=data)

        captures = []
        for unit in data.get("purchase_units") or []:
            captures.extend((unit.get("payments") or {}).get("captures") or [])
        transaction_id = captures[0]["id"] if captures else data.get("id", "")

        outcome = PaymentOutcome(
            method="paypal",
            order_id=order_id,
            transaction_id=transaction_id,
            payer_id=(data.get("payer") or {}).get("payer_id", ""),
            funding_source=funding_source(data),
        )
        logger.info("PayPal order %s captured (transaction %s)", order_id, transaction_id)
        return outcome

    def add_tracking(self, transaction_id: str, tracking_number: str, carrier: str = "OTHER") -> dict:
        return self._post(
            "/v1/shipping/trackers-batch",
            {
                "trackers": [
                    {
                        "transaction_id": transaction_id,
                        "tracking_number": tracking_number,
                        "status": "SHIPPED",
                        "carrier": carrier,
                    }
                ]
            },
        )
