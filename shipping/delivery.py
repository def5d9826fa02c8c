import logging

from . import payload as payload_builder
from .conf import SenditConfig
from .domain import DeliveryRequest, DeliveryResult, Order
from .exceptions import SenditAPIError, StockError, TerminalDeliveryError

logger = logging.getLogger(__name__)


class DeliveryOrchestrator:
    """
    Creates a courier delivery, walking the fallback chain on stock errors.

    Attempts are strictly sequential: each one reserves stock on the courier
    side, so the next level is only tried once the previous one failed.
    """

    def __init__(self, client):
        self.client = client

    def create(self, request: DeliveryRequest) -> DeliveryResult:
        levels = len(request.attempt_chain) or 1
        reference = request.payload.get("reference")

        for level in range(levels):
            payload = request.for_attempt(level)
            logger.info(
                "Creating delivery %s, attempt %s/%s (products=%s)",
                reference, level + 1, levels, payload.get("products"),
            )
            try:
                data = self.client.create_delivery(payload)
            except SenditAPIError as exc:
                if not exc.is_stock_error():
                    logger.error("Delivery %s refused: code=%s %s", reference, exc.code, exc.message)
                    raise TerminalDeliveryError(
                        exc.message, code=exc.code, status_code=exc.status_code, data=exc.data,
                    ) from exc

                if level + 1 < levels:
                    logger.warning(
                        "Stock error for %s at level %s (code=%s), trying fallback codes",
                        reference, level, exc.code,
                    )
                    continue

                logger.error("Stock exhausted for %s after %s attempts", reference, level + 1)
                raise StockError(
                    exc.message,
                    code=exc.code,
                    status_code=exc.status_code,
                    data=exc.data,
                    attempts=level + 1,
                ) from exc

            if level > 0:
                logger.info("Delivery %s created with fallback level %s", reference, level)
            return DeliveryResult(
                success=True,
                delivery_code=data["code"],
                tracking_code=data["code"],
                used_fallback=level > 0,
                label_url=data.get("labelUrl") or data.get("label_url"),
                attempts=level + 1,
                data=data,
            )


def create_delivery(order: Order, config: SenditConfig, client) -> DeliveryResult:
    """Validate, build and send. ``ValidationError`` is raised before any call."""
    request = payload_builder.build(order, config)
    return DeliveryOrchestrator(client).create(request)
