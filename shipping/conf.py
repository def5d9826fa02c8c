from dataclasses import dataclass, field
from typing import Dict

from django.conf import settings

from .codes import CodeMapping, DEFAULT_PRODUCT_CODE_MAP, load_code_map

PLACEHOLDER_KEYS = ("", "YOUR_PUBLIC_KEY_HERE", "YOUR_SECRET_KEY_HERE")


@dataclass(frozen=True)
class SenditConfig:
    base_url: str = "https://app.sendit.ma/api/v1/"
    public_key: str = ""
    secret_key: str = ""
    pickup_district_id: int = 1
    fallback_district_id: int = 46
    allow_open: bool = True
    allow_try: bool = True
    option_exchange: bool = False
    products_from_stock: bool = True
    packaging_id: int = 8
    code_map: Dict[str, CodeMapping] = field(default_factory=dict)
    timeout: float = 15.0
    max_retries: int = 2
    retry_backoff: float = 0.5
    token_ttl: int = 3600

    @property
    def is_configured(self) -> bool:
        return (
            self.public_key not in PLACEHOLDER_KEYS
            and self.secret_key not in PLACEHOLDER_KEYS
        )


def get_sendit_config() -> SenditConfig:
    """Build the courier config from Django settings."""
    return SenditConfig(
        base_url=settings.SENDIT_BASE_URL,
        public_key=settings.SENDIT_PUBLIC_KEY,
        secret_key=settings.SENDIT_SECRET_KEY,
        pickup_district_id=settings.SENDIT_PICKUP_DISTRICT_ID,
        fallback_district_id=settings.SENDIT_FALLBACK_DISTRICT_ID,
        allow_open=settings.SENDIT_ALLOW_OPEN,
        allow_try=settings.SENDIT_ALLOW_TRY,
        option_exchange=settings.SENDIT_OPTION_EXCHANGE,
        products_from_stock=settings.SENDIT_PRODUCTS_FROM_STOCK,
        packaging_id=settings.SENDIT_PACKAGING_ID,
        code_map=load_code_map(
            getattr(settings, "SENDIT_PRODUCT_CODE_MAP", None) or DEFAULT_PRODUCT_CODE_MAP
        ),
        timeout=settings.SENDIT_TIMEOUT,
        max_retries=settings.SENDIT_MAX_RETRIES,
        retry_backoff=settings.SENDIT_RETRY_BACKOFF,
        token_ttl=settings.SENDIT_TOKEN_TTL,
    )
