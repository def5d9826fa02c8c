"""
Django settings for padelshop project.

Secrets and per-environment values come from environment variables,
loaded from a local ``.env`` file when present.
"""

import os
from pathlib import Path

from django.utils.translation import gettext_lazy as _
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-change-me")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "shipping.apps.ShippingConfig",
    "orders.apps.OrdersConfig",
    "payment.apps.PaymentConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.locale.LocaleMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "padelshop.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "padelshop.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Internationalization
LANGUAGE_CODE = "fr"
LANGUAGES = [
    ("en", _("English")),
    ("fr", _("French")),
    ("ar", _("Arabic")),
]
LOCALE_PATHS = [BASE_DIR / "locale"]
TIME_ZONE = "Africa/Casablanca"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "static"

# E-mail
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = env_bool("EMAIL_USE_TLS", True)
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "orders@localhost")
SHOP_NAME = os.getenv("SHOP_NAME", "Padel Shop")

# Redis
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "1"))

# Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", f"redis://{REDIS_HOST}:{REDIS_PORT}/0")
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TIMEZONE = TIME_ZONE

# Sendit courier
SENDIT_BASE_URL = os.getenv("SENDIT_BASE_URL", "https://app.sendit.ma/api/v1/")
SENDIT_PUBLIC_KEY = os.getenv("SENDIT_PUBLIC_KEY", "")
SENDIT_SECRET_KEY = os.getenv("SENDIT_SECRET_KEY", "")
SENDIT_PICKUP_DISTRICT_ID = int(os.getenv("SENDIT_PICKUP_DISTRICT_ID", "1"))
SENDIT_FALLBACK_DISTRICT_ID = int(os.getenv("SENDIT_FALLBACK_DISTRICT_ID", "46"))
SENDIT_ALLOW_OPEN = env_bool("SENDIT_ALLOW_OPEN", True)
SENDIT_ALLOW_TRY = env_bool("SENDIT_ALLOW_TRY", True)
SENDIT_OPTION_EXCHANGE = env_bool("SENDIT_OPTION_EXCHANGE", False)
SENDIT_PRODUCTS_FROM_STOCK = env_bool("SENDIT_PRODUCTS_FROM_STOCK", True)
SENDIT_PACKAGING_ID = int(os.getenv("SENDIT_PACKAGING_ID", "8"))
SENDIT_TIMEOUT = float(os.getenv("SENDIT_TIMEOUT", "15"))
SENDIT_MAX_RETRIES = int(os.getenv("SENDIT_MAX_RETRIES", "2"))
SENDIT_RETRY_BACKOFF = float(os.getenv("SENDIT_RETRY_BACKOFF", "0.5"))
SENDIT_TOKEN_TTL = int(os.getenv("SENDIT_TOKEN_TTL", "3600"))
SENDIT_DISTRICTS_CACHE_KEY = "sendit:districts"
SENDIT_DISTRICTS_CACHE_VERSION = "2"
SENDIT_DISTRICTS_CACHE_TTL = 7 * 24 * 3600
# SENDIT_PRODUCT_CODE_MAP overrides shipping.codes.DEFAULT_PRODUCT_CODE_MAP when set

# PayPal
PAYPAL_USE_SANDBOX = env_bool("PAYPAL_USE_SANDBOX", True)
PAYPAL_CLIENT_ID_LIVE = os.getenv("PAYPAL_CLIENT_ID_LIVE", "")
PAYPAL_CLIENT_ID_SANDBOX = os.getenv("PAYPAL_CLIENT_ID_SANDBOX", "")
PAYPAL_SECRET_LIVE = os.getenv("PAYPAL_SECRET_LIVE", "")
PAYPAL_SECRET_SANDBOX = os.getenv("PAYPAL_SECRET_SANDBOX", "")
PAYPAL_MAD_TO_USD_RATE = os.getenv("PAYPAL_MAD_TO_USD_RATE", "0.1")
PAYPAL_TIMEOUT = float(os.getenv("PAYPAL_TIMEOUT", "15"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "verbose"},
    },
    "root": {"handlers": ["console"], "level": "INFO"},
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "httpx": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
