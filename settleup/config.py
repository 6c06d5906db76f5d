import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; settleup/.env remains a fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


DEFAULT_RATE_API_URL = "https://api.exchangerate-api.com/v4/latest"


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _rate_cache_ttl_seconds() -> int:
    """
    Resolves the exchange-rate cache TTL in seconds.

    Preferred var:
      EXCHANGE_RATE_CACHE_TTL_SECONDS (seconds)

    Alias:
      EXCHANGE_RATE_CACHE_TTL_HOURS (hours)
    """
    if os.getenv("EXCHANGE_RATE_CACHE_TTL_SECONDS"):
        return _parse_int_env("EXCHANGE_RATE_CACHE_TTL_SECONDS", default=86400)

    if os.getenv("EXCHANGE_RATE_CACHE_TTL_HOURS"):
        hours = _parse_int_env("EXCHANGE_RATE_CACHE_TTL_HOURS", default=24)
        return hours * 3600

    return 86400


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        default="change-me-in-production",
    )

    JSON_SORT_KEYS: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO").upper()

    # Base currency used when a request does not name one.
    DEFAULT_CURRENCY: str = _first_non_empty_env("DEFAULT_CURRENCY", default="USD").upper()

    # Exchange rate source. The fetcher requests {EXCHANGE_RATE_API_URL}/{base}.
    EXCHANGE_RATE_API_URL: str = _first_non_empty_env(
        "EXCHANGE_RATE_API_URL",
        default=DEFAULT_RATE_API_URL,
    ).rstrip("/")
    EXCHANGE_RATE_TIMEOUT_SECONDS: int = _parse_int_env(
        "EXCHANGE_RATE_TIMEOUT_SECONDS", default=10
    )
    EXCHANGE_RATE_CACHE_TTL_SECONDS: int = _rate_cache_ttl_seconds()  # default: 24 h


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG").upper()


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # Tests inject their own fetcher; this URL must never be reached.
    EXCHANGE_RATE_API_URL: str = "http://rates.invalid/v4/latest"
    EXCHANGE_RATE_TIMEOUT_SECONDS: int = 1


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )
    if not str(app.config.get("EXCHANGE_RATE_API_URL", "")).startswith("https://"):
        raise ValueError(
            "EXCHANGE_RATE_API_URL must be an https:// URL in production."
        )
    if app.config.get("EXCHANGE_RATE_CACHE_TTL_SECONDS", 0) <= 0:
        raise ValueError(
            "EXCHANGE_RATE_CACHE_TTL_SECONDS must be a positive number of seconds."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from settleup.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}


def active_config_name() -> str:
    """Config name from FLASK_ENV; development when the variable is unset or blank."""
    return os.getenv("FLASK_ENV", "").strip() or "development"
