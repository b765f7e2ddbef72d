"""Runtime settings for the storefront, read from environment variables.

Values are read on every call so tests (and long-running workers) pick up
changes to the environment without re-importing modules.
"""

import json
import os
from datetime import timedelta
from decimal import Decimal, InvalidOperation


def environment() -> str:
    return os.environ.get("PROTEAN_ENV", "development")


def is_production() -> bool:
    return environment() == "production"


def store_currency() -> str:
    return os.environ.get("STORE_CURRENCY", "USD").upper()


def catalogue_adapter() -> str:
    return os.environ.get("CATALOGUE_ADAPTER", "memory")


def catalogue_database_uri() -> str:
    return os.environ.get("CATALOGUE_DATABASE_URI", "sqlite:///catalogue.db")


def guest_session_max_age() -> timedelta:
    return timedelta(days=int(os.environ.get("GUEST_SESSION_MAX_AGE_DAYS", "30")))


def tax_allow_fallback() -> bool:
    return os.environ.get("TAX_ALLOW_FALLBACK", "false").lower() in ("1", "true", "yes")


def _rate_table(name: str) -> dict[str, Decimal]:
    raw = os.environ.get(name)
    if not raw:
        return {}

    try:
        table = json.loads(raw)
        return {str(key).strip(): Decimal(str(rate)) for key, rate in table.items()}
    except (ValueError, AttributeError, InvalidOperation) as exc:
        raise ValueError(f"{name} is not a valid JSON object of rates: {exc}") from exc


def tax_fallback_rates() -> dict[str, Decimal]:
    """Static fallback rate table, e.g. ``TAX_FALLBACK_RATES='{"CA": "7.25"}'``."""
    return {code.upper(): rate for code, rate in _rate_table("TAX_FALLBACK_RATES").items()}


def tax_category_rates() -> dict[str, Decimal]:
    """Per-category rates that override the region rate, e.g. ``{"books": "0"}``."""
    return {category.lower(): rate for category, rate in _rate_table("TAX_CATEGORY_RATES").items()}
