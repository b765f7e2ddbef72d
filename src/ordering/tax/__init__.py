"""Tax rate provider factory.

Provides get_tax_rate_provider() / set_tax_rate_provider() to swap the rate
source. The default chains the configured rate table with the static
fallback table from ``TAX_FALLBACK_RATES``.
"""

from ordering import settings
from ordering.tax.provider import (
    PrecedenceTaxRateProvider,
    StaticTaxRateProvider,
    StoredTaxRateProvider,
    TaxRateProvider,
)

_current_provider: TaxRateProvider | None = None


def get_tax_rate_provider() -> TaxRateProvider:
    """Return the active tax rate provider, building the default chain on first use."""
    global _current_provider
    if _current_provider is None:
        _current_provider = PrecedenceTaxRateProvider(
            primary=StoredTaxRateProvider(),
            fallback=StaticTaxRateProvider(settings.tax_fallback_rates()),
            allow_fallback_on_failure=settings.tax_allow_fallback(),
        )
    return _current_provider


def set_tax_rate_provider(provider: TaxRateProvider) -> None:
    """Override the active tax rate provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_tax_rate_provider() -> None:
    """Reset to the default provider chain."""
    global _current_provider
    _current_provider = None
