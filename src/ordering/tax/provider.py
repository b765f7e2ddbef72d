"""Tax rate provider port and its implementations.

Precedence for a region code:

    configured store rate  →  static fallback table  →  0

A disabled store row is an explicit decision and resolves to 0 without
consulting the fallback table. A store that cannot be read raises
``TaxUnavailable`` unless the fallback table is explicitly allowed to stand in
for it, in which case the substitution is logged.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from ordering.errors import TaxUnavailable
from ordering.tax.rate import TaxJurisdictionRate, normalize_region_code

logger = structlog.get_logger(__name__)

ZERO_RATE = Decimal("0")


class TaxRateProvider(ABC):
    """Abstract rate lookup keyed by region code."""

    @abstractmethod
    def rate_for(self, region_code: str) -> Decimal | None:
        """Return the percentage for ``region_code``, or None if the region is unknown."""
        ...


class StoredTaxRateProvider(TaxRateProvider):
    """Reads the administratively configured ``TaxJurisdictionRate`` rows."""

    def rate_for(self, region_code: str) -> Decimal | None:
        try:
            record = current_domain.repository_for(TaxJurisdictionRate).find_by_region(region_code)
        except Exception as exc:
            raise TaxUnavailable(f"Tax rate table unavailable: {exc}") from exc

        if record is None:
            return None
        return record.effective_rate


class StaticTaxRateProvider(TaxRateProvider):
    """A fixed in-process rate table."""

    def __init__(self, rates: dict | None = None) -> None:
        self.rates = {normalize_region_code(code): Decimal(str(rate)) for code, rate in (rates or {}).items()}

    def rate_for(self, region_code: str) -> Decimal | None:
        return self.rates.get(normalize_region_code(region_code))


class PrecedenceTaxRateProvider(TaxRateProvider):
    """Store first, then the static fallback table, then zero."""

    def __init__(
        self,
        primary: TaxRateProvider,
        fallback: TaxRateProvider,
        allow_fallback_on_failure: bool = False,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.allow_fallback_on_failure = allow_fallback_on_failure

    def rate_for(self, region_code: str) -> Decimal:
        code = normalize_region_code(region_code)
        try:
            rate = self.primary.rate_for(code)
        except TaxUnavailable as exc:
            if not self.allow_fallback_on_failure:
                raise
            logger.warning(
                "Tax rate table unavailable, using static fallback table",
                region_code=code,
                error=str(exc),
            )
            rate = None

        if rate is not None:
            return rate

        rate = self.fallback.rate_for(code)
        if rate is not None:
            return rate

        return ZERO_RATE
