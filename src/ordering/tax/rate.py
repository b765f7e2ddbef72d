"""Tax jurisdiction rate table (CQRS aggregate).

One row per region code. Rows are written only through administrative
configuration (see ``configuration.py``) and are read-only to checkout. A
disabled row charges no tax; a region without a row falls through to the
static fallback table and finally to zero.
"""

import re
from datetime import UTC, datetime
from decimal import Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String

from ordering.domain import ordering
from ordering.tax.events import TaxRateConfigured

_REGION_CODE = re.compile(r"^[A-Z]{2}$")


def normalize_region_code(region_code):
    return (region_code or "").strip().upper()


def is_valid_region_code(region_code) -> bool:
    return bool(_REGION_CODE.match(normalize_region_code(region_code)))


@ordering.aggregate
class TaxJurisdictionRate:
    region_code = String(required=True, max_length=2)
    region_name = String(max_length=100)
    rate = Float(required=True, min_value=0.0, max_value=100.0)  # percentage
    enabled = Boolean(default=True)
    notes = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def region_code_must_be_two_letters(self):
        if not _REGION_CODE.match(self.region_code or ""):
            raise ValidationError({"region_code": [f"Invalid region code: {self.region_code}"]})

    @classmethod
    def create(cls, region_code, rate, enabled=True, region_name=None, notes=None):
        now = datetime.now(UTC)
        record = cls(
            region_code=normalize_region_code(region_code),
            region_name=region_name,
            rate=rate,
            enabled=enabled,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        record._raise_configured()
        return record

    def reconfigure(self, rate, enabled, region_name=None, notes=None):
        self.rate = rate
        self.enabled = enabled
        if region_name is not None:
            self.region_name = region_name
        if notes is not None:
            self.notes = notes
        self.updated_at = datetime.now(UTC)
        self._raise_configured()

    @property
    def effective_rate(self) -> Decimal:
        """The percentage checkout should charge: zero when the row is disabled."""
        if not self.enabled:
            return Decimal("0")
        return Decimal(str(self.rate))

    def _raise_configured(self):
        self.raise_(
            TaxRateConfigured(
                tax_rate_id=str(self.id),
                region_code=self.region_code,
                rate=self.rate,
                enabled=self.enabled,
            )
        )


@ordering.repository(part_of=TaxJurisdictionRate)
class TaxJurisdictionRateRepository:
    def find_by_region(self, region_code):
        """Return the row for a region code, or None when the region is not configured."""
        results = self._dao.query.filter(region_code=normalize_region_code(region_code)).all().items
        return results[0] if results else None
