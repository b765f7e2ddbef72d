"""Tax rate administration: command and handler.

Upserts by region code so the table never holds two rows for one region.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.tax.rate import TaxJurisdictionRate, is_valid_region_code

logger = structlog.get_logger(__name__)


@ordering.command(part_of="TaxJurisdictionRate")
class ConfigureTaxRate:
    region_code = String(required=True, max_length=2)
    rate = Float(required=True, min_value=0.0, max_value=100.0)
    enabled = Boolean(default=True)
    region_name = String(max_length=100)
    notes = String(max_length=500)


@ordering.command_handler(part_of=TaxJurisdictionRate)
class ConfigureTaxRateHandler:
    @handle(ConfigureTaxRate)
    def configure_tax_rate(self, command):
        if not is_valid_region_code(command.region_code):
            raise ValidationError({"region_code": ["Region code must be two letters (e.g. CA, NY)"]})

        repo = current_domain.repository_for(TaxJurisdictionRate)
        record = repo.find_by_region(command.region_code)
        enabled = True if command.enabled is None else command.enabled

        if record is None:
            record = TaxJurisdictionRate.create(
                region_code=command.region_code,
                rate=command.rate,
                enabled=enabled,
                region_name=command.region_name,
                notes=command.notes,
            )
        else:
            record.reconfigure(
                rate=command.rate,
                enabled=enabled,
                region_name=command.region_name,
                notes=command.notes,
            )

        repo.add(record)
        logger.info(
            "Tax rate configured",
            region_code=record.region_code,
            rate=record.rate,
            enabled=record.enabled,
        )
        return str(record.id)
