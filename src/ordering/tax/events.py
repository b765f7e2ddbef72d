"""Domain events for the tax rate table."""

from protean.fields import Boolean, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="TaxJurisdictionRate")
class TaxRateConfigured:
    """A region's tax rate was created or changed by an administrator."""

    __version__ = 1

    tax_rate_id = Identifier(required=True)
    region_code = String(required=True)
    rate = Float(required=True)
    enabled = Boolean(required=True)
