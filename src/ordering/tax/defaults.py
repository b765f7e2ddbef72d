"""Default US state sales tax rates, used to seed the rate table.

Approximate state-level rates; administrators adjust them through
``ConfigureTaxRate``.
"""

from protean.utils.globals import current_domain

from ordering.tax.configuration import ConfigureTaxRate
from ordering.tax.rate import TaxJurisdictionRate

DEFAULT_STATE_TAX_RATES = {
    # States with no sales tax
    "AK": (0.0, "Alaska"),
    "DE": (0.0, "Delaware"),
    "MT": (0.0, "Montana"),
    "NH": (0.0, "New Hampshire"),
    "OR": (0.0, "Oregon"),
    "AL": (4.0, "Alabama"),
    "AR": (6.5, "Arkansas"),
    "AZ": (5.6, "Arizona"),
    "CA": (7.25, "California"),
    "CO": (2.9, "Colorado"),
    "CT": (6.35, "Connecticut"),
    "DC": (6.0, "District of Columbia"),
    "FL": (6.0, "Florida"),
    "GA": (4.0, "Georgia"),
    "HI": (4.17, "Hawaii"),
    "IA": (6.0, "Iowa"),
    "ID": (6.0, "Idaho"),
    "IL": (6.25, "Illinois"),
    "IN": (7.0, "Indiana"),
    "KS": (6.5, "Kansas"),
    "KY": (6.0, "Kentucky"),
    "LA": (4.45, "Louisiana"),
    "MA": (6.25, "Massachusetts"),
    "MD": (6.0, "Maryland"),
    "ME": (5.5, "Maine"),
    "MI": (6.0, "Michigan"),
    "MN": (6.875, "Minnesota"),
    "MO": (4.225, "Missouri"),
    "MS": (7.0, "Mississippi"),
    "NC": (4.75, "North Carolina"),
    "ND": (5.0, "North Dakota"),
    "NE": (5.5, "Nebraska"),
    "NJ": (6.625, "New Jersey"),
    "NM": (5.125, "New Mexico"),
    "NV": (6.85, "Nevada"),
    "NY": (4.0, "New York"),
    "OH": (5.75, "Ohio"),
    "OK": (4.5, "Oklahoma"),
    "PA": (6.0, "Pennsylvania"),
    "RI": (7.0, "Rhode Island"),
    "SC": (6.0, "South Carolina"),
    "SD": (4.5, "South Dakota"),
    "TN": (7.0, "Tennessee"),
    "TX": (6.25, "Texas"),
    "UT": (6.1, "Utah"),
    "VA": (5.3, "Virginia"),
    "VT": (6.0, "Vermont"),
    "WA": (6.5, "Washington"),
    "WI": (5.0, "Wisconsin"),
    "WV": (6.0, "West Virginia"),
    "WY": (4.0, "Wyoming"),
}


def seed_default_rates(overwrite: bool = False) -> tuple[int, int, int]:
    """Load ``DEFAULT_STATE_TAX_RATES`` into the rate table in the active domain context.

    Regions that already have a row are left alone unless ``overwrite`` is set.
    Returns ``(created, updated, skipped)``.
    """
    repo = current_domain.repository_for(TaxJurisdictionRate)
    created = updated = skipped = 0
    for region_code, (rate, region_name) in sorted(DEFAULT_STATE_TAX_RATES.items()):
        existing = repo.find_by_region(region_code)
        if existing is not None and not overwrite:
            skipped += 1
            continue

        current_domain.process(
            ConfigureTaxRate(
                region_code=region_code,
                rate=rate,
                enabled=True,
                region_name=region_name,
                notes="Default state rate",
            ),
            asynchronous=False,
        )
        if existing is None:
            created += 1
        else:
            updated += 1
    return created, updated, skipped
