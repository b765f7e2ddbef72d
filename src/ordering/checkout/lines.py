"""Value types passed between checkout stages."""

from dataclasses import dataclass, field
from decimal import Decimal

PRODUCT_NOT_FOUND = "product not found"
PRODUCT_INACTIVE = "product inactive"
INSUFFICIENT_STOCK = "insufficient stock"


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    selected_color: str | None = None
    selected_fragrance: str | None = None
    unit_price_snapshot: Decimal | None = None  # informational; checkout re-prices


@dataclass(frozen=True)
class ValidatedItem:
    """A line that passed inventory validation, priced from the live catalogue."""

    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    category: str | None = None
    selected_color: str | None = None
    selected_fragrance: str | None = None


@dataclass(frozen=True)
class Rejection:
    product_id: str
    reason: str

    def describe(self) -> str:
        return f"{self.product_id}: {self.reason}"


@dataclass
class ValidationResult:
    valid: list[ValidatedItem] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)
