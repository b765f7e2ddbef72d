"""Inventory validator.

Re-reads every line's product from the catalogue. Accounts keep the lines
that can still be fulfilled and see the rest reported back; guests, who have
no saved cart to fix up, are refused at the first bad line. Nothing is
written here.
"""

import structlog

from ordering.catalogue import get_catalogue
from ordering.catalogue.port import ProductCatalogue
from ordering.checkout.caller import Guest
from ordering.checkout.lines import (
    INSUFFICIENT_STOCK,
    PRODUCT_INACTIVE,
    PRODUCT_NOT_FOUND,
    Rejection,
    ValidatedItem,
    ValidationResult,
)
from ordering.errors import InventoryConflict
from ordering.tax.money import quantize

logger = structlog.get_logger(__name__)

NO_VALID_ITEMS = "no valid items"


def check_line(catalogue: ProductCatalogue, line):
    """Return ``(ValidatedItem, None)`` or ``(None, Rejection)`` for one line."""
    product = catalogue.get_product(line.product_id)
    if product is None:
        return None, Rejection(product_id=line.product_id, reason=PRODUCT_NOT_FOUND)
    if not product.is_active:
        return None, Rejection(product_id=line.product_id, reason=PRODUCT_INACTIVE)
    if product.stock < line.quantity:
        return None, Rejection(product_id=line.product_id, reason=INSUFFICIENT_STOCK)

    return (
        ValidatedItem(
            product_id=line.product_id,
            name=product.name,
            quantity=line.quantity,
            unit_price=quantize(product.price),
            category=product.category,
            selected_color=line.selected_color,
            selected_fragrance=line.selected_fragrance,
        ),
        None,
    )


def conflict_for(rejection: Rejection, rejected=None) -> InventoryConflict:
    return InventoryConflict(f"Product {rejection.product_id}: {rejection.reason}", rejected=rejected or [rejection])


class InventoryValidator:
    def __init__(self, catalogue: ProductCatalogue | None = None) -> None:
        self.catalogue = catalogue or get_catalogue()

    def validate(self, lines, caller) -> ValidationResult:
        result = ValidationResult()
        for line in lines:
            item, rejection = check_line(self.catalogue, line)
            if rejection is None:
                result.valid.append(item)
                continue

            if isinstance(caller, Guest):
                logger.info("Rejecting guest checkout line", product_id=rejection.product_id, reason=rejection.reason)
                raise conflict_for(rejection)

            logger.info("Dropping checkout line", product_id=rejection.product_id, reason=rejection.reason)
            result.rejected.append(rejection)

        if not result.valid:
            raise InventoryConflict(NO_VALID_ITEMS, rejected=result.rejected)
        return result
