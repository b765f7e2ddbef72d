"""Product store port (abstract interface).

Checkout never trusts prices or stock captured in a cart. It reads the live
product record through this port and reserves stock with a conditional
decrement that succeeds only when enough units remain.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ProductRecord:
    """Current catalogue view of a product at checkout time."""

    product_id: str
    name: str
    price: Decimal
    stock: int
    is_active: bool = True
    category: str | None = None


class ProductCatalogue(ABC):
    """Abstract product store interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductRecord | None:
        """Return the current product record, or None if it does not exist."""
        ...

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int) -> int:
        """Take ``quantity`` units if at least that many remain.

        Returns the number of rows affected: 1 on success, 0 when stock was
        insufficient (or the product vanished).
        """
        ...

    @abstractmethod
    def restore_stock(self, product_id: str, quantity: int) -> int:
        """Put back units taken by ``decrement_stock``. Returns rows affected."""
        ...
