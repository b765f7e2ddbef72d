"""In-process product store for development and testing.

Stock updates are guarded by a lock so the conditional decrement behaves like
a single ``UPDATE ... WHERE stock >= n`` statement.
"""

import threading
from dataclasses import replace
from decimal import Decimal

from ordering.catalogue.port import ProductCatalogue, ProductRecord


class InMemoryCatalogue(ProductCatalogue):
    def __init__(self) -> None:
        self._products: dict[str, ProductRecord] = {}
        self._lock = threading.Lock()

    def add_product(
        self,
        product_id: str,
        name: str,
        price,
        stock: int,
        is_active: bool = True,
        category: str | None = None,
    ) -> ProductRecord:
        record = ProductRecord(
            product_id=str(product_id),
            name=name,
            price=Decimal(str(price)),
            stock=stock,
            is_active=is_active,
            category=category,
        )
        with self._lock:
            self._products[record.product_id] = record
        return record

    def set_stock(self, product_id: str, stock: int) -> None:
        with self._lock:
            self._products[str(product_id)] = replace(self._products[str(product_id)], stock=stock)

    def set_price(self, product_id: str, price) -> None:
        with self._lock:
            self._products[str(product_id)] = replace(self._products[str(product_id)], price=Decimal(str(price)))

    def deactivate(self, product_id: str) -> None:
        with self._lock:
            self._products[str(product_id)] = replace(self._products[str(product_id)], is_active=False)

    def remove_product(self, product_id: str) -> None:
        with self._lock:
            self._products.pop(str(product_id), None)

    def get_product(self, product_id: str) -> ProductRecord | None:
        with self._lock:
            return self._products.get(str(product_id))

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            record = self._products.get(str(product_id))
            if record is None or record.stock < quantity:
                return 0
            self._products[record.product_id] = replace(record, stock=record.stock - quantity)
            return 1

    def restore_stock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            record = self._products.get(str(product_id))
            if record is None:
                return 0
            self._products[record.product_id] = replace(record, stock=record.stock + quantity)
            return 1
