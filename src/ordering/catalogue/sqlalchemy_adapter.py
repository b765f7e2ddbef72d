"""SQLAlchemy-backed product store.

Prices are stored as integer minor units. Stock is reserved with a single
conditional ``UPDATE`` whose affected-row count is the success signal, so two
concurrent checkouts can never both take the last unit.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine

from ordering.catalogue.port import ProductCatalogue, ProductRecord
from ordering.tax.money import from_minor_units, to_minor_units

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("price_cents", Integer, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("category", String(100)),
)


class SqlAlchemyCatalogue(ProductCatalogue):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def drop_schema(self) -> None:
        metadata.drop_all(self.engine)

    def add_product(self, product_id, name, price, stock, is_active=True, category=None) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                insert(products).values(
                    id=str(product_id),
                    name=name,
                    price_cents=to_minor_units(price),
                    stock=stock,
                    is_active=is_active,
                    category=category,
                )
            )

    def get_product(self, product_id: str) -> ProductRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(products).where(products.c.id == str(product_id))).mappings().first()

        if row is None:
            return None
        return ProductRecord(
            product_id=row["id"],
            name=row["name"],
            price=from_minor_units(row["price_cents"]),
            stock=row["stock"],
            is_active=bool(row["is_active"]),
            category=row["category"],
        )

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(products)
                .where(products.c.id == str(product_id), products.c.stock >= quantity)
                .values(stock=products.c.stock - quantity)
            )
            return result.rowcount

    def restore_stock(self, product_id: str, quantity: int) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(products).where(products.c.id == str(product_id)).values(stock=products.c.stock + quantity)
            )
            return result.rowcount
