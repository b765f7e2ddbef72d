"""Product store factory.

Provides get_catalogue() / set_catalogue() to swap implementations:
- InMemoryCatalogue for development and testing (default)
- SqlAlchemyCatalogue when CATALOGUE_ADAPTER=sqlalchemy
"""

from ordering import settings
from ordering.catalogue.port import ProductCatalogue

_current_catalogue: ProductCatalogue | None = None


def get_catalogue() -> ProductCatalogue:
    """Return the configured product store (singleton)."""
    global _current_catalogue
    if _current_catalogue is None:
        adapter = settings.catalogue_adapter()
        if adapter == "memory":
            from ordering.catalogue.memory_adapter import InMemoryCatalogue

            _current_catalogue = InMemoryCatalogue()
        elif adapter == "sqlalchemy":
            from sqlalchemy import create_engine

            from ordering.catalogue.sqlalchemy_adapter import SqlAlchemyCatalogue

            _current_catalogue = SqlAlchemyCatalogue(create_engine(settings.catalogue_database_uri()))
        else:
            raise ValueError(f"Unknown catalogue adapter: {adapter}")
    return _current_catalogue


def set_catalogue(catalogue: ProductCatalogue) -> None:
    """Override the active product store (useful for tests)."""
    global _current_catalogue
    _current_catalogue = catalogue


def reset_catalogue() -> None:
    """Reset the product store singleton."""
    global _current_catalogue
    _current_catalogue = None
