from protean.domain import Domain
from sqlalchemy import create_engine

from ordering.catalogue.sqlalchemy_adapter import SqlAlchemyCatalogue


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in ("sqlite", "postgresql"):
            yield provider


def setup_db(domain: Domain, catalogue=None):
    """Setup database schema for the domain's SQL providers and the product catalogue."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Accessing _dao registers each aggregate and entity table with SQLAlchemy
            for _, aggregate_record in domain.registry.aggregates.items():
                if aggregate_record.cls.meta_.provider == provider.name:
                    domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

            for _, entity_record in domain.registry.entities.items():
                if entity_record.cls.meta_.provider == provider.name:
                    domain.repository_for(entity_record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)

    if isinstance(catalogue, SqlAlchemyCatalogue):
        catalogue.create_schema()


def drop_db(domain: Domain, catalogue=None):
    """Drop database schema"""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)

    if isinstance(catalogue, SqlAlchemyCatalogue):
        catalogue.drop_schema()
