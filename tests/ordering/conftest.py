import pytest
from ordering.catalogue import reset_catalogue, set_catalogue
from ordering.catalogue.memory_adapter import InMemoryCatalogue
from ordering.tax import reset_tax_rate_provider
from payments.gateway import reset_gateway, set_gateway
from payments.gateway.fake_adapter import FakeGateway
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()

    reset_catalogue()
    reset_gateway()
    reset_tax_rate_provider()


@pytest.fixture()
def catalogue():
    store = InMemoryCatalogue()
    set_catalogue(store)
    return store


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    return fake
