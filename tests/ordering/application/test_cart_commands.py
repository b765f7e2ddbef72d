"""Application tests for cart commands against the product catalogue."""

import pytest
from ordering.cart.cart import CartStatus, ShoppingCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity, find_active_cart
from ordering.cart.management import ConvertCart, MergeGuestCart
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

GUEST_SESSION = "6f1c2a9e-4b7d-4c1e-9a3f-2d5e8b7c1a40"


@pytest.fixture(autouse=True)
def products(catalogue):
    catalogue.add_product("prod-001", name="Candle", price="12.50", stock=10)
    catalogue.add_product("prod-002", name="Matches", price="2.00", stock=2)
    return catalogue


def _add(product_id="prod-001", quantity=1, **owner):
    owner = owner or {"customer_id": "cust-001"}
    return current_domain.process(AddToCart(product_id=product_id, quantity=quantity, **owner), asynchronous=False)


def _cart(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestAddToCart:
    def test_first_add_opens_cart(self):
        cart_id = _add(quantity=2)

        cart = _cart(cart_id)
        assert str(cart.customer_id) == "cust-001"
        assert cart.items[0].quantity == 2
        assert cart.items[0].unit_price == 1250

    def test_later_adds_use_the_same_cart(self):
        first = _add()
        second = _add(product_id="prod-002")

        assert first == second
        assert len(_cart(first).items) == 2

    def test_guest_cart(self):
        cart_id = _add(session_id=GUEST_SESSION)
        assert _cart(cart_id).session_id == GUEST_SESSION

    def test_unknown_product(self):
        with pytest.raises(ObjectNotFoundError):
            _add(product_id="missing")

    def test_inactive_product(self, products):
        products.deactivate("prod-001")
        with pytest.raises(ValidationError):
            _add()

    def test_not_enough_stock(self):
        with pytest.raises(ValidationError) as exc:
            _add(product_id="prod-002", quantity=3)
        assert "quantity" in exc.value.messages

    def test_owner_is_required(self):
        with pytest.raises(ValidationError):
            find_active_cart()


class TestChangeCartLines:
    def test_update_quantity(self):
        cart_id = _add()
        item_id = str(_cart(cart_id).items[0].id)

        current_domain.process(UpdateCartQuantity(cart_id=cart_id, item_id=item_id, new_quantity=4), asynchronous=False)

        assert _cart(cart_id).items[0].quantity == 4

    def test_zero_quantity_removes(self):
        cart_id = _add()
        item_id = str(_cart(cart_id).items[0].id)

        current_domain.process(UpdateCartQuantity(cart_id=cart_id, item_id=item_id, new_quantity=0), asynchronous=False)

        assert len(_cart(cart_id).items) == 0

    def test_remove(self):
        cart_id = _add()
        _add(product_id="prod-002")
        item_id = str(_cart(cart_id).items[0].id)

        current_domain.process(RemoveFromCart(cart_id=cart_id, item_id=item_id), asynchronous=False)

        assert len(_cart(cart_id).items) == 1


class TestMergeGuestCart:
    def test_merges_into_new_account_cart(self):
        guest_cart_id = _add(quantity=2, session_id=GUEST_SESSION)

        cart_id = current_domain.process(
            MergeGuestCart(customer_id="cust-001", session_id=GUEST_SESSION), asynchronous=False
        )

        cart = _cart(cart_id)
        assert str(cart.customer_id) == "cust-001"
        assert cart.items[0].quantity == 2
        assert _cart(guest_cart_id).status == CartStatus.MERGED.value

    def test_sums_quantities_with_existing_lines(self):
        cart_id = _add(quantity=1)
        _add(quantity=2, session_id=GUEST_SESSION)

        merged_into = current_domain.process(
            MergeGuestCart(customer_id="cust-001", session_id=GUEST_SESSION), asynchronous=False
        )

        assert merged_into == cart_id
        assert _cart(cart_id).items[0].quantity == 3

    def test_drops_unavailable_products(self, products):
        _add(session_id=GUEST_SESSION)
        _add(product_id="prod-002", session_id=GUEST_SESSION)
        products.deactivate("prod-002")

        cart_id = current_domain.process(
            MergeGuestCart(customer_id="cust-001", session_id=GUEST_SESSION), asynchronous=False
        )

        assert [str(i.product_id) for i in _cart(cart_id).items] == ["prod-001"]

    def test_no_guest_cart(self):
        result = current_domain.process(
            MergeGuestCart(customer_id="cust-001", session_id=GUEST_SESSION), asynchronous=False
        )
        assert result is None


class TestConvertCart:
    def test_convert(self):
        cart_id = _add()

        current_domain.process(ConvertCart(cart_id=cart_id, order_id="order-001"), asynchronous=False)

        assert _cart(cart_id).status == CartStatus.CONVERTED.value
        assert find_active_cart(customer_id="cust-001") is None
