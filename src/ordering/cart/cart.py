"""Shopping Cart aggregate (CQRS): mutable cart that is superseded by an Order at checkout.

A cart belongs either to an authenticated account (``customer_id``) or to an
anonymous browser session (``session_id``). There is at most one Active cart
per owner; it is created on the first add. Lines are keyed by product and the
selected colour/fragrance variant, and carry the catalogue price seen when the
item was added. That snapshot is informational only: checkout re-prices every
line from the live catalogue.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.cart.events import (
    CartConverted,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
    GuestCartMerged,
)
from ordering.domain import ordering


class CartStatus(Enum):
    ACTIVE = "Active"
    CONVERTED = "Converted"
    MERGED = "Merged"


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    selected_color = String(max_length=50)
    selected_fragrance = String(max_length=50)
    unit_price = Integer(min_value=0)  # Minor units, snapshot at add time
    added_at = DateTime()

    def matches(self, product_id, selected_color=None, selected_fragrance=None):
        return (
            str(self.product_id) == str(product_id)
            and (self.selected_color or None) == (selected_color or None)
            and (self.selected_fragrance or None) == (selected_fragrance or None)
        )


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Empty for guest carts
    session_id = String(max_length=255)  # Guest cart identification
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_must_have_exactly_one_owner(self):
        if bool(self.customer_id) == bool(self.session_id):
            raise ValidationError({"owner": ["A cart belongs to either an account or a guest session"]})

    @invariant.post
    def cart_must_have_items_to_convert(self):
        if self.status == CartStatus.CONVERTED.value and not self.items:
            raise ValidationError({"cart": ["Cannot convert an empty cart to an order"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            session_id=session_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )

    def _assert_active(self, action):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": [f"Cannot {action} a cart that is {self.status}"]})

    def _find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price=None, selected_color=None, selected_fragrance=None):
        """Add a line, or increase its quantity if the same product and variant is present."""
        self._assert_active("add items to")
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = next(
            (i for i in self.items if i.matches(product_id, selected_color, selected_fragrance)),
            None,
        )

        if existing:
            existing.quantity += quantity
            if unit_price is not None:
                existing.unit_price = unit_price
            item_id = str(existing.id)
        else:
            item = CartItem(
                product_id=product_id,
                quantity=quantity,
                selected_color=selected_color,
                selected_fragrance=selected_fragrance,
                unit_price=unit_price,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                product_id=str(product_id),
                quantity=quantity,
                selected_color=selected_color,
                selected_fragrance=selected_fragrance,
            )
        )
        return item_id

    def update_item_quantity(self, item_id, new_quantity):
        """Set a line's quantity. Zero or less removes the line."""
        self._assert_active("update items in")
        item = self._find_item(item_id)

        if new_quantity <= 0:
            self.remove_item(item_id)
            return

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        self._assert_active("remove items from")
        item = self._find_item(item_id)

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    # -------------------------------------------------------------------
    # Cart merging (guest → account)
    # -------------------------------------------------------------------
    def merge_guest_cart(self, guest_cart):
        """Fold a guest cart's lines into this account cart and close the guest cart.

        Lines for the same product and variant add their quantities together.
        Returns the number of guest lines merged.
        """
        self._assert_active("merge into")
        guest_cart._assert_active("merge from")
        if not self.customer_id:
            raise ValidationError({"cart": ["Guest carts can only be merged into an account cart"]})

        now = datetime.now(UTC)
        merged = 0
        for guest_item in list(guest_cart.items):
            existing = next(
                (
                    i
                    for i in self.items
                    if i.matches(guest_item.product_id, guest_item.selected_color, guest_item.selected_fragrance)
                ),
                None,
            )
            if existing:
                existing.quantity += guest_item.quantity
            else:
                self.add_items(
                    CartItem(
                        product_id=guest_item.product_id,
                        quantity=guest_item.quantity,
                        selected_color=guest_item.selected_color,
                        selected_fragrance=guest_item.selected_fragrance,
                        unit_price=guest_item.unit_price,
                        added_at=now,
                    )
                )
            merged += 1

        self.updated_at = now
        guest_cart.status = CartStatus.MERGED.value
        guest_cart.updated_at = now

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_session_id=guest_cart.session_id,
                items_merged_count=merged,
            )
        )
        guest_cart.raise_(GuestCartMerged(cart_id=str(guest_cart.id), target_cart_id=str(self.id)))
        return merged

    # -------------------------------------------------------------------
    # Cart lifecycle
    # -------------------------------------------------------------------
    def convert_to_order(self, order_id):
        """Close the cart once an order has been placed from it."""
        self._assert_active("convert")
        if not self.items:
            raise ValidationError({"cart": ["Cannot convert an empty cart"]})

        self.status = CartStatus.CONVERTED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartConverted(
                cart_id=str(self.id),
                order_id=str(order_id),
                customer_id=str(self.customer_id) if self.customer_id else None,
            )
        )


@ordering.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_active_for_customer(self, customer_id):
        results = (
            self._dao.query.filter(customer_id=str(customer_id), status=CartStatus.ACTIVE.value).all().items
        )
        return results[0] if results else None

    def find_active_for_session(self, session_id):
        results = self._dao.query.filter(session_id=str(session_id), status=CartStatus.ACTIVE.value).all().items
        return results[0] if results else None
