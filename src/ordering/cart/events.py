"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    selected_color = String(max_length=50)
    selected_fragrance = String(max_length=50)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart item was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """An item was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartsMerged:
    """A guest cart's items were merged into an account cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_session_id = String(max_length=255)
    items_merged_count = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class GuestCartMerged:
    """A guest cart was emptied into an account cart and closed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    target_cart_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartConverted:
    """A shopping cart was superseded by an order at checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier()
