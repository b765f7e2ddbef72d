"""Cart item management: commands and handler.

Items are always added against the caller's own cart: the handler looks up
the Active cart for the account or guest session and opens one on the first
add. The product must exist, be active and have enough stock at the time of
the add; the catalogue price is kept on the line as a display snapshot.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalogue import get_catalogue
from ordering.domain import ordering
from ordering.tax.money import to_minor_units

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier()
    session_id = String(max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    selected_color = String(max_length=50)
    selected_fragrance = String(max_length=50)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True)  # 0 removes the line


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


def find_active_cart(customer_id=None, session_id=None):
    """Return the owner's Active cart, or None."""
    repo = current_domain.repository_for(ShoppingCart)
    if customer_id:
        return repo.find_active_for_customer(customer_id)
    if session_id:
        return repo.find_active_for_session(session_id)
    raise ValidationError({"owner": ["Either customer_id or session_id is required"]})


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_catalogue().get_product(command.product_id)
        if product is None:
            raise ObjectNotFoundError({"product_id": [f"Product {command.product_id} not found"]})
        if not product.is_active:
            raise ValidationError({"product_id": ["Product is not available"]})
        if product.stock < command.quantity:
            raise ValidationError({"quantity": [f"Only {product.stock} in stock"]})

        repo = current_domain.repository_for(ShoppingCart)
        cart = find_active_cart(command.customer_id, command.session_id)
        if cart is None:
            cart = ShoppingCart.create(customer_id=command.customer_id, session_id=command.session_id)
            logger.info("Opened new cart", cart_id=str(cart.id), customer_id=command.customer_id)

        cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            unit_price=to_minor_units(product.price),
            selected_color=command.selected_color,
            selected_fragrance=command.selected_fragrance,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.update_item_quantity(
            item_id=command.item_id,
            new_quantity=command.new_quantity,
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)
