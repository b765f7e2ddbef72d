"""Cart management: commands and handler.

Handles guest cart merging on login and closing a cart once an order has been
placed from it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalogue import get_catalogue
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class MergeGuestCart:
    """Merge the guest session's cart into the account's cart."""

    customer_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)


@ordering.command(part_of="ShoppingCart")
class ConvertCart:
    """Close a cart that has been turned into an order."""

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        guest_cart = repo.find_active_for_session(command.session_id)
        if guest_cart is None:
            return None

        # Lines for products that are gone or withdrawn are not carried over
        catalogue = get_catalogue()
        for item in list(guest_cart.items):
            product = catalogue.get_product(str(item.product_id))
            if product is None or not product.is_active:
                logger.info(
                    "Dropping unavailable product from guest cart",
                    cart_id=str(guest_cart.id),
                    product_id=str(item.product_id),
                )
                guest_cart.remove_item(item.id)

        cart = repo.find_active_for_customer(command.customer_id)
        if cart is None:
            cart = ShoppingCart.create(customer_id=command.customer_id)

        merged = cart.merge_guest_cart(guest_cart)
        repo.add(cart)
        repo.add(guest_cart)

        logger.info(
            "Merged guest cart into account cart",
            cart_id=str(cart.id),
            guest_cart_id=str(guest_cart.id),
            items_merged=merged,
        )
        return str(cart.id)

    @handle(ConvertCart)
    def convert_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.convert_to_order(command.order_id)
        repo.add(cart)
