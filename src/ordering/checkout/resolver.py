"""Cart resolver: maps a caller to the lines of their Active cart."""

from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.session import validate_guest_session
from ordering.checkout.caller import Authenticated, Guest
from ordering.checkout.lines import CartLine
from ordering.tax.money import from_minor_units


def find_cart(caller):
    """Return the caller's Active cart, or None.

    A guest's session id is validated first; a malformed or expired session
    raises ``ValidationError`` instead of looking like an empty cart.
    """
    repo = current_domain.repository_for(ShoppingCart)
    match caller:
        case Authenticated(account_id=account_id):
            return repo.find_active_for_customer(account_id)
        case Guest(session_id=session_id, session_issued_at=issued_at):
            return repo.find_active_for_session(validate_guest_session(session_id, issued_at))
        case _:
            raise TypeError(f"Unsupported caller: {caller!r}")


def cart_lines(cart) -> list[CartLine]:
    if cart is None:
        return []
    return [
        CartLine(
            product_id=str(item.product_id),
            quantity=item.quantity,
            selected_color=item.selected_color or None,
            selected_fragrance=item.selected_fragrance or None,
            unit_price_snapshot=from_minor_units(item.unit_price) if item.unit_price is not None else None,
        )
        for item in cart.items
    ]


def resolve_cart(caller) -> list[CartLine]:
    """Lines of the caller's Active cart. No cart resolves to an empty list."""
    return cart_lines(find_cart(caller))
