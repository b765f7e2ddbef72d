"""Ordering bounded context: Shopping Cart, Checkout and Orders.

Handles cart management for accounts and guest sessions, the checkout
pipeline that turns a cart into a priced, tax-computed order, and the order
and payment state machines that follow.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
