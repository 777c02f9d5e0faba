"""
Carts — выбор предметов, построение и отправка trade offer.

- UserCart: обмен с контрагентом (оплата, сдача, pre-send проверки)
- DonationCart: пожертвование предметов бота
"""

from bartercart.cart.assignment import AssignmentOutcome, InstanceAssigner, order_candidates
from bartercart.cart.base import Cart, CartError, CartState, CartStateError, CartTransition
from bartercart.cart.context import CartContext
from bartercart.cart.donation import DonationCart
from bartercart.cart.text import CartNotes, pluralize
from bartercart.cart.user import TradeBalance, UserCart

__all__ = [
    # Base
    "Cart",
    "CartContext",
    "CartError",
    "CartState",
    "CartStateError",
    "CartTransition",
    # Variants
    "DonationCart",
    "UserCart",
    "TradeBalance",
    # Helpers
    "AssignmentOutcome",
    "InstanceAssigner",
    "order_candidates",
    "CartNotes",
    "pluralize",
]
