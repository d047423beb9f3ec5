"""Ordering rules checked before a student action is allowed.

These are pure functions over an order and the system settings. They never
raise: a rule that fails shows up as ``False`` from ``can_add``/``can_submit``
or as a ``Blocker`` in ``submission_blockers``, which callers turn into a
disabled control.

The set/main rule: every SET unit attaches to one MAIN unit, so the number of
SET units may never exceed the number of MAIN units. It is checked softly when
a SET is added and hard at submission, which covers mains removed after sets
were added.
"""

from enum import Enum

from classorder.menu.catalog import Category
from classorder.order.order import OrderStatus


class Blocker(Enum):
    SYSTEM_CLOSED = "SYSTEM_CLOSED"
    NOT_DRAFT = "NOT_DRAFT"
    EMPTY_CART = "EMPTY_CART"
    OVER_BUDGET = "OVER_BUDGET"
    SET_EXCEEDS_MAIN = "SET_EXCEEDS_MAIN"


def category_count(order, category) -> int:
    return order.quantity_of(category)


def set_count(order) -> int:
    return category_count(order, Category.SET)


def main_count(order) -> int:
    return category_count(order, Category.MAIN)


def can_add(order, menu_item) -> bool:
    """Whether one more unit of ``menu_item`` may go into the cart."""
    if OrderStatus(order.status) != OrderStatus.DRAFT:
        return False
    if menu_item.category == Category.SET:
        return set_count(order) + 1 <= main_count(order)
    return True


def can_adjust(order, item_id, delta) -> bool:
    """Whether moving a line's quantity by ``delta`` is allowed.

    Lowering a quantity is always fine; raising a SET line is held to the
    set/main rule like adding it.
    """
    if OrderStatus(order.status) != OrderStatus.DRAFT:
        return False
    line = order.line_for(item_id)
    if line is None or delta <= 0 or line.category != Category.SET.value:
        return True
    return set_count(order) + delta <= main_count(order)


def submission_blockers(order, settings) -> list[Blocker]:
    """Every reason the order cannot be submitted right now, in display order."""
    blockers = []
    if not settings.is_open:
        blockers.append(Blocker.SYSTEM_CLOSED)
    if OrderStatus(order.status) != OrderStatus.DRAFT:
        blockers.append(Blocker.NOT_DRAFT)
    if not order.items:
        blockers.append(Blocker.EMPTY_CART)
    if order.total_price > settings.max_price:
        blockers.append(Blocker.OVER_BUDGET)
    if set_count(order) > main_count(order):
        blockers.append(Blocker.SET_EXCEEDS_MAIN)
    return blockers


def can_submit(order, settings) -> bool:
    return not submission_blockers(order, settings)
