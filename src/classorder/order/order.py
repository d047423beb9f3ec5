"""StudentOrder aggregate: one cart per student seat.

Each student owns exactly one order for the ordering event. The order is a
cart of menu lines plus a status; the total is always derived from the lines
and recomputed on every change, never taken from stored state.

State machine:
    DRAFT → SUBMITTED (submit, when every policy check passes)
    SUBMITTED → DRAFT (withdraw, the student's undo)
    any → DRAFT with an empty cart (administrator reset)

CONFIRMED is understood when read from the store but nothing in the client
produces it; only a reset moves an order out of it.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from classorder.domain import classorder
from classorder.menu.catalog import Category
from classorder.order.events import (
    CartItemAdded,
    CartItemRemoved,
    CartQuantityAdjusted,
    OrderOpened,
    OrderReset,
    OrderSubmitted,
    SubmissionWithdrawn,
)


class OrderStatus(Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"


_VALID_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.SUBMITTED},
    OrderStatus.SUBMITTED: {OrderStatus.DRAFT},
    OrderStatus.CONFIRMED: set(),  # Left only through an administrator reset
}


def new_order_id(now=None):
    """Order ids read as ``ord_<epoch-ms>_<suffix>``."""
    now = now or datetime.now(UTC)
    return f"ord_{int(now.timestamp() * 1000)}_{uuid4().hex[:6]}"


@classorder.entity(part_of="StudentOrder")
class CartLine:
    """A menu item in the cart with its quantity.

    The menu item's name, price and category are copied onto the line so the
    order document stays readable on its own.
    """

    item_id = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    price = Integer(required=True, min_value=1)
    category = String(required=True, choices=Category)
    quantity = Integer(required=True, min_value=1)

    @property
    def subtotal(self):
        return self.price * self.quantity


@classorder.aggregate
class StudentOrder:
    user_id = Identifier(required=True)
    user_name = String(required=True, max_length=100)
    seat_number = String(required=True, max_length=50)
    items = HasMany(CartLine)
    total_price = Integer(default=0, min_value=0)
    status = String(choices=OrderStatus, default=OrderStatus.DRAFT.value)
    updated_at = DateTime()

    @invariant.post
    def total_price_matches_lines(self):
        expected = sum(line.price * line.quantity for line in self.items)
        if self.total_price != expected:
            raise ValidationError({"total_price": [f"Total {self.total_price} does not match cart lines ({expected})"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, user_id, user_name, seat_number):
        """Start an empty draft order for a student."""
        now = datetime.now(UTC)
        order = cls(
            id=new_order_id(now),
            user_id=user_id,
            user_name=user_name,
            seat_number=seat_number,
            total_price=0,
            status=OrderStatus.DRAFT.value,
            updated_at=now,
        )
        order.raise_(
            OrderOpened(
                order_id=str(order.id),
                user_id=str(user_id),
                user_name=user_name,
                seat_number=seat_number,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_draft(self):
        return OrderStatus(self.status) == OrderStatus.DRAFT

    @property
    def is_submitted(self):
        return OrderStatus(self.status) == OrderStatus.SUBMITTED

    def line_for(self, item_id):
        return next((line for line in self.items if line.item_id == item_id), None)

    def quantity_of(self, category):
        """Total units in the cart for one menu category."""
        category = Category(category).value
        return sum(line.quantity for line in self.items if line.category == category)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_editable(self):
        if not self.is_draft:
            raise ValidationError({"status": ["Only draft orders can be changed"]})

    def _assert_set_has_main(self, extra_sets):
        if self.quantity_of(Category.SET) + extra_sets > self.quantity_of(Category.MAIN):
            raise ValidationError({"items": ["Each set must be attached to a main"]})

    def _recalculate_total(self):
        self.total_price = sum(line.subtotal for line in self.items)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Cart editing (draft only)
    # -------------------------------------------------------------------
    def add_item(self, menu_item):
        """Add one unit of a menu item, stacking onto an existing line."""
        self._assert_editable()
        if menu_item.category == Category.SET:
            self._assert_set_has_main(1)

        line = self.line_for(menu_item.item_id)
        with atomic_change(self):
            if line is not None:
                line.quantity += 1
            else:
                line = CartLine(
                    item_id=menu_item.item_id,
                    name=menu_item.name,
                    price=menu_item.price,
                    category=menu_item.category.value,
                    quantity=1,
                )
                self.add_items(line)
            self._recalculate_total()

        self.raise_(
            CartItemAdded(
                order_id=str(self.id),
                item_id=menu_item.item_id,
                quantity=line.quantity,
                total_price=self.total_price,
            )
        )

    def remove_item(self, item_id):
        """Drop a line whatever its quantity. Unknown ids change nothing."""
        self._assert_editable()

        line = self.line_for(item_id)
        if line is None:
            return

        with atomic_change(self):
            self.remove_items(line)
            self._recalculate_total()

        self.raise_(
            CartItemRemoved(
                order_id=str(self.id),
                item_id=item_id,
                total_price=self.total_price,
            )
        )

    def adjust_quantity(self, item_id, delta):
        """Move a line's quantity by ``delta``, removing it when it reaches zero."""
        self._assert_editable()

        line = self.line_for(item_id)
        if line is None or delta == 0:
            return
        if delta > 0 and line.category == Category.SET.value:
            self._assert_set_has_main(delta)

        previous_quantity = line.quantity
        new_quantity = max(0, previous_quantity + delta)

        with atomic_change(self):
            if new_quantity == 0:
                self.remove_items(line)
            else:
                line.quantity = new_quantity
            self._recalculate_total()

        self.raise_(
            CartQuantityAdjusted(
                order_id=str(self.id),
                item_id=item_id,
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                total_price=self.total_price,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def submit(self, settings):
        """Hand the order in, provided no policy blocker applies."""
        from classorder.order.policy import submission_blockers

        blockers = submission_blockers(self, settings)
        if blockers:
            raise ValidationError({"submission": [blocker.value for blocker in blockers]})

        self._assert_can_transition(OrderStatus.SUBMITTED)
        now = datetime.now(UTC)
        self.status = OrderStatus.SUBMITTED.value
        self.updated_at = now

        self.raise_(
            OrderSubmitted(
                order_id=str(self.id),
                user_id=str(self.user_id),
                total_price=self.total_price,
                submitted_at=now,
            )
        )

    def withdraw(self):
        """Take a submitted order back to draft, keeping its lines."""
        self._assert_can_transition(OrderStatus.DRAFT)
        self.status = OrderStatus.DRAFT.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            SubmissionWithdrawn(
                order_id=str(self.id),
                user_id=str(self.user_id),
            )
        )

    def reset(self):
        """Empty the cart and force the order back to draft, whatever its status."""
        previous_status = self.status

        with atomic_change(self):
            for line in list(self.items):
                self.remove_items(line)
            self.total_price = 0
            self.status = OrderStatus.DRAFT.value
            self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderReset(
                order_id=str(self.id),
                user_id=str(self.user_id),
                previous_status=previous_status,
            )
        )
