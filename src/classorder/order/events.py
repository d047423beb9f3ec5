"""Domain events for the StudentOrder aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from classorder.domain import classorder


@classorder.event(part_of="StudentOrder")
class OrderOpened:
    """A student's order was created on first login or first action."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    user_name = String(required=True)
    seat_number = String(required=True)


@classorder.event(part_of="StudentOrder")
class CartItemAdded:
    """One unit of a menu item was added to the cart."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = String(required=True)
    quantity = Integer(required=True)  # Line quantity after the add
    total_price = Integer(required=True)


@classorder.event(part_of="StudentOrder")
class CartItemRemoved:
    """A cart line was removed entirely."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = String(required=True)
    total_price = Integer(required=True)


@classorder.event(part_of="StudentOrder")
class CartQuantityAdjusted:
    """A cart line's quantity moved by a delta; zero means the line is gone."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = String(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    total_price = Integer(required=True)


@classorder.event(part_of="StudentOrder")
class OrderSubmitted:
    """The student handed in the order for the class batch."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    total_price = Integer(required=True)
    submitted_at = DateTime(required=True)


@classorder.event(part_of="StudentOrder")
class SubmissionWithdrawn:
    """The student took a submitted order back to draft."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)


@classorder.event(part_of="StudentOrder")
class OrderReset:
    """An administrator emptied the order and returned it to draft."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    previous_status = String(required=True)
