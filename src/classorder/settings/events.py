"""Domain events for the SystemSettings aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer

from classorder.domain import classorder


@classorder.event(part_of="SystemSettings")
class OrderingToggled:
    """Ordering was opened or closed for every student."""

    __version__ = 1

    settings_id = Identifier(required=True)
    is_open = Boolean(required=True)


@classorder.event(part_of="SystemSettings")
class DeadlineChanged:
    """The advisory deadline was set, moved or cleared (``deadline`` is None)."""

    __version__ = 1

    settings_id = Identifier(required=True)
    deadline = DateTime()
    previous_deadline = DateTime()


@classorder.event(part_of="SystemSettings")
class PriceCapChanged:
    __version__ = 1

    settings_id = Identifier(required=True)
    max_price = Integer(required=True)
    previous_max_price = Integer(required=True)
