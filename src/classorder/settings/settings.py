"""SystemSettings aggregate: the class-wide ordering gate.

There is exactly one settings document, shared by every client. Only the
administrator changes it; students read it to know whether ordering is open,
how much they may spend and how long is left.

The deadline is a countdown and nothing more. Passing it does not close
ordering; closing stays a deliberate administrator action.
"""

from datetime import UTC, datetime, timedelta

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer

from classorder.config import DEFAULT_MAX_PRICE
from classorder.domain import classorder
from classorder.settings.events import DeadlineChanged, OrderingToggled, PriceCapChanged

SETTINGS_ID = "settings"


@classorder.aggregate
class SystemSettings:
    id: Identifier(identifier=True, default=SETTINGS_ID)
    is_open: Boolean(default=True)
    deadline: DateTime()
    max_price: Integer(default=DEFAULT_MAX_PRICE, min_value=1)

    @classmethod
    def initial(cls, max_price=DEFAULT_MAX_PRICE):
        """Settings as they are before any administrator touched them."""
        return cls(id=SETTINGS_ID, is_open=True, deadline=None, max_price=max_price)

    def toggle(self, is_open):
        self.is_open = bool(is_open)
        self.raise_(OrderingToggled(settings_id=str(self.id), is_open=self.is_open))

    def set_deadline(self, deadline):
        """Set the countdown target, or clear it with ``None``."""
        if deadline is not None and deadline.tzinfo is None:
            raise ValidationError({"deadline": ["Deadline must be timezone-aware"]})

        previous_deadline = self.deadline
        self.deadline = deadline
        self.raise_(
            DeadlineChanged(
                settings_id=str(self.id),
                deadline=deadline,
                previous_deadline=previous_deadline,
            )
        )

    def set_max_price(self, amount):
        if amount is None or int(amount) <= 0:
            raise ValidationError({"max_price": ["Price cap must be a positive amount"]})

        previous_max_price = self.max_price
        self.max_price = int(amount)
        self.raise_(
            PriceCapChanged(
                settings_id=str(self.id),
                max_price=self.max_price,
                previous_max_price=previous_max_price,
            )
        )

    def time_remaining(self, now=None):
        """Time left until the deadline, floored at zero; None without a deadline."""
        if self.deadline is None:
            return None
        now = now or datetime.now(UTC)
        return max(self.deadline - now, timedelta(0))

    def deadline_passed(self, now=None):
        remaining = self.time_remaining(now)
        return remaining is not None and remaining == timedelta(0)
