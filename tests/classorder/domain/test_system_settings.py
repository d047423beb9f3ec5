"""Tests for the SystemSettings aggregate."""

from datetime import UTC, datetime, timedelta

import pytest
from classorder.settings.events import DeadlineChanged, OrderingToggled, PriceCapChanged
from classorder.settings.settings import SETTINGS_ID, SystemSettings
from protean.exceptions import ValidationError


@pytest.fixture()
def settings():
    return SystemSettings.initial()


class TestDefaults:
    def test_defaults(self, settings):
        assert settings.is_open is True
        assert settings.deadline is None
        assert settings.max_price == 170
        assert settings.id == SETTINGS_ID

    def test_default_cap_can_be_overridden(self):
        assert SystemSettings.initial(max_price=200).max_price == 200

    def test_direct_construction(self):
        settings = SystemSettings(is_open=False, max_price=150)
        assert settings.id == SETTINGS_ID
        assert settings.is_open is False
        assert settings.max_price == 150


class TestToggle:
    def test_close_and_reopen(self, settings):
        settings.toggle(False)
        assert settings.is_open is False
        settings.toggle(True)
        assert settings.is_open is True

    def test_toggle_raises_event(self, settings):
        settings.toggle(False)
        event = settings._events[-1]
        assert isinstance(event, OrderingToggled)
        assert event.is_open is False


class TestDeadline:
    def test_set_and_clear(self, settings):
        deadline = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
        settings.set_deadline(deadline)
        assert settings.deadline == deadline
        settings.set_deadline(None)
        assert settings.deadline is None

    def test_naive_deadline_is_rejected(self, settings):
        with pytest.raises(ValidationError):
            settings.set_deadline(datetime(2026, 10, 18, 12, 0))

    def test_deadline_event_carries_previous_value(self, settings):
        first = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
        settings.set_deadline(first)
        settings.set_deadline(first + timedelta(hours=1))
        event = settings._events[-1]
        assert isinstance(event, DeadlineChanged)
        assert event.previous_deadline == first

    def test_time_remaining(self, settings):
        now = datetime(2026, 10, 18, 11, 30, tzinfo=UTC)
        settings.set_deadline(now + timedelta(minutes=30))
        assert settings.time_remaining(now) == timedelta(minutes=30)
        assert not settings.deadline_passed(now)

    def test_time_remaining_floors_at_zero(self, settings):
        now = datetime(2026, 10, 18, 13, 0, tzinfo=UTC)
        settings.set_deadline(now - timedelta(minutes=5))
        assert settings.time_remaining(now) == timedelta(0)
        assert settings.deadline_passed(now)

    def test_no_deadline_means_no_countdown(self, settings):
        assert settings.time_remaining() is None
        assert not settings.deadline_passed()

    def test_passing_deadline_does_not_close_ordering(self, settings):
        now = datetime(2026, 10, 18, 13, 0, tzinfo=UTC)
        settings.set_deadline(now - timedelta(hours=1))
        assert settings.deadline_passed(now)
        assert settings.is_open is True


class TestPriceCap:
    def test_set_max_price(self, settings):
        settings.set_max_price(200)
        assert settings.max_price == 200
        event = settings._events[-1]
        assert isinstance(event, PriceCapChanged)
        assert event.previous_max_price == 170

    @pytest.mark.parametrize("amount", [0, -10, None])
    def test_non_positive_cap_is_rejected(self, settings, amount):
        with pytest.raises(ValidationError):
            settings.set_max_price(amount)
        assert settings.max_price == 170
