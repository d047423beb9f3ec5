"""Shared BDD fixtures and step definitions for classroom ordering."""

from collections import Counter

import pytest
from classorder.menu.catalog import get_menu_item
from pytest_bdd import given, parsers, then, when


def _item_ids(text):
    return [item_id.strip() for item_id in text.split(",") if item_id.strip()]


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------
@pytest.fixture()
def outcome():
    """Result of the last client action and the reasons it was refused."""
    return {"accepted": None, "blockers": []}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def record(outcome, client, accepted):
    outcome["accepted"] = accepted
    outcome["blockers"] = list(client.last_refusal)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the price cap is {amount:d}"))
def price_cap(store, amount):
    store.set("settings", {"isOpen": True, "maxPrice": amount})


@given(parsers.cfparse('student "{name}" is logged in at seat "{seat}"'), target_fixture="device")
def student_device(make_client, name, seat):
    client = make_client("student")
    client.login(name, seat)
    return client


@given("the administrator is logged in", target_fixture="admin_device")
def admin_device(make_client):
    client = make_client("admin")
    client.login("", "", is_admin=True, passphrase="letmein")
    return client


@given(parsers.cfparse('the student has submitted "{item_ids}"'))
def student_has_submitted(device, item_ids):
    for item_id in _item_ids(item_ids):
        assert device.add_item(item_id)
    assert device.submit()


@given(parsers.cfparse('the stored cart of seat "{seat}" holds "{item_ids}"'))
def stored_cart(store, seat, item_ids):
    """Write a cart straight into the store, as another device could have."""
    counts = Counter(_item_ids(item_ids))
    lines = []
    for item_id, quantity in counts.items():
        item = get_menu_item(item_id)
        lines.append(
            {
                "menuItem": {"id": item.item_id, "name": item.name, "price": item.price, "category": item.category.value},
                "quantity": quantity,
            }
        )
    document = dict(store.get(f"orders/{seat}") or {})
    document["items"] = lines
    document["totalPrice"] = sum(line["menuItem"]["price"] * line["quantity"] for line in lines)
    store.set(f"orders/{seat}", document)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the student adds "{item_id}"'))
def student_adds(device, outcome, item_id):
    record(outcome, device, device.add_item(item_id))


@when("the student submits the order")
def student_submits(device, outcome):
    record(outcome, device, device.submit())


@when("the student withdraws the order")
def student_withdraws(device, outcome):
    record(outcome, device, device.cancel())


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the action is accepted")
def action_accepted(outcome):
    assert outcome["accepted"] is True
    assert outcome["blockers"] == []


@then(parsers.cfparse('the action is refused with "{blocker}"'))
def action_refused(outcome, blocker):
    assert outcome["accepted"] is False
    assert blocker in outcome["blockers"]


@then(parsers.cfparse("the cart total is {total:d}"))
def cart_total(device, total):
    assert device.current_order.total_price == total


@then(parsers.cfparse('the order status is "{status}"'))
def order_status(device, status):
    assert device.current_order.status == status


@then("the order has no items")
def order_has_no_items(device):
    assert len(device.current_order.items) == 0
