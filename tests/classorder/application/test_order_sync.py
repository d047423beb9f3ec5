"""Tests for OrderSync: snapshots, optimistic writes and failures."""

import pytest
from classorder.exceptions import StoreUnavailableError
from classorder.menu.catalog import get_menu_item
from classorder.order.order import StudentOrder
from classorder.store.base import Subscription
from classorder.store.memory import InMemoryStore
from classorder.sync.documents import order_to_document
from classorder.sync.mirror import OrderSync, SyncState, WriteFailure


class HeldBackStore(InMemoryStore):
    """Accepts subscriptions but never delivers, like a stream still opening."""

    def subscribe(self, path, callback):
        return Subscription(path, lambda: None)


@pytest.fixture()
def sync(store, inline_executor):
    sync = OrderSync(store, executor=inline_executor)
    sync.connect()
    yield sync
    sync.close()


def _order(user_id="12", *item_ids):
    order = StudentOrder.open(user_id=user_id, user_name=f"Student {user_id}", seat_number=user_id)
    for item_id in item_ids:
        order.add_item(get_menu_item(item_id))
    return order


class TestConnect:
    def test_connect_goes_online(self, sync):
        assert sync.state == SyncState.ONLINE
        assert sync.is_online

    def test_unreachable_store_is_unavailable(self, store, inline_executor):
        store.configure(available=False)
        sync = OrderSync(store, executor=inline_executor)
        assert sync.connect() is False
        assert sync.state == SyncState.UNAVAILABLE

    def test_no_commit_while_unavailable(self, store, inline_executor):
        store.configure(available=False)
        sync = OrderSync(store, executor=inline_executor)
        sync.connect()
        with pytest.raises(StoreUnavailableError):
            sync.commit_order(_order())

    def test_connect_loads_existing_data(self, store, inline_executor):
        store.set("orders/3", order_to_document(_order("3", "m1")))
        store.set("settings", {"isOpen": False, "maxPrice": 150})
        sync = OrderSync(store, executor=inline_executor)
        sync.connect()
        assert list(sync.orders) == ["3"]
        assert sync.settings.is_open is False
        assert sync.settings.max_price == 150

    def test_connect_loads_data_before_the_first_snapshot(self, inline_executor):
        store = HeldBackStore()
        store.set("orders/12", order_to_document(_order("12", "m1")))
        store.set("settings", {"isOpen": False, "maxPrice": 150})

        sync = OrderSync(store, executor=inline_executor)
        assert sync.connect() is True

        assert sync.order_for("12").total_price == 78
        assert sync.settings.is_open is False
        assert sync.settings.max_price == 150

    def test_connecting_twice_keeps_one_subscription_each(self, sync, store):
        sync.connect()
        store.set("orders/5", order_to_document(_order("5")))
        assert sync.pump() == 1

    def test_missing_settings_read_as_defaults(self, sync):
        assert sync.settings.is_open is True
        assert sync.settings.max_price == 170


class TestCommit:
    def test_commit_updates_mirror_and_store(self, sync, store):
        order = _order("12", "m1")
        assert sync.commit_order(order) is True
        assert sync.order_for("12") is order
        assert store.get("orders/12")["totalPrice"] == 78

    def test_commit_without_changes_writes_nothing(self, sync, store):
        order = _order("12", "m1")
        sync.commit_order(order)
        store.remove("orders")
        assert sync.commit_order(order) is False
        assert store.get("orders/12") is None

    def test_commit_clears_published_events(self, sync):
        order = _order("12", "m1")
        sync.commit_order(order)
        assert order._events == []

    def test_commit_settings(self, sync, store):
        settings = sync.settings
        settings.toggle(False)
        sync.commit_settings(settings)
        assert store.get("settings") == {"isOpen": False, "maxPrice": 170}

    def test_find_order_by_id(self, sync):
        order = _order("12")
        sync.commit_order(order)
        assert sync.find_order(order.id) is order
        assert sync.find_order("ord_missing") is None

    def test_discard_orders(self, sync, store):
        sync.commit_order(_order("1"))
        sync.commit_order(_order("2"))
        sync.discard_orders()
        assert sync.orders == {}
        assert store.get("orders") is None


class TestSnapshots:
    def test_snapshots_wait_for_pump(self, sync, store):
        store.set("orders/7", order_to_document(_order("7", "d1")))
        assert sync.order_for("7") is None
        sync.pump()
        assert sync.order_for("7").total_price == 38

    def test_snapshot_replaces_whole_mirror(self, sync, store):
        sync.commit_order(_order("1"))
        sync.commit_order(_order("2"))
        sync.pump()
        store.set("orders", {"3": order_to_document(_order("3"))})
        sync.pump()
        assert list(sync.orders) == ["3"]

    def test_remote_settings_change_is_applied(self, sync, store):
        store.set("settings", {"isOpen": False, "maxPrice": 120})
        sync.pump()
        assert sync.settings.is_open is False
        assert sync.settings.max_price == 120

    def test_two_clients_see_each_other(self, store, inline_executor):
        first = OrderSync(store, executor=inline_executor)
        second = OrderSync(store, executor=inline_executor)
        first.connect()
        second.connect()

        first.commit_order(_order("1", "m1"))
        second.pump()
        assert second.order_for("1").total_price == 78

    def test_last_write_wins(self, store, inline_executor):
        first = OrderSync(store, executor=inline_executor)
        second = OrderSync(store, executor=inline_executor)
        first.connect()
        second.connect()

        order = _order("1", "m1")
        first.commit_order(order)
        second.pump()

        remote_copy = second.order_for("1")
        remote_copy.add_item(get_menu_item("d1"))
        second.commit_order(remote_copy)

        order.add_item(get_menu_item("sn2"))
        first.commit_order(order)

        second.pump()
        assert [line.item_id for line in second.order_for("1").items] == ["m1", "sn2"]


class TestPendingWrites:
    def test_write_runs_in_background_order(self, store, manual_executor):
        sync = OrderSync(store, executor=manual_executor)
        sync.connect()
        order = _order("12", "m1")
        sync.commit_order(order)
        order.add_item(get_menu_item("d1"))
        sync.commit_order(order)

        assert store.get("orders/12") is None
        manual_executor.run_next()
        assert store.get("orders/12")["totalPrice"] == 78
        manual_executor.run_next()
        assert store.get("orders/12")["totalPrice"] == 116

    def test_stale_snapshot_does_not_undo_pending_write(self, store, manual_executor):
        sync = OrderSync(store, executor=manual_executor)
        sync.connect()
        order = _order("12", "m1")
        sync.commit_order(order)
        manual_executor.run_next()

        order.add_item(get_menu_item("d1"))
        sync.commit_order(order)
        sync.pump()

        assert sync.order_for("12").total_price == 116

        manual_executor.run_all()
        sync.pump()
        assert sync.order_for("12").total_price == 116

    def test_pending_discard_hides_orders_from_snapshot(self, store, manual_executor):
        store.set("orders/1", order_to_document(_order("1")))
        sync = OrderSync(store, executor=manual_executor)
        sync.connect()
        sync.discard_orders()
        store.set("orders/2", order_to_document(_order("2")))
        sync.pump()
        assert sync.orders == {}

    def test_flush_waits_for_threaded_writes(self, store):
        sync = OrderSync(store)
        sync.connect()
        sync.commit_order(_order("12", "m1"))
        assert sync.flush(timeout=5) is True
        assert store.get("orders/12")["totalPrice"] == 78
        assert sync.order_for("12").total_price == 78
        sync.close()
        assert sync.state == SyncState.CLOSED


class TestWriteFailures:
    def test_failed_write_keeps_local_state(self, sync, store):
        store.configure(fail_writes=True)
        order = _order("12", "m1")
        sync.commit_order(order)
        assert sync.order_for("12") is order
        assert store.get("orders/12") is None

    def test_failed_write_becomes_a_notice(self, sync, store):
        store.configure(fail_writes=True)
        sync.commit_order(_order("12", "m1"))
        notices = sync.notices
        assert len(notices) == 1
        assert isinstance(notices[0], WriteFailure)
        assert notices[0].path == "orders/12"
        assert sync.failed_paths == ["orders/12"]

    def test_failure_does_not_block_later_actions(self, sync, store):
        store.configure(fail_writes=True)
        sync.commit_order(_order("1", "m1"))
        store.configure()
        sync.commit_order(_order("2", "d1"))
        assert store.get("orders/2") is not None

    def test_retry_resends_latest_failed_document(self, sync, store):
        store.configure(fail_writes=True)
        order = _order("12", "m1")
        sync.commit_order(order)
        order.add_item(get_menu_item("d1"))
        sync.commit_order(order)

        store.configure()
        assert sync.retry_failed_writes() == 1
        assert store.get("orders/12")["totalPrice"] == 116
        assert sync.failed_paths == []

    def test_later_successful_write_clears_failure(self, sync, store):
        store.configure(fail_writes=True)
        order = _order("12", "m1")
        sync.commit_order(order)
        store.configure()
        order.add_item(get_menu_item("d1"))
        sync.commit_order(order)
        assert sync.failed_paths == []
        assert sync.retry_failed_writes() == 0

    def test_next_snapshot_overwrites_failed_local_state(self, sync, store):
        store.set("orders/12", order_to_document(_order("12", "d1")))
        sync.pump()
        store.configure(fail_writes=True)
        local = sync.order_for("12")
        local.add_item(get_menu_item("m1"))
        sync.commit_order(local)
        assert sync.order_for("12").total_price == 116

        store.configure()
        store.set("orders/99", order_to_document(_order("99")))
        sync.pump()
        assert sync.order_for("12").total_price == 38

    def test_dismiss_notices(self, sync, store):
        store.configure(fail_writes=True)
        sync.commit_order(_order("12", "m1"))
        sync.dismiss_notices()
        assert sync.notices == []
