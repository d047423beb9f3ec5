"""Local mirror of the shared orders collection and settings singleton.

``OrderSync`` keeps what one client knows about the store:

* Every remote change arrives as a whole snapshot of ``orders`` or
  ``settings``. Snapshots are queued from whatever thread the store delivers
  on and applied by ``pump()`` on the client's own thread, where each one
  replaces the corresponding part of the mirror.
* Local changes are optimistic. A committed order or settings object is in
  the mirror at once; its full document is written in the background by a
  single writer so writes leave in the order they were made.
* Until a write is acknowledged its document overlays incoming snapshots, so
  a snapshot produced before the write landed cannot undo it locally.
* A failed write keeps the local state, is reported as a ``WriteFailure``
  notice and can be sent again with ``retry_failed_writes()``. The next
  remote snapshot still wins.
"""

import itertools
import queue
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import structlog

from classorder.config import DEFAULT_MAX_PRICE, ORDERS_PATH, SETTINGS_PATH
from classorder.exceptions import RemoteWriteError, StoreUnavailableError
from classorder.settings.settings import SystemSettings
from classorder.store.base import split_path
from classorder.sync.documents import (
    order_to_document,
    orders_from_snapshot,
    settings_from_document,
    settings_to_document,
)

logger = structlog.get_logger(__name__)

_MAX_NOTICES = 50


class SyncState(Enum):
    CONNECTING = "CONNECTING"
    ONLINE = "ONLINE"
    UNAVAILABLE = "UNAVAILABLE"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class WriteFailure:
    """A background write that did not reach the store."""

    path: str
    message: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def order_path(user_id):
    return f"{ORDERS_PATH}/{user_id}"


class OrderSync:
    def __init__(self, store, executor=None, default_max_price=DEFAULT_MAX_PRICE):
        self.store = store
        self.default_max_price = default_max_price
        self.state = SyncState.CONNECTING

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="store-writer")
        self._inbox = queue.SimpleQueue()
        self._subscriptions = []

        self._orders = {}
        self._settings = SystemSettings.initial(max_price=default_max_price)

        # Shared with the writer thread
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._unacked = {}
        self._failed = {}
        self._notices = deque(maxlen=_MAX_NOTICES)
        self._futures = []

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def connect(self):
        """Reach the store and subscribe to orders and settings.

        The current orders and settings are read into the mirror before the
        state turns ``ONLINE``, whether or not the subscriptions have
        delivered yet. Returns False, with the state left ``UNAVAILABLE``,
        when the store cannot be reached. Connecting again while online
        changes nothing.
        """
        if self.is_online:
            return True
        self.state = SyncState.CONNECTING
        try:
            self.store.connect()
            orders = self.store.get(ORDERS_PATH)
            settings = self.store.get(SETTINGS_PATH)
        except StoreUnavailableError as exc:
            self.state = SyncState.UNAVAILABLE
            logger.error("sync_unavailable", error=str(exc))
            return False

        self._apply_orders(orders)
        self._apply_settings(settings)
        self._subscriptions = [
            self.store.subscribe(ORDERS_PATH, lambda snapshot: self._inbox.put((ORDERS_PATH, snapshot))),
            self.store.subscribe(SETTINGS_PATH, lambda snapshot: self._inbox.put((SETTINGS_PATH, snapshot))),
        ]
        self.state = SyncState.ONLINE
        logger.info("sync_online")
        self.pump()
        return True

    @property
    def is_online(self):
        return self.state == SyncState.ONLINE

    def close(self):
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self.state = SyncState.CLOSED
        logger.info("sync_closed")

    # ------------------------------------------------------------------
    # Reading the mirror
    # ------------------------------------------------------------------
    @property
    def orders(self):
        return dict(self._orders)

    @property
    def settings(self):
        return self._settings

    def order_for(self, user_id):
        return self._orders.get(str(user_id))

    def find_order(self, order_id):
        return next((order for order in self._orders.values() if str(order.id) == str(order_id)), None)

    # ------------------------------------------------------------------
    # Remote snapshots
    # ------------------------------------------------------------------
    def pump(self):
        """Apply every queued snapshot. Returns how many were applied."""
        applied = 0
        while True:
            try:
                path, snapshot = self._inbox.get_nowait()
            except queue.Empty:
                break
            if path == ORDERS_PATH:
                self._apply_orders(snapshot)
            else:
                self._apply_settings(snapshot)
            applied += 1
        if applied:
            logger.debug("snapshots_applied", count=applied, orders=len(self._orders))
        return applied

    def _overlays(self, root):
        with self._lock:
            pending = [
                (sequence, path, document)
                for path, (sequence, document) in self._unacked.items()
                if split_path(path)[0] == root
            ]
        return [(path, document) for _, path, document in sorted(pending, key=lambda entry: entry[0])]

    def _apply_orders(self, snapshot):
        documents = dict(snapshot) if isinstance(snapshot, dict) else {}
        for path, document in self._overlays(ORDERS_PATH):
            parts = split_path(path)
            if len(parts) == 1:
                documents = {}
            elif document is None:
                documents.pop(parts[1], None)
            else:
                documents[parts[1]] = document
        self._orders = orders_from_snapshot(documents)

    def _apply_settings(self, snapshot):
        for _, document in self._overlays(SETTINGS_PATH):
            snapshot = document
        self._settings = settings_from_document(snapshot, default_max_price=self.default_max_price)

    # ------------------------------------------------------------------
    # Local changes
    # ------------------------------------------------------------------
    def _require_online(self):
        if not self.is_online:
            raise StoreUnavailableError(f"Store is {self.state.value.lower()}")

    def commit_order(self, order):
        """Put ``order`` in the mirror and publish it if it has unpublished changes.

        Returns True when a write was issued.
        """
        self._require_online()
        self._orders[str(order.user_id)] = order
        if not order._events:
            return False

        logger.info(
            "order_committed",
            order_id=str(order.id),
            user_id=str(order.user_id),
            events=[type(event).__name__ for event in order._events],
        )
        order._events.clear()
        self._submit_write(order_path(order.user_id), order_to_document(order))
        return True

    def commit_settings(self, settings):
        self._require_online()
        self._settings = settings
        if not settings._events:
            return False

        logger.info("settings_committed", events=[type(event).__name__ for event in settings._events])
        settings._events.clear()
        self._submit_write(SETTINGS_PATH, settings_to_document(settings))
        return True

    def discard_orders(self):
        """Delete every order, locally and in the store."""
        self._require_online()
        count = len(self._orders)
        self._orders = {}
        self._submit_write(ORDERS_PATH, None)
        logger.warning("orders_discarded", count=count)

    # ------------------------------------------------------------------
    # Background writes
    # ------------------------------------------------------------------
    def _submit_write(self, path, document):
        with self._lock:
            sequence = next(self._sequence)
            self._unacked[path] = (sequence, document)
            self._futures = [future for future in self._futures if not future.done()]
        future = self._executor.submit(self._write, sequence, path, document)
        with self._lock:
            self._futures.append(future)
        return future

    def _write(self, sequence, path, document):
        try:
            if document is None:
                self.store.remove(path)
            else:
                self.store.set(path, document)
        except RemoteWriteError as exc:
            with self._lock:
                self._release(sequence, path)
                self._failed[path] = document
                self._notices.append(WriteFailure(path=path, message=str(exc)))
            logger.warning("store_write_failed", path=path, error=str(exc))
            return False

        with self._lock:
            self._release(sequence, path)
            self._failed.pop(path, None)
        logger.debug("store_write_acknowledged", path=path)
        return True

    def _release(self, sequence, path):
        entry = self._unacked.get(path)
        if entry is not None and entry[0] == sequence:
            del self._unacked[path]

    def retry_failed_writes(self):
        """Send the latest failed document for every path again."""
        self._require_online()
        with self._lock:
            failed, self._failed = self._failed, {}
        for path, document in failed.items():
            self._submit_write(path, document)
        if failed:
            logger.info("store_writes_retried", paths=sorted(failed))
        return len(failed)

    @property
    def failed_paths(self):
        with self._lock:
            return sorted(self._failed)

    @property
    def notices(self):
        with self._lock:
            return list(self._notices)

    def dismiss_notices(self):
        with self._lock:
            self._notices.clear()

    def flush(self, timeout=None):
        """Wait for outstanding writes, then apply what they caused.

        Returns False if some writes were still running at the timeout.
        """
        with self._lock:
            futures = list(self._futures)
        _, not_done = wait(futures, timeout=timeout)
        self.pump()
        return not not_done
