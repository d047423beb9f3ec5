"""In-process store: a shared JSON tree for tests, demos and single-machine use.

Several clients may share one instance, which stands in for several devices
talking to the same database. Like the real thing it does not keep null
values or empty lists and objects, so an order with an empty cart comes back
without an ``items`` key at all.
"""

import copy
import threading

import structlog

from classorder.exceptions import RemoteWriteError, StoreUnavailableError
from classorder.store.base import RemoteStore, Subscription, split_path

logger = structlog.get_logger(__name__)


def _prune(value):
    """Drop what the store would not keep: None, empty lists and empty objects."""
    if isinstance(value, dict):
        pruned = {key: _prune(item) for key, item in value.items()}
        pruned = {key: item for key, item in pruned.items() if item is not None}
        return pruned or None
    if isinstance(value, (list, tuple)):
        pruned = [_prune(item) for item in value]
        pruned = [item for item in pruned if item is not None]
        return pruned or None
    return value


def _related(path_a, path_b):
    """Whether a change at one path is visible at the other."""
    shorter, longer = sorted((split_path(path_a), split_path(path_b)), key=len)
    return longer[: len(shorter)] == shorter


class InMemoryStore(RemoteStore):
    """Thread-safe shared tree that delivers snapshots synchronously."""

    def __init__(self, data=None):
        self._lock = threading.RLock()
        self._tree = _prune(copy.deepcopy(data)) or {}
        self._subscribers = {}
        self._next_token = 0
        self.available = True
        self.fail_writes = False

    def configure(self, available: bool = True, fail_writes: bool = False):
        """Configure failure behaviour for testing."""
        self.available = available
        self.fail_writes = fail_writes

    def connect(self):
        if not self.available:
            raise StoreUnavailableError("In-memory store is configured as unavailable")

    def get(self, path):
        with self._lock:
            node = self._tree
            for part in split_path(path):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
            return copy.deepcopy(node)

    def set(self, path, value):
        self._check_writable(path)
        parts = split_path(path)
        value = _prune(copy.deepcopy(value))
        with self._lock:
            if not parts:
                self._tree = value if isinstance(value, dict) else {}
            elif value is None:
                self._delete(parts)
            else:
                node = self._tree
                for part in parts[:-1]:
                    child = node.get(part)
                    if not isinstance(child, dict):
                        child = node[part] = {}
                    node = child
                node[parts[-1]] = value
        self._notify(path)

    def remove(self, path):
        self._check_writable(path)
        with self._lock:
            parts = split_path(path)
            if parts:
                self._delete(parts)
            else:
                self._tree = {}
        self._notify(path)

    def subscribe(self, path, callback):
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = (path, callback)

        subscription = Subscription(path, lambda: self._unsubscribe(token))
        callback(self.get(path))
        return subscription

    def close(self):
        with self._lock:
            self._subscribers.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _check_writable(self, path):
        if not self.available or self.fail_writes:
            raise RemoteWriteError(path, "write rejected by in-memory store")

    def _delete(self, parts):
        trail = [self._tree]
        node = self._tree
        for part in parts[:-1]:
            node = node.get(part)
            if not isinstance(node, dict):
                return
            trail.append(node)
        node.pop(parts[-1], None)
        # Parents left empty disappear as well
        for parent, part in zip(reversed(trail[:-1]), reversed(parts[:-1]), strict=True):
            if parent.get(part):
                break
            parent.pop(part, None)

    def _unsubscribe(self, token):
        with self._lock:
            self._subscribers.pop(token, None)

    def _notify(self, changed_path):
        with self._lock:
            targets = [(path, callback) for path, callback in self._subscribers.values() if _related(path, changed_path)]
        for path, callback in targets:
            callback(self.get(path))
