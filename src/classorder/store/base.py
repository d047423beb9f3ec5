"""Remote store port: the shared JSON tree every client reads and writes.

The store behaves like a Realtime Database: values live at slash-separated
paths, writes replace whole documents, removal deletes a whole subtree and
subscribers receive the full value at their path after every change. There
are no partial updates, queries or server-side checks.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

SnapshotCallback = Callable[[Any], None]


class Subscription:
    """Handle returned by ``subscribe``; ``cancel`` stops further deliveries."""

    def __init__(self, path: str, on_cancel: Callable[[], None]):
        self.path = path
        self._on_cancel = on_cancel
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._on_cancel()


class RemoteStore(ABC):
    """Abstract interface for shared store connections."""

    @abstractmethod
    def connect(self) -> None:
        """Make sure the store is reachable.

        Raises:
            StoreUnavailableError: when it is not.
        """
        ...

    @abstractmethod
    def get(self, path: str) -> Any:
        """Return the current value at ``path``, or None when nothing is stored.

        Raises:
            StoreUnavailableError: when the store cannot be read.
        """
        ...

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Replace the value at ``path``.

        Raises:
            RemoteWriteError: when the write does not complete.
        """
        ...

    @abstractmethod
    def remove(self, path: str) -> None:
        """Delete ``path`` and everything below it.

        Raises:
            RemoteWriteError: when the delete does not complete.
        """
        ...

    @abstractmethod
    def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription:
        """Deliver the value at ``path`` now and after every later change.

        Callbacks may run on any thread.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Cancel every subscription and release the connection."""
        ...


def split_path(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]
