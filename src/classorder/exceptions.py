"""Errors raised by the classroom ordering client.

Input and aggregate-guard failures use Protean's ``ValidationError`` and
``ObjectNotFoundError``; the classes here cover the store boundary and role
routing.
"""


class ClassOrderError(Exception):
    """Base class for client errors."""


class StoreUnavailableError(ClassOrderError):
    """The remote store could not be reached."""


class RemoteWriteError(ClassOrderError):
    """A write to the remote store did not complete."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class AccessDenied(ClassOrderError):
    """The acting identity may not perform the requested action."""
