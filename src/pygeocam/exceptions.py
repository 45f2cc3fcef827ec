"""Custom exception hierarchy for pygeocam."""

from __future__ import annotations

from pygeocam.result import ErrorKind


class GeoCamError(Exception):
    """Base exception for all pygeocam errors.

    ``kind`` classifies the error when it is carried by a
    :class:`~pygeocam.result.Failure`.  Subclasses without a more specific
    kind are reported as ``STORE_ERROR``.
    """

    kind: ErrorKind = ErrorKind.STORE_ERROR


class GeoCamConfigError(GeoCamError):
    """Invalid or missing configuration.

    Raised directly, never returned in a ``Failure``; it keeps the base
    ``STORE_ERROR`` kind.
    """


class NotFoundError(GeoCamError):
    """Requested key is absent from both the cache and the store."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class StoreError(GeoCamError):
    """The backing store raised an unexpected fault (I/O, corruption, constraint)."""

    kind = ErrorKind.STORE_ERROR

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class IllegalStateError(GeoCamError):
    """The repository reached a state it defines as impossible.

    Raised (and surfaced through a ``Failure``) when the store answers in a
    way that breaks a repository invariant, e.g. two rows sharing one key,
    or a point lookup returning a different key than the one requested.
    """

    kind = ErrorKind.ILLEGAL_STATE
