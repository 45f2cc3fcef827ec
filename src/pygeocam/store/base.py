"""Backing store capability used by the repository."""

from __future__ import annotations

from collections.abc import Set
from typing import Protocol

from pygeocam.models.picture import PictureData


class PictureDataStore(Protocol):
    """Structural interface for durable keyed picture storage.

    Methods are blocking; the repository calls them on its I/O executor.
    Implementations raise :class:`~pygeocam.exceptions.StoreError` for
    unexpected faults and :class:`~pygeocam.exceptions.NotFoundError` from
    :meth:`fetch_by_key` when the key is absent.
    """

    def fetch_all(self) -> list[PictureData]:
        ...

    def fetch_by_key(self, key: str) -> PictureData:
        ...

    def upsert(self, picture: PictureData) -> None:
        """Insert *picture*, replacing any row with the same key."""
        ...

    def delete_by_key(self, key: str) -> None:
        """Delete the row for *key*; a missing key is a no-op."""
        ...

    def delete_all(self) -> None:
        ...

    def delete_except(self, keys_to_keep: Set[str]) -> None:
        """Delete every row whose key is not in *keys_to_keep*."""
        ...

    def close(self) -> None:
        ...
