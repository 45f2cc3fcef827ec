"""In-memory picture store for development and testing.

Data is lost when the process exits.
"""

from __future__ import annotations

import threading
from collections.abc import Set

from pygeocam.exceptions import NotFoundError, StoreError
from pygeocam.models.picture import PictureData


class MemoryPictureDataStore:
    """Thread-safe dict-backed :class:`~pygeocam.store.base.PictureDataStore`.

    ``calls`` records the name of every store operation in order, which
    lets tests assert how many round trips the repository made.
    """

    def __init__(self, pictures: list[PictureData] | None = None) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, PictureData] = {}
        self._closed = False
        self.calls: list[str] = []
        for picture in pictures or []:
            self._rows[picture.key] = picture.durable_copy()

    def _record(self, operation: str) -> None:
        if self._closed:
            raise StoreError("Store is closed", operation=operation)
        self.calls.append(operation)

    def fetch_all(self) -> list[PictureData]:
        with self._lock:
            self._record("fetch_all")
            return [picture.durable_copy() for picture in self._rows.values()]

    def fetch_by_key(self, key: str) -> PictureData:
        with self._lock:
            self._record("fetch_by_key")
            picture = self._rows.get(key)
            if picture is None:
                raise NotFoundError("Picture not found!", key=key)
            return picture.durable_copy()

    def upsert(self, picture: PictureData) -> None:
        with self._lock:
            self._record("upsert")
            self._rows[picture.key] = picture.durable_copy()

    def delete_by_key(self, key: str) -> None:
        with self._lock:
            self._record("delete_by_key")
            self._rows.pop(key, None)

    def delete_all(self) -> None:
        with self._lock:
            self._record("delete_all")
            self._rows.clear()

    def delete_except(self, keys_to_keep: Set[str]) -> None:
        with self._lock:
            self._record("delete_except")
            for key in [k for k in self._rows if k not in keys_to_keep]:
                del self._rows[key]

    def close(self) -> None:
        self._closed = True

    def keys(self) -> set[str]:
        with self._lock:
            return set(self._rows)
