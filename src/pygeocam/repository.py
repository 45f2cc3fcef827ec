"""Cache-coherent async repository over a durable picture store."""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, TypeVar

from pygeocam.config import GeoCamConfig
from pygeocam.exceptions import GeoCamConfigError, GeoCamError, IllegalStateError, NotFoundError, StoreError
from pygeocam.files import collect_existing_keys
from pygeocam.models.picture import PictureData
from pygeocam.result import Failure, Result, Success
from pygeocam.store.base import PictureDataStore
from pygeocam.store.sql import SqlPictureDataStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_FETCH_ERROR_MESSAGE = "Error fetching local picture data"


def _display_order(picture: PictureData) -> tuple[int, str]:
    """Ascending time; equal times fall back to the key so ordering is stable."""
    return (picture.timestamp, picture.key)


def _as_store_error(exc: GeoCamError, operation: str, message: str | None = None) -> StoreError:
    if isinstance(exc, StoreError) and message is None:
        return exc
    error = StoreError(message or str(exc), operation=operation)
    error.__cause__ = exc
    return error


class PictureDataRepository:
    """Single source of truth for picture metadata.

    Reads are served from an in-memory cache when it is populated and
    trigger a full reload from the store otherwise.  Writes go to the
    cache immediately and to the store on the I/O executor.

    Usage::

        async with PictureDataRepository.from_config(config) as repository:
            repository.save(PictureData(key="/pics/a.jpg", latitude=1.0, longitude=2.0, timestamp=100))
            match await repository.get_all():
                case Success(value=pictures):
                    ...
                case Failure(error=err):
                    ...
    """

    def __init__(
        self,
        store: PictureDataStore,
        *,
        executor: Executor | None = None,
        max_workers: int = 4,
        on_write_error: Callable[[PictureData, GeoCamError], None] | None = None,
        pictures_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        self._store = store
        self._owns_store = False
        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="pygeocam-io",
        )
        self._on_write_error = on_write_error
        self._pictures_dir = pictures_dir

        # None means "absent": the next read reloads everything from the store.
        self._cache: dict[str, PictureData] | None = None
        self._cache_lock = threading.Lock()
        self._store_lock = asyncio.Lock()

        # Saves whose durable write has not completed yet, by key.
        self._unflushed: dict[str, PictureData] = {}
        self._pending: dict[str, asyncio.Task[Result[None]]] = {}
        self._tasks: set[asyncio.Task[Result[None]]] = set()

    @classmethod
    def from_config(cls, config: GeoCamConfig, **kwargs: Any) -> PictureDataRepository:
        """Build a repository over a SQL store described by *config*."""
        store = SqlPictureDataStore.from_url(config.database_url, echo=config.sql_echo)
        kwargs.setdefault("max_workers", config.io_workers)
        kwargs.setdefault("pictures_dir", config.pictures_dir)
        repository = cls(store, **kwargs)
        repository._owns_store = True
        return repository

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PictureDataRepository:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for pending writes, then release the executor and store we own."""
        await self.flush()
        loop = asyncio.get_running_loop()
        if self._owns_executor:
            await loop.run_in_executor(None, functools.partial(self._executor.shutdown, wait=True))
        if self._owns_store:
            await loop.run_in_executor(None, self._store.close)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_cached(self) -> bool:
        with self._cache_lock:
            return self._cache is not None

    @property
    def pending_writes(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a blocking store call on the executor, one at a time."""
        loop = asyncio.get_running_loop()
        async with self._store_lock:
            return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _cached(self, key: str) -> PictureData | None:
        with self._cache_lock:
            if self._cache is not None and key in self._cache:
                return self._cache[key]
        return self._unflushed.get(key)

    def _cached_values(self) -> list[PictureData] | None:
        with self._cache_lock:
            if self._cache is None:
                return None
            return list(self._cache.values())

    def _install(self, pictures: Iterable[PictureData]) -> list[PictureData]:
        """Replace the cache wholesale with *pictures* plus unflushed saves."""
        fresh: dict[str, PictureData] = {}
        for picture in sorted(pictures, key=_display_order):
            if picture.key in fresh:
                raise IllegalStateError(f"Store returned duplicate key {picture.key!r}")
            fresh[picture.key] = picture.durable_copy()
        # Saves still in flight are newer than anything the store returned.
        fresh.update(self._unflushed)
        with self._cache_lock:
            self._cache = fresh
        _logger.debug("Cache reloaded with %d pictures", len(fresh))
        return list(fresh.values())

    async def _reload(self, *, force: bool) -> Result[list[PictureData]]:
        loop = asyncio.get_running_loop()
        async with self._store_lock:
            if not force:
                # Another reader may have reloaded while we waited for the lock.
                cached = self._cached_values()
                if cached is not None:
                    return Success(sorted(cached, key=_display_order))
            try:
                pictures = await loop.run_in_executor(self._executor, self._store.fetch_all)
            except GeoCamError as exc:
                _logger.debug("Fetching all pictures failed", exc_info=True)
                return Failure(_as_store_error(exc, "fetch_all", _FETCH_ERROR_MESSAGE))
            try:
                snapshot = self._install(pictures)
            except IllegalStateError as exc:
                return Failure(exc)
        return Success(sorted(snapshot, key=_display_order))

    async def _wait_pending(self, keys: Iterable[str] | None = None) -> None:
        """Wait for in-flight saves (of *keys*, or all) without raising their errors."""
        if keys is None:
            tasks = [task for task in self._pending.values() if not task.done()]
        else:
            tasks = [task for key in keys if (task := self._pending.get(key)) is not None and not task.done()]
        if tasks:
            await asyncio.wait(tasks)

    def _forget_unflushed(self, picture: PictureData) -> None:
        if self._unflushed.get(picture.key) is picture:
            del self._unflushed[picture.key]

    async def _persist(
        self,
        picture: PictureData,
        previous: asyncio.Task[Result[None]] | None,
    ) -> Result[None]:
        try:
            # Writes for one key reach the store in call order.
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            try:
                await self._run(self._store.upsert, picture)
            except GeoCamError as exc:
                error = _as_store_error(exc, "upsert")
                self._write_failed(picture, error)
                return Failure(error)
            _logger.debug("Persisted picture %s", picture.key)
            return Success(None)
        finally:
            self._forget_unflushed(picture)

    def _write_failed(self, picture: PictureData, error: StoreError) -> None:
        _logger.warning("Saving picture %s failed", picture.key, exc_info=error)
        # The cache is now ahead of the store; make the next read reconcile.
        self.invalidate()
        if self._on_write_error is not None:
            try:
                self._on_write_error(picture, error)
            except Exception:
                _logger.debug("on_write_error callback failed", exc_info=True)

    def _save_done(self, picture: PictureData, task: asyncio.Task[Result[None]]) -> None:
        self._tasks.discard(task)
        if self._pending.get(picture.key) is task:
            del self._pending[picture.key]
        self._forget_unflushed(picture)
        if task.cancelled():
            _logger.debug("Save of %s cancelled; cache may be ahead of the store until the next reload", picture.key)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all(self) -> Result[list[PictureData]]:
        """Return every picture ordered by ascending timestamp.

        Served from the cache when populated; otherwise all pictures are
        fetched from the store and the cache is rebuilt from them.  An empty
        store is a successful empty list.
        """
        cached = self._cached_values()
        if cached is not None:
            _logger.debug("Cache hit for all pictures (%d)", len(cached))
            return Success(sorted(cached, key=_display_order))
        _logger.debug("Cache absent; loading all pictures from the store")
        return await self._reload(force=False)

    async def get(self, key: str) -> Result[PictureData]:
        """Return the picture stored under *key*.

        A cache miss falls through to the store.  Missing keys yield a
        ``Failure`` carrying :class:`~pygeocam.exceptions.NotFoundError`
        and leave the cache untouched.
        """
        cached = self._cached(key)
        if cached is not None:
            return Success(cached)

        try:
            picture = await self._run(self._store.fetch_by_key, key)
        except NotFoundError as exc:
            _logger.debug("Picture %s not found", key)
            return Failure(exc)
        except GeoCamError as exc:
            _logger.debug("Fetching picture %s failed", key, exc_info=True)
            return Failure(_as_store_error(exc, "fetch_by_key", _FETCH_ERROR_MESSAGE))

        if picture.key != key:
            return Failure(IllegalStateError(f"Store returned {picture.key!r} for key {key!r}"))

        stored = picture.durable_copy()
        with self._cache_lock:
            # Only a populated cache takes single entries; an absent cache
            # stays absent until the next full reload.
            if self._cache is not None:
                self._cache[key] = stored
        return Success(stored)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, picture: PictureData) -> asyncio.Task[Result[None]]:
        """Cache *picture* now and persist it in the background.

        The returned task resolves to the outcome of the durable write;
        awaiting it is optional.  Failed writes are logged, passed to
        ``on_write_error`` and invalidate the cache so the next read
        re-derives state from the store.
        """
        stored = picture.durable_copy()
        with self._cache_lock:
            if self._cache is not None:
                self._cache[stored.key] = stored
        self._unflushed[stored.key] = stored

        previous = self._pending.get(stored.key)
        task = asyncio.get_running_loop().create_task(self._persist(stored, previous))
        self._pending[stored.key] = task
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._save_done, stored))
        return task

    async def delete(self, key: str) -> Result[None]:
        """Delete the picture under *key*; a missing key is a no-op."""
        await self._wait_pending([key])
        try:
            await self._run(self._store.delete_by_key, key)
        except GeoCamError as exc:
            return Failure(_as_store_error(exc, "delete_by_key"))
        with self._cache_lock:
            # A save issued while the delete was running wins.
            if self._cache is not None and key not in self._unflushed:
                self._cache.pop(key, None)
        _logger.debug("Deleted picture %s", key)
        return Success(None)

    async def delete_all(self) -> Result[None]:
        """Delete every picture and reset the cache to absent."""
        await self._wait_pending()
        try:
            await self._run(self._store.delete_all)
        except GeoCamError as exc:
            return Failure(_as_store_error(exc, "delete_all"))
        self.invalidate()
        _logger.debug("Deleted all pictures")
        return Success(None)

    async def reconcile_with_existing(self, keys_still_present: Iterable[str]) -> Result[None]:
        """Delete every stored picture whose key is not in *keys_still_present*.

        The cache is rebuilt from the store afterwards so both stay mirrors.
        """
        keep = frozenset(keys_still_present)
        await self._wait_pending()
        try:
            await self._run(self._store.delete_except, keep)
        except GeoCamError as exc:
            return Failure(_as_store_error(exc, "delete_except"))
        self.invalidate()
        reloaded = await self._reload(force=True)
        if isinstance(reloaded, Failure):
            return reloaded
        _logger.debug("Reconciled store against %d existing keys", len(keep))
        return Success(None)

    async def clear_deleted(self, directory: str | os.PathLike[str] | None = None) -> Result[None]:
        """Reconcile the store with the files currently below *directory*.

        Defaults to the configured pictures directory.
        """
        target = directory if directory is not None else self._pictures_dir
        if target is None:
            raise GeoCamConfigError("No pictures directory configured (set pictures_dir or pass directory)")
        loop = asyncio.get_running_loop()
        keys = await loop.run_in_executor(self._executor, collect_existing_keys, target)
        return await self.reconcile_with_existing(keys)

    # ------------------------------------------------------------------
    # Cache-only state
    # ------------------------------------------------------------------

    def mark_displayed(self, key: str, displayed: bool = True) -> bool:
        """Set the runtime-only ``displayed`` flag on the cached picture.

        Returns ``False`` when *key* is not cached.  Never touches the store.
        """
        with self._cache_lock:
            if self._cache is None or key not in self._cache:
                return False
            self._cache[key] = self._cache[key].with_displayed(displayed)
        return True

    def invalidate(self) -> None:
        """Drop the cache; the next read reloads everything from the store."""
        with self._cache_lock:
            self._cache = None

    async def flush(self) -> None:
        """Wait until every scheduled durable write has completed."""
        while True:
            tasks = [task for task in self._tasks if not task.done()]
            if not tasks:
                return
            await asyncio.wait(tasks)
