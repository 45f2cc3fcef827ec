"""Tests for the SQLAlchemy store and the repository running on top of it."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from sqlalchemy import create_engine

from pygeocam.config import GeoCamConfig
from pygeocam.exceptions import NotFoundError, StoreError
from pygeocam.models.picture import PictureData
from pygeocam.repository import PictureDataRepository
from pygeocam.result import ErrorKind, Failure, Success
from pygeocam.store.sql import Base, SqlPictureDataStore


@pytest.fixture()
def sql_store(tmp_path: Path):
    store = SqlPictureDataStore.from_url(f"sqlite:///{tmp_path / 'picture_data.db'}")
    yield store
    store.close()


def test_upsert_replaces_existing_row(sql_store: SqlPictureDataStore) -> None:
    sql_store.upsert(PictureData(key="/a.jpg", latitude=1.0, longitude=2.0, timestamp=10))
    sql_store.upsert(PictureData(key="/a.jpg", latitude=5.0, longitude=6.0, timestamp=20))

    rows = sql_store.fetch_all()
    assert len(rows) == 1
    assert rows[0].lat_lng == (5.0, 6.0)
    assert rows[0].timestamp == 20


def test_displayed_flag_is_not_persisted(sql_store: SqlPictureDataStore) -> None:
    sql_store.upsert(PictureData(key="/a.jpg", timestamp=1).with_displayed())

    assert sql_store.fetch_by_key("/a.jpg").displayed is False


def test_fetch_by_key_missing_raises_not_found(sql_store: SqlPictureDataStore) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        sql_store.fetch_by_key("/missing.jpg")
    assert exc_info.value.key == "/missing.jpg"


def test_delete_operations(sql_store: SqlPictureDataStore) -> None:
    for index, key in enumerate(["k1", "k2", "k3", "k4"]):
        sql_store.upsert(PictureData(key=key, timestamp=index))

    sql_store.delete_by_key("k4")
    sql_store.delete_by_key("missing")
    assert {p.key for p in sql_store.fetch_all()} == {"k1", "k2", "k3"}

    sql_store.delete_except({"k1", "k3"})
    assert {p.key for p in sql_store.fetch_all()} == {"k1", "k3"}

    sql_store.delete_except(set())
    assert sql_store.fetch_all() == []

    sql_store.upsert(PictureData(key="k5"))
    sql_store.delete_all()
    assert sql_store.fetch_all() == []


def test_database_errors_become_store_errors(tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'broken.db'}")
    store = SqlPictureDataStore(engine)
    Base.metadata.drop_all(bind=engine)

    with pytest.raises(StoreError) as exc_info:
        store.fetch_all()
    assert exc_info.value.operation == "fetch_all"

    with pytest.raises(StoreError):
        store.upsert(PictureData(key="/a.jpg"))
    store.close()


def test_in_memory_url_is_shared_across_threads() -> None:
    store = SqlPictureDataStore.from_url("sqlite://")
    store.upsert(PictureData(key="/a.jpg", timestamp=1))

    with ThreadPoolExecutor(max_workers=1) as pool:
        rows = pool.submit(store.fetch_all).result(timeout=5.0)
    assert [p.key for p in rows] == ["/a.jpg"]
    store.close()


@pytest.mark.asyncio
async def test_repository_round_trip_through_sqlite(tmp_path: Path) -> None:
    config = GeoCamConfig(database_url=f"sqlite:///{tmp_path / 'picture_data.db'}", io_workers=2)

    async with PictureDataRepository.from_config(config) as repository:
        repository.save(PictureData(key="/a.jpg", latitude=10.0, longitude=20.0, timestamp=100))
        repository.save(PictureData(key="/b.jpg", latitude=11.0, longitude=21.0, timestamp=50))
        await repository.flush()

    # A fresh repository starts with an absent cache and reads the durable rows.
    async with PictureDataRepository.from_config(config) as repository:
        match await repository.get_all():
            case Success(value=pictures):
                assert [p.key for p in pictures] == ["/b.jpg", "/a.jpg"]
            case Failure(error=err):
                pytest.fail(f"unexpected failure: {err}")

        assert await repository.reconcile_with_existing({"/a.jpg"}) == Success(None)
        missing = await repository.get("/b.jpg")
        assert isinstance(missing, Failure)
        assert missing.kind is ErrorKind.NOT_FOUND
