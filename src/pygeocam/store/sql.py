"""Durable picture store backed by SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Set
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Column, Float, Integer, String, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pygeocam.exceptions import NotFoundError, StoreError
from pygeocam.models.picture import PictureData

_logger = logging.getLogger(__name__)

Base = declarative_base()


class PictureDataRow(Base):
    __tablename__ = "picture_data"

    uri = Column(String, primary_key=True)
    latitude = Column(Float, nullable=False, default=0.0)
    longitude = Column(Float, nullable=False, default=0.0)
    time = Column(Integer, nullable=False, default=0)

    def to_model(self) -> PictureData:
        return PictureData(
            key=self.uri,
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.time,
        )


def _engine_kwargs(url: str) -> dict[str, Any]:
    # A single shared connection keeps an in-memory SQLite database alive
    # across the repository's worker threads.
    if url.startswith("sqlite") and (url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


class SqlPictureDataStore:
    """:class:`~pygeocam.store.base.PictureDataStore` over the ``picture_data`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, autoflush=False, future=True)
        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not create picture_data table: {exc}", operation="create_all") from exc

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> SqlPictureDataStore:
        engine = create_engine(url, future=True, echo=echo, **_engine_kwargs(url))
        return cls(engine)

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session: Session = self._sessionmaker()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            _logger.debug("Store operation %s failed", operation, exc_info=True)
            raise StoreError(f"Store operation {operation} failed: {exc}", operation=operation) from exc
        finally:
            session.close()

    def fetch_all(self) -> list[PictureData]:
        with self._session("fetch_all") as session:
            rows = session.execute(select(PictureDataRow)).scalars().all()
            return [row.to_model() for row in rows]

    def fetch_by_key(self, key: str) -> PictureData:
        with self._session("fetch_by_key") as session:
            row = session.get(PictureDataRow, key)
            if row is None:
                raise NotFoundError("Picture not found!", key=key)
            return row.to_model()

    def upsert(self, picture: PictureData) -> None:
        with self._session("upsert") as session:
            session.merge(PictureDataRow(**picture.durable_fields()))
            session.commit()

    def delete_by_key(self, key: str) -> None:
        with self._session("delete_by_key") as session:
            session.execute(delete(PictureDataRow).where(PictureDataRow.uri == key))
            session.commit()

    def delete_all(self) -> None:
        with self._session("delete_all") as session:
            session.execute(delete(PictureDataRow))
            session.commit()

    def delete_except(self, keys_to_keep: Set[str]) -> None:
        with self._session("delete_except") as session:
            stmt = delete(PictureDataRow)
            if keys_to_keep:
                stmt = stmt.where(PictureDataRow.uri.not_in(list(keys_to_keep)))
            session.execute(stmt)
            session.commit()

    def close(self) -> None:
        self._engine.dispose()
