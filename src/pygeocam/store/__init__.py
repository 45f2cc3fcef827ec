"""Backing stores.

The repository depends only on the :class:`PictureDataStore` protocol;
any durable keyed storage satisfying it can be plugged in.
"""

from pygeocam.store.base import PictureDataStore
from pygeocam.store.memory import MemoryPictureDataStore
from pygeocam.store.sql import SqlPictureDataStore

__all__ = [
    "MemoryPictureDataStore",
    "PictureDataStore",
    "SqlPictureDataStore",
]
