"""pygeocam - Cache-coherent async repository for geo-tagged picture metadata."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygeocam")
except PackageNotFoundError:
    __version__ = "0+local"
from pygeocam.config import GeoCamConfig
from pygeocam.exceptions import (
    GeoCamConfigError,
    GeoCamError,
    IllegalStateError,
    NotFoundError,
    StoreError,
)
from pygeocam.files import collect_existing_keys
from pygeocam.models import PictureData
from pygeocam.repository import PictureDataRepository
from pygeocam.result import ErrorKind, Failure, Result, Success
from pygeocam.store import MemoryPictureDataStore, PictureDataStore, SqlPictureDataStore

__all__ = [
    "__version__",
    "ErrorKind",
    "Failure",
    "GeoCamConfig",
    "GeoCamConfigError",
    "GeoCamError",
    "IllegalStateError",
    "MemoryPictureDataStore",
    "NotFoundError",
    "PictureData",
    "PictureDataRepository",
    "PictureDataStore",
    "Result",
    "StoreError",
    "SqlPictureDataStore",
    "Success",
    "collect_existing_keys",
]
