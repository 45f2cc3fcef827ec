"""Data models for pygeocam."""

from pygeocam.models.picture import PictureData

__all__ = [
    "PictureData",
]
