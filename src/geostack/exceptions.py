# src/geostack/exceptions.py

"""
This module defines the exception hierarchy shared by all geostack subpackages.

I/O failures raised by rasterio or h5py are not wrapped: they propagate
to the caller as the OSError subclasses those libraries raise.
"""

from pathlib import Path
from typing import List, Optional, Union

__all__ = [
    "GeoStackError",
    "KeyNotFoundError",
    "MissingLayerError",
    "DimensionMismatchError",
    "UnsupportedOperationError",
    "MalformedPathError",
    "EmptySeriesError",
    "DuplicateKeyError"
]

class GeoStackError(Exception):
    """Base error for all geostack exceptions."""


class KeyNotFoundError(GeoStackError, KeyError):
    """Raised when a requested layer name is not present in a stack."""


class MissingLayerError(GeoStackError):
    """Raised when a concatenation or series element lacks a requested layer."""


class DimensionMismatchError(GeoStackError, ValueError):
    """Raised when dimensions cannot be merged or do not match array axes."""


class UnsupportedOperationError(GeoStackError):
    """Raised for operations a dimension or source does not support."""


class DuplicateKeyError(GeoStackError, ValueError):
    """Raised when layer keys collide after normalization."""


class MalformedPathError(GeoStackError, ValueError):
    """
    Raised when a coordinate (e.g. a timestamp) cannot be parsed from a filename.

    Kept distinct from OSError so series construction can skip the file
    instead of aborting.
    """

    def __init__(self, path: Union[str, Path], message: Optional[str] = None):
        self.path = Path(path)
        super().__init__(message or f"Could not parse coordinate from path: {path}")


class EmptySeriesError(GeoStackError):
    """Raised when no file of a directory scan produced a valid series element."""

    def __init__(self, message: str, errors: Optional[List[MalformedPathError]] = None):
        super().__init__(message)
        self.errors = list(errors or [])
