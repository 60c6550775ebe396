# src/geostack/sources/registry.py

"""
This module maps file extensions to source formats.

Registries are plain objects passed to constructors; there is no global
registry to mutate, so tests can inject fake formats freely.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

from geostack.exceptions import UnsupportedOperationError
from .base import SourceFormat

log = logging.getLogger(__name__)

__all__ = [
    "FormatRegistry",
    "default_registry"
]

def _normalize(extension: str) -> str:
    extension = extension.lower()
    return extension if extension.startswith(".") else f".{extension}"

class FormatRegistry:
    """
    Lookup table from file extension to SourceFormat.

    Args:
        formats: Formats to register under each of their `extensions`.
    """
    def __init__(self, formats: Optional[Iterable[SourceFormat]] = None):
        self._formats: Dict[str, SourceFormat] = {}
        for fmt in formats or ():
            self.register(fmt)

    def register(self, fmt: SourceFormat, extensions: Optional[Iterable[str]] = None) -> "FormatRegistry":
        """
        Register `fmt` for `extensions` (default: the format's own extensions).

        A later registration for the same extension replaces the earlier one.
        """
        extensions = tuple(extensions) if extensions is not None else fmt.extensions
        if not extensions:
            raise ValueError(f"Format {fmt.name!r} declares no extensions to register")
        for ext in extensions:
            ext = _normalize(ext)
            if ext in self._formats and self._formats[ext] is not fmt:
                log.debug(f"Replacing format for '{ext}': {self._formats[ext].name} -> {fmt.name}")
            self._formats[ext] = fmt
        return self

    def get(self, extension: str) -> SourceFormat:
        ext = _normalize(extension)
        if ext not in self._formats:
            raise UnsupportedOperationError(
                f"No source format registered for '{ext}'. Registered: {sorted(self._formats)}"
            )
        return self._formats[ext]

    def for_path(self, path: Union[str, Path]) -> SourceFormat:
        """Format responsible for the extension of `path`."""
        return self.get(Path(path).suffix)

    @property
    def extensions(self) -> Tuple[str, ...]:
        return tuple(self._formats)

    def __contains__(self, extension: str) -> bool:
        return _normalize(extension) in self._formats

    def __repr__(self) -> str:
        pairs = ", ".join(f"{ext}: {fmt.name}" for ext, fmt in self._formats.items())
        return f"<FormatRegistry {{{pairs}}}>"

def default_registry() -> FormatRegistry:
    """
    A new registry with the built-in GeoTIFF and HDF5 formats.

    SMAP files share the '.h5' extension with generic HDF5, so the SMAP
    format is not registered by default; pass it explicitly.
    """
    from .geotiff import GeoTIFFFormat
    from .hdf5 import HDF5Format
    return FormatRegistry([GeoTIFFFormat(), HDF5Format()])
