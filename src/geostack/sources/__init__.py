# src/geostack/sources/__init__.py
#
# Copyright (c) The geostack project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The sources subpackage provides the file formats stacks read from: the
format interface and lazy file arrays, the extension registry, persistent
handles, and the GeoTIFF and HDF5 readers.

The SMAP format builds on stacks and series and lives in
geostack.sources.smap; it is re-exported from the top-level package.
"""
# Interface
from .base import (
    SourceFormat,
    FileArray,
    FileSource
)

# Handles
from .handles import (
    HandleCache
)

# Formats
from .geotiff import (
    GeoTIFFFormat
)

from .hdf5 import (
    HDF5Format,
    decode_attrs
)

# Registry
from .registry import (
    FormatRegistry,
    default_registry
)

__all__ = [
    # Interface
    "SourceFormat",
    "FileArray",
    "FileSource",

    # Handles
    "HandleCache",

    # Formats
    "GeoTIFFFormat",
    "HDF5Format",
    "decode_attrs",

    # Registry
    "FormatRegistry",
    "default_registry"
]
