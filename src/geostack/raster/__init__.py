# src/geostack/raster/__init__.py
#
# Copyright (c) The geostack project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The raster subpackage provides the in-memory dimensioned array returned by
every stack read, together with single-file I/O, memory safety checks,
concatenation and key utilities.
"""
# Core data structure
from .layer import (
    Raster
)

# I/O operations
from .io import (
    load,
    read_info
)

# Resource management
from .resources import (
    MemoryEstimate,
    estimate_memory,
    ensure_memory
)

# Geometry utilities
from .geom import (
    cat
)

# Utilities
from .utils import (
    clean_key,
    clean_keys,
    filekey,
    filter_ext,
    orthogonal_index
)

__all__ = [
    # Layer
    "Raster",

    # I/O
    "load",
    "read_info",

    # Resources
    "MemoryEstimate",
    "estimate_memory",
    "ensure_memory",

    # Geometry
    "cat",

    # Utils
    "clean_key",
    "clean_keys",
    "filekey",
    "filter_ext",
    "orthogonal_index"
]
