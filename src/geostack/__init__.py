# src/geostack/__init__.py
#
# Copyright (c) The geostack project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
geostack: named stacks of georeferenced, dimensioned layers.

Layers may live in memory, in one file per layer (GeoTIFF) or in a single
multi-layer file (HDF5, SMAP). All of them are indexed the same way, through
optional windows, and directories of timestamped files form a Series.
"""
# Dimensions
from .dimensions import (
    Dimension,
    Locus,
    Points,
    Intervals,
    Regular,
    Irregular,
    At,
    Near,
    Between,
    Contains,
    shift_locus
)

# Layers
from .raster import (
    Raster,
    load,
    read_info
)

# Stacks
from .stack import (
    AbstractStack,
    Stack,
    FileStack,
    cat
)

# Sources
from .sources import (
    SourceFormat,
    GeoTIFFFormat,
    HDF5Format,
    FormatRegistry,
    default_registry
)

# Series
from .series import (
    Series
)

from .sources.smap import (
    SMAPFormat,
    SMAPStack,
    smap_series
)

# Configuration and errors
from .config import (
    StackConfig,
    SeriesConfig
)

from .exceptions import (
    GeoStackError,
    KeyNotFoundError,
    MissingLayerError,
    DimensionMismatchError,
    UnsupportedOperationError,
    MalformedPathError,
    EmptySeriesError,
    DuplicateKeyError
)

__version__ = "0.1.0"

__all__ = [
    # Dimensions
    "Dimension",
    "Locus",
    "Points",
    "Intervals",
    "Regular",
    "Irregular",
    "At",
    "Near",
    "Between",
    "Contains",
    "shift_locus",

    # Layers
    "Raster",
    "load",
    "read_info",

    # Stacks
    "AbstractStack",
    "Stack",
    "FileStack",
    "cat",

    # Sources
    "SourceFormat",
    "GeoTIFFFormat",
    "HDF5Format",
    "FormatRegistry",
    "default_registry",

    # Series
    "Series",
    "SMAPFormat",
    "SMAPStack",
    "smap_series",

    # Config
    "StackConfig",
    "SeriesConfig",

    # Errors
    "GeoStackError",
    "KeyNotFoundError",
    "MissingLayerError",
    "DimensionMismatchError",
    "UnsupportedOperationError",
    "MalformedPathError",
    "EmptySeriesError",
    "DuplicateKeyError"
]
