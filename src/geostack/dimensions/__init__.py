# src/geostack/dimensions/__init__.py
#
# Copyright (c) The geostack project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The dimensions subpackage models named axes: their coordinates, sampling,
interval loci and reference systems, along with selector resolution and
the merging rules used when layers are combined into stacks.
"""

# Data structure
from .dimension import (
    X,
    Y,
    BAND,
    TIME,
    LAT,
    LON,
    Locus,
    Order,
    Points,
    Intervals,
    Regular,
    Irregular,
    Dimension,
    find_dim,
    dim_names
)

# Locus shifting
from .locus import (
    shift_locus
)

# Selectors and index resolution
from .selectors import (
    At,
    Near,
    Between,
    Contains,
    to_index,
    dims_to_indices,
    slice_dims
)

# Merging
from .merge import (
    combine_dims,
    join_dims
)

__all__ = [
    # Data structure
    "X",
    "Y",
    "BAND",
    "TIME",
    "LAT",
    "LON",
    "Locus",
    "Order",
    "Points",
    "Intervals",
    "Regular",
    "Irregular",
    "Dimension",
    "find_dim",
    "dim_names",

    # Locus
    "shift_locus",

    # Selectors
    "At",
    "Near",
    "Between",
    "Contains",
    "to_index",
    "dims_to_indices",
    "slice_dims",

    # Merging
    "combine_dims",
    "join_dims"
]
