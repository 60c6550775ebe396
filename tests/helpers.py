# tests/helpers.py

import numpy as np
from geostack.raster.layer import Raster
from geostack.dimensions import dim_names

def assert_raster_matches(current: Raster, expected_data, expected_dims=None):
    """Check values (and optionally dimension names) of a Raster."""
    assert isinstance(current, Raster), f"Expected a Raster, got {type(current).__name__}"
    assert current.shape == np.shape(expected_data), \
        f"Shape mismatch: {current.shape} != {np.shape(expected_data)}"
    assert np.array_equal(current.data, expected_data), "Value mismatch"
    if expected_dims is not None:
        assert dim_names(current.dims) == tuple(expected_dims), \
            f"Dims mismatch: {dim_names(current.dims)} != {tuple(expected_dims)}"

def assert_dims_consistent(r: Raster):
    """Every dimension length must equal the size of its axis."""
    for axis, dim in enumerate(r.dims):
        assert len(dim) == r.shape[axis], \
            f"Dimension '{dim.name}' has length {len(dim)} but axis {axis} has size {r.shape[axis]}"
