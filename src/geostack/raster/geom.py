# src/geostack/raster/geom.py

"""
This module combines rasters along a dimension.
"""

import logging
from typing import Sequence, Union

import numpy as np

from geostack.dimensions import Dimension, combine_dims, dim_names, join_dims
from geostack.exceptions import DimensionMismatchError
from .layer import Raster

log = logging.getLogger(__name__)

__all__ = [
    "cat"
]

def _promote_refdim(raster: Raster, name: str) -> Raster:
    """Turn a length-1 reference dimension into a new trailing axis."""
    for i, ref in enumerate(raster.refdims):
        if ref.name == name:
            refdims = raster.refdims[:i] + raster.refdims[i + 1:]
            return raster.rebuild(
                data=raster.data[..., np.newaxis],
                dims=raster.dims + (ref,),
                refdims=refdims
            )
    raise DimensionMismatchError(
        f"Dimension '{name}' is neither an axis {dim_names(raster.dims)} "
        f"nor a reference dimension of raster '{raster.name}'"
    )

def cat(rasters: Sequence[Raster], dim: Union[str, Dimension]) -> Raster:
    """
    Concatenate rasters along one dimension.

    If `dim` is not an axis of the inputs but is one of their reference
    dimensions (e.g. the timestamp of a stack in a series), it is promoted
    to a new trailing axis before concatenating.

    Args:
        rasters: Rasters with identical dimensions apart from `dim`.
        dim: Name (or Dimension) of the axis to concatenate along.

    Returns:
        Raster: New raster whose `dim` joins the inputs' coordinates in order.

    Raises:
        DimensionMismatchError: If the other dimensions differ between inputs.
    """
    if not rasters:
        raise ValueError("Cannot concatenate an empty sequence of rasters.")

    name = dim.name if isinstance(dim, Dimension) else dim
    parts = [r if name in dim_names(r.dims) else _promote_refdim(r, name) for r in rasters]

    first = parts[0]
    axis = first.axis(name)
    others = [d for d in first.dims if d.name != name]
    for part in parts[1:]:
        if dim_names(part.dims) != dim_names(first.dims):
            raise DimensionMismatchError(
                f"Dimension order mismatch: {dim_names(part.dims)} vs {dim_names(first.dims)}"
            )
        combine_dims(others, [d for d in part.dims if d.name != name])

    joined = join_dims([p.dims[axis] for p in parts])
    data = np.concatenate([p.data for p in parts], axis=axis)
    dims = first.dims[:axis] + (joined,) + first.dims[axis + 1:]

    log.debug(f"Concatenated {len(parts)} rasters along '{name}' -> {data.shape}")
    return first.rebuild(data=data, dims=dims)
