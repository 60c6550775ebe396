# src/geostack/dimensions/selectors.py

"""
This module resolves window specifications into concrete per-axis indices.

A window specification is either a positional tuple (one entry per axis) or a
mapping from dimension name to index. Each entry may be an integer, a slice,
an integer or boolean array, or a coordinate selector (At, Near, Between, Contains).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.exceptions import DimensionMismatchError
from .dimension import Dimension, Locus, Order, dim_names

log = logging.getLogger(__name__)

__all__ = [
    "At",
    "Near",
    "Between",
    "Contains",
    "Selector",
    "to_index",
    "dims_to_indices",
    "slice_dims"
]

@dataclass(frozen=True)
class At:
    """Select the coordinate equal to `value` (within `atol` when given)."""
    value: Any
    atol: Optional[float] = None

@dataclass(frozen=True)
class Near:
    """Select the coordinate closest to `value`."""
    value: Any

@dataclass(frozen=True)
class Between:
    """Select all coordinates in the closed range [lo, hi]."""
    lo: Any
    hi: Any

@dataclass(frozen=True)
class Contains:
    """Select the interval cell whose bounds contain `value`."""
    value: Any

Selector = Union[At, Near, Between, Contains]
Index = Union[int, slice, np.ndarray]

def _select(dim: Dimension, selector: Selector) -> Index:
    values = dim.values

    if isinstance(selector, At):
        if selector.atol is None:
            hits = np.flatnonzero(values == selector.value)
        else:
            hits = np.flatnonzero(np.abs(values - selector.value) <= selector.atol)
        if hits.size == 0:
            raise ValueError(f"{selector.value!r} not found in dimension '{dim.name}'")
        return int(hits[0])

    if isinstance(selector, Near):
        if values.size == 0:
            raise ValueError(f"Cannot select Near({selector.value!r}) in empty dimension '{dim.name}'")
        return int(np.argmin(np.abs(values - selector.value)))

    if isinstance(selector, Between):
        lo, hi = selector.lo, selector.hi
        if hi < lo:
            lo, hi = hi, lo
        hits = np.flatnonzero((values >= lo) & (values <= hi))
        if hits.size == 0:
            return slice(0, 0)
        if dim.order is Order.UNORDERED:
            return hits
        return slice(int(hits[0]), int(hits[-1]) + 1)

    if isinstance(selector, Contains):
        lower, upper = dim.cell_bounds()
        if dim.locus is Locus.END:
            hits = np.flatnonzero((lower < selector.value) & (selector.value <= upper))
        else:
            hits = np.flatnonzero((lower <= selector.value) & (selector.value < upper))
        if hits.size == 0:
            raise ValueError(f"No cell of dimension '{dim.name}' contains {selector.value!r}")
        return int(hits[0])

    raise TypeError(f"Unknown selector {selector!r}")

def to_index(dim: Dimension, index: Any) -> Index:
    """
    Convert one index entry into an int, slice or integer array for `dim`.
    """
    if isinstance(index, (At, Near, Between, Contains)):
        return _select(dim, index)
    if isinstance(index, (bool, np.bool_)):
        raise TypeError(f"Boolean scalar is not a valid index for dimension '{dim.name}'")
    if isinstance(index, (int, np.integer)):
        return int(index)
    if isinstance(index, slice):
        return index
    if index is Ellipsis:
        return slice(None)
    if isinstance(index, (list, tuple, np.ndarray)):
        arr = np.asarray(index)
        if arr.dtype == bool:
            if arr.shape != (len(dim),):
                raise IndexError(f"Boolean index of shape {arr.shape} does not match dimension '{dim.name}'")
            return np.flatnonzero(arr)
        if not np.issubdtype(arr.dtype, np.integer):
            raise TypeError(f"Array index for dimension '{dim.name}' must be integer or boolean, got {arr.dtype}")
        return arr
    raise TypeError(f"Unsupported index {index!r} for dimension '{dim.name}'")

def dims_to_indices(
    dims: Sequence[Dimension],
    spec: Any = None,
    strict: bool = True
) -> Tuple[Index, ...]:
    """
    Resolve a window specification against a set of dimensions.

    Args:
        dims: The dimensions of the array being indexed, in axis order.
        spec: None, a positional tuple of indices/selectors, or a mapping
              from dimension name to index/selector.
        strict: If False, mapping entries naming dimensions absent from `dims`
                are ignored (used for stack windows shared by layers that only
                use some of the stack's axes).

    Returns:
        Tuple with one index per axis; axes not mentioned get slice(None).

    Raises:
        DimensionMismatchError: If strict and a named dimension is absent.
        IndexError: If a positional spec has more entries than there are axes.
    """
    indices = [slice(None)] * len(dims)
    if spec is None:
        return tuple(indices)

    if isinstance(spec, Mapping):
        names = dim_names(dims)
        for name, index in spec.items():
            if isinstance(name, Dimension):
                name = name.name
            if name not in names:
                if strict:
                    raise DimensionMismatchError(f"Dimension '{name}' not found in {names}")
                continue
            axis = names.index(name)
            indices[axis] = to_index(dims[axis], index)
        return tuple(indices)

    if not isinstance(spec, tuple):
        spec = (spec,)
    if len(spec) > len(dims):
        raise IndexError(f"Too many indices: {len(spec)} given for {len(dims)} dimensions {dim_names(dims)}")
    for axis, index in enumerate(spec):
        indices[axis] = to_index(dims[axis], index)
    return tuple(indices)

def slice_dims(
    dims: Sequence[Dimension],
    refdims: Sequence[Dimension],
    indices: Sequence[Index]
) -> Tuple[Tuple[Dimension, ...], Tuple[Dimension, ...]]:
    """
    Apply per-axis indices to dimensions.

    Axes indexed by an integer are removed from the returned dims and
    appended to the reference dimensions as length-1 dimensions.

    Returns:
        (dims, refdims) after indexing.
    """
    new_dims = []
    new_refdims = list(refdims)
    for dim, index in zip(dims, indices):
        if isinstance(index, (int, np.integer)):
            new_refdims.append(dim[index])
        else:
            new_dims.append(dim[index])
    return tuple(new_dims), tuple(new_refdims)
