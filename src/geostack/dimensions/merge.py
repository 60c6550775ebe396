# src/geostack/dimensions/merge.py

"""
This module merges dimension sets across layers and joins dimensions for concatenation.
"""

import logging
from typing import Dict, Sequence, Tuple

import numpy as np

from geostack.exceptions import DimensionMismatchError
from .dimension import Dimension, Irregular, Points, Regular

log = logging.getLogger(__name__)

__all__ = [
    "combine_dims",
    "join_dims"
]

def combine_dims(*dim_sets: Sequence[Dimension]) -> Tuple[Dimension, ...]:
    """
    Common dimensions merge: combine several axis sets into one shared set.

    Axes are kept in order of first appearance. An axis appearing in more than
    one set must be compatible everywhere (same name, coordinates and crs);
    no tie-break is attempted.

    Raises:
        DimensionMismatchError: If two axes with the same name differ.
    """
    merged: Dict[str, Dimension] = {}
    for dims in dim_sets:
        for dim in dims:
            existing = merged.get(dim.name)
            if existing is None:
                merged[dim.name] = dim
            elif not existing.is_compatible(dim):
                raise DimensionMismatchError(
                    f"Incompatible '{dim.name}' dimensions: "
                    f"length {len(existing)} vs {len(dim)}, crs {existing.crs} vs {dim.crs}"
                )
    return tuple(merged.values())

def join_dims(dims: Sequence[Dimension]) -> Dimension:
    """
    Join same-named dimensions end to end, as needed when concatenating arrays.

    The result keeps a Regular span only if every part is regular with the same
    step and the parts are contiguous; otherwise it becomes Irregular over the
    combined extent.
    """
    if not dims:
        raise ValueError("join_dims requires at least one dimension")

    first = dims[0]
    for other in dims[1:]:
        if other.name != first.name:
            raise DimensionMismatchError(f"Cannot join dimension '{other.name}' onto '{first.name}'")
        if other.sampling != first.sampling:
            raise DimensionMismatchError(
                f"Cannot join '{first.name}' dimensions with sampling {first.sampling} and {other.sampling}"
            )

    values = np.concatenate([d.values for d in dims])

    if isinstance(first.sampling, Points):
        return first.rebuild(values=values, span=None)

    span = first.span
    if isinstance(span, Regular):
        contiguous = all(
            isinstance(b.span, Regular) and b.span.step == span.step and
            len(a) > 0 and len(b) > 0 and a.values[-1] + span.step == b.values[0]
            for a, b in zip(dims[:-1], dims[1:])
        )
        if contiguous:
            return first.rebuild(values=values)

    lowers, uppers = zip(*(d.extent for d in dims if len(d) > 0))
    return first.rebuild(values=values, span=Irregular((min(lowers), max(uppers))))
