# src/geostack/dimensions/locus.py

"""
This module re-anchors interval coordinates between Start, Center and End loci.
"""

import logging

import numpy as np

from geostack.exceptions import UnsupportedOperationError
from .dimension import Dimension, Intervals, Locus, Order, Regular, scale_step, _LOCUS_HALVES

log = logging.getLogger(__name__)

__all__ = [
    "shift_locus"
]

def shift_locus(target: Locus, dim: Dimension) -> Dimension:
    """
    Shift the coordinates of an interval dimension to a new locus.

    Regular spans move every coordinate by a fraction of the step:
    Start->Center adds step/2, Start->End adds step, Center->End adds step/2,
    and the reverse shifts subtract the same amounts. Integer coordinates stay
    integer for whole-step shifts and widen to float for half-step shifts.

    Irregular spans have no fixed offset: the new coordinates are taken from the
    cell edges (or their midpoints) derived from the stored values and bounds.

    Args:
        target: The locus the returned coordinates should mark.
        dim: An interval-sampled Dimension.

    Returns:
        Dimension: A new dimension anchored at `target`. `dim` is not modified.

    Raises:
        UnsupportedOperationError: If `dim` uses point sampling.
    """
    if not isinstance(dim.sampling, Intervals):
        raise UnsupportedOperationError(
            f"Cannot shift locus of dimension '{dim.name}': sampling is {dim.sampling}, not Intervals"
        )

    target = Locus(target)
    current = dim.locus
    if target is current:
        return dim.rebuild(values=dim.values.copy())

    if isinstance(dim.span, Regular):
        halves = _LOCUS_HALVES[target] - _LOCUS_HALVES[current]
        values = dim.values + scale_step(dim.span.step, halves)
    else:
        lower, upper = dim.cell_bounds()
        reverse = dim.order is Order.REVERSE
        if target is Locus.CENTER:
            values = lower + (upper - lower) / 2
        elif (target is Locus.START) != reverse:
            values = np.asarray(lower)
        else:
            values = np.asarray(upper)

    log.debug(f"Shifted locus of '{dim.name}' from {current.value} to {target.value}")
    return dim.rebuild(values=values, sampling=Intervals(target))
