# src/geostack/dimensions/dimension.py

"""
This module defines the Dimension data structure: a single named axis with
its coordinate values, sampling (points or intervals), span (regular step or
irregular bounds) and optional coordinate reference systems.
"""

import dataclasses
import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.exceptions import DimensionMismatchError

log = logging.getLogger(__name__)

__all__ = [
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
    "scale_step"
]

# Conventional axis labels
X = "x"
Y = "y"
BAND = "band"
TIME = "time"
LAT = "lat"
LON = "lon"

class Locus(Enum):
    """
    Position of an interval coordinate inside its cell, in index direction.

    Options:
        START: The coordinate marks the edge where the cell starts.
        CENTER: The coordinate marks the middle of the cell.
        END: The coordinate marks the edge where the cell ends.
    """
    START = "start"
    CENTER = "center"
    END = "end"

class Order(Enum):
    """Ordering of the coordinate values along the axis."""
    FORWARD = "forward"
    REVERSE = "reverse"
    UNORDERED = "unordered"

@dataclass(frozen=True)
class Points:
    """Sampling where each coordinate is an exact point."""

@dataclass(frozen=True)
class Intervals:
    """Sampling where each coordinate represents a cell anchored at `locus`."""
    locus: Locus = Locus.CENTER

@dataclass(frozen=True)
class Regular:
    """Interval span with a fixed step between coordinates (may be negative)."""
    step: Any

@dataclass(frozen=True)
class Irregular:
    """Interval span with variable cell sizes and known outer (low, high) bounds."""
    bounds: Tuple[Any, Any]

Sampling = Union[Points, Intervals]
Span = Union[Regular, Irregular]

# Locus positions measured in half steps from the cell start
_LOCUS_HALVES = {Locus.START: 0, Locus.CENTER: 1, Locus.END: 2}

def scale_step(step: Any, halves: int) -> Any:
    """
    Multiply a step by `halves / 2`.

    Whole steps keep the dtype of `step` (integer steps stay integer).
    Half steps widen integers to float, and timedeltas are halved
    at nanosecond resolution so no precision is lost.
    """
    if halves % 2 == 0:
        return step * (halves // 2)
    if isinstance(step, (np.timedelta64, datetime.timedelta)):
        fine = np.timedelta64(step).astype("timedelta64[ns]")
        return (fine // 2) * halves
    return step * halves / 2

def _as_array(value: Any, like: np.ndarray) -> np.ndarray:
    arr = np.asarray([value])
    if np.issubdtype(like.dtype, np.datetime64) and not np.issubdtype(arr.dtype, np.datetime64):
        arr = arr.astype(like.dtype)
    return arr

@dataclass(frozen=True, eq=False)
class Dimension:
    """
    A named axis of a dimensioned array.

    Dimensions are immutable. Every operation that changes the coordinates
    (slicing, locus shifting, joining) returns a new Dimension.

    Attributes:
        name (str): Axis label, e.g. 'x', 'y', 'time'.
        values (np.ndarray): 1D coordinate values (numeric or datetime64).
        sampling (Points | Intervals): Whether coordinates are points or cells.
        span (Regular | Irregular | None): Cell spacing for interval sampling.
            Inferred from the values when omitted.
        crs: Coordinate reference system of the values (opaque, only compared).
        mappedcrs: Coordinate reference system the values are mapped to, if any.
        metadata (Dict[str, Any]): Arbitrary additional fields.
    """
    name: str
    values: np.ndarray
    sampling: Sampling = field(default_factory=Points)
    span: Optional[Span] = None
    crs: Optional[Any] = None
    mappedcrs: Optional[Any] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise DimensionMismatchError(f"Dimension name must be a non-empty string, got {self.name!r}")

        values = np.asarray(self.values)
        if values.ndim == 0:
            values = values.reshape(1)
        if values.ndim != 1:
            raise DimensionMismatchError(
                f"Dimension '{self.name}' values must be 1D, got shape {values.shape}"
            )
        object.__setattr__(self, "values", values)

        if not isinstance(self.sampling, (Points, Intervals)):
            raise TypeError(f"sampling must be Points or Intervals, got {type(self.sampling)}")

        if isinstance(self.sampling, Points):
            object.__setattr__(self, "span", None)
        elif self.span is None:
            object.__setattr__(self, "span", self._infer_span(values, self.sampling.locus))

        if self.metadata is None:
            object.__setattr__(self, "metadata", {})

    @staticmethod
    def _infer_span(values: np.ndarray, locus: Locus) -> Span:
        if values.size == 0:
            return Irregular((None, None))
        if values.size == 1:
            return Irregular((values[0], values[0]))

        steps = np.diff(values)
        if np.issubdtype(steps.dtype, np.inexact):
            regular = np.allclose(steps, steps[0], rtol=1e-6, atol=0.0)
            if regular:
                return Regular((values[-1] - values[0]) / (values.size - 1))
        elif np.all(steps == steps[0]):
            return Regular(steps[0])

        # Outer cells extend by the neighbouring gap
        if values[0] > values[-1]:
            locus = {Locus.START: Locus.END, Locus.END: Locus.START}.get(locus, locus)
        s = np.sort(values)
        first, last = s[1] - s[0], s[-1] - s[-2]
        if locus is Locus.START:
            return Irregular((s[0], s[-1] + last))
        if locus is Locus.END:
            return Irregular((s[0] - first, s[-1]))
        return Irregular((s[0] - scale_step(first, 1), s[-1] + scale_step(last, 1)))

    # Dynamic properties

    @property
    def locus(self) -> Optional[Locus]:
        """Interval locus, or None for point sampling."""
        if isinstance(self.sampling, Intervals):
            return self.sampling.locus
        return None

    @property
    def step(self) -> Optional[Any]:
        """Regular step, or None if the span is irregular or sampling is points."""
        if isinstance(self.span, Regular):
            return self.span.step
        return None

    @property
    def is_intervals(self) -> bool:
        return isinstance(self.sampling, Intervals)

    @property
    def order(self) -> Order:
        v = self.values
        if v.size < 2 or np.all(v[1:] >= v[:-1]):
            return Order.FORWARD
        if np.all(v[1:] <= v[:-1]):
            return Order.REVERSE
        return Order.UNORDERED

    def cell_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute the (lower, upper) edges of every cell, in value order.

        For point sampling both arrays equal the coordinates. For regular
        intervals the edges follow from the step and locus; for irregular
        intervals consecutive coordinates (or their midpoints, for centered
        loci) delimit the cells, and the span bounds close the outer cells.

        Returns:
            Tuple[np.ndarray, np.ndarray]: Lower and upper edge arrays, aligned with `values`.
        """
        v = self.values
        if not self.is_intervals:
            return v, v

        if isinstance(self.span, Regular):
            step = self.span.step
            start = v - scale_step(step, _LOCUS_HALVES[self.locus])
            end = start + step
            return np.minimum(start, end), np.maximum(start, end)

        lo, hi = self.span.bounds
        if lo is not None and hi is not None and hi < lo:
            lo, hi = hi, lo

        reverse = self.order is Order.REVERSE
        locus = self.locus
        if reverse:
            v = v[::-1]
            locus = {Locus.START: Locus.END, Locus.END: Locus.START}.get(locus, locus)

        if locus is Locus.START:
            lower = v
            upper = np.concatenate((v[1:], _as_array(hi, v)))
        elif locus is Locus.END:
            lower = np.concatenate((_as_array(lo, v), v[:-1]))
            upper = v
        else:
            mids = v[:-1] + (v[1:] - v[:-1]) / 2
            edges = np.concatenate((_as_array(lo, v), mids, _as_array(hi, v)))
            lower, upper = edges[:-1], edges[1:]

        if reverse:
            return lower[::-1], upper[::-1]
        return lower, upper

    @property
    def extent(self) -> Tuple[Any, Any]:
        """Returns the (min, max) of all cell edges."""
        if self.values.size == 0:
            return (None, None)
        lower, upper = self.cell_bounds()
        return lower.min(), upper.max()

    # Structural operations

    def rebuild(self, **changes: Any) -> "Dimension":
        """Return a copy of this dimension with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def __getitem__(self, index: Any) -> "Dimension":
        """
        Slice the dimension.

        An integer index yields a length-1 dimension, which is how reference
        dimensions are recorded after an axis is indexed away.
        """
        if isinstance(index, (int, np.integer)):
            i = int(index)
            if i < 0:
                i += len(self)
            if not 0 <= i < len(self):
                raise IndexError(f"Index {index} out of range for dimension '{self.name}' of length {len(self)}")
            index = slice(i, i + 1)

        values = self.values[index]
        span = self.span

        if isinstance(span, Regular) and isinstance(index, slice):
            step = index.step if index.step is not None else 1
            if step != 1:
                span = Regular(span.step * step)
        elif self.is_intervals and values.size > 0:
            lower, upper = self.cell_bounds()
            span = Irregular((lower[index].min(), upper[index].max()))

        return dataclasses.replace(self, values=values, span=span)

    def is_compatible(self, other: "Dimension") -> bool:
        """True if both axes share identity, coordinates and crs."""
        return (
            isinstance(other, Dimension) and
            self.name == other.name and
            self.values.shape == other.values.shape and
            bool(np.array_equal(self.values, other.values)) and
            self.crs == other.crs
        )

    def __len__(self) -> int:
        return int(self.values.size)

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        if dtype is None:
            return self.values
        return self.values.astype(dtype)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dimension):
            return NotImplemented
        return (
            self.is_compatible(other) and
            self.values.dtype == other.values.dtype and
            self.sampling == other.sampling and
            self.span == other.span and
            self.mappedcrs == other.mappedcrs
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (f"<Dimension {self.name!r} len={len(self)} dtype={self.values.dtype} "
                f"sampling={self.sampling} span={self.span} crs={self.crs}>")


def dim_names(dims: Sequence[Dimension]) -> Tuple[str, ...]:
    return tuple(d.name for d in dims)

def find_dim(dims: Sequence[Dimension], name: Union[str, Dimension]) -> int:
    """
    Return the axis position of `name` in `dims`.

    Raises:
        DimensionMismatchError: If no dimension carries that name.
    """
    if isinstance(name, Dimension):
        name = name.name
    for i, d in enumerate(dims):
        if d.name == name:
            return i
    raise DimensionMismatchError(f"Dimension '{name}' not found in {dim_names(dims)}")
