# src/geostack/stack/window.py

"""
This module translates windows and index requests into storage selections.

A stack window and a further index request are composed into one set of
per-axis storage indices, so a file-backed layer can be read with a single
call covering only the requested region.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Sequence, Tuple, Union

import numpy as np

from geostack.dimensions import Dimension, dims_to_indices
from geostack.raster.utils import orthogonal_index

log = logging.getLogger(__name__)

__all__ = [
    "window_to_indices",
    "named_window",
    "compose_indices",
    "storage_selection",
    "read_array"
]

Index = Union[int, slice, np.ndarray]

def window_to_indices(dims: Sequence[Dimension], window: Any) -> Tuple[Index, ...]:
    """
    Resolve a stack window against one layer's dimensions.

    Window entries naming dimensions the layer does not use are ignored,
    so one window can be shared by layers with different axis subsets.
    """
    return dims_to_indices(dims, window, strict=False)

def named_window(dims: Sequence[Dimension], window: Any) -> Any:
    """
    Name the entries of a positional window after the stack dimensions.

    A positional window counts stack axes, not layer axes: on a stack whose
    layers use different subsets of `dims`, entry i always addresses `dims[i]`.
    Mappings and None are returned unchanged.

    Raises:
        IndexError: If the window has more entries than `dims`.
    """
    if window is None or isinstance(window, Mapping):
        return window
    entries = window if isinstance(window, tuple) else (window,)
    if len(entries) > len(dims):
        raise IndexError(f"Too many indices: {len(entries)} given for {len(dims)} stack dimensions")
    return {d.name: i for d, i in zip(dims, entries)}

def _positions(size: int, index: Index) -> Union[int, range, np.ndarray]:
    if isinstance(index, (int, np.integer)):
        i = int(index)
        if i < 0:
            i += size
        if not 0 <= i < size:
            raise IndexError(f"Index {index} out of range for axis of size {size}")
        return i
    if isinstance(index, slice):
        return range(size)[index]
    arr = np.asarray(index, dtype=np.intp)
    arr = np.where(arr < 0, arr + size, arr)
    if arr.size and (arr.min() < 0 or arr.max() >= size):
        raise IndexError(f"Array index out of range for axis of size {size}")
    return arr

def _apply(base: Union[range, np.ndarray], index: Index) -> Union[int, range, np.ndarray]:
    if isinstance(index, np.ndarray):
        return np.asarray(base)[index]
    result = base[index]
    if isinstance(result, np.integer):
        return int(result)
    return result

def _to_index(positions: Union[int, range, np.ndarray]) -> Index:
    if isinstance(positions, range):
        if len(positions) == 0:
            return slice(0, 0)
        stop = positions.stop if positions.stop >= 0 else None
        return slice(positions.start, stop, positions.step)
    return positions

def compose_indices(
    shape: Sequence[int],
    outer: Sequence[Index],
    inner: Sequence[Index]
) -> Tuple[Index, ...]:
    """
    Compose a window (`outer`) with an index into the windowed view (`inner`).

    Args:
        shape: Storage shape of the layer.
        outer: One index per storage axis (the window).
        inner: One index per axis left after applying `outer`
               (integer window entries remove their axis).

    Returns:
        One storage index per axis selecting exactly the composed region.
    """
    if len(outer) != len(shape):
        raise IndexError(f"Window has {len(outer)} entries for {len(shape)} axes")

    inner = list(inner)
    composed: List[Index] = []
    j = 0
    for size, index in zip(shape, outer):
        base = _positions(size, index)
        if isinstance(base, int):
            composed.append(base)
            continue
        extra = inner[j] if j < len(inner) else slice(None)
        j += 1
        composed.append(_to_index(_apply(base, extra)))

    if j < len(inner):
        raise IndexError(f"Too many indices: {len(inner)} given for {j} windowed axes")
    return tuple(composed)

def storage_selection(
    indices: Sequence[Index],
    shape: Sequence[int],
    native_ints: bool = True,
    native_steps: bool = False,
    native_arrays: bool = False
) -> Tuple[Tuple[Index, ...], Tuple[Index, ...]]:
    """
    Split storage indices into a single read plus an in-memory selection.

    The read key only contains integers (if `native_ints`) and slices with a
    positive step (step 1 unless `native_steps`), covering the bounding region of
    the request. With `native_arrays`, a single index-array axis is read as its
    sorted unique positions instead of its bounding block (h5py point selection
    accepts one increasing list per read). The post key selects the requested
    elements, in the requested order, from what was read.

    Returns:
        (read_key, post_key): post_key has one entry per axis of the read result.
    """
    read_key: List[Index] = []
    post_key: List[Index] = []

    array_axes = sum(
        1 for i in indices
        if not isinstance(i, (int, np.integer, slice)) and np.size(i) > 0
    )
    use_points = native_arrays and array_axes == 1

    for index, size in zip(indices, shape):
        if isinstance(index, (int, np.integer)):
            if native_ints:
                read_key.append(int(index))
            else:
                read_key.append(slice(int(index), int(index) + 1))
                post_key.append(0)
            continue

        if isinstance(index, slice):
            r = range(*index.indices(size))
            if len(r) == 0:
                read_key.append(slice(0, 0))
                post_key.append(slice(None))
            elif r.step > 0:
                if r.step == 1 or native_steps:
                    read_key.append(slice(r.start, r[-1] + 1, r.step if r.step != 1 else None))
                    post_key.append(slice(None))
                else:
                    read_key.append(slice(r.start, r[-1] + 1))
                    post_key.append(slice(None, None, r.step))
            else:
                read_key.append(slice(r[-1], r[0] + 1))
                post_key.append(slice(None, None, r.step))
            continue

        arr = np.asarray(index, dtype=np.intp)
        if arr.size == 0:
            read_key.append(slice(0, 0))
            post_key.append(arr)
        elif use_points:
            points = np.unique(arr)
            read_key.append(points)
            post_key.append(np.searchsorted(points, arr))
        else:
            lo = int(arr.min())
            read_key.append(slice(lo, int(arr.max()) + 1))
            post_key.append(arr - lo)

    return tuple(read_key), tuple(post_key)

def read_array(
    dataset: Any,
    indices: Sequence[Index],
    native_steps: bool = True,
    native_arrays: bool = True
) -> np.ndarray:
    """
    Read a region of an array-like dataset (h5py.Dataset, numpy array) with one call.

    Only the requested elements are read along an index-array axis when it is
    the single one; several index-array axes fall back to their bounding block.
    """
    read_key, post_key = storage_selection(
        indices, dataset.shape, native_steps=native_steps, native_arrays=native_arrays
    )
    log.debug(f"Reading {read_key} from dataset of shape {dataset.shape}")
    data = np.asarray(dataset[read_key])
    if all(isinstance(p, slice) and p == slice(None) for p in post_key):
        return data
    return orthogonal_index(data, post_key)
