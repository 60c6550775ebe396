# src/geostack/stack/base.py

"""
This module defines the capability interface shared by every stack variant.

Concrete stacks only describe where layers live (`_storage`) and what their
dimensions, metadata and missing values are. Key lookup, window composition,
dimension slicing and Raster construction are implemented once here, so
in-memory and file-backed stacks index identically.
"""

import copy
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

import numpy as np

from geostack.config import StackConfig
from geostack.dimensions import Dimension, dim_names, dims_to_indices, slice_dims
from geostack.exceptions import KeyNotFoundError
from geostack.raster.layer import Raster
from geostack.raster.resources import ensure_memory
from geostack.raster.utils import clean_key, orthogonal_index
from geostack.sources.base import FileArray
from .window import compose_indices, named_window, window_to_indices

log = logging.getLogger(__name__)

__all__ = [
    "AbstractStack"
]

def _is_key(index: Any) -> bool:
    return isinstance(index, (str, bytes, Enum))

def _is_full(indices: Tuple[Any, ...], shape: Tuple[int, ...]) -> bool:
    return all(
        isinstance(i, slice) and range(*i.indices(size)) == range(size)
        for i, size in zip(indices, shape)
    )

class AbstractStack:
    """
    A named collection of dimensioned layers sharing a set of dimensions.

    Indexing:
        stack["name"]                  -> Raster of the whole (windowed) layer
        stack["name", 0, 1:5]          -> Raster or scalar of a region
        stack["name", {"x": Near(3)}]  -> same, indices given by dimension name
        stack[0, 1:5] / stack[{"x": 0}] -> dict of name -> Raster/scalar for all layers

    Positional windows and whole-stack indices count the stack dimensions, so
    each entry reaches the same axis on layers of different rank. A positional
    index after a key counts that layer's own windowed axes.

    Subclasses must define `keys`, `dims`, `refdims`, `metadata`, `window`,
    `layer_dims`, `layer_metadata`, `missingval`, `_storage` and `rebuild`;
    `layer_refdims` is optional.
    """
    config: StackConfig = StackConfig()

    # Capability interface

    def keys(self) -> Tuple[str, ...]:
        raise NotImplementedError

    @property
    def dims(self) -> Tuple[Dimension, ...]:
        raise NotImplementedError

    @property
    def refdims(self) -> Tuple[Dimension, ...]:
        raise NotImplementedError

    @property
    def metadata(self) -> Dict[str, Any]:
        raise NotImplementedError

    @property
    def window(self) -> Any:
        raise NotImplementedError

    def layer_dims(self, key: Any) -> Tuple[Dimension, ...]:
        raise NotImplementedError

    def layer_metadata(self, key: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def missingval(self, key: Any) -> Any:
        raise NotImplementedError

    def layer_refdims(self, key: Any) -> Tuple[Dimension, ...]:
        """Refdims of one layer on top of the stack refdims."""
        return ()

    def _storage(self, key: str) -> Union[np.ndarray, FileArray]:
        raise NotImplementedError

    def rebuild(self, **changes: Any) -> "AbstractStack":
        raise NotImplementedError

    # Shared behaviour

    def names(self) -> Tuple[str, ...]:
        return self.keys()

    def _check_key(self, key: Any) -> str:
        key = clean_key(key)
        if key not in self.keys():
            raise KeyNotFoundError(f"Layer '{key}' not found. Available layers: {list(self.keys())}")
        return key

    def with_window(self, window: Any) -> "AbstractStack":
        """Return the same stack viewed through another window."""
        return self.rebuild(window=window)

    def read_windowed(self, key: Any, *index: Any) -> Union[Raster, Any]:
        """
        Read layer `key`, composing the stack window with `index`.

        `index` is positional (one entry per windowed axis) or a single
        mapping of dimension name to index/selector. File layers are read
        with one call covering only the composed region. The Raster gets its
        own copy of the layer metadata.
        """
        key = self._check_key(key)
        dims = self.layer_dims(key)
        storage = self._storage(key)

        outer = window_to_indices(dims, named_window(self.dims, self.window))
        windowed, _ = slice_dims(dims, (), outer)
        spec = index[0] if len(index) == 1 and isinstance(index[0], Mapping) else (index or None)
        inner = dims_to_indices(windowed, spec)
        indices = compose_indices(storage.shape, outer, inner)

        data = self._read(key, storage, indices)
        if np.ndim(data) == 0:
            return data[()] if isinstance(data, np.ndarray) else data

        new_dims, new_refdims = slice_dims(dims, self.refdims + self.layer_refdims(key), indices)
        return Raster(
            data, new_dims, new_refdims,
            name=key,
            metadata=dict(self.layer_metadata(key)),
            nodata=self.missingval(key)
        )

    def _read(self, key: str, storage: Union[np.ndarray, FileArray], indices: Tuple[Any, ...]) -> Any:
        if isinstance(storage, FileArray):
            if self.config.check_memory and _is_full(indices, storage.shape):
                ensure_memory(storage.shape, storage.dtype, self.config.safety_factor)
            return storage.read(indices)
        return orthogonal_index(storage, indices)

    def __getitem__(self, index: Any) -> Any:
        if _is_key(index):
            return self.read_windowed(index)
        if isinstance(index, tuple) and index and _is_key(index[0]):
            return self.read_windowed(index[0], *index[1:])

        # Same index applied to every layer; positions count the windowed stack axes
        if not isinstance(index, Mapping):
            index = named_window(self._windowed_dims(), index) or {}
        result = {}
        for key in self.keys():
            names = dim_names(self.layer_dims(key))
            spec = {k: v for k, v in index.items() if (k.name if isinstance(k, Dimension) else k) in names}
            result[key] = self.read_windowed(key, spec)
        return result

    def _windowed_dims(self) -> Tuple[Dimension, ...]:
        outer = window_to_indices(self.dims, named_window(self.dims, self.window))
        windowed, _ = slice_dims(self.dims, (), outer)
        return windowed

    def layers(self) -> Dict[str, Raster]:
        """Read every layer (through the window) into a dict of Rasters."""
        return {key: self.read_windowed(key) for key in self.keys()}

    def items(self) -> Iterator[Tuple[str, Raster]]:
        for key in self.keys():
            yield key, self.read_windowed(key)

    def copy(self) -> "AbstractStack":
        """
        Deep copy into an independent in-memory Stack.

        File layers are read (through the window) and the arrays copied, so
        the result shares no storage or handles with this stack.
        """
        from .stack import Stack

        layers = {key: self.read_windowed(key).copy() for key in self.keys()}
        return Stack.from_layers(
            layers,
            metadata=copy.deepcopy(self.metadata),
            refdims=self.refdims
        )

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: Any) -> bool:
        try:
            return clean_key(key) in self.keys()
        except TypeError:
            return False

    def __repr__(self) -> str:
        return (f"<{type(self).__name__} layers={list(self.keys())} "
                f"dims={dim_names(self.dims)} window={self.window!r}>")
