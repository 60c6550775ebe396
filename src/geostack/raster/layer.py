# src/geostack/raster/layer.py

"""
This module defines the core data structure for a single dimensioned layer.
"""

import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.dimensions import Dimension, dims_to_indices, dim_names, find_dim, slice_dims
from geostack.exceptions import DimensionMismatchError
from .utils import orthogonal_index

log = logging.getLogger(__name__)

__all__ = [
    "Raster"
]

class Raster:
    """
    The unit returned by every stack read.

    A Raster is an in-memory "Envelope" that synchronizes:
    1. The 'Heavy' Data: A NumPy array of values.
    2. The 'Light' Context: One Dimension per axis, reference dimensions
       left over from earlier indexing, a name, metadata and a missing value.

    Attributes:
        data (np.ndarray): The value array, one axis per dimension.
        dims (Tuple[Dimension, ...]): Dimensions in axis order.
        refdims (Tuple[Dimension, ...]): Length-1 dimensions this array was sliced from.
        name (str | None): Layer name.
        metadata (Dict[str, Any]): Layer metadata.
        nodata (float | int | None): The value representing missing data.
    """

    def __init__(
        self,
        data: np.ndarray,
        dims: Sequence[Dimension],
        refdims: Sequence[Dimension] = (),
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        nodata: Optional[Union[float, int]] = None
    ):
        """
        Initialize a Raster object.

        Args:
            data: Input array with one axis per entry of `dims`.
            dims: Dimensions describing each axis.
            refdims: Reference dimensions from earlier slicing.
            name: Optional layer name.
            metadata: Optional metadata mapping.
            nodata: Value indicating missing data.

        Raises:
            DimensionMismatchError: If the dimensions do not match the array shape.
        """
        data = np.asarray(data)
        dims = tuple(dims)
        self.validate_inputs(data, dims)

        self._data = data
        self._dims = dims
        self.refdims = tuple(refdims)
        self.name = name
        self.metadata = metadata if metadata is not None else {}
        self.nodata = nodata

    @staticmethod
    def validate_inputs(data: np.ndarray, dims: Tuple[Dimension, ...]):
        """Internal validation logic."""
        if not all(isinstance(d, Dimension) for d in dims):
            raise TypeError("All dims must be Dimension instances")

        if data.ndim != len(dims):
            raise DimensionMismatchError(
                f"Data has {data.ndim} axes but {len(dims)} dimensions were given: {dim_names(dims)}"
            )

        for axis, dim in enumerate(dims):
            if len(dim) != data.shape[axis]:
                raise DimensionMismatchError(
                    f"Dimension '{dim.name}' has length {len(dim)} but axis {axis} has size {data.shape[axis]}"
                )

        names = dim_names(dims)
        if len(set(names)) != len(names):
            raise DimensionMismatchError(f"Duplicate dimension names: {names}")

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        key: Optional[str] = None,
        window: Any = None,
        registry: Any = None
    ) -> 'Raster':
        """
        Load one layer of a file into memory. See geostack.raster.io.load.
        """
        from .io import load
        return load(path, key=key, window=window, registry=registry)

    # Dynamic metadata properties

    @property
    def data(self) -> np.ndarray:
        """Access the raw value array."""
        return self._data

    @data.setter
    def data(self, new_data: np.ndarray):
        """
        Update the value array. The shape must still match the dimensions.
        """
        new_data = np.asarray(new_data)
        self.validate_inputs(new_data, self._dims)
        self._data = new_data

    @property
    def dims(self) -> Tuple[Dimension, ...]:
        return self._dims

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._data.shape

    @property
    def ndim(self) -> int:
        return self._data.ndim

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def crs(self) -> Optional[Any]:
        """CRS of the first dimension that carries one."""
        for dim in self._dims:
            if dim.crs is not None:
                return dim.crs
        return None

    @property
    def bounds(self) -> Dict[str, Tuple[Any, Any]]:
        """Returns the (min, max) extent of every dimension, keyed by name."""
        return {d.name: d.extent for d in self._dims}

    def dim(self, name: Union[str, Dimension]) -> Dimension:
        return self._dims[find_dim(self._dims, name)]

    def axis(self, name: Union[str, Dimension]) -> int:
        return find_dim(self._dims, name)

    def size(self, name: Union[str, Dimension]) -> int:
        return self.shape[self.axis(name)]

    # Indexing

    def __getitem__(self, index: Any) -> Union['Raster', Any]:
        """
        Index by position, or by a mapping of dimension name to index/selector.

        Integer indices drop their axis and record it in `refdims`. When every
        axis is dropped the scalar value is returned.
        """
        spec = index if isinstance(index, Mapping) else (index if isinstance(index, tuple) else (index,))
        indices = dims_to_indices(self._dims, spec)
        data = orthogonal_index(self._data, indices)
        if np.ndim(data) == 0:
            return data[()] if isinstance(data, np.ndarray) else data
        dims, refdims = slice_dims(self._dims, self.refdims, indices)
        return Raster(data, dims, refdims, self.name, self.metadata, self.nodata)

    def sel(self, **selectors: Any) -> Union['Raster', Any]:
        """Keyword form of mapping indexing: raster.sel(x=Near(3.2), time=0)."""
        return self[selectors]

    def rebuild(self, **changes: Any) -> 'Raster':
        """Return a new Raster sharing this one's fields except those in `changes`."""
        fields = dict(
            data=self._data, dims=self._dims, refdims=self.refdims,
            name=self.name, metadata=self.metadata, nodata=self.nodata
        )
        fields.update(changes)
        return Raster(**fields)

    def replace_missing(self, value: Any = np.nan) -> 'Raster':
        """
        Replace the missing value sentinel with `value`.

        Integer arrays are promoted to float when `value` is NaN.
        """
        data = self._data
        if isinstance(value, float) and np.isnan(value) and not np.issubdtype(data.dtype, np.floating):
            data = data.astype(np.float64)
        else:
            data = data.copy()
        if self.nodata is not None:
            if isinstance(self.nodata, float) and np.isnan(self.nodata):
                mask = np.isnan(self._data)
            else:
                mask = self._data == self.nodata
            data[mask] = value
        return self.rebuild(data=data, nodata=value)

    def copy(self) -> 'Raster':
        """Returns a deep copy of the Raster."""
        return Raster(
            data=self._data.copy(),
            dims=self._dims,
            refdims=self.refdims,
            name=self.name,
            metadata=copy.deepcopy(self.metadata),
            nodata=self.nodata
        )

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        """Returns a string representation of the Raster object based on its metadata."""
        return (f"<Raster name={self.name!r} dims={dim_names(self._dims)} shape={self.shape} "
                f"dtype={self._data.dtype} crs={self.crs}>")

    def __eq__(self, other: object) -> bool:
        """Checks equality based on dimensions, metadata and values."""
        if not isinstance(other, Raster):
            return NotImplemented

        # Check metadata first (cheap)
        meta_eq = (
            self.shape == other.shape and
            self._dims == other.dims and
            self.refdims == other.refdims and
            self.name == other.name and
            self.nodata == other.nodata
        )
        if not meta_eq:
            return False

        return bool(np.array_equal(self._data, other.data))

    __hash__ = None

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        """Allows np.array(raster_obj) to work directly."""
        if dtype is None:
            return self._data
        return self._data.astype(dtype)
