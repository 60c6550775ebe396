# src/geostack/sources/hdf5.py

"""
This module reads multi-layer HDF5 (and netCDF4-style) files through h5py.

Layers are the datasets of one group that are not dimension scales.
Each layer's axes are named after the dimension scales attached to it;
axes without a scale fall back to their label or to 'dim_<i>' with
integer point coordinates.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import h5py
import numpy as np

from geostack.dimensions import LAT, LON, X, Y, Dimension, Intervals, Irregular, Locus, Points, combine_dims, dim_names
from geostack.exceptions import KeyNotFoundError
from geostack.stack.window import read_array
from .base import SourceFormat

log = logging.getLogger(__name__)

__all__ = [
    "HDF5Format",
    "decode_attrs"
]

SPATIAL_DIMS = (X, Y, LAT, LON)

# Attributes managed by the HDF5 dimension scale API and netCDF4
_RESERVED_ATTRS = {
    "DIMENSION_LIST", "REFERENCE_LIST", "CLASS", "NAME",
    "_Netcdf4Dimid", "_Netcdf4Coordinates", "_NCProperties", "_FillValue"
}

def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, np.ndarray):
        if value.dtype.kind in ("S", "O"):
            return [_decode(v) for v in value.tolist()]
        if value.size == 1:
            return value.reshape(()).item()
        return value
    if isinstance(value, np.generic):
        return value.item()
    return value

def decode_attrs(attrs: Any) -> Dict[str, Any]:
    """Convert an h5py AttributeManager into a plain dict of Python values."""
    return {k: _decode(v) for k, v in attrs.items() if k not in _RESERVED_ATTRS}

class HDF5Format(SourceFormat):
    """
    Multi-layer HDF5 files read with h5py.

    Args:
        group: Path of the group holding the layers. Default='/'.
        time_pattern: Optional filename timestamp regex (first group is parsed).
        time_format: strptime format for `time_pattern`.
        time_step: Optional regular spacing of series built from these files.
    """
    name = "hdf5"
    extensions = (".h5", ".hdf5", ".he5", ".nc")
    group = "/"

    def __init__(self, group: Optional[str] = None, **kwargs: Any):
        super().__init__(**kwargs)
        if group is not None:
            self.group = group

    def open(self, path: Path):
        return h5py.File(path, "r")

    def _group(self, f: h5py.File) -> h5py.Group:
        if self.group not in f:
            raise KeyNotFoundError(f"Group '{self.group}' not found in {f.filename}")
        return f[self.group]

    def layer_keys(self, f: h5py.File) -> List[str]:
        keys = []
        for name, obj in self._group(f).items():
            if isinstance(obj, h5py.Dataset) and obj.ndim > 0 and not h5py.h5ds.is_scale(obj.id):
                keys.append(name)
        return keys

    def dataset(self, f: h5py.File, key: str) -> h5py.Dataset:
        group = self._group(f)
        if key not in group:
            raise KeyNotFoundError(f"Layer '{key}' not found in group '{self.group}' of {f.filename}")
        return group[key]

    def _axis_dim(self, ds: h5py.Dataset, axis: int, crs: Any, mappedcrs: Any) -> Dimension:
        proxy = ds.dims[axis]
        if len(proxy) == 0:
            name = proxy.label or f"dim_{axis}"
            return Dimension(name, np.arange(ds.shape[axis]), Points())

        scale = proxy[0]
        name = scale.name.rsplit("/", 1)[-1]
        values = scale[()]
        attrs = decode_attrs(scale.attrs)

        spatial = name in SPATIAL_DIMS
        locus = attrs.get("locus")
        if attrs.get("sampling") == "points" or (locus is None and not spatial):
            sampling = Points()
        else:
            sampling = Intervals(Locus(locus) if locus else Locus.CENTER)

        span = None
        if "actual_range" in attrs and not isinstance(sampling, Points):
            lo, hi = attrs["actual_range"]
            span = Irregular((lo, hi))

        return Dimension(
            name, values, sampling, span,
            crs=crs if spatial else None,
            mappedcrs=mappedcrs if spatial else None,
            metadata=attrs
        )

    def _dims_of(self, ds: h5py.Dataset, crs: Any, mappedcrs: Any) -> Tuple[Dimension, ...]:
        return tuple(self._axis_dim(ds, axis, crs, mappedcrs) for axis in range(ds.ndim))

    def dims(self, f: h5py.File, crs: Any = None, mappedcrs: Any = None) -> Tuple[Dimension, ...]:
        return combine_dims(*(
            self._dims_of(self.dataset(f, key), crs, mappedcrs) for key in self.layer_keys(f)
        ))

    def layer_dims(self, f: h5py.File) -> Dict[str, Tuple[str, ...]]:
        return {key: dim_names(self._dims_of(self.dataset(f, key), None, None)) for key in self.layer_keys(f)}

    def metadata(self, f: h5py.File) -> Dict[str, Any]:
        meta = decode_attrs(f.attrs)
        if self.group != "/":
            meta.update(decode_attrs(self._group(f).attrs))
        return meta

    def layer_metadata(self, f: h5py.File, key: str) -> Dict[str, Any]:
        return decode_attrs(self.dataset(f, key).attrs)

    def missingval(self, f: h5py.File, key: Optional[str]) -> Any:
        if key is None:
            return None
        attrs = self.dataset(f, key).attrs
        for name in ("_FillValue", "missing_value"):
            if name in attrs:
                return _decode(attrs[name])
        return None

    def read_windowed(self, ds: h5py.Dataset, indices: Sequence[Any]) -> np.ndarray:
        """One hyperslab read of the bounding region; h5py handles positive steps natively."""
        return read_array(ds, indices, native_steps=True)
