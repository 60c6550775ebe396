# src/geostack/raster/io.py

"""
This module handles single-file reads for raster data.

Formats are resolved from the file extension through a FormatRegistry.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from geostack.dimensions import dim_names, dims_to_indices, find_dim, slice_dims
from .layer import Raster

log = logging.getLogger(__name__)

__all__ = [
    "load",
    "read_info"
]

def _resolve_source(path: Path, registry: Any) -> Any:
    from geostack.sources.registry import default_registry
    return (registry or default_registry()).for_path(path)

def load(
    path: Union[str, Path],
    key: Optional[str] = None,
    window: Any = None,
    registry: Any = None
) -> Raster:
    """
    Load one layer of a file from disk into memory.

    Supports loading a whole layer or a subset through a window (positional,
    or a mapping of dimension name to index/selector). Only the windowed
    region is read from disk.

    Args:
        path: Path to the file. The format is chosen from its extension.
        key: Layer to read from multi-layer files. Optional for single-layer files.
        window: Optional window restricting the read.
        registry: Optional FormatRegistry. Default: default_registry().

    Returns:
        Raster: In-memory Raster object
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    source = _resolve_source(path, registry)
    log.debug(f"Loading layer {key!r} of {path.name} as {source.name}")

    def _read(handle: Any) -> Raster:
        inner = source.resolve_key(handle, key)
        file_dims = source.dims(handle)
        dims = tuple(file_dims[find_dim(file_dims, n)] for n in source.layer_dims(handle)[inner])
        indices = dims_to_indices(dims, window)
        data = source.read_windowed(source.dataset(handle, inner), indices)
        new_dims, refdims = slice_dims(dims, (), indices)
        return Raster(
            data, new_dims, refdims,
            name=inner,
            metadata=source.layer_metadata(handle, inner),
            nodata=source.missingval(handle, inner)
        )

    return source.open_and_read(path, _read)

def read_info(path: Union[str, Path], registry: Any = None) -> Dict[str, Any]:
    """
    Inspect a file without reading its data: layers, dimensions, shapes,
    dtypes, missing values and metadata in a single pass.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    source = _resolve_source(path, registry)

    def _info(handle: Any) -> Dict[str, Any]:
        keys = source.layer_keys(handle)
        dims = source.dims(handle)
        return {
            'format': source.name,
            'layers': keys,
            'dims': dims,
            'dim_names': dim_names(dims),
            'layer_dims': source.layer_dims(handle),
            'shapes': {k: source.layer_shape(handle, k) for k in keys},
            'dtypes': {k: source.layer_dtype(handle, k) for k in keys},
            'nodata': {k: source.missingval(handle, k) for k in keys},
            'metadata': source.metadata(handle)
        }

    return source.open_and_read(path, _info)
