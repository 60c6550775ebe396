# src/geostack/stack/stack.py

"""
This module implements the general Stack and stack concatenation.

A Stack is built from in-memory rasters, from one file per layer, or from a
single multi-layer file. Its layers are either numpy arrays or lazy
FileArrays; both are indexed through the same AbstractStack interface.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.config import StackConfig
from geostack.dimensions import Dimension, combine_dims, dim_names, find_dim
from geostack.exceptions import DimensionMismatchError, GeoStackError, MissingLayerError
from geostack.raster.geom import cat as cat_rasters
from geostack.raster.layer import Raster
from geostack.raster.utils import clean_keys, filekey
from geostack.sources.base import FileArray, FileSource, SourceFormat
from geostack.sources.registry import FormatRegistry, default_registry
from .base import AbstractStack

log = logging.getLogger(__name__)

__all__ = [
    "Stack",
    "cat"
]

PathLike = Union[str, Path]

class Stack(AbstractStack):
    """
    A named collection of layers sharing one set of dimensions.

    Each layer uses a subset of the stack dimensions (e.g. a 'time' axis may
    only exist on some layers). Layers are numpy arrays or FileArrays; the
    latter are only read when indexed.

    Attributes:
        data (Mapping[str, np.ndarray | FileArray]): Layer storage keyed by name.
        dims (Tuple[Dimension, ...]): All dimensions used by the layers.
        refdims (Tuple[Dimension, ...]): Length-1 dimensions the stack was sliced from.
        metadata (Dict[str, Any]): Stack-level metadata.
        window: Window applied to every read (mapping name -> index, or positional tuple).
        layerrefdims (Dict[str, Tuple[Dimension, ...]]): Refdims carried by one layer only,
            e.g. a time step selected away from the layers that had a time axis.
    """

    def __init__(
        self,
        data: Mapping,
        dims: Sequence[Dimension],
        refdims: Sequence[Dimension] = (),
        layerdims: Optional[Mapping] = None,
        metadata: Optional[Dict[str, Any]] = None,
        layermetadata: Optional[Mapping] = None,
        layermissingval: Optional[Mapping] = None,
        layerrefdims: Optional[Mapping] = None,
        window: Any = None,
        config: Optional[StackConfig] = None
    ):
        keys = clean_keys(data.keys())
        self.data = {k: v for k, v in zip(keys, data.values())}
        self._keys = keys
        self._dims = tuple(dims)
        self._refdims = tuple(refdims)
        self._metadata = metadata if metadata is not None else {}
        self._window = window
        self.config = config or StackConfig()

        names = dim_names(self._dims)
        layerdims = dict(zip(clean_keys(layerdims.keys()), layerdims.values())) if layerdims else {}
        self.layerdims = {k: tuple(layerdims.get(k, names)) for k in keys}
        self.layermetadata = self._per_layer(layermetadata, {})
        self.layermissingval = self._per_layer(layermissingval, None)
        layerrefdims = dict(zip(clean_keys(layerrefdims.keys()), layerrefdims.values())) if layerrefdims else {}
        self.layerrefdims = {k: tuple(layerrefdims.get(k, ())) for k in keys}

        self.validate_inputs()

    def _per_layer(self, values: Optional[Mapping], default: Any) -> Dict[str, Any]:
        values = dict(zip(clean_keys(values.keys()), values.values())) if values else {}
        return {k: values.get(k, default if default is None else dict(default)) for k in self._keys}

    def validate_inputs(self):
        """Check every layer's dimension names and storage shape against the stack dimensions."""
        names = dim_names(self._dims)
        if len(set(names)) != len(names):
            raise DimensionMismatchError(f"Duplicate stack dimension names: {names}")

        for key in self._keys:
            layer_names = self.layerdims[key]
            missing = [n for n in layer_names if n not in names]
            if missing:
                raise DimensionMismatchError(
                    f"Layer '{key}' uses dimensions {missing} not present in stack dimensions {names}"
                )
            shape = tuple(np.shape(self.data[key])) if not isinstance(self.data[key], FileArray) else self.data[key].shape
            expected = tuple(len(self._dims[find_dim(self._dims, n)]) for n in layer_names)
            if shape != expected:
                raise DimensionMismatchError(
                    f"Layer '{key}' has shape {shape} but dimensions {layer_names} imply {expected}"
                )

    # Constructors

    @classmethod
    def from_layers(
        cls,
        layers: Union[Mapping, Sequence[Raster]],
        keys: Optional[Sequence[Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        refdims: Sequence[Dimension] = (),
        window: Any = None,
        layer_metadata: Optional[Mapping] = None,
        layer_missingval: Optional[Mapping] = None,
        config: Optional[StackConfig] = None
    ) -> "Stack":
        """
        Build an in-memory stack from Rasters.

        Args:
            layers: Mapping of key -> Raster, or a sequence of Rasters.
            keys: Layer keys. Default: the mapping keys, or each Raster's name.
            metadata: Stack metadata. Default: empty.
            refdims: Reference dimensions of the stack.
            window: Window applied to every read.
            layer_metadata: Per-layer metadata overriding the Rasters' own.
            layer_missingval: Per-layer missing values overriding the Rasters' own.

        Raises:
            DimensionMismatchError: If layers disagree on a shared dimension.
            DuplicateKeyError: If keys collide.
        """
        if isinstance(layers, Mapping):
            default_keys = list(layers.keys())
            rasters = list(layers.values())
        else:
            rasters = list(layers)
            default_keys = [r.name for r in rasters]

        keys = list(keys) if keys is not None else default_keys
        if len(keys) != len(rasters):
            raise ValueError(f"Got {len(keys)} keys for {len(rasters)} layers")
        if any(k is None for k in keys):
            raise ValueError("Every layer needs a key: pass `keys` or name the Rasters")
        keys = clean_keys(keys)

        dims = combine_dims(*(r.dims for r in rasters))
        overrides_meta = dict(zip(clean_keys(layer_metadata.keys()), layer_metadata.values())) if layer_metadata else {}
        overrides_mv = dict(zip(clean_keys(layer_missingval.keys()), layer_missingval.values())) if layer_missingval else {}
        shared = set(dim_names(refdims))

        stack = cls(
            data={k: r.data for k, r in zip(keys, rasters)},
            dims=dims,
            refdims=refdims,
            layerdims={k: dim_names(r.dims) for k, r in zip(keys, rasters)},
            metadata=metadata,
            layermetadata={k: overrides_meta.get(k, r.metadata) for k, r in zip(keys, rasters)},
            layermissingval={k: overrides_mv.get(k, r.nodata) for k, r in zip(keys, rasters)},
            layerrefdims={k: tuple(d for d in r.refdims if d.name not in shared) for k, r in zip(keys, rasters)},
            window=window,
            config=config
        )
        log.info(f"Built stack of {len(keys)} layers with dims {dim_names(dims)}")
        return stack

    @classmethod
    def from_files(
        cls,
        paths: Union[Mapping, Sequence[PathLike]],
        keys: Optional[Sequence[Any]] = None,
        registry: Optional[FormatRegistry] = None,
        crs: Any = None,
        mappedcrs: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
        refdims: Sequence[Dimension] = (),
        window: Any = None,
        config: Optional[StackConfig] = None
    ) -> "Stack":
        """
        Build a stack with one file per layer.

        Each file is opened once to record its dimensions, metadata, missing
        value, shape and dtype; the data itself stays on disk until indexed.

        Args:
            paths: Mapping of key -> path, or a sequence of paths.
            keys: Layer keys. Default: the mapping keys, or each filename stem.
            registry: Extension -> format lookup. Default: default_registry().
            crs: Overrides the files' CRS on spatial dimensions.
            mappedcrs: Mapped CRS set on spatial dimensions.

        Raises:
            DimensionMismatchError: If the files' shared dimensions differ.
            FileNotFoundError: If a file does not exist.
        """
        if isinstance(paths, Mapping):
            default_keys = list(paths.keys())
            paths = [Path(p) for p in paths.values()]
        else:
            paths = [Path(p) for p in paths]
            default_keys = [filekey(p) for p in paths]
        keys = clean_keys(list(keys) if keys is not None else default_keys)
        if len(keys) != len(paths):
            raise ValueError(f"Got {len(keys)} keys for {len(paths)} files")

        registry = registry or default_registry()

        data, layerdims, layermeta, layermv, all_dims = {}, {}, {}, {}, []
        for key, path in zip(keys, paths):
            source = registry.for_path(path)

            def _info(handle: Any, key: str = key, source: SourceFormat = source) -> Tuple:
                inner = source.resolve_key(handle, key)
                file_dims = source.dims(handle, crs, mappedcrs)
                names = source.layer_dims(handle)[inner]
                dims = tuple(file_dims[find_dim(file_dims, n)] for n in names)
                return (
                    inner, dims,
                    source.layer_shape(handle, inner), source.layer_dtype(handle, inner),
                    source.layer_metadata(handle, inner), source.missingval(handle, inner)
                )

            try:
                inner, dims, shape, dtype, meta, mv = source.open_and_read(path, _info)
            except (GeoStackError, OSError) as e:
                log.error(f"Failed to read layer '{key}' from {path}: {e}")
                raise

            data[key] = FileArray(path, source, inner, shape, dtype)
            layerdims[key] = dim_names(dims)
            layermeta[key] = meta
            layermv[key] = mv
            all_dims.append(dims)

        try:
            dims = combine_dims(*all_dims)
        except DimensionMismatchError as e:
            log.error(f"Files do not share common dimensions: {e}")
            raise

        stack = cls(
            data=data, dims=dims, refdims=refdims, layerdims=layerdims,
            metadata=metadata, layermetadata=layermeta, layermissingval=layermv,
            window=window, config=config
        )
        log.info(f"Built stack of {len(keys)} files with dims {dim_names(dims)}")
        return stack

    @classmethod
    def from_file(
        cls,
        path: PathLike,
        registry: Optional[FormatRegistry] = None,
        metadata: Optional[Dict[str, Any]] = None,
        crs: Any = None,
        mappedcrs: Any = None,
        refdims: Sequence[Dimension] = (),
        window: Any = None,
        source: Optional[SourceFormat] = None,
        config: Optional[StackConfig] = None
    ) -> "Stack":
        """
        Build a stack from a single multi-layer file (e.g. HDF5).

        The file is opened once; keys, dimensions, per-layer dimensions,
        metadata, missing values and layer sizes are recorded eagerly. The
        layers are a lazy FileSource read on access.

        Args:
            path: File to read.
            registry: Extension -> format lookup. Default: default_registry().
            metadata: Stack metadata. Default: the file's own metadata.
            source: Explicit format, bypassing the registry.
        """
        path = Path(path)
        source = source or (registry or default_registry()).for_path(path)

        def _info(handle: Any) -> Tuple:
            return (
                FileSource.from_handle(path, source, handle),
                source.dims(handle, crs, mappedcrs),
                source.layer_dims(handle),
                source.metadata(handle),
                {k: source.layer_metadata(handle, k) for k in source.layer_keys(handle)},
                {k: source.missingval(handle, k) for k in source.layer_keys(handle)}
            )

        try:
            files, dims, layerdims, file_meta, layermeta, layermv = source.open_and_read(path, _info)
        except (GeoStackError, OSError) as e:
            log.error(f"Failed to build stack from {path}: {e}")
            raise

        stack = cls(
            data={k: files[k] for k in files},
            dims=dims, refdims=refdims, layerdims=layerdims,
            metadata=metadata if metadata is not None else file_meta,
            layermetadata=layermeta, layermissingval=layermv,
            window=window, config=config
        )
        log.info(f"Built stack of {len(files)} layers from {path.name}")
        return stack

    # Capability interface

    def keys(self) -> Tuple[str, ...]:
        return self._keys

    @property
    def dims(self) -> Tuple[Dimension, ...]:
        return self._dims

    @property
    def refdims(self) -> Tuple[Dimension, ...]:
        return self._refdims

    @property
    def metadata(self) -> Dict[str, Any]:
        return self._metadata

    @property
    def window(self) -> Any:
        return self._window

    def layer_dims(self, key: Any) -> Tuple[Dimension, ...]:
        key = self._check_key(key)
        return tuple(self._dims[find_dim(self._dims, n)] for n in self.layerdims[key])

    def layer_metadata(self, key: Any) -> Dict[str, Any]:
        return self.layermetadata[self._check_key(key)]

    def missingval(self, key: Any) -> Any:
        return self.layermissingval[self._check_key(key)]

    def layer_refdims(self, key: Any) -> Tuple[Dimension, ...]:
        return self.layerrefdims[self._check_key(key)]

    def _storage(self, key: str) -> Union[np.ndarray, FileArray]:
        return self.data[key]

    def rebuild(self, **changes: Any) -> "Stack":
        fields = dict(
            data=self.data, dims=self._dims, refdims=self._refdims,
            layerdims=self.layerdims, metadata=self._metadata,
            layermetadata=self.layermetadata, layermissingval=self.layermissingval,
            layerrefdims=self.layerrefdims, window=self._window, config=self.config
        )
        fields.update(changes)
        return Stack(**fields)

def cat(*stacks: AbstractStack, keys: Optional[Sequence[Any]] = None, dim: Union[str, Dimension]) -> Stack:
    """
    Concatenate stacks layer by layer along `dim`.

    `dim` is either an existing axis of the layers or a reference dimension
    of the stacks (e.g. the time of each series element), which then becomes
    a new trailing axis.

    Args:
        *stacks: Stacks to join, in order. A single list or tuple is unpacked.
        keys: Layers to concatenate. Default: all layers of the first stack.
        dim: Name (or Dimension) to concatenate along.

    Returns:
        Stack: In-memory stack with metadata and remaining refdims of the first stack.

    Raises:
        MissingLayerError: If a stack lacks one of the requested layers.
    """
    if len(stacks) == 1 and isinstance(stacks[0], (list, tuple)):
        stacks = tuple(stacks[0])
    if not stacks:
        raise ValueError("cat requires at least one stack")

    name = dim.name if isinstance(dim, Dimension) else dim
    first = stacks[0]
    keys = first.keys() if keys is None else clean_keys(keys)

    layers = {}
    for key in keys:
        for i, stack in enumerate(stacks):
            if key not in stack:
                raise MissingLayerError(
                    f"Layer '{key}' is missing from stack {i} of {len(stacks)}: available {list(stack.keys())}"
                )
        layers[key] = cat_rasters([stack[key] for stack in stacks], name)

    refdims = tuple(d for d in first.refdims if d.name != name)
    log.info(f"Concatenated {len(stacks)} stacks along '{name}' ({len(keys)} layers)")
    return Stack.from_layers(layers, metadata=dict(first.metadata), refdims=refdims)
