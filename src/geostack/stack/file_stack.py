# src/geostack/stack/file_stack.py

"""
This module implements stacks backed by a single file whose layers all share
the same dimensions (the layout of products such as SMAP).

Because every layer has the stack's dimensions, dims, refdims, metadata and
the missing value are stored once on the stack instead of per layer.
"""

import logging
import weakref
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.config import StackConfig
from geostack.dimensions import Dimension
from geostack.raster.utils import clean_keys
from geostack.sources.base import FileArray, SourceFormat
from geostack.sources.handles import HandleCache
from .base import AbstractStack

log = logging.getLogger(__name__)

__all__ = [
    "FileStack"
]

_UNSET = object()

class FileStack(AbstractStack):
    """
    A stack over one multi-layer file with dimensions shared by all layers.

    Dimensions, metadata and the missing value are read from the file at
    construction unless given. Keys are read on first use and cached. By
    default every read opens and closes the file; with `keep_open=True` one
    handle is kept in a HandleCache owned by this stack and released by
    `close()`, by leaving a `with` block, or when the stack is garbage collected.

    Args:
        path: The file to read.
        source: The SourceFormat that reads it.
        dims: Shared layer dimensions. Default: read from the file.
        refdims: Reference dimensions (e.g. the timestamp of the file).
        window: Window applied to every read.
        metadata: Stack metadata. Default: read from the file.
        keep_open: Keep the file open between reads. Default: `config.keep_open`.
        config: StackConfig for memory checks and keep-open mode.
        crs: Overrides the format's default CRS on spatial dimensions.
        mappedcrs: Overrides the format's default mapped CRS.
        missingval: Missing value of every layer. Default: read from the file.
    """

    def __init__(
        self,
        path: Union[str, Path],
        source: SourceFormat,
        dims: Optional[Sequence[Dimension]] = None,
        refdims: Sequence[Dimension] = (),
        window: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
        keep_open: Optional[bool] = None,
        config: Optional[StackConfig] = None,
        crs: Any = None,
        mappedcrs: Any = None,
        missingval: Any = _UNSET
    ):
        self.path = Path(path)
        self.source = source
        self.config = config or StackConfig()
        self.keep_open = self.config.keep_open if keep_open is None else keep_open
        self._refdims = tuple(refdims)
        self._window = window
        self._keys: Optional[Tuple[str, ...]] = None
        self._dtypes: Dict[str, np.dtype] = {}
        self._handles: Optional[HandleCache] = None
        self._finalizer = None

        if self.keep_open:
            self._handles = HandleCache()
            self._finalizer = weakref.finalize(self, self._handles.close)

        if dims is None or metadata is None or missingval is _UNSET:
            def _info(handle: Any) -> Tuple:
                return (
                    tuple(dims) if dims is not None else self.source.dims(handle, crs, mappedcrs),
                    metadata if metadata is not None else self.source.metadata(handle),
                    missingval if missingval is not _UNSET else self.source.missingval(handle, None)
                )
            try:
                dims, metadata, missingval = self._with_handle(_info)
            except Exception as e:
                log.error(f"Failed to initialize {type(self).__name__} from {self.path}: {e}")
                self.close()
                raise

        self._dims = tuple(dims)
        self._metadata = metadata
        self._missingval = missingval
        log.debug(f"Initialized {type(self).__name__} for {self.path.name} (keep_open={self.keep_open})")

    def _with_handle(self, fn: Any) -> Any:
        if self._handles is not None:
            return self._handles.read(self.path, self.source, fn)
        return self.source.open_and_read(self.path, fn)

    # Capability interface

    def keys(self) -> Tuple[str, ...]:
        if self._keys is None:
            self._keys = clean_keys(self._with_handle(self.source.layer_keys))
        return self._keys

    @property
    def filename(self) -> Path:
        return self.path

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
        self._check_key(key)
        return self._dims

    def layer_metadata(self, key: Any) -> Dict[str, Any]:
        self._check_key(key)
        return self._metadata

    def missingval(self, key: Any = None) -> Any:
        return self._missingval

    def _storage(self, key: str) -> FileArray:
        if key not in self._dtypes:
            self._dtypes[key] = self._with_handle(lambda handle: self.source.layer_dtype(handle, key))
        shape = tuple(len(d) for d in self._dims)
        return FileArray(self.path, self.source, key, shape, self._dtypes[key], self._handles)

    def _rebuild_fields(self) -> Dict[str, Any]:
        return dict(
            path=self.path, source=self.source, dims=self._dims, refdims=self._refdims,
            window=self._window, metadata=self._metadata, keep_open=self.keep_open,
            config=self.config, missingval=self._missingval
        )

    def rebuild(self, **changes: Any) -> "FileStack":
        """
        Return a stack of the same type over the same file with some fields replaced.

        The new stack opens its own handles; keep-open handles are never shared.
        """
        fields = self._rebuild_fields()
        fields.update(changes)
        return type(self)(**fields)

    # Resource management

    @property
    def closed(self) -> bool:
        return self._handles is not None and self._handles.closed

    def close(self):
        """Release the persistent file handle, if any. Safe to call more than once."""
        if self._finalizer is not None:
            self._finalizer()

    def __enter__(self) -> "FileStack":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} path={self.path.name!r} format={self.source.name!r} window={self._window!r}>"
