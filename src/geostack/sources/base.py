# src/geostack/sources/base.py

"""
This module defines the interface every file format implements, and the lazy
array types that stand in for file layers until they are read.

A format never keeps a file open on its own: every access goes through
`open_and_read`, which opens the file in a context manager, runs one
function on the handle and releases it, even on error.
"""

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.dimensions import TIME, Dimension, Intervals, Locus, Points, Regular, dim_names
from geostack.exceptions import KeyNotFoundError, MalformedPathError, UnsupportedOperationError

log = logging.getLogger(__name__)

__all__ = [
    "SourceFormat",
    "FileArray",
    "FileSource"
]

class SourceFormat:
    """
    Base class for file formats.

    Subclasses implement `open`, `layer_keys`, `dataset`, `dims` and
    `read_windowed`; the remaining hooks have usable defaults.

    Class attributes hold the format defaults:
        name: Short format label used in logs and reprs.
        extensions: File extensions handled by the format.
        time_pattern: Regex whose first group holds the timestamp of a filename.
        time_format: strptime format of that group.
        time_step: Regular spacing of series built from this format, if any.
    """
    name: str = "base"
    extensions: Tuple[str, ...] = ()
    time_pattern: Optional[str] = None
    time_format: Optional[str] = None
    time_step: Optional[timedelta] = None

    def __init__(
        self,
        time_pattern: Optional[str] = None,
        time_format: Optional[str] = None,
        time_step: Optional[timedelta] = None
    ):
        if time_pattern is not None:
            self.time_pattern = time_pattern
        if time_format is not None:
            self.time_format = time_format
        if time_step is not None:
            self.time_step = time_step

    # Hooks every format implements

    def open(self, path: Path) -> ContextManager[Any]:
        """Return a context manager yielding an open file handle."""
        raise NotImplementedError

    def layer_keys(self, handle: Any) -> List[str]:
        """Names of the layers in an open file."""
        raise NotImplementedError

    def dataset(self, handle: Any, key: str) -> Any:
        """The readable dataset of layer `key` in an open file."""
        raise NotImplementedError

    def dims(self, handle: Any, crs: Any = None, mappedcrs: Any = None) -> Tuple[Dimension, ...]:
        """
        Dimensions of the file (the union over its layers).

        `crs` and `mappedcrs` override the format's default for spatial dimensions.
        """
        raise NotImplementedError

    def read_windowed(self, dataset: Any, indices: Sequence[Any]) -> np.ndarray:
        """
        Read the region selected by `indices` (one per storage axis) in a single call.
        """
        raise NotImplementedError

    # Hooks with defaults

    def layer_dims(self, handle: Any) -> Dict[str, Tuple[str, ...]]:
        """Dimension names of each layer, in storage axis order."""
        names = dim_names(self.dims(handle))
        return {key: names for key in self.layer_keys(handle)}

    def metadata(self, handle: Any) -> Dict[str, Any]:
        return {}

    def layer_metadata(self, handle: Any, key: str) -> Dict[str, Any]:
        return {}

    def missingval(self, handle: Any, key: Optional[str]) -> Any:
        return None

    def layer_shape(self, handle: Any, key: str) -> Tuple[int, ...]:
        return tuple(self.dataset(handle, key).shape)

    def layer_dtype(self, handle: Any, key: str) -> np.dtype:
        return np.dtype(self.dataset(handle, key).dtype)

    def resolve_key(self, handle: Any, key: Optional[str]) -> str:
        """
        Pick the layer of a file that stands for `key`.

        Single-layer files answer to any key; multi-layer files must contain it.
        """
        keys = self.layer_keys(handle)
        if key in keys:
            return key
        if len(keys) == 1:
            return keys[0]
        raise KeyNotFoundError(f"Layer '{key}' not found. Available layers: {keys}")

    def open_and_read(self, path: Union[str, Path], fn: Callable[[Any], Any]) -> Any:
        """
        Open `path`, apply `fn` to the handle and close the file again.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"{self.name} file not found: {path}")

        log.debug(f"Opening {self.name} file: {path.name}")
        with self.open(path) as handle:
            return fn(handle)

    # Filename coordinates

    def time_from_path(self, path: Union[str, Path]) -> datetime:
        """
        Parse the timestamp encoded in a filename.

        Raises:
            UnsupportedOperationError: If the format defines no time pattern.
            MalformedPathError: If the filename does not carry a valid timestamp.
        """
        if self.time_pattern is None or self.time_format is None:
            raise UnsupportedOperationError(f"The {self.name} format defines no filename time pattern")

        filename = Path(path).name
        match = re.search(self.time_pattern, filename)
        if match is None:
            raise MalformedPathError(path, f"Date/time not correctly formatted in path: {path}")
        try:
            return datetime.strptime(match.group(1), self.time_format)
        except ValueError as e:
            raise MalformedPathError(path, f"Invalid date/time '{match.group(1)}' in path: {path}") from e

    def time_dim(self, times: Sequence[datetime]) -> Dimension:
        """
        Build the series dimension for timestamps parsed from filenames.

        With a `time_step` the timestamps mark the start of regular intervals,
        otherwise they are plain points.
        """
        values = np.array(times, dtype="datetime64[s]")
        if self.time_step is None:
            return Dimension(TIME, values, Points())
        return Dimension(
            TIME, values, Intervals(Locus.START),
            Regular(np.timedelta64(self.time_step).astype("timedelta64[s]"))
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} extensions={self.extensions}>"


class FileArray:
    """
    A lazily read layer of a file.

    Holds only the location of the data (path, format, layer key) and its
    shape and dtype. `read` opens the file, reads the requested region and
    closes it again, unless a HandleCache supplies an open handle.
    """

    def __init__(
        self,
        path: Union[str, Path],
        source: SourceFormat,
        key: str,
        shape: Sequence[int],
        dtype: Any,
        handles: Any = None
    ):
        self.path = Path(path)
        self.source = source
        self.key = key
        self.shape = tuple(int(s) for s in shape)
        self.dtype = np.dtype(dtype)
        self.handles = handles

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def nbytes(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64)) * self.dtype.itemsize

    def read(self, indices: Optional[Sequence[Any]] = None) -> np.ndarray:
        """
        Read the region selected by one index per storage axis (all data if None).
        """
        if indices is None:
            indices = (slice(None),) * self.ndim
        indices = tuple(indices)
        if len(indices) != self.ndim:
            raise IndexError(f"Expected {self.ndim} indices for layer '{self.key}', got {len(indices)}")

        def _read(handle: Any) -> np.ndarray:
            dataset = self.source.dataset(handle, self.source.resolve_key(handle, self.key))
            return self.source.read_windowed(dataset, indices)

        log.debug(f"Reading layer '{self.key}' of {self.path.name}: {indices}")
        if self.handles is not None:
            return self.handles.read(self.path, self.source, _read)
        return self.source.open_and_read(self.path, _read)

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        data = self.read()
        return data if dtype is None else data.astype(dtype)

    def __repr__(self) -> str:
        return (f"<FileArray key={self.key!r} path={self.path.name!r} "
                f"shape={self.shape} dtype={self.dtype}>")


class FileSource(Mapping):
    """
    The layers of one multi-layer file, as a mapping of key to FileArray.

    Layer sizes and dtypes are recorded when the file is first opened, so
    building the mapping never touches the file again.
    """

    def __init__(
        self,
        path: Union[str, Path],
        source: SourceFormat,
        shapes: Dict[str, Tuple[int, ...]],
        dtypes: Dict[str, Any]
    ):
        self.path = Path(path)
        self.source = source
        self.shapes = dict(shapes)
        self.dtypes = dict(dtypes)

    @classmethod
    def from_handle(cls, path: Union[str, Path], source: SourceFormat, handle: Any) -> "FileSource":
        """Record the keys, shapes and dtypes of an already open file."""
        keys = source.layer_keys(handle)
        shapes = {k: source.layer_shape(handle, k) for k in keys}
        dtypes = {k: source.layer_dtype(handle, k) for k in keys}
        return cls(path, source, shapes, dtypes)

    def __getitem__(self, key: str) -> FileArray:
        if key not in self.shapes:
            raise KeyNotFoundError(f"Layer '{key}' not found in {self.path.name}")
        return FileArray(self.path, self.source, key, self.shapes[key], self.dtypes[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self.shapes)

    def __len__(self) -> int:
        return len(self.shapes)

    def __repr__(self) -> str:
        return f"<FileSource path={self.path.name!r} format={self.source.name!r} layers={list(self.shapes)}>"
