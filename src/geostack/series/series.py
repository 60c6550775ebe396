# src/geostack/series/series.py

"""
This module implements a series of stacks along one dimension, typically
a directory of files where each file is the stack for one timestamp.

Elements are kept as paths until first accessed; the stack built for a
path is cached, so each file is only inspected once per series.
"""

import logging
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.config import SeriesConfig
from geostack.dimensions import Dimension, to_index
from geostack.exceptions import DimensionMismatchError, EmptySeriesError, MalformedPathError, MissingLayerError
from geostack.raster.utils import filter_ext
from geostack.sources.base import SourceFormat
from geostack.sources.registry import FormatRegistry, default_registry
from geostack.stack.base import AbstractStack
from geostack.stack.file_stack import FileStack
from geostack.stack.stack import Stack, cat
from .scan import parse_paths

log = logging.getLogger(__name__)

__all__ = [
    "Series"
]

Element = Union[AbstractStack, Path]

class Series:
    """
    An ordered sequence of stacks sharing one series dimension.

    Args:
        elements: Stacks, or paths turned into stacks by `child` on first access.
        dim: The series dimension, one coordinate per element.
        child: Callable building a stack from a path (e.g. FileStack bound to a format).
        child_kwargs: Extra keyword arguments for `child`. Unless given, each
            child receives `refdims=(dim[i],)` so its layers know their coordinate.
        errors: Parse failures recorded while building the series.
        eager: Build every stack immediately instead of on first access.
    """

    def __init__(
        self,
        elements: Sequence[Union[AbstractStack, str, Path]],
        dim: Dimension,
        child: Optional[Callable[..., AbstractStack]] = None,
        child_kwargs: Optional[Dict[str, Any]] = None,
        errors: Optional[List[MalformedPathError]] = None,
        eager: bool = False
    ):
        if len(elements) != len(dim):
            raise DimensionMismatchError(
                f"Series has {len(elements)} elements but dimension '{dim.name}' has {len(dim)} coordinates"
            )

        self._elements: List[Element] = [
            e if isinstance(e, AbstractStack) else Path(e) for e in elements
        ]
        if child is None and any(isinstance(e, Path) for e in self._elements):
            raise ValueError("A child constructor is required for path elements")

        self._dim = dim
        self._child = child
        self._child_kwargs = dict(child_kwargs or {})
        self.errors = list(errors or [])
        self._cache: Dict[int, AbstractStack] = {}
        self._keys: Optional[frozenset] = None

        if eager:
            for i in range(len(self._elements)):
                self._materialize(i)

    # Constructors

    @classmethod
    def from_paths(
        cls,
        paths: Sequence[Union[str, Path]],
        source: SourceFormat,
        child: Optional[Callable[..., AbstractStack]] = None,
        sort: Optional[bool] = None,
        eager: Optional[bool] = None,
        config: Optional[SeriesConfig] = None,
        **child_kwargs: Any
    ) -> "Series":
        """
        Build a series from files whose names encode a timestamp.

        Paths whose name cannot be parsed by `source.time_from_path` are
        skipped and recorded in `series.errors`.

        Args:
            paths: Candidate files.
            source: Format parsing the filenames and (by default) reading the files.
            child: Stack constructor for each path. Default: FileStack over `source`.
            sort: Order elements by timestamp. Default: `config.sort` (True).
            eager: Build all stacks immediately. Default: `config.eager` (False).
            config: SeriesConfig with the defaults above.
            **child_kwargs: Passed to `child` (e.g. window, keep_open).

        Raises:
            EmptySeriesError: If no path could be parsed. Carries the errors.
        """
        config = config or SeriesConfig()
        sort = config.sort if sort is None else sort
        eager = config.eager if eager is None else eager

        paths = list(paths)
        result = parse_paths(paths, source.time_from_path)
        if not result.paths:
            log.error(f"No valid {source.name} files among {len(paths)} paths")
            raise EmptySeriesError(
                f"None of the {len(paths)} paths produced a series element", result.errors
            )
        if sort:
            result = result.sorted()

        dim = source.time_dim(result.coords)
        child = child or partial(FileStack, source=source)

        log.info(f"Built series of {len(result.paths)} {source.name} files ({len(result.errors)} skipped)")
        return cls(result.paths, dim, child, child_kwargs, result.errors, eager)

    @classmethod
    def from_directory(
        cls,
        path: Union[str, Path],
        source: Optional[SourceFormat] = None,
        registry: Optional[FormatRegistry] = None,
        extension: Optional[str] = None,
        config: Optional[SeriesConfig] = None,
        **kwargs: Any
    ) -> "Series":
        """
        Build a series from the files of a directory, listed in name order.

        Args:
            path: Directory to scan.
            source: Format of the files. Default: looked up for `extension` in `registry`.
            registry: Extension -> format lookup. Default: default_registry().
            extension: Extension of the files to use. Default: `config.extension`,
                then the source format's own extensions.
            **kwargs: Passed to `from_paths`.
        """
        config = config or SeriesConfig()
        extension = extension or config.extension
        if source is None:
            if extension is None:
                raise ValueError("Pass a source format, or an extension to look one up")
            source = (registry or default_registry()).get(extension)

        paths = filter_ext(path, extension if extension is not None else source.extensions)
        return cls.from_paths(paths, source, config=config, **kwargs)

    # Element access

    def _materialize(self, i: int) -> AbstractStack:
        stack = self._cache.get(i)
        if stack is not None:
            return stack

        element = self._elements[i]
        if isinstance(element, AbstractStack):
            stack = element
        else:
            kwargs = dict(self._child_kwargs)
            kwargs.setdefault("refdims", (self._dim[i],))
            log.debug(f"Building series element {i} from {element.name}")
            stack = self._child(element, **kwargs)

        self._check_keys(stack, i)
        self._cache[i] = stack
        return stack

    def _check_keys(self, stack: AbstractStack, i: int):
        keys = frozenset(stack.keys())
        if self._keys is None:
            self._keys = keys
        elif keys != self._keys:
            raise MissingLayerError(
                f"Series element {i} has layers {sorted(keys)}, expected {sorted(self._keys)}"
            )

    def _subseries(self, positions: Sequence[int], dim: Dimension) -> "Series":
        elements = [self._cache.get(j, self._elements[j]) for j in positions]
        sub = Series(elements, dim, self._child, self._child_kwargs, self.errors)
        sub._keys = self._keys
        return sub

    def __getitem__(self, index: Any) -> Any:
        """
        series[i] -> stack; series[i, key, *I] -> the stack's indexed read.

        `i` may be an int, a slice, an index array or a selector on the series
        dimension (e.g. Near(datetime)). Anything selecting several elements
        returns a sub-Series.
        """
        rest: Tuple[Any, ...] = ()
        if isinstance(index, tuple):
            if not index:
                raise IndexError("Empty index")
            index, rest = index[0], index[1:]

        position = to_index(self._dim, index)
        if isinstance(position, int):
            if position < 0:
                position += len(self)
            if not 0 <= position < len(self):
                raise IndexError(f"Series index {index} out of range for length {len(self)}")
            stack = self._materialize(position)
            if not rest:
                return stack
            return stack[rest if len(rest) > 1 else rest[0]]

        if rest:
            raise IndexError("Layer indexing requires a single series element")
        if isinstance(position, slice):
            positions = range(len(self))[position]
        else:
            positions = [int(p) for p in np.asarray(position)]
        return self._subseries(list(positions), self._dim[position])

    # Properties

    @property
    def dim(self) -> Dimension:
        return self._dim

    @property
    def dims(self) -> Tuple[Dimension, ...]:
        return (self._dim,)

    @property
    def paths(self) -> List[Optional[Path]]:
        """Source path of every element (None for in-memory stacks)."""
        return [
            e if isinstance(e, Path) else getattr(e, "path", None)
            for e in self._elements
        ]

    def keys(self) -> Tuple[str, ...]:
        """Layer keys of the first element."""
        return self._materialize(0).keys() if len(self) else ()

    def cat(self, keys: Optional[Sequence[Any]] = None) -> Stack:
        """Concatenate every element along the series dimension into one in-memory Stack."""
        return cat(*[self[i] for i in range(len(self))], keys=keys, dim=self._dim.name)

    def with_window(self, window: Any) -> "Series":
        """Return a series whose stacks all read through `window`."""
        elements = [
            self._cache.get(j, e).with_window(window) if isinstance(self._cache.get(j, e), AbstractStack) else e
            for j, e in enumerate(self._elements)
        ]
        kwargs = dict(self._child_kwargs, window=window)
        sub = Series(elements, self._dim, self._child, kwargs, self.errors)
        sub._keys = self._keys
        return sub

    def close(self):
        """Close every built stack that holds open handles."""
        for stack in self._cache.values():
            if isinstance(stack, FileStack):
                stack.close()

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[AbstractStack]:
        for i in range(len(self)):
            yield self._materialize(i)

    def __repr__(self) -> str:
        return (f"<Series dim={self._dim.name!r} len={len(self)} "
                f"built={len(self._cache)} errors={len(self.errors)}>")
