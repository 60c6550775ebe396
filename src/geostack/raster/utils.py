# src/geostack/raster/utils.py

"""
This module provides shared utility functions for layers and stacks.

Functions include layer key normalization, filename keys,
extension filtering and orthogonal array indexing.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from geostack.exceptions import DuplicateKeyError

log = logging.getLogger(__name__)

__all__ = [
    "clean_key",
    "clean_keys",
    "filekey",
    "filter_ext",
    "orthogonal_index"
]

def clean_key(key: Any) -> str:
    """
    Normalize one layer key to its canonical string form.

    Strings pass through, bytes are decoded (HDF5 names often arrive as bytes)
    and Enum members use their string value, or their name otherwise.
    """
    if isinstance(key, str):
        return key
    if isinstance(key, bytes):
        return key.decode("utf-8")
    if isinstance(key, Enum):
        return key.value if isinstance(key.value, str) else key.name
    raise TypeError(f"Layer keys must be str, bytes or Enum members, got {type(key).__name__}")

def clean_keys(keys: Iterable[Any]) -> Tuple[str, ...]:
    """
    Normalize layer keys and reject duplicates.

    Raises:
        DuplicateKeyError: If two keys are equal after normalization.
    """
    cleaned = tuple(clean_key(k) for k in keys)
    seen = set()
    for key in cleaned:
        if key in seen:
            raise DuplicateKeyError(f"Duplicate layer key '{key}' in {cleaned}")
        seen.add(key)
    return cleaned

def filekey(path: Union[str, Path]) -> str:
    """Layer key derived from a file path: the filename without its extension."""
    return Path(path).stem

def filter_ext(directory: Union[str, Path], extensions: Optional[Union[str, Sequence[str]]]) -> List[Path]:
    """
    List the files of a directory matching one or more extensions, sorted by name.

    Matching is case-insensitive. If `extensions` is None, all files are returned.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    if isinstance(extensions, str):
        extensions = [extensions]
    wanted = None
    if extensions is not None:
        wanted = {e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions}

    files = sorted(p for p in directory.iterdir() if p.is_file())
    if wanted is not None:
        files = [p for p in files if p.suffix.lower() in wanted]

    log.debug(f"Found {len(files)} files in {directory.name} matching {extensions}")
    return files

def orthogonal_index(data: Any, indices: Sequence[Any]) -> Any:
    """
    Index an array with one independent index per axis.

    NumPy broadcasts multiple integer arrays together and moves advanced axes
    when ints and arrays are mixed; here every axis is indexed on its own,
    which matches how dimensions are sliced.
    """
    if not any(isinstance(i, np.ndarray) for i in indices):
        return data[tuple(indices)]

    result = data
    for axis in reversed(range(len(indices))):
        index = indices[axis]
        if isinstance(index, slice) and index == slice(None):
            continue
        result = result[(slice(None),) * axis + (index,)]
    return result
