# src/geostack/sources/handles.py

"""
This module keeps file handles open between reads for keep-open stacks.

A HandleCache is owned by exactly one stack. Access is serialized with a
lock, so a stack shared between threads never reads through one handle
concurrently.
"""

import logging
import threading
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

log = logging.getLogger(__name__)

__all__ = [
    "HandleCache"
]

class HandleCache:
    """Open file handles keyed by path, closed together by `close()`."""

    def __init__(self):
        self._handles: Dict[Path, Tuple[ExitStack, Any]] = {}
        self._lock = threading.Lock()
        self._closed = False

    def read(self, path: Path, source: Any, fn: Callable[[Any], Any]) -> Any:
        """
        Apply `fn` to the cached handle of `path`, opening it on first use.
        """
        path = Path(path)
        with self._lock:
            if self._closed:
                raise ValueError("I/O operation on a closed stack")

            entry = self._handles.get(path)
            if entry is None:
                if not path.exists():
                    raise FileNotFoundError(f"{source.name} file not found: {path}")
                resources = ExitStack()
                handle = resources.enter_context(source.open(path))
                entry = (resources, handle)
                self._handles[path] = entry
                log.debug(f"Opened persistent handle: {path.name}")

            return fn(entry[1])

    def close(self):
        """Close every open handle. Safe to call more than once."""
        with self._lock:
            for path, (resources, _) in self._handles.items():
                resources.close()
                log.debug(f"Closed persistent handle: {path.name}")
            self._handles.clear()
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._handles)

    def __repr__(self) -> str:
        return f"<HandleCache open={len(self._handles)} closed={self._closed}>"
