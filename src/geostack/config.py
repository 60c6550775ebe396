# src/geostack/config.py

"""
This module holds the configuration objects passed to stack and series constructors.

Configuration is always explicit: nothing here is read from the environment
or stored globally.
"""

import logging
from typing import Optional

log = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_SAFETY_FACTOR",
    "StackConfig",
    "SeriesConfig"
]

DEFAULT_SAFETY_FACTOR = 2.0

class StackConfig:
    """Configuration object for file-backed stacks.

    Args:
        keep_open: If True, the stack keeps its source file open between reads.
            The handle is owned by the stack and closed by FileStack.close().
            Default=False (open and close the file on every read).
        check_memory: If True, estimate required RAM before reading a whole
            layer without a window and raise MemoryError when unsafe. Default=True.
        safety_factor: Multiplier applied to the raw array size to account for
            processing overhead. Default=2.0.
    """
    def __init__(
        self,
        keep_open: bool = False,
        check_memory: bool = True,
        safety_factor: float = DEFAULT_SAFETY_FACTOR
    ):
        if safety_factor < 1.0:
            raise ValueError(f"safety_factor must be >= 1.0, got {safety_factor}")
        self.keep_open = keep_open
        self.check_memory = check_memory
        self.safety_factor = safety_factor

    def __repr__(self) -> str:
        return (f"StackConfig(keep_open={self.keep_open}, "
                f"check_memory={self.check_memory}, safety_factor={self.safety_factor})")


class SeriesConfig:
    """Configuration object for series construction.

    Args:
        sort: If True (default), series elements are ordered by their parsed
            coordinate. If False, the order of the input paths is kept.
        eager: If True, every stack is constructed immediately instead of on
            first access. Default=False.
        extension: File extension used when scanning a directory (e.g. '.h5').
            If None, the source format's own extensions are used.
    """
    def __init__(
        self,
        sort: bool = True,
        eager: bool = False,
        extension: Optional[str] = None
    ):
        self.sort = sort
        self.eager = eager
        self.extension = extension

    def __repr__(self) -> str:
        return f"SeriesConfig(sort={self.sort}, eager={self.eager}, extension={self.extension!r})"
