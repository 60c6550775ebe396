# src/geostack/raster/resources.py

"""
This module performs memory safety checks before whole layers are read into RAM.
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import psutil

from geostack.config import DEFAULT_SAFETY_FACTOR

log = logging.getLogger(__name__)

__all__ = [
    "MemoryEstimate",
    "estimate_memory",
    "ensure_memory"
]

MIN_FREE_GB = 0.5

@dataclass(frozen=True)
class MemoryEstimate:
    """Estimation of memory requirements and safety for loading an array.

    Args:
        total_required_bytes: Total bytes required to load the array (with overhead)
        available_system_bytes: Currently available system memory in bytes
        is_safe: Boolean indicating if loading is considered safe
        reason: Explanation for the safety assessment
    """
    total_required_bytes: int
    available_system_bytes: int
    is_safe: bool
    reason: str

def estimate_memory(
    shape: Sequence[int],
    dtype: Any,
    safety_factor: float = DEFAULT_SAFETY_FACTOR,
    min_free_gb: float = MIN_FREE_GB
) -> MemoryEstimate:
    """
    Checks if an array of `shape` and `dtype` fits in RAM safely.

    Args:
        shape: Shape of the array to be read.
        dtype: NumPy dtype of the stored values.
        safety_factor: Multiplier to account for overhead.
        min_free_gb: Minimum free GB to leave available after loading.

    Returns:
        MemoryEstimate: Contains total required bytes, available bytes, safety boolean, and reason.
    """
    raw_bytes = int(np.prod(shape, dtype=np.int64)) * np.dtype(dtype).itemsize
    total_required = int(raw_bytes * safety_factor)

    mem = psutil.virtual_memory()
    min_free_bytes = int(min_free_gb * (1024**3))
    is_safe = (total_required + min_free_bytes) <= mem.available

    reason = f"Req: {total_required/1e9:.2f}GB, Avail: {mem.available/1e9:.2f}GB"
    return MemoryEstimate(total_required, mem.available, is_safe, reason)

def ensure_memory(shape: Sequence[int], dtype: Any, safety_factor: float = DEFAULT_SAFETY_FACTOR):
    """
    Raise MemoryError if reading an array of `shape` and `dtype` is unsafe.
    """
    estimate = estimate_memory(shape, dtype, safety_factor=safety_factor)
    if not estimate.is_safe:
        log.error(f"Insufficient memory for array {tuple(shape)}: {estimate.reason}")
        raise MemoryError(
            f"Insufficient memory to read array of shape {tuple(shape)}. {estimate.reason}\n"
            "Tip: Set a window on the stack or index the layer to read a subset."
        )
    log.debug(f"Memory check passed: {estimate.reason}")
