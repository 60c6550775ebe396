# src/geostack/series/scan.py

"""
This module turns a list of paths into series coordinates.

Each path is parsed on its own: a malformed filename is recorded and
skipped, so one bad file in a directory does not abort the whole scan.
Any other error (including I/O errors) propagates.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from geostack.exceptions import MalformedPathError
from geostack.raster.utils import filter_ext

log = logging.getLogger(__name__)

__all__ = [
    "ScanResult",
    "parse_paths",
    "scan_directory"
]

@dataclass
class ScanResult:
    """Outcome of parsing a list of paths.

    Args:
        paths: Paths whose coordinate was parsed, aligned with `coords`.
        coords: Parsed coordinates.
        errors: One MalformedPathError per skipped path.
    """
    paths: List[Path] = field(default_factory=list)
    coords: List[Any] = field(default_factory=list)
    errors: List[MalformedPathError] = field(default_factory=list)

    def sorted(self) -> "ScanResult":
        """Return a copy with paths and coords ordered by ascending coordinate."""
        order = sorted(range(len(self.coords)), key=self.coords.__getitem__)
        return ScanResult(
            [self.paths[i] for i in order],
            [self.coords[i] for i in order],
            list(self.errors)
        )

def parse_paths(paths: Iterable[Union[str, Path]], parser: Callable[[Path], Any]) -> ScanResult:
    """
    Parse a coordinate from every path, collecting malformed paths instead of raising.

    Args:
        paths: Candidate file paths, in listing order.
        parser: Callable raising MalformedPathError for unusable paths.

    Returns:
        ScanResult: Successful paths/coords in input order, plus the errors.
    """
    result = ScanResult()
    for path in paths:
        path = Path(path)
        try:
            coord = parser(path)
        except MalformedPathError as e:
            log.warning(f"Skipping {path.name}: {e}")
            result.errors.append(e)
            continue
        result.paths.append(path)
        result.coords.append(coord)

    if result.errors:
        log.warning(f"{len(result.errors)} of {len(result.errors) + len(result.paths)} files skipped during scan")
    return result

def scan_directory(
    directory: Union[str, Path],
    extensions: Optional[Union[str, Sequence[str]]],
    parser: Callable[[Path], Any]
) -> ScanResult:
    """List the files of `directory` matching `extensions` (by name) and parse each."""
    paths = filter_ext(directory, extensions)
    log.info(f"Scanning {len(paths)} files in {Path(directory).name}")
    return parse_paths(paths, parser)
