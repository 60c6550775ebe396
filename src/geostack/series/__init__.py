# src/geostack/series/__init__.py
#
# Copyright (c) The geostack project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The series subpackage provides sequences of stacks along one dimension,
built lazily from directories of files whose names encode a timestamp.
"""
# Series
from .series import (
    Series
)

# Scanning
from .scan import (
    ScanResult,
    parse_paths,
    scan_directory
)

__all__ = [
    # Series
    "Series",

    # Scanning
    "ScanResult",
    "parse_paths",
    "scan_directory"
]
