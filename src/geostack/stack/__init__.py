# src/geostack/stack/__init__.py
#
# Copyright (c) The geostack project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The stack subpackage provides named collections of layers sharing a set of
dimensions: in-memory stacks, stacks over files, windowed access and
concatenation.
"""
# Window utilities
from .window import (
    window_to_indices,
    named_window,
    compose_indices,
    storage_selection,
    read_array
)

# Stack interface
from .base import (
    AbstractStack
)

# Stacks
from .stack import (
    Stack,
    cat
)

from .file_stack import (
    FileStack
)

__all__ = [
    # Window
    "window_to_indices",
    "named_window",
    "compose_indices",
    "storage_selection",
    "read_array",

    # Interface
    "AbstractStack",

    # Stacks
    "Stack",
    "FileStack",
    "cat"
]
