# src/lidartrees/raster/__init__.py
#
# Copyright (c) The lidartrees project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The raster subpackage provides the in-memory raster structure used for
canopy height models, along with disk I/O for exporting and reloading them.
"""
# Core data structure
from .layer import (
    Raster
)

# I/O operations
from .io import (
    load,
    save
)

__all__ = [
    # Layer
    "Raster",

    # I/O
    "load",
    "save"
]
