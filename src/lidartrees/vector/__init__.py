# src/lidartrees/vector/__init__.py
#
# Copyright (c) The lidartrees project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The vector subpackage provides the GeoDataFrame envelope used for tree records
and regions of interest, along with I/O and geometric operations.
"""

# I/O and data structure
from .layer import (
    Vector
)

from .io import (
    load_vector,
    save_vector,
    save_table,
    resolve_vector
)

# Geometric operations
from .geom import (
    to_crs,
    filter_vector,
    validate,
)

__all__ = [
    # I/O and data structure
    "Vector",
    "load_vector",
    "save_vector",
    "save_table",
    "resolve_vector",

    # Geometric operations
    "to_crs",
    "filter_vector",
    "validate"
]
