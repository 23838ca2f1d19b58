# src/lidartrees/lidar/__init__.py
#
# Copyright (c) The lidartrees project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The lidar subpackage provides core functionality for handling lidar data,
including I/O operations, point filtering, canopy height model rasterization
and treetop detection.
"""

# Data structure
from .layer import (
    PointCloud
)

# Point filtering
from .filter import (
    filter_points,
    clip_to_bounds,
    region_from_coords,
    region_from_bounds,
    load_region
)

# Rasterization
from .rasterize import (
    points_to_grid,
    calculate_chm,
    grid_shape,
    NODATA_VAL
)

# Treetop detection
from .detect_treetop import (
    DetectionParams,
    TREE_COLUMNS,
    detect_treetops,
    empty_trees
)

__all__ = [
    # Data structure
    "PointCloud",

    # Point filtering
    "filter_points",
    "clip_to_bounds",
    "region_from_coords",
    "region_from_bounds",
    "load_region",

    # Rasterization
    "points_to_grid",
    "calculate_chm",
    "grid_shape",
    "NODATA_VAL",

    # Treetop detection
    "DetectionParams",
    "TREE_COLUMNS",
    "detect_treetops",
    "empty_trees",
]
