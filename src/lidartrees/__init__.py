# src/lidartrees/__init__.py
#
# Copyright (c) The lidartrees project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
lidartrees detects individual trees in lidar point clouds and describes them:
tree count, locations, height distribution, the tallest trees and how they cluster.
"""

__version__ = "0.1.0"

from . import lidar, raster, vector, analysis

from .errors import (
    LidarTreesError,
    InvalidInputError
)

from .config import (
    FilterParams,
    RasterParams,
    ClusterParams,
    AnalysisConfig
)

from .pipeline import (
    PipelineResult,
    run_pipeline,
    run_from_config,
    export_results
)

__all__ = [
    "lidar",
    "raster",
    "vector",
    "analysis",

    "LidarTreesError",
    "InvalidInputError",

    "FilterParams",
    "RasterParams",
    "ClusterParams",
    "AnalysisConfig",

    "PipelineResult",
    "run_pipeline",
    "run_from_config",
    "export_results",
]
