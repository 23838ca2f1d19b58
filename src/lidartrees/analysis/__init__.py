# src/lidartrees/analysis/__init__.py
#
# Copyright (c) The lidartrees project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The analysis subpackage works on detected tree records: height-percentile
selection, density-based spatial clustering and descriptive summaries.
"""

from .percentile import (
    height_quantile,
    select_tall_trees
)

from .cluster import (
    NOISE,
    cluster_points,
    cluster_trees
)

from .summary import (
    height_summary,
    cluster_summary,
    CLUSTER_SUMMARY_COLUMNS
)

__all__ = [
    # Percentile filter
    "height_quantile",
    "select_tall_trees",

    # Clustering
    "NOISE",
    "cluster_points",
    "cluster_trees",

    # Summaries
    "height_summary",
    "cluster_summary",
    "CLUSTER_SUMMARY_COLUMNS",
]
