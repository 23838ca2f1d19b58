# src/lidartrees/analysis/summary.py

"""
This module computes descriptive statistics of detected trees and their clusters.
"""

from typing import Dict, Any
import logging

import numpy as np
import pandas as pd

from lidartrees.vector import Vector

from .cluster import NOISE

log = logging.getLogger(__name__)

__all__ = [
    "height_summary",
    "cluster_summary",
    "CLUSTER_SUMMARY_COLUMNS"
]

CLUSTER_SUMMARY_COLUMNS = [
    "cluster",
    "n_trees",
    "centroid_x",
    "centroid_y",
    "mean_height",
    "max_height",
    "peak_x",
    "peak_y",
]

def height_summary(trees: Vector, column: str = "height") -> Dict[str, Any]:
    """
    Returns count and distribution statistics of tree heights.

    An empty set reports a count of 0 and None for every statistic, so the result
    always serializes to strict JSON.
    """
    heights = trees.data[column].to_numpy(dtype=np.float64)
    stats = {"count": int(heights.size)}

    if heights.size == 0:
        for key in ("min", "max", "mean", "median", "std", "p25", "p75", "p90"):
            stats[key] = None
        return stats

    stats.update({
        "min": float(np.min(heights)),
        "max": float(np.max(heights)),
        "mean": float(np.mean(heights)),
        "median": float(np.median(heights)),
        "std": float(np.std(heights)),
        "p25": float(np.quantile(heights, 0.25)),
        "p75": float(np.quantile(heights, 0.75)),
        "p90": float(np.quantile(heights, 0.90)),
    })
    return stats

def cluster_summary(trees: Vector) -> pd.DataFrame:
    """
    One row per non-noise cluster, ordered by cluster id.

    The peak columns hold the location of the tallest member of each cluster.
    """
    gdf = trees.data
    if "cluster" not in gdf.columns:
        raise ValueError("Tree records have no 'cluster' column. Run cluster_trees first.")

    members = pd.DataFrame(gdf[gdf["cluster"] != NOISE][["cluster", "x", "y", "height"]])
    if members.empty:
        return pd.DataFrame(columns=CLUSTER_SUMMARY_COLUMNS)

    grouped = members.groupby("cluster", sort=True)
    summary = grouped.agg(
        n_trees=("height", "size"),
        centroid_x=("x", "mean"),
        centroid_y=("y", "mean"),
        mean_height=("height", "mean"),
        max_height=("height", "max"),
    )

    peaks = members.loc[grouped["height"].idxmax()].set_index("cluster")
    summary["peak_x"] = peaks["x"]
    summary["peak_y"] = peaks["y"]

    return summary.reset_index()[CLUSTER_SUMMARY_COLUMNS]
