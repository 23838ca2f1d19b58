# src/lidartrees/analysis/cluster.py

"""
This module groups tree locations into spatial clusters with density-based clustering (DBSCAN).
"""

import logging

import numpy as np
from sklearn.cluster import DBSCAN

from lidartrees.errors import InvalidInputError
from lidartrees.vector import Vector, resolve_vector

log = logging.getLogger(__name__)

__all__ = [
    "NOISE",
    "cluster_points",
    "cluster_trees"
]

NOISE = 0

def cluster_points(
    xy: np.ndarray,
    eps: float,
    min_pts: int
) -> np.ndarray:
    """
    Labels 2D points by density-reachability.

    A point is a core point when at least `min_pts` points, itself included, lie within
    Euclidean distance `eps`. Clusters are maximal sets chained together through core
    points; everything else is noise.

    Labels are 0 for noise and 1, 2, ... for clusters. Cluster ids follow discovery order:
    points are visited in input order and each unlabeled core point opens the next id, so
    numbering is reproducible for a fixed input but carries no ranking.

    Args:
        xy (np.ndarray): (N, 2) array of coordinates.
        eps (float): Neighborhood radius. Must be positive.
        min_pts (int): Minimum neighborhood size of a core point. Must be at least 1.

    Returns:
        np.ndarray: Integer labels of length N.
    """
    if not eps > 0:
        raise InvalidInputError(f"Neighborhood radius must be positive, got {eps}")
    if min_pts < 1:
        raise InvalidInputError(f"Minimum point count must be at least 1, got {min_pts}")

    xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
    if len(xy) == 0:
        return np.array([], dtype=np.int64)

    # scikit-learn marks noise as -1 and numbers clusters from 0
    labels = DBSCAN(eps=eps, min_samples=min_pts, metric="euclidean").fit_predict(xy)
    return labels.astype(np.int64) + 1

@resolve_vector
def cluster_trees(
    trees: Vector,
    eps: float = 12.0,
    min_pts: int = 5
) -> Vector:
    """
    Adds a `cluster` column to tree records (0 = noise).

    Args:
        trees: Tree records with `x` and `y` columns (Vector or path to a vector file).
        eps: Neighborhood radius in CRS units.
        min_pts: Minimum neighborhood size of a core point.

    Returns:
        Vector: A copy of the records with the cluster label of every tree.
    """
    gdf = trees.data.copy()
    labels = cluster_points(gdf[["x", "y"]].to_numpy(), eps, min_pts)
    gdf["cluster"] = labels

    n_clusters = len(np.unique(labels[labels != NOISE]))
    n_noise = int(np.sum(labels == NOISE))
    log.info(f"Found {n_clusters} clusters among {len(gdf)} trees ({n_noise} noise)")

    return Vector(gdf)
