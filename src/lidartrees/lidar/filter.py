# src/lidartrees/lidar/filter.py

"""
This module implements spatial and vertical filtering of lidar point clouds
against a region of interest and an elevation band.
"""

from typing import Optional, Sequence, Tuple
import logging

import numpy as np
import shapely
from shapely.geometry import Polygon, MultiPolygon, box

from lidartrees.errors import InvalidInputError
from lidartrees.crs import CRSLike, reproject_geometry
from lidartrees.vector import Vector, resolve_vector, validate

from .layer import PointCloud

log = logging.getLogger(__name__)

__all__ = [
    "filter_points",
    "clip_to_bounds",
    "region_from_coords",
    "region_from_bounds",
    "load_region"
]

def region_from_coords(coords: Sequence[Tuple[float, float]]) -> Polygon:
    """
    Builds a closed region-of-interest polygon from an ordered vertex list.

    The ring may be given open or explicitly closed (first vertex repeated as last).
    """
    coords = [tuple(map(float, c)) for c in coords]
    if len(coords) >= 2 and coords[0] == coords[-1]:
        coords = coords[:-1]
    if len(coords) < 3:
        raise InvalidInputError(f"A region needs at least 3 distinct vertices, got {len(coords)}")

    region = Polygon(coords)
    if not region.is_valid:
        raise InvalidInputError(f"Region polygon is invalid: {shapely.is_valid_reason(region)}")
    return region

def region_from_bounds(min_x: float, min_y: float, max_x: float, max_y: float) -> Polygon:
    if min_x >= max_x or min_y >= max_y:
        raise InvalidInputError(f"Degenerate bounds: ({min_x}, {min_y}, {max_x}, {max_y})")
    return box(min_x, min_y, max_x, max_y)

@resolve_vector
def load_region(
    vector: Vector,
    target_crs: Optional[CRSLike] = None
    ) -> Polygon:
    """
    Loads a region of interest from a vector file (or Vector) as a single polygon.

    All valid polygon features are merged. When a target CRS is given the region is
    reprojected into it, so it can be tested against a point cloud in that CRS.
    """
    vector = validate(vector, fix_invalid=True, drop_invalid=True)
    if len(vector) == 0:
        raise InvalidInputError("Region file contains no valid geometries")

    region = shapely.unary_union(vector.data.geometry.values)
    if not isinstance(region, (Polygon, MultiPolygon)):
        raise InvalidInputError(f"Region must be polygonal, got {region.geom_type}")

    if target_crs is not None and vector.crs is not None:
        region = reproject_geometry(region, vector.crs, target_crs)

    return region

def filter_points(
    cloud: PointCloud,
    region: Optional[Polygon] = None,
    z_min: float = -np.inf,
    z_max: float = np.inf
    ) -> PointCloud:
    """
    Keeps the points lying inside (or on the boundary of) a region and inside a closed elevation band.

    Steps:
        1. Builds the elevation mask z_min <= z <= z_max.
        2. Tests the remaining (x, y) pairs against the region with shapely's vectorized
           `intersects_xy`, which counts boundary points as contained.
        3. Returns the surviving points in input order as a new PointCloud.

    Args:
        cloud (PointCloud): Input points.
        region (Optional[Polygon]): Region of interest in the CRS of the cloud. None skips the spatial test.
        z_min (float): Lower elevation bound (inclusive).
        z_max (float): Upper elevation bound (inclusive).

    Returns:
        PointCloud: Filtered points. Empty input yields an empty cloud.
    """
    if z_min > z_max:
        raise InvalidInputError(f"Elevation band is inverted: [{z_min}, {z_max}]")

    keep = (cloud.z >= z_min) & (cloud.z <= z_max)

    if region is not None and keep.any():
        idx = np.flatnonzero(keep)
        inside = shapely.intersects_xy(region, cloud.x[idx], cloud.y[idx])
        keep[idx[~inside]] = False

    log.info(f"Point filter kept {int(keep.sum())} of {len(cloud)} points")
    return cloud.subset(keep)

def clip_to_bounds(
    cloud: PointCloud,
    bounds: Tuple[float, float, float, float]
    ) -> PointCloud:
    """
    Keeps the points inside a (min_x, min_y, max_x, max_y) box, edges included.
    """
    return filter_points(cloud, region=region_from_bounds(*bounds))
