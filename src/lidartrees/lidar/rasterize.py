# src/lidartrees/lidar/rasterize.py

"""
This module implements functions to rasterize lidar point clouds into canopy height models.
"""

from typing import Union, Optional, Tuple
from pathlib import Path
import logging

import numpy as np
from rasterio.transform import Affine
from rasterio.crs import CRS
from numba import jit

from lidartrees.errors import InvalidInputError
from lidartrees.raster.layer import Raster

from .layer import PointCloud

log = logging.getLogger(__name__)

__all__ = [
    "points_to_grid",
    "calculate_chm",
    "grid_shape",
    "NODATA_VAL"
]

NODATA_VAL = -9999.0

Bounds = Tuple[float, float, float, float]

def _create_affine_transform(min_x: float, max_y: float, resolution: float) -> Affine:
    """
    Generates the north-up affine transform of a grid whose top-left corner is (min_x, max_y).

    Args:
        min_x (float): Minimum X coordinate of the grid.
        max_y (float): Top edge Y coordinate of the grid.
        resolution (float): Geographic units per pixel.

    Returns:
        Affine: Affine transformation object for georeferencing the raster grid.
    """
    return Affine.translation(min_x, max_y) * Affine.scale(resolution, -resolution)

def _to_rasterio_crs(crs) -> Optional[CRS]:
    if crs is None or isinstance(crs, CRS):
        return crs
    if hasattr(crs, "to_wkt"):
        return CRS.from_wkt(crs.to_wkt())
    return CRS.from_user_input(crs)

def grid_shape(bounds: Bounds, resolution: float) -> Tuple[int, int]:
    """
    Number of (rows, cols) needed so that every point inside the bounds falls in a cell.

    Cells are half-open [origin + k*r, origin + (k+1)*r), so a point on the max edge
    opens one extra row or column.
    """
    min_x, min_y, max_x, max_y = bounds
    width = int(np.floor((max_x - min_x) / resolution)) + 1
    height = int(np.floor((max_y - min_y) / resolution)) + 1
    return height, width

@jit(nopython=True, cache=True)
def _rasterize_chunk(
    grid: np.ndarray,
    rows: np.ndarray,
    cols: np.ndarray,
    z: np.ndarray,
    method_flag: int
    ):
    """
    Helper function to rasterize a chunk of points into the grid using explicit loops for numba optimization.

    Args:
        grid: 2D array representing the raster grid to update.
        rows: Row indices for each point.
        cols: Column indices for each point.
        z: Z values for each point.
        method_flag: Integer flag indicating the aggregation method (0=count, 1=max, 2=min).

    Returns:
        None (the grid is modified in place).
    """
    for i in range(len(rows)):
        r = rows[i]
        c = cols[i]
        if method_flag == 0:  # count
            grid[r, c] += 1
        elif method_flag == 1:  # max
            if z[i] > grid[r, c]:
                grid[r, c] = z[i]
        elif method_flag == 2:  # min
            if z[i] < grid[r, c]:
                grid[r, c] = z[i]

def points_to_grid(
    source: Union[str, Path, PointCloud],
    resolution: float,
    crs=None,
    method: str = 'max',
    nodata: float = NODATA_VAL,
    bounds: Optional[Bounds] = None,
    chunk_size: int = 2_000_000
) -> Raster:
    """
    Rasterizes a point distribution into a dense grid.

    Cell (i, j) collects the points with floor((x - min_x) / r) == j and
    floor((y - min_y) / r) == i. The returned array is north-up, so grid row i is
    stored at array row (height - 1 - i). With method 'max' each cell holds the
    highest z that reached it, and empty cells hold `nodata`, never zero.

    Args:
        source (Union[str, Path, PointCloud]): Filepath to stream from or existing PointCloud object.
        resolution (float): Geographic units per pixel. Must be positive.
        crs: Coordinate reference system of the points. Defaults to the CRS of the cloud.
        method (str): Statistical aggregator ('max', 'min', 'count').
        nodata (float): Filler value for empty cells.
        bounds (Optional[Bounds]): (min_x, min_y, max_x, max_y) of the grid. Defaults to the
            bounding box of the points. Sharing bounds makes grids of different point sets comparable.
        chunk_size (int): Points processed per chunk when streaming from a file.

    Returns:
        Raster: Geo-aligned single-band raster.

    Raises:
        InvalidInputError: If the resolution is not positive or there are no points.
    """
    if not resolution > 0:
        raise InvalidInputError(f"Resolution must be positive, got {resolution}")

    if isinstance(source, (str, Path)):
        # Read the header first to size the grid, then stream the points in chunks
        if bounds is None:
            bounds = PointCloud.read_bounds(source)
        iterator = PointCloud.iter_chunks(source, chunk_size=chunk_size, crs=crs)
    else:
        if len(source) == 0:
            raise InvalidInputError("Cannot rasterize an empty point set")
        if bounds is None:
            bounds = source.bounds
        if crs is None:
            crs = source.crs
        iterator = [source]

    min_x, min_y, max_x, max_y = bounds
    shape = grid_shape(bounds, resolution)
    top = min_y + shape[0] * resolution
    transform = _create_affine_transform(min_x, top, resolution)

    if method == 'count':
        # Zero counts are valid, so there is no nodata for density grids
        grid = np.zeros(shape, dtype=np.uint32)
        actual_nodata = None
        method_flag = 0
    elif method == 'max':
        grid = np.full(shape, -np.inf, dtype=np.float32)
        actual_nodata = nodata
        method_flag = 1
    elif method == 'min':
        grid = np.full(shape, np.inf, dtype=np.float32)
        actual_nodata = nodata
        method_flag = 2
    else:
        raise ValueError(f"Unknown rasterization method: {method}")

    n_points = 0
    for pc in iterator:
        if crs is None:
            crs = pc.crs
        cols = np.floor((pc.x - min_x) / resolution).astype(np.int32)
        rows = shape[0] - 1 - np.floor((pc.y - min_y) / resolution).astype(np.int32)
        valid_mask = (rows >= 0) & (rows < shape[0]) & (cols >= 0) & (cols < shape[1])

        if not np.any(valid_mask):
            continue

        n_points += int(valid_mask.sum())
        _rasterize_chunk(grid, rows[valid_mask], cols[valid_mask], pc.z[valid_mask], method_flag)

    if n_points == 0:
        raise InvalidInputError("No points fall inside the grid bounds")

    # Replace the initial extreme values with the nodata value
    if method == 'max':
        grid[grid == -np.inf] = nodata
    elif method == 'min':
        grid[grid == np.inf] = nodata

    log.info(f"Rasterized {n_points} points into a {shape[0]}x{shape[1]} grid at {resolution} units/px")

    return Raster(
        data=grid,
        transform=transform,
        crs=_to_rasterio_crs(crs),
        nodata=actual_nodata
    )

def calculate_chm(
    cloud: Union[str, Path, PointCloud],
    resolution: float,
    crs=None,
    bounds: Optional[Bounds] = None
) -> Raster:
    """
    Builds a canopy height model: the highest return in every cell, as seen from above.

    Args:
        cloud: Filtered point cloud (or LAS/LAZ path).
        resolution (float): Cell size in CRS units.
        crs: Overrides the CRS of the cloud.
        bounds (Optional[Bounds]): Grid extent, defaults to the bounding box of the points.

    Returns:
        Raster: Single-band float32 raster named 'chm' with NODATA_VAL in empty cells.
    """
    chm = points_to_grid(cloud, resolution, crs=crs, method='max', nodata=NODATA_VAL, bounds=bounds)
    chm.band_names = {"chm": 1}
    return chm
