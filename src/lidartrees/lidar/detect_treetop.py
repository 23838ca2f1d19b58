# src/lidartrees/lidar/detect_treetop.py

"""
This module implements treetop detection on canopy height models (CHMs) derived from lidar data.
"""

import logging
from typing import Tuple, Union, Optional
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import geopandas as gpd
import rasterio
import scipy.ndimage as ndimage
from numba import jit

from lidartrees.errors import InvalidInputError
from lidartrees.raster.layer import Raster
from lidartrees.raster.io import load
from lidartrees.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "DetectionParams",
    "TREE_COLUMNS",
    "detect_treetops",
    "empty_trees"
]

TREE_COLUMNS = ["tree_id", "x", "y", "height"]

@dataclass(frozen=True)
class DetectionParams:
    """
    Parameters for local maximum treetop detection.

    Args:
        window_size (int): Side of the square search window in cells. Must be odd and at least 3.
        min_height (Optional[float]): Tops lower than this value are discarded. None keeps every top.
    """
    window_size: int = 5
    min_height: Optional[float] = None

    def validate(self):
        if not isinstance(self.window_size, (int, np.integer)) or self.window_size < 3 or self.window_size % 2 == 0:
            raise InvalidInputError(f"Window size must be an odd integer >= 3, got {self.window_size}")

def _first_cell_per_plateau(peaks: np.ndarray) -> np.ndarray:
    """
    Reduces every 8-connected group of peak cells to its row-major first cell.

    Two adjacent cells can only both equal their window maximum if they hold the
    same value, so each connected group is one flat peak.
    """
    labels, n_labels = ndimage.label(peaks, structure=np.ones((3, 3), dtype=bool))
    reduced = np.zeros_like(peaks)
    if n_labels == 0:
        return reduced

    flat = labels.ravel()
    cells = np.flatnonzero(flat)
    # np.unique returns the index of the first occurrence, and flat order is row-major
    _, first = np.unique(flat[cells], return_index=True)
    reduced.ravel()[cells[first]] = True
    return reduced

@jit(nopython=True, cache=True)
def _suppress_window_ties(
    surface: np.ndarray,
    peaks: np.ndarray,
    half: int
    ):
    """
    Drops a peak when an earlier surviving peak (row-major) inside its window holds the same value.

    Args:
        surface: 2D float array with -inf in empty cells.
        peaks: 2D boolean array of candidate peaks, modified in place.
        half: Half window size in cells.
    """
    n_rows, n_cols = surface.shape
    for r in range(n_rows):
        for c in range(n_cols):
            if not peaks[r, c]:
                continue
            v = surface[r, c]
            c_lo = max(0, c - half)
            c_hi = min(n_cols, c + half + 1)
            tied = False
            for rr in range(max(0, r - half), r + 1):
                for cc in range(c_lo, c_hi):
                    if rr == r and cc >= c:
                        break
                    if peaks[rr, cc] and surface[rr, cc] == v:
                        tied = True
                        break
                if tied:
                    break
            if tied:
                peaks[r, c] = False

def _detect_peaks_lmf(
    chm: np.ndarray,
    valid: np.ndarray,
    params: DetectionParams
    ) -> Tuple[np.ndarray, np.ndarray]:
    """
    Detect treetop peaks with a static Local Maximum Filter (LMF).

    Steps:
        1. Flips the north-up array into grid order, so row 0 is the southernmost row.
        2. Replaces empty cells with -inf so they can never be a maximum, then runs a
           `window_size` maximum filter with a -inf constant border. This is equivalent to
           clipping the window at the grid edges.
        3. Marks cells whose value equals their window maximum (and reaches `min_height`).
        4. Keeps one cell per flat peak: the row-major first cell of each connected group.
        5. Drops any remaining peak that has an equal-valued peak earlier in its window.
        6. Returns array row and column indices, ordered row-major in grid order.

    Args:
        chm (np.ndarray): 2D north-up array representing the canopy height model.
        valid (np.ndarray): 2D boolean array, True where the CHM holds data.
        params (DetectionParams): Configuration object dictating window size.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Arrays containing row and column indices of peaks.
    """
    valid = np.flipud(valid)
    surface = np.ascontiguousarray(np.where(valid, np.flipud(chm), -np.inf), dtype=np.float64)
    local_max = ndimage.maximum_filter(surface, size=params.window_size, mode='constant', cval=-np.inf)

    peaks = valid & (surface == local_max)
    if params.min_height is not None:
        peaks &= surface >= params.min_height

    peaks = _first_cell_per_plateau(peaks)
    _suppress_window_ties(surface, peaks, params.window_size // 2)

    grid_rows, cols = np.nonzero(peaks)
    return chm.shape[0] - 1 - grid_rows, cols


def empty_trees(crs=None) -> Vector:
    """An empty tree record table with the standard columns."""
    gdf = gpd.GeoDataFrame(
        {
            "tree_id": np.array([], dtype=np.int64),
            "x": np.array([], dtype=np.float64),
            "y": np.array([], dtype=np.float64),
            "height": np.array([], dtype=np.float64),
        },
        geometry=gpd.points_from_xy([], []),
        crs=crs
    )
    return Vector(gdf)

def detect_treetops(
    chm_input: Union[str, Path, Raster],
    params: DetectionParams = DetectionParams()
    ) -> Vector:
    """
    Detects treetop locations on a canopy height model.

    Every detected top becomes one record whose position is the center of its cell
    (projected through the raster transform) and whose height is the cell value.
    Records are numbered 1..n in row-major grid order, starting from the southernmost row.

    Args:
        chm_input (Union[str, Path, Raster]): Input CHM raster or path to a CHM file.
        params (DetectionParams): Parameters of the local maximum filter.

    Returns:
        Vector: Tree candidates with columns tree_id, x, y, height and point geometry.
            An empty CHM yields an empty Vector.
    """
    params.validate()
    chm = load(chm_input) if isinstance(chm_input, (str, Path)) else chm_input

    values = chm.array
    valid = chm.valid_mask()

    if not valid.any():
        log.warning("CHM holds no data; no treetops detected")
        return empty_trees(chm.crs)

    peaks_r, peaks_c = _detect_peaks_lmf(values, valid, params)

    if len(peaks_r) == 0:
        log.warning("No local maxima found in CHM")
        return empty_trees(chm.crs)

    # Project the cell centers into the CRS of the raster
    xs, ys = rasterio.transform.xy(chm.transform, peaks_r, peaks_c, offset="center")
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    heights = values[peaks_r, peaks_c].astype(np.float64)

    gdf = gpd.GeoDataFrame(
        {
            "tree_id": np.arange(1, len(heights) + 1, dtype=np.int64),
            "x": xs,
            "y": ys,
            "height": heights,
        },
        geometry=gpd.points_from_xy(xs, ys),
        crs=chm.crs
    )

    log.info(f"Detected {len(gdf)} treetops with a {params.window_size}x{params.window_size} window")
    return Vector(gdf)
