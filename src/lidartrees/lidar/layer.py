# src/lidartrees/lidar/layer.py

"""
This module defines the core data structure for lidar point clouds, along with methods for loading and basic manipulation.
"""

from pathlib import Path
from dataclasses import dataclass, replace
from typing import Union, Generator, Optional, Tuple
import logging

import laspy
import numpy as np
import pyproj

from lidartrees.crs import CRSLike, resolve_crs, transform_xy

log = logging.getLogger(__name__)

__all__ = [
    "PointCloud"
]

def _header_crs(header: laspy.LasHeader) -> Optional[pyproj.CRS]:
    try:
        return header.parse_crs()
    except Exception as e:
        log.debug(f"Could not parse CRS from LAS header: {e}")
        return None

@dataclass(frozen=True, eq=False)
class PointCloud:
    """
    Core data structure for holding LiDAR point cloud data tagged with its coordinate reference system.

    Point cloud attributes:
        x (np.ndarray): X coordinates of points.
        y (np.ndarray): Y coordinates of points.
        z (np.ndarray): Z coordinates (elevation) of points.
        crs (pyproj.CRS): Coordinate reference system of x and y, None if unknown.
        classification (np.ndarray): Optional point classifications (ground, vegetation, etc.).
        return_number (np.ndarray): Optional return number for each point (1 for first return, etc.).

    Bounding properties (min_x, max_x, min_y, max_y, min_z, max_z) are derived from the arrays,
    so subsets always report their own extent.
    """
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    crs: Optional[pyproj.CRS] = None
    classification: Optional[np.ndarray] = None
    return_number: Optional[np.ndarray] = None

    def __post_init__(self):
        n = len(self.x)
        if len(self.y) != n or len(self.z) != n:
            raise ValueError(
                f"Coordinate arrays must share a length, got x={n}, y={len(self.y)}, z={len(self.z)}"
            )
        if self.crs is not None and not isinstance(self.crs, pyproj.CRS):
            object.__setattr__(self, "crs", resolve_crs(self.crs))

    @classmethod
    def from_xyz(
        cls,
        xyz: np.ndarray,
        crs: Optional[CRSLike] = None
        ) -> 'PointCloud':
        """
        Builds a point cloud from an (N, 3) array of x, y, z coordinates.
        """
        xyz = np.asarray(xyz, dtype=np.float64).reshape(-1, 3)
        return cls(x=xyz[:, 0].copy(), y=xyz[:, 1].copy(), z=xyz[:, 2].copy(), crs=crs)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        crs: Optional[CRSLike] = None
        ) -> 'PointCloud':
        """
        Loads the entirety of a LiDAR point cloud into memory.

        Args:
            path (Union[str, Path]): Target .las or .laz file.
            crs (Optional[CRSLike]): Overrides the CRS stored in the file header.

        Returns:
            PointCloud: Fully populated object.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Lidar file not found: {path}")

        with laspy.open(path) as fh:
            las = fh.read()
            point_crs = crs if crs is not None else _header_crs(fh.header)
            log.info(f"Loaded {len(las.points)} points from {path.name}")
            # map laspy point attributes to our PointCloud structure
            return cls(
                x=np.array(las.x),
                y=np.array(las.y),
                z=np.array(las.z),
                crs=point_crs,
                classification=np.array(las.classification),
                return_number=np.array(las.return_number)
            )

    @classmethod
    def iter_chunks(
        cls,
        path: Union[str, Path],
        chunk_size: int = 1_000_000,
        crs: Optional[CRSLike] = None
        ) -> Generator['PointCloud', None, None]:
        """
        Iterates over a LiDAR file in chunks to keep memory bounded.

        Args:
            path (Union[str, Path]): Target .las or .laz file.
            chunk_size (int): Number of points to stream per chunk.
            crs (Optional[CRSLike]): Overrides the CRS stored in the file header.

        Yields:
            Generator[PointCloud, None, None]: Sequential point cloud fragments.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Lidar file not found: {path}")

        with laspy.open(path) as fh:
            point_crs = crs if crs is not None else _header_crs(fh.header)
            for chunk in fh.chunk_iterator(chunk_size):
                yield cls(
                    x=np.array(chunk.x),
                    y=np.array(chunk.y),
                    z=np.array(chunk.z),
                    crs=point_crs,
                    classification=np.array(chunk.classification),
                    return_number=np.array(chunk.return_number)
                )

    @staticmethod
    def read_bounds(path: Union[str, Path]) -> Tuple[float, float, float, float]:
        """Reads (min_x, min_y, max_x, max_y) from a LAS header without loading points."""
        with laspy.open(path) as fh:
            return fh.header.x_min, fh.header.y_min, fh.header.x_max, fh.header.y_max

    def subset(self, mask: np.ndarray) -> 'PointCloud':
        """
        Returns a new point cloud holding the points selected by a boolean mask or index array.
        Input order is preserved.
        """
        return PointCloud(
            x=self.x[mask],
            y=self.y[mask],
            z=self.z[mask],
            crs=self.crs,
            classification=None if self.classification is None else self.classification[mask],
            return_number=None if self.return_number is None else self.return_number[mask]
        )

    def to_crs(self, target_crs: CRSLike) -> 'PointCloud':
        """
        Reprojects x and y into another CRS, returning a new point cloud. z is left untouched.
        """
        if self.crs is None:
            raise ValueError("PointCloud has no CRS. Cannot reproject.")
        x, y = transform_xy(self.x, self.y, self.crs, target_crs)
        return replace(self, x=x, y=y, crs=resolve_crs(target_crs))

    def to_xyz(self) -> np.ndarray:
        return np.column_stack((self.x, self.y, self.z))

    @property
    def min_x(self) -> float:
        return float(np.min(self.x))

    @property
    def max_x(self) -> float:
        return float(np.max(self.x))

    @property
    def min_y(self) -> float:
        return float(np.min(self.y))

    @property
    def max_y(self) -> float:
        return float(np.max(self.y))

    @property
    def min_z(self) -> float:
        return float(np.min(self.z))

    @property
    def max_z(self) -> float:
        return float(np.max(self.z))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (min_x, min_y, max_x, max_y)."""
        return self.min_x, self.min_y, self.max_x, self.max_y

    def __len__(self) -> int:
        return len(self.x)

    def __repr__(self) -> str:
        crs = self.crs.to_string() if self.crs is not None else None
        return f"<PointCloud points={len(self)} crs={crs}>"
