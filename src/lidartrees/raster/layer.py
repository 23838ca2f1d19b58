# src/lidartrees/raster/layer.py

"""
This module defines the core in-memory raster structure used for canopy height models.
"""

import copy
import logging
from typing import Union, Optional, Dict, Any, Tuple

import numpy as np
import rasterio
from rasterio.transform import Affine
from rasterio.crs import CRS

from lidartrees.errors import InvalidInputError

log = logging.getLogger(__name__)

__all__ = [
    "Raster"
]

class Raster:
    """
    In-memory "envelope" that keeps a pixel array synchronized with its geospatial context.

    Attributes:
        data (np.ndarray): The pixel array in (Bands, Height, Width) format.
        transform (Affine): The affine transform matrix mapping (col, row) to (x, y).
        crs (CRS): The Coordinate Reference System, or None for unreferenced grids.
        nodata (float | int | None): The value representing missing data.
        band_names (Dict[str, int]): Mapping of semantic names to 1-based band indices.
    """

    def __init__(
        self,
        data: np.ndarray,
        transform: Affine,
        crs: Optional[Union[str, CRS]] = None,
        nodata: Optional[Union[float, int]] = None,
        band_names: Optional[Dict[str, int]] = None
    ):
        """
        Initialize a Raster object.

        Args:
            data: Input array. Must be 2D (Height, Width) or 3D (Bands, Height, Width).
                  2D arrays are promoted to 3D (1, Height, Width).
            transform: Geospatial transform (maps pixels to coordinates).
            crs: Coordinate Reference System (string inputs are parsed by rasterio).
            nodata: Value indicating no data.
            band_names: Optional mapping of names to band indices ('chm': 1).

        Raises:
            InvalidInputError: If dimensions are not 2D or 3D.
        """
        self.validate_inputs(data, transform)

        # Enforce 3D structure (Bands, Height, Width)
        if data.ndim == 2:
            data = data[np.newaxis, :, :]

        if isinstance(crs, str):
            crs = CRS.from_user_input(crs)

        self._data = data
        self.transform = transform
        self.crs = crs
        self.nodata = nodata
        self.band_names = band_names or {}

    @staticmethod
    def validate_inputs(data: np.ndarray, transform: Affine):
        if not isinstance(data, np.ndarray):
            raise TypeError(f"Data must be numpy.ndarray, got {type(data)}")

        if data.ndim not in (2, 3):
            raise InvalidInputError(f"Data must be 2D or 3D, got shape {data.shape}")

        if not isinstance(transform, Affine):
            raise TypeError(f"Transform must be rasterio.Affine, got {type(transform)}")

    @property
    def data(self) -> np.ndarray:
        """Access the raw pixel data."""
        return self._data

    @property
    def array(self) -> np.ndarray:
        """The first band as a 2D array, which is the whole surface for single-band models."""
        return self._data[0]

    @property
    def width(self) -> int:
        return self._data.shape[2]

    @property
    def height(self) -> int:
        return self._data.shape[1]

    @property
    def count(self) -> int:
        return self._data.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Returns (Bands, Height, Width)."""
        return self._data.shape

    @property
    def resolution(self) -> Tuple[float, float]:
        """Returns (x, y) pixel size in CRS units."""
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (left, bottom, right, top) in CRS units."""
        return rasterio.transform.array_bounds(self.height, self.width, self.transform)

    @property
    def profile(self) -> Dict[str, Any]:
        """
        Generates a Rasterio-compliant profile based on current state.
        Properties like compression and tiling can be overridden when saving.
        """
        return {
            'driver': 'GTiff',
            'dtype': self._data.dtype,
            'nodata': self.nodata,
            'width': self.width,
            'height': self.height,
            'count': self.count,
            'crs': self.crs,
            'transform': self.transform,
            'compress': 'lzw'
        }

    def valid_mask(self, band: int = 1) -> np.ndarray:
        """
        Boolean mask of cells holding real data in the given 1-based band.
        """
        values = self.get_band(band)
        if self.nodata is None:
            return np.isfinite(values)
        return (values != self.nodata) & np.isfinite(values)

    def get_band(self, identifier: Union[int, str]) -> np.ndarray:
        """
        Retrieve a specific band by 1-based index or semantic name.

        Returns:
            np.ndarray: 2D array of the band.
        """
        if isinstance(identifier, str):
            if identifier not in self.band_names:
                raise KeyError(f"Band name '{identifier}' not found in {list(self.band_names.keys())}")
            idx = self.band_names[identifier]
        else:
            idx = identifier

        if not (1 <= idx <= self.count):
            raise IndexError(f"Band index {idx} out of range (1-{self.count})")

        return self._data[idx - 1]

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        """Returns the (x, y) coordinate of the center of an array cell."""
        x, y = self.transform * (col + 0.5, row + 0.5)
        return float(x), float(y)

    def copy(self) -> 'Raster':
        return Raster(
            data=self._data.copy(),
            transform=copy.copy(self.transform),
            crs=self.crs,
            nodata=self.nodata,
            band_names=dict(self.band_names)
        )

    def __repr__(self) -> str:
        return (f"<Raster shape={self.shape} dtype={self._data.dtype} "
                f"crs={self.crs} nodata={self.nodata}>")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return (
            self.shape == other.shape
            and self.transform.almost_equals(other.transform)
            and self.crs == other.crs
            and self.nodata == other.nodata
            and np.array_equal(self._data, other._data)
        )
