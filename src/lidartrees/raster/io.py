# src/lidartrees/raster/io.py

"""
This module handles disk-based operations for raster data such as exported canopy height models.
"""

import logging
from pathlib import Path
from typing import Union, Optional, List

import rasterio
from rasterio.windows import Window

from .layer import Raster

log = logging.getLogger(__name__)

__all__ = [
    "load",
    "save"
]

def load(
    path: Union[str, Path],
    bands: Optional[Union[int, List[int]]] = None,
    window: Optional[Window] = None
) -> Raster:
    """
    Load a raster from disk into memory.

    Args:
        path: Path to raster file. All supported GDAL formats are accepted.
        bands: Specific band(s) to load (None=all, int=single, list=subset).
        window: Optional rasterio Window object to load only a spatial subset.

    Returns:
        Raster: In-memory Raster object
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster file not found: {path}")

    log.debug(f"Loading raster: {path.name}")

    try:
        with rasterio.open(path) as src:
            if bands is None:
                indices = list(src.indexes)
            elif isinstance(bands, int):
                indices = [bands]
            else:
                indices = list(bands)

            data = src.read(indices, window=window)
            band_names = {
                src.descriptions[idx - 1]: i + 1
                for i, idx in enumerate(indices)
                if src.descriptions[idx - 1]
            }
            transform = src.window_transform(window) if window is not None else src.transform

            return Raster(
                data=data,
                transform=transform,
                crs=src.crs,
                nodata=src.nodata,
                band_names=band_names
            )

    except rasterio.RasterioIOError as e:
        raise IOError(f"Failed to read raster from {path}: {e}") from e

def save(
    raster: Raster,
    path: Union[str, Path],
    **profile_kwargs
):
    """
    Write a Raster object to disk.

    Args:
        raster: Raster object to save
        path: Output file path. GeoTIFF is written unless a driver is passed.
        **profile_kwargs: Override default rasterio profile settings.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    profile = raster.profile.copy()
    profile.update(profile_kwargs)

    log.info(f"Saving raster {raster.shape} → {path}")

    try:
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(raster.data)

            for name, idx in raster.band_names.items():
                if 1 <= idx <= raster.count:
                    dst.set_band_description(idx, name)

    except Exception as e:
        raise IOError(f"Failed to save raster to {path}: {e}") from e
