# src/lidartrees/crs.py

"""
This module provides explicit coordinate reprojection between the working linear CRS
of a survey and geographic coordinates used for web maps.
"""

from typing import Tuple, Union
import logging

import numpy as np
import pyproj
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

log = logging.getLogger(__name__)

__all__ = [
    "CRSLike",
    "GEOGRAPHIC_CRS",
    "resolve_crs",
    "is_linear",
    "transform_xy",
    "reproject_geometry"
]

CRSLike = Union[str, int, pyproj.CRS]

GEOGRAPHIC_CRS = pyproj.CRS("EPSG:4326")

def resolve_crs(crs: CRSLike) -> pyproj.CRS:
    """Parses any user CRS input (EPSG code, WKT, authority string, CRS object)."""
    if crs is None:
        raise ValueError("A CRS is required but none was provided.")
    return pyproj.CRS.from_user_input(crs)

def is_linear(crs: CRSLike) -> bool:
    """True if the CRS is projected, i.e. coordinates are in linear units such as metres."""
    return resolve_crs(crs).is_projected

def transform_xy(
    x: np.ndarray,
    y: np.ndarray,
    source_crs: CRSLike,
    target_crs: CRSLike
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reprojects coordinate arrays. Order and length are preserved.

    Axis order is always (x, y) = (easting/longitude, northing/latitude).
    """
    transformer = pyproj.Transformer.from_crs(
        resolve_crs(source_crs), resolve_crs(target_crs), always_xy=True
    )
    tx, ty = transformer.transform(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
    return np.asarray(tx), np.asarray(ty)

def reproject_geometry(geom: BaseGeometry, source_crs: CRSLike, target_crs: CRSLike) -> BaseGeometry:
    """Reprojects a shapely geometry between two CRSs."""
    project = pyproj.Transformer.from_crs(
        resolve_crs(source_crs), resolve_crs(target_crs), always_xy=True
    ).transform
    return transform(project, geom)
