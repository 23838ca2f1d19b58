# src/lidartrees/vector/geom.py

"""
This module provides geometric operations for vector data.
"""

from typing import Union, Callable
import logging

import pandas as pd

from lidartrees.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "to_crs",
    "validate",
    "filter_vector"
]

def to_crs(vector: Vector, target_crs) -> Vector:
    if vector.crs is None:
        raise ValueError("Vector has no CRS. Cannot reproject.")

    return Vector(vector.data.to_crs(target_crs))

def validate(vector: Vector, fix_invalid: bool = True, drop_invalid: bool = True) -> Vector:
    gdf = vector.data.copy()
    invalid_mask = ~gdf.is_valid

    if not invalid_mask.any():
        return Vector(gdf)

    log.warning(f"{int(invalid_mask.sum())} invalid geometries found")

    if fix_invalid:
        gdf.loc[invalid_mask, 'geometry'] = gdf.loc[invalid_mask, 'geometry'].buffer(0)

    if drop_invalid:
        gdf = gdf[gdf.is_valid]

    return Vector(gdf)

def filter_vector(vector: Vector, condition: Union[pd.Series, Callable]) -> Vector:
    mask = condition(vector.data) if callable(condition) else condition
    return Vector(vector.data[mask].copy())
