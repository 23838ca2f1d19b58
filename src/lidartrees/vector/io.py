# src/lidartrees/vector/io.py

"""
This module provides functions for reading and writing vector data using GeoPandas.
"""

from pathlib import Path
from typing import Union, Callable, Optional
from functools import wraps
import logging

import geopandas as gpd

from lidartrees.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "load_vector",
    "save_vector",
    "save_table",
    "resolve_vector"
]

_DRIVERS = {
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".gpkg": "GPKG",
    ".shp": "ESRI Shapefile",
}

def load_vector(path: Union[str, Path], engine: str = "pyogrio", **kwargs) -> Vector:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")

    gdf = gpd.read_file(path, engine=engine, **kwargs)
    return Vector(gdf)

def save_vector(vector: Vector, path: Union[str, Path], driver: Optional[str] = None, engine: str = "pyogrio", **kwargs):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    driver = driver or _DRIVERS.get(path.suffix.lower())

    log.debug(f"Writing {len(vector)} features → {path}")
    vector.data.to_file(path, driver=driver, engine=engine, **kwargs)

def save_table(vector: Vector, path: Union[str, Path]):
    """
    Writes the attribute table of a Vector to CSV, dropping the geometry column.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    vector.data.drop(columns="geometry").to_csv(path, index=False)

def resolve_vector(func: Callable):
    @wraps(func)
    def wrapper(input_obj: Union[str, Path, Vector], *args, **kwargs):
        if input_obj is None:
            return func(None, *args, **kwargs)

        if isinstance(input_obj, (str, Path)):
            vector_obj = load_vector(input_obj)
        elif isinstance(input_obj, Vector):
            vector_obj = input_obj
        elif isinstance(input_obj, gpd.GeoDataFrame):
            vector_obj = Vector(input_obj)
        else:
            raise TypeError(f"Expected file path or Vector object, got {type(input_obj)}")

        return func(vector_obj, *args, **kwargs)
    return wrapper
