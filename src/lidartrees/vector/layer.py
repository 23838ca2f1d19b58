# src/lidartrees/vector/layer.py

"""
This module defines the core data structure for vector data such as tree records and regions of interest.
"""

from pathlib import Path
from typing import Union, List, Dict, Any
import logging

import geopandas as gpd

log = logging.getLogger(__name__)

__all__ = [
    "Vector"
]

class Vector:
    def __init__(self, data: gpd.GeoDataFrame):
        if not isinstance(data, gpd.GeoDataFrame):
            raise TypeError(f"Expected GeoDataFrame, got {type(data)}")
        self._data = data

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> 'Vector':
        from .io import load_vector
        return load_vector(path, **kwargs)

    @property
    def data(self) -> gpd.GeoDataFrame:
        return self._data

    @property
    def crs(self):
        return self._data.crs

    @property
    def bounds(self):
        return self._data.total_bounds

    @property
    def columns(self):
        return self._data.columns.tolist()

    @property
    def is_empty(self) -> bool:
        return len(self._data) == 0

    def to_crs(self, target_crs) -> 'Vector':
        from .geom import to_crs
        return to_crs(self, target_crs)

    def save(self, path: Union[str, Path], **kwargs):
        from .io import save_vector
        save_vector(self, path, **kwargs)

    def copy(self) -> 'Vector':
        return Vector(self._data.copy())

    def records(self) -> List[Dict[str, Any]]:
        """Attribute rows as plain dictionaries, without the geometry column."""
        return self._data.drop(columns="geometry").to_dict(orient="records")

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return f"<Vector features={len(self._data)} crs={self.crs}>"
