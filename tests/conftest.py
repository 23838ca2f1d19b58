# tests/conftest.py

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend

import pytest
import numpy as np
import geopandas as gpd
from rasterio.transform import from_origin
from shapely.geometry import Polygon, box

from lidartrees.lidar import PointCloud, NODATA_VAL
from lidartrees.raster import Raster

from helpers import SCENE_CRS, make_scene, write_las

@pytest.fixture
def square_region():
    """Closed 10x10 square with the first vertex repeated as the last."""
    return Polygon([(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)])

@pytest.fixture
def small_cloud():
    """A handful of points inside, outside and on the edge of the square region."""
    xyz = np.array([
        [5.0, 5.0, 200.0],    # inside, in band
        [0.0, 5.0, 190.0],    # on the left edge
        [10.0, 10.0, 185.0],  # on a corner
        [15.0, 5.0, 200.0],   # outside
        [5.0, 5.0, 170.0],    # inside, below band
        [5.0, 5.0, 230.0],    # inside, above band
        [2.0, 8.0, 180.0],    # inside, on lower band edge
        [8.0, 2.0, 220.0],    # inside, on upper band edge
    ])
    return PointCloud.from_xyz(xyz, crs=SCENE_CRS)

@pytest.fixture
def raster_factory():
    """
    Builds single-band rasters from 2D arrays. NaN cells become nodata.
    The top-left corner sits at (0, rows * resolution).
    """
    def _create(values, resolution: float = 1.0, crs: str = SCENE_CRS) -> Raster:
        values = np.array(values, dtype=np.float32)
        values[np.isnan(values)] = NODATA_VAL
        transform = from_origin(0.0, values.shape[0] * resolution, resolution, resolution)
        return Raster(data=values, transform=transform, crs=crs, nodata=NODATA_VAL)
    return _create

@pytest.fixture
def scene_cloud():
    return make_scene()

@pytest.fixture
def las_factory(tmp_path):
    """Writes a PointCloud to a LAS 1.2 file in the temporary directory."""
    def _create(cloud: PointCloud, name: str = "cloud.las"):
        return write_las(tmp_path / name, cloud)
    return _create

@pytest.fixture
def region_file(tmp_path):
    """GeoJSON file holding a single 10x10 square region."""
    path = tmp_path / "region.geojson"
    gdf = gpd.GeoDataFrame({"name": ["plot"]}, geometry=[box(0, 0, 10, 10)], crs=SCENE_CRS)
    gdf.to_file(path, driver="GeoJSON")
    return path

@pytest.fixture
def tree_records():
    """Tree records with known heights and clusters, as produced by the pipeline."""
    return gpd.GeoDataFrame(
        {
            "tree_id": [1, 2, 3, 4, 5],
            "x": [0.0, 1.0, 2.0, 50.0, 51.0],
            "y": [0.0, 1.0, 0.0, 50.0, 50.0],
            "height": [20.0, 25.0, 22.0, 30.0, 28.0],
            "cluster": [1, 1, 1, 2, 0],
        },
        geometry=gpd.points_from_xy([0.0, 1.0, 2.0, 50.0, 51.0], [0.0, 1.0, 0.0, 50.0, 50.0]),
        crs=SCENE_CRS
    )
