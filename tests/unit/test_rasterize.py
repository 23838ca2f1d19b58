# tests/unit/test_rasterize.py

import pytest
import numpy as np

from lidartrees.errors import InvalidInputError
from lidartrees.lidar import PointCloud, points_to_grid, calculate_chm, grid_shape, NODATA_VAL

from helpers import assert_grid_match

def test_single_point_fills_one_cell():
    cloud = PointCloud.from_xyz([[5.3, 7.1, 12.0]], crs="EPSG:32619")
    chm = calculate_chm(cloud, resolution=1.0, bounds=(0.0, 0.0, 10.0, 10.0))

    assert chm.shape == (1, 11, 11)
    # Grid row 7 counted from the bottom is array row 11 - 1 - 7 = 3
    assert chm.array[3, 5] == pytest.approx(12.0)
    assert chm.valid_mask().sum() == 1
    assert np.all(chm.array[~chm.valid_mask()] == NODATA_VAL)

def test_single_point_default_bounds():
    cloud = PointCloud.from_xyz([[5.3, 7.1, 12.0]])
    chm = calculate_chm(cloud, resolution=2.0)

    assert chm.shape == (1, 1, 1)
    assert chm.array[0, 0] == pytest.approx(12.0)

def test_cell_keeps_maximum():
    cloud = PointCloud.from_xyz([[0.2, 0.2, 3.0], [0.7, 0.9, 9.0], [0.5, 0.1, 4.0]])
    chm = calculate_chm(cloud, resolution=1.0)
    assert chm.array[0, 0] == pytest.approx(9.0)

def test_empty_cells_are_nodata_not_zero():
    cloud = PointCloud.from_xyz([[0.0, 0.0, 1.0], [4.0, 4.0, 2.0]])
    chm = calculate_chm(cloud, resolution=1.0)

    assert chm.nodata == NODATA_VAL
    assert chm.valid_mask().sum() == 2
    assert not np.any(chm.array == 0.0)

def test_max_edge_points_are_kept():
    cloud = PointCloud.from_xyz([[0.0, 0.0, 1.0], [10.0, 10.0, 2.0]])
    chm = calculate_chm(cloud, resolution=1.0)

    assert chm.shape == (1, 11, 11)
    assert chm.array[0, 10] == pytest.approx(2.0)   # top-right
    assert chm.array[10, 0] == pytest.approx(1.0)   # bottom-left

def test_transform_maps_cells_to_points():
    cloud = PointCloud.from_xyz([[0.0, 0.0, 1.0], [10.0, 10.0, 2.0]])
    chm = calculate_chm(cloud, resolution=1.0)

    assert chm.cell_center(10, 0) == pytest.approx((0.5, 0.5))
    assert chm.cell_center(0, 10) == pytest.approx((10.5, 10.5))
    assert chm.bounds == pytest.approx((0.0, 0.0, 11.0, 11.0))

def test_union_is_cellwise_maximum(scene_cloud):
    rng = np.random.default_rng(7)
    mask = rng.random(len(scene_cloud)) < 0.5
    part_a = scene_cloud.subset(mask)
    part_b = scene_cloud.subset(~mask)
    bounds = scene_cloud.bounds

    whole = calculate_chm(scene_cloud, 2.0, bounds=bounds)
    chm_a = calculate_chm(part_a, 2.0, bounds=bounds)
    chm_b = calculate_chm(part_b, 2.0, bounds=bounds)

    assert_grid_match(whole, chm_a)
    assert np.array_equal(whole.array, np.maximum(chm_a.array, chm_b.array))

def test_crs_is_carried(small_cloud):
    chm = calculate_chm(small_cloud, 1.0)
    assert chm.crs.to_epsg() == 32619
    assert chm.band_names == {"chm": 1}

def test_count_method():
    cloud = PointCloud.from_xyz([[0.1, 0.1, 1.0], [0.2, 0.3, 1.0], [2.5, 2.5, 1.0]])
    density = points_to_grid(cloud, 1.0, method="count")

    assert density.nodata is None
    assert density.data.dtype == np.uint32
    assert density.array.sum() == 3
    assert density.array[2, 0] == 2

def test_min_method():
    cloud = PointCloud.from_xyz([[0.2, 0.2, 3.0], [0.7, 0.9, 9.0]])
    grid = points_to_grid(cloud, 1.0, method="min")
    assert grid.array[0, 0] == pytest.approx(3.0)

def test_unknown_method(small_cloud):
    with pytest.raises(ValueError, match="Unknown rasterization method"):
        points_to_grid(small_cloud, 1.0, method="mean")

def test_empty_cloud_rejected():
    with pytest.raises(InvalidInputError):
        calculate_chm(PointCloud.from_xyz(np.empty((0, 3))), 1.0)

@pytest.mark.parametrize("resolution", [0.0, -1.0])
def test_non_positive_resolution_rejected(small_cloud, resolution):
    with pytest.raises(InvalidInputError):
        calculate_chm(small_cloud, resolution)

def test_points_outside_bounds_rejected():
    cloud = PointCloud.from_xyz([[50.0, 50.0, 1.0]])
    with pytest.raises(InvalidInputError):
        calculate_chm(cloud, 1.0, bounds=(0.0, 0.0, 10.0, 10.0))

def test_grid_shape():
    assert grid_shape((0.0, 0.0, 10.0, 4.0), 2.0) == (3, 6)
    assert grid_shape((0.0, 0.0, 9.9, 3.9), 2.0) == (2, 5)

def test_stream_from_file_matches_memory(las_factory, scene_cloud):
    path = las_factory(scene_cloud)
    loaded = PointCloud.from_file(path, crs="EPSG:32619")

    in_memory = calculate_chm(loaded, 2.0)
    streamed = points_to_grid(path, 2.0, crs="EPSG:32619", bounds=loaded.bounds, chunk_size=250)

    assert streamed.shape == in_memory.shape
    assert np.array_equal(streamed.array, in_memory.array)
