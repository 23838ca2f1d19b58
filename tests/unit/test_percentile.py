# tests/unit/test_percentile.py

import pytest
import numpy as np
import geopandas as gpd

from lidartrees.errors import InvalidInputError
from lidartrees.analysis import height_quantile, select_tall_trees
from lidartrees.lidar import empty_trees
from lidartrees.vector import Vector

def _trees(heights):
    n = len(heights)
    xs = np.arange(n, dtype=float)
    gdf = gpd.GeoDataFrame(
        {"tree_id": np.arange(1, n + 1), "x": xs, "y": xs, "height": np.asarray(heights, dtype=float)},
        geometry=gpd.points_from_xy(xs, xs),
        crs="EPSG:32619"
    )
    return Vector(gdf)

def test_p90_of_one_to_hundred():
    trees = _trees(np.arange(1, 101))
    tall = select_tall_trees(trees, percentile=0.9)

    assert len(tall) == 10
    assert (tall.data["height"] > 90).all()
    assert tall.data["height"].min() == 91

def test_quantile_interpolates_linearly():
    assert height_quantile([1, 2, 3, 4], 0.5) == pytest.approx(2.5)
    assert height_quantile([4, 1, 3, 2], 0.25) == pytest.approx(1.75)
    assert height_quantile(np.arange(1, 101), 0.9) == pytest.approx(90.1)

def test_strictly_greater_excludes_ties():
    trees = _trees([5.0] * 10)
    assert select_tall_trees(trees, percentile=0.5).is_empty

def test_order_is_preserved():
    trees = _trees([30.0, 1.0, 25.0, 2.0, 40.0, 3.0])
    tall = select_tall_trees(trees, percentile=0.5)
    assert tall.data["tree_id"].tolist() == [1, 3, 5]

def test_input_is_not_modified():
    trees = _trees(np.arange(1, 21))
    select_tall_trees(trees, percentile=0.9)
    assert len(trees) == 20

def test_empty_candidates_rejected():
    with pytest.raises(InvalidInputError):
        select_tall_trees(empty_trees("EPSG:32619"), percentile=0.9)

def test_empty_heights_rejected():
    with pytest.raises(InvalidInputError):
        height_quantile([], 0.5)

@pytest.mark.parametrize("p", [0.0, 1.0, -0.1, 1.5])
def test_percentile_out_of_range(p):
    with pytest.raises(InvalidInputError):
        select_tall_trees(_trees([1.0, 2.0, 3.0]), percentile=p)

def test_missing_height_column():
    trees = _trees([1.0, 2.0])
    with pytest.raises(InvalidInputError, match="not found"):
        select_tall_trees(trees, column="elevation")
