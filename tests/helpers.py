# tests/helpers.py

import numpy as np
import laspy

from lidartrees.lidar import PointCloud
from lidartrees.raster.layer import Raster

SCENE_CRS = "EPSG:32619"
SCENE_CENTERS = [(60.0, 70.0), (180.0, 190.0)]
SCENE_PEAKS = [35.0, 32.0]

def assert_grid_match(r1: Raster, r2: Raster):
    """Strictly verify two rasters share the exact same grid."""
    assert r1.crs == r2.crs, \
        f"CRS mismatch: {r1.crs} != {r2.crs}"

    assert r1.shape == r2.shape, \
        f"Shape mismatch: {r1.shape} != {r2.shape}"

    assert np.allclose(np.array(r1.transform), np.array(r2.transform), atol=1e-9), \
        "Transform mismatch (Pixel alignment error)"

def label_partition(labels) -> set:
    """The partition induced by cluster labels, ignoring the label values themselves."""
    labels = np.asarray(labels)
    return {
        frozenset(np.flatnonzero(labels == label).tolist())
        for label in np.unique(labels) if label != 0
    }

def make_scene(seed: int = 42, n_scattered: int = 1000, extent: float = 250.0) -> PointCloud:
    """
    Synthetic stand: low scattered returns plus two Gaussian crowns.

    Each crown has its apex exactly at a known center with a known peak height, and
    19 lower returns spread around it with a 4 m standard deviation.
    """
    rng = np.random.default_rng(seed)
    parts = [np.column_stack((
        rng.uniform(0.0, extent, n_scattered),
        rng.uniform(0.0, extent, n_scattered),
        rng.uniform(0.0, 10.0, n_scattered),
    ))]

    for (cx, cy), peak in zip(SCENE_CENTERS, SCENE_PEAKS):
        offsets = rng.normal(0.0, 4.0, size=(19, 2))
        crown = np.column_stack((
            cx + offsets[:, 0],
            cy + offsets[:, 1],
            rng.uniform(20.0, peak - 2.0, 19),
        ))
        parts.append(np.array([[cx, cy, peak]]))
        parts.append(crown)

    return PointCloud.from_xyz(np.vstack(parts), crs=SCENE_CRS)

def write_las(path, cloud: PointCloud):
    header = laspy.LasHeader(point_format=3, version="1.2")
    xyz = cloud.to_xyz()
    header.offsets = np.floor(xyz.min(axis=0))
    header.scales = np.array([0.001, 0.001, 0.001])

    las = laspy.LasData(header)
    las.x = xyz[:, 0]
    las.y = xyz[:, 1]
    las.z = xyz[:, 2]
    las.write(str(path))
    return path
