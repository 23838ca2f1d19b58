# src/lidartrees/pipeline.py

"""
This module chains the analysis stages into a single run:
point filter -> canopy height model -> treetop detection -> percentile filter -> clustering.

Every stage returns a new object; nothing computed by one stage is modified by the next.
A failure at any stage propagates to the caller before anything is written to disk.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union, Dict
import json
import logging
import os
import tempfile

import numpy as np
import geopandas as gpd
from shapely.geometry import Polygon

from lidartrees.config import AnalysisConfig, FilterParams
from lidartrees.errors import InvalidInputError
from lidartrees.lidar import (
    PointCloud,
    filter_points,
    calculate_chm,
    detect_treetops,
    empty_trees,
    region_from_coords,
    region_from_bounds,
    load_region
)
from lidartrees.analysis import (
    NOISE,
    height_quantile,
    select_tall_trees,
    cluster_trees,
    height_summary,
    cluster_summary
)
from lidartrees.raster import Raster, save
from lidartrees.vector import Vector, save_vector, save_table

log = logging.getLogger(__name__)

__all__ = [
    "PipelineResult",
    "resolve_region",
    "run_pipeline",
    "run_from_config",
    "export_results"
]

@dataclass(frozen=True)
class PipelineResult:
    """
    Outputs of one analysis run.

    Attributes:
        filtered (PointCloud): Points kept by the region and elevation filter.
        chm (Raster): Canopy height model of the filtered points.
        trees (Vector): Every detected tree candidate.
        threshold (Optional[float]): Height at the configured percentile, None when no trees were found.
        tall_trees (Vector): Candidates above the threshold, with their `cluster` label (0 = noise).
    """
    filtered: PointCloud
    chm: Raster
    trees: Vector
    threshold: Optional[float]
    tall_trees: Vector

    @property
    def n_clusters(self) -> int:
        if self.tall_trees.is_empty:
            return 0
        labels = self.tall_trees.data["cluster"].to_numpy()
        return len(np.unique(labels[labels != NOISE]))

    def records(self) -> Vector:
        """
        All candidates with a `tall` flag and their cluster label.

        Candidates outside the tall subset are labeled 0.
        """
        gdf = self.trees.data.copy()
        labels = self.tall_trees.data.set_index("tree_id")["cluster"] if not self.tall_trees.is_empty else None

        gdf["tall"] = gdf["tree_id"].isin(self.tall_trees.data["tree_id"])
        if labels is None:
            gdf["cluster"] = np.zeros(len(gdf), dtype=np.int64)
        else:
            gdf["cluster"] = gdf["tree_id"].map(labels).fillna(NOISE).astype(np.int64)

        columns = ["tree_id", "x", "y", "height", "tall", "cluster", "geometry"]
        return Vector(gpd.GeoDataFrame(gdf[columns], geometry="geometry", crs=self.trees.crs))

    def summary(self) -> Dict:
        return {
            "n_points": len(self.filtered),
            "chm_shape": list(self.chm.shape[1:]),
            "trees": height_summary(self.trees),
            "threshold": self.threshold,
            "tall_trees": height_summary(self.tall_trees),
            "n_clusters": self.n_clusters,
        }

def resolve_region(params: FilterParams, crs=None) -> Optional[Polygon]:
    """Builds the region-of-interest polygon described by the filter parameters."""
    if params.region is not None:
        return region_from_coords(params.region)
    if params.region_bounds is not None:
        return region_from_bounds(*params.region_bounds)
    if params.region_path is not None:
        return load_region(params.region_path, target_crs=crs)
    return None

def _empty_tall_trees(trees: Vector) -> Vector:
    gdf = trees.data.iloc[0:0].copy()
    gdf["cluster"] = np.array([], dtype=np.int64)
    return Vector(gdf)

def run_pipeline(
    cloud: PointCloud,
    config: AnalysisConfig = AnalysisConfig(),
    region: Optional[Polygon] = None
) -> PipelineResult:
    """
    Runs every analysis stage on an in-memory point cloud.

    Args:
        cloud (PointCloud): Input points in a projected CRS.
        config (AnalysisConfig): Stage parameters.
        region (Optional[Polygon]): Region of interest. Overrides the region of the configuration.

    Returns:
        PipelineResult: Filtered points, CHM, tree candidates, threshold and clustered tall trees.

    Raises:
        InvalidInputError: If a stage receives input it cannot process, e.g. no point survives
            the filter or a parameter is out of range.
    """
    params = config.filter
    if region is None:
        region = resolve_region(params, crs=cloud.crs)

    z_min = -np.inf if params.z_min is None else params.z_min
    z_max = np.inf if params.z_max is None else params.z_max

    filtered = filter_points(cloud, region=region, z_min=z_min, z_max=z_max)
    if len(filtered) == 0:
        raise InvalidInputError(
            f"No points left after filtering {len(cloud)} points to z in [{z_min}, {z_max}] and the region of interest"
        )

    chm = calculate_chm(filtered, config.raster.resolution)
    trees = detect_treetops(chm, config.detection)

    if trees.is_empty:
        log.warning("No tree candidates detected; percentile and clustering stages receive no input")
        return PipelineResult(
            filtered=filtered,
            chm=chm,
            trees=trees,
            threshold=None,
            tall_trees=_empty_tall_trees(empty_trees(chm.crs))
        )

    threshold = height_quantile(trees.data["height"].to_numpy(), config.cluster.percentile)
    tall = select_tall_trees(trees, percentile=config.cluster.percentile)
    clustered = cluster_trees(tall, eps=config.cluster.eps, min_pts=config.cluster.min_pts)

    result = PipelineResult(
        filtered=filtered,
        chm=chm,
        trees=trees,
        threshold=threshold,
        tall_trees=clustered
    )
    log.info(
        f"Pipeline finished: {len(trees)} trees, {len(clustered)} above {threshold:.2f}, "
        f"{result.n_clusters} clusters"
    )
    return result

def run_from_config(config: AnalysisConfig) -> PipelineResult:
    """Loads the configured point cloud from disk and runs the pipeline on it."""
    if not config.input_path:
        raise InvalidInputError("Configuration has no 'input_path'")

    cloud = PointCloud.from_file(config.input_path, crs=config.crs)
    if cloud.crs is None:
        log.warning(f"{config.input_path} carries no CRS; outputs will not be georeferenced")
    elif not cloud.crs.is_projected:
        log.warning(f"CRS {cloud.crs.name} is not projected; resolution and eps are read in its units")

    return run_pipeline(cloud, config)

def export_results(result: PipelineResult, out_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    Writes the run outputs to a directory.

    Files are first written to a staging directory next to `out_dir` and only moved
    into place once every file has been written, so a failed export leaves `out_dir`
    untouched.

    Files:
        chm.tif: Canopy height model (GeoTIFF).
        trees.geojson / trees.csv: All candidates with tall flag and cluster label.
        tall_trees.geojson: The clustered tall-tree subset.
        clusters.csv: One row per cluster.
        summary.json: Counts and height statistics.

    Returns:
        Dict[str, Path]: Written paths by name.
    """
    out_dir = Path(out_dir)
    out_dir.parent.mkdir(parents=True, exist_ok=True)

    records = result.records()
    names = {
        "chm": "chm.tif",
        "trees": "trees.geojson",
        "trees_csv": "trees.csv",
        "tall_trees": "tall_trees.geojson",
        "clusters": "clusters.csv",
        "summary": "summary.json",
    }

    with tempfile.TemporaryDirectory(prefix=f".{out_dir.name}-", dir=out_dir.parent) as staging:
        staged = {key: Path(staging) / name for key, name in names.items()}

        save(result.chm, staged["chm"])
        save_vector(records, staged["trees"])
        save_table(records, staged["trees_csv"])
        save_vector(result.tall_trees, staged["tall_trees"])
        cluster_summary(result.tall_trees).to_csv(staged["clusters"], index=False)
        staged["summary"].write_text(
            json.dumps(result.summary(), indent=2, allow_nan=False), encoding="utf-8"
        )

        out_dir.mkdir(parents=True, exist_ok=True)
        paths = {}
        for key, name in names.items():
            paths[key] = out_dir / name
            os.replace(staged[key], paths[key])

    log.info(f"Exported results to {out_dir}")
    return paths
