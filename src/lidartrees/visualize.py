# src/lidartrees/visualize.py

"""
This module renders analysis outputs: static plots with matplotlib and an interactive web map.

Rendering only consumes rasters and tree records; nothing here feeds back into the analysis.
"""

from pathlib import Path
from typing import Optional, Union, Dict
import logging

import numpy as np
from matplotlib import pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from lidartrees.analysis.cluster import NOISE
from lidartrees.crs import GEOGRAPHIC_CRS
from lidartrees.raster.layer import Raster
from lidartrees.vector import Vector, to_crs

log = logging.getLogger(__name__)

__all__ = [
    "plot_chm",
    "plot_height_histogram",
    "plot_clusters",
    "save_figure",
    "build_web_map",
    "render_all"
]

def _get_ax(ax: Optional[Axes]) -> Axes:
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 8))
    return ax

def plot_chm(
    chm: Raster,
    trees: Optional[Vector] = None,
    ax: Optional[Axes] = None,
    cmap: str = "viridis"
) -> Axes:
    """
    Shows the canopy height model with empty cells left transparent, optionally overlaid with treetops.
    """
    ax = _get_ax(ax)
    left, bottom, right, top = chm.bounds
    surface = np.ma.masked_array(chm.array, mask=~chm.valid_mask())

    image = ax.imshow(surface, extent=(left, right, bottom, top), cmap=cmap, interpolation="nearest")
    ax.figure.colorbar(image, ax=ax, label="Height")

    if trees is not None and not trees.is_empty:
        ax.scatter(trees.data["x"], trees.data["y"], s=8, c="red", marker="^", label=f"Treetops ({len(trees)})")
        ax.legend(loc="upper right")

    ax.set_title("Canopy height model")
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    return ax

def plot_height_histogram(
    trees: Vector,
    threshold: Optional[float] = None,
    bins: int = 30,
    ax: Optional[Axes] = None
) -> Axes:
    """Histogram of tree heights with an optional vertical line at the tall-tree threshold."""
    ax = _get_ax(ax)
    heights = trees.data["height"].to_numpy()

    ax.hist(heights, bins=bins, color="forestgreen", edgecolor="black")
    if threshold is not None:
        ax.axvline(threshold, color="red", linestyle="--", label=f"Threshold {threshold:.2f}")
        ax.legend()

    ax.set_title(f"Tree height distribution (n={len(heights)})")
    ax.set_xlabel("Height")
    ax.set_ylabel("Trees")
    return ax

def plot_clusters(trees: Vector, ax: Optional[Axes] = None) -> Axes:
    """Scatter plot of tree locations colored by cluster; noise is drawn in grey."""
    ax = _get_ax(ax)
    gdf = trees.data

    noise = gdf[gdf["cluster"] == NOISE]
    ax.scatter(noise["x"], noise["y"], s=10, c="lightgrey", label="Noise")

    members = gdf[gdf["cluster"] != NOISE]
    cmap = plt.get_cmap("tab10")
    for i, (label, group) in enumerate(members.groupby("cluster", sort=True)):
        ax.scatter(group["x"], group["y"], s=18, color=cmap(i % cmap.N), label=f"Cluster {label}")

    ax.set_aspect("equal")
    ax.set_title("Tall tree clusters")
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    if len(gdf) > 0:
        ax.legend(loc="best")
    return ax

def save_figure(fig: Figure, path: Union[str, Path], dpi: int = 150) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    log.debug(f"Saved figure → {path}")
    return path

def build_web_map(
    trees: Vector,
    path: Union[str, Path],
    column: str = "cluster"
) -> Optional[Path]:
    """
    Writes an interactive HTML map of tree records, reprojected to geographic coordinates.

    Points are colored by `column` (categorical) and every attribute is shown on hover.
    Returns None without writing anything when there are no records.
    """
    if trees.is_empty:
        log.warning("No trees to map; web map not written")
        return None

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    geographic = to_crs(trees, GEOGRAPHIC_CRS)
    web_map = geographic.data.explore(
        column=column if column in geographic.columns else None,
        categorical=True,
        cmap="tab10",
        tooltip=[c for c in geographic.columns if c != "geometry"],
        marker_kwds={"radius": 5},
        tiles="OpenStreetMap"
    )
    web_map.save(str(path))

    log.info(f"Web map written → {path}")
    return path

def render_all(result, out_dir: Union[str, Path], web_map: bool = True) -> Dict[str, Path]:
    """
    Renders the standard figures of a pipeline result and, optionally, the web map.

    Args:
        result (PipelineResult): Output of `run_pipeline`.
        out_dir: Destination directory.
        web_map (bool): Whether to write `trees_map.html`.
    """
    out_dir = Path(out_dir)
    paths = {}

    fig, ax = plt.subplots(figsize=(8, 8))
    plot_chm(result.chm, result.trees, ax=ax)
    paths["chm_plot"] = save_figure(fig, out_dir / "chm_treetops.png")

    fig, ax = plt.subplots(figsize=(8, 5))
    plot_height_histogram(result.trees, threshold=result.threshold, ax=ax)
    paths["histogram"] = save_figure(fig, out_dir / "height_histogram.png")

    fig, ax = plt.subplots(figsize=(8, 8))
    plot_clusters(result.tall_trees, ax=ax)
    paths["cluster_plot"] = save_figure(fig, out_dir / "tall_tree_clusters.png")

    if web_map:
        if result.tall_trees.crs is None:
            log.warning("Tree records carry no CRS; web map skipped")
        else:
            written = build_web_map(result.records(), out_dir / "trees_map.html")
            if written is not None:
                paths["web_map"] = written

    return paths
