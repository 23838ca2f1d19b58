# src/lidartrees/config.py

"""
This module defines the configuration of a tree analysis run.

Site-specific thresholds (elevation band, minimum height, window size, clustering radius)
are plain parameters with neutral defaults; a survey supplies its own values in a JSON file.
"""

from dataclasses import dataclass, field, fields, asdict
from numbers import Real
from pathlib import Path
from typing import Optional, List, Tuple, Union, Dict, Any
import json
import logging

from lidartrees.errors import InvalidInputError
from lidartrees.lidar.detect_treetop import DetectionParams

log = logging.getLogger(__name__)

__all__ = [
    "FilterParams",
    "RasterParams",
    "ClusterParams",
    "AnalysisConfig"
]

@dataclass(frozen=True)
class FilterParams:
    """
    Parameters of the point filter.

    Args:
        z_min (Optional[float]): Lower elevation bound (inclusive). None leaves it open.
        z_max (Optional[float]): Upper elevation bound (inclusive). None leaves it open.
        region (Optional[List[Tuple[float, float]]]): Region-of-interest vertices in the CRS of the cloud.
        region_bounds (Optional[Tuple[float, float, float, float]]): Region as (min_x, min_y, max_x, max_y).
        region_path (Optional[str]): Vector file holding the region of interest.
    """
    z_min: Optional[float] = None
    z_max: Optional[float] = None
    region: Optional[List[Tuple[float, float]]] = None
    region_bounds: Optional[Tuple[float, float, float, float]] = None
    region_path: Optional[str] = None

    def __post_init__(self):
        given = [r for r in (self.region, self.region_bounds, self.region_path) if r is not None]
        if len(given) > 1:
            raise InvalidInputError("Specify at most one of 'region', 'region_bounds' and 'region_path'")

@dataclass(frozen=True)
class RasterParams:
    """
    Parameters of the canopy height model.

    Args:
        resolution (float): Cell size in CRS units.
    """
    resolution: float = 1.0

@dataclass(frozen=True)
class ClusterParams:
    """
    Parameters of the tall-tree selection and clustering.

    Args:
        percentile (float): Height quantile in (0, 1); trees strictly above it are clustered.
        eps (float): Neighborhood radius in CRS units.
        min_pts (int): Minimum neighborhood size (self included) of a core point.
    """
    percentile: float = 0.9
    eps: float = 12.0
    min_pts: int = 5

_SECTIONS = {
    "filter": FilterParams,
    "raster": RasterParams,
    "detection": DetectionParams,
    "cluster": ClusterParams,
}

_REAL_FIELDS = {"z_min", "z_max", "resolution", "min_height", "percentile", "eps"}
_INT_FIELDS = {"window_size", "min_pts"}

def _is_real(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)

def _check_value(key: str, value, name: str):
    """Returns the value with the type its field expects, or raises InvalidInputError."""
    where = f"'{name}.{key}'"
    if key in _REAL_FIELDS:
        if not _is_real(value):
            raise InvalidInputError(f"Config value {where} must be a number, got {value!r}")
        return float(value)
    if key in _INT_FIELDS:
        if not _is_real(value) or not float(value).is_integer():
            raise InvalidInputError(f"Config value {where} must be an integer, got {value!r}")
        return int(value)
    # JSON has no tuples
    if key == "region_bounds":
        if not isinstance(value, (list, tuple)) or len(value) != 4 or not all(_is_real(v) for v in value):
            raise InvalidInputError(f"Config value {where} must be [min_x, min_y, max_x, max_y], got {value!r}")
        return tuple(float(v) for v in value)
    if key == "region":
        if not isinstance(value, (list, tuple)) or not all(
            isinstance(v, (list, tuple)) and len(v) == 2 and all(_is_real(c) for c in v) for v in value
        ):
            raise InvalidInputError(f"Config value {where} must be a list of [x, y] vertices, got {value!r}")
        return [tuple(float(c) for c in v) for v in value]
    if key == "region_path" and not isinstance(value, str):
        raise InvalidInputError(f"Config value {where} must be a path string, got {value!r}")
    return value

def _build_section(cls, values: Dict[str, Any], name: str):
    if not isinstance(values, dict):
        raise InvalidInputError(f"Config section '{name}' must be a mapping, got {type(values).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise InvalidInputError(f"Unknown keys in config section '{name}': {sorted(unknown)}")

    values = {
        key: None if value is None else _check_value(key, value, name)
        for key, value in values.items()
    }
    return cls(**values)

@dataclass(frozen=True)
class AnalysisConfig:
    """
    Full configuration of a run.

    Args:
        input_path (Optional[str]): LAS/LAZ point cloud to analyse.
        crs (Optional[str]): CRS of the point cloud, overriding the file header.
        output_dir (str): Directory receiving exported rasters, records, plots and the web map.
        filter (FilterParams): Point filter parameters.
        raster (RasterParams): Canopy height model parameters.
        detection (DetectionParams): Treetop detection parameters.
        cluster (ClusterParams): Tall-tree selection and clustering parameters.
    """
    input_path: Optional[str] = None
    crs: Optional[str] = None
    output_dir: str = "outputs"
    filter: FilterParams = field(default_factory=FilterParams)
    raster: RasterParams = field(default_factory=RasterParams)
    detection: DetectionParams = field(default_factory=DetectionParams)
    cluster: ClusterParams = field(default_factory=ClusterParams)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'AnalysisConfig':
        if not isinstance(values, dict):
            raise InvalidInputError(f"Configuration must be a mapping, got {type(values).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise InvalidInputError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs = {}
        for key, value in values.items():
            if key in _SECTIONS:
                kwargs[key] = _build_section(_SECTIONS[key], value or {}, key)
            elif value is not None and not isinstance(value, str):
                raise InvalidInputError(f"Config value '{key}' must be a string, got {value!r}")
            else:
                kwargs[key] = value

        try:
            return cls(**kwargs)
        except TypeError as e:
            raise InvalidInputError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'AnalysisConfig':
        """
        Reads a JSON configuration file. Relative paths inside it are resolved against
        the directory of the file.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            values = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(values, dict):
            raise InvalidInputError(f"Config file {path} must hold a JSON object")

        base = path.parent
        for key in ("input_path", "output_dir"):
            if isinstance(values.get(key), str) and values[key]:
                values[key] = str(base / values[key])
        section = values.get("filter") or {}
        if isinstance(section, dict) and isinstance(section.get("region_path"), str):
            section["region_path"] = str(base / section["region_path"])

        log.debug(f"Loaded configuration from {path}")
        return cls.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
