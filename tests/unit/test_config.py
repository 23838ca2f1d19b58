# tests/unit/test_config.py

import json

import pytest

from lidartrees.config import AnalysisConfig, FilterParams, ClusterParams
from lidartrees.errors import InvalidInputError
from lidartrees.lidar import DetectionParams

def write_config(tmp_path, values, name="config.json"):
    path = tmp_path / name
    path.write_text(json.dumps(values), encoding="utf-8")
    return path

def test_defaults():
    config = AnalysisConfig()
    assert config.filter == FilterParams()
    assert config.raster.resolution == 1.0
    assert config.detection == DetectionParams(window_size=5, min_height=None)
    assert config.cluster == ClusterParams(percentile=0.9, eps=12.0, min_pts=5)

def test_from_dict_sections():
    config = AnalysisConfig.from_dict({
        "crs": "EPSG:26917",
        "filter": {"z_min": 180, "z_max": 220, "region_bounds": [0, 0, 100, 100]},
        "raster": {"resolution": 0.5},
        "detection": {"window_size": 7, "min_height": 185},
        "cluster": {"percentile": 0.8, "eps": 10, "min_pts": 4},
    })

    assert config.filter.z_min == 180
    assert config.filter.region_bounds == (0, 0, 100, 100)
    assert config.raster.resolution == 0.5
    assert config.detection.window_size == 7
    assert config.cluster.min_pts == 4
    # sections not given keep their defaults
    assert AnalysisConfig.from_dict({}).output_dir == "outputs"

def test_from_dict_region_vertices():
    config = AnalysisConfig.from_dict({"filter": {"region": [[0, 0], [10, 0], [10, 10]]}})
    assert config.filter.region == [(0, 0), (10, 0), (10, 10)]

def test_unknown_top_level_key():
    with pytest.raises(InvalidInputError, match="Unknown configuration keys"):
        AnalysisConfig.from_dict({"colour": "green"})

def test_unknown_section_key():
    with pytest.raises(InvalidInputError, match="cluster"):
        AnalysisConfig.from_dict({"cluster": {"radius": 3}})

def test_section_must_be_mapping():
    with pytest.raises(InvalidInputError, match="mapping"):
        AnalysisConfig.from_dict({"raster": 1.0})

def test_conflicting_regions():
    with pytest.raises(InvalidInputError, match="at most one"):
        FilterParams(region=[(0, 0), (1, 0), (1, 1)], region_bounds=(0, 0, 1, 1))

def test_from_file_resolves_relative_paths(tmp_path):
    path = write_config(tmp_path, {
        "input_path": "data/plot.las",
        "output_dir": "out",
        "filter": {"region_path": "regions/plot.geojson"},
    })
    config = AnalysisConfig.from_file(path)

    assert config.input_path == str(tmp_path / "data" / "plot.las")
    assert config.output_dir == str(tmp_path / "out")
    assert config.filter.region_path == str(tmp_path / "regions" / "plot.geojson")

def test_from_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        AnalysisConfig.from_file(tmp_path / "ghost.json")

def test_from_file_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidInputError, match="not valid JSON"):
        AnalysisConfig.from_file(path)

def test_to_dict_round_trip():
    config = AnalysisConfig.from_dict({
        "filter": {"z_min": 1.0, "region_bounds": [0, 0, 5, 5]},
        "cluster": {"eps": 3.0},
    })
    assert AnalysisConfig.from_dict(config.to_dict()) == config

def test_example_config_loads():
    from pathlib import Path
    example = Path(__file__).resolve().parents[2] / "config" / "example.json"
    config = AnalysisConfig.from_file(example)

    assert config.filter.z_min == 180
    assert config.detection.min_height == 185
    assert config.input_path.endswith("teaching_forest.laz")

@pytest.mark.parametrize("section, values", [
    ("raster", {"resolution": "1"}),
    ("raster", {"resolution": True}),
    ("filter", {"z_min": "low"}),
    ("filter", {"region_bounds": [0, 0, 10]}),
    ("filter", {"region": [[0, 0], [1, "a"], [1, 1]]}),
    ("detection", {"window_size": 5.5}),
    ("cluster", {"min_pts": "5"}),
    ("cluster", {"eps": None, "percentile": [0.9]}),
])
def test_malformed_values(section, values):
    with pytest.raises(InvalidInputError, match=f"'{section}\\."):
        AnalysisConfig.from_dict({section: values})

def test_integral_floats_become_integers():
    config = AnalysisConfig.from_dict({"detection": {"window_size": 5.0}, "cluster": {"min_pts": 4}})
    assert config.detection.window_size == 5
    assert isinstance(config.detection.window_size, int)

def test_top_level_value_must_be_string():
    with pytest.raises(InvalidInputError, match="input_path"):
        AnalysisConfig.from_dict({"input_path": 42})

def test_from_file_rejects_non_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(InvalidInputError, match="JSON object"):
        AnalysisConfig.from_file(path)

def test_malformed_value_stops_cli(tmp_path):
    from lidartrees.cli import main

    path = write_config(tmp_path, {"input_path": "plot.las", "raster": {"resolution": "1"}})
    with pytest.raises(SystemExit) as excinfo:
        main(["run", str(path)])
    assert excinfo.value.code == 1
