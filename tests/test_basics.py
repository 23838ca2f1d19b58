# tests/test_basics.py

import lidartrees

def test_import():
    """
    Sanity check to ensure the package can be imported.
    """
    assert lidartrees.__version__ is not None

def test_public_api():
    for name in ("run_pipeline", "run_from_config", "export_results", "AnalysisConfig", "InvalidInputError"):
        assert hasattr(lidartrees, name)

    from lidartrees.lidar import filter_points, calculate_chm, detect_treetops
    from lidartrees.analysis import select_tall_trees, cluster_trees
    assert callable(filter_points) and callable(calculate_chm) and callable(detect_treetops)
    assert callable(select_tall_trees) and callable(cluster_trees)
