# src/lidartrees/cli.py

import argparse
import json
import logging
import sys
from dataclasses import replace

from lidartrees.config import AnalysisConfig
from lidartrees.errors import LidarTreesError

log = logging.getLogger(__name__)

def setup_logging(level: int = logging.INFO) -> None:
    """
    Configures the standard logging format and level for the command-line interface.

    Args:
        level (int): The logging threshold level.
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def _load_config(path: str, input_path: str = None, output_dir: str = None) -> AnalysisConfig:
    config = AnalysisConfig.from_file(path)
    if input_path:
        config = replace(config, input_path=input_path)
    if output_dir:
        config = replace(config, output_dir=output_dir)
    return config

def run_analysis(config: AnalysisConfig, plots: bool = True, web_map: bool = True) -> None:
    """
    Runs the full analysis and writes every output into the configured directory.

    Nothing is written when a stage fails.

    Args:
        config (AnalysisConfig): Run configuration.
        plots (bool): Render the static figures.
        web_map (bool): Render the interactive HTML map (requires plots).
    """
    from lidartrees.pipeline import run_from_config, export_results

    result = run_from_config(config)
    paths = export_results(result, config.output_dir)

    if plots:
        from lidartrees.visualize import render_all
        paths.update(render_all(result, config.output_dir, web_map=web_map))

    for name, path in paths.items():
        logging.info(f"{name}: {path}")

def print_summary(config: AnalysisConfig) -> None:
    """
    Runs the analysis in memory and prints its summary as JSON, writing no files.
    """
    from lidartrees.pipeline import run_from_config

    result = run_from_config(config)
    print(json.dumps(result.summary(), indent=2, allow_nan=False))

def main(argv=None) -> None:
    """
    Parses command-line arguments and routes execution to the appropriate subroutine.
    """
    parser = argparse.ArgumentParser(
        prog="lidartrees",
        description="Tree detection and clustering from lidar point clouds"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging threshold. Defaults to INFO."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Runs the analysis and exports rasters, tree records, plots and the web map."
    )
    summary_parser = subparsers.add_parser(
        "summary",
        help="Runs the analysis and prints tree counts and height statistics."
    )

    for sub in (run_parser, summary_parser):
        sub.add_argument("config", type=str, help="JSON configuration file.")
        sub.add_argument("--input", type=str, default=None, help="Overrides the configured point cloud path.")

    run_parser.add_argument("--output-dir", type=str, default=None, help="Overrides the configured output directory.")
    run_parser.add_argument("--no-plots", action="store_true", help="Skips the static figures and the web map.")
    run_parser.add_argument("--no-map", action="store_true", help="Skips the interactive web map.")

    args = parser.parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    try:
        if args.command == "run":
            config = _load_config(args.config, args.input, args.output_dir)
            run_analysis(config, plots=not args.no_plots, web_map=not args.no_map)
        elif args.command == "summary":
            config = _load_config(args.config, args.input)
            print_summary(config)
    except (LidarTreesError, OSError) as e:
        logging.error(f"Analysis failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
