"""
Command-line runner for Tower Atlas.

Answers one viewport query against the configured fact store, or
computes fleet-wide dashboard statistics, and writes the result as
GeoJSON / JSON.

Usage:
    python -m tower_atlas.runner --data-dir data/towers --zoom 8 \\
        --min-lat 40 --max-lat 42 --min-lng -75 --max-lng -73

    # Raw towers with cells and bands, written as GeoJSON
    python -m tower_atlas.runner --zoom 14 --include-cells --output towers.geojson ...

    # Fleet statistics
    python -m tower_atlas.runner --stats --output stats.json
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tower_atlas.aggregation.analytics import fleet_summary
from tower_atlas.aggregation.viewport import ViewportResolutionSelector, ViewportResult
from tower_atlas.data.schemas import Bounds, Viewport
from tower_atlas.data.sources import create_fact_store
from tower_atlas.outputs.geojson import json_default, write_json, write_result
from tower_atlas.utils.config import AtlasConfig, get_default_config, load_config
from tower_atlas.utils.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def build_config(config_path: Optional[Path] = None, data_dir: Optional[Path] = None) -> AtlasConfig:
    """
    Load configuration from file, or defaults when no file is given.

    ``data_dir`` overrides the configured source with CSV facts from that
    directory.
    """
    if config_path is not None:
        config = load_config(config_path)
    else:
        config = get_default_config(data_dir)

    if data_dir is not None:
        config.inputs.source_type = "csv"
        config.inputs.csv.base_path = Path(data_dir)
    return config


def run_query(
    config: AtlasConfig,
    viewport: Viewport,
    limit: Optional[int] = None,
    include_cells: bool = False,
    output_file: Optional[Path] = None,
) -> ViewportResult:
    """Run one viewport query and optionally write it out."""
    store = create_fact_store(config)
    selector = ViewportResolutionSelector(store, config)
    result = selector.query(viewport, limit=limit, include_cells=include_cells)

    if output_file is not None:
        write_result(result, output_file)
    return result


def run_stats(config: AtlasConfig, output_file: Optional[Path] = None) -> Dict[str, Any]:
    """Compute fleet statistics and optionally write them out."""
    store = create_fact_store(config)
    summary = fleet_summary(store)

    if output_file is not None:
        write_json(summary, output_file)
    return summary


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Tower Atlas - viewport queries and fleet statistics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Medium grid summaries for a region
  tower-atlas --data-dir data/towers --zoom 8 --min-lat 40 --max-lat 42 --min-lng -75 --max-lng -73

  # Raw towers as GeoJSON
  tower-atlas --data-dir data/towers --zoom 14 --include-cells --output towers.geojson

  # Fleet statistics
  tower-atlas --data-dir data/towers --stats
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='YAML or JSON configuration file (default: built-in defaults)'
    )
    parser.add_argument(
        '--data-dir',
        type=Path,
        default=None,
        help='Directory of fact CSVs; overrides the configured source'
    )
    parser.add_argument('--min-lat', type=float, default=-90.0, help='South edge (default: -90)')
    parser.add_argument('--max-lat', type=float, default=90.0, help='North edge (default: 90)')
    parser.add_argument('--min-lng', type=float, default=-180.0, help='West edge (default: -180)')
    parser.add_argument('--max-lng', type=float, default=180.0, help='East edge (default: 180)')
    parser.add_argument(
        '--zoom',
        type=float,
        default=4.0,
        help='Map zoom level; selects the aggregation tier (default: 4)'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=None,
        help='Maximum raw towers returned at high zoom (default: from config)'
    )
    parser.add_argument(
        '--include-cells',
        action='store_true',
        help='Attach cells and bands to raw tower rows'
    )
    parser.add_argument(
        '--output',
        type=Path,
        default=None,
        help='Output file; .geojson writes features, anything else JSON (default: stdout)'
    )
    parser.add_argument(
        '--stats',
        action='store_true',
        help='Compute fleet statistics instead of a viewport query'
    )
    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (default: from config)'
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Render logs as JSON'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = _parse_args(argv)

    try:
        config = build_config(args.config, args.data_dir)
        configure_logging(
            log_level=args.log_level or config.logging.level,
            log_file=config.logging.file,
            json_output=args.json_logs or config.logging.json_output,
        )

        if args.stats:
            payload = run_stats(config, args.output)
        else:
            viewport = Viewport(
                bounds=Bounds(
                    min_lat=args.min_lat,
                    max_lat=args.max_lat,
                    min_lng=args.min_lng,
                    max_lng=args.max_lng,
                ),
                zoom=args.zoom,
            )
            result = run_query(
                config,
                viewport,
                limit=args.limit,
                include_cells=args.include_cells,
                output_file=args.output,
            )
            payload = result.to_dict()

        if args.output is None:
            print(json.dumps(payload, indent=2, default=json_default))
        return 0
    except Exception as e:
        logger.error("execution_failed", error=str(e), exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
