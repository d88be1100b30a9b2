"""Command-line entry point for network coverage prediction.

Usage:
    antenna-coverage --network net.json --sites sites.geojson --dem dem.tif --out coverage.geojson
    antenna-coverage --network net.json --tiles tiles/ --zoom 12 --out coverage.geojson
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from application.coverage_runner import build_terrain_provider, run_network
from domain.coverage.errors import CoverageError
from domain.terrain.errors import TerrainError
from infrastructure.coverage.geojson_export import write_feature_collection
from infrastructure.coverage.network_loader import load_network
from infrastructure.settings import CoverageSettings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="antenna-coverage",
        description="Predict terrain-aware coverage of every antenna in a network",
    )
    parser.add_argument("--network", type=Path, required=True, help="network JSON file")
    parser.add_argument("--sites", type=Path, default=None, help="GeoJSON with named site markers")
    terrain = parser.add_mutually_exclusive_group(required=True)
    terrain.add_argument("--dem", type=Path, help="GeoTIFF elevation model")
    terrain.add_argument("--tiles", type=Path, help="Terrain-RGB tile directory ({z}/{x}/{y}.png)")
    parser.add_argument("--zoom", type=int, default=None, help="tile zoom level")
    parser.add_argument("--step", type=float, default=None, help="sample spacing in meters")
    parser.add_argument("--workers", type=int, default=None, help="rays computed in parallel")
    parser.add_argument("--two-tier", action="store_true", help="classify GOOD/BAD only")
    parser.add_argument("--out", type=Path, required=True, help="output GeoJSON path")
    parser.add_argument("--log-level", type=str, default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {
        "tile_zoom": args.zoom,
        "step_m": args.step,
        "max_workers": args.workers,
        "log_level": args.log_level,
    }
    settings = CoverageSettings(**{k: v for k, v in overrides.items() if v is not None})
    if args.two_tier:
        settings = settings.model_copy(update={"two_tier": True})

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        network = load_network(args.network, args.sites)
        provider = build_terrain_provider(settings, dem_path=args.dem, tiles_root=args.tiles)
        features = run_network(network, provider, settings)
    except FileNotFoundError as e:
        logger.error("File not found: %s", Path(e.filename or str(e)).name)
        return 2
    except (CoverageError, TerrainError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    write_feature_collection(features, args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
