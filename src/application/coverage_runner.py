"""Batch coverage runs over a whole antenna network.

Orchestrates the network loader, a terrain provider and the domain
coverage engine, and collects per-antenna GeoJSON features.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from domain.coverage.classifier import DEFAULT_CLEARANCES
from domain.coverage.services import compute_coverage
from domain.coverage.value_objects import CoverageResult
from domain.terrain.repositories import TerrainElevationProvider
from infrastructure.coverage.geojson_export import coverage_features
from infrastructure.coverage.network_loader import AntennaNetwork, InstalledAntenna
from infrastructure.settings import CoverageSettings
from infrastructure.terrain.geotiff_adapter import GeoTiffTerrainAdapter
from infrastructure.terrain.rgb_tiles import TerrainRgbTileProvider

logger = logging.getLogger(__name__)


def build_terrain_provider(
    settings: CoverageSettings,
    dem_path: Path | str | None = None,
    tiles_root: Path | str | None = None,
) -> TerrainElevationProvider:
    """Exactly one of ``dem_path`` / ``tiles_root`` selects the source."""
    if (dem_path is None) == (tiles_root is None):
        raise ValueError("Provide exactly one of dem_path or tiles_root")
    if dem_path is not None:
        return GeoTiffTerrainAdapter(max_bytes=settings.dem_max_bytes).elevation_provider(dem_path)
    return TerrainRgbTileProvider(
        tiles_root, zoom=settings.tile_zoom, cache_size=settings.tile_cache_size
    )


def iter_coverage(
    network: AntennaNetwork,
    terrain_provider: TerrainElevationProvider,
    settings: CoverageSettings,
) -> Iterator[tuple[InstalledAntenna, CoverageResult]]:
    """Yield each antenna with its coverage, one antenna at a time."""
    clearances = DEFAULT_CLEARANCES[:1] if settings.two_tier else DEFAULT_CLEARANCES
    for antenna in network.antennas:
        logger.info(
            "Computing coverage for %s at site %s (dir=%.1f, h=%.1fm)",
            antenna.name,
            antenna.site_name,
            antenna.direction_deg,
            antenna.height_m,
        )
        result = compute_coverage(
            antenna.position,
            antenna.direction_deg,
            antenna.height_m,
            antenna.profile,
            antenna.pattern,
            terrain_provider,
            settings.step_m,
            clearances=clearances,
            max_workers=settings.max_workers,
        )
        yield antenna, result


def link_features(network: AntennaNetwork) -> list[dict[str, Any]]:
    """LineString features for the network's point-to-point links."""
    return [
        {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [link.start.longitude, link.start.latitude],
                    [link.end.longitude, link.end.latitude],
                ],
            },
            "properties": {
                "layer": "link",
                "antenna_from": link.antenna_from,
                "antenna_to": link.antenna_to,
            },
        }
        for link in network.links
    ]


def run_network(
    network: AntennaNetwork,
    terrain_provider: TerrainElevationProvider,
    settings: CoverageSettings,
) -> list[dict[str, Any]]:
    """Coverage and link features for every antenna in ``network``."""
    features = link_features(network)
    for antenna, result in iter_coverage(network, terrain_provider, settings):
        features.extend(
            coverage_features(
                result,
                {
                    "antenna": antenna.name,
                    "site": antenna.site_name,
                    "profile": antenna.profile.name,
                },
            )
        )
        if result.covered_count() == 0:
            logger.warning("Antenna %s covers no ground points", antenna.name)
    return features
