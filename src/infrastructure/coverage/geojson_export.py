"""GeoJSON export of coverage results.

One MultiPoint feature per quality tier plus the free-space border as a
Polygon. Coordinates are written in GeoJSON (longitude, latitude) order.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from domain.coverage.value_objects import CoverageResult, Quality
from domain.terrain.value_objects import GeoPoint

logger = logging.getLogger(__name__)


def _coordinates(points: Iterable[GeoPoint]) -> list[list[float]]:
    return [[p.longitude, p.latitude] for p in points]


def coverage_features(
    result: CoverageResult, properties: Mapping[str, Any] | None = None
) -> list[dict[str, Any]]:
    """GeoJSON features for one antenna's coverage."""
    base = dict(properties or {})
    features: list[dict[str, Any]] = []
    for quality in Quality:
        features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "MultiPoint",
                    "coordinates": _coordinates(result.points(quality)),
                },
                "properties": {**base, "layer": "coverage", "quality": quality.value},
            }
        )

    ring = _coordinates(b.point for b in result.border)
    if ring:
        ring.append(ring[0])
    features.append(
        {
            "type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": [ring]},
            "properties": {
                **base,
                "layer": "border",
                "distances_m": [b.distance_m for b in result.border],
                "unavailable_samples": result.unavailable_samples,
                "obstructed_samples": result.obstructed_samples,
                "cancelled": result.cancelled,
            },
        }
    )
    return features


def write_feature_collection(
    features: Iterable[Mapping[str, Any]], file_path: Path | str
) -> Path:
    """Write features as a FeatureCollection and return the path."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    collection = {"type": "FeatureCollection", "features": list(features)}
    with path.open("w", encoding="utf-8") as fh:
        json.dump(collection, fh)
    logger.info("Wrote %d features to %s", len(collection["features"]), path.name)
    return path
