"""Shared test helpers: in-memory terrain providers and raster writers.

These providers implement the TerrainElevationProvider port directly so
domain tests never touch infrastructure adapters.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from numpy.typing import NDArray
from rasterio.transform import from_origin

from domain.terrain.value_objects import EARTH_RADIUS_M, GeoPoint

# Meters per degree of latitude on the projection sphere
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0


class ConstantTerrain:
    """Same elevation everywhere; records every query."""

    def __init__(self, elevation: float = 100.0) -> None:
        self.elevation = elevation
        self.calls = 0
        self._lock = threading.Lock()

    def elevation_at(self, point: GeoPoint) -> float:
        with self._lock:
            self.calls += 1
        return self.elevation


class FunctionTerrain:
    """Elevation computed from the queried point."""

    def __init__(self, fn: Callable[[GeoPoint], float | None]) -> None:
        self.fn = fn

    def elevation_at(self, point: GeoPoint) -> float | None:
        return self.fn(point)


class GappyTerrain:
    """Constant terrain with no data at the given points."""

    def __init__(self, elevation: float, missing: Iterable[GeoPoint], sentinel: Any = None):
        self.elevation = elevation
        self.missing = set(missing)
        self.sentinel = sentinel

    def elevation_at(self, point: GeoPoint) -> float | None:
        if point in self.missing:
            return self.sentinel
        return self.elevation


class AsyncTerrain:
    """Awaitable wrapper around a synchronous provider."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner

    async def elevation_at(self, point: GeoPoint) -> float | None:
        return self.inner.elevation_at(point)


def hilly(point: GeoPoint) -> float:
    """Deterministic rolling terrain for determinism tests."""
    return (
        100.0
        + 40.0 * math.sin(point.latitude * 900.0)
        + 25.0 * math.cos(point.longitude * 1300.0)
    )


def north_distance_m(point: GeoPoint, origin: GeoPoint) -> float:
    return (point.latitude - origin.latitude) * METERS_PER_DEGREE


def write_geotiff(
    path: Path,
    data: NDArray[Any],
    *,
    west: float,
    north: float,
    res: float,
    crs: str | None = "EPSG:4326",
    nodata: float | None = None,
) -> Path:
    """Write a north-up GeoTIFF (2D = one band, 3D = bands x rows x cols)."""
    bands = data if data.ndim == 3 else data[np.newaxis, ...]
    kwargs: dict[str, Any] = {
        "driver": "GTiff",
        "height": bands.shape[1],
        "width": bands.shape[2],
        "count": bands.shape[0],
        "dtype": str(bands.dtype),
        "transform": from_origin(west, north, res, res),
    }
    if crs is not None:
        kwargs["crs"] = crs
    if nodata is not None:
        kwargs["nodata"] = nodata
    with rasterio.open(path, "w", **kwargs) as dst:
        dst.write(bands)
    return path


def encode_terrain_rgb(elevation_m: float) -> tuple[int, int, int]:
    """Inverse of the Terrain-RGB decoding formula."""
    code = int(round((elevation_m + 10000.0) * 10.0))
    return code // 65536, (code // 256) % 256, code % 256
