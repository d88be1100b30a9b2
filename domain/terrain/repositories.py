"""Domain Port(s) for Terrain I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from collections.abc import Awaitable
from pathlib import Path
from typing import Protocol, runtime_checkable

from .value_objects import GeoPoint, TerrainGrid


class TerrainRepository(Protocol):
    """Port for obtaining terrain grids from external sources.

    Implementations live in infrastructure (e.g., GeoTIFF adapter).
    """

    def load_dem(self, file_path: Path | str) -> TerrainGrid:
        """Load a DEM and return a normalized TerrainGrid in EPSG:4326."""
        ...


@runtime_checkable
class TerrainElevationProvider(Protocol):
    """Port answering ground elevation queries for the coverage engine.

    Contract:
        - Returns elevation in meters above sea level.
        - Returns None or NaN when the data is unavailable (e.g. a tile that
          has not been loaded). This is not an error.
        - Raising aborts the whole coverage computation.
        - Must tolerate concurrent calls when used with ``max_workers > 1``.
    """

    def elevation_at(self, point: GeoPoint) -> float | None:
        ...


class AsyncTerrainElevationProvider(Protocol):
    """Asynchronous flavour of :class:`TerrainElevationProvider`."""

    def elevation_at(self, point: GeoPoint) -> Awaitable[float | None]:
        ...
