"""Terrain Bounded Context - Error Hierarchy.

Raised by elevation sources (GeoTIFF DEMs, Terrain-RGB tiles) when their
data cannot be used at all. A single elevation that is merely unavailable
is NOT an error: providers answer NaN and the coverage engine drops the
sample.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.terrain.value_objects import BoundingBox, GeoPoint


class TerrainError(Exception):
    """Base error for terrain sources."""


# ---------------------------------------------------------------------------
# Raster sources
# ---------------------------------------------------------------------------
class InvalidRasterError(TerrainError):
    """DEM file or elevation tile is unreadable, corrupted or has the
    wrong band layout.

    Attributes:
        source: File name of the offending raster, if known (never a full
            path, so messages are safe to log)
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class MissingCRSError(TerrainError):
    """DEM has no coordinate reference system."""


class InvalidGeotransformError(TerrainError):
    """DEM geotransform is missing, non-finite or degenerate."""


class AllNoDataError(TerrainError):
    """Every DEM pixel is NoData; no elevation could ever be answered."""


class InvalidBoundsError(TerrainError):
    """DEM extent falls outside WGS84 after normalization."""


class InsufficientMemoryError(TerrainError):
    """Decoded DEM would exceed the configured memory budget."""


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
class PointOutOfBoundsError(TerrainError):
    """Strict grid lookup outside the grid extent.

    Elevation providers answer NaN instead of raising this.
    """

    def __init__(self, point: "GeoPoint", bounds: "BoundingBox") -> None:
        self.point = point
        self.bounds = bounds
        super().__init__(
            f"({point.latitude:.6f}, {point.longitude:.6f}) is outside the grid "
            f"[lat {bounds.min_y:.6f}..{bounds.max_y:.6f}, "
            f"lon {bounds.min_x:.6f}..{bounds.max_x:.6f}]"
        )
