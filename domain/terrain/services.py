"""Terrain Bounded Context - Domain Services.

Pure domain logic for geodesy and elevation lookups.
NO I/O operations - raster loading is implemented by infrastructure adapters
under `src/infrastructure/terrain/` via domain ports.
"""

from __future__ import annotations

import math

from pyproj import Geod

from domain.terrain.errors import PointOutOfBoundsError
from domain.terrain.repositories import TerrainElevationProvider
from domain.terrain.value_objects import (
    EARTH_RADIUS_M,
    BoundingBox,
    GeoPoint,
    TerrainGrid,
    TerrainSample,
)

# Sphere matching EARTH_RADIUS_M, so inverse() agrees with destination()
_sphere = Geod(a=EARTH_RADIUS_M, b=EARTH_RADIUS_M)


# ---------------------------------------------------------------------------
# Helper: Bounds Check
# ---------------------------------------------------------------------------
def is_within_bounds(point: GeoPoint, bounds: BoundingBox) -> bool:
    """Check if point is within bounds (inclusive)."""
    return bounds.contains(point)


def normalize_bearing(bearing_deg: float) -> float:
    """Map any finite bearing into [0, 360)."""
    bearing = math.fmod(bearing_deg, 360.0)
    if bearing < 0:
        bearing += 360.0
    # fmod of a tiny negative can round up to exactly 360
    return 0.0 if bearing >= 360.0 else bearing


def normalize_longitude(longitude_deg: float) -> float:
    """Fold a longitude produced by atan2 arithmetic back into [-180, 180]."""
    if longitude_deg > 180.0:
        return longitude_deg - 360.0
    if longitude_deg < -180.0:
        return longitude_deg + 360.0
    return longitude_deg


# ---------------------------------------------------------------------------
# Direct Geodesic (spherical)
# ---------------------------------------------------------------------------
def destination(origin: GeoPoint, bearing_deg: float, distance_m: float) -> GeoPoint:
    """Project a point ``distance_m`` meters away along ``bearing_deg``.

    Spherical Earth of radius EARTH_RADIUS_M; bearing is clockwise from
    north. A zero distance returns ``origin`` itself.

    Args:
        origin: Starting point
        bearing_deg: Heading in degrees, any finite value
        distance_m: Great-circle distance in meters

    Returns:
        The destination GeoPoint with longitude normalized to [-180, 180].
    """
    if distance_m == 0:
        return origin

    heading = math.radians(normalize_bearing(bearing_deg))
    lat1 = math.radians(origin.latitude)
    lon1 = math.radians(origin.longitude)
    angular = distance_m / EARTH_RADIUS_M

    sin_lat1 = math.sin(lat1)
    cos_lat1 = math.cos(lat1)
    cos_dist = math.cos(angular)
    sin_dist = math.sin(angular)

    sin_lat2 = sin_lat1 * cos_dist + cos_lat1 * sin_dist * math.cos(heading)
    lat2 = math.asin(max(-1.0, min(1.0, sin_lat2)))
    lon2 = lon1 + math.atan2(
        math.sin(heading) * sin_dist * cos_lat1,
        cos_dist - sin_lat1 * math.sin(lat2),
    )

    return GeoPoint(
        latitude=math.degrees(lat2),
        longitude=normalize_longitude(math.degrees(lon2)),
    )


# ---------------------------------------------------------------------------
# Inverse Geodesic (spherical)
# ---------------------------------------------------------------------------
def inverse(start: GeoPoint, end: GeoPoint) -> tuple[float, float]:
    """Initial bearing and distance from ``start`` to ``end``.

    Uses pyproj.Geod on the same sphere as :func:`destination`.

    Returns:
        Tuple of (bearing_deg in [0, 360), distance_m >= 0)
    """
    azimuth, _, distance = _sphere.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return normalize_bearing(float(azimuth)), float(abs(distance))


def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Great-circle distance in meters on the projection sphere."""
    return inverse(start, end)[1]


# ---------------------------------------------------------------------------
# Bilinear Interpolation
# ---------------------------------------------------------------------------
def bilinear_interpolate(grid: TerrainGrid, point: GeoPoint) -> tuple[float, bool]:
    """Interpolate elevation at arbitrary point using 4 nearest pixels.

    Returns (elevation, is_nodata).
    If any of the 4 neighbors is NaN, returns (NaN, True).

    Points exactly on grid boundaries use clamped indices, so bilinear
    degrades to linear on edges and nearest on corners.

    Raises:
        PointOutOfBoundsError: If point is outside the grid bounds
    """
    if not is_within_bounds(point, grid.bounds):
        raise PointOutOfBoundsError(point, grid.bounds)

    # Row 0 = north edge (max_y), so y is inverted
    px = (point.longitude - grid.bounds.min_x) / grid.resolution[0]
    py = (grid.bounds.max_y - point.latitude) / grid.resolution[1]

    height, width = grid.data.shape

    x0 = int(math.floor(px))
    y0 = int(math.floor(py))
    x1 = x0 + 1
    y1 = y0 + 1

    x0 = max(0, min(x0, width - 1))
    x1 = max(0, min(x1, width - 1))
    y0 = max(0, min(y0, height - 1))
    y1 = max(0, min(y1, height - 1))

    q11 = float(grid.data[y0, x0])  # top-left
    q21 = float(grid.data[y0, x1])  # top-right
    q12 = float(grid.data[y1, x0])  # bottom-left
    q22 = float(grid.data[y1, x1])  # bottom-right

    # No infill across NoData
    if math.isnan(q11) or math.isnan(q21) or math.isnan(q12) or math.isnan(q22):
        return (float("nan"), True)

    fx = px - math.floor(px)
    fy = py - math.floor(py)

    elevation = (
        q11 * (1 - fx) * (1 - fy)
        + q21 * fx * (1 - fy)
        + q12 * (1 - fx) * fy
        + q22 * fx * fy
    )

    return (float(elevation), False)


# ---------------------------------------------------------------------------
# Elevation Provider over an in-memory grid
# ---------------------------------------------------------------------------
class GridElevationProvider:
    """TerrainElevationProvider backed by an immutable TerrainGrid.

    Points outside the grid or touching NoData answer NaN (unavailable).
    The grid is read-only, so concurrent queries need no locking.
    """

    def __init__(self, grid: TerrainGrid) -> None:
        self.grid = grid

    def elevation_at(self, point: GeoPoint) -> float:
        if not is_within_bounds(point, self.grid.bounds):
            return float("nan")
        elevation, _ = bilinear_interpolate(self.grid, point)
        return elevation


def as_elevation(value: float | None) -> float:
    """Normalize a provider answer: None and non-numeric become NaN."""
    if value is None:
        return float("nan")
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def sample_terrain(provider: TerrainElevationProvider, point: GeoPoint) -> TerrainSample:
    """Query ``provider`` at ``point``; unavailable answers become NaN."""
    return TerrainSample(point=point, elevation_m=as_elevation(provider.elevation_at(point)))
