"""Terrain-aware coverage classifier.

Walks each azimuth ray outward from the antenna in fixed steps and decides,
for every ground sample, whether the direct path and its Fresnel zones stay
clear of all terrain sampled earlier on the same ray.

Heights along a ray are modelled in a flat (distance, elevation) plane:
the sightline runs from (0, tx_elevation) to
(candidate_distance, candidate_elevation + install_height).

Quality tiers, with the default clearances (1.0, sqrt(2)):
    GOOD  every prior sample clears both Fresnel zones
    OKAY  the first zone is clear, terrain intrudes into the second
    BAD   only the line of sight is clear
A blocked line of sight drops the sample from every quality set.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from numpy.typing import ArrayLike, NDArray
from pydantic import BaseModel, ConfigDict

from domain.coverage.errors import InvalidParameterError
from domain.coverage.value_objects import (
    PATTERN_SIZE,
    AntennaProfile,
    BorderPoint,
    Quality,
    RayResult,
    RaySample,
)
from domain.terrain.repositories import TerrainElevationProvider
from domain.terrain.services import destination, sample_terrain
from domain.terrain.value_objects import GeoPoint

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
# sqrt(299792458 / 1e9): first Fresnel radius in meters for d in meters, f in GHz
FRESNEL_RADIUS_CONSTANT = 0.5475331

# Fresnel radius multipliers tested innermost first; sqrt(2) is the second zone
DEFAULT_CLEARANCES: tuple[float, ...] = (1.0, math.sqrt(2.0))

DEFAULT_STEP_M = 50.0


# ---------------------------------------------------------------------------
# Clearance predicates (pure; scalars or numpy arrays)
# ---------------------------------------------------------------------------
def sightline_height(
    distance_m: ArrayLike,
    candidate_distance_m: float,
    candidate_elevation_m: float,
    tx_elevation_m: float,
    install_height_m: float,
) -> NDArray[np.float64] | float:
    """Height of the transmitter-to-candidate sightline at ``distance_m``."""
    slope = (candidate_elevation_m + install_height_m - tx_elevation_m) / candidate_distance_m
    return slope * np.asarray(distance_m, dtype=np.float64) + tx_elevation_m


def fresnel_radius(
    distance_m: ArrayLike,
    candidate_distance_m: float,
    frequency_ghz: float,
    clearance: float = 1.0,
) -> NDArray[np.float64] | float:
    """Knife-edge Fresnel radius at ``distance_m`` along a link of length
    ``candidate_distance_m``, scaled by ``clearance`` (1.0 = first zone)."""
    d1 = np.asarray(distance_m, dtype=np.float64)
    return (
        FRESNEL_RADIUS_CONSTANT
        * clearance
        * np.sqrt(d1 * (candidate_distance_m - d1) / (frequency_ghz * candidate_distance_m))
    )


def line_of_sight_clear(
    candidate_distance_m: float,
    candidate_elevation_m: float,
    tx_elevation_m: float,
    install_height_m: float,
    sample: RaySample,
) -> bool:
    """True if ``sample`` lies on or below the sightline to the candidate."""
    line = sightline_height(
        sample.distance_m,
        candidate_distance_m,
        candidate_elevation_m,
        tx_elevation_m,
        install_height_m,
    )
    return bool(sample.elevation_m <= line)


def fresnel_zone_clear(
    candidate_distance_m: float,
    candidate_elevation_m: float,
    tx_elevation_m: float,
    install_height_m: float,
    frequency_ghz: float,
    sample: RaySample,
    clearance: float = 1.0,
) -> bool:
    """True if ``sample`` stays below the Fresnel zone scaled by ``clearance``."""
    line = sightline_height(
        sample.distance_m,
        candidate_distance_m,
        candidate_elevation_m,
        tx_elevation_m,
        install_height_m,
    )
    radius = fresnel_radius(
        sample.distance_m, candidate_distance_m, frequency_ghz, clearance
    )
    return bool(sample.elevation_m <= line - radius)


def validate_clearances(clearances: Sequence[float]) -> tuple[float, ...]:
    """Clearances must be positive, finite and strictly increasing."""
    values = tuple(float(c) for c in clearances)
    for c in values:
        if not (math.isfinite(c) and c > 0):
            raise InvalidParameterError(f"Fresnel clearance must be positive, got {c}")
    if any(b <= a for a, b in zip(values, values[1:])):
        raise InvalidParameterError(
            f"Fresnel clearances must be strictly increasing, got {values}"
        )
    return values


def _tier(zones_cleared: int, zone_count: int) -> Quality:
    if zones_cleared == zone_count:
        return Quality.GOOD
    if zones_cleared == 0:
        return Quality.BAD
    return Quality.OKAY


# ---------------------------------------------------------------------------
# Per-ray kernel
# ---------------------------------------------------------------------------
def classify_ray(
    distances: Sequence[float],
    elevations: Sequence[float],
    tx_elevation_m: float,
    install_height_m: float,
    frequency_ghz: float,
    clearances: Sequence[float] = DEFAULT_CLEARANCES,
) -> list[Quality | None]:
    """Classify consecutive samples of one ray.

    Args:
        distances: Strictly increasing sample distances from the antenna
        elevations: Ground elevation per sample; NaN = unavailable
        tx_elevation_m: Ground elevation at the antenna plus install height
        install_height_m: Receiver height above ground at every sample
        frequency_ghz: Carrier frequency
        clearances: Fresnel radius multipliers, innermost first

    Returns:
        One entry per sample: its Quality, or None when the sample is
        unavailable or its line of sight is blocked.

    Unavailable samples are left out of the ray history, so later samples
    are tested as if the gap were not there.
    """
    if len(distances) != len(elevations):
        raise ValueError("distances and elevations must have the same length")

    zone_count = len(clearances)
    history_d = np.empty(len(distances) + 1, dtype=np.float64)
    history_h = np.empty(len(distances) + 1, dtype=np.float64)
    history_d[0] = 0.0
    history_h[0] = tx_elevation_m
    size = 1
    running_max = tx_elevation_m

    outcomes: list[Quality | None] = []
    for distance, elevation in zip(distances, elevations):
        if not math.isfinite(elevation):
            outcomes.append(None)
            continue

        if elevation >= running_max:
            # Ground at or above every prior sample: nothing can block the path
            running_max = elevation
            outcomes.append(Quality.GOOD)
        else:
            prior_d = history_d[:size]
            prior_h = history_h[:size]
            line = sightline_height(
                prior_d, distance, elevation, tx_elevation_m, install_height_m
            )
            if not np.all(prior_h <= line):
                outcomes.append(None)
            else:
                cleared = 0
                for clearance in clearances:
                    radius = fresnel_radius(prior_d, distance, frequency_ghz, clearance)
                    if not np.all(prior_h <= line - radius):
                        break
                    cleared += 1
                outcomes.append(_tier(cleared, zone_count))

        history_d[size] = distance
        history_h[size] = elevation
        size += 1

    return outcomes


# ---------------------------------------------------------------------------
# Ray walking
# ---------------------------------------------------------------------------
def sample_distances(border_distance_m: float, step_m: float) -> Iterator[float]:
    """Yield step, 2*step, ... up to and including ``border_distance_m``."""
    k = 1
    distance = step_m
    while distance <= border_distance_m:
        yield distance
        k += 1
        distance = k * step_m


def ray_points(
    origin: GeoPoint,
    pointing_deg: float,
    azimuth_offset: int,
    border_distance_m: float,
    step_m: float,
) -> tuple[list[float], list[GeoPoint]]:
    """Sample distances and positions along one ray."""
    distances = list(sample_distances(border_distance_m, step_m))
    bearing = pointing_deg + azimuth_offset
    points = [destination(origin, bearing, d) for d in distances]
    return distances, points


def build_ray_result(
    azimuth_offset: int,
    points: Sequence[GeoPoint],
    distances: Sequence[float],
    elevations: Sequence[float],
    tx_elevation_m: float,
    install_height_m: float,
    frequency_ghz: float,
    clearances: Sequence[float],
) -> RayResult:
    """Run :func:`classify_ray` and bucket the ray's points by quality."""
    outcomes = classify_ray(
        distances,
        elevations,
        tx_elevation_m,
        install_height_m,
        frequency_ghz,
        clearances,
    )
    buckets: dict[Quality, list[GeoPoint]] = {q: [] for q in Quality}
    unavailable = 0
    obstructed = 0
    for point, elevation, outcome in zip(points, elevations, outcomes):
        if outcome is not None:
            buckets[outcome].append(point)
        elif math.isfinite(elevation):
            obstructed += 1
        else:
            unavailable += 1

    if unavailable:
        logger.debug(
            "Ray %d: %d of %d samples had no terrain data",
            azimuth_offset,
            unavailable,
            len(points),
        )
    if points and unavailable > len(points) // 2:
        logger.warning(
            "Ray %d: terrain unavailable for %d of %d samples",
            azimuth_offset,
            unavailable,
            len(points),
        )

    return RayResult(
        azimuth_offset=azimuth_offset,
        good=tuple(buckets[Quality.GOOD]),
        okay=tuple(buckets[Quality.OKAY]),
        bad=tuple(buckets[Quality.BAD]),
        unavailable_samples=unavailable,
        obstructed_samples=obstructed,
    )


def walk_ray(
    origin: GeoPoint,
    pointing_deg: float,
    azimuth_offset: int,
    border_distance_m: float,
    tx_elevation_m: float,
    install_height_m: float,
    frequency_ghz: float,
    terrain_provider: TerrainElevationProvider,
    step_m: float = DEFAULT_STEP_M,
    clearances: Sequence[float] = DEFAULT_CLEARANCES,
) -> RayResult:
    """Sample terrain along one azimuth ray and classify every sample."""
    distances, points = ray_points(
        origin, pointing_deg, azimuth_offset, border_distance_m, step_m
    )
    samples = [sample_terrain(terrain_provider, p) for p in points]
    elevations = [s.elevation_m for s in samples]
    return build_ray_result(
        azimuth_offset,
        points,
        distances,
        elevations,
        tx_elevation_m,
        install_height_m,
        frequency_ghz,
        clearances,
    )


# ---------------------------------------------------------------------------
# All rays
# ---------------------------------------------------------------------------
class ClassifiedPoints(BaseModel):
    """Merged outcome of all walked rays."""

    good: tuple[GeoPoint, ...]
    okay: tuple[GeoPoint, ...]
    bad: tuple[GeoPoint, ...]
    unavailable_samples: int = 0
    obstructed_samples: int = 0
    rays_completed: int = 0
    cancelled: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def merge(cls, rays: Sequence[RayResult], cancelled: bool = False) -> "ClassifiedPoints":
        ordered = sorted(rays, key=lambda r: r.azimuth_offset)
        return cls(
            good=tuple(p for r in ordered for p in r.good),
            okay=tuple(p for r in ordered for p in r.okay),
            bad=tuple(p for r in ordered for p in r.bad),
            unavailable_samples=sum(r.unavailable_samples for r in ordered),
            obstructed_samples=sum(r.obstructed_samples for r in ordered),
            rays_completed=len(ordered),
            cancelled=cancelled,
        )


def classify(
    origin: GeoPoint,
    pointing_deg: float,
    install_height_m: float,
    profile: AntennaProfile,
    border: Sequence[BorderPoint],
    terrain_provider: TerrainElevationProvider,
    step_m: float = DEFAULT_STEP_M,
    *,
    clearances: Sequence[float] = DEFAULT_CLEARANCES,
    tx_elevation_m: float | None = None,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_ray: Callable[[RayResult], None] | None = None,
) -> ClassifiedPoints:
    """Walk all 360 rays out to their border distance.

    Args:
        origin: Antenna position
        pointing_deg: Direction the antenna faces
        install_height_m: Antenna height above ground (transmitter and receivers)
        profile: Antenna profile (frequency is used for Fresnel radii)
        border: 360 BorderPoints from compute_border
        terrain_provider: Elevation source
        step_m: Sample spacing along each ray
        clearances: Fresnel radius multipliers, innermost first
        tx_elevation_m: Precomputed transmitter elevation; queried if None
        max_workers: Rays evaluated concurrently when > 1
        cancel_event: Once set, rays not yet started are skipped
        on_ray: Called with each RayResult in azimuth order

    Returns:
        ClassifiedPoints with points merged in azimuth order.
    """
    if not (math.isfinite(step_m) and step_m > 0):
        raise InvalidParameterError(f"step_m must be positive, got {step_m}")
    if len(border) != PATTERN_SIZE:
        raise InvalidParameterError(
            f"border must have {PATTERN_SIZE} entries, got {len(border)}"
        )
    clearances = validate_clearances(clearances)

    if tx_elevation_m is None:
        tx_elevation_m = sample_terrain(terrain_provider, origin).elevation_m + install_height_m

    def run(offset: int) -> RayResult | None:
        if cancel_event is not None and cancel_event.is_set():
            return None
        return walk_ray(
            origin,
            pointing_deg,
            offset,
            border[offset].distance_m,
            tx_elevation_m,
            install_height_m,
            profile.frequency_ghz,
            terrain_provider,
            step_m,
            clearances,
        )

    rays: list[RayResult] = []
    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            for result in executor.map(run, range(PATTERN_SIZE)):
                if result is None:
                    continue
                rays.append(result)
                if on_ray is not None:
                    on_ray(result)
    else:
        for offset in range(PATTERN_SIZE):
            result = run(offset)
            if result is None:
                break
            rays.append(result)
            if on_ray is not None:
                on_ray(result)

    cancelled = len(rays) < PATTERN_SIZE
    if cancelled:
        logger.info("Coverage cancelled after %d of %d rays", len(rays), PATTERN_SIZE)
    return ClassifiedPoints.merge(rays, cancelled=cancelled)
