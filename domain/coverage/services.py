"""Coverage Bounded Context - Domain Services.

Coverage engine: validates inputs, computes the free-space border and runs
the terrain-aware classifier for one antenna. Stateless; one call per
antenna. NO I/O beyond the injected terrain provider.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import threading
from collections.abc import Callable, Sequence

from domain.coverage.border import compute_border
from domain.coverage.classifier import (
    DEFAULT_CLEARANCES,
    DEFAULT_STEP_M,
    ClassifiedPoints,
    build_ray_result,
    classify,
    ray_points,
    validate_clearances,
)
from domain.coverage.errors import InvalidConfigurationError, InvalidParameterError
from domain.coverage.value_objects import (
    PATTERN_SIZE,
    AntennaProfile,
    BorderPoint,
    CoverageResult,
    RadiationPattern,
    RayResult,
)
from domain.terrain.repositories import (
    AsyncTerrainElevationProvider,
    TerrainElevationProvider,
)
from domain.terrain.services import as_elevation, sample_terrain
from domain.terrain.value_objects import GeoPoint

logger = logging.getLogger(__name__)

# Concurrent rays for the async engine
DEFAULT_ASYNC_CONCURRENCY = 16


# ---------------------------------------------------------------------------
# Input validation (before any terrain query)
# ---------------------------------------------------------------------------
def _coerce_pattern(pattern: RadiationPattern | Sequence[float]) -> RadiationPattern:
    if isinstance(pattern, RadiationPattern):
        return pattern
    return RadiationPattern.from_gains(pattern)


def _validate_inputs(
    pattern: RadiationPattern | Sequence[float],
    profile: AntennaProfile,
    install_height_m: float,
    step_m: float,
    clearances: Sequence[float],
) -> tuple[RadiationPattern, tuple[float, ...]]:
    if not isinstance(profile, AntennaProfile):
        raise InvalidConfigurationError(
            f"profile must be an AntennaProfile, got {type(profile).__name__}"
        )
    checked = _coerce_pattern(pattern)
    if not math.isfinite(install_height_m):
        raise InvalidParameterError(f"install height must be finite, got {install_height_m}")
    if not (math.isfinite(step_m) and step_m > 0):
        raise InvalidParameterError(f"step_m must be positive, got {step_m}")
    return checked, validate_clearances(clearances)


def _assemble(border: tuple[BorderPoint, ...], classified: ClassifiedPoints) -> CoverageResult:
    return CoverageResult(
        good=classified.good,
        okay=classified.okay,
        bad=classified.bad,
        border=border,
        unavailable_samples=classified.unavailable_samples,
        obstructed_samples=classified.obstructed_samples,
        rays_completed=classified.rays_completed,
        cancelled=classified.cancelled,
    )


def _log_summary(origin: GeoPoint, result: CoverageResult) -> None:
    logger.info(
        "Coverage at (%.6f, %.6f): good=%d okay=%d bad=%d obstructed=%d unavailable=%d",
        origin.latitude,
        origin.longitude,
        len(result.good),
        len(result.okay),
        len(result.bad),
        result.obstructed_samples,
        result.unavailable_samples,
    )


# ---------------------------------------------------------------------------
# Main Service: compute_coverage
# ---------------------------------------------------------------------------
def compute_coverage(
    origin: GeoPoint,
    pointing_deg: float,
    install_height_m: float,
    profile: AntennaProfile,
    pattern: RadiationPattern | Sequence[float],
    terrain_provider: TerrainElevationProvider,
    step_m: float = DEFAULT_STEP_M,
    *,
    clearances: Sequence[float] = DEFAULT_CLEARANCES,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_ray: Callable[[RayResult], None] | None = None,
) -> CoverageResult:
    """Predict terrain-aware coverage of one directional antenna.

    Args:
        origin: Antenna position
        pointing_deg: Direction the antenna faces, clockwise from north
        install_height_m: Height above ground of the antenna, also used as
            the receiver height at every ground sample
        profile: Antenna electrical specification
        pattern: 360 gains (dBi) indexed by azimuth offset
        terrain_provider: Elevation source
        step_m: Sample spacing along each ray in meters
        clearances: Fresnel radius multipliers, innermost first;
            ``(1.0,)`` gives a two-tier GOOD/BAD classification
        max_workers: Number of rays evaluated in parallel threads
        cancel_event: Stop after the rays already started; partial result
        on_ray: Progress callback receiving each RayResult

    Returns:
        CoverageResult with good/okay/bad points and the 360-point border.

    Raises:
        InvalidConfigurationError: Malformed pattern or profile
        InvalidParameterError: Undefined link budget or invalid step/clearances

    Example:
        >>> profile = AntennaProfile(output_power_dbw=27, gain_dbi=19,
        ...                          sensitivity_dbw=85, frequency_ghz=2.4)
        >>> result = compute_coverage(GeoPoint(latitude=51.3, longitude=12.4),
        ...                           0, 10, profile,
        ...                           RadiationPattern.isotropic(19), provider)
        >>> len(result.border)
        360
    """
    checked, clearances = _validate_inputs(
        pattern, profile, install_height_m, step_m, clearances
    )
    border = compute_border(origin, pointing_deg, checked, profile)

    site = sample_terrain(terrain_provider, origin)
    if not site.is_available:
        logger.warning(
            "No terrain at antenna (%.6f, %.6f); every sample will be dropped",
            origin.latitude,
            origin.longitude,
        )
    tx_elevation = site.elevation_m + install_height_m

    classified = classify(
        origin,
        pointing_deg,
        install_height_m,
        profile,
        border,
        terrain_provider,
        step_m,
        clearances=clearances,
        tx_elevation_m=tx_elevation,
        max_workers=max_workers,
        cancel_event=cancel_event,
        on_ray=on_ray,
    )
    result = _assemble(border, classified)
    _log_summary(origin, result)
    return result


# ---------------------------------------------------------------------------
# Async variant
# ---------------------------------------------------------------------------
async def _elevation(provider: AsyncTerrainElevationProvider, point: GeoPoint) -> float:
    value = provider.elevation_at(point)
    if inspect.isawaitable(value):
        value = await value
    return as_elevation(value)


async def compute_coverage_async(
    origin: GeoPoint,
    pointing_deg: float,
    install_height_m: float,
    profile: AntennaProfile,
    pattern: RadiationPattern | Sequence[float],
    terrain_provider: AsyncTerrainElevationProvider | TerrainElevationProvider,
    step_m: float = DEFAULT_STEP_M,
    *,
    clearances: Sequence[float] = DEFAULT_CLEARANCES,
    concurrency: int = DEFAULT_ASYNC_CONCURRENCY,
    on_ray: Callable[[RayResult], None] | None = None,
) -> CoverageResult:
    """:func:`compute_coverage` for providers answering with awaitables.

    Rays run concurrently (at most ``concurrency`` at a time). Cancelling
    the awaiting task aborts the computation.
    """
    checked, clearances = _validate_inputs(
        pattern, profile, install_height_m, step_m, clearances
    )
    if concurrency < 1:
        raise InvalidParameterError(f"concurrency must be >= 1, got {concurrency}")
    border = compute_border(origin, pointing_deg, checked, profile)
    tx_elevation = await _elevation(terrain_provider, origin) + install_height_m
    semaphore = asyncio.Semaphore(concurrency)

    async def run(offset: int) -> RayResult:
        async with semaphore:
            distances, points = ray_points(
                origin, pointing_deg, offset, border[offset].distance_m, step_m
            )
            elevations = [await _elevation(terrain_provider, p) for p in points]
        result = build_ray_result(
            offset,
            points,
            distances,
            elevations,
            tx_elevation,
            install_height_m,
            profile.frequency_ghz,
            clearances,
        )
        if on_ray is not None:
            on_ray(result)
        return result

    rays = await asyncio.gather(*(run(offset) for offset in range(PATTERN_SIZE)))
    result = _assemble(border, ClassifiedPoints.merge(rays))
    _log_summary(origin, result)
    return result
