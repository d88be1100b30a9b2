"""Free-space coverage border.

The border bounds how far each azimuth ray is sampled; terrain is not
considered here.
"""

from __future__ import annotations

from collections.abc import Sequence

from domain.coverage.link_budget import max_distance
from domain.coverage.value_objects import PATTERN_SIZE, AntennaProfile, BorderPoint
from domain.terrain.services import destination
from domain.terrain.value_objects import GeoPoint


def compute_border(
    origin: GeoPoint,
    pointing_deg: float,
    pattern: Sequence[float],
    profile: AntennaProfile,
) -> tuple[BorderPoint, ...]:
    """Maximum unobstructed range for each of the 360 azimuth offsets.

    Args:
        origin: Antenna position
        pointing_deg: Direction the antenna faces, clockwise from north
        pattern: 360 transmit gains (dBi) indexed by azimuth offset
        profile: Antenna profile; its gain is the receiver gain

    Returns:
        Tuple of 360 BorderPoints ordered by azimuth offset.

    Raises:
        InvalidParameterError: If the link budget is undefined
    """
    border: list[BorderPoint] = []
    for offset in range(PATTERN_SIZE):
        distance = max_distance(
            profile.frequency_ghz,
            profile.output_power_dbw,
            profile.sensitivity_dbw,
            pattern[offset],
            profile.gain_dbi,
        )
        border.append(
            BorderPoint(
                point=destination(origin, pointing_deg + offset, distance),
                distance_m=distance,
            )
        )
    return tuple(border)
