"""Tests for the free-space coverage border."""

from __future__ import annotations

import pytest

from domain.coverage.border import compute_border
from domain.coverage.errors import InvalidParameterError
from domain.coverage.link_budget import max_distance
from domain.coverage.value_objects import AntennaProfile, RadiationPattern
from domain.terrain.services import inverse


def test_border_constant_pattern_is_a_circle(origin, reference_profile, pattern_19):
    border = compute_border(origin, 0.0, pattern_19, reference_profile)

    expected = max_distance(2.4, 27.0, 85.0, 19.0, 19.0)
    assert len(border) == 360
    for entry in border:
        assert entry.distance_m == pytest.approx(expected)
        _, distance = inverse(origin, entry.point)
        assert distance == pytest.approx(expected, rel=1e-8)


def test_border_is_ordered_by_azimuth_from_pointing_direction(origin, short_profile, pattern_5):
    pointing = 30.0
    border = compute_border(origin, pointing, pattern_5, short_profile)

    for offset in (0, 1, 90, 180, 329, 330, 359):
        bearing, _ = inverse(origin, border[offset].point)
        expected = (pointing + offset) % 360.0
        assert abs((bearing - expected + 180.0) % 360.0 - 180.0) < 1e-6


def test_border_follows_directional_gain(origin, short_profile):
    gains = [0.0] * 360
    gains[0] = 12.0  # main lobe
    gains[180] = -6.0  # back lobe
    border = compute_border(origin, 0.0, RadiationPattern.from_gains(gains), short_profile)

    assert border[0].distance_m > border[90].distance_m > border[180].distance_m
    # 6 dB less gain halves the range
    assert border[180].distance_m == pytest.approx(border[90].distance_m / 10 ** (6 / 20))


def test_border_rejects_non_positive_frequency(origin, pattern_5):
    profile = AntennaProfile(
        output_power_dbw=10, gain_dbi=5, sensitivity_dbw=90, frequency_ghz=0.0
    )

    with pytest.raises(InvalidParameterError):
        compute_border(origin, 0.0, pattern_5, profile)
