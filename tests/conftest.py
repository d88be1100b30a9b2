"""Root pytest configuration for all tests.

Provides the reference antenna used throughout the coverage tests. Import
paths (``domain.*``, ``infrastructure.*``, ``application.*``) are set up by
``pythonpath`` in pyproject.toml.
"""

from __future__ import annotations

import pytest

from domain.coverage.value_objects import AntennaProfile, RadiationPattern
from domain.terrain.value_objects import GeoPoint


@pytest.fixture
def origin() -> GeoPoint:
    return GeoPoint(latitude=51.33849, longitude=12.40729)


@pytest.fixture
def reference_profile() -> AntennaProfile:
    """27 dBW output, 19 dBi, sensitivity 85, 2.4 GHz (~314 km range)."""
    return AntennaProfile(
        output_power_dbw=27.0,
        gain_dbi=19.0,
        sensitivity_dbw=85.0,
        frequency_ghz=2.4,
        name="reference",
    )


@pytest.fixture
def short_profile() -> AntennaProfile:
    """Budget of 110 dB at 2.4 GHz with a 5 dBi pattern: ~3.1 km range."""
    return AntennaProfile(
        output_power_dbw=10.0,
        gain_dbi=5.0,
        sensitivity_dbw=90.0,
        frequency_ghz=2.4,
        name="short",
    )


@pytest.fixture
def pattern_19() -> RadiationPattern:
    return RadiationPattern.isotropic(19.0)


@pytest.fixture
def pattern_5() -> RadiationPattern:
    return RadiationPattern.isotropic(5.0)
