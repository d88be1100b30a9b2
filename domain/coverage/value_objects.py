"""Coverage Bounded Context - Value Objects.

Immutable antenna descriptions and coverage results.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from domain.coverage.errors import InvalidConfigurationError
from domain.terrain.value_objects import GeoPoint

# Degrees in a full radiation pattern table, one gain value per degree
PATTERN_SIZE = 360


# ---------------------------------------------------------------------------
# AntennaProfile
# ---------------------------------------------------------------------------
class AntennaProfile(BaseModel):
    """Electrical specification shared by transmitter and receiver.

    ``sensitivity_dbw`` is summed into the link budget as-is (it is not a
    negative threshold), matching the network files this model is read from.
    ``gain_dbi`` is used as the receiving antenna's gain; the transmitting
    gain comes from the radiation pattern.
    """

    output_power_dbw: float
    gain_dbi: float
    sensitivity_dbw: float
    frequency_ghz: float
    name: str | None = None
    pattern_file: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_finite(self) -> "AntennaProfile":
        for field in ("output_power_dbw", "gain_dbi", "sensitivity_dbw", "frequency_ghz"):
            value = getattr(self, field)
            if not math.isfinite(value):
                raise ValueError(f"{field} must be finite, got {value}")
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AntennaProfile":
        """Build a profile from a network-file ``antenna_profiles`` entry.

        Expected keys: ``output_power``, ``gain``, ``sensitivity``,
        ``frequency`` and optionally ``profile_name`` / ``ant_file``.

        Raises:
            InvalidConfigurationError: If a required field is missing or invalid
        """
        required = {
            "output_power": "output_power_dbw",
            "gain": "gain_dbi",
            "sensitivity": "sensitivity_dbw",
            "frequency": "frequency_ghz",
        }
        missing = [key for key in required if data.get(key) is None]
        name = data.get("profile_name")
        if missing:
            raise InvalidConfigurationError(
                f"Antenna profile {name!r} is missing field(s): {', '.join(missing)}"
            )
        try:
            return cls(
                name=name,
                pattern_file=data.get("ant_file"),
                **{attr: data[key] for key, attr in required.items()},
            )
        except ValidationError as e:
            raise InvalidConfigurationError(
                f"Antenna profile {name!r} is invalid: {e}"
            ) from e


# ---------------------------------------------------------------------------
# RadiationPattern
# ---------------------------------------------------------------------------
class RadiationPattern(BaseModel):
    """Directional gain table: ``gains[i]`` is the gain in dBi at azimuth
    offset ``i`` degrees clockwise from the antenna's pointing direction.

    Invariants:
        exactly 360 entries
        every entry finite
    """

    gains: tuple[float, ...]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_gains(self) -> "RadiationPattern":
        if len(self.gains) != PATTERN_SIZE:
            raise ValueError(
                f"Radiation pattern must have {PATTERN_SIZE} entries, got {len(self.gains)}"
            )
        if not all(math.isfinite(g) for g in self.gains):
            raise ValueError("Radiation pattern values must be finite")
        return self

    @classmethod
    def from_gains(cls, values: Iterable[float]) -> "RadiationPattern":
        """Build a pattern, reporting problems as InvalidConfigurationError."""
        try:
            gains = tuple(float(v) for v in values)
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Radiation pattern is not numeric: {e}") from e
        if len(gains) != PATTERN_SIZE:
            raise InvalidConfigurationError(
                f"Radiation pattern must have {PATTERN_SIZE} entries, got {len(gains)}"
            )
        if not all(math.isfinite(g) for g in gains):
            raise InvalidConfigurationError("Radiation pattern values must be finite")
        return cls(gains=gains)

    @classmethod
    def isotropic(cls, gain_dbi: float) -> "RadiationPattern":
        """Same gain in every direction."""
        return cls(gains=(float(gain_dbi),) * PATTERN_SIZE)

    def __len__(self) -> int:
        return len(self.gains)

    def __getitem__(self, azimuth_offset: int) -> float:
        return self.gains[azimuth_offset]


# ---------------------------------------------------------------------------
# Ray / Result objects
# ---------------------------------------------------------------------------
class Quality(enum.Enum):
    """Coverage class of a ground point, best first."""

    GOOD = "good"
    OKAY = "okay"
    BAD = "bad"


class RaySample(BaseModel):
    """A prior terrain sample on one azimuth ray, kept for clearance tests."""

    distance_m: float = Field(ge=0)
    elevation_m: float

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_elevation(self) -> "RaySample":
        if not math.isfinite(self.elevation_m):
            raise ValueError("RaySample elevation must be finite")
        return self


class BorderPoint(BaseModel):
    """Free-space maximum range along one azimuth, ignoring terrain."""

    point: GeoPoint
    distance_m: float = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class RayResult(BaseModel):
    """Outcome of walking a single azimuth ray."""

    azimuth_offset: int = Field(ge=0, lt=PATTERN_SIZE)
    good: tuple[GeoPoint, ...] = ()
    okay: tuple[GeoPoint, ...] = ()
    bad: tuple[GeoPoint, ...] = ()
    unavailable_samples: int = 0
    obstructed_samples: int = 0

    model_config = ConfigDict(frozen=True)


class CoverageResult(BaseModel):
    """Quality-tiered ground points plus the free-space border.

    Invariants:
        border ordered by azimuth offset (360 entries)
        rays_completed == 360 unless cancelled
    """

    good: tuple[GeoPoint, ...]
    okay: tuple[GeoPoint, ...]
    bad: tuple[GeoPoint, ...]
    border: tuple[BorderPoint, ...]
    unavailable_samples: int = 0
    obstructed_samples: int = 0
    rays_completed: int = PATTERN_SIZE
    cancelled: bool = False

    model_config = ConfigDict(frozen=True)

    def points(self, quality: Quality) -> tuple[GeoPoint, ...]:
        return {
            Quality.GOOD: self.good,
            Quality.OKAY: self.okay,
            Quality.BAD: self.bad,
        }[quality]

    def covered_count(self) -> int:
        """Number of points in any quality set."""
        return len(self.good) + len(self.okay) + len(self.bad)
