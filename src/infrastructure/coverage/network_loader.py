"""Network file adapter.

Turns the on-disk description of an antenna network into coverage domain
values:

* network JSON with ``antenna_profiles``, ``antenna_sites`` (each with
  ``installed_antennas``) and optional ``antenna_links``;
* a GeoJSON FeatureCollection of named Point markers giving site positions
  (sites may also carry an inline ``position: [lat, lon]``);
* ``.ant`` radiation pattern files, one gain value (dBi) per degree,
  separated by newlines and/or commas, resolved relative to the network file.

Installed antennas read ``antenna_name``, ``antenna_profile``, and the
optional ``direction`` (degrees, default 0) and ``height`` (meters,
default 0).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from domain.coverage.errors import InvalidConfigurationError
from domain.coverage.value_objects import AntennaProfile, RadiationPattern
from domain.terrain.value_objects import GeoPoint

logger = logging.getLogger(__name__)


class InstalledAntenna(BaseModel):
    """One antenna mounted at a site, ready for compute_coverage."""

    name: str
    site_name: str
    position: GeoPoint
    direction_deg: float = 0.0
    height_m: float = 0.0
    profile: AntennaProfile
    pattern: RadiationPattern

    model_config = ConfigDict(frozen=True)


class AntennaLink(BaseModel):
    """Point-to-point link between two installed antennas."""

    antenna_from: str
    antenna_to: str
    start: GeoPoint
    end: GeoPoint

    model_config = ConfigDict(frozen=True)


class AntennaNetwork(BaseModel):
    antennas: tuple[InstalledAntenna, ...]
    links: tuple[AntennaLink, ...] = ()

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------------
def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as e:
        raise InvalidConfigurationError(f"{path.name} is not valid JSON: {e}") from e


def load_pattern_file(file_path: Path | str) -> RadiationPattern:
    """Parse a ``.ant`` file into a RadiationPattern.

    Raises:
        FileNotFoundError: File does not exist
        InvalidConfigurationError: Non-numeric content or not 360 values
    """
    path = Path(file_path)
    text = path.read_text(encoding="utf-8")
    tokens = [t.strip() for line in text.splitlines() for t in line.split(",")]
    try:
        gains = [float(t) for t in tokens if t]
    except ValueError as e:
        raise InvalidConfigurationError(f"{path.name}: non-numeric gain value ({e})") from e
    try:
        return RadiationPattern.from_gains(gains)
    except InvalidConfigurationError as e:
        raise InvalidConfigurationError(f"{path.name}: {e}") from e


def _point_from_latlng(value: Any, where: str) -> GeoPoint:
    try:
        lat, lon = value[0], value[1]
        return GeoPoint(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError, IndexError, ValidationError) as e:
        raise InvalidConfigurationError(f"{where}: invalid position {value!r}") from e


def load_site_positions(file_path: Path | str) -> dict[str, GeoPoint]:
    """Named Point markers of a GeoJSON FeatureCollection.

    GeoJSON stores (longitude, latitude[, altitude]); altitude is ignored.
    Features without a name or not of type Point are skipped.
    """
    path = Path(file_path)
    data = _read_json(path)
    positions: dict[str, GeoPoint] = {}
    for feature in data.get("features", []):
        geometry = feature.get("geometry") or {}
        name = (feature.get("properties") or {}).get("name")
        if geometry.get("type") != "Point" or not name:
            continue
        coordinates = geometry.get("coordinates") or []
        positions[name] = _point_from_latlng(
            list(reversed(coordinates[:2])), f"{path.name} marker {name!r}"
        )
    logger.debug("Loaded %d site markers from %s", len(positions), path.name)
    return positions


# ---------------------------------------------------------------------------
# Network assembly
# ---------------------------------------------------------------------------
class NetworkLoader:
    """Loads a network file and its pattern files into an AntennaNetwork.

    Pattern files are parsed once per path and shared between antennas
    using the same profile.
    """

    def __init__(self, site_positions: Mapping[str, GeoPoint] | None = None) -> None:
        self.site_positions = dict(site_positions or {})
        self._patterns: dict[Path, RadiationPattern] = {}

    def _pattern(self, base_dir: Path, profile: AntennaProfile) -> RadiationPattern:
        if not profile.pattern_file:
            raise InvalidConfigurationError(
                f"Antenna profile {profile.name!r} has no ant_file"
            )
        path = (base_dir / profile.pattern_file).resolve()
        if path not in self._patterns:
            self._patterns[path] = load_pattern_file(path)
        return self._patterns[path]

    def _site_position(self, site: Mapping[str, Any]) -> GeoPoint:
        name = site.get("site_name")
        if site.get("position") is not None:
            return _point_from_latlng(site["position"], f"site {name!r}")
        if name not in self.site_positions:
            raise InvalidConfigurationError(f"No position known for site {name!r}")
        return self.site_positions[name]

    def load(self, file_path: Path | str) -> AntennaNetwork:
        """Build an AntennaNetwork from a network JSON file.

        Raises:
            InvalidConfigurationError: Unknown profile, site or antenna,
                missing profile field, or a malformed pattern file
        """
        path = Path(file_path)
        data = _read_json(path)
        base_dir = path.parent

        profiles = {
            p.name: p
            for p in (AntennaProfile.from_mapping(raw) for raw in data.get("antenna_profiles", []))
        }

        antennas: list[InstalledAntenna] = []
        for site in data.get("antenna_sites", []):
            site_name = site.get("site_name")
            position = self._site_position(site)
            for raw in site.get("installed_antennas", []):
                profile_name = raw.get("antenna_profile")
                if profile_name not in profiles:
                    raise InvalidConfigurationError(
                        f"Antenna {raw.get('antenna_name')!r} uses unknown profile {profile_name!r}"
                    )
                profile = profiles[profile_name]
                try:
                    antennas.append(
                        InstalledAntenna(
                            name=raw.get("antenna_name") or f"{site_name}-{len(antennas)}",
                            site_name=site_name,
                            position=position,
                            direction_deg=raw.get("direction", 0.0),
                            height_m=raw.get("height", 0.0),
                            profile=profile,
                            pattern=self._pattern(base_dir, profile),
                        )
                    )
                except ValidationError as e:
                    raise InvalidConfigurationError(
                        f"Antenna {raw.get('antenna_name')!r} is invalid: {e}"
                    ) from e

        by_name = {a.name: a for a in antennas}
        links: list[AntennaLink] = []
        for raw in data.get("antenna_links", []):
            source, target = raw.get("antenna_from"), raw.get("antenna_to")
            for name in (source, target):
                if name not in by_name:
                    raise InvalidConfigurationError(f"Link references unknown antenna {name!r}")
            links.append(
                AntennaLink(
                    antenna_from=source,
                    antenna_to=target,
                    start=by_name[source].position,
                    end=by_name[target].position,
                )
            )

        logger.info(
            "Network %s: %d antennas, %d links, %d profiles",
            path.name,
            len(antennas),
            len(links),
            len(profiles),
        )
        return AntennaNetwork(antennas=tuple(antennas), links=tuple(links))


def load_network(
    network_path: Path | str, sites_path: Path | str | None = None
) -> AntennaNetwork:
    """Convenience wrapper: read site markers (if given) and the network."""
    positions = load_site_positions(sites_path) if sites_path is not None else {}
    return NetworkLoader(positions).load(network_path)
