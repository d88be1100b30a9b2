"""Tests for network, site and pattern file loading."""

from __future__ import annotations

import json

import pytest

from domain.coverage.errors import InvalidConfigurationError
from domain.terrain.value_objects import GeoPoint
from infrastructure.coverage.network_loader import (
    NetworkLoader,
    load_network,
    load_pattern_file,
    load_site_positions,
)

PROFILE = {
    "profile_name": "sector",
    "ant_file": "patterns/sector.ant",
    "frequency": 2.4,
    "gain": 5,
    "output_power": 10,
    "sensitivity": 90,
}


def write_pattern(path, gains, sep="\n"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(sep.join(str(g) for g in gains), encoding="utf-8")
    return path


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def network_dir(tmp_path):
    write_pattern(tmp_path / "patterns" / "sector.ant", [5.0] * 360)
    write_json(
        tmp_path / "sites.geojson",
        {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [12.40729, 51.33849, 110.0]},
                    "properties": {"name": "tower-a"},
                },
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [12.45, 51.36]},
                    "properties": {"name": "tower-b"},
                },
                {
                    "type": "Feature",
                    "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
                    "properties": {"name": "road"},
                },
            ],
        },
    )
    write_json(
        tmp_path / "network.json",
        {
            "antenna_profiles": [PROFILE],
            "antenna_sites": [
                {
                    "site_name": "tower-a",
                    "installed_antennas": [
                        {
                            "antenna_name": "a-north",
                            "antenna_profile": "sector",
                            "direction": 0,
                            "height": 25,
                        },
                        {
                            "antenna_name": "a-east",
                            "antenna_profile": "sector",
                            "direction": 90,
                            "height": 25,
                        },
                    ],
                },
                {
                    "site_name": "tower-b",
                    "installed_antennas": [
                        {"antenna_name": "b-west", "antenna_profile": "sector", "direction": 270}
                    ],
                },
            ],
            "antenna_links": [{"antenna_from": "a-east", "antenna_to": "b-west"}],
        },
    )
    return tmp_path


# ===========================================================================
# Pattern files
# ===========================================================================
@pytest.mark.parametrize("sep", ["\n", ",", ",\n"])
def test_pattern_file_separators(tmp_path, sep):
    gains = [float(i % 7) for i in range(360)]
    path = write_pattern(tmp_path / "p.ant", gains, sep)

    pattern = load_pattern_file(path)

    assert pattern.gains == tuple(gains)


def test_pattern_file_ignores_blank_lines(tmp_path):
    path = tmp_path / "p.ant"
    path.write_text("\n".join(["1.5"] * 360) + "\n\n", encoding="utf-8")

    assert len(load_pattern_file(path)) == 360


def test_pattern_file_wrong_count(tmp_path):
    path = write_pattern(tmp_path / "short.ant", [1.0] * 359)

    with pytest.raises(InvalidConfigurationError, match="short.ant"):
        load_pattern_file(path)


def test_pattern_file_non_numeric(tmp_path):
    path = write_pattern(tmp_path / "bad.ant", ["x"] + [1.0] * 359)

    with pytest.raises(InvalidConfigurationError):
        load_pattern_file(path)


# ===========================================================================
# Site markers
# ===========================================================================
def test_site_positions_swap_geojson_order(network_dir):
    positions = load_site_positions(network_dir / "sites.geojson")

    assert positions == {
        "tower-a": GeoPoint(latitude=51.33849, longitude=12.40729),
        "tower-b": GeoPoint(latitude=51.36, longitude=12.45),
    }


def test_site_positions_invalid_json(tmp_path):
    path = tmp_path / "sites.geojson"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(InvalidConfigurationError):
        load_site_positions(path)


# ===========================================================================
# Network
# ===========================================================================
def test_load_network(network_dir):
    network = load_network(network_dir / "network.json", network_dir / "sites.geojson")

    names = [a.name for a in network.antennas]
    assert names == ["a-north", "a-east", "b-west"]

    north = network.antennas[0]
    assert north.site_name == "tower-a"
    assert north.position == GeoPoint(latitude=51.33849, longitude=12.40729)
    assert north.direction_deg == 0.0
    assert north.height_m == 25.0
    assert north.profile.frequency_ghz == 2.4
    assert set(north.pattern.gains) == {5.0}

    west = network.antennas[2]
    assert west.height_m == 0.0
    assert west.direction_deg == 270.0

    assert len(network.links) == 1
    link = network.links[0]
    assert (link.antenna_from, link.antenna_to) == ("a-east", "b-west")
    assert link.start == network.antennas[1].position
    assert link.end == west.position


def test_pattern_file_is_parsed_once(network_dir):
    network = load_network(network_dir / "network.json", network_dir / "sites.geojson")

    assert network.antennas[0].pattern is network.antennas[1].pattern


def test_inline_site_position(network_dir):
    data = json.loads((network_dir / "network.json").read_text())
    for site in data["antenna_sites"]:
        site["position"] = [50.0, 10.0]
    data["antenna_links"] = []
    path = write_json(network_dir / "inline.json", data)

    network = NetworkLoader().load(path)

    assert {a.position for a in network.antennas} == {GeoPoint(latitude=50.0, longitude=10.0)}


def test_unknown_site(network_dir):
    with pytest.raises(InvalidConfigurationError, match="tower-a"):
        load_network(network_dir / "network.json")


def test_unknown_profile(network_dir):
    data = json.loads((network_dir / "network.json").read_text())
    data["antenna_sites"][0]["installed_antennas"][0]["antenna_profile"] = "missing"
    path = write_json(network_dir / "bad.json", data)

    with pytest.raises(InvalidConfigurationError, match="missing"):
        load_network(path, network_dir / "sites.geojson")


def test_link_to_unknown_antenna(network_dir):
    data = json.loads((network_dir / "network.json").read_text())
    data["antenna_links"] = [{"antenna_from": "a-east", "antenna_to": "nowhere"}]
    path = write_json(network_dir / "bad.json", data)

    with pytest.raises(InvalidConfigurationError, match="nowhere"):
        load_network(path, network_dir / "sites.geojson")


def test_missing_pattern_file(network_dir):
    (network_dir / "patterns" / "sector.ant").unlink()

    with pytest.raises(FileNotFoundError):
        load_network(network_dir / "network.json", network_dir / "sites.geojson")


def test_profile_missing_field(network_dir):
    data = json.loads((network_dir / "network.json").read_text())
    del data["antenna_profiles"][0]["sensitivity"]
    path = write_json(network_dir / "bad.json", data)

    with pytest.raises(InvalidConfigurationError, match="sensitivity"):
        load_network(path, network_dir / "sites.geojson")
