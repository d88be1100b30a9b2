import math
import threading
import warnings

import numpy as np
import pytest
import rasterio
from rasterio.errors import NotGeoreferencedWarning

from conftest_utils import encode_terrain_rgb
from domain.terrain.errors import InvalidRasterError
from domain.terrain.value_objects import GeoPoint
from infrastructure.terrain.rgb_tiles import (
    TerrainRgbTileProvider,
    decode_terrain_rgb,
    tile_fraction,
)

# At zoom 1 this point lies in tile x=1, y=0, in the bottom row of a 4x4 tile
POINT = GeoPoint(latitude=10.0, longitude=10.0)
# ...and this one in tile x=0, y=0
WEST_POINT = GeoPoint(latitude=10.0, longitude=-170.0)


def write_tile(root, z, x, y, bands):
    path = root / str(z) / str(x) / f"{y}.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with rasterio.open(
            path,
            "w",
            driver="PNG",
            height=bands.shape[1],
            width=bands.shape[2],
            count=bands.shape[0],
            dtype="uint8",
        ) as dst:
            dst.write(bands)
    return path


def elevation_tile(elevation_m, size=4, alpha=False):
    r, g, b = encode_terrain_rgb(elevation_m)
    channels = [r, g, b, 255] if alpha else [r, g, b]
    return np.stack(
        [np.full((size, size), c, dtype=np.uint8) for c in channels]
    )


# ===========================================================================
# Decoding
# ===========================================================================
def test_decode_sea_level():
    bands = np.array([[[1]], [[134]], [[160]]], dtype=np.uint8)

    assert decode_terrain_rgb(bands)[0, 0] == pytest.approx(0.0)


@pytest.mark.parametrize("elevation", [-412.3, 0.0, 118.7, 2962.0, 8848.9])
def test_decode_matches_encoding(elevation):
    bands = np.array([[[c]] for c in encode_terrain_rgb(elevation)], dtype=np.uint8)

    assert decode_terrain_rgb(bands)[0, 0] == pytest.approx(elevation, abs=0.05)


def test_decode_transparent_pixels_are_unavailable():
    bands = elevation_tile(100.0, size=2, alpha=True)
    bands[3, 0, 1] = 0

    decoded = decode_terrain_rgb(bands)

    assert math.isnan(decoded[0, 1])
    assert decoded[1, 1] == pytest.approx(100.0)


def test_decode_rejects_single_band():
    with pytest.raises(InvalidRasterError):
        decode_terrain_rgb(np.zeros((1, 4, 4), dtype=np.uint8))


def test_tile_fraction_web_mercator():
    x, y = tile_fraction(GeoPoint(latitude=0.0, longitude=0.0), 3)

    assert x == pytest.approx(4.0)
    assert y == pytest.approx(4.0)


# ===========================================================================
# Provider
# ===========================================================================
def test_provider_reads_pixel_of_point(tmp_path):
    bands = elevation_tile(50.0)
    r, g, b = encode_terrain_rgb(321.4)
    bands[:, 3, 0] = (r, g, b)
    write_tile(tmp_path, 1, 1, 0, bands)

    provider = TerrainRgbTileProvider(tmp_path, zoom=1)

    assert provider.tile_path(1, 0) == tmp_path / "1" / "1" / "0.png"
    assert provider.elevation_at(POINT) == pytest.approx(321.4, abs=0.05)


def test_missing_tile_is_unavailable(tmp_path):
    provider = TerrainRgbTileProvider(tmp_path, zoom=1)

    assert math.isnan(provider.elevation_at(POINT))


def test_decoded_tile_is_cached(tmp_path):
    path = write_tile(tmp_path, 1, 1, 0, elevation_tile(75.0))
    provider = TerrainRgbTileProvider(tmp_path, zoom=1)

    first = provider.elevation_at(POINT)
    path.unlink()

    assert first == pytest.approx(75.0, abs=0.05)
    assert provider.elevation_at(POINT) == first


def test_cache_evicts_least_recently_used(tmp_path):
    east = write_tile(tmp_path, 1, 1, 0, elevation_tile(75.0))
    write_tile(tmp_path, 1, 0, 0, elevation_tile(20.0))
    provider = TerrainRgbTileProvider(tmp_path, zoom=1, cache_size=1)

    provider.elevation_at(POINT)
    assert provider.elevation_at(WEST_POINT) == pytest.approx(20.0, abs=0.05)
    east.unlink()

    assert math.isnan(provider.elevation_at(POINT))


def test_concurrent_queries_share_cache(tmp_path):
    write_tile(tmp_path, 1, 1, 0, elevation_tile(75.0))
    provider = TerrainRgbTileProvider(tmp_path, zoom=1)
    results = []

    def query():
        results.append(provider.elevation_at(POINT))

    threads = [threading.Thread(target=query) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r == pytest.approx(75.0, abs=0.05) for r in results)


def test_single_band_tile_is_invalid(tmp_path):
    write_tile(tmp_path, 1, 1, 0, np.zeros((1, 4, 4), dtype=np.uint8))
    provider = TerrainRgbTileProvider(tmp_path, zoom=1)

    with pytest.raises(InvalidRasterError):
        provider.elevation_at(POINT)


def test_corrupted_tile_is_invalid(tmp_path):
    path = tmp_path / "1" / "1" / "0.png"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"not a png")
    provider = TerrainRgbTileProvider(tmp_path, zoom=1)

    with pytest.raises(InvalidRasterError):
        provider.elevation_at(POINT)


@pytest.mark.parametrize("zoom, cache_size", [(-1, 8), (3, 0)])
def test_provider_rejects_bad_arguments(tmp_path, zoom, cache_size):
    with pytest.raises(ValueError):
        TerrainRgbTileProvider(tmp_path, zoom=zoom, cache_size=cache_size)
