"""Terrain-RGB tile adapter for TerrainElevationProvider.

Elevation is packed into the colour channels of Web-Mercator map tiles:

    elevation_m = -10000 + (R * 65536 + G * 256 + B) * 0.1

Tiles are read from a slippy-map directory tree ``{root}/{z}/{x}/{y}.png``
with rasterio. A tile that is not present (not downloaded yet) makes the
queried point unavailable; it is not an error.
"""

from __future__ import annotations

import logging
import math
import threading
import warnings
from collections import OrderedDict
from pathlib import Path

import numpy as np
import rasterio
from numpy.typing import NDArray
from rasterio.errors import NotGeoreferencedWarning

from domain.terrain.errors import InvalidRasterError
from domain.terrain.value_objects import GeoPoint

logger = logging.getLogger(__name__)

# Web-Mercator is undefined at the poles
MAX_MERCATOR_LATITUDE = 85.05112878

DEFAULT_CACHE_SIZE = 64


def decode_terrain_rgb(bands: NDArray[np.integer]) -> NDArray[np.float64]:
    """Decode a (bands, height, width) RGB or RGBA array to meters.

    Fully transparent pixels (alpha == 0) decode to NaN.
    """
    if bands.ndim != 3 or bands.shape[0] < 3:
        raise InvalidRasterError(f"Expected RGB(A) tile, got shape {bands.shape}")
    r = bands[0].astype(np.float64)
    g = bands[1].astype(np.float64)
    b = bands[2].astype(np.float64)
    elevation = np.round(-10000.0 + (r * 65536.0 + g * 256.0 + b) * 0.1, 2)
    if bands.shape[0] >= 4:
        elevation = np.where(bands[3] == 0, np.nan, elevation)
    return elevation


def tile_fraction(point: GeoPoint, zoom: int) -> tuple[float, float]:
    """Fractional slippy-map tile coordinates (x, y) of ``point``."""
    n = 2**zoom
    lat = max(-MAX_MERCATOR_LATITUDE, min(MAX_MERCATOR_LATITUDE, point.latitude))
    x = (point.longitude + 180.0) / 360.0 * n
    y = (1.0 - math.asinh(math.tan(math.radians(lat))) / math.pi) / 2.0 * n
    return x, y


class TerrainRgbTileProvider:
    """Elevation lookups on a local Terrain-RGB tile pyramid.

    Decoded tiles are kept in a bounded LRU cache shared by all callers;
    the cache is guarded by a lock so rays can query concurrently.
    """

    def __init__(
        self,
        root: Path | str,
        zoom: int,
        cache_size: int = DEFAULT_CACHE_SIZE,
        suffix: str = ".png",
    ) -> None:
        if zoom < 0:
            raise ValueError(f"zoom must be >= 0, got {zoom}")
        if cache_size < 1:
            raise ValueError(f"cache_size must be >= 1, got {cache_size}")
        self.root = Path(root)
        self.zoom = zoom
        self.cache_size = cache_size
        self.suffix = suffix
        self._cache: OrderedDict[tuple[int, int], NDArray[np.float64]] = OrderedDict()
        self._lock = threading.Lock()

    def tile_path(self, x: int, y: int) -> Path:
        return self.root / str(self.zoom) / str(x) / f"{y}{self.suffix}"

    def _read_tile(self, path: Path) -> NDArray[np.float64]:
        try:
            with warnings.catch_warnings():
                # Plain PNG tiles carry no georeferencing
                warnings.simplefilter("ignore", NotGeoreferencedWarning)
                with rasterio.open(path) as src:
                    bands = src.read()
        except rasterio.errors.RasterioError as e:
            raise InvalidRasterError(
                f"Corrupted or invalid tile ({type(e).__name__})", path.name
            ) from e
        return decode_terrain_rgb(bands)

    def tile(self, x: int, y: int) -> NDArray[np.float64] | None:
        """Decoded elevation tile, or None when it is not on disk."""
        key = (x, y)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        path = self.tile_path(x, y)
        if not path.is_file():
            logger.debug("Tile %d/%d/%d not available", self.zoom, x, y)
            return None
        decoded = self._read_tile(path)

        with self._lock:
            decoded = self._cache.setdefault(key, decoded)
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        return decoded

    def elevation_at(self, point: GeoPoint) -> float:
        """Elevation of the tile pixel containing ``point``; NaN if unavailable."""
        n = 2**self.zoom
        fx, fy = tile_fraction(point, self.zoom)
        x = min(int(math.floor(fx)), n - 1) % n
        y = max(0, min(int(math.floor(fy)), n - 1))

        decoded = self.tile(x, y)
        if decoded is None:
            return float("nan")

        height, width = decoded.shape
        px = min(int((fx - math.floor(fx)) * width), width - 1)
        py = min(int((fy - math.floor(fy)) * height), height - 1)
        return float(decoded[py, px])
