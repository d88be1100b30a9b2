"""Infrastructure adapters for the terrain bounded context.

Elevation sources for the coverage engine: GeoTIFF DEMs and Terrain-RGB
map tiles.
"""

from .geotiff_adapter import GeoTiffTerrainAdapter
from .rgb_tiles import TerrainRgbTileProvider, decode_terrain_rgb

__all__ = ["GeoTiffTerrainAdapter", "TerrainRgbTileProvider", "decode_terrain_rgb"]
