"""Infrastructure Layer.

Adapters performing I/O (rasters, tiles, network files, GeoJSON) and
returning or consuming domain Value Objects.
"""
