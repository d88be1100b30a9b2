"""Terrain Bounded Context.

Responsible for physical geography and spatial calculations:
- Value Objects: GeoPoint, BoundingBox, TerrainGrid, TerrainSample
- Services: destination/inverse geodesics, GridElevationProvider
- Ports: TerrainRepository, TerrainElevationProvider
"""
