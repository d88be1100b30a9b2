"""Infrastructure adapters for the coverage bounded context.

Network/pattern file loading and GeoJSON export of coverage results.
"""

from .geojson_export import coverage_features, write_feature_collection
from .network_loader import (
    AntennaLink,
    AntennaNetwork,
    InstalledAntenna,
    NetworkLoader,
    load_network,
    load_pattern_file,
    load_site_positions,
)

__all__ = [
    "AntennaLink",
    "AntennaNetwork",
    "InstalledAntenna",
    "NetworkLoader",
    "coverage_features",
    "load_network",
    "load_pattern_file",
    "load_site_positions",
    "write_feature_collection",
]
