"""Coverage Planner Domain Layer.

This package contains the core business logic organized by bounded contexts:
- terrain: Physical geography, geodesics, elevation lookups
- coverage: Link budget, free-space border, terrain-aware coverage
"""

# Imports alphabetized per project style (isort)
from domain import coverage, terrain

__all__ = ["coverage", "terrain"]
