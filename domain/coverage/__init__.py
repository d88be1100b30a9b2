"""Coverage Bounded Context.

Responsible for RF propagation and signal analysis:
- Value Objects: AntennaProfile, RadiationPattern, BorderPoint, CoverageResult
- Services: link budget, free-space border, terrain-aware classifier,
  compute_coverage
"""
