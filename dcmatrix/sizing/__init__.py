"""
Engineering and cost formulas.

This package holds the derivation formulas shared by the calculation engine
and by the result validator's defaults, so both always agree:
- electrical: rack/row currents and distribution components
- cooling: per-technology cooling plant, thermal split, pipe sizing
- climate: site climate factor applied to the sized cooling plant
- power: UPS modules/frames, battery cabinets, generator sets
- metrics: reliability, PUE/energy, carbon, total cost of ownership
- pricing: pricing matrix, cost estimation and flat cost allowances
"""

from .climate import adjust_for_climate, resolve_climate
from .cooling import COOLING_TYPES, size_cooling, size_pipe, thermal_distribution
from .electrical import size_electrical
from .metrics import (
    annual_energy,
    availability_model,
    baseline_pue,
    lifecycle_tco,
    reliability_profile,
)
from .power import REDUNDANCY_MODES, redundancy_factor, size_battery, size_generator, size_ups
from .pricing import DEFAULT_PRICING, estimate_costs, merge_pricing

__all__ = [
    "COOLING_TYPES",
    "REDUNDANCY_MODES",
    "DEFAULT_PRICING",
    "size_electrical",
    "size_cooling",
    "size_pipe",
    "resolve_climate",
    "adjust_for_climate",
    "thermal_distribution",
    "size_ups",
    "size_battery",
    "size_generator",
    "redundancy_factor",
    "baseline_pue",
    "annual_energy",
    "reliability_profile",
    "availability_model",
    "lifecycle_tco",
    "estimate_costs",
    "merge_pricing",
]
