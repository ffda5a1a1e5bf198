"""
Site climate adjustment of the cooling plant.

A climate supplies a cooling factor: a multiplier on the heat-rejection
capacity and loop flow the plant must be sized for. Sites hotter than a
temperate climate need more, colder sites less.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional

from ..safe_access import is_finite_number, round_half_up, safe_ceil
from .cooling import RDHX_UNIT_KW

CLIMATE_ZONES: Dict[str, float] = {
    "tropical": 1.2,
    "arid": 1.15,
    "temperate": 1.0,
    "continental": 0.95,
    "polar": 0.9,
}

# Upper absolute latitude of each zone band, equator outwards.
LATITUDE_BANDS = (
    (23.5, "tropical"),
    (35.0, "arid"),
    (50.0, "temperate"),
    (66.5, "continental"),
)

# DLC rejects heat through the liquid loop and feels half the climate effect.
DLC_CLIMATE_SENSITIVITY = 0.5

# Explicit factors outside (0, MAX_COOLING_FACTOR] are ignored.
MAX_COOLING_FACTOR = 3.0

ADJUSTED_FIELDS = {
    "dlc": ("dlcCoolingCapacity", "residualCoolingCapacity", "dlcFlowRate"),
    "hybrid": ("dlcPortion", "airPortion", "dlcFlowRate"),
}


def zone_for_latitude(latitude: float) -> str:
    for limit, zone in LATITUDE_BANDS:
        if abs(latitude) < limit:
            return zone
    return "polar"


def resolve_climate(climate_data: Any, latitude: Optional[float], cooling_type: str) -> Dict[str, Any]:
    """
    Climate for a site as ``{"zone", "coolingFactor"}``.

    An explicit ``coolingFactor`` in ``climate_data`` within range is used as is.
    Otherwise the factor comes from the zone, taken from ``climate_data["zone"]``
    or derived from the latitude, and DLC plants feel half of it.
    """
    data = climate_data if isinstance(climate_data, Mapping) else {}
    zone = data.get("zone")
    zone = zone.strip().lower() if isinstance(zone, str) else None

    factor = data.get("coolingFactor")
    if is_finite_number(factor) and 0 < factor <= MAX_COOLING_FACTOR:
        return {"zone": zone or "custom", "coolingFactor": float(factor)}

    if zone not in CLIMATE_ZONES:
        zone = zone_for_latitude(latitude) if is_finite_number(latitude) else "temperate"
    factor = CLIMATE_ZONES[zone]
    if cooling_type == "dlc":
        factor = 1.0 + (factor - 1.0) * DLC_CLIMATE_SENSITIVITY
    return {"zone": zone, "coolingFactor": factor}


def _note(factor: float) -> str:
    if factor > 1:
        return "Warm climate increases the cooling capacity required"
    if factor < 1:
        return "Cool climate reduces the cooling capacity required"
    return "Temperate climate, no adjustment"


def adjust_for_climate(cooling: Mapping[str, Any], climate: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Return a copy of a cooling section scaled by ``climate["coolingFactor"]``.

    Liquid designs scale their loop capacities and flow, air and immersion
    scale total capacity (air also re-counts its RDHX units). The factor and
    zone are recorded under ``climateAdjustment``. Without climate data the
    section is returned unchanged.
    """
    adjusted = copy.deepcopy(dict(cooling))
    if not climate:
        return adjusted

    factor = climate.get("coolingFactor")
    if not (is_finite_number(factor) and 0 < factor <= MAX_COOLING_FACTOR):
        factor = 1.0

    cooling_type = adjusted.get("type")
    keys = ADJUSTED_FIELDS.get(cooling_type, ("totalCapacity",))
    for key in keys:
        if is_finite_number(adjusted.get(key)):
            adjusted[key] = round_half_up(adjusted[key] * factor)
    if cooling_type == "air" and is_finite_number(adjusted.get("totalCapacity")):
        adjusted["rdhxUnits"] = safe_ceil(adjusted["totalCapacity"] / RDHX_UNIT_KW)

    adjusted["climateAdjustment"] = {
        "zone": climate.get("zone", "custom"),
        "factor": factor,
        "note": _note(factor),
    }
    return adjusted
