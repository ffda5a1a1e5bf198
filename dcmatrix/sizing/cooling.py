"""
Cooling sizing per technology.

Air uses rear-door heat exchangers (RDHX), DLC splits the rack heat between
the liquid loop and a residual air share, hybrid blends both, immersion
sizes tanks at four racks per tank.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

import numpy as np

from ..safe_access import round_half_up, safe_ceil, safe_divide

COOLING_TYPES = ("air", "dlc", "hybrid", "immersion")

RDHX_UNIT_KW = 150.0
RACKS_PER_IMMERSION_TANK = 4
IMMERSION_FLUID_SHARE = 0.8
DLC_LARGE_PIPE_KW = 1000.0

# Cooling-technology characteristics: PUE impact, water (L/h per kW), maintenance cost factor
# and the highest rack density (kW) the technology is rated for.
COOLING_PROFILES: Dict[str, Dict[str, float]] = {
    "air": {"pueImpact": 1.4, "waterUsage": 0.5, "costFactor": 1.0, "maxDensity": 75},
    "dlc": {"pueImpact": 1.15, "waterUsage": 1.2, "costFactor": 1.5, "maxDensity": 200},
    "hybrid": {"pueImpact": 1.25, "waterUsage": 0.9, "costFactor": 1.3, "maxDensity": 150},
    "immersion": {"pueImpact": 1.08, "waterUsage": 0.3, "costFactor": 2.0, "maxDensity": 250},
}

PIPE_SIZES_DN = np.array([50, 80, 100, 110, 125, 150, 160, 200, 250])
MAX_PIPE_VELOCITY = 2.5  # m/s
VELOCITY_WARNING = 3.0  # m/s


def cooling_profile(cooling_type: str) -> Dict[str, float]:
    return COOLING_PROFILES.get(cooling_type, COOLING_PROFILES["air"])


def rdhx_model_for_density(kw_per_rack: float) -> str:
    if kw_per_rack <= 15:
        return "basic"
    if kw_per_rack <= 30:
        return "standard"
    return "highDensity"


def size_cooling(
    cooling_type: str,
    total_it_load: float,
    kw_per_rack: float,
    total_racks: float,
    *,
    flow_rate_factor: float,
    dlc_residual_fraction: float,
    hybrid_ratio: float,
) -> Dict[str, Any]:
    """Cooling section for ``cooling_type`` (unknown types size as air)."""
    pue = cooling_profile(cooling_type)["pueImpact"]

    if cooling_type == "dlc":
        dlc_capacity = total_it_load * (1 - dlc_residual_fraction)
        return {
            "type": "dlc",
            "totalCapacity": total_it_load,
            "dlcCoolingCapacity": dlc_capacity,
            "residualCoolingCapacity": total_it_load * dlc_residual_fraction,
            "dlcFlowRate": dlc_capacity * flow_rate_factor,
            "pipingSize": "dn160" if dlc_capacity > DLC_LARGE_PIPE_KW else "dn110",
            "pue": pue,
        }

    if cooling_type == "hybrid":
        dlc_portion = total_it_load * hybrid_ratio
        air_portion = total_it_load * (1 - hybrid_ratio)
        return {
            "type": "hybrid",
            "totalCapacity": total_it_load,
            "dlcPortion": dlc_portion,
            "airPortion": air_portion,
            "dlcFlowRate": dlc_portion * flow_rate_factor,
            "rdhxUnits": safe_ceil(air_portion / RDHX_UNIT_KW),
            "rdhxModel": "average",
            "pipingSize": "dn110",
            "pue": pue,
        }

    if cooling_type == "immersion":
        capacity = total_it_load * 1.05
        return {
            "type": "immersion",
            "totalCapacity": capacity,
            "tanksNeeded": safe_ceil(total_racks / RACKS_PER_IMMERSION_TANK),
            "flowRate": capacity * flow_rate_factor * IMMERSION_FLUID_SHARE,
            "pipingSize": "dn110",
            "pue": pue,
        }

    capacity = total_it_load * 1.1
    return {
        "type": "air",
        "totalCapacity": capacity,
        "rdhxUnits": safe_ceil(capacity / RDHX_UNIT_KW),
        "rdhxModel": rdhx_model_for_density(kw_per_rack),
        "pipingSize": "none",
        "pue": pue,
    }


def thermal_distribution(total_it_load: float, cooling_type: str, *, dlc_residual_fraction: float,
                         hybrid_ratio: float) -> Dict[str, Any]:
    """Liquid/air split of the heat load and daily water use (L/day)."""
    liquid_share = {
        "dlc": 1 - dlc_residual_fraction,
        "hybrid": hybrid_ratio,
        "immersion": 1.0,
    }.get(cooling_type, 0.0)
    profile = cooling_profile(cooling_type)

    return {
        "type": cooling_type if cooling_type in COOLING_PROFILES else "air",
        "distribution": {
            "liquid": {
                "percentage": round_half_up(liquid_share * 100),
                "load": round_half_up(total_it_load * liquid_share),
            },
            "air": {
                "percentage": round_half_up((1 - liquid_share) * 100),
                "load": round_half_up(total_it_load * (1 - liquid_share)),
            },
        },
        "pue": profile["pueImpact"],
        "waterUsage": round_half_up(total_it_load * profile["waterUsage"] * 24),
    }


def size_pipe(flow_rate_lpm: float) -> Optional[Dict[str, Any]]:
    """
    Pick the smallest standard DN bore that keeps velocity at or below 2.5 m/s.

    ``flow_rate_lpm`` is the loop flow in L/min. Returns None for a dry loop.
    """
    if flow_rate_lpm <= 0:
        return None

    flow_m3s = flow_rate_lpm / 1000.0 / 60.0
    min_diameter_mm = math.sqrt(4 * flow_m3s / (math.pi * MAX_PIPE_VELOCITY)) * 1000.0

    idx = int(np.searchsorted(PIPE_SIZES_DN, min_diameter_mm, side="left"))
    diameter = int(PIPE_SIZES_DN[min(idx, len(PIPE_SIZES_DN) - 1)])

    area = math.pi * (diameter / 1000.0) ** 2 / 4
    velocity = safe_divide(flow_m3s, area, 0.0)

    return {
        "flowRate": flow_rate_lpm,
        "recommendedSize": f"DN{diameter}",
        "diameter": diameter,
        "actualVelocity": round(velocity, 2),
        "warning": (
            f"Flow velocity exceeds recommended maximum ({VELOCITY_WARNING:g} m/s)"
            if velocity > VELOCITY_WARNING else ""
        ),
    }
