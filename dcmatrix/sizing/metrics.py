"""
Operational metrics: reliability, PUE/energy, carbon and total cost of ownership.
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

from ..safe_access import round_half_up, safe_divide
from .cooling import cooling_profile
from .power import redundancy_config

HOURS_PER_YEAR = 8760
MINUTES_PER_YEAR = 365 * 24 * 60

BASELINE_PUE = {"air": 1.6, "dlc": 1.2, "hybrid": 1.3, "immersion": 1.1}
FALLBACK_PUE = 1.5
WASTE_HEAT_PUE_CREDIT = 0.1
WATER_RECYCLING_PUE_CREDIT = 0.05
MIN_PUE = 1.03
DEFAULT_WUE = 0.5
COOLING_OVERHEAD_SHARE = 0.7
POWER_OVERHEAD_SHARE = 0.3

RELIABILITY_BY_MODE = {
    "2N": {"tier": "Tier IV", "availability": "99.999%", "annualDowntime": 5.3},
    "N+1": {"tier": "Tier III", "availability": "99.99%", "annualDowntime": 52.6},
}
RELIABILITY_FALLBACK = {"tier": "Tier II", "availability": "99.9%", "annualDowntime": 526}
DEFAULT_MTBF_HOURS = 8760
DEFAULT_MTTR_HOURS = 4

CAPEX_PER_KW = 5000
ELECTRICITY_RATE = 0.12  # per kWh
MAINTENANCE_SHARE = 0.03
OPERATIONAL_SHARE = 0.02
INFLATION_RATE = 0.02
DISCOUNT_RATE = 0.05
LIFESPAN_YEARS = 10
GENERATOR_MAINTENANCE_SHARE = 0.15
HEAT_VALUE_PER_KWH = 0.05


def reliability_profile(redundancy_mode: str) -> Dict[str, Any]:
    """Tier, availability and downtime (min/yr) keyed on the redundancy scheme."""
    profile = dict(RELIABILITY_BY_MODE.get(redundancy_mode, RELIABILITY_FALLBACK))
    profile["mtbf"] = DEFAULT_MTBF_HOURS
    profile["mttr"] = DEFAULT_MTTR_HOURS
    return profile


def baseline_pue(cooling_type: str, waste_heat_recovery: bool, water_recycling: bool) -> float:
    pue = BASELINE_PUE.get(cooling_type, FALLBACK_PUE)
    if waste_heat_recovery:
        pue -= WASTE_HEAT_PUE_CREDIT
    if water_recycling:
        pue -= WATER_RECYCLING_PUE_CREDIT
    return max(MIN_PUE, pue)


def annual_energy(total_it_load: float, pue: float) -> Dict[str, float]:
    """Annual energy split (kWh) for a facility running flat out at ``pue``."""
    it = total_it_load * HOURS_PER_YEAR
    overhead = it * (pue - 1)
    return {
        "it": it,
        "cooling": overhead * COOLING_OVERHEAD_SHARE,
        "power": overhead * POWER_OVERHEAD_SHARE,
        "total": it * pue,
        "overhead": overhead,
    }


def grid_emissions(facility_load: float, co2_per_kwh: float, renewable_pct: float) -> int:
    """Tonnes CO2/yr from grid energy not covered by renewables."""
    return round_half_up(facility_load * HOURS_PER_YEAR * co2_per_kwh * (1 - renewable_pct / 100) / 1000)


def generator_emissions(
    capacity: float,
    *,
    test_hours: float,
    load_factor: float,
    co2_per_unit: float,
) -> int:
    """Tonnes CO2/yr from generator test runs."""
    return round_half_up(capacity * test_hours * load_factor * co2_per_unit / 1000)


def emissions_per_mwh(co2_per_kwh: float, renewable_pct: float) -> float:
    return co2_per_kwh * 1000 * (1 - renewable_pct / 100)


def emissions_avoided(facility_load: float, co2_per_kwh: float, renewable_pct: float) -> int:
    return round_half_up(facility_load * HOURS_PER_YEAR * co2_per_kwh * renewable_pct / 100 / 1000)


def flat_capex(total_it_load: float) -> float:
    return total_it_load * CAPEX_PER_KW


def flat_annual_opex(total_it_load: float) -> float:
    return total_it_load * HOURS_PER_YEAR * ELECTRICITY_RATE


def availability_model(
    redundancy_mode: str,
    has_generator: bool,
    *,
    mtbf_ups: float,
    mtbf_generator: float,
    mtbf_cooling: float,
    mttr_ups: float,
    mttr_generator: float,
    mttr_cooling: float,
) -> Dict[str, Any]:
    """
    Component availability from MTBF/MTTR, combined for the power and cooling
    paths and scaled by the redundancy reliability factor.
    """
    config = redundancy_config(redundancy_mode)

    ups = safe_divide(mtbf_ups, mtbf_ups + mttr_ups, 0.0)
    generator = safe_divide(mtbf_generator, mtbf_generator + mttr_generator, 0.0) if has_generator else 0.0
    cooling = safe_divide(mtbf_cooling, mtbf_cooling + mttr_cooling, 0.0)

    # Generator backs the UPS path in parallel.
    power = 1 - (1 - ups) * (1 - generator) if has_generator else ups
    availability = power * cooling * config["reliabilityFactor"]

    if availability > 0.9999:
        tier = "Tier IV"
    elif availability > 0.999:
        tier = "Tier III"
    elif availability > 0.99:
        tier = "Tier II"
    else:
        tier = "Tier I"

    return {
        "availabilityPercentage": f"{availability * 100:.4f}",
        "annualDowntimeMinutes": round_half_up((1 - availability) * MINUTES_PER_YEAR),
        "tier": tier,
        "components": {
            "ups": f"{ups * 100:.4f}%",
            "generator": f"{generator * 100:.4f}%" if has_generator else "N/A",
            "cooling": f"{cooling * 100:.4f}%",
        },
        "redundancyImpact": config["description"],
    }


def water_usage(total_it_load: float, cooling_type: str, recycling: bool, recovery_rate: float) -> Dict[str, Any]:
    hourly = total_it_load * cooling_profile(cooling_type)["waterUsage"]  # L/h
    annual = hourly * HOURS_PER_YEAR / 1000  # m3/yr
    if recycling:
        annual *= 1 - recovery_rate
    return {
        "hourly": round_half_up(hourly * 10) / 10,
        "annual": round_half_up(annual),
        "recyclingEnabled": recycling,
        "recyclingRate": recovery_rate if recycling else 0,
    }


def waste_heat_recovery(total_energy: float, enabled: bool, recovery_rate: float) -> Dict[str, Any]:
    recovered = total_energy * recovery_rate if enabled else 0.0
    return {
        "enabled": enabled,
        "recoveredHeat": round_half_up(recovered),
        "potentialSavings": round_half_up(recovered * HEAT_VALUE_PER_KWH),
    }


def lifecycle_tco(
    capex: float,
    annual_energy_kwh: float,
    cooling_type: str,
    include_generator: bool,
    *,
    maintenance_share: float,
    operational_share: float,
) -> Dict[str, Any]:
    """TCO with escalating, discounted operating costs over the plant lifespan."""
    energy = annual_energy_kwh * ELECTRICITY_RATE
    base_maintenance = capex * maintenance_share
    maintenance = base_maintenance * cooling_profile(cooling_type)["costFactor"]
    if include_generator:
        maintenance += base_maintenance * GENERATOR_MAINTENANCE_SHARE
    operational = capex * operational_share
    annual = energy + maintenance + operational

    years = np.arange(1, LIFESPAN_YEARS + 1)
    escalation = (1 + INFLATION_RATE) ** years / (1 + DISCOUNT_RATE) ** years
    npv = capex + float(np.sum(annual * escalation))

    return {
        "capex": capex,
        "opex": {
            "annual": round_half_up(annual),
            "energy": round_half_up(energy),
            "maintenance": round_half_up(maintenance),
            "operational": round_half_up(operational),
        },
        "total5Year": round_half_up(capex + annual * 5),
        "total10Year": round_half_up(capex + annual * 10),
        "npv": round_half_up(npv),
        "annualizedTco": round_half_up(npv / LIFESPAN_YEARS),
        "assumptions": {
            "electricityRate": ELECTRICITY_RATE,
            "inflationRate": INFLATION_RATE,
            "discountRate": DISCOUNT_RATE,
            "lifespan": LIFESPAN_YEARS,
        },
    }
