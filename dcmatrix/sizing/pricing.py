"""
Pricing matrix and capital cost estimation.

``estimate_costs`` prices a sized design against the pricing matrix. The
``FALLBACK_*`` constants are the flat allowances used when a stored cost
breakdown has to be rebuilt without the original pricing.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

from ..safe_access import round_half_up, safe_divide, to_number

DEFAULT_PRICING: Dict[str, Dict[str, float]] = {
    "busbar": {"base1250A": 42000, "base2000A": 65000, "perMeter": 1200, "copperPremium": 1.0},
    "tapOffBox": {
        "standard63A": 1200,
        "custom100A": 1500,
        "custom150A": 1800,
        "custom200A": 2100,
        "custom250A": 2400,
    },
    "rpdu": {"standard80A": 3500, "standard112A": 4200},
    "rdhx": {"basic": 6000, "standard": 8000, "highDensity": 12000, "average": 8000, "highEnd": 12000},
    "piping": {"dn110PerMeter": 350, "dn160PerMeter": 520, "valveDn110": 1200, "valveDn160": 1800},
    "cooler": {
        "tcs310aXht": 75000,
        "grundfosPump": 15000,
        "bufferTank": 8000,
        "immersionTank": 45000,
        "immersionCDU": 60000,
    },
    "ups": {"frame2Module": 85000, "frame4Module": 110000, "frame6Module": 130000, "module250kw": 45000},
    "battery": {"revoTp240Cabinet": 35000},
    "generator": {
        "generator1000kva": 180000,
        "generator2000kva": 320000,
        "generator3000kva": 450000,
        "fuelTankPerLiter": 1.0,
    },
    "eHouse": {"base": 120000, "perSqMeter": 5000},
    "sustainability": {
        "heatRecoverySystem": 150000,
        "waterRecyclingSystem": 80000,
        "solarPanelPerKw": 900,
        "batteryStoragePerKwh": 400,
    },
}

BUSBAR_RUN_METERS = 30
DLC_PIPING_METERS = 100
DLC_VALVES = 10
SECONDARY_PIPING_METERS = 50
HYBRID_CHILLER_SHARE = 0.7
GENERATOR_EHOUSE_SQM = 30
SOLAR_OVERSIZE = 1.5

FALLBACK_BUSBAR = 50000
FALLBACK_TAP_OFF_PER_RACK = 1200
FALLBACK_RPDU_PER_RACK = 800
FALLBACK_AIR_COOLING = 60000
FALLBACK_LIQUID_COOLING = 150000
FALLBACK_UPS = 220000
FALLBACK_BATTERY = 80000
FALLBACK_GENERATOR = 200000
FALLBACK_INFRASTRUCTURE = 250000
FALLBACK_SUSTAINABILITY = 0
FALLBACK_INSTALLATION_RATE = 0.15
FALLBACK_ENGINEERING_RATE = 0.10
FALLBACK_CONTINGENCY_RATE = 0.10


def merge_pricing(overrides: Any) -> Dict[str, Dict[str, float]]:
    """Overlay a (partial) pricing document on ``DEFAULT_PRICING``; bad prices are ignored."""
    pricing = copy.deepcopy(DEFAULT_PRICING)
    if not isinstance(overrides, Mapping):
        return pricing
    for group, prices in overrides.items():
        if not isinstance(prices, Mapping):
            continue
        target = pricing.setdefault(group, {})
        for key, value in prices.items():
            target[key] = to_number(value, target.get(key, 0.0))
    return pricing


def _price(pricing: Mapping[str, Mapping[str, float]], group: str, key: str) -> float:
    return float(pricing.get(group, {}).get(key, 0.0))


def busbar_cost(rating_a: float, pricing: Mapping[str, Mapping[str, float]]) -> float:
    base = _price(pricing, "busbar", "base1250A" if rating_a <= 1250 else "base2000A")
    return base + _price(pricing, "busbar", "perMeter") * BUSBAR_RUN_METERS


def cooling_cost(cooling: Mapping[str, Any], pricing: Mapping[str, Mapping[str, float]]) -> float:
    cooling_type = cooling.get("type", "air")

    if cooling_type == "dlc":
        large = cooling.get("pipingSize") == "dn160"
        return (
            _price(pricing, "cooler", "tcs310aXht")
            + _price(pricing, "cooler", "grundfosPump")
            + _price(pricing, "cooler", "bufferTank")
            + _price(pricing, "piping", "dn160PerMeter" if large else "dn110PerMeter") * DLC_PIPING_METERS
            + _price(pricing, "piping", "valveDn160" if large else "valveDn110") * DLC_VALVES
        )

    if cooling_type == "hybrid":
        liquid = (
            _price(pricing, "cooler", "tcs310aXht") * HYBRID_CHILLER_SHARE
            + _price(pricing, "cooler", "grundfosPump")
            + _price(pricing, "cooler", "bufferTank")
            + _price(pricing, "piping", "dn110PerMeter") * SECONDARY_PIPING_METERS
        )
        air = _price(pricing, "rdhx", cooling.get("rdhxModel", "average")) * max(1, cooling.get("rdhxUnits", 1))
        return liquid + air

    if cooling_type == "immersion":
        return (
            _price(pricing, "cooler", "immersionTank") * cooling.get("tanksNeeded", 0)
            + _price(pricing, "cooler", "immersionCDU")
            + _price(pricing, "piping", "dn110PerMeter") * SECONDARY_PIPING_METERS
        )

    return _price(pricing, "rdhx", cooling.get("rdhxModel", "standard")) * cooling.get("rdhxUnits", 0)


def generator_cost(generator: Mapping[str, Any], pricing: Mapping[str, Mapping[str, float]]) -> float:
    if not generator.get("included"):
        return 0.0
    capacity = generator.get("capacity", 0)
    if capacity <= 1000:
        key = "generator1000kva"
    elif capacity <= 2000:
        key = "generator2000kva"
    else:
        key = "generator3000kva"
    tank = generator.get("fuel", {}).get("tankSize", 0)
    return _price(pricing, "generator", key) + tank * _price(pricing, "generator", "fuelTankPerLiter")


def estimate_costs(
    design: Mapping[str, Any],
    pricing: Mapping[str, Mapping[str, float]],
    *,
    installation_rate: float,
    engineering_rate: float,
    contingency_rate: float,
    e_house_base_sqm: float,
    e_house_battery_sqm: float,
) -> Dict[str, Any]:
    """
    Price a sized design.

    ``design`` carries ``kwPerRack``, ``totalRacks``, ``busbarRating``,
    ``sustainabilityOptions`` and the sized ``electrical``, ``cooling`` and
    ``power`` sections.
    """
    racks = design["totalRacks"]
    cooling = design["cooling"]
    ups = design["power"]["ups"]
    battery = design["power"]["battery"]
    generator = design["power"]["generator"]
    options = design["sustainabilityOptions"]

    tap_off_key = "custom250A" if cooling.get("type") == "dlc" else design["electrical"]["tapOffBox"]
    busbar = busbar_cost(design["busbarRating"], pricing)
    tap_off = _price(pricing, "tapOffBox", tap_off_key) * racks
    rpdu = _price(pricing, "rpdu", design["electrical"]["rpdu"]) * racks

    cooling_total = cooling_cost(cooling, pricing)

    ups_cost = (
        _price(pricing, "ups", ups["frameSize"]) * ups["framesNeeded"]
        + _price(pricing, "ups", "module250kw") * ups["redundantModules"]
    )
    battery_cost = _price(pricing, "battery", "revoTp240Cabinet") * battery["cabinetsNeeded"]
    gen_cost = generator_cost(generator, pricing)

    e_house_sqm = (
        e_house_base_sqm * ups["framesNeeded"]
        + e_house_battery_sqm * battery["cabinetsNeeded"]
        + (GENERATOR_EHOUSE_SQM if generator.get("included") else 0)
    )
    infrastructure = _price(pricing, "eHouse", "base") + _price(pricing, "eHouse", "perSqMeter") * e_house_sqm

    sustainability = 0.0
    if options["enableWasteHeatRecovery"]:
        sustainability += _price(pricing, "sustainability", "heatRecoverySystem")
    if options["enableWaterRecycling"]:
        sustainability += _price(pricing, "sustainability", "waterRecyclingSystem")
    renewable_pct = options["renewableEnergyPercentage"]
    if renewable_pct > 0:
        solar_kw = design["kwPerRack"] * racks * renewable_pct / 100 * SOLAR_OVERSIZE
        sustainability += solar_kw * _price(pricing, "sustainability", "solarPanelPerKw")

    electrical_total = busbar + tap_off + rpdu
    power_total = ups_cost + battery_cost + gen_cost
    equipment = electrical_total + cooling_total + power_total + infrastructure + sustainability

    installation = equipment * installation_rate
    engineering = equipment * engineering_rate
    contingency = equipment * contingency_rate
    total = equipment + installation + engineering + contingency

    return {
        "electrical": {
            "busbar": round_half_up(busbar),
            "tapOffBox": round_half_up(tap_off),
            "rpdu": round_half_up(rpdu),
            "total": round_half_up(electrical_total),
        },
        "cooling": round_half_up(cooling_total),
        "power": {
            "ups": round_half_up(ups_cost),
            "battery": round_half_up(battery_cost),
            "generator": round_half_up(gen_cost),
            "total": round_half_up(power_total),
        },
        "infrastructure": round_half_up(infrastructure),
        "sustainability": round_half_up(sustainability),
        "equipmentTotal": round_half_up(equipment),
        "installation": round_half_up(installation),
        "engineering": round_half_up(engineering),
        "contingency": round_half_up(contingency),
        "totalProjectCost": round_half_up(total),
        "costPerRack": round_half_up(safe_divide(total, racks, 0.0)),
        "costPerKw": round_half_up(safe_divide(total, design["kwPerRack"] * racks, 0.0)),
    }
