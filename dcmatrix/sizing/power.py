from __future__ import annotations

from typing import Any, Dict

from ..safe_access import round_half_up, safe_ceil, safe_divide

REDUNDANCY_MODES = ("N", "N+1", "2N", "2N+1")

# Capacity multiplier, reliability factor and description per redundancy scheme.
REDUNDANCY_CONFIGURATIONS: Dict[str, Dict[str, Any]] = {
    "N": {"description": "No redundancy", "capacityFactor": 1.0, "reliabilityFactor": 0.98},
    "N+1": {"description": "One redundant component", "capacityFactor": 1.2, "reliabilityFactor": 0.995},
    "2N": {
        "description": "Full redundancy (two complete systems)",
        "capacityFactor": 2.0,
        "reliabilityFactor": 0.9998,
    },
    "2N+1": {
        "description": "Full redundancy plus one component",
        "capacityFactor": 2.2,
        "reliabilityFactor": 0.99995,
    },
}

BATTERY_CABINET_KWH = 40.0
BATTERY_CABINET_KG = 1200
GENERATOR_STEP_KVA = 800


def redundancy_config(mode: str) -> Dict[str, Any]:
    return REDUNDANCY_CONFIGURATIONS.get(mode, REDUNDANCY_CONFIGURATIONS["N+1"])


def redundancy_factor(mode: str) -> float:
    return float(redundancy_config(mode)["capacityFactor"])


def ups_frame_size(total_modules: int) -> str:
    if total_modules <= 2:
        return "frame2Module"
    if total_modules <= 4:
        return "frame4Module"
    return "frame6Module"


def size_ups(
    total_it_load: float,
    factor: float,
    module_size: float,
    frame_max_modules: float,
) -> Dict[str, Any]:
    required = total_it_load * factor
    modules = safe_ceil(safe_divide(required, module_size, 0.0))
    return {
        "totalITLoad": total_it_load,
        "redundancyFactor": factor,
        "requiredCapacity": required,
        "moduleSize": module_size,
        "totalModulesNeeded": modules,
        "redundantModules": modules,
        "framesNeeded": safe_ceil(safe_divide(modules, frame_max_modules, 0.0)),
        "frameSize": ups_frame_size(modules),
    }


def size_battery(total_it_load: float, runtime_min: float, efficiency: float) -> Dict[str, Any]:
    energy = round_half_up(safe_divide(total_it_load * runtime_min, 60.0 * efficiency, 0.0))
    cabinets = safe_ceil(energy / BATTERY_CABINET_KWH)
    return {
        "runtime": runtime_min,
        "energyNeeded": energy,
        "cabinetsNeeded": cabinets,
        "totalWeight": cabinets * BATTERY_CABINET_KG,
    }


def generator_capacity(required_capacity: float, sizing_factor: float) -> int:
    """Round the headroom-adjusted requirement up to the next 800 kVA step."""
    return safe_ceil(required_capacity * sizing_factor / GENERATOR_STEP_KVA) * GENERATOR_STEP_KVA


def generator_model(capacity: float) -> str:
    if capacity <= 1000:
        return "1000kVA"
    if capacity <= 2000:
        return "2000kVA"
    return "3000kVA"


def size_generator(
    included: bool,
    required_capacity: float,
    *,
    sizing_factor: float,
    fuel_consumption_rate: float,
    fuel_tank_runtime: float,
) -> Dict[str, Any]:
    if not included:
        return {
            "included": False,
            "capacity": 0,
            "model": "none",
            "fuel": {"tankSize": 0, "consumption": 0, "runtime": 0},
        }

    capacity = generator_capacity(required_capacity, sizing_factor)
    consumption = capacity * fuel_consumption_rate
    return {
        "included": True,
        "capacity": capacity,
        "model": generator_model(capacity),
        "fuel": {
            "tankSize": consumption * fuel_tank_runtime,
            "consumption": consumption,
            "runtime": fuel_tank_runtime,
        },
    }
