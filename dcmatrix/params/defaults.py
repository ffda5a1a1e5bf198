"""Compiled-in calculation parameters (wire format, camelCase keys)."""

from __future__ import annotations

from typing import Any, Dict


DEFAULT_CALCULATION_PARAMS: Dict[str, Dict[str, Any]] = {
    "electrical": {
        "voltageFactor": 400,          # V
        "powerFactor": 0.9,
        "busbarsPerRow": 1,
        "redundancyMode": "N+1",
    },
    "cooling": {
        "deltaT": 10,                  # degC
        "flowRateFactor": 2.22,        # L/min/kW
        "dlcResidualHeatFraction": 0.25,
        "chillerEfficiencyFactor": 1.0,
        "hybridCoolingRatio": 0.7,
        "waterUsagePerKwh": 1.8,
    },
    "power": {
        "upsModuleSize": 250,          # kW
        "upsFrameMaxModules": 8,
        "batteryRuntime": 5,           # min
        "batteryEfficiency": 0.95,
        "eHouseBaseSqm": 20,
        "eHouseBatterySqm": 5,
    },
    "costFactors": {
        "installationPercentage": 0.15,
        "engineeringPercentage": 0.10,
        "contingencyPercentage": 0.05,
        "maintenancePercentage": 0.03,
        "operationalPercentage": 0.02,
    },
    "coolingThresholds": {
        "airCooledMax": 75,            # kW/rack
        "recommendedDlcMin": 75,
        "hybridCoolingMin": 50,
        "hybridCoolingMax": 150,
    },
    "sustainability": {
        "co2PerKwh": 0.35,             # kg CO2/kWh
        "waterUsagePerMwh": 1.8,
        "generatorCo2PerLiter": 0.8,
        "waterRecoveryRate": 0.6,
        "wasteHeatRecoveryRate": 0.4,
    },
    "generator": {
        "sizingFactor": 1.25,
        "fuelConsumptionRate": 0.2,    # L/h per kVA
        "fuelTankRuntime": 8,          # h
        "testHours": 24,
        "loadFactor": 0.8,
    },
    "reliability": {
        "mtbfUps": 250000,             # h
        "mtbfGenerator": 175000,
        "mtbfCooling": 200000,
        "mttrUps": 4,
        "mttrGenerator": 6,
        "mttrCooling": 8,
    },
}
