from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, confloat
from pydantic.alias_generators import to_camel


RedundancyMode = Literal["N", "N+1", "2N", "2N+1"]

Fraction = confloat(ge=0, le=1)
OpenFraction = confloat(gt=0, lt=1)
UnitFraction = confloat(gt=0, le=1)


class ParamsSection(BaseModel):
    """Common config: camelCase on the wire, strict leaf types, extra keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        allow_inf_nan=False,
        extra="allow",
    )


class ElectricalParams(ParamsSection):
    voltage_factor: PositiveFloat = Field(..., description="Distribution voltage (V).")
    power_factor: UnitFraction = Field(..., description="Load power factor (0-1].")
    busbars_per_row: PositiveInt = Field(..., description="Busbars installed per rack row.")
    redundancy_mode: RedundancyMode = Field(..., description="Default redundancy scheme.")


class CoolingParams(ParamsSection):
    delta_t: PositiveFloat = Field(..., description="Supply/return temperature delta (degC).")
    flow_rate_factor: PositiveFloat = Field(..., description="Coolant flow per kW (L/min/kW).")
    dlc_residual_heat_fraction: OpenFraction = Field(
        ..., description="Share of DLC rack heat still rejected to air."
    )
    chiller_efficiency_factor: PositiveFloat = Field(..., description="Chiller efficiency multiplier.")
    hybrid_cooling_ratio: UnitFraction = Field(0.7, description="Liquid share of a hybrid design.")
    water_usage_per_kwh: confloat(ge=0) = Field(1.8, description="Cooling water use (L/kWh).")


class PowerParams(ParamsSection):
    ups_module_size: PositiveFloat = Field(..., description="UPS module rating (kW).")
    ups_frame_max_modules: PositiveInt = Field(..., description="Modules per UPS frame.")
    battery_runtime: PositiveFloat = Field(..., description="Default battery autonomy (min).")
    battery_efficiency: UnitFraction = Field(..., description="Battery discharge efficiency.")
    e_house_base_sqm: confloat(ge=0) = Field(20.0, description="E-house floor area per UPS frame (m2).")
    e_house_battery_sqm: confloat(ge=0) = Field(5.0, description="E-house floor area per battery cabinet (m2).")


class CostFactorParams(ParamsSection):
    installation_percentage: Fraction = Field(..., description="Installation share of equipment cost.")
    engineering_percentage: Fraction = Field(..., description="Engineering share of equipment cost.")
    contingency_percentage: Fraction = Field(..., description="Contingency share of equipment cost.")
    maintenance_percentage: Fraction = Field(0.03, description="Annual maintenance share of capex.")
    operational_percentage: Fraction = Field(0.02, description="Annual operations share of capex.")


class CoolingThresholds(ParamsSection):
    air_cooled_max: PositiveFloat = Field(75.0, description="Highest kW/rack served by air.")
    recommended_dlc_min: PositiveFloat = Field(75.0, description="kW/rack from which DLC is recommended.")
    hybrid_cooling_min: PositiveFloat = Field(50.0, description="Lower kW/rack bound for hybrid designs.")
    hybrid_cooling_max: PositiveFloat = Field(150.0, description="Upper kW/rack bound for hybrid designs.")


class SustainabilityParams(ParamsSection):
    co2_per_kwh: confloat(ge=0) = Field(0.35, description="Grid carbon intensity (kg CO2/kWh).")
    water_usage_per_mwh: confloat(ge=0) = Field(1.8, description="Site water use (m3/MWh).")
    generator_co2_per_liter: confloat(ge=0) = Field(0.8, description="Diesel carbon intensity (kg CO2/kWh).")
    water_recovery_rate: Fraction = Field(0.6, description="Share of water recovered when recycling.")
    waste_heat_recovery_rate: Fraction = Field(0.4, description="Share of heat recovered when enabled.")


class GeneratorParams(ParamsSection):
    sizing_factor: PositiveFloat = Field(1.25, description="Generator headroom over UPS capacity.")
    fuel_consumption_rate: PositiveFloat = Field(0.2, description="Fuel burn (L/h per kVA).")
    fuel_tank_runtime: PositiveFloat = Field(8.0, description="Tank autonomy at full load (h).")
    test_hours: confloat(ge=0) = Field(24.0, description="Annual test run hours.")
    load_factor: UnitFraction = Field(0.8, description="Load during test runs.")


class ReliabilityParams(ParamsSection):
    mtbf_ups: PositiveFloat = Field(250000.0, description="UPS MTBF (h).")
    mtbf_generator: PositiveFloat = Field(175000.0, description="Generator MTBF (h).")
    mtbf_cooling: PositiveFloat = Field(200000.0, description="Cooling plant MTBF (h).")
    mttr_ups: PositiveFloat = Field(4.0, description="UPS MTTR (h).")
    mttr_generator: PositiveFloat = Field(6.0, description="Generator MTTR (h).")
    mttr_cooling: PositiveFloat = Field(8.0, description="Cooling plant MTTR (h).")


class CalculationParams(ParamsSection):
    electrical: ElectricalParams
    cooling: CoolingParams
    power: PowerParams
    cost_factors: CostFactorParams
    cooling_thresholds: CoolingThresholds
    sustainability: SustainabilityParams
    generator: GeneratorParams
    reliability: ReliabilityParams


SECTION_MODELS = {
    "electrical": ElectricalParams,
    "cooling": CoolingParams,
    "power": PowerParams,
    "costFactors": CostFactorParams,
    "coolingThresholds": CoolingThresholds,
    "sustainability": SustainabilityParams,
    "generator": GeneratorParams,
    "reliability": ReliabilityParams,
}

# Sections an upstream editor must always supply.
REQUIRED_SECTIONS = ("electrical", "cooling", "power", "costFactors")
