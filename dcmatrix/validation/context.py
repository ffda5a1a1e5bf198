from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, Mapping, Optional

from ..params.defaults import DEFAULT_CALCULATION_PARAMS
from ..params.structure import merge_params
from ..safe_access import get_nested_property, to_number
from ..sizing.climate import adjust_for_climate, resolve_climate
from ..sizing.cooling import size_cooling
from ..sizing.electrical import size_electrical
from ..sizing.metrics import baseline_pue, reliability_profile
from ..sizing import power as power_sizing
from .inputs import CalculationInput


@dataclass(frozen=True)
class DesignContext:
    """
    A validated input together with the merged parameter document.

    Exposes the derived quantities the default formulas are written against.
    Coefficients are read leniently: a wrong-typed parameter falls back to
    its compiled-in value, so synthesis never fails on bad configuration.
    """

    inputs: CalculationInput
    params: Mapping[str, Any] = field(default_factory=lambda: merge_params(None))

    @classmethod
    def build(cls, inputs: CalculationInput, params: Any = None) -> "DesignContext":
        return cls(inputs=inputs, params=merge_params(params))

    def coefficient(self, path: str) -> float:
        fallback = to_number(get_nested_property(DEFAULT_CALCULATION_PARAMS, path), 0.0)
        return to_number(get_nested_property(self.params, path), fallback)

    # Input shortcuts

    @property
    def kw_per_rack(self) -> float:
        return self.inputs.kw_per_rack

    @property
    def total_racks(self) -> int:
        return self.inputs.total_racks

    @property
    def cooling_type(self) -> str:
        return self.inputs.cooling_type

    @property
    def redundancy_mode(self) -> str:
        return self.inputs.redundancy_mode

    @property
    def include_generator(self) -> bool:
        return self.inputs.include_generator

    @property
    def renewable_percentage(self) -> float:
        return self.inputs.sustainability_options.renewable_energy_percentage

    # Derived quantities

    @cached_property
    def total_it_load(self) -> float:
        return self.kw_per_rack * self.total_racks

    @cached_property
    def redundancy_factor(self) -> float:
        return power_sizing.redundancy_factor(self.redundancy_mode)

    @cached_property
    def required_capacity(self) -> float:
        return self.total_it_load * self.redundancy_factor

    @cached_property
    def pue(self) -> float:
        options = self.inputs.sustainability_options
        return baseline_pue(self.cooling_type, options.enable_waste_heat_recovery, options.enable_water_recycling)

    @cached_property
    def facility_load(self) -> float:
        return self.total_it_load * self.pue

    @cached_property
    def generator_capacity(self) -> int:
        if not self.include_generator:
            return 0
        return power_sizing.generator_capacity(self.required_capacity, self.coefficient("generator.sizingFactor"))

    # Sized sections

    @cached_property
    def electrical(self) -> Dict[str, Any]:
        return size_electrical(
            self.kw_per_rack,
            self.coefficient("electrical.voltageFactor"),
            self.coefficient("electrical.powerFactor"),
        )

    def climate(self, cooling_type: Optional[str] = None) -> Optional[Dict[str, Any]]:
        location = self.inputs.location
        if location is None:
            return None
        return resolve_climate(location.climate_data, location.latitude, cooling_type or self.cooling_type)

    def cooling(self, cooling_type: Optional[str] = None) -> Dict[str, Any]:
        sized = size_cooling(
            cooling_type or self.cooling_type,
            self.total_it_load,
            self.kw_per_rack,
            self.total_racks,
            flow_rate_factor=self.coefficient("cooling.flowRateFactor"),
            dlc_residual_fraction=self.coefficient("cooling.dlcResidualHeatFraction"),
            hybrid_ratio=self.coefficient("cooling.hybridCoolingRatio"),
        )
        return adjust_for_climate(sized, self.climate(cooling_type))

    @cached_property
    def power(self) -> Dict[str, Any]:
        return {
            "ups": power_sizing.size_ups(
                self.total_it_load,
                self.redundancy_factor,
                self.coefficient("power.upsModuleSize"),
                self.coefficient("power.upsFrameMaxModules"),
            ),
            "battery": power_sizing.size_battery(
                self.total_it_load,
                self.inputs.battery_runtime,
                self.coefficient("power.batteryEfficiency"),
            ),
            "generator": power_sizing.size_generator(
                self.include_generator,
                self.required_capacity,
                sizing_factor=self.coefficient("generator.sizingFactor"),
                fuel_consumption_rate=self.coefficient("generator.fuelConsumptionRate"),
                fuel_tank_runtime=self.coefficient("generator.fuelTankRuntime"),
            ),
        }

    @cached_property
    def reliability(self) -> Dict[str, Any]:
        return reliability_profile(self.redundancy_mode)
