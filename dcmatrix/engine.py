from __future__ import annotations

from typing import Any, Dict, Mapping

from .params.models import CalculationParams
from .sizing import cooling as cooling_sizing
from .sizing import metrics
from .sizing.pricing import estimate_costs
from .validation.context import DesignContext
from .validation.inputs import CalculationInput


def _reliability(ctx: DesignContext) -> Dict[str, Any]:
    section = dict(ctx.reliability)
    section["availabilityModel"] = metrics.availability_model(
        ctx.redundancy_mode,
        ctx.include_generator,
        mtbf_ups=ctx.coefficient("reliability.mtbfUps"),
        mtbf_generator=ctx.coefficient("reliability.mtbfGenerator"),
        mtbf_cooling=ctx.coefficient("reliability.mtbfCooling"),
        mttr_ups=ctx.coefficient("reliability.mttrUps"),
        mttr_generator=ctx.coefficient("reliability.mttrGenerator"),
        mttr_cooling=ctx.coefficient("reliability.mttrCooling"),
    )
    return section


def _sustainability(ctx: DesignContext) -> Dict[str, Any]:
    options = ctx.inputs.sustainability_options
    energy = metrics.annual_energy(ctx.total_it_load, ctx.pue)
    return {
        "pue": ctx.pue,
        "wue": metrics.DEFAULT_WUE,
        "annualEnergyConsumption": energy,
        "waterUsage": metrics.water_usage(
            ctx.total_it_load,
            ctx.cooling_type,
            options.enable_water_recycling,
            ctx.coefficient("sustainability.waterRecoveryRate"),
        ),
        "wasteHeatRecovery": metrics.waste_heat_recovery(
            energy["total"],
            options.enable_waste_heat_recovery,
            ctx.coefficient("sustainability.wasteHeatRecoveryRate"),
        ),
    }


def _carbon(ctx: DesignContext) -> Dict[str, Any]:
    co2 = ctx.coefficient("sustainability.co2PerKwh")
    renewable = ctx.renewable_percentage

    grid = metrics.grid_emissions(ctx.facility_load, co2, renewable)
    generator = 0
    if ctx.include_generator:
        generator = metrics.generator_emissions(
            ctx.generator_capacity,
            test_hours=ctx.coefficient("generator.testHours"),
            load_factor=ctx.coefficient("generator.loadFactor"),
            co2_per_unit=ctx.coefficient("sustainability.generatorCo2PerLiter"),
        )

    return {
        "totalAnnualEmissions": grid + generator,
        "gridEmissions": grid,
        "generatorEmissions": generator,
        "emissionsPerMWh": metrics.emissions_per_mwh(co2, renewable),
        "renewableImpact": {
            "percentage": renewable,
            "emissionsAvoided": metrics.emissions_avoided(ctx.facility_load, co2, renewable),
        },
    }


def _pipe_sizing(cooling: Mapping[str, Any]) -> Any:
    if cooling["type"] not in ("dlc", "hybrid"):
        return None
    return cooling_sizing.size_pipe(cooling["dlcFlowRate"])


def run_engine(
    inputs: CalculationInput,
    params: CalculationParams | Mapping[str, Any] | None,
    pricing: Mapping[str, Mapping[str, float]],
) -> Dict[str, Any]:
    """
    Size and price a design:
    - electrical distribution, cooling plant, UPS/battery/generator from the shared formulas
    - capital cost from the pricing matrix
    - reliability, sustainability, carbon and lifecycle TCO
    - thermal split and loop pipe sizing

    Raises on malformed pricing; callers pass the output through the result
    validator either way.
    """
    ctx = DesignContext.build(inputs, params)

    electrical = dict(ctx.electrical)
    cooling = ctx.cooling()
    power = ctx.power

    busbar_rating = int(electrical["busbarSize"][len("busbar"):-1])
    cost = estimate_costs(
        {
            "kwPerRack": ctx.kw_per_rack,
            "totalRacks": ctx.total_racks,
            "busbarRating": busbar_rating,
            "sustainabilityOptions": inputs.sustainability_options.model_dump(by_alias=True),
            "electrical": electrical,
            "cooling": cooling,
            "power": power,
        },
        pricing,
        installation_rate=ctx.coefficient("costFactors.installationPercentage"),
        engineering_rate=ctx.coefficient("costFactors.engineeringPercentage"),
        contingency_rate=ctx.coefficient("costFactors.contingencyPercentage"),
        e_house_base_sqm=ctx.coefficient("power.eHouseBaseSqm"),
        e_house_battery_sqm=ctx.coefficient("power.eHouseBatterySqm"),
    )

    sustainability = _sustainability(ctx)
    tco = metrics.lifecycle_tco(
        cost["totalProjectCost"],
        sustainability["annualEnergyConsumption"]["total"],
        ctx.cooling_type,
        ctx.include_generator,
        maintenance_share=ctx.coefficient("costFactors.maintenancePercentage"),
        operational_share=ctx.coefficient("costFactors.operationalPercentage"),
    )

    return {
        "rack": {
            "powerDensity": ctx.kw_per_rack,
            "coolingType": ctx.cooling_type,
            "totalRacks": ctx.total_racks,
            "totalITLoad": ctx.total_it_load,
        },
        "electrical": electrical,
        "cooling": cooling,
        "power": power,
        "cost": cost,
        "reliability": _reliability(ctx),
        "sustainability": sustainability,
        "carbonFootprint": _carbon(ctx),
        "tco": tco,
        "thermalDistribution": cooling_sizing.thermal_distribution(
            ctx.total_it_load,
            ctx.cooling_type,
            dlc_residual_fraction=ctx.coefficient("cooling.dlcResidualHeatFraction"),
            hybrid_ratio=ctx.coefficient("cooling.hybridCoolingRatio"),
        ),
        "pipeSizing": _pipe_sizing(cooling),
    }
