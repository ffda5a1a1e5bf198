"""
Result Section Repair
=====================

Each of the nine result sections is described by a table of ``FieldRule``s:
a dotted path inside the section, the primitive kind the leaf must have and
a default formula over the ``DesignContext`` and the section as repaired so
far. Rules run in table order, so a derived leaf (a subtotal, a multi-year
total) is computed from siblings that are already valid.

The same tables drive both per-field repair of a supplied section and
from-scratch synthesis of a missing one.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from ..diagnostics import ERROR, WARN, DiagnosticSink, emit
from ..safe_access import get_nested_property, is_finite_number, round_half_up, safe_divide, set_nested_property
from ..sizing import metrics, pricing
from ..sizing.cooling import COOLING_TYPES
from .context import DesignContext

SOURCE = "validateCalculationResults"

NUMBER = "number"
STRING = "string"
BOOL = "bool"

Default = Callable[[DesignContext, Dict[str, Any]], Any]


@dataclass(frozen=True)
class FieldRule:
    path: str
    kind: str
    default: Default
    choices: Optional[Tuple[str, ...]] = None

    def accepts(self, value: Any) -> bool:
        if self.kind == NUMBER:
            return is_finite_number(value)
        if self.kind == BOOL:
            return isinstance(value, bool)
        if not isinstance(value, str):
            return False
        return self.choices is None or value in self.choices

    def resolve(self, ctx: DesignContext, section: Dict[str, Any]) -> Any:
        value = self.default(ctx, section)
        if self.kind == NUMBER and not is_finite_number(value):
            return 0
        return value


def _at(section: Mapping[str, Any], path: str) -> float:
    return get_nested_property(section, path, 0)


def _sum(*paths: str) -> Default:
    return lambda ctx, out: sum(_at(out, p) for p in paths)


def _sized(attr: str, path: str) -> Default:
    """Default read from one of the context's sized sections."""
    return lambda ctx, out: get_nested_property(getattr(ctx, attr), path)


def _number(path: str, default: Default) -> FieldRule:
    return FieldRule(path, NUMBER, default)


def _string(path: str, default: Default, choices: Optional[Tuple[str, ...]] = None) -> FieldRule:
    return FieldRule(path, STRING, default, choices)


# rack

RACK_RULES = (
    _number("powerDensity", lambda ctx, out: ctx.kw_per_rack),
    _string("coolingType", lambda ctx, out: ctx.cooling_type, COOLING_TYPES),
    _number("totalRacks", lambda ctx, out: ctx.total_racks),
    _number("totalITLoad", lambda ctx, out: ctx.total_it_load),
)


# electrical

ELECTRICAL_RULES = (
    _number("currentPerRow", _sized("electrical", "currentPerRow")),
    _string("busbarSize", _sized("electrical", "busbarSize")),
    _number("currentPerRack", _sized("electrical", "currentPerRack")),
    _string("tapOffBox", _sized("electrical", "tapOffBox")),
    _string("rpdu", _sized("electrical", "rpdu")),
    _string("multiplicityWarning", _sized("electrical", "multiplicityWarning")),
)


# cooling

def _cooling_leaf(key: str) -> Default:
    # Sized for the (already repaired) type of the section, not the input's.
    return lambda ctx, out: ctx.cooling(out.get("type"))[key]


COOLING_VARIANT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "air": ("rdhxUnits", "rdhxModel"),
    "dlc": ("dlcCoolingCapacity", "residualCoolingCapacity", "dlcFlowRate"),
    "hybrid": ("dlcPortion", "airPortion", "dlcFlowRate", "rdhxUnits", "rdhxModel"),
    "immersion": ("tanksNeeded", "flowRate"),
}

_COOLING_STRINGS = {"rdhxModel", "pipingSize"}


def _cooling_rule(key: str) -> FieldRule:
    if key in _COOLING_STRINGS:
        return _string(key, _cooling_leaf(key))
    return _number(key, _cooling_leaf(key))


def cooling_rules(ctx: DesignContext, section: Dict[str, Any]) -> Iterable[FieldRule]:
    # Generator: the variant is chosen only after "type" has been repaired.
    yield _string("type", lambda ctx, out: ctx.cooling_type, COOLING_TYPES)
    for key in ("totalCapacity", "pue", "pipingSize") + COOLING_VARIANT_FIELDS[section["type"]]:
        yield _cooling_rule(key)


# power

UPS_FIELDS = (
    "totalITLoad",
    "redundancyFactor",
    "requiredCapacity",
    "moduleSize",
    "totalModulesNeeded",
    "redundantModules",
    "framesNeeded",
)
BATTERY_FIELDS = ("runtime", "energyNeeded", "cabinetsNeeded", "totalWeight")

POWER_RULES = (
    *(_number(f"ups.{key}", _sized("power", f"ups.{key}")) for key in UPS_FIELDS),
    _string("ups.frameSize", _sized("power", "ups.frameSize")),
    *(_number(f"battery.{key}", _sized("power", f"battery.{key}")) for key in BATTERY_FIELDS),
    FieldRule("generator.included", BOOL, lambda ctx, out: ctx.include_generator),
    _number("generator.capacity", _sized("power", "generator.capacity")),
    _string("generator.model", _sized("power", "generator.model")),
    _number("generator.fuel.tankSize", _sized("power", "generator.fuel.tankSize")),
    _number("generator.fuel.consumption", _sized("power", "generator.fuel.consumption")),
    _number("generator.fuel.runtime", _sized("power", "generator.fuel.runtime")),
)


# cost

def _fixed_rate(rate: float) -> Default:
    return lambda ctx, out: round_half_up(_at(out, "equipmentTotal") * rate)


def _cooling_allowance(ctx: DesignContext, out: Dict[str, Any]) -> float:
    return pricing.FALLBACK_AIR_COOLING if ctx.cooling_type == "air" else pricing.FALLBACK_LIQUID_COOLING


def _generator_allowance(ctx: DesignContext, out: Dict[str, Any]) -> float:
    return pricing.FALLBACK_GENERATOR if ctx.include_generator else 0


COST_RULES = (
    _number("electrical.busbar", lambda ctx, out: pricing.FALLBACK_BUSBAR),
    _number("electrical.tapOffBox", lambda ctx, out: pricing.FALLBACK_TAP_OFF_PER_RACK * ctx.total_racks),
    _number("electrical.rpdu", lambda ctx, out: pricing.FALLBACK_RPDU_PER_RACK * ctx.total_racks),
    _number("electrical.total", _sum("electrical.busbar", "electrical.tapOffBox", "electrical.rpdu")),
    _number("cooling", _cooling_allowance),
    _number("power.ups", lambda ctx, out: pricing.FALLBACK_UPS),
    _number("power.battery", lambda ctx, out: pricing.FALLBACK_BATTERY),
    _number("power.generator", _generator_allowance),
    _number("power.total", _sum("power.ups", "power.battery", "power.generator")),
    _number("infrastructure", lambda ctx, out: pricing.FALLBACK_INFRASTRUCTURE),
    _number("sustainability", lambda ctx, out: pricing.FALLBACK_SUSTAINABILITY),
    _number(
        "equipmentTotal",
        _sum("electrical.total", "cooling", "power.total", "infrastructure", "sustainability"),
    ),
    _number("installation", _fixed_rate(pricing.FALLBACK_INSTALLATION_RATE)),
    _number("engineering", _fixed_rate(pricing.FALLBACK_ENGINEERING_RATE)),
    _number("contingency", _fixed_rate(pricing.FALLBACK_CONTINGENCY_RATE)),
    _number("totalProjectCost", _sum("equipmentTotal", "installation", "engineering", "contingency")),
    _number(
        "costPerRack",
        lambda ctx, out: round_half_up(safe_divide(_at(out, "totalProjectCost"), ctx.total_racks, 0.0)),
    ),
    _number(
        "costPerKw",
        lambda ctx, out: round_half_up(safe_divide(_at(out, "totalProjectCost"), ctx.total_it_load, 0.0)),
    ),
)


# reliability

RELIABILITY_RULES = (
    _string("tier", _sized("reliability", "tier")),
    _string("availability", _sized("reliability", "availability")),
    _number("annualDowntime", _sized("reliability", "annualDowntime")),
    _number("mtbf", _sized("reliability", "mtbf")),
    _number("mttr", _sized("reliability", "mttr")),
)


# sustainability

def _energy(key: str) -> Default:
    return lambda ctx, out: metrics.annual_energy(ctx.total_it_load, _at(out, "pue"))[key]


SUSTAINABILITY_RULES = (
    _number("pue", lambda ctx, out: ctx.pue),
    _number("wue", lambda ctx, out: metrics.DEFAULT_WUE),
    *(
        _number(f"annualEnergyConsumption.{key}", _energy(key))
        for key in ("it", "cooling", "power", "total", "overhead")
    ),
)


# carbonFootprint

def _grid_emissions(ctx: DesignContext, out: Dict[str, Any]) -> int:
    return metrics.grid_emissions(
        ctx.facility_load, ctx.coefficient("sustainability.co2PerKwh"), ctx.renewable_percentage
    )


def _generator_emissions(ctx: DesignContext, out: Dict[str, Any]) -> int:
    if not ctx.include_generator:
        return 0
    return metrics.generator_emissions(
        ctx.generator_capacity,
        test_hours=ctx.coefficient("generator.testHours"),
        load_factor=ctx.coefficient("generator.loadFactor"),
        co2_per_unit=ctx.coefficient("sustainability.generatorCo2PerLiter"),
    )


CARBON_RULES = (
    _number("gridEmissions", _grid_emissions),
    _number("generatorEmissions", _generator_emissions),
    _number("totalAnnualEmissions", _sum("gridEmissions", "generatorEmissions")),
    _number(
        "emissionsPerMWh",
        lambda ctx, out: metrics.emissions_per_mwh(
            ctx.coefficient("sustainability.co2PerKwh"), ctx.renewable_percentage
        ),
    ),
    _number("renewableImpact.percentage", lambda ctx, out: ctx.renewable_percentage),
    _number(
        "renewableImpact.emissionsAvoided",
        lambda ctx, out: metrics.emissions_avoided(
            ctx.facility_load, ctx.coefficient("sustainability.co2PerKwh"), ctx.renewable_percentage
        ),
    ),
)


# tco

def _years(n: int) -> Default:
    return lambda ctx, out: _at(out, "capex") + _at(out, "opex.annual") * n


TCO_RULES = (
    _number("capex", lambda ctx, out: metrics.flat_capex(ctx.total_it_load)),
    _number("opex.annual", lambda ctx, out: metrics.flat_annual_opex(ctx.total_it_load)),
    _number("opex.energy", lambda ctx, out: metrics.flat_annual_opex(ctx.total_it_load)),
    _number(
        "opex.maintenance",
        lambda ctx, out: _at(out, "capex") * ctx.coefficient("costFactors.maintenancePercentage"),
    ),
    _number(
        "opex.operational",
        lambda ctx, out: _at(out, "capex") * ctx.coefficient("costFactors.operationalPercentage"),
    ),
    _number("total5Year", _years(5)),
    _number("total10Year", _years(10)),
)


RuleSource = Callable[[DesignContext, Dict[str, Any]], Iterable[FieldRule]]


def _static(rules: Tuple[FieldRule, ...]) -> RuleSource:
    return lambda ctx, section: rules


SECTIONS: Dict[str, RuleSource] = {
    "rack": _static(RACK_RULES),
    "electrical": _static(ELECTRICAL_RULES),
    "cooling": cooling_rules,
    "power": _static(POWER_RULES),
    "cost": _static(COST_RULES),
    "reliability": _static(RELIABILITY_RULES),
    "sustainability": _static(SUSTAINABILITY_RULES),
    "carbonFootprint": _static(CARBON_RULES),
    "tco": _static(TCO_RULES),
}


def _apply_rules(
    name: str,
    section: Dict[str, Any],
    ctx: DesignContext,
    sink: Optional[DiagnosticSink],
    report: bool,
) -> Dict[str, Any]:
    for rule in SECTIONS[name](ctx, section):
        provided = get_nested_property(section, rule.path)
        if rule.accepts(provided):
            continue
        value = rule.resolve(ctx, section)
        section = set_nested_property(section, rule.path, value)
        if report:
            emit(
                sink, WARN, SOURCE, f"Invalid {name}.{rule.path} value, using default",
                field=f"{name}.{rule.path}", provided=provided, default=value,
            )
    return section


def synthesize_section(name: str, ctx: DesignContext) -> Dict[str, Any]:
    """Build section ``name`` from the context alone."""
    return _apply_rules(name, {}, ctx, None, report=False)


def repair_section(
    name: str,
    supplied: Any,
    ctx: DesignContext,
    sink: Optional[DiagnosticSink] = None,
) -> Dict[str, Any]:
    """
    Return a complete section ``name``.

    Valid supplied leaves are kept (even implausible ones), invalid or
    missing leaves are replaced by their default formula, unknown keys are
    carried through. An absent or non-object section is synthesized.
    """
    if not isinstance(supplied, dict):
        emit(
            sink, ERROR, SOURCE, f"Missing or invalid {name} section, synthesizing defaults",
            field=name, provided=supplied,
        )
        return synthesize_section(name, ctx)
    return _apply_rules(name, copy.deepcopy(supplied), ctx, sink, report=True)


__all__ = [
    "FieldRule",
    "SECTIONS",
    "COOLING_VARIANT_FIELDS",
    "repair_section",
    "synthesize_section",
]
