"""
Design Analysis
===============

What-if studies built on ``calculate_configuration``:
- compare_cooling_technologies: one workload under every cooling technology
- compare_redundancy_options: one design under every redundancy scheme
- compare_configurations: relative deltas of any results against the first
- analyze_configuration: improvement recommendations for a single result
- find_optimal_configuration: constrained grid search ranked by a goal

Results are read leniently, so stored or hand-edited documents never break
a comparison.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, confloat, conint, model_validator
from pydantic.alias_generators import to_camel

from .calculator import calculate_configuration
from .diagnostics import DiagnosticSink
from .logging_config import get_logger
from .safe_access import get_nested_property, round_half_up, safe_divide, to_number
from .sizing.cooling import COOLING_TYPES, cooling_profile
from .sizing.power import REDUNDANCY_MODES
from .validation.inputs import MAX_TOTAL_RACKS, CoolingType, validate_calculation_inputs

logger = get_logger(__name__)

Goal = Literal["cost", "efficiency", "reliability", "sustainability"]
GOALS = ("cost", "efficiency", "reliability", "sustainability")

POWER_DENSITY_OPTIONS = np.array([50.0, 75.0, 100.0, 150.0, 200.0])
DEFAULT_RACK_RANGE = (14, 56)
TOP_CONFIGURATIONS = 3

RANK_POINTS = (3, 2, 1)
HIGH_PUE = 1.3
HIGH_DENSITY_KW = 75.0
MIN_HIGH_DENSITY_REDUNDANCY = 1.2

COMPARED_METRICS = {
    "cost": "cost.totalProjectCost",
    "pue": "sustainability.pue",
    "waterUsage": "sustainability.waterUsage.annual",
    "carbonFootprint": "carbonFootprint.totalAnnualEmissions",
}

COOLING_REASONS = {
    "air": "Air cooling has the lowest initial cost and simplest implementation, with a PUE of {pue:g}.",
    "dlc": "Direct liquid cooling reaches a PUE of {pue:g} and suits high-density deployments.",
    "hybrid": "Hybrid cooling balances efficiency (PUE {pue:g}) and cost for mixed workloads.",
    "immersion": "Immersion cooling gives the best efficiency (PUE {pue:g}) for very high densities "
                 "despite a higher initial cost.",
}


class OptimizationConstraints(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    min_power_density: Optional[PositiveFloat] = Field(None, description="Lowest kW/rack to consider.")
    max_power_density: Optional[PositiveFloat] = Field(None, description="Highest kW/rack to consider.")
    preferred_cooling_types: Optional[List[CoolingType]] = Field(
        None, description="Cooling technologies to consider (all when omitted)."
    )
    max_budget: Optional[PositiveFloat] = Field(None, description="Upper bound on total project cost.")
    min_reliability: Optional[confloat(ge=0, le=100)] = Field(
        None, description="Lowest acceptable availability (%)."
    )
    max_pue: Optional[PositiveFloat] = Field(None, description="Highest acceptable PUE.")
    rack_count_range: Tuple[conint(gt=0, le=MAX_TOTAL_RACKS), conint(gt=0, le=MAX_TOTAL_RACKS)] = Field(
        DEFAULT_RACK_RANGE, description="Smallest and largest rack count to consider."
    )

    @model_validator(mode="after")
    def _ordered_bounds(self) -> "OptimizationConstraints":
        lo, hi = self.rack_count_range
        if lo > hi:
            raise ValueError("rackCountRange must be [min, max]")
        if (
            self.min_power_density is not None
            and self.max_power_density is not None
            and self.min_power_density > self.max_power_density
        ):
            raise ValueError("minPowerDensity must not exceed maxPowerDensity")
        return self

    def power_densities(self) -> np.ndarray:
        lo = self.min_power_density or 0.0
        hi = self.max_power_density or math.inf
        return POWER_DENSITY_OPTIONS[(POWER_DENSITY_OPTIONS >= lo) & (POWER_DENSITY_OPTIONS <= hi)]

    def cooling_types(self) -> Tuple[str, ...]:
        if not self.preferred_cooling_types:
            return COOLING_TYPES
        return tuple(t for t in COOLING_TYPES if t in self.preferred_cooling_types)

    def rack_counts(self) -> List[int]:
        lo, hi = self.rack_count_range
        return sorted({lo, (lo + hi) // 2, hi})

    def admits(self, result: Mapping[str, Any]) -> bool:
        if self.max_budget is not None and _number(result, "cost.totalProjectCost") > self.max_budget:
            return False
        if self.min_reliability is not None and availability_percent(result) < self.min_reliability:
            return False
        if self.max_pue is not None and _number(result, "sustainability.pue") > self.max_pue:
            return False
        return True


def _number(result: Any, path: str, default: float = 0.0) -> float:
    return to_number(get_nested_property(result, path), default)


def _percentage(delta: float, base: float) -> str:
    return f"{safe_divide(delta, base, 0.0) * 100:.1f}%"


def availability_percent(result: Any) -> float:
    """Availability as a number, from the ``"99.99%"`` string of a result."""
    value = get_nested_property(result, "reliability.availability")
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    return to_number(value, 0.0)


def payback_period(result: Any) -> float:
    """Capital cost expressed in years of annual operating cost."""
    capex = _number(result, "cost.totalProjectCost")
    return round(safe_divide(capex, _number(result, "tco.opex.annual"), 0.0), 1)


def _base_document(design: Any, sink: Optional[DiagnosticSink]) -> Dict[str, Any]:
    return validate_calculation_inputs(design, sink=sink).to_document()


def _base_configuration(base: Mapping[str, Any], *keys: str) -> Dict[str, Any]:
    summary = {key: base[key] for key in keys}
    summary["totalPower"] = base["kwPerRack"] * base["totalRacks"]
    return summary


# Cooling technologies


def _cooling_row(cooling_type: str, result: Mapping[str, Any], baseline: Mapping[str, Any]) -> Dict[str, Any]:
    pue = _number(result, "sustainability.pue")
    base_pue = _number(baseline, "sustainability.pue")
    cost = _number(result, "cost.totalProjectCost")
    base_cost = _number(baseline, "cost.totalProjectCost")
    energy = _number(result, "sustainability.annualEnergyConsumption.total")
    base_energy = _number(baseline, "sustainability.annualEnergyConsumption.total")

    return {
        "coolingType": cooling_type,
        "pue": pue,
        "pueImprovement": round(base_pue - pue, 3),
        "pueImprovementPercentage": _percentage(base_pue - pue, base_pue),
        "initialCost": cost,
        "costDifference": cost - base_cost,
        "costDifferencePercentage": _percentage(cost - base_cost, base_cost),
        "annualEnergySavings": round_half_up(base_energy - energy),
        "waterUsage": _number(result, "sustainability.waterUsage.annual"),
        "paybackPeriod": payback_period(result),
    }


def recommend_cooling(rows: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Rank-score each technology on PUE, initial cost and payback (3/2/1 points
    for the top three places, 1 below) and return the best total.
    """
    scores = {row["coolingType"]: 0 for row in rows}
    for key in ("pue", "initialCost", "paybackPeriod"):
        for rank, row in enumerate(sorted(rows, key=lambda r: r[key])):
            scores[row["coolingType"]] += RANK_POINTS[min(rank, len(RANK_POINTS) - 1)]

    best = max(rows, key=lambda r: scores[r["coolingType"]])
    return {
        "recommendedCoolingType": best["coolingType"],
        "score": scores[best["coolingType"]],
        "reason": COOLING_REASONS[best["coolingType"]].format(pue=best["pue"]),
        "metrics": dict(best),
    }


def compare_cooling_technologies(
    design: Any,
    params: Any = None,
    pricing: Any = None,
    sink: Optional[DiagnosticSink] = None,
) -> Dict[str, Any]:
    """Run ``design`` once per cooling technology, with air cooling as the baseline."""
    base = _base_document(design, sink)
    results = {
        cooling_type: calculate_configuration({**base, "coolingType": cooling_type}, params, pricing, sink=sink)
        for cooling_type in COOLING_TYPES
    }
    baseline = results[COOLING_TYPES[0]]
    rows = [_cooling_row(cooling_type, result, baseline) for cooling_type, result in results.items()]

    return {
        "baseConfiguration": _base_configuration(base, "kwPerRack", "totalRacks"),
        "baselineCoolingType": COOLING_TYPES[0],
        "comparisonResults": rows,
        "recommendation": recommend_cooling(rows),
    }


# Redundancy schemes


def recommend_redundancy(rows: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Prefer the Tier III scheme, else the most available one, and list alternatives."""
    base_cost = rows[0]["totalCost"]
    by_availability = sorted(rows, key=lambda r: r["availabilityPercentage"], reverse=True)
    cost_effective = sorted(
        (r for r in rows if r["costPerAvailabilityPoint"] > 0), key=lambda r: r["costPerAvailabilityPoint"]
    )
    tier_iv = next((r for r in by_availability if r["tier"] == "Tier IV"), None)
    best = next((r for r in by_availability if r["tier"] == "Tier III"), by_availability[0])

    return {
        "recommendedRedundancy": best["redundancyMode"],
        "tier": best["tier"],
        "availability": best["availability"],
        "annualDowntime": best["annualDowntime"],
        "costImplication": (
            f"{_percentage(best['costIncrease'], base_cost)} increase over {rows[0]['redundancyMode']}"
            if best["costIncrease"] > 0 else "Baseline cost"
        ),
        "alternativeOptions": {
            "highestAvailability": {
                "mode": tier_iv["redundancyMode"],
                "availability": tier_iv["availability"],
                "costIncrease": f"{_percentage(tier_iv['costIncrease'], base_cost)} increase",
            } if tier_iv else None,
            "mostCostEffective": {
                "mode": cost_effective[0]["redundancyMode"],
                "availability": cost_effective[0]["availability"],
                "costEffectiveness": f"{cost_effective[0]['costPerAvailabilityPoint']:,} per availability point",
            } if cost_effective else None,
        },
    }


def compare_redundancy_options(
    design: Any,
    params: Any = None,
    pricing: Any = None,
    sink: Optional[DiagnosticSink] = None,
) -> Dict[str, Any]:
    """Run ``design`` once per redundancy scheme, with N as the baseline."""
    base = _base_document(design, sink)

    rows = []
    for mode in REDUNDANCY_MODES:
        result = calculate_configuration({**base, "redundancyMode": mode}, params, pricing, sink=sink)
        rows.append({
            "redundancyMode": mode,
            "availability": result["reliability"]["availability"],
            "availabilityPercentage": availability_percent(result),
            "annualDowntime": _number(result, "reliability.annualDowntime"),
            "tier": result["reliability"]["tier"],
            "totalCost": _number(result, "cost.totalProjectCost"),
        })

    baseline = rows[0]
    for row in rows:
        row["costIncrease"] = row["totalCost"] - baseline["totalCost"]
        row["costPerAvailabilityPoint"] = round_half_up(safe_divide(
            row["costIncrease"], row["availabilityPercentage"] - baseline["availabilityPercentage"], 0.0
        ))

    return {
        "baseConfiguration": _base_configuration(base, "kwPerRack", "coolingType", "totalRacks"),
        "comparisonResults": rows,
        "recommendation": recommend_redundancy(rows),
    }


# Arbitrary results


def compare_configurations(results: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Relative differences of each result against the first one.

    Each configuration is returned with a ``comparison`` block (``costDiff``,
    ``pueDiff``, ``waterUsageDiff``, ``carbonFootprintDiff`` as fractions
    plus ``...Percentage`` strings). The summary names the ``rack`` section of
    the best result per metric.
    """
    if not results:
        return {"configurations": [], "summary": {}}

    baseline = results[0]
    configurations = []
    for index, result in enumerate(results):
        entry = dict(result)
        comparison: Dict[str, Any] = {"isBaseline": index == 0}
        if index:
            for name, path in COMPARED_METRICS.items():
                base = _number(baseline, path)
                diff = safe_divide(_number(result, path) - base, base, 0.0)
                comparison[f"{name}Diff"] = diff
                comparison[f"{name}DiffPercentage"] = f"{diff * 100:.1f}%"
        entry["comparison"] = comparison
        configurations.append(entry)

    def lowest(path: str) -> Any:
        return get_nested_property(min(results, key=lambda r: _number(r, path, math.inf)), "rack")

    return {
        "configurations": configurations,
        "summary": {
            "lowestCost": lowest(COMPARED_METRICS["cost"]),
            "lowestPUE": lowest(COMPARED_METRICS["pue"]),
            "lowestWaterUsage": lowest(COMPARED_METRICS["waterUsage"]),
            "lowestCarbonFootprint": lowest(COMPARED_METRICS["carbonFootprint"]),
            "highestReliability": get_nested_property(max(results, key=availability_percent), "rack"),
        },
    }


# Single result


def _recommendation(kind: str, severity: str, message: str, potential_savings: str) -> Dict[str, str]:
    return {"type": kind, "severity": severity, "message": message, "potentialSavings": potential_savings}


def _cooling_for_density(kw_per_rack: float) -> str:
    rated = sorted(COOLING_TYPES, key=lambda t: cooling_profile(t)["maxDensity"])
    return next((t for t in rated if cooling_profile(t)["maxDensity"] >= kw_per_rack), rated[-1])


def analyze_configuration(result: Any) -> Dict[str, Any]:
    """List improvement opportunities for one calculation result."""
    recommendations = []

    density = _number(result, "rack.powerDensity")
    cooling_type = get_nested_property(result, "cooling.type")
    if cooling_type not in COOLING_TYPES:
        cooling_type = COOLING_TYPES[0]
    rated = cooling_profile(cooling_type)["maxDensity"]
    if density > rated:
        recommendations.append(_recommendation(
            "cooling", "high",
            f"{cooling_type} cooling is rated to {rated:g} kW/rack, below the design's {density:g} kW/rack. "
            f"Consider {_cooling_for_density(density)} cooling.",
            "Improved cooling efficiency could reduce PUE by 0.2-0.3",
        ))

    if _number(result, "sustainability.pue") > HIGH_PUE:
        recommendations.append(_recommendation(
            "efficiency", "medium",
            "PUE could be improved with better cooling solutions or waste heat recovery.",
            "Reducing PUE by 0.1 could save approximately 7% on energy costs",
        ))

    if _number(result, "power.ups.redundancyFactor") < MIN_HIGH_DENSITY_REDUNDANCY and density > HIGH_DENSITY_KW:
        recommendations.append(_recommendation(
            "reliability", "high",
            "Consider increasing redundancy for high-density deployments.",
            "Improved uptime could prevent costly outages",
        ))

    has_generator = get_nested_property(result, "power.generator.included") is True
    if not has_generator and get_nested_property(result, "reliability.tier") == "Tier III":
        recommendations.append(_recommendation(
            "reliability", "medium",
            "Adding a generator would improve reliability for Tier III requirements.",
            "Could improve availability by 0.1-0.2%",
        ))

    heat_recovery = get_nested_property(result, "sustainability.wasteHeatRecovery.enabled") is True
    if cooling_type == "dlc" and not heat_recovery:
        recommendations.append(_recommendation(
            "sustainability", "medium",
            "DLC systems are well suited to waste heat recovery. Consider enabling it.",
            "Could recover up to 40% of waste heat for reuse",
        ))

    count = len(recommendations)
    return {
        "recommendations": recommendations,
        "optimizationPotential": "high" if count > 2 else "medium" if count else "low",
        "summary": f"{count} improvement opportunities identified",
    }


# Grid search


def configuration_score(result: Any, goal: str) -> float:
    """Higher is better for every goal."""
    if goal == "cost":
        return safe_divide(1_000_000, _number(result, "cost.totalProjectCost"), 0.0)
    if goal == "efficiency":
        return safe_divide(10, _number(result, "sustainability.pue"), 0.0)
    if goal == "reliability":
        return availability_percent(result)
    if goal == "sustainability":
        pue_score = safe_divide(10, _number(result, "sustainability.pue"), 0.0)
        carbon_score = safe_divide(1000, _number(result, "carbonFootprint.totalAnnualEmissions") + 1, 0.0)
        water_score = 2 if get_nested_property(result, "sustainability.waterUsage.recyclingEnabled") is True else 1
        return pue_score * 0.4 + carbon_score * 0.4 + water_score * 0.2
    raise ValueError(f"Unknown optimization goal: {goal!r} (expected one of {', '.join(GOALS)})")


def _optimization_summary(result: Mapping[str, Any], goal: str) -> Dict[str, Any]:
    if goal == "cost":
        return {
            "message": "Optimized for lowest capital cost",
            "totalProjectCost": _number(result, "cost.totalProjectCost"),
            "costPerRack": _number(result, "cost.costPerRack"),
            "costPerKw": _number(result, "cost.costPerKw"),
            "paybackPeriod": payback_period(result),
        }
    if goal == "efficiency":
        return {
            "message": "Optimized for maximum energy efficiency",
            "pue": _number(result, "sustainability.pue"),
            "annualEnergyConsumption": _number(result, "sustainability.annualEnergyConsumption.total"),
            "annualEnergyCost": _number(result, "tco.opex.energy"),
        }
    if goal == "reliability":
        return {
            "message": "Optimized for maximum system reliability",
            "availability": get_nested_property(result, "reliability.availability"),
            "tier": get_nested_property(result, "reliability.tier"),
            "annualDowntime": _number(result, "reliability.annualDowntime"),
        }
    return {
        "message": "Optimized for environmental sustainability",
        "carbonFootprint": _number(result, "carbonFootprint.totalAnnualEmissions"),
        "waterUsage": _number(result, "sustainability.waterUsage.annual"),
        "renewablePercentage": _number(result, "carbonFootprint.renewableImpact.percentage"),
    }


def find_optimal_configuration(
    constraints: Any = None,
    goal: str = "cost",
    design: Any = None,
    params: Any = None,
    pricing: Any = None,
    sink: Optional[DiagnosticSink] = None,
) -> Dict[str, Any]:
    """
    Grid search over power density x cooling technology x rack count.

    Densities come from 50/75/100/150/200 kW/rack within the constraint
    bounds, rack counts are the range ends and midpoint. Candidates outside
    the budget, availability or PUE limits are dropped; the rest are ranked
    by ``goal`` and the top three returned. ``design`` supplies the remaining
    inputs (redundancy, generator, sustainability, location).

    Raises ``ValueError`` for an unknown goal and pydantic ``ValidationError``
    for malformed constraints.
    """
    if goal not in GOALS:
        raise ValueError(f"Unknown optimization goal: {goal!r} (expected one of {', '.join(GOALS)})")
    if not isinstance(constraints, OptimizationConstraints):
        constraints = OptimizationConstraints.model_validate(constraints or {})
    base = _base_document(design, sink) if design is not None else {}

    evaluated = 0
    candidates = []
    for kw_per_rack in constraints.power_densities():
        for cooling_type in constraints.cooling_types():
            for total_racks in constraints.rack_counts():
                config = {"kwPerRack": float(kw_per_rack), "coolingType": cooling_type, "totalRacks": total_racks}
                result = calculate_configuration({**base, **config}, params, pricing, sink=sink)
                evaluated += 1
                if not constraints.admits(result):
                    continue
                candidates.append({"config": config, "result": result, "score": configuration_score(result, goal)})

    candidates.sort(key=lambda c: c["score"], reverse=True)
    top = candidates[:TOP_CONFIGURATIONS]
    logger.info(f"Evaluated {evaluated} configurations for '{goal}', {len(candidates)} within constraints")

    if not top:
        return {
            "goal": goal,
            "evaluated": evaluated,
            "topConfigurations": [],
            "recommendedConfiguration": None,
            "summary": {"message": "No configuration satisfies the constraints"},
        }
    return {
        "goal": goal,
        "evaluated": evaluated,
        "topConfigurations": top,
        "recommendedConfiguration": top[0],
        "summary": _optimization_summary(top[0]["result"], goal),
    }
