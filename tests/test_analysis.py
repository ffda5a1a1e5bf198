import pytest
from pydantic import ValidationError

from dcmatrix.analysis import (
    OptimizationConstraints,
    analyze_configuration,
    availability_percent,
    compare_configurations,
    compare_cooling_technologies,
    compare_redundancy_options,
    configuration_score,
    find_optimal_configuration,
    recommend_cooling,
)
from dcmatrix.calculator import calculate_configuration
from dcmatrix.sizing.cooling import COOLING_TYPES


def _rows_by(comparison, key):
    return {row[key]: row for row in comparison["comparisonResults"]}


# cooling technologies

def test_cooling_comparison_covers_every_technology(base_input, sink):
    comparison = compare_cooling_technologies(base_input, sink=sink)

    assert sink.events == []
    assert comparison["baselineCoolingType"] == "air"
    assert comparison["baseConfiguration"] == {"kwPerRack": 10, "totalRacks": 20, "totalPower": 200}
    assert [row["coolingType"] for row in comparison["comparisonResults"]] == list(COOLING_TYPES)


def test_air_baseline_has_zero_deltas(base_input):
    air = _rows_by(compare_cooling_technologies(base_input), "coolingType")["air"]

    assert air["pue"] == pytest.approx(1.6)
    assert air["pueImprovement"] == 0
    assert air["pueImprovementPercentage"] == "0.0%"
    assert air["costDifference"] == 0
    assert air["costDifferencePercentage"] == "0.0%"
    assert air["annualEnergySavings"] == 0


def test_dlc_deltas_against_air(base_input):
    rows = _rows_by(compare_cooling_technologies(base_input), "coolingType")
    air, dlc = rows["air"], rows["dlc"]

    assert dlc["pueImprovement"] == pytest.approx(0.4)
    assert dlc["pueImprovementPercentage"] == "25.0%"
    # 200 kW for 8760 h at 0.4 less PUE.
    assert dlc["annualEnergySavings"] == 700800
    assert dlc["costDifference"] == pytest.approx(dlc["initialCost"] - air["initialCost"])
    expected = f"{(dlc['initialCost'] - air['initialCost']) / air['initialCost'] * 100:.1f}%"
    assert dlc["costDifferencePercentage"] == expected
    assert dlc["paybackPeriod"] > 0


def test_cooling_comparison_matches_direct_calculation(base_input):
    rows = _rows_by(compare_cooling_technologies(base_input), "coolingType")

    immersion = calculate_configuration({**base_input, "coolingType": "immersion"})

    assert rows["immersion"]["initialCost"] == immersion["cost"]["totalProjectCost"]
    assert rows["immersion"]["waterUsage"] == immersion["sustainability"]["waterUsage"]["annual"]


def test_cooling_comparison_of_malformed_design_uses_defaults(sink):
    comparison = compare_cooling_technologies({"kwPerRack": "lots"}, sink=sink)

    assert comparison["baseConfiguration"]["kwPerRack"] == 10
    assert any(event.data.get("field") == "kwPerRack" for event in sink.events)


def test_cooling_recommendation_ranks_on_three_metrics():
    rows = [
        {"coolingType": "air", "pue": 1.6, "initialCost": 100, "paybackPeriod": 1.0},
        {"coolingType": "dlc", "pue": 1.2, "initialCost": 150, "paybackPeriod": 2.0},
        {"coolingType": "immersion", "pue": 1.1, "initialCost": 300, "paybackPeriod": 4.0},
    ]

    recommendation = recommend_cooling(rows)

    # air 1+3+3, dlc 2+2+2, immersion 3+1+1
    assert recommendation["recommendedCoolingType"] == "air"
    assert recommendation["score"] == 7
    assert "1.6" in recommendation["reason"]
    assert recommendation["metrics"] == rows[0]


# redundancy schemes

@pytest.fixture
def redundancy(base_input):
    base_input.update(kwPerRack=50, totalRacks=20)
    return compare_redundancy_options(base_input)


def test_redundancy_comparison_rows(redundancy):
    rows = _rows_by(redundancy, "redundancyMode")

    assert list(rows) == ["N", "N+1", "2N", "2N+1"]
    assert rows["N"]["tier"] == "Tier II"
    assert rows["N+1"]["availability"] == "99.99%"
    assert rows["2N"]["availabilityPercentage"] == pytest.approx(99.999)
    assert rows["N"]["annualDowntime"] == 526
    assert redundancy["baseConfiguration"] == {
        "kwPerRack": 50, "coolingType": "air", "totalRacks": 20, "totalPower": 1000,
    }


def test_redundancy_cost_deltas_against_n(redundancy):
    rows = _rows_by(redundancy, "redundancyMode")

    assert rows["N"]["costIncrease"] == 0
    assert rows["N"]["costPerAvailabilityPoint"] == 0
    assert rows["N+1"]["totalCost"] > rows["N"]["totalCost"]
    assert rows["N+1"]["costIncrease"] == rows["N+1"]["totalCost"] - rows["N"]["totalCost"]
    assert rows["N+1"]["costPerAvailabilityPoint"] == round(rows["N+1"]["costIncrease"] / (99.99 - 99.9))
    # 2N+1 has no availability model of its own, so no gain over N to price.
    assert rows["2N+1"]["costPerAvailabilityPoint"] == 0


def test_redundancy_recommendation(redundancy):
    recommendation = redundancy["recommendation"]
    rows = _rows_by(redundancy, "redundancyMode")

    assert recommendation["recommendedRedundancy"] == "N+1"
    assert recommendation["tier"] == "Tier III"
    assert recommendation["costImplication"].endswith("increase over N")
    assert recommendation["alternativeOptions"]["highestAvailability"]["mode"] == "2N"
    cheapest = min(("N+1", "2N"), key=lambda mode: rows[mode]["costPerAvailabilityPoint"])
    assert recommendation["alternativeOptions"]["mostCostEffective"]["mode"] == cheapest


# arbitrary results

def test_compare_nothing():
    assert compare_configurations([]) == {"configurations": [], "summary": {}}


def test_configurations_are_compared_with_the_first(base_input):
    air = calculate_configuration(base_input)
    dlc = calculate_configuration({**base_input, "coolingType": "dlc"})

    comparison = compare_configurations([air, dlc])
    first, second = comparison["configurations"]

    assert first["comparison"] == {"isBaseline": True}
    assert second["comparison"]["isBaseline"] is False
    assert second["comparison"]["pueDiff"] == pytest.approx(-0.25)
    assert second["comparison"]["pueDiffPercentage"] == "-25.0%"
    cost_diff = (dlc["cost"]["totalProjectCost"] - air["cost"]["totalProjectCost"]) / air["cost"]["totalProjectCost"]
    assert second["comparison"]["costDiff"] == pytest.approx(cost_diff)
    assert second["comparison"]["carbonFootprintDiff"] < 0
    assert second["rack"] == dlc["rack"]
    assert "comparison" not in dlc


def test_comparison_summary_names_best_racks(base_input):
    air = calculate_configuration(base_input)
    immersion = calculate_configuration({**base_input, "coolingType": "immersion"})
    tier_iv = calculate_configuration({**base_input, "redundancyMode": "2N"})

    summary = compare_configurations([air, immersion, tier_iv])["summary"]

    assert summary["lowestPUE"]["coolingType"] == "immersion"
    assert summary["lowestCost"] == air["rack"]
    assert summary["highestReliability"] == tier_iv["rack"]


def test_partial_results_are_compared_leniently(base_input):
    air = calculate_configuration(base_input)

    comparison = compare_configurations([air, {"rack": {"label": "empty"}}])

    assert comparison["configurations"][1]["comparison"]["costDiff"] == pytest.approx(-1.0)
    assert comparison["summary"]["lowestCost"] == air["rack"]
    assert comparison["summary"]["highestReliability"] == air["rack"]


# single result

def test_base_design_recommendations(base_input):
    analysis = analyze_configuration(calculate_configuration(base_input))

    kinds = [(rec["type"], rec["severity"]) for rec in analysis["recommendations"]]
    assert kinds == [("efficiency", "medium"), ("reliability", "medium")]
    assert analysis["optimizationPotential"] == "medium"
    assert analysis["summary"] == "2 improvement opportunities identified"


def test_dense_air_design_is_steered_to_liquid(base_input):
    base_input["kwPerRack"] = 100

    analysis = analyze_configuration(calculate_configuration(base_input))

    cooling = analysis["recommendations"][0]
    assert (cooling["type"], cooling["severity"]) == ("cooling", "high")
    assert "rated to 75 kW/rack" in cooling["message"]
    assert "Consider hybrid cooling" in cooling["message"]
    assert analysis["optimizationPotential"] == "high"


def test_dense_dlc_design_without_redundancy(base_input):
    base_input.update(kwPerRack=100, coolingType="dlc", redundancyMode="N")

    analysis = analyze_configuration(calculate_configuration(base_input))

    kinds = [(rec["type"], rec["severity"]) for rec in analysis["recommendations"]]
    assert kinds == [("reliability", "high"), ("sustainability", "medium")]


def test_heat_recovery_and_generator_silence_recommendations(base_input):
    base_input.update(coolingType="dlc", includeGenerator=True)
    base_input["sustainabilityOptions"]["enableWasteHeatRecovery"] = True

    analysis = analyze_configuration(calculate_configuration(base_input))

    assert analysis["recommendations"] == []
    assert analysis["optimizationPotential"] == "low"


@pytest.mark.parametrize("result", [{}, None, {"rack": "oops", "cooling": {"type": "fans"}}])
def test_analysis_of_malformed_result(result):
    analysis = analyze_configuration(result)

    assert analysis["recommendations"] == []
    assert analysis["summary"] == "0 improvement opportunities identified"


# grid search

def test_cost_goal_score():
    assert configuration_score({"cost": {"totalProjectCost": 500000}}, "cost") == 2.0
    assert configuration_score({}, "cost") == 0.0


def test_sustainability_goal_score():
    result = {
        "sustainability": {"pue": 1.25, "waterUsage": {"recyclingEnabled": True}},
        "carbonFootprint": {"totalAnnualEmissions": 999},
    }

    # 0.4 * 8 + 0.4 * 1 + 0.2 * 2
    assert configuration_score(result, "sustainability") == pytest.approx(4.0)


def test_reliability_goal_score_reads_availability():
    result = {"reliability": {"availability": "99.999%"}}

    assert configuration_score(result, "reliability") == pytest.approx(99.999)
    assert availability_percent({"reliability": {"availability": "n/a"}}) == 0.0


def test_unknown_goal_is_rejected():
    with pytest.raises(ValueError, match="speed"):
        find_optimal_configuration({}, goal="speed")
    with pytest.raises(ValueError):
        configuration_score({}, "speed")


def test_constraints_parse_camel_case():
    constraints = OptimizationConstraints.model_validate(
        {"minPowerDensity": 60, "maxPowerDensity": 160, "preferredCoolingTypes": ["immersion", "air"]}
    )

    assert constraints.power_densities().tolist() == [75.0, 100.0, 150.0]
    assert constraints.cooling_types() == ("air", "immersion")
    assert constraints.rack_counts() == [14, 35, 56]
    assert OptimizationConstraints(rack_count_range=(8, 8)).rack_counts() == [8]


@pytest.mark.parametrize(
    "constraints",
    [
        {"rackCountRange": [20, 10]},
        {"minPowerDensity": 150, "maxPowerDensity": 50},
        {"preferredCoolingTypes": ["fans"]},
        {"maxBudget": -5},
        {"minReliability": 101},
    ],
)
def test_malformed_constraints_are_rejected(constraints):
    with pytest.raises(ValidationError):
        find_optimal_configuration(constraints)


def test_cheapest_configuration_is_recommended():
    constraints = {
        "minPowerDensity": 100, "maxPowerDensity": 100,
        "preferredCoolingTypes": ["dlc"], "rackCountRange": [10, 20],
    }

    optimum = find_optimal_configuration(constraints, goal="cost")

    assert optimum["evaluated"] == 3
    best = optimum["recommendedConfiguration"]
    assert best["config"] == {"kwPerRack": 100.0, "coolingType": "dlc", "totalRacks": 10}
    assert best["score"] == pytest.approx(1_000_000 / best["result"]["cost"]["totalProjectCost"])
    assert [c["config"]["totalRacks"] for c in optimum["topConfigurations"]] == [10, 15, 20]
    assert optimum["summary"]["message"] == "Optimized for lowest capital cost"
    assert optimum["summary"]["totalProjectCost"] == best["result"]["cost"]["totalProjectCost"]


def test_most_efficient_configuration_is_immersion():
    constraints = {"minPowerDensity": 50, "maxPowerDensity": 50, "rackCountRange": [10, 10]}

    optimum = find_optimal_configuration(constraints, goal="efficiency")

    assert optimum["evaluated"] == 4
    assert len(optimum["topConfigurations"]) == 3
    assert optimum["recommendedConfiguration"]["config"]["coolingType"] == "immersion"
    assert optimum["summary"]["pue"] == pytest.approx(1.1)


def test_budget_excludes_every_configuration():
    optimum = find_optimal_configuration({"maxBudget": 1, "rackCountRange": [10, 10]})

    assert optimum["recommendedConfiguration"] is None
    assert optimum["topConfigurations"] == []
    assert optimum["evaluated"] == 20
    assert optimum["summary"]["message"] == "No configuration satisfies the constraints"


def test_design_inputs_feed_the_search():
    constraints = {"minPowerDensity": 50, "maxPowerDensity": 50, "rackCountRange": [10, 10], "minReliability": 99.99}

    assert find_optimal_configuration(constraints, design={"redundancyMode": "N"})["recommendedConfiguration"] is None

    optimum = find_optimal_configuration(constraints, goal="reliability", design={"redundancyMode": "2N"})
    assert optimum["summary"]["tier"] == "Tier IV"
    assert optimum["recommendedConfiguration"]["result"]["power"]["ups"]["redundancyFactor"] == 2.0


def test_pue_limit_filters_candidates():
    constraints = {"minPowerDensity": 50, "maxPowerDensity": 50, "rackCountRange": [10, 10], "maxPue": 1.2}

    optimum = find_optimal_configuration(constraints, goal="cost")

    assert {c["config"]["coolingType"] for c in optimum["topConfigurations"]} == {"dlc", "immersion"}
