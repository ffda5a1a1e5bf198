import math

import pytest

from dcmatrix import calculator
from dcmatrix.calculator import calculate_configuration
from dcmatrix.diagnostics import ERROR
from dcmatrix.validation import create_default_results, validate_calculation_inputs, validate_calculation_results


def test_calculation_produces_a_clean_result(base_input, sink):
    result = calculate_configuration(base_input, sink=sink)

    assert sink.events == []
    assert result["rack"]["totalITLoad"] == 200
    assert result["electrical"]["busbarSize"] == "busbar250A"
    assert result["cooling"]["type"] == "air"
    assert result["power"]["ups"]["totalModulesNeeded"] == 1
    assert result["reliability"]["tier"] == "Tier III"
    assert "availabilityModel" in result["reliability"]
    assert "waterUsage" in result["sustainability"]
    assert "wasteHeatRecovery" in result["sustainability"]
    assert result["thermalDistribution"]["type"] == "air"
    assert result["pipeSizing"] is None


def test_engine_cost_breakdown_adds_up(base_input):
    cost = calculate_configuration(base_input)["cost"]

    assert cost["electrical"]["total"] == pytest.approx(
        cost["electrical"]["busbar"] + cost["electrical"]["tapOffBox"] + cost["electrical"]["rpdu"], abs=2
    )
    assert cost["totalProjectCost"] == pytest.approx(
        cost["equipmentTotal"] + cost["installation"] + cost["engineering"] + cost["contingency"], abs=2
    )
    assert cost["totalProjectCost"] > cost["equipmentTotal"] > 0
    assert cost["costPerRack"] == round(cost["totalProjectCost"] / 20)


def test_engine_busbar_and_tap_off_prices(base_input):
    cost = calculate_configuration(base_input)["cost"]

    # 250 A busbar: 1250 A base price plus 30 m of run.
    assert cost["electrical"]["busbar"] == 42000 + 1200 * 30
    assert cost["electrical"]["tapOffBox"] == 1200 * 20
    assert cost["electrical"]["rpdu"] == 3500 * 20


def test_engine_tco_uses_project_cost(base_input):
    result = calculate_configuration(base_input)
    tco = result["tco"]

    assert tco["capex"] == result["cost"]["totalProjectCost"]
    assert tco["total5Year"] == pytest.approx(tco["capex"] + tco["opex"]["annual"] * 5, abs=3)
    assert tco["npv"] > tco["capex"]
    assert tco["assumptions"]["lifespan"] == 10


def test_dlc_design_gets_pipe_sizing(base_input):
    base_input.update(coolingType="dlc", kwPerRack=80, totalRacks=24)

    result = calculate_configuration(base_input)

    assert result["cooling"]["type"] == "dlc"
    assert result["pipeSizing"]["recommendedSize"].startswith("DN")
    assert result["pipeSizing"]["flowRate"] == pytest.approx(result["cooling"]["dlcFlowRate"])
    assert result["thermalDistribution"]["distribution"]["liquid"]["percentage"] == 75


def test_generator_design(base_input):
    base_input.update(includeGenerator=True, redundancyMode="2N")

    result = calculate_configuration(base_input)

    generator = result["power"]["generator"]
    assert generator["included"] is True
    assert generator["capacity"] == 800
    assert result["cost"]["power"]["generator"] > 0
    assert result["carbonFootprint"]["generatorEmissions"] > 0


def test_pricing_overrides_are_applied(base_input):
    default_cost = calculate_configuration(base_input)["cost"]
    cheap_cost = calculate_configuration(base_input, pricing={"rpdu": {"standard80A": 100}})["cost"]

    assert cheap_cost["electrical"]["rpdu"] == 2000
    assert cheap_cost["totalProjectCost"] < default_cost["totalProjectCost"]


def test_engine_output_is_stable_under_validation(base_input, sink):
    result = calculate_configuration(base_input)
    inputs = validate_calculation_inputs(base_input)

    assert validate_calculation_results(result, inputs, sink=sink) == result
    assert sink.events == []


@pytest.mark.parametrize("raw", [None, {}, "racks", {"kwPerRack": "hot", "coolingType": "steam"}])
def test_garbage_input_still_calculates(raw):
    result = calculate_configuration(raw)

    assert result["rack"]["totalITLoad"] == 280
    assert result["cost"]["totalProjectCost"] > 0


def test_engine_failure_falls_back_to_synthesis(base_input, sink, monkeypatch):
    def explode(*args, **kwargs):
        raise ValueError("pricing exploded")

    monkeypatch.setattr(calculator, "run_engine", explode)

    result = calculate_configuration(base_input, sink=sink)

    assert result == create_default_results(validate_calculation_inputs(base_input))
    assert sink.errors[0].level == ERROR
    assert sink.errors[0].source == "calculateConfiguration"
    assert any(e.data.get("field") == "result" for e in sink.errors)


def test_malformed_pricing_does_not_raise(base_input):
    result = calculate_configuration(base_input, pricing={"busbar": "free", "ups": {"module250kw": "?"}})

    assert result["cost"]["totalProjectCost"] > 0


def _numbers(node):
    if isinstance(node, dict):
        for value in node.values():
            yield from _numbers(value)
    elif isinstance(node, list):
        for value in node:
            yield from _numbers(value)
    elif isinstance(node, (int, float)) and not isinstance(node, bool):
        yield node


@pytest.mark.parametrize("cooling_type", ["air", "dlc", "hybrid", "immersion"])
def test_largest_design_stays_finite(base_input, cooling_type):
    base_input.update(
        kwPerRack=10_000, totalRacks=100_000, batteryRuntime=24 * 60,
        coolingType=cooling_type, includeGenerator=True, redundancyMode="2N+1",
    )

    result = calculate_configuration(base_input)

    assert result["rack"]["totalITLoad"] == 1e9
    assert all(math.isfinite(value) for value in _numbers(result))
