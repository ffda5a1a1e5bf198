import copy
import math

import pytest

from dcmatrix.diagnostics import ERROR, WARN
from dcmatrix.safe_access import get_nested_property
from dcmatrix.validation import (
    CalculationInput,
    DesignContext,
    create_default_results,
    validate_calculation_inputs,
    validate_calculation_results,
)
from dcmatrix.validation import results as results_module
from dcmatrix.validation.sections import COOLING_VARIANT_FIELDS, SECTIONS

GARBAGE_RESULTS = [
    None,
    42,
    "result",
    [],
    {},
    {"rack": 5, "cost": None},
    {"cost": {"electrical": "bad", "equipmentTotal": float("nan")}},
    {"cooling": {"type": "plasma", "pue": "low"}},
    {"power": {"ups": None, "generator": {"fuel": 7, "included": "yes"}}},
    {"tco": {"capex": float("inf"), "opex": []}, "carbonFootprint": {"renewableImpact": 3}},
    {"sustainability": {"pue": None, "annualEnergyConsumption": {"it": "lots"}}},
]

GARBAGE_INPUTS = [
    None,
    {},
    {"kwPerRack": -1, "coolingType": None, "totalRacks": "many"},
    {"kwPerRack": 120, "coolingType": "dlc", "totalRacks": 40, "includeGenerator": True, "redundancyMode": "2N"},
    {"kwPerRack": 60, "coolingType": "immersion", "totalRacks": 9, "redundancyMode": "2N+1"},
    {"kwPerRack": 1e300, "coolingType": "air", "totalRacks": 10**9},
]


def assert_complete(result: dict, inputs: CalculationInput) -> None:
    ctx = DesignContext.build(inputs)
    for name, rules in SECTIONS.items():
        section = result[name]
        assert isinstance(section, dict), name
        for rule in rules(ctx, section):
            value = get_nested_property(section, rule.path)
            assert rule.accepts(value), f"{name}.{rule.path} = {value!r}"
            if isinstance(value, float):
                assert math.isfinite(value)


@pytest.fixture
def inputs(base_input) -> CalculationInput:
    return validate_calculation_inputs(base_input)


def test_missing_result_is_synthesized_from_input(inputs, sink):
    result = validate_calculation_results(None, inputs, sink=sink)

    assert result["rack"]["totalITLoad"] == 200
    assert result["cooling"]["type"] == "air"
    assert result["reliability"]["tier"] == "Tier III"
    assert len(sink.errors) == 1
    assert_complete(result, inputs)


def test_synthesis_matches_default_results(inputs):
    assert validate_calculation_results(None, inputs) == create_default_results(inputs)


def test_empty_cost_section_is_rebuilt_hierarchically(base_input):
    base_input.update(kwPerRack=75, totalRacks=28)
    inputs = validate_calculation_inputs(base_input)

    cost = validate_calculation_results({"cost": {}}, inputs)["cost"]

    assert cost["electrical"] == {"busbar": 50000, "tapOffBox": 33600, "rpdu": 22400, "total": 106000}
    assert cost["cooling"] == 60000
    assert cost["power"] == {"ups": 220000, "battery": 80000, "generator": 0, "total": 300000}
    assert cost["equipmentTotal"] == 716000
    assert cost["installation"] == 107400
    assert cost["engineering"] == 71600
    assert cost["contingency"] == 71600
    assert cost["totalProjectCost"] == 966600
    assert cost["totalProjectCost"] == (
        cost["equipmentTotal"] + cost["installation"] + cost["engineering"] + cost["contingency"]
    )
    assert cost["costPerRack"] == 34521
    assert cost["costPerKw"] == 460


def test_cost_derivations_use_supplied_subtotals(inputs):
    supplied = {"cost": {"electrical": {"total": 1000}, "power": {"total": 2000}, "cooling": 500,
                         "infrastructure": 0, "sustainability": 0}}

    cost = validate_calculation_results(supplied, inputs)["cost"]

    assert cost["electrical"]["total"] == 1000
    assert cost["equipmentTotal"] == 3500
    assert cost["totalProjectCost"] == 3500 + 525 + 350 + 350


def test_liquid_cooling_and_generator_change_cost_allowances(base_input):
    base_input.update(coolingType="dlc", includeGenerator=True)
    inputs = validate_calculation_inputs(base_input)

    cost = create_default_results(inputs)["cost"]

    assert cost["cooling"] == 150000
    assert cost["power"]["generator"] == 200000


def test_missing_reliability_follows_redundancy_mode(base_input, sink):
    base_input["redundancyMode"] = "2N"
    inputs = validate_calculation_inputs(base_input)

    result = validate_calculation_results({"rack": {}}, inputs, sink=sink)

    assert result["reliability"]["tier"] == "Tier IV"
    assert result["reliability"]["availability"] == "99.999%"
    assert result["reliability"]["annualDowntime"] == 5.3
    assert "reliability" in {e.data["field"] for e in sink.errors}


@pytest.mark.parametrize("raw_result", GARBAGE_RESULTS)
@pytest.mark.parametrize("raw_input", GARBAGE_INPUTS)
def test_result_validation_is_total(raw_result, raw_input):
    inputs = validate_calculation_inputs(raw_input)

    result = validate_calculation_results(raw_result, inputs)

    assert_complete(result, inputs)


@pytest.mark.parametrize("raw_result", GARBAGE_RESULTS)
def test_result_validation_accepts_raw_input(raw_result):
    result = validate_calculation_results(raw_result, {"kwPerRack": "?", "totalRacks": 0})

    assert_complete(result, CalculationInput())


@pytest.mark.parametrize("raw_result", GARBAGE_RESULTS)
@pytest.mark.parametrize("raw_input", GARBAGE_INPUTS)
def test_result_validation_is_idempotent(raw_result, raw_input, sink):
    inputs = validate_calculation_inputs(raw_input)

    once = validate_calculation_results(raw_result, inputs)
    twice = validate_calculation_results(once, inputs, sink=sink)

    assert twice == once
    assert sink.events == []


@pytest.mark.parametrize("raw_input", GARBAGE_INPUTS)
def test_rack_load_matches_input(raw_input):
    inputs = validate_calculation_inputs(raw_input)

    for result in (create_default_results(inputs), validate_calculation_results({"rack": {}}, inputs)):
        assert result["rack"]["totalITLoad"] == pytest.approx(inputs.kw_per_rack * inputs.total_racks)
        assert result["power"]["ups"]["totalITLoad"] == pytest.approx(inputs.kw_per_rack * inputs.total_racks)


def test_valid_but_implausible_values_are_trusted(inputs):
    supplied = {"cost": {"totalProjectCost": -5, "costPerRack": 1e12}, "rack": {"totalRacks": 9999}}

    result = validate_calculation_results(supplied, inputs)

    assert result["cost"]["totalProjectCost"] == -5
    assert result["cost"]["costPerRack"] == 1e12
    assert result["rack"]["totalRacks"] == 9999


def test_corrupted_leaf_is_replaced_with_a_warning(inputs, sink):
    supplied = create_default_results(inputs)
    expected = supplied["cost"]["equipmentTotal"]
    supplied["cost"]["equipmentTotal"] = float("nan")

    result = validate_calculation_results(supplied, inputs, sink=sink)

    assert result["cost"]["equipmentTotal"] == expected
    events = sink.for_field("cost.equipmentTotal")
    assert len(events) == 1
    assert events[0].level == WARN
    assert math.isnan(events[0].data["provided"])
    assert sink.errors == []


def test_wrong_primitive_type_is_replaced(inputs):
    supplied = create_default_results(inputs)
    supplied["electrical"]["busbarSize"] = 250
    supplied["power"]["generator"]["included"] = "no"
    supplied["rack"]["totalRacks"] = True

    result = validate_calculation_results(supplied, inputs)

    assert result["electrical"]["busbarSize"] == "busbar250A"
    assert result["power"]["generator"]["included"] is False
    assert result["rack"]["totalRacks"] == 20


def test_unknown_keys_are_carried_through(inputs):
    supplied = {"id": "calc-1", "rack": {"label": "Hall A"}, "pipeSizing": None}

    result = validate_calculation_results(supplied, inputs)

    assert result["id"] == "calc-1"
    assert result["rack"]["label"] == "Hall A"
    assert result["pipeSizing"] is None


def test_input_result_is_not_mutated(inputs):
    supplied = {"cost": {"electrical": {"busbar": "x"}}, "cooling": {"type": "dlc"}}
    snapshot = copy.deepcopy(supplied)

    validate_calculation_results(supplied, inputs)

    assert supplied == snapshot


@pytest.mark.parametrize("cooling_type", sorted(COOLING_VARIANT_FIELDS))
def test_cooling_variant_follows_input_type(base_input, cooling_type):
    base_input["coolingType"] = cooling_type
    inputs = validate_calculation_inputs(base_input)

    cooling = create_default_results(inputs)["cooling"]

    assert cooling["type"] == cooling_type
    for key in COOLING_VARIANT_FIELDS[cooling_type]:
        assert key in cooling


def test_cooling_variant_follows_supplied_type(inputs):
    cooling = validate_calculation_results({"cooling": {"type": "dlc"}}, inputs)["cooling"]

    assert cooling["type"] == "dlc"
    assert cooling["dlcCoolingCapacity"] == pytest.approx(150)
    assert cooling["residualCoolingCapacity"] == pytest.approx(50)
    assert cooling["pipingSize"] == "dn110"
    assert "rdhxUnits" not in cooling


def test_air_cooling_defaults(inputs):
    cooling = create_default_results(inputs)["cooling"]

    assert cooling["pipingSize"] == "none"
    assert cooling["rdhxUnits"] == 2
    assert cooling["rdhxModel"] == "basic"


def test_sustainability_and_carbon_defaults(base_input):
    base_input["sustainabilityOptions"] = {
        "enableWasteHeatRecovery": True,
        "enableWaterRecycling": False,
        "renewableEnergyPercentage": 50,
    }
    inputs = validate_calculation_inputs(base_input)

    result = create_default_results(inputs)

    assert result["sustainability"]["pue"] == pytest.approx(1.5)
    assert result["sustainability"]["wue"] == 0.5
    energy = result["sustainability"]["annualEnergyConsumption"]
    assert energy["it"] == pytest.approx(200 * 8760)
    assert energy["total"] == pytest.approx(200 * 8760 * 1.5)
    assert energy["cooling"] + energy["power"] == pytest.approx(energy["overhead"])

    carbon = result["carbonFootprint"]
    assert carbon["gridEmissions"] == 460
    assert carbon["generatorEmissions"] == 0
    assert carbon["totalAnnualEmissions"] == 460
    assert carbon["emissionsPerMWh"] == pytest.approx(175)
    assert carbon["renewableImpact"] == {"percentage": 50, "emissionsAvoided": 460}


def test_generator_emissions_only_with_generator(base_input):
    base_input["includeGenerator"] = True
    inputs = validate_calculation_inputs(base_input)

    result = create_default_results(inputs)

    assert result["power"]["generator"]["capacity"] == 800
    assert result["carbonFootprint"]["generatorEmissions"] == 12


def test_energy_defaults_follow_supplied_pue(inputs):
    result = validate_calculation_results({"sustainability": {"pue": 2.0}}, inputs)

    energy = result["sustainability"]["annualEnergyConsumption"]
    assert energy["total"] == pytest.approx(200 * 8760 * 2.0)


def test_tco_defaults(inputs):
    tco = create_default_results(inputs)["tco"]

    assert tco["capex"] == pytest.approx(1_000_000)
    assert tco["opex"]["annual"] == pytest.approx(200 * 8760 * 0.12)
    assert tco["opex"]["maintenance"] == pytest.approx(30000)
    assert tco["opex"]["operational"] == pytest.approx(20000)
    assert tco["total5Year"] == pytest.approx(1_000_000 + 200 * 8760 * 0.12 * 5)


def test_tco_totals_use_supplied_capex(inputs):
    tco = validate_calculation_results({"tco": {"capex": 10, "opex": {"annual": 1}}}, inputs)["tco"]

    assert tco["total5Year"] == 15
    assert tco["total10Year"] == 20


def test_zero_load_does_not_produce_non_finite_costs():
    inputs = CalculationInput.model_construct(kw_per_rack=0.0, total_racks=0)

    result = create_default_results(inputs)

    assert result["cost"]["costPerRack"] == 0
    assert result["cost"]["costPerKw"] == 0
    assert_complete(result, inputs)
    assert validate_calculation_results({"cost": {}}, inputs)["cost"]["costPerKw"] == 0


def test_params_feed_default_formulas(inputs):
    result = create_default_results(inputs, params={"electrical": {"voltageFactor": 230}})

    assert result["electrical"]["currentPerRack"] == 28


def test_wrong_typed_params_fall_back_to_defaults(inputs):
    result = create_default_results(inputs, params={"electrical": {"voltageFactor": "high"}, "power": 3})

    assert result == create_default_results(inputs)


def test_outputs_do_not_depend_on_the_sink(inputs, sink):
    def broken_sink(event):
        raise RuntimeError("sink down")

    garbage = {"cost": {"equipmentTotal": "?"}, "cooling": None}

    with_collector = validate_calculation_results(garbage, inputs, sink=sink)
    with_broken = validate_calculation_results(garbage, inputs, sink=broken_sink)
    with_default = validate_calculation_results(garbage, inputs)

    assert with_collector == with_broken == with_default
    assert sink.events


def test_unexpected_failure_falls_back_to_full_synthesis(inputs, sink, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(results_module, "_repair", explode)

    result = validate_calculation_results({"rack": {"totalITLoad": 1}}, inputs, sink=sink)

    assert result == create_default_results(inputs)
    assert [e.level for e in sink.events] == [ERROR]
    assert sink.events[0].data["error"] == "boom"
