from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .analysis import (
    GOALS,
    analyze_configuration,
    compare_cooling_technologies,
    compare_redundancy_options,
    find_optimal_configuration,
)
from .calculator import calculate_configuration
from .diagnostics import CollectingSink
from .logging_config import LoggingConfig
from .params.store import load_calculation_params, load_pricing
from .params.structure import validate_calculation_params
from .validation.inputs import validate_calculation_inputs
from .validation.results import validate_calculation_results


def load_json(path: str) -> Any:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"JSON file not found: {path}")
    return json.loads(p.read_text(encoding="utf-8"))


def write_json(path: str, data: Dict[str, Any]) -> None:
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def _print_summary(result: Dict[str, Any]) -> None:
    rack = result["rack"]
    cost = result["cost"]
    print(f"Racks: {rack['totalRacks']} x {rack['powerDensity']:g} kW ({rack['coolingType']})")
    print(f"IT load: {rack['totalITLoad']:,.1f} kW")
    print(f"Busbar: {result['electrical']['busbarSize']}, tap-off: {result['electrical']['tapOffBox']}")
    print(f"UPS modules: {result['power']['ups']['totalModulesNeeded']}, "
          f"battery cabinets: {result['power']['battery']['cabinetsNeeded']}")
    print(f"Total project cost: {cost['totalProjectCost']:,.0f} ({cost['costPerKw']:,.0f} per kW)")
    print(f"Reliability: {result['reliability']['tier']} ({result['reliability']['availability']})")
    print(f"PUE: {result['sustainability']['pue']:.2f}, "
          f"emissions: {result['carbonFootprint']['totalAnnualEmissions']:,} tCO2/yr")


def _print_events(sink: CollectingSink) -> None:
    if sink.errors:
        print("\nErrors:", file=sys.stderr)
        for e in sink.errors:
            print(f"- {e.message}", file=sys.stderr)
    if sink.warnings:
        print("\nWarnings:", file=sys.stderr)
        for w in sink.warnings:
            print(f"- {w.message}", file=sys.stderr)


def _cmd_calculate(args: argparse.Namespace) -> int:
    raw = load_json(args.input)
    params = load_calculation_params(args.params)
    pricing = load_pricing(args.pricing)

    sink = CollectingSink()
    result = calculate_configuration(raw, params, pricing, sink=sink)

    write_json(args.output, result)
    _print_summary(result)
    _print_events(sink)
    return 0


def _cmd_repair(args: argparse.Namespace) -> int:
    stored = load_json(args.result)
    raw_input = load_json(args.input) if args.input else None
    params = load_calculation_params(args.params)

    sink = CollectingSink()
    if raw_input is None and isinstance(stored, dict):
        # Stored documents keep their input next to the result.
        raw_input = stored.get("inputs")
    inputs = validate_calculation_inputs(raw_input, sink=sink)
    repaired = validate_calculation_results(stored, inputs, params, sink=sink)

    write_json(args.output, repaired)
    repaired_fields = [e.data.get("field") for e in sink.events if e.source == "validateCalculationResults"]
    print(f"Repaired {len(repaired_fields)} field(s)")
    for name in repaired_fields:
        print(f"- {name}")
    return 0


def _cmd_check_params(args: argparse.Namespace) -> int:
    validation = validate_calculation_params(load_json(args.params))
    if validation.is_valid:
        print("Calculation parameters are valid.")
        return 0
    print("Invalid calculation parameters:", file=sys.stderr)
    for err in validation.errors:
        print(f"- {err}", file=sys.stderr)
    return 1


def _emit_json(data: Dict[str, Any], output: Optional[str]) -> None:
    if output:
        write_json(output, data)
    else:
        print(json.dumps(data, indent=2))


def _cmd_compare_cooling(args: argparse.Namespace) -> int:
    sink = CollectingSink()
    comparison = compare_cooling_technologies(
        load_json(args.input), load_calculation_params(args.params), load_pricing(args.pricing), sink=sink
    )

    _emit_json(comparison, args.output)
    for row in comparison["comparisonResults"]:
        print(
            f"{row['coolingType']:<10} PUE {row['pue']:.2f}  cost {row['initialCost']:>14,.0f} "
            f"({row['costDifferencePercentage']})  payback {row['paybackPeriod']} yr",
            file=sys.stderr,
        )
    recommendation = comparison["recommendation"]
    print(f"Recommended: {recommendation['recommendedCoolingType']}. {recommendation['reason']}", file=sys.stderr)
    _print_events(sink)
    return 0


def _cmd_compare_redundancy(args: argparse.Namespace) -> int:
    sink = CollectingSink()
    comparison = compare_redundancy_options(
        load_json(args.input), load_calculation_params(args.params), load_pricing(args.pricing), sink=sink
    )

    _emit_json(comparison, args.output)
    for row in comparison["comparisonResults"]:
        print(
            f"{row['redundancyMode']:<5} {row['tier']:<9} {row['availability']:>8}  "
            f"cost +{row['costIncrease']:,.0f}",
            file=sys.stderr,
        )
    recommendation = comparison["recommendation"]
    print(f"Recommended: {recommendation['recommendedRedundancy']} ({recommendation['costImplication']})",
          file=sys.stderr)
    _print_events(sink)
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    analysis = analyze_configuration(load_json(args.result))

    print(f"{analysis['summary']} (optimization potential: {analysis['optimizationPotential']})")
    for rec in analysis["recommendations"]:
        print(f"- [{rec['severity']}] {rec['type']}: {rec['message']}")
    if args.output:
        write_json(args.output, analysis)
    return 0


def _cmd_optimize(args: argparse.Namespace) -> int:
    constraints = load_json(args.constraints) if args.constraints else None
    design = load_json(args.input) if args.input else None

    sink = CollectingSink()
    optimum = find_optimal_configuration(
        constraints, args.goal, design, load_calculation_params(args.params), load_pricing(args.pricing), sink=sink
    )

    _emit_json(optimum, args.output)
    best = optimum["recommendedConfiguration"]
    if best is None:
        print(optimum["summary"]["message"], file=sys.stderr)
        return 1
    config = best["config"]
    print(
        f"Best of {optimum['evaluated']} for {args.goal}: {config['totalRacks']} x {config['kwPerRack']:g} kW "
        f"{config['coolingType']} (score {best['score']:.3f})",
        file=sys.stderr,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Data center matrix calculator (electrical, cooling, power, cost)."
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR).")
    parser.add_argument("--log-dir", help="Directory for rotating log files.")
    sub = parser.add_subparsers(dest="command", required=True)

    calc = sub.add_parser("calculate", help="Calculate a configuration from an input JSON.")
    calc.add_argument("--input", "-i", required=True, help="Path to calculation input JSON.")
    calc.add_argument("--params", "-p", help="Path to calculation parameters JSON.")
    calc.add_argument("--pricing", help="Path to pricing matrix JSON.")
    calc.add_argument(
        "--output", "-o", default="calculation_result.json", help="Path to write the result JSON."
    )
    calc.set_defaults(handler=_cmd_calculate)

    repair = sub.add_parser("repair", help="Validate and repair a stored calculation result.")
    repair.add_argument("--result", "-r", required=True, help="Path to the stored result JSON.")
    repair.add_argument("--input", "-i", help="Path to the calculation input JSON.")
    repair.add_argument("--params", "-p", help="Path to calculation parameters JSON.")
    repair.add_argument(
        "--output", "-o", default="repaired_result.json", help="Path to write the repaired result JSON."
    )
    repair.set_defaults(handler=_cmd_repair)

    check = sub.add_parser("check-params", help="Check a calculation parameters JSON.")
    check.add_argument("params", help="Path to calculation parameters JSON.")
    check.set_defaults(handler=_cmd_check_params)

    for name, handler, help_text in (
        ("compare-cooling", _cmd_compare_cooling, "Compare every cooling technology for an input design."),
        ("compare-redundancy", _cmd_compare_redundancy, "Compare every redundancy scheme for an input design."),
    ):
        compare = sub.add_parser(name, help=help_text)
        compare.add_argument("--input", "-i", required=True, help="Path to calculation input JSON.")
        compare.add_argument("--params", "-p", help="Path to calculation parameters JSON.")
        compare.add_argument("--pricing", help="Path to pricing matrix JSON.")
        compare.add_argument("--output", "-o", help="Path to write the comparison JSON (stdout when omitted).")
        compare.set_defaults(handler=handler)

    analyze = sub.add_parser("analyze", help="List improvement opportunities for a calculation result.")
    analyze.add_argument("--result", "-r", required=True, help="Path to the result JSON.")
    analyze.add_argument("--output", "-o", help="Path to write the analysis JSON.")
    analyze.set_defaults(handler=_cmd_analyze)

    optimize = sub.add_parser("optimize", help="Search density, cooling and rack count for the best design.")
    optimize.add_argument("--constraints", "-c", help="Path to optimization constraints JSON.")
    optimize.add_argument("--goal", "-g", choices=GOALS, default="cost", help="Ranking goal.")
    optimize.add_argument("--input", "-i", help="Path to a base input JSON (redundancy, generator, options).")
    optimize.add_argument("--params", "-p", help="Path to calculation parameters JSON.")
    optimize.add_argument("--pricing", help="Path to pricing matrix JSON.")
    optimize.add_argument("--output", "-o", help="Path to write the search JSON (stdout when omitted).")
    optimize.set_defaults(handler=_cmd_optimize)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    LoggingConfig.setup_logging(log_level=args.log_level, log_dir=args.log_dir)

    try:
        return args.handler(args)
    except (FileNotFoundError, json.JSONDecodeError, ValidationError) as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
