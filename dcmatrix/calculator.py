"""
Calculator
==========

Entry point of the matrix calculator: untrusted input in, complete result out.

Pipeline:
1. validate the input (defaults for anything malformed)
2. normalize parameters over the compiled-in defaults
3. merge the pricing matrix over the default prices
4. run the engine
5. pass the engine output through the result validator
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .diagnostics import ERROR, DiagnosticSink, emit
from .engine import run_engine
from .logging_config import get_logger
from .params.structure import ensure_params_structure
from .sizing.pricing import merge_pricing
from .validation.inputs import validate_calculation_inputs
from .validation.results import validate_calculation_results

logger = get_logger(__name__)

SOURCE = "calculateConfiguration"


def calculate_configuration(
    raw_input: Any,
    params: Any = None,
    pricing: Any = None,
    sink: Optional[DiagnosticSink] = None,
) -> Dict[str, Any]:
    """Run a full calculation; never raises."""
    inputs = validate_calculation_inputs(raw_input, sink=sink)
    calculation_params = ensure_params_structure(params)

    try:
        raw_result: Any = run_engine(inputs, calculation_params, merge_pricing(pricing))
    except Exception as exc:
        logger.error(f"Calculation engine failed: {exc}", exc_info=True)
        emit(sink, ERROR, SOURCE, "Calculation engine failed, result will be synthesized", error=str(exc))
        raw_result = None

    result = validate_calculation_results(raw_result, inputs, calculation_params, sink=sink)
    logger.info(
        f"Calculated {inputs.total_racks} x {inputs.kw_per_rack:g} kW {inputs.cooling_type} racks: "
        f"total project cost {result['cost']['totalProjectCost']:,}"
    )
    return result
