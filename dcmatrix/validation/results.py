from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from ..diagnostics import ERROR, DiagnosticSink, emit
from ..logging_config import get_logger
from .context import DesignContext
from .inputs import CalculationInput, validate_calculation_inputs
from .sections import SECTIONS, SOURCE, repair_section, synthesize_section

logger = get_logger(__name__)


def create_default_results(inputs: Any, params: Any = None) -> Dict[str, Any]:
    """
    Synthesize a complete result from ``inputs`` alone.

    Uses the same per-section formulas as the repair path, so a repaired
    leaf and a synthesized one never disagree.
    """
    if not isinstance(inputs, CalculationInput):
        inputs = validate_calculation_inputs(inputs)
    ctx = DesignContext.build(inputs, params)
    return {name: synthesize_section(name, ctx) for name in SECTIONS}


def _repair(result: Dict[str, Any], ctx: DesignContext, sink: Optional[DiagnosticSink]) -> Dict[str, Any]:
    repaired = {key: copy.deepcopy(value) for key, value in result.items() if key not in SECTIONS}
    for name in SECTIONS:
        repaired[name] = repair_section(name, result.get(name), ctx, sink)
    return repaired


def validate_calculation_results(
    result: Any,
    inputs: Any,
    params: Any = None,
    sink: Optional[DiagnosticSink] = None,
) -> Dict[str, Any]:
    """
    Return a structurally complete calculation result.

    ``result`` may be anything: a stored document, a partial engine output,
    None. Every section is checked independently; missing or corrupted
    leaves are rebuilt from ``inputs`` (validated first when it is not a
    ``CalculationInput`` already). Never raises: an unexpected failure falls
    back to ``create_default_results`` for the whole result.
    """
    if not isinstance(inputs, CalculationInput):
        inputs = validate_calculation_inputs(inputs, sink=sink)

    try:
        ctx = DesignContext.build(inputs, params)
        if not isinstance(result, dict):
            emit(
                sink, ERROR, SOURCE, "Calculation result is missing or invalid, synthesizing defaults",
                field="result", provided=type(result).__name__,
            )
            return {name: synthesize_section(name, ctx) for name in SECTIONS}
        return _repair(result, ctx, sink)
    except Exception as exc:
        logger.error(f"Result validation failed, falling back to defaults: {exc}", exc_info=True)
        emit(sink, ERROR, SOURCE, "Result validation failed, synthesizing defaults", error=str(exc))
        return create_default_results(inputs, params)
