"""
Validation
==========

Self-healing layer between untrusted data and callers:
- inputs: canonical ``CalculationInput`` from any raw value
- results: per-section repair of calculation results
- sections: the repair tables shared by repair and synthesis
- context: derived design quantities the default formulas use
"""

from .context import DesignContext
from .inputs import CalculationInput, Location, SustainabilityOptions, validate_calculation_inputs
from .results import create_default_results, validate_calculation_results
from .sections import FieldRule, repair_section, synthesize_section

__all__ = [
    "CalculationInput",
    "Location",
    "SustainabilityOptions",
    "DesignContext",
    "FieldRule",
    "validate_calculation_inputs",
    "validate_calculation_results",
    "create_default_results",
    "repair_section",
    "synthesize_section",
]
