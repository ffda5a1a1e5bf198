"""
Calculation parameters.

Tunable engineering coefficients (electrical, cooling, power, cost factors,
cooling thresholds, sustainability, generator, reliability), their
compiled-in defaults, the leaf-level merge used on the repair path and the
validator used by parameter editors.
"""

from .defaults import DEFAULT_CALCULATION_PARAMS
from .models import (
    CalculationParams,
    CoolingParams,
    CoolingThresholds,
    CostFactorParams,
    ElectricalParams,
    GeneratorParams,
    PowerParams,
    ReliabilityParams,
    SustainabilityParams,
)
from .store import load_calculation_params, load_pricing, save_calculation_params
from .structure import (
    ParamsValidationResult,
    ensure_params_structure,
    merge_params,
    validate_calculation_params,
)

__all__ = [
    "DEFAULT_CALCULATION_PARAMS",
    "CalculationParams",
    "CoolingParams",
    "CoolingThresholds",
    "CostFactorParams",
    "ElectricalParams",
    "GeneratorParams",
    "PowerParams",
    "ReliabilityParams",
    "SustainabilityParams",
    "ParamsValidationResult",
    "ensure_params_structure",
    "merge_params",
    "validate_calculation_params",
    "load_calculation_params",
    "save_calculation_params",
    "load_pricing",
]
