"""
Parameter Defaulting and Validation
===================================

Two separate paths over untrusted parameter documents:
- ``ensure_params_structure``: repair path. Deep-merges a partial document
  over the compiled-in defaults leaf by leaf and never rejects a value.
- ``validate_calculation_params``: reporting path. Range/type checks that
  return a list of errors without touching the document.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Type

from pydantic import BaseModel, ValidationError

from ..logging_config import get_logger
from .defaults import DEFAULT_CALCULATION_PARAMS
from .models import REQUIRED_SECTIONS, SECTION_MODELS, CalculationParams

logger = get_logger(__name__)

_SECTION_LABELS = {
    "electrical": "Electrical",
    "cooling": "Cooling",
    "power": "Power",
    "costFactors": "Cost factor",
    "coolingThresholds": "Cooling threshold",
    "sustainability": "Sustainability",
    "generator": "Generator",
    "reliability": "Reliability",
}


@dataclass
class ParamsValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _as_document(params: Any) -> Any:
    if isinstance(params, BaseModel):
        return params.model_dump(by_alias=True, warnings=False)
    return params


def _deep_merge(defaults: Mapping[str, Any], supplied: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(dict(defaults))
    for key, value in supplied.items():
        base = merged.get(key)
        if isinstance(base, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(base, value)
        elif isinstance(base, dict):
            # A section (or sub-object) replaced by a scalar keeps its defaults.
            continue
        elif value is not None:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_params(partial: Any) -> Dict[str, Any]:
    """Leaf-level merge of ``partial`` over ``DEFAULT_CALCULATION_PARAMS``."""
    document = _as_document(partial)
    if not isinstance(document, Mapping):
        return copy.deepcopy(DEFAULT_CALCULATION_PARAMS)
    return _deep_merge(DEFAULT_CALCULATION_PARAMS, document)


def _construct(model: Type[BaseModel], data: Mapping[str, Any]) -> BaseModel:
    by_name: Dict[str, Any] = {}
    aliases = {f.alias or name: name for name, f in model.model_fields.items()}
    for key, value in data.items():
        by_name[aliases.get(key, key)] = value
    return model.model_construct(**by_name)


def ensure_params_structure(partial: Any) -> CalculationParams:
    """
    Return a complete ``CalculationParams`` built from ``partial``.

    Missing leaves come from the defaults; present leaves are kept even when
    implausible (use ``validate_calculation_params`` to surface those).
    """
    merged = merge_params(partial)
    sections = {
        name: _construct(model, merged[name])
        for name, model in SECTION_MODELS.items()
    }
    extras = {k: v for k, v in merged.items() if k not in SECTION_MODELS}
    return _construct(CalculationParams, {**sections, **extras})


def _format_errors(section: str, exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{section}.{location}: {err['msg']}")
    return messages


def validate_calculation_params(params: Any) -> ParamsValidationResult:
    """
    Check a parameter document without repairing it.

    Required sections must be present; optional sections are checked only
    when supplied.
    """
    document = _as_document(params)
    if not isinstance(document, Mapping):
        return ParamsValidationResult(is_valid=False, errors=["Parameters object is missing"])

    errors: List[str] = []
    for name, model in SECTION_MODELS.items():
        section = document.get(name)
        if section is None:
            if name in REQUIRED_SECTIONS:
                errors.append(f"{_SECTION_LABELS[name]} parameters are missing")
            continue
        if not isinstance(section, Mapping):
            errors.append(f"{_SECTION_LABELS[name]} parameters must be an object")
            continue
        try:
            model.model_validate(dict(section))
        except ValidationError as exc:
            errors.extend(_format_errors(name, exc))

    if errors:
        logger.debug("Calculation params rejected: %s", errors)
    return ParamsValidationResult(is_valid=not errors, errors=errors)
