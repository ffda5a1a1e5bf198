"""
Safe Object Access
==================

Total helpers for reading and writing JSON-shaped documents:
- dotted-path get/set on nested dicts
- schema-driven structure completion
- number coercion and guarded division

None of these functions raise for malformed documents.
"""

from __future__ import annotations

import copy
import math
import numbers
from typing import Any, Dict, Mapping


def is_finite_number(value: Any) -> bool:
    """True for real, finite numbers. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(value)
    except (TypeError, ValueError, OverflowError):
        return False


def get_nested_property(obj: Any, path: str, default: Any = None) -> Any:
    """
    Read ``obj["a"]["b"]["c"]`` for ``path="a.b.c"``.

    Returns ``default`` when any step is missing, not a mapping, or the
    final value is None.
    """
    if not isinstance(obj, Mapping):
        return default

    current: Any = obj
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]

    return default if current is None else current


def set_nested_property(obj: Any, path: str, value: Any) -> Dict[str, Any]:
    """
    Write ``value`` at ``path``, creating intermediate dicts as needed.

    Intermediate values that are not dicts are replaced. When ``obj`` is not
    a dict a new one is created. Returns the (possibly new) root.
    """
    if not isinstance(obj, dict):
        obj = {}

    parts = path.split(".")
    current = obj
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value
    return obj


def ensure_object_structure(obj: Any, schema: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``obj`` where every path in ``schema`` exists.

    ``schema`` maps dotted paths to default values. Existing values are kept
    as they are; only absent (or None) leaves are filled.
    """
    result: Dict[str, Any] = copy.deepcopy(dict(obj)) if isinstance(obj, Mapping) else {}

    for path, default in schema.items():
        if get_nested_property(result, path, None) is None:
            result = set_nested_property(result, path, copy.deepcopy(default))

    return result


def to_number(value: Any, default: float) -> float:
    """Coerce ``value`` to a finite float, else return ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` for zero/non-finite operands or results."""
    if not is_finite_number(numerator) or not is_finite_number(denominator):
        return default
    if denominator == 0:
        return default
    quotient = numerator / denominator
    return quotient if math.isfinite(quotient) else default


def round_half_up(value: float) -> int:
    # Matches Math.round, which the stored documents were produced with.
    if not is_finite_number(value):
        return 0
    return int(math.floor(value + 0.5))


def safe_ceil(value: float) -> int:
    if not is_finite_number(value):
        return 0
    return int(math.ceil(value))
