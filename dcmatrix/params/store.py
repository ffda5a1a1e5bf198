"""
JSON-file storage for calculation parameters and the pricing matrix.

Reads fall back to the compiled-in defaults when the document is missing
or unreadable; writes refuse parameter sets that fail validation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..logging_config import get_logger
from ..sizing.pricing import merge_pricing
from .models import CalculationParams
from .structure import ensure_params_structure, validate_calculation_params

logger = get_logger(__name__)

PathLike = Union[str, Path]


def _read_json(path: Optional[PathLike], what: str) -> Optional[Any]:
    if path is None:
        return None
    p = Path(path)
    if not p.exists():
        logger.warning(f"{what} not found at {p}, using default values")
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error reading {what} from {p}: {e}, using default values")
        return None


def load_calculation_params(path: Optional[PathLike] = None) -> CalculationParams:
    """Load params from ``path``; any missing leaf comes from the defaults."""
    data = _read_json(path, "Calculation parameters")
    if data is not None:
        logger.info(f"Loaded calculation parameters from {path}")
    return ensure_params_structure(data)


def save_calculation_params(params: Any, path: PathLike) -> Path:
    """
    Validate and write ``params`` as JSON.

    Raises:
        ValueError: if the parameter set fails validation.
    """
    if isinstance(params, CalculationParams):
        params = params.model_dump(by_alias=True, warnings=False)

    validation = validate_calculation_params(params)
    if not validation.is_valid:
        raise ValueError(f"Invalid calculation parameters: {', '.join(validation.errors)}")

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(params, indent=2), encoding="utf-8")
    logger.info(f"Saved calculation parameters to {p}")
    return p


def load_pricing(path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Load a pricing matrix from ``path`` merged over ``DEFAULT_PRICING``."""
    data = _read_json(path, "Pricing matrix")
    return merge_pricing(data)
