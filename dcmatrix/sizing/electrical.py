from __future__ import annotations

import math
from typing import Any, Dict

import numpy as np

from ..safe_access import round_half_up, safe_divide

RACKS_PER_ROW = 14
BUSBAR_RATINGS_A = np.array([250, 400, 600, 800, 1000, 1250, 1600, 2000])
MAX_BUSBAR_A = int(BUSBAR_RATINGS_A[-1])


def _line_current(kw: float, voltage: float, power_factor: float) -> int:
    # Three-phase: I = P / (sqrt(3) * V * pf)
    return round_half_up(safe_divide(kw * 1000.0, voltage * math.sqrt(3) * power_factor, 0.0))


def current_per_rack(kw_per_rack: float, voltage: float, power_factor: float) -> int:
    return _line_current(kw_per_rack, voltage, power_factor)


def current_per_row(kw_per_rack: float, voltage: float, power_factor: float) -> int:
    return _line_current(kw_per_rack * RACKS_PER_ROW, voltage, power_factor)


def select_busbar_rating(current: float) -> int:
    """Smallest standard busbar rating carrying ``current`` (capped at the largest)."""
    idx = int(np.searchsorted(BUSBAR_RATINGS_A, current, side="left"))
    if idx >= len(BUSBAR_RATINGS_A):
        return MAX_BUSBAR_A
    return int(BUSBAR_RATINGS_A[idx])


def select_tap_off_box(current: float) -> str:
    if current <= 63:
        return "standard63A"
    if current <= 100:
        return "custom100A"
    if current <= 150:
        return "custom150A"
    if current <= 200:
        return "custom200A"
    return "custom250A"


def select_rpdu(current: float) -> str:
    return "standard80A" if current <= 80 else "standard112A"


def size_electrical(kw_per_rack: float, voltage: float, power_factor: float) -> Dict[str, Any]:
    """Row/rack currents and the distribution components they call for."""
    row_current = current_per_row(kw_per_rack, voltage, power_factor)
    rack_current = current_per_rack(kw_per_rack, voltage, power_factor)

    warning = ""
    if row_current > MAX_BUSBAR_A:
        warning = (
            f"Current exceeds maximum busbar rating ({MAX_BUSBAR_A}A). "
            "Multiple busbars required per row."
        )

    return {
        "currentPerRow": row_current,
        "busbarSize": f"busbar{select_busbar_rating(row_current)}A",
        "currentPerRack": rack_current,
        "tapOffBox": select_tap_off_box(rack_current),
        "rpdu": select_rpdu(rack_current),
        "multiplicityWarning": warning,
    }
