from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from dcmatrix.diagnostics import CollectingSink


@pytest.fixture
def base_input() -> dict:
    return {
        "kwPerRack": 10,
        "coolingType": "air",
        "totalRacks": 20,
        "redundancyMode": "N+1",
        "includeGenerator": False,
        "batteryRuntime": 10,
        "sustainabilityOptions": {
            "enableWasteHeatRecovery": False,
            "enableWaterRecycling": False,
            "renewableEnergyPercentage": 20,
        },
    }


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()
