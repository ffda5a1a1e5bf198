"""
Input Validator
===============

Normalizes untrusted calculation input into a fully populated
``CalculationInput``. Each recognized field is copied when it has the right
type and range, otherwise replaced by its default with a warning event.
Nothing here raises.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat, conint
from pydantic.alias_generators import to_camel

from ..diagnostics import WARN, DiagnosticSink, emit
from ..safe_access import is_finite_number
from ..sizing.cooling import COOLING_TYPES
from ..sizing.power import REDUNDANCY_MODES

SOURCE = "validateCalculationInputs"

CoolingType = Literal["air", "dlc", "hybrid", "immersion"]
RedundancyMode = Literal["N", "N+1", "2N", "2N+1"]

DEFAULT_KW_PER_RACK = 10.0
DEFAULT_COOLING_TYPE = "air"
DEFAULT_TOTAL_RACKS = 28
DEFAULT_REDUNDANCY_MODE = "N+1"
DEFAULT_BATTERY_RUNTIME = 10.0
DEFAULT_RENEWABLE_PERCENTAGE = 20.0

# Upper bounds keep the derived IT load (and annual energy) finite.
MAX_KW_PER_RACK = 10_000.0
MAX_TOTAL_RACKS = 100_000
MAX_BATTERY_RUNTIME = 24 * 60.0


class _InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SustainabilityOptions(_InputModel):
    enable_waste_heat_recovery: bool = Field(False, description="Recover waste heat from the cooling loop.")
    enable_water_recycling: bool = Field(False, description="Recycle cooling water.")
    renewable_energy_percentage: confloat(ge=0, le=100) = Field(
        DEFAULT_RENEWABLE_PERCENTAGE, description="Share of energy from renewables (0-100)."
    )


class Location(_InputModel):
    latitude: float = Field(..., description="Site latitude (deg).")
    longitude: float = Field(..., description="Site longitude (deg).")
    address: Optional[str] = Field(None, description="Postal address.")
    climate_data: Optional[Any] = Field(None, description="Opaque climate lookup payload.")


class CalculationInput(_InputModel):
    kw_per_rack: confloat(gt=0, le=MAX_KW_PER_RACK) = Field(
        DEFAULT_KW_PER_RACK, description="Rack power density (kW)."
    )
    cooling_type: CoolingType = Field(DEFAULT_COOLING_TYPE, description="Cooling technology.")
    total_racks: conint(gt=0, le=MAX_TOTAL_RACKS) = Field(DEFAULT_TOTAL_RACKS, description="Number of racks.")
    redundancy_mode: RedundancyMode = Field(DEFAULT_REDUNDANCY_MODE, description="Power redundancy scheme.")
    include_generator: bool = Field(False, description="Include standby generators.")
    battery_runtime: confloat(gt=0, le=MAX_BATTERY_RUNTIME) = Field(
        DEFAULT_BATTERY_RUNTIME, description="Battery autonomy (min)."
    )
    sustainability_options: SustainabilityOptions = Field(default_factory=SustainabilityOptions)
    location: Optional[Location] = Field(None, description="Site location (both coordinates required).")

    @property
    def total_it_load(self) -> float:
        return self.kw_per_rack * self.total_racks

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


_MISSING = object()


def _warn(sink: Optional[DiagnosticSink], name: str, provided: Any, default: Any, message: str) -> None:
    emit(sink, WARN, SOURCE, message, field=name, provided=provided, default=default)


def _positive_number(
    raw: Mapping[str, Any],
    name: str,
    default: float,
    sink: Optional[DiagnosticSink],
    *,
    required: bool,
    maximum: float,
    integral: bool = False,
) -> float:
    value = raw.get(name, _MISSING)
    if is_finite_number(value) and 0 < value <= maximum and (not integral or float(value).is_integer()):
        return int(value) if integral else float(value)
    if value is _MISSING:
        if required:
            _warn(sink, name, None, default, f"Missing {name} value, using default")
        return default
    _warn(sink, name, value, default, f"Invalid {name} value, using default")
    return default


def _choice(
    raw: Mapping[str, Any],
    name: str,
    choices: tuple,
    default: str,
    sink: Optional[DiagnosticSink],
    *,
    required: bool,
    normalize,
) -> str:
    value = raw.get(name, _MISSING)
    if isinstance(value, str) and normalize(value.strip()) in choices:
        return normalize(value.strip())
    if value is _MISSING:
        if required:
            _warn(sink, name, None, default, f"Missing {name} value, using default")
        return default
    emit(
        sink, WARN, SOURCE, f"Invalid {name} value, using default",
        field=name, provided=value, default=default, validOptions=list(choices),
    )
    return default


def _flag(raw: Mapping[str, Any], name: str, sink: Optional[DiagnosticSink], *, field_name: Optional[str] = None) -> bool:
    value = raw.get(name, _MISSING)
    if isinstance(value, bool):
        return value
    if value is not _MISSING and value is not None:
        _warn(sink, field_name or name, value, False, f"Invalid {field_name or name} value, using default")
    return False


def _sustainability(raw: Mapping[str, Any], sink: Optional[DiagnosticSink]) -> SustainabilityOptions:
    options = raw.get("sustainabilityOptions", _MISSING)
    if options is _MISSING or options is None:
        return SustainabilityOptions()
    if not isinstance(options, Mapping):
        _warn(sink, "sustainabilityOptions", options, SustainabilityOptions().model_dump(by_alias=True),
              "Invalid sustainabilityOptions value, using defaults")
        options = {}

    waste_heat = _flag(options, "enableWasteHeatRecovery", sink,
                       field_name="sustainabilityOptions.enableWasteHeatRecovery")
    recycling = _flag(options, "enableWaterRecycling", sink,
                      field_name="sustainabilityOptions.enableWaterRecycling")

    name = "sustainabilityOptions.renewableEnergyPercentage"
    renewable = options.get("renewableEnergyPercentage", _MISSING)
    if not (is_finite_number(renewable) and 0 <= renewable <= 100):
        if renewable is not _MISSING:
            _warn(sink, name, renewable, DEFAULT_RENEWABLE_PERCENTAGE, f"Invalid {name} value, using default")
        renewable = DEFAULT_RENEWABLE_PERCENTAGE

    return SustainabilityOptions(
        enable_waste_heat_recovery=waste_heat,
        enable_water_recycling=recycling,
        renewable_energy_percentage=float(renewable),
    )


def _location(raw: Mapping[str, Any], sink: Optional[DiagnosticSink]) -> Optional[Location]:
    location = raw.get("location")
    if location is None:
        return None

    if (
        isinstance(location, Mapping)
        and is_finite_number(location.get("latitude"))
        and is_finite_number(location.get("longitude"))
    ):
        address = location.get("address")
        return Location(
            latitude=float(location["latitude"]),
            longitude=float(location["longitude"]),
            address=address if isinstance(address, str) else None,
            climate_data=location.get("climateData"),
        )

    # Whole-unit rejection: coordinates are never repaired one at a time.
    _warn(sink, "location", location, None, "Invalid location coordinates, ignoring location data")
    return None


def validate_calculation_inputs(raw: Any, sink: Optional[DiagnosticSink] = None) -> CalculationInput:
    """
    Return a canonical ``CalculationInput`` for any ``raw`` value.

    Invalid or missing fields fall back to their defaults and are reported
    to ``sink`` as warnings. Non-object input yields the full default input.
    """
    if isinstance(raw, CalculationInput):
        raw = raw.to_document()

    if not isinstance(raw, Mapping):
        emit(sink, WARN, SOURCE, "Calculation inputs are not an object, using defaults",
             field="inputs", provided=raw, default=None)
        return CalculationInput()

    return CalculationInput(
        kw_per_rack=_positive_number(raw, "kwPerRack", DEFAULT_KW_PER_RACK, sink, required=True,
                                     maximum=MAX_KW_PER_RACK),
        cooling_type=_choice(raw, "coolingType", COOLING_TYPES, DEFAULT_COOLING_TYPE, sink,
                             required=True, normalize=str.lower),
        total_racks=_positive_number(raw, "totalRacks", DEFAULT_TOTAL_RACKS, sink, required=True,
                                     maximum=MAX_TOTAL_RACKS, integral=True),
        redundancy_mode=_choice(raw, "redundancyMode", REDUNDANCY_MODES, DEFAULT_REDUNDANCY_MODE, sink,
                                required=False, normalize=str.upper),
        include_generator=_flag(raw, "includeGenerator", sink),
        battery_runtime=_positive_number(raw, "batteryRuntime", DEFAULT_BATTERY_RUNTIME, sink,
                                         required=False, maximum=MAX_BATTERY_RUNTIME),
        sustainability_options=_sustainability(raw, sink),
        location=_location(raw, sink),
    )
