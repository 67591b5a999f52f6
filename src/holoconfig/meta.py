from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


class CalibrationFormatError(ValueError):
    pass


@dataclass(frozen=True)
class Measurement:
    value: float


@dataclass(frozen=True)
class CalibrationRecord:
    """
    Optical/geometric constants of one lenticular display.

    Every numeric entry keeps the service's `{"value": x}` envelope as a
    `Measurement`. Unknown keys are kept read-only in `extras`.
    """

    config_version: str
    pitch: Measurement
    slope: Measurement
    center: Measurement
    view_cone: Measurement
    inv_view: Measurement
    vertical_angle: Measurement
    dpi: Measurement
    screen_w: Measurement
    screen_h: Measurement
    flip_image_x: Measurement
    flip_image_y: Measurement
    flip_subp: Measurement
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


# Python attribute -> key used by the calibration service.
MEASUREMENT_KEYS: dict[str, str] = {
    "pitch": "pitch",
    "slope": "slope",
    "center": "center",
    "view_cone": "viewCone",
    "inv_view": "invView",
    "vertical_angle": "verticalAngle",
    "dpi": "DPI",
    "screen_w": "screenW",
    "screen_h": "screenH",
    "flip_image_x": "flipImageX",
    "flip_image_y": "flipImageY",
    "flip_subp": "flipSubp",
}


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise CalibrationFormatError(msg)


def deep_freeze(obj: Any) -> Any:
    """Return a read-only copy of nested mappings/sequences (dict -> MappingProxyType, list -> tuple)."""
    if isinstance(obj, Mapping):
        return MappingProxyType({k: deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(deep_freeze(v) for v in obj)
    if isinstance(obj, set):
        return frozenset(deep_freeze(v) for v in obj)
    return obj


def _thaw(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        return {k: _thaw(v) for k, v in obj.items()}
    if isinstance(obj, (tuple, frozenset)):
        return [_thaw(v) for v in obj]
    return obj


def _parse_measurement(data: Mapping[str, Any], key: str, strict: bool) -> Measurement:
    raw = data.get(key)
    if not strict and not (isinstance(raw, Mapping) and "value" in raw):
        return Measurement(value=math.nan)
    _require(raw is not None, f"calibration.{key} is required")
    _require(isinstance(raw, Mapping) and "value" in raw, f"calibration.{key} must be an object with a 'value' entry")
    try:
        value = float(raw["value"])
    except (TypeError, ValueError) as exc:
        if not strict:
            return Measurement(value=math.nan)
        raise CalibrationFormatError(f"calibration.{key}.value must be a number") from exc
    return Measurement(value=value)


def parse_calibration(data: Mapping[str, Any], strict: bool = False) -> CalibrationRecord:
    """
    Build a frozen record from a service calibration mapping.

    By default missing or non-numeric measurements become NaN and a missing
    configVersion becomes "", so malformed input flows into the derived values.
    With `strict=True` they raise `CalibrationFormatError`.
    """
    if not isinstance(data, Mapping):
        _require(not strict, "calibration must be a mapping")
        data = {}

    version = data.get("configVersion")
    _require(not strict or version is not None, "calibration.configVersion is required")

    measurements = {attr: _parse_measurement(data, key, strict) for attr, key in MEASUREMENT_KEYS.items()}

    known = set(MEASUREMENT_KEYS.values()) | {"configVersion"}
    extras = deep_freeze({k: v for k, v in data.items() if k not in known})

    return CalibrationRecord(config_version="" if version is None else str(version), extras=extras, **measurements)


def calibration_to_dict(record: CalibrationRecord) -> dict[str, Any]:
    out: dict[str, Any] = {"configVersion": record.config_version}
    for attr, key in MEASUREMENT_KEYS.items():
        out[key] = {"value": getattr(record, attr).value}
    out.update(_thaw(record.extras))
    return out


def read_calibration_message(path: Path) -> dict[str, Any]:
    """
    Read a calibration JSON file as a service message (`{"devices": [{"calibration": {...}}]}`).

    A bare calibration object is wrapped as a single-device message.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    _require(isinstance(data, Mapping), f"{path}: expected a JSON object")
    if "devices" not in data:
        data = {"devices": [{"calibration": data}]}
    return data


def load_calibration(path: Path) -> CalibrationRecord:
    """Strictly parse the first device's calibration from a JSON file."""
    devices = read_calibration_message(path)["devices"]
    _require(isinstance(devices, list) and len(devices) > 0, "devices must be a non-empty list")
    device = devices[0]
    _require(isinstance(device, Mapping) and "calibration" in device, "devices[0].calibration is required")
    return parse_calibration(device["calibration"], strict=True)


PLACEHOLDER_CALIBRATION = parse_calibration(
    {
        "configVersion": "1.0",
        "pitch": {"value": 45},
        "slope": {"value": -5},
        "center": {"value": -0.5},
        "viewCone": {"value": 40},
        "invView": {"value": 1},
        "verticalAngle": {"value": 0},
        "DPI": {"value": 338},
        "screenW": {"value": 250},
        "screenH": {"value": 250},
        "flipImageX": {"value": 0},
        "flipImageY": {"value": 0},
        "flipSubp": {"value": 0},
    },
    strict=True,
)
