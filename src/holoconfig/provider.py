"""
Calibration provider adapter.

A provider is any callable `factory(on_message, on_error)` that builds a
hardware-service client. The client later calls `on_message` with
`{"devices": [{"calibration": {...}}, ...]}` or `on_error` with an error value.
Failures are logged; none of them propagate to the store's users.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping

from holoconfig.meta import MEASUREMENT_KEYS, CalibrationRecord, parse_calibration, read_calibration_message

if TYPE_CHECKING:
    from holoconfig.store import ConfigurationStore

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Mapping[str, Any]], Any]
ErrorCallback = Callable[[Any], Any]
ClientFactory = Callable[[MessageCallback, ErrorCallback], Any]


class CalibrationProviderError(RuntimeError):
    pass


class NoDeviceFoundError(CalibrationProviderError):
    pass


class ProviderConnectionError(CalibrationProviderError):
    pass


class MultipleDevicesFoundWarning(UserWarning):
    pass


class CalibrationAdapter:
    """Routes client callbacks into a store. `last_error` keeps the most recent failure."""

    def __init__(self, store: ConfigurationStore) -> None:
        self.store = store
        self.client: Any = None
        self.last_error: Exception | None = None
        self.last_warning: Warning | None = None

    def handle_message(self, msg: Mapping[str, Any]) -> CalibrationRecord | None:
        devices = msg.get("devices") if isinstance(msg, Mapping) else None
        if not devices:
            self.last_error = NoDeviceFoundError("No display devices found!")
            logger.error("%s Keeping current calibration.", self.last_error)
            return None

        if len(devices) > 1:
            self.last_warning = MultipleDevicesFoundWarning(
                f"{len(devices)} display devices found... using the first one"
            )
            logger.warning("%s", self.last_warning)

        device = devices[0]
        raw = device.get("calibration") if isinstance(device, Mapping) else None
        record = parse_calibration(raw)
        incomplete = [key for attr, key in MEASUREMENT_KEYS.items() if math.isnan(getattr(record, attr).value)]
        if incomplete:
            logger.warning("Calibration from device 0 has no usable value for: %s", ", ".join(incomplete))

        self.store.set_calibration(record)
        logger.info("Calibration received (configVersion=%s).", record.config_version)
        return record

    def handle_error(self, err: Any) -> None:
        if isinstance(err, Exception):
            self.last_error = err
        else:
            self.last_error = ProviderConnectionError(str(err))
        logger.error("Error creating calibration client: %s", self.last_error)


def connect_provider(store: ConfigurationStore, factory: ClientFactory) -> CalibrationAdapter:
    adapter = CalibrationAdapter(store)
    try:
        adapter.client = factory(adapter.handle_message, adapter.handle_error)
    except Exception as exc:
        err = ProviderConnectionError(f"could not create calibration client: {exc}")
        err.__cause__ = exc
        adapter.handle_error(err)
    return adapter


class StaticCalibrationProvider:
    """Delivers a fixed service message as soon as the client is built."""

    def __init__(self, message: Mapping[str, Any]) -> None:
        self.message = message

    @classmethod
    def from_calibration(cls, *calibrations: Mapping[str, Any]) -> StaticCalibrationProvider:
        return cls({"devices": [{"calibration": c} for c in calibrations]})

    def __call__(self, on_message: MessageCallback, on_error: ErrorCallback) -> StaticCalibrationProvider:
        on_message(self.message)
        return self


class FileCalibrationProvider:
    """
    Reads a calibration JSON file: either a service message or a bare calibration object.
    Read and decode failures are reported through `on_error`.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __call__(self, on_message: MessageCallback, on_error: ErrorCallback) -> FileCalibrationProvider:
        try:
            message = read_calibration_message(self.path)
        except (OSError, ValueError) as exc:
            on_error(ProviderConnectionError(f"cannot read calibration file {self.path}: {exc}"))
            return self

        on_message(message)
        return self
