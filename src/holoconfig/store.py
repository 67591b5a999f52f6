"""
Configuration store for a lenticular multi-view display.

Holds the current calibration record and the user render parameters, and
recomputes every derived rendering value on read. Any mutation fires one
change notification.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping

from holoconfig.core import geometry
from holoconfig.core.geometry import QuiltLayout, RenderParameters, resolve_parameter_name
from holoconfig.events import CONFIG_CHANGED, ChangeNotifier, ConfigChange, Subscriber
from holoconfig.meta import PLACEHOLDER_CALIBRATION, CalibrationRecord, parse_calibration
from holoconfig.provider import CalibrationAdapter, ClientFactory, connect_provider

logger = logging.getLogger(__name__)


def _parameter(name: str) -> property:
    return property(lambda self: getattr(self._params, name), doc=f"Current `{name}` render parameter.")


class ConfigurationStore:
    def __init__(
        self,
        provider: ClientFactory | None = None,
        *,
        calibration: CalibrationRecord = PLACEHOLDER_CALIBRATION,
        parameters: RenderParameters | None = None,
    ) -> None:
        self._notifier = ChangeNotifier()
        # Placeholder values while we wait for the calibration service.
        self._calibration = calibration
        self._params = RenderParameters() if parameters is None else replace(parameters)

        self.provider: CalibrationAdapter | None = None
        if provider is not None:
            self.provider = connect_provider(self, provider)

    # observers

    def subscribe(self, callback: Subscriber) -> int:
        return self._notifier.subscribe(callback)

    def unsubscribe(self, token: int) -> bool:
        return self._notifier.unsubscribe(token)

    # calibration

    @property
    def calibration(self) -> CalibrationRecord:
        return self._calibration

    def set_calibration(self, record: CalibrationRecord | Mapping[str, Any] | Any) -> None:
        """
        Replace the calibration wholesale and fire one change notification.

        Anything that is not already a record is parsed permissively (and frozen):
        missing or non-numeric measurements become NaN and show up as NaN derived values.
        """
        if not isinstance(record, CalibrationRecord):
            record = parse_calibration(record)
        old = self._calibration
        self._calibration = record
        self._notifier.notify(ConfigChange(CONFIG_CHANGED, "calibration", old, record))

    # configurable

    tile_height = _parameter("tile_height")
    num_views = _parameter("num_views")
    trackball_x = _parameter("trackball_x")
    trackball_y = _parameter("trackball_y")
    target_x = _parameter("target_x")
    target_y = _parameter("target_y")
    target_z = _parameter("target_z")
    target_diam = _parameter("target_diam")
    fovy = _parameter("fovy")
    depthiness = _parameter("depthiness")
    inline_view = _parameter("inline_view")

    def set(self, name: str, value: Any) -> None:
        """
        Set one render parameter and fire one change notification.

        `name` may use the Python spelling (`tile_height`) or the renderer
        spelling (`tileHeight`). The value is stored as given.
        """
        attr = resolve_parameter_name(name)
        old = getattr(self._params, attr)
        setattr(self._params, attr, value)
        self._notifier.notify(ConfigChange(CONFIG_CHANGED, attr, old, value))

    def update(self, **values: Any) -> None:
        for name, value in values.items():
            self.set(name, value)

    def parameters(self) -> RenderParameters:
        return replace(self._params)

    # computed

    @property
    def aspect(self) -> float:
        return geometry.aspect(self._calibration)

    @property
    def tile_width(self) -> int | float:
        return geometry.tile_width(self._calibration, self._params)

    @property
    def framebuffer_width(self) -> int | float:
        return geometry.framebuffer_width(self._calibration, self._params)

    @property
    def quilt_width(self) -> int | float:
        return geometry.quilt_width(self._calibration, self._params)

    @property
    def quilt_height(self) -> int | float:
        return geometry.quilt_height(self._calibration, self._params)

    @property
    def framebuffer_height(self) -> int | float:
        return geometry.framebuffer_height(self._calibration, self._params)

    @property
    def view_cone(self) -> float:
        return geometry.view_cone(self._calibration, self._params)

    @property
    def tilt(self) -> float:
        return geometry.tilt(self._calibration)

    @property
    def subp(self) -> float:
        return geometry.subp(self._calibration)

    @property
    def pitch(self) -> float:
        return geometry.pitch(self._calibration)

    def layout(self) -> QuiltLayout:
        return geometry.compute_layout(self._calibration, self._params)


_store: ConfigurationStore | None = None


def get_store(provider: ClientFactory | None = None) -> ConfigurationStore:
    """
    Process-wide store, created on first call.

    `provider` is only used by the call that creates the store.
    """
    global _store
    if _store is None:
        _store = ConfigurationStore(provider)
        logger.debug("Configuration store created (provider=%s).", provider is not None)
    elif provider is not None:
        logger.warning("Configuration store already exists; ignoring the new calibration provider.")
    return _store


def reset_store() -> None:
    global _store
    _store = None
