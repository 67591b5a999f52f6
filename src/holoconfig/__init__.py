from holoconfig import meta
from holoconfig.core.geometry import DEFAULT_EYE_HEIGHT, QuiltLayout, RenderParameters
from holoconfig.events import CONFIG_CHANGED, ConfigChange
from holoconfig.meta import PLACEHOLDER_CALIBRATION, CalibrationRecord, Measurement, parse_calibration
from holoconfig.store import ConfigurationStore, get_store, reset_store

__all__ = [
    "meta",
    "CONFIG_CHANGED",
    "DEFAULT_EYE_HEIGHT",
    "PLACEHOLDER_CALIBRATION",
    "CalibrationRecord",
    "ConfigChange",
    "ConfigurationStore",
    "Measurement",
    "QuiltLayout",
    "RenderParameters",
    "get_store",
    "parse_calibration",
    "reset_store",
]
