from __future__ import annotations

import dataclasses
import math

import pytest

from holoconfig.core.geometry import DEFAULT_EYE_HEIGHT, RenderParameters
from holoconfig.events import CONFIG_CHANGED, ConfigChange
from holoconfig.meta import PLACEHOLDER_CALIBRATION, calibration_to_dict
from holoconfig.provider import StaticCalibrationProvider
from holoconfig.store import ConfigurationStore, get_store, reset_store


@pytest.fixture(autouse=True)
def _fresh_process_store():
    reset_store()
    yield
    reset_store()


def _calibration(**values) -> dict:
    data = calibration_to_dict(PLACEHOLDER_CALIBRATION)
    for k, v in values.items():
        data[k] = {"value": v}
    return data


def test_defaults():
    s = ConfigurationStore()
    assert s.calibration is PLACEHOLDER_CALIBRATION
    assert s.tile_height == 320
    assert s.num_views == 2
    assert (s.trackball_x, s.trackball_y) == (0, 0)
    assert (s.target_x, s.target_y, s.target_z) == (0, DEFAULT_EYE_HEIGHT, -0.5)
    assert s.target_y == 1.6
    assert s.target_diam == 2.0
    assert s.fovy == 13.0 / 180 * math.pi
    assert s.depthiness == 1.25
    assert s.inline_view == 1


def test_default_derived_values():
    s = ConfigurationStore()
    assert s.aspect == 1.0
    assert s.tile_width == 320
    assert s.framebuffer_width == 512
    assert s.quilt_width == 1
    assert s.quilt_height == 2
    assert s.framebuffer_height == 1024


def test_depthiness_changes_view_cone():
    s = ConfigurationStore()
    s.set("depthiness", 2.5)
    assert s.view_cone == pytest.approx(1.745, abs=1e-3)


def test_parameters_are_read_only_properties():
    s = ConfigurationStore()
    with pytest.raises(AttributeError):
        s.tile_height = 100  # type: ignore[misc]


def test_set_accepts_both_spellings_and_rejects_unknown():
    s = ConfigurationStore()
    s.set("tileHeight", 400)
    s.set("num_views", 45)
    assert (s.tile_height, s.num_views) == (400, 45)
    with pytest.raises(KeyError):
        s.set("tileWidth", 1)


def test_n_mutations_give_n_ordered_notifications():
    s = ConfigurationStore()
    seen: list[ConfigChange] = []
    s.subscribe(seen.append)

    s.set("tile_height", 400)
    s.set("tile_height", 400)
    s.update(num_views=45, depthiness=2.0)
    s.set_calibration(_calibration(screenW=1536, screenH=2048))

    assert [c.name for c in seen] == ["tile_height", "tile_height", "num_views", "depthiness", "calibration"]
    assert all(c.event == CONFIG_CHANGED for c in seen)
    assert seen[0].old == 320 and seen[0].new == 400
    assert seen[-1].old is PLACEHOLDER_CALIBRATION


def test_unsubscribed_observer_is_not_notified():
    s = ConfigurationStore()
    seen: list[str] = []
    token = s.subscribe(lambda c: seen.append(c.name))
    s.set("fovy", 0.5)
    assert s.unsubscribe(token) is True
    s.set("fovy", 0.6)
    assert seen == ["fovy"]


def test_observer_mutating_store_sees_changes_in_order():
    s = ConfigurationStore()
    seen: list[tuple[str, object]] = []

    def clamp_views(c: ConfigChange) -> None:
        seen.append((c.name, c.new))
        if c.name == "num_views" and c.new > 100:
            s.set("num_views", 100)

    s.subscribe(clamp_views)
    s.set("num_views", 500)
    assert seen == [("num_views", 500), ("num_views", 100)]
    assert s.num_views == 100


def test_calibration_mapping_is_frozen_on_assignment():
    s = ConfigurationStore()
    raw = _calibration(screenW=2560, screenH=1600)
    s.set_calibration(raw)
    raw["screenW"]["value"] = 1
    assert s.calibration.screen_w.value == 2560
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.calibration.screen_w.value = 1  # type: ignore[misc]
    assert s.aspect == 1.6


def test_set_calibration_with_missing_and_non_numeric_values_never_raises():
    s = ConfigurationStore()
    seen: list[ConfigChange] = []
    s.subscribe(seen.append)

    raw = _calibration(DPI=None)
    del raw["slope"]
    s.set_calibration(raw)

    assert len(seen) == 1 and seen[0].name == "calibration"
    assert seen[0].new is s.calibration
    assert math.isnan(s.calibration.slope.value)
    assert math.isnan(s.calibration.dpi.value)
    assert s.aspect == 1.0
    assert s.tile_width == 320
    assert math.isnan(s.tilt)
    assert math.isnan(s.pitch)


def test_set_calibration_with_non_mapping_gives_nan_derived_values():
    s = ConfigurationStore()
    seen: list[str] = []
    s.subscribe(lambda c: seen.append(c.name))

    s.set_calibration(42)  # type: ignore[arg-type]

    assert seen == ["calibration"]
    assert s.calibration is not PLACEHOLDER_CALIBRATION
    layout = s.layout()
    for name in ("aspect", "tile_width", "framebuffer_width", "quilt_width", "quilt_height", "framebuffer_height", "view_cone", "tilt", "subp", "pitch"):
        assert math.isnan(getattr(layout, name)), name


def test_derived_values_follow_current_state():
    s = ConfigurationStore()
    s.set_calibration(_calibration(screenW=1536, screenH=2048))
    s.update(tile_height=512, num_views=45)
    assert s.tile_width == 384
    assert (s.framebuffer_width, s.framebuffer_height) == (4096, 4096)
    assert (s.quilt_width, s.quilt_height) == (10, 5)
    assert s.layout() == s.layout()


def test_zero_num_views_is_accepted():
    s = ConfigurationStore()
    s.set("num_views", 0)
    assert s.quilt_height == 0


def test_parameters_returns_copy():
    s = ConfigurationStore()
    p = s.parameters()
    assert isinstance(p, RenderParameters)
    p.tile_height = 1
    assert s.tile_height == 320


def test_constructor_does_not_alias_parameters():
    p = RenderParameters(num_views=8)
    s = ConfigurationStore(parameters=p)
    p.num_views = 1
    assert s.num_views == 8


def test_get_store_is_a_lazy_singleton():
    a = get_store()
    b = get_store()
    assert a is b
    reset_store()
    assert get_store() is not a


def test_get_store_connects_provider_once(caplog):
    s = get_store(StaticCalibrationProvider.from_calibration(_calibration(screenW=2560, screenH=1600)))
    assert s.calibration.screen_w.value == 2560
    assert s.provider is not None and s.provider.last_error is None

    again = get_store(StaticCalibrationProvider.from_calibration(_calibration(screenW=1)))
    assert again is s
    assert s.calibration.screen_w.value == 2560
    assert "ignoring" in caplog.text
