from __future__ import annotations

import math
from dataclasses import dataclass, fields

import numpy as np

from holoconfig.meta import CalibrationRecord

DEFAULT_EYE_HEIGHT = 1.6


@dataclass
class RenderParameters:
    """User-adjustable rendering parameters. Values are stored as given (no range checks)."""

    tile_height: float = 320
    num_views: float = 2
    trackball_x: float = 0
    trackball_y: float = 0
    target_x: float = 0
    target_y: float = DEFAULT_EYE_HEIGHT
    target_z: float = -0.5
    target_diam: float = 2.0
    fovy: float = 13.0 / 180 * math.pi
    depthiness: float = 1.25
    inline_view: float = 1


PARAMETER_NAMES: tuple[str, ...] = tuple(f.name for f in fields(RenderParameters))

# camelCase spelling used by renderers and the calibration service.
PARAMETER_ALIASES: dict[str, str] = {
    "tileHeight": "tile_height",
    "numViews": "num_views",
    "trackballX": "trackball_x",
    "trackballY": "trackball_y",
    "targetX": "target_x",
    "targetY": "target_y",
    "targetZ": "target_z",
    "targetDiam": "target_diam",
    "fovy": "fovy",
    "depthiness": "depthiness",
    "inlineView": "inline_view",
}


def resolve_parameter_name(name: str) -> str:
    if name in PARAMETER_NAMES:
        return name
    if name in PARAMETER_ALIASES:
        return PARAMETER_ALIASES[name]
    raise KeyError(f"unknown render parameter: {name!r}")


def _div(a: float, b: float) -> float:
    # IEEE semantics: x/0 -> +-inf, 0/0 -> nan (no ZeroDivisionError).
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        return float(np.true_divide(np.float64(a), np.float64(b)))


def _as_count(x: float) -> int | float:
    return int(x) if math.isfinite(x) else x


def round_half_up(x: float) -> float:
    """Round to the nearest integer, ties toward +inf (JavaScript `Math.round`)."""
    x = np.float64(x)
    if not np.isfinite(x):
        return float(x)
    r = np.floor(x)
    if x - r >= 0.5:
        r += 1.0
    return float(r)


def next_power_of_two(x: float) -> float:
    """Smallest power of two >= x, computed as 2**ceil(log2(x))."""
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        k = np.ceil(np.log2(np.float64(x)))
        if np.isfinite(k):
            return float(np.ldexp(1.0, int(k)))
        return float(np.exp2(k))


def aspect(cal: CalibrationRecord) -> float:
    return _div(cal.screen_w.value, cal.screen_h.value)


def tile_width(cal: CalibrationRecord, params: RenderParameters) -> int | float:
    return _as_count(round_half_up(params.tile_height * aspect(cal)))


def framebuffer_width(cal: CalibrationRecord, params: RenderParameters) -> int | float:
    """
    Smallest power of two holding every tile pixel on a square-ish canvas,
    and at least one full tile wide.
    """
    tw = tile_width(cal, params)
    num_pixels = tw * params.tile_height * params.num_views
    with np.errstate(invalid="ignore"):
        side = np.maximum(np.sqrt(np.float64(num_pixels)), np.float64(tw))
    return _as_count(next_power_of_two(side))


def quilt_width(cal: CalibrationRecord, params: RenderParameters) -> int | float:
    fbw = framebuffer_width(cal, params)
    return _as_count(float(np.floor(_div(fbw, tile_width(cal, params)))))


def quilt_height(cal: CalibrationRecord, params: RenderParameters) -> int | float:
    return _as_count(float(np.ceil(_div(params.num_views, quilt_width(cal, params)))))


def framebuffer_height(cal: CalibrationRecord, params: RenderParameters) -> int | float:
    return _as_count(next_power_of_two(quilt_height(cal, params) * params.tile_height))


def view_cone(cal: CalibrationRecord, params: RenderParameters) -> float:
    """Total view cone in radians, scaled by depthiness."""
    return cal.view_cone.value * params.depthiness / 180 * math.pi


def tilt(cal: CalibrationRecord) -> float:
    flip = cal.flip_image_x.value
    # NaN counts as "not flipped".
    sign = -1 if flip and not math.isnan(flip) else 1
    return _div(cal.screen_h.value, cal.screen_w.value * cal.slope.value) * sign


def subp(cal: CalibrationRecord) -> float:
    return _div(1, cal.screen_w.value * 3)


def pitch(cal: CalibrationRecord) -> float:
    """Lenticular pitch in screen-width units, corrected for the lens slope."""
    screen_inches = _div(cal.screen_w.value, cal.dpi.value)
    return cal.pitch.value * screen_inches * math.cos(math.atan(_div(1.0, cal.slope.value)))


@dataclass(frozen=True)
class QuiltLayout:
    tile_width: int | float
    tile_height: float
    num_views: float
    framebuffer_width: int | float
    framebuffer_height: int | float
    quilt_width: int | float
    quilt_height: int | float
    aspect: float
    view_cone: float
    tilt: float
    subp: float
    pitch: float


def compute_layout(cal: CalibrationRecord, params: RenderParameters) -> QuiltLayout:
    return QuiltLayout(
        tile_width=tile_width(cal, params),
        tile_height=params.tile_height,
        num_views=params.num_views,
        framebuffer_width=framebuffer_width(cal, params),
        framebuffer_height=framebuffer_height(cal, params),
        quilt_width=quilt_width(cal, params),
        quilt_height=quilt_height(cal, params),
        aspect=aspect(cal),
        view_cone=view_cone(cal, params),
        tilt=tilt(cal),
        subp=subp(cal),
        pitch=pitch(cal),
    )
