from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image

from holoconfig.core.geometry import QuiltLayout

logger = logging.getLogger(__name__)


def _require_finite_layout(layout: QuiltLayout) -> None:
    for name in ("tile_width", "tile_height", "num_views", "quilt_width", "framebuffer_width", "framebuffer_height"):
        v = getattr(layout, name)
        if not np.isfinite(v) or v < 0:
            raise ValueError(f"layout.{name} must be finite and >= 0 (got {v})")


def tile_origins_px(layout: QuiltLayout) -> np.ndarray:
    """
    Pixel origin (x, y) of every view tile inside the quilt framebuffer, shape (num_views, 2).

    Views fill the quilt row by row starting at the bottom-left tile
    (row 0 is at y=0 in framebuffer coordinates, y up).
    """
    _require_finite_layout(layout)
    qw = max(int(layout.quilt_width), 1)
    idx = np.arange(int(layout.num_views), dtype=np.int64)
    col = idx % qw
    row = idx // qw
    return np.stack([col * int(layout.tile_width), row * int(layout.tile_height)], axis=-1)


def view_angles_rad(layout: QuiltLayout) -> np.ndarray:
    """
    Horizontal camera angle offset of every view, spread evenly across the view cone.

    View 0 sits at -view_cone/2 and the last view at +view_cone/2; a single view is on axis.
    """
    n = int(layout.num_views)
    if n <= 1:
        return np.zeros((max(n, 0),), dtype=np.float64)
    half = 0.5 * float(layout.view_cone)
    return np.linspace(-half, half, n, dtype=np.float64)


def render_quilt_template(layout: QuiltLayout) -> np.ndarray:
    """
    Grayscale test quilt, shape (framebuffer_height, framebuffer_width), uint8, row 0 at the top.

    Each view tile is filled with a distinct shade (darkest for view 0) and
    outlined in white; unused framebuffer area stays black.
    """
    _require_finite_layout(layout)
    h, w = int(layout.framebuffer_height), int(layout.framebuffer_width)
    tw, th = int(layout.tile_width), int(layout.tile_height)
    img = np.zeros((h, w), dtype=np.uint8)
    if tw <= 0 or th <= 0:
        return img

    origins = tile_origins_px(layout)
    n = origins.shape[0]
    shades = np.linspace(48, 208, max(n, 1)).round().astype(np.uint8)
    for i, (x0, y0) in enumerate(origins):
        # Flip y: quilt rows count from the bottom, image rows from the top.
        top = h - int(y0) - th
        bottom = h - int(y0)
        left, right = int(x0), int(x0) + tw
        if top < 0 or right > w:
            logger.warning("View %d does not fit in the %dx%d framebuffer; skipped.", i, w, h)
            continue
        img[top:bottom, left:right] = shades[i]
        img[top, left:right] = 255
        img[bottom - 1, left:right] = 255
        img[top:bottom, left] = 255
        img[top:bottom, right - 1] = 255
    return img


def write_quilt_template(path: str | Path, layout: QuiltLayout) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    arr = render_quilt_template(layout)
    Image.fromarray(arr).save(p)
    logger.info("Wrote %dx%d quilt template to %s", arr.shape[1], arr.shape[0], p)
    return p
