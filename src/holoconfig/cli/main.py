from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from holoconfig.core.quilt import tile_origins_px, view_angles_rad, write_quilt_template
from holoconfig.logging_config import setup_logging
from holoconfig.meta import calibration_to_dict
from holoconfig.provider import FileCalibrationProvider
from holoconfig.store import ConfigurationStore


def _add_store_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--calibration", type=Path, default=None, help="Calibration JSON (bare object or device message).")
    p.add_argument("--tile-height", type=int, default=None, help="Override tile height (px).")
    p.add_argument("--num-views", type=int, default=None, help="Override number of views.")
    p.add_argument("--depthiness", type=float, default=None, help="Override depthiness (view cone multiplier).")


def _build_store(args: argparse.Namespace) -> ConfigurationStore:
    provider = FileCalibrationProvider(args.calibration) if args.calibration is not None else None
    store = ConfigurationStore(provider)
    if args.tile_height is not None:
        store.set("tile_height", args.tile_height)
    if args.num_views is not None:
        store.set("num_views", args.num_views)
    if args.depthiness is not None:
        store.set("depthiness", args.depthiness)
    return store


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="holoconfig")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    parser.add_argument("--log-file", type=str, default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    show = sub.add_parser("show", help="Print calibration and derived quilt layout as JSON.")
    _add_store_args(show)
    show.add_argument("--views", action="store_true", help="Also print per-view tile origins and angles.")

    tpl = sub.add_parser("quilt-template", help="Write a grayscale test quilt image (one shade per view).")
    _add_store_args(tpl)
    tpl.add_argument("--out", type=Path, required=True)

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    store = _build_store(args)
    if store.provider is not None and store.provider.last_error is not None:
        return 1

    if args.cmd == "show":
        layout = store.layout()
        out = {
            "calibration": calibration_to_dict(store.calibration),
            "parameters": asdict(store.parameters()),
            "layout": asdict(layout),
        }
        if args.views:
            out["views"] = {
                "tile_origins_px": tile_origins_px(layout).tolist(),
                "angles_rad": view_angles_rad(layout).tolist(),
            }
        print(json.dumps(out, indent=2))
        return 0

    if args.cmd == "quilt-template":
        write_quilt_template(args.out, store.layout())
        return 0

    raise AssertionError(f"unhandled command: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
