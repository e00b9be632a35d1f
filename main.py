from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

import numpy as np

from scenegrid import (
    DEFAULT_CONFIG,
    GridNode,
    LayoutConfig,
    PartitionedParams,
    SceneContext,
    TextBlock,
    facet,
    load_config,
    series,
)


def build_demo_scene(rows: int, cols: int, *, width: int, height: int, config: LayoutConfig) -> SceneContext:
    if rows <= 0 or cols <= 0:
        raise ValueError("rows and cols must be > 0")
    scene = SceneContext(width, height, config=config)
    x = np.linspace(0.0, 2.0 * np.pi, 64)
    for r in range(1, rows + 1):
        for c in range(1, cols + 1):
            params = PartitionedParams(frame={"title": f"panel {r},{c}"}, layer={"label": "sin"})
            infra = series({"x": x, "y": np.sin(x * (r + c))}, target=scene, position=(r, c), params=params)
            series({"x": x, "y": np.cos(x * (r + c))}, target=infra.frame, params=PartitionedParams(layer={"label": "cos"}))
    title = TextBlock("scenegrid demo", font_size_px=config.font_size_px * 1.5, padding=config.text_padding)
    layout = scene.ensure_layout()
    layout.insert_row(1)
    scene.add_content(title)
    layout.attach(title, 1, 1, 1, layout.ncols)
    facet(
        {"a": np.arange(10.0), "b": np.arange(10.0) ** 2},
        target=layout[layout.nrows + 1, 1],
        params=PartitionedParams(layer={"label": "growth"}),
    )
    scene.resolve_layout()
    return scene


def describe(scene: SceneContext) -> list[dict[str, object]]:
    out: list[dict[str, object]] = []
    for placement in scene.last_placements:
        content = placement.content
        out.append(
            {
                "kind": type(content).__name__,
                "label": getattr(content, "title", None) or getattr(content, "text", None) or getattr(content, "label", ""),
                "depth": placement.depth,
                "span": [placement.span.row, placement.span.col, placement.span.row_span, placement.span.col_span],
                "box": [round(v, 3) for v in placement.box.as_tuple()],
                "nested": isinstance(content, GridNode),
            }
        )
    return out


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="scenegrid")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="Lay out a demo scene and print every placement as JSON lines.")
    demo.add_argument("--rows", type=int, default=2)
    demo.add_argument("--cols", type=int, default=2)
    demo.add_argument("--width", type=int, default=None, help="Scene width. Default: from config.")
    demo.add_argument("--height", type=int, default=None, help="Scene height. Default: from config.")
    demo.add_argument("--config", type=Path, default=None, help="TOML file with a [layout] table.")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "demo":
        config = load_config(args.config) if args.config is not None else DEFAULT_CONFIG
        scene = build_demo_scene(
            args.rows,
            args.cols,
            width=args.width if args.width is not None else config.scene_width,
            height=args.height if args.height is not None else config.scene_height,
            config=config,
        )
        for item in describe(scene):
            print(json.dumps(item))
        return 0
    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
