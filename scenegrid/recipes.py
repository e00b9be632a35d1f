from __future__ import annotations

import math
from typing import Any, Mapping

import numpy as np

from .adapters import is_dataframe, normalize_columns, normalize_grid, normalize_xy
from .box_model import Fixed, Relative
from .config import LayoutConfig
from .elements import DrawingSurface
from .errors import SceneDataError
from .frame import CoordinateFrame
from .grid import GridNode
from .infrastructure import FrameSet, LayoutKind
from .layers import Layer, LayerData, VisualKey
from .recipe import CreatedContent, PartitionedParams, Recipe, SublayoutTrait, dispatch, new_frame
from .scene import SceneContext


SERIES_MODES = ("lines", "markers", "lines+markers", "bars")
DEFAULT_COLORS: tuple[tuple[int, int, int], ...] = (
    (62, 149, 255),
    (255, 165, 0),
    (110, 200, 120),
    (230, 90, 90),
    (170, 120, 230),
)


def _coerce_color(color: tuple[int, int, int] | tuple[int, int, int, int], alpha: float) -> tuple[int, int, int, int]:
    if len(color) == 3:
        r, g, b = color
        return (r, g, b, int(max(0.0, min(1.0, alpha)) * 255))
    r, g, b, a = color
    return (r, g, b, int(max(0.0, min(1.0, alpha)) * a))


def _visual_key(mode: str, layer_params: Mapping[str, Any], *, default_index: int = 0) -> VisualKey:
    color = layer_params.get("color", DEFAULT_COLORS[default_index % len(DEFAULT_COLORS)])
    bar_width = float(layer_params.get("bar_width", 0.8))
    if bar_width <= 0:
        raise ValueError("bar width must be > 0")
    return VisualKey(
        mode=mode,  # type: ignore[arg-type]
        color=_coerce_color(color, float(layer_params.get("alpha", 1.0))),
        marker_size=max(1, int(layer_params.get("size", 2 if mode == "markers" else 1))),
        line_width=max(1, int(layer_params.get("width", 1))),
        bar_width=bar_width,
    )


def _single_frame(frames: FrameSet, recipe: str) -> CoordinateFrame:
    if not isinstance(frames, CoordinateFrame):
        raise TypeError(f"recipe {recipe!r} draws into one CoordinateFrame, got {type(frames)!r}")
    return frames


def _series_input(data: Any, layer_params: Mapping[str, Any]) -> LayerData:
    if is_dataframe(data):
        return normalize_columns(data, y=layer_params.get("y_column"), x=layer_params.get("x_column"))
    if isinstance(data, Mapping):
        return normalize_xy(data.get("y"), x=data.get("x"), source_name=data.get("name"))
    if isinstance(data, tuple) and len(data) == 2 and not np.isscalar(data[0]):
        return normalize_xy(data[1], x=data[0])
    return normalize_xy(data)


class SeriesRecipe(Recipe):
    name = "series"
    layout_kind = LayoutKind.SINGLE_FRAME
    sublayout = SublayoutTrait.NO_SUBLAYOUT

    def __init__(self, mode: str = "lines") -> None:
        if mode not in SERIES_MODES:
            raise SceneDataError(f"unsupported series mode: {mode}")
        self.mode = mode

    def validate(self, layer_params: Mapping[str, Any]) -> None:
        _visual_key(self.mode, layer_params)

    def prepare(self, data: Any, layer_params: Mapping[str, Any]) -> LayerData:
        return _series_input(data, layer_params)

    def attach(self, frames: FrameSet, prepared: LayerData, layer_params: Mapping[str, Any]) -> Layer:
        frame = _single_frame(frames, self.name)
        key = _visual_key(self.mode, layer_params, default_index=len(frame.layers))
        layer = Layer(data=prepared, key=key, label=layer_params.get("label"), recipe=self.name)
        return frame.add_layer(layer)


class FacetRecipe(Recipe):
    """One frame per named series, wrapped into ``cols`` columns."""

    name = "facet"
    layout_kind = LayoutKind.FACETED_FRAMES
    sublayout = SublayoutTrait.CREATES_SUBLAYOUT

    def __init__(self, mode: str = "lines", *, cols: int | None = None) -> None:
        if mode not in SERIES_MODES:
            raise SceneDataError(f"unsupported series mode: {mode}")
        if cols is not None and cols < 1:
            raise ValueError("cols must be >= 1")
        self.mode = mode
        self.cols = cols

    def validate(self, layer_params: Mapping[str, Any]) -> None:
        _visual_key(self.mode, layer_params)

    def prepare(self, data: Any, layer_params: Mapping[str, Any]) -> list[tuple[str, LayerData]]:
        if not isinstance(data, Mapping) or not data:
            raise SceneDataError("facet data must be a non-empty mapping of facet name to series")
        return [(str(name), _series_input(values, layer_params)) for name, values in data.items()]

    def grid_shape(self, count: int) -> tuple[int, int]:
        cols = self.cols if self.cols is not None else max(1, math.ceil(math.sqrt(count)))
        cols = min(cols, count)
        return (math.ceil(count / cols), cols)

    def create_content(
        self,
        scene: SceneContext,
        params: PartitionedParams,
        prepared: list[tuple[str, LayerData]],
    ) -> CreatedContent:
        rows, cols = self.grid_shape(len(prepared))
        sub = GridNode(rows, cols, config=scene.config, label=self.name)
        frame_rows: list[list[CoordinateFrame]] = [[] for _ in range(rows)]
        for i, (facet_name, _) in enumerate(prepared):
            r, c = divmod(i, cols)
            frame = new_frame(scene, params, title=facet_name)
            sub.attach(frame, r + 1, c + 1)
            frame_rows[r].append(frame)
        frames = tuple(tuple(row) for row in frame_rows)
        members = tuple(f for row in frames for f in row)
        return CreatedContent(content=sub, frames=frames, sublayout=sub, members=members)

    def attach(
        self,
        frames: FrameSet,
        prepared: list[tuple[str, LayerData]],
        layer_params: Mapping[str, Any],
    ) -> tuple[Layer, ...]:
        flat = [f for row in frames for f in row]  # type: ignore[union-attr]
        layers: list[Layer] = []
        key = _visual_key(self.mode, layer_params)
        for frame, (facet_name, series_data) in zip(flat, prepared):
            layer = Layer(
                data=series_data,
                key=key,
                label=layer_params.get("label"),
                recipe=self.name,
                attributes={"facet": facet_name},
            )
            layers.append(frame.add_layer(layer))
        return tuple(layers)


class JointRecipe(Recipe):
    """Scatter in a main frame with histograms of x above and of y to the right."""

    name = "joint"
    layout_kind = LayoutKind.CUSTOM_FRAMES
    sublayout = SublayoutTrait.CREATES_SUBLAYOUT

    def __init__(self, *, bins: int = 20, marginal_weight: float = 0.25) -> None:
        if bins < 1:
            raise ValueError("bins must be >= 1")
        if marginal_weight <= 0:
            raise ValueError("marginal_weight must be > 0")
        self.bins = bins
        self.marginal_weight = marginal_weight

    def validate(self, layer_params: Mapping[str, Any]) -> None:
        _visual_key("markers", layer_params)
        _visual_key("bars", layer_params)

    def prepare(self, data: Any, layer_params: Mapping[str, Any]) -> dict[str, LayerData]:
        main = _series_input(data, layer_params)
        xs = main.x[main.mask]
        ys = main.y[main.mask]
        x_counts, x_edges = np.histogram(xs, bins=self.bins)
        y_counts, y_edges = np.histogram(ys, bins=self.bins)
        x_centers = (x_edges[:-1] + x_edges[1:]) * 0.5
        y_centers = (y_edges[:-1] + y_edges[1:]) * 0.5
        return {
            "main": main,
            "top": normalize_xy(x_counts.astype(np.float64), x=x_centers),
            "right": normalize_xy(y_centers, x=y_counts.astype(np.float64)),
        }

    def create_content(self, scene: SceneContext, params: PartitionedParams, prepared: Any) -> CreatedContent:
        w = self.marginal_weight
        sub = GridNode(
            2,
            2,
            row_sizes=[Relative(w), Relative(1.0)],
            col_sizes=[Relative(1.0), Relative(w)],
            config=scene.config,
            label=self.name,
        )
        frames = {
            "main": new_frame(scene, params),
            "top": new_frame(scene, params, title="", legend_visible=False),
            "right": new_frame(scene, params, title="", legend_visible=False),
        }
        sub.attach(frames["top"], 1, 1)
        sub.attach(frames["main"], 2, 1)
        sub.attach(frames["right"], 2, 2)
        return CreatedContent(content=sub, frames=frames, sublayout=sub, members=tuple(frames.values()))

    def attach(self, frames: FrameSet, prepared: dict[str, LayerData], layer_params: Mapping[str, Any]) -> dict[str, Layer]:
        named: Mapping[str, CoordinateFrame] = frames  # type: ignore[assignment]
        label = layer_params.get("label")
        out = {
            "main": named["main"].add_layer(
                Layer(data=prepared["main"], key=_visual_key("markers", layer_params), label=label, recipe=self.name)
            ),
        }
        for name in ("top", "right"):
            key = _visual_key("bars", layer_params)
            out[name] = named[name].add_layer(Layer(data=prepared[name], key=key, recipe=self.name))
        return out


class HeatmapRecipe(Recipe):
    """Heatmap frame with a colorbar strip returned in the support slot."""

    name = "heatmap"
    layout_kind = LayoutKind.SINGLE_FRAME
    sublayout = SublayoutTrait.CREATES_SUBLAYOUT

    def __init__(self, *, colorbar_width: float = 20.0) -> None:
        if colorbar_width <= 0:
            raise ValueError("colorbar_width must be > 0")
        self.colorbar_width = float(colorbar_width)

    def prepare(self, data: Any, layer_params: Mapping[str, Any]) -> LayerData:
        return normalize_grid(data)

    def create_content(self, scene: SceneContext, params: PartitionedParams, prepared: LayerData) -> CreatedContent:
        sub = GridNode(1, 2, col_sizes=[Relative(1.0), Fixed(self.colorbar_width)], config=scene.config, label=self.name)
        frame = new_frame(scene, params)
        values = prepared.values[np.isfinite(prepared.values)]  # type: ignore[index]
        colorbar = DrawingSurface(
            width=self.colorbar_width,
            label="colorbar",
            attributes={"vmin": float(values.min()), "vmax": float(values.max())},
        )
        sub.attach(frame, 1, 1)
        sub.attach(colorbar, 1, 2)
        return CreatedContent(
            content=sub,
            frames=frame,
            sublayout=sub,
            support={"colorbar": colorbar},
            members=(frame, colorbar),
        )

    def validate(self, layer_params: Mapping[str, Any]) -> None:
        _visual_key("heatmap", layer_params)

    def attach(self, frames: FrameSet, prepared: LayerData, layer_params: Mapping[str, Any]) -> Layer:
        frame = _single_frame(frames, self.name)
        values = prepared.values[np.isfinite(prepared.values)]  # type: ignore[index]
        layer = Layer(
            data=prepared,
            key=_visual_key("heatmap", layer_params),
            label=layer_params.get("label"),
            recipe=self.name,
            attributes={"vmin": float(values.min()), "vmax": float(values.max())},
        )
        return frame.add_layer(layer)


def series(
    data: Any = None,
    *,
    mode: str = "lines",
    target: Any = None,
    position: Any = None,
    params: PartitionedParams | None = None,
    config: LayoutConfig | None = None,
) -> Any:
    return dispatch(SeriesRecipe(mode), data, target=target, position=position, params=params, config=config)


def facet(
    data: Mapping[str, Any],
    *,
    mode: str = "lines",
    cols: int | None = None,
    target: Any = None,
    position: Any = None,
    params: PartitionedParams | None = None,
    config: LayoutConfig | None = None,
) -> Any:
    return dispatch(FacetRecipe(mode, cols=cols), data, target=target, position=position, params=params, config=config)


def joint(
    data: Any,
    *,
    bins: int = 20,
    target: Any = None,
    position: Any = None,
    params: PartitionedParams | None = None,
    config: LayoutConfig | None = None,
) -> Any:
    return dispatch(JointRecipe(bins=bins), data, target=target, position=position, params=params, config=config)


def heatmap(
    data: Any,
    *,
    colorbar_width: float = 20.0,
    target: Any = None,
    position: Any = None,
    params: PartitionedParams | None = None,
    config: LayoutConfig | None = None,
) -> Any:
    recipe = HeatmapRecipe(colorbar_width=colorbar_width)
    return dispatch(recipe, data, target=target, position=position, params=params, config=config)
