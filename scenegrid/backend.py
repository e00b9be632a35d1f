from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from .geometry import BoundingBox
from .raster import RGBA, draw_hline, draw_rect, draw_text, fill_rect, new_canvas, text_size

if TYPE_CHECKING:
    from .scene import SceneContext


LOGGER = logging.getLogger(__name__)


class RenderBackend(Protocol):
    def measure_content(self, element: Any) -> tuple[float, float]:
        ...

    def submit_geometry(self, element: Any, box: BoundingBox) -> None:
        ...


class RecordingBackend:
    """Backend that keeps submitted geometry and measures text with Pillow metrics."""

    def __init__(self, *, font_family: str | None = None) -> None:
        self.font_family = font_family
        self.submissions: list[tuple[Any, BoundingBox]] = []
        self._latest: dict[int, tuple[Any, BoundingBox]] = {}

    def measure_content(self, element: Any) -> tuple[float, float]:
        lines = getattr(element, "text_lines", None)
        if lines is None:
            return (0.0, 0.0)
        kwargs: dict[str, Any] = {"font_size_px": float(getattr(element, "font_size_px", 12.0))}
        if self.font_family is not None:
            kwargs["font_family"] = self.font_family
        w, h = text_size(list(lines()), **kwargs)
        return (float(w), float(h))

    def submit_geometry(self, element: Any, box: BoundingBox) -> None:
        self.submissions.append((element, box))
        self._latest[id(element)] = (element, box)

    def geometry_of(self, element: Any) -> BoundingBox | None:
        item = self._latest.get(id(element))
        if item is None or item[0] is not element:
            return None
        return item[1]

    def clear(self) -> None:
        self.submissions.clear()
        self._latest.clear()


class RasterBackend(RecordingBackend):
    def __init__(
        self,
        *,
        font_family: str | None = None,
        background: RGBA = (12, 16, 23, 255),
        frame_color: RGBA = (60, 67, 78, 255),
        plot_bg_color: RGBA = (20, 26, 36, 255),
        text_color: RGBA = (208, 218, 232, 255),
    ) -> None:
        super().__init__(font_family=font_family)
        self.background = background
        self.frame_color = frame_color
        self.plot_bg_color = plot_bg_color
        self.text_color = text_color

    def to_rgba(self, scene: "SceneContext") -> np.ndarray:
        from .elements import DrawingSurface, TextBlock
        from .frame import CoordinateFrame

        canvas = new_canvas(int(scene.width), int(scene.height), color=self.background)
        for element in scene.iter_elements():
            box = self.geometry_of(element)
            if box is None:
                continue
            rect = box.to_pixels()
            if isinstance(element, CoordinateFrame):
                fill_rect(canvas, rect, self.plot_bg_color)
                draw_rect(canvas, rect, self.frame_color)
                if element.legend.visible:
                    self._draw_legend_swatches(canvas, element, rect)
            elif isinstance(element, TextBlock):
                self._draw_lines(canvas, element, rect)
            elif isinstance(element, DrawingSurface):
                fill_rect(canvas, rect, element.color)
        LOGGER.debug("rasterized scene %dx%d", canvas.shape[1], canvas.shape[0])
        return canvas

    def _draw_lines(self, canvas: np.ndarray, element: Any, rect: tuple[int, int, int, int]) -> None:
        x, y, _, _ = rect
        font_px = float(element.font_size_px)
        step = int(round(font_px * 1.2))
        for i, line in enumerate(element.text_lines()):
            kwargs: dict[str, Any] = {"font_size_px": font_px}
            if self.font_family is not None:
                kwargs["font_family"] = self.font_family
            draw_text(canvas, x + int(element.padding), y + int(element.padding) + i * step, line, self.text_color, **kwargs)

    def _draw_legend_swatches(self, canvas: np.ndarray, frame: Any, rect: tuple[int, int, int, int]) -> None:
        x, y, w, _ = rect
        for i, entry in enumerate(frame.legend.entries):
            row_y = y + 8 + i * 14
            draw_hline(canvas, x + w - 28, x + w - 8, row_y, entry.key.color)
