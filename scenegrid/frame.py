from __future__ import annotations

from dataclasses import dataclass
import logging

import numpy as np

from .elements import SceneMember
from .geometry import BoundingBox, SizeHint
from .layers import Layer
from .legend import LegendAggregator, LegendEntry


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataLimits:
    xmin: float
    xmax: float
    ymin: float
    ymax: float


class CoordinateFrame(SceneMember):
    """Axis-like container: an ordered stack of layers plus their legend."""

    def __init__(
        self,
        *,
        title: str = "",
        x_label: str = "x",
        y_label: str = "y",
        width: float | None = None,
        height: float | None = None,
        legend_visible: bool = True,
    ) -> None:
        super().__init__()
        if width is not None and width < 0:
            raise ValueError("width must be >= 0")
        if height is not None and height < 0:
            raise ValueError("height must be >= 0")
        self.title = title
        self.x_label = x_label
        self.y_label = y_label
        self.width = width
        self.height = height
        self.legend = LegendAggregator(visible=legend_visible)
        self._layers: list[Layer] = []

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def legend_entries(self) -> tuple[LegendEntry, ...]:
        return self.legend.entries

    def add_layer(self, layer: Layer) -> Layer:
        if any(existing is layer for existing in self._layers):
            raise ValueError("layer already belongs to this frame")
        self._layers.append(layer)
        self.legend.recompute(self._layers)
        LOGGER.debug("frame %r: added %s layer label=%r", self.title, layer.recipe, layer.label)
        return layer

    def remove_layer(self, layer: Layer) -> None:
        for i, existing in enumerate(self._layers):
            if existing is layer:
                del self._layers[i]
                self.legend.recompute(self._layers)
                return
        raise ValueError("layer does not belong to this frame")

    def clear(self) -> None:
        self._layers.clear()
        self.legend.recompute(self._layers)

    def data_limits(self) -> DataLimits | None:
        xs: list[np.ndarray] = []
        ys: list[np.ndarray] = []
        for layer in self._layers:
            mask = layer.data.mask
            if not np.any(mask):
                continue
            xs.append(layer.data.x[mask])
            ys.append(layer.data.y[mask])
        if not xs:
            return None
        x = np.concatenate(xs)
        y = np.concatenate(ys)
        return DataLimits(float(x.min()), float(x.max()), float(y.min()), float(y.max()))

    def preferred_size(self) -> SizeHint:
        return SizeHint(self.width, self.height)

    def place(self, box: BoundingBox) -> None:
        self._submit(box)

    def __repr__(self) -> str:
        return f"CoordinateFrame(title={self.title!r}, layers={len(self._layers)})"
