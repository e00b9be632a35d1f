from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

import numpy as np


LayerMode = Literal["markers", "lines", "lines+markers", "bars", "heatmap"]


@dataclass(frozen=True)
class LayerData:
    x: np.ndarray
    y: np.ndarray
    mask: np.ndarray
    source_name: str | None = None
    values: np.ndarray | None = None


@dataclass(frozen=True)
class VisualKey:
    mode: LayerMode
    color: tuple[int, int, int, int] = (62, 149, 255, 255)
    marker_size: int = 1
    line_width: int = 1
    bar_width: float = 0.8


@dataclass(frozen=True, eq=False)
class Layer:
    """One drawing operation's contribution to a frame."""

    data: LayerData
    key: VisualKey
    label: str | None = None
    recipe: str = "series"
    attributes: Mapping[str, Any] = field(default_factory=dict)
