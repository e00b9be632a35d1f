from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
import weakref

from .backend import RecordingBackend, RenderBackend
from .geometry import BoundingBox, SizeHint
from .raster import RGBA

if TYPE_CHECKING:
    from .frame import CoordinateFrame
    from .grid import GridNode
    from .scene import SceneContext


_STANDALONE_BACKEND = RecordingBackend()


@runtime_checkable
class LayoutElement(Protocol):
    def preferred_size(self) -> SizeHint:
        ...

    def place(self, box: BoundingBox) -> None:
        ...


class SceneMember:
    """Back references shared by everything that can sit in a scene or a grid cell.

    Both references are weak: a scene or grid owns its members, never the other way round.
    """

    def __init__(self) -> None:
        self._scene_ref: weakref.ReferenceType[SceneContext] | None = None
        self._grid_ref: weakref.ReferenceType[GridNode] | None = None
        self.bounding_box: BoundingBox | None = None

    @property
    def grid(self) -> "GridNode | None":
        return self._grid_ref() if self._grid_ref is not None else None

    @property
    def scene(self) -> "SceneContext | None":
        if self._scene_ref is not None:
            scene = self._scene_ref()
            if scene is not None:
                return scene
        grid = self.grid
        if grid is not None:
            return grid.parent_scene
        return None

    @property
    def backend(self) -> RenderBackend:
        scene = self.scene
        if scene is None:
            return _STANDALONE_BACKEND
        return scene.backend

    def _bind_scene(self, scene: "SceneContext | None") -> None:
        self._scene_ref = weakref.ref(scene) if scene is not None else None

    def _bind_grid(self, grid: "GridNode | None") -> None:
        self._grid_ref = weakref.ref(grid) if grid is not None else None

    def _submit(self, box: BoundingBox) -> None:
        self.bounding_box = box
        self.backend.submit_geometry(self, box)


class DrawingSurface(SceneMember):
    """Blank placeable region, used for insets and colorbar strips."""

    def __init__(
        self,
        *,
        width: float | None = None,
        height: float | None = None,
        label: str = "",
        color: RGBA = (44, 53, 66, 255),
        attributes: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        if width is not None and width < 0:
            raise ValueError("width must be >= 0")
        if height is not None and height < 0:
            raise ValueError("height must be >= 0")
        self.width = width
        self.height = height
        self.label = label
        self.color = color
        self.attributes: dict[str, Any] = dict(attributes or {})

    def preferred_size(self) -> SizeHint:
        return SizeHint(self.width, self.height)

    def place(self, box: BoundingBox) -> None:
        self._submit(box)

    def __repr__(self) -> str:
        return f"DrawingSurface(label={self.label!r})"


class TextBlock(SceneMember):
    def __init__(self, text: str = "", *, font_size_px: float = 12.0, padding: float = 4.0) -> None:
        super().__init__()
        if font_size_px <= 0:
            raise ValueError("font_size_px must be > 0")
        if padding < 0:
            raise ValueError("padding must be >= 0")
        self.text = text
        self.font_size_px = float(font_size_px)
        self.padding = float(padding)

    def text_lines(self) -> list[str]:
        return self.text.splitlines()

    def preferred_size(self) -> SizeHint:
        w, h = self.backend.measure_content(self)
        pad = 2.0 * self.padding
        return SizeHint(float(w) + pad, float(h) + pad)

    def place(self, box: BoundingBox) -> None:
        self._submit(box)

    def __repr__(self) -> str:
        return f"TextBlock(text={self.text!r})"


class LegendBlock(TextBlock):
    """Text block listing the legend entries of one frame."""

    def __init__(self, frame: "CoordinateFrame", *, font_size_px: float = 12.0, padding: float = 4.0) -> None:
        super().__init__("", font_size_px=font_size_px, padding=padding)
        self.frame = frame

    def text_lines(self) -> list[str]:
        if not self.frame.legend.visible:
            return []
        return list(self.frame.legend.labels)

    def __repr__(self) -> str:
        return f"LegendBlock(entries={len(self.frame.legend.entries)})"
