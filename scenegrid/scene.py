from __future__ import annotations

import logging
from typing import Iterator

from .backend import RecordingBackend, RenderBackend
from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import SceneMember
from .errors import LayoutAlreadySet, StructuralError
from .frame import CoordinateFrame
from .geometry import BoundingBox
from .grid import GridNode, GridPosition, LayoutContent, Placement


LOGGER = logging.getLogger(__name__)


class SceneContext:
    """Top-level drawing surface.

    Owns at most one root grid (set once) and every content element created in
    it, whether or not that element is laid out.
    """

    def __init__(
        self,
        width: int | None = None,
        height: int | None = None,
        *,
        backend: RenderBackend | None = None,
        config: LayoutConfig = DEFAULT_CONFIG,
    ) -> None:
        self.config = config
        self.width = int(config.scene_width if width is None else width)
        self.height = int(config.scene_height if height is None else height)
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be > 0")
        self.backend: RenderBackend = backend if backend is not None else RecordingBackend()
        self._layout: GridNode | None = None
        self._contents: list[SceneMember] = []
        self._last_placements: tuple[Placement, ...] = ()

    @property
    def layout(self) -> GridNode | None:
        return self._layout

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox(0.0, 0.0, float(self.width), float(self.height))

    @property
    def layout_box(self) -> BoundingBox:
        return self.bounding_box.inset(self.config.padding)

    def set_layout(self, grid: GridNode) -> GridNode:
        if self._layout is not None:
            raise LayoutAlreadySet("scene already has a root layout")
        if grid.parent is not None:
            raise StructuralError("a grid nested in another grid cannot become a scene root")
        if grid.parent_scene is not None:
            raise StructuralError("grid is already the root layout of another scene")
        grid._bind_scene(self)
        self._layout = grid
        LOGGER.debug("scene root layout set: %r", grid)
        return grid

    def ensure_layout(self) -> GridNode:
        if self._layout is None:
            return self.set_layout(GridNode(1, 1, config=self.config))
        return self._layout

    def __getitem__(self, key: tuple[int | slice, int | slice]) -> GridPosition:
        return self.ensure_layout()[key]

    def __setitem__(self, key: tuple[int | slice, int | slice], content: LayoutContent) -> None:
        self.add_content(content)
        self.ensure_layout()[key] = content

    def add_content(self, element: SceneMember) -> SceneMember:
        if element.scene is not None and element.scene is not self:
            raise StructuralError("element already belongs to another scene")
        if not any(existing is element for existing in self._contents):
            self._contents.append(element)
        element._bind_scene(self)
        return element

    def remove_content(self, element: SceneMember) -> None:
        for i, existing in enumerate(self._contents):
            if existing is element:
                del self._contents[i]
                grid = element.grid
                if grid is not None:
                    grid.detach(element)  # type: ignore[arg-type]
                element._bind_scene(None)
                return
        raise ValueError(f"{element!r} is not part of this scene")

    @property
    def contents(self) -> tuple[SceneMember, ...]:
        return tuple(self._contents)

    @property
    def frames(self) -> tuple[CoordinateFrame, ...]:
        return tuple(e for e in self._contents if isinstance(e, CoordinateFrame))

    def iter_elements(self) -> Iterator[SceneMember]:
        """Owned elements first, then laid-out content owned elsewhere, each once."""
        seen: set[int] = set()
        for element in self._contents:
            seen.add(id(element))
            yield element
        if self._layout is not None:
            for element in self._layout.walk():
                if id(element) not in seen:
                    seen.add(id(element))
                    yield element

    def resolve_layout(self) -> tuple[Placement, ...]:
        if self._layout is None:
            self._last_placements = ()
            return self._last_placements
        self._last_placements = self._layout.resolve(self.layout_box)
        LOGGER.debug("scene %dx%d resolved %d placements", self.width, self.height, len(self._last_placements))
        return self._last_placements

    @property
    def last_placements(self) -> tuple[Placement, ...]:
        return self._last_placements

    def resize(self, width: int, height: int) -> tuple[Placement, ...]:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        self.width = int(width)
        self.height = int(height)
        return self.resolve_layout()

    def __repr__(self) -> str:
        return f"SceneContext({self.width}x{self.height}, contents={len(self._contents)})"
