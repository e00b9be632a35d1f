from __future__ import annotations

from concurrent.futures import CancelledError, Executor, Future
from dataclasses import dataclass, field
from enum import Enum, IntEnum
import logging
import threading
from types import MappingProxyType
from typing import Any, ClassVar, Mapping

from .config import LayoutConfig
from .elements import SceneMember
from .errors import AmbiguousTargetError, CellOccupiedByIncompatibleType, NoParentScene, UnsupportedTarget
from .frame import CoordinateFrame
from .grid import GridNode, GridPosition, LayoutContent
from .infrastructure import FrameSet, Infrastructure, LayoutKind
from .scene import SceneContext


LOGGER = logging.getLogger(__name__)


class SublayoutTrait(Enum):
    CREATES_SUBLAYOUT = "creates_sublayout"
    NO_SUBLAYOUT = "no_sublayout"


class CallShape(IntEnum):
    NEW_SCENE = 1
    SCENE = 2
    SCENE_POSITION = 3
    GRID_POSITION = 4
    EXISTING_FRAME = 5


def _frozen(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class PartitionedParams:
    """Keyword groups already routed to their destination by the caller."""

    scene: Mapping[str, Any] = field(default_factory=dict)
    frame: Mapping[str, Any] = field(default_factory=dict)
    layer: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "scene", _frozen(self.scene))
        object.__setattr__(self, "frame", _frozen(self.frame))
        object.__setattr__(self, "layer", _frozen(self.layer))


@dataclass(frozen=True)
class CreatedContent:
    content: LayoutContent
    frames: FrameSet
    sublayout: GridNode | None = None
    support: Mapping[str, Any] = field(default_factory=dict)
    members: tuple[SceneMember, ...] = ()


@dataclass(frozen=True)
class ExpectedReturn:
    infrastructure: bool
    kind: LayoutKind | None
    sublayout: bool


class Recipe:
    """A drawing operation.

    ``prepare`` is pure and may run on a worker thread. ``create_content`` and
    ``attach`` touch the scene tree and run on the owning thread only.
    """

    name: ClassVar[str] = "recipe"
    layout_kind: ClassVar[LayoutKind] = LayoutKind.SINGLE_FRAME
    sublayout: ClassVar[SublayoutTrait] = SublayoutTrait.NO_SUBLAYOUT

    @property
    def creates_sublayout(self) -> bool:
        return self.sublayout is SublayoutTrait.CREATES_SUBLAYOUT

    def validate(self, layer_params: Mapping[str, Any]) -> None:
        """Reject bad layer parameters before anything is created or attached."""

    def prepare(self, data: Any, layer_params: Mapping[str, Any]) -> Any:
        raise NotImplementedError

    def create_content(self, scene: SceneContext, params: PartitionedParams, prepared: Any) -> CreatedContent:
        frame = new_frame(scene, params)
        return CreatedContent(content=frame, frames=frame, members=(frame,))

    def attach(self, frames: FrameSet, prepared: Any, layer_params: Mapping[str, Any]) -> Any:
        raise NotImplementedError


def new_frame(scene: SceneContext, params: PartitionedParams, **overrides: Any) -> CoordinateFrame:
    kwargs: dict[str, Any] = {"legend_visible": scene.config.legend_visible}
    kwargs.update(params.frame)
    kwargs.update(overrides)
    return CoordinateFrame(**kwargs)


def resolve_call_shape(target: Any = None, position: Any = None) -> CallShape:
    if isinstance(target, CoordinateFrame):
        if position is not None:
            raise ValueError("a position cannot be combined with an existing frame")
        return CallShape.EXISTING_FRAME
    if isinstance(target, GridPosition):
        if position is not None:
            raise ValueError("pass the grid position either as target or as position, not both")
        return CallShape.GRID_POSITION
    if isinstance(target, SceneContext):
        return CallShape.SCENE if position is None else CallShape.SCENE_POSITION
    if target is None:
        if position is None:
            return CallShape.NEW_SCENE
        if isinstance(position, GridPosition):
            return CallShape.GRID_POSITION
        raise NoParentScene("a bare (row, col) position needs a scene to resolve against")
    raise TypeError(f"unsupported dispatch target: {type(target)!r}")


def expected_return(recipe: Recipe, shape: CallShape) -> ExpectedReturn:
    if shape is CallShape.EXISTING_FRAME:
        return ExpectedReturn(infrastructure=False, kind=None, sublayout=False)
    return ExpectedReturn(infrastructure=True, kind=recipe.layout_kind, sublayout=recipe.creates_sublayout)


def dispatch(
    recipe: Recipe,
    data: Any = None,
    *,
    target: Any = None,
    position: Any = None,
    params: PartitionedParams | None = None,
    config: LayoutConfig | None = None,
) -> Any:
    """Run ``recipe`` against whatever target the call names.

    Returns an ``Infrastructure`` for the four shapes that create or locate a
    cell, and only the recipe's result handle when drawing into an existing
    frame.
    """
    params = params if params is not None else PartitionedParams()
    shape = resolve_call_shape(target, position)
    _check_frame_target(recipe, shape)
    recipe.validate(params.layer)
    prepared = recipe.prepare(data, params.layer)
    return _run(recipe, prepared, shape, target, position, params, config)


def _check_frame_target(recipe: Recipe, shape: CallShape) -> None:
    if shape is not CallShape.EXISTING_FRAME:
        return
    if recipe.layout_kind is not LayoutKind.SINGLE_FRAME or recipe.creates_sublayout:
        raise UnsupportedTarget(f"recipe {recipe.name!r} builds its own frames and cannot draw into an existing frame")


def _run(
    recipe: Recipe,
    prepared: Any,
    shape: CallShape,
    target: Any,
    position: Any,
    params: PartitionedParams,
    config: LayoutConfig | None,
) -> Any:
    LOGGER.debug("dispatch %s as shape %d (%s)", recipe.name, int(shape), shape.name)
    if shape is CallShape.EXISTING_FRAME:
        return recipe.attach(target, prepared, params.layer)

    grid_shape: tuple[int, int] | None = None
    if shape is CallShape.NEW_SCENE:
        scene_kwargs = dict(params.scene)
        if config is not None:
            scene_kwargs["config"] = config
        scene = SceneContext(**scene_kwargs)
        cell = scene.ensure_layout()[1, 1]
    elif shape is CallShape.SCENE:
        scene = target
        layout = scene.ensure_layout()
        # Taken before a free column may be appended.
        grid_shape = (layout.nrows, layout.ncols)
        cell = _next_free_cell(layout)
    elif shape is CallShape.SCENE_POSITION:
        scene = target
        cell = _coerce_position(scene, position)
    else:
        cell = target if isinstance(target, GridPosition) else position
        scene = cell.parent_scene
        if scene is None:
            raise NoParentScene("grid position is not attached to any scene")

    if grid_shape is None:
        grid_shape = (cell.grid.nrows, cell.grid.ncols)
    known = set(map(id, scene.contents))
    created: CreatedContent | None = None
    try:
        cell.grid.resize(cell.span.last_row, cell.span.last_col)
        _check_compatible(recipe, cell)

        created = recipe.create_content(scene, params, prepared)
        if recipe.creates_sublayout and not isinstance(created.content, GridNode):
            raise TypeError(f"recipe {recipe.name!r} declares a sub-layout but created {created.content!r}")
        cell.attach(created.content, replace=False)
        for member in created.members:
            scene.add_content(member)
        scene.resolve_layout()

        result = recipe.attach(created.frames, prepared, params.layer)
    except Exception:
        _roll_back(scene, cell.grid, grid_shape, known, created)
        raise
    grid = created.sublayout if created.sublayout is not None else cell.grid
    return Infrastructure(
        kind=recipe.layout_kind,
        scene=scene,
        grid=grid,
        frames=created.frames,
        result=result,
        support=created.support,
    )


def _roll_back(
    scene: SceneContext,
    grid: GridNode,
    grid_shape: tuple[int, int],
    known: set[int],
    created: CreatedContent | None,
) -> None:
    if created is not None:
        if created.content.grid is grid:
            grid.detach(created.content)
        for member in created.members:
            if id(member) not in known and any(e is member for e in scene.contents):
                scene.remove_content(member)
    # Tracks appended for this call are empty again once the content is gone.
    rows, cols = grid_shape
    while grid.nrows > rows:
        grid.delete_row(grid.nrows)
    while grid.ncols > cols:
        grid.delete_column(grid.ncols)
    scene.resolve_layout()
    LOGGER.debug("rolled back failed dispatch on %r", grid)


def _next_free_cell(layout: GridNode) -> GridPosition:
    for col in range(1, layout.ncols + 1):
        if layout.is_cell_free(1, col):
            return layout[1, col]
    return layout[1, layout.append_column()]


def _coerce_position(scene: SceneContext, position: Any) -> GridPosition:
    if isinstance(position, GridPosition):
        if position.parent_scene is not scene:
            raise AmbiguousTargetError("grid position belongs to a different scene")
        return position
    if isinstance(position, tuple) and len(position) in (2, 4) and all(isinstance(v, int) for v in position):
        layout = scene.ensure_layout()
        if len(position) == 2:
            return layout[position[0], position[1]]
        row, col, row_span, col_span = position
        return layout[row : row + row_span - 1, col : col + col_span - 1]
    raise TypeError("position must be a GridPosition, (row, col) or (row, col, row_span, col_span)")


def _check_compatible(recipe: Recipe, cell: GridPosition) -> None:
    for existing in cell.contents():
        if isinstance(existing, GridNode):
            raise CellOccupiedByIncompatibleType(
                f"cell {cell.span} already holds a sub-layout; {recipe.name!r} cannot stack on it"
            )
        if isinstance(existing, CoordinateFrame) and recipe.creates_sublayout:
            raise CellOccupiedByIncompatibleType(
                f"cell {cell.span} already holds a frame; {recipe.name!r} needs the cell for a sub-layout"
            )


class PendingDraw:
    """Drawing work prepared off-thread, attached later on the owning thread."""

    def __init__(
        self,
        future: Future,
        recipe: Recipe,
        shape: CallShape,
        target: Any,
        position: Any,
        params: PartitionedParams,
        config: LayoutConfig | None,
    ) -> None:
        self._future = future
        self._recipe = recipe
        self._shape = shape
        self._target = target
        self._position = position
        self._params = params
        self._config = config
        self._owner = threading.get_ident()
        self._cancelled = False
        self._attached = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        if self._attached:
            return False
        self._cancelled = True
        self._future.cancel()
        LOGGER.debug("pending %s draw cancelled", self._recipe.name)
        return True

    def attach(self, timeout: float | None = None) -> Any:
        if threading.get_ident() != self._owner:
            raise RuntimeError("pending draws must be attached on the thread that submitted them")
        if self._cancelled:
            raise CancelledError(f"{self._recipe.name} draw was cancelled")
        if self._attached:
            raise RuntimeError("pending draw already attached")
        prepared = self._future.result(timeout=timeout)
        if self._cancelled:
            raise CancelledError(f"{self._recipe.name} draw was cancelled")
        self._attached = True
        return _run(self._recipe, prepared, self._shape, self._target, self._position, self._params, self._config)


def submit(
    executor: Executor,
    recipe: Recipe,
    data: Any = None,
    *,
    target: Any = None,
    position: Any = None,
    params: PartitionedParams | None = None,
    config: LayoutConfig | None = None,
) -> PendingDraw:
    params = params if params is not None else PartitionedParams()
    shape = resolve_call_shape(target, position)
    _check_frame_target(recipe, shape)
    recipe.validate(params.layer)
    future = executor.submit(recipe.prepare, data, params.layer)
    return PendingDraw(future, recipe, shape, target, position, params, config)
