from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import TYPE_CHECKING, Iterator, Literal, Sequence, TypeAlias

from .box_model import Auto, Fixed, SizingPolicy, TrackExtent, resolve_tracks, span_extent
from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import DrawingSurface, SceneMember, TextBlock
from .errors import CycleDetected, SpanOutOfRange, StructuralError, TrackNotEmpty
from .frame import CoordinateFrame
from .geometry import BoundingBox, SizeHint

if TYPE_CHECKING:
    from .scene import SceneContext


LOGGER = logging.getLogger(__name__)

Axis = Literal["row", "col"]
LayoutContent: TypeAlias = "DrawingSurface | CoordinateFrame | TextBlock | GridNode"


@dataclass(frozen=True)
class GridSpan:
    """1-based, inclusive cell range: ``row_span`` rows starting at ``row``."""

    row: int
    col: int
    row_span: int = 1
    col_span: int = 1

    def __post_init__(self) -> None:
        if self.row < 1 or self.col < 1:
            raise SpanOutOfRange(f"grid indices are 1-based, got ({self.row}, {self.col})")
        if self.row_span < 1 or self.col_span < 1:
            raise ValueError("row_span and col_span must be >= 1")

    @property
    def last_row(self) -> int:
        return self.row + self.row_span - 1

    @property
    def last_col(self) -> int:
        return self.col + self.col_span - 1

    def covers(self, row: int, col: int) -> bool:
        return self.row <= row <= self.last_row and self.col <= col <= self.last_col

    def along(self, axis: Axis) -> tuple[int, int]:
        if axis == "row":
            return (self.row, self.row_span)
        return (self.col, self.col_span)

    def with_axis(self, axis: Axis, start: int, count: int) -> "GridSpan":
        if axis == "row":
            return replace(self, row=start, row_span=count)
        return replace(self, col=start, col_span=count)


@dataclass(frozen=True)
class GridContent:
    span: GridSpan
    content: "LayoutContent"


@dataclass(frozen=True)
class Placement:
    content: "LayoutContent"
    box: BoundingBox
    span: GridSpan
    depth: int = 0


@dataclass(frozen=True)
class GridPosition:
    grid: "GridNode"
    span: GridSpan

    @property
    def parent_scene(self) -> "SceneContext | None":
        return self.grid.parent_scene

    def contents(self, *, exact: bool = True) -> list["LayoutContent"]:
        return self.grid.contents_at(self.span, exact=exact)

    def attach(self, content: "LayoutContent", *, replace: bool = True) -> "GridPosition":
        s = self.span
        return self.grid.attach(content, s.row, s.col, s.row_span, s.col_span, replace=replace)


def _index_range(key: int | slice, name: str) -> tuple[int, int]:
    if isinstance(key, bool):
        raise TypeError(f"{name} index must be an int or slice")
    if isinstance(key, int):
        return (key, 1)
    if isinstance(key, slice):
        if key.step not in (None, 1):
            raise ValueError(f"{name} slice step is not supported")
        if key.start is None or key.stop is None:
            raise ValueError(f"{name} slice needs explicit start and stop")
        # Inclusive on both ends, like the 1-based cell indices themselves.
        if key.stop < key.start:
            raise ValueError(f"{name} slice stop must be >= start")
        return (int(key.start), int(key.stop) - int(key.start) + 1)
    raise TypeError(f"{name} index must be an int or slice")


class GridNode(SceneMember):
    """Rows and columns of sizing policies with content attached to cell spans.

    A grid can sit in a cell of another grid. It keeps only weak references
    upward (parent grid, parent scene), so the owning scene or grid decides its
    lifetime.
    """

    def __init__(
        self,
        nrows: int = 1,
        ncols: int = 1,
        *,
        row_sizes: Sequence[SizingPolicy] | None = None,
        col_sizes: Sequence[SizingPolicy] | None = None,
        row_gap: float | None = None,
        col_gap: float | None = None,
        config: LayoutConfig = DEFAULT_CONFIG,
        label: str = "",
    ) -> None:
        super().__init__()
        if nrows < 1 or ncols < 1:
            raise ValueError("nrows and ncols must be >= 1")
        self.config = config
        self.label = label
        self._rows: list[SizingPolicy] = self._initial_tracks(nrows, row_sizes, "row_sizes")
        self._cols: list[SizingPolicy] = self._initial_tracks(ncols, col_sizes, "col_sizes")
        self.row_gap = float(config.row_gap if row_gap is None else row_gap)
        self.col_gap = float(config.col_gap if col_gap is None else col_gap)
        if self.row_gap < 0 or self.col_gap < 0:
            raise ValueError("row_gap/col_gap must be >= 0")
        self._entries: list[GridContent] = []

    def _initial_tracks(self, count: int, sizes: Sequence[SizingPolicy] | None, name: str) -> list[SizingPolicy]:
        if sizes is None:
            return [self.config.new_track() for _ in range(count)]
        if len(sizes) != count:
            raise ValueError(f"{name} must have {count} entries")
        return list(sizes)

    @property
    def nrows(self) -> int:
        return len(self._rows)

    @property
    def ncols(self) -> int:
        return len(self._cols)

    @property
    def row_sizes(self) -> tuple[SizingPolicy, ...]:
        return tuple(self._rows)

    @property
    def col_sizes(self) -> tuple[SizingPolicy, ...]:
        return tuple(self._cols)

    @property
    def parent(self) -> "GridNode | None":
        return self.grid

    @property
    def parent_scene(self) -> "SceneContext | None":
        if self._scene_ref is not None:
            scene = self._scene_ref()
            if scene is not None:
                return scene
        parent = self.parent
        if parent is None:
            return None
        return parent.parent_scene

    @property
    def scene(self) -> "SceneContext | None":
        return self.parent_scene

    @property
    def root_of(self) -> "SceneContext | None":
        """The scene that holds this grid as its root layout, if any."""
        scene = self._scene_ref() if self._scene_ref is not None else None
        if scene is not None and scene.layout is self:
            return scene
        return None

    def is_ancestor_of(self, node: "GridNode") -> bool:
        current = node.parent
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    def __getitem__(self, key: tuple[int | slice, int | slice]) -> GridPosition:
        row_key, col_key = key
        row, row_span = _index_range(row_key, "row")
        col, col_span = _index_range(col_key, "col")
        return GridPosition(self, GridSpan(row, col, row_span, col_span))

    def __setitem__(self, key: tuple[int | slice, int | slice], content: "LayoutContent") -> None:
        self[key].attach(content)

    def set_row_size(self, row: int, policy: SizingPolicy) -> None:
        self._check_track("row", row)
        self._rows[row - 1] = policy

    def set_col_size(self, col: int, policy: SizingPolicy) -> None:
        self._check_track("col", col)
        self._cols[col - 1] = policy

    def _tracks(self, axis: Axis) -> list[SizingPolicy]:
        return self._rows if axis == "row" else self._cols

    def _check_track(self, axis: Axis, index: int) -> None:
        count = len(self._tracks(axis))
        if not 1 <= index <= count:
            raise SpanOutOfRange(f"{axis} {index} is outside 1..{count}")

    def _check_span(self, span: GridSpan) -> None:
        if span.last_row > self.nrows or span.last_col > self.ncols:
            raise SpanOutOfRange(
                f"span rows {span.row}..{span.last_row} cols {span.col}..{span.last_col} "
                f"exceeds a {self.nrows}x{self.ncols} grid"
            )

    def attach(
        self,
        content: "LayoutContent",
        row: int,
        col: int,
        row_span: int = 1,
        col_span: int = 1,
        *,
        replace: bool = True,
    ) -> GridPosition:
        """Put ``content`` into the cell span starting at ``(row, col)``.

        Content already sitting anywhere in a grid moves here. With ``replace``
        the content at an exactly matching span is detached; otherwise it stays
        stacked under the new content.
        """
        span = GridSpan(row, col, row_span, col_span)
        self._check_span(span)
        if isinstance(content, GridNode) and (content is self or content.is_ancestor_of(self)):
            raise CycleDetected("a grid cannot be placed inside itself or one of its descendants")
        if isinstance(content, GridNode) and content.root_of is not None:
            raise StructuralError("a scene's root layout cannot also sit in a grid cell")
        if not isinstance(content, (GridNode, CoordinateFrame, TextBlock, DrawingSurface)):
            raise TypeError(f"unsupported layout content: {type(content)!r}")

        previous = content.grid
        if previous is not None:
            previous.detach(content)
        if replace:
            for entry in [e for e in self._entries if e.span == span]:
                self.detach(entry.content)
        self._entries.append(GridContent(span=span, content=content))
        content._bind_grid(self)
        LOGGER.debug("attached %r at %s", content, span)
        return GridPosition(self, span)

    def detach(self, content: "LayoutContent") -> GridSpan:
        for i, entry in enumerate(self._entries):
            if entry.content is content:
                del self._entries[i]
                content._bind_grid(None)
                return entry.span
        raise ValueError(f"{content!r} is not attached to this grid")

    def contents(self) -> list["LayoutContent"]:
        return [entry.content for entry in self._entries]

    def entries(self) -> tuple[GridContent, ...]:
        return tuple(self._entries)

    def span_of(self, content: "LayoutContent") -> GridSpan | None:
        for entry in self._entries:
            if entry.content is content:
                return entry.span
        return None

    def contents_at(self, span: GridSpan, *, exact: bool = True) -> list["LayoutContent"]:
        if exact:
            return [e.content for e in self._entries if e.span == span]
        return [e.content for e in self._entries if _overlaps(e.span, span)]

    def is_cell_free(self, row: int, col: int) -> bool:
        return not any(e.span.covers(row, col) for e in self._entries)

    def insert_row(self, at: int, policy: SizingPolicy | None = None) -> None:
        self._insert_track("row", at, policy)

    def insert_column(self, at: int, policy: SizingPolicy | None = None) -> None:
        self._insert_track("col", at, policy)

    def append_row(self, policy: SizingPolicy | None = None) -> int:
        self._insert_track("row", self.nrows + 1, policy)
        return self.nrows

    def append_column(self, policy: SizingPolicy | None = None) -> int:
        self._insert_track("col", self.ncols + 1, policy)
        return self.ncols

    def delete_row(self, at: int, *, force: bool = False) -> list["LayoutContent"]:
        return self._delete_track("row", at, force)

    def delete_column(self, at: int, *, force: bool = False) -> list["LayoutContent"]:
        return self._delete_track("col", at, force)

    def resize(self, nrows: int, ncols: int) -> None:
        """Grow to at least ``nrows`` x ``ncols``; never removes tracks."""
        while self.nrows < nrows:
            self.append_row()
        while self.ncols < ncols:
            self.append_column()

    def trim(self) -> int:
        """Delete every track no content touches, keeping at least one per axis."""
        removed = 0
        for axis in ("row", "col"):
            index = len(self._tracks(axis))
            while index >= 1:
                if len(self._tracks(axis)) > 1 and not self._track_used(axis, index):
                    self._delete_track(axis, index, False)
                    removed += 1
                index -= 1
        return removed

    def _track_used(self, axis: Axis, index: int) -> bool:
        for entry in self._entries:
            start, count = entry.span.along(axis)
            if start <= index <= start + count - 1:
                return True
        return False

    def _insert_track(self, axis: Axis, at: int, policy: SizingPolicy | None) -> None:
        tracks = self._tracks(axis)
        if not 1 <= at <= len(tracks) + 1:
            raise SpanOutOfRange(f"cannot insert {axis} at {at}; valid range is 1..{len(tracks) + 1}")
        tracks.insert(at - 1, policy if policy is not None else self.config.new_track())
        updated: list[GridContent] = []
        for entry in self._entries:
            start, count = entry.span.along(axis)
            if start >= at:
                entry = replace(entry, span=entry.span.with_axis(axis, start + 1, count))
            elif start + count - 1 >= at:
                entry = replace(entry, span=entry.span.with_axis(axis, start, count + 1))
            updated.append(entry)
        self._entries = updated
        LOGGER.debug("inserted %s at %d (now %dx%d)", axis, at, self.nrows, self.ncols)

    def _delete_track(self, axis: Axis, at: int, force: bool) -> list["LayoutContent"]:
        tracks = self._tracks(axis)
        self._check_track(axis, at)
        if len(tracks) == 1:
            raise ValueError(f"cannot delete the only {axis} of a grid")
        blocking = [e for e in self._entries if e.span.along(axis) == (at, 1)]
        if blocking and not force:
            raise TrackNotEmpty(f"{axis} {at} still holds {len(blocking)} content item(s)")
        detached = [e.content for e in blocking]
        for content in detached:
            self.detach(content)
        updated: list[GridContent] = []
        for entry in self._entries:
            start, count = entry.span.along(axis)
            if start > at:
                entry = replace(entry, span=entry.span.with_axis(axis, start - 1, count))
            elif start + count - 1 >= at:
                entry = replace(entry, span=entry.span.with_axis(axis, start, count - 1))
            updated.append(entry)
        self._entries = updated
        del tracks[at - 1]
        LOGGER.debug("deleted %s %d (now %dx%d, detached %d)", axis, at, self.nrows, self.ncols, len(detached))
        return detached

    def _measure(self, axis: Axis) -> list[float | None]:
        measured: list[float | None] = [None] * len(self._tracks(axis))
        for entry in self._entries:
            start, count = entry.span.along(axis)
            if count != 1:
                continue
            hint = entry.content.preferred_size()
            value = hint.height if axis == "row" else hint.width
            if value is None:
                continue
            current = measured[start - 1]
            measured[start - 1] = value if current is None else max(current, value)
        return measured

    def _axis_extent(self, axis: Axis) -> float | None:
        tracks = self._tracks(axis)
        measured = self._measure(axis)
        total = 0.0
        for track, value in zip(tracks, measured):
            if isinstance(track, Fixed):
                total += track.length
            elif isinstance(track, Auto) and value is not None:
                total += value
            else:
                return None
        gap = self.row_gap if axis == "row" else self.col_gap
        return total + gap * (len(tracks) - 1)

    def preferred_size(self) -> SizeHint:
        return SizeHint(width=self._axis_extent("col"), height=self._axis_extent("row"))

    def track_extents(self, box: BoundingBox) -> tuple[list[TrackExtent], list[TrackExtent]]:
        rows = resolve_tracks(self._rows, box.height, measured=self._measure("row"), gap=self.row_gap, start=box.y)
        cols = resolve_tracks(self._cols, box.width, measured=self._measure("col"), gap=self.col_gap, start=box.x)
        return rows, cols

    def resolve(self, box: BoundingBox) -> tuple[Placement, ...]:
        return tuple(self._resolve(box, depth=0))

    def place(self, box: BoundingBox) -> None:
        self._resolve(box, depth=0)

    def _resolve(self, box: BoundingBox, *, depth: int) -> list[Placement]:
        self.bounding_box = box
        rows, cols = self.track_extents(box)
        placements: list[Placement] = []
        for entry in list(self._entries):
            span = entry.span
            y, h = span_extent(rows, span.row - 1, span.row_span)
            x, w = span_extent(cols, span.col - 1, span.col_span)
            sub = BoundingBox(x, y, max(0.0, w), max(0.0, h))
            content = entry.content
            placements.append(Placement(content=content, box=sub, span=span, depth=depth))
            if isinstance(content, GridNode):
                placements.extend(content._resolve(sub, depth=depth + 1))
            elif isinstance(content, (CoordinateFrame, TextBlock, DrawingSurface)):
                content.place(sub)
            else:
                raise TypeError(f"unsupported layout content: {type(content)!r}")
        return placements

    def walk(self) -> Iterator["LayoutContent"]:
        for entry in self._entries:
            yield entry.content
            if isinstance(entry.content, GridNode):
                yield from entry.content.walk()

    def __repr__(self) -> str:
        name = f" {self.label!r}" if self.label else ""
        return f"GridNode{name}({self.nrows}x{self.ncols}, contents={len(self._entries)})"


def _overlaps(a: GridSpan, b: GridSpan) -> bool:
    return not (a.last_row < b.row or b.last_row < a.row or a.last_col < b.col or b.last_col < a.col)
