from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterator, Mapping, TypeAlias

from .frame import CoordinateFrame

if TYPE_CHECKING:
    from .grid import GridNode
    from .scene import SceneContext


class LayoutKind(Enum):
    SINGLE_FRAME = "single_frame"
    FACETED_FRAMES = "faceted_frames"
    CUSTOM_FRAMES = "custom_frames"


FrameGrid: TypeAlias = tuple[tuple[CoordinateFrame, ...], ...]
FrameSet: TypeAlias = "CoordinateFrame | FrameGrid | Mapping[str, CoordinateFrame]"


def _empty_support() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Infrastructure:
    """What a drawing operation created or reused, tagged by the shape of its frames."""

    kind: LayoutKind
    scene: "SceneContext | None"
    grid: "GridNode | None"
    frames: FrameSet
    result: Any = None
    support: Mapping[str, Any] = field(default_factory=_empty_support)

    def __post_init__(self) -> None:
        if self.kind is LayoutKind.SINGLE_FRAME:
            if not isinstance(self.frames, CoordinateFrame):
                raise ValueError("single-frame infrastructure needs exactly one CoordinateFrame")
        elif self.kind is LayoutKind.FACETED_FRAMES:
            if isinstance(self.frames, (CoordinateFrame, Mapping)):
                raise ValueError("faceted infrastructure needs a 2-D grid of frames")
            if any(isinstance(row, CoordinateFrame) for row in self.frames):
                raise ValueError("faceted infrastructure frames must be nested rows")
            rows = tuple(tuple(row) for row in self.frames)
            if not rows or any(not row for row in rows):
                raise ValueError("faceted infrastructure needs a non-empty 2-D grid of frames")
            if any(not isinstance(f, CoordinateFrame) for row in rows for f in row):
                raise ValueError("faceted infrastructure grid must only hold CoordinateFrames")
            object.__setattr__(self, "frames", rows)
        else:
            if not isinstance(self.frames, Mapping):
                raise ValueError("custom infrastructure needs a mapping of named frames")
            if any(not isinstance(f, CoordinateFrame) for f in self.frames.values()):
                raise ValueError("custom infrastructure mapping must only hold CoordinateFrames")
            object.__setattr__(self, "frames", MappingProxyType(dict(self.frames)))
        if not isinstance(self.support, MappingProxyType):
            object.__setattr__(self, "support", MappingProxyType(dict(self.support)))

    @property
    def frame(self) -> CoordinateFrame:
        if self.kind is not LayoutKind.SINGLE_FRAME:
            raise AttributeError(f"{self.kind.value} infrastructure has no single frame")
        return self.frames  # type: ignore[return-value]

    @property
    def frame_grid(self) -> FrameGrid:
        if self.kind is not LayoutKind.FACETED_FRAMES:
            raise AttributeError(f"{self.kind.value} infrastructure has no frame grid")
        return self.frames  # type: ignore[return-value]

    @property
    def named_frames(self) -> Mapping[str, CoordinateFrame]:
        if self.kind is not LayoutKind.CUSTOM_FRAMES:
            raise AttributeError(f"{self.kind.value} infrastructure has no named frames")
        return self.frames  # type: ignore[return-value]

    def iter_frames(self) -> Iterator[CoordinateFrame]:
        if self.kind is LayoutKind.SINGLE_FRAME:
            yield self.frame
        elif self.kind is LayoutKind.FACETED_FRAMES:
            for row in self.frame_grid:
                yield from row
        else:
            yield from self.named_frames.values()
