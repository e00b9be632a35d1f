from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("bounding box width/height must be >= 0")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def union(self, other: "BoundingBox") -> "BoundingBox":
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        x1 = max(self.right, other.right)
        y1 = max(self.bottom, other.bottom)
        return BoundingBox(x0, y0, x1 - x0, y1 - y0)

    def inset(self, pad: float) -> "BoundingBox":
        pad_x = min(float(pad), self.width / 2.0)
        pad_y = min(float(pad), self.height / 2.0)
        return BoundingBox(self.x + pad_x, self.y + pad_y, self.width - 2.0 * pad_x, self.height - 2.0 * pad_y)

    def to_pixels(self) -> tuple[int, int, int, int]:
        x0 = int(round(self.x))
        y0 = int(round(self.y))
        return (x0, y0, max(0, int(round(self.right)) - x0), max(0, int(round(self.bottom)) - y0))


@dataclass(frozen=True)
class SizeHint:
    """Preferred extent per axis; ``None`` means the element takes whatever it is given."""

    width: float | None = None
    height: float | None = None
