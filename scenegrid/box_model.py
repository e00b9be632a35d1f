from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Sequence, TypeAlias

import numpy as np


LOGGER = logging.getLogger(__name__)
_EPS = 1e-9


@dataclass(frozen=True)
class Fixed:
    length: float

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError("fixed track length must be >= 0")


@dataclass(frozen=True)
class Relative:
    weight: float = 1.0

    def __post_init__(self) -> None:
        if self.weight <= 0:
            raise ValueError("relative track weight must be > 0")


@dataclass(frozen=True)
class Auto:
    # Share of the leftover when no content measurement is available.
    weight: float = 1.0

    def __post_init__(self) -> None:
        if self.weight <= 0:
            raise ValueError("auto track weight must be > 0")


SizingPolicy: TypeAlias = Fixed | Relative | Auto


@dataclass(frozen=True)
class TrackExtent:
    offset: float
    length: float

    @property
    def end(self) -> float:
        return self.offset + self.length


def resolve_tracks(
    tracks: Sequence[SizingPolicy],
    available_length: float,
    *,
    measured: Sequence[float | None] | None = None,
    gap: float = 0.0,
    start: float = 0.0,
) -> list[TrackExtent]:
    """Turn a row or column of sizing policies into concrete offsets and lengths.

    Fixed tracks are served first and always get their exact length. Measured
    Auto tracks get their preferred length next; when they do not fit, the
    largest demands are cut down to a shared level first. Whatever remains is
    shared by weight among the flexible tracks (Relative, and Auto tracks with
    nothing to measure).
    """
    count = len(tracks)
    if count == 0:
        return []
    if measured is None:
        measured = [None] * count
    if len(measured) != count:
        raise ValueError("measured must have one entry per track")
    if available_length < 0:
        raise ValueError("available_length must be >= 0")
    if gap < 0:
        raise ValueError("gap must be >= 0")

    content_length = max(0.0, float(available_length) - float(gap) * (count - 1))
    lengths = np.zeros(count, dtype=np.float64)

    fixed_idx = [i for i, track in enumerate(tracks) if isinstance(track, Fixed)]
    fixed_total = 0.0
    for i in fixed_idx:
        lengths[i] = float(tracks[i].length)
        fixed_total += lengths[i]
    if fixed_total > content_length + _EPS:
        LOGGER.warning(
            "layout overflow: fixed tracks need %.3f but only %.3f is available",
            fixed_total,
            content_length,
        )
    remainder = max(0.0, content_length - fixed_total)

    auto_idx = [
        i for i, track in enumerate(tracks) if isinstance(track, Auto) and measured[i] is not None
    ]
    demands = [max(0.0, float(measured[i])) for i in auto_idx]  # type: ignore[arg-type]
    if sum(demands) > remainder + _EPS:
        LOGGER.debug("auto tracks demand %.3f, capping at a shared level to fit %.3f", sum(demands), remainder)
    for i, length in zip(auto_idx, _cap_at_level(demands, remainder)):
        lengths[i] = length
    remainder = max(0.0, remainder - float(sum(lengths[i] for i in auto_idx)))

    flexible_idx = [
        i
        for i, track in enumerate(tracks)
        if isinstance(track, Relative) or (isinstance(track, Auto) and measured[i] is None)
    ]
    if not flexible_idx:
        flexible_idx = auto_idx
    if flexible_idx:
        weights = [float(tracks[i].weight) for i in flexible_idx]  # type: ignore[union-attr]
        _share_by_weight(lengths, flexible_idx, weights, remainder)
        target = max(content_length, fixed_total)
        # Absorb float drift so the lengths add up to the target.
        drift = target - float(lengths.sum())
        last = flexible_idx[-1]
        lengths[last] = max(0.0, lengths[last] + drift)

    offsets = float(start) + np.concatenate(([0.0], np.cumsum(lengths[:-1] + float(gap))))
    return [TrackExtent(offset=float(o), length=float(w)) for o, w in zip(offsets, lengths)]


def _cap_at_level(demands: Sequence[float], budget: float) -> list[float]:
    """Cap every demand at one common level so the total fits ``budget``.

    Demands below the level keep their full length; the others share what is
    left in equal parts.
    """
    arr = np.asarray(demands, dtype=np.float64)
    if arr.size == 0 or float(arr.sum()) <= budget + _EPS:
        return arr.tolist()
    remaining = max(0.0, float(budget))
    level = 0.0
    for n, demand in enumerate(np.sort(arr)):
        share = remaining / (arr.size - n)
        if demand > share:
            level = share
            break
        remaining -= float(demand)
    return np.minimum(arr, level).tolist()


def _share_by_weight(lengths: np.ndarray, indices: Sequence[int], weights: Sequence[float], amount: float) -> None:
    total_weight = float(sum(weights))
    if total_weight <= 0 or amount <= 0:
        return
    given = 0.0
    for n, (i, weight) in enumerate(zip(indices, weights)):
        if n == len(indices) - 1:
            share = amount - given
        else:
            share = amount * weight / total_weight
        lengths[i] += share
        given += share


def span_extent(extents: Sequence[TrackExtent], first: int, count: int) -> tuple[float, float]:
    """Offset and length covered by ``count`` tracks starting at 0-based ``first``."""
    head = extents[first]
    tail = extents[first + count - 1]
    return (head.offset, tail.end - head.offset)
