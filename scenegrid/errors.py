from __future__ import annotations


class SceneGridError(Exception):
    pass


class StructuralError(SceneGridError):
    pass


class CycleDetected(StructuralError):
    pass


class SpanOutOfRange(StructuralError):
    pass


class TrackNotEmpty(StructuralError):
    pass


class LayoutAlreadySet(StructuralError):
    pass


class AmbiguousTargetError(SceneGridError):
    pass


class NoParentScene(AmbiguousTargetError):
    pass


class CellOccupiedByIncompatibleType(AmbiguousTargetError):
    pass


class UnsupportedTarget(AmbiguousTargetError):
    pass


class SceneDataError(SceneGridError, ValueError):
    pass
