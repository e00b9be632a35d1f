from scenegrid.box_model import Auto, Fixed, Relative, SizingPolicy, TrackExtent, resolve_tracks
from scenegrid.config import DEFAULT_CONFIG, LayoutConfig, load_config
from scenegrid.elements import DrawingSurface, LayoutElement, LegendBlock, TextBlock
from scenegrid.errors import (
    AmbiguousTargetError,
    CellOccupiedByIncompatibleType,
    CycleDetected,
    LayoutAlreadySet,
    NoParentScene,
    SceneDataError,
    SceneGridError,
    SpanOutOfRange,
    StructuralError,
    TrackNotEmpty,
    UnsupportedTarget,
)
from scenegrid.frame import CoordinateFrame
from scenegrid.geometry import BoundingBox, SizeHint
from scenegrid.grid import GridNode, GridPosition, GridSpan, Placement
from scenegrid.infrastructure import Infrastructure, LayoutKind
from scenegrid.layers import Layer, LayerData, VisualKey
from scenegrid.legend import LegendAggregator, LegendEntry, LegendState
from scenegrid.recipe import CallShape, PartitionedParams, PendingDraw, Recipe, SublayoutTrait, dispatch, submit
from scenegrid.recipes import FacetRecipe, HeatmapRecipe, JointRecipe, SeriesRecipe, facet, heatmap, joint, series
from scenegrid.scene import SceneContext

__all__ = [
    "AmbiguousTargetError",
    "Auto",
    "BoundingBox",
    "CallShape",
    "CellOccupiedByIncompatibleType",
    "CoordinateFrame",
    "CycleDetected",
    "DEFAULT_CONFIG",
    "DrawingSurface",
    "FacetRecipe",
    "Fixed",
    "GridNode",
    "GridPosition",
    "GridSpan",
    "HeatmapRecipe",
    "Infrastructure",
    "JointRecipe",
    "Layer",
    "LayerData",
    "LayoutAlreadySet",
    "LayoutConfig",
    "LayoutElement",
    "LayoutKind",
    "LegendAggregator",
    "LegendBlock",
    "LegendEntry",
    "LegendState",
    "NoParentScene",
    "PartitionedParams",
    "PendingDraw",
    "Placement",
    "Recipe",
    "Relative",
    "SceneContext",
    "SceneDataError",
    "SceneGridError",
    "SeriesRecipe",
    "SizeHint",
    "SizingPolicy",
    "SpanOutOfRange",
    "StructuralError",
    "SublayoutTrait",
    "TextBlock",
    "TrackExtent",
    "TrackNotEmpty",
    "UnsupportedTarget",
    "VisualKey",
    "dispatch",
    "facet",
    "heatmap",
    "joint",
    "load_config",
    "resolve_tracks",
    "series",
    "submit",
]
