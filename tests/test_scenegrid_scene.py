from __future__ import annotations

import gc
import unittest
import weakref

import numpy as np

from scenegrid import (
    BoundingBox,
    CoordinateFrame,
    GridNode,
    Layer,
    LayoutAlreadySet,
    LayoutConfig,
    LegendState,
    PartitionedParams,
    SceneContext,
    StructuralError,
    TextBlock,
    VisualKey,
    series,
)
from scenegrid.adapters import normalize_xy
from scenegrid.backend import RasterBackend
from scenegrid.recipes import facet


def _layer(label: str | None, color: tuple[int, int, int, int] = (1, 2, 3, 255)) -> Layer:
    return Layer(data=normalize_xy([1.0, 2.0, 3.0]), key=VisualKey(mode="lines", color=color), label=label)


class LegendTests(unittest.TestCase):
    def test_duplicate_labels_keep_first_position_and_last_key(self) -> None:
        frame = CoordinateFrame()
        first = _layer("a", (255, 0, 0, 255))
        frame.add_layer(first)
        frame.add_layer(_layer("b"))
        last = _layer("a", (0, 0, 255, 255))
        frame.add_layer(last)

        self.assertEqual(frame.legend.labels, ("a", "b"))
        self.assertEqual(frame.legend_entries[0].key, last.key)
        self.assertEqual(frame.legend.state, LegendState.HAS_ENTRIES)

    def test_unlabeled_layers_are_skipped(self) -> None:
        frame = CoordinateFrame()
        frame.add_layer(_layer(None))
        frame.add_layer(_layer("  "))
        self.assertEqual(frame.legend_entries, ())
        self.assertEqual(frame.legend.state, LegendState.EMPTY)

    def test_recompute_runs_even_when_hidden(self) -> None:
        frame = CoordinateFrame(legend_visible=False)
        self.assertEqual(frame.legend.revision, 0)
        layer = frame.add_layer(_layer("a"))
        self.assertEqual(frame.legend.revision, 1)
        self.assertEqual(frame.legend.labels, ("a",))
        frame.remove_layer(layer)
        self.assertEqual(frame.legend.revision, 2)
        self.assertEqual(frame.legend.state, LegendState.EMPTY)

    def test_layer_membership_errors(self) -> None:
        frame = CoordinateFrame()
        layer = frame.add_layer(_layer("a"))
        with self.assertRaises(ValueError):
            frame.add_layer(layer)
        with self.assertRaises(ValueError):
            CoordinateFrame().remove_layer(layer)

    def test_data_limits_ignore_non_finite_points(self) -> None:
        frame = CoordinateFrame()
        self.assertIsNone(frame.data_limits())
        frame.add_layer(Layer(data=normalize_xy([1.0, None, 5.0], x=[0.0, 1.0, 2.0]), key=VisualKey(mode="markers")))
        limits = frame.data_limits()
        self.assertEqual((limits.xmin, limits.xmax, limits.ymin, limits.ymax), (0.0, 2.0, 1.0, 5.0))


class SceneContextTests(unittest.TestCase):
    def test_layout_is_set_once(self) -> None:
        scene = SceneContext(100, 100)
        scene.set_layout(GridNode(1, 1))
        with self.assertRaises(LayoutAlreadySet):
            scene.set_layout(GridNode(1, 1))

    def test_nested_or_foreign_grid_cannot_become_root(self) -> None:
        outer = GridNode(1, 1)
        inner = GridNode(1, 1)
        outer.attach(inner, 1, 1)
        with self.assertRaises(StructuralError):
            SceneContext(10, 10).set_layout(inner)

        owner = SceneContext(10, 10)
        owned = owner.ensure_layout()
        with self.assertRaises(StructuralError):
            SceneContext(10, 10).set_layout(owned)

    def test_setitem_adds_and_places_content(self) -> None:
        scene = SceneContext(300, 200, config=LayoutConfig(row_gap=0.0, col_gap=0.0))
        frame = CoordinateFrame()
        scene[1, 1] = frame
        self.assertIn(frame, scene.contents)
        self.assertIs(frame.scene, scene)
        scene.resolve_layout()
        self.assertEqual(frame.bounding_box, BoundingBox(0, 0, 300, 200))

        scene.resize(400, 100)
        self.assertEqual(frame.bounding_box, BoundingBox(0, 0, 400, 100))

    def test_padding_insets_root_layout(self) -> None:
        scene = SceneContext(200, 100, config=LayoutConfig(padding=10.0))
        frame = CoordinateFrame()
        scene[1, 1] = frame
        scene.resolve_layout()
        self.assertEqual(frame.bounding_box, BoundingBox(10, 10, 180, 80))

    def test_remove_content_detaches_from_grid(self) -> None:
        scene = SceneContext(100, 100)
        frame = CoordinateFrame()
        scene[1, 1] = frame
        scene.remove_content(frame)
        self.assertEqual(scene.layout.contents(), [])
        self.assertIsNone(frame.scene)
        with self.assertRaises(ValueError):
            scene.remove_content(frame)

    def test_content_cannot_join_two_scenes(self) -> None:
        first = SceneContext(100, 100)
        frame = CoordinateFrame()
        first.add_content(frame)
        with self.assertRaises(StructuralError):
            SceneContext(100, 100).add_content(frame)

    def test_unplaced_content_is_still_owned(self) -> None:
        scene = SceneContext(100, 100)
        frame = scene.add_content(CoordinateFrame())
        self.assertIsNone(scene.layout)
        self.assertEqual(scene.frames, (frame,))
        self.assertEqual(scene.resolve_layout(), ())

    def test_nested_content_reports_scene_through_grids(self) -> None:
        scene = SceneContext(400, 300)
        infra = facet({"a": [1, 2], "b": [3, 4]}, target=scene)
        inner = infra.grid
        self.assertIs(inner.parent, scene.layout)
        self.assertIs(inner.parent_scene, scene)
        elements = list(scene.iter_elements())
        self.assertEqual(len(elements), len({id(e) for e in elements}))
        self.assertIn(inner, elements)

    def test_back_references_do_not_keep_parents_alive(self) -> None:
        scene = SceneContext(100, 100)
        layout = scene.ensure_layout()
        frame = CoordinateFrame()
        layout.attach(frame, 1, 1)
        scene_ref = weakref.ref(scene)
        del scene
        gc.collect()
        self.assertIsNone(scene_ref())
        self.assertIsNone(layout.parent_scene)

        grid_ref = weakref.ref(layout)
        del layout
        gc.collect()
        self.assertIsNone(grid_ref())
        self.assertIsNone(frame.grid)


class RasterBackendTests(unittest.TestCase):
    def test_to_rgba_paints_frames_at_their_boxes(self) -> None:
        backend = RasterBackend()
        scene = SceneContext(64, 48, backend=backend, config=LayoutConfig(row_gap=0.0, col_gap=0.0))
        series(np.arange(5.0), target=scene, params=PartitionedParams(layer={"label": "line"}))
        image = backend.to_rgba(scene)
        self.assertEqual(image.shape, (48, 64, 4))
        self.assertEqual(image.dtype, np.uint8)
        self.assertEqual(tuple(image[24, 20]), backend.plot_bg_color)
        self.assertEqual(tuple(image[0, 20]), backend.frame_color)

    def test_recording_backend_keeps_latest_box(self) -> None:
        backend = RasterBackend()
        scene = SceneContext(100, 50, backend=backend)
        frame = series(np.arange(3.0), target=scene).frame
        scene.resize(200, 50)
        self.assertEqual(backend.geometry_of(frame), frame.bounding_box)
        self.assertEqual(backend.geometry_of(frame).width, 200.0)
        self.assertGreaterEqual(len(backend.submissions), 2)
        backend.clear()
        self.assertIsNone(backend.geometry_of(frame))
        frame.clear()
        self.assertEqual(frame.layers, ())
        self.assertEqual(frame.legend.state, LegendState.EMPTY)

    def test_unplaced_elements_are_not_painted(self) -> None:
        backend = RasterBackend()
        scene = SceneContext(32, 16, backend=backend)
        scene.add_content(TextBlock("hidden"))
        image = backend.to_rgba(scene)
        self.assertTrue(np.all(image == np.asarray(backend.background, dtype=np.uint8)))


if __name__ == "__main__":
    unittest.main()
