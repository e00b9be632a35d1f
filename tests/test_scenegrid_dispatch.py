from __future__ import annotations

from concurrent.futures import CancelledError, ThreadPoolExecutor
import dataclasses
import importlib.util
import threading
import unittest

import numpy as np

from scenegrid import (
    AmbiguousTargetError,
    CallShape,
    CellOccupiedByIncompatibleType,
    CoordinateFrame,
    DrawingSurface,
    FacetRecipe,
    GridNode,
    HeatmapRecipe,
    Infrastructure,
    Layer,
    LayoutKind,
    NoParentScene,
    PartitionedParams,
    SceneContext,
    SceneDataError,
    SeriesRecipe,
    SublayoutTrait,
    UnsupportedTarget,
    dispatch,
    facet,
    heatmap,
    joint,
    series,
    submit,
)
from scenegrid.recipe import expected_return, resolve_call_shape


Y = [1.0, 3.0, 2.0, 5.0]


class CallShapeTests(unittest.TestCase):
    def test_shape_is_chosen_from_target_and_position(self) -> None:
        scene = SceneContext(100, 100)
        self.assertEqual(resolve_call_shape(), CallShape.NEW_SCENE)
        self.assertEqual(resolve_call_shape(scene), CallShape.SCENE)
        self.assertEqual(resolve_call_shape(scene, (1, 2)), CallShape.SCENE_POSITION)
        self.assertEqual(resolve_call_shape(scene.ensure_layout()[1, 1]), CallShape.GRID_POSITION)
        self.assertEqual(resolve_call_shape(None, scene.layout[1, 1]), CallShape.GRID_POSITION)
        self.assertEqual(resolve_call_shape(CoordinateFrame()), CallShape.EXISTING_FRAME)

    def test_invalid_combinations(self) -> None:
        with self.assertRaises(NoParentScene):
            resolve_call_shape(None, (1, 1))
        with self.assertRaises(ValueError):
            resolve_call_shape(CoordinateFrame(), (1, 1))
        with self.assertRaises(TypeError):
            resolve_call_shape("scene")

    def test_expected_return_is_known_before_dispatch(self) -> None:
        self.assertIs(FacetRecipe.sublayout, SublayoutTrait.CREATES_SUBLAYOUT)
        self.assertIs(SeriesRecipe.sublayout, SublayoutTrait.NO_SUBLAYOUT)
        facet_return = expected_return(FacetRecipe(), CallShape.SCENE)
        self.assertTrue(facet_return.infrastructure)
        self.assertIs(facet_return.kind, LayoutKind.FACETED_FRAMES)
        self.assertTrue(facet_return.sublayout)
        frame_return = expected_return(SeriesRecipe(), CallShape.EXISTING_FRAME)
        self.assertFalse(frame_return.infrastructure)
        self.assertIsNone(frame_return.kind)


class DispatchTests(unittest.TestCase):
    def test_new_scene_holds_single_frame_covering_scene(self) -> None:
        infra = series(Y)
        self.assertIsInstance(infra, Infrastructure)
        self.assertIs(infra.kind, LayoutKind.SINGLE_FRAME)
        scene = infra.scene
        self.assertEqual((scene.layout.nrows, scene.layout.ncols), (1, 1))
        self.assertIs(infra.grid, scene.layout)
        self.assertEqual(infra.frame.bounding_box, scene.bounding_box)
        self.assertIsInstance(infra.result, Layer)
        self.assertEqual(infra.frame.layers, (infra.result,))

    def test_new_scene_uses_scene_params(self) -> None:
        infra = series(Y, params=PartitionedParams(scene={"width": 300, "height": 200}))
        self.assertEqual((infra.scene.width, infra.scene.height), (300, 200))

    def test_scene_target_appends_next_column(self) -> None:
        first = series(Y)
        scene = first.scene
        second = series(Y, target=scene)
        self.assertEqual((scene.layout.nrows, scene.layout.ncols), (1, 2))
        self.assertEqual(scene.layout.span_of(second.frame).col, 2)
        self.assertEqual(scene.frames, (first.frame, second.frame))

    def test_scene_position_grows_grid(self) -> None:
        scene = SceneContext(400, 300)
        infra = series(Y, target=scene, position=(2, 3))
        self.assertEqual((scene.layout.nrows, scene.layout.ncols), (2, 3))
        self.assertEqual(scene.layout.span_of(infra.frame).row, 2)
        self.assertIsNotNone(infra.frame.bounding_box)

    def test_frames_stack_in_same_cell(self) -> None:
        scene = SceneContext(400, 300)
        a = series(Y, target=scene, position=(1, 1))
        b = series(Y, target=scene, position=(1, 1))
        self.assertEqual(scene.layout[1, 1].contents(), [a.frame, b.frame])

    def test_incompatible_cell_content_is_rejected(self) -> None:
        scene = SceneContext(400, 300)
        series(Y, target=scene, position=(1, 1))
        with self.assertRaises(CellOccupiedByIncompatibleType):
            facet({"a": Y}, target=scene, position=(1, 1))

        facet({"a": Y, "b": Y}, target=scene, position=(1, 2))
        with self.assertRaises(CellOccupiedByIncompatibleType):
            series(Y, target=scene, position=(1, 2))
        with self.assertRaises(AmbiguousTargetError):
            facet({"c": Y}, target=scene, position=(1, 2))

    def test_text_coexists_with_frame(self) -> None:
        scene = SceneContext(400, 300)
        infra = series(Y, target=scene, position=(1, 1))
        scene.layout.attach(DrawingSurface(label="inset"), 1, 1, replace=False)
        again = series(Y, target=scene, position=(1, 1))
        self.assertEqual(len(scene.layout[1, 1].contents()), 3)
        self.assertIsNot(infra.frame, again.frame)

    def test_grid_position_target(self) -> None:
        scene = SceneContext(400, 300)
        infra = series(Y, target=scene.ensure_layout()[1, 2])
        self.assertEqual(scene.layout.ncols, 2)
        self.assertIs(infra.scene, scene)

        nested = facet({"a": Y, "b": Y}, target=scene, position=(2, 1))
        stacked = series(Y, target=nested.grid[1, 1])
        self.assertIs(stacked.grid, nested.grid)
        self.assertEqual(nested.grid[1, 1].contents(), [nested.frame_grid[0][0], stacked.frame])

    def test_orphan_grid_position_has_no_scene(self) -> None:
        with self.assertRaises(NoParentScene):
            series(Y, target=GridNode(1, 1)[1, 1])
        with self.assertRaises(NoParentScene):
            series(Y, position=(1, 1))

    def test_position_from_another_scene_is_ambiguous(self) -> None:
        a = SceneContext(100, 100)
        b = SceneContext(100, 100)
        with self.assertRaises(AmbiguousTargetError):
            series(Y, target=a, position=b.ensure_layout()[1, 1])

    def test_existing_frame_returns_only_layer(self) -> None:
        frame = series(Y).frame
        layer = series(Y, target=frame, params=PartitionedParams(layer={"label": "second"}))
        self.assertIsInstance(layer, Layer)
        self.assertEqual(len(frame.layers), 2)
        self.assertEqual(frame.legend.labels, ("second",))

    def test_frame_building_recipes_reject_existing_frame(self) -> None:
        frame = series(Y).frame
        with self.assertRaises(UnsupportedTarget):
            facet({"a": Y}, target=frame)
        with self.assertRaises(UnsupportedTarget):
            heatmap([[1.0, 2.0]], target=frame)
        self.assertEqual(len(frame.layers), 1)

    def test_bad_series_data(self) -> None:
        with self.assertRaises(SceneDataError):
            series([])
        with self.assertRaises(SceneDataError):
            series(Y, mode="pie")


class _RejectingSeries(SeriesRecipe):
    def attach(self, frames, prepared, layer_params):
        raise RuntimeError("layer rejected")


class FailedDispatchTests(unittest.TestCase):
    def test_bad_layer_params_leave_scene_unchanged(self) -> None:
        first = series(Y)
        scene = first.scene
        bad = PartitionedParams(layer={"bar_width": 0})
        with self.assertRaises(ValueError):
            series(Y, target=scene, params=bad)
        with self.assertRaises(ValueError):
            series(Y, target=scene, position=(2, 3), params=bad)
        with self.assertRaises(ValueError):
            facet({"a": Y, "b": Y}, mode="bars", target=scene, params=bad)
        self.assertEqual((scene.layout.nrows, scene.layout.ncols), (1, 1))
        self.assertEqual(scene.frames, (first.frame,))
        self.assertEqual(scene.layout[1, 1].contents(), [first.frame])

    def test_bad_layer_params_leave_existing_frame_unchanged(self) -> None:
        infra = series(Y)
        with self.assertRaises(ValueError):
            series(Y, target=infra.frame, params=PartitionedParams(layer={"bar_width": -1}))
        self.assertEqual(infra.frame.layers, (infra.result,))

    def test_submit_rejects_bad_layer_params_up_front(self) -> None:
        scene = SceneContext(200, 100)
        with ThreadPoolExecutor(max_workers=1) as executor:
            with self.assertRaises(ValueError):
                submit(executor, SeriesRecipe(), Y, target=scene, params=PartitionedParams(layer={"bar_width": 0}))
        self.assertEqual(scene.contents, ())

    def test_failed_attach_removes_content_and_added_tracks(self) -> None:
        first = series(Y)
        scene = first.scene
        before = scene.contents
        with self.assertRaises(RuntimeError):
            dispatch(_RejectingSeries(), Y, target=scene, position=(2, 3))
        with self.assertRaises(RuntimeError):
            dispatch(_RejectingSeries(), Y, target=scene)
        self.assertEqual((scene.layout.nrows, scene.layout.ncols), (1, 1))
        self.assertEqual(scene.contents, before)
        self.assertEqual(scene.layout[1, 1].contents(), [first.frame])
        self.assertEqual(first.frame.bounding_box, scene.bounding_box)

    def test_failed_attach_in_sub_layout_keeps_its_shape(self) -> None:
        nested = facet({"a": Y, "b": Y, "c": Y})
        scene = nested.scene
        before = scene.contents
        with self.assertRaises(RuntimeError):
            dispatch(_RejectingSeries(), Y, target=nested.grid[1, 3])
        self.assertEqual((nested.grid.nrows, nested.grid.ncols), (2, 2))
        self.assertEqual(scene.contents, before)
        self.assertTrue(nested.grid.is_cell_free(2, 2))

    def test_recipes_refuse_a_tuple_of_frames(self) -> None:
        frame = CoordinateFrame()
        recipe = SeriesRecipe()
        with self.assertRaises(TypeError):
            recipe.attach((frame,), recipe.prepare(Y, {}), {})
        grid_recipe = HeatmapRecipe()
        with self.assertRaises(TypeError):
            grid_recipe.attach([frame], grid_recipe.prepare([[1.0, 2.0]], {}), {})
        self.assertEqual(frame.layers, ())

    @unittest.skipUnless(importlib.util.find_spec("pandas") is not None, "pandas not installed")
    def test_dataframe_columns_named_in_layer_params(self) -> None:
        import pandas as pd

        table = pd.DataFrame({"t": [0.0, 2.0, 4.0], "v": [1.0, 3.0, 2.0]})
        infra = series(table, params=PartitionedParams(layer={"y_column": "v", "x_column": "t", "label": "v"}))
        self.assertEqual(infra.result.data.x.tolist(), [0.0, 2.0, 4.0])
        self.assertEqual(infra.result.data.source_name, "v")
        with self.assertRaises(SceneDataError):
            series(table)


class RecipeInfrastructureTests(unittest.TestCase):
    def test_facet_builds_grid_of_frames(self) -> None:
        infra = facet({"a": Y, "b": Y, "c": Y}, params=PartitionedParams(layer={"label": "v"}))
        self.assertIs(infra.kind, LayoutKind.FACETED_FRAMES)
        grid = infra.frame_grid
        self.assertEqual([len(row) for row in grid], [2, 1])
        self.assertEqual([f.title for f in infra.iter_frames()], ["a", "b", "c"])
        self.assertIs(infra.grid.parent, infra.scene.layout)
        self.assertEqual((infra.grid.nrows, infra.grid.ncols), (2, 2))
        self.assertEqual([layer.attributes["facet"] for layer in infra.result], ["a", "b", "c"])
        with self.assertRaises(AttributeError):
            infra.frame

    def test_facet_respects_cols(self) -> None:
        infra = facet({"a": Y, "b": Y, "c": Y}, cols=3)
        self.assertEqual([len(row) for row in infra.frame_grid], [3])

    def test_joint_builds_named_frames(self) -> None:
        rng = np.random.default_rng(3)
        data = {"x": rng.normal(size=50), "y": rng.normal(size=50)}
        infra = joint(data, bins=5)
        self.assertIs(infra.kind, LayoutKind.CUSTOM_FRAMES)
        frames = infra.named_frames
        self.assertEqual(set(frames), {"main", "top", "right"})
        self.assertEqual(infra.result["top"].data.y.sum(), 50.0)
        self.assertGreater(frames["main"].bounding_box.width, frames["right"].bounding_box.width)
        self.assertGreater(frames["main"].bounding_box.height, frames["top"].bounding_box.height)

    def test_heatmap_returns_colorbar_support(self) -> None:
        infra = heatmap([[1.0, 2.0], [3.0, 4.0]], colorbar_width=24)
        self.assertIs(infra.kind, LayoutKind.SINGLE_FRAME)
        colorbar = infra.support["colorbar"]
        self.assertIsInstance(colorbar, DrawingSurface)
        self.assertAlmostEqual(colorbar.bounding_box.width, 24.0)
        self.assertEqual((colorbar.attributes["vmin"], colorbar.attributes["vmax"]), (1.0, 4.0))
        self.assertEqual(infra.grid.label, "heatmap")
        self.assertIn(colorbar, infra.scene.contents)

    def test_infrastructure_validates_frames_for_kind(self) -> None:
        frame = CoordinateFrame()
        with self.assertRaises(ValueError):
            Infrastructure(kind=LayoutKind.SINGLE_FRAME, scene=None, grid=None, frames=((frame,),))
        with self.assertRaises(ValueError):
            Infrastructure(kind=LayoutKind.FACETED_FRAMES, scene=None, grid=None, frames=(frame,))
        with self.assertRaises(ValueError):
            Infrastructure(kind=LayoutKind.CUSTOM_FRAMES, scene=None, grid=None, frames=frame)

    def test_infrastructure_is_read_only(self) -> None:
        infra = Infrastructure(
            kind=LayoutKind.CUSTOM_FRAMES,
            scene=None,
            grid=None,
            frames={"main": CoordinateFrame()},
            support={"note": 1},
        )
        with self.assertRaises(dataclasses.FrozenInstanceError):
            infra.kind = LayoutKind.SINGLE_FRAME  # type: ignore[misc]
        with self.assertRaises(TypeError):
            infra.support["note"] = 2  # type: ignore[index]
        with self.assertRaises(TypeError):
            infra.named_frames["other"] = CoordinateFrame()  # type: ignore[index]


class PendingDrawTests(unittest.TestCase):
    def test_prepared_off_thread_attached_on_owner(self) -> None:
        scene = SceneContext(200, 100)
        with ThreadPoolExecutor(max_workers=1) as executor:
            pending = submit(executor, SeriesRecipe(), Y, target=scene)
            infra = pending.attach(timeout=5)
        self.assertTrue(pending.done())
        self.assertIs(infra.scene, scene)
        self.assertEqual(len(infra.frame.layers), 1)
        with self.assertRaises(RuntimeError):
            pending.attach()

    def test_cancel_leaves_frame_untouched(self) -> None:
        frame = CoordinateFrame()
        with ThreadPoolExecutor(max_workers=1) as executor:
            pending = submit(executor, SeriesRecipe(), Y, target=frame)
            self.assertTrue(pending.cancel())
            with self.assertRaises(CancelledError):
                pending.attach(timeout=5)
        self.assertTrue(pending.cancelled)
        self.assertEqual(frame.layers, ())

    def test_attach_from_worker_thread_is_refused(self) -> None:
        frame = CoordinateFrame()
        errors: list[BaseException] = []
        with ThreadPoolExecutor(max_workers=1) as executor:
            pending = submit(executor, SeriesRecipe(), Y, target=frame)

            def _attach() -> None:
                try:
                    pending.attach(timeout=5)
                except RuntimeError as exc:
                    errors.append(exc)

            worker = threading.Thread(target=_attach)
            worker.start()
            worker.join()
            self.assertEqual(len(errors), 1)
            self.assertEqual(frame.layers, ())
            layer = pending.attach(timeout=5)
        self.assertEqual(frame.layers, (layer,))

    def test_submit_checks_target_up_front(self) -> None:
        with ThreadPoolExecutor(max_workers=1) as executor:
            with self.assertRaises(UnsupportedTarget):
                submit(executor, HeatmapRecipe(), [[1.0]], target=CoordinateFrame())


if __name__ == "__main__":
    unittest.main()
