"""Tests for SceneController, the command surface of the editor core."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from PyQt6.QtCore import QMimeData, QPointF
from PyQt6.QtWidgets import QApplication

from pagesmith.config.settings import EditorSettings
from pagesmith.core.clipboard_manager import INTERNAL_MIME
from pagesmith.core.controller import SceneController
from pagesmith.core.crop_engine import HandlePosition
from pagesmith.core.errors import DocumentFormatError, GeometryClampWarning
from pagesmith.core.render_target import NullRenderTarget
from pagesmith.core.scene_object import (
    SceneObject,
    center_point,
    make_image,
    make_rect,
    make_workspace,
)


def _add(controller: SceneController, *objects: SceneObject) -> None:
    for obj in objects:
        assert controller.add_object(obj)


def _top_left(controller: SceneController, obj: SceneObject) -> tuple[float, float]:
    rect = controller.graph.bounding_rect(obj)
    return (rect.left(), rect.top())


def _put_on_system_clipboard(objects: list[SceneObject]) -> None:
    mime = QMimeData()
    mime.setData(INTERNAL_MIME, json.dumps([obj.serialize() for obj in objects]).encode())
    QApplication.clipboard().setMimeData(mime)
    current = QApplication.clipboard().mimeData()
    if current is None or not current.hasFormat(INTERNAL_MIME):
        pytest.skip("system clipboard unavailable on this platform")


class TestObjects:
    def test_initial_history(self, controller: SceneController) -> None:
        assert controller.history.labels == ["Initial"]
        assert controller.graph.count == 0

    def test_add_selects_and_commits(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        assert controller.selection.items == [rect]
        assert controller.history.count == 2
        assert controller.history.can_undo

    def test_remove_and_undo(self, controller: SceneController) -> None:
        rect = make_rect(10, 10)
        _add(controller, rect)
        assert controller.remove_selected()
        assert controller.find(rect.object_id) is None
        assert controller.undo()
        restored = controller.find(rect.object_id)
        assert restored is not None
        assert (restored.geometry.x, restored.geometry.y) == (10, 10)
        assert controller.redo()
        assert controller.find(rect.object_id) is None

    def test_remove_without_selection(self, controller: SceneController) -> None:
        assert not controller.remove_selected()
        assert controller.history.count == 1

    def test_selection_follows_ids_across_undo(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        controller.set_object_property(rect, "geometry.x", 300)
        controller.undo()
        assert controller.selection.ids == [rect.object_id]
        assert controller.selection.items[0].geometry.x == 0

    def test_select_all_skips_workspace(self, controller: SceneController) -> None:
        a, b = make_rect(), make_rect()
        _add(controller, a, b)
        assert controller.select_all()
        assert controller.selection.ids == [a.object_id, b.object_id]
        assert not controller.select(controller.workspace)

    def test_history_signal(self, controller: SceneController, qtbot) -> None:
        with qtbot.waitSignal(controller.history_changed, timeout=1000) as blocker:
            controller.add_object(make_rect())
        assert blocker.args == [True, False, "Add rect"]


class TestArrangement:
    def test_group_and_undo(self, controller: SceneController) -> None:
        a, b = make_rect(0, 0), make_rect(200, 0)
        _add(controller, a, b)
        controller.select(a)
        controller.select(b, add=True)
        assert controller.group()
        group = controller.selection.items[0]
        assert group.is_group
        assert controller.graph.count == 1
        assert controller.undo()
        assert controller.graph.count == 2

    def test_ungroup_needs_group(self, controller: SceneController) -> None:
        _add(controller, make_rect())
        assert not controller.ungroup()

    def test_ungroup_selects_released(self, controller: SceneController) -> None:
        a, b = make_rect(0, 0), make_rect(200, 0)
        _add(controller, a, b)
        controller.select_all()
        controller.group()
        assert controller.ungroup()
        assert controller.selection.ids == [a.object_id, b.object_id]
        assert _top_left(controller, b) == (200, 0)

    def test_align_single_to_page(self, controller: SceneController) -> None:
        rect = make_rect(50, 50, 100, 100)
        _add(controller, rect)
        assert controller.align("middle")
        assert _top_left(controller, rect) == (50, 250)
        assert controller.history.undo_text == "Align middle"

    def test_align_noop_records_nothing(self, controller: SceneController) -> None:
        a, b = make_rect(50, 50), make_rect(650, 50)
        _add(controller, a, b)
        controller.select_all()
        count = controller.history.count
        assert not controller.align("top")
        assert controller.history.count == count

    def test_align_skips_locked(self, controller: SceneController) -> None:
        rect = make_rect(50, 50)
        _add(controller, rect)
        controller.toggle_lock()
        assert not controller.align("left")
        assert _top_left(controller, rect) == (50, 50)

    def test_distribute(self, controller: SceneController) -> None:
        a, b, c = make_rect(0, 0, 50, 20), make_rect(100, 0, 80, 20), make_rect(370, 0, 30, 20)
        _add(controller, a, b, c)
        controller.select_all()
        assert controller.distribute("horizontal")
        assert _top_left(controller, b) == (170, 0)

    def test_z_order(self, controller: SceneController) -> None:
        a, b, c = make_rect(), make_rect(), make_rect()
        _add(controller, a, b, c)
        controller.select(a)
        assert controller.bring_to_front()
        assert controller.graph.objects[-1] is a
        assert not controller.bring_forward()
        assert controller.send_to_back()
        assert controller.graph.objects[1] is a
        assert not controller.arrange("sideways")

    def test_flip_keeps_center(self, controller: SceneController) -> None:
        rect = make_rect(0, 0, 100, 50)
        _add(controller, rect)
        before = center_point(rect)
        assert controller.flip("horizontal")
        assert rect.geometry.scale_x == -1
        after = center_point(rect)
        assert (after.x(), after.y()) == (before.x(), before.y())


class TestCrop:
    def _image(self, controller: SceneController) -> SceneObject:
        img = make_image("photo.png", 400, 300, 0, 0)
        _add(controller, img)
        return img

    def test_crop_and_undo(self, controller: SceneController, qtbot) -> None:
        img = self._image(controller)
        with qtbot.waitSignal(controller.crop_mode_changed, timeout=1000) as blocker:
            assert controller.enter_crop_mode()
        assert blocker.args == [True]
        assert controller.drag_crop_handle(HandlePosition.MIDDLE_RIGHT, QPointF(300, 150))
        assert controller.apply_crop()
        assert not controller.is_cropping
        assert abs(img.geometry.width - 300) < 1e-6
        assert controller.history.undo_text == "Crop"
        controller.undo()
        assert controller.find(img.object_id).geometry.width == 400

    def test_commands_blocked_while_cropping(self, controller: SceneController) -> None:
        self._image(controller)
        controller.enter_crop_mode()
        count = controller.history.count
        assert not controller.add_object(make_rect())
        assert not controller.align("left")
        assert not controller.undo()
        assert not controller.nudge(1, 0)
        assert controller.history.count == count
        assert controller.cancel_crop()
        assert controller.add_object(make_rect())

    def test_cancel_records_nothing(self, controller: SceneController) -> None:
        img = self._image(controller)
        controller.enter_crop_mode()
        controller.drag_crop_handle(HandlePosition.BOTTOM_CENTER, QPointF(200, 100))
        count = controller.history.count
        controller.cancel_crop()
        assert controller.history.count == count
        assert img.geometry.height == 300

    def test_crop_requires_single_image(self, controller: SceneController) -> None:
        _add(controller, make_rect())
        assert not controller.enter_crop_mode()
        controller.deselect_all()
        assert not controller.enter_crop_mode()


class TestLiveEdits:
    def test_move_is_debounced(self, settings: EditorSettings, render_target: NullRenderTarget, qtbot) -> None:
        settings.set_commit_debounce_ms(20)
        settings.set_snapping_enabled(False)
        controller = SceneController(settings=settings, render_target=render_target)
        rect = make_rect()
        _add(controller, rect)
        count = controller.history.count
        for step in range(5):
            controller.move_object(rect, 10 * step, 20)
        assert controller.has_pending_commit
        assert controller.history.count == count
        qtbot.waitUntil(lambda: not controller.has_pending_commit, timeout=3000)
        assert controller.history.count == count + 1
        assert controller.history.undo_text == "Move"

    def test_undo_flushes_pending_move(self, controller: SceneController) -> None:
        controller.set_snapping_enabled(False)
        rect = make_rect(0, 0)
        _add(controller, rect)
        controller.move_object(rect, 123, 45)
        assert controller.undo()
        assert controller.find(rect.object_id).geometry.x == 0
        assert controller.redo()
        assert controller.find(rect.object_id).geometry.x == 123

    def test_group_after_move_gets_its_own_entry(self, controller: SceneController) -> None:
        controller.set_snapping_enabled(False)
        a, b = make_rect(0, 0), make_rect(300, 200)
        _add(controller, a, b)
        before = controller.history.count
        controller.move_object(a, 130, 220)
        assert controller.has_pending_commit
        controller.select_all()
        assert controller.group()
        assert controller.history.count == before + 2
        assert controller.history.labels[-2:] == ["Move", "Group"]
        assert controller.undo()
        assert controller.graph.count == 2
        assert _top_left(controller, controller.find(a.object_id)) == (130, 220)

    def test_different_live_edit_splits_pending_move(self, controller: SceneController) -> None:
        controller.set_snapping_enabled(False)
        rect = make_rect(0, 0)
        _add(controller, rect)
        controller.move_object(rect, 40, 40)
        controller.move_object(rect, 60, 60)
        controller.set_object_property(rect, "geometry.angle", 10, continuous=True)
        controller.flush_pending_commit()
        assert controller.history.labels[-2:] == ["Move", "Set geometry.angle"]

    def test_move_publishes_snap_lines(self, controller: SceneController, qtbot) -> None:
        rect = make_rect(0, 0, 100, 100)
        _add(controller, rect)
        with qtbot.waitSignal(controller.snap_lines_changed, timeout=1000) as blocker:
            controller.move_object(rect, 345, 10)
        assert [tuple(line) for line in blocker.args[0]] == [("vertical", 400.0)]
        assert _top_left(controller, rect) == (350, 10)
        with qtbot.waitSignal(controller.snap_lines_changed, timeout=1000) as blocker:
            controller.end_drag()
        assert list(blocker.args[0]) == []

    def test_move_to_guide(self, controller: SceneController) -> None:
        rect = make_rect(0, 0, 50, 50)
        _add(controller, rect)
        controller.add_guide("vertical", 203)
        controller.move_object(rect, 200, 20)
        assert _top_left(controller, rect) == (203, 20)
        guide_id = controller.guides[0].guide_id
        assert controller.remove_guide(guide_id)
        assert not controller.remove_guide(guide_id)

    def test_grid_snap(self, controller: SceneController) -> None:
        controller.set_snapping_enabled(False)
        rect = make_rect(0, 0, 30, 30)
        _add(controller, rect)
        assert controller.toggle_grid()
        controller.move_object(rect, 47, 103)
        assert _top_left(controller, rect) == (50, 100)

    def test_nudge_skips_locked(self, controller: SceneController) -> None:
        a, b = make_rect(0, 0), make_rect(200, 0)
        _add(controller, a, b)
        controller.select(a)
        controller.toggle_lock()
        controller.select(a)
        controller.select(b, add=True)
        assert controller.nudge(1, 0, large=True)
        assert a.geometry.x == 0
        assert b.geometry.x == 210

    def test_locked_object_cannot_move(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        controller.toggle_lock()
        assert not controller.move_object(rect, 50, 50)
        assert not controller.set_object_property(rect, "geometry.x", 50)


class TestProperties:
    def test_geometry_and_style(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        assert controller.set_object_property(rect, "geometry.angle", 30)
        assert controller.set_object_property(rect, "style.opacity", 1.5)
        assert controller.set_object_property(rect, "corner_radius", 8)
        assert rect.geometry.angle == 30
        assert rect.style.opacity == 1.0
        assert rect.corner_radius == 8
        assert controller.history.undo_text == "Set corner_radius"

    def test_unknown_property_rejected(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        assert not controller.set_object_property(rect, "geometry.depth", 1)
        assert not controller.set_object_property(rect, "path_data", "M 0 0")
        assert not controller.set_object_property(rect, "geometry.scale_x", 0)

    def test_origin_change_keeps_center(self, controller: SceneController) -> None:
        rect = make_rect(10, 10, 100, 100)
        _add(controller, rect)
        before = center_point(rect)
        assert controller.set_object_property(rect, "geometry.origin_x", "center")
        after = center_point(rect)
        assert (after.x(), after.y()) == (before.x(), before.y())
        assert not controller.set_object_property(rect, "geometry.origin_y", "middle")

    def test_image_fill_becomes_tint(self, controller: SceneController) -> None:
        img = make_image("a.png", 100, 100)
        _add(controller, img)
        controller.set_object_property(img, "style.fill", "#ff0000")
        assert img.image.filters == [{"type": "tint", "value": "#ff0000"}]
        controller.set_object_property(img, "filter.blur", "0.5")
        assert img.image.filters[-1] == {"type": "blur", "value": 0.5}

    def test_group_fill_recurses(self, controller: SceneController) -> None:
        a, b = make_rect(), make_rect(200, 0)
        _add(controller, a, b)
        controller.select_all()
        controller.group()
        group = controller.selection.items[0]
        controller.set_object_property(group, "style.fill", "#00ff00")
        assert [child.style.fill for child in group.children] == ["#00ff00", "#00ff00"]

    def test_image_width_clamped(self, controller: SceneController) -> None:
        img = make_image("a.png", 400, 300)
        _add(controller, img)
        with pytest.warns(GeometryClampWarning):
            controller.set_object_property(img, "geometry.width", 1000)
        assert img.geometry.width == 400

    def test_shadow(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        controller.set_object_property(rect, "shadow.blur", 4)
        assert rect.style.shadow is not None
        assert rect.style.shadow.blur == 4
        assert rect.style.shadow.color == "#000000"
        controller.set_object_property(rect, "shadow.color", "")
        assert rect.style.shadow is None

    def test_continuous_edit_is_debounced(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)
        count = controller.history.count
        for angle in (5, 10, 15):
            controller.set_object_property(rect, "geometry.angle", angle, continuous=True)
        assert controller.has_pending_commit
        controller.flush_pending_commit()
        assert controller.history.count == count + 1
        assert controller.history.undo_text == "Set geometry.angle"

    def test_page_edits(self, controller: SceneController) -> None:
        assert controller.set_background("#222222")
        assert controller.resize_workspace(1024, 768)
        assert not controller.resize_workspace(-1, 10)
        controller.undo()
        controller.undo()
        assert controller.workspace.style.fill == "#ffffff"
        assert controller.workspace.geometry.width == 800


class TestClipboard:
    def test_copy_paste(self, controller: SceneController) -> None:
        rect = make_rect(10, 10)
        _add(controller, rect)
        assert controller.copy()
        assert controller.paste()
        pasted = controller.selection.items[0]
        assert pasted.object_id != rect.object_id
        assert (pasted.geometry.x, pasted.geometry.y) == (20, 20)
        assert controller.history.undo_text == "Paste"

    def test_workspace_payload_is_not_pasted(self, controller: SceneController) -> None:
        _put_on_system_clipboard([make_workspace(10, 10)])
        before = controller.history.count
        assert not controller.paste()
        assert controller.graph.count == 0
        assert controller.history.count == before

    def test_workspace_entries_dropped_from_mixed_payload(self, controller: SceneController) -> None:
        rect = make_rect(5, 5)
        _put_on_system_clipboard([make_workspace(10, 10), rect])
        assert controller.paste()
        assert controller.graph.count == 1
        pasted = controller.selection.items
        assert len(pasted) == 1
        assert pasted[0].kind == rect.kind
        assert pasted[0].object_id != rect.object_id
        assert controller.history.undo_text == "Paste"

    def test_duplicate_nested_child(self, controller: SceneController) -> None:
        a, b = make_rect(0, 0), make_rect(200, 100)
        _add(controller, a, b)
        controller.select_all()
        controller.group()
        group = controller.selection.items[0]
        group.geometry.x += 50
        controller.select(b)
        assert controller.duplicate()
        copy = controller.selection.items[0]
        assert controller.graph.parent_of(copy) is None
        original = controller.graph.bounding_rect(b)
        duplicated = controller.graph.bounding_rect(copy)
        assert abs(duplicated.left() - original.left() - 10) < 1e-6
        assert abs(duplicated.top() - original.top() - 10) < 1e-6


class TestHistoryFailures:
    def test_restore_failure_reported(self, controller: SceneController, qtbot, monkeypatch) -> None:
        _add(controller, make_rect())
        index = controller.history.current_index

        def broken(document: dict[str, Any]) -> None:
            raise DocumentFormatError("corrupted")

        monkeypatch.setattr("pagesmith.core.controller.scene_from_document", broken)
        with qtbot.waitSignal(controller.error_reported, timeout=1000):
            assert not controller.undo()
        assert controller.history.current_index == index
        assert controller.graph.count == 1


class TestDocuments:
    def test_load_document_resets_history(self, controller: SceneController) -> None:
        empty = controller.serialize()
        _add(controller, make_rect())
        assert controller.load_document(empty)
        assert controller.graph.count == 0
        assert controller.history.labels == ["Load"]
        assert controller.selection.is_empty

    def test_bad_document_reported(self, controller: SceneController, qtbot) -> None:
        with qtbot.waitSignal(controller.error_reported, timeout=1000):
            assert not controller.load_document({"format_version": 99})

    def test_export_snapshot(self, controller: SceneController) -> None:
        rect = make_rect(10, 10, 20, 20)
        _add(controller, rect)
        exported = controller.export_snapshot()
        assert [d.object for d in exported] == [controller.workspace, rect]


class TestAsyncContent:
    def test_replace_image_keeps_footprint(self, controller: SceneController) -> None:
        img = make_image("old.png", 400, 200, 0, 0, scale=0.5)
        img.image.crop_x = 100
        img.geometry.width = 200
        _add(controller, img)
        before = controller.graph.bounding_rect(img)

        async def provider(current: SceneObject) -> dict[str, Any]:
            assert current.image.src == "old.png"
            return {"src": "new.png", "natural_width": 800, "natural_height": 400}

        assert asyncio.run(controller.replace_image_content(img, provider))
        after = controller.graph.bounding_rect(img)
        assert img.image.src == "new.png"
        assert img.image.crop_x == 0
        assert (img.geometry.width, img.geometry.height) == (800, 400)
        for a, b in ((after.left(), before.left()), (after.width(), before.width())):
            assert abs(a - b) < 1e-6
        assert controller.history.undo_text == "Replace image"

    def test_replace_rejects_non_image(self, controller: SceneController) -> None:
        rect = make_rect()
        _add(controller, rect)

        async def provider(current: SceneObject) -> dict[str, Any]:
            return {"src": "x.png"}

        assert not asyncio.run(controller.replace_image_content(rect, provider))

    def test_insert_content(self, controller: SceneController) -> None:
        template = make_rect(5, 5)

        async def provider() -> dict[str, Any]:
            return template.serialize()

        assert asyncio.run(controller.insert_content(provider))
        inserted = controller.selection.items[0]
        assert inserted.object_id != template.object_id
        assert inserted.geometry.x == 5
