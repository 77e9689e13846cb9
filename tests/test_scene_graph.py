"""Tests for SceneGraph ordering, ownership and workspace pinning."""

import pytest
from PyQt6.QtCore import QPointF

from pagesmith.core.errors import InvalidOperationError
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import ObjectKind, SceneObject, make_rect, set_center_point


def _ids(objects: list[SceneObject]) -> list[str]:
    return [obj.object_id for obj in objects]


class TestOrdering:
    def test_workspace_starts_at_bottom(self, graph: SceneGraph) -> None:
        assert graph.objects_in_z_order() == [graph.workspace]
        assert graph.count == 0

    def test_insert_below_workspace_is_repinned(self, graph: SceneGraph) -> None:
        r = make_rect()
        graph.add(r, index=0)
        order = graph.objects_in_z_order()
        assert order[0] is graph.workspace
        assert order[1] is r

    def test_z_order_commands(self, graph: SceneGraph) -> None:
        a, b, c = make_rect(), make_rect(), make_rect()
        for obj in (a, b, c):
            graph.add(obj)
        ws = graph.workspace.object_id

        assert graph.bring_to_front(a)
        assert _ids(graph.objects) == [ws, b.object_id, c.object_id, a.object_id]
        assert graph.send_to_back(a)
        assert _ids(graph.objects) == [ws, a.object_id, b.object_id, c.object_id]
        assert graph.bring_forward(a)
        assert _ids(graph.objects) == [ws, b.object_id, a.object_id, c.object_id]
        assert graph.send_backward(c)
        assert _ids(graph.objects) == [ws, b.object_id, c.object_id, a.object_id]

    def test_send_to_back_never_passes_workspace(self, graph: SceneGraph) -> None:
        a = make_rect()
        graph.add(a)
        assert not graph.send_to_back(a)
        assert not graph.send_backward(a)
        assert graph.objects[0] is graph.workspace

    def test_order_changed_signal(self, graph: SceneGraph, qtbot) -> None:
        a, b = make_rect(), make_rect()
        graph.add(a)
        graph.add(b)
        with qtbot.waitSignal(graph.order_changed, timeout=1000):
            graph.bring_to_front(a)


class TestOwnership:
    def test_remove_is_order_preserving(self, graph: SceneGraph) -> None:
        a, b, c = make_rect(), make_rect(), make_rect()
        for obj in (a, b, c):
            graph.add(obj)
        assert graph.remove(b) == 2
        assert graph.objects_in_z_order()[1:] == [a, c]

    def test_remove_workspace_rejected(self, graph: SceneGraph) -> None:
        with pytest.raises(InvalidOperationError):
            graph.remove(graph.workspace)

    def test_add_twice_rejected(self, graph: SceneGraph) -> None:
        r = make_rect()
        graph.add(r)
        with pytest.raises(InvalidOperationError):
            graph.add(r)

    def test_child_lookup(self, graph: SceneGraph) -> None:
        child = make_rect()
        group = SceneObject(kind=ObjectKind.GROUP)
        graph.add(group)
        graph.add(child, container=group)
        assert graph.parent_of(child) is group
        assert graph.container_of(child) is group.children
        assert graph.find(child.object_id) is child
        assert graph.parent_of(group) is None
        graph.remove(child)
        assert group.children == []

    def test_group_cannot_contain_itself(self, graph: SceneGraph) -> None:
        group = SceneObject(kind=ObjectKind.GROUP)
        graph.add(group)
        with pytest.raises(InvalidOperationError):
            graph.add(group, container=group)

    def test_walk_visits_children(self, graph: SceneGraph) -> None:
        child = make_rect()
        group = SceneObject(kind=ObjectKind.GROUP, children=[child])
        graph.add(group)
        assert [obj.object_id for obj in graph.walk()] == [
            graph.workspace.object_id,
            group.object_id,
            child.object_id,
        ]

    def test_signals_emitted(self, graph: SceneGraph, qtbot) -> None:
        r = make_rect()
        with qtbot.waitSignal(graph.object_added, timeout=1000) as added:
            graph.add(r)
        assert added.args == [r]
        with qtbot.waitSignal(graph.object_removed, timeout=1000) as removed:
            graph.remove(r)
        assert removed.args == [r.object_id]


class TestGeometry:
    def test_global_matrix_composes_group(self, graph: SceneGraph) -> None:
        child = make_rect(0, 0, 10, 10)
        set_center_point(child, QPointF(5, 0))
        group = SceneObject(kind=ObjectKind.GROUP, children=[child])
        group.geometry.origin_x = "center"
        group.geometry.origin_y = "center"
        group.geometry.x = 100
        group.geometry.y = 100
        group.geometry.angle = 90
        graph.add(group)
        rect = graph.bounding_rect(child)
        assert abs(rect.center().x() - 100) < 1e-9
        assert abs(rect.center().y() - 105) < 1e-9

    def test_translate_global_inside_scaled_group(self, graph: SceneGraph) -> None:
        child = make_rect(0, 0, 10, 10)
        group = SceneObject(kind=ObjectKind.GROUP, children=[child])
        group.geometry.scale_x = 2
        graph.add(group)
        before = graph.bounding_rect(child)
        graph.translate_global(child, 20, 0)
        after = graph.bounding_rect(child)
        assert abs(after.left() - before.left() - 20) < 1e-9
        assert abs(child.geometry.x - 10) < 1e-9

    def test_resize_workspace_keeps_identity(self, graph: SceneGraph) -> None:
        ws = graph.workspace
        graph.resize_workspace(1024, 768)
        assert graph.workspace is ws
        assert (ws.geometry.width, ws.geometry.height) == (1024, 768)

    def test_resize_workspace_rejects_empty_page(self, graph: SceneGraph) -> None:
        with pytest.raises(InvalidOperationError):
            graph.resize_workspace(0, 100)
