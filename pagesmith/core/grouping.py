"""GroupingService — folds a selection into a Group and unfolds it again."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QTransform

from pagesmith.core.affine import TransformParts, compose, decompose
from pagesmith.core.errors import InvalidOperationError
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import (
    Geometry,
    ObjectKind,
    SceneObject,
    Style,
    local_bounding_rect,
    local_matrix,
    set_center_point,
    translate,
    united_rect,
)

log = logging.getLogger(__name__)


class GroupingService:
    """Group/ungroup while preserving every member's page geometry.

    A new group carries a translation-only transform placed at the centre of
    its members' bounding box, and each member is shifted into the group's
    centred local space.  Ungrouping composes the group's matrix with each
    child's and decomposes the result, so ``ungroup(group(s))`` lands every
    object back on its original page geometry.
    """

    def __init__(self, graph: SceneGraph) -> None:
        self._graph = graph

    def group(self, selection: list[SceneObject]) -> SceneObject:
        """Replace *selection* with a new group and return it.

        Raises
        ------
        InvalidOperationError
            Fewer than two members, a workspace member, members outside the
            scene or members spread across different containers.
        """
        members: list[SceneObject] = []
        for obj in selection:
            if not any(m is obj for m in members):
                members.append(obj)
        if len(members) < 2:
            raise InvalidOperationError("grouping needs at least two objects")
        if any(obj.is_workspace for obj in members):
            raise InvalidOperationError("the workspace cannot be grouped")
        if any(not self._graph.contains(obj) for obj in members):
            raise InvalidOperationError("cannot group objects that are not in the scene")
        parent = self._graph.parent_of(members[0])
        if any(self._graph.parent_of(obj) is not parent for obj in members[1:]):
            raise InvalidOperationError("grouped objects must share a container")

        members.sort(key=self._graph.index_of)
        insert_at = self._graph.index_of(members[-1]) - (len(members) - 1)

        box = united_rect([local_bounding_rect(obj) for obj in members])
        center = box.center()

        for obj in members:
            self._graph.remove(obj)
            translate(obj, -center.x(), -center.y())

        group = SceneObject(
            kind=ObjectKind.GROUP,
            geometry=Geometry(
                x=box.left(),
                y=box.top(),
                width=box.width(),
                height=box.height(),
            ),
            style=Style(fill=""),
            name="Group",
            children=members,
        )
        self._graph.add(group, parent, insert_at)
        log.info("grouped %d objects into %s", len(members), group.object_id)
        return group

    def ungroup(self, group: SceneObject) -> list[SceneObject]:
        """Dissolve *group* into its container and return the released children.

        Children keep the group's z-position and their relative order.
        """
        if not group.is_group:
            raise InvalidOperationError(f"cannot ungroup a {group.type_name} object")
        if not self._graph.contains(group):
            raise InvalidOperationError("cannot ungroup an object that is not in the scene")

        group_matrix = local_matrix(group)
        children = list(group.children)
        # Decompose everything first so a degenerate child aborts before any mutation.
        resolved = [
            _keep_flip(decompose(compose(group_matrix, local_matrix(child))), child.geometry.scale_x)
            for child in children
        ]

        parent = self._graph.parent_of(group)
        index = self._graph.remove(group)
        group.children = []
        for offset, (child, parts) in enumerate(zip(children, resolved)):
            _apply_parts(child, parts)
            self._graph.add(child, parent, index + offset)
        log.info("ungrouped %s into %d objects", group.object_id, len(children))
        return children


def _keep_flip(parts: TransformParts, scale_x: float) -> TransformParts:
    """Report a horizontal flip as a negative x-scale, as the child had it.

    Decomposition yields a positive x-scale, so a mirrored child comes back
    as a vertical flip turned half a revolution.  Negating both scales and
    adding 180 degrees describes the same matrix.
    """
    if scale_x >= 0 or parts.scale_x <= 0 or parts.scale_y >= 0:
        return parts
    angle = parts.angle + 180.0
    if angle > 180.0:
        angle -= 360.0
    return parts._replace(scale_x=-parts.scale_x, scale_y=-parts.scale_y, angle=angle)


def _apply_parts(obj: SceneObject, parts: TransformParts) -> None:
    g = obj.geometry
    g.scale_x = parts.scale_x
    g.scale_y = parts.scale_y
    g.angle = parts.angle
    g.skew_x = parts.skew_x
    g.skew_y = parts.skew_y
    g.origin_x = "left"
    g.origin_y = "top"
    set_center_point(obj, QPointF(parts.translate_x, parts.translate_y))


def place_with_matrix(obj: SceneObject, matrix: QTransform) -> None:
    """Re-express *obj*'s geometry so its local matrix equals *matrix*.

    The origin is reset to left/top; any y-skew folds into the other parts.
    """
    _apply_parts(obj, _keep_flip(decompose(matrix), obj.geometry.scale_x))
