"""SceneGraph — owns the ordered object tree and the pinned workspace page."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from PyQt6.QtCore import QObject, QPointF, QRectF, pyqtSignal
from PyQt6.QtGui import QTransform

from pagesmith.config.constants import (
    DEFAULT_PAGE_FILL,
    DEFAULT_PAGE_HEIGHT,
    DEFAULT_PAGE_WIDTH,
)
from pagesmith.core.affine import compose, identity, invert, transform_vector
from pagesmith.core.errors import InvalidOperationError
from pagesmith.core.scene_object import (
    SceneObject,
    bounding_rect_for,
    local_matrix,
    make_workspace,
    translate,
)

log = logging.getLogger(__name__)


class SceneGraph(QObject):
    """Tree of :class:`SceneObject` instances with a single owner per object.

    The top-level list is ordered bottom-to-top and always starts with the
    workspace.  Groups own their children in the same bottom-to-top order.

    Signals
    -------
    object_added(SceneObject)
    object_removed(str)
        Emitted with the removed object's id.
    order_changed()
    workspace_changed()
        The page was resized or its background changed.
    contents_replaced()
        The whole tree was swapped (document load, history restore).
    """

    object_added = pyqtSignal(object)
    object_removed = pyqtSignal(str)
    order_changed = pyqtSignal()
    workspace_changed = pyqtSignal()
    contents_replaced = pyqtSignal()

    def __init__(
        self, workspace: SceneObject | None = None, parent: QObject | None = None
    ) -> None:
        super().__init__(parent)
        if workspace is None:
            workspace = make_workspace(DEFAULT_PAGE_WIDTH, DEFAULT_PAGE_HEIGHT, DEFAULT_PAGE_FILL)
        self._workspace = workspace
        self._objects: list[SceneObject] = [workspace]

    # --- queries ---

    @property
    def workspace(self) -> SceneObject:
        return self._workspace

    @property
    def page_rect(self) -> QRectF:
        g = self._workspace.geometry
        return QRectF(g.x, g.y, g.width, g.height)

    @property
    def objects(self) -> list[SceneObject]:
        """Top-level objects bottom-to-top, workspace first."""
        return list(self._objects)

    @property
    def count(self) -> int:
        """Number of top-level objects, excluding the workspace."""
        return len(self._objects) - 1

    def objects_in_z_order(self, container: SceneObject | None = None) -> list[SceneObject]:
        """Return the children of *container* (or the top level) bottom-to-top."""
        return list(self._list_for(container))

    def walk(self, container: SceneObject | None = None) -> Iterator[SceneObject]:
        """Depth-first, bottom-to-top traversal of every object under *container*."""
        for obj in self._list_for(container):
            yield obj
            if obj.is_group:
                yield from self.walk(obj)

    def find(self, object_id: str) -> SceneObject | None:
        for obj in self.walk():
            if obj.object_id == object_id:
                return obj
        return None

    def contains(self, obj: SceneObject) -> bool:
        return any(candidate is obj for candidate in self.walk())

    def parent_of(self, obj: SceneObject) -> SceneObject | None:
        """Return the group that owns *obj*, or None for top-level objects."""
        for candidate in self.walk():
            if candidate.is_group and any(child is obj for child in candidate.children):
                return candidate
        return None

    def container_of(self, obj: SceneObject) -> list[SceneObject]:
        """Return the list that owns *obj*.

        Raises
        ------
        InvalidOperationError
            If *obj* is not part of this scene.
        """
        if any(candidate is obj for candidate in self._objects):
            return self._objects
        parent = self.parent_of(obj)
        if parent is None:
            raise InvalidOperationError(f"object {obj.object_id} is not in the scene")
        return parent.children

    def index_of(self, obj: SceneObject) -> int:
        """Position of *obj* within its owning list, or -1."""
        try:
            container = self.container_of(obj)
        except InvalidOperationError:
            return -1
        for i, candidate in enumerate(container):
            if candidate is obj:
                return i
        return -1

    def ancestors(self, obj: SceneObject) -> list[SceneObject]:
        """Owning groups of *obj*, innermost first."""
        chain: list[SceneObject] = []
        parent = self.parent_of(obj)
        while parent is not None:
            chain.append(parent)
            parent = self.parent_of(parent)
        return chain

    # --- geometry ---

    def container_matrix(self, obj: SceneObject) -> QTransform:
        """Map the space *obj* lives in (its container's local space) to page space."""
        m = identity()
        for ancestor in reversed(self.ancestors(obj)):
            m = compose(m, local_matrix(ancestor))
        return m

    def global_matrix(self, obj: SceneObject) -> QTransform:
        """Map *obj*'s centred local box to page space."""
        return compose(self.container_matrix(obj), local_matrix(obj))

    def bounding_rect(self, obj: SceneObject) -> QRectF:
        """Axis-aligned bounding box of *obj* in page space."""
        return bounding_rect_for(obj, self.global_matrix(obj))

    def translate_global(self, obj: SceneObject, dx: float, dy: float) -> None:
        """Move *obj* by a page-space delta, whatever container it lives in."""
        if self.parent_of(obj) is None:
            translate(obj, dx, dy)
            return
        local = transform_vector(QPointF(dx, dy), invert(self.container_matrix(obj)))
        translate(obj, local.x(), local.y())

    # --- mutations ---

    def add(
        self,
        obj: SceneObject,
        container: SceneObject | None = None,
        index: int | None = None,
    ) -> None:
        """Insert *obj* into *container* (a group) or the top level.

        *index* counts bottom-to-top; None appends on top.
        """
        if obj.is_workspace:
            raise InvalidOperationError("the workspace cannot be added as an object")
        if self.contains(obj):
            raise InvalidOperationError(f"object {obj.object_id} is already in the scene")
        if container is not None:
            if not container.is_group or not self.contains(container):
                raise InvalidOperationError("container must be a group in this scene")
            if self._is_descendant(container, obj):
                raise InvalidOperationError("cannot add a group inside itself")
        target = self._list_for(container)
        if index is None:
            index = len(target)
        target.insert(max(0, min(index, len(target))), obj)
        self._pin_workspace()
        log.debug("added %s %s", obj.type_name, obj.object_id)
        self.object_added.emit(obj)

    def remove(self, obj: SceneObject) -> int:
        """Detach *obj* from its container.  Returns its former index."""
        if obj.is_workspace:
            raise InvalidOperationError("the workspace cannot be removed")
        container = self.container_of(obj)
        index = next(i for i, candidate in enumerate(container) if candidate is obj)
        del container[index]
        log.debug("removed %s %s", obj.type_name, obj.object_id)
        self.object_removed.emit(obj.object_id)
        return index

    def bring_forward(self, obj: SceneObject) -> bool:
        return self._move_to(obj, self.index_of(obj) + 1)

    def send_backward(self, obj: SceneObject) -> bool:
        return self._move_to(obj, self.index_of(obj) - 1)

    def bring_to_front(self, obj: SceneObject) -> bool:
        return self._move_to(obj, len(self.container_of(obj)) - 1)

    def send_to_back(self, obj: SceneObject) -> bool:
        return self._move_to(obj, 0)

    def resize_workspace(self, width: float, height: float) -> None:
        """Resize the page in place; the workspace object keeps its identity."""
        if width <= 0 or height <= 0:
            raise InvalidOperationError(f"invalid page size {width}x{height}")
        self._workspace.geometry.width = float(width)
        self._workspace.geometry.height = float(height)
        self.workspace_changed.emit()

    def set_background(self, fill: str) -> None:
        self._workspace.style.fill = fill
        self.workspace_changed.emit()

    def replace_contents(self, workspace: SceneObject, objects: list[SceneObject]) -> None:
        """Swap the whole tree for *workspace* plus *objects* (bottom-to-top)."""
        if not workspace.is_workspace:
            raise InvalidOperationError("replacement workspace has the wrong kind")
        self._workspace = workspace
        self._objects = [workspace, *(obj for obj in objects if not obj.is_workspace)]
        self.contents_replaced.emit()
        self.workspace_changed.emit()

    # --- internal ---

    def _list_for(self, container: SceneObject | None) -> list[SceneObject]:
        if container is None:
            return self._objects
        if not container.is_group:
            raise InvalidOperationError(f"{container.type_name} objects have no children")
        return container.children

    def _move_to(self, obj: SceneObject, new_index: int) -> bool:
        container = self.container_of(obj)
        old_index = self.index_of(obj)
        floor = 1 if container is self._objects else 0
        new_index = max(floor, min(new_index, len(container) - 1))
        if obj.is_workspace or new_index == old_index:
            return False
        container.insert(new_index, container.pop(old_index))
        self._pin_workspace()
        self.order_changed.emit()
        return True

    def _pin_workspace(self) -> None:
        if self._objects[0] is not self._workspace:
            self._objects.remove(self._workspace)
            self._objects.insert(0, self._workspace)

    @staticmethod
    def _is_descendant(candidate: SceneObject, ancestor: SceneObject) -> bool:
        if candidate is ancestor:
            return True
        return any(SceneGraph._is_descendant(candidate, child) for child in ancestor.children)
