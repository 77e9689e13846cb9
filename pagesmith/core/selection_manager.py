"""SelectionManager — tracks the set of currently selected scene objects."""

from __future__ import annotations

from PyQt6.QtCore import QObject, pyqtSignal

from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import SceneObject


class SelectionManager(QObject):
    """Tracks which objects are selected and provides operations on the selection.

    The workspace is never selectable; requests to select it are ignored.

    Signals
    -------
    selection_changed(list)
        Emitted with the list of currently selected objects.
    selection_cleared()
        Emitted when all objects are deselected.
    """

    selection_changed = pyqtSignal(list)
    selection_cleared = pyqtSignal()

    def __init__(self, graph: SceneGraph, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._graph = graph
        self._selected: list[SceneObject] = []

    @property
    def items(self) -> list[SceneObject]:
        return list(self._selected)

    @property
    def ids(self) -> list[str]:
        return [obj.object_id for obj in self._selected]

    @property
    def count(self) -> int:
        return len(self._selected)

    @property
    def is_empty(self) -> bool:
        return len(self._selected) == 0

    def is_selected(self, obj: SceneObject) -> bool:
        return any(item is obj for item in self._selected)

    def select(self, obj: SceneObject, *, add: bool = False) -> None:
        """Select an object. If *add* is False, deselect everything else first."""
        if not add:
            self._selected.clear()
        if self._selectable(obj) and not self.is_selected(obj):
            self._selected.append(obj)
        self.selection_changed.emit(self.items)

    def toggle(self, obj: SceneObject) -> None:
        """Toggle selection state of *obj*."""
        if self.is_selected(obj):
            self._selected = [item for item in self._selected if item is not obj]
        elif self._selectable(obj):
            self._selected.append(obj)
        self.selection_changed.emit(self.items)

    def select_items(self, objects: list[SceneObject]) -> None:
        """Replace the selection with *objects*."""
        self._selected = []
        for obj in objects:
            if self._selectable(obj) and not self.is_selected(obj):
                self._selected.append(obj)
        self.selection_changed.emit(self.items)

    def deselect_all(self) -> None:
        """Clear the selection."""
        if self._selected:
            self._selected.clear()
            self.selection_cleared.emit()
            self.selection_changed.emit(self.items)

    def prune(self) -> None:
        """Drop selected objects that are no longer part of the scene."""
        kept = [obj for obj in self._selected if self._graph.contains(obj)]
        if len(kept) != len(self._selected):
            self._selected = kept
            self.selection_changed.emit(self.items)

    def _selectable(self, obj: SceneObject) -> bool:
        return not obj.is_workspace and self._graph.contains(obj)
