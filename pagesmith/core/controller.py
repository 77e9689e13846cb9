"""SceneController — composition root and command surface of the editor core.

Every user-facing action is one method here.  Commands return True when
they changed something and False when they were a no-op (nothing selected,
invalid target, crop session in progress).  Discrete commands commit a
history entry immediately; continuous ones (dragging, nudging, sliders)
schedule a debounced commit so a whole gesture becomes one entry.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Awaitable, Callable
from typing import Any

from PyQt6.QtCore import QObject, QPointF, QRectF, QTimer, pyqtSignal

from pagesmith.config.constants import (
    DEFAULT_PAGE_FILL,
    DEFAULT_PAGE_HEIGHT,
    DEFAULT_PAGE_WIDTH,
    DEFAULT_SHADOW,
    NUDGE_STEP,
    NUDGE_STEP_LARGE,
)
from pagesmith.config.settings import EditorSettings
from pagesmith.core.alignment import AlignEdge, AlignmentEngine
from pagesmith.core.clipboard_manager import ClipboardManager
from pagesmith.core.crop_engine import CropGeometryEngine, HandlePosition
from pagesmith.core.errors import (
    DegenerateTransformError,
    DocumentFormatError,
    GeometryClampWarning,
    InvalidOperationError,
    StateRestoreError,
)
from pagesmith.core.filters import FilterManager
from pagesmith.core.grouping import GroupingService, place_with_matrix
from pagesmith.core.history import HistoryEngine
from pagesmith.core.render_target import Drawable, NullRenderTarget, RenderTarget, collect_drawables
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import (
    Axis,
    Geometry,
    Guide,
    ObjectKind,
    SceneObject,
    Shadow,
    center_point,
    make_text,
    make_workspace,
    set_center_point,
)
from pagesmith.core.selection_manager import SelectionManager
from pagesmith.io.project_serializer import document_from_scene, scene_from_document

log = logging.getLogger(__name__)

ContentProvider = Callable[[], Awaitable[dict[str, Any]]]
ImageProvider = Callable[[SceneObject], Awaitable[dict[str, Any]]]

_GEOMETRY_FIELDS = {
    "x",
    "y",
    "width",
    "height",
    "scale_x",
    "scale_y",
    "angle",
    "skew_x",
    "skew_y",
    "origin_x",
    "origin_y",
}
_STYLE_FIELDS = {"fill", "stroke", "stroke_width", "opacity"}
_SHADOW_FIELDS = {"color", "blur", "offset_x", "offset_y"}
_TEXT_FIELDS = {"text", "font_family", "font_size", "font_weight", "text_align"}
_ARRANGE = {"up", "down", "front", "back"}


class SceneController(QObject):
    """Owns the scene, its engines and the history log.

    Signals
    -------
    selection_changed(list)
        Emitted with the selected objects.
    history_changed(bool, bool, str)
        ``(can_undo, can_redo, undo_label)`` after every history change.
    crop_mode_changed(bool)
    snap_lines_changed(list)
        ``[(axis, position), ...]`` guide lines to show during a drag; an
        empty list clears them.
    guides_changed()
    error_reported(str)
        A failure the user must see (history restore, document load).
    """

    selection_changed = pyqtSignal(list)
    history_changed = pyqtSignal(bool, bool, str)
    crop_mode_changed = pyqtSignal(bool)
    snap_lines_changed = pyqtSignal(list)
    guides_changed = pyqtSignal()
    error_reported = pyqtSignal(str)

    def __init__(
        self,
        settings: EditorSettings | None = None,
        render_target: RenderTarget | None = None,
        width: float = DEFAULT_PAGE_WIDTH,
        height: float = DEFAULT_PAGE_HEIGHT,
        background: str = DEFAULT_PAGE_FILL,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings if settings is not None else EditorSettings()
        self._render = render_target if render_target is not None else NullRenderTarget()

        self._graph = SceneGraph(make_workspace(width, height, background), self)
        self._selection = SelectionManager(self._graph, self)
        self._grouping = GroupingService(self._graph)
        self._crop = CropGeometryEngine(self._graph)
        self._alignment = AlignmentEngine(self._graph, self._settings.snap_threshold())
        self._filters = FilterManager()
        self._clipboard = ClipboardManager(self)
        self._history = HistoryEngine(
            self.serialize,
            self._restore_document,
            max_depth=self._settings.history_depth(),
            parent=self,
        )

        self._guides: list[Guide] = []
        self._grid_enabled = False
        self._snapping_enabled = self._settings.snapping_enabled()

        self._pending_label = ""
        self._commit_timer = QTimer(self)
        self._commit_timer.setSingleShot(True)
        self._commit_timer.setInterval(self._settings.commit_debounce_ms())
        self._commit_timer.timeout.connect(self._on_commit_timeout)

        self._selection.selection_changed.connect(self.selection_changed)
        self._history.history_changed.connect(self._on_history_changed)

        self._history.commit("Initial")

    # --- components ---

    @property
    def graph(self) -> SceneGraph:
        return self._graph

    @property
    def workspace(self) -> SceneObject:
        return self._graph.workspace

    @property
    def selection(self) -> SelectionManager:
        return self._selection

    @property
    def history(self) -> HistoryEngine:
        return self._history

    @property
    def clipboard(self) -> ClipboardManager:
        return self._clipboard

    @property
    def crop_engine(self) -> CropGeometryEngine:
        return self._crop

    @property
    def alignment(self) -> AlignmentEngine:
        return self._alignment

    @property
    def render_target(self) -> RenderTarget:
        return self._render

    @property
    def guides(self) -> list[Guide]:
        return list(self._guides)

    @property
    def grid_enabled(self) -> bool:
        return self._grid_enabled

    @property
    def is_cropping(self) -> bool:
        return self._crop.is_active

    @property
    def has_pending_commit(self) -> bool:
        return self._commit_timer.isActive()

    # --- objects ---

    def add_object(
        self,
        obj: SceneObject,
        container: SceneObject | None = None,
        index: int | None = None,
        *,
        select: bool = True,
    ) -> bool:
        if self._blocked("add object"):
            return False
        try:
            self._graph.add(obj, container, index)
        except InvalidOperationError as exc:
            return self._reject("add object", exc)
        if select:
            self._selection.select(obj)
        self._changed(f"Add {obj.type_name}")
        return True

    def remove_selected(self) -> bool:
        if self._blocked("remove"):
            return False
        targets = self._selection.items
        if not targets:
            return False
        for obj in targets:
            if self._graph.contains(obj):
                self._graph.remove(obj)
        self._selection.deselect_all()
        self._changed("Remove")
        return True

    def find(self, object_id: str) -> SceneObject | None:
        return self._graph.find(object_id)

    # --- selection ---

    def select(self, target: SceneObject | str, *, add: bool = False) -> bool:
        obj = self._resolve(target)
        if obj is None or obj.is_workspace:
            return False
        self._selection.select(obj, add=add)
        return True

    def select_all(self) -> bool:
        objects = [
            obj
            for obj in self._graph.objects_in_z_order()
            if not obj.is_workspace and obj.visible
        ]
        if not objects:
            return False
        self._selection.select_items(objects)
        return True

    def deselect_all(self) -> bool:
        if self._selection.is_empty:
            return False
        self._selection.deselect_all()
        return True

    # --- grouping ---

    def group(self) -> bool:
        if self._blocked("group"):
            return False
        try:
            group = self._grouping.group(self._selection.items)
        except InvalidOperationError as exc:
            return self._reject("group", exc)
        self._selection.select(group)
        self._changed("Group")
        return True

    def ungroup(self) -> bool:
        if self._blocked("ungroup"):
            return False
        groups = [obj for obj in self._selection.items if obj.is_group]
        if not groups:
            return self._reject("ungroup", InvalidOperationError("no group selected"))
        released: list[SceneObject] = []
        try:
            for group in groups:
                released.extend(self._grouping.ungroup(group))
        except (InvalidOperationError, DegenerateTransformError) as exc:
            return self._reject("ungroup", exc)
        self._selection.select_items(released)
        self._changed("Ungroup")
        return True

    # --- alignment ---

    def align(self, edge: AlignEdge | str, *, force_workspace: bool = False) -> bool:
        if self._blocked("align"):
            return False
        targets = self._movable(self._selection.items)
        if not targets:
            return False
        container = self._graph.page_rect if force_workspace else None
        try:
            moved = self._alignment.align(targets, edge, container)
        except (InvalidOperationError, DegenerateTransformError, ValueError) as exc:
            return self._reject("align", exc)
        if moved:
            self._changed(f"Align {AlignEdge(edge).value}")
        return moved

    def distribute(self, axis: Axis | str) -> bool:
        if self._blocked("distribute"):
            return False
        try:
            moved = self._alignment.distribute(self._movable(self._selection.items), axis)
        except (InvalidOperationError, DegenerateTransformError, ValueError) as exc:
            return self._reject("distribute", exc)
        if moved:
            self._changed(f"Distribute {Axis(axis).value}")
        return moved

    # --- z-order ---

    def bring_forward(self) -> bool:
        return self.arrange("up")

    def send_backward(self) -> bool:
        return self.arrange("down")

    def bring_to_front(self) -> bool:
        return self.arrange("front")

    def send_to_back(self) -> bool:
        return self.arrange("back")

    def arrange(self, direction: str) -> bool:
        """Restack the selection: ``up``, ``down``, ``front`` or ``back``."""
        if self._blocked("arrange"):
            return False
        if direction not in _ARRANGE:
            return self._reject("arrange", InvalidOperationError(f"unknown direction {direction!r}"))
        targets = sorted(self._selection.items, key=self._graph.index_of)
        # Walk so that moving one object never jumps it over another selected one.
        if direction in ("up", "back"):
            targets.reverse()
        action = {
            "up": self._graph.bring_forward,
            "down": self._graph.send_backward,
            "front": self._graph.bring_to_front,
            "back": self._graph.send_to_back,
        }[direction]
        changed = False
        for obj in targets:
            changed = action(obj) or changed
        if changed:
            self._changed("Arrange")
        return changed

    # --- crop ---

    def enter_crop_mode(self) -> bool:
        if self._crop.is_active:
            return self._reject("crop", InvalidOperationError("already cropping"))
        items = self._selection.items
        if len(items) != 1:
            return self._reject("crop", InvalidOperationError("select exactly one image to crop"))
        self.flush_pending_commit()
        try:
            self._crop.enter(items[0])
        except (InvalidOperationError, DegenerateTransformError) as exc:
            return self._reject("crop", exc)
        self.crop_mode_changed.emit(True)
        self._render.request_redraw()
        return True

    def drag_crop_handle(self, handle: HandlePosition, point: QPointF) -> bool:
        if not self._crop.is_active:
            return False
        try:
            self._crop.drag_handle(handle, point)
        except (InvalidOperationError, DegenerateTransformError) as exc:
            return self._reject("crop drag", exc)
        self._render.request_redraw()
        return True

    def apply_crop(self) -> bool:
        if not self._crop.is_active:
            return False
        try:
            self._crop.apply()
        except (InvalidOperationError, DegenerateTransformError) as exc:
            return self._reject("apply crop", exc)
        self.crop_mode_changed.emit(False)
        self._changed("Crop")
        return True

    def cancel_crop(self) -> bool:
        if not self._crop.is_active:
            return False
        self._crop.cancel()
        self.crop_mode_changed.emit(False)
        self._render.request_redraw()
        return True

    # --- live transforms ---

    def move_object(self, target: SceneObject | str, left: float, top: float) -> bool:
        """Drag *target* so its page bounding box starts at ``(left, top)``.

        Applies grid and live snapping, publishes snap lines and schedules a
        debounced commit.
        """
        if self._blocked("move", continuing="Move"):
            return False
        obj = self._resolve(target)
        if obj is None or obj.is_workspace or obj.locked:
            return False
        try:
            rect = self._graph.bounding_rect(obj)
            self._graph.translate_global(obj, left - rect.left(), top - rect.top())
            if self._grid_enabled:
                self._alignment.snap_to_grid(obj, self._settings.grid_size())
            lines: list[tuple[str, float]] = []
            if self._snapping_enabled:
                lines = self._alignment.on_object_moving(obj, guides=self._guides).lines()
        except DegenerateTransformError as exc:
            return self._reject("move", exc)
        self.snap_lines_changed.emit(lines)
        self._render.request_redraw()
        self._schedule_commit("Move")
        return True

    def end_drag(self) -> bool:
        """Pointer released: clear transient snap lines."""
        self.snap_lines_changed.emit([])
        self._render.request_redraw()
        return True

    def nudge(self, dx: float, dy: float, *, large: bool = False) -> bool:
        if self._blocked("nudge", continuing="Nudge"):
            return False
        step = NUDGE_STEP_LARGE if large else NUDGE_STEP
        targets = self._movable(self._selection.items)
        if not targets or (dx == 0 and dy == 0):
            return False
        try:
            for obj in targets:
                self._graph.translate_global(obj, dx * step, dy * step)
        except DegenerateTransformError as exc:
            return self._reject("nudge", exc)
        self._render.request_redraw()
        self._schedule_commit("Nudge")
        return True

    def toggle_lock(self) -> bool:
        if self._blocked("lock"):
            return False
        targets = self._selection.items
        if not targets:
            return False
        locked = not all(obj.locked for obj in targets)
        for obj in targets:
            obj.locked = locked
        self._changed("Lock" if locked else "Unlock")
        return True

    def flip(self, axis: Axis | str) -> bool:
        """Mirror the selection in place across its own centre."""
        if self._blocked("flip"):
            return False
        axis = Axis(axis)
        targets = self._movable(self._selection.items)
        if not targets:
            return False
        for obj in targets:
            center = center_point(obj)
            if axis is Axis.HORIZONTAL:
                obj.geometry.scale_x = -obj.geometry.scale_x
            else:
                obj.geometry.scale_y = -obj.geometry.scale_y
            set_center_point(obj, center)
        self._changed(f"Flip {axis.value}")
        return True

    # --- properties ---

    def set_object_property(
        self,
        target: SceneObject | str,
        path: str,
        value: Any,
        *,
        continuous: bool = False,
    ) -> bool:
        """Set a dotted property *path* on *target*.

        Supported paths: ``geometry.*``, ``style.*``, ``shadow.*``,
        ``filter.<name>``, ``text.*``, ``image.src``, ``corner_radius``,
        ``path_data``, ``visible``, ``locked`` and ``name``.  With
        *continuous* the history commit is debounced (slider drags).
        """
        if self._blocked("set property", continuing=f"Set {path}" if continuous else None):
            return False
        obj = self._resolve(target)
        if obj is None:
            return False
        try:
            self._apply_property(obj, path, value)
        except (
            InvalidOperationError,
            DegenerateTransformError,
            DocumentFormatError,
            TypeError,
            ValueError,
        ) as exc:
            return self._reject(f"set {path}", exc)
        self._render.request_redraw()
        if continuous:
            self._schedule_commit(f"Set {path}")
        else:
            self._changed(f"Set {path}")
        return True

    def set_background(self, fill: str) -> bool:
        if self._blocked("background"):
            return False
        self._graph.set_background(fill)
        self._changed("Background")
        return True

    def resize_workspace(self, width: float, height: float) -> bool:
        if self._blocked("resize page"):
            return False
        try:
            self._graph.resize_workspace(width, height)
        except InvalidOperationError as exc:
            return self._reject("resize page", exc)
        self._changed("Resize page")
        return True

    # --- guides & grid ---

    def add_guide(self, axis: Axis | str, position: float) -> bool:
        self._guides.append(Guide(Axis(axis), float(position)))
        self.guides_changed.emit()
        self._render.request_redraw()
        return True

    def remove_guide(self, guide_id: str) -> bool:
        kept = [guide for guide in self._guides if guide.guide_id != guide_id]
        if len(kept) == len(self._guides):
            return False
        self._guides = kept
        self.guides_changed.emit()
        self._render.request_redraw()
        return True

    def toggle_grid(self) -> bool:
        """Switch grid snapping on or off; returns the new state."""
        self._grid_enabled = not self._grid_enabled
        self._render.request_redraw()
        return self._grid_enabled

    def set_snapping_enabled(self, enabled: bool) -> None:
        self._snapping_enabled = enabled
        self._settings.set_snapping_enabled(enabled)

    # --- clipboard ---

    def copy(self) -> bool:
        targets = self._selection.items
        if not targets:
            return False
        self._clipboard.copy_objects([self._detached(obj) for obj in targets])
        return True

    def paste(self) -> bool:
        if self._blocked("paste"):
            return False
        pasted = self._clipboard.paste_objects() or self._clipboard.paste_from_system()
        if not pasted:
            text = self._clipboard.paste_text_from_system()
            if not text:
                return False
            obj = make_text(text)
            set_center_point(obj, self._graph.page_rect.center())
            pasted = [obj]
        accepted = [obj for obj in pasted if not obj.is_workspace]
        if len(accepted) < len(pasted):
            log.warning("paste dropped %d workspace entries", len(pasted) - len(accepted))
        if not accepted:
            return False
        added: list[SceneObject] = []
        try:
            for obj in accepted:
                self._graph.add(obj)
                added.append(obj)
        except InvalidOperationError as exc:
            for obj in reversed(added):
                self._graph.remove(obj)
            return self._reject("paste", exc)
        self._selection.select_items(accepted)
        self._changed("Paste")
        return True

    def duplicate(self) -> bool:
        if self._blocked("duplicate"):
            return False
        targets = self._selection.items
        if not targets:
            return False
        self._clipboard.copy_objects([self._detached(obj) for obj in targets])
        return self.paste()

    # --- history ---

    def undo(self) -> bool:
        if self._blocked("undo"):
            return False
        try:
            return self._history.undo()
        except StateRestoreError as exc:
            return self._report_restore_failure("undo", exc)

    def redo(self) -> bool:
        if self._blocked("redo"):
            return False
        try:
            return self._history.redo()
        except StateRestoreError as exc:
            return self._report_restore_failure("redo", exc)

    def flush_pending_commit(self) -> None:
        """Commit a debounced continuous edit right away, if one is waiting."""
        if self._commit_timer.isActive():
            self._commit_timer.stop()
            self._on_commit_timeout()

    # --- documents ---

    def serialize(self) -> dict[str, Any]:
        """Current scene as a JSON document; crop frames and guides excluded."""
        return document_from_scene(self._graph)

    def load_document(self, document: dict[str, Any]) -> bool:
        """Replace the scene with *document* and start a fresh history."""
        if self._blocked("load"):
            return False
        try:
            workspace, objects = scene_from_document(document)
        except DocumentFormatError as exc:
            log.error("document load failed: %s", exc)
            self.error_reported.emit(f"Could not load document: {exc}")
            return False
        self._graph.replace_contents(workspace, objects)
        self._selection.prune()
        self._history.clear()
        self._history.commit("Load")
        self._render.request_redraw()
        return True

    def drawables(self) -> list[Drawable]:
        """Ordered primitives for the render collaborator (groups flattened)."""
        return collect_drawables(self._graph)

    def export_snapshot(self, region: QRectF | None = None, scale: float = 1.0) -> object:
        return self._render.export_snapshot(
            self.drawables(), region if region is not None else self._graph.page_rect, scale
        )

    # --- async content ---

    async def replace_image_content(self, target: SceneObject | str, provider: ImageProvider) -> bool:
        """Swap an image's source for what *provider* returns.

        The provider result is ``{"src", "natural_width", "natural_height"}``.
        The image keeps its displayed size and centre; the crop resets to the
        full new source.
        """
        obj = self._resolve(target)
        if obj is None or not obj.is_image:
            return self._reject("replace image", InvalidOperationError("target is not an image"))
        object_id = obj.object_id
        result = await provider(obj.clone(new_id=False))

        obj = self._graph.find(object_id)
        if obj is None or obj.image is None:
            return self._reject("replace image", InvalidOperationError("image was removed meanwhile"))
        if self._blocked("replace image"):
            return False
        try:
            src = str(result["src"])
            natural_w = float(result.get("natural_width", obj.image.natural_width))
            natural_h = float(result.get("natural_height", obj.image.natural_height))
        except (KeyError, TypeError, ValueError) as exc:
            return self._reject("replace image", InvalidOperationError(f"bad image payload: {exc}"))
        if natural_w <= 0 or natural_h <= 0:
            return self._reject("replace image", InvalidOperationError("image has no size"))

        g = obj.geometry
        center = center_point(obj)
        shown_w, shown_h = g.width * g.scale_x, g.height * g.scale_y
        obj.image.src = src
        obj.image.natural_width = natural_w
        obj.image.natural_height = natural_h
        obj.image.crop_x = 0.0
        obj.image.crop_y = 0.0
        g.width, g.height = natural_w, natural_h
        g.scale_x, g.scale_y = shown_w / natural_w, shown_h / natural_h
        set_center_point(obj, center)
        self._changed("Replace image")
        return True

    async def insert_content(self, provider: ContentProvider) -> bool:
        """Insert the serialized object *provider* returns, with fresh ids."""
        data = await provider()
        if self._blocked("insert"):
            return False
        try:
            obj = SceneObject.deserialize(data).clone(new_id=True)
        except DocumentFormatError as exc:
            return self._reject("insert", InvalidOperationError(str(exc)))
        return self.add_object(obj)

    # --- internal ---

    def _resolve(self, target: SceneObject | str) -> SceneObject | None:
        if isinstance(target, str):
            return self._graph.find(target)
        return target if self._graph.contains(target) else None

    def _movable(self, objects: list[SceneObject]) -> list[SceneObject]:
        return [obj for obj in objects if not obj.locked and not obj.is_workspace]

    def _detached(self, obj: SceneObject) -> SceneObject:
        """Copy of *obj* with its geometry expressed in page space."""
        duplicate = obj.clone(new_id=False)
        if self._graph.parent_of(obj) is not None:
            place_with_matrix(duplicate, self._graph.global_matrix(obj))
        return duplicate

    def _blocked(self, action: str, *, continuing: str | None = None) -> bool:
        """Refuse *action* while cropping, else settle any pending commit.

        A waiting debounced edit is committed before the caller mutates the
        scene, unless the caller extends that same edit (*continuing* names
        its label).
        """
        if self._crop.is_active:
            log.warning("%s refused while cropping", action)
            return True
        if continuing is None or continuing != self._pending_label:
            self.flush_pending_commit()
        return False

    def _reject(self, action: str, exc: Exception) -> bool:
        log.warning("%s ignored: %s", action, exc)
        return False

    def _report_restore_failure(self, action: str, exc: StateRestoreError) -> bool:
        log.error("%s failed: %s", action, exc)
        self.error_reported.emit(f"Could not {action}: {exc}")
        return False

    def _changed(self, label: str) -> None:
        self._render.request_redraw()
        self._history.commit(label)

    def _schedule_commit(self, label: str) -> None:
        self._pending_label = label
        self._commit_timer.start()

    def _on_commit_timeout(self) -> None:
        label = self._pending_label or "Edit"
        self._pending_label = ""
        self._history.commit(label)

    def _on_history_changed(self) -> None:
        self.history_changed.emit(
            self._history.can_undo, self._history.can_redo, self._history.undo_text
        )

    def _restore_document(self, document: dict[str, Any]) -> None:
        """Load a history state; the selection follows objects by id."""
        workspace, objects = scene_from_document(document)
        selected_ids = self._selection.ids
        self._graph.replace_contents(workspace, objects)
        restored = [obj for obj in map(self._graph.find, selected_ids) if obj is not None]
        self._selection.select_items(restored)
        self._render.request_redraw()

    def _apply_property(self, obj: SceneObject, path: str, value: Any) -> None:
        head, _, tail = path.partition(".")
        if path in ("visible", "locked"):
            setattr(obj, path, bool(value))
        elif path == "name":
            obj.name = str(value)
        elif head == "geometry" and tail in _GEOMETRY_FIELDS:
            self._set_geometry(obj, tail, value)
        elif head == "style" and tail in _STYLE_FIELDS:
            self._set_style(obj, tail, value)
        elif head == "shadow" and tail in _SHADOW_FIELDS:
            self._set_shadow(obj, tail, value)
        elif head == "filter" and tail:
            if obj.image is None:
                raise InvalidOperationError(f"filters apply to images, not {obj.type_name}")
            self._filters.apply_filter(obj, tail, value if tail == "tint" else float(value))
        elif head == "text" and tail in _TEXT_FIELDS and obj.text is not None:
            numeric = tail == "font_size"
            setattr(obj.text, tail, float(value) if numeric else str(value))
        elif path == "image.src" and obj.image is not None:
            obj.image.src = str(value)
        elif path == "corner_radius" and obj.kind is ObjectKind.RECT:
            obj.corner_radius = max(0.0, float(value))
        elif path == "path_data" and obj.kind is ObjectKind.PATH:
            obj.path_data = str(value)
        else:
            raise InvalidOperationError(f"unknown property {path!r} for {obj.type_name}")

    def _set_geometry(self, obj: SceneObject, name: str, value: Any) -> None:
        if obj.is_workspace:
            raise InvalidOperationError("use resize_workspace to change the page")
        if obj.locked:
            raise InvalidOperationError("object is locked")
        if name in ("origin_x", "origin_y"):
            # Validate through the same path documents use, then keep the centre fixed.
            candidate = Geometry.from_dict({**obj.geometry.to_dict(), name: value})
            center = center_point(obj)
            setattr(obj.geometry, name, getattr(candidate, name))
            set_center_point(obj, center)
            return
        number = float(value)
        if name in ("scale_x", "scale_y") and number == 0.0:
            raise InvalidOperationError("scale must be non-zero")
        if name in ("width", "height"):
            if number < 0:
                raise InvalidOperationError(f"{name} must not be negative")
            if obj.image is not None:
                offset = obj.image.crop_x if name == "width" else obj.image.crop_y
                natural = obj.image.natural_width if name == "width" else obj.image.natural_height
                limit = natural - offset
                if number > limit:
                    warnings.warn(
                        GeometryClampWarning(f"image {name} {number:.3f} clamped to {limit:.3f}"),
                        stacklevel=4,
                    )
                    number = limit
        setattr(obj.geometry, name, number)

    def _set_style(self, obj: SceneObject, name: str, value: Any) -> None:
        if name == "fill" and obj.image is not None:
            # Image fill is expressed as a tint.
            self._filters.apply_filter(obj, "tint", value)
            return
        if name == "fill" and obj.is_group:
            for child in obj.children:
                self._set_style(child, name, value)
            obj.style.fill = str(value)
            return
        if name in ("stroke_width", "opacity"):
            number = float(value)
            if name == "opacity":
                number = min(1.0, max(0.0, number))
            setattr(obj.style, name, number)
        else:
            setattr(obj.style, name, str(value))

    def _set_shadow(self, obj: SceneObject, name: str, value: Any) -> None:
        if name == "color" and not value:
            obj.style.shadow = None
            return
        if obj.style.shadow is None:
            obj.style.shadow = Shadow(**DEFAULT_SHADOW)
        setattr(obj.style.shadow, name, str(value) if name == "color" else float(value))
