"""ClipboardManager — internal and system clipboard operations."""

from __future__ import annotations

import json
import logging
from typing import Any

from PyQt6.QtCore import QMimeData, QObject, pyqtSignal
from PyQt6.QtWidgets import QApplication

from pagesmith.config.constants import PASTE_OFFSET
from pagesmith.core.errors import DocumentFormatError
from pagesmith.core.scene_object import SceneObject, translate

log = logging.getLogger(__name__)

INTERNAL_MIME = "application/x-pagesmith-objects"


class ClipboardManager(QObject):
    """Handles copy/paste of scene objects within Pagesmith and to the system clipboard.

    Copied objects are kept serialized, so later edits to the originals never
    leak into the clipboard.  Each paste hands out fresh objects offset from
    the previous paste by ``PASTE_OFFSET``.

    Signals
    -------
    clipboard_changed()
        Emitted when the internal clipboard content changes.
    """

    clipboard_changed = pyqtSignal()

    def __init__(self, parent: QObject | None = None, offset: float = PASTE_OFFSET) -> None:
        super().__init__(parent)
        self._internal_data: list[dict[str, Any]] = []
        self._offset = offset
        self._paste_count = 0

    @property
    def has_internal(self) -> bool:
        return len(self._internal_data) > 0

    def copy_objects(self, objects: list[SceneObject]) -> None:
        """Serialize *objects* to the internal clipboard and mirror them as JSON."""
        if not objects:
            return
        self._internal_data = [obj.serialize() for obj in objects]
        self._paste_count = 0

        if QApplication.instance() is not None:
            clipboard = QApplication.clipboard()
            if clipboard is not None:
                mime = QMimeData()
                payload = json.dumps(self._internal_data)
                mime.setData(INTERNAL_MIME, payload.encode())
                clipboard.setMimeData(mime)
        log.debug("copied %d objects", len(objects))
        self.clipboard_changed.emit()

    def paste_objects(self) -> list[SceneObject]:
        """Return fresh copies of the clipboard contents, each with new ids.

        Successive pastes step further away from the originals.
        """
        if not self._internal_data:
            return []
        self._paste_count += 1
        shift = self._offset * self._paste_count
        pasted: list[SceneObject] = []
        for data in self._internal_data:
            obj = SceneObject.deserialize(data).clone(new_id=True)
            translate(obj, shift, shift)
            pasted.append(obj)
        return pasted

    def paste_from_system(self) -> list[SceneObject]:
        """Load objects another Pagesmith instance put on the system clipboard."""
        if QApplication.instance() is None:
            return []
        clipboard = QApplication.clipboard()
        mime = clipboard.mimeData() if clipboard is not None else None
        if mime is None or not mime.hasFormat(INTERNAL_MIME):
            return []
        try:
            entries = json.loads(bytes(mime.data(INTERNAL_MIME)).decode())
            return [SceneObject.deserialize(data).clone(new_id=True) for data in entries]
        except (ValueError, DocumentFormatError) as exc:
            log.warning("ignoring malformed clipboard payload: %s", exc)
            return []

    def paste_text_from_system(self) -> str | None:
        """If the system clipboard holds plain text, return it."""
        if QApplication.instance() is None:
            return None
        clipboard = QApplication.clipboard()
        if clipboard is None:
            return None
        text = clipboard.text()
        return text or None

    def clear(self) -> None:
        self._internal_data.clear()
        self._paste_count = 0
        self.clipboard_changed.emit()
