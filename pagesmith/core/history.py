"""HistoryEngine — bounded undo/redo log of JSON patches over scene documents.

Index 0 always holds a full document snapshot (the baseline).  Every later
entry stores the RFC 6902 patch from the previous state and the patch back,
so the state at index *n* is the baseline with the first *n* forward patches
applied.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import jsonpatch
import jsonpointer
from PyQt6.QtCore import QObject, pyqtSignal

from pagesmith.config.constants import HISTORY_MAX_DEPTH
from pagesmith.core.errors import PagesmithError, StateRestoreError

log = logging.getLogger(__name__)

Document = dict[str, Any]

_PATCH_ERRORS = (
    jsonpatch.JsonPatchException,
    jsonpointer.JsonPointerException,
    KeyError,
    IndexError,
    TypeError,
)


@dataclass
class HistoryEntry:
    """One step of the log: a baseline snapshot or a forward/backward patch pair."""

    label: str
    state: Document | None = None
    forward: list[dict[str, Any]] = field(default_factory=list)
    backward: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_baseline(self) -> bool:
        return self.state is not None


class HistoryEngine(QObject):
    """Patch-based undo/redo over documents produced by a *capture* callable.

    *capture* returns the current scene document; *restore* loads a document
    back into the scene and must either succeed completely or raise without
    touching the scene.

    Signals
    -------
    can_undo_changed(bool)
    can_redo_changed(bool)
    undo_text_changed(str)
        Label of the entry the next undo would revert (or empty string).
    redo_text_changed(str)
        Label of the entry the next redo would re-apply (or empty string).
    history_changed()
        Emitted after any commit/undo/redo/clear.
    """

    can_undo_changed = pyqtSignal(bool)
    can_redo_changed = pyqtSignal(bool)
    undo_text_changed = pyqtSignal(str)
    redo_text_changed = pyqtSignal(str)
    history_changed = pyqtSignal()

    def __init__(
        self,
        capture: Callable[[], Document],
        restore: Callable[[Document], None],
        max_depth: int = HISTORY_MAX_DEPTH,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._capture = capture
        self._restore = restore
        self._max_depth = max(1, max_depth)
        self._entries: list[HistoryEntry] = []
        self._index: int = -1
        self._restoring = False

    # --- public API ---

    def commit(self, label: str = "Action") -> bool:
        """Record the current document.  Returns False when nothing changed.

        Ignored while a restore is running, so loading a state never records
        itself.
        """
        if self._restoring:
            return False
        new_state = self._capture()

        if self._index == -1:
            self._entries = [HistoryEntry(label=label or "Initial", state=copy.deepcopy(new_state))]
            self._index = 0
            log.debug("history baseline recorded: %s", label)
            self._emit_signals()
            return True

        current = self.full_state(self._index)
        forward = jsonpatch.make_patch(current, new_state).patch
        if not forward:
            return False
        backward = jsonpatch.make_patch(new_state, current).patch

        del self._entries[self._index + 1 :]
        self._entries.append(HistoryEntry(label=label or "Action", forward=forward, backward=backward))
        self._index += 1

        if len(self._entries) > self._max_depth:
            self._evict_oldest()

        log.debug("history commit %d: %s (%d ops)", self._index, label, len(forward))
        self._emit_signals()
        return True

    def undo(self) -> bool:
        """Step back one entry.  Returns False at the start of the log.

        Raises
        ------
        StateRestoreError
            If the target state cannot be rebuilt or loaded; the index and the
            scene are left unchanged.
        """
        if not self.can_undo:
            return False
        self._move_to(self._index - 1)
        return True

    def redo(self) -> bool:
        """Step forward one entry.  Returns False at the end of the log."""
        if not self.can_redo:
            return False
        self._move_to(self._index + 1)
        return True

    def clear(self) -> None:
        """Drop every entry; the next commit becomes the new baseline."""
        self._entries.clear()
        self._index = -1
        self._emit_signals()

    def full_state(self, index: int) -> Document:
        """Rebuild the document at *index* by replaying patches from the baseline."""
        if not 0 <= index < len(self._entries):
            raise IndexError(f"history index {index} out of range 0..{len(self._entries) - 1}")
        base = self._entries[0].state
        if base is None:
            raise StateRestoreError("history log has no baseline at index 0")
        state = copy.deepcopy(base)
        for position in range(1, index + 1):
            try:
                state = jsonpatch.apply_patch(state, self._entries[position].forward)
            except _PATCH_ERRORS as exc:
                raise StateRestoreError(
                    f"cannot replay history entry {position} ({self._entries[position].label}): {exc}"
                ) from exc
        return state

    # --- queries ---

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def count(self) -> int:
        return len(self._entries)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @max_depth.setter
    def max_depth(self, depth: int) -> None:
        self._max_depth = max(1, depth)
        while len(self._entries) > self._max_depth and self._index > 0:
            self._evict_oldest()
        self._emit_signals()

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    @property
    def labels(self) -> list[str]:
        return [entry.label for entry in self._entries]

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    @property
    def undo_text(self) -> str:
        if self.can_undo:
            return self._entries[self._index].label
        return ""

    @property
    def redo_text(self) -> str:
        if self.can_redo:
            return self._entries[self._index + 1].label
        return ""

    # --- internal ---

    def _move_to(self, target: int) -> None:
        state = self.full_state(target)
        self._restoring = True
        try:
            self._restore(state)
        except (PagesmithError, *_PATCH_ERRORS, ValueError) as exc:
            raise StateRestoreError(f"cannot load history entry {target}: {exc}") from exc
        finally:
            self._restoring = False
        log.debug("history moved %d -> %d", self._index, target)
        self._index = target
        self._emit_signals()

    def _evict_oldest(self) -> None:
        # The new index 0 has to become a full snapshot before its base is dropped.
        new_base = self.full_state(1)
        del self._entries[0]
        self._entries[0] = HistoryEntry(label=self._entries[0].label, state=new_base)
        self._index -= 1

    def _emit_signals(self) -> None:
        self.can_undo_changed.emit(self.can_undo)
        self.can_redo_changed.emit(self.can_redo)
        self.undo_text_changed.emit(self.undo_text)
        self.redo_text_changed.emit(self.redo_text)
        self.history_changed.emit()
