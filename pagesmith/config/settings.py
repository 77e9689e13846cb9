"""Persistent editor settings backed by QSettings."""

from PyQt6.QtCore import QSettings

from pagesmith.config.constants import (
    APP_NAME,
    COMMIT_DEBOUNCE_MS,
    GRID_SIZE_DEFAULT,
    HISTORY_MAX_DEPTH,
    ORG_NAME,
    SNAP_THRESHOLD,
)


class EditorSettings:
    """Thin wrapper around QSettings for typed access to editor preferences."""

    def __init__(self, qsettings: QSettings | None = None) -> None:
        self._qs = qsettings if qsettings is not None else QSettings(ORG_NAME, APP_NAME)

    # --- snapping ---

    def snap_threshold(self) -> float:
        val = self._qs.value("snapping/threshold", SNAP_THRESHOLD)
        return float(val)

    def set_snap_threshold(self, threshold: float) -> None:
        self._qs.setValue("snapping/threshold", max(0.0, float(threshold)))

    def snapping_enabled(self) -> bool:
        val = self._qs.value("snapping/enabled", True)
        if isinstance(val, str):
            return val.lower() in ("true", "1")
        return bool(val)

    def set_snapping_enabled(self, enabled: bool) -> None:
        self._qs.setValue("snapping/enabled", enabled)

    # --- grid ---

    def grid_size(self) -> int:
        val = self._qs.value("grid/size", GRID_SIZE_DEFAULT)
        return int(val)

    def set_grid_size(self, size: int) -> None:
        self._qs.setValue("grid/size", max(1, int(size)))

    # --- history ---

    def history_depth(self) -> int:
        val = self._qs.value("history/maxDepth", HISTORY_MAX_DEPTH)
        return max(1, int(val))

    def set_history_depth(self, depth: int) -> None:
        self._qs.setValue("history/maxDepth", max(1, int(depth)))

    def commit_debounce_ms(self) -> int:
        val = self._qs.value("history/debounceMs", COMMIT_DEBOUNCE_MS)
        return max(0, int(val))

    def set_commit_debounce_ms(self, interval: int) -> None:
        self._qs.setValue("history/debounceMs", max(0, int(interval)))
