"""FilterManager — named image filter parameters stored on image objects.

Filters are recorded, not rendered: each image keeps an ordered list of
``{"type": name, "value": value}`` entries for the renderer to interpret.
"""

from __future__ import annotations

import logging
from typing import Any

from pagesmith.core.errors import InvalidOperationError
from pagesmith.core.scene_object import SceneObject

log = logging.getLogger(__name__)

FILTER_NAMES: tuple[str, ...] = (
    "brightness",
    "contrast",
    "saturation",
    "blur",
    "sharpen",
    "grayscale",
    "sepia",
    "hue",
    "noise",
    "pixelate",
    "tint",
)

_TRANSPARENT = {"", "transparent", "rgba(0,0,0,0)", "rgba(0, 0, 0, 0)"}


def sharpen_matrix(strength: float) -> list[float]:
    """3x3 sharpening kernel (row-major) for *strength* >= 0."""
    v = float(strength)
    return [0.0, -v, 0.0, -v, 1.0 + 4.0 * v, -v, 0.0, -v, 0.0]


def is_neutral(name: str, value: Any) -> bool:
    """True when *value* leaves the image unchanged, so the filter is dropped."""
    if name == "tint":
        return value is None or str(value).strip().lower() in _TRANSPARENT
    if isinstance(value, bool):
        return not value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    if name == "sharpen":
        return number <= 0
    return number == 0


class FilterManager:
    """Creates, updates and removes filter entries on image objects."""

    def apply_filter(self, image: SceneObject, name: str, value: Any) -> bool:
        """Set filter *name* to *value* on *image*.

        A neutral value removes the entry.  Returns True if the filter list
        changed.

        Raises
        ------
        InvalidOperationError
            If *image* is not an image or *name* is not a known filter.
        """
        if not image.is_image or image.image is None:
            raise InvalidOperationError(f"filters apply to images, not {image.type_name}")
        if name not in FILTER_NAMES:
            raise InvalidOperationError(f"unknown filter {name!r}")

        entries = image.image.filters
        existing = self.find_filter(image, name)
        if is_neutral(name, value):
            if existing is None:
                return False
            entries.remove(existing)
            log.debug("removed %s filter from %s", name, image.object_id)
            return True

        entry: dict[str, Any] = {"type": name, "value": value}
        if name == "sharpen":
            entry["matrix"] = sharpen_matrix(float(value))
        if existing == entry:
            return False
        if existing is None:
            entries.append(entry)
        else:
            existing.clear()
            existing.update(entry)
        log.debug("set %s filter on %s to %r", name, image.object_id, value)
        return True

    def remove_filter(self, image: SceneObject, name: str) -> bool:
        if image.image is None:
            return False
        existing = self.find_filter(image, name)
        if existing is None:
            return False
        image.image.filters.remove(existing)
        return True

    def clear_filters(self, image: SceneObject) -> bool:
        if image.image is None or not image.image.filters:
            return False
        image.image.filters.clear()
        return True

    @staticmethod
    def find_filter(image: SceneObject, name: str) -> dict[str, Any] | None:
        if image.image is None:
            return None
        for entry in image.image.filters:
            if entry.get("type") == name:
                return entry
        return None
