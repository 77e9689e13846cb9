"""CropGeometryEngine — anchor-fixed crop handles for image objects.

A crop session works on a *frame*: a detached copy of the image whose
width/height/crop offset follow the handle drags.  Every handle runs the same
two steps per affected axis:

1. :func:`compute_axis_resize` turns the moved edge's local delta into a new
   crop offset and extent, clamped to the source image and a minimum extent.
2. :func:`compute_center_compensation` converts the effective delta into the
   centre shift that keeps the opposite edge where it was on the page.

Applying the session maps the frame's page-space corners back into the
image's local space and turns them into the image's new crop rectangle.
"""

from __future__ import annotations

import logging
import warnings
from enum import Enum, auto
from typing import NamedTuple

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QTransform

from pagesmith.config.constants import MIN_CROP_EXTENT
from pagesmith.core.affine import compose, invert, transform_point, transform_vector
from pagesmith.core.errors import GeometryClampWarning, InvalidOperationError
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import (
    Axis,
    SceneObject,
    center_point,
    linear_matrix,
    local_corners,
    local_matrix,
    set_center_point,
)

log = logging.getLogger(__name__)

# Differences smaller than this are rounding noise, not a clamp
_CLAMP_TOLERANCE = 1e-6


class CropState(Enum):
    IDLE = auto()
    CROPPING = auto()
    APPLIED = auto()
    CANCELLED = auto()


class HandlePosition(Enum):
    TOP_LEFT = auto()
    TOP_CENTER = auto()
    TOP_RIGHT = auto()
    MIDDLE_LEFT = auto()
    MIDDLE_RIGHT = auto()
    BOTTOM_LEFT = auto()
    BOTTOM_CENTER = auto()
    BOTTOM_RIGHT = auto()


class Side(Enum):
    """Which edge of an axis moves.  NEAR is left/top, FAR is right/bottom."""

    NEAR = auto()
    FAR = auto()


# handle -> (horizontal side, vertical side); None means the axis is untouched
_HANDLE_SIDES: dict[HandlePosition, tuple[Side | None, Side | None]] = {
    HandlePosition.TOP_LEFT: (Side.NEAR, Side.NEAR),
    HandlePosition.TOP_CENTER: (None, Side.NEAR),
    HandlePosition.TOP_RIGHT: (Side.FAR, Side.NEAR),
    HandlePosition.MIDDLE_LEFT: (Side.NEAR, None),
    HandlePosition.MIDDLE_RIGHT: (Side.FAR, None),
    HandlePosition.BOTTOM_LEFT: (Side.NEAR, Side.FAR),
    HandlePosition.BOTTOM_CENTER: (None, Side.FAR),
    HandlePosition.BOTTOM_RIGHT: (Side.FAR, Side.FAR),
}


class AxisResize(NamedTuple):
    """Outcome of resizing one axis of a crop rectangle."""

    offset: float
    extent: float
    effective_delta: float
    clamped: bool


def compute_axis_resize(
    side: Side,
    delta: float,
    offset: float,
    extent: float,
    natural: float,
    min_extent: float = MIN_CROP_EXTENT,
) -> AxisResize:
    """Move one edge of the crop span ``[offset, offset + extent]`` by *delta*.

    Moving the FAR edge changes only the extent.  Moving the NEAR edge shifts
    the offset and shrinks/grows the extent by the same amount, so
    ``offset + extent`` stays put.  The result never leaves ``[0, natural]``
    and never drops below *min_extent* (unless it already was).  When the
    requested delta had to be reduced a :class:`GeometryClampWarning` is
    issued and ``clamped`` is True.
    """
    if side is Side.FAR:
        low = min(min_extent - extent, 0.0)
        high = natural - offset - extent
        effective = min(max(delta, low), high)
        new_offset = offset
        new_extent = extent + effective
    else:
        low = -offset
        high = max(extent - min_extent, 0.0)
        effective = max(min(delta, high), low)
        new_offset = offset + effective
        new_extent = extent - effective

    clamped = abs(effective - delta) > _CLAMP_TOLERANCE
    if clamped:
        warnings.warn(
            GeometryClampWarning(
                f"crop edge delta {delta:.3f} clamped to {effective:.3f} "
                f"(span {offset:.3f}+{extent:.3f} of {natural:.3f})"
            ),
            stacklevel=2,
        )
    return AxisResize(new_offset, new_extent, effective, clamped)


def compute_center_compensation(obj: SceneObject, axis: Axis, effective_delta: float) -> QPointF:
    """Container-space shift of *obj*'s centre after one edge moved by *effective_delta*.

    Either edge moving by ``d`` along the local axis moves the centre by
    ``d / 2``; the shift is mapped through the object's scale, rotation and
    skew so the opposite edge stays fixed in the container.
    """
    half = effective_delta / 2
    local = QPointF(half, 0.0) if axis is Axis.HORIZONTAL else QPointF(0.0, half)
    return transform_vector(local, linear_matrix(obj))


class CropGeometryEngine:
    """Runs one crop session at a time against a :class:`SceneGraph`."""

    def __init__(self, graph: SceneGraph, min_extent: float = MIN_CROP_EXTENT) -> None:
        self._graph = graph
        self._min_extent = min_extent
        self._state = CropState.IDLE
        self._image: SceneObject | None = None
        self._frame: SceneObject | None = None
        self._container_matrix = QTransform()

    @property
    def state(self) -> CropState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is CropState.CROPPING

    @property
    def image(self) -> SceneObject | None:
        """The image being cropped, while a session is active."""
        return self._image

    @property
    def frame(self) -> SceneObject | None:
        """The transient crop frame, while a session is active."""
        return self._frame

    def frame_global_matrix(self) -> QTransform:
        if self._frame is None:
            raise InvalidOperationError("no crop session is active")
        return compose(self._container_matrix, local_matrix(self._frame))

    def frame_corners(self) -> list[QPointF]:
        """Page-space corners of the crop frame (TL, TR, BR, BL)."""
        if self._frame is None:
            raise InvalidOperationError("no crop session is active")
        return local_corners(self._frame, self.frame_global_matrix())

    # --- session ---

    def enter(self, image: SceneObject) -> SceneObject:
        """Start cropping *image*; returns the crop frame.

        Raises
        ------
        InvalidOperationError
            If a session is already running or *image* is not an image in the scene.
        """
        if self.is_active:
            raise InvalidOperationError("a crop session is already active")
        if not image.is_image or image.image is None:
            raise InvalidOperationError(f"cannot crop a {image.type_name} object")
        if not self._graph.contains(image):
            raise InvalidOperationError("cannot crop an object that is not in the scene")
        # Validate the transform up front so a degenerate image never enters the session.
        invert(self._graph.global_matrix(image))

        self._image = image
        self._frame = image.clone(new_id=False)
        self._container_matrix = self._graph.container_matrix(image)
        self._state = CropState.CROPPING
        log.info("entered crop mode on %s", image.object_id)
        return self._frame

    def drag_handle(self, handle: HandlePosition, global_point: QPointF) -> None:
        """Move *handle* of the crop frame to the page-space *global_point*."""
        if not self.is_active or self._frame is None:
            raise InvalidOperationError("no crop session is active")
        horizontal, vertical = _HANDLE_SIDES[handle]
        if horizontal is not None:
            self._resize_axis(Axis.HORIZONTAL, horizontal, global_point)
        if vertical is not None:
            self._resize_axis(Axis.VERTICAL, vertical, global_point)

    def apply(self) -> SceneObject:
        """Write the frame back onto the image as its new crop; returns the image."""
        if not self.is_active or self._image is None or self._frame is None:
            raise InvalidOperationError("no crop session is active")
        image = self._image
        payload = image.image
        assert payload is not None
        g = image.geometry

        to_local = invert(self._graph.global_matrix(image))
        points = [transform_point(p, to_local) for p in self.frame_corners()]
        xs = [p.x() for p in points]
        ys = [p.y() for p in points]

        # image-local -> source pixels
        src_left = min(xs) + g.width / 2 + payload.crop_x
        src_right = max(xs) + g.width / 2 + payload.crop_x
        src_top = min(ys) + g.height / 2 + payload.crop_y
        src_bottom = max(ys) + g.height / 2 + payload.crop_y
        src_left, src_right = _clamp_span(src_left, src_right, payload.natural_width)
        src_top, src_bottom = _clamp_span(src_top, src_bottom, payload.natural_height)

        # centre of the new crop region, still in the old image-local space
        local_center = QPointF(
            (src_left + src_right) / 2 - payload.crop_x - g.width / 2,
            (src_top + src_bottom) / 2 - payload.crop_y - g.height / 2,
        )
        new_center = transform_point(local_center, local_matrix(image))

        payload.crop_x = src_left
        payload.crop_y = src_top
        g.width = src_right - src_left
        g.height = src_bottom - src_top
        set_center_point(image, new_center)

        log.info(
            "applied crop to %s: %.1f,%.1f %.1fx%.1f",
            image.object_id,
            payload.crop_x,
            payload.crop_y,
            g.width,
            g.height,
        )
        self._finish(CropState.APPLIED)
        return image

    def cancel(self) -> None:
        """Discard the frame; the image is left untouched."""
        if not self.is_active:
            raise InvalidOperationError("no crop session is active")
        log.info("cancelled crop on %s", self._image.object_id if self._image else "?")
        self._finish(CropState.CANCELLED)

    # --- internal ---

    def _resize_axis(self, axis: Axis, side: Side, global_point: QPointF) -> None:
        frame = self._frame
        assert frame is not None and frame.image is not None
        payload = frame.image
        g = frame.geometry

        pointer = transform_point(global_point, invert(self.frame_global_matrix()))
        if axis is Axis.HORIZONTAL:
            coord, offset, extent, natural = pointer.x(), payload.crop_x, g.width, payload.natural_width
        else:
            coord, offset, extent, natural = pointer.y(), payload.crop_y, g.height, payload.natural_height
        edge = extent / 2 if side is Side.FAR else -extent / 2

        result = compute_axis_resize(side, coord - edge, offset, extent, natural, self._min_extent)
        if result.effective_delta == 0.0:
            return
        shift = compute_center_compensation(frame, axis, result.effective_delta)
        old_center = center_point(frame)

        if axis is Axis.HORIZONTAL:
            payload.crop_x = result.offset
            g.width = result.extent
        else:
            payload.crop_y = result.offset
            g.height = result.extent
        set_center_point(frame, QPointF(old_center.x() + shift.x(), old_center.y() + shift.y()))

    def _finish(self, state: CropState) -> None:
        self._state = state
        self._image = None
        self._frame = None
        self._container_matrix = QTransform()


def _clamp_span(start: float, end: float, natural: float) -> tuple[float, float]:
    clamped_start = min(max(start, 0.0), natural)
    clamped_end = min(max(end, clamped_start), natural)
    if (
        abs(clamped_start - start) > _CLAMP_TOLERANCE
        or abs(clamped_end - end) > _CLAMP_TOLERANCE
    ):
        warnings.warn(
            GeometryClampWarning(f"crop span {start:.3f}..{end:.3f} clamped to [0, {natural:.3f}]"),
            stacklevel=3,
        )
    return clamped_start, clamped_end
