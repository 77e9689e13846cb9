"""AlignmentEngine — static alignment, distribution and drag-time snapping."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from PyQt6.QtCore import QRectF

from pagesmith.config.constants import GRID_SIZE_DEFAULT, GRID_SNAP_THRESHOLD, SNAP_THRESHOLD
from pagesmith.core.errors import InvalidOperationError
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import Axis, Guide, SceneObject, united_rect

log = logging.getLogger(__name__)


class AlignEdge(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


@dataclass
class SnapResult:
    """Page coordinates of the transient guide lines produced by a snap.

    ``vertical_line`` is an x coordinate, ``horizontal_line`` a y coordinate;
    None means that axis did not snap.
    """

    vertical_line: float | None = None
    horizontal_line: float | None = None

    @property
    def matched(self) -> bool:
        return self.vertical_line is not None or self.horizontal_line is not None

    def lines(self) -> list[tuple[str, float]]:
        result: list[tuple[str, float]] = []
        if self.vertical_line is not None:
            result.append((Axis.VERTICAL.value, self.vertical_line))
        if self.horizontal_line is not None:
            result.append((Axis.HORIZONTAL.value, self.horizontal_line))
        return result


class _Span:
    """Extent of a page-space rect along one axis."""

    __slots__ = ("start", "end")

    def __init__(self, start: float, end: float) -> None:
        self.start = start
        self.end = end

    @property
    def center(self) -> float:
        return (self.start + self.end) / 2

    @property
    def size(self) -> float:
        return self.end - self.start


def _span(rect: QRectF, axis: Axis) -> _Span:
    # Axis.VERTICAL lines constrain x; Axis.HORIZONTAL lines constrain y.
    if axis is Axis.VERTICAL:
        return _Span(rect.left(), rect.right())
    return _Span(rect.top(), rect.bottom())


class AlignmentEngine:
    """Page-space alignment operations over objects of a :class:`SceneGraph`.

    All arithmetic happens on page-space bounding boxes; objects are moved by
    translating them by the resulting delta, so rotated, scaled and grouped
    objects align by their visible extent.
    """

    def __init__(self, graph: SceneGraph, snap_threshold: float = SNAP_THRESHOLD) -> None:
        self._graph = graph
        self._snap_threshold = float(snap_threshold)

    @property
    def snap_threshold(self) -> float:
        return self._snap_threshold

    @snap_threshold.setter
    def snap_threshold(self, value: float) -> None:
        self._snap_threshold = max(0.0, float(value))

    # --- static alignment ---

    def align(
        self,
        objects: list[SceneObject],
        edge: AlignEdge | str,
        container_rect: QRectF | None = None,
    ) -> bool:
        """Align *objects* to *edge* of *container_rect*.

        Without an explicit rect a single object aligns to the page and a
        multi-selection to its own bounding box.  Returns True if anything
        moved.
        """
        edge = AlignEdge(edge)
        targets = [obj for obj in objects if not obj.is_workspace]
        if not targets:
            raise InvalidOperationError("nothing to align")
        if container_rect is None:
            if len(targets) == 1:
                container_rect = self._graph.page_rect
            else:
                container_rect = united_rect([self._graph.bounding_rect(obj) for obj in targets])

        moved = False
        for obj in targets:
            rect = self._graph.bounding_rect(obj)
            dx = dy = 0.0
            if edge is AlignEdge.LEFT:
                dx = container_rect.left() - rect.left()
            elif edge is AlignEdge.CENTER:
                dx = container_rect.center().x() - rect.center().x()
            elif edge is AlignEdge.RIGHT:
                dx = container_rect.right() - rect.right()
            elif edge is AlignEdge.TOP:
                dy = container_rect.top() - rect.top()
            elif edge is AlignEdge.MIDDLE:
                dy = container_rect.center().y() - rect.center().y()
            elif edge is AlignEdge.BOTTOM:
                dy = container_rect.bottom() - rect.bottom()
            if dx != 0.0 or dy != 0.0:
                self._graph.translate_global(obj, dx, dy)
                moved = True
        log.debug("aligned %d objects %s (moved=%s)", len(targets), edge.value, moved)
        return moved

    def distribute(
        self,
        objects: list[SceneObject],
        axis: Axis | str,
        container_rect: QRectF | None = None,
    ) -> bool:
        """Space *objects* with equal gaps between consecutive bounding boxes.

        *axis* is ``horizontal`` (left to right) or ``vertical`` (top to
        bottom).  The container defaults to the objects' combined box, so the
        outermost members stay put.
        """
        axis = Axis(axis)
        targets = [obj for obj in objects if not obj.is_workspace]
        if len(targets) < 3:
            raise InvalidOperationError("distribution needs at least three objects")

        # horizontal distribution works on x spans, i.e. the span a vertical line measures
        span_axis = Axis.VERTICAL if axis is Axis.HORIZONTAL else Axis.HORIZONTAL
        entries = [(obj, _span(self._graph.bounding_rect(obj), span_axis)) for obj in targets]
        entries.sort(key=lambda entry: entry[1].start)
        if container_rect is None:
            container_rect = united_rect([self._graph.bounding_rect(obj) for obj in targets])
        container = _span(container_rect, span_axis)

        total = sum(span.size for _, span in entries)
        gap = (container.size - total) / (len(entries) - 1)

        moved = False
        current = container.start
        for obj, span in entries:
            delta = current - span.start
            if delta != 0.0:
                if axis is Axis.HORIZONTAL:
                    self._graph.translate_global(obj, delta, 0.0)
                else:
                    self._graph.translate_global(obj, 0.0, delta)
                moved = True
            current += span.size + gap
        log.debug("distributed %d objects %s with gap %.3f", len(entries), axis.value, gap)
        return moved

    # --- live snapping ---

    def on_object_moving(
        self,
        target: SceneObject,
        candidates: list[SceneObject] | None = None,
        guides: list[Guide] | None = None,
        page_rect: QRectF | None = None,
    ) -> SnapResult:
        """Snap *target* during a drag and return the guide lines to show.

        Per axis, the first match wins in this order: the target's centre
        against the page centre, then the first sibling whose centre or
        edges line up, then the user guides.  Guides are consulted only when
        no sibling matches, so an object within reach of both lines up with
        the object.  A match moves the target exactly onto the matched
        coordinate; no match leaves it alone.
        """
        if candidates is None:
            candidates = self._graph.objects_in_z_order(self._graph.parent_of(target))
        siblings = [
            obj
            for obj in candidates
            if obj is not target and not obj.is_workspace and obj.visible
        ]
        if page_rect is None:
            page_rect = self._graph.page_rect
        guides = guides or []

        result = SnapResult()
        for line_axis in (Axis.VERTICAL, Axis.HORIZONTAL):
            rect = self._graph.bounding_rect(target)
            span = _span(rect, line_axis)
            match = self._match_page(span, _span(page_rect, line_axis))
            if match is None:
                match = self._match_siblings(span, siblings, line_axis)
            if match is None:
                match = self._match_guides(span, guides, line_axis)
            if match is None:
                continue
            delta, line = match
            if line_axis is Axis.VERTICAL:
                self._graph.translate_global(target, delta, 0.0)
                result.vertical_line = line
            else:
                self._graph.translate_global(target, 0.0, delta)
                result.horizontal_line = line
        return result

    def snap_to_grid(
        self,
        target: SceneObject,
        grid_size: float = GRID_SIZE_DEFAULT,
        threshold: float = GRID_SNAP_THRESHOLD,
    ) -> bool:
        """Pull *target*'s top-left corner onto the nearest grid point, per axis."""
        if grid_size <= 0:
            return False
        rect = self._graph.bounding_rect(target)
        nearest_x = round(rect.left() / grid_size) * grid_size
        nearest_y = round(rect.top() / grid_size) * grid_size
        dx = nearest_x - rect.left() if abs(rect.left() - nearest_x) < threshold else 0.0
        dy = nearest_y - rect.top() if abs(rect.top() - nearest_y) < threshold else 0.0
        if dx == 0.0 and dy == 0.0:
            return False
        self._graph.translate_global(target, dx, dy)
        return True

    # --- matching ---

    def _within(self, a: float, b: float) -> bool:
        return abs(a - b) < self._snap_threshold

    def _match_page(self, span: _Span, page: _Span) -> tuple[float, float] | None:
        if self._within(span.center, page.center):
            return page.center - span.center, page.center
        return None

    def _match_siblings(
        self, span: _Span, siblings: list[SceneObject], line_axis: Axis
    ) -> tuple[float, float] | None:
        for obj in siblings:
            other = _span(self._graph.bounding_rect(obj), line_axis)
            if self._within(span.center, other.center):
                return other.center - span.center, other.center
            if self._within(span.start, other.start):
                return other.start - span.start, other.start
            if self._within(span.end, other.end):
                return other.end - span.end, other.end
            if self._within(span.start, other.end):
                return other.end - span.start, other.end
            if self._within(span.end, other.start):
                return other.start - span.end, other.start
        return None

    def _match_guides(
        self, span: _Span, guides: list[Guide], line_axis: Axis
    ) -> tuple[float, float] | None:
        for guide in guides:
            if Axis(guide.axis) is not line_axis:
                continue
            pos = guide.position
            if self._within(span.start, pos):
                return pos - span.start, pos
            if self._within(span.end, pos):
                return pos - span.end, pos
            if self._within(span.center, pos):
                return pos - span.center, pos
        return None
