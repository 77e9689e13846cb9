"""Render boundary — what the scene hands to whatever draws it."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QTransform

from pagesmith.core.affine import compose
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import SceneObject, bounding_rect_for, local_matrix


@dataclass
class Drawable:
    """One primitive to draw: the object, its page transform and its clip.

    ``transform`` maps the object's centred local box to page space.
    ``clip`` is the source crop rectangle for images, None otherwise.
    """

    object: SceneObject
    transform: QTransform
    clip: QRectF | None = None
    opacity: float = 1.0

    @property
    def bounds(self) -> QRectF:
        return bounding_rect_for(self.object, self.transform)


def collect_drawables(graph: SceneGraph) -> list[Drawable]:
    """Flatten the scene into bottom-to-top drawables.

    Groups contribute their visible children, with the group's transform and
    opacity folded in.  Hidden objects (and hidden groups' subtrees) are
    skipped.
    """
    result: list[Drawable] = []

    def visit(objects: list[SceneObject], parent: QTransform, opacity: float) -> None:
        for obj in objects:
            if not obj.visible:
                continue
            matrix = compose(parent, local_matrix(obj))
            alpha = opacity * obj.style.opacity
            if obj.is_group:
                visit(obj.children, matrix, alpha)
                continue
            clip = obj.crop_rect if obj.is_image else None
            result.append(Drawable(obj, matrix, clip, alpha))

    visit(graph.objects_in_z_order(), QTransform(), 1.0)
    return result


class RenderTarget(ABC):
    """Collaborator that turns drawables into pixels (or any other output)."""

    @abstractmethod
    def request_redraw(self) -> None:
        """Schedule a repaint of the current scene."""

    @abstractmethod
    def export_snapshot(
        self, drawables: list[Drawable], region: QRectF, scale: float = 1.0
    ) -> object:
        """Produce an output buffer for *region* of the page at *scale*."""


class NullRenderTarget(RenderTarget):
    """Headless target: counts redraw requests and exports drawable lists."""

    def __init__(self) -> None:
        self.redraw_count = 0

    def request_redraw(self) -> None:
        self.redraw_count += 1

    def export_snapshot(
        self, drawables: list[Drawable], region: QRectF, scale: float = 1.0
    ) -> list[Drawable]:
        if scale <= 0:
            raise ValueError(f"export scale must be positive, got {scale}")
        return [d for d in drawables if d.bounds.intersects(region) or region.contains(d.bounds)]
