"""SceneObject — tagged-variant data model for everything placed on the page."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from PyQt6.QtCore import QPointF, QRectF
from PyQt6.QtGui import QTransform

from pagesmith.config.constants import (
    DEFAULT_FILL_COLOR,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_OBJECT_SIZE,
    DEFAULT_PAGE_FILL,
    DEFAULT_STROKE_COLOR,
    DEFAULT_STROKE_WIDTH,
    DEFAULT_TEXT_COLOR,
)
from pagesmith.core.affine import TransformParts, compose_from_parts, transform_vector
from pagesmith.core.errors import DocumentFormatError


class ObjectKind(str, Enum):
    RECT = "rect"
    ELLIPSE = "ellipse"
    TEXT = "text"
    IMAGE = "image"
    PATH = "path"
    GROUP = "group"
    WORKSPACE = "workspace"


# Position of the origin point along each axis, as a fraction of the extent
ORIGIN_FRACTIONS: dict[str, float] = {
    "left": 0.0,
    "top": 0.0,
    "center": 0.5,
    "right": 1.0,
    "bottom": 1.0,
}


@dataclass
class Geometry:
    """Placement of an object inside its container.

    ``x``/``y`` locate the origin point (``origin_x``/``origin_y``) in the
    container's coordinate space.  ``width``/``height`` are unscaled local
    extents; angles are in degrees.
    """

    x: float = 0.0
    y: float = 0.0
    width: float = DEFAULT_OBJECT_SIZE
    height: float = DEFAULT_OBJECT_SIZE
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0
    skew_x: float = 0.0
    skew_y: float = 0.0
    origin_x: str = "left"
    origin_y: str = "top"

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Geometry:
        geo = cls()
        for f in fields(cls):
            if f.name in data:
                value = data[f.name]
                setattr(geo, f.name, value if f.name.startswith("origin") else float(value))
        if geo.origin_x not in ("left", "center", "right"):
            raise DocumentFormatError(f"invalid origin_x {geo.origin_x!r}")
        if geo.origin_y not in ("top", "center", "bottom"):
            raise DocumentFormatError(f"invalid origin_y {geo.origin_y!r}")
        return geo


@dataclass
class Shadow:
    color: str = "#000000"
    blur: float = 10.0
    offset_x: float = 5.0
    offset_y: float = 5.0


@dataclass
class Style:
    fill: str = DEFAULT_FILL_COLOR
    stroke: str = DEFAULT_STROKE_COLOR
    stroke_width: float = DEFAULT_STROKE_WIDTH
    opacity: float = 1.0
    shadow: Shadow | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fill": self.fill,
            "stroke": self.stroke,
            "stroke_width": self.stroke_width,
            "opacity": self.opacity,
            "shadow": None if self.shadow is None else vars(self.shadow).copy(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Style:
        shadow_data = data.get("shadow")
        return cls(
            fill=data.get("fill", DEFAULT_FILL_COLOR),
            stroke=data.get("stroke", DEFAULT_STROKE_COLOR),
            stroke_width=float(data.get("stroke_width", DEFAULT_STROKE_WIDTH)),
            opacity=float(data.get("opacity", 1.0)),
            shadow=Shadow(**shadow_data) if shadow_data else None,
        )


@dataclass
class TextPayload:
    text: str = ""
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = DEFAULT_FONT_SIZE
    font_weight: str = "normal"
    text_align: str = "left"


@dataclass
class ImagePayload:
    """Source image reference plus the crop offset into it.

    The visible crop rectangle is ``(crop_x, crop_y, geometry.width,
    geometry.height)`` in source pixels.
    """

    src: str = ""
    natural_width: float = 0.0
    natural_height: float = 0.0
    crop_x: float = 0.0
    crop_y: float = 0.0
    filters: list[dict[str, Any]] = field(default_factory=list)


@dataclass(eq=False)
class SceneObject:
    """A positioned visual primitive, group, or the workspace page.

    Payload fields are only meaningful for the matching ``kind``: ``text``
    for TEXT, ``image`` for IMAGE, ``path_data`` for PATH, ``corner_radius``
    for RECT, ``children`` for GROUP.
    """

    kind: ObjectKind
    geometry: Geometry = field(default_factory=Geometry)
    style: Style = field(default_factory=Style)
    object_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    visible: bool = True
    locked: bool = False
    corner_radius: float = 0.0
    text: TextPayload | None = None
    image: ImagePayload | None = None
    path_data: str = ""
    children: list[SceneObject] = field(default_factory=list)

    # --- kind tests ---

    @property
    def is_group(self) -> bool:
        return self.kind is ObjectKind.GROUP

    @property
    def is_image(self) -> bool:
        return self.kind is ObjectKind.IMAGE

    @property
    def is_workspace(self) -> bool:
        return self.kind is ObjectKind.WORKSPACE

    @property
    def type_name(self) -> str:
        return self.kind.value

    @property
    def crop_rect(self) -> QRectF:
        """Crop rectangle in source pixels (images only)."""
        if self.image is None:
            return QRectF()
        g = self.geometry
        return QRectF(self.image.crop_x, self.image.crop_y, g.width, g.height)

    # --- serialization ---

    def serialize(self) -> dict[str, Any]:
        """Return a JSON-serializable dict of object state."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "object_id": self.object_id,
            "name": self.name,
            "visible": self.visible,
            "locked": self.locked,
            "geometry": self.geometry.to_dict(),
            "style": self.style.to_dict(),
        }
        if self.kind is ObjectKind.RECT:
            data["corner_radius"] = self.corner_radius
        elif self.kind is ObjectKind.TEXT and self.text is not None:
            data["text"] = vars(self.text).copy()
        elif self.kind is ObjectKind.IMAGE and self.image is not None:
            image = vars(self.image).copy()
            image["filters"] = copy.deepcopy(self.image.filters)
            data["image"] = image
        elif self.kind is ObjectKind.PATH:
            data["path_data"] = self.path_data
        elif self.kind is ObjectKind.GROUP:
            data["children"] = [child.serialize() for child in self.children]
        return data

    @classmethod
    def deserialize(cls, data: dict[str, Any]) -> SceneObject:
        """Reconstruct an object (and, for groups, its subtree)."""
        if not isinstance(data, dict):
            raise DocumentFormatError(f"object entry must be a mapping, got {type(data).__name__}")
        try:
            kind = ObjectKind(data["kind"])
        except (KeyError, ValueError) as exc:
            raise DocumentFormatError(f"unknown object kind in {data.get('kind')!r}") from exc
        try:
            obj = cls(
                kind=kind,
                geometry=Geometry.from_dict(data.get("geometry", {})),
                style=Style.from_dict(data.get("style", {})),
                name=data.get("name", ""),
                visible=bool(data.get("visible", True)),
                locked=bool(data.get("locked", False)),
            )
            if "object_id" in data:
                obj.object_id = str(data["object_id"])
            if kind is ObjectKind.RECT:
                obj.corner_radius = float(data.get("corner_radius", 0.0))
            elif kind is ObjectKind.TEXT:
                obj.text = TextPayload(**data.get("text", {}))
            elif kind is ObjectKind.IMAGE:
                image = dict(data.get("image", {}))
                image["filters"] = copy.deepcopy(image.get("filters", []))
                obj.image = ImagePayload(**image)
            elif kind is ObjectKind.PATH:
                obj.path_data = str(data.get("path_data", ""))
            elif kind is ObjectKind.GROUP:
                obj.children = [cls.deserialize(child) for child in data.get("children", [])]
        except (TypeError, ValueError) as exc:
            raise DocumentFormatError(f"malformed {kind.value} object: {exc}") from exc
        return obj

    def clone(self, *, new_id: bool = True) -> SceneObject:
        """Return a deep copy.  If *new_id* is True the whole subtree gets fresh ids."""
        duplicate = SceneObject.deserialize(self.serialize())
        if new_id:
            _assign_new_ids(duplicate)
        return duplicate


class Axis(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass
class Guide:
    """User-placed snapping line.  Never rendered, exported or serialized.

    A horizontal guide sits at ``y == position``; a vertical one at
    ``x == position``.
    """

    axis: Axis
    position: float
    guide_id: str = field(default_factory=lambda: uuid.uuid4().hex)


def _assign_new_ids(obj: SceneObject) -> None:
    obj.object_id = uuid.uuid4().hex
    for child in obj.children:
        _assign_new_ids(child)


# --- factories ---


def make_workspace(
    width: float, height: float, fill: str = DEFAULT_PAGE_FILL
) -> SceneObject:
    return SceneObject(
        kind=ObjectKind.WORKSPACE,
        geometry=Geometry(x=0.0, y=0.0, width=width, height=height),
        style=Style(fill=fill, stroke="#cccccc", stroke_width=1.0),
        name="Workspace",
    )


def make_rect(
    x: float = 0.0,
    y: float = 0.0,
    width: float = DEFAULT_OBJECT_SIZE,
    height: float = DEFAULT_OBJECT_SIZE,
    *,
    fill: str = DEFAULT_FILL_COLOR,
    corner_radius: float = 0.0,
    angle: float = 0.0,
) -> SceneObject:
    obj = SceneObject(
        kind=ObjectKind.RECT,
        geometry=Geometry(x=x, y=y, width=width, height=height, angle=angle),
        style=Style(fill=fill),
        name="Rectangle",
    )
    obj.corner_radius = corner_radius
    return obj


def make_ellipse(
    x: float = 0.0,
    y: float = 0.0,
    width: float = DEFAULT_OBJECT_SIZE,
    height: float = DEFAULT_OBJECT_SIZE,
    *,
    fill: str = DEFAULT_FILL_COLOR,
) -> SceneObject:
    return SceneObject(
        kind=ObjectKind.ELLIPSE,
        geometry=Geometry(x=x, y=y, width=width, height=height),
        style=Style(fill=fill),
        name="Ellipse",
    )


def make_text(
    text: str,
    x: float = 0.0,
    y: float = 0.0,
    width: float = 200.0,
    *,
    font_family: str = DEFAULT_FONT_FAMILY,
    font_size: float = DEFAULT_FONT_SIZE,
    fill: str = DEFAULT_TEXT_COLOR,
) -> SceneObject:
    # Height follows a single line of text; real layout is the renderer's job.
    return SceneObject(
        kind=ObjectKind.TEXT,
        geometry=Geometry(x=x, y=y, width=width, height=font_size * 1.2),
        style=Style(fill=fill),
        name="Text",
        text=TextPayload(text=text, font_family=font_family, font_size=font_size),
    )


def make_image(
    src: str,
    natural_width: float,
    natural_height: float,
    x: float = 0.0,
    y: float = 0.0,
    *,
    scale: float = 1.0,
) -> SceneObject:
    return SceneObject(
        kind=ObjectKind.IMAGE,
        geometry=Geometry(
            x=x,
            y=y,
            width=natural_width,
            height=natural_height,
            scale_x=scale,
            scale_y=scale,
        ),
        style=Style(fill=""),
        name="Image",
        image=ImagePayload(src=src, natural_width=natural_width, natural_height=natural_height),
    )


def make_path(
    path_data: str,
    x: float = 0.0,
    y: float = 0.0,
    width: float = DEFAULT_OBJECT_SIZE,
    height: float = DEFAULT_OBJECT_SIZE,
    *,
    fill: str = DEFAULT_FILL_COLOR,
) -> SceneObject:
    return SceneObject(
        kind=ObjectKind.PATH,
        geometry=Geometry(x=x, y=y, width=width, height=height),
        style=Style(fill=fill),
        name="Path",
        path_data=path_data,
    )


# --- geometry helpers ---


def _origin_offset(geo: Geometry) -> QPointF:
    """Vector from the origin point to the centre, in unscaled local units."""
    fx = ORIGIN_FRACTIONS[geo.origin_x]
    fy = ORIGIN_FRACTIONS[geo.origin_y]
    return QPointF((0.5 - fx) * geo.width, (0.5 - fy) * geo.height)


def linear_matrix(obj: SceneObject) -> QTransform:
    """Rotation/scale/skew part of the object's placement, no translation."""
    g = obj.geometry
    return compose_from_parts(
        TransformParts(
            scale_x=g.scale_x,
            scale_y=g.scale_y,
            angle=g.angle,
            skew_x=g.skew_x,
            skew_y=g.skew_y,
        )
    )


def center_point(obj: SceneObject) -> QPointF:
    """Centre of the object's local box, in container space."""
    g = obj.geometry
    offset = transform_vector(_origin_offset(g), linear_matrix(obj))
    return QPointF(g.x + offset.x(), g.y + offset.y())


def set_center_point(obj: SceneObject, point: QPointF) -> None:
    """Move the object so its centre lands on *point* (container space)."""
    offset = transform_vector(_origin_offset(obj.geometry), linear_matrix(obj))
    obj.geometry.x = point.x() - offset.x()
    obj.geometry.y = point.y() - offset.y()


def local_matrix(obj: SceneObject) -> QTransform:
    """Map the object's centred local box into its container's space."""
    lin = linear_matrix(obj)
    center = center_point(obj)
    return QTransform(lin.m11(), lin.m12(), lin.m21(), lin.m22(), center.x(), center.y())


def local_corners(obj: SceneObject, matrix: QTransform | None = None) -> list[QPointF]:
    """Corners of the local box (TL, TR, BR, BL) mapped through *matrix*."""
    m = matrix if matrix is not None else local_matrix(obj)
    hw = obj.geometry.width / 2
    hh = obj.geometry.height / 2
    return [m.map(QPointF(px, py)) for px, py in ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh))]


def bounding_rect_for(obj: SceneObject, matrix: QTransform) -> QRectF:
    """Axis-aligned box of the object's corners mapped through *matrix*."""
    pts = local_corners(obj, matrix)
    xs = [p.x() for p in pts]
    ys = [p.y() for p in pts]
    return QRectF(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def local_bounding_rect(obj: SceneObject) -> QRectF:
    """Axis-aligned box of the object in its container's space."""
    return bounding_rect_for(obj, local_matrix(obj))


def translate(obj: SceneObject, dx: float, dy: float) -> None:
    obj.geometry.x += dx
    obj.geometry.y += dy


def united_rect(rects: list[QRectF]) -> QRectF:
    """Smallest rect containing every rect in *rects*, zero-size ones included."""
    if not rects:
        return QRectF()
    left = min(r.left() for r in rects)
    top = min(r.top() for r in rects)
    right = max(r.right() for r in rects)
    bottom = max(r.bottom() for r in rects)
    return QRectF(left, top, right - left, bottom - top)
