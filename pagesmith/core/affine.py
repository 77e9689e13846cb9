"""Affine matrix helpers built on QTransform.

Matrices follow the ``[a, b, c, d, e, f]`` convention::

    x' = a*x + c*y + e
    y' = b*x + d*y + f

which maps one-to-one onto ``QTransform(a, b, c, d, e, f)``.  Note that
``QTransform`` multiplication applies the left operand first, so
``compose(m1, m2)`` (apply *m2*, then *m1*) is ``m2 * m1``.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QTransform

from pagesmith.config.constants import GEOMETRY_EPSILON
from pagesmith.core.errors import DegenerateTransformError

_EPS = 1e-12


class TransformParts(NamedTuple):
    """Decomposed transform. Angles are in degrees."""

    translate_x: float = 0.0
    translate_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0
    skew_x: float = 0.0
    skew_y: float = 0.0


def identity() -> QTransform:
    return QTransform()


def from_list(values: list[float] | tuple[float, ...]) -> QTransform:
    """Build a transform from ``[a, b, c, d, e, f]``."""
    if len(values) != 6:
        raise ValueError(f"expected 6 matrix values, got {len(values)}")
    a, b, c, d, e, f = (float(v) for v in values)
    return QTransform(a, b, c, d, e, f)


def to_list(m: QTransform) -> list[float]:
    return [m.m11(), m.m12(), m.m21(), m.m22(), m.dx(), m.dy()]


def compose(m1: QTransform, m2: QTransform) -> QTransform:
    """Return the transform that applies *m2* first, then *m1*."""
    return m2 * m1


def determinant(m: QTransform) -> float:
    return m.m11() * m.m22() - m.m21() * m.m12()


def invert(m: QTransform) -> QTransform:
    """Return the inverse of *m*.

    Raises
    ------
    DegenerateTransformError
        If *m* is singular (zero scale on an axis).
    """
    if abs(determinant(m)) < _EPS:
        raise DegenerateTransformError(f"cannot invert singular matrix {to_list(m)}")
    inverted, ok = m.inverted()
    if not ok:
        raise DegenerateTransformError(f"cannot invert singular matrix {to_list(m)}")
    return inverted


def transform_point(p: QPointF, m: QTransform) -> QPointF:
    return m.map(p)


def transform_vector(v: QPointF, m: QTransform) -> QPointF:
    """Map *v* through the linear part of *m* (translation ignored)."""
    return QPointF(m.m11() * v.x() + m.m21() * v.y(), m.m12() * v.x() + m.m22() * v.y())


def compose_from_parts(parts: TransformParts) -> QTransform:
    """Build ``T · R · S · Kx · Ky`` from decomposed parts."""
    tx = math.tan(math.radians(parts.skew_x))
    ty = math.tan(math.radians(parts.skew_y))
    rad = math.radians(parts.angle)
    cos_a, sin_a = math.cos(rad), math.sin(rad)

    skew_y = QTransform(1.0, ty, 0.0, 1.0, 0.0, 0.0)
    skew_x = QTransform(1.0, 0.0, tx, 1.0, 0.0, 0.0)
    scale = QTransform(parts.scale_x, 0.0, 0.0, parts.scale_y, 0.0, 0.0)
    rotate = QTransform(cos_a, sin_a, -sin_a, cos_a, 0.0, 0.0)
    translate = QTransform(1.0, 0.0, 0.0, 1.0, parts.translate_x, parts.translate_y)
    return skew_y * skew_x * scale * rotate * translate


def decompose(m: QTransform) -> TransformParts:
    """QR-decompose *m* into translation, rotation, scale and a single x-skew.

    The result always has ``skew_y == 0``; any y-skew in the source matrix is
    expressed through the other components.
    """
    a, b, c, d = m.m11(), m.m12(), m.m21(), m.m22()
    denom = a * a + b * b
    if denom < _EPS:
        raise DegenerateTransformError(f"cannot decompose singular matrix {to_list(m)}")
    scale_x = math.sqrt(denom)
    scale_y = (a * d - c * b) / scale_x
    angle = math.degrees(math.atan2(b, a))
    skew_x = math.degrees(math.atan2(a * c + b * d, denom))
    return TransformParts(
        translate_x=m.dx(),
        translate_y=m.dy(),
        scale_x=scale_x,
        scale_y=scale_y,
        angle=angle,
        skew_x=skew_x,
        skew_y=0.0,
    )


def is_identity(m: QTransform, tolerance: float = GEOMETRY_EPSILON) -> bool:
    return all(abs(x - y) <= tolerance for x, y in zip(to_list(m), [1, 0, 0, 1, 0, 0]))
