"""Tests for affine matrix helpers."""

import math

import pytest
from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QTransform

from pagesmith.config.constants import GEOMETRY_EPSILON
from pagesmith.core.affine import (
    TransformParts,
    compose,
    compose_from_parts,
    decompose,
    from_list,
    identity,
    invert,
    is_identity,
    to_list,
    transform_point,
    transform_vector,
)
from pagesmith.core.errors import DegenerateTransformError


def _close(a: float, b: float, tol: float = 1e-9) -> bool:
    return abs(a - b) < tol


def test_list_round_trip() -> None:
    values = [1.5, 0.25, -0.5, 2.0, 10.0, -20.0]
    assert to_list(from_list(values)) == values


def test_from_list_rejects_wrong_length() -> None:
    with pytest.raises(ValueError):
        from_list([1, 0, 0, 1])


def test_point_mapping_follows_abcdef_convention() -> None:
    m = from_list([2, 0, 0, 3, 10, 20])
    p = transform_point(QPointF(1, 1), m)
    assert (p.x(), p.y()) == (12.0, 23.0)


def test_compose_applies_second_matrix_first() -> None:
    scale = from_list([2, 0, 0, 2, 0, 0])
    shift = from_list([1, 0, 0, 1, 5, 0])
    p = transform_point(QPointF(1, 0), compose(shift, scale))
    assert _close(p.x(), 7.0)
    p = transform_point(QPointF(1, 0), compose(scale, shift))
    assert _close(p.x(), 12.0)


def test_transform_vector_ignores_translation() -> None:
    m = from_list([0, 1, -1, 0, 100, 100])
    v = transform_vector(QPointF(1, 0), m)
    assert _close(v.x(), 0.0)
    assert _close(v.y(), 1.0)


@pytest.mark.parametrize(
    "parts",
    [
        TransformParts(10, 20, 1, 1, 0, 0, 0),
        TransformParts(-5, 3, 2, 0.5, 30, 0, 0),
        TransformParts(0, 0, 1.5, 1.5, -135, 20, 0),
        TransformParts(100, -50, 0.3, 4, 89, -10, 0),
    ],
)
def test_compose_with_inverse_is_identity(parts: TransformParts) -> None:
    m = compose_from_parts(parts)
    assert is_identity(compose(m, invert(m)), 1e-9)
    assert is_identity(compose(invert(m), m), 1e-9)


@pytest.mark.parametrize(
    "parts",
    [
        TransformParts(10, 20, 1, 1, 0, 0, 0),
        TransformParts(-5, 3, 2, 0.5, 30, 0, 0),
        TransformParts(0, 0, 1.5, 2.5, -135, 20, 0),
        TransformParts(7, 8, 3, -2, 60, -15, 0),
    ],
)
def test_decompose_recovers_parts(parts: TransformParts) -> None:
    result = decompose(compose_from_parts(parts))
    for expected, actual in zip(parts, result):
        assert _close(expected, actual, 1e-6)


def test_decompose_folds_skew_y_into_equivalent_matrix() -> None:
    m = compose_from_parts(TransformParts(3, 4, 1.2, 0.8, 15, 5, 12))
    parts = decompose(m)
    assert parts.skew_y == 0.0
    rebuilt = compose_from_parts(parts)
    for a, b in zip(to_list(m), to_list(rebuilt)):
        assert _close(a, b, 1e-9)


def test_rotation_maps_axes() -> None:
    m = compose_from_parts(TransformParts(angle=90))
    p = transform_point(QPointF(1, 0), m)
    assert _close(p.x(), 0.0)
    assert _close(p.y(), 1.0)


def test_skew_x_shears_horizontally() -> None:
    m = compose_from_parts(TransformParts(skew_x=45))
    p = transform_point(QPointF(0, 1), m)
    assert _close(p.x(), math.tan(math.radians(45)))
    assert _close(p.y(), 1.0)


def test_invert_singular_raises() -> None:
    with pytest.raises(DegenerateTransformError):
        invert(from_list([0, 0, 0, 1, 0, 0]))


def test_decompose_singular_raises() -> None:
    with pytest.raises(DegenerateTransformError):
        decompose(QTransform(0, 0, 0, 0, 5, 5))


def test_identity_helpers() -> None:
    assert is_identity(identity())
    assert not is_identity(from_list([1, 0, 0, 1, 0.1, 0]))


def test_identity_default_tolerance_is_geometry_epsilon() -> None:
    assert is_identity(from_list([1, 0, 0, 1, GEOMETRY_EPSILON / 2, 0]))
    assert not is_identity(from_list([1, 0, 0, 1, GEOMETRY_EPSILON * 10, 0]))
