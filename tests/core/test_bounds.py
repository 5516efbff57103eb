"""Bounds（軸平行バウンディングボックス）のテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from immexport.core.bounds import Bounds, union_bounds


def test_from_points_without_radius() -> None:
    b = Bounds.from_points(np.array([[0.0, 1.0, 2.0], [-1.0, 3.0, 0.0]]))
    np.testing.assert_array_equal(b.minimum, [-1.0, 1.0, 0.0])
    np.testing.assert_array_equal(b.maximum, [0.0, 3.0, 2.0])
    np.testing.assert_array_equal(b.center, [-0.5, 2.0, 1.0])
    np.testing.assert_array_equal(b.size, [1.0, 2.0, 2.0])


def test_from_points_with_per_point_radius() -> None:
    b = Bounds.from_points(np.array([[0.0, 0.0, 0.0], [10.0, 0.0, 0.0]]), np.array([1.0, 2.0]))
    np.testing.assert_array_equal(b.minimum, [-1.0, -2.0, -2.0])
    np.testing.assert_array_equal(b.maximum, [12.0, 2.0, 2.0])


def test_arrays_are_read_only() -> None:
    b = Bounds(minimum=np.zeros(3), maximum=np.ones(3))
    with pytest.raises(ValueError):
        b.minimum[0] = 5.0


def test_invalid_bounds_raise() -> None:
    with pytest.raises(ValueError):
        Bounds(minimum=np.ones(3), maximum=np.zeros(3))
    with pytest.raises(ValueError):
        Bounds(minimum=np.zeros(2), maximum=np.ones(2))
    with pytest.raises(ValueError):
        Bounds.from_points(np.zeros((0, 3)))


def test_union_and_equality() -> None:
    a = Bounds(minimum=np.zeros(3), maximum=np.ones(3))
    b = Bounds(minimum=np.full(3, -1.0), maximum=np.full(3, 0.5))
    u = union_bounds(a, b)
    assert u == Bounds(minimum=np.full(3, -1.0), maximum=np.ones(3))
    assert hash(u) == hash(Bounds(minimum=np.full(3, -1.0), maximum=np.ones(3)))
    assert union_bounds() is None


def test_dict_form() -> None:
    a = Bounds(minimum=np.array([0.0, -1.0, 2.0]), maximum=np.array([1.0, 1.0, 2.0]))
    data = a.to_dict()
    assert data == {"min": [0.0, -1.0, 2.0], "max": [1.0, 1.0, 2.0]}
    assert Bounds.from_dict(data) == a
