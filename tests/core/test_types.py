"""値レコード（Transform / PaintPoint / ExportRequirements）のテスト。"""

from __future__ import annotations

import math

import pytest

from immexport.core.types import (
    POINT_FIELD_COUNT,
    ExportRequirements,
    PaintPoint,
    Transform,
    is_valid_color,
)


def test_identity_transform_is_valid() -> None:
    t = Transform.identity()
    assert t.is_valid()
    assert t.to_dict() == {
        "position": [0.0, 0.0, 0.0],
        "rotation": [0.0, 0.0, 0.0, 1.0],
        "scale": 1.0,
    }


def test_rotation_within_tolerance_is_accepted() -> None:
    half = math.sqrt(0.5)
    assert Transform(rotation=(0.0, 0.0, half, half)).is_valid()
    assert Transform(rotation=(0.0, 0.0, 0.0, 1.0005)).is_valid()


@pytest.mark.parametrize(
    "transform",
    [
        Transform(rotation=(0.0, 0.0, 0.0, 0.0)),
        Transform(rotation=(1.0, 1.0, 0.0, 0.0)),
        Transform(scale=0.0),
        Transform(scale=-1.0),
        Transform(position=(math.nan, 0.0, 0.0)),
        Transform(position=(0.0, 0.0)),  # type: ignore[arg-type]
        Transform(position=5),  # type: ignore[arg-type]
        Transform(rotation=None),  # type: ignore[arg-type]
    ],
)
def test_invalid_transform_is_rejected(transform: Transform) -> None:
    assert not transform.is_valid()


def test_paint_point_row_layout() -> None:
    p = PaintPoint(
        position=(1.0, 2.0, 3.0),
        normal=(4.0, 5.0, 6.0),
        direction=(7.0, 8.0, 9.0),
        color=(0.1, 0.2, 0.3),
        alpha=0.4,
        width=0.5,
        length=0.6,
        time=0.7,
    )
    row = p.as_row()
    assert len(row) == POINT_FIELD_COUNT
    assert row == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7)


@pytest.mark.parametrize(
    "point",
    [
        PaintPoint(position=(math.inf, 0.0, 0.0)),
        PaintPoint(position=(0.0, 0.0, 0.0), width=-0.1),
        PaintPoint(position=(0.0, 0.0, 0.0), alpha=math.nan),
        PaintPoint(position=(0.0, 0.0)),  # type: ignore[arg-type]
    ],
)
def test_invalid_paint_point_is_rejected(point: PaintPoint) -> None:
    assert not point.is_valid()


def test_requirements_validation() -> None:
    assert ExportRequirements().is_valid()
    assert ExportRequirements(max_memory=1024, max_triangles=10).is_valid()
    assert not ExportRequirements(max_render_calls=-1).is_valid()
    assert not ExportRequirements(max_memory=True).is_valid()  # type: ignore[arg-type]
    assert ExportRequirements(max_memory=5).to_dict() == {
        "max_memory": 5,
        "max_render_calls": 0,
        "max_triangles": 0,
        "max_sound_channels": 0,
    }


def test_color_range() -> None:
    assert is_valid_color((0.0, 0.5, 1.0))
    assert not is_valid_color((0.0, 0.5, 1.1))
    assert not is_valid_color((0.0, 0.5))
    assert not is_valid_color("abc")
