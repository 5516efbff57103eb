"""Group / Paint レイヤー階層のテスト。"""

from __future__ import annotations

from immexport.core.layer import ExportGroupLayer, ExportPaintLayer
from immexport.core.sequence import ExportSequence
from immexport.core.types import Transform


def test_root_layers_keep_insertion_order(seq: ExportSequence) -> None:
    a = seq.create_paint_layer("A")
    b = seq.create_group_layer("B")
    c = seq.create_paint_layer("C")
    assert a is not None and b is not None and c is not None

    assert [layer.name for layer in seq.root_layers()] == ["A", "B", "C"]
    assert isinstance(seq.root_layers()[1], ExportGroupLayer)
    assert a.parent is None


def test_default_names_when_name_is_none(seq: ExportSequence) -> None:
    group = seq.create_group_layer(None)
    paint = seq.create_paint_layer(None)
    assert group is not None and paint is not None
    assert group.name == "Group"
    assert paint.name == "Paint"


def test_layer_attributes_are_recorded(seq: ExportSequence) -> None:
    t = Transform(position=(1.0, 2.0, 3.0), rotation=(0.0, 0.0, 0.0, 1.0), scale=2.0)
    pivot = Transform(position=(0.5, 0.0, 0.0))
    layer = seq.create_paint_layer(
        "Layer",
        False,
        0.25,
        t,
        pivot=pivot,
        is_timeline=True,
        duration_ticks=120,
        max_repeat_count=3,
    )
    assert layer is not None
    assert layer.visible is False
    assert layer.opacity == 0.25
    assert layer.transform == t
    assert layer.pivot == pivot
    assert layer.is_timeline is True
    assert layer.duration_ticks == 120
    assert layer.max_repeat_count == 3


def test_transform_defaults_to_identity(seq: ExportSequence) -> None:
    layer = seq.create_group_layer("G")
    assert layer is not None
    assert layer.transform == Transform.identity()
    assert layer.pivot == Transform.identity()


def test_invalid_attributes_are_rejected(seq: ExportSequence) -> None:
    assert seq.create_paint_layer("X", True, 1.5) is None
    assert seq.create_paint_layer("X", True, -0.1) is None
    assert seq.create_paint_layer("X", True, float("nan")) is None
    assert seq.create_paint_layer("X", True, 1.0, Transform(scale=0.0)) is None
    assert seq.create_paint_layer("X", True, 1.0, Transform(rotation=(0.0, 0.0, 0.0, 2.0))) is None
    assert seq.create_group_layer("X", pivot=Transform(position=(float("inf"), 0.0, 0.0))) is None
    assert seq.create_group_layer("X", duration_ticks=-1) is None
    assert seq.create_group_layer(123) is None  # type: ignore[arg-type]
    assert seq.create_paint_layer("bad\ud800") is None
    assert seq.create_paint_layer("X", transform=Transform(position=5)) is None  # type: ignore[arg-type]
    assert seq.root_layers() == ()


def test_nested_groups_report_ancestors(seq: ExportSequence) -> None:
    root_group = seq.create_group_layer("RootGroup")
    assert root_group is not None
    child_group = root_group.create_group_layer("ChildGroup")
    assert child_group is not None
    paint = child_group.create_paint_layer("StrokeLayer")
    assert paint is not None

    ancestors = paint.ancestors()
    assert [a.name for a in ancestors] == ["ChildGroup", "RootGroup"]
    assert ancestors[-1].parent is None
    assert paint.parent == child_group
    assert child_group.parent == root_group

    assert [layer.name for layer in seq.root_layers()] == ["RootGroup"]
    assert [layer.name for layer in root_group.children()] == ["ChildGroup"]
    assert [layer.name for layer in seq.iter_layers()] == ["RootGroup", "ChildGroup", "StrokeLayer"]
    assert seq.paint_layers() == (paint,)


def test_children_keep_insertion_order(seq: ExportSequence) -> None:
    group = seq.create_group_layer("G")
    assert group is not None
    for name in ("one", "two", "three"):
        assert group.create_paint_layer(name) is not None
    assert [c.name for c in group.children()] == ["one", "two", "three"]
    assert all(isinstance(c, ExportPaintLayer) for c in group.children())


def test_parent_from_another_sequence_is_rejected(seq: ExportSequence) -> None:
    other = ExportSequence.create(seq.sequence_type, 24, (1.0, 1.0, 1.0))  # type: ignore[arg-type]
    assert other is not None
    with other:
        foreign = other.create_group_layer("Foreign")
        assert foreign is not None
        assert seq.create_paint_layer("X", parent=foreign) is None


def test_layers_invalid_after_destroy(seq: ExportSequence) -> None:
    group = seq.create_group_layer("G")
    assert group is not None
    paint = group.create_paint_layer("P")
    assert paint is not None

    seq.destroy()

    assert not group.is_valid
    assert not paint.is_valid
    assert paint.name is None
    assert paint.create_drawing() is None
    assert group.create_paint_layer("late") is None
    assert group.children() == ()
    assert paint.frames() == ()
