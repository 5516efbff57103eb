"""ExportSequence（生成検査・保存・資源上限・破棄）のテスト。"""

from __future__ import annotations

from pathlib import Path

import pytest

from immexport.core.layer import ExportPaintLayer
from immexport.core.sequence import ExportSequence
from immexport.core.types import (
    AudioType,
    BrushSectionType,
    ExportRequirements,
    PaintPoint,
    SequenceType,
    VisibilityType,
)
from immexport.export.imm import read_imm


def _commit_frame(layer: ExportPaintLayer, num_elements: int = 1, num_points: int = 3) -> None:
    drawing = layer.create_drawing()
    assert drawing is not None
    with drawing:
        assert drawing.init(num_elements)
        for e in range(num_elements):
            element = drawing.get_element(e)
            assert element is not None
            assert element.init(num_points, BrushSectionType.CIRCLE, VisibilityType.ALWAYS)
            for i in range(num_points):
                assert element.set_point(i, PaintPoint(position=(float(i), float(e), 0.0)))
            assert element.compute_bounds()
        assert drawing.compute_bounds()
        assert drawing.add_frame()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sequence_type": 0},
        {"frame_rate": 0},
        {"frame_rate": -30},
        {"frame_rate": True},
        {"background_color": (1.5, 0.0, 0.0)},
        {"background_color": (0.0, 0.0)},
        {"requirements": ExportRequirements(max_memory=-1)},
        {"caps": 256},
        {"caps": -1},
    ],
)
def test_create_rejects_invalid_settings(kwargs: dict[str, object]) -> None:
    args: dict[str, object] = {
        "sequence_type": SequenceType.STILL,
        "frame_rate": 30,
        "background_color": (0.0, 0.0, 0.0),
        "requirements": ExportRequirements(),
        "caps": 0,
    }
    args.update(kwargs)
    assert ExportSequence.create(**args) is None  # type: ignore[arg-type]


def test_create_records_settings() -> None:
    seq = ExportSequence.create(
        SequenceType.ANIMATED, 24, (0.1, 0.2, 0.3), ExportRequirements(max_triangles=10), caps=7
    )
    assert seq is not None
    with seq:
        assert seq.sequence_type is SequenceType.ANIMATED
        assert seq.frame_rate == 24
        assert seq.background_color == (0.1, 0.2, 0.3)
        assert seq.requirements == ExportRequirements(max_triangles=10)
        assert seq.caps == 7
    assert seq.frame_rate is None


def test_export_simple_sequence(seq: ExportSequence, tmp_path: Path) -> None:
    layer = seq.create_paint_layer("StrokeLayer")
    assert layer is not None
    _commit_frame(layer)

    out = tmp_path / "out.imm"
    assert seq.export_to_file(out, 96000, AudioType.OPUS)
    assert out.is_file()

    doc = read_imm(out)
    assert doc.sequence["frame_rate"] == 30
    assert doc.header["audio"] == {"bitrate": 96000, "type": "opus"}
    assert [layer["name"] for layer in doc.layers] == ["StrokeLayer"]
    assert doc.layers[0]["frames"][0]["index"] == 0


def test_export_uses_config_defaults_for_audio(seq: ExportSequence, tmp_path: Path) -> None:
    out = tmp_path / "defaults.imm"
    assert seq.export_to_file(out)
    doc = read_imm(out)
    assert doc.header["audio"] == {"bitrate": 96000, "type": "opus"}


def test_export_rejects_bad_arguments(seq: ExportSequence, tmp_path: Path) -> None:
    assert not seq.export_to_file("")
    assert not seq.export_to_file(tmp_path / "a.imm", 0, AudioType.OGG)
    assert not seq.export_to_file(tmp_path / "a.imm", 96000, 1)  # type: ignore[arg-type]
    assert not seq.export_to_file(".")
    assert not seq.export_to_file("a\x00b.imm")
    assert sorted(p.name for p in tmp_path.iterdir()) == []
    assert not (tmp_path / "a.imm").exists()


def test_export_excludes_uncommitted_drawings(seq: ExportSequence, tmp_path: Path) -> None:
    layer = seq.create_paint_layer("StrokeLayer")
    assert layer is not None
    _commit_frame(layer)
    pending = layer.create_drawing()
    assert pending is not None and pending.init(1)

    out = tmp_path / "partial.imm"
    assert seq.export_to_file(out)
    doc = read_imm(out)
    assert [f["index"] for f in doc.layers[0]["frames"]] == [0]
    assert doc.points.shape == (3, 16)


def test_export_fails_when_budget_is_exceeded(tmp_path: Path) -> None:
    seq = ExportSequence.create(
        SequenceType.STILL, 30, (0.0, 0.0, 0.0), ExportRequirements(max_render_calls=1)
    )
    assert seq is not None
    with seq:
        layer = seq.create_paint_layer("StrokeLayer")
        assert layer is not None
        _commit_frame(layer, num_elements=2)

        out = tmp_path / "over.imm"
        assert not seq.export_to_file(out)
        assert not out.exists()
        assert list(tmp_path.iterdir()) == []


def test_export_within_budget_succeeds(tmp_path: Path) -> None:
    reqs = ExportRequirements(max_memory=1 << 20, max_render_calls=2, max_triangles=64)
    seq = ExportSequence.create(SequenceType.STILL, 30, (0.0, 0.0, 0.0), reqs)
    assert seq is not None
    with seq:
        layer = seq.create_paint_layer("StrokeLayer")
        assert layer is not None
        _commit_frame(layer, num_elements=2, num_points=3)
        # CIRCLE は 16 * (3 - 1) = 32 三角形 / Element
        assert seq.stats().triangles == 64
        assert seq.export_to_file(tmp_path / "ok.imm")


def test_export_fails_when_memory_ceiling_is_tiny(tmp_path: Path) -> None:
    seq = ExportSequence.create(
        SequenceType.STILL, 30, (0.0, 0.0, 0.0), ExportRequirements(max_memory=16)
    )
    assert seq is not None
    with seq:
        assert not seq.export_to_file(tmp_path / "tiny.imm")


def test_export_after_destroy_fails(seq: ExportSequence, tmp_path: Path) -> None:
    seq.destroy()
    assert not seq.is_valid
    assert not seq.export_to_file(tmp_path / "late.imm")
    assert seq.create_paint_layer("late") is None
    assert seq.root_layers() == ()


def test_destroy_is_idempotent(seq: ExportSequence) -> None:
    assert seq.create_group_layer("G") is not None
    seq.destroy()
    seq.destroy()
    assert seq.sequence_type is None


def test_export_to_unwritable_path_fails(seq: ExportSequence, tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    assert not seq.export_to_file(blocker / "child.imm")


def test_stats_counts_committed_frames(seq: ExportSequence) -> None:
    a = seq.create_paint_layer("A")
    b = seq.create_paint_layer("B")
    assert a is not None and b is not None
    _commit_frame(a, num_elements=1)
    _commit_frame(a, num_elements=3)
    _commit_frame(b, num_elements=2)

    stats = seq.stats()
    assert stats.frames == 3
    assert stats.elements == 6
    assert stats.points == 18
    assert stats.render_calls == 3 + 2
    assert stats.sound_channels == 0


def test_export_reports_encode_failure(
    seq: ExportSequence, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_encode(header, points):
        raise UnicodeEncodeError("utf-8", "\ud800", 0, 1, "surrogates not allowed")

    monkeypatch.setattr("immexport.core.sequence.encode_imm", broken_encode)
    assert not seq.export_to_file(tmp_path / "a.imm")
    assert not (tmp_path / "a.imm").exists()
