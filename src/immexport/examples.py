"""
どこで: `src/immexport/examples.py`。
何を: 単一ストロークと入れ子グループの 2 つの export 例を提供する。
なぜ: ビルダーの典型的な呼び出し順（生成→初期化→点設定→bounds→確定→保存→破棄）を 1 箇所に示すため。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from immexport.core.layer import ExportPaintLayer
from immexport.core.runtime_config import runtime_config
from immexport.core.sequence import ExportSequence
from immexport.core.types import (
    BrushSectionType,
    ExportRequirements,
    PaintPoint,
    SequenceType,
    Transform,
    VisibilityType,
)

_logger = logging.getLogger(__name__)

STROKE_POINTS = 4
STROKE_LENGTH = 0.5
STROKE_WIDTH = 0.02


def new_example_sequence(frame_rate: int | None = None) -> ExportSequence | None:
    """Still・黒背景・上限なしのシーケンスを生成する。frame_rate 省略時は config の値。"""

    rate = runtime_config().frame_rate if frame_rate is None else frame_rate
    return ExportSequence.create(
        SequenceType.STILL,
        rate,
        (0.0, 0.0, 0.0),
        ExportRequirements(),
    )


def stroke_point(i: int, n: int = STROKE_POINTS) -> PaintPoint:
    t = i / float(n - 1)
    return PaintPoint(
        position=(t * STROKE_LENGTH, 0.0, 0.0),
        normal=(0.0, 1.0, 0.0),
        direction=(0.0, 0.0, 1.0),
        color=(1.0, 1.0, 1.0),
        alpha=1.0,
        width=STROKE_WIDTH,
        length=t,
        time=t,
    )


def write_example_stroke(paint_layer: ExportPaintLayer) -> int | None:
    """paint_layer に 4 点の直線ストロークを 1 フレーム確定し、その index を返す。失敗時は None。"""

    drawing = paint_layer.create_drawing()
    if drawing is None:
        _logger.error("IMM export: failed to create drawing.")
        return None

    with drawing:
        if not drawing.init(1):
            _logger.error("IMM export: failed to init drawing.")
            return None

        element = drawing.get_element(0)
        if element is None or not element.init(
            STROKE_POINTS, BrushSectionType.CIRCLE, VisibilityType.ALWAYS
        ):
            _logger.error("IMM export: failed to init element.")
            return None

        for i in range(STROKE_POINTS):
            if not element.set_point(i, stroke_point(i)):
                _logger.error("IMM export: failed to set point %d.", i)
                return None

        if not (element.compute_bounds() and drawing.compute_bounds() and drawing.add_frame()):
            _logger.error("IMM export: failed to commit frame.")
            return None
        return paint_layer.frames()[-1].index


def build_simple_stroke(
    sequence: ExportSequence, transform: Transform | None = None
) -> ExportPaintLayer | None:
    """ルート直下の "StrokeLayer" にストロークを書き込む。"""

    paint_layer = sequence.create_paint_layer("StrokeLayer", True, 1.0, transform)
    if paint_layer is None:
        _logger.error("IMM export: failed to create paint layer.")
        return None
    if write_example_stroke(paint_layer) is None:
        return None
    return paint_layer


def build_grouped_stroke(
    sequence: ExportSequence, transform: Transform | None = None
) -> ExportPaintLayer | None:
    """RootGroup > ChildGroup > StrokeLayer の入れ子にストロークを書き込む。"""

    root_group = sequence.create_group_layer("RootGroup")
    if root_group is None:
        _logger.error("IMM export: failed to create root group.")
        return None

    child_group = root_group.create_group_layer("ChildGroup")
    if child_group is None:
        _logger.error("IMM export: failed to create child group.")
        return None

    paint_layer = child_group.create_paint_layer("StrokeLayer", True, 1.0, transform)
    if paint_layer is None:
        _logger.error("IMM export: failed to create paint layer.")
        return None
    if write_example_stroke(paint_layer) is None:
        return None
    return paint_layer


EXAMPLES: dict[str, Callable[[ExportSequence], ExportPaintLayer | None]] = {
    "simple": build_simple_stroke,
    "grouped": build_grouped_stroke,
}


def export_example(name: str, path: str | Path) -> bool:
    """名前付きの例を組み立てて path へ保存する。"""

    build = EXAMPLES.get(name)
    if build is None:
        raise ValueError(f"未知の例: {name!r} (choices={sorted(EXAMPLES)})")

    seq = new_example_sequence()
    if seq is None:
        _logger.error("IMM export: failed to create sequence.")
        return False

    with seq:
        if build(seq) is None:
            return False
        ok = seq.export_to_file(path)
        if ok:
            _logger.info("IMM export: wrote %s", path)
        else:
            _logger.error("IMM export: failed to write %s", path)
        return ok


def export_simple_stroke(path: str | Path) -> bool:
    return export_example("simple", path)


def export_grouped_stroke(path: str | Path) -> bool:
    return export_example("grouped", path)


__all__ = [
    "EXAMPLES",
    "build_grouped_stroke",
    "build_simple_stroke",
    "export_example",
    "export_grouped_stroke",
    "export_simple_stroke",
    "new_example_sequence",
    "stroke_point",
    "write_example_stroke",
]
