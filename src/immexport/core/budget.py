# どこで: `src/immexport/core/budget.py`。
# 何を: 確定済みフレームから資源使用量を見積もり、ExportRequirements と照合する。
# なぜ: 上限（メモリ/描画呼び出し/三角形/音声チャンネル）の強制を export 時の 1 箇所にまとめるため。

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from immexport.core.frame import CommittedElement, CommittedFrame
from immexport.core.types import BrushSectionType, ExportRequirements

# 断面形状ごとの「セグメントあたり三角形数」。POINT は点ごとのビルボード。
_TRIANGLES_PER_SEGMENT: dict[BrushSectionType, int] = {
    BrushSectionType.SEGMENT: 2,
    BrushSectionType.SQUARE: 8,
    BrushSectionType.CIRCLE: 16,
    BrushSectionType.ELLIPSE: 16,
}
_TRIANGLES_PER_POINT_SPRITE = 2


@dataclass(frozen=True, slots=True)
class DocumentStats:
    """export 対象ドキュメントの資源使用量。"""

    memory: int
    render_calls: int
    triangles: int
    sound_channels: int
    frames: int
    elements: int
    points: int


def element_triangles(element: CommittedElement) -> int:
    """Element の三角形数の見積もりを返す。"""

    n = element.num_points
    if element.brush_section_type is BrushSectionType.POINT:
        return _TRIANGLES_PER_POINT_SPRITE * n
    per_segment = _TRIANGLES_PER_SEGMENT[element.brush_section_type]
    return per_segment * max(n - 1, 0)


def frame_triangles(frame: CommittedFrame) -> int:
    return sum(element_triangles(e) for e in frame.elements)


def document_stats(
    paint_layer_frames: Iterable[Sequence[CommittedFrame]],
    *,
    memory: int = 0,
) -> DocumentStats:
    """Paint レイヤーごとのフレーム列から使用量を集計する。

    Notes
    -----
    同時に表示されるのは各レイヤー 1 フレームなので、render_calls / triangles は
    レイヤーごとの最大値の総和とする。memory は呼び出し側が渡す符号化サイズ。
    """

    render_calls = 0
    triangles = 0
    frames = 0
    elements = 0
    points = 0
    for layer_frames in paint_layer_frames:
        if not layer_frames:
            continue
        render_calls += max(f.num_elements for f in layer_frames)
        triangles += max(frame_triangles(f) for f in layer_frames)
        frames += len(layer_frames)
        elements += sum(f.num_elements for f in layer_frames)
        points += sum(f.num_points for f in layer_frames)

    return DocumentStats(
        memory=int(memory),
        render_calls=render_calls,
        triangles=triangles,
        sound_channels=0,
        frames=frames,
        elements=elements,
        points=points,
    )


def requirement_violations(stats: DocumentStats, requirements: ExportRequirements) -> list[str]:
    """上限を超えた項目の説明を返す。上限 0 は無制限として扱う。"""

    checks = (
        ("max_memory", stats.memory, requirements.max_memory),
        ("max_render_calls", stats.render_calls, requirements.max_render_calls),
        ("max_triangles", stats.triangles, requirements.max_triangles),
        ("max_sound_channels", stats.sound_channels, requirements.max_sound_channels),
    )
    out: list[str] = []
    for key, used, limit in checks:
        if limit > 0 and used > limit:
            out.append(f"{key}: used={used} limit={limit}")
    return out


__all__ = [
    "DocumentStats",
    "document_stats",
    "element_triangles",
    "frame_triangles",
    "requirement_violations",
]
