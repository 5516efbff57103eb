"""
どこで: `src/immexport/export/svg.py`。
何を: シーケンスの 1 フレームを XY 平面へ投影した SVG プレビューとして保存する関数を提供する。
なぜ: IMM ビューア無しで、構築したストロークの形・色・レイヤー変換を目視確認できるようにするため。
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from immexport.core.frame import CommittedElement, CommittedFrame
from immexport.core.layer import ExportLayer, ExportPaintLayer
from immexport.core.types import ColorRGB, Transform

if TYPE_CHECKING:
    from immexport.core.sequence import ExportSequence

_SVG_NS = "http://www.w3.org/2000/svg"
_FLOAT_DECIMALS = 3


def _fmt(value: float, *, decimals: int = _FLOAT_DECIMALS) -> str:
    """SVG 出力向けに float を決定的な文字列へ変換して返す。"""
    text = f"{float(value):.{int(decimals)}f}"
    if text.startswith("-0") and float(text) == 0.0:
        return text[1:]
    return text


def _rgb01_to_hex(rgb01: ColorRGB) -> str:
    """0..1 float RGB を #RRGGBB に変換して返す。"""

    def _to255(v: float) -> int:
        iv = int(round(float(v) * 255.0))
        return 0 if iv < 0 else 255 if iv > 255 else iv

    r, g, b = (_to255(c) for c in rgb01)
    return f"#{r:02X}{g:02X}{b:02X}"


def transform_matrix(transform: Transform) -> np.ndarray:
    """Transform を 4x4 行列（列ベクトル規約）へ変換して返す。"""

    qx, qy, qz, qw = (float(v) for v in transform.rotation)
    rot = np.array(
        [
            [1.0 - 2.0 * (qy * qy + qz * qz), 2.0 * (qx * qy - qz * qw), 2.0 * (qx * qz + qy * qw)],
            [2.0 * (qx * qy + qz * qw), 1.0 - 2.0 * (qx * qx + qz * qz), 2.0 * (qy * qz - qx * qw)],
            [2.0 * (qx * qz - qy * qw), 2.0 * (qy * qz + qx * qw), 1.0 - 2.0 * (qx * qx + qy * qy)],
        ],
        dtype=np.float64,
    )
    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = rot * float(transform.scale)
    m[:3, 3] = np.asarray(transform.position, dtype=np.float64)
    return m


def world_matrix(layer: ExportLayer) -> np.ndarray:
    """祖先 Group の変換と自身の変換を合成したワールド行列を返す。"""

    m = np.eye(4, dtype=np.float64)
    for ancestor in reversed(layer.ancestors()):
        assert ancestor.transform is not None
        m = m @ transform_matrix(ancestor.transform)
    assert layer.transform is not None
    return m @ transform_matrix(layer.transform)


def _frame_at(layer: ExportPaintLayer, frame_index: int) -> CommittedFrame | None:
    for frame in layer.frames():
        if frame.index == frame_index:
            return frame
    return None


def _iter_strokes(
    sequence: ExportSequence, frame_index: int
) -> Iterator[tuple[np.ndarray, CommittedElement, float, float]]:
    """(ワールド XY polyline, Element, レイヤー不透明度, ワールドスケール) を描画順に列挙する。"""

    for layer in sequence.paint_layers():
        if not layer.visible or not all(a.visible for a in layer.ancestors()):
            continue
        frame = _frame_at(layer, frame_index)
        if frame is None:
            continue
        m = world_matrix(layer)
        scale = float(np.cbrt(abs(np.linalg.det(m[:3, :3])))) or 1.0
        for element in frame.elements:
            if element.num_points < 2:
                continue
            pos = element.positions.astype(np.float64, copy=False)
            world = pos @ m[:3, :3].T + m[:3, 3]
            yield world[:, :2], element, float(layer.opacity or 0.0), scale


def _polyline_to_d(polyline_xy: np.ndarray) -> str:
    """polyline（shape (N,2)）を SVG path の d 属性へ変換して返す。"""
    x0 = _fmt(polyline_xy[0, 0])
    y0 = _fmt(polyline_xy[0, 1])
    parts = [f"M {x0} {y0}"]
    for xy in polyline_xy[1:]:
        parts.append(f"L {_fmt(xy[0])} {_fmt(xy[1])}")
    return " ".join(parts)


def export_frame_svg(
    sequence: ExportSequence,
    path: str | Path,
    *,
    frame_index: int = 0,
    canvas_size: tuple[int, int] = (800, 800),
    margin: float = 0.05,
) -> Path:
    """シーケンスの frame_index 番フレームを SVG として保存する。

    Parameters
    ----------
    sequence : ExportSequence
        プレビュー対象。破棄済みは不可。
    path : str or Path
        出力先パス。
    frame_index : int
        各 Paint レイヤーで描画するフレーム index。持たないレイヤーは描画しない。
    canvas_size : tuple[int, int]
        キャンバス寸法（px）。
    margin : float
        キャンバス短辺に対する余白の比率（0 以上 0.5 未満）。

    Returns
    -------
    Path
        保存先パス（正規化済み）。

    Raises
    ------
    ValueError
        シーケンスが破棄済み、または canvas_size / margin が不正な場合。
    """
    _path = Path(path)
    if not sequence.is_valid:
        raise ValueError("破棄済みのシーケンスはプレビューできない")

    canvas_w, canvas_h = canvas_size
    if canvas_w <= 0 or canvas_h <= 0:
        raise ValueError("canvas_size は正の値である必要がある")
    if not 0.0 <= float(margin) < 0.5:
        raise ValueError("margin は 0 以上 0.5 未満である必要がある")

    strokes = list(_iter_strokes(sequence, int(frame_index)))

    # 全ストロークの XY 範囲をキャンバスへ等倍率で収める。SVG は y 下向き。
    if strokes:
        all_xy = np.concatenate([s[0] for s in strokes], axis=0)
        lo = all_xy.min(axis=0)
        hi = all_xy.max(axis=0)
    else:
        lo = np.zeros(2)
        hi = np.ones(2)
    extent = hi - lo
    pad = float(min(canvas_w, canvas_h)) * float(margin)
    fits = [
        (size - 2.0 * pad) / float(e)
        for size, e in ((canvas_w, extent[0]), (canvas_h, extent[1]))
        if float(e) > 1e-12
    ]
    fit = min(fits) if fits else 1.0
    center_world = (lo + hi) * 0.5
    center_canvas = np.array([canvas_w * 0.5, canvas_h * 0.5])

    assert sequence.background_color is not None
    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        (
            f'<svg xmlns="{_SVG_NS}" viewBox="0 0 {int(canvas_w)} {int(canvas_h)}" '
            f'width="{int(canvas_w)}" height="{int(canvas_h)}">'
        )
    )
    lines.append(
        f'  <rect width="100%" height="100%" fill="{_rgb01_to_hex(sequence.background_color)}" />'
    )

    for world_xy, element, opacity, scale in strokes:
        canvas_xy = (world_xy - center_world) * fit
        canvas_xy[:, 1] *= -1.0
        canvas_xy += center_canvas

        first = element.point(0)
        widths = element.points[:, 13].astype(np.float64)
        alpha = float(first.alpha) * opacity
        d = _polyline_to_d(canvas_xy)
        lines.append(
            (
                f'  <path d="{d}" fill="none" stroke="{_rgb01_to_hex(first.color)}" '
                f'stroke-opacity="{_fmt(alpha)}" '
                f'stroke-width="{_fmt(float(widths.mean()) * scale * fit)}" stroke-linecap="round" '
                f'stroke-linejoin="round" />'
            )
        )

    lines.append("</svg>")

    _path.parent.mkdir(parents=True, exist_ok=True)
    with _path.open("w", encoding="utf-8", newline="\n") as f:
        f.write("\n".join(lines) + "\n")

    return _path


__all__ = ["export_frame_svg", "transform_matrix", "world_matrix"]
