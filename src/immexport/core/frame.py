"""
どこで: `src/immexport/core/frame.py`。
何を: Paint レイヤーへ確定（add_frame）されたフレームの不変スナップショットを定義する。
なぜ: Drawing（一時的なオーサリング対象）の破棄後も、export と検査が同じ内容を参照できるようにするため。
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from immexport.core.bounds import Bounds
from immexport.core.types import POINT_FIELD_COUNT, BrushSectionType, PaintPoint, VisibilityType


@dataclass(frozen=True, slots=True)
class CommittedElement:
    """確定済み Element。

    Parameters
    ----------
    points : np.ndarray
        float32 型 shape (N, 16) の点配列（列順は `PaintPoint.as_row`）。
    brush_section_type : BrushSectionType
        断面形状。
    visibility_type : VisibilityType
        可視規則。
    bounds : Bounds
        確定時点の bounds。
    """

    points: np.ndarray
    brush_section_type: BrushSectionType
    visibility_type: VisibilityType
    bounds: Bounds

    def __post_init__(self) -> None:
        points = np.array(self.points, dtype=np.float32, copy=True)
        if points.ndim != 2 or points.shape[1] != POINT_FIELD_COUNT:
            raise ValueError(f"points は shape (N,{POINT_FIELD_COUNT}) である必要がある")
        points.setflags(write=False)
        object.__setattr__(self, "points", points)

    @property
    def num_points(self) -> int:
        return int(self.points.shape[0])

    @property
    def positions(self) -> np.ndarray:
        return self.points[:, 0:3]

    def point(self, index: int) -> PaintPoint:
        row = [float(v) for v in self.points[int(index)]]
        return PaintPoint(
            position=(row[0], row[1], row[2]),
            normal=(row[3], row[4], row[5]),
            direction=(row[6], row[7], row[8]),
            color=(row[9], row[10], row[11]),
            alpha=row[12],
            width=row[13],
            length=row[14],
            time=row[15],
        )


@dataclass(frozen=True, slots=True)
class CommittedFrame:
    """Paint レイヤー内の 1 フレーム。index は Drawing 生成時に割り当てられた値。"""

    index: int
    flipped: bool
    elements: tuple[CommittedElement, ...]
    bounds: Bounds

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def num_points(self) -> int:
        return sum(e.num_points for e in self.elements)


__all__ = ["CommittedElement", "CommittedFrame"]
