# どこで: `src/immexport/core/records.py`。
# 何を: アリーナに格納する Layer / Drawing / Element の内部記録と状態列挙を定義する。
# なぜ: 公開ハンドル（Export* クラス）は参照だけを持ち、実体は Sequence のアリーナが一元所有するため。

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from immexport.core.arena import Handle
from immexport.core.bounds import Bounds
from immexport.core.frame import CommittedFrame
from immexport.core.types import BrushSectionType, Transform, VisibilityType


class AuthoringState(Enum):
    """Drawing / Element 共通の前進専用ライフサイクル。"""

    CREATED = "created"
    INITIALIZED = "initialized"
    POPULATED = "populated"
    BOUNDS_COMPUTED = "bounds_computed"
    COMMITTED = "committed"
    DESTROYED = "destroyed"


class LayerKind(Enum):
    GROUP = "group"
    PAINT = "paint"


@dataclass(slots=True)
class LayerRecord:
    kind: LayerKind
    name: str
    visible: bool
    opacity: float
    transform: Transform
    pivot: Transform
    parent: Handle | None
    is_timeline: bool = False
    duration_ticks: int = 0
    max_repeat_count: int = 0
    children: list[Handle] = field(default_factory=list)
    frames: list[CommittedFrame] = field(default_factory=list)
    next_frame_index: int = 0


@dataclass(slots=True)
class ElementRecord:
    drawing: Handle
    state: AuthoringState = AuthoringState.CREATED
    num_points: int = 0
    brush_section_type: BrushSectionType | None = None
    visibility_type: VisibilityType | None = None
    points: np.ndarray | None = None
    point_set: np.ndarray | None = None
    bounds: Bounds | None = None
    # set_point のたびに進む。Drawing の bounds が古いかの判定に使う。
    revision: int = 0


@dataclass(slots=True)
class DrawingRecord:
    layer: Handle
    index: int
    state: AuthoringState = AuthoringState.CREATED
    num_elements: int = 0
    flipped: bool = False
    elements: list[Handle] = field(default_factory=list)
    bounds: Bounds | None = None
    bounds_revisions: tuple[int, ...] | None = None


__all__ = [
    "AuthoringState",
    "DrawingRecord",
    "ElementRecord",
    "LayerKind",
    "LayerRecord",
]
