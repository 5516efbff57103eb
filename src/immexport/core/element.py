"""
どこで: `src/immexport/core/element.py`。
何を: Drawing 内の 1 ストローク（Element）を編集するハンドルを提供する。
なぜ: 点数の宣言・点の書き込み・bounds 計算を、範囲外や順序違反を失敗値で返す形で扱うため。
"""

from __future__ import annotations

import logging

import numpy as np

from immexport.core.arena import Handle, HandleArena
from immexport.core.bounds import Bounds
from immexport.core.records import AuthoringState, DrawingRecord, ElementRecord
from immexport.core.types import (
    POINT_FIELD_COUNT,
    BrushSectionType,
    PaintPoint,
    VisibilityType,
)

_logger = logging.getLogger(__name__)

# Element を編集できる状態。
_EDITABLE_STATES = (
    AuthoringState.INITIALIZED,
    AuthoringState.POPULATED,
    AuthoringState.BOUNDS_COMPUTED,
)


def is_index(value: object) -> bool:
    """bool を除く int なら True を返す。"""

    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class ExportElement:
    """Drawing が所有する Element スロットへのハンドル。

    Notes
    -----
    - 全操作は失敗を例外ではなく False / None で返す。
    - bounds 計算後に `set_point` すると bounds は無効化され、再計算が必要になる。
    """

    __slots__ = ("_arena", "_handle")

    def __init__(self, arena: HandleArena[object], handle: Handle) -> None:
        self._arena = arena
        self._handle = handle

    def __repr__(self) -> str:
        return f"ExportElement(handle={self._handle!r}, state={self.state.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExportElement):
            return NotImplemented
        return self._arena is other._arena and self._handle == other._handle

    def __hash__(self) -> int:
        return hash((id(self._arena), self._handle))

    def _record(self) -> ElementRecord | None:
        record = self._arena.get(self._handle)
        return record if isinstance(record, ElementRecord) else None

    def _editable_record(self, op: str) -> ElementRecord | None:
        record = self._record()
        if record is None:
            _logger.warning("Element.%s を拒否: 無効なハンドル", op)
            return None
        if record.state not in _EDITABLE_STATES:
            _logger.warning("Element.%s を拒否: state=%s", op, record.state.value)
            return None
        if not self._owner_is_authoring(record):
            _logger.warning("Element.%s を拒否: 所有 Drawing が確定済み", op)
            return None
        return record

    def _owner_is_authoring(self, record: ElementRecord) -> bool:
        drawing = self._arena.get(record.drawing)
        if not isinstance(drawing, DrawingRecord):
            return False
        return drawing.state not in (AuthoringState.COMMITTED, AuthoringState.DESTROYED)

    @property
    def is_valid(self) -> bool:
        return self._record() is not None

    @property
    def state(self) -> AuthoringState:
        """現在の状態。bounds 計算後に点が変わった場合は POPULATED に戻って見える。"""

        record = self._record()
        if record is None:
            return AuthoringState.DESTROYED
        if record.state is AuthoringState.BOUNDS_COMPUTED and record.bounds is None:
            return AuthoringState.POPULATED
        return record.state

    @property
    def num_points(self) -> int:
        record = self._record()
        return record.num_points if record is not None else 0

    @property
    def brush_section_type(self) -> BrushSectionType | None:
        record = self._record()
        return record.brush_section_type if record is not None else None

    @property
    def visibility_type(self) -> VisibilityType | None:
        record = self._record()
        return record.visibility_type if record is not None else None

    @property
    def bounds(self) -> Bounds | None:
        """最後に計算した bounds。未計算または計算後に点が変わった場合は None。"""

        record = self._record()
        return record.bounds if record is not None else None

    def init(
        self,
        num_points: int,
        brush_section_type: BrushSectionType,
        visibility_type: VisibilityType,
    ) -> bool:
        """点数・断面形状・可視規則を宣言する。1 Element につき 1 回だけ成功する。"""

        record = self._record()
        if record is None:
            _logger.warning("Element.init を拒否: 無効なハンドル")
            return False
        if record.state is not AuthoringState.CREATED:
            _logger.warning("Element.init を拒否: 既に初期化済み (state=%s)", record.state.value)
            return False
        if not self._owner_is_authoring(record):
            _logger.warning("Element.init を拒否: 所有 Drawing が確定済み")
            return False
        if not is_index(num_points) or int(num_points) < 1:
            _logger.warning("Element.init を拒否: num_points=%r", num_points)
            return False
        if not isinstance(brush_section_type, BrushSectionType):
            _logger.warning("Element.init を拒否: brush_section_type=%r", brush_section_type)
            return False
        if not isinstance(visibility_type, VisibilityType):
            _logger.warning("Element.init を拒否: visibility_type=%r", visibility_type)
            return False

        n = int(num_points)
        record.num_points = n
        record.brush_section_type = brush_section_type
        record.visibility_type = visibility_type
        record.points = np.zeros((n, POINT_FIELD_COUNT), dtype=np.float32)
        record.point_set = np.zeros((n,), dtype=bool)
        record.state = AuthoringState.INITIALIZED
        return True

    def set_point(self, index: int, point: PaintPoint) -> bool:
        """index 番目の点を書き込む。範囲外・不正値は状態を変えずに False を返す。"""

        record = self._editable_record("set_point")
        if record is None:
            return False
        if not is_index(index) or not 0 <= int(index) < record.num_points:
            _logger.warning(
                "Element.set_point を拒否: index=%r が範囲外 (num_points=%d)",
                index,
                record.num_points,
            )
            return False
        if not isinstance(point, PaintPoint) or not point.is_valid():
            _logger.warning("Element.set_point を拒否: 不正な点 %r", point)
            return False

        assert record.points is not None and record.point_set is not None
        i = int(index)
        record.points[i] = np.asarray(point.as_row(), dtype=np.float32)
        record.point_set[i] = True
        record.bounds = None
        record.revision += 1
        if record.state is AuthoringState.INITIALIZED and bool(record.point_set.all()):
            record.state = AuthoringState.POPULATED
        return True

    def point(self, index: int) -> PaintPoint | None:
        """書き込み済みの点を返す。未設定・範囲外なら None を返す。"""

        record = self._record()
        if record is None or record.points is None or record.point_set is None:
            return None
        if not is_index(index) or not 0 <= int(index) < record.num_points:
            return None
        if not bool(record.point_set[int(index)]):
            return None
        row = [float(v) for v in record.points[int(index)]]
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

    def compute_bounds(self) -> bool:
        """全点から bounds を計算する。未設定の点が残っている場合は False を返す。

        Notes
        -----
        bounds は各点の位置を幅の半分だけ膨らませた軸平行ボックス。
        """

        record = self._editable_record("compute_bounds")
        if record is None:
            return False
        assert record.points is not None and record.point_set is not None
        if not bool(record.point_set.all()):
            missing = int((~record.point_set).sum())
            _logger.warning("Element.compute_bounds を拒否: 未設定の点が %d 個", missing)
            return False

        positions = record.points[:, 0:3]
        radii = record.points[:, 13] * 0.5
        record.bounds = Bounds.from_points(positions, radii)
        record.state = AuthoringState.BOUNDS_COMPUTED
        return True


__all__ = ["ExportElement"]
