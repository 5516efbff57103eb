"""
どこで: `src/immexport/core/drawing.py`。
何を: Paint レイヤーの 1 フレーム分の内容を組み立てる一時ハンドル（Drawing）を提供する。
なぜ: Element の確保・bounds 集約・フレーム確定を、前進専用の状態遷移として検査するため。
"""

from __future__ import annotations

import bisect
import logging
from types import TracebackType

from immexport.core.arena import Handle, HandleArena
from immexport.core.bounds import Bounds, union_bounds
from immexport.core.element import ExportElement, is_index
from immexport.core.frame import CommittedElement, CommittedFrame
from immexport.core.records import (
    AuthoringState,
    DrawingRecord,
    ElementRecord,
    LayerKind,
    LayerRecord,
)

_logger = logging.getLogger(__name__)


class ExportDrawing:
    """Paint レイヤーが払い出す Drawing ハンドル。

    典型的な使い方::

        drawing = paint_layer.create_drawing()
        if drawing is None:
            return False
        with drawing:
            if not drawing.init(1):
                return False
            ...
            drawing.compute_bounds()
            drawing.add_frame()

    Notes
    -----
    `with` ブロックを抜けると（例外経路を含めて）Drawing と Element のハンドルは解放される。
    """

    __slots__ = ("_arena", "_handle")

    def __init__(self, arena: HandleArena[object], handle: Handle) -> None:
        self._arena = arena
        self._handle = handle

    def __repr__(self) -> str:
        return f"ExportDrawing(handle={self._handle!r}, state={self.state.value})"

    def __enter__(self) -> ExportDrawing:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def _record(self) -> DrawingRecord | None:
        record = self._arena.get(self._handle)
        return record if isinstance(record, DrawingRecord) else None

    def _element_records(self, record: DrawingRecord) -> list[ElementRecord] | None:
        out: list[ElementRecord] = []
        for handle in record.elements:
            element = self._arena.get(handle)
            if not isinstance(element, ElementRecord):
                return None
            out.append(element)
        return out

    @property
    def is_valid(self) -> bool:
        return self._record() is not None

    @property
    def index(self) -> int | None:
        """生成時に割り当てられたフレーム index。無効なハンドルなら None。"""

        record = self._record()
        return record.index if record is not None else None

    @property
    def num_elements(self) -> int:
        record = self._record()
        return record.num_elements if record is not None else 0

    @property
    def flipped(self) -> bool:
        record = self._record()
        return record.flipped if record is not None else False

    @property
    def bounds(self) -> Bounds | None:
        record = self._record()
        return record.bounds if record is not None else None

    @property
    def state(self) -> AuthoringState:
        record = self._record()
        if record is None:
            return AuthoringState.DESTROYED
        if record.state is AuthoringState.INITIALIZED:
            elements = self._element_records(record) or []
            populated = (
                AuthoringState.POPULATED,
                AuthoringState.BOUNDS_COMPUTED,
            )
            if elements and all(e.state in populated for e in elements):
                return AuthoringState.POPULATED
        return record.state

    def init(self, num_elements: int, flipped: bool = False) -> bool:
        """Element 数を宣言して Element スロットを確保する。1 Drawing につき 1 回だけ成功する。

        Parameters
        ----------
        num_elements : int
            Element 数（1 以上）。
        flipped : bool
            巻き方向が反転しているか。描画側へのヒントとしてそのまま export する。
        """

        record = self._record()
        if record is None:
            _logger.warning("Drawing.init を拒否: 無効なハンドル")
            return False
        if record.state is not AuthoringState.CREATED:
            _logger.warning("Drawing.init を拒否: 既に初期化済み (state=%s)", record.state.value)
            return False
        if not is_index(num_elements) or int(num_elements) < 1:
            _logger.warning("Drawing.init を拒否: num_elements=%r", num_elements)
            return False

        handles: list[Handle] = []
        for _ in range(int(num_elements)):
            handle = self._arena.allocate(ElementRecord(drawing=self._handle))
            if handle is None:
                for allocated in handles:
                    self._arena.release(allocated)
                _logger.warning("Drawing.init に失敗: Element スロットを確保できない")
                return False
            handles.append(handle)

        record.elements = handles
        record.num_elements = len(handles)
        record.flipped = bool(flipped)
        record.state = AuthoringState.INITIALIZED
        return True

    def get_element(self, index: int) -> ExportElement | None:
        """index 番目の Element ハンドルを返す。未初期化・範囲外なら None を返す。"""

        record = self._record()
        if record is None or record.state is AuthoringState.CREATED:
            return None
        if record.state is AuthoringState.COMMITTED:
            return None
        if not is_index(index) or not 0 <= int(index) < record.num_elements:
            return None
        handle = record.elements[int(index)]
        if not self._arena.is_live(handle):
            return None
        return ExportElement(self._arena, handle)

    def compute_bounds(self) -> bool:
        """bounds を計算済みの Element を集約する。1 つも無ければ False を返す。"""

        record = self._record()
        if record is None:
            _logger.warning("Drawing.compute_bounds を拒否: 無効なハンドル")
            return False
        if record.state in (AuthoringState.CREATED, AuthoringState.COMMITTED):
            _logger.warning("Drawing.compute_bounds を拒否: state=%s", record.state.value)
            return False
        elements = self._element_records(record)
        if elements is None:
            _logger.warning("Drawing.compute_bounds を拒否: Element が解放済み")
            return False

        bounded = [e.bounds for e in elements if e.bounds is not None]
        merged = union_bounds(*bounded)
        if merged is None:
            _logger.warning("Drawing.compute_bounds を拒否: bounds 計算済みの Element が無い")
            return False

        record.bounds = merged
        record.bounds_revisions = tuple(
            e.revision if e.bounds is not None else -1 for e in elements
        )
        record.state = AuthoringState.BOUNDS_COMPUTED
        return True

    def add_frame(self) -> bool:
        """内容を所有 Paint レイヤーのフレーム列へ確定する。

        Notes
        -----
        - Drawing の bounds が計算済みかつ最新で、全 Element の bounds が有効な場合のみ成功する。
        - 成功後の Drawing は消費済み（COMMITTED）で、以後の編集は全て失敗する。
        """

        record = self._record()
        if record is None:
            _logger.warning("Drawing.add_frame を拒否: 無効なハンドル")
            return False
        if record.state is not AuthoringState.BOUNDS_COMPUTED or record.bounds is None:
            _logger.warning(
                "Drawing.add_frame を拒否: bounds 未計算 (state=%s)", record.state.value
            )
            return False

        layer = self._arena.get(record.layer)
        if not isinstance(layer, LayerRecord) or layer.kind is not LayerKind.PAINT:
            _logger.warning("Drawing.add_frame を拒否: 所有 Paint レイヤーが無効")
            return False

        elements = self._element_records(record)
        if elements is None:
            _logger.warning("Drawing.add_frame を拒否: Element が解放済み")
            return False
        if any(e.bounds is None for e in elements):
            _logger.warning("Drawing.add_frame を拒否: bounds 未計算の Element がある")
            return False
        current = tuple(e.revision for e in elements)
        if record.bounds_revisions != current:
            _logger.warning("Drawing.add_frame を拒否: Drawing の bounds が古い（再計算が必要）")
            return False

        committed = tuple(
            CommittedElement(
                points=e.points,
                brush_section_type=e.brush_section_type,
                visibility_type=e.visibility_type,
                bounds=e.bounds,
            )
            for e in elements
        )
        frame = CommittedFrame(
            index=record.index,
            flipped=record.flipped,
            elements=committed,
            bounds=record.bounds,
        )
        position = bisect.bisect_left([f.index for f in layer.frames], frame.index)
        layer.frames.insert(position, frame)

        record.state = AuthoringState.COMMITTED
        for e in elements:
            e.state = AuthoringState.COMMITTED
        return True

    def dispose(self) -> None:
        """Drawing と Element のハンドルを解放する。複数回呼んでもよい。"""

        record = self._record()
        if record is None:
            return
        if record.state is not AuthoringState.COMMITTED:
            _logger.debug("Drawing index=%d を確定せずに破棄", record.index)
        for handle in record.elements:
            element = self._arena.get(handle)
            if isinstance(element, ElementRecord):
                element.state = AuthoringState.DESTROYED
            self._arena.release(handle)
        record.state = AuthoringState.DESTROYED
        self._arena.release(self._handle)


__all__ = ["CommittedElement", "CommittedFrame", "ExportDrawing"]
