"""
どこで: `src/immexport/core/layer.py`。
何を: シーン階層のノード（Group / Paint レイヤー）のハンドルを定義する。
なぜ: 共通属性（名前・可視・不透明度・変換）は 1 つの記録で持ち、種類ごとの操作だけを分けるため。
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from immexport.core.arena import Handle, HandleArena
from immexport.core.drawing import ExportDrawing
from immexport.core.frame import CommittedFrame
from immexport.core.records import DrawingRecord, LayerKind, LayerRecord
from immexport.core.types import Transform

if TYPE_CHECKING:
    from immexport.core.sequence import ExportSequence

_logger = logging.getLogger(__name__)


class ExportLayer:
    """Group / Paint 共通の読み取り専用ビュー。

    Notes
    -----
    属性は生成時にのみ設定される。後から変更する操作は持たない。
    """

    __slots__ = ("_sequence", "_arena", "_handle")

    kind: LayerKind

    def __init__(self, sequence: ExportSequence, arena: HandleArena[object], handle: Handle) -> None:
        self._sequence = sequence
        self._arena = arena
        self._handle = handle

    def __repr__(self) -> str:
        record = self._record()
        name = record.name if record is not None else "<destroyed>"
        return f"{type(self).__name__}(name={name!r}, handle={self._handle!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExportLayer):
            return NotImplemented
        return self._arena is other._arena and self._handle == other._handle

    def __hash__(self) -> int:
        return hash((id(self._arena), self._handle))

    def _record(self) -> LayerRecord | None:
        record = self._arena.get(self._handle)
        if not isinstance(record, LayerRecord) or record.kind is not self.kind:
            return None
        return record

    @property
    def handle(self) -> Handle:
        return self._handle

    @property
    def sequence(self) -> ExportSequence:
        return self._sequence

    @property
    def is_valid(self) -> bool:
        return self._record() is not None

    @property
    def name(self) -> str | None:
        record = self._record()
        return record.name if record is not None else None

    @property
    def visible(self) -> bool | None:
        record = self._record()
        return record.visible if record is not None else None

    @property
    def opacity(self) -> float | None:
        record = self._record()
        return record.opacity if record is not None else None

    @property
    def transform(self) -> Transform | None:
        record = self._record()
        return record.transform if record is not None else None

    @property
    def pivot(self) -> Transform | None:
        record = self._record()
        return record.pivot if record is not None else None

    @property
    def is_timeline(self) -> bool | None:
        record = self._record()
        return record.is_timeline if record is not None else None

    @property
    def duration_ticks(self) -> int | None:
        record = self._record()
        return record.duration_ticks if record is not None else None

    @property
    def max_repeat_count(self) -> int | None:
        record = self._record()
        return record.max_repeat_count if record is not None else None

    @property
    def parent(self) -> ExportGroupLayer | None:
        """親 Group レイヤー。ルート直下（または無効なハンドル）なら None。"""

        record = self._record()
        if record is None or record.parent is None:
            return None
        return ExportGroupLayer(self._sequence, self._arena, record.parent)

    def ancestors(self) -> tuple[ExportGroupLayer, ...]:
        """近い順の祖先 Group レイヤー列を返す。末尾の親はセッションのルート。"""

        out: list[ExportGroupLayer] = []
        current = self.parent
        while current is not None:
            out.append(current)
            current = current.parent
        return tuple(out)


class ExportGroupLayer(ExportLayer):
    """他のレイヤーだけを子に持つ Group レイヤー。"""

    __slots__ = ()

    kind = LayerKind.GROUP

    def children(self) -> tuple[ExportLayer, ...]:
        record = self._record()
        if record is None:
            return ()
        return tuple(wrap_layer(self._sequence, self._arena, h) for h in record.children)

    def iter_descendants(self) -> Iterator[ExportLayer]:
        """子孫レイヤーを深さ優先・前順で列挙する。"""

        for child in self.children():
            yield child
            if isinstance(child, ExportGroupLayer):
                yield from child.iter_descendants()

    def create_group_layer(
        self,
        name: str | None,
        visible: bool = True,
        opacity: float = 1.0,
        transform: Transform | None = None,
        *,
        pivot: Transform | None = None,
        is_timeline: bool = False,
        duration_ticks: int = 0,
        max_repeat_count: int = 0,
    ) -> ExportGroupLayer | None:
        """自身を親とする Group レイヤーを末尾に追加する。失敗時は None を返す。"""

        if not self.is_valid:
            _logger.warning("GroupLayer.create_group_layer を拒否: 無効なハンドル")
            return None
        return self._sequence.create_group_layer(
            name,
            visible,
            opacity,
            transform,
            parent=self,
            pivot=pivot,
            is_timeline=is_timeline,
            duration_ticks=duration_ticks,
            max_repeat_count=max_repeat_count,
        )

    def create_paint_layer(
        self,
        name: str | None,
        visible: bool = True,
        opacity: float = 1.0,
        transform: Transform | None = None,
        *,
        pivot: Transform | None = None,
        is_timeline: bool = False,
        duration_ticks: int = 0,
        max_repeat_count: int = 0,
    ) -> ExportPaintLayer | None:
        """自身を親とする Paint レイヤーを末尾に追加する。失敗時は None を返す。"""

        if not self.is_valid:
            _logger.warning("GroupLayer.create_paint_layer を拒否: 無効なハンドル")
            return None
        return self._sequence.create_paint_layer(
            name,
            visible,
            opacity,
            transform,
            parent=self,
            pivot=pivot,
            is_timeline=is_timeline,
            duration_ticks=duration_ticks,
            max_repeat_count=max_repeat_count,
        )


class ExportPaintLayer(ExportLayer):
    """確定済みフレーム（Drawing）の列を持つ Paint レイヤー。"""

    __slots__ = ()

    kind = LayerKind.PAINT

    @property
    def next_frame_index(self) -> int | None:
        """次の `create_drawing` が割り当てるフレーム index。"""

        record = self._record()
        return record.next_frame_index if record is not None else None

    def frames(self) -> tuple[CommittedFrame, ...]:
        """確定済みフレームを index 昇順で返す。"""

        record = self._record()
        return tuple(record.frames) if record is not None else ()

    def create_drawing(self) -> ExportDrawing | None:
        """次の連番 index を割り当てた Drawing を返す。失敗時は None を返す。

        Notes
        -----
        index は成功のたびに 1 進み、Drawing が確定されずに破棄されても再利用しない。
        """

        record = self._record()
        if record is None:
            _logger.warning("PaintLayer.create_drawing を拒否: 無効なハンドル")
            return None

        handle = self._arena.allocate(DrawingRecord(layer=self._handle, index=record.next_frame_index))
        if handle is None:
            _logger.warning("PaintLayer.create_drawing に失敗: Drawing を確保できない")
            return None
        record.next_frame_index += 1
        return ExportDrawing(self._arena, handle)


def wrap_layer(sequence: ExportSequence, arena: HandleArena[object], handle: Handle) -> ExportLayer:
    """Handle の指すレイヤー記録に応じた公開ハンドルを返す。"""

    record = arena.get(handle)
    if isinstance(record, LayerRecord) and record.kind is LayerKind.PAINT:
        return ExportPaintLayer(sequence, arena, handle)
    return ExportGroupLayer(sequence, arena, handle)


__all__ = ["ExportGroupLayer", "ExportLayer", "ExportPaintLayer", "LayerKind", "wrap_layer"]
