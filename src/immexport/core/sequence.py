"""
どこで: `src/immexport/core/sequence.py`。
何を: export 可能な 1 ドキュメント（ExportSequence）を生成・構築・保存・破棄する。
なぜ: レイヤーツリー・資源上限・シーケンス属性を 1 つの所有者にまとめ、破棄で全ハンドルを無効化するため。
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from math import isfinite
from pathlib import Path
from types import TracebackType

from immexport.core.arena import Handle, HandleArena
from immexport.core.budget import DocumentStats, document_stats, requirement_violations
from immexport.core.layer import (
    ExportGroupLayer,
    ExportLayer,
    ExportPaintLayer,
    wrap_layer,
)
from immexport.core.records import LayerKind, LayerRecord
from immexport.core.runtime_config import runtime_config
from immexport.core.types import (
    AudioType,
    ColorRGB,
    ExportRequirements,
    SequenceType,
    Transform,
    is_valid_color,
)
from immexport.export.imm import build_document, encode_imm, write_imm

_logger = logging.getLogger(__name__)

_DEFAULT_LAYER_NAMES = {LayerKind.GROUP: "Group", LayerKind.PAINT: "Paint"}


def _is_encodable_name(name: object) -> bool:
    """UTF-8 で符号化できる str なら True を返す（孤立サロゲートは不可）。"""

    if not isinstance(name, str):
        return False
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class ExportSequence:
    """レイヤーツリーを所有する export セッション。

    典型的な使い方::

        seq = ExportSequence.create(SequenceType.STILL, 30, (0.0, 0.0, 0.0), ExportRequirements())
        if seq is None:
            return False
        with seq:
            layer = seq.create_paint_layer("StrokeLayer")
            ...
            return seq.export_to_file(path)

    Notes
    -----
    - 生成・構築・保存の失敗は例外ではなく None / False で返す。
    - `destroy()`（または `with` の終了）で全 Layer/Drawing/Element ハンドルが無効になる。
    - スレッド安全ではない。
    """

    def __init__(
        self,
        sequence_type: SequenceType,
        frame_rate: int,
        background_color: ColorRGB,
        requirements: ExportRequirements,
        caps: int = 0,
    ) -> None:
        self._sequence_type = sequence_type
        self._frame_rate = int(frame_rate)
        self._background_color: ColorRGB = (
            float(background_color[0]),
            float(background_color[1]),
            float(background_color[2]),
        )
        self._requirements = requirements
        self._caps = int(caps)
        self._arena: HandleArena[object] = HandleArena()
        self._roots: list[Handle] = []

    @classmethod
    def create(
        cls,
        sequence_type: SequenceType,
        frame_rate: int,
        background_color: ColorRGB,
        requirements: ExportRequirements | None = None,
        caps: int = 0,
    ) -> ExportSequence | None:
        """シーケンスを生成する。設定を満たせない場合は None を返す。

        Parameters
        ----------
        sequence_type : SequenceType
            Still / Animated / Comic。
        frame_rate : int
            フレームレート（正の整数）。
        background_color : ColorRGB
            背景色 RGB（0..1）。
        requirements : ExportRequirements or None
            資源上限。None は全て 0（無制限）。
        caps : int
            ファイルへそのまま渡す機能フラグ（0..255）。
        """

        reqs = requirements if requirements is not None else ExportRequirements()
        if not isinstance(sequence_type, SequenceType):
            _logger.warning("ExportSequence.create を拒否: sequence_type=%r", sequence_type)
            return None
        if isinstance(frame_rate, bool) or not isinstance(frame_rate, int) or frame_rate <= 0:
            _logger.warning("ExportSequence.create を拒否: frame_rate=%r", frame_rate)
            return None
        if not is_valid_color(background_color):
            _logger.warning("ExportSequence.create を拒否: background_color=%r", background_color)
            return None
        if not isinstance(reqs, ExportRequirements) or not reqs.is_valid():
            _logger.warning("ExportSequence.create を拒否: requirements=%r", reqs)
            return None
        if isinstance(caps, bool) or not isinstance(caps, int) or not 0 <= caps <= 255:
            _logger.warning("ExportSequence.create を拒否: caps=%r", caps)
            return None
        return cls(sequence_type, frame_rate, background_color, reqs, caps)

    def __repr__(self) -> str:
        state = "valid" if self.is_valid else "destroyed"
        return (
            f"ExportSequence(type={self._sequence_type.name}, frame_rate={self._frame_rate}, "
            f"layers={len(self._roots)}, {state})"
        )

    def __enter__(self) -> ExportSequence:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.destroy()

    # ------------------------------------------------------------------
    # 属性

    @property
    def is_valid(self) -> bool:
        return not self._arena.closed

    @property
    def sequence_type(self) -> SequenceType | None:
        return self._sequence_type if self.is_valid else None

    @property
    def frame_rate(self) -> int | None:
        return self._frame_rate if self.is_valid else None

    @property
    def background_color(self) -> ColorRGB | None:
        return self._background_color if self.is_valid else None

    @property
    def requirements(self) -> ExportRequirements | None:
        return self._requirements if self.is_valid else None

    @property
    def caps(self) -> int | None:
        return self._caps if self.is_valid else None

    def root_layers(self) -> tuple[ExportLayer, ...]:
        """ルート直下のレイヤーを追加順で返す。"""

        if not self.is_valid:
            return ()
        return tuple(wrap_layer(self, self._arena, h) for h in self._roots)

    def iter_layers(self) -> Iterator[ExportLayer]:
        """全レイヤーを深さ優先・前順で列挙する。"""

        for layer in self.root_layers():
            yield layer
            if isinstance(layer, ExportGroupLayer):
                yield from layer.iter_descendants()

    def paint_layers(self) -> tuple[ExportPaintLayer, ...]:
        return tuple(layer for layer in self.iter_layers() if isinstance(layer, ExportPaintLayer))

    def stats(self, *, memory: int = 0) -> DocumentStats:
        """確定済みフレームの資源使用量を返す。"""

        return document_stats((layer.frames() for layer in self.paint_layers()), memory=memory)

    # ------------------------------------------------------------------
    # 構築

    def _create_layer(
        self,
        kind: LayerKind,
        name: str | None,
        visible: bool,
        opacity: float,
        transform: Transform | None,
        *,
        parent: ExportGroupLayer | None,
        pivot: Transform | None,
        is_timeline: bool,
        duration_ticks: int,
        max_repeat_count: int,
    ) -> Handle | None:
        op = f"create_{kind.value}_layer"
        if not self.is_valid:
            _logger.warning("%s を拒否: シーケンスは破棄済み", op)
            return None

        parent_record: LayerRecord | None = None
        if parent is not None:
            if not isinstance(parent, ExportGroupLayer) or parent.sequence is not self:
                _logger.warning("%s を拒否: 親が別シーケンスまたは Group ではない", op)
                return None
            record = self._arena.get(parent.handle)
            if not isinstance(record, LayerRecord) or record.kind is not LayerKind.GROUP:
                _logger.warning("%s を拒否: 親 Group が無効", op)
                return None
            parent_record = record

        if name is not None and not _is_encodable_name(name):
            _logger.warning("%s を拒否: name=%r", op, name)
            return None
        try:
            opacity_f = float(opacity)
        except (TypeError, ValueError):
            opacity_f = float("nan")
        if not isfinite(opacity_f) or not 0.0 <= opacity_f <= 1.0:
            _logger.warning("%s を拒否: opacity=%r", op, opacity)
            return None

        local = transform if transform is not None else Transform.identity()
        pivot_t = pivot if pivot is not None else Transform.identity()
        for label, t in (("transform", local), ("pivot", pivot_t)):
            if not isinstance(t, Transform) or not t.is_valid():
                _logger.warning("%s を拒否: %s=%r", op, label, t)
                return None

        for label, value in (("duration_ticks", duration_ticks), ("max_repeat_count", max_repeat_count)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                _logger.warning("%s を拒否: %s=%r", op, label, value)
                return None

        new_record = LayerRecord(
            kind=kind,
            name=name if name is not None else _DEFAULT_LAYER_NAMES[kind],
            visible=bool(visible),
            opacity=opacity_f,
            transform=local,
            pivot=pivot_t,
            parent=parent.handle if parent is not None else None,
            is_timeline=bool(is_timeline),
            duration_ticks=int(duration_ticks),
            max_repeat_count=int(max_repeat_count),
        )
        handle = self._arena.allocate(new_record)
        if handle is None:
            _logger.warning("%s に失敗: レイヤーを確保できない", op)
            return None

        if parent_record is not None:
            parent_record.children.append(handle)
        else:
            self._roots.append(handle)
        return handle

    def create_group_layer(
        self,
        name: str | None,
        visible: bool = True,
        opacity: float = 1.0,
        transform: Transform | None = None,
        *,
        parent: ExportGroupLayer | None = None,
        pivot: Transform | None = None,
        is_timeline: bool = False,
        duration_ticks: int = 0,
        max_repeat_count: int = 0,
    ) -> ExportGroupLayer | None:
        """Group レイヤーを parent（None ならルート）の末尾に追加する。失敗時は None を返す。"""

        handle = self._create_layer(
            LayerKind.GROUP,
            name,
            visible,
            opacity,
            transform,
            parent=parent,
            pivot=pivot,
            is_timeline=is_timeline,
            duration_ticks=duration_ticks,
            max_repeat_count=max_repeat_count,
        )
        if handle is None:
            return None
        return ExportGroupLayer(self, self._arena, handle)

    def create_paint_layer(
        self,
        name: str | None,
        visible: bool = True,
        opacity: float = 1.0,
        transform: Transform | None = None,
        *,
        parent: ExportGroupLayer | None = None,
        pivot: Transform | None = None,
        is_timeline: bool = False,
        duration_ticks: int = 0,
        max_repeat_count: int = 0,
    ) -> ExportPaintLayer | None:
        """Paint レイヤーを parent（None ならルート）の末尾に追加する。失敗時は None を返す。"""

        handle = self._create_layer(
            LayerKind.PAINT,
            name,
            visible,
            opacity,
            transform,
            parent=parent,
            pivot=pivot,
            is_timeline=is_timeline,
            duration_ticks=duration_ticks,
            max_repeat_count=max_repeat_count,
        )
        if handle is None:
            return None
        return ExportPaintLayer(self, self._arena, handle)

    # ------------------------------------------------------------------
    # 保存・破棄

    def export_to_file(
        self,
        path: str | Path,
        audio_bitrate: int | None = None,
        audio_type: AudioType | None = None,
    ) -> bool:
        """確定済みフレームを含むツリー全体を path へ保存する。

        Parameters
        ----------
        path : str or Path
            出力先パス。
        audio_bitrate : int or None
            音声ビットレート。None なら config の `export.audio_bitrate`。
        audio_type : AudioType or None
            音声コーデック。None なら config の `export.audio_type`。

        Returns
        -------
        bool
            保存できたら True。False の場合 path に有効なファイルは保証されない。

        Notes
        -----
        `add_frame` されていない Drawing は含まれない。
        """

        if not self.is_valid:
            _logger.warning("export_to_file を拒否: シーケンスは破棄済み")
            return False
        if path is None or not str(path).strip():
            _logger.warning("export_to_file を拒否: path が空")
            return False
        try:
            file_name = Path(path).name
        except TypeError:
            file_name = ""
        if not file_name:
            _logger.warning("export_to_file を拒否: path にファイル名が無い (%r)", path)
            return False

        if audio_bitrate is None or audio_type is None:
            cfg = runtime_config()
            bitrate = cfg.audio_bitrate if audio_bitrate is None else audio_bitrate
            codec = cfg.audio_type if audio_type is None else audio_type
        else:
            bitrate, codec = audio_bitrate, audio_type
        if isinstance(bitrate, bool) or not isinstance(bitrate, int) or bitrate <= 0:
            _logger.warning("export_to_file を拒否: audio_bitrate=%r", bitrate)
            return False
        if not isinstance(codec, AudioType):
            _logger.warning("export_to_file を拒否: audio_type=%r", codec)
            return False

        header, points = build_document(self, audio_bitrate=bitrate, audio_type=codec)
        try:
            blob = encode_imm(header, points)
        except ValueError as exc:
            _logger.warning("export_to_file に失敗: 符号化できない (%s)", exc)
            return False

        stats = self.stats(memory=len(blob))
        violations = requirement_violations(stats, self._requirements)
        if violations:
            _logger.warning("export_to_file に失敗: 資源上限を超過 (%s)", "; ".join(violations))
            return False

        try:
            out_path = write_imm(blob, path)
        except (OSError, ValueError) as exc:
            _logger.warning("export_to_file に失敗: %s (%s)", path, exc)
            return False

        _logger.info(
            "IMM export: wrote %s (layers=%d, frames=%d, points=%d, bytes=%d)",
            out_path,
            sum(1 for _ in self.iter_layers()),
            stats.frames,
            stats.points,
            stats.memory,
        )
        return True

    def destroy(self) -> None:
        """シーケンスと全子孫ハンドルを解放する。2 回目以降は何もしない。"""

        if not self.is_valid:
            return
        released = self._arena.close()
        self._roots.clear()
        _logger.debug("ExportSequence を破棄 (released=%d)", released)

    close = destroy


__all__ = ["ExportSequence"]
