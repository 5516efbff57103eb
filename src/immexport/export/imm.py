"""
どこで: `src/immexport/export/imm.py`。
何を: 構築済みシーケンスを単一ファイル（IMMX コンテナ）へ符号化・保存し、読み戻す関数を提供する。
なぜ: ビルダーの唯一の出力先（シリアライズ・シンク）を、ネイティブ実行環境なしで決定的に扱うため。

ファイル構造（リトルエンディアン）::

    magic "IMMX" | u16 version | u16 flags | u32 header_len
    header (UTF-8 JSON) | 0 埋め（4 byte 境界）
    points (float32, shape (N, 16))
"""

from __future__ import annotations

import json
import struct
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from immexport.core.frame import CommittedFrame
from immexport.core.layer import ExportGroupLayer, ExportLayer, ExportPaintLayer
from immexport.core.types import POINT_FIELD_COUNT, AudioType

if TYPE_CHECKING:
    from immexport.core.sequence import ExportSequence

MAGIC = b"IMMX"
FORMAT_VERSION = 1
_PREAMBLE = struct.Struct("<4sHHI")
_ALIGN = 4
_POINT_DTYPE = np.dtype("<f4")


@dataclass(frozen=True, slots=True)
class ImmDocument:
    """読み戻した IMMX ファイルの内容。

    Parameters
    ----------
    header : dict[str, Any]
        シーケンスのメタデータとレイヤーツリー。
    points : np.ndarray
        float32 型 shape (N, 16) の全点配列。各 Element は `point_offset` / `point_count` で参照する。
    """

    header: dict[str, Any]
    points: np.ndarray

    @property
    def sequence(self) -> dict[str, Any]:
        return self.header["sequence"]

    @property
    def layers(self) -> list[dict[str, Any]]:
        return self.header["layers"]

    def iter_layers(self) -> Iterator[dict[str, Any]]:
        """レイヤー辞書を深さ優先・前順で列挙する。"""

        def _walk(items: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
            for item in items:
                yield item
                yield from _walk(item.get("children", []))

        return _walk(self.layers)

    def element_points(self, element: dict[str, Any]) -> np.ndarray:
        start = int(element["point_offset"])
        return self.points[start : start + int(element["point_count"])]


def _frame_to_dict(frame: CommittedFrame, chunks: list[np.ndarray], offset: int) -> tuple[dict[str, Any], int]:
    elements: list[dict[str, Any]] = []
    for element in frame.elements:
        elements.append(
            {
                "brush_section": element.brush_section_type.name.lower(),
                "visibility": element.visibility_type.name.lower(),
                "point_offset": offset,
                "point_count": element.num_points,
                "bounds": element.bounds.to_dict(),
            }
        )
        chunks.append(element.points)
        offset += element.num_points
    payload = {
        "index": frame.index,
        "flipped": frame.flipped,
        "bounds": frame.bounds.to_dict(),
        "elements": elements,
    }
    return payload, offset


def _layer_to_dict(layer: ExportLayer, chunks: list[np.ndarray], offset: int) -> tuple[dict[str, Any], int]:
    assert layer.transform is not None and layer.pivot is not None
    payload: dict[str, Any] = {
        "kind": layer.kind.value,
        "name": layer.name,
        "visible": layer.visible,
        "opacity": layer.opacity,
        "transform": layer.transform.to_dict(),
        "pivot": layer.pivot.to_dict(),
        "is_timeline": layer.is_timeline,
        "duration_ticks": layer.duration_ticks,
        "max_repeat_count": layer.max_repeat_count,
    }
    if isinstance(layer, ExportGroupLayer):
        children: list[dict[str, Any]] = []
        for child in layer.children():
            child_payload, offset = _layer_to_dict(child, chunks, offset)
            children.append(child_payload)
        payload["children"] = children
    elif isinstance(layer, ExportPaintLayer):
        frames: list[dict[str, Any]] = []
        for frame in layer.frames():
            frame_payload, offset = _frame_to_dict(frame, chunks, offset)
            frames.append(frame_payload)
        payload["frames"] = frames
    return payload, offset


def build_document(
    sequence: ExportSequence,
    *,
    audio_bitrate: int,
    audio_type: AudioType,
) -> tuple[dict[str, Any], np.ndarray]:
    """シーケンスから (header, points) を組み立てる。確定済みフレームのみを含む。"""

    chunks: list[np.ndarray] = []
    offset = 0
    layers: list[dict[str, Any]] = []
    for layer in sequence.root_layers():
        payload, offset = _layer_to_dict(layer, chunks, offset)
        layers.append(payload)

    if chunks:
        points = np.concatenate(chunks, axis=0).astype(_POINT_DTYPE, copy=False)
    else:
        points = np.zeros((0, POINT_FIELD_COUNT), dtype=_POINT_DTYPE)

    assert sequence.sequence_type is not None and sequence.requirements is not None
    header: dict[str, Any] = {
        "format": "immx",
        "version": FORMAT_VERSION,
        "sequence": {
            "type": sequence.sequence_type.name.lower(),
            "frame_rate": sequence.frame_rate,
            "background_color": list(sequence.background_color or ()),
            "caps": sequence.caps,
            "requirements": sequence.requirements.to_dict(),
        },
        "audio": {
            "bitrate": int(audio_bitrate),
            "type": audio_type.name.lower(),
        },
        "layers": layers,
    }
    return header, points


def encode_imm(header: dict[str, Any], points: np.ndarray) -> bytes:
    """(header, points) をバイト列へ符号化する。"""

    pts = np.ascontiguousarray(points, dtype=_POINT_DTYPE)
    if pts.ndim != 2 or pts.shape[1] != POINT_FIELD_COUNT:
        raise ValueError(f"points は shape (N,{POINT_FIELD_COUNT}) である必要がある")

    header_bytes = json.dumps(header, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    pad = (-(_PREAMBLE.size + len(header_bytes))) % _ALIGN
    preamble = _PREAMBLE.pack(MAGIC, FORMAT_VERSION, 0, len(header_bytes))
    return b"".join([preamble, header_bytes, b"\x00" * pad, pts.tobytes()])


def decode_imm(blob: bytes) -> ImmDocument:
    """バイト列を ImmDocument に復元する。

    Raises
    ------
    ValueError
        magic / version / 長さが不正な場合。
    """

    if len(blob) < _PREAMBLE.size:
        raise ValueError("IMMX ファイルが短すぎる")
    magic, version, _flags, header_len = _PREAMBLE.unpack_from(blob, 0)
    if magic != MAGIC:
        raise ValueError(f"IMMX magic が不正: {magic!r}")
    if version != FORMAT_VERSION:
        raise ValueError(f"未対応の IMMX version: {version}")

    header_end = _PREAMBLE.size + header_len
    if header_end > len(blob):
        raise ValueError("IMMX header が途中で切れている")
    try:
        header = json.loads(blob[_PREAMBLE.size : header_end].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("IMMX header の JSON が不正") from exc
    if not isinstance(header, dict):
        raise ValueError("IMMX header は mapping である必要がある")

    body_start = header_end + (-header_end) % _ALIGN
    body = blob[body_start:]
    row_bytes = POINT_FIELD_COUNT * _POINT_DTYPE.itemsize
    if len(body) % row_bytes != 0:
        raise ValueError("IMMX point block の長さが不正")
    points = np.frombuffer(body, dtype=_POINT_DTYPE).reshape(-1, POINT_FIELD_COUNT)
    return ImmDocument(header=header, points=points)


def write_imm(blob: bytes, path: str | Path) -> Path:
    """バイト列を path へ保存する（一時ファイル経由で置き換える）。"""

    _path = Path(path)
    _path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _path.with_name(f".tmp_{uuid.uuid4().hex}_{_path.name}")
    try:
        with tmp_path.open("wb") as f:
            f.write(blob)
        tmp_path.replace(_path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    return _path


def read_imm(path: str | Path) -> ImmDocument:
    """IMMX ファイルを読み込んで返す。"""

    return decode_imm(Path(path).read_bytes())


__all__ = [
    "FORMAT_VERSION",
    "ImmDocument",
    "MAGIC",
    "build_document",
    "decode_imm",
    "encode_imm",
    "read_imm",
    "write_imm",
]
