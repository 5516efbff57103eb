"""
どこで: `src/immexport/core/types.py`。
何を: export ビルダーが受け取る列挙型と値レコード（Transform / PaintPoint / 予算）を定義する。
なぜ: 各層（Sequence/Layer/Drawing/Element）と writer で同じ値表現を共有するため。
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import IntEnum
from math import isfinite, sqrt

Vec3 = tuple[float, float, float]
Quat = tuple[float, float, float, float]
ColorRGB = tuple[float, float, float]

# 回転の単位クォータニオン判定に使う許容誤差。
QUATERNION_NORM_TOLERANCE = 1e-3

# PaintPoint を float32 行へ詰めるときの列数。
POINT_FIELD_COUNT = 16


class SequenceType(IntEnum):
    STILL = 0
    ANIMATED = 1
    COMIC = 2


class AudioType(IntEnum):
    OPUS = 0
    OGG = 1


class BrushSectionType(IntEnum):
    """ストロークの断面形状。"""

    POINT = 0
    SEGMENT = 1
    CIRCLE = 2
    ELLIPSE = 3
    SQUARE = 4


class VisibilityType(IntEnum):
    """Element の可視規則（距離フェード / 常時表示）。"""

    FADE_POW2 = 0
    ALWAYS = 1


def is_finite_vec(values: tuple[float, ...]) -> bool:
    """全成分が有限の実数なら True を返す。"""

    try:
        return all(isfinite(float(v)) for v in values)
    except (TypeError, ValueError):
        return False


def is_valid_color(color: object) -> bool:
    """`(r, g, b)` が 0..1 の有限値なら True を返す。"""

    try:
        r, g, b = color  # type: ignore[misc]
    except (TypeError, ValueError):
        return False
    if not is_finite_vec((r, g, b)):
        return False
    return all(0.0 <= float(c) <= 1.0 for c in (r, g, b))


@dataclass(frozen=True, slots=True)
class ExportRequirements:
    """バックエンドが強制する資源上限。0 は「明示上限なし」を表す。"""

    max_memory: int = 0
    max_render_calls: int = 0
    max_triangles: int = 0
    max_sound_channels: int = 0

    def is_valid(self) -> bool:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                return False
        return True

    def to_dict(self) -> dict[str, int]:
        return {f.name: int(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class Transform:
    """平行移動・単位クォータニオン回転・一様スケールの 3D 変換。

    Parameters
    ----------
    position : Vec3
        平行移動。
    rotation : Quat
        `(x, y, z, w)` 順のクォータニオン。単位長である必要がある。
    scale : float
        一様スケール。正の値である必要がある。
    """

    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Quat = (0.0, 0.0, 0.0, 1.0)
    scale: float = 1.0

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    def is_valid(self) -> bool:
        """有限値・単位クォータニオン・正スケールなら True を返す。"""

        try:
            if len(self.position) != 3 or len(self.rotation) != 4:
                return False
        except TypeError:
            return False
        if not is_finite_vec(self.position) or not is_finite_vec(self.rotation):
            return False
        if not is_finite_vec((self.scale,)) or float(self.scale) <= 0.0:
            return False
        norm = sqrt(sum(float(q) * float(q) for q in self.rotation))
        return abs(norm - 1.0) <= QUATERNION_NORM_TOLERANCE

    def to_dict(self) -> dict[str, object]:
        return {
            "position": [float(v) for v in self.position],
            "rotation": [float(v) for v in self.rotation],
            "scale": float(self.scale),
        }


@dataclass(frozen=True, slots=True)
class PaintPoint:
    """ストローク上の 1 サンプル。

    `length` は弧長、`time` はストローク内の時刻。色は 0..1 の RGB。
    """

    position: Vec3
    normal: Vec3 = (0.0, 1.0, 0.0)
    direction: Vec3 = (0.0, 0.0, 1.0)
    color: ColorRGB = (1.0, 1.0, 1.0)
    alpha: float = 1.0
    width: float = 0.01
    length: float = 0.0
    time: float = 0.0

    def as_row(self) -> tuple[float, ...]:
        """float32 行（POINT_FIELD_COUNT 列）へ詰める順序で値を返す。"""

        return (
            *(float(v) for v in self.position),
            *(float(v) for v in self.normal),
            *(float(v) for v in self.direction),
            *(float(v) for v in self.color),
            float(self.alpha),
            float(self.width),
            float(self.length),
            float(self.time),
        )

    def is_valid(self) -> bool:
        """各ベクトルが 3 成分で、全値が有限、幅が非負なら True を返す。"""

        for vec in (self.position, self.normal, self.direction, self.color):
            try:
                if len(vec) != 3:
                    return False
            except TypeError:
                return False
        try:
            row = self.as_row()
        except (TypeError, ValueError):
            return False
        if not is_finite_vec(row):
            return False
        return float(self.width) >= 0.0


__all__ = [
    "AudioType",
    "BrushSectionType",
    "ColorRGB",
    "ExportRequirements",
    "POINT_FIELD_COUNT",
    "PaintPoint",
    "Quat",
    "SequenceType",
    "Transform",
    "Vec3",
    "VisibilityType",
    "is_finite_vec",
    "is_valid_color",
]
