# どこで: `src/immexport/core/bounds.py`。
# 何を: Element / Drawing の軸平行バウンディングボリュームを定義する。
# なぜ: bottom-up の bounds 計算を Element と Drawing で同じ表現にそろえるため。

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class Bounds:
    """軸平行の 3D バウンディングボックス。

    Parameters
    ----------
    minimum : np.ndarray
        float64 型 shape (3,) の最小座標。
    maximum : np.ndarray
        float64 型 shape (3,) の最大座標。

    Notes
    -----
    配列は writeable=False に固定する。minimum <= maximum をコンストラクタで検証する。
    """

    minimum: np.ndarray
    maximum: np.ndarray

    def __post_init__(self) -> None:
        minimum = np.asarray(self.minimum, dtype=np.float64).reshape(-1)
        maximum = np.asarray(self.maximum, dtype=np.float64).reshape(-1)
        if minimum.shape != (3,) or maximum.shape != (3,):
            raise ValueError("minimum/maximum は shape (3,) である必要がある")
        if np.any(minimum > maximum):
            raise ValueError("minimum は maximum 以下である必要がある")

        minimum = minimum.copy()
        maximum = maximum.copy()
        minimum.setflags(write=False)
        maximum.setflags(write=False)
        object.__setattr__(self, "minimum", minimum)
        object.__setattr__(self, "maximum", maximum)

    @classmethod
    def from_points(cls, positions: np.ndarray, radii: np.ndarray | None = None) -> Bounds:
        """点群（shape (N,3)）から bounds を作る。radii があれば各点を半径分だけ膨らませる。"""

        pos = np.asarray(positions, dtype=np.float64)
        if pos.ndim != 2 or pos.shape[1] != 3 or pos.shape[0] == 0:
            raise ValueError("positions は shape (N,3), N>=1 である必要がある")
        if radii is None:
            return cls(minimum=pos.min(axis=0), maximum=pos.max(axis=0))
        r = np.asarray(radii, dtype=np.float64).reshape(-1, 1)
        return cls(minimum=(pos - r).min(axis=0), maximum=(pos + r).max(axis=0))

    @property
    def center(self) -> np.ndarray:
        return (self.minimum + self.maximum) * 0.5

    @property
    def size(self) -> np.ndarray:
        return self.maximum - self.minimum

    def union(self, other: Bounds) -> Bounds:
        return Bounds(
            minimum=np.minimum(self.minimum, other.minimum),
            maximum=np.maximum(self.maximum, other.maximum),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bounds):
            return NotImplemented
        return bool(
            np.array_equal(self.minimum, other.minimum)
            and np.array_equal(self.maximum, other.maximum)
        )

    def __hash__(self) -> int:
        return hash((self.minimum.tobytes(), self.maximum.tobytes()))

    def to_dict(self) -> dict[str, list[float]]:
        return {
            "min": [float(v) for v in self.minimum],
            "max": [float(v) for v in self.maximum],
        }

    @classmethod
    def from_dict(cls, data: dict[str, list[float]]) -> Bounds:
        return cls(minimum=np.asarray(data["min"]), maximum=np.asarray(data["max"]))


def union_bounds(*items: Bounds) -> Bounds | None:
    """複数の Bounds を合成して返す。空なら None を返す。"""

    result: Bounds | None = None
    for item in items:
        result = item if result is None else result.union(item)
    return result


__all__ = ["Bounds", "union_bounds"]
