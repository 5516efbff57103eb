"""
どこで: `src/immexport/core/arena.py`。
何を: index/generation で検査されるハンドルと、それを払い出すアリーナを提供する。
なぜ: Sequence 破棄後の Layer/Drawing/Element 操作を「解放済みを触る」のではなく検出可能な失敗にするため。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Handle:
    """アリーナ内スロットへの参照。generation が一致する間だけ有効。"""

    index: int
    generation: int


class HandleArena(Generic[T]):
    """Sequence が所有するエンティティ記録のアリーナ。

    Notes
    -----
    - `release` はスロットの generation を進めるため、古い Handle は以後 `get` で None になる。
    - `close` 後は全 Handle が無効になり、新規 `allocate` も失敗する。
    - スレッド安全ではない（外部で直列化する前提）。
    """

    def __init__(self) -> None:
        self._payloads: list[T | None] = []
        self._generations: list[int] = []
        self._free: list[int] = []
        self._closed = False
        self._live = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._live

    def allocate(self, payload: T) -> Handle | None:
        """payload を格納し Handle を返す。close 済みなら None を返す。"""

        if self._closed:
            return None
        if self._free:
            index = self._free.pop()
            self._payloads[index] = payload
        else:
            index = len(self._payloads)
            self._payloads.append(payload)
            self._generations.append(0)
        self._live += 1
        return Handle(index=index, generation=self._generations[index])

    def is_live(self, handle: Handle | None) -> bool:
        if handle is None or self._closed:
            return False
        index = handle.index
        if index < 0 or index >= len(self._payloads):
            return False
        if self._generations[index] != handle.generation:
            return False
        return self._payloads[index] is not None

    def get(self, handle: Handle | None) -> T | None:
        """有効な Handle の payload を返す。無効なら None を返す。"""

        if not self.is_live(handle):
            return None
        assert handle is not None
        return self._payloads[handle.index]

    def release(self, handle: Handle | None) -> bool:
        """Handle を解放して True を返す。既に無効なら False を返す。"""

        if not self.is_live(handle):
            return False
        assert handle is not None
        self._payloads[handle.index] = None
        self._generations[handle.index] += 1
        self._free.append(handle.index)
        self._live -= 1
        return True

    def close(self) -> int:
        """全スロットを解放し、解放した件数を返す。2 回目以降は 0 を返す。"""

        if self._closed:
            return 0
        released = self._live
        for index, payload in enumerate(self._payloads):
            if payload is not None:
                self._payloads[index] = None
                self._generations[index] += 1
        self._free.clear()
        self._live = 0
        self._closed = True
        return released


__all__ = ["Handle", "HandleArena"]
