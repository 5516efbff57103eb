# どこで: `src/immexport/export/__init__.py`。
# 何を: 出力形式（IMMX コンテナ / SVG プレビュー）の公開関数を再エクスポートする。
# なぜ: 呼び出し側が形式ごとのモジュール配置を意識せずに import できるようにするため。

from __future__ import annotations

from immexport.export.imm import ImmDocument, read_imm
from immexport.export.svg import export_frame_svg

__all__ = ["ImmDocument", "export_frame_svg", "read_imm"]
