# どこで: `src/immexport/__init__.py`。
# 何を: ルート `immexport` パッケージを定義し、ビルダーの公開 API を再エクスポートする。
# なぜ: import 起点を `immexport` に統一するため。

from __future__ import annotations

from immexport.core.bounds import Bounds
from immexport.core.drawing import CommittedElement, CommittedFrame, ExportDrawing
from immexport.core.element import ExportElement
from immexport.core.layer import ExportGroupLayer, ExportLayer, ExportPaintLayer, LayerKind
from immexport.core.records import AuthoringState
from immexport.core.sequence import ExportSequence
from immexport.core.types import (
    AudioType,
    BrushSectionType,
    ExportRequirements,
    PaintPoint,
    SequenceType,
    Transform,
    VisibilityType,
)
from immexport.export.imm import ImmDocument, read_imm

__all__ = [
    "AudioType",
    "AuthoringState",
    "Bounds",
    "BrushSectionType",
    "CommittedElement",
    "CommittedFrame",
    "ExportDrawing",
    "ExportElement",
    "ExportGroupLayer",
    "ExportLayer",
    "ExportPaintLayer",
    "ExportRequirements",
    "ExportSequence",
    "ImmDocument",
    "LayerKind",
    "PaintPoint",
    "SequenceType",
    "Transform",
    "VisibilityType",
    "read_imm",
]
