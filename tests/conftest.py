"""immexport テスト共通の fixture。"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from immexport.core.runtime_config import set_config_path
from immexport.core.sequence import ExportSequence
from immexport.core.types import ExportRequirements, SequenceType


@pytest.fixture(autouse=True)
def _isolated_runtime_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """ユーザー環境の config.yaml を探索させず、設定キャッシュも毎回捨てる。"""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    set_config_path(None)
    yield
    set_config_path(None)


@pytest.fixture
def seq() -> Iterator[ExportSequence]:
    s = ExportSequence.create(SequenceType.STILL, 30, (0.0, 0.0, 0.0), ExportRequirements())
    assert s is not None
    with s:
        yield s
