import logging
from pathlib import Path

import pytest

from immexport.core.runtime_config import output_root_dir, runtime_config, set_config_path
from immexport.core.types import AudioType


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_packaged_defaults_are_loaded(tmp_path: Path):
    assert output_root_dir() == Path("data") / "output"
    cfg = runtime_config()
    assert cfg.config_path is None
    assert cfg.audio_bitrate == 96000
    assert cfg.audio_type is AudioType.OPUS
    assert cfg.frame_rate == 30
    assert cfg.log_level == logging.WARNING


def test_discovered_config_overrides_single_keys(tmp_path: Path):
    discovered = _write(
        tmp_path / ".immexport" / "config.yaml",
        "export:\n  audio_type: ogg\n",
    )

    cfg = runtime_config()
    assert cfg.config_path == discovered
    assert cfg.audio_type is AudioType.OGG
    # 同じセクションの他のキーは同梱既定値のまま
    assert cfg.audio_bitrate == 96000
    assert cfg.frame_rate == 30


def test_home_config_is_discovered(tmp_path: Path):
    discovered = _write(
        tmp_path / ".config" / "immexport" / "config.yaml",
        'paths:\n  output_dir: "./out_home"\n',
    )

    assert output_root_dir() == Path("out_home")
    assert runtime_config().config_path == discovered


def test_explicit_config_overrides_discovered_config(tmp_path: Path):
    _write(tmp_path / ".immexport" / "config.yaml", "export:\n  frame_rate: 12\n")
    explicit = _write(tmp_path / "explicit.yaml", "export:\n  frame_rate: 60\nlogging:\n  level: debug\n")
    set_config_path(explicit)

    cfg = runtime_config()
    assert cfg.config_path == explicit
    assert cfg.frame_rate == 60
    assert cfg.log_level == logging.DEBUG


def test_config_is_cached_until_path_changes(tmp_path: Path):
    first = runtime_config()
    assert runtime_config() is first

    explicit = _write(tmp_path / "explicit.yaml", "export:\n  audio_bitrate: 128000\n")
    set_config_path(explicit)
    assert runtime_config().audio_bitrate == 128000


def test_explicit_config_path_missing_raises(tmp_path: Path):
    set_config_path(tmp_path / "missing.yaml")

    with pytest.raises(FileNotFoundError):
        output_root_dir()


@pytest.mark.parametrize(
    ("text", "error"),
    [
        ("version: 2\n", RuntimeError),
        ("- a\n- b\n", RuntimeError),
        ("export:\n  audio_type: mp3\n", RuntimeError),
        ("export:\n  audio_bitrate: -1\n", ValueError),
        ("export:\n  frame_rate: fast\n", RuntimeError),
        ("logging:\n  level: loud\n", RuntimeError),
        ("paths: 3\n", RuntimeError),
    ],
)
def test_invalid_config_raises(tmp_path: Path, text: str, error: type[Exception]):
    set_config_path(_write(tmp_path / "bad.yaml", text))

    with pytest.raises(error):
        runtime_config()
