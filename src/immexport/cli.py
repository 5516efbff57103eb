"""
どこで: `src/immexport/cli.py`。
何を: `python -m immexport` のコマンドライン（demo / inspect / preview）を提供する。
なぜ: 例の書き出しと、書き出したファイルの中身確認をスクリプト無しで行えるようにするため。
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

from immexport.core.runtime_config import output_root_dir, runtime_config, set_config_path
from immexport.examples import EXAMPLES, export_example, new_example_sequence
from immexport.export.imm import ImmDocument, read_imm
from immexport.export.svg import export_frame_svg


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="immexport")
    p.add_argument("--config", default=None, help="config.yaml のパス（既定の探索より優先）")
    p.add_argument("-v", "--verbose", action="store_true", help="INFO 以上のログを表示する")
    sub = p.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="例のシーケンスを .imm として書き出す")
    demo.add_argument("example", choices=sorted(EXAMPLES))
    demo.add_argument("path", nargs="?", default=None, help="出力先（省略時は <output_dir>/imm/<example>.imm）")

    inspect = sub.add_parser("inspect", help=".imm ファイルの構造を表示する")
    inspect.add_argument("path")

    preview = sub.add_parser("preview", help="例のシーケンスの 1 フレームを SVG として書き出す")
    preview.add_argument("example", choices=sorted(EXAMPLES))
    preview.add_argument("path", nargs="?", default=None, help="出力先（省略時は <output_dir>/svg/<example>.svg）")
    preview.add_argument("--frame", type=int, default=0, help="描画するフレーム index")
    preview.add_argument("--size", type=int, nargs=2, default=(800, 800), metavar=("W", "H"))
    return p.parse_args(argv)


def _describe_layer(layer: dict[str, Any], depth: int, lines: list[str]) -> None:
    indent = "  " * depth
    flags = "" if layer.get("visible", True) else " hidden"
    lines.append(
        f"{indent}- [{layer['kind']}] {layer['name']} opacity={layer['opacity']:.2f}{flags}"
    )
    for frame in layer.get("frames", []):
        points = sum(int(e["point_count"]) for e in frame["elements"])
        lines.append(
            f"{indent}    frame {frame['index']}: elements={len(frame['elements'])} points={points}"
        )
    for child in layer.get("children", []):
        _describe_layer(child, depth + 1, lines)


def describe_document(doc: ImmDocument) -> str:
    """ImmDocument を人が読むための複数行テキストにして返す。"""

    seq = doc.sequence
    audio = doc.header.get("audio", {})
    lines = [
        f"type={seq['type']} frame_rate={seq['frame_rate']} caps={seq['caps']}",
        f"background={seq['background_color']} audio={audio.get('type')}@{audio.get('bitrate')}",
        f"points={doc.points.shape[0]}",
    ]
    for layer in doc.layers:
        _describe_layer(layer, 0, lines)
    return "\n".join(lines)


def _cmd_demo(args: argparse.Namespace) -> int:
    path = Path(args.path) if args.path else output_root_dir() / "imm" / f"{args.example}.imm"
    ok = export_example(args.example, path)
    if not ok:
        return 1
    print(f"[immexport] wrote: {path}")  # noqa: T201
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    try:
        doc = read_imm(args.path)
    except (OSError, ValueError) as exc:
        print(f"[immexport] cannot read {args.path}: {exc}")  # noqa: T201
        return 1
    print(describe_document(doc))  # noqa: T201
    return 0


def _cmd_preview(args: argparse.Namespace) -> int:
    path = Path(args.path) if args.path else output_root_dir() / "svg" / f"{args.example}.svg"
    seq = new_example_sequence()
    if seq is None:
        return 1
    with seq:
        if EXAMPLES[args.example](seq) is None:
            return 1
        export_frame_svg(seq, path, frame_index=args.frame, canvas_size=tuple(args.size))
    print(f"[immexport] wrote: {path}")  # noqa: T201
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.config:
        set_config_path(args.config)
    level = logging.INFO if args.verbose else runtime_config().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "demo":
        return _cmd_demo(args)
    if args.command == "inspect":
        return _cmd_inspect(args)
    return _cmd_preview(args)


__all__ = ["describe_document", "main"]
