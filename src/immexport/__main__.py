# どこで: `src/immexport/__main__.py`。
# 何を: `python -m immexport` の起点。
# なぜ: CLI 本体（immexport.cli）を import だけで実行しないようにするため。

from immexport.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
