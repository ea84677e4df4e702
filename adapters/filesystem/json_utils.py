from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import orjson
from filelock import FileLock


def load_json(path: Path) -> dict[str, Any]:
    data = orjson.loads(path.read_bytes())
    return data if isinstance(data, dict) else {}


def dump_json_bytes(payload: Any) -> bytes:
    try:
        return orjson.dumps(payload, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS)
    except TypeError:
        return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def write_json_atomic(path: Path, payload: Any) -> None:
    """Write ``payload`` next to ``path`` and swap it in while holding ``<path>.lock``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = path.with_suffix(f"{path.suffix}.lock")
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    with FileLock(str(lock_path)):
        tmp_path.write_bytes(dump_json_bytes(payload))
        tmp_path.replace(path)
