# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DOMData serialization and output file handling."""

from __future__ import annotations

import json
import secrets
from pathlib import Path

from . import DOMData

OUTPUT_PREFIX = "simplified-"


def to_json(data: DOMData, indent: int | None = 2) -> str:
    """Serialize to JSON; absent fields are omitted, never written as null."""
    return json.dumps(data.to_dict(), ensure_ascii=False, indent=indent)


def output_filename() -> str:
    """``simplified-<8 hex>.json`` with a random suffix."""
    return f"{OUTPUT_PREFIX}{secrets.token_hex(4)}.json"


def resolve_output_path(path_str: str | None, default_dir: str | Path) -> Path:
    """Map an ``--output`` value to a file path.

    A value with a suffix (``out.json``) names the file; anything else is a
    directory that receives a generated file name. Parent directories are
    created.
    """
    target = Path(path_str) if path_str else Path(default_dir)
    if not target.suffix:
        target = target / output_filename()
    target.parent.mkdir(parents=True, exist_ok=True)
    return target


def write_json(data: DOMData, path: Path, indent: int | None = 2) -> Path:
    path.write_text(to_json(data, indent=indent), encoding="utf-8")
    return path
