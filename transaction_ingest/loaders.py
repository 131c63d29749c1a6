"""File loaders shared by CLI commands.

Mapped rows are read from JSON (an array of objects, or a single object) or
from JSON Lines. Resolver lookup tables are flat JSON objects.
"""

from __future__ import annotations

import json
from os import PathLike
from pathlib import Path
from typing import Any

from .models import ForeignId


def load_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Return the mapped rows stored at ``path``.

    Raises ``ValueError`` when the content is neither a JSON array/object nor
    JSON Lines of objects.
    """

    txt = Path(path).read_text(encoding="utf-8")
    if not txt.strip():
        return []
    try:
        data = json.loads(txt)
    except json.JSONDecodeError:
        rows: list[Any] = []
        for lineno, line in enumerate(txt.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ValueError(f"line {lineno}: {exc.msg}") from exc
    else:
        if isinstance(data, dict):
            rows = [data]
        elif isinstance(data, list):
            rows = data
        else:
            raise ValueError("unsupported JSON structure; expected an array or object")

    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"row {i} is not a JSON object")
    return rows


def load_id_map(path: str | PathLike[str]) -> dict[str, ForeignId]:
    """Return a ``remote id -> in-house id`` table from a JSON object file."""

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    out: dict[str, ForeignId] = {}
    for k, v in data.items():
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValueError(f"{path}: value for {k!r} must be a string or integer")
        out[str(k)] = v
    return out


__all__ = ["load_id_map", "load_rows"]
