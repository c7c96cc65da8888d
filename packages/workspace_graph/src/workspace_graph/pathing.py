from __future__ import annotations

import os
from pathlib import Path

from workspace_graph.manifest import MANIFEST_FILENAME

WORKSPACE_MARKER = "pnpm-workspace.yaml"


def find_workspace_root(start: Path | None = None) -> Path:
    cur = (start or Path.cwd()).resolve()
    for candidate in [cur, *cur.parents]:
        if (candidate / WORKSPACE_MARKER).exists():
            return candidate
    for candidate in [cur, *cur.parents]:
        if not (candidate / MANIFEST_FILENAME).exists():
            continue
        if (candidate / "apps").is_dir() or (candidate / "packages").is_dir():
            return candidate
    raise FileNotFoundError(
        "Could not find workspace root "
        f"(expected {WORKSPACE_MARKER}, or {MANIFEST_FILENAME} beside apps/ or packages/, in a parent directory)."
    )


def posix_relpath(target: Path, start: Path) -> str:
    return Path(os.path.relpath(target, start)).as_posix()


def resolve_in_root(root: Path, path: Path | str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else root / p
