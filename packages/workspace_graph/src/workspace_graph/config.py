from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from workspace_graph.manifest import MANIFEST_FILENAME, ManifestParseError, WorkspaceError, read_json_object
from workspace_graph.pathing import WORKSPACE_MARKER
from workspace_graph.scan import DEFAULT_CATEGORIES, ModuleRecord, WorkspaceCategory

CATEGORY_TYPES: dict[str, str] = {"packages": "package"}
DEFAULT_MODULE_DIRS: tuple[str, ...] = ("packages", "tools")

_GLOB_CHARS = set("*?[]{}")


class WorkspaceConfigError(WorkspaceError):
    pass


@dataclass(frozen=True)
class WorkspaceConfig:
    root: Path
    categories: tuple[WorkspaceCategory, ...] = DEFAULT_CATEGORIES
    module_dirs: tuple[str, ...] = DEFAULT_MODULE_DIRS
    apps_dir: str = "apps"
    typescript_dir: str = "packages"
    scope: str | None = None

    def with_scope(self, scope: str | None) -> WorkspaceConfig:
        return replace(self, scope=scope)


def get_scope(root: Path) -> str | None:
    """Return the npm scope of the workspace, derived from the root ``package.json`` name.

    ``@acme/repo`` yields ``@acme``; an unscoped ``repo`` yields ``@repo``.
    """

    manifest_path = root / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return None
    try:
        data = read_json_object(manifest_path)
    except ManifestParseError:
        return None
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    name = name.strip()
    if name.startswith("@"):
        return name.split("/", maxsplit=1)[0]
    return "@" + name


def filter_by_scope(modules: Iterable[ModuleRecord], scope: str | None) -> list[ModuleRecord]:
    if scope is None:
        return list(modules)
    prefix = scope + "/"
    return [m for m in modules if m.name.startswith(prefix)]


def category_dirs_from_globs(globs: Sequence[Any]) -> list[str]:
    """Reduce pnpm workspace globs (``apps/*``, ``packages/**``) to their top-level directories."""

    out: list[str] = []
    for raw in globs:
        if not isinstance(raw, str):
            continue
        pattern = raw.strip().strip("'\"")
        if not pattern or pattern.startswith("!"):
            continue
        parts = PurePosixPath(pattern.removeprefix("./")).parts
        if not parts or parts[0] in {".", ".."} or _GLOB_CHARS & set(parts[0]):
            continue
        if parts[0] not in out:
            out.append(parts[0])
    return out


def _load_workspace_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise WorkspaceConfigError(f"Failed to read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise WorkspaceConfigError(f"Failed to parse {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise WorkspaceConfigError(f"Invalid {path.name}: expected a mapping at the top level")
    return raw


def load_workspace_config(root: Path) -> WorkspaceConfig:
    root = root.resolve()
    categories = DEFAULT_CATEGORIES
    workspace_yaml = root / WORKSPACE_MARKER
    if workspace_yaml.is_file():
        data = _load_workspace_yaml(workspace_yaml)
        globs = data.get("packages")
        if globs is not None and not isinstance(globs, list):
            raise WorkspaceConfigError(f"Invalid {WORKSPACE_MARKER}: `packages` must be a list of globs")
        dirs = category_dirs_from_globs(globs or [])
        if dirs:
            categories = tuple(WorkspaceCategory(d, type=CATEGORY_TYPES.get(d)) for d in dirs)
    return WorkspaceConfig(root=root, categories=categories, scope=get_scope(root))
