from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

MANIFEST_FILENAME = "package.json"
TSCONFIG_FILENAME = "tsconfig.json"

DEPENDENCY_SECTIONS: tuple[str, ...] = ("dependencies", "devDependencies", "peerDependencies")


class WorkspaceError(RuntimeError):
    pass


class ManifestParseError(WorkspaceError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to parse {path}: {reason}")
        self.path = path
        self.reason = reason


class WorkspaceWriteError(WorkspaceError):
    pass


@dataclass(frozen=True)
class PackageManifest:
    name: str | None = None
    scripts: dict[str, str] = field(default_factory=dict)
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)

    def section(self, key: str) -> dict[str, str]:
        if key == "dependencies":
            return self.dependencies
        if key == "devDependencies":
            return self.dev_dependencies
        if key == "peerDependencies":
            return self.peer_dependencies
        raise ValueError(f"Unknown dependency section: {key!r}")

    def dependency_names(self) -> set[str]:
        return set(self.dependencies) | set(self.dev_dependencies) | set(self.peer_dependencies)


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def read_json_object(path: Path) -> dict[str, Any]:
    """Read a JSON document that must be an object.

    Raises
    ------
    ManifestParseError
        When the file cannot be read, is not valid JSON, or its root is not an object.
    """

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestParseError(path, str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise ManifestParseError(path, f"invalid UTF-8 ({exc.reason} at byte {exc.start})") from exc
    except json.JSONDecodeError as exc:
        raise ManifestParseError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(data, dict):
        raise ManifestParseError(path, f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_package_manifest(data: dict[str, Any]) -> PackageManifest:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        name = None
    return PackageManifest(
        name=name,
        scripts=_string_map(data.get("scripts")),
        dependencies=_string_map(data.get("dependencies")),
        dev_dependencies=_string_map(data.get("devDependencies")),
        peer_dependencies=_string_map(data.get("peerDependencies")),
    )


def load_package_manifest(path: Path) -> PackageManifest:
    return parse_package_manifest(read_json_object(path))


def load_tsconfig(path: Path) -> dict[str, Any]:
    return read_json_object(path)


def is_composite(tsconfig: dict[str, Any]) -> bool:
    compiler_options = tsconfig.get("compilerOptions")
    if not isinstance(compiler_options, dict):
        return True
    return compiler_options.get("composite") is not False


def dump_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_json_if_changed(path: Path, data: dict[str, Any]) -> bool:
    """Write `data` as formatted JSON; skip the write when the bytes would not change.

    Returns
    -------
    bool
        ``True`` when the file was (re)written.
    """

    text = dump_json(data)
    try:
        if path.exists() and path.read_bytes() == text.encode("utf-8"):
            return False
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise WorkspaceWriteError(f"Failed to write {path}: {exc}") from exc
    return True
