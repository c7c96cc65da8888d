"""Workspace discovery.

Every scanner walks a directory tree depth-first, visiting children sorted by name. A directory holding a
``package.json`` is a leaf: it is reported and never descended into. Directories without one are descended into.
A leaf whose manifest cannot be parsed is reported through ``diagnostics`` and its subtree is skipped.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from workspace_graph.manifest import (
    MANIFEST_FILENAME,
    TSCONFIG_FILENAME,
    ManifestParseError,
    PackageManifest,
    is_composite,
    load_package_manifest,
    load_tsconfig,
)
from workspace_graph.pathing import posix_relpath

IGNORED_DIR_NAMES: frozenset[str] = frozenset({"node_modules"})
NATIVE_APP_DIR_NAMES: frozenset[str] = frozenset({"ios", "android"})


@dataclass(frozen=True)
class ScanDiagnostic:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class WorkspaceCategory:
    dir: str
    type: str | None = None


DEFAULT_CATEGORIES: tuple[WorkspaceCategory, ...] = (
    WorkspaceCategory("apps"),
    WorkspaceCategory("packages", type="package"),
)


@dataclass(frozen=True)
class ProjectRecord:
    name: str
    path: str
    scripts: dict[str, str] = field(default_factory=dict)
    type: str = ""
    manifest: PackageManifest = field(default_factory=PackageManifest, compare=False, repr=False)


@dataclass(frozen=True)
class ModuleRecord:
    name: str
    dir: str


@dataclass(frozen=True)
class TypeScriptProject:
    name: str
    path: str
    relative_path: str


@dataclass(frozen=True)
class _ManifestDir:
    path: Path
    rel: PurePosixPath
    manifest: PackageManifest


def _subdirs(
    directory: Path,
    root: Path,
    diagnostics: list[ScanDiagnostic] | None = None,
) -> list[Path]:
    try:
        children = sorted(directory.iterdir(), key=lambda p: p.name)
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as exc:
        if diagnostics is not None:
            diagnostics.append(_diagnostic(root, directory, f"unreadable directory ({exc.strerror or exc})"))
        return []
    return [c for c in children if c.is_dir() and not c.is_symlink() and c.name not in IGNORED_DIR_NAMES]


def _diagnostic(root: Path, path: Path, message: str) -> ScanDiagnostic:
    return ScanDiagnostic(path=posix_relpath(path, root), message=message)


def _iter_manifest_dirs(
    root: Path,
    base_dir: str,
    diagnostics: list[ScanDiagnostic] | None,
) -> Iterator[_ManifestDir]:
    base = root / base_dir

    def walk(directory: Path, rel: PurePosixPath) -> Iterator[_ManifestDir]:
        for child in _subdirs(directory, root, diagnostics):
            child_rel = rel / child.name
            manifest_path = child / MANIFEST_FILENAME
            if not manifest_path.is_file():
                yield from walk(child, child_rel)
                continue
            try:
                manifest = load_package_manifest(manifest_path)
            except ManifestParseError as exc:
                if diagnostics is not None:
                    diagnostics.append(_diagnostic(root, manifest_path, exc.reason))
                continue
            yield _ManifestDir(path=child, rel=child_rel, manifest=manifest)

    yield from walk(base, PurePosixPath())


def _infer_type(category: WorkspaceCategory, rel: PurePosixPath) -> str:
    if category.type:
        return category.type
    parent = rel.parent
    if parent.name:
        return parent.name
    return PurePosixPath(category.dir).name


def scan_projects(
    root: Path,
    categories: Sequence[WorkspaceCategory | str] = DEFAULT_CATEGORIES,
    *,
    diagnostics: list[ScanDiagnostic] | None = None,
) -> list[ProjectRecord]:
    """Discover runnable projects under each category directory.

    Parameters
    ----------
    root:
        Workspace root.
    categories:
        Category directories relative to ``root``. Plain strings infer the type from the parent directory name.
    diagnostics:
        Optional list that receives one entry per skipped (malformed) manifest.

    Returns
    -------
    list[ProjectRecord]
        One record per leaf project, in category order then sorted depth-first order.
    """

    out: list[ProjectRecord] = []
    for raw in categories:
        category = WorkspaceCategory(raw) if isinstance(raw, str) else raw
        for found in _iter_manifest_dirs(root, category.dir, diagnostics):
            path = (PurePosixPath(category.dir) / found.rel).as_posix()
            out.append(
                ProjectRecord(
                    name=found.manifest.name or path,
                    path=path,
                    scripts=dict(found.manifest.scripts),
                    type=_infer_type(category, found.rel),
                    manifest=found.manifest,
                )
            )
    return out


def scan_modules(
    root: Path,
    base_dir: str,
    *,
    diagnostics: list[ScanDiagnostic] | None = None,
) -> list[ModuleRecord]:
    out: list[ModuleRecord] = []
    for found in _iter_manifest_dirs(root, base_dir, diagnostics):
        module_dir = (PurePosixPath(base_dir) / found.rel).as_posix()
        out.append(ModuleRecord(name=found.manifest.name or module_dir, dir=module_dir))
    return out


def scan_all_modules(
    root: Path,
    base_dirs: Sequence[str],
    *,
    diagnostics: list[ScanDiagnostic] | None = None,
) -> list[ModuleRecord]:
    out: list[ModuleRecord] = []
    for base_dir in base_dirs:
        out.extend(scan_modules(root, base_dir, diagnostics=diagnostics))
    return out


def find_app_projects(
    root: Path,
    base_dir: str = "apps",
    *,
    skip: frozenset[str] = NATIVE_APP_DIR_NAMES,
    diagnostics: list[ScanDiagnostic] | None = None,
) -> list[Path]:
    """Return directories under ``base_dir`` that hold a ``tsconfig.json``.

    Native platform folders (``ios``/``android``) are never entered.
    """

    def walk(directory: Path) -> list[Path]:
        found: list[Path] = []
        for child in _subdirs(directory, root, diagnostics):
            if child.name in skip:
                continue
            if (child / TSCONFIG_FILENAME).is_file():
                found.append(child)
            else:
                found.extend(walk(child))
        return found

    return walk(root / base_dir)


def find_typescript_projects(
    root: Path,
    base_dir: str = "packages",
    *,
    diagnostics: list[ScanDiagnostic] | None = None,
) -> list[TypeScriptProject]:
    """Return composite TypeScript projects eligible for the root reference aggregator."""

    def walk(directory: Path, rel: PurePosixPath) -> list[TypeScriptProject]:
        found: list[TypeScriptProject] = []
        for child in _subdirs(directory, root, diagnostics):
            child_rel = rel / child.name
            manifest_path = child / MANIFEST_FILENAME
            tsconfig_path = child / TSCONFIG_FILENAME
            if not (manifest_path.is_file() and tsconfig_path.is_file()):
                found.extend(walk(child, child_rel))
                continue
            try:
                manifest = load_package_manifest(manifest_path)
                tsconfig = load_tsconfig(tsconfig_path)
            except ManifestParseError as exc:
                if diagnostics is not None:
                    diagnostics.append(_diagnostic(root, exc.path, exc.reason))
                continue
            if not is_composite(tsconfig):
                continue
            relative_path = child_rel.as_posix()
            found.append(
                TypeScriptProject(
                    name=manifest.name or relative_path,
                    path=f"./{base_dir}/{relative_path}",
                    relative_path=relative_path,
                )
            )
        return found

    return walk(root / base_dir, PurePosixPath())
