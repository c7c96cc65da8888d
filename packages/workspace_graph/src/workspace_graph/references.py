"""TypeScript project-reference synchronization.

Each app's ``tsconfig.json`` lists the in-workspace packages it depends on under ``references``. The list is always
recomputed from the app's ``package.json`` and fully overwritten, so repeated runs converge on identical files.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from workspace_graph.manifest import (
    MANIFEST_FILENAME,
    TSCONFIG_FILENAME,
    PackageManifest,
    WorkspaceError,
    load_package_manifest,
    load_tsconfig,
    read_json_object,
    write_json_if_changed,
)
from workspace_graph.pathing import posix_relpath, resolve_in_root
from workspace_graph.scan import ModuleRecord, ScanDiagnostic, TypeScriptProject


@dataclass
class SyncReport:
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failures: list[ScanDiagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def referenced_modules(
    root: Path,
    manifest: PackageManifest,
    modules: Iterable[ModuleRecord],
) -> list[ModuleRecord]:
    declared = manifest.dependency_names()
    return [m for m in modules if m.name in declared and (root / m.dir / TSCONFIG_FILENAME).is_file()]


def plan_references(
    root: Path,
    project_dir: Path,
    manifest: PackageManifest,
    modules: Iterable[ModuleRecord],
) -> list[dict[str, str]]:
    project_dir = resolve_in_root(root, project_dir)
    return [
        {"path": posix_relpath(root / m.dir, project_dir)}
        for m in referenced_modules(root, manifest, modules)
    ]


def sync_references(root: Path, project_dir: Path, modules: Sequence[ModuleRecord]) -> bool:
    """Rewrite ``project_dir/tsconfig.json`` so its ``references`` match the project's workspace dependencies.

    Parameters
    ----------
    root:
        Workspace root; module ``dir`` values are relative to it.
    project_dir:
        Project directory, absolute or relative to ``root``.
    modules:
        Candidate workspace modules.

    Returns
    -------
    bool
        ``True`` when at least one reference was written. A project without matching modules returns ``False``
        even though stale references were cleared. Projects missing ``package.json`` or ``tsconfig.json`` are
        left alone and return ``False``.

    Raises
    ------
    ManifestParseError
        When either file is malformed.
    WorkspaceWriteError
        When ``tsconfig.json`` cannot be written.
    """

    project_dir = resolve_in_root(root, project_dir)
    manifest_path = project_dir / MANIFEST_FILENAME
    tsconfig_path = project_dir / TSCONFIG_FILENAME
    if not manifest_path.is_file() or not tsconfig_path.is_file():
        return False

    manifest = load_package_manifest(manifest_path)
    references = plan_references(root, project_dir, manifest, modules)

    tsconfig = load_tsconfig(tsconfig_path)
    tsconfig["references"] = references
    write_json_if_changed(tsconfig_path, tsconfig)
    return bool(references)


def sync_all_references(
    root: Path,
    project_dirs: Iterable[Path],
    modules: Sequence[ModuleRecord],
) -> SyncReport:
    report = SyncReport()
    for project_dir in project_dirs:
        abs_dir = resolve_in_root(root, project_dir)
        rel = posix_relpath(abs_dir, root)
        try:
            changed = sync_references(root, abs_dir, modules)
        except WorkspaceError as exc:
            report.failures.append(ScanDiagnostic(path=rel, message=str(exc)))
            continue
        (report.updated if changed else report.unchanged).append(rel)
    return report


def root_references(selected: Iterable[TypeScriptProject]) -> list[dict[str, str]]:
    paths = sorted({p.path for p in selected})
    return [{"path": path} for path in paths]


def update_root_references(
    root: Path,
    selected: Iterable[TypeScriptProject],
    *,
    dry_run: bool = False,
) -> list[dict[str, str]]:
    """Make the root ``tsconfig.json`` a pure reference aggregator over ``selected``.

    ``files`` is cleared and ``references`` becomes the selected paths sorted lexicographically. Other keys in an
    existing file are kept. With ``dry_run`` the list is computed and returned without touching the disk.
    """

    references = root_references(selected)
    if dry_run:
        return references

    tsconfig_path = root / TSCONFIG_FILENAME
    tsconfig: dict[str, Any] = {}
    if tsconfig_path.exists():
        tsconfig = read_json_object(tsconfig_path)
    tsconfig["files"] = []
    tsconfig["references"] = references
    write_json_if_changed(tsconfig_path, tsconfig)
    return references
