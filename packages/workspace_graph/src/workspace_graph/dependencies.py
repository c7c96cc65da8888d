from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from workspace_graph.manifest import (
    DEPENDENCY_SECTIONS,
    MANIFEST_FILENAME,
    ManifestParseError,
    load_package_manifest,
    parse_package_manifest,
    read_json_object,
    write_json_if_changed,
)
from workspace_graph.scan import ModuleRecord

WORKSPACE_PROTOCOL = "workspace:*"


@dataclass(frozen=True)
class DependencySet:
    dependencies: frozenset[str] = field(default_factory=frozenset)
    dev_dependencies: frozenset[str] = field(default_factory=frozenset)
    peer_dependencies: frozenset[str] = field(default_factory=frozenset)

    def all(self) -> frozenset[str]:
        return self.dependencies | self.dev_dependencies | self.peer_dependencies


def existing_dependencies(project_dir: Path) -> DependencySet:
    manifest_path = project_dir / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return DependencySet()
    try:
        manifest = load_package_manifest(manifest_path)
    except ManifestParseError:
        return DependencySet()
    return DependencySet(
        dependencies=frozenset(manifest.dependencies),
        dev_dependencies=frozenset(manifest.dev_dependencies),
        peer_dependencies=frozenset(manifest.peer_dependencies),
    )


def add_workspace_dependencies(
    project_dir: Path,
    modules: Iterable[ModuleRecord],
    *,
    section: str = "dependencies",
    dry_run: bool = False,
) -> list[str]:
    """Declare workspace modules as ``workspace:*`` dependencies in the project's ``package.json``.

    Modules already declared in any dependency section are skipped. Returns the names that were (or, with
    ``dry_run``, would be) added. Nothing is installed; run the package manager afterwards.
    """

    if section not in DEPENDENCY_SECTIONS:
        allowed = ", ".join(DEPENDENCY_SECTIONS)
        raise ValueError(f"Unsupported dependency section {section!r} (allowed: {allowed}).")

    manifest_path = project_dir / MANIFEST_FILENAME
    data = read_json_object(manifest_path)
    declared = parse_package_manifest(data).dependency_names()

    added: list[str] = []
    for module in modules:
        if module.name in declared or module.name in added:
            continue
        added.append(module.name)

    if not added or dry_run:
        return added

    current = data.get(section)
    entries = dict(current) if isinstance(current, dict) else {}
    for name in added:
        entries[name] = WORKSPACE_PROTOCOL
    data[section] = dict(sorted(entries.items()))
    write_json_if_changed(manifest_path, data)
    return added
