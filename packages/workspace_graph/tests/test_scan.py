from __future__ import annotations

import json
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from workspace_graph.scan import (
    ScanDiagnostic,
    WorkspaceCategory,
    find_app_projects,
    find_typescript_projects,
    scan_modules,
    scan_projects,
)


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def _by_path(records: list[Any]) -> dict[str, Any]:
    return {r.path: r for r in records}


def test_scan_projects_records_only_leaf_manifest_dirs(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/web/project/package.json", {"name": "@acme/web", "scripts": {"dev": "vite"}})
    _write_json(tmp_path / "apps/web/project/nested/package.json", {"name": "@acme/nested"})
    (tmp_path / "apps/web/empty").mkdir(parents=True)

    records = scan_projects(tmp_path, ["apps"])

    assert [r.path for r in records] == ["apps/web/project"]
    assert records[0].name == "@acme/web"
    assert records[0].scripts == {"dev": "vite"}
    assert records[0].type == "web"


def test_scan_projects_infers_type_from_parent_directory(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/mobile/customerApp/package.json", {"name": "customer"})
    _write_json(tmp_path / "apps/mobile/store/admin/package.json", {"name": "admin"})
    _write_json(tmp_path / "apps/site/package.json", {"name": "site"})

    records = _by_path(scan_projects(tmp_path, ["apps"]))

    assert records["apps/mobile/customerApp"].type == "mobile"
    assert records["apps/mobile/store/admin"].type == "store"
    assert records["apps/site"].type == "apps"


def test_scan_projects_uses_fixed_category_type(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/web/project/package.json", {"name": "web"})
    _write_json(tmp_path / "packages/ui/button/package.json", {"name": "@acme/button"})

    records = scan_projects(
        tmp_path,
        [WorkspaceCategory("apps"), WorkspaceCategory("packages", type="package")],
    )

    assert [(r.path, r.type) for r in records] == [
        ("apps/web/project", "web"),
        ("packages/ui/button", "package"),
    ]


def test_scan_projects_falls_back_to_path_for_missing_name(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/web/anon/package.json", {"scripts": {"build": "tsc"}})

    [record] = scan_projects(tmp_path, ["apps"])

    assert record.name == "apps/web/anon"
    assert record.scripts == {"build": "tsc"}


def test_scan_projects_skips_malformed_manifest_and_keeps_siblings(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/web/good/package.json", {"name": "good"})
    broken = tmp_path / "apps/web/broken/package.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("{not json", encoding="utf-8")
    _write_json(tmp_path / "apps/web/broken/inner/package.json", {"name": "inner"})

    diagnostics: list[ScanDiagnostic] = []
    records = scan_projects(tmp_path, ["apps"], diagnostics=diagnostics)

    assert [r.name for r in records] == ["good"]
    assert len(diagnostics) == 1
    assert diagnostics[0].path == "apps/web/broken/package.json"


def test_scan_projects_missing_category_is_empty(tmp_path: Path) -> None:
    assert scan_projects(tmp_path, ["apps", "packages"]) == []
    assert scan_projects(tmp_path / "does-not-exist", ["apps"]) == []


def test_scan_projects_ignores_node_modules(tmp_path: Path) -> None:
    _write_json(tmp_path / "packages/node_modules/dep/package.json", {"name": "dep"})
    _write_json(tmp_path / "packages/core/package.json", {"name": "core"})

    records = scan_projects(tmp_path, ["packages"])

    assert [r.name for r in records] == ["core"]


def test_scan_projects_paths_are_unique(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/a/x/package.json", {"name": "same"})
    _write_json(tmp_path / "apps/b/x/package.json", {"name": "same"})

    records = scan_projects(tmp_path, ["apps"])

    assert sorted(r.path for r in records) == ["apps/a/x", "apps/b/x"]
    assert {r.name for r in records} == {"same"}


def test_scan_modules_returns_dirs_relative_to_root(tmp_path: Path) -> None:
    _write_json(tmp_path / "packages/ui/button/package.json", {"name": "@acme/button"})
    _write_json(tmp_path / "packages/utils/package.json", {"name": "@acme/utils"})
    _write_json(tmp_path / "tools/eslint/package.json", {})

    modules = scan_modules(tmp_path, "packages") + scan_modules(tmp_path, "tools")

    assert {(m.name, m.dir) for m in modules} == {
        ("@acme/button", "packages/ui/button"),
        ("@acme/utils", "packages/utils"),
        ("tools/eslint", "tools/eslint"),
    }


def test_find_app_projects_skips_native_dirs(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/web/project/tsconfig.json", {})
    _write_json(tmp_path / "apps/mobile/ios/tsconfig.json", {})
    _write_json(tmp_path / "apps/mobile/customer/tsconfig.json", {})

    found = find_app_projects(tmp_path)

    assert found == [tmp_path / "apps/mobile/customer", tmp_path / "apps/web/project"]


def test_find_typescript_projects_honors_composite_flag(tmp_path: Path) -> None:
    _write_json(tmp_path / "packages/a/package.json", {"name": "@acme/a"})
    _write_json(tmp_path / "packages/a/tsconfig.json", {"compilerOptions": {"composite": True}})
    _write_json(tmp_path / "packages/b/package.json", {"name": "@acme/b"})
    _write_json(tmp_path / "packages/b/tsconfig.json", {"compilerOptions": {"composite": False}})
    _write_json(tmp_path / "packages/group/c/package.json", {})
    _write_json(tmp_path / "packages/group/c/tsconfig.json", {})

    projects = find_typescript_projects(tmp_path)

    assert [(p.name, p.path) for p in projects] == [
        ("@acme/a", "./packages/a"),
        ("group/c", "./packages/group/c"),
    ]


def test_find_typescript_projects_reports_parse_errors(tmp_path: Path) -> None:
    _write_json(tmp_path / "packages/a/package.json", {"name": "@acme/a"})
    (tmp_path / "packages/a/tsconfig.json").write_text("{ // comment\n}", encoding="utf-8")

    diagnostics: list[ScanDiagnostic] = []
    assert find_typescript_projects(tmp_path, diagnostics=diagnostics) == []
    assert [d.path for d in diagnostics] == ["packages/a/tsconfig.json"]


def test_scan_projects_skips_manifest_with_invalid_utf8(tmp_path: Path) -> None:
    _write_json(tmp_path / "apps/web/good/package.json", {"name": "good"})
    bad = tmp_path / "apps/web/bad/package.json"
    bad.parent.mkdir(parents=True)
    bad.write_bytes(b'{"name": "\xff\xfe"}')

    diagnostics: list[ScanDiagnostic] = []
    records = scan_projects(tmp_path, ["apps"], diagnostics=diagnostics)

    assert [r.name for r in records] == ["good"]
    assert [d.path for d in diagnostics] == ["apps/web/bad/package.json"]
    assert "invalid UTF-8" in diagnostics[0].message


def test_scan_projects_reports_unreadable_directory_and_keeps_siblings(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_json(tmp_path / "apps/web/good/package.json", {"name": "good"})
    (tmp_path / "apps/locked/inner").mkdir(parents=True)
    original_iterdir = Path.iterdir

    def _iterdir(self: Path) -> Iterator[Path]:
        if self.name == "locked":
            raise PermissionError(13, "Permission denied")
        return original_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", _iterdir)

    diagnostics: list[ScanDiagnostic] = []
    records = scan_projects(tmp_path, ["apps"], diagnostics=diagnostics)

    assert [r.name for r in records] == ["good"]
    assert diagnostics == [ScanDiagnostic(path="apps/locked", message="unreadable directory (Permission denied)")]


def test_scan_projects_does_not_follow_symlinked_directories(tmp_path: Path) -> None:
    _write_json(tmp_path / "elsewhere/linked/package.json", {"name": "linked"})
    _write_json(tmp_path / "apps/web/real/package.json", {"name": "real"})
    try:
        os.symlink(tmp_path / "elsewhere", tmp_path / "apps/web/alias", target_is_directory=True)
    except OSError:
        pytest.skip("symlinks are not supported on this filesystem")

    records = scan_projects(tmp_path, ["apps"])

    assert [r.name for r in records] == ["real"]
