#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from workspace_graph import (
    ScanDiagnostic,
    WorkspaceConfig,
    WorkspaceError,
    add_workspace_dependencies,
    existing_dependencies,
    filter_by_scope,
    find_app_projects,
    find_typescript_projects,
    find_workspace_root,
    load_package_manifest,
    load_workspace_config,
    plan_references,
    scan_all_modules,
    scan_projects,
    sync_all_references,
    update_root_references,
)
from workspace_graph.manifest import MANIFEST_FILENAME, TSCONFIG_FILENAME, load_tsconfig
from workspace_graph.pathing import posix_relpath, resolve_in_root


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _warn_diagnostics(diagnostics: list[ScanDiagnostic]) -> None:
    for diag in diagnostics:
        _eprint(f"WARNING: skipped {diag}")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _load_config(args: argparse.Namespace) -> WorkspaceConfig:
    root = args.repo_root.resolve() if args.repo_root is not None else find_workspace_root()
    config = load_workspace_config(root)
    if getattr(args, "no_scope", False):
        return config.with_scope(None)
    scope = getattr(args, "scope", None)
    if scope:
        return config.with_scope(scope)
    return config


def _cmd_projects(args: argparse.Namespace) -> int:
    config = _load_config(args)
    diagnostics: list[ScanDiagnostic] = []
    projects = scan_projects(config.root, config.categories, diagnostics=diagnostics)
    _warn_diagnostics(diagnostics)

    if args.type:
        projects = [p for p in projects if p.type == args.type]
    if args.with_script:
        projects = [p for p in projects if args.with_script in p.scripts]
    if not projects:
        _eprint("ERROR: no matching projects found.")
        return 1

    if args.json:
        _print_json([{"name": p.name, "path": p.path, "type": p.type, "scripts": p.scripts} for p in projects])
        return 0
    for proj in projects:
        print(f"[{proj.type}] {proj.name} ({proj.path})")
    return 0


def _cmd_modules(args: argparse.Namespace) -> int:
    config = _load_config(args)
    diagnostics: list[ScanDiagnostic] = []
    modules = scan_all_modules(config.root, config.module_dirs, diagnostics=diagnostics)
    _warn_diagnostics(diagnostics)

    if args.json:
        _print_json([asdict(m) for m in modules])
        return 0
    if not modules:
        _eprint(f"WARNING: no workspace modules found under {', '.join(config.module_dirs)}.")
        return 0
    for mod in modules:
        print(f"{mod.name} ({mod.dir})")
    return 0


def _cmd_sync_refs(args: argparse.Namespace) -> int:
    config = _load_config(args)
    diagnostics: list[ScanDiagnostic] = []
    project_dirs = find_app_projects(config.root, config.apps_dir, diagnostics=diagnostics)
    _warn_diagnostics(diagnostics)
    if not project_dirs:
        _eprint(f"WARNING: no projects with tsconfig.json under {config.apps_dir}/.")
        return 0

    print(f"Workspace scope: {config.scope or '<none>'}")
    module_diagnostics: list[ScanDiagnostic] = []
    modules = filter_by_scope(
        scan_all_modules(config.root, config.module_dirs, diagnostics=module_diagnostics),
        config.scope,
    )
    _warn_diagnostics(module_diagnostics)

    if args.dry_run:
        failed = 0
        for project_dir in project_dirs:
            rel = posix_relpath(project_dir, config.root)
            manifest_path = project_dir / MANIFEST_FILENAME
            if not manifest_path.is_file():
                continue
            try:
                manifest = load_package_manifest(manifest_path)
                load_tsconfig(project_dir / TSCONFIG_FILENAME)
            except WorkspaceError as exc:
                _eprint(f"ERROR: {exc}")
                failed += 1
                continue
            refs = plan_references(config.root, project_dir, manifest, modules)
            print(f"{rel}/tsconfig.json:")
            for ref in refs:
                print(f"  - {ref['path']}")
            if not refs:
                print("  (no references)")
        print("Dry run: no files were written.")
        return 1 if failed else 0

    report = sync_all_references(config.root, project_dirs, modules)
    for rel in report.updated:
        print(f"Updated references: {rel}/tsconfig.json")
    for failure in report.failures:
        _eprint(f"ERROR: {failure}")
    print(f"Updated references for {len(report.updated)} project(s).")
    return 0 if report.ok else 1


def _cmd_update_refs(args: argparse.Namespace) -> int:
    config = _load_config(args)
    diagnostics: list[ScanDiagnostic] = []
    projects = find_typescript_projects(config.root, config.typescript_dir, diagnostics=diagnostics)
    _warn_diagnostics(diagnostics)
    if not projects:
        _eprint("WARNING: no TypeScript projects found.")
        return 0

    if args.all:
        selected = projects
    else:
        by_path: dict[str, Any] = {}
        for proj in projects:
            by_path[proj.path] = proj
            by_path[proj.path.removeprefix("./")] = proj
        unknown = [p for p in args.project if p.rstrip("/") not in by_path]
        if unknown:
            _eprint(f"ERROR: not an eligible TypeScript project: {', '.join(unknown)}")
            return 1
        selected = [by_path[p.rstrip("/")] for p in args.project]

    references = update_root_references(config.root, selected, dry_run=args.dry_run)
    if args.dry_run:
        names = {p.path: p.name for p in selected}
        print("Dry run: tsconfig.json was not written. References:")
        for i, ref in enumerate(references, start=1):
            print(f"  {i}. {names[ref['path']]} ({ref['path']})")
        return 0
    print(f"Updated tsconfig.json with {len(references)} reference(s).")
    return 0


def _cmd_deps_list(args: argparse.Namespace) -> int:
    config = _load_config(args)
    project_dir = resolve_in_root(config.root, args.project)
    deps = existing_dependencies(project_dir)
    sections = {
        "dependencies": deps.dependencies,
        "devDependencies": deps.dev_dependencies,
        "peerDependencies": deps.peer_dependencies,
    }
    if args.json:
        _print_json({k: sorted(v) for k, v in sections.items()})
        return 0
    for section, names in sections.items():
        print(f"{section}:")
        for name in sorted(names):
            print(f"  {name}")
    return 0


def _cmd_deps_add(args: argparse.Namespace) -> int:
    config = _load_config(args)
    project_dir = resolve_in_root(config.root, args.project)
    modules = scan_all_modules(config.root, config.module_dirs)
    by_name = {m.name: m for m in modules}
    unknown = [name for name in args.modules if name not in by_name]
    if unknown:
        _eprint(f"ERROR: unknown workspace module(s): {', '.join(unknown)}")
        return 1

    section = "dependencies"
    if args.dev:
        section = "devDependencies"
    elif args.peer:
        section = "peerDependencies"

    already = existing_dependencies(project_dir).all()
    for name in args.modules:
        if name in already:
            print(f"Already declared: {name}")

    added = add_workspace_dependencies(
        project_dir,
        [by_name[name] for name in args.modules],
        section=section,
        dry_run=args.dry_run,
    )
    verb = "Would add" if args.dry_run else "Added"
    for name in added:
        print(f"{verb} {name} to {section}")
    if added and not args.dry_run:
        print("Run your package manager's install to link the new workspace dependencies.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workspace-refs",
        description="Inspect a JS/TS monorepo and keep tsconfig.json project references in sync.",
    )
    parser.add_argument(
        "--repo-root",
        type=Path,
        help="Workspace root (default: nearest parent with pnpm-workspace.yaml).",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    projects_p = sub.add_parser("projects", help="List projects under the workspace categories.")
    projects_p.add_argument("--type", help="Only list projects of this type (e.g. web, app, package).")
    projects_p.add_argument("--with-script", dest="with_script", help="Only list projects defining this script.")
    projects_p.add_argument("--json", action="store_true")
    projects_p.set_defaults(func=_cmd_projects)

    modules_p = sub.add_parser("modules", help="List workspace modules that can be used as dependencies.")
    modules_p.add_argument("--json", action="store_true")
    modules_p.set_defaults(func=_cmd_modules)

    sync_p = sub.add_parser("sync-refs", help="Sync each app's tsconfig.json references from package.json.")
    scope_group = sync_p.add_mutually_exclusive_group()
    scope_group.add_argument("--scope", help="Override the workspace scope (default: from root package.json).")
    scope_group.add_argument("--no-scope", dest="no_scope", action="store_true", help="Consider every module.")
    sync_p.add_argument("--dry-run", action="store_true")
    sync_p.set_defaults(func=_cmd_sync_refs)

    update_p = sub.add_parser("update-refs", help="Rewrite the root tsconfig.json as a reference aggregator.")
    sel = update_p.add_mutually_exclusive_group(required=True)
    sel.add_argument("--all", action="store_true", help="Reference every eligible TypeScript project.")
    sel.add_argument(
        "--project",
        action="append",
        default=[],
        help="Project path to reference, e.g. ./packages/ui (repeatable).",
    )
    update_p.add_argument("--dry-run", action="store_true")
    update_p.set_defaults(func=_cmd_update_refs)

    deps_p = sub.add_parser("deps", help="Workspace dependency helpers.")
    deps_sub = deps_p.add_subparsers(dest="deps_cmd", required=True)

    deps_list_p = deps_sub.add_parser("list", help="Show dependencies declared by a project.")
    deps_list_p.add_argument("project", type=Path)
    deps_list_p.add_argument("--json", action="store_true")
    deps_list_p.set_defaults(func=_cmd_deps_list)

    deps_add_p = deps_sub.add_parser("add", help="Declare workspace modules as workspace:* dependencies.")
    deps_add_p.add_argument("project", type=Path)
    deps_add_p.add_argument("modules", nargs="+")
    kind = deps_add_p.add_mutually_exclusive_group()
    kind.add_argument("--dev", action="store_true", help="Add to devDependencies.")
    kind.add_argument("--peer", action="store_true", help="Add to peerDependencies.")
    deps_add_p.add_argument("--dry-run", action="store_true")
    deps_add_p.set_defaults(func=_cmd_deps_add)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        _eprint("Cancelled.")
        return 0
    except (WorkspaceError, FileNotFoundError) as exc:
        _eprint(f"ERROR: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
