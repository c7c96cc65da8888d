from workspace_graph.config import (
    WorkspaceConfig,
    WorkspaceConfigError,
    filter_by_scope,
    get_scope,
    load_workspace_config,
)
from workspace_graph.dependencies import DependencySet, add_workspace_dependencies, existing_dependencies
from workspace_graph.manifest import (
    ManifestParseError,
    PackageManifest,
    WorkspaceError,
    WorkspaceWriteError,
    load_package_manifest,
)
from workspace_graph.pathing import find_workspace_root
from workspace_graph.references import (
    SyncReport,
    plan_references,
    sync_all_references,
    sync_references,
    update_root_references,
)
from workspace_graph.scan import (
    ModuleRecord,
    ProjectRecord,
    ScanDiagnostic,
    TypeScriptProject,
    WorkspaceCategory,
    find_app_projects,
    find_typescript_projects,
    scan_all_modules,
    scan_modules,
    scan_projects,
)

__all__ = [
    "DependencySet",
    "ManifestParseError",
    "ModuleRecord",
    "PackageManifest",
    "ProjectRecord",
    "ScanDiagnostic",
    "SyncReport",
    "TypeScriptProject",
    "WorkspaceCategory",
    "WorkspaceConfig",
    "WorkspaceConfigError",
    "WorkspaceError",
    "WorkspaceWriteError",
    "add_workspace_dependencies",
    "existing_dependencies",
    "filter_by_scope",
    "find_app_projects",
    "find_typescript_projects",
    "find_workspace_root",
    "get_scope",
    "load_package_manifest",
    "load_workspace_config",
    "plan_references",
    "scan_all_modules",
    "scan_modules",
    "scan_projects",
    "sync_all_references",
    "sync_references",
    "update_root_references",
]
