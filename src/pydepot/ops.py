"""Operations that keep pyproject.toml, the project environment and the
in-memory view of a workspace in agreement.

Every mutating operation follows the same shape:

1. load a snapshot of the metadata file,
2. work out which requested dependencies actually change anything,
3. return early when nothing does,
4. run one batched pip process against the project environment,
5. read the installed set back and pin dependencies that had no constraint,
6. apply the edits to a copy of the snapshot,
7. write the file only if the copy differs from the snapshot.

Steps 5 and 6 are the ``reconcile_*`` functions below. They take plain data
and do no I/O, so they can be exercised without an environment.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .discovery import discover_interpreters, find_interpreter
from .environment import ENVIRONMENT_NAMES, PythonEnvironment
from .errors import (
    MetadataFileFoundError,
    PackageVersionNotFoundError,
    PythonEnvironmentNotFoundError,
    PythonNotFoundError,
)
from .metadata import LocalMetadata, default_entrypoint_string
from .models import InstalledPackage, InstallOptions, Interpreter
from .requirements import (
    Dependency,
    dependency_iter,
    importable_package_name,
    normalize_name,
    unique_dependencies,
)
from .workspace import Config


LOGGER = logging.getLogger(__name__)

REQUIRED_GROUP = "required"
DEV_GROUP = "dev"
DIST_DIR_NAME = "dist"


# reconciliation


def reconcile_added_dependencies(
    before: LocalMetadata,
    dependencies: Sequence[Dependency],
    installed: Iterable[InstalledPackage],
    group: Optional[str] = None,
) -> LocalMetadata:
    versions = _installed_versions(installed)
    after = before.copy()
    for dependency in dependencies:
        entry = dependency
        if dependency.version_or_url is None:
            version = versions.get(dependency.canonical_name)
            if version is not None:
                entry = dependency.pinned(version)
            else:
                LOGGER.warning("%s is not reported as installed; recording it unpinned", dependency)
        if group is None:
            after.add_dependency(entry)
        else:
            after.add_optional_dependency(entry, group)
    return after


def reconcile_removed_dependencies(
    before: LocalMetadata,
    dependencies: Sequence[Dependency],
) -> LocalMetadata:
    after = before.copy()
    groups = list(after.optional_dependencies())
    for dependency in dependencies:
        after.remove_dependency(dependency)
        for group in groups:
            after.remove_optional_dependency(dependency, group)
    return after


def reconcile_updated_dependencies(
    before: LocalMetadata,
    installed: Iterable[InstalledPackage],
    requested: Optional[Sequence[Dependency]] = None,
    batch: Optional[Sequence[Dependency]] = None,
) -> LocalMetadata:
    """Pin entries to the versions now installed.

    With ``requested`` only the matching entries are touched. Otherwise every
    unconstrained entry is pinned, and when ``batch`` is given a constrained
    entry is only re-pinned if that exact entry was handed to the installer.
    """
    versions = _installed_versions(installed)
    after = before.copy()
    for entry in after.dependencies():
        refreshed = _refreshed_entry(entry, requested, versions, batch)
        if refreshed is not None:
            after.add_dependency(refreshed)
    for group, entries in after.optional_dependencies().items():
        for entry in entries:
            refreshed = _refreshed_entry(entry, requested, versions, batch)
            if refreshed is not None:
                after.add_optional_dependency(refreshed, group)
    return after


def collect_group_dependencies(
    metadata: LocalMetadata,
    groups: Optional[Sequence[str]] = None,
) -> List[Dependency]:
    optional = metadata.optional_dependencies()
    dependencies: List[Dependency] = []
    if groups is None:
        dependencies.extend(metadata.dependencies())
        for items in optional.values():
            dependencies.extend(items)
    elif REQUIRED_GROUP in groups and REQUIRED_GROUP not in optional:
        dependencies.extend(metadata.dependencies())
    else:
        for group in groups:
            items = optional.get(group)
            if items is None:
                LOGGER.warning("No optional dependency group named %r", group)
                continue
            dependencies.extend(items)
    return unique_dependencies(dependencies)


# operations


def add_project_dependencies(
    dependencies: Sequence[str],
    config: Config,
    options: Optional[InstallOptions] = None,
) -> None:
    _add(dependencies, None, config, options)


def add_project_optional_dependencies(
    dependencies: Sequence[str],
    group: str,
    config: Config,
    options: Optional[InstallOptions] = None,
) -> None:
    _add(dependencies, group, config, options)


def remove_project_dependencies(
    dependencies: Sequence[str],
    config: Config,
    options: Optional[InstallOptions] = None,
) -> None:
    workspace = config.workspace()
    package = workspace.current_local_metadata()

    deps = [dep for dep in dependency_iter(dependencies) if package.contains_dependency_any(dep)]
    if not deps:
        LOGGER.info("Nothing to remove.")
        return

    try:
        python_env = workspace.current_python_environment()
    except PythonEnvironmentNotFoundError:
        LOGGER.info("No Python environment found; updating metadata only.")
    else:
        python_env.uninstall_packages(deps, options)

    metadata = reconcile_removed_dependencies(package, deps)
    _write_if_changed(package, metadata)


def update_project_dependencies(
    dependencies: Optional[Sequence[str]],
    config: Config,
    options: Optional[InstallOptions] = None,
) -> None:
    workspace = config.workspace()
    package = workspace.current_local_metadata()

    requested: Optional[List[Dependency]] = None
    if dependencies is None:
        targets = collect_group_dependencies(package)
    else:
        requested = [dep for dep in dependency_iter(dependencies) if package.contains_dependency_any(dep)]
        targets = [_update_target(package, dep) for dep in requested]

    if not targets:
        LOGGER.info("Nothing to update.")
        return

    python_env = workspace.resolve_python_environment()
    python_env.update_packages(targets, options)

    metadata = reconcile_updated_dependencies(
        package, python_env.installed_packages(), requested, batch=targets
    )
    _write_if_changed(package, metadata)


def install_project_dependencies(
    groups: Optional[Sequence[str]],
    config: Config,
    options: Optional[InstallOptions] = None,
) -> None:
    workspace = config.workspace()
    metadata = workspace.current_local_metadata()

    dependencies = collect_group_dependencies(metadata, groups)
    if not dependencies:
        LOGGER.info("Nothing to install.")
        return

    python_env = workspace.resolve_python_environment()
    python_env.install_packages(dependencies, options)


def ensure_tools(
    names: Sequence[str],
    config: Config,
    options: Optional[InstallOptions] = None,
    group: str = DEV_GROUP,
) -> PythonEnvironment:
    """Make helper tooling (test runners, linters, ...) available.

    Tools already importable from the environment are not reinstalled, and
    tools the metadata already declares in any form are not recorded again.
    """
    workspace = config.workspace()
    package = workspace.current_local_metadata()
    python_env = workspace.resolve_python_environment()

    tools = dependency_iter(names)
    missing = [tool for tool in tools if not python_env.contains_module(tool.name)]
    python_env.install_packages(missing, options)

    undeclared = [tool for tool in tools if not package.contains_dependency_any(tool)]
    if undeclared:
        metadata = reconcile_added_dependencies(
            package, undeclared, python_env.installed_packages(), group
        )
        _write_if_changed(package, metadata)
    return python_env


def use_python(version: str, config: Config) -> PythonEnvironment:
    interpreter = find_interpreter(version, discover_interpreters(config.runner))
    if interpreter is None:
        raise PythonNotFoundError(version)

    workspace = config.workspace()
    try:
        current = workspace.current_python_environment()
    except PythonEnvironmentNotFoundError:
        current = None
    if current is not None:
        LOGGER.info("Removing Python environment %s", current.root)
        shutil.rmtree(current.root)

    return PythonEnvironment.create(workspace.root, interpreter, config.runner)


def list_python(config: Config) -> List[Interpreter]:
    return discover_interpreters(config.runner)


def display_project_version(config: Config) -> str:
    metadata = config.workspace().current_local_metadata()
    version = metadata.project_version
    if not version:
        raise PackageVersionNotFoundError(metadata.path)
    return version


def init_lib_project(config: Config) -> LocalMetadata:
    workspace = config.workspace()
    if workspace.metadata_path.exists():
        raise MetadataFileFoundError(workspace.metadata_path)
    metadata = LocalMetadata.template(workspace.metadata_path, workspace.root.name)
    metadata.write_file()
    return metadata


def init_app_project(config: Config) -> LocalMetadata:
    metadata = init_lib_project(config)
    name = metadata.project_name
    metadata.add_script(name, default_entrypoint_string(importable_package_name(name)))
    metadata.write_file()
    return metadata


def clean_project(
    config: Config,
    include_pycache: bool = False,
    include_compiled_bytecode: bool = False,
) -> List[Path]:
    """Empty ``dist/`` and optionally drop bytecode caches.

    The project environment directories are never touched. Returns the
    removed paths.
    """
    root = config.workspace().root
    removed: List[Path] = []

    dist = root / DIST_DIR_NAME
    if dist.is_dir():
        for item in sorted(dist.iterdir()):
            _remove_path(item)
            removed.append(item)

    if include_pycache:
        for item in sorted(root.rglob("__pycache__")):
            if item.is_dir() and not _inside_environment(root, item):
                _remove_path(item)
                removed.append(item)

    if include_compiled_bytecode:
        for item in sorted(root.rglob("*.pyc")):
            if item.is_file() and not _inside_environment(root, item):
                _remove_path(item)
                removed.append(item)

    LOGGER.info("Removed %s path%s from %s", len(removed), "" if len(removed) == 1 else "s", root)
    return removed


# helpers


def _add(
    dependencies: Sequence[str],
    group: Optional[str],
    config: Config,
    options: Optional[InstallOptions],
) -> None:
    workspace = config.workspace()
    package = workspace.current_local_metadata()

    if group is None:
        declared = package.dependencies()
    else:
        declared = package.optional_dependency_group(group) or []

    everywhere = _declared_dependencies(package)

    deps: List[Dependency] = []
    for dep in dependency_iter(dependencies):
        existing = next((item for item in declared if item.matches(dep)), None)
        if existing is not None:
            if dep.version_or_url is not None and existing != dep:
                LOGGER.warning("%s is already declared as %s; use update to change it", dep.name, existing)
            continue
        elsewhere = next((item for item in everywhere if item.matches(dep)), None)
        if elsewhere is None or elsewhere == dep:
            deps.append(dep)
        elif dep.version_or_url is None:
            # Bare names take the constraint already declared in another list.
            deps.append(elsewhere)
        else:
            LOGGER.warning(
                "%s conflicts with the declared %s; use update to change it", dep, elsewhere
            )

    if not deps:
        LOGGER.info("Nothing to add.")
        return

    python_env = workspace.resolve_python_environment()
    python_env.install_packages(deps, options)

    metadata = reconcile_added_dependencies(package, deps, python_env.installed_packages(), group)
    _write_if_changed(package, metadata)


def _declared_dependencies(metadata: LocalMetadata) -> List[Dependency]:
    declared = list(metadata.dependencies())
    for items in metadata.optional_dependencies().values():
        declared.extend(items)
    return declared


def _update_target(metadata: LocalMetadata, requested: Dependency) -> Dependency:
    if requested.version_or_url is not None:
        return requested
    existing = next(
        (item for item in _declared_dependencies(metadata) if item.matches(requested)),
        requested,
    )
    if existing.is_exact_pin:
        return existing.unpinned()
    return existing


def _refreshed_entry(
    entry: Dependency,
    requested: Optional[Sequence[Dependency]],
    versions: Dict[str, str],
    batch: Optional[Sequence[Dependency]] = None,
) -> Optional[Dependency]:
    target = entry
    if requested is not None:
        match = next((dep for dep in requested if dep.matches(entry)), None)
        if match is None:
            return None
        if match.version_or_url is not None:
            target = match
    elif batch is not None and entry.version_or_url is not None and entry not in batch:
        return None
    version = versions.get(target.canonical_name)
    if version is not None and (target.version_or_url is None or target.is_exact_pin):
        return target.pinned(version)
    return target


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _inside_environment(root: Path, path: Path) -> bool:
    parts = path.relative_to(root).parts
    return bool(parts) and parts[0] in ENVIRONMENT_NAMES


def _installed_versions(installed: Iterable[InstalledPackage]) -> Dict[str, str]:
    return {normalize_name(pkg.name): pkg.version for pkg in installed}


def _write_if_changed(before: LocalMetadata, after: LocalMetadata) -> None:
    if after == before:
        LOGGER.debug("%s unchanged", before.path)
        return
    after.write_file()
