from __future__ import annotations

from .cli import main as main
from .discovery import (
    discover_interpreters,
    find_interpreter,
    get_python_version,
    latest,
    select_interpreter,
)
from .environment import PythonEnvironment
from .errors import (
    AlreadyExistsError,
    CommandError,
    DependencyParseError,
    MetadataFileFoundError,
    MetadataNotFoundError,
    MetadataParseError,
    NotFoundError,
    PackageVersionNotFoundError,
    PydepotError,
    PythonEnvironmentNotFoundError,
    PythonNotFoundError,
)
from .metadata import LocalMetadata
from .models import CommandResult, InstalledPackage, InstallOptions, Interpreter
from .ops import (
    add_project_dependencies,
    add_project_optional_dependencies,
    display_project_version,
    clean_project,
    ensure_tools,
    init_app_project,
    init_lib_project,
    install_project_dependencies,
    list_python,
    remove_project_dependencies,
    update_project_dependencies,
    use_python,
)
from .requirements import Dependency, dependency_iter, normalize_name, parse_dependency
from .runner import CommandRunner, SubprocessRunner
from .workspace import Config, Workspace, find_workspace_root

__version__ = "0.1.0"

__all__ = [
    "AlreadyExistsError",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "Config",
    "Dependency",
    "DependencyParseError",
    "InstallOptions",
    "InstalledPackage",
    "Interpreter",
    "LocalMetadata",
    "MetadataFileFoundError",
    "MetadataNotFoundError",
    "MetadataParseError",
    "NotFoundError",
    "PackageVersionNotFoundError",
    "PydepotError",
    "PythonEnvironment",
    "PythonEnvironmentNotFoundError",
    "PythonNotFoundError",
    "SubprocessRunner",
    "Workspace",
    "add_project_dependencies",
    "add_project_optional_dependencies",
    "dependency_iter",
    "discover_interpreters",
    "display_project_version",
    "clean_project",
    "ensure_tools",
    "find_interpreter",
    "find_workspace_root",
    "get_python_version",
    "init_app_project",
    "init_lib_project",
    "install_project_dependencies",
    "latest",
    "list_python",
    "main",
    "normalize_name",
    "parse_dependency",
    "remove_project_dependencies",
    "select_interpreter",
    "update_project_dependencies",
    "use_python",
]
