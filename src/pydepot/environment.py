from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import CommandError, PythonEnvironmentNotFoundError
from .models import CommandResult, InstalledPackage, InstallOptions, Interpreter
from .requirements import Dependency, importable_package_name, normalize_name
from .runner import CommandRunner, SubprocessRunner


LOGGER = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT_NAME = ".venv"
ENVIRONMENT_NAMES = (DEFAULT_ENVIRONMENT_NAME, "venv")
ENVIRONMENT_CONFIG_FILE = "pyvenv.cfg"


def executables_dir_name() -> str:
    return "Scripts" if sys.platform == "win32" else "bin"


def python_executable_name() -> str:
    return "python.exe" if sys.platform == "win32" else "python"


def is_environment(path: Path) -> bool:
    return (path / ENVIRONMENT_CONFIG_FILE).is_file()


class PythonEnvironment:
    def __init__(self, root: Path, runner: Optional[CommandRunner] = None) -> None:
        self.root = Path(root)
        self.runner = runner or SubprocessRunner()

    @classmethod
    def find(cls, workspace_root: Path, runner: Optional[CommandRunner] = None) -> "PythonEnvironment":
        for name in ENVIRONMENT_NAMES:
            candidate = Path(workspace_root) / name
            if is_environment(candidate):
                LOGGER.debug("Found Python environment at %s", candidate)
                return cls(candidate, runner)
        raise PythonEnvironmentNotFoundError(Path(workspace_root))

    @classmethod
    def create(
        cls,
        workspace_root: Path,
        interpreter: Interpreter,
        runner: Optional[CommandRunner] = None,
        name: str = DEFAULT_ENVIRONMENT_NAME,
    ) -> "PythonEnvironment":
        runner = runner or SubprocessRunner()
        argv = [str(interpreter.path), "-m", "venv", name]
        LOGGER.info("Creating Python environment %s with Python %s", name, interpreter.version)
        result = runner.run(argv, cwd=Path(workspace_root))
        if not result.success:
            raise CommandError(argv, result.returncode, result.stdout, result.stderr)
        return cls(Path(workspace_root) / name, runner)

    @property
    def name(self) -> str:
        return self.root.name

    @property
    def executables_dir_path(self) -> Path:
        return self.root / executables_dir_name()

    @property
    def python_path(self) -> Path:
        return self.executables_dir_path / python_executable_name()

    def site_packages_dir_path(self) -> Optional[Path]:
        if sys.platform == "win32":
            candidate = self.root / "Lib" / "site-packages"
            return candidate if candidate.is_dir() else None
        for lib_dir in ("lib", "lib64"):
            matches = sorted((self.root / lib_dir).glob("python*/site-packages"))
            if matches:
                return matches[0]
        return None

    def env_overrides(self) -> Dict[str, str]:
        paths = [str(self.executables_dir_path)]
        current = os.environ.get("PATH", "")
        if current:
            paths.append(current)
        return {
            "PATH": os.pathsep.join(paths),
            "VIRTUAL_ENV": str(self.root),
        }

    def install_packages(
        self,
        dependencies: Sequence[Dependency],
        options: Optional[InstallOptions] = None,
    ) -> None:
        if not dependencies:
            return
        self._pip(["install", *(str(dep) for dep in dependencies)], options)

    def uninstall_packages(
        self,
        dependencies: Sequence[Dependency],
        options: Optional[InstallOptions] = None,
    ) -> None:
        if not dependencies:
            return
        self._pip(["uninstall", "-y", *(dep.name for dep in dependencies)], options)

    def update_packages(
        self,
        dependencies: Sequence[Dependency],
        options: Optional[InstallOptions] = None,
    ) -> None:
        if not dependencies:
            return
        self._pip(["install", "--upgrade", *(str(dep) for dep in dependencies)], options)

    def installed_packages(self) -> List[InstalledPackage]:
        argv = [str(self.python_path), "-m", "pip", "list", "--format=json"]
        result = self._run(argv)
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            LOGGER.debug("pip list JSON parse failed for %s: %s", self.root, exc)
        else:
            return [InstalledPackage(name=item["name"], version=item["version"]) for item in data]
        argv = [str(self.python_path), "-m", "pip", "freeze"]
        result = self._run(argv)
        packages: List[InstalledPackage] = []
        for line in result.stdout.splitlines():
            if "==" not in line:
                continue
            name, version = line.split("==", 1)
            packages.append(InstalledPackage(name=name.strip(), version=version.strip()))
        return packages

    def installed_versions(self) -> Dict[str, str]:
        return {normalize_name(pkg.name): pkg.version for pkg in self.installed_packages()}

    def contains_module(self, name: str) -> bool:
        site_packages = self.site_packages_dir_path()
        if site_packages is None:
            return False
        module = importable_package_name(name)
        return (site_packages / module).is_dir() or (site_packages / f"{module}.py").is_file()

    def contains_package(self, package: InstalledPackage) -> bool:
        return self.installed_versions().get(normalize_name(package.name)) == package.version

    def _pip(self, arguments: Iterable[str], options: Optional[InstallOptions]) -> None:
        argv = [str(self.python_path), "-m", "pip", *arguments]
        if options is not None:
            argv.extend(options.values)
        self._run(argv)

    def _run(self, argv: List[str]) -> CommandResult:
        result = self.runner.run(argv, cwd=self.root.parent, env_overrides=self.env_overrides())
        if not result.success:
            raise CommandError(argv, result.returncode, result.stdout, result.stderr)
        return result

    def __repr__(self) -> str:
        return f"PythonEnvironment({str(self.root)!r})"
