from __future__ import annotations

import json
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

import pytest
from packaging.requirements import Requirement
from packaging.utils import canonicalize_name

from pydepot import config
from pydepot.environment import executables_dir_name, python_executable_name
from pydepot.models import CommandResult
from pydepot.requirements import importable_package_name
from pydepot.runner import CommandRunner
from pydepot.workspace import Config


MOCK_PYPROJECT = """\
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mock-project"
version = "0.0.1"
description = ""
# runtime requirements
dependencies = ["click==8.1.3"]

[project.optional-dependencies]
dev = ["pytest", "black==22.8.0"]

[tool.black]
line-length = 79
"""

PACKAGE_INDEX = {
    "black": "23.1.0",
    "click": "8.1.7",
    "mypy": "1.5.1",
    "pytest": "7.4.0",
    "requests": "2.31.0",
    "ruff": "0.1.0",
}


class FakeRunner(CommandRunner):
    """Scripted stand-in for interpreters, ``python -m venv`` and pip."""

    def __init__(
        self,
        index: Optional[Mapping[str, str]] = None,
        interpreters: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.index = {canonicalize_name(name): version for name, version in (index or PACKAGE_INDEX).items()}
        self.interpreters: Dict[str, str] = dict(interpreters or {})
        self.calls: List[Tuple[List[str], Optional[Path], Dict[str, str]]] = []
        self.installed: Dict[Path, Dict[str, Tuple[str, str]]] = {}
        self.fail_pip_with: Optional[int] = None

    def run(self, argv, cwd=None, env_overrides=None) -> CommandResult:
        command = [str(item) for item in argv]
        self.calls.append((command, cwd, dict(env_overrides or {})))
        if command[1:2] == ["--version"]:
            version = self.interpreters.get(command[0])
            if version is None:
                return CommandResult(1, "", "not a python interpreter")
            return CommandResult(0, f"Python {version}\n", "")
        if command[1:3] == ["-m", "venv"]:
            self.create_environment(Path(cwd) / command[3], command[0])
            return CommandResult(0)
        if command[1:3] == ["-m", "pip"]:
            root = Path(command[0]).parent.parent
            return self._pip(root, command[3:])
        return CommandResult(127, "", f"unknown command {command[0]}")

    def pip_calls(self, subcommand: Optional[str] = None) -> List[List[str]]:
        calls = [argv for argv, _, _ in self.calls if argv[1:3] == ["-m", "pip"]]
        if subcommand is not None:
            calls = [argv for argv in calls if argv[3] == subcommand]
        return calls

    def create_environment(self, root: Path, interpreter: str = "python") -> None:
        executables = root / executables_dir_name()
        executables.mkdir(parents=True, exist_ok=True)
        (executables / python_executable_name()).write_text("")
        (root / "pyvenv.cfg").write_text(f"home = {Path(interpreter).parent}\n")
        self._site_packages(root).mkdir(parents=True, exist_ok=True)
        self.installed.setdefault(root, {})

    def _site_packages(self, root: Path) -> Path:
        if sys.platform == "win32":
            return root / "Lib" / "site-packages"
        return root / "lib" / "python3.11" / "site-packages"

    def _pip(self, root: Path, args: List[str]) -> CommandResult:
        if self.fail_pip_with is not None and args[0] in ("install", "uninstall"):
            return CommandResult(self.fail_pip_with, "", "ERROR: pip failed")
        packages = self.installed.setdefault(root, {})
        if args[0] == "install":
            resolved = []
            for item in args[1:]:
                if item.startswith("-"):
                    continue
                requirement = Requirement(item)
                key = canonicalize_name(requirement.name)
                pinned = [spec.version for spec in requirement.specifier if spec.operator == "=="]
                version = pinned[0] if pinned else self.index.get(key)
                if version is None or (not pinned and version not in requirement.specifier):
                    return CommandResult(1, "", f"ERROR: No matching distribution found for {item}")
                resolved.append((key, requirement.name, version))
            for key, name, version in resolved:
                packages[key] = (name, version)
                (self._site_packages(root) / importable_package_name(name)).mkdir(exist_ok=True)
            return CommandResult(0, "Successfully installed\n")
        if args[0] == "uninstall":
            for item in args[1:]:
                if item.startswith("-"):
                    continue
                entry = packages.pop(canonicalize_name(item), None)
                if entry is not None:
                    shutil.rmtree(self._site_packages(root) / importable_package_name(entry[0]), ignore_errors=True)
            return CommandResult(0)
        if args[0] == "list":
            payload = [{"name": name, "version": version} for name, version in packages.values()]
            return CommandResult(0, json.dumps(payload))
        if args[0] == "freeze":
            return CommandResult(0, "\n".join(f"{name}=={version}" for name, version in packages.values()))
        return CommandResult(2, "", f"unknown pip command {args[0]}")


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    settings_path = tmp_path / "settings" / "settings.ini"
    settings_path.parent.mkdir()
    monkeypatch.setattr(config, "_config_file", lambda: settings_path)
    return settings_path


@pytest.fixture
def python_bin(tmp_path, monkeypatch) -> Path:
    directory = tmp_path / "host-bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", str(directory))
    return directory


def make_executable(path: Path) -> Path:
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


@pytest.fixture
def fake_runner(python_bin) -> FakeRunner:
    name = "python3.11.exe" if sys.platform == "win32" else "python3.11"
    interpreter = make_executable(python_bin / name)
    return FakeRunner(interpreters={str(interpreter): "3.11.4"})


@pytest.fixture
def project(tmp_path, fake_runner) -> Config:
    root = tmp_path / "mock-project"
    root.mkdir()
    (root / "pyproject.toml").write_text(MOCK_PYPROJECT)
    return Config(workspace_root=root, cwd=root, runner=fake_runner)
