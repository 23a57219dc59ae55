from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .discovery import discover_interpreters, select_interpreter
from .environment import PythonEnvironment
from .errors import MetadataNotFoundError, PythonEnvironmentNotFoundError, PythonNotFoundError
from .metadata import METADATA_FILE_NAME, LocalMetadata
from .runner import CommandRunner, SubprocessRunner


LOGGER = logging.getLogger(__name__)


def find_workspace_root(start: Path) -> Optional[Path]:
    current = Path(start).resolve()
    for directory in (current, *current.parents):
        if (directory / METADATA_FILE_NAME).is_file():
            return directory
    return None


@dataclass
class Config:
    workspace_root: Path
    cwd: Path
    runner: CommandRunner = field(default_factory=SubprocessRunner)

    @classmethod
    def from_cwd(cls, cwd: Path, runner: Optional[CommandRunner] = None) -> "Config":
        root = find_workspace_root(cwd) or Path(cwd).resolve()
        return cls(workspace_root=root, cwd=Path(cwd), runner=runner or SubprocessRunner())

    def workspace(self) -> "Workspace":
        return Workspace(self.workspace_root, self.runner)


class Workspace:
    def __init__(self, root: Path, runner: CommandRunner) -> None:
        self.root = Path(root)
        self.runner = runner

    @property
    def metadata_path(self) -> Path:
        return self.root / METADATA_FILE_NAME

    def current_local_metadata(self) -> LocalMetadata:
        return LocalMetadata.load(self.metadata_path)

    def current_python_environment(self) -> PythonEnvironment:
        return PythonEnvironment.find(self.root, self.runner)

    def resolve_python_environment(self) -> PythonEnvironment:
        try:
            return self.current_python_environment()
        except PythonEnvironmentNotFoundError:
            LOGGER.info("No Python environment in %s; creating one", self.root)
        return self.create_python_environment()

    def create_python_environment(self) -> PythonEnvironment:
        requires_python = None
        try:
            requires_python = self.current_local_metadata().requires_python
        except MetadataNotFoundError:
            pass
        interpreter = select_interpreter(discover_interpreters(self.runner), requires_python)
        if interpreter is None:
            raise PythonNotFoundError()
        return PythonEnvironment.create(self.root, interpreter, self.runner)
