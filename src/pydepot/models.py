from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from packaging.version import Version

from .requirements import Dependency


@dataclass(frozen=True)
class Interpreter:
    version: Version
    path: Path

    def __str__(self) -> str:
        return f"Python {self.version} ({self.path})"


@dataclass(frozen=True)
class InstalledPackage:
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}=={self.version}"

    def to_dependency(self) -> Dependency:
        return Dependency.from_installed(self)


@dataclass(frozen=True)
class InstallOptions:
    values: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0
