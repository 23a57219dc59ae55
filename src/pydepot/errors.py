from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class PydepotError(Exception):
    """Base class for every error raised by pydepot."""


class NotFoundError(PydepotError):
    pass


class MetadataNotFoundError(NotFoundError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Metadata file not found: {path}")
        self.path = path


class PythonNotFoundError(NotFoundError):
    def __init__(self, version: Optional[str] = None) -> None:
        message = "No Python interpreter found"
        if version:
            message = f"No Python interpreter found for version {version}"
        super().__init__(message)
        self.version = version


class PythonEnvironmentNotFoundError(NotFoundError):
    def __init__(self, root: Path) -> None:
        super().__init__(f"No Python environment found in {root}")
        self.root = root


class PackageVersionNotFoundError(NotFoundError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"No project version declared in {path}")
        self.path = path


class AlreadyExistsError(PydepotError):
    pass


class MetadataFileFoundError(AlreadyExistsError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Metadata file already exists: {path}")
        self.path = path


class MetadataParseError(PydepotError, ValueError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Invalid metadata file {path}: {reason}")
        self.path = path
        self.reason = reason


class DependencyParseError(PydepotError, ValueError):
    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"Invalid dependency {text!r}: {reason}")
        self.text = text
        self.reason = reason


class CommandError(PydepotError):
    """An external process exited with a non-zero status."""

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        command = " ".join(str(item) for item in argv)
        detail = stderr.strip() or stdout.strip()
        message = f"Command failed with exit code {returncode}: {command}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
