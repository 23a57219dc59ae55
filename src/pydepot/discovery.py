from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .config import load_python_search_paths
from .models import Interpreter
from .runner import CommandRunner, SubprocessRunner


LOGGER = logging.getLogger(__name__)

if sys.platform == "win32":
    INTERPRETER_NAME_RE = re.compile(r"^python(\d+(\.\d+)?)?\.exe$", re.IGNORECASE)
else:
    INTERPRETER_NAME_RE = re.compile(r"^python(\d+(\.\d+)?)?$")

VERSION_OUTPUT_RE = re.compile(r"Python\s*(\d+\.\d+(?:\.\d+)?\S*)")


def get_python_version(
    python_executable: Path,
    runner: Optional[CommandRunner] = None,
) -> Optional[Version]:
    runner = runner or SubprocessRunner(timeout=10)
    try:
        result = runner.run([python_executable, "--version"])
    except OSError as exc:
        LOGGER.warning("Python version detection failed for %s: %s", python_executable, exc)
        return None
    if not result.success:
        LOGGER.warning(
            "Python version detection failed for %s: exit code %s",
            python_executable,
            result.returncode,
        )
        return None
    output = f"{result.stdout.strip()} {result.stderr.strip()}".strip()
    match = VERSION_OUTPUT_RE.search(output)
    if not match:
        return None
    try:
        return Version(match.group(1))
    except InvalidVersion:
        LOGGER.warning("Invalid Python version %r reported by %s", match.group(1), python_executable)
        return None


def discover_interpreters(
    runner: Optional[CommandRunner] = None,
    search_paths: Optional[Sequence[str]] = None,
) -> List[Interpreter]:
    runner = runner or SubprocessRunner(timeout=10)
    directories: List[Path] = []
    for entry in os.environ.get("PATH", "").split(os.pathsep):
        if entry:
            directories.append(Path(entry))
    extra = load_python_search_paths() if search_paths is None else search_paths
    directories.extend(Path(item) for item in extra)

    candidates: List[Path] = []
    for directory in directories:
        candidates.extend(_interpreters_in_directory(directory))
    if sys.platform == "win32":
        candidates.extend(_windows_launcher_paths(runner))

    interpreters: List[Interpreter] = []
    seen: set[Path] = set()
    for candidate in candidates:
        try:
            resolved = candidate.resolve()
        except OSError:
            continue
        if resolved in seen:
            continue
        seen.add(resolved)
        version = get_python_version(candidate, runner)
        if version is None:
            LOGGER.debug("Skipping interpreter candidate %s", candidate)
            continue
        interpreters.append(Interpreter(version=version, path=candidate))
    LOGGER.info(
        "Discovered %s Python interpreter%s.",
        len(interpreters),
        "" if len(interpreters) == 1 else "s",
    )
    return interpreters


def latest(interpreters: Iterable[Interpreter]) -> Optional[Interpreter]:
    best: Optional[Interpreter] = None
    for interpreter in interpreters:
        if best is None or _release(interpreter) > _release(best):
            best = interpreter
    return best


def find_interpreter(version: str, interpreters: Sequence[Interpreter]) -> Optional[Interpreter]:
    requested = version.strip()
    for interpreter in interpreters:
        if str(interpreter.version) == requested:
            return interpreter
    parts = requested.split(".")
    if not all(part.isdigit() for part in parts):
        return None
    prefix = tuple(int(part) for part in parts)
    return latest(
        item for item in interpreters
        if _release(item)[: len(prefix)] == prefix
    )


def select_interpreter(
    interpreters: Sequence[Interpreter],
    requires_python: Optional[str] = None,
) -> Optional[Interpreter]:
    if requires_python:
        try:
            spec_set = SpecifierSet(requires_python)
        except InvalidSpecifier:
            LOGGER.warning("Ignoring invalid requires-python %r", requires_python)
        else:
            matching = [item for item in interpreters if spec_set.contains(item.version, prereleases=True)]
            if matching:
                return latest(matching)
            LOGGER.warning("No interpreter satisfies requires-python %s", requires_python)
    return latest(interpreters)


def _release(interpreter: Interpreter) -> tuple:
    release = interpreter.version.release
    return tuple(release) + (0,) * (3 - len(release))


def _interpreters_in_directory(directory: Path) -> List[Path]:
    try:
        entries = sorted(directory.iterdir())
    except OSError:
        return []
    found: List[Path] = []
    for entry in entries:
        if not INTERPRETER_NAME_RE.match(entry.name):
            continue
        if not entry.is_file():
            continue
        if sys.platform != "win32" and not os.access(entry, os.X_OK):
            continue
        found.append(entry)
    return found


def _windows_launcher_paths(runner: CommandRunner) -> List[Path]:
    try:
        result = runner.run(["py", "--list-paths"])
    except OSError:
        return []
    if not result.success:
        return []
    paths: List[Path] = []
    for line in result.stdout.splitlines():
        match = re.search(r"([A-Za-z]:\\.+?python(?:\d+(?:\.\d+)?)?\.exe)", line, re.IGNORECASE)
        if match:
            paths.append(Path(match.group(1)))
    return paths
