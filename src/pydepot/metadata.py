from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import Array, Table

from .errors import MetadataNotFoundError, MetadataParseError
from .requirements import Dependency


LOGGER = logging.getLogger(__name__)

METADATA_FILE_NAME = "pyproject.toml"

DEFAULT_METADATA_TEMPLATE = """\
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = ""
version = "0.0.1"
description = ""
dependencies = []
"""


def default_entrypoint_string(importable_name: str) -> str:
    return f"{importable_name}.main:main"


class LocalMetadata:
    """A ``pyproject.toml`` document bound to its path on disk.

    Edits go through ``tomlkit`` so comments, ordering and tables pydepot does
    not own survive a round trip. Two instances compare equal when their
    parsed data is equal, which is what callers use to decide whether a
    write is needed.
    """

    def __init__(self, path: Path, document: tomlkit.TOMLDocument) -> None:
        self.path = Path(path)
        self._document = document

    @classmethod
    def load(cls, path: Path) -> "LocalMetadata":
        path = Path(path)
        if not path.is_file():
            raise MetadataNotFoundError(path)
        try:
            document = tomlkit.parse(path.read_text(encoding="utf-8"))
        except TOMLKitError as exc:
            raise MetadataParseError(path, str(exc)) from exc
        return cls(path, document)

    @classmethod
    def template(cls, path: Path, name: str = "") -> "LocalMetadata":
        metadata = cls(Path(path), tomlkit.parse(DEFAULT_METADATA_TEMPLATE))
        if name:
            metadata.set_project_name(name)
        return metadata

    def copy(self) -> "LocalMetadata":
        return LocalMetadata(self.path, tomlkit.parse(self.to_string()))

    def to_string(self) -> str:
        return tomlkit.dumps(self._document)

    def write_file(self) -> None:
        LOGGER.info("Writing %s", self.path)
        self.path.write_text(self.to_string(), encoding="utf-8")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalMetadata):
            return NotImplemented
        return self._document.unwrap() == other._document.unwrap()

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    # project fields

    def _project(self) -> Mapping[str, Any]:
        return self._document.get("project", {})

    def _project_table(self) -> Table:
        if "project" not in self._document:
            self._document.add("project", tomlkit.table())
        return self._document["project"]

    @property
    def project_name(self) -> str:
        return str(self._project().get("name", ""))

    def set_project_name(self, name: str) -> None:
        self._project_table()["name"] = name

    @property
    def project_version(self) -> Optional[str]:
        version = self._project().get("version")
        return str(version) if version is not None else None

    @property
    def requires_python(self) -> Optional[str]:
        value = self._project().get("requires-python")
        return str(value) if value is not None else None

    @property
    def scripts(self) -> Dict[str, str]:
        scripts = self._project().get("scripts")
        if scripts is None:
            return {}
        return {str(key): str(value) for key, value in scripts.items()}

    def add_script(self, name: str, entrypoint: str) -> None:
        project = self._project_table()
        if "scripts" not in project:
            project.add("scripts", tomlkit.table())
        project["scripts"][name] = entrypoint

    # dependencies

    def dependencies(self) -> List[Dependency]:
        return [Dependency.parse(str(item)) for item in self._project().get("dependencies", [])]

    def optional_dependencies(self) -> Dict[str, List[Dependency]]:
        table = self._project().get("optional-dependencies")
        if table is None:
            return {}
        return {
            str(group): [Dependency.parse(str(item)) for item in items]
            for group, items in table.items()
        }

    def optional_dependency_group(self, group: str) -> Optional[List[Dependency]]:
        return self.optional_dependencies().get(group)

    def add_dependency(self, dependency: Dependency) -> None:
        _add_to_array(self._dependency_array(create=True), dependency)

    def add_optional_dependency(self, dependency: Dependency, group: str) -> None:
        _add_to_array(self._group_array(group, create=True), dependency)

    def remove_dependency(self, dependency: Dependency) -> None:
        array = self._dependency_array(create=False)
        if array is not None:
            _remove_from_array(array, dependency)

    def remove_optional_dependency(self, dependency: Dependency, group: str) -> None:
        array = self._group_array(group, create=False)
        if array is not None:
            _remove_from_array(array, dependency)

    def contains_dependency(self, dependency: Dependency) -> bool:
        return dependency in self.dependencies()

    def contains_optional_dependency(self, dependency: Dependency, group: str) -> bool:
        return dependency in (self.optional_dependency_group(group) or [])

    def contains_dependency_any(self, dependency: Dependency) -> bool:
        if any(dependency.matches(item) for item in self.dependencies()):
            return True
        return any(
            dependency.matches(item)
            for items in self.optional_dependencies().values()
            for item in items
        )

    def _dependency_array(self, create: bool) -> Optional[Array]:
        project = self._project_table() if create else self._project()
        if "dependencies" not in project:
            if not create:
                return None
            project["dependencies"] = tomlkit.array()
        return project["dependencies"]

    def _group_array(self, group: str, create: bool) -> Optional[Array]:
        project = self._project_table() if create else self._project()
        if "optional-dependencies" not in project:
            if not create:
                return None
            project.add("optional-dependencies", tomlkit.table())
        table = project["optional-dependencies"]
        if group not in table:
            if not create:
                return None
            table[group] = tomlkit.array()
        return table[group]

    def __repr__(self) -> str:
        return f"LocalMetadata({str(self.path)!r})"


def _add_to_array(array: Array, dependency: Dependency) -> None:
    for index, item in enumerate(array):
        existing = Dependency.parse(str(item))
        if existing == dependency:
            return
        if existing.matches(dependency):
            LOGGER.debug("Replacing %s with %s", existing, dependency)
            array[index] = str(dependency)
            return
    array.append(str(dependency))


def _remove_from_array(array: Array, dependency: Dependency) -> None:
    for index in reversed(range(len(array))):
        if Dependency.parse(str(array[index])).matches(dependency):
            del array[index]
