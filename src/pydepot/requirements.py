"""Dependency requirement model.

A :class:`Dependency` wraps a PEP 508 requirement. Two comparisons are
available:

* ``dep == other`` is exact equality: normalised name, version specifier,
  direct URL, extras and marker must all agree.
* ``dep.matches(other)`` is identity equality: only the normalised names are
  compared, so ``Ruff``, ``ruff==0.1.0`` and ``ruff>=0.0.1`` all match.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Tuple

from packaging.requirements import InvalidRequirement, Requirement
from packaging.specifiers import SpecifierSet
from packaging.utils import canonicalize_name

from .errors import DependencyParseError

if TYPE_CHECKING:
    from .models import InstalledPackage


LOGGER = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    return canonicalize_name(name)


def importable_package_name(name: str) -> str:
    return re.sub(r"[-_.]+", "_", name).lower()


class Dependency:
    __slots__ = ("_requirement",)

    def __init__(self, requirement: Requirement) -> None:
        self._requirement = requirement

    @classmethod
    def parse(cls, text: str) -> "Dependency":
        stripped = text.strip()
        if not stripped:
            raise DependencyParseError(text, "empty dependency name")
        try:
            requirement = Requirement(_prepare_locator(stripped))
        except InvalidRequirement as exc:
            raise DependencyParseError(text, str(exc)) from exc
        return cls(requirement)

    @classmethod
    def from_installed(cls, package: "InstalledPackage") -> "Dependency":
        return cls.parse(f"{package.name}=={package.version}")

    @property
    def name(self) -> str:
        return self._requirement.name

    @property
    def canonical_name(self) -> str:
        return normalize_name(self._requirement.name)

    @property
    def importable_name(self) -> str:
        return importable_package_name(self._requirement.name)

    @property
    def specifier(self) -> SpecifierSet:
        return self._requirement.specifier

    @property
    def url(self) -> Optional[str]:
        return self._requirement.url

    @property
    def extras(self) -> FrozenSet[str]:
        return frozenset(self._requirement.extras)

    @property
    def marker(self) -> Optional[str]:
        marker = self._requirement.marker
        return str(marker) if marker is not None else None

    @property
    def version_or_url(self) -> Optional[str]:
        if self.url:
            return self.url
        specifier = str(self.specifier)
        return specifier or None

    @property
    def is_exact_pin(self) -> bool:
        if self.url:
            return False
        specs = list(self.specifier)
        return len(specs) == 1 and specs[0].operator in ("==", "===") and "*" not in specs[0].version

    def matches(self, other: "Dependency") -> bool:
        return self.canonical_name == other.canonical_name

    def pinned(self, version: str) -> "Dependency":
        return Dependency.parse(self._with_constraint(f"=={version}"))

    def unpinned(self) -> "Dependency":
        return Dependency.parse(self._with_constraint(""))

    def _with_constraint(self, constraint: str) -> str:
        text = self.name
        if self.extras:
            text += "[" + ",".join(sorted(self.extras)) + "]"
        text += constraint
        if self.marker:
            text += f"; {self.marker}"
        return text

    def _key(self) -> Tuple[str, str, Optional[str], Tuple[str, ...], Optional[str]]:
        return (
            self.canonical_name,
            str(self.specifier),
            self.url,
            tuple(sorted(normalize_name(extra) for extra in self.extras)),
            self.marker,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return str(self._requirement)

    def __repr__(self) -> str:
        return f"Dependency({str(self)!r})"


def parse_dependency(text: str) -> Dependency:
    return Dependency.parse(text)


def dependency_iter(texts: Iterable[str]) -> List[Dependency]:
    # One malformed entry aborts the whole batch.
    parsed = [Dependency.parse(text) for text in texts]
    return unique_dependencies(parsed)


def unique_dependencies(dependencies: Iterable[Dependency]) -> List[Dependency]:
    unique: List[Dependency] = []
    for dependency in dependencies:
        if any(existing.matches(dependency) for existing in unique):
            LOGGER.debug("Skipping duplicate dependency %s", dependency)
            continue
        unique.append(dependency)
    return unique


def _prepare_locator(text: str) -> str:
    name_part, separator, rest = text.partition("@")
    if not separator:
        return text
    locator, marker_separator, marker = rest.partition(";")
    locator = locator.strip()
    if not locator or "://" in locator:
        return text
    uri = Path(locator).expanduser().resolve().as_uri()
    prepared = f"{name_part.strip()} @ {uri}"
    if marker_separator:
        prepared = f"{prepared} ; {marker.strip()}"
    return prepared
