from __future__ import annotations

import json
from typing import Iterable, List, Sequence

from .metadata import LocalMetadata
from .models import Interpreter


def format_interpreters(interpreters: Sequence[Interpreter], include_paths: bool = False) -> str:
    if not interpreters:
        return "No Python interpreters were found."
    lines: List[str] = []
    for index, interpreter in enumerate(interpreters, start=1):
        line = f"{index}. Python {interpreter.version}"
        if include_paths:
            line = f"{line} -> {interpreter.path}"
        lines.append(line)
    return "\n".join(lines)


def interpreters_to_json(interpreters: Iterable[Interpreter]) -> str:
    payload = [
        {"version": str(interpreter.version), "path": str(interpreter.path)}
        for interpreter in interpreters
    ]
    return json.dumps(payload, indent=2)


def format_dependencies(metadata: LocalMetadata) -> str:
    lines = [f"{metadata.project_name or '<unnamed>'} {metadata.project_version or ''}".rstrip()]
    required = metadata.dependencies()
    lines.append("Dependencies: " + (", ".join(str(dep) for dep in required) or "<none>"))
    for group, items in metadata.optional_dependencies().items():
        lines.append(f"[{group}] " + (", ".join(str(dep) for dep in items) or "<none>"))
    return "\n".join(lines)
