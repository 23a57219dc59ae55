from __future__ import annotations

import sys
from pathlib import Path

import pytest
from packaging.version import Version

from pydepot import config, discovery
from pydepot.models import Interpreter

from conftest import FakeRunner, make_executable

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX interpreter naming")


def test_discover_scans_path_and_dedupes_by_real_path(python_bin: Path) -> None:
    real = make_executable(python_bin / "python3.11")
    (python_bin / "python3").symlink_to(real)
    other = make_executable(python_bin / "python3.12")
    make_executable(python_bin / "python3-config")
    (python_bin / "pythonista").write_text("")
    runner = FakeRunner(
        interpreters={
            str(python_bin / "python3"): "3.11.4",
            str(real): "3.11.4",
            str(other): "3.12.0",
        }
    )

    interpreters = discovery.discover_interpreters(runner, search_paths=[])

    assert [str(item.version) for item in interpreters] == ["3.11.4", "3.12.0"]
    assert [item.path.resolve() for item in interpreters] == [real.resolve(), other.resolve()]
    version_calls = [argv for argv, _, _ in runner.calls if argv[1:] == ["--version"]]
    assert len(version_calls) == 2


def test_discover_skips_candidates_that_fail_to_report(python_bin: Path) -> None:
    make_executable(python_bin / "python3")
    runner = FakeRunner(interpreters={})

    assert discovery.discover_interpreters(runner, search_paths=[]) == []


def test_discover_returns_empty_without_path(monkeypatch) -> None:
    monkeypatch.setenv("PATH", "")

    assert discovery.discover_interpreters(FakeRunner(), search_paths=[]) == []


def test_discover_uses_configured_search_paths(tmp_path, python_bin: Path) -> None:
    extra = tmp_path / "opt-python" / "bin"
    extra.mkdir(parents=True)
    candidate = make_executable(extra / "python3.10")
    config.add_python_search_path(str(extra))
    runner = FakeRunner(interpreters={str(candidate): "3.10.13"})

    interpreters = discovery.discover_interpreters(runner)

    assert interpreters == [Interpreter(version=Version("3.10.13"), path=candidate)]


def _interpreter(version: str, name: str) -> Interpreter:
    return Interpreter(version=Version(version), path=Path("/usr/bin") / name)


def test_latest_orders_by_semantic_version_and_keeps_first_on_tie() -> None:
    first = _interpreter("3.10.2", "python3.10")
    second = _interpreter("3.9.18", "python3.9")
    tie = _interpreter("3.10.2", "python3")

    assert discovery.latest([second, first, tie]) is first
    assert discovery.latest([_interpreter("3.10", "a"), _interpreter("3.9.99", "b")]).path.name == "a"
    assert discovery.latest([]) is None


def test_find_interpreter_matches_exact_or_minor_prefix() -> None:
    interpreters = [
        _interpreter("3.11.2", "python3.11"),
        _interpreter("3.11.9", "python3.11-alt"),
        _interpreter("3.12.0", "python3.12"),
    ]

    assert discovery.find_interpreter("3.11.2", interpreters).path.name == "python3.11"
    assert discovery.find_interpreter("3.11", interpreters).path.name == "python3.11-alt"
    assert discovery.find_interpreter("3.8", interpreters) is None
    assert discovery.find_interpreter("latest", interpreters) is None


def test_select_interpreter_prefers_requires_python(caplog) -> None:
    interpreters = [_interpreter("3.9.18", "python3.9"), _interpreter("3.12.0", "python3.12")]

    assert discovery.select_interpreter(interpreters, "<3.10").path.name == "python3.9"
    assert discovery.select_interpreter(interpreters, None).path.name == "python3.12"
    assert discovery.select_interpreter(interpreters, ">=4").path.name == "python3.12"
    assert any("No interpreter satisfies" in message for message in caplog.messages)


def test_get_python_version_parses_output(tmp_path) -> None:
    executable = tmp_path / "python"
    runner = FakeRunner(interpreters={str(executable): "3.12.1"})

    assert discovery.get_python_version(executable, runner) == Version("3.12.1")
    assert discovery.get_python_version(tmp_path / "missing", runner) is None


def test_interpreter_names_match_convention() -> None:
    pattern = discovery.INTERPRETER_NAME_RE

    assert pattern.match("python")
    assert pattern.match("python3")
    assert pattern.match("python3.12")
    assert not pattern.match("python3-config")
    assert not pattern.match("python3.12m")
