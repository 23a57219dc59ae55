from __future__ import annotations

import json
import logging
from pathlib import Path

from packaging.version import Version

from pydepot import cli, config, workspace
from pydepot.metadata import LocalMetadata
from pydepot.models import Interpreter

from conftest import MOCK_PYPROJECT


def _project(tmp_path: Path) -> Path:
    root = tmp_path / "mock-project"
    root.mkdir()
    (root / "pyproject.toml").write_text(MOCK_PYPROJECT)
    return root


def test_cli_add_to_group_passes_installer_options(tmp_path, fake_runner, monkeypatch) -> None:
    root = _project(tmp_path)
    monkeypatch.setattr(workspace, "SubprocessRunner", lambda: fake_runner)

    exit_code = cli.main(["--root", str(root), "add", "ruff", "--group", "dev", "--", "--no-cache-dir"])

    assert exit_code == 0
    assert fake_runner.pip_calls("install")[0][4:] == ["ruff", "--no-cache-dir"]
    metadata = LocalMetadata.load(root / "pyproject.toml")
    assert [str(dep) for dep in metadata.optional_dependency_group("dev")][-1] == "ruff==0.1.0"


def test_cli_reports_errors_with_exit_code(tmp_path, caplog) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    exit_code = cli.main(["--root", str(empty), "version"])

    assert exit_code == 1
    assert any("Metadata file not found" in message for message in caplog.messages)


def test_cli_version_and_show(tmp_path, capsys) -> None:
    root = _project(tmp_path)

    assert cli.main(["--root", str(root), "version"]) == 0
    assert capsys.readouterr().out.strip() == "0.0.1"

    assert cli.main(["--root", str(root), "show"]) == 0
    output = capsys.readouterr().out
    assert "Dependencies: click==8.1.3" in output
    assert "[dev] pytest, black==22.8.0" in output


def test_cli_init_app(tmp_path) -> None:
    root = tmp_path / "fresh-app"
    root.mkdir()

    assert cli.main(["--root", str(root), "init", "--app"]) == 0
    assert LocalMetadata.load(root / "pyproject.toml").scripts == {"fresh-app": "fresh_app.main:main"}
    assert cli.main(["--root", str(root), "init"]) == 1


def test_cli_python_list_reports_and_caches(tmp_path, monkeypatch, capsys, caplog) -> None:
    root = _project(tmp_path)
    interpreters = []
    for version in ("3.11.4", "3.12.0"):
        path = tmp_path / f"python{version}"
        path.write_text("")
        interpreters.append(Interpreter(version=Version(version), path=path))
    calls = []

    def fake_list_python(_config):
        calls.append(_config)
        return interpreters

    monkeypatch.setattr(cli.ops, "list_python", fake_list_python)

    caplog.set_level(logging.INFO)
    exit_code = cli.main(["--root", str(root), "--log-level", "INFO", "python", "list", "--show-paths"])
    assert exit_code == 0
    first_output = capsys.readouterr().out
    assert "1. Python 3.11.4" in first_output
    assert f"2. Python 3.12.0 -> {interpreters[1].path}" in first_output
    assert config.load_cached_interpreters() == [
        ("3.11.4", str(interpreters[0].path)),
        ("3.12.0", str(interpreters[1].path)),
    ]

    caplog.clear()
    exit_code = cli.main(["--root", str(root), "python", "list", "--json"])
    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [item["version"] for item in payload] == ["3.11.4", "3.12.0"]
    assert len(calls) == 1
    assert any("Reusing 2 cached interpreters." in message for message in caplog.messages)

    cli.main(["--root", str(root), "python", "list", "--refresh"])
    assert len(calls) == 2


def test_cli_malformed_metadata_exits_with_error(tmp_path, caplog) -> None:
    root = tmp_path / "broken"
    root.mkdir()
    (root / "pyproject.toml").write_text("[project\nname = ")

    assert cli.main(["--root", str(root), "show"]) == 1
    assert any("Invalid metadata file" in message for message in caplog.messages)


def test_cli_clean(tmp_path, capsys) -> None:
    root = _project(tmp_path)
    (root / "dist").mkdir()
    (root / "dist" / "mock-project-0.0.1.tar.gz").write_text("")
    cache = root / "mock_project" / "__pycache__"
    cache.mkdir(parents=True)

    assert cli.main(["--root", str(root), "clean"]) == 0
    assert capsys.readouterr().out.strip() == "Removed 1 path."
    assert cache.is_dir()

    assert cli.main(["--root", str(root), "clean", "--include-pycache"]) == 0
    assert not cache.exists()


def test_cli_search_path_add_and_list(tmp_path, capsys) -> None:
    extra = tmp_path / "opt-python" / "bin"
    extra.mkdir(parents=True)
    config.save_cached_interpreters([("3.11.4", str(tmp_path / "python3.11"))])

    assert cli.main(["--root", str(tmp_path), "python", "search-path", "add", str(extra)]) == 0
    assert config.load_python_search_paths() == [str(extra.resolve())]
    assert config.load_cached_interpreters() == []
    capsys.readouterr()

    assert cli.main(["--root", str(tmp_path), "python", "search-path", "list"]) == 0
    assert capsys.readouterr().out.strip() == str(extra.resolve())

    assert cli.main(["--root", str(tmp_path), "python", "search-path", "add", str(tmp_path / "missing")]) == 1
    assert config.load_python_search_paths() == [str(extra.resolve())]
