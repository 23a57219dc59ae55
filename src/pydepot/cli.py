from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from . import ops
from .config import (
    add_python_search_path,
    load_cached_interpreters,
    load_python_search_paths,
    save_cached_interpreters,
)
from .errors import PydepotError
from .models import InstallOptions, Interpreter
from .reporting import format_dependencies, format_interpreters, interpreters_to_json
from .workspace import Config


LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pydepot",
        description="Manage a Python project's dependencies and virtual environment.",
        epilog="Arguments after a bare '--' are passed through to pip.",
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="Project directory. Defaults to the nearest directory containing pyproject.toml.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Set the logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Add dependencies to the project.")
    add.add_argument("dependencies", nargs="+")
    add.add_argument("--group", help="Optional dependency group to add to.")

    remove = commands.add_parser("remove", help="Remove dependencies from the project.")
    remove.add_argument("dependencies", nargs="+")

    update = commands.add_parser("update", help="Update dependencies (all when none are given).")
    update.add_argument("dependencies", nargs="*")

    install = commands.add_parser("install", help="Install the project's dependencies.")
    install.add_argument(
        "--groups",
        nargs="+",
        help="Optional dependency groups to install. 'required' selects only required dependencies.",
    )

    python = commands.add_parser("python", help="Manage Python interpreters.")
    python_commands = python.add_subparsers(dest="python_command", required=True)
    python_list = python_commands.add_parser("list", help="List discovered interpreters.")
    python_list.add_argument("--json", action="store_true", help="Emit results as JSON.")
    python_list.add_argument("--show-paths", action="store_true", help="Display interpreter paths.")
    python_list.add_argument("--refresh", action="store_true", help="Ignore cached interpreters.")
    python_use = python_commands.add_parser("use", help="Recreate the environment with another interpreter.")
    python_use.add_argument("version")
    search_path = python_commands.add_parser("search-path", help="Manage extra interpreter search paths.")
    search_path_commands = search_path.add_subparsers(dest="search_path_command", required=True)
    search_path_add = search_path_commands.add_parser("add", help="Add a directory to scan for interpreters.")
    search_path_add.add_argument("path", type=Path)
    search_path_commands.add_parser("list", help="List the configured search paths.")

    commands.add_parser("version", help="Display the project version.")
    commands.add_parser("show", help="Display the declared dependencies.")

    clean = commands.add_parser("clean", help="Remove build artifacts from the project.")
    clean.add_argument("--include-pycache", action="store_true", help="Also remove __pycache__ directories.")
    clean.add_argument(
        "--include-compiled-bytecode",
        action="store_true",
        help="Also remove stray *.pyc files.",
    )

    init = commands.add_parser("init", help="Write a pyproject.toml for the current directory.")
    init.add_argument("--app", action="store_true", help="Also declare a console script entry point.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    arguments, passthrough = _split_passthrough(list(sys.argv[1:] if argv is None else argv))
    parser = build_parser()
    args = parser.parse_args(arguments)
    _configure_logging(args.log_level)

    cwd = Path.cwd()
    if args.command == "init":
        root = (args.root or cwd).resolve()
        config = Config(workspace_root=root, cwd=cwd)
    else:
        config = Config.from_cwd(args.root or cwd)
    options = InstallOptions(values=tuple(passthrough))

    try:
        return _dispatch(args, config, options)
    except (PydepotError, OSError) as exc:
        LOGGER.error("%s", exc)
        return 1


def _dispatch(args: argparse.Namespace, config: Config, options: InstallOptions) -> int:
    if args.command == "add":
        if args.group:
            ops.add_project_optional_dependencies(args.dependencies, args.group, config, options)
        else:
            ops.add_project_dependencies(args.dependencies, config, options)
    elif args.command == "remove":
        ops.remove_project_dependencies(args.dependencies, config, options)
    elif args.command == "update":
        ops.update_project_dependencies(args.dependencies or None, config, options)
    elif args.command == "install":
        ops.install_project_dependencies(args.groups, config, options)
    elif args.command == "python":
        if args.python_command == "list":
            interpreters = _collect_interpreters(config, refresh=args.refresh)
            if args.json:
                print(interpreters_to_json(interpreters))
            else:
                print(format_interpreters(interpreters, include_paths=args.show_paths))
        elif args.python_command == "use":
            environment = ops.use_python(args.version, config)
            print(f"Created {environment.root}")
        elif args.search_path_command == "add":
            directory = args.path.expanduser().resolve()
            if not directory.is_dir():
                LOGGER.error("Not a directory: %s", directory)
                return 1
            add_python_search_path(str(directory))
            # Cached interpreters predate the new path.
            save_cached_interpreters([])
            print(f"Added {directory}")
        else:
            for entry in load_python_search_paths():
                print(entry)
    elif args.command == "version":
        print(ops.display_project_version(config))
    elif args.command == "show":
        print(format_dependencies(config.workspace().current_local_metadata()))
    elif args.command == "clean":
        removed = ops.clean_project(
            config,
            include_pycache=args.include_pycache,
            include_compiled_bytecode=args.include_compiled_bytecode,
        )
        print(f"Removed {len(removed)} path{'' if len(removed) == 1 else 's'}.")
    elif args.command == "init":
        if args.app:
            metadata = ops.init_app_project(config)
        else:
            metadata = ops.init_lib_project(config)
        print(f"Wrote {metadata.path}")
    return 0


def _split_passthrough(argv: List[str]) -> Tuple[List[str], List[str]]:
    if "--" not in argv:
        return argv, []
    index = argv.index("--")
    return argv[:index], argv[index + 1:]


def _configure_logging(level: str) -> None:
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(level=numeric_level, format="%(levelname)s: %(message)s")


def _collect_interpreters(config: Config, refresh: bool) -> List[Interpreter]:
    if not refresh:
        cached: List[Interpreter] = []
        for version, path in load_cached_interpreters():
            python_path = Path(path)
            if not python_path.exists():
                continue
            try:
                cached.append(Interpreter(version=Version(version), path=python_path))
            except InvalidVersion:
                continue
        if cached:
            LOGGER.info(
                "Reusing %s cached interpreter%s.",
                len(cached),
                "" if len(cached) == 1 else "s",
            )
            return cached

    interpreters = ops.list_python(config)
    save_cached_interpreters([(str(item.version), str(item.path)) for item in interpreters])
    return interpreters


if __name__ == "__main__":
    sys.exit(main())
