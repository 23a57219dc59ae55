from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

from .models import CommandResult


LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CommandRunner:
    """Runs an external command to completion and reports its outcome.

    Implementations must not touch the calling process's own environment:
    ``env_overrides`` only applies to the spawned process.
    """

    def run(
        self,
        argv: Sequence[PathLike],
        cwd: Optional[Path] = None,
        env_overrides: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        raise NotImplementedError


class SubprocessRunner(CommandRunner):
    def __init__(self, timeout: Optional[int] = None) -> None:
        self.timeout = timeout

    def run(
        self,
        argv: Sequence[PathLike],
        cwd: Optional[Path] = None,
        env_overrides: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        command = [str(item) for item in argv]
        env: Optional[Dict[str, str]] = None
        if env_overrides:
            env = dict(os.environ)
            env.update(env_overrides)
        LOGGER.debug("Running %s (cwd=%s)", " ".join(command), cwd)
        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                env=env,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            LOGGER.warning("Command timed out after %ss: %s", self.timeout, " ".join(command))
            return CommandResult(returncode=-1, stdout="", stderr=str(exc))
        if completed.stdout:
            LOGGER.debug("stdout: %s", completed.stdout.strip())
        if completed.stderr:
            LOGGER.debug("stderr: %s", completed.stderr.strip())
        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
