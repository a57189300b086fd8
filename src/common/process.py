"""Helpers for running external command-line tools.

Keeps subprocess handling in one place so VCS backends only deal with
arguments and output. Failures to start a process (missing executable,
timeout, permission problems) surface as VcsIOError; a non-zero exit code
is reported through the returned ProcessResult.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from constants import Constants
from common.logging_utils import Timer, extra_context, is_debug_enabled
from vcs.errors import VcsIOError

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+(?:\.\d+)+)")

# Keep tools from ever prompting for credentials on the terminal.
_NON_INTERACTIVE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_ASKPASS": "echo",
    "HGPLAIN": "1",
    "LC_ALL": "C",
}


@dataclass
class ProcessResult:
    """Captured result of a finished process."""

    args: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def is_success(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.args)

    def require_success(self) -> "ProcessResult":
        """Return self, or raise VcsIOError if the process failed."""
        if not self.is_success:
            raise VcsIOError(
                f"Running '{self.command_line}' failed with exit code {self.returncode}: "
                f"{self.stderr.strip() or self.stdout.strip()}"
            )
        return self


def run_command(
    args: Sequence[str],
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> ProcessResult:
    """Run a command without a shell and capture its text output.

    Args:
        args: Executable followed by its arguments.
        cwd: Working directory for the process.
        env: Extra environment variables layered over the current environment.
        timeout: Seconds to wait; defaults to Constants.COMMAND_TIMEOUT_SEC (None waits forever).

    Returns:
        ProcessResult, also for non-zero exit codes.

    Raises:
        VcsIOError: If the process cannot be started or times out.
    """
    cmd = [str(a) for a in args]
    full_env = dict(os.environ)
    full_env.update(_NON_INTERACTIVE_ENV)
    if env:
        full_env.update(env)
    if timeout is None:
        timeout = Constants.COMMAND_TIMEOUT_SEC

    with Timer() as t:
        try:
            completed = subprocess.run(  # noqa: S603
                cmd,
                cwd=cwd,
                env=full_env,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise VcsIOError(f"Running '{' '.join(cmd)}' timed out after {timeout} seconds.") from exc
        except OSError as exc:
            raise VcsIOError(f"Unable to run '{' '.join(cmd)}': {exc}") from exc

    if is_debug_enabled(logger):
        logger.debug(
            "Command finished",
            extra=extra_context(
                event="process_exit",
                component="process",
                action=cmd[0],
                target=cwd,
                outcome="success" if completed.returncode == 0 else "failure",
                returncode=completed.returncode,
                duration_ms=t.duration_ms(),
            ),
        )

    return ProcessResult(
        args=cmd,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


class CommandLineTool:
    """Mixin for backends that drive an external executable."""

    command: str = ""
    version_args: Sequence[str] = ("--version",)

    def is_in_path(self) -> bool:
        """Return True if the executable can be found on PATH."""
        return bool(self.command) and shutil.which(self.command) is not None

    def run(self, *args: str, cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> ProcessResult:
        """Run the tool with the given arguments; see run_command."""
        return run_command([self.command, *args], cwd=cwd, env=env)

    def get_version(self) -> str:
        """Return the tool's version string, or an empty string if undeterminable."""
        try:
            result = self.run(*self.version_args)
        except VcsIOError:
            return ""
        if not result.is_success:
            return ""
        match = _VERSION_RE.search(result.stdout)
        return match.group(1) if match else ""
