"""
Run shell commands with captured output, optionally appending it to a log file.
"""

import enum
import os
import subprocess
import sys
import traceback
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

DEFAULT_LOG_PATH = "/tmp/prdup.log"


class ExitKind(enum.Enum):
    EXITED = "exited"
    SIGNALED = "signaled"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ExitStatus:
    """How a process ended: exit code, or the signal that killed/stopped it."""

    kind: ExitKind
    code: int

    @property
    def ok(self) -> bool:
        return self.kind is ExitKind.EXITED and self.code == 0

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitStatus":
        """Build from a subprocess return code (negative means killed by signal)."""
        if returncode < 0:
            return cls(ExitKind.SIGNALED, -returncode)
        return cls(ExitKind.EXITED, returncode)

    @classmethod
    def from_wait_status(cls, status: int) -> "ExitStatus":
        """
        Build from a raw os.waitpid() status.

        execute() goes through subprocess, which never reports a stopped child,
        so STOPPED only comes from here.
        """
        if os.WIFSTOPPED(status):
            return cls(ExitKind.STOPPED, os.WSTOPSIG(status))
        if os.WIFSIGNALED(status):
            return cls(ExitKind.SIGNALED, os.WTERMSIG(status))
        return cls(ExitKind.EXITED, os.WEXITSTATUS(status))

    def describe(self) -> str:
        if self.kind is ExitKind.SIGNALED:
            return f"killed by signal {self.code}"
        if self.kind is ExitKind.STOPPED:
            return f"stopped by signal {self.code}"
        return f"exit code {self.code}"


@dataclass(frozen=True)
class Finished:
    status: ExitStatus
    stdout: str
    stderr: str


@dataclass(frozen=True)
class Error:
    """The command could not be started or waited for, or its log not written."""

    reason: str


ExecutionResult = Finished | Error


class CommandFailed(RuntimeError):
    """A command did not exit normally with status 0."""

    def __init__(self, cmd: str, status: ExitStatus | None, reason: str | None = None):
        self.cmd = cmd
        self.status = status
        if status is not None:
            detail = status.describe()
        else:
            detail = f"could not run: {reason}"
        super().__init__(f"Command failed: {cmd} ({detail})")


def _append_log(log_path: str, path: str, cmd: str, *chunks: str) -> None:
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(f"# {datetime.now().isoformat(timespec='seconds')} {path}$ {cmd}\n")
        for chunk in chunks:
            f.write(chunk)


def execute(
    path: str,
    cmd: str,
    env: Mapping[str, str] | None = None,
    log_path: str | None = None,
) -> ExecutionResult:
    """
    Run cmd through the shell in directory path and capture its output.

    The working directory is handed to the child process; the caller's
    current directory is never changed. env=None inherits our environment.
    """
    print(f"Executing {cmd} in {path}", file=sys.stderr)
    try:
        result = subprocess.run(
            cmd,
            shell=True,
            cwd=path,
            env=dict(env) if env is not None else None,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )
    except (OSError, subprocess.SubprocessError, ValueError) as e:
        traceback.print_exc()
        if log_path:
            try:
                _append_log(log_path, path, cmd, f"{e}\n")
            except OSError as log_error:
                print(f"Could not write {log_path}: {log_error}", file=sys.stderr)
        return Error(str(e))

    if log_path:
        try:
            _append_log(log_path, path, cmd, result.stdout, result.stderr)
        except OSError as e:
            traceback.print_exc()
            return Error(f"could not write {log_path}: {e}")
    return Finished(ExitStatus.from_returncode(result.returncode), result.stdout, result.stderr)


def run(
    path: str,
    cmd: str,
    env: Mapping[str, str] | None = None,
    log_path: str | None = DEFAULT_LOG_PATH,
) -> None:
    """Run a command and raise CommandFailed unless it exits with status 0."""
    result = execute(path, cmd, env=env, log_path=log_path)
    if isinstance(result, Error):
        raise CommandFailed(cmd, None, result.reason)
    if not result.status.ok:
        print(result.stderr, file=sys.stderr)
        raise CommandFailed(cmd, result.status)


def run_commands(commands: Iterable, run: Callable[[str, str], None] = run) -> None:
    """Run (path, cmd) commands in order, stopping at the first failure."""
    for command in commands:
        run(command.path, command.cmd)
