"""Tests for running commands."""

import os
import signal

import pytest

from prbackport.git import Command
from prbackport.process import (
    CommandFailed,
    Error,
    ExitKind,
    ExitStatus,
    Finished,
    execute,
    run,
    run_commands,
)


def test_execute_captures_output(tmp_path):
    result = execute(str(tmp_path), "echo out; echo err >&2")

    assert isinstance(result, Finished)
    assert result.status == ExitStatus(ExitKind.EXITED, 0)
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


def test_execute_runs_in_given_directory(tmp_path):
    result = execute(str(tmp_path), "pwd")
    assert os.path.realpath(result.stdout.strip()) == os.path.realpath(tmp_path)


def test_execute_prints_diagnostic(tmp_path, capsys):
    execute(str(tmp_path), "true")
    assert f"Executing true in {tmp_path}" in capsys.readouterr().err


def test_cwd_unchanged_after_success(tmp_path):
    before = os.getcwd()
    execute(str(tmp_path), "true")
    assert os.getcwd() == before


def test_cwd_unchanged_after_spawn_failure(tmp_path):
    before = os.getcwd()
    result = execute(str(tmp_path / "missing"), "true")
    assert isinstance(result, Error)
    assert os.getcwd() == before


def test_execute_reports_nonzero_exit(tmp_path):
    result = execute(str(tmp_path), "exit 3")
    assert result.status == ExitStatus(ExitKind.EXITED, 3)
    assert not result.status.ok


def test_execute_reports_signal(tmp_path):
    result = execute(str(tmp_path), "kill -9 $$")
    assert result.status == ExitStatus(ExitKind.SIGNALED, signal.SIGKILL)


def test_execute_uses_explicit_environment(tmp_path):
    result = execute(str(tmp_path), 'echo "$PRBACKPORT_TEST"', env={"PRBACKPORT_TEST": "hello"})
    assert result.stdout == "hello\n"


def test_log_file_is_appended(tmp_path):
    log = tmp_path / "run.log"
    execute(str(tmp_path), "echo first; echo first-err >&2", log_path=str(log))
    execute(str(tmp_path), "echo second", log_path=str(log))

    content = log.read_text()
    assert sum(line.startswith("# ") for line in content.splitlines()) == 2
    assert content.index("first\n") < content.index("first-err\n") < content.index("second\n")


def test_no_log_file_without_path(tmp_path):
    execute(str(tmp_path), "echo hi")
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize(
    "status, expected",
    [
        (0, ExitStatus(ExitKind.EXITED, 0)),
        (3 << 8, ExitStatus(ExitKind.EXITED, 3)),
        (9, ExitStatus(ExitKind.SIGNALED, 9)),
        ((19 << 8) | 0x7F, ExitStatus(ExitKind.STOPPED, 19)),
    ],
)
def test_exit_status_from_wait_status(status, expected):
    assert ExitStatus.from_wait_status(status) == expected


@pytest.mark.parametrize(
    "status",
    [
        ExitStatus(ExitKind.EXITED, 1),
        ExitStatus(ExitKind.SIGNALED, 0),
        ExitStatus(ExitKind.STOPPED, 0),
    ],
)
def test_only_clean_exit_is_ok(status):
    assert not status.ok
    assert ExitStatus(ExitKind.EXITED, 0).ok


def test_run_succeeds_on_zero_exit(tmp_path):
    run(str(tmp_path), "true", log_path=None)


def test_run_fails_with_exit_code(tmp_path):
    with pytest.raises(CommandFailed) as excinfo:
        run(str(tmp_path), "exit 4", log_path=None)

    assert excinfo.value.cmd == "exit 4"
    assert excinfo.value.status == ExitStatus(ExitKind.EXITED, 4)
    assert str(excinfo.value) == "Command failed: exit 4 (exit code 4)"


def test_run_fails_on_signal(tmp_path):
    with pytest.raises(CommandFailed, match="killed by signal 9"):
        run(str(tmp_path), "kill -9 $$", log_path=None)


def test_run_fails_when_command_cannot_start(tmp_path):
    with pytest.raises(CommandFailed, match="could not run") as excinfo:
        run(str(tmp_path / "missing"), "true", log_path=None)
    assert excinfo.value.status is None


def test_run_appends_to_log(tmp_path):
    log = tmp_path / "prdup.log"
    run(str(tmp_path), "echo one", log_path=str(log))
    run(str(tmp_path), "echo two", log_path=str(log))
    assert log.read_text().index("one\n") < log.read_text().index("two\n")


def test_run_commands_in_order():
    calls = []
    run_commands(
        [Command("/a", "first"), Command("/b", "second"), Command("/a", "third")],
        run=lambda path, cmd: calls.append((path, cmd)),
    )
    assert calls == [("/a", "first"), ("/b", "second"), ("/a", "third")]


def test_run_commands_stops_at_first_failure():
    calls = []

    def fake_run(path, cmd):
        calls.append(cmd)
        if cmd == "second":
            raise CommandFailed(cmd, ExitStatus(ExitKind.EXITED, 1))

    with pytest.raises(CommandFailed):
        run_commands(
            [Command("/a", "first"), Command("/a", "second"), Command("/a", "third")],
            run=fake_run,
        )
    assert calls == ["first", "second"]


def test_execute_tolerates_non_utf8_output(tmp_path):
    log = tmp_path / "run.log"
    result = execute(str(tmp_path), "printf 'caf\\351\\n'", log_path=str(log))

    assert isinstance(result, Finished)
    assert result.status.ok
    assert result.stdout == "caf�\n"
    assert "caf�\n" in log.read_text(encoding="utf-8")


def test_unwritable_log_is_an_error(tmp_path):
    result = execute(str(tmp_path), "echo hi", log_path=str(tmp_path / "nodir" / "x.log"))

    assert isinstance(result, Error)
    assert "nodir" in result.reason


def test_run_fails_when_log_cannot_be_written(tmp_path):
    with pytest.raises(CommandFailed, match="could not run") as excinfo:
        run(str(tmp_path), "true", log_path=str(tmp_path / "nodir" / "x.log"))
    assert excinfo.value.status is None


@pytest.mark.parametrize(
    "kind, message",
    [
        (ExitKind.EXITED, "Command failed: c (exit code 7)"),
        (ExitKind.SIGNALED, "Command failed: c (killed by signal 7)"),
        (ExitKind.STOPPED, "Command failed: c (stopped by signal 7)"),
    ],
)
def test_command_failed_reports_status_code(kind, message):
    error = CommandFailed("c", ExitStatus(kind, 7))

    assert str(error) == message
    assert error.status.kind is kind
    assert error.status.code == 7
