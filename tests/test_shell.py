"""Tests for the subprocess wrapper and its text helpers."""

import sys
from pathlib import Path

from wp_backup.shell import CommandResult, CommandRunner, last_line, redact


class TestCommandResult:
    def test_ok(self) -> None:
        assert CommandResult(returncode=0).ok
        assert not CommandResult(returncode=1).ok
        assert not CommandResult(returncode=0, timed_out=True).ok


class TestCommandRunner:
    """Runs real interpreter subprocesses, no shell involved."""

    def test_captures_stdout(self) -> None:
        result = CommandRunner().run([sys.executable, "-c", "print('hello')"])
        assert result.ok
        assert result.stdout.strip() == "hello"

    def test_streams_stdout_to_file(self, tmp_path: Path) -> None:
        out_path = tmp_path / "out.bin"
        with open(out_path, "wb") as out:
            result = CommandRunner().run(
                [sys.executable, "-c", "import sys; sys.stdout.write('dump')"], stdout=out
            )
        assert result.ok
        assert result.stdout == ""
        assert out_path.read_bytes() == b"dump"

    def test_feeds_stdin(self, tmp_path: Path) -> None:
        in_path = tmp_path / "in.sql"
        in_path.write_bytes(b"SELECT 1;")
        with open(in_path, "rb") as sql:
            result = CommandRunner().run(
                [sys.executable, "-c", "import sys; print(len(sys.stdin.read()))"], stdin=sql
            )
        assert result.stdout.strip() == "9"

    def test_nonzero_exit_and_stderr(self) -> None:
        result = CommandRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
        )
        assert result.returncode == 3
        assert result.stderr == "boom"

    def test_missing_executable(self) -> None:
        result = CommandRunner().run(["wp-backup-no-such-tool"])
        assert result.returncode == 127
        assert not result.ok

    def test_timeout(self) -> None:
        runner = CommandRunner(timeout=0.2)
        result = runner.run([sys.executable, "-c", "import time; time.sleep(5)"])
        assert result.timed_out
        assert not result.ok


class TestHelpers:
    def test_redact(self) -> None:
        assert redact("user:s3cret@host", "s3cret") == "user:***@host"

    def test_redact_ignores_empty_secret(self) -> None:
        assert redact("nothing to hide", "", None) == "nothing to hide"

    def test_last_line(self) -> None:
        assert last_line("Warning: insecure\nERROR 1045\n\n") == "ERROR 1045"
        assert last_line("") == ""
