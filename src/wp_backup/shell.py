"""External process execution.

Every process the tool starts (database clients, ``docker``, ``pgrep``,
``dpkg``) goes through a ``CommandRunner``.  Tests substitute a fake runner
to script tool availability and exit codes and to assert which commands were
(or were not) issued.

Usage:
    from wp_backup.shell import CommandRunner

    runner = CommandRunner(timeout=600)
    if runner.which("docker"):
        result = runner.run(["docker", "ps", "--format", "{{.Names}}"])
        names = result.stdout.splitlines()
"""

import logging
import shutil
import subprocess
from typing import IO

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class CommandRunner:
    """Blocking ``subprocess`` wrapper.

    Args:
        timeout: Default timeout in seconds for every command.  ``None``
            waits indefinitely.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def which(self, name: str) -> str | None:
        """Return the absolute path of ``name`` on PATH, or ``None``."""
        return shutil.which(name)

    def run(
        self,
        args: list[str],
        stdin: IO[bytes] | None = None,
        stdout: IO[bytes] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and wait for it to finish.

        When ``stdout`` is a file object the process writes straight into it
        and ``CommandResult.stdout`` is empty; otherwise stdout is captured
        and decoded.  Stderr is always captured.

        A missing executable is reported as return code 127 and a timeout as
        ``timed_out=True``, so probing callers never need to catch
        ``OSError`` themselves.

        Args:
            args: Argument vector; never passed through a shell.
            stdin: Optional binary file to feed to the process.
            stdout: Optional binary file receiving the process output.
            timeout: Per-call timeout overriding the runner default.

        Returns:
            ``CommandResult`` with exit status and captured text.
        """
        effective_timeout = timeout if timeout is not None else self.timeout
        # Only the program name: arguments may carry credentials
        logger.debug("Running %s", args[0])
        try:
            completed = subprocess.run(
                args,
                stdin=stdin if stdin is not None else subprocess.DEVNULL,
                stdout=stdout if stdout is not None else subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=effective_timeout,
                check=False,
            )
        except FileNotFoundError:
            return CommandResult(returncode=127, stderr=f"{args[0]}: command not found")
        except subprocess.TimeoutExpired:
            return CommandResult(
                returncode=-1,
                stderr=f"{args[0]}: timed out after {effective_timeout}s",
                timed_out=True,
            )

        return CommandResult(
            returncode=completed.returncode,
            stdout=_decode(completed.stdout) if stdout is None else "",
            stderr=_decode(completed.stderr),
        )


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def redact(text: str, *secrets: str | None) -> str:
    """Replace every non-empty secret in ``text`` with ``***``."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def last_line(text: str) -> str:
    """Last non-blank line of ``text`` (for one-line diagnostics)."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""
