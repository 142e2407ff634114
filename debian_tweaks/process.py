"""External process invocation with consistent error handling."""

import logging
import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from debian_tweaks.errors import CommandNotFound, StepActionError

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 5


@dataclass(frozen=True)
class CommandResult:
    argv: List[str]
    returncode: int
    stdout: str
    stderr: str
    elapsed: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def stderr_tail(stderr: str, lines: int = STDERR_TAIL_LINES) -> str:
    tail = [line for line in stderr.strip().splitlines() if line.strip()]
    return "\n".join(tail[-lines:])


class CommandRunner:
    """
    Run external commands synchronously and capture their output.

    Privileged commands are prefixed with sudo unless the process already
    runs as root.
    """

    def __init__(self, use_sudo: Optional[bool] = None):
        if use_sudo is None:
            use_sudo = os.geteuid() != 0
        self.use_sudo = use_sudo

    def build_argv(
        self,
        argv: Sequence[str],
        privileged: bool = False,
        env: Optional[Mapping[str, str]] = None,
    ) -> List[str]:
        command = list(argv)
        if privileged and self.use_sudo:
            if env:
                # sudo resets the environment, so pass it explicitly
                assignments = [f"{k}={v}" for k, v in env.items()]
                return ["sudo", "env", *assignments, *command]
            return ["sudo", *command]
        return command

    def run(
        self,
        argv: Sequence[str],
        *,
        privileged: bool = False,
        check: bool = True,
        capture: bool = True,
        timeout: Optional[float] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
    ) -> CommandResult:
        """
        Execute a command and return its exit code, output and elapsed time.

        Args:
            argv: Command and arguments as a list
            privileged: Run through sudo when not already root
            check: Raise StepActionError on a non-zero exit code
            capture: Capture stdout/stderr instead of inheriting the terminal
            timeout: Seconds before the command is killed
            env: Extra environment variables
            cwd: Working directory
            input_text: Text passed on stdin

        Returns:
            CommandResult with the command outcome

        Raises:
            StepActionError: If the command is missing, times out, or fails with check=True
        """
        command = self.build_argv(argv, privileged=privileged, env=env)
        cmd_str = format_argv(command)
        logger.debug(f"Executing: {cmd_str}")

        start = time.monotonic()
        try:
            returncode, stdout, stderr = self._spawn(
                command,
                env=env,
                cwd=cwd,
                input_text=input_text,
                timeout=timeout,
                capture=capture,
            )
        except FileNotFoundError as e:
            raise CommandNotFound(
                f"Command not found: {command[0]}", argv=command
            ) from e
        except subprocess.TimeoutExpired as e:
            raise StepActionError(
                f"Command timed out after {timeout} seconds: {cmd_str}", argv=command
            ) from e
        elapsed = time.monotonic() - start

        if stdout:
            logger.debug(f"STDOUT {stdout.strip()}")
        if stderr:
            logger.debug(f"STDERR {stderr.strip()}")

        result = CommandResult(
            argv=command,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            elapsed=elapsed,
        )
        if check and returncode != 0:
            detail = stderr_tail(stderr)
            message = f"Command failed ({returncode}): {cmd_str}"
            if detail:
                message = f"{message}: {detail}"
            raise StepActionError(
                message, argv=command, returncode=returncode, stderr=stderr
            )
        return result

    def _spawn(
        self,
        argv: List[str],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Optional[str],
        input_text: Optional[str],
        timeout: Optional[float],
        capture: bool,
    ) -> Tuple[int, str, str]:
        proc = subprocess.run(
            argv,
            input=input_text,
            text=True,
            capture_output=capture,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
            timeout=timeout,
        )
        return proc.returncode, proc.stdout or "", proc.stderr or ""

    def succeeds(self, argv: Sequence[str], **kwargs) -> bool:
        """Return True when the command exits 0; never raises for a failed exit."""
        return self.run(argv, check=False, **kwargs).ok
