from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import subprocess
from typing import Awaitable, Callable, Literal

from orchestrator.services.errors import OrchestratorException

logger = logging.getLogger(__name__)

ErrorCategory = Literal["retryable", "fatal"]
CommandRunner = Callable[[list[str]], Awaitable[subprocess.CompletedProcess[str]]]

LAUNCH_FAILURE_RETURNCODE = 127
TIMEOUT_RETURNCODE = -9

_RETRYABLE_PATTERNS = (
    "timed out",
    "timeout",
    "temporarily unavailable",
    "connection refused",
    "connection reset",
    "i/o timeout",
    "tls handshake timeout",
    "context deadline exceeded",
    "unable to connect",
    "too many requests",
    "rate limit",
)


@dataclass(frozen=True)
class CommandResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str


class CommandFailed(OrchestratorException):
    """An external command exited non-zero, could not be launched or timed out."""

    def __init__(
        self,
        *,
        message: str,
        result: CommandResult,
        category: ErrorCategory,
    ) -> None:
        self.result = result
        self.category = category
        super().__init__(self._build_message(message))

    @property
    def retryable(self) -> bool:
        return self.category == "retryable"

    @property
    def detail(self) -> str:
        return (self.result.stderr or self.result.stdout).strip()

    def _build_message(self, message: str) -> str:
        detail = self.detail
        if len(detail) > 400:
            detail = f"{detail[:397]}..."
        return f"{message}: {detail}" if detail else f"{message} (returncode={self.result.returncode})"


async def default_runner(command: list[str]) -> subprocess.CompletedProcess[str]:
    proc = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout_b, stderr_b = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
    return subprocess.CompletedProcess(
        args=command,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout_b.decode(errors="replace"),
        stderr=stderr_b.decode(errors="replace"),
    )


def classify_error(*, returncode: int, stderr: str, stdout: str) -> ErrorCategory:
    if returncode < 0:
        return "retryable"
    text = f"{stderr}\n{stdout}".lower()
    if any(pattern in text for pattern in _RETRYABLE_PATTERNS):
        return "retryable"
    return "fatal"


async def _invoke(
    command: list[str],
    runner: CommandRunner,
    timeout: float | None,
) -> subprocess.CompletedProcess[str]:
    try:
        if timeout is None:
            return await runner(command)
        return await asyncio.wait_for(runner(command), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Command timed out after %ss: %s", timeout, " ".join(command))
        return subprocess.CompletedProcess(
            args=command,
            returncode=TIMEOUT_RETURNCODE,
            stdout="",
            stderr=f"command timed out after {timeout}s",
        )
    except OSError as exc:
        logger.error("Unable to launch command %r: %s", " ".join(command), exc)
        return subprocess.CompletedProcess(
            args=command,
            returncode=LAUNCH_FAILURE_RETURNCODE,
            stdout="",
            stderr=str(exc),
        )


async def run_command(
    command: list[str],
    *,
    runner: CommandRunner | None = None,
    error_message: str,
    timeout: float | None = None,
) -> CommandResult:
    """Run ``command`` to completion and return its captured output.

    Raises ``CommandFailed`` on a non-zero exit, a launch failure or a timeout.
    Output on stderr from a successful command is only logged.
    """
    active_runner = runner or default_runner
    logger.debug("Running command: %s", " ".join(command))
    completed = await _invoke(command, active_runner, timeout)
    result = CommandResult(
        command=command,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if result.returncode != 0:
        category = classify_error(
            returncode=result.returncode,
            stderr=result.stderr,
            stdout=result.stdout,
        )
        logger.error(
            "Command failed (category=%s, returncode=%s): %s",
            category,
            result.returncode,
            " ".join(command),
        )
        raise CommandFailed(message=error_message, result=result, category=category)
    if result.stderr.strip():
        logger.warning("Command %r wrote to stderr: %s", command[0], result.stderr.strip())
    return result
