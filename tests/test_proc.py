from __future__ import annotations

import asyncio
import logging
import subprocess
import sys

import pytest

from orchestrator.proc import (
    LAUNCH_FAILURE_RETURNCODE,
    CommandFailed,
    classify_error,
    run_command,
)
from orchestrator.services.errors import OrchestratorException


def _runner_returning(returncode: int, stdout: str = "", stderr: str = ""):
    async def runner(cmd: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(args=cmd, returncode=returncode, stdout=stdout, stderr=stderr)

    return runner


@pytest.mark.asyncio
async def test_run_command_returns_stdout_on_success():
    result = await run_command(
        ["helm", "version"],
        runner=_runner_returning(0, stdout="v3.14.0\n"),
        error_message="helm version failed",
    )
    assert result.stdout == "v3.14.0\n"
    assert result.returncode == 0


@pytest.mark.asyncio
async def test_stderr_on_success_is_only_a_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="orchestrator.proc"):
        result = await run_command(
            ["helm", "install", "a"],
            runner=_runner_returning(0, stdout="installed", stderr="WARNING: kubeconfig is group-readable"),
            error_message="install failed",
        )
    assert result.stdout == "installed"
    assert "group-readable" in caplog.text


@pytest.mark.asyncio
async def test_non_zero_exit_raises_command_failed_with_diagnostics():
    with pytest.raises(CommandFailed) as exc_info:
        await run_command(
            ["helm", "install", "a"],
            runner=_runner_returning(1, stderr="Error: INSTALLATION FAILED: cannot re-use a name"),
            error_message="Failed to install release a",
        )
    exc = exc_info.value
    assert isinstance(exc, OrchestratorException)
    assert exc.result.returncode == 1
    assert exc.category == "fatal"
    assert exc.retryable is False
    assert "cannot re-use a name" in str(exc)
    assert str(exc).startswith("Failed to install release a")


@pytest.mark.asyncio
async def test_failure_detail_falls_back_to_stdout():
    with pytest.raises(CommandFailed) as exc_info:
        await run_command(
            ["helm", "list"],
            runner=_runner_returning(2, stdout="something went wrong"),
            error_message="list failed",
        )
    assert exc_info.value.detail == "something went wrong"


@pytest.mark.asyncio
async def test_launch_failure_is_reported_as_command_failed():
    async def runner(cmd: list[str]) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    with pytest.raises(CommandFailed) as exc_info:
        await run_command(["helm", "list"], runner=runner, error_message="list failed")
    assert exc_info.value.result.returncode == LAUNCH_FAILURE_RETURNCODE
    assert "No such file or directory" in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_is_reported_as_retryable_failure():
    async def runner(cmd: list[str]) -> subprocess.CompletedProcess[str]:
        await asyncio.sleep(10)
        raise AssertionError("should have timed out")

    with pytest.raises(CommandFailed) as exc_info:
        await run_command(["helm", "install", "a"], runner=runner, error_message="install failed", timeout=0.01)
    assert exc_info.value.retryable is True
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_default_runner_captures_real_process_output():
    script = "import sys; print('hello'); sys.stderr.write('careful')"
    result = await run_command([sys.executable, "-c", script], error_message="python failed")
    assert result.stdout.strip() == "hello"
    assert result.stderr == "careful"


@pytest.mark.asyncio
async def test_default_runner_reports_missing_binary():
    with pytest.raises(CommandFailed) as exc_info:
        await run_command(["definitely-not-an-installed-binary-xyz"], error_message="launch failed")
    assert exc_info.value.result.returncode == LAUNCH_FAILURE_RETURNCODE


@pytest.mark.asyncio
async def test_default_runner_non_zero_exit():
    with pytest.raises(CommandFailed) as exc_info:
        await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"],
            error_message="python failed",
        )
    assert exc_info.value.result.returncode == 3
    assert exc_info.value.detail == "boom"


@pytest.mark.parametrize(
    "returncode, stderr, expected",
    [
        (1, "Error: release: already exists", "fatal"),
        (1, "Kubernetes cluster unreachable: dial tcp: i/o timeout", "retryable"),
        (1, "UPGRADE FAILED: context deadline exceeded", "retryable"),
        (-9, "", "retryable"),
    ],
)
def test_classify_error(returncode, stderr, expected):
    assert classify_error(returncode=returncode, stderr=stderr, stdout="") == expected
