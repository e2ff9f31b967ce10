from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from orchestrator.proc import CommandRunner, run_command
from orchestrator.schemas import Instance
from orchestrator.services.errors import InvalidCommandOutput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HelmReleaseOperationResult:
    release_name: str
    namespace: str
    action: str
    output: str


class HelmAdapter:
    """Builds Helm command lines and runs them through the command executor."""

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        helm_bin: str = "helm",
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self._helm = helm_bin
        self._timeout = timeout

    async def _run(self, cmd: list[str], *, error_message: str) -> str:
        result = await run_command(
            cmd,
            runner=self._runner,
            error_message=error_message,
            timeout=self._timeout,
        )
        return result.stdout

    async def helm_list_releases(self) -> list[Instance]:
        stdout = await self._run(
            [self._helm, "list", "--all-namespaces", "--output", "json"],
            error_message="Failed to list Helm releases",
        )
        return parse_release_list(stdout)

    async def helm_install(
        self,
        *,
        release_name: str,
        namespace: str,
        chart_path: str,
        values: dict[str, Any],
    ) -> HelmReleaseOperationResult:
        logger.info(
            "Installing Helm release '%s' into namespace '%s' (chart=%s)",
            release_name,
            namespace,
            chart_path,
        )
        with _values_file(values) as values_file:
            cmd = [
                self._helm,
                "install",
                release_name,
                chart_path,
                "--create-namespace",
                "--namespace",
                namespace,
                "--values",
                str(values_file),
            ]
            output = await self._run(cmd, error_message=f"Failed to install release {release_name}")
        return HelmReleaseOperationResult(
            release_name=release_name, namespace=namespace, action="install", output=output
        )

    async def helm_upgrade(
        self,
        *,
        release_name: str,
        namespace: str,
        chart_path: str,
        values: dict[str, Any],
        reuse_values: bool = True,
    ) -> HelmReleaseOperationResult:
        logger.info("Upgrading Helm release '%s' in namespace '%s'", release_name, namespace)
        with _values_file(values) as values_file:
            cmd = [
                self._helm,
                "upgrade",
                release_name,
                chart_path,
                "--namespace",
                namespace,
                "--values",
                str(values_file),
            ]
            if reuse_values:
                cmd.append("--reuse-values")
            output = await self._run(cmd, error_message=f"Failed to upgrade release {release_name}")
        return HelmReleaseOperationResult(
            release_name=release_name, namespace=namespace, action="upgrade", output=output
        )

    async def helm_rollback(
        self,
        *,
        release_name: str,
        namespace: str,
        revision: int = 0,
    ) -> HelmReleaseOperationResult:
        # Revision 0 means "the previous revision" to Helm.
        logger.info(
            "Rolling back Helm release '%s' in namespace '%s' to revision %s",
            release_name,
            namespace,
            revision,
        )
        output = await self._run(
            [self._helm, "rollback", release_name, str(revision), "--namespace", namespace],
            error_message=f"Failed to roll back release {release_name}",
        )
        return HelmReleaseOperationResult(
            release_name=release_name, namespace=namespace, action="rollback", output=output
        )

    async def helm_uninstall(self, *, release_name: str, namespace: str) -> HelmReleaseOperationResult:
        logger.info("Uninstalling Helm release '%s' from namespace '%s'", release_name, namespace)
        output = await self._run(
            [self._helm, "uninstall", release_name, "--namespace", namespace],
            error_message=f"Failed to uninstall release {release_name}",
        )
        return HelmReleaseOperationResult(
            release_name=release_name, namespace=namespace, action="uninstall", output=output
        )


def parse_release_list(stdout: str) -> list[Instance]:
    # helm prints nothing at all (not "[]") on some versions when no releases exist
    if not stdout.strip():
        return []
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise InvalidCommandOutput("Invalid JSON from helm list") from exc
    if not isinstance(payload, list):
        raise InvalidCommandOutput("Expected a JSON array from helm list")
    return [Instance.model_validate(item) for item in payload if isinstance(item, dict)]


class _values_file:
    def __init__(self, values: dict[str, Any]) -> None:
        self._values = values
        self.path: Path | None = None

    def __enter__(self) -> Path:
        tmp = NamedTemporaryFile(mode="w", encoding="utf-8", suffix=".json", delete=False)
        tmp.write(json.dumps(self._values))
        tmp.flush()
        tmp.close()
        self.path = Path(tmp.name)
        logger.debug("Wrote temporary values file: %s", self.path)
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.path and self.path.exists():
            self.path.unlink()
            logger.debug("Removed temporary values file: %s", self.path)
