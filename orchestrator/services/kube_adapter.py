from __future__ import annotations

from dataclasses import dataclass
import logging

from orchestrator.proc import CommandFailed, CommandRunner, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamespaceResult:
    name: str
    exists: bool
    changed: bool


class KubeAdapter:
    """Adapter for namespace cleanup after a release is uninstalled."""

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        kubectl_bin: str = "kubectl",
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self._kubectl = kubectl_bin
        self._timeout = timeout

    async def delete_namespace(self, name: str) -> NamespaceResult:
        logger.info("Deleting Kubernetes namespace: %s", name)
        try:
            await run_command(
                [self._kubectl, "delete", "namespace", name, "--ignore-not-found=true"],
                runner=self._runner,
                error_message=f"Failed to delete namespace {name}",
                timeout=self._timeout,
            )
        except CommandFailed as exc:
            if "not found" in exc.result.stderr.lower():
                logger.debug("Namespace was already absent: %s", name)
                return NamespaceResult(name=name, exists=False, changed=False)
            raise
        logger.info("Deleted namespace: %s", name)
        return NamespaceResult(name=name, exists=False, changed=True)
