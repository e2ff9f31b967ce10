from __future__ import annotations

import asyncio
import logging

from orchestrator.naming import normalize_instance_name
from orchestrator.proc import CommandFailed
from orchestrator.schemas import OperationResult, Severity
from orchestrator.services.directory import InstanceDirectory
from orchestrator.services.errors import InstanceNotFound
from orchestrator.services.events import EventLog
from orchestrator.services.helm_adapter import HelmAdapter
from orchestrator.services.kube_adapter import KubeAdapter
from orchestrator.settings import Settings

logger = logging.getLogger(__name__)

PROTECTED_NAMESPACES = frozenset({"default", "kube-system", "kube-public", "kube-node-lease"})


class InstanceLifecycle:
    """Upgrade, rollback and teardown of existing instances.

    These run one Helm command each and the caller waits for it; they do not
    go through the provisioning queue.
    """

    def __init__(
        self,
        *,
        helm: HelmAdapter,
        kube: KubeAdapter,
        directory: InstanceDirectory,
        events: EventLog,
        settings: Settings,
    ) -> None:
        self._helm = helm
        self._kube = kube
        self._directory = directory
        self._events = events
        self._settings = settings
        self._cleanups: set[asyncio.Task[None]] = set()

    @property
    def cleanup_tasks(self) -> list[asyncio.Task[None]]:
        return list(self._cleanups)

    async def _resolve_namespace(self, name: str) -> str:
        namespace = await self._directory.lookup(name)
        if not namespace:
            raise InstanceNotFound(f"Store {name} not found")
        return namespace

    async def upgrade(self, raw_name: str) -> OperationResult:
        name = normalize_instance_name(raw_name)
        self._events.record(Severity.INFO, f"Upgrade requested for {name}", name)
        namespace = await self._resolve_namespace(name)
        try:
            await self._helm.helm_upgrade(
                release_name=name,
                namespace=namespace,
                chart_path=self._settings.chart_path,
                values={"wordpress": {"image": self._settings.upgrade_image}},
            )
        except CommandFailed as exc:
            self._events.record(Severity.ERROR, f"Upgrade failed for {name}: {exc}", name)
            raise
        self._events.record(Severity.SUCCESS, f"Upgraded {name}", name)
        return OperationResult(status="success")

    async def rollback(self, raw_name: str, *, revision: int = 0) -> OperationResult:
        name = normalize_instance_name(raw_name)
        self._events.record(Severity.WARNING, f"Rollback requested for {name}", name)
        namespace = await self._resolve_namespace(name)
        try:
            await self._helm.helm_rollback(release_name=name, namespace=namespace, revision=revision)
        except CommandFailed as exc:
            self._events.record(Severity.ERROR, f"Rollback failed for {name}: {exc}", name)
            raise
        self._events.record(Severity.SUCCESS, f"Rolled back {name}", name)
        return OperationResult(status="success")

    async def delete(self, raw_name: str) -> OperationResult:
        name = normalize_instance_name(raw_name)
        self._events.record(Severity.WARNING, f"Teardown requested for {name}", name)
        namespace = await self._resolve_namespace(name)
        try:
            await self._helm.helm_uninstall(release_name=name, namespace=namespace)
        except CommandFailed as exc:
            self._events.record(Severity.ERROR, f"Teardown failed for {name}: {exc}", name)
            raise
        # Only namespaces created for this instance are removed.
        if namespace == name and namespace not in PROTECTED_NAMESPACES:
            self._schedule_namespace_cleanup(namespace)
        self._events.record(Severity.SUCCESS, f"Teardown complete for {name}", name)
        return OperationResult(status="success")

    def _schedule_namespace_cleanup(self, namespace: str) -> None:
        job = asyncio.get_running_loop().create_task(
            self._delete_namespace(namespace), name=f"cleanup-{namespace}"
        )
        self._cleanups.add(job)
        job.add_done_callback(self._cleanups.discard)

    async def _delete_namespace(self, namespace: str) -> None:
        try:
            await self._kube.delete_namespace(namespace)
        except CommandFailed as exc:
            logger.error("Namespace cleanup for '%s' failed: %s", namespace, exc)
        except Exception:
            logger.exception("Unexpected error during namespace cleanup for '%s'", namespace)
