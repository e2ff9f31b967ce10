from __future__ import annotations

import logging
import threading

from orchestrator.proc import CommandRunner
from orchestrator.schemas import EventLogEntry, Instance, OperationResult, QueueStatus, SubmitResult
from orchestrator.services.directory import InstanceDirectory
from orchestrator.services.events import EventLog
from orchestrator.services.helm_adapter import HelmAdapter
from orchestrator.services.kube_adapter import KubeAdapter
from orchestrator.services.lifecycle import InstanceLifecycle
from orchestrator.services.queue import ProvisioningQueue
from orchestrator.settings import Settings

logger = logging.getLogger(__name__)


class Orchestrator:
    """Facade the HTTP and CLI layers talk to.

    Owns the single event log, queue and lifecycle service for the process.
    """

    def __init__(self, *, settings: Settings, runner: CommandRunner | None = None) -> None:
        self.settings = settings
        self.helm = HelmAdapter(runner=runner, helm_bin=settings.helm_bin, timeout=settings.command_timeout)
        self.kube = KubeAdapter(runner=runner, kubectl_bin=settings.kubectl_bin, timeout=settings.command_timeout)
        self.events = EventLog(capacity=settings.log_capacity)
        self.directory = InstanceDirectory(helm=self.helm)
        self.queue = ProvisioningQueue(
            helm=self.helm,
            directory=self.directory,
            events=self.events,
            settings=settings,
        )
        self.lifecycle = InstanceLifecycle(
            helm=self.helm,
            kube=self.kube,
            directory=self.directory,
            events=self.events,
            settings=settings,
        )
        logger.debug(
            "Orchestrator ready (concurrency_limit=%s log_capacity=%s chart=%s)",
            settings.concurrency_limit,
            settings.log_capacity,
            settings.chart_path,
        )

    async def list_instances(self) -> list[Instance]:
        return await self.directory.list_instances()

    def list_events(self) -> list[EventLogEntry]:
        return self.events.list()

    def queue_status(self) -> QueueStatus:
        return self.queue.snapshot()

    async def submit_create(self, name: str) -> SubmitResult:
        return await self.queue.submit_create(name)

    async def upgrade(self, name: str) -> OperationResult:
        return await self.lifecycle.upgrade(name)

    async def rollback(self, name: str, *, revision: int = 0) -> OperationResult:
        return await self.lifecycle.rollback(name, revision=revision)

    async def delete(self, name: str) -> OperationResult:
        return await self.lifecycle.delete(name)


_orchestrator: Orchestrator | None = None
_orchestrator_lock = threading.Lock()


def get_orchestrator() -> Orchestrator:
    """Return the process-wide orchestrator, building it on first use.

    FastAPI resolves sync dependencies on worker threads, so the first burst of
    requests can race here; the lock keeps it to a single instance.
    """
    global _orchestrator
    if _orchestrator is None:
        with _orchestrator_lock:
            if _orchestrator is None:
                _orchestrator = Orchestrator(settings=Settings.from_env())
    return _orchestrator
