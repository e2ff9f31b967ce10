from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any

from orchestrator.naming import normalize_instance_name
from orchestrator.proc import CommandFailed
from orchestrator.schemas import QueueStatus, Severity, SubmitResult
from orchestrator.services.directory import InstanceDirectory
from orchestrator.services.events import EventLog
from orchestrator.services.helm_adapter import HelmAdapter
from orchestrator.settings import Settings

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ProvisioningTask:
    instance_name: str
    host: str
    chart_path: str
    state: TaskState = TaskState.QUEUED
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def helm_values(self) -> dict[str, Any]:
        return {
            "store": {"name": self.instance_name},
            "ingress": {"host": self.host},
            "persistence": {"enabled": True},
        }


class ProvisioningQueue:
    """Admission control for instance creation.

    Create requests are answered as soon as they are queued. At most
    ``concurrency_limit`` installs run at once; each finished install frees its
    slot from a task done-callback, which admits the next queued request. Tasks
    start in submission order and are never retried.

    All state is touched only from the event loop thread, so no lock is needed
    around the counters.
    """

    def __init__(
        self,
        *,
        helm: HelmAdapter,
        directory: InstanceDirectory,
        events: EventLog,
        settings: Settings,
    ) -> None:
        if settings.concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self._helm = helm
        self._directory = directory
        self._events = events
        self._settings = settings
        self._pending: deque[ProvisioningTask] = deque()
        self._running: dict[asyncio.Task[None], ProvisioningTask] = {}
        self._active_count = 0

    @property
    def concurrency_limit(self) -> int:
        return self._settings.concurrency_limit

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def pending(self) -> list[str]:
        return [task.instance_name for task in self._pending]

    @property
    def running(self) -> list[str]:
        return [task.instance_name for task in self._running.values()]

    def snapshot(self) -> QueueStatus:
        return QueueStatus(
            concurrency_limit=self.concurrency_limit,
            active_count=self._active_count,
            running=self.running,
            pending=self.pending,
        )

    async def submit_create(self, raw_name: str) -> SubmitResult:
        name = normalize_instance_name(raw_name)

        # Two requests for the same name can both get past this check before
        # either install finishes; Helm rejecting the second install is the
        # only guard against that.
        if await self._directory.lookup(name):
            message = f"Store {name} already exists."
            self._events.record(Severity.INFO, message, name)
            return SubmitResult(status="exists", message=message, resolved_name=name)

        task = ProvisioningTask(
            instance_name=name,
            host=self._settings.host_for(name),
            chart_path=self._settings.chart_path,
        )
        self._pending.append(task)
        message = f"Request queued. Position: {len(self._pending)}"
        self._events.record(Severity.INFO, message, name)
        self.drain()
        return SubmitResult(status="queued", message=message, resolved_name=name)

    def drain(self) -> None:
        """Start queued tasks until the concurrency limit is reached.

        Must be called from the event loop thread.
        """
        loop = asyncio.get_running_loop()
        while self._active_count < self.concurrency_limit and self._pending:
            task = self._pending.popleft()
            task.state = TaskState.RUNNING
            self._active_count += 1
            self._events.record(
                Severity.INFO,
                f"Processing queue item: {task.instance_name} (Active: {self._active_count})",
                task.instance_name,
            )
            job = loop.create_task(self._execute(task), name=f"provision-{task.instance_name}")
            self._running[job] = task
            job.add_done_callback(self._on_task_done)

    def _on_task_done(self, job: asyncio.Task[None]) -> None:
        task = self._running.pop(job)
        self._active_count -= 1
        if job.cancelled():
            task.state = TaskState.FAILED
            logger.warning("Provisioning of '%s' was cancelled", task.instance_name)
        logger.debug(
            "Released slot for '%s' (state=%s active=%s pending=%s)",
            task.instance_name,
            task.state.value,
            self._active_count,
            len(self._pending),
        )
        self.drain()

    async def _execute(self, task: ProvisioningTask) -> None:
        name = task.instance_name
        try:
            await self._helm.helm_install(
                release_name=name,
                namespace=name,
                chart_path=task.chart_path,
                values=task.helm_values(),
            )
        except CommandFailed as exc:
            task.state = TaskState.FAILED
            self._events.record(Severity.ERROR, f"Provisioning failed for {name}: {exc}", name)
        except Exception as exc:
            logger.exception("Unexpected error while provisioning '%s'", name)
            task.state = TaskState.FAILED
            self._events.record(Severity.ERROR, f"Provisioning failed for {name}: {exc}", name)
        else:
            task.state = TaskState.SUCCEEDED
            self._events.record(Severity.SUCCESS, f"Successfully provisioned {name}", name)

    async def wait_idle(self) -> None:
        """Wait until nothing is queued or running."""
        while self._running or self._pending:
            if not self._running:
                self.drain()
            await asyncio.gather(*list(self._running), return_exceptions=True)
