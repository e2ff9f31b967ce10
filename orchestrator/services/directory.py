from __future__ import annotations

import logging

from orchestrator.proc import CommandFailed
from orchestrator.schemas import Instance
from orchestrator.services.helm_adapter import HelmAdapter

logger = logging.getLogger(__name__)


class InstanceDirectory:
    """Read-only view of deployed instances, backed by Helm's own release list.

    Nothing is cached: every call asks Helm again.
    """

    def __init__(self, *, helm: HelmAdapter) -> None:
        self._helm = helm

    async def list_instances(self) -> list[Instance]:
        return await self._helm.helm_list_releases()

    async def lookup(self, name: str) -> str | None:
        """Return the namespace of instance ``name``, or ``None``.

        A failed listing is reported as ``None`` as well, so callers proceed as
        if the instance were absent.
        """
        try:
            instances = await self.list_instances()
        except (CommandFailed, ValueError) as exc:
            logger.warning("Instance lookup for '%s' failed, treating as absent: %s", name, exc)
            return None
        for instance in instances:
            if instance.name == name:
                return instance.namespace
        return None
