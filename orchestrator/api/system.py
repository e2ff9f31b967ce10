from __future__ import annotations

from fastapi import APIRouter, Depends

from orchestrator.provisioner import Orchestrator, get_orchestrator
from orchestrator.schemas import EventLogEntry, QueueStatus

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/logs", response_model=list[EventLogEntry])
async def list_logs(orchestrator: Orchestrator = Depends(get_orchestrator)) -> list[EventLogEntry]:
    return orchestrator.list_events()


@router.get("/queue", response_model=QueueStatus)
async def queue_status(orchestrator: Orchestrator = Depends(get_orchestrator)) -> QueueStatus:
    return orchestrator.queue_status()
