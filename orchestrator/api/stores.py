from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from orchestrator.provisioner import Orchestrator, get_orchestrator
from orchestrator.schemas import Instance, OperationResult, StoreCreate, SubmitResult

router = APIRouter(prefix="/api/stores", tags=["stores"])


@router.get("", response_model=list[Instance])
async def list_stores(orchestrator: Orchestrator = Depends(get_orchestrator)) -> list[Instance]:
    return await orchestrator.list_instances()


@router.post("", response_model=SubmitResult)
async def create_store(
    payload: StoreCreate, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> SubmitResult:
    """Queue a new store; the response does not wait for Helm to finish."""
    return await orchestrator.submit_create(payload.store_name)


@router.post("/{store_id}/upgrade", response_model=OperationResult)
async def upgrade_store(
    store_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> OperationResult:
    return await orchestrator.upgrade(store_id)


@router.post("/{store_id}/rollback", response_model=OperationResult)
async def rollback_store(
    store_id: str,
    revision: int = Query(0, ge=0, description="Target revision; 0 rolls back to the previous one."),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> OperationResult:
    return await orchestrator.rollback(store_id, revision=revision)


@router.delete("/{store_id}", response_model=OperationResult)
async def delete_store(
    store_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> OperationResult:
    return await orchestrator.delete(store_id)
