from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Instance(BaseModel):
    """One Helm release as reported by ``helm list -A -o json``."""

    model_config = ConfigDict(extra="ignore")

    name: str
    namespace: str
    revision: Optional[int] = None
    status: Optional[str] = None
    updated: Optional[str] = None
    chart: Optional[str] = None
    app_version: Optional[str] = None


class EventLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    timestamp: datetime
    severity: Severity
    message: str
    instance_name: Optional[str] = None


class StoreCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    store_name: str = Field(alias="storeName", min_length=1)


class SubmitResult(BaseModel):
    status: Literal["exists", "queued"]
    message: str
    resolved_name: str


class OperationResult(BaseModel):
    status: Literal["success", "error"]
    message: Optional[str] = None


class QueueStatus(BaseModel):
    concurrency_limit: int
    active_count: int
    running: list[str]
    pending: list[str]
