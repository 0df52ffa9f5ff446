"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class ProgressStateEnum(str, Enum):
    RUNNING = "running"
    ERROR = "error"
    DONE = "done"


class ProgressModel(BaseModel):
    """Continuation token as sent and returned by the step endpoint."""
    step: str = ""
    offset: int = Field(0, ge=0)
    count: int = Field(0, ge=0)
    state: ProgressStateEnum = ProgressStateEnum.RUNNING
    error_message: Optional[str] = None
    carried_params: Dict[str, Any] = Field(default_factory=dict)


# Request Models
class StepRunRequest(BaseModel):
    config: Dict[str, Any] = Field(default_factory=dict)
    progress: Optional[ProgressModel] = None


# Response Models
class StepRunResponse(BaseModel):
    progress: ProgressModel
    message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class MappingEntryResponse(BaseModel):
    entity_type: str
    source_id: str
    target_id: str


class MappingListResponse(BaseModel):
    entries: List[MappingEntryResponse]
    total: int
