"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


# ============================================================
# Enums
# ============================================================

class RunStatus(str, Enum):
    """Status of a workflow run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================
# Workflow Schemas
# ============================================================

class WorkflowInfo(BaseModel):
    """Summary of a registered workflow."""
    name: str = Field(..., description="Unique name of the workflow")
    description: str = Field("", description="What the workflow does")
    flows: List[str] = Field(default_factory=list, description="Names of the flows it runs")


class WorkflowListResponse(BaseModel):
    """Response listing all workflows."""
    workflows: List[WorkflowInfo]
    total: int


class WorkflowDetailResponse(WorkflowInfo):
    """A workflow with the structure of its flows."""
    graphs: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Nodes and labelled edges of each flow"
    )
    mermaid: Dict[str, str] = Field(
        default_factory=dict,
        description="Mermaid diagram of each flow"
    )


# ============================================================
# Run Schemas
# ============================================================

class WorkflowRunRequest(BaseModel):
    """Request to run a workflow."""
    shared: Dict[str, Any] = Field(
        default_factory=dict,
        description="Initial shared context for the run"
    )
    params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Param overrides passed to the workflow's flows"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "shared": {"secret": 42, "low": 1, "high": 100},
                "params": {"max_turns": 10}
            }
        }


class WorkflowRunResponse(BaseModel):
    """Outcome of a workflow run."""
    run_id: str = Field(..., description="Unique identifier for this run")
    workflow: str
    status: RunStatus
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: str
    completed_at: Optional[str] = None
    duration_ms: Optional[float] = None

    class Config:
        json_schema_extra = {
            "example": {
                "run_id": "run-xyz789",
                "workflow": "guessing",
                "status": "completed",
                "result": {
                    "secret": 42,
                    "solved": True,
                    "guesses": [50, 25, 37, 43, 40, 41, 42],
                    "turns": 7
                },
                "error": None,
                "started_at": "2024-01-01T12:00:00",
                "completed_at": "2024-01-01T12:00:00.010000",
                "duration_ms": 10.0
            }
        }


class RunListResponse(BaseModel):
    """Response listing runs."""
    runs: List[WorkflowRunResponse]
    total: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
