"""
Workflow API Routes.

Endpoints for listing, describing and running registered workflows.
"""

from typing import Optional
from fastapi import APIRouter, HTTPException
from uuid import uuid4
import logging

from nodeflow.api.schemas import (
    ErrorResponse,
    RunListResponse,
    RunStatus,
    WorkflowDetailResponse,
    WorkflowInfo,
    WorkflowListResponse,
    WorkflowRunRequest,
    WorkflowRunResponse,
)
from nodeflow.storage.memory import StoredRun, run_storage
from nodeflow.workflows import workflow_registry


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])


def _to_run_response(stored: StoredRun) -> WorkflowRunResponse:
    return WorkflowRunResponse(
        run_id=stored.run_id,
        workflow=stored.workflow,
        status=RunStatus(stored.status),
        result=stored.result,
        error=stored.error,
        started_at=stored.started_at.isoformat(),
        completed_at=stored.completed_at.isoformat() if stored.completed_at else None,
        duration_ms=stored.duration_ms,
    )


# ============================================================
# Workflow Endpoints
# ============================================================

@router.get("/", response_model=WorkflowListResponse)
async def list_workflows() -> WorkflowListResponse:
    """List all registered workflows."""
    workflows = [WorkflowInfo(**info) for info in workflow_registry.list_workflows()]
    return WorkflowListResponse(workflows=workflows, total=len(workflows))


# ============================================================
# Run Endpoints
# ============================================================

@router.get("/runs", response_model=RunListResponse)
async def list_runs(workflow: Optional[str] = None) -> RunListResponse:
    """List runs, optionally filtered by workflow name."""
    if workflow:
        runs = await run_storage.list_by_workflow(workflow)
    else:
        runs = await run_storage.list_all()
    return RunListResponse(runs=[_to_run_response(r) for r in runs], total=len(runs))


@router.get(
    "/runs/{run_id}",
    response_model=WorkflowRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(run_id: str) -> WorkflowRunResponse:
    """Get the outcome of a run."""
    stored = await run_storage.get(run_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found")
    return _to_run_response(stored)


@router.get(
    "/{name}",
    response_model=WorkflowDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_workflow(name: str) -> WorkflowDetailResponse:
    """Describe a workflow, including the graph of each of its flows."""
    workflow = workflow_registry.get(name)
    if not workflow:
        raise HTTPException(status_code=404, detail=f"Workflow '{name}' not found")
    return WorkflowDetailResponse(**workflow.to_dict(include_graphs=True))


@router.post(
    "/{name}/run",
    response_model=WorkflowRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def run_workflow(name: str, request: WorkflowRunRequest) -> WorkflowRunResponse:
    """
    Run a workflow against the given shared context.

    Failures inside the workflow are reported in the response with
    status "failed" rather than as an HTTP error.
    """
    workflow = workflow_registry.get(name)
    if not workflow:
        raise HTTPException(status_code=404, detail=f"Workflow '{name}' not found")

    run_id = str(uuid4())
    await run_storage.create(run_id, name, request.shared, request.params)
    logger.info(f"Running workflow '{name}' (run {run_id})")

    try:
        result = await workflow.run(dict(request.shared), dict(request.params))
    except Exception as e:
        logger.exception(f"Workflow '{name}' failed: {e}")
        stored = await run_storage.fail(run_id, str(e))
    else:
        stored = await run_storage.complete(run_id, result)

    return _to_run_response(stored)
