"""
In-Memory Storage for workflow runs.

Keeps the outcome of every workflow run started through the API.
Can be easily replaced with a database implementation.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import asyncio
from dataclasses import dataclass, field


@dataclass
class StoredRun:
    """A stored workflow run."""
    run_id: str
    workflow: str
    status: str
    shared: Dict[str, Any]
    params: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow": self.workflow,
            "status": self.status,
            "shared": self.shared,
            "params": self.params,
            "result": self.result,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


class RunStorage:
    """
    In-memory storage for workflow runs, safe to share between tasks.

    A run is created as "running" and then marked "completed" or
    "failed" once its workflow returns.
    """

    def __init__(self):
        self._runs: Dict[str, StoredRun] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        run_id: str,
        workflow: str,
        shared: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
    ) -> StoredRun:
        """
        Create a new run.

        Args:
            run_id: Unique run identifier
            workflow: Name of the workflow being run
            shared: Shared context the run starts from
            params: Param overrides for the run

        Returns:
            The stored run
        """
        async with self._lock:
            stored = StoredRun(
                run_id=run_id,
                workflow=workflow,
                status="running",
                shared=dict(shared),
                params=dict(params or {}),
            )
            self._runs[run_id] = stored
            return stored

    async def get(self, run_id: str) -> Optional[StoredRun]:
        """Get a run by ID."""
        async with self._lock:
            return self._runs.get(run_id)

    async def complete(self, run_id: str, result: Dict[str, Any]) -> Optional[StoredRun]:
        """Mark a run as completed."""
        async with self._lock:
            if run_id not in self._runs:
                return None
            stored = self._runs[run_id]
            stored.status = "completed"
            stored.result = result
            self._finish(stored)
            return stored

    async def fail(self, run_id: str, error: str) -> Optional[StoredRun]:
        """Mark a run as failed."""
        async with self._lock:
            if run_id not in self._runs:
                return None
            stored = self._runs[run_id]
            stored.status = "failed"
            stored.error = error
            self._finish(stored)
            return stored

    @staticmethod
    def _finish(stored: StoredRun) -> None:
        stored.completed_at = datetime.now()
        stored.duration_ms = (stored.completed_at - stored.started_at).total_seconds() * 1000

    async def list_all(self) -> List[StoredRun]:
        """List all runs."""
        async with self._lock:
            return list(self._runs.values())

    async def list_by_workflow(self, workflow: str) -> List[StoredRun]:
        """List all runs of a specific workflow."""
        async with self._lock:
            return [r for r in self._runs.values() if r.workflow == workflow]

    def __len__(self) -> int:
        return len(self._runs)


# Global storage instance
run_storage = RunStorage()
