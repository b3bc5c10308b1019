"""
Workflow Registry.

The registry maps workflow names to the functions that build and run
them, so the sample workflows can be listed, described and run by name.
"""

from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional
from dataclasses import dataclass
import logging

from nodeflow.engine.flow import Flow
from nodeflow.engine.graph import describe_flow, to_mermaid


logger = logging.getLogger(__name__)


# Builds the named flows that make up a workflow
FlowBuilder = Callable[[], Dict[str, Flow]]

# Runs a workflow against a shared context with optional param overrides
WorkflowRunner = Callable[[Dict[str, Any], Optional[Dict[str, Any]]], Awaitable[Dict[str, Any]]]


@dataclass
class Workflow:
    """
    A registered workflow.

    Attributes:
        name: Unique identifier for the workflow
        description: Human-readable description
        build: Builds the workflow's flows, keyed by name
        run: Runs the workflow and returns a JSON-safe result
    """
    name: str
    build: FlowBuilder
    run: WorkflowRunner
    description: str = ""

    def to_dict(self, include_graphs: bool = False) -> Dict[str, Any]:
        """Serialize workflow metadata, optionally with its graphs."""
        flows = self.build()
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "flows": list(flows),
        }
        if include_graphs:
            data["graphs"] = {name: describe_flow(flow) for name, flow in flows.items()}
            data["mermaid"] = {name: to_mermaid(flow) for name, flow in flows.items()}
        return data


class WorkflowRegistry:
    """
    Registry of runnable workflows.

    Usage:
        registry = WorkflowRegistry()

        @registry.register("essay", build=build_essay_flows)
        async def run_essay(shared, params=None):
            ...

        workflow = registry.get("essay")
        result = await workflow.run({"topic": "flows"})
    """

    def __init__(self):
        self._workflows: Dict[str, Workflow] = {}

    def register(
        self,
        name: str,
        build: FlowBuilder,
        description: str = "",
    ) -> Callable[[WorkflowRunner], WorkflowRunner]:
        """
        Decorator to register a workflow runner.

        Args:
            name: Workflow name
            build: Function building the workflow's flows
            description: Workflow description (defaults to the runner docstring)

        Returns:
            Decorator function
        """
        def decorator(run: WorkflowRunner) -> WorkflowRunner:
            if name in self._workflows:
                raise ValueError(f"Workflow '{name}' is already registered")
            self._workflows[name] = Workflow(
                name=name,
                build=build,
                run=run,
                description=(description or run.__doc__ or "").strip(),
            )
            logger.debug(f"Registered workflow: {name}")
            return run

        return decorator

    def get(self, name: str) -> Optional[Workflow]:
        """Get a workflow by name."""
        return self._workflows.get(name)

    def list_workflows(self) -> List[Dict[str, Any]]:
        """List all registered workflows with their metadata."""
        return [workflow.to_dict() for workflow in self._workflows.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._workflows

    def __len__(self) -> int:
        return len(self._workflows)

    def __iter__(self) -> Iterator[Workflow]:
        return iter(self._workflows.values())


# Global workflow registry instance
workflow_registry = WorkflowRegistry()
