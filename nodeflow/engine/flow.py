"""
Flow Orchestration for the Workflow Engine.

A Flow walks a graph of nodes starting from its start node. After each
node runs, the action returned by the node's post step picks the next
node. The walk ends when the action has no registered successor.

A Flow is itself a node, so flows can be nested inside other flows.
"""

from typing import Any, Dict, List, Optional
import logging

from nodeflow.engine.errors import (
    FlowConfigurationError,
    InvalidOperationError,
    UnmatchedActionError,
    report,
)
from nodeflow.engine.node import DEFAULT_ACTION, BaseNode, resolve


logger = logging.getLogger(__name__)


class Flow(BaseNode):
    """
    Orchestrates a graph of nodes.

    Every node reached by the walk gets the flow's parameters (merged with
    any per-call overrides) before it runs. The flow's own prep runs before
    the walk and its post runs after it; post's return value is the result
    of the flow. There is no step limit: loops end only through routing.

    Usage:
        load.connect(summarize)
        summarize.transition("retry").to(load)
        flow = Flow(start=load)
        await flow.run(shared)

    Attributes:
        start: The first node of the graph
    """

    def __init__(self, start: Optional[BaseNode] = None, name: Optional[str] = None):
        super().__init__(name=name)
        self.start = start

    def get_next_node(self, current: BaseNode, action: Optional[str]) -> Optional[BaseNode]:
        """
        Find the successor of ``current`` for ``action``.

        A missing successor ends the walk. This is reported as a diagnostic
        only when the node has other successors that did not match.

        Args:
            current: The node that just ran
            action: Action returned by its post step (falsy means default)

        Returns:
            The next node, or None to stop
        """
        action = action or DEFAULT_ACTION
        next_node = current.successors.get(action)
        if next_node is None and current.successors:
            report(
                logger,
                "UNMATCHED_ACTION",
                f"Flow ends: action '{action}' not found in "
                f"{list(current.successors)} of {current!r}",
                UnmatchedActionError,
                action=action,
                available=current.successors.keys(),
            )
        return next_node

    async def _orchestrate(self, shared: Any, params: Optional[Dict[str, Any]] = None) -> None:
        if self.start is None:
            raise FlowConfigurationError(f"{self!r} has no start node")

        merged = {**self.params, **(params or {})}
        current: Optional[BaseNode] = self.start

        while current is not None:
            current.set_params(dict(merged))
            logger.debug(f"{self!r} running {current!r}")
            action = await current._run(shared)
            current = self.get_next_node(current, action)

    async def _run(self, shared: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        prep_res = await resolve(self.prep(shared))
        await self._orchestrate(shared, params)
        return await resolve(self.post(shared, prep_res, None))

    async def run(self, shared: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run the whole graph against the shared context.

        Args:
            shared: The shared context
            params: Overrides merged over the flow's params for this call

        Returns:
            The value returned by the flow's post step
        """
        self._warn_unfollowed_successors()
        return await self._run(shared, params)

    def exec(self, prep_res: Any) -> Any:
        raise InvalidOperationError(
            f"{self!r} cannot exec; a flow only runs the nodes of its graph"
        )


class BatchFlow(Flow):
    """
    Runs its graph once per parameter set returned by prep.

    Passes run one after another. Each pass sees the flow's params merged
    with that pass's overrides, with per-call overrides winning over both.
    post receives the list of parameter sets.
    """

    async def _run(self, shared: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        batch_params: List[Dict[str, Any]] = list(await resolve(self.prep(shared)) or [])
        for overrides in batch_params:
            await self._orchestrate(shared, {**overrides, **(params or {})})
        return await resolve(self.post(shared, batch_params, None))
