"""
Node Definitions for the Workflow Engine.

Nodes are the building blocks of a workflow. Every node runs the same
three-phase lifecycle against a shared context supplied by the caller:

    prep(shared) -> exec(prep_res) -> post(shared, prep_res, exec_res)

The action returned by post selects the next node among the node's
successors when the node is driven by a Flow.
"""

from typing import Any, Dict, List, Optional
import asyncio
import inspect
import logging

from nodeflow.engine.errors import SuccessorOverwriteError, report


logger = logging.getLogger(__name__)


# Action followed when post returns nothing
DEFAULT_ACTION = "default"


async def resolve(result: Any) -> Any:
    """
    Await the result of a lifecycle hook if it is awaitable.

    Hooks may be written as coroutines or as plain functions; both are
    handled transparently.
    """
    if inspect.isawaitable(result):
        return await result
    return result


class Transition:
    """A pending transition created by ``BaseNode.transition(action)``."""

    def __init__(self, source: "BaseNode", action: str):
        self.source = source
        self.action = action

    def to(self, target: "BaseNode") -> "BaseNode":
        """Register ``target`` as the successor for the pending action."""
        return self.source.add_successor(target, self.action)


class BaseNode:
    """
    The atomic unit of a workflow.

    A node owns a parameter bag and a map of successors keyed by action.
    Run-scoped data never lives on the node; it goes into the shared
    context passed to every lifecycle call.

    Attributes:
        name: Human-readable name (defaults to the class name)
        params: Parameters for the current run, replaced by set_params
        successors: Dict of action -> next node
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name or type(self).__name__
        self.params: Dict[str, Any] = {}
        self.successors: Dict[str, "BaseNode"] = {}

    def set_params(self, params: Dict[str, Any]) -> None:
        """Replace the parameter bag."""
        self.params = params

    def add_successor(self, node: "BaseNode", action: str = DEFAULT_ACTION) -> "BaseNode":
        """
        Register the node to run after this one when ``action`` is returned.

        Args:
            node: The successor node
            action: Action label selecting the successor

        Returns:
            The successor node, so calls can be chained

        Raises:
            TypeError: If node is not a BaseNode or action is not a string
            ValueError: If action is empty
        """
        if not isinstance(node, BaseNode):
            raise TypeError(f"Successor must be a BaseNode, got {type(node).__name__}")
        if not isinstance(action, str):
            raise TypeError(f"Action must be a string, got {type(action).__name__}")
        if not action:
            raise ValueError("Action cannot be empty")

        if action in self.successors:
            report(
                logger,
                "SUCCESSOR_OVERWRITE",
                f"Overwriting successor for action '{action}' on {self!r}",
                SuccessorOverwriteError,
                action=action,
            )

        self.successors[action] = node
        return node

    def connect(self, node: "BaseNode", action: str = DEFAULT_ACTION) -> "BaseNode":
        """Alias of add_successor."""
        return self.add_successor(node, action)

    def transition(self, action: str) -> Transition:
        """
        Start a fluent transition.

        Usage:
            review.transition("approved").to(publish)
        """
        return Transition(self, action)

    # ------------------------------------------------------------
    # Lifecycle hooks (override me)
    # ------------------------------------------------------------

    async def prep(self, shared: Any) -> Any:
        """Read what exec needs from the shared context."""
        return None

    async def exec(self, prep_res: Any) -> Any:
        """Do the work. Should not touch the shared context."""
        return None

    async def post(self, shared: Any, prep_res: Any, exec_res: Any) -> Optional[str]:
        """Write results back to the shared context and return the next action."""
        return None

    # ------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------

    async def _exec(self, prep_res: Any) -> Any:
        return await resolve(self.exec(prep_res))

    async def _run(self, shared: Any) -> Any:
        prep_res = await resolve(self.prep(shared))
        exec_res = await self._exec(prep_res)
        return await resolve(self.post(shared, prep_res, exec_res))

    def _warn_unfollowed_successors(self) -> None:
        if self.successors:
            logger.warning(
                f"{self!r} has successors {list(self.successors)} that run() "
                f"will not follow; use a Flow to traverse the graph"
            )

    async def run(self, shared: Any) -> Any:
        """
        Run this node's lifecycle once against the shared context.

        Only this node runs, even when successors are registered.

        Args:
            shared: The shared context

        Returns:
            The value returned by post
        """
        self._warn_unfollowed_successors()
        return await self._run(shared)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}')"


class Node(BaseNode):
    """
    A node whose exec step is retried on failure.

    exec is attempted up to ``max_retries`` times, pausing ``wait`` seconds
    between attempts. When the last attempt fails, exec_fallback decides
    the outcome: its return value becomes the exec result, or the error it
    raises propagates.

    Attributes:
        max_retries: Total number of exec attempts (at least 1)
        wait: Seconds to pause between attempts
    """

    def __init__(self, max_retries: int = 1, wait: float = 0, name: Optional[str] = None):
        super().__init__(name=name)
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        if wait < 0:
            raise ValueError(f"wait cannot be negative, got {wait}")
        self.max_retries = max_retries
        self.wait = wait

    async def exec_fallback(self, prep_res: Any, exc: Exception) -> Any:
        """Recover from the final failed attempt. Re-raises by default."""
        raise exc

    async def _exec_one(self, prep_res: Any) -> Any:
        for attempt in range(self.max_retries):
            try:
                return await resolve(self.exec(prep_res))
            except Exception as exc:
                if attempt == self.max_retries - 1:
                    return await resolve(self.exec_fallback(prep_res, exc))
                if self.wait > 0:
                    await asyncio.sleep(self.wait)

    async def _exec(self, prep_res: Any) -> Any:
        return await self._exec_one(prep_res)


class BatchNode(Node):
    """
    A node whose prep returns a sequence of items.

    exec runs once per item, with the retry policy applied to each item
    separately, in input order. The exec result handed to post is the
    list of per-item results.
    """

    async def _exec(self, items: Optional[List[Any]]) -> List[Any]:
        results = []
        for item in items or []:
            results.append(await self._exec_one(item))
        return results
