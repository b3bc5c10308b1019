"""
NodeFlow - A minimal, async-first workflow orchestration engine.

Compose nodes with a prep/exec/post lifecycle, route between them with
action labels, nest flows inside flows, and let concurrent flows take
turns through handoff queues.
"""

from nodeflow.engine import (
    BaseNode,
    Node,
    BatchNode,
    Flow,
    BatchFlow,
    HandoffQueue,
)

__version__ = "1.0.0"

__all__ = [
    "BaseNode",
    "Node",
    "BatchNode",
    "Flow",
    "BatchFlow",
    "HandoffQueue",
]
