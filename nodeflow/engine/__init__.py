"""
Engine package - Core workflow orchestration components.
"""

from nodeflow.engine.errors import (
    DiagnosticPolicy,
    FlowError,
    InvalidOperationError,
    FlowConfigurationError,
    SuccessorOverwriteError,
    UnmatchedActionError,
)
from nodeflow.engine.node import DEFAULT_ACTION, BaseNode, Node, BatchNode
from nodeflow.engine.flow import Flow, BatchFlow
from nodeflow.engine.queue import HandoffQueue
from nodeflow.engine.graph import describe_flow, to_mermaid

__all__ = [
    "DiagnosticPolicy",
    "FlowError",
    "InvalidOperationError",
    "FlowConfigurationError",
    "SuccessorOverwriteError",
    "UnmatchedActionError",
    "DEFAULT_ACTION",
    "BaseNode",
    "Node",
    "BatchNode",
    "Flow",
    "BatchFlow",
    "HandoffQueue",
    "describe_flow",
    "to_mermaid",
]
