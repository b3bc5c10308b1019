"""
Workflows package - Sample workflow implementations.

Importing this package registers the sample workflows.
"""

from nodeflow.workflows.registry import Workflow, WorkflowRegistry, workflow_registry
from nodeflow.workflows.guessing import build_guessing_flows, run_guessing
from nodeflow.workflows.word_count import build_word_count_flows, run_word_count

__all__ = [
    "Workflow",
    "WorkflowRegistry",
    "workflow_registry",
    "build_guessing_flows",
    "run_guessing",
    "build_word_count_flows",
    "run_word_count",
]
