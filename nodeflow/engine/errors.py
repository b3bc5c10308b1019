"""
Errors and Diagnostics for the Workflow Engine.

Engine failures are raised as FlowError subclasses. The two routing
diagnostics (successor overwrite and unmatched action) are not errors by
default: their handling is chosen by a DiagnosticPolicy read from settings.
"""

from typing import Iterable, Optional, Type
from enum import Enum
import logging

from nodeflow.config import settings


class DiagnosticPolicy(str, Enum):
    """How a non-fatal engine diagnostic is reported."""
    WARN = "warn"      # Log a warning and carry on
    ERROR = "error"    # Raise the matching FlowError
    IGNORE = "ignore"  # Stay silent


class FlowError(Exception):
    """Base class for all workflow engine errors."""


class InvalidOperationError(FlowError, RuntimeError):
    """An operation was called on a node type that does not support it."""


class FlowConfigurationError(FlowError, ValueError):
    """A flow was run while its graph is not wired up."""


class SuccessorOverwriteError(FlowError, ValueError):
    """A successor was registered for an action that already has one."""

    def __init__(self, message: str, action: Optional[str] = None):
        self.action = action
        super().__init__(message)


class UnmatchedActionError(FlowError, LookupError):
    """A node returned an action none of its successors is registered for."""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        available: Iterable[str] = (),
    ):
        self.action = action
        self.available = list(available)
        super().__init__(message)


def resolve_policy(setting_name: str) -> DiagnosticPolicy:
    """Read a diagnostic policy from the current settings."""
    return DiagnosticPolicy(str(getattr(settings, setting_name)).lower())


def report(
    logger: logging.Logger,
    setting_name: str,
    message: str,
    error: Type[FlowError],
    **details,
) -> None:
    """
    Report a diagnostic according to the configured policy.

    Args:
        logger: Logger of the module the diagnostic originates from
        setting_name: Settings attribute holding the policy
        message: Human-readable diagnostic
        error: FlowError subclass raised under the ERROR policy
        **details: Extra attributes passed to the error

    Raises:
        FlowError: The given error type, if the policy is ERROR
    """
    policy = resolve_policy(setting_name)
    if policy == DiagnosticPolicy.ERROR:
        raise error(message, **details)
    if policy == DiagnosticPolicy.WARN:
        logger.warning(message)
