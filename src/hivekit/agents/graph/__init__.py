"""Dependency graphs and node-based workflows."""

from .dependency import DependencyGraph
from .results import ResultStore, ResultEntry
from .workflow import Node, NodeContext, NodeStatus, SkipExecution, WorkflowEngine, WorkflowResult

__all__ = [
    "DependencyGraph",
    "ResultStore",
    "ResultEntry",
    "Node",
    "NodeContext",
    "NodeStatus",
    "SkipExecution",
    "WorkflowEngine",
    "WorkflowResult",
]
