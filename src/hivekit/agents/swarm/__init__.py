"""Swarm composition and execution."""

from .runner import AgentRunner
from .swarm import Swarm
from .builder import SwarmBuilder

__all__ = [
    "AgentRunner",
    "Swarm",
    "SwarmBuilder",
]
