"""Append-only store of node results for one workflow run."""

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from ..agent.models import Result
from ..errors import StateError


@dataclass
class ResultEntry:
    """A recorded node result with completion metadata."""
    node: str
    result: Result
    completed_at: datetime = field(default_factory=datetime.now)
    sequence: int = 0


class ResultStore:
    """Results of completed nodes, in completion order.

    Entries can be added but never replaced or removed, so every reader
    sees a monotonically growing view.
    """

    def __init__(self):
        self._results: Dict[str, Result] = {}
        self._history: List[ResultEntry] = []

    def record(self, node: str, result: Result) -> None:
        if node in self._results:
            raise StateError(f"Result for node '{node}' already recorded")
        self._results[node] = result
        self._history.append(ResultEntry(node=node, result=result, sequence=len(self._history)))
        logger.debug(f"[RESULTS] Recorded '{node}' = {str(result.content)[:100]}")

    def get(self, node: str) -> Optional[Result]:
        return self._results.get(node)

    def content(self, node: str) -> Optional[str]:
        result = self._results.get(node)
        return result.content if result is not None else None

    def view(self) -> Mapping[str, Result]:
        """Read-only live view handed to transformers."""
        return MappingProxyType(self._results)

    def history(self) -> List[ResultEntry]:
        return list(self._history)

    def completion_order(self) -> List[str]:
        return [entry.node for entry in self._history]

    def __contains__(self, node: str) -> bool:
        return node in self._results

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def to_dict(self) -> Dict[str, Result]:
        return dict(self._results)
