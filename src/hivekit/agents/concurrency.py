"""Bounded admission of concurrent agent work.

Every tool call an agent dispatches (delegations included) runs inside a
slot. A slot is one unit of the calling agent's local limiter plus one
unit of the global limiter shared by the whole swarm.

Acquisition order is fixed: local first, then global. A task waiting on
its own agent's local limit therefore never holds a global unit, so a
saturated agent cannot starve other agents of global capacity. Release
happens in the reverse order. Delegation keeps the caller's slot while
the target runs. Swarm refuses a global limit smaller than its longest
delegation chain; parallel fan-out inside a chain needs headroom beyond that.

Example:
    supervisor = ConcurrencySupervisor(global_limit=50, local_limit=10)

    async with supervisor.slot("backend"):
        result = await tool.call(args)
"""

import asyncio
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

from loguru import logger

from .errors import ConfigurationError, StateError

DEFAULT_GLOBAL_CONCURRENCY = 50
DEFAULT_LOCAL_CONCURRENCY = 10

_lease_ids = itertools.count(1)


@dataclass
class Lease:
    """Proof of a held slot; releasing it twice is an error."""
    agent: str
    id: int = field(default_factory=lambda: next(_lease_ids))
    released: bool = False


@dataclass
class SupervisorStats:
    """Snapshot of supervisor counters."""
    global_limit: int
    active: int
    peak: int
    total_acquired: int
    active_by_agent: Dict[str, int]


class ConcurrencySupervisor:
    """Global plus per-agent counting limiter."""

    def __init__(
        self,
        global_limit: int = DEFAULT_GLOBAL_CONCURRENCY,
        local_limit: int = DEFAULT_LOCAL_CONCURRENCY,
        agent_limits: Optional[Dict[str, int]] = None
    ):
        """Initialize the supervisor.

        Args:
            global_limit: Slots shared by every agent
            local_limit: Default slots per agent
            agent_limits: Per-agent overrides of ``local_limit``
        """
        if global_limit < 1 or local_limit < 1:
            raise ConfigurationError("Concurrency limits must be at least 1")
        for agent, limit in (agent_limits or {}).items():
            if limit < 1:
                raise ConfigurationError(f"Concurrency limit for agent '{agent}' must be at least 1")

        self.global_limit = global_limit
        self.local_limit = local_limit
        self.agent_limits = dict(agent_limits or {})

        self._global = asyncio.Semaphore(global_limit)
        self._local: Dict[str, asyncio.Semaphore] = {}

        # Mutated only between awaits, so the event loop keeps these consistent.
        self._active = 0
        self._peak = 0
        self._total_acquired = 0
        self._active_by_agent: Dict[str, int] = {}

    def limit_for(self, agent: str) -> int:
        return self.agent_limits.get(agent, self.local_limit)

    def _local_for(self, agent: str) -> asyncio.Semaphore:
        semaphore = self._local.get(agent)
        if semaphore is None:
            semaphore = asyncio.Semaphore(self.limit_for(agent))
            self._local[agent] = semaphore
        return semaphore

    async def acquire(self, agent: str) -> Lease:
        """Wait for a local slot of ``agent`` and then a global slot.

        Cancellation while waiting leaves nothing held.
        """
        local = self._local_for(agent)
        await local.acquire()
        try:
            await self._global.acquire()
        except BaseException:
            local.release()
            raise

        self._active += 1
        self._total_acquired += 1
        self._peak = max(self._peak, self._active)
        self._active_by_agent[agent] = self._active_by_agent.get(agent, 0) + 1
        logger.trace(f"[SUPERVISOR] {agent} acquired slot (active={self._active}/{self.global_limit})")
        return Lease(agent=agent)

    def release(self, lease: Lease) -> None:
        """Return a slot. Raises StateError on a second release."""
        if lease.released:
            raise StateError(f"Slot {lease.id} for agent '{lease.agent}' released twice")
        lease.released = True

        self._global.release()
        self._local_for(lease.agent).release()

        self._active -= 1
        self._active_by_agent[lease.agent] -= 1
        logger.trace(f"[SUPERVISOR] {lease.agent} released slot (active={self._active}/{self.global_limit})")

    @asynccontextmanager
    async def slot(self, agent: str) -> AsyncIterator[Lease]:
        lease = await self.acquire(agent)
        try:
            yield lease
        finally:
            self.release(lease)

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak(self) -> int:
        return self._peak

    def active_for(self, agent: str) -> int:
        return self._active_by_agent.get(agent, 0)

    def stats(self) -> SupervisorStats:
        return SupervisorStats(
            global_limit=self.global_limit,
            active=self._active,
            peak=self._peak,
            total_acquired=self._total_acquired,
            active_by_agent={k: v for k, v in self._active_by_agent.items() if v},
        )
