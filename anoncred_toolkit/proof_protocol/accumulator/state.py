"""
Accumulator membership state.

Stores are async so that a ledger or database can stand behind the same
interface. The in-memory stores are reference implementations for tests:
they do no locking, so callers serialize mutations against one store.
Batch operations check every element before touching the state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence, Set

import trio

from ..exceptions import StateConflictError

logger = logging.getLogger(__name__)


def _ensure_distinct(elements: Sequence[int]) -> None:
    if len(set(elements)) != len(elements):
        raise StateConflictError("Batch contains duplicate elements")


class AccumulatorState(ABC):
    """Members currently in an accumulator."""

    @abstractmethod
    async def add(self, element: int) -> None: ...

    @abstractmethod
    async def remove(self, element: int) -> None: ...

    @abstractmethod
    async def has(self, element: int) -> bool: ...

    async def add_batch(self, elements: Sequence[int]) -> None:
        await self.add_remove_batches(elements, [])

    async def remove_batch(self, elements: Sequence[int]) -> None:
        await self.add_remove_batches([], elements)

    async def add_remove_batches(
        self, additions: Sequence[int], removals: Sequence[int]
    ) -> None:
        """All-or-nothing: fails without mutating on any conflict."""
        await self.check_batch(additions, removals)
        logger.debug("state batch update: +%d -%d", len(additions), len(removals))
        for element in removals:
            await self.remove(element)
        for element in additions:
            await self.add(element)

    async def check_batch(self, additions: Sequence[int], removals: Sequence[int]) -> None:
        _ensure_distinct(list(additions) + list(removals))
        for element in additions:
            if await self.has(element):
                raise StateConflictError(f"{element} already present")
        for element in removals:
            if not await self.has(element):
                raise StateConflictError(f"{element} not present")


class UniversalAccumulatorState(AccumulatorState):
    """State with an append-only domain; only domain elements can be members."""

    @abstractmethod
    async def in_domain(self, element: int) -> bool: ...

    @abstractmethod
    async def add_to_domain(self, element: int) -> None: ...

    async def check_batch(self, additions: Sequence[int], removals: Sequence[int]) -> None:
        for element in additions:
            if not await self.in_domain(element):
                raise StateConflictError(f"{element} isn't acceptable: not in the domain")
        await super().check_batch(additions, removals)

    async def extend_domain(self, elements: Sequence[int]) -> None:
        _ensure_distinct(elements)
        for element in elements:
            if await self.in_domain(element):
                raise StateConflictError(f"Element {element} already part of domain")
        for element in elements:
            await self.add_to_domain(element)


class InMemoryState(AccumulatorState):
    """Non-durable set of members."""

    def __init__(self, elements: Iterable[int] = ()):
        self.state: Set[int] = set(elements)

    @property
    def size(self) -> int:
        return len(self.state)

    async def add(self, element: int) -> None:
        await trio.lowlevel.checkpoint()
        if element in self.state:
            raise StateConflictError(f"{element} already present")
        self.state.add(element)

    async def remove(self, element: int) -> None:
        await trio.lowlevel.checkpoint()
        if element not in self.state:
            raise StateConflictError(f"{element} not present")
        self.state.discard(element)

    async def has(self, element: int) -> bool:
        await trio.lowlevel.checkpoint()
        return element in self.state

    async def elements(self) -> List[int]:
        await trio.lowlevel.checkpoint()
        return sorted(self.state)


class InMemoryUniversalState(UniversalAccumulatorState):
    """
    Two-set state: ``domain`` (every eligible element, never shrinks) and
    ``state`` (currently included). ``state`` is always a subset of ``domain``.
    """

    def __init__(self):
        self.domain: Set[int] = set()
        self.state: Set[int] = set()

    @property
    def size(self) -> int:
        return len(self.state)

    async def in_domain(self, element: int) -> bool:
        await trio.lowlevel.checkpoint()
        return element in self.domain

    async def add_to_domain(self, element: int) -> None:
        await trio.lowlevel.checkpoint()
        if element in self.domain:
            raise StateConflictError(f"Element {element} already part of domain")
        self.domain.add(element)

    async def add(self, element: int) -> None:
        await trio.lowlevel.checkpoint()
        if element not in self.domain:
            raise StateConflictError(f"{element} isn't acceptable: not in the domain")
        if element in self.state:
            raise StateConflictError(f"{element} already present")
        self.state.add(element)

    async def remove(self, element: int) -> None:
        await trio.lowlevel.checkpoint()
        if element not in self.state:
            raise StateConflictError(f"{element} not present")
        self.state.discard(element)

    async def has(self, element: int) -> bool:
        await trio.lowlevel.checkpoint()
        return element in self.state

    async def elements(self) -> List[int]:
        await trio.lowlevel.checkpoint()
        return sorted(self.state)
