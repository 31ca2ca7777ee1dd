"""
⚠️ DRAFT — requires crypto review before production use

Positive (membership-only) accumulator.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

    V = Π_{y ∈ members} (y + α) * P
    add y:     V' = (y + α) * V
    remove y:  V' = V / (y + α)
    witness:   C = V / (y + α)
    verify:    (y + α) * C == V          (keyed: needs α)

When a state store is passed, every operation checks it first and
updates it afterwards; a failed check leaves both value and state alone.
"""

import logging
from typing import Any, List, Optional, Sequence

from ..engine import require_engine
from ..exceptions import StateConflictError, UsageError
from ..pedersen.commitments import inverse, mul, point_from_bytes, point_to_bytes
from ..types import dump_versioned, load_versioned
from .keys import AccumulatorParams, AccumulatorSecretKey
from .state import AccumulatorState
from .witness import MembershipWitness
from .witness_update import WitnessUpdateInfo, check_batch_size

logger = logging.getLogger(__name__)


def batch_factor(elements: Sequence[int], alpha: int) -> int:
    """Π (e + α) mod q."""
    order = require_engine().order
    result = 1
    for e in elements:
        result = (result * (e + alpha)) % order
    return result


class Accumulator:
    """Shared state checks and secret key handling."""

    def __init__(
        self,
        value: Any,
        params: Optional[AccumulatorParams] = None,
        secret_key: Optional[AccumulatorSecretKey] = None,
    ):
        self.value = value
        self.params = params
        self.secret_key = secret_key

    def _secret_key(self, secret_key: Optional[AccumulatorSecretKey]) -> AccumulatorSecretKey:
        sk = secret_key or self.secret_key
        if sk is None:
            raise UsageError("Secret key needs to be provided")
        return sk

    # ------------------------------------------------------------------------
    # State checks
    # ------------------------------------------------------------------------

    @staticmethod
    async def ensure_absence(element: int, state: Optional[AccumulatorState]) -> None:
        if state is not None and await state.has(element):
            raise StateConflictError(f"{element} already present")

    @staticmethod
    async def ensure_presence(element: int, state: Optional[AccumulatorState]) -> None:
        if state is not None and not await state.has(element):
            raise StateConflictError(f"{element} not present")

    @classmethod
    async def ensure_presence_of_batch(
        cls, elements: Sequence[int], state: Optional[AccumulatorState]
    ) -> None:
        for element in elements:
            await cls.ensure_presence(element, state)


class PositiveAccumulator(Accumulator):
    """Accumulator supporting membership witnesses only."""

    @property
    def accumulated(self):
        return self.value

    @classmethod
    def initialize(
        cls, params: AccumulatorParams, secret_key: Optional[AccumulatorSecretKey] = None
    ) -> "PositiveAccumulator":
        """Start from ``params.p``. A given secret key is kept for later updates."""
        return cls(params.p, params, secret_key)

    @classmethod
    def from_accumulated(cls, accumulated: Any) -> "PositiveAccumulator":
        return cls(accumulated)

    # ------------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------------

    async def add(self, element: int, secret_key=None, state: Optional[AccumulatorState] = None):
        await self.ensure_absence(element, state)
        sk = self._secret_key(secret_key)
        self.value = mul(element + sk.value, self.value)
        if state is not None:
            await state.add(element)
        logger.debug("accumulator add")

    async def remove(self, element: int, secret_key=None, state: Optional[AccumulatorState] = None):
        await self.ensure_presence(element, state)
        sk = self._secret_key(secret_key)
        self.value = mul(inverse(element + sk.value), self.value)
        if state is not None:
            await state.remove(element)
        logger.debug("accumulator remove")

    async def add_batch(self, elements: Sequence[int], secret_key=None, state=None):
        await self.add_remove_batches(elements, [], secret_key, state)

    async def remove_batch(self, elements: Sequence[int], secret_key=None, state=None):
        await self.add_remove_batches([], elements, secret_key, state)

    async def add_remove_batches(
        self,
        additions: Sequence[int],
        removals: Sequence[int],
        secret_key=None,
        state: Optional[AccumulatorState] = None,
    ) -> None:
        """
        Apply one batch. All-or-nothing: conflicts raise before any mutation.

        Raises:
            StateConflictError: If an addition is present or a removal absent
        """
        check_batch_size(additions, removals)
        if state is not None:
            await state.check_batch(additions, removals)
        sk = self._secret_key(secret_key)
        factor = batch_factor(additions, sk.value) * inverse(batch_factor(removals, sk.value))
        self.value = mul(factor, self.value)
        if state is not None:
            await state.add_remove_batches(additions, removals)
        logger.debug("accumulator batch update: +%d -%d", len(additions), len(removals))

    # ------------------------------------------------------------------------
    # Witnesses
    # ------------------------------------------------------------------------

    async def membership_witness(
        self, member: int, secret_key=None, state: Optional[AccumulatorState] = None
    ) -> MembershipWitness:
        await self.ensure_presence(member, state)
        sk = self._secret_key(secret_key)
        return MembershipWitness(mul(inverse(member + sk.value), self.value))

    async def membership_witnesses_for_batch(
        self, members: Sequence[int], secret_key=None, state=None
    ) -> List[MembershipWitness]:
        await self.ensure_presence_of_batch(members, state)
        sk = self._secret_key(secret_key)
        return [MembershipWitness(mul(inverse(m + sk.value), self.value)) for m in members]

    def verify_membership_witness(
        self, member: int, witness: MembershipWitness, secret_key=None
    ) -> bool:
        """Keyed check ``(member + α) * C == V``."""
        sk = self._secret_key(secret_key)
        if witness.value.is_infinite():
            return False
        return mul(member + sk.value, witness.value) == self.value

    def witness_update_info(
        self, additions: Sequence[int], removals: Sequence[int], secret_key=None
    ) -> WitnessUpdateInfo:
        """Update info for the batch that produced the current value."""
        return WitnessUpdateInfo.new(self.value, additions, removals, self._secret_key(secret_key))

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        return dump_versioned("positive_accumulator", {"V": point_to_bytes(self.value)})

    @classmethod
    def from_bytes(cls, data: bytes) -> "PositiveAccumulator":
        obj = load_versioned("positive_accumulator", data)
        return cls(point_from_bytes(obj["V"], require_engine()))
