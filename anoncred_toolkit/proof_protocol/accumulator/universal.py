"""
⚠️ DRAFT — requires crypto review before production use

KB universal accumulator: membership and non-membership over a fixed domain.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Two positive accumulators share one secret key:
    mem      accumulates current members
    non_mem  accumulates domain elements that are not members

Adding y moves it from non_mem to mem; removing moves it back. The domain
only grows (``extend``), and only domain elements may ever be added.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..engine import require_engine
from ..exceptions import StateConflictError
from ..pedersen.commitments import inverse, mul, point_from_bytes, point_to_bytes
from ..types import dump_versioned, load_versioned
from .keys import AccumulatorParams, AccumulatorSecretKey
from .positive import Accumulator, batch_factor
from .state import UniversalAccumulatorState
from .witness import KBUniversalMembershipWitness, KBUniversalNonMembershipWitness
from .witness_update import WitnessUpdateInfo, check_batch_size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KBUniversalAccumulatorValue:
    mem: Any
    non_mem: Any

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "kb_universal_accumulator",
            {"mem": point_to_bytes(self.mem), "non_mem": point_to_bytes(self.non_mem)},
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "KBUniversalAccumulatorValue":
        obj = load_versioned("kb_universal_accumulator", data)
        curve = require_engine()
        return cls(point_from_bytes(obj["mem"], curve), point_from_bytes(obj["non_mem"], curve))


class KBUniversalAccumulator(Accumulator):
    """Universal accumulator; see the module docstring."""

    @property
    def accumulated(self) -> KBUniversalAccumulatorValue:
        return self.value

    @classmethod
    async def initialize(
        cls,
        domain: Sequence[int],
        params: AccumulatorParams,
        secret_key: AccumulatorSecretKey,
        state: Optional[UniversalAccumulatorState] = None,
    ) -> "KBUniversalAccumulator":
        """Every domain element starts as a non-member."""
        check_batch_size(domain, [])
        if state is not None:
            await state.extend_domain(domain)
        non_mem = mul(batch_factor(domain, secret_key.value), params.p)
        return cls(KBUniversalAccumulatorValue(params.p, non_mem), params, secret_key)

    @classmethod
    def from_accumulated(cls, accumulated: KBUniversalAccumulatorValue) -> "KBUniversalAccumulator":
        return cls(accumulated)

    async def extend(
        self,
        new_elements: Sequence[int],
        secret_key: Optional[AccumulatorSecretKey] = None,
        state: Optional[UniversalAccumulatorState] = None,
    ) -> None:
        """
        Add ``new_elements`` to the domain as non-members.

        Raises:
            StateConflictError: If an element is already in the domain
        """
        check_batch_size(new_elements, [])
        sk = self._secret_key(secret_key)
        if state is not None:
            await state.extend_domain(new_elements)
        self.value = KBUniversalAccumulatorValue(
            self.value.mem, mul(batch_factor(new_elements, sk.value), self.value.non_mem)
        )
        logger.debug("domain extended by %d elements", len(new_elements))

    # ------------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------------

    async def add(self, element: int, secret_key=None, state=None) -> None:
        await self.add_remove_batches([element], [], secret_key, state)

    async def remove(self, element: int, secret_key=None, state=None) -> None:
        await self.add_remove_batches([], [element], secret_key, state)

    async def add_batch(self, elements: Sequence[int], secret_key=None, state=None) -> None:
        await self.add_remove_batches(elements, [], secret_key, state)

    async def remove_batch(self, elements: Sequence[int], secret_key=None, state=None) -> None:
        await self.add_remove_batches([], elements, secret_key, state)

    async def add_remove_batches(
        self,
        additions: Sequence[int],
        removals: Sequence[int],
        secret_key=None,
        state: Optional[UniversalAccumulatorState] = None,
    ) -> None:
        """
        All-or-nothing batch update.

        Raises:
            StateConflictError: If an addition is outside the domain or
                already a member, or a removal is not a member
        """
        check_batch_size(additions, removals)
        if state is not None:
            await state.check_batch(additions, removals)
        sk = self._secret_key(secret_key)
        factor = batch_factor(additions, sk.value) * inverse(batch_factor(removals, sk.value))
        self.value = KBUniversalAccumulatorValue(
            mul(factor, self.value.mem), mul(inverse(factor), self.value.non_mem)
        )
        if state is not None:
            await state.add_remove_batches(additions, removals)
        logger.debug("universal accumulator batch update: +%d -%d", len(additions), len(removals))

    # ------------------------------------------------------------------------
    # Witnesses
    # ------------------------------------------------------------------------

    async def membership_witness(
        self, member: int, secret_key=None, state=None
    ) -> KBUniversalMembershipWitness:
        await self.ensure_presence(member, state)
        sk = self._secret_key(secret_key)
        return KBUniversalMembershipWitness(mul(inverse(member + sk.value), self.value.mem))

    async def membership_witnesses_for_batch(
        self, members: Sequence[int], secret_key=None, state=None
    ) -> List[KBUniversalMembershipWitness]:
        return [await self.membership_witness(m, secret_key, state) for m in members]

    async def non_membership_witness(
        self, non_member: int, secret_key=None, state: Optional[UniversalAccumulatorState] = None
    ) -> KBUniversalNonMembershipWitness:
        """
        Raises:
            StateConflictError: If the element is outside the domain or a member
        """
        if state is not None:
            if not await state.in_domain(non_member):
                raise StateConflictError(f"{non_member} is not in the domain")
            await self.ensure_absence(non_member, state)
        sk = self._secret_key(secret_key)
        return KBUniversalNonMembershipWitness(
            mul(inverse(non_member + sk.value), self.value.non_mem)
        )

    async def non_membership_witnesses_for_batch(
        self, non_members: Sequence[int], secret_key=None, state=None
    ) -> List[KBUniversalNonMembershipWitness]:
        return [await self.non_membership_witness(m, secret_key, state) for m in non_members]

    def verify_membership_witness(self, member: int, witness, secret_key=None) -> bool:
        sk = self._secret_key(secret_key)
        if witness.value.is_infinite():
            return False
        return mul(member + sk.value, witness.value) == self.value.mem

    def verify_non_membership_witness(self, non_member: int, witness, secret_key=None) -> bool:
        sk = self._secret_key(secret_key)
        if witness.value.is_infinite():
            return False
        return mul(non_member + sk.value, witness.value) == self.value.non_mem

    # ------------------------------------------------------------------------
    # Update info
    # ------------------------------------------------------------------------

    def witness_update_info_for_membership_witness(
        self, additions: Sequence[int], removals: Sequence[int], secret_key=None
    ) -> WitnessUpdateInfo:
        return WitnessUpdateInfo.new(
            self.value.mem, additions, removals, self._secret_key(secret_key)
        )

    def witness_update_info_for_non_membership_witness(
        self, additions: Sequence[int], removals: Sequence[int], secret_key=None
    ) -> WitnessUpdateInfo:
        # Member additions leave the non-membership side
        return WitnessUpdateInfo.new(
            self.value.non_mem, removals, additions, self._secret_key(secret_key)
        )

    def witness_update_info_for_non_membership_witness_after_domain_extension(
        self, new_elements: Sequence[int], secret_key=None
    ) -> WitnessUpdateInfo:
        return WitnessUpdateInfo.new(
            self.value.non_mem, new_elements, [], self._secret_key(secret_key)
        )

    def witness_update_info_for_both_witness_types(
        self, additions: Sequence[int], removals: Sequence[int], secret_key=None
    ) -> Tuple[WitnessUpdateInfo, WitnessUpdateInfo]:
        return (
            self.witness_update_info_for_membership_witness(additions, removals, secret_key),
            self.witness_update_info_for_non_membership_witness(additions, removals, secret_key),
        )
