"""
⚠️ DRAFT — requires crypto review before production use

Accumulator membership and non-membership witnesses.

A witness for element y in an accumulator with value V is
C = V / (y + α). The keyed check is (y + α) * C == V.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Sequence

from ..engine import require_engine
from ..exceptions import UsageError
from ..pedersen.commitments import inverse, mul, point_from_bytes, point_to_bytes
from ..types import dump_versioned, load_versioned
from .keys import AccumulatorSecretKey
from .witness_update import WitnessUpdateInfo, check_batch_size

logger = logging.getLogger(__name__)


def _product_shift(elements: Sequence[int], alpha: int, order: int) -> int:
    result = 1
    for e in elements:
        result = (result * (e + alpha)) % order
    return result


@dataclass(frozen=True)
class MembershipWitness:
    """Positive-accumulator witness ``C = V / (member + α)``."""

    value: Any

    kind = "vb_membership_witness"

    # ------------------------------------------------------------------------
    # Single updates (anyone who knows the new or old accumulated value)
    # ------------------------------------------------------------------------

    def update_post_add(self, addition: int, member: int, accumulator_value_before_addition):
        """C' = (addition - member) * C + V_before."""
        return type(self)(mul(addition - member, self.value) + accumulator_value_before_addition)

    def update_post_remove(self, removal: int, member: int, accumulator_value_after_removal):
        """C' = (C - V_after) / (removal - member)."""
        if (removal - member) % require_engine().order == 0:
            raise UsageError("Cannot update the witness of the removed member")
        return type(self)(
            mul(inverse(removal - member), self.value - accumulator_value_after_removal)
        )

    # ------------------------------------------------------------------------
    # Batch updates
    # ------------------------------------------------------------------------

    def update_using_public_info_post_batch_update(
        self,
        member: int,
        additions: Sequence[int],
        removals: Sequence[int],
        info: WitnessUpdateInfo,
    ):
        """Holder side; no secret key. Lists must match the manager's exactly."""
        logger.debug("public witness update: +%d -%d", len(additions), len(removals))
        return type(self)(info.apply(self.value, member, additions, removals))

    def update_using_public_info_post_multiple_batch_updates(
        self,
        member: int,
        additions: Sequence[Sequence[int]],
        removals: Sequence[Sequence[int]],
        infos: Sequence[WitnessUpdateInfo],
    ):
        """Apply consecutive batch updates in order."""
        if not len(additions) == len(removals) == len(infos):
            raise UsageError(
                f"Got {len(additions)} addition lists, {len(removals)} removal lists "
                f"and {len(infos)} update infos"
            )
        witness = self
        for adds, rems, info in zip(additions, removals, infos):
            witness = witness.update_using_public_info_post_batch_update(member, adds, rems, info)
        return witness

    def update_witness_post_batch_update(
        self,
        member: int,
        additions: Sequence[int],
        removals: Sequence[int],
        secret_key: AccumulatorSecretKey,
    ):
        """Manager side: C' = C * f_A(α) / f_D(α)."""
        check_batch_size(additions, removals)
        if member in removals:
            raise UsageError("Member is among the removals; its witness cannot be updated")
        order = require_engine().order
        alpha = secret_key.value
        factor = _product_shift(additions, alpha, order) * inverse(
            _product_shift(removals, alpha, order)
        )
        return type(self)(mul(factor, self.value))

    @classmethod
    def update_multiple_post_batch_update(
        cls,
        witnesses: Sequence["MembershipWitness"],
        members: Sequence[int],
        additions: Sequence[int],
        removals: Sequence[int],
        secret_key: AccumulatorSecretKey,
    ) -> List["MembershipWitness"]:
        if len(witnesses) != len(members):
            raise UsageError("Need one member per witness")
        return [
            w.update_witness_post_batch_update(m, additions, removals, secret_key)
            for w, m in zip(witnesses, members)
        ]

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        return dump_versioned(self.kind, {"C": point_to_bytes(self.value)})

    @classmethod
    def from_bytes(cls, data: bytes):
        obj = load_versioned(cls.kind, data)
        return cls(point_from_bytes(obj["C"], require_engine()))


@dataclass(frozen=True)
class KBUniversalMembershipWitness(MembershipWitness):
    kind = "kb_membership_witness"


@dataclass(frozen=True)
class KBUniversalNonMembershipWitness(MembershipWitness):
    """
    Witness in the non-membership side of a KB universal accumulator.

    Member additions are removals from the non-membership side and vice
    versa; the batch-update methods take the lists as the manager passed
    them to the accumulator and swap them here.
    """

    kind = "kb_non_membership_witness"

    def update_using_public_info_post_batch_update(self, non_member, additions, removals, info):
        return type(self)(info.apply(self.value, non_member, removals, additions))

    def update_witness_post_batch_update(self, non_member, additions, removals, secret_key):
        return super().update_witness_post_batch_update(
            non_member, removals, additions, secret_key
        )

    def update_using_public_info_post_domain_extension(
        self, non_member: int, new_elements: Sequence[int], info: WitnessUpdateInfo
    ):
        """Domain extension adds ``new_elements`` to the non-membership side."""
        return type(self)(info.apply(self.value, non_member, new_elements, []))

    def update_using_public_info_post_multiple_domain_extensions(
        self,
        non_member: int,
        new_elements: Sequence[Sequence[int]],
        infos: Sequence[WitnessUpdateInfo],
    ):
        if len(new_elements) != len(infos):
            raise UsageError("Need one update info per domain extension")
        witness = self
        for elements, info in zip(new_elements, infos):
            witness = witness.update_using_public_info_post_domain_extension(
                non_member, elements, info
            )
        return witness
