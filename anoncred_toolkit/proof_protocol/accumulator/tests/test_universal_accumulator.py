"""
⚠️ DRAFT — requires crypto review before production use

Tests for the KB universal accumulator.

Test Coverage:
1. Domain handling and initialization
2. Membership and non-membership witnesses
3. Public witness updates after batches and domain extensions
4. Non-membership proofs in composite proofs
"""

import pytest

from anoncred_toolkit.proof_protocol.accumulator.keys import (
    AccumulatorParams,
    AccumulatorSecretKey,
    encode_positive_number_as_accumulator_member,
)
from anoncred_toolkit.proof_protocol.accumulator.proof import (
    AccumulatorMembershipWitness,
    KBUniversalMembershipStatement,
    KBUniversalNonMembershipStatement,
)
from anoncred_toolkit.proof_protocol.accumulator.state import InMemoryUniversalState
from anoncred_toolkit.proof_protocol.accumulator.universal import (
    KBUniversalAccumulator,
    KBUniversalAccumulatorValue,
)
from anoncred_toolkit.proof_protocol.accumulator.witness import KBUniversalNonMembershipWitness
from anoncred_toolkit.proof_protocol.composite_proof.proof import CompositeProof
from anoncred_toolkit.proof_protocol.composite_proof.proof_spec import QuasiProofSpec
from anoncred_toolkit.proof_protocol.composite_proof.statement import Witnesses
from anoncred_toolkit.proof_protocol.exceptions import StateConflictError

DOMAIN = [encode_positive_number_as_accumulator_member(i) for i in range(1, 21)]


@pytest.fixture
def sk():
    return AccumulatorSecretKey.generate()


@pytest.fixture
def params():
    return AccumulatorParams.generate(b"kb-test")


async def _accumulator(params, sk, members=DOMAIN[:5]):
    state = InMemoryUniversalState()
    acc = await KBUniversalAccumulator.initialize(DOMAIN, params, sk, state)
    await acc.add_batch(members, sk, state)
    return acc, state


# ============================================================================
# TEST: DOMAIN
# ============================================================================


class TestDomain:
    @pytest.mark.trio
    async def test_initialize_sets_domain(self, params, sk):
        state = InMemoryUniversalState()
        acc = await KBUniversalAccumulator.initialize(DOMAIN, params, sk, state)
        assert state.domain == set(DOMAIN)
        assert state.size == 0
        assert acc.accumulated.mem == params.p

    @pytest.mark.trio
    async def test_add_outside_domain(self, params, sk):
        acc, state = await _accumulator(params, sk)
        before = acc.accumulated
        with pytest.raises(StateConflictError, match="not in the domain"):
            await acc.add(999999, sk, state)
        assert acc.accumulated == before

    @pytest.mark.trio
    async def test_extend_rejects_known_elements(self, params, sk):
        acc, state = await _accumulator(params, sk)
        before = acc.accumulated
        with pytest.raises(StateConflictError):
            await acc.extend([DOMAIN[0]], sk, state)
        assert acc.accumulated == before

    @pytest.mark.trio
    async def test_extended_elements_can_join(self, params, sk):
        acc, state = await _accumulator(params, sk)
        await acc.extend([5000, 5001], sk, state)
        await acc.add(5000, sk, state)
        witness = await acc.membership_witness(5000, sk, state)
        assert acc.verify_membership_witness(5000, witness, sk)


# ============================================================================
# TEST: WITNESSES
# ============================================================================


class TestWitnesses:
    @pytest.mark.trio
    async def test_membership_and_non_membership(self, params, sk):
        acc, state = await _accumulator(params, sk)
        mem = await acc.membership_witness(DOMAIN[0], sk, state)
        non_mem = await acc.non_membership_witness(DOMAIN[10], sk, state)
        assert acc.verify_membership_witness(DOMAIN[0], mem, sk)
        assert acc.verify_non_membership_witness(DOMAIN[10], non_mem, sk)
        assert not acc.verify_membership_witness(DOMAIN[10], mem, sk)
        assert not acc.verify_non_membership_witness(DOMAIN[0], non_mem, sk)

    @pytest.mark.trio
    async def test_non_membership_witness_refused(self, params, sk):
        acc, state = await _accumulator(params, sk)
        with pytest.raises(StateConflictError):
            await acc.non_membership_witness(DOMAIN[0], sk, state)
        with pytest.raises(StateConflictError, match="not in the domain"):
            await acc.non_membership_witness(777777, sk, state)

    @pytest.mark.trio
    async def test_remove_moves_element_back(self, params, sk):
        acc, state = await _accumulator(params, sk)
        await acc.remove(DOMAIN[1], sk, state)
        witness = await acc.non_membership_witness(DOMAIN[1], sk, state)
        assert acc.verify_non_membership_witness(DOMAIN[1], witness, sk)

    @pytest.mark.trio
    async def test_batch_witnesses(self, params, sk):
        acc, state = await _accumulator(params, sk)
        mems = await acc.membership_witnesses_for_batch(DOMAIN[:3], sk, state)
        non_mems = await acc.non_membership_witnesses_for_batch(DOMAIN[12:14], sk, state)
        assert all(acc.verify_membership_witness(m, w, sk) for m, w in zip(DOMAIN[:3], mems))
        assert all(
            acc.verify_non_membership_witness(m, w, sk) for m, w in zip(DOMAIN[12:14], non_mems)
        )


# ============================================================================
# TEST: WITNESS UPDATES
# ============================================================================


class TestUniversalWitnessUpdates:
    @pytest.mark.trio
    async def test_both_witness_types_after_batch(self, params, sk):
        acc, state = await _accumulator(params, sk)
        member, non_member = DOMAIN[0], DOMAIN[15]
        mem = await acc.membership_witness(member, sk, state)
        non_mem = await acc.non_membership_witness(non_member, sk, state)

        additions, removals = DOMAIN[6:9], DOMAIN[2:4]
        await acc.add_remove_batches(additions, removals, sk, state)
        mem_info, non_mem_info = acc.witness_update_info_for_both_witness_types(
            additions, removals, sk
        )

        mem = mem.update_using_public_info_post_batch_update(member, additions, removals, mem_info)
        non_mem = non_mem.update_using_public_info_post_batch_update(
            non_member, additions, removals, non_mem_info
        )
        assert acc.verify_membership_witness(member, mem, sk)
        assert acc.verify_non_membership_witness(non_member, non_mem, sk)

    @pytest.mark.trio
    async def test_manager_side_non_membership_update(self, params, sk):
        acc, state = await _accumulator(params, sk)
        non_member = DOMAIN[15]
        witness = await acc.non_membership_witness(non_member, sk, state)
        additions, removals = DOMAIN[6:8], DOMAIN[:1]
        await acc.add_remove_batches(additions, removals, sk, state)
        updated = witness.update_witness_post_batch_update(non_member, additions, removals, sk)
        assert acc.verify_non_membership_witness(non_member, updated, sk)

    @pytest.mark.trio
    async def test_after_domain_extension(self, params, sk):
        acc, state = await _accumulator(params, sk)
        non_member = DOMAIN[15]
        witness = await acc.non_membership_witness(non_member, sk, state)

        extensions, infos = [[6000, 6001], [6002]], []
        for new_elements in extensions:
            await acc.extend(new_elements, sk, state)
            infos.append(
                acc.witness_update_info_for_non_membership_witness_after_domain_extension(
                    new_elements, sk
                )
            )

        once = witness.update_using_public_info_post_domain_extension(
            non_member, extensions[0], infos[0]
        )
        assert not acc.verify_non_membership_witness(non_member, once, sk)
        updated = witness.update_using_public_info_post_multiple_domain_extensions(
            non_member, extensions, infos
        )
        assert acc.verify_non_membership_witness(non_member, updated, sk)

    @pytest.mark.trio
    async def test_value_serialization(self, params, sk):
        acc, state = await _accumulator(params, sk)
        witness = await acc.non_membership_witness(DOMAIN[9], sk, state)
        restored = KBUniversalAccumulator.from_accumulated(
            KBUniversalAccumulatorValue.from_bytes(acc.accumulated.to_bytes())
        )
        restored_witness = KBUniversalNonMembershipWitness.from_bytes(witness.to_bytes())
        assert restored.verify_non_membership_witness(DOMAIN[9], restored_witness, sk)


# ============================================================================
# TEST: PROOFS
# ============================================================================


@pytest.mark.trio
async def test_membership_and_non_membership_proofs(params, sk):
    acc, state = await _accumulator(params, sk)
    member, non_member = DOMAIN[2], DOMAIN[11]
    mem = await acc.membership_witness(member, sk, state)
    non_mem = await acc.non_membership_witness(non_member, sk, state)
    value = acc.accumulated

    spec = QuasiProofSpec()
    spec.add_statement(KBUniversalMembershipStatement(params, value.mem))
    spec.add_statement(KBUniversalNonMembershipStatement(params, value.non_mem))
    witnesses = Witnesses(
        [
            AccumulatorMembershipWitness(member, mem),
            AccumulatorMembershipWitness(non_member, non_mem),
        ]
    )
    proof = CompositeProof.generate(spec, witnesses, b"nonce")

    keyed = QuasiProofSpec()
    keyed.add_statement(KBUniversalMembershipStatement(params, value.mem, sk))
    keyed.add_statement(KBUniversalNonMembershipStatement(params, value.non_mem, sk))
    assert proof.verify(keyed, b"nonce").verified

    # The membership side does not accept the non-membership proof
    swapped = QuasiProofSpec()
    swapped.add_statement(KBUniversalNonMembershipStatement(params, value.non_mem, sk))
    swapped.add_statement(KBUniversalMembershipStatement(params, value.mem, sk))
    assert not proof.verify(swapped, b"nonce").verified
