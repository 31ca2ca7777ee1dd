"""
End-to-end scenarios across the proof protocol layers.

A: selective disclosure with independently derived message indices
B: equality of attributes across two credentials
C: accumulator revocation with holder-side witness updates

Prover and verifier never share state here beyond what a real verifier
would receive: the public structure, revealed values and the proof.
"""

import pytest

from anoncred_toolkit.proof_protocol.accumulator.keys import (
    AccumulatorParams,
    AccumulatorSecretKey,
    encode_bytes_as_accumulator_member,
)
from anoncred_toolkit.proof_protocol.accumulator.positive import PositiveAccumulator
from anoncred_toolkit.proof_protocol.accumulator.proof import (
    AccumulatorMembershipStatement,
    AccumulatorMembershipWitness,
)
from anoncred_toolkit.proof_protocol.accumulator.state import InMemoryState
from anoncred_toolkit.proof_protocol.composite_proof.meta_statement import (
    WitnessEqualityMetaStatement,
)
from anoncred_toolkit.proof_protocol.composite_proof.proof import CompositeProof
from anoncred_toolkit.proof_protocol.composite_proof.proof_spec import QuasiProofSpec
from anoncred_toolkit.proof_protocol.composite_proof.statement import Witnesses
from anoncred_toolkit.proof_protocol.encoder import Encoder
from anoncred_toolkit.proof_protocol.exceptions import UsageError
from anoncred_toolkit.proof_protocol.factory import get_signature_scheme
from anoncred_toolkit.proof_protocol.flattening import AttributeStructure
from anoncred_toolkit.proof_protocol.indexer import MessageIndexer

ATTRIBUTES = {
    "fname": "John",
    "lname": "Smith",
    "city": "Berlin",
    "age": 34,
    "SSN": "123-45-6789",
}

ENCODER = Encoder(
    {
        "age": Encoder.positive_integer_encoder(),
        "SSN": Encoder.reversible_encoder_string(),
    },
    Encoder.default_encode_func(),
)


def banner(title):
    print("\n" + "=" * 70)
    print(f"TEST: {title}")
    print("=" * 70)


class Signer:
    def __init__(self, scheme_name):
        self.scheme = get_signature_scheme(scheme_name)
        self.sk, self.pk = self.scheme.keygen()
        # The verifier of a keyed scheme is the issuer itself
        self.verification_key = self.pk if self.scheme.publicly_verifiable else self.sk

    def sign(self, attributes):
        indexer = MessageIndexer(AttributeStructure.from_object(attributes))
        messages = indexer.encode(attributes, ENCODER)
        params = self.scheme.params(len(messages))
        return messages, self.scheme.sign(messages, self.sk, params)


# ============================================================================
# SCENARIO A: SELECTIVE DISCLOSURE
# ============================================================================


def prove_disclosure(signer, revealed_names, nonce):
    messages, signature = signer.sign(ATTRIBUTES)
    indexer = MessageIndexer(AttributeStructure.from_object(ATTRIBUTES))
    revealed, unrevealed = indexer.split(messages, revealed_names)
    params = signer.scheme.params(len(messages))

    spec = QuasiProofSpec()
    spec.add_statement(signer.scheme.statement_for(params, signer.pk, revealed))
    witnesses = Witnesses([signer.scheme.witness_for(signature, unrevealed)])
    return CompositeProof.generate(spec, witnesses, nonce)


def verifier_spec(signer, revealed):
    params = signer.scheme.params(len(ATTRIBUTES))
    spec = QuasiProofSpec()
    spec.add_statement(signer.scheme.statement_for(params, signer.verification_key, revealed))
    return spec


def test_scenario_a_selective_disclosure(scheme_name):
    banner(f"Scenario A: selective disclosure ({scheme_name})")
    signer = Signer(scheme_name)
    proof = prove_disclosure(signer, ["city", "fname"], b"nonce-a")
    print("\n1. Prover revealed city and fname")

    # Verifier: indices come from the public attribute names alone
    indexer = MessageIndexer(AttributeStructure.from_names(list(ATTRIBUTES)))
    revealed = indexer.encode_revealed({"city": "Berlin", "fname": "John"}, ENCODER)
    result = proof.verify(verifier_spec(signer, revealed), b"nonce-a")
    print(f"2. Verifier with derived indices: {result.verified}")
    assert result.verified

    # Same names, values paired with the other name's index
    names = ["city", "fname"]
    swapped = dict(
        zip(
            indexer.indices_of(names),
            [ENCODER.encode_message("fname", "John"), ENCODER.encode_message("city", "Berlin")],
        )
    )
    result = proof.verify(verifier_spec(signer, swapped), b"nonce-a")
    print(f"3. Verifier with swapped values: {result.verified}")
    assert not result.verified

    assert not proof.verify(verifier_spec(signer, revealed), b"other-nonce").verified


def test_scenario_a_round_trip_through_bytes(scheme_name):
    signer = Signer(scheme_name)
    proof = prove_disclosure(signer, ["age"], None)
    indexer = MessageIndexer(AttributeStructure.from_names(list(ATTRIBUTES)))
    revealed = indexer.encode_revealed({"age": 34}, ENCODER)
    restored = CompositeProof.from_bytes(proof.to_bytes())
    assert restored.verify(verifier_spec(signer, revealed)).verified


# ============================================================================
# SCENARIO B: CROSS-CREDENTIAL EQUALITY
# ============================================================================


def equality_proof(signer, first, second):
    indexer = MessageIndexer(AttributeStructure.from_object(ATTRIBUTES))
    ssn = indexer.index_of("SSN")
    params = signer.scheme.params(len(ATTRIBUTES))

    spec = QuasiProofSpec()
    witnesses = Witnesses()
    for attributes in (first, second):
        messages, signature = signer.sign(attributes)
        _, unrevealed = indexer.split(messages, [])
        spec.add_statement(signer.scheme.statement_for(params, signer.pk, {}))
        witnesses.add(signer.scheme.witness_for(signature, unrevealed))
    spec.add_meta_statement(WitnessEqualityMetaStatement([(0, ssn), (1, ssn)]))
    proof = CompositeProof.generate(spec, witnesses)

    verifier = QuasiProofSpec()
    for _ in range(2):
        verifier.add_statement(signer.scheme.statement_for(params, signer.verification_key, {}))
    verifier.add_meta_statement(WitnessEqualityMetaStatement([(0, ssn), (1, ssn)]))
    return proof.verify(verifier)


def test_scenario_b_equal_attributes(scheme_name):
    banner(f"Scenario B: equal attributes ({scheme_name})")
    signer = Signer(scheme_name)
    other = dict(ATTRIBUTES, fname="Johnny", city="Hamburg")
    result = equality_proof(signer, ATTRIBUTES, other)
    print(f"\n1. Same SSN in both credentials: {result.verified}")
    assert result.verified


def test_scenario_b_different_attributes(scheme_name):
    banner(f"Scenario B: different attributes ({scheme_name})")
    signer = Signer(scheme_name)
    other = dict(ATTRIBUTES, SSN="987-65-4321")
    result = equality_proof(signer, ATTRIBUTES, other)
    print(f"\n1. Different SSN claimed equal: {result.verified} ({result.error})")
    assert not result.verified


# ============================================================================
# SCENARIO C: REVOCATION
# ============================================================================


def membership_verified(params, accumulated, member, witness, sk):
    spec = QuasiProofSpec()
    spec.add_statement(AccumulatorMembershipStatement(params, accumulated))
    proof = CompositeProof.generate(
        spec, Witnesses([AccumulatorMembershipWitness(member, witness)])
    )
    keyed = QuasiProofSpec()
    keyed.add_statement(AccumulatorMembershipStatement(params, accumulated, sk))
    return proof.verify(keyed).verified


@pytest.mark.trio
async def test_scenario_c_revocation():
    banner("Scenario C: revocation")
    sk = AccumulatorSecretKey.generate()
    params = AccumulatorParams.generate()
    state = InMemoryState()
    acc = PositiveAccumulator.initialize(params, sk)

    members = [encode_bytes_as_accumulator_member(f"user-{i}".encode()) for i in range(5)]
    holder, revoked = members[0], members[3]
    await acc.add_batch(members, state=state)
    holder_witness = await acc.membership_witness(holder, state=state)
    revoked_witness = await acc.membership_witness(revoked, state=state)
    print(f"\n1. Accumulated {state.size} members")

    await acc.remove(revoked, state=state)
    info = acc.witness_update_info([], [revoked])
    print("2. Manager removed one member and published update info")

    updated = holder_witness.update_using_public_info_post_batch_update(
        holder, [], [revoked], info
    )
    assert acc.verify_membership_witness(holder, updated)
    assert membership_verified(params, acc.accumulated, holder, updated, sk)
    print("3. Holder's updated witness verifies")

    assert not acc.verify_membership_witness(holder, holder_witness)
    assert not acc.verify_membership_witness(revoked, revoked_witness)
    assert not membership_verified(params, acc.accumulated, revoked, revoked_witness, sk)
    with pytest.raises(UsageError):
        revoked_witness.update_using_public_info_post_batch_update(revoked, [], [revoked], info)
    print("4. Revoked member fails closed")
