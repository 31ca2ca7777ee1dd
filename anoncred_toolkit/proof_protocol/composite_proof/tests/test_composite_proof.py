"""
⚠️ DRAFT — requires crypto review before production use

Tests for proof specs, meta-statements and composite proofs.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Test Coverage:
1. Proof spec validity (dangling references, bad witness indices)
2. Equality meta-statements across statements
3. Setup parameter back-references
4. Serialization and tamper detection
5. Statement order binding
"""

import pytest

from anoncred_toolkit.proof_protocol.composite_proof.meta_statement import (
    MetaStatements,
    WitnessEqualityMetaStatement,
    merge_equalities,
)
from anoncred_toolkit.proof_protocol.composite_proof.pedersen_commitment import (
    PedersenCommitmentStatement,
    PedersenCommitmentWitness,
)
from anoncred_toolkit.proof_protocol.composite_proof.proof import CompositeProof
from anoncred_toolkit.proof_protocol.composite_proof.proof_spec import ProofSpec, QuasiProofSpec
from anoncred_toolkit.proof_protocol.composite_proof.setup_param import (
    SetupParam,
    SetupParamRef,
    resolve_param,
)
from anoncred_toolkit.proof_protocol.composite_proof.statement import Statements, Witnesses
from anoncred_toolkit.proof_protocol.exceptions import (
    ArityMismatch,
    ProofGenerationError,
    SerializationError,
    UsageError,
)
from anoncred_toolkit.proof_protocol.pedersen.commitments import PedersenCommKey
from anoncred_toolkit.proof_protocol.predicates.bound_check import (
    BoundCheckStatement,
    BoundCheckWitness,
    bound_check_comm_key,
)


def _commitment(engine, label, scalars):
    key = PedersenCommKey.generate(engine, label, len(scalars))
    bases = tuple(key.bases)
    point = key.commit_vector(engine, list(scalars), 0)
    return PedersenCommitmentStatement(bases, point), PedersenCommitmentWitness(tuple(scalars))


def _two_commitments(engine, shared, other):
    s1, w1 = _commitment(engine, b"first", [shared, 5])
    s2, w2 = _commitment(engine, b"second", [9, other])
    spec = QuasiProofSpec()
    spec.add_statement(s1)
    spec.add_statement(s2)
    witnesses = Witnesses([w1, w2])
    return spec, witnesses


# ============================================================================
# TEST: COLLECTIONS AND META-STATEMENTS
# ============================================================================


class TestCollections:
    def test_handles_are_insertion_indices(self, engine):
        statements = Statements()
        s, _ = _commitment(engine, b"a", [1])
        assert statements.add(s) == 0
        assert statements.append(s) == 1
        assert len(statements) == 2

    def test_wrong_item_type(self):
        with pytest.raises(UsageError):
            Statements().add("not a statement")

    def test_meta_statement_refs(self):
        meta = WitnessEqualityMetaStatement()
        meta.add_witness_ref(0, 1)
        meta.add_witness_ref(2, 0)
        assert meta.refs == frozenset({(0, 1), (2, 0)})
        assert meta.to_list() == [[0, 1], [2, 0]]
        assert len(MetaStatements([meta])) == 1

    def test_overlapping_equalities_merge(self):
        merged = merge_equalities([
            frozenset({(0, 0), (1, 0)}),
            frozenset({(1, 0), (2, 3)}),
            frozenset({(4, 1), (5, 1)}),
        ])
        assert sorted(map(sorted, merged)) == [
            [(0, 0), (1, 0), (2, 3)],
            [(4, 1), (5, 1)],
        ]


# ============================================================================
# TEST: PROOF SPEC VALIDITY
# ============================================================================


class TestProofSpecValidity:
    def test_valid_spec(self, engine):
        spec, _ = _two_commitments(engine, 1, 1)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (1, 1)]))
        assert spec.is_valid().verified
        assert isinstance(spec.finalize(), ProofSpec)

    def test_meta_statement_to_missing_statement(self, engine):
        spec, _ = _two_commitments(engine, 1, 1)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (7, 0)]))
        result = spec.is_valid()
        assert not result.verified
        assert "statement 7" in result.error

    def test_meta_statement_to_missing_witness(self, engine):
        spec, _ = _two_commitments(engine, 1, 1)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (1, 5)]))
        assert not spec.is_valid().verified
        with pytest.raises(UsageError, match="Invalid proof spec"):
            spec.finalize()

    def test_single_reference_meta_statement(self, engine):
        spec, _ = _two_commitments(engine, 1, 1)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0)]))
        assert "fewer than 2" in spec.is_valid().error

    def test_dangling_setup_param(self):
        spec = QuasiProofSpec()
        spec.add_statement(BoundCheckStatement(0, 10, SetupParamRef(3)))
        result = spec.is_valid()
        assert not result.verified
        assert "setup param 3" in result.error

    def test_resolve_param_checks_kind(self, engine):
        spec = QuasiProofSpec()
        index = spec.add_setup_param(SetupParam(PedersenCommKey.generate(engine, b"x", 1)))
        spec.add_statement(BoundCheckStatement(0, 10, SetupParamRef(index)))
        assert spec.is_valid().verified
        with pytest.raises(UsageError):
            resolve_param(SetupParamRef(index), spec.setup_params, int)


# ============================================================================
# TEST: GENERATE / VERIFY
# ============================================================================


class TestCompositeProof:
    def test_equal_witnesses_verify(self, engine):
        spec, witnesses = _two_commitments(engine, 42, 42)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (1, 1)]))
        proof = CompositeProof.generate(spec, witnesses, b"nonce")
        assert proof.verify(spec, b"nonce").verified

    def test_unequal_witnesses_fail_verification(self, engine):
        """Equality is not checked at generation; the proof just fails."""
        spec, witnesses = _two_commitments(engine, 42, 43)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (1, 1)]))
        proof = CompositeProof.generate(spec, witnesses, b"nonce")
        result = proof.verify(spec, b"nonce")
        assert not result.verified
        assert "Witness equality" in result.error

    def test_arity_mismatch(self, engine):
        spec, witnesses = _two_commitments(engine, 1, 1)
        with pytest.raises(ArityMismatch):
            CompositeProof.generate(spec, Witnesses([witnesses[0]]))

    def test_wrong_witness_type(self, engine):
        spec, _ = _two_commitments(engine, 1, 1)
        witnesses = Witnesses([BoundCheckWitness(3), BoundCheckWitness(4)])
        with pytest.raises(UsageError):
            CompositeProof.generate(spec, witnesses)

    def test_unsatisfied_statement(self, engine):
        statement, _ = _commitment(engine, b"c", [1, 2])
        spec = QuasiProofSpec()
        spec.add_statement(statement)
        with pytest.raises(ProofGenerationError):
            CompositeProof.generate(spec, Witnesses([PedersenCommitmentWitness((1, 3))]))

    def test_invalid_spec_rejected_at_generation(self, engine):
        spec, witnesses = _two_commitments(engine, 1, 1)
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (9, 0)]))
        with pytest.raises(UsageError):
            CompositeProof.generate(spec, witnesses)

    def test_reordered_statements_fail(self, engine):
        spec, witnesses = _two_commitments(engine, 1, 2)
        proof = CompositeProof.generate(spec, witnesses)

        reordered = QuasiProofSpec()
        reordered.add_statement(spec.statements[1])
        reordered.add_statement(spec.statements[0])
        assert not proof.verify(reordered).verified

    def test_context_is_bound(self, engine):
        spec, witnesses = _two_commitments(engine, 1, 2)
        spec.context = b"context-a"
        proof = CompositeProof.generate(spec, witnesses)
        other = QuasiProofSpec(spec.statements, spec.meta_statements, spec.setup_params, b"b")
        assert proof.verify(spec).verified
        assert not proof.verify(other).verified

    def test_statement_count_mismatch(self, engine):
        spec, witnesses = _two_commitments(engine, 1, 2)
        proof = CompositeProof.generate(spec, witnesses)
        shorter = QuasiProofSpec()
        shorter.add_statement(spec.statements[0])
        assert "statements" in proof.verify(shorter).error

    def test_setup_param_shared_by_statements(self, engine):
        spec = QuasiProofSpec()
        key = spec.add_setup_param(SetupParam(bound_check_comm_key()))
        spec.add_statement(BoundCheckStatement(10, 20, SetupParamRef(key)))
        spec.add_statement(BoundCheckStatement(0, 100, SetupParamRef(key)))
        spec.add_meta_statement(WitnessEqualityMetaStatement([(0, 0), (1, 0)]))
        proof = CompositeProof.generate(
            spec, Witnesses([BoundCheckWitness(15), BoundCheckWitness(15)])
        )
        assert proof.verify(spec).verified


# ============================================================================
# TEST: SERIALIZATION
# ============================================================================


class TestSerialization:
    def test_round_trip(self, engine):
        spec, witnesses = _two_commitments(engine, 7, 7)
        proof = CompositeProof.generate(spec, witnesses, b"n")
        restored = CompositeProof.from_bytes(proof.to_bytes())
        assert restored.verify(spec, b"n").verified
        assert restored.statement_elements(0) == {}

    def test_tampered_response(self, engine):
        spec, witnesses = _two_commitments(engine, 7, 7)
        proof = CompositeProof.generate(spec, witnesses)
        responses = [dict(r) for r in proof.responses]
        responses[0]["m0"] = (responses[0]["m0"] + 1)
        tampered = CompositeProof(
            proof.challenge, proof.elements, tuple(responses), proof.bit_proofs
        )
        assert not tampered.verify(spec).verified

    def test_garbage_bytes(self):
        with pytest.raises(SerializationError):
            CompositeProof.from_bytes(b"garbage")
