"""
⚠️ DRAFT — requires crypto review before production use

Tests for bit-decomposition bound checks.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.
"""

import pytest

from anoncred_toolkit.proof_protocol.composite_proof.proof import CompositeProof
from anoncred_toolkit.proof_protocol.composite_proof.proof_spec import QuasiProofSpec
from anoncred_toolkit.proof_protocol.composite_proof.statement import Witnesses
from anoncred_toolkit.proof_protocol.config import MAX_BOUND_BITS
from anoncred_toolkit.proof_protocol.exceptions import ProofGenerationError, UsageError
from anoncred_toolkit.proof_protocol.predicates.bound_check import (
    BoundCheckStatement,
    BoundCheckWitness,
    bits_for_range,
    bound_check_comm_key,
)


def _prove(minimum, maximum, value, nonce=None):
    spec = QuasiProofSpec()
    spec.add_statement(BoundCheckStatement(minimum, maximum, bound_check_comm_key()))
    proof = CompositeProof.generate(spec, Witnesses([BoundCheckWitness(value)]), nonce)
    return spec, proof


class TestBitsForRange:
    def test_widths(self):
        assert bits_for_range(0, 2) == 1
        assert bits_for_range(0, 256) == 8
        assert bits_for_range(10, 11) == 1
        assert bits_for_range(0, 2 ** MAX_BOUND_BITS) == MAX_BOUND_BITS

    def test_empty_range(self):
        with pytest.raises(UsageError):
            bits_for_range(5, 5)

    def test_negative_lower_bound(self):
        with pytest.raises(UsageError):
            bits_for_range(-1, 5)

    def test_too_wide(self):
        with pytest.raises(UsageError):
            bits_for_range(0, 2 ** MAX_BOUND_BITS + 1)

    def test_statement_validates_range(self):
        with pytest.raises(UsageError):
            BoundCheckStatement(10, 3, bound_check_comm_key())


class TestBoundCheckProofs:
    @pytest.mark.parametrize("value", [18, 50, 119])
    def test_value_in_range(self, value):
        spec, proof = _prove(18, 120, value, b"n")
        assert proof.verify(spec, b"n").verified

    def test_upper_bound_is_exclusive(self):
        with pytest.raises(ProofGenerationError):
            _prove(18, 120, 120)

    def test_below_lower_bound(self):
        with pytest.raises(ProofGenerationError):
            _prove(18, 120, 17)

    def test_verifier_with_other_bounds_rejects(self):
        _, proof = _prove(18, 120, 30)
        other = QuasiProofSpec()
        other.add_statement(BoundCheckStatement(30, 120, bound_check_comm_key()))
        assert not proof.verify(other).verified

    def test_truncated_bit_commitments_rejected(self):
        spec, proof = _prove(0, 1000, 500)
        elements = dict(proof.elements[0])
        elements["B"] = elements["B"][:-1]
        tampered = CompositeProof(
            proof.challenge, (elements,), proof.responses, proof.bit_proofs
        )
        result = tampered.verify(spec)
        assert not result.verified
        assert "bit commitments" in result.error
