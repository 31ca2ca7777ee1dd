"""
⚠️ DRAFT — requires crypto review before production use

Tests for Pedersen commitments and group helpers.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Test Coverage:
1. Curve setup and generator derivation
2. Commitment creation and verification
3. Vector commitment keys
4. Point and scalar encodings
"""

import pytest
from petlib.ec import EcGroup

from anoncred_toolkit.proof_protocol.config import CURVE_NID, GROUP_ORDER
from anoncred_toolkit.proof_protocol.exceptions import CryptographicError, SerializationError
from anoncred_toolkit.proof_protocol.pedersen.commitments import (
    PedersenCommKey,
    commit,
    inverse,
    is_identity,
    mul,
    multi_mul,
    point_from_bytes,
    point_to_bytes,
    scalar_from_bytes,
    scalar_to_bytes,
    setup_curve,
    verify_commitment,
)


# ============================================================================
# TEST: CURVE SETUP
# ============================================================================


class TestCurveSetup:
    """Test elliptic curve initialization."""

    def test_setup_curve_default(self):
        """Setup curve with default parameters."""
        params = setup_curve()

        assert params.curve == "secp256k1"
        assert params.library == "petlib"
        assert params.order == GROUP_ORDER

    def test_generators_are_distinct_and_on_curve(self):
        params = setup_curve()
        assert params.G != params.H
        assert params.group.check_point(params.H)

    def test_generator_g_is_standard(self):
        params = setup_curve()
        assert params.G == EcGroup(CURVE_NID).generator()

    def test_unsupported_curve(self):
        with pytest.raises(ValueError):
            setup_curve("P-256")

    def test_generator_family_is_prefix_stable(self, engine):
        """generators(label, n)[:k] == generators(label, k)."""
        five = engine.generators(b"family", 5)
        three = engine.generators(b"family", 3)
        assert five[:3] == three
        assert len(set(point_to_bytes(p) for p in five)) == 5

    def test_generator_family_depends_on_label(self, engine):
        assert engine.generators(b"one", 1) != engine.generators(b"two", 1)


# ============================================================================
# TEST: COMMITMENTS
# ============================================================================


class TestCommitments:
    """Commit and verify."""

    def test_commit_and_verify(self, engine):
        commitment, blinding = commit(42, engine)
        assert verify_commitment(commitment, 42, blinding, engine)
        assert not verify_commitment(commitment, 43, blinding, engine)

    def test_explicit_blinding(self, engine):
        c1, _ = commit(7, engine, blinding=11)
        c2, _ = commit(7, engine, blinding=11)
        assert c1 == c2

    def test_hiding(self, engine):
        """Two commitments to the same value differ."""
        c1, _ = commit(7, engine)
        c2, _ = commit(7, engine)
        assert c1 != c2

    def test_homomorphic_addition(self, engine):
        c1, r1 = commit(3, engine)
        c2, r2 = commit(4, engine)
        assert verify_commitment(c1 + c2, 7, (r1 + r2) % GROUP_ORDER, engine)

    def test_out_of_range_value(self, engine):
        with pytest.raises(ValueError):
            commit(-1, engine)
        with pytest.raises(ValueError):
            commit(GROUP_ORDER, engine)

    def test_vector_commitment(self, engine):
        key = PedersenCommKey.generate(engine, b"vector", 3)
        c = key.commit_vector(engine, [1, 2, 3], 9)
        expected = multi_mul(engine, [(1, key.bases[0]), (2, key.bases[1]),
                                      (3, key.bases[2]), (9, key.h)])
        assert c == expected
        with pytest.raises(ValueError):
            key.commit_vector(engine, [1, 2, 3, 4], 0)


# ============================================================================
# TEST: ENCODINGS AND HELPERS
# ============================================================================


class TestHelpers:
    def test_point_round_trip(self, engine):
        point = mul(5, engine.G)
        assert point_from_bytes(point_to_bytes(point), engine) == point

    def test_identity_encoding(self, engine):
        identity = engine.identity()
        assert point_to_bytes(identity) == b"\x00"
        assert is_identity(point_from_bytes(b"\x00", engine))

    def test_bad_point(self, engine):
        with pytest.raises(SerializationError):
            point_from_bytes(b"\x02" * 5, engine)
        with pytest.raises(SerializationError):
            point_from_bytes("not bytes", engine)

    def test_scalar_round_trip(self):
        assert scalar_from_bytes(scalar_to_bytes(123456789)) == 123456789

    def test_unreduced_scalar_rejected(self):
        with pytest.raises(SerializationError):
            scalar_from_bytes(GROUP_ORDER.to_bytes(32, "big"))

    def test_inverse(self):
        assert (inverse(7) * 7) % GROUP_ORDER == 1
        with pytest.raises(CryptographicError):
            inverse(GROUP_ORDER)

    def test_multi_mul_empty_is_identity(self, engine):
        assert is_identity(multi_mul(engine, []))
