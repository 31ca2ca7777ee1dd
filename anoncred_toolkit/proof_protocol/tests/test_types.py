"""
Tests for verification results and the CBOR envelope.
"""

import pytest

from anoncred_toolkit.proof_protocol.exceptions import SerializationError
from anoncred_toolkit.proof_protocol.types import (
    VerifyResult,
    canonical_cbor,
    dump_versioned,
    load_versioned,
)


class TestVerifyResult:
    def test_success(self):
        result = VerifyResult.success()
        assert result.verified
        assert result.error is None
        assert bool(result)
        assert result.to_dict() == {"verified": True}

    def test_failure(self):
        result = VerifyResult.failure("challenge mismatch")
        assert not result
        assert result.to_dict() == {"verified": False, "error": "challenge mismatch"}


class TestEnvelope:
    def test_canonical_cbor_is_key_order_independent(self):
        assert canonical_cbor({"a": 1, "b": 2}) == canonical_cbor({"b": 2, "a": 1})

    def test_load_checks_kind(self):
        data = dump_versioned("keyed_mac", {"e": 1})
        assert load_versioned("keyed_mac", data)["e"] == 1
        with pytest.raises(SerializationError, match="Expected composite_proof"):
            load_versioned("composite_proof", data)

    def test_load_rejects_garbage(self):
        with pytest.raises(SerializationError):
            load_versioned("keyed_mac", b"\xff\xff")
        with pytest.raises(SerializationError):
            load_versioned("keyed_mac", "not bytes")

    def test_load_rejects_other_version(self):
        data = canonical_cbor({"v": 99, "kind": "keyed_mac"})
        with pytest.raises(SerializationError, match="Unsupported"):
            load_versioned("keyed_mac", data)
