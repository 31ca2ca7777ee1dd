"""
⚠️ DRAFT — requires crypto review before production use

Tests for the credential signature schemes.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Test Coverage:
1. Sign and verify over message vectors
2. Blind signing and unblinding
3. Proofs of knowledge with selective disclosure
4. Keyed verification of MAC proofs
5. Serialization
"""

import pytest

from anoncred_toolkit.proof_protocol.composite_proof.proof import CompositeProof
from anoncred_toolkit.proof_protocol.composite_proof.proof_spec import QuasiProofSpec
from anoncred_toolkit.proof_protocol.composite_proof.statement import Witnesses
from anoncred_toolkit.proof_protocol.exceptions import (
    ArityMismatch,
    ProofGenerationError,
    UsageError,
)
from anoncred_toolkit.proof_protocol.factory import get_signature_scheme
from anoncred_toolkit.proof_protocol.signatures.commitment_schnorr import SchnorrPublicKey
from anoncred_toolkit.proof_protocol.signatures.keyed_mac import (
    KeyedMacProof,
    MacSecretKey,
)
from anoncred_toolkit.proof_protocol.signatures.params import SignatureParams

MESSAGES = [11, 22, 33, 44]


def _verification_key(scheme, sk, pk):
    return pk if scheme.publicly_verifiable else sk


@pytest.fixture
def scheme(scheme_name):
    return get_signature_scheme(scheme_name)


# ============================================================================
# TEST: PARAMETERS
# ============================================================================


class TestSignatureParams:
    def test_label_derived_params_are_deterministic(self):
        a = SignatureParams.generate(3, b"label")
        b = SignatureParams.generate(3, b"label")
        assert a.h == b.h and a.h0 == b.h0 and a.g0 == b.g0

    def test_adapt_extends_prefix(self):
        small = SignatureParams.generate(2, b"label")
        large = small.adapt(5)
        assert large.supported_message_count == 5
        assert large.h[:2] == small.h

    def test_random_params_cannot_adapt(self):
        params = SignatureParams.generate(2)
        assert not params.is_adaptable()
        with pytest.raises(ArityMismatch):
            params.adapt(3)

    def test_at_least_one_message(self):
        with pytest.raises(ArityMismatch):
            SignatureParams.generate(0, b"label")


# ============================================================================
# TEST: SIGN / VERIFY
# ============================================================================


class TestSignVerify:
    def test_sign_and_verify(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        assert scheme.verify(MESSAGES, signature, _verification_key(scheme, sk, pk), params)

    def test_tampered_message_fails(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        result = scheme.verify([11, 22, 33, 45], signature, _verification_key(scheme, sk, pk), params)
        assert not result.verified
        assert result.error

    def test_other_key_fails(self, scheme):
        sk, _ = scheme.keygen()
        other_sk, other_pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        key = _verification_key(scheme, other_sk, other_pk)
        assert not scheme.verify(MESSAGES, signature, key, params).verified

    def test_wrong_message_count(self, scheme):
        sk, _ = scheme.keygen()
        with pytest.raises(ArityMismatch):
            scheme.sign(MESSAGES, sk, scheme.params(3))

    def test_signature_bytes_round_trip(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        restored = scheme.signature_from_bytes(scheme.signature_to_bytes(signature))
        assert scheme.verify(MESSAGES, restored, _verification_key(scheme, sk, pk), params)

    def test_keyed_mac_rejects_public_key(self):
        scheme = get_signature_scheme("keyed-mac")
        sk, pk = scheme.keygen()
        params = scheme.params(2)
        mac = scheme.sign([1, 2], sk, params)
        result = scheme.verify([1, 2], mac, pk, params)
        assert not result.verified
        assert "secret key" in result.error

    def test_schnorr_statement_needs_public_key(self):
        scheme = get_signature_scheme("schnorr-commitment")
        with pytest.raises(UsageError):
            scheme.statement_for(scheme.params(2), MacSecretKey(5), {})


# ============================================================================
# TEST: BLIND SIGNING
# ============================================================================


class TestBlindSigning:
    def test_blind_sign_and_unblind(self, scheme, engine):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        hidden = {0: MESSAGES[0], 2: MESSAGES[2]}
        known = {1: MESSAGES[1], 3: MESSAGES[3]}
        blinding = 987654321
        commitment = scheme.blinding_base_commitment(params, hidden, blinding)

        blind_signature = scheme.blind_sign(commitment, known, sk, params)
        restored = scheme.blind_signature_from_bytes(
            scheme.blind_signature_to_bytes(blind_signature)
        )
        signature = scheme.unblind(restored, blinding)
        assert scheme.verify(MESSAGES, signature, _verification_key(scheme, sk, pk), params)

    def test_wrong_blinding_fails(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(2)
        commitment = scheme.blinding_base_commitment(params, {0: 5}, 1234)
        signature = scheme.unblind(scheme.blind_sign(commitment, {1: 6}, sk, params), 1235)
        assert not scheme.verify([5, 6], signature, _verification_key(scheme, sk, pk), params)


# ============================================================================
# TEST: PROOF OF KNOWLEDGE
# ============================================================================


def _pok(scheme, sk, pk, params, signature, revealed_idx, nonce=b"nonce"):
    revealed = {i: MESSAGES[i] for i in revealed_idx}
    unrevealed = {i: m for i, m in enumerate(MESSAGES) if i not in revealed}
    spec = QuasiProofSpec()
    spec.add_statement(scheme.statement_for(params, pk, revealed))
    witnesses = Witnesses()
    witnesses.add(scheme.witness_for(signature, unrevealed))
    return CompositeProof.generate(spec, witnesses, nonce), revealed


class TestProofOfKnowledge:
    def test_selective_disclosure(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        proof, revealed = _pok(scheme, sk, pk, params, signature, [1, 3])

        verifier_spec = QuasiProofSpec()
        verifier_spec.add_statement(
            scheme.statement_for(params, _verification_key(scheme, sk, pk), revealed)
        )
        assert proof.verify(verifier_spec, b"nonce").verified

    def test_wrong_revealed_value_fails(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        proof, _ = _pok(scheme, sk, pk, params, signature, [1])

        verifier_spec = QuasiProofSpec()
        verifier_spec.add_statement(scheme.statement_for(params, pk, {1: 23}))
        assert not proof.verify(verifier_spec, b"nonce").verified

    def test_wrong_nonce_fails(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign(MESSAGES, sk, params)
        proof, revealed = _pok(scheme, sk, pk, params, signature, [0])

        verifier_spec = QuasiProofSpec()
        verifier_spec.add_statement(scheme.statement_for(params, pk, revealed))
        assert not proof.verify(verifier_spec, b"other").verified

    def test_signature_over_other_messages_is_rejected(self, scheme):
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        signature = scheme.sign([1, 2, 3, 4], sk, params)
        if scheme.publicly_verifiable:
            with pytest.raises(ProofGenerationError):
                _pok(scheme, sk, pk, params, signature, [0])
            return
        # A MAC over other messages only fails the keyed check
        proof, revealed = _pok(scheme, sk, pk, params, signature, [0])
        spec = QuasiProofSpec()
        spec.add_statement(scheme.statement_for(params, sk, revealed))
        assert not proof.verify(spec, b"nonce").verified

    def test_keyed_check_with_secret_key(self):
        scheme = get_signature_scheme("keyed-mac")
        sk, pk = scheme.keygen()
        other_sk, _ = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        mac = scheme.sign(MESSAGES, sk, params)
        proof, revealed = _pok(scheme, sk, pk, params, mac, [2])

        # Without the key only the sigma part is checked
        public_spec = QuasiProofSpec()
        public_spec.add_statement(scheme.statement_for(params, pk, revealed))
        assert proof.verify(public_spec, b"nonce").verified

        keyed_spec = QuasiProofSpec()
        keyed_spec.add_statement(scheme.statement_for(params, sk, revealed))
        assert proof.verify(keyed_spec, b"nonce").verified

        wrong_spec = QuasiProofSpec()
        wrong_spec.add_statement(scheme.statement_for(params, other_sk, revealed))
        assert not proof.verify(wrong_spec, b"nonce").verified

    def test_delegated_keyed_proof(self):
        scheme = get_signature_scheme("keyed-mac")
        sk, pk = scheme.keygen()
        params = scheme.params(len(MESSAGES))
        mac = scheme.sign(MESSAGES, sk, params)
        proof, revealed = _pok(scheme, sk, pk, params, mac, [])

        spec = QuasiProofSpec()
        spec.add_statement(scheme.statement_for(params, pk, revealed))
        keyed = proof.keyed_proofs(spec.finalize())
        assert list(keyed) == [0]
        restored = KeyedMacProof.from_bytes(keyed[0].to_bytes())
        assert restored.verify(sk).verified
        assert not restored.verify(MacSecretKey(sk.value + 1)).verified

    def test_public_key_bytes_round_trip(self):
        scheme = get_signature_scheme("schnorr-commitment")
        _, pk = scheme.keygen()
        assert SchnorrPublicKey.from_bytes(pk.to_bytes()) == pk
