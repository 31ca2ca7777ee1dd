"""
⚠️ DRAFT — requires crypto review before production use

Schnorr-signed Pedersen vector commitments.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Scheme:
    Keys: x ← Z_q, X = x*G

    Sign(m_1..m_n):
        s ← Z_q, C = s*h0 + Σ m_i*h_i
        k ← Z_q, R = k*G, e = H(R, X, C), z = k + e*x
        σ = (s, C, R, z)

    Verify: C == s*h0 + Σ m_i*h_i and z*G == R + e*X

    Proof of knowledge with disclosure set D:
        reveal C, R, z (the verifier checks the Schnorr equation) and prove
        C - Σ_{i∈D} m_i*h_i = s*h0 + Σ_{i∉D} m_i*h_i

Security Notes:
    - Publicly verifiable.
    - Presentations are linkable: C, R and z are the same every time the
      credential is shown.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..config import DOMAIN_SEPARATORS, SIGNATURE_PARAMS_LABEL
from ..engine import require_engine
from ..exceptions import ArityMismatch, CryptographicError, UsageError
from ..pedersen.commitments import mul, point_from_bytes, point_to_bytes
from ..pedersen.schnorr import CompiledStatement, LinearRelation
from ..security import default_randomness, fiat_shamir_challenge
from ..types import VerifyResult, dump_versioned, load_versioned
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var
from .interfaces import SignatureScheme
from .params import SignatureParams

logger = logging.getLogger(__name__)


# ============================================================================
# KEYS AND SIGNATURES
# ============================================================================


@dataclass(frozen=True)
class SchnorrSecretKey:
    value: int


@dataclass(frozen=True)
class SchnorrPublicKey:
    point: Any

    def to_bytes(self) -> bytes:
        return point_to_bytes(self.point)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SchnorrPublicKey":
        return cls(point_from_bytes(data, require_engine()))


@dataclass(frozen=True)
class SchnorrCommitmentSignature:
    blinding: int
    commitment: Any
    r: Any
    z: int


@dataclass(frozen=True)
class BlindSchnorrCommitmentSignature:
    """Signature over a holder commitment; the holder supplies the blinding."""

    commitment: Any
    r: Any
    z: int


def _challenge(r, public_point, commitment) -> int:
    return fiat_shamir_challenge(
        DOMAIN_SEPARATORS["signature"],
        [point_to_bytes(r), point_to_bytes(public_point), point_to_bytes(commitment)],
    )


def _schnorr_sign(commitment, secret_key: SchnorrSecretKey) -> Tuple[Any, int]:
    params = require_engine()
    k = default_randomness().get_nonzero_scalar()
    r = mul(k, params.G)
    e = _challenge(r, mul(secret_key.value, params.G), commitment)
    return r, (k + e * secret_key.value) % params.order


def _schnorr_check(commitment, r, z: int, public_key: SchnorrPublicKey) -> bool:
    params = require_engine()
    e = _challenge(r, public_key.point, commitment)
    return mul(z, params.G) == r + mul(e, public_key.point)


# ============================================================================
# PROOF OF KNOWLEDGE
# ============================================================================


@dataclass(frozen=True)
class SchnorrCommitmentPoKWitness(Witness):
    kind = "schnorr_commitment_pok"

    signature: SchnorrCommitmentSignature
    unrevealed: Mapping[int, int]


@dataclass(frozen=True)
class SchnorrCommitmentPoKStatement(Statement):
    """Knowledge of a signature with ``revealed`` messages disclosed."""

    kind = "schnorr_commitment_pok"
    witness_type = SchnorrCommitmentPoKWitness

    params: SignatureParams
    public_key: SchnorrPublicKey
    revealed: Mapping[int, int]

    def hidden_indices(self):
        return [i for i in range(self.params.supported_message_count) if i not in self.revealed]

    def witness_refs(self):
        return self.hidden_indices()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "params": self.params.to_dict(),
            "pk": self.public_key.to_bytes(),
            "revealed": {int(i): int(m) for i, m in self.revealed.items()},
        }

    def prepare(self, witness, params, rng) -> PreparedStatement:
        hidden = self.hidden_indices()
        if sorted(witness.unrevealed) != hidden:
            raise ArityMismatch(
                f"Unrevealed message indices {sorted(witness.unrevealed)} do not match "
                f"hidden indices {hidden}"
            )
        sig = witness.signature
        secrets = {"s": sig.blinding}
        secrets.update({ref_var(i): witness.unrevealed[i] % params.order for i in hidden})
        return PreparedStatement(
            elements={"C": sig.commitment, "R": sig.r, "z": sig.z}, secrets=secrets
        )

    def compile(self, elements, params) -> CompiledStatement:
        target = elements["C"]
        for i, m in self.revealed.items():
            target = target - mul(m, self.params.h[i])
        terms = [("s", self.params.h0)]
        terms.extend((ref_var(i), self.params.h[i]) for i in self.hidden_indices())
        return CompiledStatement(relations=(LinearRelation(target, tuple(terms)),))

    def check_elements(self, elements, params) -> Optional[str]:
        if not isinstance(elements.get("z"), int):
            return "missing signature response"
        if not _schnorr_check(elements["C"], elements["R"], elements["z"], self.public_key):
            return "signature on commitment does not verify"
        return None


# ============================================================================
# SCHEME
# ============================================================================


class SchnorrCommitmentScheme(SignatureScheme):
    """Publicly verifiable, linkable credential signatures."""

    name = "schnorr-commitment"
    proof_type = "Secp256k1SchnorrCommitmentSignature2024"
    blinded_proof_type = "Secp256k1BlindedSchnorrCommitmentSignature2024"
    params_label = SIGNATURE_PARAMS_LABEL
    publicly_verifiable = True

    def keygen(self) -> Tuple[SchnorrSecretKey, SchnorrPublicKey]:
        params = require_engine()
        x = default_randomness().get_nonzero_scalar()
        return SchnorrSecretKey(x), SchnorrPublicKey(mul(x, params.G))

    def sign(self, messages: Sequence[int], secret_key, params: SignatureParams):
        if not isinstance(secret_key, SchnorrSecretKey):
            raise UsageError("Schnorr commitment signing needs a SchnorrSecretKey")
        params.check_message_count(len(messages))
        curve = require_engine()
        s = default_randomness().get_random_scalar_mod_order()
        commitment = params.commit_to_messages(curve, dict(enumerate(messages)), s)
        r, z = _schnorr_sign(commitment, secret_key)
        logger.debug("signed %d messages", len(messages))
        return SchnorrCommitmentSignature(blinding=s, commitment=commitment, r=r, z=z)

    def verify(self, messages, signature, verification_key, params) -> VerifyResult:
        if not isinstance(verification_key, SchnorrPublicKey):
            return VerifyResult.failure("Schnorr commitment signatures verify with a public key")
        if len(messages) != params.supported_message_count:
            return VerifyResult.failure(
                f"Expected {params.supported_message_count} messages, got {len(messages)}"
            )
        curve = require_engine()
        expected = params.commit_to_messages(curve, dict(enumerate(messages)), signature.blinding)
        if expected != signature.commitment:
            return VerifyResult.failure("Messages do not match the signed commitment")
        if not _schnorr_check(signature.commitment, signature.r, signature.z, verification_key):
            return VerifyResult.failure("Invalid signature")
        return VerifyResult.success()

    def statement_for(self, params, verification_key, revealed):
        if not isinstance(verification_key, SchnorrPublicKey):
            raise UsageError("Schnorr commitment proofs need a SchnorrPublicKey")
        return SchnorrCommitmentPoKStatement(params, verification_key, dict(revealed))

    def witness_for(self, signature, unrevealed):
        return SchnorrCommitmentPoKWitness(signature, dict(unrevealed))

    def blind_sign(self, commitment, known_messages, secret_key, params):
        if not isinstance(secret_key, SchnorrSecretKey):
            raise UsageError("Schnorr commitment signing needs a SchnorrSecretKey")
        curve = require_engine()
        full = commitment + params.commit_to_messages(curve, dict(known_messages), 0)
        r, z = _schnorr_sign(full, secret_key)
        return BlindSchnorrCommitmentSignature(commitment=full, r=r, z=z)

    def unblind(self, blind_signature, blinding: int):
        return SchnorrCommitmentSignature(
            blinding=blinding % require_engine().order,
            commitment=blind_signature.commitment,
            r=blind_signature.r,
            z=blind_signature.z,
        )

    def signature_to_bytes(self, signature) -> bytes:
        return dump_versioned(
            "schnorr_commitment_signature",
            {
                "s": signature.blinding,
                "C": point_to_bytes(signature.commitment),
                "R": point_to_bytes(signature.r),
                "z": signature.z,
            },
        )

    def signature_from_bytes(self, data: bytes):
        obj = load_versioned("schnorr_commitment_signature", data)
        curve = require_engine()
        try:
            return SchnorrCommitmentSignature(
                blinding=int(obj["s"]),
                commitment=point_from_bytes(obj["C"], curve),
                r=point_from_bytes(obj["R"], curve),
                z=int(obj["z"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CryptographicError(f"Malformed signature: {e}") from e

    def blind_signature_to_bytes(self, blind_signature) -> bytes:
        return dump_versioned(
            "blind_schnorr_commitment_signature",
            {
                "C": point_to_bytes(blind_signature.commitment),
                "R": point_to_bytes(blind_signature.r),
                "z": blind_signature.z,
            },
        )

    def blind_signature_from_bytes(self, data: bytes):
        obj = load_versioned("blind_schnorr_commitment_signature", data)
        curve = require_engine()
        try:
            return BlindSchnorrCommitmentSignature(
                commitment=point_from_bytes(obj["C"], curve),
                r=point_from_bytes(obj["R"], curve),
                z=int(obj["z"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CryptographicError(f"Malformed blind signature: {e}") from e
