"""
⚠️ DRAFT — requires crypto review before production use

Keyed-verification algebraic MACs over message vectors.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Scheme:
    Keys: x ← Z_q (issuer secret), X = x*G (identifier only)

    MAC(m_1..m_n):
        e, s ← Z_q
        B = g0 + s*h0 + Σ m_i*h_i
        A = B / (e + x)
        σ = (A, e, s)

    Verify (needs x): (e + x)*A == B

    Proof of knowledge with disclosure set D:
        r1 ← Z_q*, Ā = r1*A, D = r1*B, B̄ = D - e*Ā   (so B̄ = x*Ā)
        prove  D - B̄ = e*Ā
               g0 + Σ_{i∈D} m_i*h_i = r3*D - s*h0 - Σ_{i∉D} m_i*h_i   (r3 = 1/r1)
        keyed check by the issuer: B̄ == x*Ā and Ā ≠ identity

Security Notes:
    - Presentations are unlinkable (Ā, B̄, D are re-randomized per proof).
    - Only the issuer can complete verification; others can run the sigma
      part and forward the keyed part (KeyedMacProof) to the issuer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..config import MAC_PARAMS_LABEL
from ..engine import require_engine
from ..exceptions import ArityMismatch, CryptographicError, UsageError
from ..pedersen.commitments import inverse, is_identity, mul, point_from_bytes, point_to_bytes
from ..pedersen.schnorr import CompiledStatement, LinearRelation
from ..security import default_randomness
from ..types import VerifyResult, dump_versioned, load_versioned
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var
from .interfaces import SignatureScheme
from .params import SignatureParams

logger = logging.getLogger(__name__)


# ============================================================================
# KEYS AND MACS
# ============================================================================


@dataclass(frozen=True)
class MacSecretKey:
    value: int

    def public_key(self) -> "MacPublicKey":
        return MacPublicKey(mul(self.value, require_engine().G))


@dataclass(frozen=True)
class MacPublicKey:
    """Issuer identifier. Cannot verify MACs."""

    point: Any

    def to_bytes(self) -> bytes:
        return point_to_bytes(self.point)


@dataclass(frozen=True)
class KeyedMac:
    a: Any
    e: int
    s: int


@dataclass(frozen=True)
class BlindKeyedMac:
    """MAC over a holder commitment; the holder adds its blinding to ``s``."""

    a: Any
    e: int
    s: int


def _mac_base(params: SignatureParams, messages: Mapping[int, int], s: int):
    return params.g0 + params.commit_to_messages(require_engine(), dict(messages), s)


def _mac(base, secret_key: MacSecretKey) -> Tuple[Any, int]:
    curve = require_engine()
    rng = default_randomness()
    e = rng.get_random_scalar_mod_order()
    while (e + secret_key.value) % curve.order == 0:
        e = rng.get_random_scalar_mod_order()
    return mul(inverse(e + secret_key.value), base), e


# ============================================================================
# KEYED PROOF
# ============================================================================


@dataclass(frozen=True)
class KeyedMacProof:
    """The part of a MAC presentation that only the issuer can check."""

    a_bar: Any
    b_bar: Any

    def verify(self, secret_key: MacSecretKey) -> VerifyResult:
        if is_identity(self.a_bar):
            return VerifyResult.failure("Randomized MAC is the identity")
        if mul(secret_key.value, self.a_bar) != self.b_bar:
            return VerifyResult.failure("Keyed MAC check failed")
        return VerifyResult.success()

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "keyed_mac_proof",
            {"A_bar": point_to_bytes(self.a_bar), "B_bar": point_to_bytes(self.b_bar)},
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "KeyedMacProof":
        obj = load_versioned("keyed_mac_proof", data)
        curve = require_engine()
        return cls(point_from_bytes(obj["A_bar"], curve), point_from_bytes(obj["B_bar"], curve))


# ============================================================================
# PROOF OF KNOWLEDGE
# ============================================================================


@dataclass(frozen=True)
class KeyedMacPoKWitness(Witness):
    kind = "keyed_mac_pok"

    mac: KeyedMac
    unrevealed: Mapping[int, int]


@dataclass(frozen=True)
class KeyedMacPoKStatement(Statement):
    """
    Knowledge of a MAC with ``revealed`` messages disclosed.

    With ``secret_key`` set, the keyed check runs during verification.
    The key is never part of the transcript.
    """

    kind = "keyed_mac_pok"
    witness_type = KeyedMacPoKWitness

    params: SignatureParams
    revealed: Mapping[int, int]
    secret_key: Optional[MacSecretKey] = None

    def hidden_indices(self):
        return [i for i in range(self.params.supported_message_count) if i not in self.revealed]

    def witness_refs(self):
        return self.hidden_indices()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "params": self.params.to_dict(),
            "revealed": {int(i): int(m) for i, m in self.revealed.items()},
        }

    def prepare(self, witness, params, rng) -> PreparedStatement:
        hidden = self.hidden_indices()
        if sorted(witness.unrevealed) != hidden:
            raise ArityMismatch(
                f"Unrevealed message indices {sorted(witness.unrevealed)} do not match "
                f"hidden indices {hidden}"
            )
        mac = witness.mac
        messages = dict(self.revealed)
        messages.update(witness.unrevealed)
        base = _mac_base(self.params, messages, mac.s)

        r1 = rng.get_random_scalar_mod_order()
        while r1 == 0:
            r1 = rng.get_random_scalar_mod_order()
        a_bar = mul(r1, mac.a)
        d = mul(r1, base)
        b_bar = d - mul(mac.e, a_bar)

        secrets = {"e": mac.e % params.order, "r3": inverse(r1), "s": mac.s % params.order}
        secrets.update({ref_var(i): witness.unrevealed[i] % params.order for i in hidden})
        return PreparedStatement(elements={"A_bar": a_bar, "B_bar": b_bar, "D": d}, secrets=secrets)

    def compile(self, elements, params) -> CompiledStatement:
        a_bar, b_bar, d = elements["A_bar"], elements["B_bar"], elements["D"]
        first = LinearRelation(d - b_bar, (("e", a_bar),))

        target = self.params.g0
        for i, m in self.revealed.items():
            target = target + mul(m, self.params.h[i])
        terms = [("r3", d), ("s", -self.params.h0)]
        terms.extend((ref_var(i), -self.params.h[i]) for i in self.hidden_indices())
        second = LinearRelation(target, tuple(terms))
        return CompiledStatement(relations=(first, second))

    def check_elements(self, elements, params) -> Optional[str]:
        if is_identity(elements["A_bar"]):
            return "randomized MAC is the identity"
        if self.secret_key is not None:
            result = self.keyed_proof(elements).verify(self.secret_key)
            if not result.verified:
                return result.error
        return None

    def keyed_proof(self, elements) -> KeyedMacProof:
        return KeyedMacProof(elements["A_bar"], elements["B_bar"])


# ============================================================================
# SCHEME
# ============================================================================


class KeyedMacScheme(SignatureScheme):
    """Unlinkable credentials verified by the issuer's secret key."""

    name = "keyed-mac"
    proof_type = "Secp256k1KeyedMac2024"
    blinded_proof_type = "Secp256k1BlindedKeyedMac2024"
    params_label = MAC_PARAMS_LABEL
    publicly_verifiable = False

    def keygen(self) -> Tuple[MacSecretKey, MacPublicKey]:
        sk = MacSecretKey(default_randomness().get_nonzero_scalar())
        return sk, sk.public_key()

    def sign(self, messages: Sequence[int], secret_key, params: SignatureParams) -> KeyedMac:
        if not isinstance(secret_key, MacSecretKey):
            raise UsageError("Keyed MACs need a MacSecretKey")
        params.check_message_count(len(messages))
        s = default_randomness().get_random_scalar_mod_order()
        a, e = _mac(_mac_base(params, dict(enumerate(messages)), s), secret_key)
        logger.debug("computed MAC over %d messages", len(messages))
        return KeyedMac(a=a, e=e, s=s)

    def verify(self, messages, signature, verification_key, params) -> VerifyResult:
        if not isinstance(verification_key, MacSecretKey):
            return VerifyResult.failure("Keyed MACs can only be verified with the secret key")
        if len(messages) != params.supported_message_count:
            return VerifyResult.failure(
                f"Expected {params.supported_message_count} messages, got {len(messages)}"
            )
        base = _mac_base(params, dict(enumerate(messages)), signature.s)
        if mul(signature.e + verification_key.value, signature.a) != base:
            return VerifyResult.failure("Invalid MAC")
        return VerifyResult.success()

    def statement_for(self, params, verification_key, revealed):
        secret_key = verification_key if isinstance(verification_key, MacSecretKey) else None
        return KeyedMacPoKStatement(params, dict(revealed), secret_key)

    def witness_for(self, signature, unrevealed):
        return KeyedMacPoKWitness(signature, dict(unrevealed))

    def blind_sign(self, commitment, known_messages, secret_key, params) -> BlindKeyedMac:
        if not isinstance(secret_key, MacSecretKey):
            raise UsageError("Keyed MACs need a MacSecretKey")
        s = default_randomness().get_random_scalar_mod_order()
        base = _mac_base(params, dict(known_messages), s) + commitment
        a, e = _mac(base, secret_key)
        return BlindKeyedMac(a=a, e=e, s=s)

    def unblind(self, blind_signature, blinding: int) -> KeyedMac:
        order = require_engine().order
        return KeyedMac(a=blind_signature.a, e=blind_signature.e,
                        s=(blind_signature.s + blinding) % order)

    def signature_to_bytes(self, signature) -> bytes:
        return dump_versioned(
            "keyed_mac", {"A": point_to_bytes(signature.a), "e": signature.e, "s": signature.s}
        )

    def signature_from_bytes(self, data: bytes) -> KeyedMac:
        return KeyedMac(*self._load("keyed_mac", data))

    def blind_signature_to_bytes(self, blind_signature) -> bytes:
        return dump_versioned(
            "blind_keyed_mac",
            {"A": point_to_bytes(blind_signature.a), "e": blind_signature.e, "s": blind_signature.s},
        )

    def blind_signature_from_bytes(self, data: bytes) -> BlindKeyedMac:
        return BlindKeyedMac(*self._load("blind_keyed_mac", data))

    @staticmethod
    def _load(kind: str, data: bytes) -> Tuple[Any, int, int]:
        obj = load_versioned(kind, data)
        try:
            return point_from_bytes(obj["A"], require_engine()), int(obj["e"]), int(obj["s"])
        except (KeyError, TypeError, ValueError) as e:
            raise CryptographicError(f"Malformed MAC: {e}") from e
