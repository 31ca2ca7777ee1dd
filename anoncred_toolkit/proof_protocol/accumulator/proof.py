"""
⚠️ DRAFT — requires crypto review before production use

Zero-knowledge (non-)membership proofs for keyed accumulators.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Protocol (witness C = V / (y + α), so V - y*C = α*C):
    r ← Z_q*
    C̄ = r*C,  V̄ = r*V - y*C̄
    prove  V̄ = r*V - y*C̄          (y is witness reference 0)
    public check:  C̄ ≠ identity
    keyed check:   V̄ == α*C̄        (by the manager, inline or delegated)

C̄ and V̄ are fresh per proof, so presentations are unlinkable.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..engine import require_engine
from ..pedersen.commitments import is_identity, mul, point_from_bytes, point_to_bytes
from ..pedersen.schnorr import CompiledStatement, LinearRelation
from ..types import VerifyResult, dump_versioned, load_versioned
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var
from .keys import AccumulatorParams, AccumulatorSecretKey
from .witness import MembershipWitness


@dataclass(frozen=True)
class KeyedMembershipProof:
    """Part of an accumulator proof that only the manager can check."""

    c_bar: Any
    v_bar: Any

    def verify(self, secret_key: AccumulatorSecretKey) -> VerifyResult:
        if is_identity(self.c_bar):
            return VerifyResult.failure("Randomized witness is the identity")
        if mul(secret_key.value, self.c_bar) != self.v_bar:
            return VerifyResult.failure("Keyed accumulator check failed")
        return VerifyResult.success()

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "keyed_membership_proof",
            {"C_bar": point_to_bytes(self.c_bar), "V_bar": point_to_bytes(self.v_bar)},
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "KeyedMembershipProof":
        obj = load_versioned("keyed_membership_proof", data)
        curve = require_engine()
        return cls(point_from_bytes(obj["C_bar"], curve), point_from_bytes(obj["V_bar"], curve))


@dataclass(frozen=True)
class AccumulatorMembershipWitness(Witness):
    kind = "accumulator_membership"

    element: int
    witness: MembershipWitness


@dataclass(frozen=True)
class AccumulatorMembershipStatement(Statement):
    """
    Knowledge of an accumulated element and its witness.

    ``accumulated`` is the value the proof is checked against: the positive
    accumulator value, or one side of a universal accumulator.
    """

    kind = "accumulator_membership"
    witness_type = AccumulatorMembershipWitness

    params: AccumulatorParams
    accumulated: Any
    secret_key: Optional[AccumulatorSecretKey] = None

    def witness_refs(self):
        return [0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "params": self.params.to_dict(),
            "V": point_to_bytes(self.accumulated),
        }

    def prepare(self, witness, params, rng) -> PreparedStatement:
        r = rng.get_nonzero_scalar()
        c_bar = mul(r, witness.witness.value)
        v_bar = mul(r, self.accumulated) - mul(witness.element, c_bar)
        return PreparedStatement(
            elements={"C_bar": c_bar, "V_bar": v_bar},
            secrets={"r": r, ref_var(0): witness.element % params.order},
        )

    def compile(self, elements, params) -> CompiledStatement:
        relation = LinearRelation(
            elements["V_bar"], (("r", self.accumulated), (ref_var(0), -elements["C_bar"]))
        )
        return CompiledStatement(relations=(relation,))

    def check_elements(self, elements, params) -> Optional[str]:
        if is_identity(elements["C_bar"]):
            return "randomized witness is the identity"
        if self.secret_key is not None:
            result = self.keyed_proof(elements).verify(self.secret_key)
            if not result.verified:
                return result.error
        return None

    def keyed_proof(self, elements) -> KeyedMembershipProof:
        return KeyedMembershipProof(elements["C_bar"], elements["V_bar"])


@dataclass(frozen=True)
class KBUniversalMembershipStatement(AccumulatorMembershipStatement):
    kind = "kb_universal_membership"


@dataclass(frozen=True)
class KBUniversalNonMembershipStatement(AccumulatorMembershipStatement):
    kind = "kb_universal_non_membership"
