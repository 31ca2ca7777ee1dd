"""
⚠️ DRAFT — requires crypto review before production use

Generalized Schnorr (sigma) protocol over linear relations.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Linear relations:
    Every statement compiles to relations of the form

        target = Σ var_k * base_k

    over named secret variables. For each relation the prover sends nothing
    but responses; the announcement is recomputed by the verifier:

        1. Prover picks a nonce r_k per variable
        2. Announcement: A = Σ r_k * base_k
        3. Challenge c from the transcript (computed by the caller)
        4. Responses: z_k = (r_k + c * var_k) mod q

        Verifier recomputes A' = Σ z_k * base_k - c * target and the
        challenge from A'. Two variables proven equal share one nonce, so
        equal secrets give equal responses.

Bit proofs (Cramer-Damgård-Schoenmakers OR composition):
    Claim: P = b*g + r*h with b ∈ {0, 1}

        Real branch b: k random, A_b = k*h
        Simulated branch 1-b: c', z' random, A_{1-b} = z'*h - c'*(P - (1-b)*g)
        After the challenge c: c_b = c - c', z_b = k + c_b * r
        Proof = (c_0, z_0, z_1); verifier derives c_1 = c - c_0.

Security Requirements:
    1. Nonces MUST be random and unique per proof
    2. The challenge MUST bind every relation and announcement
    3. All scalar operations MUST be modulo GROUP_ORDER
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..config import GROUP_ORDER
from ..exceptions import ProofGenerationError
from ..security import RandomnessSource
from .commitments import CurveParameters, mul, multi_mul, point_to_bytes


# ============================================================================
# RELATIONS
# ============================================================================


@dataclass(frozen=True)
class LinearRelation:
    """``target = Σ var * base`` over named variables."""

    target: Any  # EcPt
    terms: Tuple[Tuple[str, Any], ...]

    def variables(self) -> List[str]:
        return [name for name, _ in self.terms]

    def holds(self, params: CurveParameters, secrets: Mapping[str, int]) -> bool:
        try:
            value = multi_mul(params, [(secrets[name], base) for name, base in self.terms])
        except KeyError:
            return False
        return value == self.target


@dataclass(frozen=True)
class BitCommitment:
    """Claim ``point = b * g + r * h`` with ``b ∈ {0, 1}``."""

    point: Any
    g: Any
    h: Any


@dataclass(frozen=True)
class CompiledStatement:
    """Everything a statement asks the sigma engine to prove."""

    relations: Tuple[LinearRelation, ...] = ()
    bits: Tuple[BitCommitment, ...] = ()

    def variables(self) -> List[str]:
        seen: Dict[str, None] = {}
        for relation in self.relations:
            for name in relation.variables():
                seen.setdefault(name, None)
        return list(seen)


# ============================================================================
# ANNOUNCEMENTS
# ============================================================================


def prover_announcement(
    relation: LinearRelation, params: CurveParameters, nonces: Mapping[str, int]
):
    """A = Σ r_k * base_k."""
    return multi_mul(params, [(nonces[name], base) for name, base in relation.terms])


def verifier_announcement(
    relation: LinearRelation,
    params: CurveParameters,
    responses: Mapping[str, int],
    challenge: int,
):
    """A' = Σ z_k * base_k - c * target."""
    acc = multi_mul(params, [(responses[name], base) for name, base in relation.terms])
    return acc - mul(challenge, relation.target)


def response(nonce: int, challenge: int, secret: int) -> int:
    return (nonce + challenge * secret) % GROUP_ORDER


# ============================================================================
# BIT PROOFS
# ============================================================================


@dataclass
class BitProverState:
    """Prover-side state of one bit proof between announcement and response."""

    bit: int
    blinding: int
    nonce: int
    simulated_challenge: int
    simulated_response: int
    announcements: Tuple[Any, Any]


def bit_announce(
    claim: BitCommitment,
    bit: int,
    blinding: int,
    params: CurveParameters,
    rng: RandomnessSource,
) -> BitProverState:
    """
    First move of the OR proof.

    Raises:
        ProofGenerationError: If bit is not 0 or 1
    """
    if bit not in (0, 1):
        raise ProofGenerationError(f"Bit proof requires a bit, got {bit}")

    k = rng.get_random_scalar_mod_order()
    c_sim = rng.get_random_scalar_mod_order()
    z_sim = rng.get_random_scalar_mod_order()

    other = 1 - bit
    shifted = claim.point - mul(other, claim.g)
    a_real = mul(k, claim.h)
    a_sim = mul(z_sim, claim.h) - mul(c_sim, shifted)
    announcements = (a_real, a_sim) if bit == 0 else (a_sim, a_real)
    return BitProverState(bit, blinding, k, c_sim, z_sim, announcements)


def bit_respond(state: BitProverState, challenge: int) -> Tuple[int, int, int]:
    """Return (c_0, z_0, z_1)."""
    c_real = (challenge - state.simulated_challenge) % GROUP_ORDER
    z_real = response(state.nonce, c_real, state.blinding)
    if state.bit == 0:
        return c_real, z_real, state.simulated_response
    return state.simulated_challenge, state.simulated_response, z_real


def bit_verifier_announcements(
    claim: BitCommitment,
    proof: Sequence[int],
    challenge: int,
    params: CurveParameters,
) -> Tuple[Any, Any]:
    """Recompute (A_0, A_1) from (c_0, z_0, z_1)."""
    c0, z0, z1 = proof
    c1 = (challenge - c0) % GROUP_ORDER
    a0 = mul(z0, claim.h) - mul(c0, claim.point)
    a1 = mul(z1, claim.h) - mul(c1, claim.point - claim.g)
    return a0, a1


def announcement_bytes(points: Sequence[Any]) -> List[bytes]:
    return [point_to_bytes(p) for p in points]
