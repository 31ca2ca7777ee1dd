"""
⚠️ DRAFT — requires crypto review before production use

Public witness-update information for batch accumulator updates.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Batch update (additions A, removals D) takes V_before to
V_after = V_before * f_A(α) / f_D(α), with f_S(X) = Π_{s∈S} (s + X).

The manager publishes, for V_mid = V_after * f_D(α):
    Ω_k = α^k * V_before         for k < |A|
    E_j = V_mid / (d_j + α)      for each removal d_j

A holder with C = V_before / (y + α) then computes, without α:
    additions:  W  = f_A(-y) * C + Σ q_k * Ω_k
                where q(X) = (f_A(X) - f_A(-y)) / (X + y)
    removals:   C' = W / Π(d_j - y) + Σ E_j / ((y - d_j) * Π_{k≠j}(d_k - d_j))

The holder MUST pass the same additions and removals, in the same order,
as the manager. Anything else yields a witness that does not verify.
"""

from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from ..config import MAX_BATCH_UPDATE_SIZE
from ..engine import require_engine
from ..exceptions import UsageError
from ..pedersen.commitments import inverse, mul, multi_mul, point_from_bytes, point_to_bytes
from ..types import dump_versioned, load_versioned
from .keys import AccumulatorSecretKey


# ============================================================================
# POLYNOMIALS OVER Z_q (coefficients low to high)
# ============================================================================


def poly_from_roots(elements: Sequence[int], order: int) -> List[int]:
    """Coefficients of Π (e + X)."""
    coeffs = [1]
    for e in elements:
        shifted = [0] + coeffs
        coeffs = [(e * c + s) % order for c, s in zip(coeffs + [0], shifted)]
    return coeffs


def poly_eval(coeffs: Sequence[int], x: int, order: int) -> int:
    result = 0
    for c in reversed(coeffs):
        result = (result * x + c) % order
    return result


def divide_by_linear(coeffs: Sequence[int], root: int, order: int) -> List[int]:
    """Quotient of f(X) by (X - root); the remainder is dropped."""
    n = len(coeffs) - 1
    quotient = [0] * n
    carry = 0
    for i in range(n, 0, -1):
        carry = (coeffs[i] + root * carry) % order
        quotient[i - 1] = carry
    return quotient


def _product(values, order: int) -> int:
    result = 1
    for v in values:
        result = (result * v) % order
    return result


def check_batch_size(additions: Sequence[int], removals: Sequence[int]) -> None:
    if len(additions) + len(removals) > MAX_BATCH_UPDATE_SIZE:
        raise UsageError(
            f"Batch of {len(additions) + len(removals)} updates exceeds "
            f"{MAX_BATCH_UPDATE_SIZE}; split it"
        )


# ============================================================================
# UPDATE INFO
# ============================================================================


@dataclass(frozen=True)
class WitnessUpdateInfo:
    """Public descriptor of one batch update."""

    omegas: Tuple[Any, ...]
    e_points: Tuple[Any, ...]

    @classmethod
    def new(
        cls,
        accumulated_after: Any,
        additions: Sequence[int],
        removals: Sequence[int],
        secret_key: AccumulatorSecretKey,
    ) -> "WitnessUpdateInfo":
        """Manager side: derive the descriptor from the post-update value."""
        check_batch_size(additions, removals)
        order = require_engine().order
        alpha = secret_key.value
        f_d = _product(((d + alpha) for d in removals), order)
        f_a = _product(((a + alpha) for a in additions), order)

        v_mid = mul(f_d, accumulated_after)
        v_before = mul(inverse(f_a), v_mid)
        omegas = tuple(mul(pow(alpha, k, order), v_before) for k in range(len(additions)))
        e_points = tuple(mul(inverse(d + alpha), v_mid) for d in removals)
        return cls(omegas=omegas, e_points=e_points)

    def apply(self, witness_point: Any, member: int, additions: Sequence[int],
              removals: Sequence[int]) -> Any:
        """
        Holder side: advance ``witness_point`` for ``member`` past this batch.

        Raises:
            UsageError: If the lists do not match the descriptor's sizes or
                the member itself was removed
        """
        if len(additions) != len(self.omegas) or len(removals) != len(self.e_points):
            raise UsageError(
                f"Update info covers {len(self.omegas)} additions and "
                f"{len(self.e_points)} removals, got {len(additions)} and {len(removals)}"
            )
        curve = require_engine()
        order = curve.order
        y = member % order
        if y in {d % order for d in removals}:
            raise UsageError("Member is among the removals; its witness cannot be updated")

        f_a = poly_from_roots(additions, order)
        root = (-y) % order
        quotient = divide_by_linear(f_a, root, order)
        w = multi_mul(
            curve,
            [(poly_eval(f_a, root, order), witness_point)] + list(zip(quotient, self.omegas)),
        )

        pairs = [(inverse(_product(((d - y) for d in removals), order)), w)]
        for j, d_j in enumerate(removals):
            others = _product(((d_k - d_j) for k, d_k in enumerate(removals) if k != j), order)
            pairs.append((inverse((y - d_j) * others), self.e_points[j]))
        return multi_mul(curve, pairs)

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "witness_update_info",
            {
                "omega": [point_to_bytes(p) for p in self.omegas],
                "E": [point_to_bytes(p) for p in self.e_points],
            },
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "WitnessUpdateInfo":
        obj = load_versioned("witness_update_info", data)
        curve = require_engine()
        return cls(
            omegas=tuple(point_from_bytes(p, curve) for p in obj["omega"]),
            e_points=tuple(point_from_bytes(p, curve) for p in obj["E"]),
        )
