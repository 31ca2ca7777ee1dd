"""
⚠️ DRAFT — requires crypto review before production use

Bound checks ``min <= x < max`` by bit decomposition.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Protocol (n = bit length of max - min - 1):
    x - min      = Σ 2^i b_i,    B_i  = b_i*g + r_i*h
    max - 1 - x  = Σ 2^i b'_i,   B'_i = b'_i*g + r'_i*h

    prove every B_i, B'_i commits to a bit (CDS OR proofs) and
        Σ 2^i B_i + min*g        = x*g + ρ*h
        (max-1)*g - Σ 2^i B'_i   = x*g + ρ'*h

Both differences lie in [0, 2^n) with 2^(n+1) far below the group order,
so x lies in [min, max).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import BOUND_CHECK_COMM_KEY_LABEL, MAX_BOUND_BITS
from ..engine import require_engine
from ..exceptions import ProofGenerationError, UsageError
from ..pedersen.commitments import CurveParameters, PedersenCommKey, mul, multi_mul
from ..pedersen.schnorr import BitCommitment, CompiledStatement, LinearRelation
from ..composite_proof.setup_param import SetupParamRef, param_to_dict, resolve_param
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var

BOUND_CHECK_PROTOCOL = "BitDecomposition"


def bound_check_comm_key(label: Optional[bytes] = None) -> PedersenCommKey:
    """Commitment key (g, h) for bit commitments."""
    return PedersenCommKey.generate(require_engine(), label or BOUND_CHECK_COMM_KEY_LABEL, 1)


def bits_for_range(minimum: int, maximum: int) -> int:
    """
    Bits needed for both differences of the half-open range.

    Raises:
        UsageError: If the range is empty or too wide
    """
    if not isinstance(minimum, int) or not isinstance(maximum, int):
        raise UsageError("Bounds must be integers")
    if minimum < 0:
        raise UsageError(f"Lower bound must be non-negative, got {minimum}")
    if maximum <= minimum:
        raise UsageError(f"Upper bound {maximum} must be greater than lower bound {minimum}")
    n = max(1, (maximum - minimum - 1).bit_length())
    if n > MAX_BOUND_BITS:
        raise UsageError(f"Range needs {n} bits; at most {MAX_BOUND_BITS} are supported")
    return n


def _bits(value: int, n: int) -> List[int]:
    return [(value >> i) & 1 for i in range(n)]


@dataclass(frozen=True)
class BoundCheckWitness(Witness):
    kind = "bound_check"

    value: int


@dataclass(frozen=True)
class BoundCheckStatement(Statement):
    """``minimum <= m0 < maximum``."""

    kind = "bound_check"
    witness_type = BoundCheckWitness

    minimum: int
    maximum: int
    comm_key: Union[PedersenCommKey, SetupParamRef]

    def __post_init__(self):
        bits_for_range(self.minimum, self.maximum)

    @property
    def bit_count(self) -> int:
        return bits_for_range(self.minimum, self.maximum)

    def witness_refs(self):
        return [0]

    def setup_param_refs(self):
        return [self.comm_key.index] if isinstance(self.comm_key, SetupParamRef) else []

    def resolve(self, setup_params):
        key = resolve_param(self.comm_key, setup_params, PedersenCommKey)
        return BoundCheckStatement(self.minimum, self.maximum, key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "protocol": BOUND_CHECK_PROTOCOL,
            "min": self.minimum,
            "max": self.maximum,
            "comm_key": param_to_dict(self.comm_key),
        }

    def _gens(self) -> Tuple[Any, Any]:
        return self.comm_key.bases[0], self.comm_key.h

    def prepare(self, witness, params: CurveParameters, rng) -> PreparedStatement:
        x = witness.value
        if not self.minimum <= x < self.maximum:
            raise ProofGenerationError(
                f"Value is outside the bounds [{self.minimum}, {self.maximum})"
            )
        g, h = self._gens()
        n = self.bit_count
        low = _bits(x - self.minimum, n)
        high = _bits(self.maximum - 1 - x, n)

        openings: List[Tuple[int, int]] = []
        low_points, high_points = [], []
        rho_low = rho_high = 0
        for i, bit in enumerate(low):
            r = rng.get_random_scalar_mod_order()
            low_points.append(mul(bit, g) + mul(r, h))
            openings.append((bit, r))
            rho_low += (1 << i) * r
        for i, bit in enumerate(high):
            r = rng.get_random_scalar_mod_order()
            high_points.append(mul(bit, g) + mul(r, h))
            openings.append((bit, r))
            rho_high -= (1 << i) * r

        return PreparedStatement(
            elements={"B": low_points, "B2": high_points},
            secrets={
                ref_var(0): x % params.order,
                "rho": rho_low % params.order,
                "rho2": rho_high % params.order,
            },
            bit_openings=openings,
        )

    def check_elements(self, elements, params) -> Optional[str]:
        n = self.bit_count
        if len(elements.get("B", ())) != n or len(elements.get("B2", ())) != n:
            return f"expected {n} bit commitments per side"
        return None

    def compile(self, elements, params: CurveParameters) -> CompiledStatement:
        g, h = self._gens()
        low, high = elements["B"], elements["B2"]
        low_sum = multi_mul(params, [(1 << i, p) for i, p in enumerate(low)])
        high_sum = multi_mul(params, [(1 << i, p) for i, p in enumerate(high)])

        relations = (
            LinearRelation(low_sum + mul(self.minimum, g), ((ref_var(0), g), ("rho", h))),
            LinearRelation(mul(self.maximum - 1, g) - high_sum, ((ref_var(0), g), ("rho2", h))),
        )
        bits = tuple(BitCommitment(p, g, h) for p in list(low) + list(high))
        return CompiledStatement(relations=relations, bits=bits)
