"""
⚠️ DRAFT — requires crypto review before production use

Curve setup, group helpers and Pedersen commitments on petlib + secp256k1.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Pedersen Commitments:
    C = value * G + blinding * H
    where G, H are generators with no known discrete log relation.

Implementation Details:
    - Curve: secp256k1 (NID 714)
    - G: Standard secp256k1 generator
    - H: hash_to_point(GENERATOR_H_SEED) - Nothing-Up-My-Sleeve
    - Vector commitment keys derive every base from a public label
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

try:
    from petlib.ec import EcGroup, EcPt
    from petlib.bn import Bn
except ImportError:
    raise ImportError(
        "petlib is required for the anonymous credential engine. "
        "Install with: pip install petlib"
    )

from ..config import (
    CURVE_NAME,
    CURVE_LIBRARY,
    CURVE_NID,
    GENERATOR_H_SEED,
    GROUP_ORDER,
    POINT_SIZE_BYTES,
    SCALAR_SIZE_BYTES,
)
from ..exceptions import CryptographicError, SerializationError
from ..security import RandomnessSource, constant_time_compare, default_randomness


# ============================================================================
# CURVE SETUP
# ============================================================================


@dataclass
class CurveParameters:
    """
    Elliptic curve parameters shared by every engine operation.

    Attributes:
        curve: Curve name (e.g., "secp256k1")
        library: Cryptographic library (e.g., "petlib")
        group: Elliptic curve group (EcGroup)
        G: Standard generator
        H: Second generator (Nothing-Up-My-Sleeve via hash-to-point)
        order: Group order
    """

    curve: str
    library: str
    group: Any  # EcGroup
    G: Any  # EcPt
    H: Any  # EcPt
    order: int
    _label_cache: Dict[bytes, List[Any]] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if not isinstance(self.order, int):
            self.order = int(self.order)
        if self.order != GROUP_ORDER:
            raise CryptographicError(
                f"Group order mismatch: expected {GROUP_ORDER}, got {self.order}"
            )

    def identity(self):
        return self.group.infinite()

    def generators(self, label: bytes, count: int) -> List[Any]:
        """
        Deterministic generator family ``hash_to_point(label || i)``.

        Results are cached per label and extended on demand, so
        ``generators(label, n)[:k] == generators(label, k)``.
        """
        cached = self._label_cache.setdefault(label, [])
        while len(cached) < count:
            index = len(cached).to_bytes(4, "big")
            cached.append(self.group.hash_to_point(label + b"||" + index))
        return list(cached[:count])


def setup_curve(curve_name: Optional[str] = None) -> CurveParameters:
    """
    Setup the secp256k1 group and the generators G and H.

    ⚠️ TRUST ASSUMPTION: nobody knows log_G(H). H is derived from a public
    seed with petlib's try-and-increment hash_to_point, so anyone can
    recompute it.

    Raises:
        ValueError: If curve is unsupported
        CryptographicError: If curve initialization fails
    """
    curve_name = curve_name or CURVE_NAME
    if curve_name != "secp256k1":
        raise ValueError(f"Only secp256k1 is supported, got {curve_name}")

    try:
        group = EcGroup(CURVE_NID)
        G = group.generator()
        H = group.hash_to_point(GENERATOR_H_SEED)
        return CurveParameters(
            curve=curve_name,
            library=CURVE_LIBRARY,
            group=group,
            G=G,
            H=H,
            order=int(group.order()),
        )
    except CryptographicError:
        raise
    except Exception as e:
        raise CryptographicError(
            f"Failed to initialize curve {curve_name}: {e}"
        ) from e


# ============================================================================
# GROUP HELPERS
# ============================================================================


def to_bn(value: int) -> Bn:
    """Convert a Python int to a petlib Bn reduced modulo the group order."""
    return Bn.from_decimal(str(value % GROUP_ORDER))


def mul(scalar: int, point):
    """scalar * point with the scalar reduced modulo the group order."""
    return to_bn(scalar) * point


def multi_mul(params: CurveParameters, pairs: Iterable[Tuple[int, Any]]):
    """Sum of scalar * point over ``pairs`` (identity for an empty sum)."""
    acc = params.identity()
    for scalar, point in pairs:
        if scalar % GROUP_ORDER:
            acc = acc + mul(scalar, point)
    return acc


def inverse(value: int) -> int:
    value %= GROUP_ORDER
    if value == 0:
        raise CryptographicError("Zero has no inverse modulo the group order")
    return pow(value, -1, GROUP_ORDER)


def is_identity(point) -> bool:
    return point.is_infinite()


def point_to_bytes(point) -> bytes:
    """Compressed point encoding; the identity encodes as a single zero byte."""
    if point.is_infinite():
        return b"\x00"
    return point.export()


def point_from_bytes(data: bytes, params: CurveParameters):
    if not isinstance(data, (bytes, bytearray)):
        raise SerializationError(f"Point must be bytes, got {type(data).__name__}")
    if data == b"\x00":
        return params.identity()
    if len(data) != POINT_SIZE_BYTES:
        raise SerializationError(
            f"Point must be {POINT_SIZE_BYTES} bytes, got {len(data)}"
        )
    try:
        return EcPt.from_binary(bytes(data), params.group)
    except Exception as e:
        raise SerializationError(f"Invalid curve point: {type(e).__name__}") from e


def scalar_to_bytes(value: int) -> bytes:
    return (value % GROUP_ORDER).to_bytes(SCALAR_SIZE_BYTES, "big")


def scalar_from_bytes(data: bytes) -> int:
    if not isinstance(data, (bytes, bytearray)) or len(data) != SCALAR_SIZE_BYTES:
        raise SerializationError(f"Scalar must be {SCALAR_SIZE_BYTES} bytes")
    value = int.from_bytes(data, "big")
    if value >= GROUP_ORDER:
        raise SerializationError("Scalar is not reduced modulo the group order")
    return value


# ============================================================================
# COMMITMENT OPERATIONS
# ============================================================================


def commit(
    value: int,
    params: CurveParameters,
    blinding: Optional[int] = None,
    randomness_source: Optional[RandomnessSource] = None,
) -> Tuple[Any, int]:
    """
    Create a Pedersen commitment ``C = value * G + blinding * H``.

    Args:
        value: Integer value in [0, GROUP_ORDER)
        params: Curve parameters
        blinding: Blinding factor (generated if None)
        randomness_source: Source for random blinding

    Returns:
        Tuple of (commitment point, blinding factor)

    Raises:
        ValueError: If value or blinding is out of range
    """
    if not isinstance(value, int) or not 0 <= value < GROUP_ORDER:
        raise ValueError(f"Value must be an integer in [0, order), got {value!r}")

    if blinding is None:
        rng = randomness_source or default_randomness()
        blinding = rng.get_random_scalar_mod_order()
    elif not isinstance(blinding, int) or not 0 <= blinding < GROUP_ORDER:
        raise ValueError("Blinding must be an integer in [0, order)")

    return mul(value, params.G) + mul(blinding, params.H), blinding


def verify_commitment(commitment, value: int, blinding: int, params: CurveParameters) -> bool:
    """Check ``commitment == value * G + blinding * H`` (values reduced mod order)."""
    expected = mul(value, params.G) + mul(blinding, params.H)
    return constant_time_compare(point_to_bytes(commitment), point_to_bytes(expected))


@dataclass(frozen=True)
class PedersenCommKey:
    """
    Vector commitment key ``(g_1..g_n, h)`` derived from a public label.

    ``commit_vector(m, r) = Σ m_i g_i + r h``.
    """

    label: bytes
    bases: Tuple[Any, ...]
    h: Any

    @classmethod
    def generate(cls, params: CurveParameters, label: bytes, count: int) -> "PedersenCommKey":
        bases = params.generators(label, count + 1)
        return cls(label=label, bases=tuple(bases[1:]), h=bases[0])

    def commit_vector(self, params: CurveParameters, messages: Sequence[int], blinding: int):
        if len(messages) > len(self.bases):
            raise ValueError(
                f"Commitment key supports {len(self.bases)} messages, got {len(messages)}"
            )
        return multi_mul(params, list(zip(messages, self.bases)) + [(blinding, self.h)])

    def to_dict(self) -> dict:
        return {"label": self.label, "n": len(self.bases)}
