"""
⚠️ DRAFT — requires crypto review before production use

Accumulator parameters, keys and member encoding.

The accumulated value starts at a label-derived point P. The manager's
secret key α is the trapdoor of every accumulator operation; the public
key α*G only identifies the manager.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..config import ACCUMULATOR_PARAMS_LABEL, DOMAIN_SEPARATORS, GROUP_ORDER
from ..engine import require_engine
from ..exceptions import EncodingError
from ..pedersen.commitments import mul, point_from_bytes, point_to_bytes
from ..security import default_randomness, hash_to_scalar


@dataclass(frozen=True)
class AccumulatorParams:
    """Initial accumulated value ``P = hash_to_point(label)``."""

    label: bytes
    p: Any

    @classmethod
    def generate(cls, label: Optional[bytes] = None) -> "AccumulatorParams":
        label = label if label is not None else ACCUMULATOR_PARAMS_LABEL
        (p,) = require_engine().generators(label, 1)
        return cls(label=label, p=p)

    def to_dict(self) -> dict:
        return {"label": self.label}


@dataclass(frozen=True)
class AccumulatorSecretKey:
    value: int

    @classmethod
    def generate(cls) -> "AccumulatorSecretKey":
        return cls(default_randomness().get_nonzero_scalar())

    def public_key(self) -> "AccumulatorPublicKey":
        return AccumulatorPublicKey(mul(self.value, require_engine().G))


@dataclass(frozen=True)
class AccumulatorPublicKey:
    point: Any

    def to_bytes(self) -> bytes:
        return point_to_bytes(self.point)

    @classmethod
    def from_bytes(cls, data: bytes) -> "AccumulatorPublicKey":
        return cls(point_from_bytes(data, require_engine()))


@dataclass(frozen=True)
class AccumulatorKeypair:
    secret_key: AccumulatorSecretKey
    public_key: AccumulatorPublicKey

    @classmethod
    def generate(cls) -> "AccumulatorKeypair":
        sk = AccumulatorSecretKey.generate()
        return cls(sk, sk.public_key())


def encode_bytes_as_accumulator_member(data: bytes) -> int:
    return hash_to_scalar(data, GROUP_ORDER, DOMAIN_SEPARATORS["accumulator_element"])


def encode_positive_number_as_accumulator_member(num: int) -> int:
    if not isinstance(num, int) or isinstance(num, bool) or not 0 <= num < GROUP_ORDER:
        raise EncodingError(f"Expected a non-negative integer below the group order, got {num!r}")
    return num
