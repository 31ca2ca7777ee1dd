"""
⚠️ DRAFT — requires crypto review before production use

Scope-exclusive pseudonyms: verifier-local, opt-in linkability.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

A pseudonym is a non-hiding Pedersen commitment over bases that a
verifier derives from its own scope string:

    unbounded:         P = sk * B_scope
    attribute-bound:   P = Σ attr_i * B_i + Σ sk_j * B'_j

The holder registers P once and later proves knowledge of its opening.
Different scopes give unrelated pseudonyms for the same secret.

⚠️ Attribute-bound pseudonyms without a secret key can be brute forced
over all attribute combinations.
"""

from dataclasses import dataclass
from typing import Any, List, Sequence

import base58

from ..config import PSEUDONYM_BASE_LABEL
from ..engine import require_engine
from ..exceptions import ArityMismatch
from ..pedersen.commitments import multi_mul, point_from_bytes, point_to_bytes
from ..composite_proof.pedersen_commitment import (
    PedersenCommitmentStatement,
    PedersenCommitmentWitness,
)


class PseudonymBases:
    """Verifier-chosen bases, derived from a public scope."""

    @staticmethod
    def generate_base_for_secret_key(scope: bytes = b"") -> Any:
        return require_engine().generators(PSEUDONYM_BASE_LABEL + b":sk:" + scope, 1)[0]

    @staticmethod
    def generate_bases_for_attributes(count: int, scope: bytes = b"") -> List[Any]:
        return require_engine().generators(PSEUDONYM_BASE_LABEL + b":attr:" + scope, count)

    @staticmethod
    def encode(base) -> str:
        return base58.b58encode(point_to_bytes(base)).decode("ascii")

    @staticmethod
    def decode(text: str) -> Any:
        return point_from_bytes(base58.b58decode(text), require_engine())


@dataclass(frozen=True)
class Pseudonym:
    value: Any

    @classmethod
    def new(cls, base, secret_key: int) -> "Pseudonym":
        return cls(multi_mul(require_engine(), [(secret_key, base)]))

    def to_base58(self) -> str:
        return base58.b58encode(point_to_bytes(self.value)).decode("ascii")

    @classmethod
    def from_base58(cls, text: str) -> "Pseudonym":
        return cls(point_from_bytes(base58.b58decode(text), require_engine()))


@dataclass(frozen=True)
class AttributeBoundPseudonym(Pseudonym):
    @classmethod
    def new(
        cls,
        bases_for_attributes: Sequence[Any],
        attributes: Sequence[int],
        bases_for_secret_keys: Sequence[Any] = (),
        secret_keys: Sequence[int] = (),
    ) -> "AttributeBoundPseudonym":
        if len(bases_for_attributes) != len(attributes):
            raise ArityMismatch(
                f"{len(bases_for_attributes)} attribute bases for {len(attributes)} attributes"
            )
        if len(bases_for_secret_keys) != len(secret_keys):
            raise ArityMismatch(
                f"{len(bases_for_secret_keys)} secret key bases for {len(secret_keys)} keys"
            )
        pairs = list(zip(attributes, bases_for_attributes)) + list(
            zip(secret_keys, bases_for_secret_keys)
        )
        return cls(multi_mul(require_engine(), pairs))


# ============================================================================
# STATEMENTS
# ============================================================================


@dataclass(frozen=True)
class PseudonymWitness(PedersenCommitmentWitness):
    kind = "pseudonym"

    @classmethod
    def new(cls, secret_key: int) -> "PseudonymWitness":
        return cls((secret_key,))


@dataclass(frozen=True)
class PseudonymStatement(PedersenCommitmentStatement):
    """Knowledge of ``sk`` with ``P = sk * B``; ``sk`` is witness reference 0."""

    kind = "pseudonym"
    witness_type = PseudonymWitness

    @classmethod
    def new(cls, pseudonym: Pseudonym, base) -> "PseudonymStatement":
        return cls((base,), pseudonym.value)


@dataclass(frozen=True)
class AttributeBoundPseudonymWitness(PedersenCommitmentWitness):
    kind = "attribute_bound_pseudonym"

    @classmethod
    def new(
        cls, attributes: Sequence[int], secret_keys: Sequence[int] = ()
    ) -> "AttributeBoundPseudonymWitness":
        return cls(tuple(attributes) + tuple(secret_keys))


@dataclass(frozen=True)
class AttributeBoundPseudonymStatement(PedersenCommitmentStatement):
    """
    Knowledge of the opening of an attribute-bound pseudonym.

    Witness references ``0..n-1`` are the attributes, followed by the
    secret keys.
    """

    kind = "attribute_bound_pseudonym"
    witness_type = AttributeBoundPseudonymWitness

    @classmethod
    def new(
        cls,
        pseudonym: Pseudonym,
        bases_for_attributes: Sequence[Any],
        bases_for_secret_keys: Sequence[Any] = (),
    ) -> "AttributeBoundPseudonymStatement":
        return cls(tuple(bases_for_attributes) + tuple(bases_for_secret_keys), pseudonym.value)


def bases_to_base58(bases: Sequence[Any]) -> List[str]:
    return [PseudonymBases.encode(b) for b in bases]


def bases_from_base58(encoded: Sequence[str]) -> List[Any]:
    return [PseudonymBases.decode(b) for b in encoded]
