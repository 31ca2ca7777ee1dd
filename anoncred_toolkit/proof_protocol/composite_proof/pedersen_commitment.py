"""
⚠️ DRAFT — requires crypto review before production use

Knowledge of the opening of a Pedersen vector commitment.

    C = Σ s_j * base_j

Witness reference ``j`` is the ``j``-th committed scalar. Blind issuance
commits to ``(blinding, hidden messages...)`` over ``(h0, h_i...)`` and
uses this statement to prove the request is well formed.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ..exceptions import ArityMismatch
from ..pedersen.commitments import point_to_bytes
from ..pedersen.schnorr import CompiledStatement, LinearRelation
from .statement import PreparedStatement, Statement, Witness, ref_var


@dataclass(frozen=True)
class PedersenCommitmentWitness(Witness):
    kind = "pedersen_commitment"

    scalars: Tuple[int, ...]


@dataclass(frozen=True)
class PedersenCommitmentStatement(Statement):
    kind = "pedersen_commitment"
    witness_type = PedersenCommitmentWitness

    bases: Tuple[Any, ...]
    commitment: Any

    def witness_refs(self):
        return list(range(len(self.bases)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "bases": [point_to_bytes(b) for b in self.bases],
            "C": point_to_bytes(self.commitment),
        }

    def prepare(self, witness, params, rng) -> PreparedStatement:
        if len(witness.scalars) != len(self.bases):
            raise ArityMismatch(
                f"Commitment has {len(self.bases)} bases but witness has "
                f"{len(witness.scalars)} scalars"
            )
        secrets = {ref_var(j): s % params.order for j, s in enumerate(witness.scalars)}
        return PreparedStatement(elements={}, secrets=secrets)

    def compile(self, elements, params) -> CompiledStatement:
        terms = tuple((ref_var(j), base) for j, base in enumerate(self.bases))
        return CompiledStatement(relations=(LinearRelation(self.commitment, terms),))

