"""
⚠️ DRAFT — requires crypto review before production use

Proof that a hidden value differs from a public one.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Protocol (x hidden, v public):
    C = x*g + r*h
    a = (x - v)^-1,  b = -a*r
    prove  C = x*g + r*h
           g = a*(C - v*g) + b*h

If x = v then C - v*g = r*h and the second relation would give g in terms
of h, which nobody can do without log_h(g).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..config import INEQUALITY_COMM_KEY_LABEL
from ..engine import require_engine
from ..exceptions import ProofGenerationError
from ..pedersen.commitments import PedersenCommKey, inverse, mul
from ..pedersen.schnorr import CompiledStatement, LinearRelation
from ..composite_proof.setup_param import SetupParamRef, param_to_dict, resolve_param
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var


def inequality_comm_key(label: Optional[bytes] = None) -> PedersenCommKey:
    return PedersenCommKey.generate(require_engine(), label or INEQUALITY_COMM_KEY_LABEL, 1)


@dataclass(frozen=True)
class InequalityWitness(Witness):
    kind = "inequality"

    value: int


@dataclass(frozen=True)
class InequalityStatement(Statement):
    """``m0 != value``."""

    kind = "inequality"
    witness_type = InequalityWitness

    value: int
    comm_key: Union[PedersenCommKey, SetupParamRef]

    def witness_refs(self):
        return [0]

    def setup_param_refs(self):
        return [self.comm_key.index] if isinstance(self.comm_key, SetupParamRef) else []

    def resolve(self, setup_params):
        return InequalityStatement(
            self.value, resolve_param(self.comm_key, setup_params, PedersenCommKey)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "value": self.value,
            "comm_key": param_to_dict(self.comm_key),
        }

    def prepare(self, witness, params, rng) -> PreparedStatement:
        g, h = self.comm_key.bases[0], self.comm_key.h
        x = witness.value % params.order
        diff = (x - self.value) % params.order
        if diff == 0:
            raise ProofGenerationError("Value equals the value it must differ from")
        r = rng.get_random_scalar_mod_order()
        a = inverse(diff)
        return PreparedStatement(
            elements={"C": mul(x, g) + mul(r, h)},
            secrets={ref_var(0): x, "r": r, "a": a, "b": (-a * r) % params.order},
        )

    def compile(self, elements, params) -> CompiledStatement:
        g, h = self.comm_key.bases[0], self.comm_key.h
        c = elements["C"]
        relations = (
            LinearRelation(c, ((ref_var(0), g), ("r", h))),
            LinearRelation(g, (("a", c - mul(self.value, g)), ("b", h))),
        )
        return CompiledStatement(relations=relations)
