"""
⚠️ DRAFT — requires crypto review before production use

Rank-1 constraint systems built in Python and proven over committed wires.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Circuits:
    Wire 0 is the constant 1. Every constraint k asserts
        <A_k, w> * <B_k, w> = <C_k, w>
    Circuits are written with ``CircuitBuilder``; wires computed inside the
    circuit (products, bit decompositions) carry solver hints so that a
    prover only supplies the inputs.

Commit-and-prove:
    Private wire j:  W_j = w_j*g + ρ_j*h        (private input k uses m{k})
    Public wire j:   W_j = w_j*g                 (recomputed by the verifier)

    For every constraint, with CA = Σ A_j W_j, CB = Σ B_j W_j, CC = Σ C_j W_j:
        CA = a*g + u*h
        CC = a*CB + t*h                          t = ρ_C - a*ρ_B

    The second relation opens CC to a*b, so c = a*b by binding.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import CIRCUIT_COMM_KEY_LABEL, GROUP_ORDER
from ..engine import require_engine
from ..exceptions import ArityMismatch, ProofGenerationError, SerializationError, UsageError
from ..pedersen.commitments import mul, multi_mul
from ..pedersen.schnorr import CompiledStatement, LinearRelation
from ..types import dump_versioned, load_versioned
from ..composite_proof.setup_param import SetupParamRef, param_to_dict, resolve_param
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var

logger = logging.getLogger(__name__)

ONE = 0  # wire index of the constant 1

LinearCombination = Tuple[Tuple[int, int], ...]


def _normalize(terms: Mapping[int, int]) -> LinearCombination:
    return tuple(sorted((w, c % GROUP_ORDER) for w, c in terms.items() if c % GROUP_ORDER))


def evaluate(lc: LinearCombination, values: Sequence[int]) -> int:
    return sum(c * values[w] for w, c in lc) % GROUP_ORDER


# ============================================================================
# SIGNALS AND BUILDER
# ============================================================================


class Signal:
    """
    A linear combination of wires.

    Signals support ``+``, ``-`` and multiplication by integers; products of
    two signals go through :meth:`CircuitBuilder.mul`.
    """

    __slots__ = ("terms",)

    def __init__(self, terms: Mapping[int, int]):
        self.terms = _normalize(terms)

    @classmethod
    def _coerce(cls, other) -> "Signal":
        if isinstance(other, Signal):
            return other
        if isinstance(other, int):
            return cls({ONE: other})
        raise TypeError(f"Cannot combine Signal with {type(other).__name__}")

    def _combine(self, other, sign: int) -> "Signal":
        merged: Dict[int, int] = dict(self.terms)
        for w, c in self._coerce(other).terms:
            merged[w] = merged.get(w, 0) + sign * c
        return Signal(merged)

    def __add__(self, other):
        return self._combine(other, 1)

    __radd__ = __add__

    def __sub__(self, other):
        return self._combine(other, -1)

    def __rsub__(self, other):
        return self._coerce(other)._combine(self, -1)

    def __neg__(self):
        return Signal({w: -c for w, c in self.terms})

    def __mul__(self, scalar):
        if isinstance(scalar, Signal):
            raise TypeError("Multiply signals with CircuitBuilder.mul()")
        if not isinstance(scalar, int):
            return NotImplemented
        return Signal({w: c * scalar for w, c in self.terms})

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"Signal({dict(self.terms)})"


class CircuitBuilder:
    """
    Assemble an R1CS circuit.

    Example:
        >>> cb = CircuitBuilder()
        >>> x = cb.private_input("x")
        >>> limit = cb.public_input("limit")
        >>> cb.assert_less_than(x * 2, limit, bits=16)
        >>> circuit = cb.build()
    """

    def __init__(self):
        self._wires = 1
        self._public: List[Tuple[str, int]] = []
        self._private: List[Tuple[str, int]] = []
        self._constraints: List[Tuple[LinearCombination, ...]] = []
        self._hints: Dict[int, Tuple[Any, ...]] = {}

    def _new_wire(self) -> int:
        self._wires += 1
        return self._wires - 1

    def _check_name(self, name: str) -> None:
        if any(name == n for n, _ in self._public + self._private):
            raise UsageError(f"Input {name!r} is already declared")

    def public_input(self, name: str) -> Signal:
        self._check_name(name)
        wire = self._new_wire()
        self._public.append((name, wire))
        return Signal({wire: 1})

    def private_input(self, name: str) -> Signal:
        """Private inputs are witness references, in declaration order."""
        self._check_name(name)
        wire = self._new_wire()
        self._private.append((name, wire))
        return Signal({wire: 1})

    def constant(self, value: int) -> Signal:
        return Signal({ONE: value})

    def constrain(self, a: Signal, b: Signal, c: Signal) -> None:
        """Raw constraint ``a * b = c``."""
        self._constraints.append((a.terms, b.terms, c.terms))

    def mul(self, a: Signal, b: Signal) -> Signal:
        wire = self._new_wire()
        self._hints[wire] = ("mul", a.terms, b.terms)
        out = Signal({wire: 1})
        self.constrain(a, b, out)
        return out

    def assert_equal(self, a: Signal, b) -> None:
        self.constrain(a - b, self.constant(1), self.constant(0))

    def assert_boolean(self, a: Signal) -> None:
        self.constrain(a, a - 1, self.constant(0))

    def to_bits(self, a: Signal, bits: int) -> List[Signal]:
        """Little-endian decomposition; unsatisfiable if ``a`` needs more bits."""
        if bits <= 0 or bits >= GROUP_ORDER.bit_length() - 1:
            raise UsageError(f"Invalid bit count {bits}")
        out = []
        for i in range(bits):
            wire = self._new_wire()
            self._hints[wire] = ("bit", a.terms, i)
            bit = Signal({wire: 1})
            self.assert_boolean(bit)
            out.append(bit)
        self.assert_equal(sum((b * (1 << i) for i, b in enumerate(out)), self.constant(0)), a)
        return out

    def assert_less_than(self, a: Signal, b, bits: int) -> None:
        """``a < b`` for values below ``2^bits``."""
        self.to_bits(Signal._coerce(b) - a - 1, bits)

    def build(self) -> "R1CS":
        if not self._constraints:
            raise UsageError("Circuit has no constraints")
        return R1CS(
            wire_count=self._wires,
            public_inputs=tuple(self._public),
            private_inputs=tuple(self._private),
            constraints=tuple(self._constraints),
            hints=tuple(sorted(self._hints.items())),
        )


# ============================================================================
# CONSTRAINT SYSTEM
# ============================================================================


def _lc_to_list(lc: LinearCombination) -> List[List[int]]:
    return [[w, c] for w, c in lc]


def _lc_from_list(data) -> LinearCombination:
    return tuple((int(w), int(c)) for w, c in data)


@dataclass(frozen=True)
class R1CS:
    """Compiled circuit; shareable as a setup parameter."""

    wire_count: int
    public_inputs: Tuple[Tuple[str, int], ...]
    private_inputs: Tuple[Tuple[str, int], ...]
    constraints: Tuple[Tuple[LinearCombination, LinearCombination, LinearCombination], ...]
    hints: Tuple[Tuple[int, Tuple[Any, ...]], ...] = ()

    @property
    def public_names(self) -> List[str]:
        return [name for name, _ in self.public_inputs]

    @property
    def private_names(self) -> List[str]:
        return [name for name, _ in self.private_inputs]

    def public_wires(self, public_values: Mapping[str, int]) -> Dict[int, int]:
        """Wire values the verifier knows: the constant and public inputs."""
        missing = set(self.public_names) - set(public_values)
        if missing:
            raise UsageError(f"Missing public inputs: {sorted(missing)}")
        known = {ONE: 1}
        for name, wire in self.public_inputs:
            known[wire] = public_values[name] % GROUP_ORDER
        return known

    def committed_wires(self) -> List[int]:
        public = {ONE} | {w for _, w in self.public_inputs}
        return [w for w in range(self.wire_count) if w not in public]

    def solve(self, public_values: Mapping[str, int], private_values: Sequence[int]) -> List[int]:
        """
        Compute every wire and check all constraints.

        Raises:
            ArityMismatch: If the private input count is wrong
            ProofGenerationError: If the inputs do not satisfy the circuit
        """
        if len(private_values) != len(self.private_inputs):
            raise ArityMismatch(
                f"Circuit has {len(self.private_inputs)} private inputs, "
                f"got {len(private_values)}"
            )
        values: List[Optional[int]] = [None] * self.wire_count
        for wire, value in self.public_wires(public_values).items():
            values[wire] = value
        for (_, wire), value in zip(self.private_inputs, private_values):
            values[wire] = value % GROUP_ORDER
        hints = dict(self.hints)
        for wire in range(self.wire_count):
            if values[wire] is not None:
                continue
            hint = hints.get(wire)
            if hint is None:
                raise UsageError(f"Wire {wire} has no input and no hint")
            if hint[0] == "mul":
                values[wire] = evaluate(hint[1], values) * evaluate(hint[2], values) % GROUP_ORDER
            else:
                values[wire] = (evaluate(hint[1], values) >> hint[2]) & 1

        for k, (a, b, c) in enumerate(self.constraints):
            if evaluate(a, values) * evaluate(b, values) % GROUP_ORDER != evaluate(c, values):
                raise ProofGenerationError(f"Circuit constraint {k} is not satisfied")
        return values

    def is_satisfied(self, public_values: Mapping[str, int], private_values: Sequence[int]) -> bool:
        try:
            self.solve(public_values, private_values)
        except ProofGenerationError:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "wires": self.wire_count,
            "public": [[n, w] for n, w in self.public_inputs],
            "private": [[n, w] for n, w in self.private_inputs],
            "constraints": [[_lc_to_list(lc) for lc in row] for row in self.constraints],
        }

    def to_bytes(self) -> bytes:
        payload = self.to_dict()
        payload["hints"] = [
            [w, h[0], _lc_to_list(h[1]), _lc_to_list(h[2]) if h[0] == "mul" else h[2]]
            for w, h in self.hints
        ]
        return dump_versioned("r1cs", payload)

    @classmethod
    def from_bytes(cls, data: bytes) -> "R1CS":
        obj = load_versioned("r1cs", data)
        try:
            hints = []
            for w, kind, lc, extra in obj["hints"]:
                if kind == "mul":
                    hints.append((int(w), ("mul", _lc_from_list(lc), _lc_from_list(extra))))
                elif kind == "bit":
                    hints.append((int(w), ("bit", _lc_from_list(lc), int(extra))))
                else:
                    raise SerializationError(f"Unknown hint {kind!r}")
            return cls(
                wire_count=int(obj["wires"]),
                public_inputs=tuple((str(n), int(w)) for n, w in obj["public"]),
                private_inputs=tuple((str(n), int(w)) for n, w in obj["private"]),
                constraints=tuple(
                    tuple(_lc_from_list(lc) for lc in row) for row in obj["constraints"]
                ),
                hints=tuple(hints),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed circuit: {e}") from e


# ============================================================================
# STATEMENT
# ============================================================================


def circuit_gens() -> Tuple[Any, Any]:
    g, h = require_engine().generators(CIRCUIT_COMM_KEY_LABEL, 2)
    return g, h


@dataclass(frozen=True)
class R1CSWitness(Witness):
    kind = "r1cs"

    private_inputs: Tuple[int, ...]


@dataclass(frozen=True)
class R1CSStatement(Statement):
    """The circuit holds for private inputs m0..m{k-1} and ``public_inputs``."""

    kind = "r1cs"
    witness_type = R1CSWitness

    circuit: Union[R1CS, SetupParamRef]
    public_inputs: Tuple[Tuple[str, int], ...] = ()

    @classmethod
    def new(cls, circuit, public_inputs: Optional[Mapping[str, int]] = None) -> "R1CSStatement":
        return cls(circuit, tuple(sorted((public_inputs or {}).items())))

    def _var(self, wire: int) -> str:
        for k, (_, w) in enumerate(self.circuit.private_inputs):
            if w == wire:
                return ref_var(k)
        return f"w{wire}"

    def witness_refs(self):
        return range(len(self.circuit.private_inputs))

    def setup_param_refs(self):
        return [self.circuit.index] if isinstance(self.circuit, SetupParamRef) else []

    def resolve(self, setup_params):
        return R1CSStatement(resolve_param(self.circuit, setup_params, R1CS), self.public_inputs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "circuit": param_to_dict(self.circuit),
            "public": [[n, v % GROUP_ORDER] for n, v in self.public_inputs],
        }

    def _public_points(self, g) -> Dict[int, Any]:
        known = self.circuit.public_wires(dict(self.public_inputs))
        return {w: mul(v, g) for w, v in known.items()}

    def _wire_points(self, committed: Sequence[Any], g) -> Dict[int, Any]:
        points = self._public_points(g)
        points.update(zip(self.circuit.committed_wires(), committed))
        return points

    def prepare(self, witness, params, rng) -> PreparedStatement:
        g, h = circuit_gens()
        values = self.circuit.solve(dict(self.public_inputs), list(witness.private_inputs))
        blindings = [0] * self.circuit.wire_count
        committed, secrets = [], {}
        for wire in self.circuit.committed_wires():
            rho = rng.get_random_scalar_mod_order()
            blindings[wire] = rho
            committed.append(mul(values[wire], g) + mul(rho, h))
            secrets[self._var(wire)] = values[wire]
            secrets[f"p{wire}"] = rho

        for k, (a, b, c) in enumerate(self.circuit.constraints):
            a_val = evaluate(a, values)
            secrets[f"a{k}"] = a_val
            secrets[f"u{k}"] = evaluate(a, blindings)
            secrets[f"t{k}"] = (evaluate(c, blindings) - a_val * evaluate(b, blindings)) % GROUP_ORDER
        logger.debug("r1cs witness solved: %d wires, %d constraints",
                     self.circuit.wire_count, len(self.circuit.constraints))
        return PreparedStatement(elements={"W": committed}, secrets=secrets)

    def check_elements(self, elements, params) -> Optional[str]:
        expected = len(self.circuit.committed_wires())
        if len(elements.get("W", ())) != expected:
            return f"expected {expected} wire commitments"
        return None

    def compile(self, elements, params) -> CompiledStatement:
        g, h = circuit_gens()
        points = self._wire_points(elements["W"], g)

        def combine(lc):
            return multi_mul(params, [(c, points[w]) for w, c in lc])

        relations = [
            LinearRelation(points[w], ((self._var(w), g), (f"p{w}", h)))
            for w in self.circuit.committed_wires()
        ]
        for k, (a, b, c) in enumerate(self.circuit.constraints):
            relations.append(LinearRelation(combine(a), ((f"a{k}", g), (f"u{k}", h))))
            relations.append(LinearRelation(combine(c), ((f"a{k}", combine(b)), (f"t{k}", h))))
        return CompiledStatement(relations=tuple(relations))
