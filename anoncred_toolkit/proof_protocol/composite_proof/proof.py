"""
⚠️ DRAFT — requires crypto review before production use

Composite proofs: one Fiat-Shamir sigma proof for every statement of a spec.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Protocol:
    1. Each statement turns its witness into public elements and variable
       assignments, then compiles linear relations and bit claims.
    2. Variables joined by equality meta-statements share one nonce.
    3. Challenge c = H(domain, spec, elements, announcements, nonce).
    4. Responses z = r + c * secret per variable; CDS responses per bit.

    The verifier rebuilds the relations from its own spec and the proof's
    elements, recomputes announcements and the challenge, and checks that
    responses agree within each equality class.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

try:
    from petlib.ec import EcPt
except ImportError:
    raise ImportError(
        "petlib is required for composite proofs. "
        "Install with: pip install petlib"
    )

from ..config import DOMAIN_SEPARATORS
from ..engine import require_engine
from ..exceptions import (
    ArityMismatch,
    ProofGenerationError,
    SerializationError,
    UsageError,
)
from ..pedersen.commitments import CurveParameters, point_from_bytes, point_to_bytes
from ..pedersen.schnorr import (
    CompiledStatement,
    bit_announce,
    bit_respond,
    bit_verifier_announcements,
    prover_announcement,
    response,
    verifier_announcement,
)
from ..security import RandomnessSource, constant_time_compare, default_randomness, fiat_shamir_challenge
from ..types import VerifyResult, canonical_cbor, dump_versioned, load_versioned
from .proof_spec import ProofSpec, QuasiProofSpec
from .statement import Statement, Witnesses, ref_var

logger = logging.getLogger(__name__)

VarKey = Tuple[int, str]


# ============================================================================
# ELEMENT ENCODING
# ============================================================================


def encode_elements(elements: Dict[str, Any]) -> Dict[str, Any]:
    """Points -> bytes, point lists -> lists of bytes, scalars stay ints."""
    encoded: Dict[str, Any] = {}
    for name, value in elements.items():
        if isinstance(value, EcPt):
            encoded[name] = point_to_bytes(value)
        elif isinstance(value, (list, tuple)):
            encoded[name] = [point_to_bytes(v) for v in value]
        elif isinstance(value, int):
            encoded[name] = value
        else:
            raise SerializationError(f"Cannot encode proof element {name!r}")
    return encoded


def decode_elements(encoded: Dict[str, Any], params: CurveParameters) -> Dict[str, Any]:
    if not isinstance(encoded, dict):
        raise SerializationError("Proof elements must be a map")
    decoded: Dict[str, Any] = {}
    for name, value in encoded.items():
        if isinstance(value, (bytes, bytearray)):
            decoded[name] = point_from_bytes(value, params)
        elif isinstance(value, list):
            decoded[name] = [point_from_bytes(v, params) for v in value]
        elif isinstance(value, int) and not isinstance(value, bool):
            decoded[name] = value
        else:
            raise SerializationError(f"Cannot decode proof element {name!r}")
    return decoded


# ============================================================================
# SHARED HELPERS
# ============================================================================


def _class_keys(spec: ProofSpec) -> Dict[VarKey, VarKey]:
    """Map every variable in an equality class to the class representative."""
    mapping: Dict[VarKey, VarKey] = {}
    for eq_class in spec.equality_classes():
        members = sorted((s, ref_var(w)) for s, w in eq_class)
        for member in members:
            mapping[member] = members[0]
    return mapping


def _challenge(
    spec_bytes: bytes,
    encoded_elements: List[Dict[str, Any]],
    announcements: List[bytes],
    nonce: Optional[bytes],
) -> int:
    parts = [spec_bytes, canonical_cbor(encoded_elements)]
    parts.extend(announcements)
    parts.append(nonce or b"")
    return fiat_shamir_challenge(DOMAIN_SEPARATORS["composite_proof"], parts)


def _resolve_spec(spec: Any) -> ProofSpec:
    if isinstance(spec, QuasiProofSpec):
        return spec.finalize()
    if not isinstance(spec, ProofSpec):
        raise UsageError(f"Expected ProofSpec, got {type(spec).__name__}")
    result = spec.is_valid()
    if not result.verified:
        raise UsageError(f"Invalid proof spec: {result.error}")
    return spec


# ============================================================================
# COMPOSITE PROOF
# ============================================================================


@dataclass(frozen=True)
class CompositeProof:
    """
    Proof for a whole proof spec.

    Attributes:
        challenge: Fiat-Shamir challenge
        elements: Per-statement public elements (encoded)
        responses: Per-statement variable responses
        bit_proofs: Per-statement (c_0, z_0, z_1) triples
    """

    challenge: int
    elements: Tuple[Dict[str, Any], ...]
    responses: Tuple[Dict[str, int], ...]
    bit_proofs: Tuple[Tuple[Tuple[int, int, int], ...], ...]

    # ------------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------------

    @classmethod
    def generate(
        cls,
        spec: Any,
        witnesses: Witnesses,
        nonce: Optional[bytes] = None,
        randomness_source: Optional[RandomnessSource] = None,
    ) -> "CompositeProof":
        """
        Generate a proof for ``spec`` using ``witnesses``.

        Args:
            spec: ProofSpec, or a QuasiProofSpec that is finalized here
            witnesses: One witness per statement, same order
            nonce: Optional verifier nonce bound into the challenge

        Raises:
            ArityMismatch: If statements and witnesses differ in number
            UsageError: If the spec is invalid or a witness has the wrong type
            ProofGenerationError: If a witness does not satisfy its statement
        """
        params = require_engine()
        spec = _resolve_spec(spec)
        statements = spec.resolved_statements()
        if len(statements) != len(witnesses):
            raise ArityMismatch(
                f"Number of statements ({len(statements)}) and witnesses "
                f"({len(witnesses)}) differ"
            )
        rng = randomness_source or default_randomness()
        logger.debug("CompositeProof.generate >>> %d statements, %d equalities",
                     len(statements), len(spec.equalities))

        try:
            prepared = []
            compiled: List[CompiledStatement] = []
            for i, (statement, witness) in enumerate(zip(statements, witnesses)):
                statement.check_witness(witness)
                prep = statement.prepare(witness, params, rng)
                comp = statement.compile(prep.elements, params)
                for relation in comp.relations:
                    if not relation.holds(params, prep.secrets):
                        raise ProofGenerationError(
                            f"Witness {i} does not satisfy statement {i} ({statement.kind})"
                        )
                if len(comp.bits) != len(prep.bit_openings):
                    raise ProofGenerationError(f"Statement {i} bit openings do not match claims")
                prepared.append(prep)
                compiled.append(comp)

            class_of = _class_keys(spec)
            nonces: Dict[VarKey, int] = {}

            def nonce_for(key: VarKey) -> int:
                rep = class_of.get(key, key)
                if rep not in nonces:
                    nonces[rep] = rng.get_random_scalar_mod_order()
                return nonces[rep]

            announcements: List[bytes] = []
            bit_states = []
            for i, comp in enumerate(compiled):
                local = {name: nonce_for((i, name)) for name in comp.variables()}
                for relation in comp.relations:
                    announcements.append(point_to_bytes(prover_announcement(relation, params, local)))
                states = []
                for claim, (bit, blinding) in zip(comp.bits, prepared[i].bit_openings):
                    state = bit_announce(claim, bit, blinding, params, rng)
                    announcements.extend(point_to_bytes(a) for a in state.announcements)
                    states.append(state)
                bit_states.append(states)

            encoded = [encode_elements(p.elements) for p in prepared]
            challenge = _challenge(spec.to_bytes(), encoded, announcements, nonce)

            responses = []
            for i, comp in enumerate(compiled):
                responses.append({
                    name: response(nonce_for((i, name)), challenge, prepared[i].secrets[name])
                    for name in comp.variables()
                })
            bit_proofs = tuple(
                tuple(bit_respond(state, challenge) for state in states) for states in bit_states
            )
        except (UsageError, ProofGenerationError):
            raise
        except Exception as e:
            raise ProofGenerationError(
                f"Composite proof generation failed: {type(e).__name__}: {e}"
            ) from e

        logger.debug("CompositeProof.generate <<< done")
        return cls(
            challenge=challenge,
            elements=tuple(encoded),
            responses=tuple(responses),
            bit_proofs=bit_proofs,
        )

    @classmethod
    def generate_using_quasi_proof_spec(
        cls, spec: QuasiProofSpec, witnesses: Witnesses, nonce: Optional[bytes] = None
    ) -> "CompositeProof":
        return cls.generate(spec, witnesses, nonce)

    # ------------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------------

    def verify(self, spec: Any, nonce: Optional[bytes] = None) -> VerifyResult:
        """
        Verify against an independently built spec.

        Returns:
            VerifyResult; never raises for a failing proof
        """
        params = require_engine()
        if isinstance(spec, QuasiProofSpec):
            validity = spec.is_valid()
            if not validity.verified:
                return validity
            spec = spec.finalize()
        validity = spec.is_valid()
        if not validity.verified:
            return validity

        statements = spec.resolved_statements()
        if len(statements) != len(self.elements):
            return VerifyResult.failure(
                f"Proof has {len(self.elements)} statements, spec has {len(statements)}"
            )
        if len(self.responses) != len(statements) or len(self.bit_proofs) != len(statements):
            return VerifyResult.failure("Malformed proof")

        announcements: List[bytes] = []
        try:
            for i, statement in enumerate(statements):
                elements = decode_elements(self.elements[i], params)
                error = statement.check_elements(elements, params)
                if error:
                    return VerifyResult.failure(f"Statement {i}: {error}")
                comp = statement.compile(elements, params)
                responses = self.responses[i]
                if set(responses) != set(comp.variables()):
                    return VerifyResult.failure(f"Statement {i}: response set mismatch")
                for relation in comp.relations:
                    announcements.append(point_to_bytes(
                        verifier_announcement(relation, params, responses, self.challenge)
                    ))
                if len(comp.bits) != len(self.bit_proofs[i]):
                    return VerifyResult.failure(f"Statement {i}: bit proof count mismatch")
                for claim, bit_proof in zip(comp.bits, self.bit_proofs[i]):
                    a0, a1 = bit_verifier_announcements(claim, bit_proof, self.challenge, params)
                    announcements.extend((point_to_bytes(a0), point_to_bytes(a1)))
        except (SerializationError, UsageError, KeyError, IndexError, ValueError, TypeError) as e:
            return VerifyResult.failure(f"Malformed proof: {type(e).__name__}: {e}")

        expected = _challenge(spec.to_bytes(), list(self.elements), announcements, nonce)
        if not constant_time_compare(
            expected.to_bytes(32, "big"), (self.challenge % 2**256).to_bytes(32, "big")
        ):
            logger.warning("composite proof rejected: challenge mismatch")
            return VerifyResult.failure("Challenge mismatch: proof does not match the proof spec")

        for eq_class in spec.equality_classes():
            values = {self.responses[s].get(ref_var(w)) for s, w in eq_class}
            if len(values) != 1:
                logger.warning("composite proof rejected: witness equality violated")
                return VerifyResult.failure(
                    f"Witness equality not satisfied for references {sorted(eq_class)}"
                )

        return VerifyResult.success()

    def verify_using_quasi_proof_spec(
        self, spec: QuasiProofSpec, nonce: Optional[bytes] = None
    ) -> VerifyResult:
        return self.verify(spec, nonce)

    # ------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------

    @property
    def statement_count(self) -> int:
        return len(self.elements)

    def statement_elements(self, index: int) -> Dict[str, Any]:
        if not 0 <= index < len(self.elements):
            raise SerializationError(f"Proof has no statement {index}")
        return decode_elements(self.elements[index], require_engine())

    def keyed_proofs(self, spec: ProofSpec) -> Dict[int, Any]:
        """Keyed parts of the proof, by statement index, for delegated checking."""
        found = {}
        for i, statement in enumerate(spec.resolved_statements()):
            keyed = statement.keyed_proof(self.statement_elements(i))
            if keyed is not None:
                found[i] = keyed
        return found

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "composite_proof",
            {
                "c": self.challenge,
                "e": list(self.elements),
                "z": list(self.responses),
                "b": [[list(t) for t in bits] for bits in self.bit_proofs],
            },
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "CompositeProof":
        obj = load_versioned("composite_proof", data)
        try:
            return cls(
                challenge=int(obj["c"]),
                elements=tuple(dict(e) for e in obj["e"]),
                responses=tuple({str(k): int(v) for k, v in z.items()} for z in obj["z"]),
                bit_proofs=tuple(
                    tuple((int(t[0]), int(t[1]), int(t[2])) for t in bits) for bits in obj["b"]
                ),
            )
        except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
            raise SerializationError(f"Malformed composite proof: {e}") from e
