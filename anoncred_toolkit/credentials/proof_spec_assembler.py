"""
Presentation specification -> proof spec.

Statement order (every handle below is a statement index):
    1. one signature statement per credential, handle = credential index
    2. per credential: status, bounds, verifiable encryptions, inequalities
       (each by attribute name, sorted), then R1CS predicates
    3. bounded pseudonyms, then unbounded pseudonyms, each sorted by key
    4. blind credential request: the commitment, then bounds and
       verifiable encryptions of blinded attributes

Each predicate statement's witness reference 0 (or k, for circuits and
pseudonyms) is tied to the attribute's message index by a witness
equality meta-statement. Revealed attributes have no witness reference,
so predicates over them are rejected.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..proof_protocol.accumulator.keys import AccumulatorParams, AccumulatorSecretKey
from ..proof_protocol.accumulator.proof import (
    AccumulatorMembershipStatement,
    KBUniversalMembershipStatement,
    KBUniversalNonMembershipStatement,
)
from ..proof_protocol.accumulator.universal import KBUniversalAccumulatorValue
from ..proof_protocol.composite_proof.meta_statement import WitnessEqualityMetaStatement
from ..proof_protocol.composite_proof.pedersen_commitment import PedersenCommitmentStatement
from ..proof_protocol.composite_proof.proof_spec import QuasiProofSpec
from ..proof_protocol.composite_proof.statement import Statement
from ..proof_protocol.engine import require_engine
from ..proof_protocol.exceptions import ArityMismatch, SchemaMismatch, UsageError
from ..proof_protocol.factory import scheme_for_proof_type
from ..proof_protocol.flattening import flatten_object
from ..proof_protocol.indexer import MessageIndexer
from ..proof_protocol.pedersen.commitments import PedersenCommKey, point_from_bytes
from ..proof_protocol.predicates.bound_check import (
    BOUND_CHECK_PROTOCOL,
    BoundCheckStatement,
    bound_check_comm_key,
)
from ..proof_protocol.predicates.inequality import InequalityStatement, inequality_comm_key
from ..proof_protocol.predicates.pseudonym import (
    AttributeBoundPseudonymStatement,
    Pseudonym,
    PseudonymBases,
    PseudonymStatement,
    bases_from_base58,
)
from ..proof_protocol.predicates.r1cs import R1CS, R1CSStatement
from ..proof_protocol.predicates.verifiable_encryption import (
    ChunkedEncryptionParams,
    EncryptionKey,
    VerifiableEncryptionStatement,
)
from .constants import (
    ALWAYS_REVEALED,
    CRYPTO_VERSION_STR,
    ID_STR,
    INEQUALITY_PROTOCOL,
    KB_UNIVERSAL_ACCUMULATOR,
    MEM_CHECK_STR,
    NON_MEM_CHECK_STR,
    R1CS_PROTOCOL,
    REV_CHECK_STR,
    SCHEMA_STR,
    STATUS_REVOCATION_ID,
    STATUS_STR,
    VB_ACCUMULATOR,
    VERIFIABLE_ENCRYPTION_PROTOCOL,
)
from .credential import b58decode
from .schema import CredentialSchema
from .setup_params_tracker import SetupParamsTracker

logger = logging.getLogger(__name__)

CREDENTIAL_SLOT = "credential"
STATUS_SLOT = "status"
BOUND_SLOT = "bound"
ENCRYPTION_SLOT = "verifiable_encryption"
INEQUALITY_SLOT = "inequality"
PREDICATE_SLOT = "predicate"
BOUNDED_PSEUDONYM_SLOT = "bounded_pseudonym"
UNBOUNDED_PSEUDONYM_SLOT = "unbounded_pseudonym"
BLIND_COMMITMENT_SLOT = "blind_commitment"
BLIND_BOUND_SLOT = "blind_bound"
BLIND_ENCRYPTION_SLOT = "blind_verifiable_encryption"

# Per-credential predicate groups, in statement order
_NAMED_GROUPS = (
    ("bounds", BOUND_SLOT),
    ("verifiableEncryptions", ENCRYPTION_SLOT),
    ("inequalities", INEQUALITY_SLOT),
)


@dataclass(frozen=True)
class Slot:
    """What the statement at one position proves; the prover picks its witness from this."""

    kind: str
    credential: Optional[int] = None
    name: Optional[str] = None
    position: int = 0
    key: Optional[str] = None


def layout(spec) -> List[Slot]:
    """Statement slots of a presentation specification, in statement order."""
    slots = [Slot(CREDENTIAL_SLOT, i) for i in range(len(spec.credentials))]
    for i, entry in enumerate(spec.credentials):
        if "status" in entry:
            slots.append(Slot(STATUS_SLOT, i))
        for field, kind in _NAMED_GROUPS:
            group = entry.get(field, {})
            for name in sorted(group):
                slots.extend(Slot(kind, i, name, pos) for pos in range(len(group[name])))
        slots.extend(
            Slot(PREDICATE_SLOT, i, position=pos) for pos in range(len(entry.get("predicates", ())))
        )
    slots.extend(Slot(BOUNDED_PSEUDONYM_SLOT, key=k) for k in sorted(spec.bounded_pseudonyms))
    slots.extend(Slot(UNBOUNDED_PSEUDONYM_SLOT, key=k) for k in sorted(spec.unbounded_pseudonyms))

    request = spec.blind_credential_request
    if request is not None:
        slots.append(Slot(BLIND_COMMITMENT_SLOT))
        for field, kind in (("bounds", BLIND_BOUND_SLOT),
                            ("verifiableEncryptions", BLIND_ENCRYPTION_SLOT)):
            group = request.get(field, {})
            for name in sorted(group):
                slots.extend(Slot(kind, name=name, position=pos) for pos in range(len(group[name])))
    return slots


def revealed_names(entry: Mapping[str, Any]) -> List[str]:
    names, _ = flatten_object(entry["revealedAttributes"])
    return names


class ProofSpecAssembler:
    """
    Builds the statements and meta-statements of one presentation.

    ``public_keys`` holds one verification key per credential. For keyed
    schemes and accumulators a secret key enables the keyed check inline;
    anything else leaves it to keyed proofs.
    """

    def __init__(
        self,
        spec,
        public_keys: Sequence[Any],
        accumulator_keys: Optional[Mapping[int, Any]] = None,
        predicate_params: Optional[Mapping[str, Any]] = None,
    ):
        self.spec = spec
        self.public_keys = list(public_keys)
        self.accumulator_keys = dict(accumulator_keys or {})
        self.tracker = SetupParamsTracker(predicate_params)
        self.schemas = [CredentialSchema.from_json(e["schema"]) for e in spec.credentials]
        self.indexers = [MessageIndexer(s.structure) for s in self.schemas]
        self.revealed = [set(revealed_names(e)) for e in spec.credentials]
        self._quasi = QuasiProofSpec()
        self._blind: Optional[Tuple[CredentialSchema, MessageIndexer, List[str]]] = None

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def _add(self, statement: Statement) -> int:
        return self._quasi.add_statement(statement)

    def _attribute_ref(self, cred_idx: int, name: str) -> Tuple[int, int]:
        if not 0 <= cred_idx < len(self.spec.credentials):
            raise UsageError(f"Invalid credential index {cred_idx}")
        if name in self.revealed[cred_idx]:
            raise UsageError(
                f"Attribute {name} of credential {cred_idx} is revealed and cannot be "
                f"used in a predicate or equality"
            )
        return cred_idx, self.indexers[cred_idx].index_of(name)

    def _link(self, statement_index: int, witness_index: int, cred_idx: int, name: str) -> None:
        self._quasi.add_meta_statement(WitnessEqualityMetaStatement(
            [(statement_index, witness_index), self._attribute_ref(cred_idx, name)]
        ))

    def _comm_key(self, param_id: Optional[str], statement_index: int, default) -> Any:
        if param_id is None:
            return default()
        return self.tracker.ref_for(param_id, PedersenCommKey, statement_index)

    def _numeric(self, schema: CredentialSchema, name: str) -> None:
        if not schema.is_numeric(name):
            raise UsageError(f"Attribute {name} is not numeric and cannot be bounded")

    # ------------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------------

    def _credential(self, i: int) -> Statement:
        entry = self.spec.credentials[i]
        raw = entry["revealedAttributes"]
        if raw.get(CRYPTO_VERSION_STR) != entry["version"] or raw.get(SCHEMA_STR) != entry["schema"]:
            raise SchemaMismatch(
                f"Credential {i} must reveal its {CRYPTO_VERSION_STR} and {SCHEMA_STR} "
                f"as presented"
            )
        missing = [n for n in ALWAYS_REVEALED if n not in self.revealed[i]]
        if missing:
            raise SchemaMismatch(f"Credential {i} does not reveal {', '.join(missing)}")
        schema = self.schemas[i]
        scheme = scheme_for_proof_type(entry["sigType"])
        params = scheme.params(len(schema.structure))
        revealed = self.indexers[i].encode_revealed(raw, schema.encoder)
        return scheme.statement_for(params, self.public_keys[i], revealed)

    def _status(self, i: int) -> Statement:
        status = self.spec.credentials[i]["status"]
        raw = self.spec.credentials[i]["revealedAttributes"].get(STATUS_STR, {})
        if raw.get(ID_STR) != status[ID_STR] or raw.get(REV_CHECK_STR) != status[REV_CHECK_STR]:
            raise SchemaMismatch(f"Credential {i} status does not match its revealed status")

        params = AccumulatorParams.generate()
        key = self.accumulator_keys.get(i)
        secret_key = key if isinstance(key, AccumulatorSecretKey) else None
        data = b58decode(status["accumulated"])
        check = status[REV_CHECK_STR]
        if status["type"] == VB_ACCUMULATOR:
            if check != MEM_CHECK_STR:
                raise UsageError(f"{VB_ACCUMULATOR} only supports {MEM_CHECK_STR} checks")
            accumulated = point_from_bytes(data, require_engine())
            return AccumulatorMembershipStatement(params, accumulated, secret_key)
        if status["type"] == KB_UNIVERSAL_ACCUMULATOR:
            value = KBUniversalAccumulatorValue.from_bytes(data)
            if check == MEM_CHECK_STR:
                return KBUniversalMembershipStatement(params, value.mem, secret_key)
            if check == NON_MEM_CHECK_STR:
                return KBUniversalNonMembershipStatement(params, value.non_mem, secret_key)
            raise UsageError(f"Unknown revocation check {check}")
        raise UsageError(f"Unknown accumulator type {status['type']}")

    def _bound(self, schema: CredentialSchema, name: str, bound: Mapping[str, Any],
               index: int) -> Statement:
        if bound.get("protocol") != BOUND_CHECK_PROTOCOL:
            raise UsageError(f"Unsupported bound check protocol {bound.get('protocol')}")
        self._numeric(schema, name)
        minimum = schema.encode_value(name, bound["min"])
        maximum = schema.encode_value(name, bound["max"])
        key = self._comm_key(bound.get("paramId"), index, bound_check_comm_key)
        return BoundCheckStatement(minimum, maximum, key)

    def _encryption(self, schema: CredentialSchema, name: str, ve: Mapping[str, Any],
                    index: int) -> Statement:
        if ve.get("protocol") != VERIFIABLE_ENCRYPTION_PROTOCOL:
            raise UsageError(f"Unsupported verifiable encryption protocol {ve.get('protocol')}")
        if not schema.is_reversible(name):
            raise UsageError(f"Attribute {name} is not reversibly encoded and cannot be decrypted")
        chunk_bits = ve["chunkBitSize"]
        params_id = ve.get("paramsId")
        if params_id is None:
            params: Any = ChunkedEncryptionParams.generate(chunk_bits=chunk_bits)
        else:
            if self.tracker.lookup(params_id, ChunkedEncryptionParams).chunk_bits != chunk_bits:
                raise UsageError(f"Encryption params {params_id} do not use {chunk_bits}-bit chunks")
            params = self.tracker.ref_for(params_id, ChunkedEncryptionParams, index)
        key = self.tracker.ref_for(ve["encryptionKeyId"], EncryptionKey, index)
        return VerifiableEncryptionStatement(params, key)

    def _inequality(self, schema: CredentialSchema, name: str, ineq: Mapping[str, Any],
                    index: int) -> Statement:
        if ineq.get("protocol") != INEQUALITY_PROTOCOL:
            raise UsageError(f"Unsupported inequality protocol {ineq.get('protocol')}")
        value = schema.encode_value(name, ineq["inEqualTo"])
        key = self._comm_key(ineq.get("paramId"), index, inequality_comm_key)
        return InequalityStatement(value, key)

    def _predicate(self, i: int, predicate: Mapping[str, Any], index: int) -> Statement:
        if predicate.get("protocol") != R1CS_PROTOCOL:
            raise UsageError(f"Unsupported predicate protocol {predicate.get('protocol')}")
        circuit_id = predicate["circuitId"]
        circuit = self.tracker.lookup(circuit_id, R1CS)
        private_vars = predicate["privateVars"]
        if sorted(private_vars) != sorted(circuit.private_names):
            raise ArityMismatch(
                f"Circuit {circuit_id} has private inputs {circuit.private_names}, "
                f"got {sorted(private_vars)}"
            )
        statement = R1CSStatement.new(
            self.tracker.ref_for(circuit_id, R1CS, index), predicate.get("publicVars", {})
        )
        for k, var in enumerate(circuit.private_names):
            self._link(index, k, i, private_vars[var])
        return statement

    def _bounded_pseudonym(self, key: str, index: int) -> Statement:
        entry = self.spec.bounded_pseudonyms[key]
        commit_key = entry["commitKey"]
        attribute_bases = bases_from_base58(commit_key["basesForAttributes"])
        sk_bases = []
        if commit_key.get("baseForSecretKey") is not None:
            sk_bases.append(PseudonymBases.decode(commit_key["baseForSecretKey"]))
        refs = [
            (int(cred), name)
            for cred in sorted(entry["attributes"], key=int)
            for name in entry["attributes"][cred]
        ]
        if len(refs) != len(attribute_bases):
            raise ArityMismatch(
                f"Pseudonym {key} has {len(attribute_bases)} attribute bases for "
                f"{len(refs)} attributes"
            )
        for j, (cred_idx, name) in enumerate(refs):
            self._link(index, j, cred_idx, name)
        return AttributeBoundPseudonymStatement.new(
            Pseudonym.from_base58(key), attribute_bases, sk_bases
        )

    def _unbounded_pseudonym(self, key: str) -> Statement:
        base = PseudonymBases.decode(
            self.spec.unbounded_pseudonyms[key]["commitKey"]["baseForSecretKey"]
        )
        return PseudonymStatement.new(Pseudonym.from_base58(key), base)

    def _blind_commitment(self, index: int) -> Statement:
        request = self.spec.blind_credential_request
        schema = CredentialSchema.from_json(request["schema"])
        indexer = MessageIndexer(schema.structure)
        names = list(request["blindedAttributes"])
        indices = [indexer.index_of(n) for n in names]
        if indices != sorted(set(indices)):
            raise UsageError("Blinded attributes must be distinct and listed in message order")
        scheme = scheme_for_proof_type(request["sigType"])
        params = scheme.params(len(schema.structure))
        self._blind = (schema, indexer, names)

        for blinded_name, refs in request.get("blindedAttributeEqualities", ()):
            meta = WitnessEqualityMetaStatement([(index, self._blinded_ref(blinded_name))])
            for cred_idx, name in refs:
                meta.add_witness_ref(*self._attribute_ref(int(cred_idx), name))
            self._quasi.add_meta_statement(meta)

        commitment = point_from_bytes(b58decode(request["commitment"]), require_engine())
        bases = (params.h0,) + tuple(params.h[i] for i in indices)
        return PedersenCommitmentStatement(bases, commitment)

    def _blinded_ref(self, name: str) -> int:
        names = self._blind[2]
        if name not in names:
            raise UsageError(f"Attribute {name} is not blinded")
        # Reference 0 is the blinding
        return names.index(name) + 1

    # ------------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------------

    def assemble(self, context: Optional[bytes] = None) -> Tuple[QuasiProofSpec, List[Slot]]:
        if len(self.public_keys) != len(self.spec.credentials):
            raise UsageError(
                f"Expected {len(self.spec.credentials)} verification keys, "
                f"got {len(self.public_keys)}"
            )
        slots = layout(self.spec)
        blind_commitment_index: Optional[int] = None
        for index, slot in enumerate(slots):
            statement = self._statement_for(slot, index, blind_commitment_index)
            if slot.kind == BLIND_COMMITMENT_SLOT:
                blind_commitment_index = index
            added = self._add(statement)
            if added != index:
                raise UsageError(f"Statement {added} was assembled out of order")

        for refs in self.spec.attribute_equalities:
            if len(refs) < 2:
                raise UsageError("An attribute equality needs at least 2 attribute references")
            self._quasi.add_meta_statement(WitnessEqualityMetaStatement(
                [self._attribute_ref(int(cred_idx), name) for cred_idx, name in refs]
            ))

        self._quasi.setup_params = self.tracker.setup_params
        self._quasi.context = context
        logger.debug("assembled %d statements, %d meta-statements, %d setup params",
                     len(self._quasi.statements), len(self._quasi.meta_statements),
                     len(self._quasi.setup_params))
        return self._quasi, slots

    def _statement_for(self, slot: Slot, index: int, blind_index: Optional[int]) -> Statement:
        kind, i = slot.kind, slot.credential
        if kind == CREDENTIAL_SLOT:
            return self._credential(i)
        if kind == STATUS_SLOT:
            statement = self._status(i)
            self._link(index, 0, i, STATUS_REVOCATION_ID)
            return statement
        if kind in (BOUND_SLOT, ENCRYPTION_SLOT, INEQUALITY_SLOT):
            field = {BOUND_SLOT: "bounds", ENCRYPTION_SLOT: "verifiableEncryptions",
                     INEQUALITY_SLOT: "inequalities"}[kind]
            item = self.spec.credentials[i][field][slot.name][slot.position]
            build = {BOUND_SLOT: self._bound, ENCRYPTION_SLOT: self._encryption,
                     INEQUALITY_SLOT: self._inequality}[kind]
            statement = build(self.schemas[i], slot.name, item, index)
            self._link(index, 0, i, slot.name)
            return statement
        if kind == PREDICATE_SLOT:
            return self._predicate(i, self.spec.credentials[i]["predicates"][slot.position], index)
        if kind == BOUNDED_PSEUDONYM_SLOT:
            return self._bounded_pseudonym(slot.key, index)
        if kind == UNBOUNDED_PSEUDONYM_SLOT:
            return self._unbounded_pseudonym(slot.key)
        if kind == BLIND_COMMITMENT_SLOT:
            return self._blind_commitment(index)
        if kind in (BLIND_BOUND_SLOT, BLIND_ENCRYPTION_SLOT):
            request = self.spec.blind_credential_request
            schema = self._blind[0]
            if kind == BLIND_BOUND_SLOT:
                item = request["bounds"][slot.name][slot.position]
                statement = self._bound(schema, slot.name, item, index)
            else:
                item = request["verifiableEncryptions"][slot.name][slot.position]
                statement = self._encryption(schema, slot.name, item, index)
            self._quasi.add_meta_statement(WitnessEqualityMetaStatement(
                [(index, 0), (blind_index, self._blinded_ref(slot.name))]
            ))
            return statement
        raise UsageError(f"Unknown statement slot {kind}")
