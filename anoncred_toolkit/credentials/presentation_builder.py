"""
Presentation builder: the holder side of a presentation.

Credentials, reveals and predicates are declared by attribute name while
the builder is open. ``finalize()`` writes the presentation specification,
assembles the proof spec from it (the same way the verifier will), picks a
witness for every statement and generates one composite proof.

Example:
    >>> builder = PresentationBuilder()
    >>> idx = builder.add_credential(credential, public_key)
    >>> builder.mark_attributes_revealed(idx, ["credentialSubject.fname"])
    >>> builder.enforce_bounds(idx, "credentialSubject.age", 18, 150)
    >>> presentation = builder.finalize()
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..proof_protocol.accumulator.proof import AccumulatorMembershipWitness
from ..proof_protocol.accumulator.universal import KBUniversalAccumulatorValue
from ..proof_protocol.accumulator.witness import KBUniversalNonMembershipWitness
from ..proof_protocol.composite_proof.pedersen_commitment import PedersenCommitmentWitness
from ..proof_protocol.composite_proof.proof import CompositeProof
from ..proof_protocol.composite_proof.statement import Witness, Witnesses
from ..proof_protocol.config import DEFAULT_CHUNK_BITS
from ..proof_protocol.exceptions import UsageError
from ..proof_protocol.flattening import flatten_object
from ..proof_protocol.indexer import unflatten
from ..proof_protocol.pedersen.commitments import PedersenCommKey, point_to_bytes
from ..proof_protocol.predicates.bound_check import BOUND_CHECK_PROTOCOL, BoundCheckWitness
from ..proof_protocol.predicates.inequality import InequalityWitness
from ..proof_protocol.predicates.pseudonym import (
    AttributeBoundPseudonym,
    AttributeBoundPseudonymWitness,
    Pseudonym,
    PseudonymBases,
    PseudonymWitness,
    bases_to_base58,
)
from ..proof_protocol.predicates.r1cs import R1CS, R1CSWitness
from ..proof_protocol.predicates.verifiable_encryption import (
    Ciphertext,
    ChunkedEncryptionParams,
    EncryptionKey,
    VerifiableEncryptionWitness,
)
from .constants import (
    ALWAYS_REVEALED,
    ID_STR,
    INEQUALITY_PROTOCOL,
    KB_UNIVERSAL_ACCUMULATOR,
    NON_MEM_CHECK_STR,
    R1CS_PROTOCOL,
    REV_CHECK_STR,
    STATUS_REVOCATION_ID,
    STATUS_STR,
    TYPE_STR,
    VB_ACCUMULATOR,
    VERIFIABLE_ENCRYPTION_PROTOCOL,
)
from .credential import Credential, b58encode
from .presentation import Presentation
from .presentation_specification import PresentationSpecification
from .proof_spec_assembler import (
    BLIND_BOUND_SLOT,
    BLIND_COMMITMENT_SLOT,
    BLIND_ENCRYPTION_SLOT,
    BOUND_SLOT,
    BOUNDED_PSEUDONYM_SLOT,
    CREDENTIAL_SLOT,
    ENCRYPTION_SLOT,
    INEQUALITY_SLOT,
    PREDICATE_SLOT,
    STATUS_SLOT,
    UNBOUNDED_PSEUDONYM_SLOT,
    Slot,
)
from .versioned import FinalizableBuilder, Versioned

logger = logging.getLogger(__name__)

AttributeRef = Tuple[int, str]


def encryption_entry(key_id: str, params_id: Optional[str], chunk_bits: int) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "chunkBitSize": chunk_bits,
        "encryptionKeyId": key_id,
        "protocol": VERIFIABLE_ENCRYPTION_PROTOCOL,
    }
    if params_id is not None:
        entry["paramsId"] = params_id
    return entry


class PresentationBuilder(Versioned, FinalizableBuilder):
    # Semver; bump whenever the presentation JSON layout changes
    VERSION = "0.1.0"

    def __init__(self):
        super().__init__(self.VERSION)
        self._credentials: List[Tuple[Credential, Any]] = []
        self._revealed: Dict[int, Set[str]] = {}
        self._equalities: List[List[AttributeRef]] = []
        self._status: Dict[int, Tuple[Dict[str, Any], Any]] = {}
        self._bounds: Dict[int, Dict[str, List[Dict[str, Any]]]] = {}
        self._encryptions: Dict[int, Dict[str, List[Dict[str, Any]]]] = {}
        self._inequalities: Dict[int, Dict[str, List[Dict[str, Any]]]] = {}
        self._predicates: Dict[int, List[Dict[str, Any]]] = {}
        self._bounded_pseudonyms: Dict[str, Dict[str, Any]] = {}
        self._unbounded_pseudonyms: Dict[str, Dict[str, Any]] = {}
        self._pseudonym_secret_keys: Dict[str, Tuple[int, ...]] = {}
        self._predicate_params: Dict[str, Any] = {}
        self._blind_request: Optional[Dict[str, Any]] = None
        self._blind_secrets: Optional[Tuple[int, Dict[str, int]]] = None
        self._context: Optional[str] = None
        self._nonce: Optional[bytes] = None

    # ------------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------------

    @property
    def context(self) -> Optional[str]:
        return self._context

    @context.setter
    def context(self, context: Optional[str]) -> None:
        self._ensure_open()
        self._context = context

    @property
    def nonce(self) -> Optional[bytes]:
        return self._nonce

    @nonce.setter
    def nonce(self, nonce: Optional[bytes]) -> None:
        self._ensure_open()
        self._nonce = nonce

    @property
    def predicate_params(self) -> Dict[str, Any]:
        return dict(self._predicate_params)

    def add_predicate_param(self, param_id: str, value: Any) -> None:
        """
        Register a shared parameter (commitment key, encryption params or
        key, circuit) under ``param_id``.

        Raises:
            UsageError: If the id is already bound to a different value
        """
        self._ensure_open()
        current = self._predicate_params.get(param_id)
        if current is not None and current != value:
            raise UsageError(f"Predicate param id {param_id} is already in use")
        self._predicate_params[param_id] = value

    def _register(self, param_id: Optional[str], value: Any, expected: type) -> None:
        if value is None:
            return
        if param_id is None:
            raise UsageError("A predicate param needs an id")
        if not isinstance(value, expected):
            raise UsageError(f"Predicate param {param_id} should be {expected.__name__}")
        self.add_predicate_param(param_id, value)

    # ------------------------------------------------------------------------
    # Credentials and reveals
    # ------------------------------------------------------------------------

    def add_credential(self, credential: Credential, public_key: Any = None) -> int:
        """
        Add a credential to present; returns its index.

        Args:
            credential: The holder's credential
            public_key: Issuer public key. Publicly verifiable schemes need it;
                keyed schemes take none.
        """
        self._ensure_open()
        if not isinstance(credential, Credential):
            raise UsageError(f"Expected Credential, got {type(credential).__name__}")
        self._credentials.append((credential, public_key))
        index = len(self._credentials) - 1
        self._revealed[index] = set(ALWAYS_REVEALED)
        return index

    def _credential(self, cred_idx: int) -> Credential:
        if not 0 <= cred_idx < len(self._credentials):
            raise UsageError(f"Invalid credential index {cred_idx}")
        return self._credentials[cred_idx][0]

    def _check_name(self, cred_idx: int, name: str) -> Credential:
        credential = self._credential(cred_idx)
        credential.indexer.index_of(name)
        return credential

    def mark_attributes_revealed(self, cred_idx: int, names: Sequence[str]) -> None:
        """
        Raises:
            SchemaMismatch: If a name is not an attribute of the credential
        """
        self._ensure_open()
        for name in names:
            self._check_name(cred_idx, name)
        self._revealed[cred_idx].update(names)

    def enforce_attribute_equality(self, *refs: AttributeRef) -> None:
        """Prove that hidden attributes, given as (credential index, name), are equal."""
        self._ensure_open()
        if len(refs) < 2:
            raise UsageError("An attribute equality needs at least 2 attribute references")
        for cred_idx, name in refs:
            self._check_name(cred_idx, name)
        self._equalities.append([(int(i), name) for i, name in refs])

    # ------------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------------

    def add_accumulator_info_for_cred_status(
        self, cred_idx: int, witness: Any, accumulated: Any
    ) -> None:
        """
        Prove the credential's revocation id is (or is not) in an accumulator.

        The status id and revocation check are revealed with it, so the
        verifier knows which accumulator to check against.

        Args:
            witness: Membership or non-membership witness for the revocation id
            accumulated: Positive accumulator value, or a KBUniversalAccumulatorValue
        """
        self._ensure_open()
        credential = self._credential(cred_idx)
        status = credential.credential_status
        if status is None:
            raise UsageError(f"Credential {cred_idx} has no status")
        check = status[REV_CHECK_STR]
        if isinstance(accumulated, KBUniversalAccumulatorValue):
            acc_type, data = KB_UNIVERSAL_ACCUMULATOR, accumulated.to_bytes()
        else:
            if check == NON_MEM_CHECK_STR:
                raise UsageError(
                    f"{NON_MEM_CHECK_STR} checks need a {KB_UNIVERSAL_ACCUMULATOR} value"
                )
            acc_type, data = VB_ACCUMULATOR, point_to_bytes(accumulated)
        if (check == NON_MEM_CHECK_STR) != isinstance(witness, KBUniversalNonMembershipWitness):
            raise UsageError(f"Witness type does not match the {check} check")

        entry = {
            ID_STR: status[ID_STR],
            TYPE_STR: acc_type,
            REV_CHECK_STR: check,
            "accumulated": b58encode(data),
        }
        self._status[cred_idx] = (entry, witness)
        self._revealed[cred_idx].update(
            (f"{STATUS_STR}.{ID_STR}", f"{STATUS_STR}.{REV_CHECK_STR}")
        )

    # ------------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------------

    def enforce_bounds(
        self,
        cred_idx: int,
        name: str,
        min_value: Any,
        max_value: Any,
        param_id: Optional[str] = None,
        param: Optional[PedersenCommKey] = None,
    ) -> None:
        """
        Prove ``min_value <= attribute < max_value`` without revealing it.

        Bounds are raw values, encoded with the attribute's encoder. Without
        ``param_id`` the default bound-check commitment key is used.
        """
        self._ensure_open()
        schema = self._check_name(cred_idx, name).schema
        if not schema.is_numeric(name):
            raise UsageError(f"Attribute {name} is not numeric and cannot be bounded")
        if schema.encode_value(name, min_value) >= schema.encode_value(name, max_value):
            raise UsageError(f"Empty range [{min_value}, {max_value}) for {name}")
        self._register(param_id, param, PedersenCommKey)
        bound: Dict[str, Any] = {"min": min_value, "max": max_value, "protocol": BOUND_CHECK_PROTOCOL}
        if param_id is not None:
            bound["paramId"] = param_id
        self._bounds.setdefault(cred_idx, {}).setdefault(name, []).append(bound)

    def verifiably_encrypt(
        self,
        cred_idx: int,
        name: str,
        encryption_key_id: str,
        encryption_key: Optional[EncryptionKey] = None,
        encryption_params_id: Optional[str] = None,
        encryption_params: Optional[ChunkedEncryptionParams] = None,
        chunk_bits: int = DEFAULT_CHUNK_BITS,
    ) -> None:
        """Encrypt a hidden attribute for a third party and prove the ciphertext is correct."""
        self._ensure_open()
        schema = self._check_name(cred_idx, name).schema
        if not schema.is_reversible(name):
            raise UsageError(f"Attribute {name} is not reversibly encoded and cannot be decrypted")
        self._register(encryption_key_id, encryption_key, EncryptionKey)
        self._register(encryption_params_id, encryption_params, ChunkedEncryptionParams)
        self._encryptions.setdefault(cred_idx, {}).setdefault(name, []).append(
            encryption_entry(encryption_key_id, encryption_params_id, chunk_bits)
        )

    def enforce_r1cs_predicate(
        self,
        cred_idx: int,
        private_vars: Mapping[str, str],
        circuit_id: str,
        circuit: Optional[R1CS] = None,
        public_vars: Optional[Mapping[str, int]] = None,
    ) -> None:
        """
        Prove a circuit holds over hidden attributes.

        Args:
            private_vars: Circuit private input name -> attribute name
            circuit_id: Id of the circuit among the predicate params
            public_vars: Circuit public input name -> field element
        """
        self._ensure_open()
        for name in private_vars.values():
            self._check_name(cred_idx, name)
        self._register(circuit_id, circuit, R1CS)
        self._predicates.setdefault(cred_idx, []).append({
            "privateVars": dict(private_vars),
            "publicVars": dict(public_vars or {}),
            "circuitId": circuit_id,
            "protocol": R1CS_PROTOCOL,
        })

    def enforce_attribute_inequality(
        self,
        cred_idx: int,
        name: str,
        value: Any,
        param_id: Optional[str] = None,
        param: Optional[PedersenCommKey] = None,
    ) -> None:
        """Prove a hidden attribute differs from the raw ``value``."""
        self._ensure_open()
        self._check_name(cred_idx, name).schema.encode_value(name, value)
        self._register(param_id, param, PedersenCommKey)
        ineq: Dict[str, Any] = {"inEqualTo": value, "protocol": INEQUALITY_PROTOCOL}
        if param_id is not None:
            ineq["paramId"] = param_id
        self._inequalities.setdefault(cred_idx, {}).setdefault(name, []).append(ineq)

    # ------------------------------------------------------------------------
    # Pseudonyms
    # ------------------------------------------------------------------------

    def add_pseudonym_to_credential_attributes(
        self,
        bases_for_attributes: Sequence[Any],
        attribute_names: Mapping[int, Sequence[str]],
        base_for_secret_key: Any = None,
        secret_key: Optional[int] = None,
    ) -> Pseudonym:
        """
        Pseudonym over hidden attributes, optionally bound to a holder secret.

        Attributes are taken by credential index (ascending), then in the
        order listed; ``bases_for_attributes`` follows the same order.
        """
        self._ensure_open()
        if (base_for_secret_key is None) != (secret_key is None):
            raise UsageError("A pseudonym secret key needs its base and vice versa")
        values = [
            self._check_name(cred_idx, name).encoded_message(name)
            for cred_idx in sorted(attribute_names)
            for name in attribute_names[cred_idx]
        ]
        sk_bases = [] if base_for_secret_key is None else [base_for_secret_key]
        secret_keys = () if secret_key is None else (secret_key,)
        pseudonym = AttributeBoundPseudonym.new(bases_for_attributes, values, sk_bases, secret_keys)
        key = pseudonym.to_base58()
        self._bounded_pseudonyms[key] = {
            "commitKey": {
                "basesForAttributes": bases_to_base58(bases_for_attributes),
                "baseForSecretKey": (
                    PseudonymBases.encode(base_for_secret_key)
                    if base_for_secret_key is not None else None
                ),
            },
            "attributes": {str(i): list(attribute_names[i]) for i in sorted(attribute_names)},
        }
        self._pseudonym_secret_keys[key] = secret_keys
        return pseudonym

    def add_unbounded_pseudonym(self, base_for_secret_key: Any, secret_key: int) -> Pseudonym:
        self._ensure_open()
        pseudonym = Pseudonym.new(base_for_secret_key, secret_key)
        key = pseudonym.to_base58()
        self._unbounded_pseudonyms[key] = {
            "commitKey": {"baseForSecretKey": PseudonymBases.encode(base_for_secret_key)}
        }
        self._pseudonym_secret_keys[key] = (secret_key,)
        return pseudonym

    # ------------------------------------------------------------------------
    # Blind credential request
    # ------------------------------------------------------------------------

    def set_blind_credential_request(
        self, request: Mapping[str, Any], blinding: int, encoded: Mapping[str, int]
    ) -> None:
        """
        Attach a blind credential request; the proof then also shows
        knowledge of its commitment opening.

        Args:
            request: Public request entry
            blinding: Commitment blinding
            encoded: Blinded attribute name -> encoded value
        """
        self._ensure_open()
        missing = [n for n in request["blindedAttributes"] if n not in encoded]
        if missing:
            raise UsageError(f"No value for blinded attributes {', '.join(missing)}")
        self._blind_request = dict(request)
        self._blind_secrets = (blinding, dict(encoded))

    # ------------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------------

    def _revealed_raw(self, cred_idx: int) -> Dict[str, Any]:
        credential = self._credentials[cred_idx][0]
        names, values = flatten_object(credential.serialize_for_signing())
        revealed = self._revealed[cred_idx]
        return unflatten({n: v for n, v in zip(names, values) if n in revealed})

    def _specification(self) -> PresentationSpecification:
        spec = PresentationSpecification()
        for i, (credential, _) in enumerate(self._credentials):
            status = self._status.get(i)
            spec.add_presented_credential(
                credential.version,
                credential.schema.to_json(),
                self._revealed_raw(i),
                credential.proof_type,
                status=status[0] if status else None,
                bounds=self._bounds.get(i),
                verifiable_encryptions=self._encryptions.get(i),
                inequalities=self._inequalities.get(i),
                predicates=self._predicates.get(i),
            )
        for refs in self._equalities:
            spec.add_attribute_equality(refs)
        spec.bounded_pseudonyms = dict(self._bounded_pseudonyms)
        spec.unbounded_pseudonyms = dict(self._unbounded_pseudonyms)
        spec.blind_credential_request = self._blind_request
        return spec

    def _attribute_value(self, cred_idx: int, name: str) -> int:
        return self._credentials[cred_idx][0].encoded_message(name)

    def _witness_for(self, spec: PresentationSpecification, slot: Slot) -> Witness:
        kind, i = slot.kind, slot.credential
        if kind == CREDENTIAL_SLOT:
            credential = self._credentials[i][0]
            _, unrevealed = credential.indexer.split(
                credential.encoded_messages(), self._revealed[i]
            )
            return credential.scheme.witness_for(credential.signature, unrevealed)
        if kind == STATUS_SLOT:
            return AccumulatorMembershipWitness(
                self._attribute_value(i, STATUS_REVOCATION_ID), self._status[i][1]
            )
        if kind == BOUND_SLOT:
            return BoundCheckWitness(self._attribute_value(i, slot.name))
        if kind == ENCRYPTION_SLOT:
            return VerifiableEncryptionWitness(self._attribute_value(i, slot.name))
        if kind == INEQUALITY_SLOT:
            return InequalityWitness(self._attribute_value(i, slot.name))
        if kind == PREDICATE_SLOT:
            predicate = spec.credentials[i]["predicates"][slot.position]
            circuit = self._predicate_params[predicate["circuitId"]]
            private_vars = predicate["privateVars"]
            return R1CSWitness(tuple(
                self._attribute_value(i, private_vars[var]) for var in circuit.private_names
            ))
        if kind == BOUNDED_PSEUDONYM_SLOT:
            attributes = spec.bounded_pseudonyms[slot.key]["attributes"]
            values = [
                self._attribute_value(int(cred), name)
                for cred in sorted(attributes, key=int)
                for name in attributes[cred]
            ]
            return AttributeBoundPseudonymWitness.new(values, self._pseudonym_secret_keys[slot.key])
        if kind == UNBOUNDED_PSEUDONYM_SLOT:
            return PseudonymWitness.new(self._pseudonym_secret_keys[slot.key][0])

        if self._blind_secrets is None:
            raise UsageError(f"Unknown statement slot {kind}")
        blinding, encoded = self._blind_secrets
        if kind == BLIND_COMMITMENT_SLOT:
            names = self._blind_request["blindedAttributes"]
            return PedersenCommitmentWitness((blinding,) + tuple(encoded[n] for n in names))
        if kind == BLIND_BOUND_SLOT:
            return BoundCheckWitness(encoded[slot.name])
        if kind == BLIND_ENCRYPTION_SLOT:
            return VerifiableEncryptionWitness(encoded[slot.name])
        raise UsageError(f"Unknown statement slot {kind}")

    def finalize(self) -> Presentation:
        """
        Generate the presentation and close the builder.

        Raises:
            UsageError: If there is nothing to present or a declared predicate is inconsistent
            ProofGenerationError: If a hidden value does not satisfy its predicate
        """
        self._ensure_open()
        if not self._credentials and self._blind_request is None:
            raise UsageError("A presentation needs a credential or a blind credential request")
        logger.debug("PresentationBuilder.finalize >>> %d credentials", len(self._credentials))

        spec = self._specification()
        context = self._context.encode("utf-8") if self._context is not None else None
        quasi, slots = spec.to_proof_spec(
            [key for _, key in self._credentials], None, self._predicate_params, context
        )
        witnesses = Witnesses([self._witness_for(spec, slot) for slot in slots])
        proof = CompositeProof.generate(quasi, witnesses, self._nonce)

        attribute_ciphertexts: Dict[str, Dict[str, List[str]]] = {}
        blinded_ciphertexts: Dict[str, List[str]] = {}
        for index, slot in enumerate(slots):
            if slot.kind not in (ENCRYPTION_SLOT, BLIND_ENCRYPTION_SLOT):
                continue
            ciphertext = b58encode(Ciphertext.from_elements(proof.statement_elements(index)).to_bytes())
            if slot.kind == ENCRYPTION_SLOT:
                group = attribute_ciphertexts.setdefault(str(slot.credential), {})
                group.setdefault(slot.name, []).append(ciphertext)
            else:
                blinded_ciphertexts.setdefault(slot.name, []).append(ciphertext)

        presentation = Presentation(
            self.version,
            spec,
            proof,
            attribute_ciphertexts,
            blinded_ciphertexts,
            self._context,
            self._nonce,
        )
        self._finish()
        logger.debug("PresentationBuilder.finalize <<< %d statements", len(slots))
        return presentation
