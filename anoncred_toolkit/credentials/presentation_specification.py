"""
Presentation specification: the public description of a presentation.

It names, per credential, the schema, the revealed raw attributes and
every predicate proven over hidden ones, plus the cross-credential parts
(attribute equalities, pseudonyms, a blind credential request). It holds
only JSON values, so the verifier receives it as sent and rebuilds the
proof spec from it.

Per credential entry::

    {
        "version": "0.1.0",
        "schema": "<schema JSON>",
        "sigType": "Secp256k1KeyedMac2024",
        "revealedAttributes": {"credentialSubject": {"fname": "John"}, ...},
        "status": {"id", "type", "revocationCheck", "accumulated"},
        "bounds": {name: [{"min", "max", "paramId"?, "protocol"}]},
        "verifiableEncryptions": {name: [{"chunkBitSize", "encryptionKeyId",
                                          "paramsId"?, "protocol"}]},
        "inequalities": {name: [{"inEqualTo", "paramId"?, "protocol"}]},
        "predicates": [{"privateVars", "publicVars", "circuitId", "protocol"}]
    }
"""

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..proof_protocol.composite_proof.proof_spec import QuasiProofSpec
from ..proof_protocol.exceptions import SerializationError, UsageError
from .proof_spec_assembler import ProofSpecAssembler, Slot

CREDENTIALS_STR = "credentials"
ATTRIBUTE_EQUALITIES_STR = "attributeEqualities"
BOUNDED_PSEUDONYMS_STR = "boundedPseudonyms"
UNBOUNDED_PSEUDONYMS_STR = "unboundedPseudonyms"
BLIND_CREDENTIAL_REQUEST_STR = "blindCredentialRequest"

AttributeRef = Tuple[int, str]

# Required fields of a presented credential entry, with their JSON types
_CREDENTIAL_FIELDS = (
    ("version", str),
    ("schema", str),
    ("sigType", str),
    ("revealedAttributes", dict),
)
_STATUS_FIELDS = ("id", "type", "revocationCheck", "accumulated")
_NAMED_PREDICATES = ("bounds", "verifiableEncryptions", "inequalities")
_REQUEST_FIELDS = (
    ("sigType", str),
    ("schema", str),
    ("blindedAttributes", list),
    ("commitment", str),
)


def _require_fields(obj: Any, fields, where: str) -> None:
    if not isinstance(obj, dict):
        raise SerializationError(f"{where} must be an object")
    for field, typ in fields:
        if not isinstance(obj.get(field), typ):
            raise SerializationError(f"{where} is missing {field} or it is not a {typ.__name__}")


def _require_named_lists(obj: Any, where: str) -> None:
    if not isinstance(obj, dict):
        raise SerializationError(f"{where} must be an object")
    for name, items in obj.items():
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise SerializationError(f"{where}.{name} must be a list of objects")


class PresentationSpecification:
    def __init__(self):
        self.credentials: List[Dict[str, Any]] = []
        # Each equality is a list of [credential index, attribute name]
        self.attribute_equalities: List[List[List[Any]]] = []
        # Keyed by base58 pseudonym
        self.bounded_pseudonyms: Dict[str, Dict[str, Any]] = {}
        self.unbounded_pseudonyms: Dict[str, Dict[str, Any]] = {}
        self.blind_credential_request: Optional[Dict[str, Any]] = None

    def add_presented_credential(
        self,
        version: str,
        schema: str,
        revealed_attributes: Mapping[str, Any],
        sig_type: str,
        status: Optional[Mapping[str, Any]] = None,
        bounds: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
        verifiable_encryptions: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
        inequalities: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
        predicates: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> int:
        entry: Dict[str, Any] = {
            "version": version,
            "schema": schema,
            "sigType": sig_type,
            "revealedAttributes": copy.deepcopy(dict(revealed_attributes)),
        }
        if status:
            entry["status"] = dict(status)
        if bounds:
            entry["bounds"] = copy.deepcopy(dict(bounds))
        if verifiable_encryptions:
            entry["verifiableEncryptions"] = copy.deepcopy(dict(verifiable_encryptions))
        if inequalities:
            entry["inequalities"] = copy.deepcopy(dict(inequalities))
        if predicates:
            entry["predicates"] = copy.deepcopy(list(predicates))
        self.credentials.append(entry)
        return len(self.credentials) - 1

    def add_attribute_equality(self, refs: Sequence[AttributeRef]) -> None:
        if len(refs) < 2:
            raise UsageError("An attribute equality needs at least 2 attribute references")
        self.attribute_equalities.append([[int(i), str(name)] for i, name in refs])

    def get_status(self, cred_idx: int) -> Optional[Dict[str, Any]]:
        if not 0 <= cred_idx < len(self.credentials):
            raise UsageError(f"Invalid credential index {cred_idx}")
        return self.credentials[cred_idx].get("status")

    def to_json(self) -> Dict[str, Any]:
        obj: Dict[str, Any] = {
            CREDENTIALS_STR: copy.deepcopy(self.credentials),
            ATTRIBUTE_EQUALITIES_STR: copy.deepcopy(self.attribute_equalities),
            BOUNDED_PSEUDONYMS_STR: copy.deepcopy(self.bounded_pseudonyms),
            UNBOUNDED_PSEUDONYMS_STR: copy.deepcopy(self.unbounded_pseudonyms),
        }
        if self.blind_credential_request is not None:
            obj[BLIND_CREDENTIAL_REQUEST_STR] = copy.deepcopy(self.blind_credential_request)
        return obj

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "PresentationSpecification":
        if not isinstance(obj, Mapping) or not isinstance(obj.get(CREDENTIALS_STR), list):
            raise SerializationError("Presentation specification must list its credentials")
        spec = cls()
        spec.credentials = copy.deepcopy(obj[CREDENTIALS_STR])
        spec.attribute_equalities = copy.deepcopy(obj.get(ATTRIBUTE_EQUALITIES_STR, []))
        spec.bounded_pseudonyms = copy.deepcopy(obj.get(BOUNDED_PSEUDONYMS_STR, {}))
        spec.unbounded_pseudonyms = copy.deepcopy(obj.get(UNBOUNDED_PSEUDONYMS_STR, {}))
        spec.blind_credential_request = copy.deepcopy(obj.get(BLIND_CREDENTIAL_REQUEST_STR))
        return spec

    def check_structure(self) -> None:
        """
        Check the JSON shape of every entry, so assembly never indexes a missing field.

        Raises:
            SerializationError: On the first malformed part
        """
        for i, entry in enumerate(self.credentials):
            where = f"Credential {i}"
            _require_fields(entry, _CREDENTIAL_FIELDS, where)
            if "status" in entry:
                _require_fields(
                    entry["status"], [(f, str) for f in _STATUS_FIELDS], f"{where} status"
                )
            for field in _NAMED_PREDICATES:
                if field in entry:
                    _require_named_lists(entry[field], f"{where} {field}")
            predicates = entry.get("predicates", [])
            if not isinstance(predicates, list) or not all(isinstance(p, dict) for p in predicates):
                raise SerializationError(f"{where} predicates must be a list of objects")

        if not isinstance(self.attribute_equalities, list):
            raise SerializationError("Attribute equalities must be a list")
        for refs in self.attribute_equalities:
            if not isinstance(refs, list) or not all(
                isinstance(r, list) and len(r) == 2 and isinstance(r[0], int)
                and isinstance(r[1], str)
                for r in refs
            ):
                raise SerializationError(f"Malformed attribute equality {refs!r}")

        for field, pseudonyms in ((BOUNDED_PSEUDONYMS_STR, self.bounded_pseudonyms),
                                  (UNBOUNDED_PSEUDONYMS_STR, self.unbounded_pseudonyms)):
            if not isinstance(pseudonyms, dict) or not all(
                isinstance(p, dict) and isinstance(p.get("commitKey"), dict)
                for p in pseudonyms.values()
            ):
                raise SerializationError(f"Malformed {field}")

        request = self.blind_credential_request
        if request is not None:
            _require_fields(request, _REQUEST_FIELDS, "Blind credential request")
            for field in ("bounds", "verifiableEncryptions"):
                if field in request:
                    _require_named_lists(request[field], f"Blind credential request {field}")

    def to_proof_spec(
        self,
        public_keys: Sequence[Any],
        accumulator_keys: Optional[Mapping[int, Any]] = None,
        predicate_params: Optional[Mapping[str, Any]] = None,
        context: Optional[bytes] = None,
    ) -> Tuple[QuasiProofSpec, List[Slot]]:
        """
        Build the proof spec this presentation proves. Returns the draft and its statement slots.

        Prover and verifier both go through here, so they assemble statements
        in the same order with the same equalities.

        Raises:
            SerializationError: If the specification is not well formed
        """
        self.check_structure()
        assembler = ProofSpecAssembler(self, public_keys, accumulator_keys, predicate_params)
        return assembler.assemble(context)
