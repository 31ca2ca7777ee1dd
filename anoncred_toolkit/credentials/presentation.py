"""
Presentations: a presentation specification, its composite proof and the
ciphertexts of verifiably encrypted attributes.

JSON form::

    {
        "version": "0.1.0",
        "context": "...",                       # optional
        "nonce": "<base58>",                    # optional
        "spec": {...},
        "attributeCiphertexts": {"0": {name: ["<base58>", ...]}},
        "blindedAttributeCiphertexts": {name: ["<base58>", ...]},
        "proof": "<base58>"
    }
"""

import copy
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..proof_protocol.accumulator.proof import KeyedMembershipProof
from ..proof_protocol.composite_proof.proof import CompositeProof
from ..proof_protocol.exceptions import AnonCredError, SerializationError, UsageError
from ..proof_protocol.factory import scheme_for_proof_type
from ..proof_protocol.predicates.verifiable_encryption import Ciphertext
from ..proof_protocol.types import VerifyResult
from .constants import ID_STR, REV_CHECK_STR
from .credential import b58decode, b58encode
from .keyed_proof import KeyedAccumulatorProof, KeyedCredentialProof
from .presentation_specification import PresentationSpecification
from .proof_spec_assembler import (
    BLIND_ENCRYPTION_SLOT,
    CREDENTIAL_SLOT,
    ENCRYPTION_SLOT,
    STATUS_SLOT,
    Slot,
    layout,
)
from .versioned import Versioned

logger = logging.getLogger(__name__)

# credential index (as a JSON key) -> attribute name -> base58 ciphertexts
AttributeCiphertexts = Dict[str, Dict[str, List[str]]]


class Presentation(Versioned):
    def __init__(
        self,
        version: str,
        spec: PresentationSpecification,
        proof: CompositeProof,
        attribute_ciphertexts: Optional[AttributeCiphertexts] = None,
        blinded_attribute_ciphertexts: Optional[Dict[str, List[str]]] = None,
        context: Optional[str] = None,
        nonce: Optional[bytes] = None,
    ):
        super().__init__(version)
        self.spec = spec
        self.proof = proof
        self.attribute_ciphertexts = attribute_ciphertexts or {}
        self.blinded_attribute_ciphertexts = blinded_attribute_ciphertexts or {}
        self.context = context
        self.nonce = nonce

    @property
    def context_bytes(self) -> Optional[bytes]:
        return self.context.encode("utf-8") if self.context is not None else None

    def ciphertext(self, cred_idx: int, name: str, position: int = 0) -> Ciphertext:
        """Ciphertext of a verifiably encrypted credential attribute, for its decryptor."""
        try:
            encoded = self.attribute_ciphertexts[str(cred_idx)][name][position]
        except (KeyError, IndexError):
            raise UsageError(
                f"No ciphertext for attribute {name} of credential {cred_idx}"
            ) from None
        return Ciphertext.from_bytes(b58decode(encoded))

    def blinded_attribute_ciphertext(self, name: str, position: int = 0) -> Ciphertext:
        try:
            encoded = self.blinded_attribute_ciphertexts[name][position]
        except (KeyError, IndexError):
            raise UsageError(f"No ciphertext for blinded attribute {name}") from None
        return Ciphertext.from_bytes(b58decode(encoded))

    # ------------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------------

    def verify(
        self,
        public_keys: Sequence[Any],
        accumulator_keys: Optional[Mapping[int, Any]] = None,
        predicate_params: Optional[Mapping[str, Any]] = None,
    ) -> VerifyResult:
        """
        Rebuild the proof spec from the presentation specification and check the proof.

        Args:
            public_keys: One verification key per credential, in order. For
                keyed-MAC credentials the issuer's secret key checks the
                keyed part inline; anything else leaves it to keyed proofs.
            accumulator_keys: Credential index -> accumulator key, same rule
            predicate_params: Parameter id -> commitment key, encryption
                params/key or circuit

        A malformed presentation (missing fields, wrong JSON types, a proof
        with fewer statements than the specification) is a failed result,
        never an exception.

        Raises:
            UsageError: If the number of keys differs from the number of credentials
        """
        if len(public_keys) != len(self.spec.credentials):
            raise UsageError(
                f"Presentation has {len(self.spec.credentials)} credentials but "
                f"{len(public_keys)} keys were given"
            )
        logger.debug("Presentation.verify >>> %d credentials", len(public_keys))
        try:
            quasi, slots = self.spec.to_proof_spec(
                public_keys, accumulator_keys, predicate_params, self.context_bytes
            )
            if self.proof.statement_count != len(slots):
                result = VerifyResult.failure(
                    f"Proof has {self.proof.statement_count} statements, "
                    f"the presentation specification needs {len(slots)}"
                )
            else:
                result = self._check_ciphertexts(slots)
            if result.verified:
                result = self.proof.verify(quasi, self.nonce)
        except AnonCredError as e:
            result = VerifyResult.failure(f"{type(e).__name__}: {e}")
        except (KeyError, IndexError, TypeError, ValueError) as e:
            result = VerifyResult.failure(f"Malformed presentation: {type(e).__name__}: {e}")

        if not result.verified:
            logger.warning("presentation rejected: %s", result.error)
        return result

    def _stored_ciphertext(self, slot: Slot) -> Optional[str]:
        try:
            if slot.kind == ENCRYPTION_SLOT:
                return self.attribute_ciphertexts[str(slot.credential)][slot.name][slot.position]
            return self.blinded_attribute_ciphertexts[slot.name][slot.position]
        except (KeyError, IndexError):
            return None

    def _check_ciphertexts(self, slots: Sequence[Slot]) -> VerifyResult:
        for index, slot in enumerate(slots):
            if slot.kind not in (ENCRYPTION_SLOT, BLIND_ENCRYPTION_SLOT):
                continue
            stored = self._stored_ciphertext(slot)
            if stored is None:
                return VerifyResult.failure(f"Missing ciphertext for attribute {slot.name}")
            proven = Ciphertext.from_elements(self.proof.statement_elements(index))
            if Ciphertext.from_bytes(b58decode(stored)) != proven:
                return VerifyResult.failure(
                    f"Ciphertext for attribute {slot.name} does not match the proof"
                )
        return VerifyResult.success()

    def keyed_proofs(self) -> Dict[int, Dict[str, Any]]:
        """
        Keyed checks left to key holders, by credential index.

        Each value may hold ``"credential"`` (a KeyedCredentialProof for the
        issuer) and ``"status"`` (a KeyedAccumulatorProof for the manager).
        """
        result: Dict[int, Dict[str, Any]] = {}
        for index, slot in enumerate(layout(self.spec)):
            if slot.kind == CREDENTIAL_SLOT:
                entry = self.spec.credentials[slot.credential]
                scheme = scheme_for_proof_type(entry["sigType"])
                if scheme.publicly_verifiable:
                    continue
                statement = scheme.statement_for(scheme.params(1), None, {})
                keyed = statement.keyed_proof(self.proof.statement_elements(index))
                result.setdefault(slot.credential, {})["credential"] = KeyedCredentialProof(
                    entry["sigType"], keyed
                )
            elif slot.kind == STATUS_SLOT:
                status = self.spec.get_status(slot.credential)
                elements = self.proof.statement_elements(index)
                keyed = KeyedMembershipProof(elements["C_bar"], elements["V_bar"])
                result.setdefault(slot.credential, {})["status"] = KeyedAccumulatorProof(
                    status[ID_STR], status["type"], status[REV_CHECK_STR], keyed
                )
        return result

    # ------------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        obj: Dict[str, Any] = {"version": self.version}
        if self.context is not None:
            obj["context"] = self.context
        if self.nonce is not None:
            obj["nonce"] = b58encode(self.nonce)
        obj["spec"] = self.spec.to_json()
        if self.attribute_ciphertexts:
            obj["attributeCiphertexts"] = copy.deepcopy(self.attribute_ciphertexts)
        if self.blinded_attribute_ciphertexts:
            obj["blindedAttributeCiphertexts"] = copy.deepcopy(self.blinded_attribute_ciphertexts)
        obj["proof"] = b58encode(self.proof.to_bytes())
        return obj

    def to_json_string(self) -> str:
        return json.dumps(self.to_json(), separators=(",", ":"))

    @classmethod
    def from_json(cls, data: Union[str, Mapping[str, Any]]) -> "Presentation":
        obj = json.loads(data) if isinstance(data, str) else data
        try:
            version = obj["version"]
            spec = PresentationSpecification.from_json(obj["spec"])
            proof = CompositeProof.from_bytes(b58decode(obj["proof"]))
        except KeyError as e:
            raise SerializationError(f"Presentation JSON is missing {e}") from e
        nonce = b58decode(obj["nonce"]) if "nonce" in obj else None
        return cls(
            version,
            spec,
            proof,
            copy.deepcopy(obj.get("attributeCiphertexts")),
            copy.deepcopy(obj.get("blindedAttributeCiphertexts")),
            obj.get("context"),
            nonce,
        )
