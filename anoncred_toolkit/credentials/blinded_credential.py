"""
Blinded credentials: issued over attributes the issuer never saw.

The holder merges its blinded subject back in and unblinds the signature
with the blinding kept from the request.
"""

import copy
import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from ..proof_protocol.exceptions import SerializationError, UsageError
from ..proof_protocol.factory import scheme_for_proof_type
from ..proof_protocol.signatures.interfaces import SignatureScheme
from .constants import PROOF_STR, TYPE_STR
from .credential import (
    PROOF_VALUE_STR,
    Credential,
    b58decode,
    b58encode,
    serialize_for_signing,
    split_credential_json,
)
from .schema import CredentialSchema
from .versioned import Versioned

logger = logging.getLogger(__name__)


def merge_subjects(known: Any, blinded: Any, path: str = "") -> Any:
    """
    Combine the issuer-known and the blinded parts of a subject.

    Raises:
        UsageError: If both parts set the same attribute
    """
    if isinstance(known, dict) and isinstance(blinded, dict):
        merged = copy.deepcopy(known)
        for key, value in blinded.items():
            child = f"{path}.{key}" if path else key
            merged[key] = merge_subjects(known[key], value, child) if key in known else copy.deepcopy(value)
        return merged
    if isinstance(known, list) and isinstance(blinded, list) and len(known) == len(blinded):
        return [merge_subjects(k, b, f"{path}.{i}") for i, (k, b) in enumerate(zip(known, blinded))]
    if known is None:
        return copy.deepcopy(blinded)
    if blinded is None:
        return copy.deepcopy(known)
    raise UsageError(f"Attribute {path} is both known to the issuer and blinded")


class BlindedCredential(Versioned):
    def __init__(
        self,
        version: str,
        schema: CredentialSchema,
        subject: Any,
        top_level_fields: Mapping[str, Any],
        blind_signature: Any,
        scheme: SignatureScheme,
        credential_status: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(version)
        self.schema = schema
        self.subject = subject
        self.top_level_fields = dict(top_level_fields)
        self.blind_signature = blind_signature
        self.scheme = scheme
        self.credential_status = dict(credential_status) if credential_status else None

    @property
    def proof_type(self) -> str:
        return self.scheme.blinded_proof_type

    def to_credential(self, blinded_subject: Any, blinding: int) -> Credential:
        """
        Args:
            blinded_subject: The subject part sent blinded in the request
            blinding: Blinding returned when the request was finalized
        """
        subject = merge_subjects(self.subject, blinded_subject)
        signature = self.scheme.unblind(self.blind_signature, blinding)
        logger.debug("unblinded %s credential", self.scheme.name)
        return Credential(
            self.version,
            self.schema,
            subject,
            self.top_level_fields,
            signature,
            self.scheme,
            self.credential_status,
        )

    def to_json(self) -> Dict[str, Any]:
        obj = serialize_for_signing(
            self.version, self.schema, self.subject, self.credential_status, self.top_level_fields
        )
        obj[PROOF_STR] = {
            TYPE_STR: self.proof_type,
            PROOF_VALUE_STR: b58encode(self.scheme.blind_signature_to_bytes(self.blind_signature)),
        }
        return obj

    def to_json_string(self) -> str:
        return json.dumps(self.to_json(), separators=(",", ":"))

    @classmethod
    def from_json(cls, data: Union[str, Mapping[str, Any]]) -> "BlindedCredential":
        obj = json.loads(data) if isinstance(data, str) else data
        version, schema, subject, status, top_level, proof = split_credential_json(obj)
        scheme = scheme_for_proof_type(proof[TYPE_STR])
        if proof[TYPE_STR] != scheme.blinded_proof_type:
            raise SerializationError(f"{proof[TYPE_STR]} is not a blinded credential type")
        blind_signature = scheme.blind_signature_from_bytes(b58decode(proof[PROOF_VALUE_STR]))
        return cls(version, schema, subject, top_level, blind_signature, scheme, status)
