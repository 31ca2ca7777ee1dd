"""
Signed credentials and their JSON form.

A credential signs the flattened, schema-encoded message vector of::

    {
        "cryptoVersion": ...,
        "credentialSchema": <schema JSON string>,
        "credentialSubject": {...},
        "credentialStatus": {...},     # optional
        <top level fields>
    }

The JSON form adds ``proof: {type, proofValue}`` with the signature in base58.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import base58

from ..proof_protocol.exceptions import SerializationError, UsageError
from ..proof_protocol.factory import scheme_for_proof_type
from ..proof_protocol.indexer import MessageIndexer
from ..proof_protocol.signatures.interfaces import SignatureScheme
from ..proof_protocol.types import VerifyResult
from .constants import (
    CRYPTO_VERSION_STR,
    PROOF_STR,
    SCHEMA_STR,
    STATUS_STR,
    SUBJECT_STR,
    TYPE_STR,
)
from .schema import CredentialSchema
from .versioned import Versioned

logger = logging.getLogger(__name__)

PROOF_VALUE_STR = "proofValue"


def serialize_for_signing(
    version: str,
    schema: CredentialSchema,
    subject: Any,
    credential_status: Optional[Mapping[str, Any]] = None,
    top_level_fields: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """The attribute object whose flattened encoding gets signed."""
    obj: Dict[str, Any] = {
        CRYPTO_VERSION_STR: version,
        SCHEMA_STR: schema.to_json(),
        SUBJECT_STR: copy.deepcopy(subject),
    }
    if credential_status is not None:
        obj[STATUS_STR] = dict(credential_status)
    for name, value in (top_level_fields or {}).items():
        obj[name] = copy.deepcopy(value)
    return obj


def encode_for_signing(schema: CredentialSchema, obj: Mapping[str, Any]) -> List[int]:
    return MessageIndexer(schema.structure).encode(obj, schema.encoder)


def b58encode(data: bytes) -> str:
    return base58.b58encode(data).decode("ascii")


def b58decode(text: str) -> bytes:
    try:
        return base58.b58decode(text)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"Invalid base58 value: {e}") from e


def split_credential_json(obj: Mapping[str, Any]):
    """
    Split credential JSON into (version, schema, subject, status, top-level fields, proof).

    Raises:
        SerializationError: If a required field is missing
    """
    data = dict(obj)
    try:
        version = data.pop(CRYPTO_VERSION_STR)
        schema = CredentialSchema.from_json(data.pop(SCHEMA_STR))
        subject = data.pop(SUBJECT_STR)
        proof = data.pop(PROOF_STR)
    except KeyError as e:
        raise SerializationError(f"Credential JSON is missing {e}") from e
    status = data.pop(STATUS_STR, None)
    return version, schema, subject, status, data, proof


class Credential(Versioned):
    """An issued credential: attributes plus the issuer's signature."""

    def __init__(
        self,
        version: str,
        schema: CredentialSchema,
        subject: Any,
        top_level_fields: Mapping[str, Any],
        signature: Any,
        scheme: SignatureScheme,
        credential_status: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(version)
        self.schema = schema
        self.subject = subject
        self.credential_status = dict(credential_status) if credential_status else None
        self.top_level_fields = dict(top_level_fields)
        self.signature = signature
        self.scheme = scheme
        self._encoded: Optional[List[int]] = None

    @property
    def indexer(self) -> MessageIndexer:
        return MessageIndexer(self.schema.structure)

    def serialize_for_signing(self) -> Dict[str, Any]:
        return serialize_for_signing(
            self.version, self.schema, self.subject, self.credential_status, self.top_level_fields
        )

    def encoded_messages(self) -> List[int]:
        if self._encoded is None:
            self._encoded = encode_for_signing(self.schema, self.serialize_for_signing())
        return list(self._encoded)

    def encoded_message(self, name: str) -> int:
        return self.encoded_messages()[self.indexer.index_of(name)]

    def get_top_level_field(self, name: str) -> Any:
        if name not in self.top_level_fields:
            raise UsageError(f"Top level field {name} is absent")
        return self.top_level_fields[name]

    @property
    def proof_type(self) -> str:
        return self.scheme.proof_type

    def verify(self, verification_key: Any) -> VerifyResult:
        """
        Check the signature with the issuer's public key, or its secret key
        for keyed schemes.
        """
        messages = self.encoded_messages()
        params = self.scheme.params(len(messages))
        result = self.scheme.verify(messages, self.signature, verification_key, params)
        if not result.verified:
            logger.warning("credential rejected: %s", result.error)
        return result

    # ------------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        obj = self.serialize_for_signing()
        obj[PROOF_STR] = {
            TYPE_STR: self.proof_type,
            PROOF_VALUE_STR: b58encode(self.scheme.signature_to_bytes(self.signature)),
        }
        return obj

    def to_json_string(self) -> str:
        return json.dumps(self.to_json(), separators=(",", ":"))

    @classmethod
    def from_json(cls, data: Union[str, Mapping[str, Any]]) -> "Credential":
        obj = json.loads(data) if isinstance(data, str) else data
        version, schema, subject, status, top_level, proof = split_credential_json(obj)
        scheme = scheme_for_proof_type(proof[TYPE_STR])
        if proof[TYPE_STR] != scheme.proof_type:
            raise SerializationError(
                f"{proof[TYPE_STR]} is a blinded credential type; unblind it first"
            )
        signature = scheme.signature_from_bytes(b58decode(proof[PROOF_VALUE_STR]))
        return cls(version, schema, subject, top_level, signature, scheme, status)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Credential):
            return NotImplemented
        return self.to_json() == other.to_json()

    def __hash__(self) -> int:
        return hash(self.to_json_string())
