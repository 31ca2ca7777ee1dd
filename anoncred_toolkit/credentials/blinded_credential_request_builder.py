"""
Holder side of blind issuance.

The holder commits to the subject attributes it wants signed blindly,
optionally proves predicates over them (or their equality with attributes
of credentials it already holds), and keeps the returned blinding to
unblind the issued credential.

Example:
    >>> builder = BlindedCredentialRequestBuilder("keyed-mac")
    >>> builder.schema = CredentialSchema(schema_obj)
    >>> builder.subject_to_blind = {"secret": "my-secret"}
    >>> request, blinding = builder.finalize()
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..proof_protocol.config import DEFAULT_CHUNK_BITS
from ..proof_protocol.exceptions import UsageError
from ..proof_protocol.factory import get_signature_scheme
from ..proof_protocol.flattening import flatten_object
from ..proof_protocol.indexer import MessageIndexer
from ..proof_protocol.pedersen.commitments import PedersenCommKey, point_to_bytes
from ..proof_protocol.predicates.bound_check import BOUND_CHECK_PROTOCOL
from ..proof_protocol.predicates.verifiable_encryption import (
    ChunkedEncryptionParams,
    EncryptionKey,
)
from ..proof_protocol.security import default_randomness
from .blinded_credential_request import BlindedCredentialRequest
from .constants import SUBJECT_STR
from .credential import Credential, b58encode
from .credential_builder import CredentialBuilderCommon
from .presentation_builder import AttributeRef, PresentationBuilder, encryption_entry
from .schema import CredentialSchema
from .versioned import FinalizableBuilder, Versioned

logger = logging.getLogger(__name__)


class BlindedCredentialRequestBuilder(Versioned, FinalizableBuilder):
    # Semver; bump whenever the request JSON layout changes
    VERSION = "0.1.0"

    def __init__(self, sig_type: Optional[str] = None):
        super().__init__(self.VERSION)
        self._scheme = get_signature_scheme(sig_type)
        self._schema: Optional[CredentialSchema] = None
        self._subject_to_blind: Any = None
        self._presentation = PresentationBuilder()
        self._bounds: Dict[str, List[Dict[str, Any]]] = {}
        self._encryptions: Dict[str, List[Dict[str, Any]]] = {}
        self._equalities: List[Tuple[str, List[AttributeRef]]] = []

    @property
    def schema(self) -> Optional[CredentialSchema]:
        return self._schema

    @schema.setter
    def schema(self, schema: CredentialSchema) -> None:
        self._ensure_open()
        if not isinstance(schema, CredentialSchema):
            raise UsageError(f"Expected CredentialSchema, got {type(schema).__name__}")
        self._schema = schema

    @property
    def subject_to_blind(self) -> Any:
        return self._subject_to_blind

    @subject_to_blind.setter
    def subject_to_blind(self, subject: Any) -> None:
        self._ensure_open()
        self._subject_to_blind = copy.deepcopy(subject)

    @property
    def presentation_builder(self) -> PresentationBuilder:
        return self._presentation

    def _blinded(self) -> Tuple[List[str], List[Any]]:
        if self._schema is None or self._subject_to_blind is None:
            raise UsageError("Schema and subject to blind must be set")
        return flatten_object({SUBJECT_STR: self._subject_to_blind})

    # ------------------------------------------------------------------------
    # Delegation to the presentation
    # ------------------------------------------------------------------------

    def add_credential_to_present(self, credential: Credential, public_key: Any = None) -> int:
        self._ensure_open()
        return self._presentation.add_credential(credential, public_key)

    def mark_credential_attributes_revealed(self, cred_idx: int, names: Sequence[str]) -> None:
        self._ensure_open()
        self._presentation.mark_attributes_revealed(cred_idx, names)

    # ------------------------------------------------------------------------
    # Blinded attribute predicates
    # ------------------------------------------------------------------------

    def enforce_equality_on_blinded_attribute(self, name: str, *refs: AttributeRef) -> None:
        """Prove blinded attribute ``name`` equals hidden attributes of presented credentials."""
        self._ensure_open()
        if not refs:
            raise UsageError("An equality needs at least one credential attribute")
        self._equalities.append((name, [(int(i), n) for i, n in refs]))

    def enforce_bounds_on_blinded_attribute(
        self,
        name: str,
        min_value: Any,
        max_value: Any,
        param_id: Optional[str] = None,
        param: Optional[PedersenCommKey] = None,
    ) -> None:
        self._ensure_open()
        if param is not None:
            self._presentation.add_predicate_param(param_id, param)
        bound: Dict[str, Any] = {"min": min_value, "max": max_value, "protocol": BOUND_CHECK_PROTOCOL}
        if param_id is not None:
            bound["paramId"] = param_id
        self._bounds.setdefault(name, []).append(bound)

    def verifiably_encrypt_blinded_attribute(
        self,
        name: str,
        encryption_key_id: str,
        encryption_key: Optional[EncryptionKey] = None,
        encryption_params_id: Optional[str] = None,
        encryption_params: Optional[ChunkedEncryptionParams] = None,
        chunk_bits: int = DEFAULT_CHUNK_BITS,
    ) -> None:
        self._ensure_open()
        if encryption_key is not None:
            self._presentation.add_predicate_param(encryption_key_id, encryption_key)
        if encryption_params is not None:
            self._presentation.add_predicate_param(encryption_params_id, encryption_params)
        self._encryptions.setdefault(name, []).append(
            encryption_entry(encryption_key_id, encryption_params_id, chunk_bits)
        )

    # ------------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------------

    def finalize(self) -> Tuple[BlindedCredentialRequest, int]:
        """
        Commit to the blinded subject and prove the request.

        Returns:
            (request for the issuer, blinding the holder must keep)

        Raises:
            UsageError: If a predicate names an attribute that is not blinded
        """
        self._ensure_open()
        names, values = self._blinded()
        schema = self._schema
        indexer = MessageIndexer(schema.structure)
        encoded = {n: schema.encode_value(n, v) for n, v in zip(names, values)}
        ordered = sorted(names, key=indexer.index_of)

        for name in list(self._bounds) + list(self._encryptions) + [n for n, _ in self._equalities]:
            if name not in encoded:
                raise UsageError(f"Attribute {name} is not blinded")

        blinding = default_randomness().get_nonzero_scalar()
        params = self._scheme.params(len(schema.structure))
        commitment = self._scheme.blinding_base_commitment(
            params, {indexer.index_of(n): encoded[n] for n in ordered}, blinding
        )
        request: Dict[str, Any] = {
            "sigType": self._scheme.blinded_proof_type,
            "version": CredentialBuilderCommon.VERSION,
            "schema": schema.to_json(),
            "blindedAttributes": ordered,
            "commitment": b58encode(point_to_bytes(commitment)),
        }
        if self._bounds:
            request["bounds"] = copy.deepcopy(self._bounds)
        if self._encryptions:
            request["verifiableEncryptions"] = copy.deepcopy(self._encryptions)
        if self._equalities:
            request["blindedAttributeEqualities"] = [
                [name, [[i, n] for i, n in refs]] for name, refs in self._equalities
            ]

        self._presentation.set_blind_credential_request(request, blinding, encoded)
        presentation = self._presentation.finalize()
        self._finish()
        logger.debug("blinded credential request over %d attributes", len(ordered))
        return BlindedCredentialRequest(self.version, presentation), blinding
