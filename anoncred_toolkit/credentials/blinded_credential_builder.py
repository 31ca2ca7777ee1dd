"""
Issuer side of blind issuance.

The builder is created from a verified BlindedCredentialRequest. The
issuer fills in every attribute that is not blinded and signs on top of
the holder's commitment.
"""

import logging
from typing import Any, Dict, Mapping

from ..proof_protocol.engine import require_engine
from ..proof_protocol.exceptions import SchemaMismatch, UsageError
from ..proof_protocol.factory import scheme_for_proof_type
from ..proof_protocol.flattening import flatten_object
from ..proof_protocol.indexer import MessageIndexer
from ..proof_protocol.pedersen.commitments import point_from_bytes
from .blinded_credential import BlindedCredential
from .credential import b58decode
from .credential_builder import CredentialBuilderCommon
from .schema import CredentialSchema

logger = logging.getLogger(__name__)


class BlindedCredentialBuilder(CredentialBuilderCommon):
    def __init__(self, request: Mapping[str, Any]):
        super().__init__()
        if request.get("version") != self.version:
            raise UsageError(
                f"Request is for credential version {request.get('version')}, "
                f"this builder issues {self.version}"
            )
        self._request: Dict[str, Any] = dict(request)
        self._scheme = scheme_for_proof_type(request["sigType"])
        self.schema = CredentialSchema.from_json(request["schema"])

    @property
    def blinded_attributes(self):
        return list(self._request["blindedAttributes"])

    def _known_messages(self, schema: CredentialSchema) -> Dict[int, int]:
        names, values = flatten_object(self.serialize_for_signing())
        blinded = set(self._request["blindedAttributes"])
        expected = set(schema.structure.names) - blinded
        if set(names) != expected:
            extra = sorted(set(names) - expected)
            missing = sorted(expected - set(names))
            raise SchemaMismatch(
                f"Issuer attributes do not complete the request; "
                f"unexpected: {extra}, missing: {missing}"
            )
        indexer = MessageIndexer(schema.structure)
        return {indexer.index_of(n): schema.encode_value(n, v) for n, v in zip(names, values)}

    def sign(self, secret_key: Any) -> BlindedCredential:
        """
        Raises:
            SchemaMismatch: If the issuer attributes plus the blinded ones are not the schema
        """
        self._ensure_open()
        schema = self._require_ready()
        known = self._known_messages(schema)
        params = self._scheme.params(len(schema.structure))
        commitment = point_from_bytes(b58decode(self._request["commitment"]), require_engine())
        blind_signature = self._scheme.blind_sign(commitment, known, secret_key, params)
        credential = BlindedCredential(
            self.version,
            schema,
            self._subject,
            self._top_level_fields,
            blind_signature,
            self._scheme,
            self._credential_status,
        )
        self._finish()
        logger.debug("issued blinded %s credential, %d known messages",
                     self._scheme.name, len(known))
        return credential
