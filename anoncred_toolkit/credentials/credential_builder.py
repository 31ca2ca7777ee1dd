"""
Credential builders.

``CredentialBuilderCommon`` collects what every issued credential carries
(schema, subject, optional status, top level fields);
``CredentialBuilder`` signs it.

Example:
    >>> builder = CredentialBuilder()
    >>> builder.schema = CredentialSchema(schema_obj)
    >>> builder.subject = {"fname": "John", "age": 34}
    >>> credential = builder.sign(secret_key, "keyed-mac")
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from ..proof_protocol.exceptions import UsageError
from ..proof_protocol.factory import get_signature_scheme
from .constants import (
    ID_STR,
    PROOF_STR,
    REV_CHECK_STR,
    REV_ID_STR,
    REVOCATION_CHECKS,
)
from .credential import Credential, encode_for_signing, serialize_for_signing
from .schema import CredentialSchema
from .versioned import FinalizableBuilder, Versioned

logger = logging.getLogger(__name__)


class CredentialBuilderCommon(Versioned, FinalizableBuilder):
    # Semver; bump whenever the signed object layout changes
    VERSION = "0.1.0"

    def __init__(self):
        super().__init__(self.VERSION)
        self._schema: Optional[CredentialSchema] = None
        self._subject: Any = None
        self._credential_status: Optional[Dict[str, Any]] = None
        self._top_level_fields: Dict[str, Any] = {}

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
    def subject(self) -> Any:
        return self._subject

    @subject.setter
    def subject(self, subject: Any) -> None:
        self._ensure_open()
        self._subject = copy.deepcopy(subject)

    @property
    def credential_status(self) -> Optional[Dict[str, Any]]:
        return self._credential_status

    def set_credential_status(
        self, registry_id: str, revocation_check: str, member_value: str
    ) -> None:
        """
        Args:
            registry_id: Identifier of the accumulator the credential is checked against
            revocation_check: ``membership`` or ``non-membership``
            member_value: Revocation id; its encoding is the accumulator member
        """
        self._ensure_open()
        if revocation_check not in REVOCATION_CHECKS:
            raise UsageError(
                f"Revocation check should be one of {', '.join(REVOCATION_CHECKS)} "
                f"but was {revocation_check}"
            )
        self._credential_status = {
            ID_STR: registry_id,
            REV_CHECK_STR: revocation_check,
            REV_ID_STR: member_value,
        }

    def set_top_level_field(self, name: str, value: Any) -> None:
        self._ensure_open()
        if name in CredentialSchema.RESERVED_NAMES or name == PROOF_STR:
            raise UsageError(f"Field name {name} is reserved")
        self._top_level_fields[name] = copy.deepcopy(value)

    def get_top_level_field(self, name: str) -> Any:
        if name not in self._top_level_fields:
            raise UsageError(f"Top level field {name} is absent")
        return self._top_level_fields[name]

    def _require_ready(self) -> CredentialSchema:
        if self._schema is None:
            raise UsageError("Schema must be set before signing")
        if self._subject is None:
            raise UsageError("Subject must be set before signing")
        if self._credential_status is not None and not self._schema.has_status():
            raise UsageError("Credential status is set but the schema declares none")
        return self._schema

    def serialize_for_signing(self) -> Dict[str, Any]:
        schema = self._require_ready()
        return serialize_for_signing(
            self.version, schema, self._subject, self._credential_status, self._top_level_fields
        )


class CredentialBuilder(CredentialBuilderCommon):
    """
    Signs credentials.

    A declared ``credentialStatus`` is optional: a credential issued without
    a status is signed under the schema minus that declaration, and carries
    that schema, so presentations of it resolve the same message indices.
    """

    def signing_schema(self) -> CredentialSchema:
        schema = self._require_ready()
        if self._credential_status is None and schema.has_status():
            return schema.without_status()
        return schema

    def serialize_for_signing(self) -> Dict[str, Any]:
        return serialize_for_signing(
            self.version,
            self.signing_schema(),
            self._subject,
            self._credential_status,
            self._top_level_fields,
        )

    def encoded_messages(self) -> List[int]:
        """Encoded message vector in schema order."""
        return encode_for_signing(self.signing_schema(), self.serialize_for_signing())

    def sign(self, secret_key: Any, sig_type: Optional[str] = None) -> Credential:
        """
        Sign and close the builder.

        Args:
            secret_key: Issuer secret key for the chosen scheme
            sig_type: Scheme name; defaults to the configured default scheme

        Raises:
            SchemaMismatch: If the attributes do not match the schema exactly
            EncodingError: If an attribute value is outside its encoder's domain
        """
        self._ensure_open()
        scheme = get_signature_scheme(sig_type)
        schema = self.signing_schema()
        messages = encode_for_signing(schema, self.serialize_for_signing())
        signature = scheme.sign(messages, secret_key, scheme.params(len(messages)))
        credential = Credential(
            self.version,
            schema,
            self._subject,
            self._top_level_fields,
            signature,
            scheme,
            self._credential_status,
        )
        self._finish()
        logger.debug("issued %s credential over %d messages", scheme.name, len(messages))
        return credential
