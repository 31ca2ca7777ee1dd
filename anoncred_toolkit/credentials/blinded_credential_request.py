"""
A request for a credential over attributes hidden from the issuer.

The request is a presentation whose specification carries a
``blindCredentialRequest`` entry::

    {
        "sigType": "Secp256k1BlindedKeyedMac2024",
        "version": "0.1.0",
        "schema": "<schema JSON>",
        "blindedAttributes": ["credentialSubject.secret", ...],   # message order
        "commitment": "<base58>",
        "bounds": {...},
        "verifiableEncryptions": {...},
        "blindedAttributeEqualities": [[name, [[credIdx, name], ...]], ...]
    }

Its proof shows knowledge of the commitment opening, plus any predicates
and equalities over the blinded attributes and presented credentials.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..proof_protocol.exceptions import SerializationError
from ..proof_protocol.types import VerifyResult
from .blinded_credential_builder import BlindedCredentialBuilder
from .presentation import Presentation
from .versioned import Versioned

logger = logging.getLogger(__name__)


class BlindedCredentialRequest(Versioned):
    def __init__(self, version: str, presentation: Presentation):
        super().__init__(version)
        if presentation.spec.blind_credential_request is None:
            raise SerializationError("Presentation carries no blind credential request")
        self.presentation = presentation

    @property
    def request(self) -> Dict[str, Any]:
        return self.presentation.spec.blind_credential_request

    @property
    def blinded_attributes(self) -> List[str]:
        return list(self.request["blindedAttributes"])

    def verify(
        self,
        public_keys: Sequence[Any] = (),
        accumulator_keys: Optional[Mapping[int, Any]] = None,
        predicate_params: Optional[Mapping[str, Any]] = None,
    ) -> VerifyResult:
        """Check the request proof; keys are for the presented credentials, if any."""
        result = self.presentation.verify(public_keys, accumulator_keys, predicate_params)
        if not result.verified:
            logger.warning("blinded credential request rejected: %s", result.error)
        return result

    def generate_blinded_credential_builder(self) -> BlindedCredentialBuilder:
        """Issuer builder for this request; verify the request first."""
        return BlindedCredentialBuilder(self.request)

    def to_json(self) -> Dict[str, Any]:
        return {"version": self.version, "presentation": self.presentation.to_json()}

    def to_json_string(self) -> str:
        return json.dumps(self.to_json(), separators=(",", ":"))

    @classmethod
    def from_json(cls, data: Union[str, Mapping[str, Any]]) -> "BlindedCredentialRequest":
        obj = json.loads(data) if isinstance(data, str) else data
        try:
            return cls(obj["version"], Presentation.from_json(obj["presentation"]))
        except KeyError as e:
            raise SerializationError(f"Blinded credential request JSON is missing {e}") from e
