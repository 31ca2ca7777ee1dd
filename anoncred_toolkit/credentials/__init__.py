"""Credentials, presentations and blind issuance built on the proof protocol engine."""

from .blinded_credential import BlindedCredential
from .blinded_credential_builder import BlindedCredentialBuilder
from .blinded_credential_request import BlindedCredentialRequest
from .blinded_credential_request_builder import BlindedCredentialRequestBuilder
from .credential import Credential
from .credential_builder import CredentialBuilder
from .keyed_proof import KeyedAccumulatorProof, KeyedCredentialProof
from .presentation import Presentation
from .presentation_builder import PresentationBuilder
from .presentation_specification import PresentationSpecification
from .schema import CredentialSchema

__all__ = [
    "BlindedCredential",
    "BlindedCredentialBuilder",
    "BlindedCredentialRequest",
    "BlindedCredentialRequestBuilder",
    "Credential",
    "CredentialBuilder",
    "CredentialSchema",
    "KeyedAccumulatorProof",
    "KeyedCredentialProof",
    "Presentation",
    "PresentationBuilder",
    "PresentationSpecification",
]
