"""
anoncred-toolkit: anonymous credentials and composable zero-knowledge presentations.

Call ``initialize_engine()`` once before any other operation.
"""
from __future__ import annotations

import logging
from importlib import import_module

from .proof_protocol.engine import initialize_engine, is_engine_initialized
from .proof_protocol.exceptions import AnonCredError, UsageError
from .proof_protocol.types import VerifyResult

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "initialize_engine",
    "is_engine_initialized",
    "AnonCredError",
    "UsageError",
    "VerifyResult",
    "CredentialSchema",
    "CredentialBuilder",
    "Credential",
    "PresentationBuilder",
    "Presentation",
    "BlindedCredentialRequestBuilder",
    "BlindedCredentialRequest",
    "BlindedCredential",
]

_LAZY_EXPORTS = {
    "CredentialSchema": "credentials.schema",
    "CredentialBuilder": "credentials.credential_builder",
    "Credential": "credentials.credential",
    "PresentationBuilder": "credentials.presentation_builder",
    "Presentation": "credentials.presentation",
    "BlindedCredentialRequestBuilder": "credentials.blinded_credential_request_builder",
    "BlindedCredentialRequest": "credentials.blinded_credential_request",
    "BlindedCredential": "credentials.blinded_credential",
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        module = import_module(f"{__name__}.{_LAZY_EXPORTS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
