"""
Signature scheme factory.

Maps scheme names to implementation classes, imported lazily so that a
scheme's module is only loaded when selected.
"""

from __future__ import annotations

import importlib
from typing import Final

from .exceptions import UsageError
from .feature_flags import get_default_scheme
from .signatures.interfaces import SignatureScheme

SCHEME_REGISTRY: Final[dict[str, str]] = {
    "schnorr-commitment": (
        "anoncred_toolkit.proof_protocol.signatures.commitment_schnorr."
        "SchnorrCommitmentScheme"
    ),
    "keyed-mac": "anoncred_toolkit.proof_protocol.signatures.keyed_mac.KeyedMacScheme",
}

_instances: dict[str, SignatureScheme] = {}


def _format_valid_options() -> str:
    return ", ".join(sorted(SCHEME_REGISTRY.keys()))


def _load_scheme_class(scheme_name: str) -> type[SignatureScheme]:
    import_path = SCHEME_REGISTRY[scheme_name]
    module_path, _, class_name = import_path.rpartition(".")
    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ImportError(
            f"Unable to import scheme module {module_path!r} for {scheme_name!r}"
        ) from exc

    try:
        scheme_cls = getattr(module, class_name)
    except AttributeError as exc:
        raise ImportError(
            f"Scheme class {class_name!r} not found in module {module_path!r}"
        ) from exc

    if not isinstance(scheme_cls, type) or not issubclass(scheme_cls, SignatureScheme):
        raise TypeError(f"{import_path!r} does not implement SignatureScheme")

    return scheme_cls


def get_signature_scheme(name: str | None = None) -> SignatureScheme:
    """
    Return the signature scheme registered under ``name`` (or the configured
    default). Instances are stateless and shared.

    Raises:
        UsageError: If the scheme name is unknown.
        ImportError: If the scheme class cannot be imported.
        TypeError: If the class does not implement SignatureScheme.
    """
    scheme_name = get_default_scheme(name)
    if scheme_name not in SCHEME_REGISTRY:
        raise UsageError(
            f"Unknown signature scheme {scheme_name!r}. "
            f"Valid options: {_format_valid_options()}"
        )

    if scheme_name not in _instances:
        _instances[scheme_name] = _load_scheme_class(scheme_name)()
    return _instances[scheme_name]


def scheme_for_proof_type(proof_type: str) -> SignatureScheme:
    """Resolve a scheme from the proof type recorded in a credential."""
    for name in SCHEME_REGISTRY:
        scheme = get_signature_scheme(name)
        if proof_type in (scheme.proof_type, scheme.blinded_proof_type):
            return scheme
    raise UsageError(f"Unknown credential proof type {proof_type!r}")
