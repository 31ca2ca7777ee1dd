"""Public API for the proof protocol engine.

Signature schemes, accumulators, predicates and composite proofs over
petlib secp256k1. Heavier modules load on first attribute access.
"""
from __future__ import annotations

from importlib import import_module

from .engine import initialize_engine, is_engine_initialized, require_engine
from .factory import get_signature_scheme, scheme_for_proof_type
from .feature_flags import get_default_scheme, set_default_scheme
from .types import VerifyResult

__all__ = [
    "initialize_engine",
    "is_engine_initialized",
    "require_engine",
    "get_signature_scheme",
    "scheme_for_proof_type",
    "get_default_scheme",
    "set_default_scheme",
    "VerifyResult",
    "CompositeProof",
    "QuasiProofSpec",
    "ProofSpec",
    "WitnessEqualityMetaStatement",
    "PositiveAccumulator",
    "KBUniversalAccumulator",
    "WitnessUpdateInfo",
]

_LAZY_EXPORTS = {
    "CompositeProof": "composite_proof.proof",
    "QuasiProofSpec": "composite_proof.proof_spec",
    "ProofSpec": "composite_proof.proof_spec",
    "WitnessEqualityMetaStatement": "composite_proof.meta_statement",
    "PositiveAccumulator": "accumulator.positive",
    "KBUniversalAccumulator": "accumulator.universal",
    "WitnessUpdateInfo": "accumulator.witness_update",
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        module = import_module(f"{__name__}.{_LAZY_EXPORTS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
