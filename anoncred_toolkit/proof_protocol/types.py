"""
⚠️ DRAFT — requires crypto review before production use

Common types for the proof layer.

This module provides:
1. VerifyResult - verification outcome reported instead of raised
2. canonical_cbor - deterministic encoding used for transcripts
3. dump_versioned / load_versioned - versioned CBOR envelopes
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

try:
    import cbor2
except ImportError:
    raise ImportError(
        "cbor2 is required for proof serialization. "
        "Install with: pip install cbor2"
    )

from .config import PROOF_VERSION
from .exceptions import SerializationError


# ============================================================================
# VERIFICATION RESULT
# ============================================================================


@dataclass(frozen=True)
class VerifyResult:
    """
    Outcome of a verification.

    Verification failures (spec mismatch, wrong keys, tampered proof) are
    values, not exceptions, so request-handling code can log and audit
    them.

    Example:
        >>> result = VerifyResult.failure("challenge mismatch")
        >>> bool(result)
        False
    """

    verified: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "VerifyResult":
        return cls(True, None)

    @classmethod
    def failure(cls, error: str) -> "VerifyResult":
        return cls(False, error)

    def __bool__(self) -> bool:
        return self.verified

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"verified": self.verified}
        if self.error is not None:
            result["error"] = self.error
        return result


# ============================================================================
# CBOR HELPERS
# ============================================================================


def canonical_cbor(obj: Any) -> bytes:
    """Deterministic (canonical) CBOR encoding for hashing."""
    try:
        return cbor2.dumps(obj, canonical=True)
    except Exception as e:
        raise SerializationError(f"Cannot encode value for transcript: {e}") from e


def dump_versioned(kind: str, payload: Dict[str, Any]) -> bytes:
    """Serialize ``payload`` as ``{"v": PROOF_VERSION, "kind": kind, ...}``."""
    data = {"v": PROOF_VERSION, "kind": kind}
    data.update(payload)
    try:
        return cbor2.dumps(data, canonical=True)
    except Exception as e:
        raise SerializationError(f"Failed to serialize {kind}: {e}") from e


def load_versioned(kind: str, data: bytes) -> Dict[str, Any]:
    """
    Parse a versioned CBOR envelope.

    Raises:
        SerializationError: If the data is malformed or of another kind/version
    """
    if not isinstance(data, (bytes, bytearray)):
        raise SerializationError(f"Expected bytes, got {type(data).__name__}")
    try:
        obj = cbor2.loads(bytes(data))
    except Exception as e:
        raise SerializationError(f"Failed to deserialize {kind}: {e}") from e

    if not isinstance(obj, dict):
        raise SerializationError(f"Invalid {kind} encoding")
    if obj.get("v") != PROOF_VERSION:
        raise SerializationError(f"Unsupported {kind} version: {obj.get('v')}")
    if obj.get("kind") != kind:
        raise SerializationError(f"Expected {kind}, got {obj.get('kind')!r}")
    return obj
