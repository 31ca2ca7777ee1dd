"""
Keyed proofs: the parts of a presentation only a secret key holder can check.

A verifier without the issuer's MAC key (or the accumulator manager's
key) verifies everything else, then forwards these to the key holder.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..proof_protocol.accumulator.keys import AccumulatorSecretKey
from ..proof_protocol.accumulator.proof import KeyedMembershipProof
from ..proof_protocol.signatures.keyed_mac import KeyedMacProof, MacSecretKey
from ..proof_protocol.types import VerifyResult
from .constants import ID_STR, REV_CHECK_STR, TYPE_STR
from .credential import b58decode, b58encode

logger = logging.getLogger(__name__)


def _checked(result: VerifyResult, what: str) -> VerifyResult:
    if not result.verified:
        logger.warning("keyed %s proof rejected: %s", what, result.error)
    return result


@dataclass(frozen=True)
class KeyedCredentialProof:
    """Keyed part of a credential's proof of knowledge, for its issuer."""

    sig_type: str
    proof: KeyedMacProof

    def verify(self, secret_key: MacSecretKey) -> VerifyResult:
        return _checked(self.proof.verify(secret_key), "credential")

    def to_json(self) -> Dict[str, Any]:
        return {"sigType": self.sig_type, "proof": b58encode(self.proof.to_bytes())}

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "KeyedCredentialProof":
        return cls(obj["sigType"], KeyedMacProof.from_bytes(b58decode(obj["proof"])))


@dataclass(frozen=True)
class KeyedAccumulatorProof:
    """Keyed part of a (non-)membership proof, for the accumulator manager."""

    status_id: str
    accumulator_type: str
    revocation_check: str
    proof: KeyedMembershipProof

    def verify(self, secret_key: AccumulatorSecretKey) -> VerifyResult:
        return _checked(self.proof.verify(secret_key), "accumulator")

    def to_json(self) -> Dict[str, Any]:
        return {
            ID_STR: self.status_id,
            TYPE_STR: self.accumulator_type,
            REV_CHECK_STR: self.revocation_check,
            "proof": b58encode(self.proof.to_bytes()),
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "KeyedAccumulatorProof":
        return cls(
            obj[ID_STR],
            obj[TYPE_STR],
            obj[REV_CHECK_STR],
            KeyedMembershipProof.from_bytes(b58decode(obj["proof"])),
        )
