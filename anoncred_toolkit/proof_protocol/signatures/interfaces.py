"""
Signature scheme interface.

Every credential signature scheme offers the same capabilities: key
generation, signing (plain and blind), verification, and the statement and
witness used to prove knowledge of a signature inside a composite proof.
Builders hold a scheme instance and call through this interface only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Sequence, Tuple

from ..engine import require_engine
from ..types import VerifyResult
from .params import SignatureParams


class SignatureScheme(ABC):
    """Capability interface shared by all credential signature schemes."""

    name: str = ""
    proof_type: str = ""
    blinded_proof_type: str = ""
    params_label: bytes = b""
    # Keyed schemes verify with the secret key only
    publicly_verifiable: bool = True

    def params(self, message_count: int) -> SignatureParams:
        return SignatureParams.generate(message_count, self.params_label)

    @abstractmethod
    def keygen(self) -> Tuple[Any, Any]:
        """Return (secret_key, public_key)."""

    @abstractmethod
    def sign(self, messages: Sequence[int], secret_key: Any, params: SignatureParams) -> Any:
        """Sign encoded messages."""

    @abstractmethod
    def verify(
        self,
        messages: Sequence[int],
        signature: Any,
        verification_key: Any,
        params: SignatureParams,
    ) -> VerifyResult:
        """Verify with a public key, or a secret key for keyed schemes."""

    @abstractmethod
    def statement_for(
        self,
        params: SignatureParams,
        verification_key: Any,
        revealed: Mapping[int, int],
    ) -> Any:
        """Statement proving knowledge of a signature with ``revealed`` disclosed."""

    @abstractmethod
    def witness_for(self, signature: Any, unrevealed: Mapping[int, int]) -> Any:
        """Witness matching :meth:`statement_for`."""

    @abstractmethod
    def blind_sign(
        self,
        commitment: Any,
        known_messages: Mapping[int, int],
        secret_key: Any,
        params: SignatureParams,
    ) -> Any:
        """Sign over a holder commitment plus issuer-known messages."""

    @abstractmethod
    def unblind(self, blind_signature: Any, blinding: int) -> Any:
        """Turn a blind signature into a regular one using the holder's blinding."""

    @abstractmethod
    def signature_to_bytes(self, signature: Any) -> bytes: ...

    @abstractmethod
    def signature_from_bytes(self, data: bytes) -> Any: ...

    @abstractmethod
    def blind_signature_to_bytes(self, blind_signature: Any) -> bytes: ...

    @abstractmethod
    def blind_signature_from_bytes(self, data: bytes) -> Any: ...

    def blinding_base_commitment(
        self, params: SignatureParams, hidden: Dict[int, int], blinding: int
    ) -> Any:
        """Holder commitment ``blinding * h0 + Σ m_i h_i`` over hidden messages."""
        return params.commit_to_messages(require_engine(), hidden, blinding)
