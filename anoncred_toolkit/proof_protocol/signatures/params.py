"""
⚠️ DRAFT — requires crypto review before production use

Signature parameters: the generator family shared by signer, holder and verifier.

Bases are ``hash_to_point(label || i)``, so parameters created from a label
can be adapted to any message count and re-derived by anyone. Parameters
created without a label use a random one, are bound to their message
count and cannot be adapted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..engine import require_engine
from ..exceptions import ArityMismatch
from ..pedersen.commitments import CurveParameters, multi_mul
from ..security import default_randomness

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureParams:
    """
    Generators ``(g0, h0, h_1..h_n)``.

    g0 is the constant term of keyed MACs, h0 carries the blinding scalar
    and h_i the i-th message.
    """

    label: Optional[bytes]
    g0: Any
    h0: Any
    h: Tuple[Any, ...]
    _seed: bytes = b""

    @classmethod
    def generate(cls, message_count: int, label: Optional[bytes] = None) -> "SignatureParams":
        if message_count < 1:
            raise ArityMismatch("Signature parameters need at least one message")
        params = require_engine()
        seed = label if label is not None else default_randomness().get_random_bytes(32)
        bases = params.generators(seed, message_count + 2)
        return cls(label=label, g0=bases[0], h0=bases[1], h=tuple(bases[2:]), _seed=seed)

    @property
    def supported_message_count(self) -> int:
        return len(self.h)

    def is_adaptable(self) -> bool:
        return self.label is not None

    def adapt(self, message_count: int) -> "SignatureParams":
        """
        Return parameters for exactly ``message_count`` messages.

        Raises:
            ArityMismatch: If the parameters have no label and a different size
        """
        if message_count == self.supported_message_count:
            return self
        if self.label is None:
            raise ArityMismatch(
                f"Parameters support {self.supported_message_count} messages, "
                f"got {message_count}; only label-derived parameters can adapt"
            )
        logger.debug("adapting signature params from %d to %d messages",
                     self.supported_message_count, message_count)
        return SignatureParams.generate(message_count, self.label)

    def check_message_count(self, count: int) -> None:
        if count != self.supported_message_count:
            raise ArityMismatch(
                f"Number of messages {count} is different from "
                f"{self.supported_message_count} supported by the signature params"
            )

    def commit_to_messages(self, curve: CurveParameters, messages: dict, blinding: int = 0):
        """``blinding * h0 + Σ m_i h_i`` over a sparse index -> message map."""
        pairs = [(blinding, self.h0)]
        for index, message in messages.items():
            if not 0 <= index < len(self.h):
                raise ArityMismatch(f"Message index {index} out of range")
            pairs.append((message, self.h[index]))
        return multi_mul(curve, pairs)

    def to_dict(self) -> dict:
        """Public description for transcripts."""
        if self.label is not None:
            return {"label": self.label, "n": self.supported_message_count}
        return {"seed": self._seed, "n": self.supported_message_count}
