"""
⚠️ DRAFT — requires crypto review before production use

Randomness, transcript hashing and comparison helpers shared by every
sigma protocol in the toolkit.

This is a PROTOTYPE implementation for testing and validation.
"""

import hashlib
import hmac
import os
import secrets
from typing import Iterable, Optional

from .config import GROUP_ORDER, HASH_FUNCTION


class RandomnessSource:
    """
    OS-backed scalar sampler.

    The underlying ``SystemRandom`` is rebuilt when the process id changes,
    so a forked worker never replays its parent's stream.

    Example:
        >>> rng = RandomnessSource()
        >>> blinding = rng.get_nonzero_scalar()
    """

    def __init__(self):
        self._reseed()

    def _reseed(self) -> None:
        self._pid = os.getpid()
        self._rng = secrets.SystemRandom()

    def _sampler(self) -> secrets.SystemRandom:
        if self._pid != os.getpid():
            self._reseed()
        return self._rng

    def get_random_scalar(self, max_value: int) -> int:
        """Uniform integer in [0, max_value)."""
        return self._sampler().randrange(max_value)

    def get_random_scalar_mod_order(self) -> int:
        return self.get_random_scalar(GROUP_ORDER)

    def get_nonzero_scalar(self) -> int:
        """Uniform scalar in [1, GROUP_ORDER)."""
        return 1 + self.get_random_scalar(GROUP_ORDER - 1)

    def get_random_bytes(self, n: int) -> bytes:
        self._sampler()
        return secrets.token_bytes(n)


_default_rng: Optional[RandomnessSource] = None


def default_randomness() -> RandomnessSource:
    global _default_rng
    if _default_rng is None:
        _default_rng = RandomnessSource()
    return _default_rng


# ============================================================================
# TRANSCRIPT HASHING
# ============================================================================


def _digest(chunks: Iterable[bytes]) -> int:
    h = hashlib.sha3_256() if HASH_FUNCTION == "SHA3-256" else hashlib.sha256()
    for chunk in chunks:
        h.update(chunk)
    return int.from_bytes(h.digest(), "big")


def hash_to_scalar(
    data: bytes, max_value: int = GROUP_ORDER, domain_sep: Optional[bytes] = None
) -> int:
    """
    Map bytes to an integer in [0, max_value).

    The optional ``domain_sep`` is prepended to ``data``. Reduction is a
    plain modulo, so the output is slightly biased unless ``max_value`` is
    a power of two.

    Raises:
        TypeError: If ``data`` or ``domain_sep`` is not bytes
        ValueError: If ``max_value`` is not above 1
    """
    if not isinstance(data, bytes):
        raise TypeError(f"data must be bytes, got {type(data).__name__}")
    if domain_sep is not None and not isinstance(domain_sep, bytes):
        raise TypeError(f"domain_sep must be bytes, got {type(domain_sep).__name__}")
    if max_value <= 1:
        raise ValueError(f"max_value must be > 1, got {max_value}")
    return _digest([domain_sep or b"", data]) % max_value


def _framed(domain_sep: bytes, parts: Iterable[bytes]):
    yield len(domain_sep).to_bytes(4, "big")
    yield domain_sep
    for part in parts:
        if not isinstance(part, bytes):
            raise TypeError(f"transcript part must be bytes, got {type(part).__name__}")
        yield len(part).to_bytes(4, "big")
        yield part


def fiat_shamir_challenge(domain_sep: bytes, parts: Iterable[bytes]) -> int:
    """
    Deterministic challenge over a length-framed transcript.

    Each part is hashed as ``len(part) (4 bytes, big-endian) || part``, so
    shifting bytes between neighbouring parts yields a different challenge.

    Example:
        >>> c1 = fiat_shamir_challenge(b"DOMAIN", [b"commit", b"public"])
        >>> c2 = fiat_shamir_challenge(b"DOMAIN", [b"public", b"commit"])
        >>> assert c1 != c2
    """
    if not isinstance(domain_sep, bytes):
        raise TypeError(f"domain_sep must be bytes, got {type(domain_sep).__name__}")
    if not domain_sep:
        raise ValueError("Domain separator cannot be empty")
    return _digest(_framed(domain_sep, parts)) % GROUP_ORDER


def constant_time_compare(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)
