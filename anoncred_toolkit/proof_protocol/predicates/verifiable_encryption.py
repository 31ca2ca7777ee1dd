"""
⚠️ DRAFT — requires crypto review before production use

Verifiable encryption of attributes with chunked ElGamal.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Setup:
    gens (g, h) from a public label; decryption key sk, encryption key PK = sk*g

Encryption of x (k chunks of b bits, x = Σ 2^{b*j} m_j):
    E1_j = r_j*g,  E2_j = m_j*g + r_j*PK

Proof (inside the composite proof):
    E1_j = r_j*g
    E2_j = m_j*g + r_j*PK
    Σ 2^i B_{j,i} = m_j*g + τ_j*h      with bit proofs on every B_{j,i}
    Σ 2^{b*j} E2_j = x*g + R*PK        links the chunks to the attribute

Decryption:
    m_j*g = E2_j - sk*E1_j, looked up in a table of 2^b points.
    The decryptor proves correct decryption with a Chaum-Pedersen proof
    that log_g(PK) = log_{E1_j}(E2_j - m_j*g) for every chunk.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..config import (
    DEFAULT_CHUNK_BITS,
    DOMAIN_SEPARATORS,
    ENCRYPTION_GENS_LABEL,
    GROUP_ORDER_BITS,
    SUPPORTED_CHUNK_BITS,
)
from ..engine import require_engine
from ..exceptions import CryptographicError, SerializationError, UsageError
from ..pedersen.commitments import mul, multi_mul, point_from_bytes, point_to_bytes
from ..pedersen.schnorr import BitCommitment, CompiledStatement, LinearRelation
from ..security import default_randomness, fiat_shamir_challenge
from ..types import VerifyResult, dump_versioned, load_versioned
from ..composite_proof.setup_param import SetupParamRef, param_to_dict, resolve_param
from ..composite_proof.statement import PreparedStatement, Statement, Witness, ref_var

logger = logging.getLogger(__name__)


# ============================================================================
# PARAMETERS AND KEYS
# ============================================================================


@dataclass(frozen=True)
class ChunkedEncryptionParams:
    """Generators and chunk size shared by encryptor, verifier and decryptor."""

    label: bytes
    chunk_bits: int
    g: Any
    h: Any

    @classmethod
    def generate(
        cls, label: Optional[bytes] = None, chunk_bits: int = DEFAULT_CHUNK_BITS
    ) -> "ChunkedEncryptionParams":
        if chunk_bits not in SUPPORTED_CHUNK_BITS:
            raise UsageError(
                f"Chunk size {chunk_bits} not supported; use one of {SUPPORTED_CHUNK_BITS}"
            )
        label = label or ENCRYPTION_GENS_LABEL
        g, h = require_engine().generators(label, 2)
        return cls(label=label, chunk_bits=chunk_bits, g=g, h=h)

    @property
    def chunk_count(self) -> int:
        return -(-GROUP_ORDER_BITS // self.chunk_bits)

    def chunks(self, value: int) -> List[int]:
        mask = (1 << self.chunk_bits) - 1
        return [(value >> (self.chunk_bits * j)) & mask for j in range(self.chunk_count)]

    def to_dict(self) -> dict:
        return {"label": self.label, "chunk_bits": self.chunk_bits}


@dataclass(frozen=True)
class EncryptionKey:
    point: Any

    def to_dict(self) -> dict:
        return {"PK": point_to_bytes(self.point)}

    def to_bytes(self) -> bytes:
        return point_to_bytes(self.point)

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptionKey":
        return cls(point_from_bytes(data, require_engine()))


@dataclass(frozen=True)
class Ciphertext:
    e1: Tuple[Any, ...]
    e2: Tuple[Any, ...]

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "chunked_elgamal_ciphertext",
            {
                "E1": [point_to_bytes(p) for p in self.e1],
                "E2": [point_to_bytes(p) for p in self.e2],
            },
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Ciphertext":
        obj = load_versioned("chunked_elgamal_ciphertext", data)
        curve = require_engine()
        try:
            return cls(
                tuple(point_from_bytes(p, curve) for p in obj["E1"]),
                tuple(point_from_bytes(p, curve) for p in obj["E2"]),
            )
        except (KeyError, TypeError) as e:
            raise SerializationError(f"Malformed ciphertext: {e}") from e

    @classmethod
    def from_elements(cls, elements: Dict[str, Any]) -> "Ciphertext":
        """Ciphertext carried by a verifiable encryption proof."""
        return cls(tuple(elements["E1"]), tuple(elements["E2"]))


@dataclass(frozen=True)
class DecryptionProof:
    """Chaum-Pedersen proof of correct decryption plus the decrypted chunks."""

    challenge: int
    response: int
    chunks: Tuple[int, ...]

    def to_bytes(self) -> bytes:
        return dump_versioned(
            "decryption_proof",
            {"c": self.challenge, "z": self.response, "chunks": list(self.chunks)},
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DecryptionProof":
        obj = load_versioned("decryption_proof", data)
        return cls(int(obj["c"]), int(obj["z"]), tuple(int(m) for m in obj["chunks"]))


@lru_cache(maxsize=4)
def _dlp_table(g_bytes: bytes, chunk_bits: int) -> Dict[bytes, int]:
    curve = require_engine()
    g = point_from_bytes(g_bytes, curve)
    table = {}
    point = curve.identity()
    for m in range(1 << chunk_bits):
        table[point_to_bytes(point)] = m
        point = point + g
    logger.debug("built discrete log table with %d entries", len(table))
    return table


def _decryption_transcript(params, key_point, ciphertext, chunks, announcements) -> int:
    parts = [point_to_bytes(params.g), point_to_bytes(key_point)]
    parts.extend(point_to_bytes(p) for p in ciphertext.e1 + ciphertext.e2)
    parts.extend(m.to_bytes(4, "big") for m in chunks)
    parts.extend(point_to_bytes(a) for a in announcements)
    return fiat_shamir_challenge(DOMAIN_SEPARATORS["decryption"], parts)


def _combine_chunks(chunks: Sequence[int], chunk_bits: int, order: int) -> int:
    return sum(m << (chunk_bits * j) for j, m in enumerate(chunks)) % order


@dataclass(frozen=True)
class DecryptionKey:
    value: int

    @classmethod
    def generate(cls, params: ChunkedEncryptionParams) -> Tuple["DecryptionKey", EncryptionKey]:
        sk = default_randomness().get_nonzero_scalar()
        return cls(sk), EncryptionKey(mul(sk, params.g))

    def encryption_key(self, params: ChunkedEncryptionParams) -> EncryptionKey:
        return EncryptionKey(mul(self.value, params.g))

    def decrypt(
        self, ciphertext: Ciphertext, params: ChunkedEncryptionParams
    ) -> Tuple[int, DecryptionProof]:
        """
        Recover the plaintext and prove the decryption correct.

        Raises:
            CryptographicError: If a chunk is out of range (not produced by
                an honest, verified encryption)
        """
        curve = require_engine()
        if len(ciphertext.e1) != params.chunk_count or len(ciphertext.e2) != params.chunk_count:
            raise CryptographicError(f"Ciphertext must have {params.chunk_count} chunks")
        table = _dlp_table(point_to_bytes(params.g), params.chunk_bits)
        chunks = []
        for e1, e2 in zip(ciphertext.e1, ciphertext.e2):
            found = table.get(point_to_bytes(e2 - mul(self.value, e1)))
            if found is None:
                raise CryptographicError("Ciphertext chunk is out of range")
            chunks.append(found)

        k = default_randomness().get_nonzero_scalar()
        announcements = [mul(k, params.g)] + [mul(k, e1) for e1 in ciphertext.e1]
        key_point = mul(self.value, params.g)
        c = _decryption_transcript(params, key_point, ciphertext, chunks, announcements)
        z = (k + c * self.value) % curve.order
        message = _combine_chunks(chunks, params.chunk_bits, curve.order)
        return message, DecryptionProof(c, z, tuple(chunks))


def verify_decryption(
    ciphertext: Ciphertext,
    message: int,
    proof: DecryptionProof,
    encryption_key: EncryptionKey,
    params: ChunkedEncryptionParams,
) -> VerifyResult:
    """Check a decryptor's claim that ``ciphertext`` decrypts to ``message``."""
    curve = require_engine()
    if len(proof.chunks) != len(ciphertext.e1) or len(ciphertext.e1) != len(ciphertext.e2):
        return VerifyResult.failure("Chunk count mismatch")
    if any(not 0 <= m < (1 << params.chunk_bits) for m in proof.chunks):
        return VerifyResult.failure("Decrypted chunk out of range")
    if _combine_chunks(proof.chunks, params.chunk_bits, curve.order) != message % curve.order:
        return VerifyResult.failure("Chunks do not combine to the message")

    c, z = proof.challenge, proof.response
    announcements = [mul(z, params.g) - mul(c, encryption_key.point)]
    for e1, e2, m in zip(ciphertext.e1, ciphertext.e2, proof.chunks):
        shared = e2 - mul(m, params.g)
        announcements.append(mul(z, e1) - mul(c, shared))
    expected = _decryption_transcript(
        params, encryption_key.point, ciphertext, proof.chunks, announcements
    )
    if expected != c:
        return VerifyResult.failure("Invalid decryption proof")
    return VerifyResult.success()


# ============================================================================
# STATEMENT
# ============================================================================


@dataclass(frozen=True)
class VerifiableEncryptionWitness(Witness):
    kind = "verifiable_encryption"

    value: int


@dataclass(frozen=True)
class VerifiableEncryptionStatement(Statement):
    """Witness reference 0 is encrypted for ``encryption_key``."""

    kind = "verifiable_encryption"
    witness_type = VerifiableEncryptionWitness

    params: Union[ChunkedEncryptionParams, SetupParamRef]
    encryption_key: Union[EncryptionKey, SetupParamRef]

    def witness_refs(self):
        return [0]

    def setup_param_refs(self):
        return [p.index for p in (self.params, self.encryption_key) if isinstance(p, SetupParamRef)]

    def resolve(self, setup_params):
        return VerifiableEncryptionStatement(
            resolve_param(self.params, setup_params, ChunkedEncryptionParams),
            resolve_param(self.encryption_key, setup_params, EncryptionKey),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "params": param_to_dict(self.params),
            "ek": param_to_dict(self.encryption_key),
        }

    def prepare(self, witness, params, rng) -> PreparedStatement:
        gens, pk = self.params, self.encryption_key.point
        x = witness.value % params.order
        chunks = gens.chunks(x)
        b = gens.chunk_bits

        e1, e2, bit_points = [], [], []
        openings: List[Tuple[int, int]] = []
        secrets: Dict[str, int] = {ref_var(0): x}
        combined_r = 0
        for j, m in enumerate(chunks):
            r = rng.get_random_scalar_mod_order()
            e1.append(mul(r, gens.g))
            e2.append(mul(m, gens.g) + mul(r, pk))
            combined_r += r << (b * j)
            tau = 0
            for i in range(b):
                bit = (m >> i) & 1
                t = rng.get_random_scalar_mod_order()
                bit_points.append(mul(bit, gens.g) + mul(t, gens.h))
                openings.append((bit, t))
                tau += t << i
            secrets[f"c{j}"] = m
            secrets[f"r{j}"] = r
            secrets[f"tau{j}"] = tau % params.order
        secrets["R"] = combined_r % params.order

        return PreparedStatement(
            elements={"E1": e1, "E2": e2, "B": bit_points},
            secrets=secrets,
            bit_openings=openings,
        )

    def check_elements(self, elements, params) -> Optional[str]:
        k, b = self.params.chunk_count, self.params.chunk_bits
        if len(elements.get("E1", ())) != k or len(elements.get("E2", ())) != k:
            return f"expected {k} ciphertext chunks"
        if len(elements.get("B", ())) != k * b:
            return f"expected {k * b} bit commitments"
        return None

    def compile(self, elements, params) -> CompiledStatement:
        gens, pk = self.params, self.encryption_key.point
        b = gens.chunk_bits
        e1, e2, bit_points = elements["E1"], elements["E2"], elements["B"]

        relations = []
        for j in range(gens.chunk_count):
            chunk_bits = bit_points[j * b:(j + 1) * b]
            relations.append(LinearRelation(e1[j], ((f"r{j}", gens.g),)))
            relations.append(LinearRelation(e2[j], ((f"c{j}", gens.g), (f"r{j}", pk))))
            relations.append(LinearRelation(
                multi_mul(params, [(1 << i, p) for i, p in enumerate(chunk_bits)]),
                ((f"c{j}", gens.g), (f"tau{j}", gens.h)),
            ))
        combined = multi_mul(params, [(1 << (b * j), p) for j, p in enumerate(e2)])
        relations.append(LinearRelation(combined, ((ref_var(0), gens.g), ("R", pk))))

        bits = tuple(BitCommitment(p, gens.g, gens.h) for p in bit_points)
        return CompiledStatement(relations=tuple(relations), bits=bits)
