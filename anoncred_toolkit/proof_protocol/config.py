"""
⚠️ DRAFT — requires crypto review before production use

Cryptographic configuration for the anonymous credential engine.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

All group arithmetic runs on petlib + secp256k1. The curve has no pairing,
so checks that would need one are keyed (performed by the secret key holder).
"""

from .exceptions import ConfigurationError

# ============================================================================
# CURVE SELECTION
# ============================================================================

CURVE_NAME = "secp256k1"
CURVE_LIBRARY = "petlib"
CURVE_NID = 714  # OpenSSL NID for secp256k1

GROUP_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
GROUP_ORDER_BITS = 256
COFACTOR = 1
POINT_SIZE_BYTES = 33  # Compressed point format
SCALAR_SIZE_BYTES = 32

# ============================================================================
# GENERATORS (Nothing-Up-My-Sleeve)
# ============================================================================

# G = standard generator, H = hash_to_point(GENERATOR_H_SEED)
GENERATOR_H_SEED = b"ANONCRED_TOOLKIT_V1_GENERATOR_H"

# Labels for deterministic generator families
SIGNATURE_PARAMS_LABEL = b"AnonCredSchnorrCommitment2024"
MAC_PARAMS_LABEL = b"AnonCredKeyedMac2024"
ACCUMULATOR_PARAMS_LABEL = b"AnonCredVBAccumulator2024"
ENCRYPTION_GENS_LABEL = b"AnonCredChunkedElGamal2024"
PSEUDONYM_BASE_LABEL = b"AnonCredPseudonymBase2024"
INEQUALITY_COMM_KEY_LABEL = b"AnonCredInequality2024"
BOUND_CHECK_COMM_KEY_LABEL = b"AnonCredBoundCheck2024"
CIRCUIT_COMM_KEY_LABEL = b"AnonCredCircuit2024"

# ============================================================================
# HASH FUNCTIONS
# ============================================================================

HASH_FUNCTION = "SHA3-256"
HASH_OUTPUT_BITS = 256

DOMAIN_SEPARATOR_PREFIX = b"ANONCRED_TOOLKIT_V1_"

DOMAIN_SEPARATORS = {
    "composite_proof": DOMAIN_SEPARATOR_PREFIX + b"COMPOSITE",
    "signature": DOMAIN_SEPARATOR_PREFIX + b"SIGNATURE",
    "message_encoding": DOMAIN_SEPARATOR_PREFIX + b"MESSAGE",
    "decryption": DOMAIN_SEPARATOR_PREFIX + b"DECRYPTION",
    "accumulator_element": DOMAIN_SEPARATOR_PREFIX + b"ACCUMULATOR",
}

# ============================================================================
# SECURITY PARAMETERS
# ============================================================================

BLINDING_FACTOR_BITS = 256
CHALLENGE_SPACE_BITS = 256

# ============================================================================
# PREDICATES
# ============================================================================

# Bit decomposition bound checks support ranges of at most this many bits
MAX_BOUND_BITS = 64

# Verifiable encryption chunk sizes (bits); decryption builds a DLP table
# of 2^chunk_bits entries
SUPPORTED_CHUNK_BITS = (8, 16)
DEFAULT_CHUNK_BITS = 8

# ============================================================================
# SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
PROOF_VERSION = 1

# ============================================================================
# ACCUMULATOR
# ============================================================================

# Upper bound on a single batch update; larger batches must be split
MAX_BATCH_UPDATE_SIZE = 1_000

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        ConfigurationError: If configuration is invalid
    """
    checks = [
        (CHALLENGE_SPACE_BITS >= 128, "Challenge space too small for security"),
        (BLINDING_FACTOR_BITS >= 256, "Blinding factor too small"),
        (CURVE_NAME == "secp256k1", "Only secp256k1 is supported"),
        (CURVE_LIBRARY == "petlib", "secp256k1 requires petlib library"),
        (CURVE_NID == 714, "secp256k1 NID must be 714"),
        (COFACTOR == 1, "secp256k1 must have cofactor 1"),
        (GROUP_ORDER.bit_length() == GROUP_ORDER_BITS, "GROUP_ORDER does not match GROUP_ORDER_BITS"),
        (HASH_FUNCTION in ("SHA3-256", "SHA256"), "Invalid hash function"),
        (0 < MAX_BOUND_BITS < GROUP_ORDER_BITS - 1, "Invalid bound bit size"),
        (DEFAULT_CHUNK_BITS in SUPPORTED_CHUNK_BITS, "Invalid default chunk size"),
        (GROUP_ORDER_BITS % DEFAULT_CHUNK_BITS == 0, "Chunk size must divide order bits"),
    ]
    for ok, message in checks:
        if not ok:
            raise ConfigurationError(message)
    return True


# Auto-validate on import
validate_config()
