"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for the anonymous credential engine.

Verification failures are never raised; they are reported through
``types.VerifyResult``. Everything here signals a caller mistake or an
engine failure.
"""


class AnonCredError(Exception):
    """Base exception for anonymous credential errors."""

    pass


# ============================================================================
# USAGE ERRORS (fatal, never retried)
# ============================================================================


class UsageError(AnonCredError):
    """Malformed call sequence or argument."""

    pass


class ArityMismatch(UsageError):
    """Statements/witnesses or messages/parameters have different lengths."""

    pass


class SchemaMismatch(UsageError):
    """Attributes do not match the declared attribute structure."""

    pass


class BuilderFinalizedError(UsageError):
    """Builder was mutated after finalize()."""

    pass


class EngineNotInitializedError(UsageError):
    """An engine operation ran before initialize_engine()."""

    pass


# ============================================================================
# DOMAIN ERRORS
# ============================================================================


class EncodingError(AnonCredError):
    """Value outside an encoder's domain."""

    pass


class StateConflictError(AnonCredError):
    """Accumulator add-when-present, remove-when-absent or domain violation."""

    pass


# ============================================================================
# ENGINE ERRORS
# ============================================================================


class CryptographicError(AnonCredError):
    """Cryptographic operation error."""

    pass


class ProofGenerationError(CryptographicError):
    """Error during proof generation."""

    pass


class SerializationError(CryptographicError):
    """Malformed serialized proof, key or ciphertext."""

    pass


class ConfigurationError(CryptographicError):
    """Configuration error."""

    pass
