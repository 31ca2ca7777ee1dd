"""
Field names and protocol identifiers used in credential and presentation JSON.
"""

CRYPTO_VERSION_STR = "cryptoVersion"
SCHEMA_STR = "credentialSchema"
SUBJECT_STR = "credentialSubject"
STATUS_STR = "credentialStatus"
PROOF_STR = "proof"
TYPE_STR = "type"
ID_STR = "id"
REV_CHECK_STR = "revocationCheck"
REV_ID_STR = "revocationId"

MEM_CHECK_STR = "membership"
NON_MEM_CHECK_STR = "non-membership"
REVOCATION_CHECKS = (MEM_CHECK_STR, NON_MEM_CHECK_STR)

# Attributes every presentation discloses, so the verifier learns the
# signed schema and version
ALWAYS_REVEALED = (CRYPTO_VERSION_STR, SCHEMA_STR)

STATUS_REVOCATION_ID = f"{STATUS_STR}.{REV_ID_STR}"

# Accumulator types recorded for a credential status
VB_ACCUMULATOR = "Secp256k1VBAccumulator2024"
KB_UNIVERSAL_ACCUMULATOR = "Secp256k1KBUniversalAccumulator2024"

# Predicate protocols; bound checks use predicates.bound_check.BOUND_CHECK_PROTOCOL
VERIFIABLE_ENCRYPTION_PROTOCOL = "ChunkedElGamal"
R1CS_PROTOCOL = "CommitAndProveR1CS"
INEQUALITY_PROTOCOL = "DiscreteLogInequality"
