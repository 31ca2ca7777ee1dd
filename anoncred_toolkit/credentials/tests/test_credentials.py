"""
⚠️ DRAFT — requires crypto review before production use

Tests for credential schemas, builders and issued credentials.

Test Coverage:
1. Schema validation and encoding
2. Builder state machine
3. Signing and verification under both schemes
4. JSON round-trips
"""

import json
from decimal import Decimal

import pytest

from anoncred_toolkit.credentials import Credential, CredentialBuilder, CredentialSchema
from anoncred_toolkit.proof_protocol import feature_flags
from anoncred_toolkit.proof_protocol.exceptions import (
    BuilderFinalizedError,
    EncodingError,
    SchemaMismatch,
    SerializationError,
    UsageError,
)
from anoncred_toolkit.proof_protocol.factory import get_signature_scheme


def person_schema(with_status: bool = False) -> CredentialSchema:
    schema = CredentialSchema.essential()
    schema["properties"]["credentialSubject"] = {
        "type": "object",
        "properties": {
            "fname": {"type": "string"},
            "SSN": {"type": "stringReversible", "compress": False},
            "age": {"type": "positiveInteger"},
            "height": {"type": "positiveDecimalNumber", "decimalPlaces": 1},
            "balance": {"type": "decimalNumber", "minimum": -1000, "decimalPlaces": 2},
        },
    }
    if with_status:
        schema["properties"]["credentialStatus"] = {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "revocationCheck": {"type": "string"},
                "revocationId": {"type": "string"},
            },
        }
    return CredentialSchema(schema)


SUBJECT = {
    "fname": "John",
    "SSN": "123-45-6789",
    "age": 34,
    "height": 182.5,
    "balance": -12.75,
}


def issue(scheme_name, subject=SUBJECT, schema=None):
    scheme = get_signature_scheme(scheme_name)
    sk, pk = scheme.keygen()
    builder = CredentialBuilder()
    builder.schema = schema or person_schema()
    builder.subject = subject
    credential = builder.sign(sk, scheme_name)
    verification_key = pk if scheme.publicly_verifiable else sk
    return credential, sk, verification_key


# ============================================================================
# TEST: SCHEMA
# ============================================================================


class TestSchema:
    def test_flattened_names_are_sorted(self):
        names, _ = person_schema().flatten()
        assert names == sorted(names)
        assert "credentialSubject.SSN" in names
        assert "cryptoVersion" in names

    def test_missing_crypto_version(self):
        schema = person_schema().schema
        del schema["properties"]["cryptoVersion"]
        with pytest.raises(UsageError, match="cryptoVersion"):
            CredentialSchema(schema)

    def test_missing_subject(self):
        with pytest.raises(UsageError, match="credentialSubject"):
            CredentialSchema(CredentialSchema.essential())

    def test_unknown_type(self):
        schema = person_schema().schema
        schema["properties"]["credentialSubject"]["properties"]["x"] = {"type": "float"}
        with pytest.raises(UsageError, match="unknown"):
            CredentialSchema(schema)

    def test_integer_needs_minimum(self):
        schema = person_schema().schema
        schema["properties"]["credentialSubject"]["properties"]["x"] = {"type": "integer"}
        with pytest.raises(UsageError, match="expected integer"):
            CredentialSchema(schema)

    def test_indefinite_arrays_rejected(self):
        schema = person_schema().schema
        schema["properties"]["credentialSubject"]["properties"]["tags"] = {
            "type": "array",
            "items": {"type": "string"},
        }
        with pytest.raises(UsageError, match="indefinite"):
            CredentialSchema(schema)

    def test_status_needs_string_fields(self):
        schema = person_schema(with_status=True).schema
        del schema["properties"]["credentialStatus"]["properties"]["revocationId"]
        with pytest.raises(UsageError, match="revocationId"):
            CredentialSchema(schema)

    def test_reversible_values_decode(self):
        schema = person_schema()
        for name, value in [
            ("credentialSubject.SSN", "123-45-6789"),
            ("credentialSubject.age", 34),
            ("credentialSubject.height", Decimal("182.5")),
            ("credentialSubject.balance", Decimal("-12.75")),
        ]:
            assert schema.decode_value(name, schema.encode_value(name, value)) == value

    def test_float_values_decode_as_decimal(self):
        schema = person_schema()
        for name, value in [
            ("credentialSubject.height", 182.5),
            ("credentialSubject.balance", -12.75),
        ]:
            decoded = schema.decode_value(name, schema.encode_value(name, value))
            assert isinstance(decoded, Decimal)
            assert decoded == Decimal(str(value))

    def test_long_decimals_decode_exactly(self):
        obj = person_schema().schema
        obj["properties"]["credentialSubject"]["properties"]["ratio"] = {
            "type": "decimalNumber",
            "minimum": -1,
            "decimalPlaces": 30,
        }
        schema = CredentialSchema(obj)
        name = "credentialSubject.ratio"
        for value in [
            Decimal("12345.123456789012345678901234567891"),
            Decimal("-0.999999999999999999999999999999"),
        ]:
            assert schema.decode_value(name, schema.encode_value(name, value)) == value

    def test_one_way_values_do_not_decode(self):
        schema = person_schema()
        encoded = schema.encode_value("credentialSubject.fname", "John")
        with pytest.raises(EncodingError):
            schema.decode_value("credentialSubject.fname", encoded)

    def test_out_of_domain_values(self):
        schema = person_schema()
        with pytest.raises(EncodingError):
            schema.encode_value("credentialSubject.age", -1)
        with pytest.raises(EncodingError):
            schema.encode_value("credentialSubject.height", Decimal("1.25"))

    def test_json_round_trip(self):
        schema = person_schema()
        assert CredentialSchema.from_json(schema.to_json()) == schema

    def test_parsed_text_is_kept(self):
        # $version last, default separators
        text = json.dumps({**person_schema().schema, "$version": CredentialSchema.VERSION})
        schema = CredentialSchema.from_json(text)
        assert schema.to_json() == text
        assert schema == person_schema()
        assert hash(schema) == hash(person_schema())

    def test_canonical_text_is_stable(self):
        canonical = person_schema().to_json()
        assert canonical.startswith('{"$version":')
        assert CredentialSchema.from_json(canonical).to_json() == canonical

    def test_changed_schema_serializes_canonically(self):
        text = json.dumps({**person_schema().schema, "$version": CredentialSchema.VERSION})
        schema = CredentialSchema.from_json(text)
        schema.schema["$metadata"]["version"] = 2
        assert schema.to_json() != text
        assert schema.to_json().startswith('{"$version":')

    def test_unsupported_version(self):
        obj = json.loads(person_schema().to_json())
        obj["$version"] = "9.9.9"
        with pytest.raises(UsageError, match="Unsupported schema version"):
            CredentialSchema.from_json(obj)


# ============================================================================
# TEST: BUILDER
# ============================================================================


class TestCredentialBuilder:
    def test_schema_required(self):
        builder = CredentialBuilder()
        builder.subject = SUBJECT
        with pytest.raises(UsageError, match="Schema"):
            builder.sign(get_signature_scheme().keygen()[0])

    def test_subject_must_match_schema(self, scheme_name):
        builder = CredentialBuilder()
        builder.schema = person_schema()
        builder.subject = dict(SUBJECT, nickname="JJ")
        sk, _ = get_signature_scheme(scheme_name).keygen()
        with pytest.raises(SchemaMismatch):
            builder.sign(sk, scheme_name)

    def test_finalized_builder_is_closed(self, scheme_name):
        builder = CredentialBuilder()
        builder.schema = person_schema()
        builder.subject = SUBJECT
        builder.sign(get_signature_scheme(scheme_name).keygen()[0], scheme_name)
        assert builder.is_finalized
        with pytest.raises(BuilderFinalizedError):
            builder.subject = {"fname": "Jane"}

    def test_reserved_top_level_fields(self):
        builder = CredentialBuilder()
        for name in ("credentialSubject", "proof", "cryptoVersion"):
            with pytest.raises(UsageError, match="reserved"):
                builder.set_top_level_field(name, "x")

    def test_invalid_revocation_check(self):
        builder = CredentialBuilder()
        with pytest.raises(UsageError, match="Revocation check"):
            builder.set_credential_status("reg", "maybe", "user-1")

    def test_status_needs_schema_support(self):
        builder = CredentialBuilder()
        builder.schema = person_schema()
        builder.subject = SUBJECT
        builder.set_credential_status("reg", "membership", "user-1")
        with pytest.raises(UsageError, match="status"):
            builder.sign(get_signature_scheme().keygen()[0])

    def test_declared_status_may_be_left_unset(self, scheme_name):
        credential, _, key = issue(scheme_name, schema=person_schema(with_status=True))
        assert credential.credential_status is None
        # Signed under the schema minus its status declaration
        assert credential.schema == person_schema()
        assert credential.verify(key).verified
        assert Credential.from_json(credential.to_json_string()).verify(key).verified

    def test_declared_status_signed_when_set(self, scheme_name):
        builder = CredentialBuilder()
        builder.schema = person_schema(with_status=True)
        builder.subject = SUBJECT
        builder.set_credential_status("reg", "membership", "user-1")
        scheme = get_signature_scheme(scheme_name)
        sk, pk = scheme.keygen()
        credential = builder.sign(sk, scheme_name)
        assert credential.schema.has_status()
        assert credential.verify(pk if scheme.publicly_verifiable else sk).verified

    def test_top_level_field_signed(self, scheme_name):
        schema = person_schema().schema
        schema["properties"]["issuer"] = {"type": "string"}
        builder = CredentialBuilder()
        builder.schema = CredentialSchema(schema)
        builder.subject = SUBJECT
        builder.set_top_level_field("issuer", "did:example:1")
        scheme = get_signature_scheme(scheme_name)
        sk, pk = scheme.keygen()
        credential = builder.sign(sk, scheme_name)
        assert credential.get_top_level_field("issuer") == "did:example:1"
        assert credential.verify(pk if scheme.publicly_verifiable else sk).verified


# ============================================================================
# TEST: CREDENTIALS
# ============================================================================


class TestCredential:
    def test_sign_and_verify(self, scheme_name):
        credential, _, key = issue(scheme_name)
        assert credential.verify(key).verified
        assert credential.version == CredentialBuilder.VERSION

    def test_tampered_subject_fails(self, scheme_name):
        credential, _, key = issue(scheme_name)
        obj = credential.to_json()
        obj["credentialSubject"]["age"] = 35
        assert not Credential.from_json(obj).verify(key).verified

    def test_wrong_key_fails(self, scheme_name):
        credential, _, _ = issue(scheme_name)
        scheme = get_signature_scheme(scheme_name)
        other_sk, other_pk = scheme.keygen()
        assert not credential.verify(other_pk if scheme.publicly_verifiable else other_sk).verified

    def test_default_scheme_is_used(self, scheme_name):
        feature_flags.set_default_scheme(scheme_name)
        scheme = get_signature_scheme()
        builder = CredentialBuilder()
        builder.schema = person_schema()
        builder.subject = SUBJECT
        credential = builder.sign(scheme.keygen()[0])
        assert credential.proof_type == get_signature_scheme(scheme_name).proof_type

    def test_json_round_trip(self, scheme_name):
        credential, _, key = issue(scheme_name)
        restored = Credential.from_json(credential.to_json_string())
        assert restored == credential
        assert restored.verify(key).verified
        assert restored.to_json()["proof"]["type"] == credential.proof_type

    def test_received_schema_text_is_signed_as_is(self, scheme_name):
        text = json.dumps({**person_schema().schema, "$version": CredentialSchema.VERSION})
        credential, _, key = issue(scheme_name, schema=CredentialSchema.from_json(text))
        assert credential.to_json()["credentialSchema"] == text
        restored = Credential.from_json(credential.to_json_string())
        assert restored.verify(key).verified

    def test_json_missing_proof(self, scheme_name):
        credential, _, _ = issue(scheme_name)
        obj = credential.to_json()
        del obj["proof"]
        with pytest.raises(SerializationError, match="proof"):
            Credential.from_json(obj)

    def test_unknown_proof_type(self, scheme_name):
        credential, _, _ = issue(scheme_name)
        obj = credential.to_json()
        obj["proof"]["type"] = "Bls12381BBS+SignatureDock2022"
        with pytest.raises(UsageError):
            Credential.from_json(obj)
