"""
Credential schemas: JSON-schema shaped attribute declarations.

A schema fixes the attribute structure of a credential (and therefore every
message index) and picks an encoder per attribute from its declared type.

Rules:
    1. ``properties`` must declare ``cryptoVersion`` and ``credentialSchema``
       as ``{"type": "string"}``.
    2. ``properties`` must declare ``credentialSubject``; it may be an object
       or an array with a fixed ``items`` list.
    3. A ``credentialStatus``, if declared, has string ``id``,
       ``revocationCheck`` and ``revocationId`` properties.
    4. Any other top-level property becomes a signed top-level field.

Example:
    >>> schema = CredentialSchema.essential()
    >>> schema["properties"]["credentialSubject"] = {
    ...     "type": "object",
    ...     "properties": {
    ...         "fname": {"type": "string"},
    ...         "SSN": {"type": "stringReversible", "compress": False},
    ...         "age": {"type": "integer", "minimum": -100},
    ...         "height": {"type": "positiveDecimalNumber", "decimalPlaces": 1},
    ...     },
    ... }
    >>> cs = CredentialSchema(schema)
"""

import copy
import json
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..proof_protocol.encoder import (
    Encoder,
    EncodeFunc,
    decode_scaled_decimal,
    reversible_decode_string_for_signing,
)
from ..proof_protocol.exceptions import EncodingError, UsageError
from ..proof_protocol.flattening import AttributeStructure, flatten_till_second_last_key
from .constants import (
    CRYPTO_VERSION_STR,
    ID_STR,
    REV_CHECK_STR,
    REV_ID_STR,
    SCHEMA_STR,
    STATUS_REVOCATION_ID,
    STATUS_STR,
    SUBJECT_STR,
)
from .versioned import Versioned

FlattenedSchema = Tuple[List[str], List[Dict[str, Any]]]


def _is_positive_integer(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and v >= 0


def _is_integer(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


class CredentialSchema(Versioned):
    # Semver; bump whenever the encoding logic or the underlying crypto changes
    VERSION = "0.0.1"
    SUPPORTED_VERSIONS = ("0.0.1",)

    STR_TYPE = "string"
    STR_REV_TYPE = "stringReversible"
    POSITIVE_INT_TYPE = "positiveInteger"
    INT_TYPE = "integer"
    POSITIVE_NUM_TYPE = "positiveDecimalNumber"
    NUM_TYPE = "decimalNumber"

    NUMERIC_TYPES = (POSITIVE_INT_TYPE, INT_TYPE, POSITIVE_NUM_TYPE, NUM_TYPE)

    # Subject claims cannot use these names at the top level
    RESERVED_NAMES = frozenset({CRYPTO_VERSION_STR, SCHEMA_STR, SUBJECT_STR, STATUS_STR})

    POSSIBLE_TYPES = frozenset({
        STR_TYPE, STR_REV_TYPE, POSITIVE_INT_TYPE, INT_TYPE, POSITIVE_NUM_TYPE, NUM_TYPE,
        "object", "array",
    })

    def __init__(self, schema: Union[str, Mapping[str, Any]]):
        obj = json.loads(schema) if isinstance(schema, str) else copy.deepcopy(dict(schema))
        self.validate(obj)
        super().__init__(self.VERSION)
        self.schema: Dict[str, Any] = obj
        # (text, version, schema) as parsed by from_json
        self._source: Optional[Tuple[str, str, Dict[str, Any]]] = None
        self._flattened = self.flatten_schema_obj(obj)
        self.encoder = self._build_encoder()

    # ------------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------------

    @classmethod
    def validate(cls, schema: Any) -> None:
        """
        Raises:
            UsageError: If the schema breaks one of the module rules
        """
        if not isinstance(schema, dict) or not isinstance(schema.get("properties"), dict):
            raise UsageError("Schema must have top level properties object")
        props = schema["properties"]
        cls._validate_string_type(props, CRYPTO_VERSION_STR)
        cls._validate_string_type(props, SCHEMA_STR)

        status = props.get(STATUS_STR)
        if status is not None:
            status_props = status.get("properties") if isinstance(status, dict) else None
            if not isinstance(status_props, dict):
                raise UsageError(f"{STATUS_STR} must have a properties object")
            for field in (ID_STR, REV_CHECK_STR, REV_ID_STR):
                cls._validate_string_type(status_props, field)

        if SUBJECT_STR not in props:
            raise UsageError(f"Schema properties did not contain top level key {SUBJECT_STR}")

        names, values = cls.flatten_schema_obj(schema)
        for name, value in zip(names, values):
            cls._validate_leaf(name, value)

    @classmethod
    def _validate_leaf(cls, name: str, value: Any) -> None:
        if not isinstance(value, dict):
            raise UsageError(
                f"Schema value for {name} should have been an object type "
                f"but was {type(value).__name__}"
            )
        typ = value.get("type")
        if typ is None:
            raise UsageError(f'Schema value for {name} should have a "type" field')
        if typ not in cls.POSSIBLE_TYPES:
            raise UsageError(f'Schema value for {name} had an unknown "type" field {typ}')
        if typ == cls.STR_REV_TYPE and not isinstance(value.get("compress"), bool):
            raise UsageError(
                f"Schema value for {name} expected boolean but found {value.get('compress')!r}"
            )
        if typ == cls.INT_TYPE and not _is_integer(value.get("minimum")):
            raise UsageError(
                f"Schema value for {name} expected integer but found {value.get('minimum')!r}"
            )
        if typ == cls.POSITIVE_NUM_TYPE and not _is_positive_integer(value.get("decimalPlaces")):
            raise UsageError(
                f"Schema value for {name} expected maximum decimal places as a positive "
                f"integer but was {value.get('decimalPlaces')!r}"
            )
        if typ == cls.NUM_TYPE and not (
            _is_integer(value.get("minimum")) and _is_positive_integer(value.get("decimalPlaces"))
        ):
            raise UsageError(
                f"Schema value for {name} expected an integer minimum and a positive integer "
                f"of decimal places but found {value.get('minimum')!r} and "
                f"{value.get('decimalPlaces')!r}"
            )

    @staticmethod
    def _validate_string_type(props: Mapping[str, Any], field: str) -> None:
        value = props.get(field)
        if not isinstance(value, dict) or value.get("type") != "string":
            raise UsageError(
                f'Schema should contain a top level key {field} and its value must be '
                f'{{"type":"string"}}'
            )

    # ------------------------------------------------------------------------
    # Flattening
    # ------------------------------------------------------------------------

    @classmethod
    def flatten_json_schema(cls, node: Any) -> Any:
        """Strip JSON-schema wrappers, leaving a tree of leaf type descriptors."""
        if not isinstance(node, dict) or not isinstance(node.get("type", "object"), str):
            raise UsageError(f"Schema node must have a string type field, got {node!r}")
        typ = node.get("type", "object")
        if typ == "object":
            props = node.get("properties")
            if not isinstance(props, dict):
                raise UsageError("Schema object must have properties object")
            return {k: cls.flatten_json_schema(v) for k, v in props.items()}
        if typ == "array":
            items = node.get("items")
            if not isinstance(items, list):
                raise UsageError("No indefinite length array support")
            return [cls.flatten_json_schema(i) for i in items]
        return node

    @classmethod
    def flatten_schema_obj(cls, schema: Mapping[str, Any]) -> FlattenedSchema:
        return flatten_till_second_last_key(cls.flatten_json_schema(dict(schema)))

    def flatten(self) -> FlattenedSchema:
        names, values = self._flattened
        return list(names), list(values)

    @property
    def structure(self) -> AttributeStructure:
        return AttributeStructure.from_names(self._flattened[0])

    @property
    def properties(self) -> Dict[str, Any]:
        return self.schema["properties"]

    def has_status(self) -> bool:
        return STATUS_STR in self.properties

    def without_status(self) -> "CredentialSchema":
        """Copy of this schema with no ``credentialStatus`` declaration."""
        obj = copy.deepcopy(self.schema)
        obj["properties"].pop(STATUS_STR, None)
        schema = CredentialSchema(obj)
        schema.version = self.version
        return schema

    def type_of_name(self, name: str) -> Dict[str, Any]:
        names, values = self._flattened
        try:
            return values[names.index(name)]
        except ValueError:
            raise UsageError(f"Attribute name {name} not found in schema") from None

    def is_numeric(self, name: str) -> bool:
        return self.type_of_name(name)["type"] in self.NUMERIC_TYPES

    def is_reversible(self, name: str) -> bool:
        return self.type_of_name(name)["type"] in (self.STR_REV_TYPE,) + self.NUMERIC_TYPES

    # ------------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------------

    def _encode_func(self, descriptor: Mapping[str, Any]) -> EncodeFunc:
        typ = descriptor["type"]
        if typ == self.STR_REV_TYPE:
            return Encoder.reversible_encoder_string(descriptor["compress"])
        if typ == self.POSITIVE_INT_TYPE:
            return Encoder.positive_integer_encoder()
        if typ == self.INT_TYPE:
            return Encoder.integer_encoder(descriptor["minimum"])
        if typ == self.POSITIVE_NUM_TYPE:
            return Encoder.positive_decimal_number_encoder(descriptor["decimalPlaces"])
        if typ == self.NUM_TYPE:
            return Encoder.decimal_number_encoder(
                descriptor["minimum"], descriptor["decimalPlaces"]
            )
        return Encoder.default_encode_func()

    def _build_encoder(self) -> Encoder:
        names, values = self._flattened
        # No default encoder: every name is known from the schema
        return Encoder({n: self._encode_func(v) for n, v in zip(names, values)})

    def encode_value(self, name: str, value: Any) -> int:
        return self.encoder.encode_message(name, value)

    def encode_revocation_id(self, value: Any) -> int:
        """Accumulator member for a credential status ``revocationId``."""
        if not self.has_status():
            raise UsageError("Schema declares no credential status")
        return self.encode_value(STATUS_REVOCATION_ID, value)

    def decode_value(self, name: str, encoded: int) -> Any:
        """
        Invert the encoding of a reversibly encoded attribute.

        Decimal types decode to an exact ``Decimal``; compare a float input
        against ``Decimal(str(value))``.

        Raises:
            EncodingError: If the attribute type is one-way
        """
        descriptor = self.type_of_name(name)
        typ = descriptor["type"]
        if typ == self.STR_REV_TYPE:
            return reversible_decode_string_for_signing(encoded, descriptor["compress"])
        if typ == self.POSITIVE_INT_TYPE:
            return encoded
        if typ == self.INT_TYPE:
            return encoded - abs(descriptor["minimum"])
        if typ in (self.POSITIVE_NUM_TYPE, self.NUM_TYPE):
            return decode_scaled_decimal(
                encoded, descriptor.get("minimum", 0), descriptor["decimalPlaces"]
            )
        raise EncodingError(f"Attribute {name} of type {typ} is not reversibly encoded")

    # ------------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------------

    @staticmethod
    def essential() -> Dict[str, Any]:
        """Smallest valid schema apart from the subject."""
        return {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "$metadata": {"version": 1},
            "type": "object",
            "properties": {
                CRYPTO_VERSION_STR: {"type": "string"},
                SCHEMA_STR: {"type": "string"},
            },
        }

    def for_credential(self) -> Dict[str, Any]:
        return {"$version": self.version, **self.schema}

    def to_json(self) -> str:
        """
        Compact JSON with ``$version`` first.

        A schema parsed from text gives back that exact text while it is
        unchanged, since credentials sign the schema text as they received it.
        """
        if self._source is not None:
            text, version, parsed = self._source
            if self.version == version and self.schema == parsed:
                return text
        return json.dumps(self.for_credential(), separators=(",", ":"))

    @classmethod
    def from_json(cls, data: Union[str, Mapping[str, Any]]) -> "CredentialSchema":
        """
        Raises:
            UsageError: If the version is missing or unsupported
        """
        obj = json.loads(data) if isinstance(data, str) else dict(data)
        version = obj.pop("$version", None)
        if version not in cls.SUPPORTED_VERSIONS:
            raise UsageError(
                f"Unsupported schema version {version!r}; "
                f"supported: {', '.join(cls.SUPPORTED_VERSIONS)}"
            )
        schema = cls(obj)
        schema.version = version
        if isinstance(data, str):
            schema._source = (data, version, copy.deepcopy(schema.schema))
        return schema

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CredentialSchema):
            return NotImplemented
        return self.version == other.version and self.schema == other.schema

    def __hash__(self) -> int:
        # Key order does not take part in equality
        return hash(json.dumps(self.for_credential(), sort_keys=True))
