"""
⚠️ DRAFT — requires crypto review before production use

Encoding of attribute values into field elements (ints modulo the group order).

Each named attribute has an encode function. Numeric encoders map their
declared range injectively into field elements, so encoded values can take
part in range and equality proofs. Reversible string encoders pack UTF-8
bytes little-endian into a single field element and can be decoded again.
Everything else is hashed and is one-way.
"""

import zlib
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .config import DOMAIN_SEPARATORS, GROUP_ORDER
from .exceptions import EncodingError, UsageError
from .flattening import flatten_object
from .security import hash_to_scalar

EncodeFunc = Callable[[Any], int]

# A field element is 32 bytes, so that is the most a reversible encoding can hold
MAX_ENCODED_LENGTH = 32

# Smallest value accepted by integer encoders created without a minimum
INT_MIN_VALUE = -2147483648
NUMBER_MIN_VALUE = -(2**53 - 1)


# ============================================================================
# PRIMITIVE ENCODINGS
# ============================================================================


def encode_message_for_signing(message: bytes) -> int:
    """Irreversibly hash arbitrary bytes to a field element."""
    return hash_to_scalar(message, GROUP_ORDER, DOMAIN_SEPARATORS["message_encoding"])


def encode_positive_number_for_signing(num: int) -> int:
    if num < 0 or num >= GROUP_ORDER:
        raise EncodingError(f"Value {num} does not fit in a field element")
    return num


def reversible_encode_string_for_signing(message: str, compress: bool = False) -> int:
    """
    Pack a UTF-8 string of at most 32 bytes into a field element.

    Bytes are read little-endian after zero padding. Compressed strings are
    raw-deflated and carry a one-byte length prefix, since deflate output
    may contain zero bytes. The 32-byte limit applies to the UTF-8 input in
    both modes, so every accepted string decodes.

    Raises:
        EncodingError: If the value is not a string or does not fit
    """
    if not isinstance(message, str):
        raise EncodingError(f"Expected string but {message!r} has type {type(message).__name__}")
    data = message.encode("utf-8")
    if len(data) > MAX_ENCODED_LENGTH:
        raise EncodingError(f"Expects a string with at most {MAX_ENCODED_LENGTH} bytes")
    if compress:
        compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
        packed = compressor.compress(data) + compressor.flush()
        data = bytes([len(packed)]) + packed
        if len(data) > MAX_ENCODED_LENGTH:
            raise EncodingError(
                f"Compressed string takes {len(data)} bytes, at most {MAX_ENCODED_LENGTH} fit"
            )
    value = int.from_bytes(data.ljust(MAX_ENCODED_LENGTH, b"\x00"), "little")
    if value >= GROUP_ORDER:
        raise EncodingError("Encoded string does not fit in a field element")
    return value


def reversible_decode_string_for_signing(value: int, decompress: bool = False) -> str:
    """
    Inverse of :func:`reversible_encode_string_for_signing`.

    Uncompressed strings are cut at the first zero byte, so a string that
    itself contained a NUL character does not round-trip.
    """
    if not isinstance(value, int) or not 0 <= value < GROUP_ORDER:
        raise EncodingError("Expected a field element")
    data = value.to_bytes(MAX_ENCODED_LENGTH, "little")
    try:
        if decompress:
            length = data[0]
            if length + 1 > MAX_ENCODED_LENGTH:
                raise EncodingError(f"Invalid compressed length {length}")
            decoded = zlib.decompress(data[1:1 + length], -15)
            if len(decoded) > MAX_ENCODED_LENGTH:
                raise EncodingError(
                    f"Expects a message that decompresses to at most {MAX_ENCODED_LENGTH} bytes"
                )
            return decoded.decode("utf-8")
        end = data.find(b"\x00")
        return data[: end if end >= 0 else MAX_ENCODED_LENGTH].decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as e:
        raise EncodingError(f"Value is not a reversibly encoded string: {e}") from e


# ============================================================================
# NUMERIC HELPERS
# ============================================================================


def _is_positive_integer(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and v >= 0


def _ensure_integer(v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise EncodingError(f"Expected integer but {v!r} has type {type(v).__name__}")
    return v


def _ensure_number(v: Any) -> Decimal:
    if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
        raise EncodingError(f"Expected number but {v!r} has type {type(v).__name__}")
    try:
        d = Decimal(str(v))
    except InvalidOperation as e:
        raise EncodingError(f"Cannot encode {v!r} as a number") from e
    if not d.is_finite():
        raise EncodingError(f"Cannot encode non-finite number {v!r}")
    return d


def _scale_exactly(d: Decimal, max_decimal_places: int) -> int:
    """d * 10^max_decimal_places as an int, from the digits so no context rounding applies."""
    sign, digits, exponent = d.as_tuple()
    coefficient = int("".join(map(str, digits)))
    shift = exponent + max_decimal_places
    if shift < 0:
        coefficient, rest = divmod(coefficient, 10**-shift)
        if rest:
            raise EncodingError(
                f"Encoder was created with maximum decimal places {max_decimal_places} "
                f"but was asked to encode {d}"
            )
    else:
        coefficient *= 10**shift
    return -coefficient if sign else coefficient


def decode_scaled_decimal(encoded: int, minimum: int, max_decimal_places: int) -> Decimal:
    """
    Inverse of the decimal encoders: the exact Decimal with max_decimal_places places.

    A float that was encoded decodes to ``Decimal(str(f))``, not to the float.
    """
    scaled = encoded - abs(minimum) * 10**max_decimal_places
    return Decimal(f"{scaled}E-{max_decimal_places}")


def integer_to_positive_int(minimum: int) -> Callable[[Any], int]:
    """Shift integers >= minimum into the non-negative range by abs(minimum)."""
    if not isinstance(minimum, int) or isinstance(minimum, bool):
        raise UsageError(f"Expected integer minimum but got {minimum!r}")
    offset = abs(minimum)

    def convert(v: Any) -> int:
        v = _ensure_integer(v)
        if v < minimum:
            raise EncodingError(
                f"Encoder was created with minimum value {minimum} but was asked to encode {v}"
            )
        return offset + v

    return convert


def positive_decimal_number_to_positive_int(max_decimal_places: int) -> Callable[[Any], int]:
    """Scale non-negative decimals by 10^max_decimal_places, e.g. 23.452 -> 23452."""
    if not _is_positive_integer(max_decimal_places):
        raise UsageError(
            f"Maximum decimal places should be a positive integer but was {max_decimal_places!r}"
        )
    def convert(v: Any) -> int:
        d = _ensure_number(v)
        if d < 0:
            raise EncodingError(f"Expected a non-negative number but got {v!r}")
        return _scale_exactly(d, max_decimal_places)

    return convert


def decimal_number_to_positive_int(minimum: int, max_decimal_places: int) -> Callable[[Any], int]:
    """Offset by abs(minimum), then scale by 10^max_decimal_places."""
    if not isinstance(minimum, int) or isinstance(minimum, bool):
        raise UsageError(f"Expected integer minimum but got {minimum!r}")
    if not _is_positive_integer(max_decimal_places):
        raise UsageError(
            f"Maximum decimal places should be a positive integer but was {max_decimal_places!r}"
        )
    offset = abs(minimum) * 10**max_decimal_places

    def convert(v: Any) -> int:
        d = _ensure_number(v)
        if d < minimum:
            raise EncodingError(
                f"Encoder was created with minimum value {minimum} but was asked to encode {v}"
            )
        return offset + _scale_exactly(d, max_decimal_places)

    return convert


# ============================================================================
# ENCODER
# ============================================================================


class Encoder:
    """
    Per-name encode functions with an optional default.

    Lookup order: exact name, then the default encoder. When neither
    exists, a bytes value is hashed unless ``strict`` is set; anything
    else fails with EncodingError.
    """

    def __init__(
        self,
        encoders: Optional[Mapping[str, EncodeFunc]] = None,
        default_encoder: Optional[EncodeFunc] = None,
    ):
        if not encoders and default_encoder is None:
            raise UsageError('Provide either a non-empty "encoders" or a default encoder')
        self.encoders: Dict[str, EncodeFunc] = dict(encoders or {})
        self.default_encoder = default_encoder

    def encode_message(self, name: str, value: Any, strict: bool = False) -> int:
        encoder = self.encoders.get(name) or self.default_encoder
        if encoder is not None:
            if value is None:
                raise EncodingError(f"Cannot encode message with name {name} as it is undefined")
            return encoder(value)
        if not strict and isinstance(value, (bytes, bytearray)):
            return encode_message_for_signing(bytes(value))
        raise EncodingError(
            f"Cannot encode message with name {name}: no encoder provided and value "
            f"has type {type(value).__name__}"
        )

    def encode_default(self, value: Any, strict: bool = False) -> int:
        if self.default_encoder is not None:
            return self.default_encoder(value)
        if not strict and isinstance(value, (bytes, bytearray)):
            return encode_message_for_signing(bytes(value))
        raise EncodingError(
            f"Cannot encode value of type {type(value).__name__}: no default encoder"
        )

    def encode_message_object(
        self, messages: Mapping[str, Any], strict: bool = False
    ) -> Tuple[List[str], List[int]]:
        """Flatten ``messages`` and encode every leaf. Returns (names, encoded)."""
        names, values = flatten_object(messages)
        return names, [self.encode_message(n, v, strict) for n, v in zip(names, values)]

    def encode_message_object_as_dict(
        self, messages: Mapping[str, Any], strict: bool = False
    ) -> Dict[str, int]:
        names, encoded = self.encode_message_object(messages, strict)
        return dict(zip(names, encoded))

    # ------------------------------------------------------------------------
    # Encoder factories
    # ------------------------------------------------------------------------

    @staticmethod
    def positive_integer_encoder() -> EncodeFunc:
        def encode(v: Any) -> int:
            if not _is_positive_integer(v):
                raise EncodingError(
                    f"Expected positive integer but {v!r} has type {type(v).__name__}"
                )
            return encode_positive_number_for_signing(v)

        return encode

    @staticmethod
    def boolean_encoder() -> EncodeFunc:
        def encode(v: Any) -> int:
            if not isinstance(v, bool):
                raise EncodingError(f"Expected boolean but {v!r} has type {type(v).__name__}")
            return 1 if v else 0

        return encode

    @staticmethod
    def integer_encoder(minimum: int = INT_MIN_VALUE) -> EncodeFunc:
        convert = integer_to_positive_int(minimum)
        return lambda v: encode_positive_number_for_signing(convert(v))

    @staticmethod
    def positive_decimal_number_encoder(max_decimal_places: int) -> EncodeFunc:
        convert = positive_decimal_number_to_positive_int(max_decimal_places)
        return lambda v: encode_positive_number_for_signing(convert(v))

    @staticmethod
    def decimal_number_encoder(minimum: int, max_decimal_places: int) -> EncodeFunc:
        convert = decimal_number_to_positive_int(minimum, max_decimal_places)
        return lambda v: encode_positive_number_for_signing(convert(v))

    @staticmethod
    def reversible_encoder_string(compress: bool = False) -> EncodeFunc:
        return lambda v: reversible_encode_string_for_signing(v, compress)

    @staticmethod
    def default_encode_func() -> EncodeFunc:
        """Hash the value's string form. One-way."""

        def encode(v: Any) -> int:
            if isinstance(v, (bytes, bytearray)):
                return encode_message_for_signing(bytes(v))
            if isinstance(v, bool):
                text = "true" if v else "false"
            else:
                text = str(v)
            return encode_message_for_signing(text.encode("utf-8"))

        return encode
