"""
Tests for protocol configuration constants.
"""

import pytest

from anoncred_toolkit.proof_protocol import config
from anoncred_toolkit.proof_protocol.config import (
    DEFAULT_CHUNK_BITS,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    GROUP_ORDER_BITS,
    MAX_BOUND_BITS,
    SUPPORTED_CHUNK_BITS,
    validate_config,
)
from anoncred_toolkit.proof_protocol.exceptions import ConfigurationError


def test_validate_config_passes() -> None:
    assert validate_config() is True


def test_group_order_is_secp256k1() -> None:
    assert GROUP_ORDER.bit_length() == GROUP_ORDER_BITS


def test_default_chunk_size_is_supported() -> None:
    assert DEFAULT_CHUNK_BITS in SUPPORTED_CHUNK_BITS
    for bits in SUPPORTED_CHUNK_BITS:
        assert GROUP_ORDER_BITS % bits == 0


def test_bound_bits_leave_room_in_the_field() -> None:
    assert 2 ** MAX_BOUND_BITS < GROUP_ORDER


def test_domain_separators_are_distinct() -> None:
    values = list(DOMAIN_SEPARATORS.values())
    assert len(values) == len(set(values))


def test_invalid_config_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "CHALLENGE_SPACE_BITS", 64)
    with pytest.raises(ConfigurationError, match="Challenge space"):
        config.validate_config()
