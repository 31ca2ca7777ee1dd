"""
Unit tests for signature scheme factory selection.
"""

import pytest

from anoncred_toolkit.proof_protocol import factory, feature_flags
from anoncred_toolkit.proof_protocol.exceptions import UsageError
from anoncred_toolkit.proof_protocol.signatures.commitment_schnorr import SchnorrCommitmentScheme
from anoncred_toolkit.proof_protocol.signatures.interfaces import SignatureScheme
from anoncred_toolkit.proof_protocol.signatures.keyed_mac import KeyedMacScheme


def test_default_is_schnorr_commitment() -> None:
    scheme = factory.get_signature_scheme()
    assert isinstance(scheme, SchnorrCommitmentScheme)


def test_named_scheme() -> None:
    assert isinstance(factory.get_signature_scheme("keyed-mac"), KeyedMacScheme)


def test_feature_flag_selects_default() -> None:
    feature_flags.set_default_scheme("keyed-mac")
    assert isinstance(factory.get_signature_scheme(), KeyedMacScheme)


def test_instances_are_shared() -> None:
    assert factory.get_signature_scheme("keyed-mac") is factory.get_signature_scheme("keyed-mac")


def test_every_registered_scheme_implements_interface() -> None:
    for name in factory.SCHEME_REGISTRY:
        assert isinstance(factory.get_signature_scheme(name), SignatureScheme)


def test_unknown_scheme_raises() -> None:
    with pytest.raises(UsageError):
        factory.get_signature_scheme("ps-signature")


@pytest.mark.parametrize("name", ["schnorr-commitment", "keyed-mac"])
def test_scheme_for_proof_type(name) -> None:
    scheme = factory.get_signature_scheme(name)
    assert factory.scheme_for_proof_type(scheme.proof_type) is scheme
    assert factory.scheme_for_proof_type(scheme.blinded_proof_type) is scheme


def test_scheme_for_unknown_proof_type() -> None:
    with pytest.raises(UsageError, match="Unknown credential proof type"):
        factory.scheme_for_proof_type("Bls12381BBSSignatureDock2023")


def test_bad_registry_entry_raises_import_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(factory.SCHEME_REGISTRY, "keyed-mac", "anoncred_toolkit.nowhere.Scheme")
    monkeypatch.setattr(factory, "_instances", {})
    with pytest.raises(ImportError):
        factory.get_signature_scheme("keyed-mac")
