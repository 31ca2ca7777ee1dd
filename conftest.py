"""
Shared pytest configuration.

Every test runs with the engine initialized; tests of the readiness gate
reset it themselves and restore it afterwards.
"""

import pytest

from anoncred_toolkit.proof_protocol import feature_flags
from anoncred_toolkit.proof_protocol.engine import initialize_engine


@pytest.fixture(autouse=True)
def engine():
    params = initialize_engine()
    yield params
    feature_flags.set_default_scheme(None)


@pytest.fixture(params=["schnorr-commitment", "keyed-mac"])
def scheme_name(request):
    return request.param
