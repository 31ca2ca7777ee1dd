"""
Feature flags for selecting the credential signature scheme.

The scheme is chosen once, at configuration time. Builders and verifiers
resolve it through ``factory.get_signature_scheme`` and never branch on the
scheme per call. Selection is in-process only; nothing is read from the
environment.
"""

from __future__ import annotations

from typing import Final

from .exceptions import UsageError

_VALID_SCHEMES: Final[tuple[str, ...]] = ("schnorr-commitment", "keyed-mac")
_DEFAULT_SCHEME: Final[str] = "schnorr-commitment"

_scheme_override: str | None = None


def _format_valid_options() -> str:
    return ", ".join(_VALID_SCHEMES)


def _normalize_scheme(value: str | None) -> str | None:
    if value is None:
        return None

    if not isinstance(value, str) or (value and value not in _VALID_SCHEMES):
        raise UsageError(
            f"Invalid signature scheme: {value!r}. Valid options: {_format_valid_options()}"
        )

    return value or None


def valid_schemes() -> tuple[str, ...]:
    return _VALID_SCHEMES


def get_default_scheme(prefer: str | None = None) -> str:
    """
    Resolve the signature scheme in precedence order: ``prefer``, then the
    in-process override, then the built-in default.

    Raises:
        UsageError: If a provided scheme name is invalid.
    """
    preferred = _normalize_scheme(prefer)
    if preferred is not None:
        return preferred

    if _scheme_override is not None:
        return _scheme_override

    return _DEFAULT_SCHEME


def set_default_scheme(value: str | None) -> None:
    """
    Set the in-process scheme override, or clear it with None.

    Raises:
        UsageError: If the value is invalid.
    """
    global _scheme_override
    _scheme_override = _normalize_scheme(value)
