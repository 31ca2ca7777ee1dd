"""
Setup parameters shared by several statements of one proof.

Expensive public parameters (commitment keys, encryption keys, circuits)
are listed once in the proof spec; statements point at them with a
``SetupParamRef`` that is resolved just before proving or verifying.
"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Type, TypeVar, Union

from ..exceptions import UsageError

T = TypeVar("T")


@dataclass(frozen=True)
class SetupParamRef:
    """Back-reference to ``setup_params[index]``."""

    index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"ref": self.index}


@dataclass(frozen=True)
class SetupParam:
    """
    A shared parameter. ``value`` must expose ``to_dict()`` so that it can be
    bound into the proof transcript.
    """

    value: Any

    @property
    def kind(self) -> str:
        return type(self.value).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "value": self.value.to_dict()}


def param_to_dict(value: Union[SetupParamRef, Any]) -> Dict[str, Any]:
    return value.to_dict()


def resolve_param(
    value: Union[SetupParamRef, T], setup_params: Sequence[SetupParam], expected: Type[T]
) -> T:
    """
    Return the concrete parameter behind ``value``.

    Raises:
        UsageError: If the reference is dangling or points at the wrong kind
    """
    if isinstance(value, SetupParamRef):
        if not 0 <= value.index < len(setup_params):
            raise UsageError(
                f"Setup param index {value.index} out of range "
                f"(have {len(setup_params)})"
            )
        value = setup_params[value.index].value
    if not isinstance(value, expected):
        raise UsageError(
            f"Expected setup param of type {expected.__name__}, got {type(value).__name__}"
        )
    return value
