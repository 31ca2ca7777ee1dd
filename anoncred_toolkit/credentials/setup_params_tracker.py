"""
Deduplication of shared setup parameters by caller-chosen id.

Predicates name their parameters (commitment keys, encryption keys,
circuits) by id. The first statement to use an id adds the parameter to
the proof spec; later statements get a back-reference to the same entry.
"""

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from ..proof_protocol.composite_proof.setup_param import SetupParam, SetupParamRef
from ..proof_protocol.exceptions import UsageError

T = TypeVar("T")


class SetupParamsTracker:
    def __init__(self, available: Optional[Mapping[str, Any]] = None):
        self._available: Dict[str, Any] = dict(available or {})
        self._setup_params: List[SetupParam] = []
        self._index_by_id: Dict[str, int] = {}
        self._statements_by_id: Dict[str, List[int]] = {}

    @property
    def setup_params(self) -> List[SetupParam]:
        return list(self._setup_params)

    def is_tracking(self, param_id: str) -> bool:
        return param_id in self._index_by_id

    def lookup(self, param_id: str, expected: Type[T]) -> T:
        """
        Raises:
            UsageError: If no parameter with this id was supplied, or it has the wrong type
        """
        if param_id not in self._available:
            raise UsageError(f"Predicate param id {param_id} not found")
        value = self._available[param_id]
        if not isinstance(value, expected):
            raise UsageError(
                f"Predicate param {param_id} should be {expected.__name__} "
                f"but was {type(value).__name__}"
            )
        return value

    def ref_for(self, param_id: str, expected: Type[Any], statement_index: int) -> SetupParamRef:
        """Back-reference for ``param_id``, adding the parameter on first use."""
        if param_id not in self._index_by_id:
            value = self.lookup(param_id, expected)
            self._setup_params.append(SetupParam(value))
            self._index_by_id[param_id] = len(self._setup_params) - 1
        elif not isinstance(self._setup_params[self._index_by_id[param_id]].value, expected):
            raise UsageError(f"Predicate param {param_id} is used as two different kinds")
        self._statements_by_id.setdefault(param_id, []).append(statement_index)
        return SetupParamRef(self._index_by_id[param_id])

    def statements_using(self, param_id: str) -> List[int]:
        return list(self._statements_by_id.get(param_id, ()))
